import re
from datetime import timedelta
from decimal import Decimal

import pytest

from marketplace.data.models import CheckoutSessionModel
from marketplace.domain.cart import CartIdentity
from marketplace.domain.errors import AuthenticationRequiredError, BusinessRuleError, NotFoundError
from marketplace.services.checkout_service import CheckoutService
from marketplace.utils.dates import utcnow


@pytest.fixture
def checkout(db, cart_service):
    return CheckoutService(db, cart_service)


@pytest.fixture
def buyer(make_user):
    return make_user("Buyer")


def test_checkout_requires_login(checkout):
    with pytest.raises(AuthenticationRequiredError) as exc:
        checkout.create_session(None, {"state": "Delhi"})
    assert exc.value.status_code == 401


def test_checkout_of_empty_cart(checkout, buyer):
    with pytest.raises(BusinessRuleError) as exc:
        checkout.create_session(buyer.id)
    assert exc.value.code == "CART_EMPTY"


def test_checkout_blocks_unavailable_items(db, checkout, cart_service, make_product, buyer):
    product = make_product(quantity=5)
    cart_service.add_item(CartIdentity(user_id=buyer.id), product.id, 4)
    product.quantity = 1
    db.commit()

    with pytest.raises(BusinessRuleError) as exc:
        checkout.create_session(buyer.id)

    assert exc.value.code == "CART_VALIDATION_FAILED"
    assert exc.value.data["valid"] is False
    assert exc.value.data["items"][0]["reason"] == "INSUFFICIENT_STOCK"
    assert db.query(CheckoutSessionModel).count() == 0


def test_checkout_blocks_negotiable_items(checkout, cart_service, make_product, buyer):
    product = make_product(listing_type="negotiable")
    cart_service.add_item(CartIdentity(user_id=buyer.id), product.id, 1)

    with pytest.raises(BusinessRuleError) as exc:
        checkout.create_session(buyer.id)
    assert exc.value.code == "NEGOTIATION_REQUIRED"


def test_checkout_session_freezes_prices(db, checkout, cart_service, make_product, make_coupon, buyer, zones):
    make_coupon("FLAT300", discount_type="flat", value="300")
    me = CartIdentity(user_id=buyer.id)
    cart_service.add_item(me, make_product(price="1000", discount="10").id, 2)
    cart_service.validate_and_apply_coupon(me, "FLAT300")

    result = checkout.create_session(buyer.id, {"state": "Karnataka", "city": "Bengaluru", "pincode": "560001"})

    assert re.fullmatch(r"[0-9a-f]{64}", result["session_token"])
    assert result["expires_in"] == 1800
    assert result["summary"]["final_payable_amount"] == Decimal("2270.00")

    row = db.query(CheckoutSessionModel).one()
    assert row.final_amount == Decimal("2270.00")
    assert row.coupon_code == "FLAT300"
    assert row.shipping_city == "Bengaluru"
    assert row.status == "pending"
    assert row.cart_snapshot["items"][0]["quantity"] == 2
    assert row.cart_snapshot["coupon"]["code"] == "FLAT300"

    # koszyk zostaje nietkniety
    assert cart_service.get_cart_count(me) == 1


def test_read_checkout_session(checkout, cart_service, make_product, make_user, buyer):
    cart_service.add_item(CartIdentity(user_id=buyer.id), make_product().id, 1)
    token = checkout.create_session(buyer.id)["session_token"]

    session = checkout.get_session(token, buyer.id)
    assert session["status"] == "pending"
    assert session["final_amount"] == Decimal("1680.00")

    with pytest.raises(NotFoundError):
        checkout.get_session(token, make_user("Other").id)
    with pytest.raises(NotFoundError):
        checkout.get_session("missing", buyer.id)


def test_checkout_session_reads_as_expired_after_ttl(db, checkout, cart_service, make_product, buyer):
    cart_service.add_item(CartIdentity(user_id=buyer.id), make_product().id, 1)
    token = checkout.create_session(buyer.id)["session_token"]

    row = db.query(CheckoutSessionModel).one()
    row.expires_at = utcnow() - timedelta(seconds=1)
    db.commit()

    assert checkout.get_session(token, buyer.id)["status"] == "expired"
