from datetime import timedelta

import pytest

from marketplace.utils.dates import today


@pytest.fixture
def buyer(make_user):
    return make_user("Buyer")


def as_user(user):
    return {"x-user-id": str(user.id)}


def test_health(client):
    assert client.get("/health").json() == {"success": True, "status": "ok"}


def test_guest_add_sets_session_cookie(client, make_product):
    product = make_product()

    response = client.post("/api/cart/add", json={"productId": product.id, "quantity": 2})

    assert response.status_code == 200
    body = response.json()
    token = body["data"]["sessionToken"]
    assert len(token) == 64
    assert body["data"]["item"]["quantity"] == 2
    assert client.cookies.get("cart_session") == token
    assert "httponly" in response.headers["set-cookie"].lower()

    # cookie wraca przy kolejnym requescie, nowy token nie powstaje
    again = client.post("/api/cart/add", json={"productId": product.id})
    assert again.json()["data"]["sessionToken"] is None
    assert client.get("/api/cart/count").json()["data"] == {"count": 1}


def test_cart_response_is_camel_case_with_numbers(client, make_product, buyer):
    product = make_product(price="1000")
    client.post("/api/cart/add", json={"productId": product.id}, headers=as_user(buyer))

    body = client.get("/api/cart", headers=as_user(buyer)).json()

    assert body["success"] is True
    data = body["data"]
    assert data["itemCount"] == 1
    assert data["hasIssues"] is False
    assert data["items"][0]["originalPrice"] == 1000.0
    assert data["items"][0]["seller"]["name"] == "Acme Surplus"
    assert data["summary"]["gstAmount"] == 180.0
    assert data["summary"]["finalPayableAmount"] == 1680.0
    assert data["savings"]["savingsPercent"] == 0.0


def test_cart_uses_shipping_state_from_query(client, make_product, buyer, zones):
    product = make_product(price="100")
    client.post("/api/cart/add", json={"productId": product.id}, headers=as_user(buyer))

    body = client.get("/api/cart", params={"state": "Kerala"}, headers=as_user(buyer)).json()

    assert body["data"]["summary"]["shippingCharges"] == 800.0


def test_domain_errors_use_the_envelope(client, buyer):
    response = client.put("/api/cart/update/999", json={"quantity": 1}, headers=as_user(buyer))

    assert response.status_code == 404
    assert response.json() == {
        "success": False,
        "message": "Cart item not found",
        "error": "CART_ITEM_NOT_FOUND",
    }


def test_request_validation_errors_are_400(client):
    response = client.post("/api/cart/add", json={"productId": 0})

    assert response.status_code == 400
    body = response.json()
    assert body["error"] == "VALIDATION_ERROR"
    assert body["data"][0]["field"] == "productId"


def test_not_enough_stock_is_400(client, make_product):
    product = make_product(quantity=1)

    response = client.post("/api/cart/add", json={"productId": product.id, "quantity": 5})

    assert response.status_code == 400
    assert response.json()["error"] == "NOT_ENOUGH_STOCK"


def test_checkout_requires_authentication(client):
    response = client.post("/api/cart/checkout", json={})

    assert response.status_code == 401
    assert response.json()["error"] == "AUTHENTICATION_REQUIRED"


def test_checkout_validation_failure_carries_data(db, client, make_product, buyer):
    product = make_product(quantity=5)
    client.post("/api/cart/add", json={"productId": product.id, "quantity": 3}, headers=as_user(buyer))
    product.status = "inactive"
    db.commit()

    response = client.post("/api/cart/checkout", json={}, headers=as_user(buyer))

    assert response.status_code == 400
    body = response.json()
    assert body["error"] == "CART_VALIDATION_FAILED"
    assert body["data"]["summary"]["unavailableItems"] == 1
    assert body["data"]["items"][0]["reason"] == "PRODUCT_INACTIVE"


def test_checkout_session_over_http(client, make_product, buyer, zones):
    product = make_product(price="1000")
    client.post("/api/cart/add", json={"productId": product.id}, headers=as_user(buyer))

    response = client.post(
        "/api/cart/checkout",
        json={"shippingAddress": {"state": "Delhi", "city": "New Delhi", "pincode": "110001"}},
        headers=as_user(buyer),
    )

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["expiresIn"] == 1800
    assert data["summary"]["finalPayableAmount"] == 1680.0

    session = client.get(f"/api/cart/checkout/{data['sessionToken']}", headers=as_user(buyer)).json()
    assert session["data"]["status"] == "pending"
    assert session["data"]["finalAmount"] == 1680.0


def test_shipping_estimate_requires_state(client):
    response = client.get("/api/cart/shipping-estimate")

    assert response.status_code == 400
    assert response.json()["error"] == "STATE_REQUIRED"


def test_shipping_estimate_with_order_value(client, zones):
    response = client.get("/api/cart/shipping-estimate", params={"state": "Delhi", "orderValue": 60000})

    data = response.json()["data"]
    assert data["available"] is True
    assert data["isFreeShipping"] is True
    assert data["estimatedDelivery"]["minDays"] == 2


def test_apply_coupon_over_http(client, make_product, make_coupon, buyer):
    make_coupon("SAVE10")
    product = make_product(price="1000")
    client.post("/api/cart/add", json={"productId": product.id}, headers=as_user(buyer))

    response = client.post("/api/cart/apply-coupon", json={"couponCode": "save10"}, headers=as_user(buyer))

    assert response.status_code == 200
    assert response.json()["data"]["discountAmount"] == 100.0
    cart = client.get("/api/cart", headers=as_user(buyer)).json()["data"]
    assert cart["coupon"]["code"] == "SAVE10"
    assert cart["summary"]["couponDiscount"] == 100.0


def test_min_order_error_carries_required_amount(client, make_product, make_coupon, buyer):
    make_coupon("BIG", min_order_value="50000")
    client.post("/api/cart/add", json={"productId": make_product().id}, headers=as_user(buyer))

    response = client.post("/api/cart/apply-coupon", json={"couponCode": "BIG"}, headers=as_user(buyer))

    assert response.status_code == 400
    assert response.json()["error"] == "MIN_ORDER_NOT_MET"
    assert response.json()["data"] == {"requiredAmount": 50000.0}


def test_merge_moves_guest_cart_and_clears_cookie(client, make_product, buyer):
    product = make_product()
    client.post("/api/cart/add", json={"productId": product.id, "quantity": 2})

    response = client.post("/api/cart/merge", headers=as_user(buyer))

    assert response.status_code == 200
    assert response.json()["data"] == {"mergedItems": 1, "updatedItems": 0}
    assert "Max-Age=0" in response.headers["set-cookie"]

    cart = client.get("/api/cart", headers=as_user(buyer)).json()["data"]
    assert cart["items"][0]["quantity"] == 2


def test_merge_without_guest_session(client, buyer):
    response = client.post("/api/cart/merge", headers=as_user(buyer))

    assert response.status_code == 400
    assert response.json()["error"] == "USER_OR_SESSION_REQUIRED"


def test_busy_cart_is_409(client, make_product, lock_service, buyer):
    lock_service.held.add(f"cart:user:{buyer.id}:lock")

    response = client.post("/api/cart/add", json={"productId": make_product().id}, headers=as_user(buyer))

    assert response.status_code == 409
    assert response.json()["error"] == "CART_BUSY"


def test_coupon_endpoints(client, make_coupon, buyer):
    make_coupon("SAVE10", value="10", description="10% off")

    listed = client.get("/api/coupons").json()["data"]
    assert [c["code"] for c in listed] == ["SAVE10"]
    assert listed[0]["discountValue"] == 10.0

    valid = client.post("/api/coupons/validate", json={"couponCode": "SAVE10", "orderValue": 2000}).json()
    assert valid["success"] is True
    assert valid["data"]["discountAmount"] == 200.0

    invalid = client.post("/api/coupons/validate", json={"couponCode": "NOPE", "orderValue": 2000})
    assert invalid.status_code == 200
    assert invalid.json()["success"] is False
    assert invalid.json()["data"]["error"] == "INVALID_COUPON"

    eligibility = client.get("/api/coupons/SAVE10/eligibility", headers=as_user(buyer)).json()
    assert eligibility["data"]["eligible"] is True


def test_rfq_and_quote_flow(client, buyer, supplier, notifications):
    created = client.post(
        "/api/rfqs",
        json={"title": "Need 50 industrial valves", "quantity": 50, "unit": "pcs", "budgetMin": 1000, "budgetMax": 5000},
        headers=as_user(buyer),
    )
    assert created.status_code == 201
    rfq = created.json()["data"]
    assert rfq["status"] == "active"
    assert rfq["durationDays"] == 7

    listed = client.get("/api/supplier/rfqs", headers=as_user(supplier)).json()["data"]
    assert [(r["id"], r["hasQuoted"]) for r in listed["rfqs"]] == [(rfq["id"], False)]
    assert listed["pagination"]["totalPages"] == 1

    submitted = client.post(
        f"/api/supplier/rfqs/{rfq['id']}/quotes",
        json={
            "quotePrice": 4200,
            "deliveryDays": 10,
            "validUntil": (today() + timedelta(days=14)).isoformat(),
            "notes": "Ex-stock",
        },
        headers=as_user(supplier),
    )
    assert submitted.status_code == 201
    quote = submitted.json()["data"]
    assert quote["quotePrice"] == 4200.0

    duplicate = client.post(
        f"/api/supplier/rfqs/{rfq['id']}/quotes",
        json={"quotePrice": 4000, "deliveryDays": 5, "validUntil": (today() + timedelta(days=3)).isoformat()},
        headers=as_user(supplier),
    )
    assert duplicate.status_code == 400
    assert duplicate.json()["error"] == "DUPLICATE_QUOTE"

    quotes = client.get(f"/api/rfqs/{rfq['id']}/quotes", headers=as_user(buyer)).json()["data"]
    assert quotes[0]["supplier"]["companyName"] == "Acme Surplus"

    accepted = client.put(f"/api/quotes/{quote['id']}/accept", json={"fulfillRfq": True}, headers=as_user(buyer))
    assert accepted.status_code == 200
    assert accepted.json()["data"]["status"] == "accepted"

    detail = client.get(f"/api/supplier/rfqs/{rfq['id']}", headers=as_user(supplier)).json()["data"]
    assert detail["status"] == "fulfilled"
    assert detail["hasQuoted"] is True
    assert detail["myQuote"]["status"] == "accepted"

    mine = client.get("/api/supplier/quotes", params={"status": "accepted"}, headers=as_user(supplier)).json()["data"]
    assert [q["rfq"]["rfqNumber"] for q in mine] == [rfq["rfqNumber"]]

    assert [kind for kind, *_ in notifications.sent] == ["submitted", "accepted"]


def test_quote_actions_require_owner(client, make_rfq, quote_service, buyer, supplier, make_user):
    rfq = make_rfq(buyer.id)
    quote = quote_service.submit_quote(rfq["id"], supplier.id, 100, 3, today())
    other = make_user("Other")

    response = client.put(f"/api/quotes/{quote['id']}/reject", json={"reason": "no"}, headers=as_user(other))

    assert response.status_code == 404
    assert response.json()["error"] == "QUOTE_NOT_FOUND"
