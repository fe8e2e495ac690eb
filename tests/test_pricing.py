from datetime import timedelta
from decimal import Decimal

import pytest

from marketplace.domain.cart import Availability, CartLine
from marketplace.services.pricing_service import (
    PricingService,
    ShippingInfo,
    calculate_savings,
    empty_summary,
)
from marketplace.utils.dates import utcnow


def line(product_id=1, price="1000", quantity=1, discount="0", gst="18", original=None, category_id=None):
    return CartLine(
        item_id=product_id,
        product_id=product_id,
        quantity=quantity,
        price=Decimal(price),
        original_price=Decimal(original or price),
        discount_percent=Decimal(discount),
        gst_percent=Decimal(gst),
        category_id=category_id,
        title=f"Product {product_id}",
        availability=Availability(current_stock=100),
    )


@pytest.fixture
def pricing(db):
    return PricingService(db)


def assert_components_add_up(summary):
    assert summary["final_payable_amount"] == (
        summary["subtotal_after_discounts"]
        + summary["gst_amount"]
        + summary["shipping_charges"]
        + summary["platform_fee"]
    )


def test_worked_example_with_flat_coupon(pricing, make_coupon):
    make_coupon("FLAT300", discount_type="flat", value="300")

    summary = pricing.calculate_cart_summary([line(quantity=2, discount="10")], "FLAT300")

    assert summary["item_subtotal"] == Decimal("1800.00")
    assert summary["discount_amount"] == Decimal("200.00")
    assert summary["coupon_discount"] == Decimal("300.00")
    assert summary["subtotal_after_discounts"] == Decimal("1500.00")
    assert summary["gst_amount"] == Decimal("270.00")
    assert summary["shipping_charges"] == Decimal("500.00")
    assert summary["platform_fee"] == Decimal("0.00")
    assert summary["final_payable_amount"] == Decimal("2270.00")
    assert summary["total_savings"] == Decimal("500.00")
    assert summary["coupon_details"]["code"] == "FLAT300"


def test_worked_example_with_zone_shipping(pricing, make_coupon, zones):
    make_coupon("FLAT300", discount_type="flat", value="300")

    summary = pricing.calculate_cart_summary(
        [line(quantity=2, discount="10")], "FLAT300", None, ShippingInfo(state="Karnataka")
    )

    assert summary["shipping_charges"] == Decimal("500.00")
    assert summary["final_payable_amount"] == Decimal("2270.00")


def test_breakdown_rows(pricing):
    summary = pricing.calculate_cart_summary([line(quantity=2, discount="10")])

    (row,) = summary["items_breakdown"]
    assert row["unit_price"] == Decimal("1000.00")
    assert row["discount"] == Decimal("200.00")
    assert row["subtotal"] == Decimal("1800.00")
    assert row["gst_percent"] == Decimal("18")
    assert row["gst_amount"] == Decimal("324.00")


def test_free_shipping_above_zone_threshold(pricing, zones):
    summary = pricing.calculate_cart_summary(
        [line(price="25000", quantity=2)], shipping_info=ShippingInfo(state="maharashtra")
    )

    assert summary["shipping_charges"] == Decimal("0.00")
    assert_components_add_up(summary)


def test_unknown_state_or_no_address_uses_default_shipping(pricing, zones):
    items = [line(price="100")]

    assert pricing.calculate_cart_summary(items, shipping_info=ShippingInfo(state="Atlantis"))["shipping_charges"] == Decimal("500.00")
    assert pricing.calculate_cart_summary(items)["shipping_charges"] == Decimal("500.00")


def test_zone_base_charge_below_threshold(pricing, zones):
    summary = pricing.calculate_cart_summary([line(price="100")], shipping_info=ShippingInfo(state="Kerala"))
    assert summary["shipping_charges"] == Decimal("800.00")


def test_per_line_gst_uses_each_line_rate(pricing):
    items = [
        line(1, price="1000", discount="50", gst="18"),
        line(2, price="1000", gst="5"),
    ]

    summary = pricing.calculate_cart_summary(items)

    # 500 * 18% + 1000 * 5%
    assert summary["gst_amount"] == Decimal("140.00")
    assert_components_add_up(summary)


def test_weighted_average_gst_mode(db):
    pricing = PricingService(db, gst_mode="weighted_average")
    items = [
        line(1, price="1000", discount="50", gst="18"),
        line(2, price="1000", gst="5"),
    ]

    summary = pricing.calculate_cart_summary(items)

    # (1000*18 + 1000*5) / 2000 = 11.5% od 1500
    assert summary["gst_amount"] == Decimal("172.50")


def test_both_gst_modes_agree_for_single_rate(db, make_coupon):
    make_coupon("FLAT300", discount_type="flat", value="300")
    items = [line(1, price="700", quantity=3, discount="5"), line(2, price="120", quantity=7)]

    per_line = PricingService(db).calculate_cart_summary(items, "FLAT300")
    weighted = PricingService(db, gst_mode="weighted_average").calculate_cart_summary(items, "FLAT300")

    assert per_line["gst_amount"] == weighted["gst_amount"]


def test_coupon_apportioned_before_gst(pricing, make_coupon):
    make_coupon("HALF", value="50")
    items = [line(1, price="1000", gst="18"), line(2, price="1000", gst="12")]

    summary = pricing.calculate_cart_summary(items, "HALF")

    assert summary["subtotal_after_discounts"] == Decimal("1000.00")
    # 500 * 18% + 500 * 12%
    assert summary["gst_amount"] == Decimal("150.00")


def test_rounding_happens_per_component(pricing):
    items = [line(1, price="333.33", gst="18"), line(2, price="0.05", quantity=3, gst="12")]

    summary = pricing.calculate_cart_summary(items)

    # 333.33*0.18 = 59.9994, 0.15*0.12 = 0.018 -> 60.02 po zaokragleniu sumy
    assert summary["gst_amount"] == Decimal("60.02")
    assert summary["final_payable_amount"] == Decimal("893.50")
    assert_components_add_up(summary)


def test_invalid_applied_coupon_is_ignored(pricing, make_coupon):
    now = utcnow()
    make_coupon("PAST", valid_from=now - timedelta(days=5), valid_until=now - timedelta(days=1))

    summary = pricing.calculate_cart_summary([line()], "PAST")

    assert summary["coupon_discount"] == Decimal("0.00")
    assert summary["coupon_details"] is None
    assert summary["coupon_error"] == "COUPON_EXPIRED"
    assert summary["final_payable_amount"] == Decimal("1680.00")


def test_coupon_cannot_make_subtotal_negative(pricing, make_coupon):
    make_coupon("HUGE", discount_type="flat", value="99999")

    summary = pricing.calculate_cart_summary([line(price="100")], "HUGE")

    assert summary["coupon_discount"] == Decimal("100.00")
    assert summary["subtotal_after_discounts"] == Decimal("0.00")
    assert summary["gst_amount"] == Decimal("0.00")
    assert summary["final_payable_amount"] == Decimal("500.00")


def test_empty_cart_gives_empty_summary(pricing):
    assert pricing.calculate_cart_summary([]) == empty_summary()
    assert empty_summary()["final_payable_amount"] == Decimal("0")


def test_savings(pricing, make_coupon):
    make_coupon("FLAT300", discount_type="flat", value="300")
    summary = pricing.calculate_cart_summary([line(quantity=2, discount="10")], "FLAT300")

    savings = calculate_savings(summary)

    assert savings["item_discounts"] == Decimal("200.00")
    assert savings["coupon_discount"] == Decimal("300.00")
    assert savings["total_savings"] == Decimal("500.00")
    assert savings["savings_percent"] == Decimal("27.78")


def test_estimate_shipping(pricing, zones):
    unknown = pricing.estimate_shipping("Atlantis")
    assert unknown == {
        "available": False,
        "message": "Shipping not available for this location",
        "charges": None,
    }

    paid = pricing.estimate_shipping("Delhi", order_value=1000)
    assert paid["available"] is True
    assert paid["zone"] == "Metro Cities"
    assert paid["charges"] == Decimal("500")
    assert paid["is_free_shipping"] is False
    assert paid["estimated_delivery"]["min_days"] == 2
    assert paid["estimated_delivery"]["max_days"] == 4

    free = pricing.estimate_shipping("Delhi", order_value=50000)
    assert free["charges"] == Decimal("0")
    assert free["is_free_shipping"] is True


def test_validate_stock_classifies_items(db, pricing, make_product):
    gone = make_product()
    inactive = make_product(status="inactive")
    low = make_product(quantity=1)
    repriced = make_product(price="120")
    fine = make_product(price="100")
    gone_id = gone.id
    db.delete(gone)
    db.commit()

    result = pricing.validate_stock([
        line(gone_id),
        line(inactive.id),
        line(low.id, quantity=5),
        line(repriced.id, price="120", original="100"),
        line(fine.id, price="100"),
    ])

    assert result["valid"] is False
    reasons = [r.get("reason") for r in result["items"]]
    assert reasons == ["PRODUCT_NOT_FOUND", "PRODUCT_INACTIVE", "INSUFFICIENT_STOCK", None, None]

    drift = result["items"][3]["price_details"]
    assert drift == {
        "old_price": Decimal("100"),
        "new_price": Decimal("120.00"),
        "difference": Decimal("20.00"),
        "change_percent": Decimal("20.00"),
    }
    assert result["summary"] == {
        "total_items": 5,
        "available_items": 2,
        "unavailable_items": 3,
        "price_changed_items": 1,
    }


def test_validate_stock_all_available(pricing, make_product):
    product = make_product(quantity=3)
    result = pricing.validate_stock([line(product.id, quantity=3)])
    assert result["valid"] is True
    assert result["items"][0]["price_changed"] is False
