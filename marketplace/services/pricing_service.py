# marketplace/services/pricing_service.py
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, List, Sequence

from sqlalchemy.orm import Session

from marketplace.domain.cart import CartLine
from marketplace.repos.product_repo import ProductRepo
from marketplace.repos.shipping_repo import ShippingRepo
from marketplace.services.coupon_service import CouponService
from marketplace.utils.money import ZERO, to_decimal, round_money
from marketplace.utils.settings import DEFAULT_SHIPPING_CHARGE, DEFAULT_GST_PERCENT, GST_MODE
from marketplace.utils.logging import get_logger

logger = get_logger(__name__)

HUNDRED = Decimal("100")


@dataclass(frozen=True)
class ShippingInfo:
    state: str | None = None
    city: str | None = None
    pincode: str | None = None


def empty_summary() -> Dict[str, Any]:
    return {
        "item_subtotal": ZERO,
        "discount_amount": ZERO,
        "coupon_discount": ZERO,
        "coupon_details": None,
        "coupon_error": None,
        "subtotal_after_discounts": ZERO,
        "gst_amount": ZERO,
        "shipping_charges": ZERO,
        "platform_fee": ZERO,
        "final_payable_amount": ZERO,
        "items_breakdown": [],
        "total_savings": ZERO,
    }


def calculate_savings(summary: Dict[str, Any]) -> Dict[str, Any]:
    item_subtotal = to_decimal(summary["item_subtotal"])
    total_savings = to_decimal(summary["total_savings"])
    percent = round_money(total_savings / item_subtotal * HUNDRED) if item_subtotal > 0 else ZERO
    return {
        "item_discounts": summary["discount_amount"],
        "coupon_discount": summary["coupon_discount"],
        "total_savings": summary["total_savings"],
        "savings_percent": percent,
    }


def _gst_rate(item: CartLine) -> Decimal:
    return to_decimal(item.gst_percent) if item.gst_percent is not None else DEFAULT_GST_PERCENT


class PricingService:
    """
    subtotal -> rabat pozycji -> kupon -> GST -> wysylka -> oplata platformy -> do zaplaty.
    Liczymy na Decimal bez zaokraglen po drodze, zaokraglamy kazdy skladnik raz na wyjsciu.
    """

    def __init__(self, db: Session, coupon_service: CouponService | None = None, gst_mode: str = GST_MODE):
        self.coupon_service = coupon_service or CouponService(db)
        self.product_repo = ProductRepo(db)
        self.shipping_repo = ShippingRepo(db)
        self.gst_mode = gst_mode

    def calculate_cart_summary(
        self,
        cart_items: Sequence[CartLine],
        coupon_code: str | None = None,
        user_id: int | None = None,
        shipping_info: ShippingInfo | None = None,
    ) -> Dict[str, Any]:
        if not cart_items:
            return empty_summary()

        # 1. subtotal po rabatach pozycji
        item_subtotal = ZERO
        total_discount = ZERO
        lines = []

        for item in cart_items:
            price = to_decimal(item.price if item.price is not None else item.original_price)
            item_total = price * item.quantity
            item_discount = item_total * to_decimal(item.discount_percent) / HUNDRED
            line_subtotal = item_total - item_discount

            item_subtotal += line_subtotal
            total_discount += item_discount
            lines.append((item, price, item_discount, line_subtotal))

        # 2. kupon
        coupon_discount = ZERO
        coupon_details = None
        coupon_error = None

        if coupon_code and item_subtotal > 0:
            result = self.coupon_service.validate_and_calculate(coupon_code, user_id, item_subtotal, cart_items)
            if result["valid"]:
                coupon_discount = to_decimal(result["discount_amount"])
                coupon_details = result["coupon"]
            else:
                # niewazny kupon nie blokuje koszyka, po prostu nie dziala
                coupon_error = result["error"]
                logger.info(f"Applied coupon {coupon_code} ignored: {coupon_error}")

        # 3. po kuponie
        subtotal_after_coupon = max(ZERO, item_subtotal - coupon_discount)

        # 4. GST
        line_gst = self._gst_per_line(lines, item_subtotal, subtotal_after_coupon)
        if self.gst_mode == "weighted_average":
            gst_amount = self.calculate_weighted_gst(cart_items, subtotal_after_coupon)
        else:
            gst_amount = sum(line_gst, ZERO)

        # 5. wysylka
        shipping = self.calculate_shipping(subtotal_after_coupon, shipping_info)

        # 6. oplata platformy
        platform_fee = self.calculate_platform_fee(subtotal_after_coupon)

        # 7. kazdy skladnik zaokraglony osobno, potem suma
        rounded_subtotal = round_money(subtotal_after_coupon)
        rounded_gst = round_money(gst_amount)
        rounded_shipping = round_money(shipping)
        rounded_fee = round_money(platform_fee)
        final = rounded_subtotal + rounded_gst + rounded_shipping + rounded_fee

        breakdown = [
            {
                "item_id": item.item_id,
                "product_id": item.product_id,
                "title": item.title,
                "quantity": item.quantity,
                "unit_price": round_money(price),
                "gst_percent": _gst_rate(item),
                "discount": round_money(item_discount),
                "subtotal": round_money(line_subtotal),
                "gst_amount": round_money(gst),
            }
            for (item, price, item_discount, line_subtotal), gst in zip(lines, line_gst)
        ]

        return {
            "item_subtotal": round_money(item_subtotal),
            "discount_amount": round_money(total_discount),
            "coupon_discount": round_money(coupon_discount),
            "coupon_details": coupon_details,
            "coupon_error": coupon_error,
            "subtotal_after_discounts": rounded_subtotal,
            "gst_amount": rounded_gst,
            "shipping_charges": rounded_shipping,
            "platform_fee": rounded_fee,
            "final_payable_amount": final,
            "items_breakdown": breakdown,
            "total_savings": round_money(total_discount + coupon_discount),
        }

    @staticmethod
    def _gst_per_line(lines, item_subtotal: Decimal, subtotal_after_coupon: Decimal) -> List[Decimal]:
        """
        Kupon rozkladamy proporcjonalnie na pozycje, kazda czesc opodatkowana wlasna stawka.
        """
        if item_subtotal <= 0:
            return [ZERO for _ in lines]

        ratio = subtotal_after_coupon / item_subtotal
        return [
            line_subtotal * ratio * _gst_rate(item) / HUNDRED
            for item, _price, _discount, line_subtotal in lines
        ]

    @staticmethod
    def calculate_weighted_gst(cart_items: Sequence[CartLine], subtotal_after_discounts: Decimal) -> Decimal:
        """Jedna srednia stawka wazona wartoscia pozycji (przed rabatami), naliczona od calosci."""
        if not cart_items:
            return ZERO

        total_weight = ZERO
        weighted = ZERO
        for item in cart_items:
            price = to_decimal(item.price if item.price is not None else item.original_price)
            item_value = price * item.quantity
            total_weight += item_value
            weighted += item_value * _gst_rate(item)

        avg_rate = weighted / total_weight if total_weight > 0 else DEFAULT_GST_PERCENT
        return to_decimal(subtotal_after_discounts) * avg_rate / HUNDRED

    def calculate_shipping(self, subtotal, shipping_info: ShippingInfo | None = None) -> Decimal:
        if not shipping_info or not shipping_info.state:
            return DEFAULT_SHIPPING_CHARGE

        zone = self.shipping_repo.find_zone_for_state(shipping_info.state)
        if not zone:
            return DEFAULT_SHIPPING_CHARGE

        threshold = zone.free_shipping_threshold
        if threshold is not None and to_decimal(subtotal) >= to_decimal(threshold):
            return ZERO

        return to_decimal(zone.base_charge)

    @staticmethod
    def calculate_platform_fee(subtotal) -> Decimal:
        # B2B: na razie bez oplaty platformy
        return ZERO

    def estimate_shipping(
        self,
        state: str,
        city: str | None = None,
        pincode: str | None = None,
        order_value=0,
    ) -> Dict[str, Any]:
        zone = self.shipping_repo.find_zone_for_state(state)

        if not zone:
            return {
                "available": False,
                "message": "Shipping not available for this location",
                "charges": None,
            }

        base = to_decimal(zone.base_charge)
        threshold = to_decimal(zone.free_shipping_threshold) if zone.free_shipping_threshold is not None else None
        is_free = threshold is not None and to_decimal(order_value) >= threshold

        return {
            "available": True,
            "zone": zone.zone_name,
            "base_charges": base,
            "charges": ZERO if is_free else base,
            "is_free_shipping": is_free,
            "free_shipping_threshold": threshold,
            "estimated_delivery": {
                "min_days": zone.estimated_days_min,
                "max_days": zone.estimated_days_max,
                "message": f"Delivery in {zone.estimated_days_min}-{zone.estimated_days_max} business days",
            },
        }

    def validate_stock(self, cart_items: Sequence[CartLine]) -> Dict[str, Any]:
        products = self.product_repo.get_products(i.product_id for i in cart_items)
        results = []

        for item in cart_items:
            product = products.get(item.product_id)
            base = {"item_id": item.item_id, "product_id": item.product_id}

            if product is None:
                results.append({
                    **base,
                    "available": False,
                    "reason": "PRODUCT_NOT_FOUND",
                    "message": "Product no longer available",
                })
                continue

            if product.status != "active":
                results.append({
                    **base,
                    "available": False,
                    "reason": "PRODUCT_INACTIVE",
                    "message": "Product is no longer active",
                })
                continue

            if product.quantity < item.quantity:
                results.append({
                    **base,
                    "available": False,
                    "reason": "INSUFFICIENT_STOCK",
                    "message": f"Only {product.quantity} units available",
                    "requested_quantity": item.quantity,
                    "available_quantity": product.quantity,
                })
                continue

            old_price = to_decimal(item.original_price)
            new_price = to_decimal(product.price_after)
            price_changed = new_price != old_price
            price_details = None
            if price_changed:
                diff = new_price - old_price
                price_details = {
                    "old_price": old_price,
                    "new_price": new_price,
                    "difference": diff,
                    "change_percent": round_money(diff / old_price * HUNDRED) if old_price > 0 else ZERO,
                }

            results.append({
                **base,
                "available": True,
                "stock_available": product.quantity,
                "price_changed": price_changed,
                "price_details": price_details,
            })

        available = [r for r in results if r["available"]]
        return {
            "valid": len(available) == len(results),
            "items": results,
            "summary": {
                "total_items": len(cart_items),
                "available_items": len(available),
                "unavailable_items": len(results) - len(available),
                "price_changed_items": sum(1 for r in results if r.get("price_changed")),
            },
        }
