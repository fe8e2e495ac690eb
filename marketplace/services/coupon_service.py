# marketplace/services/coupon_service.py
from decimal import Decimal
from typing import Any, Dict, Iterable

from sqlalchemy.orm import Session

from marketplace.data.models.coupon import CouponModel, CouponUsageModel
from marketplace.domain.cart import CartLine
from marketplace.domain.errors import MESSAGES
from marketplace.repos.coupon_repo import CouponRepo
from marketplace.utils.dates import utcnow, as_utc
from marketplace.utils.money import ZERO, to_decimal, round_money
from marketplace.utils.logging import get_logger

logger = get_logger(__name__)


def _failure(code: str, message: str | None = None, **extra) -> Dict[str, Any]:
    result = {"valid": False, "error": code, "message": message or MESSAGES[code]}
    result.update(extra)
    return result


def calculate_discount(coupon: CouponModel, order_value: Decimal) -> Decimal:
    """
    percentage: order_value * value / 100, z limitem max_discount
    flat: value
    wynik zawsze w [0, order_value]
    """
    order_value = to_decimal(order_value)
    value = to_decimal(coupon.discount_value)

    if coupon.discount_type == "percentage":
        discount = order_value * value / Decimal("100")
        if coupon.max_discount is not None:
            discount = min(discount, to_decimal(coupon.max_discount))
    elif coupon.discount_type == "flat":
        discount = value
    else:
        discount = ZERO

    return max(ZERO, min(discount, order_value))


def is_applicable(coupon: CouponModel, cart_items: Iterable[CartLine]) -> bool:
    applicable_products = coupon.applicable_products or []
    applicable_categories = coupon.applicable_categories or []
    excluded_products = coupon.excluded_products or []

    # brak allow-listy = kupon na wszystko
    if not applicable_products and not applicable_categories:
        return True

    for item in cart_items:
        if item.product_id in excluded_products:
            continue
        if item.product_id in applicable_products:
            return True
        if item.category_id is not None and item.category_id in applicable_categories:
            return True
    return False


class CouponService:
    """
    Walidacja kuponu nic nie zuzywa, record_usage to osobny krok po checkoucie.
    """

    def __init__(self, db: Session):
        self.repo = CouponRepo(db)

    def validate_and_calculate(
        self,
        code: str,
        user_id: int | None,
        order_value,
        cart_items: Iterable[CartLine] = (),
    ) -> Dict[str, Any]:
        order_value = to_decimal(order_value)
        cart_items = list(cart_items)

        if not code:
            return _failure("INVALID_COUPON")

        coupon = self.repo.get_active_by_code(code)
        if not coupon:
            return _failure("INVALID_COUPON")

        now = utcnow()
        if now < as_utc(coupon.valid_from):
            return _failure("COUPON_NOT_STARTED")

        if now > as_utc(coupon.valid_until):
            return _failure("COUPON_EXPIRED")

        min_order = to_decimal(coupon.min_order_value)
        if order_value < min_order:
            return _failure(
                "MIN_ORDER_NOT_MET",
                f"Minimum order value of ₹{min_order:,.2f} required",
                required_amount=min_order,
            )

        if coupon.total_usage_limit and coupon.current_usage_count >= coupon.total_usage_limit:
            return _failure("COUPON_USAGE_LIMIT_REACHED")

        if user_id is not None:
            used = self.repo.count_user_usage(coupon.id, user_id)
            if used >= coupon.max_usage_per_user:
                return _failure("USER_USAGE_LIMIT_REACHED")

        if cart_items and not is_applicable(coupon, cart_items):
            return _failure("COUPON_NOT_APPLICABLE")

        discount = round_money(calculate_discount(coupon, order_value))

        return {
            "valid": True,
            "coupon": self._coupon_summary(coupon),
            "discount_amount": discount,
            "message": f"Coupon applied! You saved ₹{discount:,.2f}",
        }

    def record_usage(
        self,
        coupon_id: int,
        user_id: int,
        discount_applied,
        order_value,
        order_id: str | None = None,
    ) -> CouponUsageModel:
        usage = self.repo.add_usage(
            CouponUsageModel(
                coupon_id=coupon_id,
                user_id=user_id,
                order_id=order_id,
                discount_applied=round_money(discount_applied),
                order_value=round_money(order_value),
            )
        )
        self.repo.increment_usage(coupon_id)
        self.repo.commit()

        logger.info(f"Coupon {coupon_id} used by user {user_id} (order {order_id})")
        return usage

    def get_active_coupons(self, user_role: str | None = None) -> list[Dict[str, Any]]:
        coupons = self.repo.list_active_visible(utcnow(), user_role)
        return [
            {
                "code": c.code,
                "description": c.description,
                "discount_type": c.discount_type,
                "discount_value": to_decimal(c.discount_value),
                "max_discount": to_decimal(c.max_discount) if c.max_discount is not None else None,
                "min_order_value": to_decimal(c.min_order_value),
                "valid_until": c.valid_until,
            }
            for c in coupons
        ]

    def check_user_eligibility(self, code: str, user_id: int) -> Dict[str, Any]:
        coupon = self.repo.get_active_by_code(code)
        if not coupon:
            return {"eligible": False, "reason": "Coupon not found"}

        used = self.repo.count_user_usage(coupon.id, user_id)
        if used >= coupon.max_usage_per_user:
            return {
                "eligible": False,
                "reason": f"You can only use this coupon {coupon.max_usage_per_user} time(s)",
                "used_count": used,
                "max_allowed": coupon.max_usage_per_user,
            }

        return {
            "eligible": True,
            "used_count": used,
            "remaining_uses": coupon.max_usage_per_user - used,
        }

    @staticmethod
    def _coupon_summary(coupon: CouponModel) -> Dict[str, Any]:
        return {
            "id": coupon.id,
            "code": coupon.code,
            "description": coupon.description,
            "discount_type": coupon.discount_type,
            "discount_value": to_decimal(coupon.discount_value),
        }
