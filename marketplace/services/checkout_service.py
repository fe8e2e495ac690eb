# marketplace/services/checkout_service.py
import secrets
from datetime import timedelta
from typing import Any, Dict

from sqlalchemy.orm import Session

from marketplace.data.models.checkout_session import CheckoutSessionModel
from marketplace.domain.cart import CartIdentity
from marketplace.domain.errors import (
    AuthenticationRequiredError, BusinessRuleError, NotFoundError,
)
from marketplace.repos.checkout_repo import CheckoutRepo
from marketplace.services.cart_service import CartService
from marketplace.services.pricing_service import ShippingInfo
from marketplace.utils.dates import utcnow, as_utc
from marketplace.utils.settings import CHECKOUT_SESSION_TTL_SECONDS
from marketplace.utils.logging import get_logger

logger = get_logger(__name__)


def _snapshot_value(value):
    # JSON kolumna: Decimal -> str, datetime -> iso
    if isinstance(value, dict):
        return {k: _snapshot_value(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_snapshot_value(v) for v in value]
    if hasattr(value, "isoformat"):
        return value.isoformat()
    if value is not None and not isinstance(value, (bool, int, float, str)):
        return str(value)
    return value


class CheckoutService:
    """
    Sesja checkout = zamrozony snapshot koszyka + wyliczone ceny, wazna 30 min.
    Koszyk zostaje w bazie, zamowienie powstaje dopiero z sesji.
    """

    def __init__(self, db: Session, cart_service: CartService):
        self.repo = CheckoutRepo(db)
        self.cart_service = cart_service

    def create_session(self, user_id: int | None, shipping_address: Dict[str, Any] | None = None) -> Dict[str, Any]:
        if user_id is None:
            raise AuthenticationRequiredError("Please login to checkout")

        shipping_address = shipping_address or {}
        identity = CartIdentity(user_id=user_id)

        owner, lines = self.cart_service.get_cart_lines(identity)
        if not lines:
            raise BusinessRuleError("CART_EMPTY")

        validation = self.cart_service.pricing.validate_stock(lines)
        if not validation["valid"]:
            raise BusinessRuleError("CART_VALIDATION_FAILED", data=validation)

        if any(line.is_negotiable for line in lines):
            raise BusinessRuleError("NEGOTIATION_REQUIRED")

        shipping_info = ShippingInfo(
            state=shipping_address.get("state"),
            city=shipping_address.get("city"),
            pincode=shipping_address.get("pincode"),
        )
        coupon_code = owner.coupon_code if owner is not None else None
        summary = self.cart_service.pricing.calculate_cart_summary(lines, coupon_code, user_id, shipping_info)

        now = utcnow()
        session = self.repo.create_session(
            CheckoutSessionModel(
                session_token=secrets.token_hex(32),
                user_id=user_id,
                cart_snapshot=_snapshot_value({
                    "items": [line.to_dict() for line in lines],
                    "coupon": summary["coupon_details"],
                }),
                item_subtotal=summary["item_subtotal"],
                discount_amount=summary["discount_amount"],
                coupon_discount=summary["coupon_discount"],
                gst_amount=summary["gst_amount"],
                shipping_charges=summary["shipping_charges"],
                platform_fee=summary["platform_fee"],
                final_amount=summary["final_payable_amount"],
                shipping_city=shipping_info.city,
                shipping_pincode=shipping_info.pincode,
                shipping_address=shipping_address.get("address"),
                coupon_code=coupon_code if summary["coupon_details"] else None,
                status="pending",
                created_at=now,
                expires_at=now + timedelta(seconds=CHECKOUT_SESSION_TTL_SECONDS),
            )
        )

        logger.info(
            f"Checkout session {session.id} created for user {user_id}, "
            f"amount {summary['final_payable_amount']}"
        )

        return {
            "session_token": session.session_token,
            "session_id": session.id,
            "summary": summary,
            "expires_at": session.expires_at,
            "expires_in": CHECKOUT_SESSION_TTL_SECONDS,
        }

    def get_session(self, session_token: str, user_id: int) -> Dict[str, Any]:
        session = self.repo.get_session(session_token)
        if not session or session.user_id != user_id:
            raise NotFoundError("CHECKOUT_SESSION_NOT_FOUND")

        status = session.status
        if status == "pending" and as_utc(session.expires_at) <= utcnow():
            status = "expired"

        return {
            "session_token": session.session_token,
            "session_id": session.id,
            "status": status,
            "cart_snapshot": session.cart_snapshot,
            "item_subtotal": session.item_subtotal,
            "discount_amount": session.discount_amount,
            "coupon_discount": session.coupon_discount,
            "gst_amount": session.gst_amount,
            "shipping_charges": session.shipping_charges,
            "platform_fee": session.platform_fee,
            "final_amount": session.final_amount,
            "coupon_code": session.coupon_code,
            "expires_at": session.expires_at,
        }
