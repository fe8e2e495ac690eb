# marketplace/api/deps.py
from fastapi import Depends, Header, Request
from sqlalchemy.orm import Session

from marketplace.data.database import get_db
from marketplace.domain.cart import CartIdentity
from marketplace.domain.errors import AuthenticationRequiredError
from marketplace.services.cart_service import CartService
from marketplace.services.checkout_service import CheckoutService
from marketplace.services.coupon_service import CouponService
from marketplace.services.lock_service import LockService
from marketplace.services.notification_service import NotificationService
from marketplace.services.pricing_service import PricingService
from marketplace.services.quote_service import QuoteService
from marketplace.services.rfq_service import RFQService

CART_SESSION_COOKIE = "cart_session"


# tozsamosc ustawia zewnetrzny auth middleware (x-user-id)
def get_user_id(x_user_id: int | None = Header(default=None)) -> int | None:
    return x_user_id


def require_user_id(user_id: int | None = Depends(get_user_id)) -> int:
    if user_id is None:
        raise AuthenticationRequiredError()
    return user_id


def get_cart_session_token(
    request: Request,
    x_cart_session: str | None = Header(default=None),
) -> str | None:
    return request.cookies.get(CART_SESSION_COOKIE) or x_cart_session


def get_identity(
    user_id: int | None = Depends(get_user_id),
    session_token: str | None = Depends(get_cart_session_token),
) -> CartIdentity:
    return CartIdentity(user_id=user_id, session_token=session_token)


def get_lock_service() -> LockService:
    return LockService()


def get_notification_service() -> NotificationService:
    return NotificationService()


def get_cart_service(
    db: Session = Depends(get_db),
    lock_service: LockService = Depends(get_lock_service),
) -> CartService:
    return CartService(db=db, lock_service=lock_service)


def get_pricing_service(db: Session = Depends(get_db)) -> PricingService:
    return PricingService(db)


def get_checkout_service(
    db: Session = Depends(get_db),
    cart_service: CartService = Depends(get_cart_service),
) -> CheckoutService:
    return CheckoutService(db=db, cart_service=cart_service)


def get_coupon_service(db: Session = Depends(get_db)) -> CouponService:
    return CouponService(db)


def get_rfq_service(db: Session = Depends(get_db)) -> RFQService:
    return RFQService(db)


def get_quote_service(
    db: Session = Depends(get_db),
    notification_service: NotificationService = Depends(get_notification_service),
) -> QuoteService:
    return QuoteService(db=db, notification_service=notification_service)
