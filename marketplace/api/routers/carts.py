# marketplace/api/routers/carts.py
from decimal import Decimal

from fastapi import APIRouter, Depends, Query, Response

from marketplace.api.deps import (
    CART_SESSION_COOKIE,
    get_cart_service,
    get_cart_session_token,
    get_checkout_service,
    get_identity,
    require_user_id,
)
from marketplace.domain.cart import CartIdentity
from marketplace.domain.errors import BusinessRuleError
from marketplace.domain.schemas import (
    AddItemIn,
    AddItemOut,
    ApiResponse,
    AppliedCouponOut,
    ApplyCouponIn,
    CartCountOut,
    CartItemOut,
    CartOut,
    CheckoutIn,
    CheckoutSessionDetailOut,
    CheckoutSessionOut,
    MergeOut,
    ShippingEstimateOut,
    StockValidationOut,
    UpdateQuantityIn,
)
from marketplace.services.cart_service import CartService
from marketplace.services.checkout_service import CheckoutService
from marketplace.services.pricing_service import ShippingInfo
from marketplace.utils.settings import COOKIE_SECURE, GUEST_CART_TTL_DAYS

router = APIRouter(prefix="/api/cart", tags=["cart"])


@router.post("/add", response_model=ApiResponse[AddItemOut])
def add_item(
    payload: AddItemIn,
    response: Response,
    identity: CartIdentity = Depends(get_identity),
    svc: CartService = Depends(get_cart_service),
):
    result = svc.add_item(identity, payload.product_id, payload.quantity)

    # nowy koszyk goscia: token do cookie (i w body dla klientow bez cookies)
    if result["session_token"]:
        response.set_cookie(
            CART_SESSION_COOKIE,
            result["session_token"],
            max_age=GUEST_CART_TTL_DAYS * 24 * 60 * 60,
            httponly=True,
            secure=COOKIE_SECURE,
            samesite="lax",
        )

    return {"success": True, "message": "Item added to cart", "data": result}


@router.get("", response_model=ApiResponse[CartOut])
def get_cart(
    state: str | None = Query(None),
    city: str | None = Query(None),
    pincode: str | None = Query(None),
    identity: CartIdentity = Depends(get_identity),
    svc: CartService = Depends(get_cart_service),
):
    shipping_info = ShippingInfo(state=state, city=city, pincode=pincode) if state else None
    return {"success": True, "data": svc.get_cart(identity, shipping_info)}


@router.get("/count", response_model=ApiResponse[CartCountOut])
def get_cart_count(
    identity: CartIdentity = Depends(get_identity),
    svc: CartService = Depends(get_cart_service),
):
    return {"success": True, "data": {"count": svc.get_cart_count(identity)}}


@router.put("/update/{item_id}", response_model=ApiResponse[CartItemOut])
def update_item(
    item_id: int,
    payload: UpdateQuantityIn,
    identity: CartIdentity = Depends(get_identity),
    svc: CartService = Depends(get_cart_service),
):
    item = svc.update_item_quantity(identity, item_id, payload.quantity)
    return {"success": True, "message": "Cart updated", "data": item}


@router.delete("/remove/{item_id}", response_model=ApiResponse)
def remove_item(
    item_id: int,
    identity: CartIdentity = Depends(get_identity),
    svc: CartService = Depends(get_cart_service),
):
    svc.remove_item(identity, item_id)
    return {"success": True, "message": "Item removed from cart"}


@router.delete("/clear", response_model=ApiResponse)
def clear_cart(
    identity: CartIdentity = Depends(get_identity),
    svc: CartService = Depends(get_cart_service),
):
    svc.clear_cart(identity)
    return {"success": True, "message": "Cart cleared"}


@router.post("/apply-coupon", response_model=ApiResponse[AppliedCouponOut])
def apply_coupon(
    payload: ApplyCouponIn,
    identity: CartIdentity = Depends(get_identity),
    svc: CartService = Depends(get_cart_service),
):
    result = svc.validate_and_apply_coupon(identity, payload.coupon_code)
    return {"success": True, "message": result["message"], "data": result}


@router.post("/remove-coupon", response_model=ApiResponse)
def remove_coupon(
    identity: CartIdentity = Depends(get_identity),
    svc: CartService = Depends(get_cart_service),
):
    svc.remove_coupon(identity)
    return {"success": True, "message": "Coupon removed"}


@router.get("/validate", response_model=ApiResponse[StockValidationOut])
def validate_cart(
    identity: CartIdentity = Depends(get_identity),
    svc: CartService = Depends(get_cart_service),
):
    return {"success": True, "data": svc.validate_cart(identity)}


@router.get("/shipping-estimate", response_model=ApiResponse[ShippingEstimateOut])
def shipping_estimate(
    state: str | None = Query(None),
    city: str | None = Query(None),
    pincode: str | None = Query(None),
    order_value: Decimal | None = Query(None, alias="orderValue", ge=0),
    identity: CartIdentity = Depends(get_identity),
    svc: CartService = Depends(get_cart_service),
):
    return {"success": True, "data": svc.estimate_shipping(identity, state, city, pincode, order_value)}


@router.post("/checkout", response_model=ApiResponse[CheckoutSessionOut])
def create_checkout_session(
    payload: CheckoutIn | None = None,
    user_id: int = Depends(require_user_id),
    svc: CheckoutService = Depends(get_checkout_service),
):
    address = payload.shipping_address.model_dump() if payload and payload.shipping_address else {}
    session = svc.create_session(user_id, address)
    return {"success": True, "message": "Checkout session created", "data": session}


@router.get("/checkout/{session_token}", response_model=ApiResponse[CheckoutSessionDetailOut])
def get_checkout_session(
    session_token: str,
    user_id: int = Depends(require_user_id),
    svc: CheckoutService = Depends(get_checkout_service),
):
    return {"success": True, "data": svc.get_session(session_token, user_id)}


@router.post("/merge", response_model=ApiResponse[MergeOut])
def merge_cart(
    response: Response,
    user_id: int = Depends(require_user_id),
    session_token: str | None = Depends(get_cart_session_token),
    svc: CartService = Depends(get_cart_service),
):
    if not session_token:
        raise BusinessRuleError("USER_OR_SESSION_REQUIRED", "No guest cart to merge")

    result = svc.merge_guest_cart(session_token, user_id)
    response.delete_cookie(CART_SESSION_COOKIE)
    return {"success": True, "message": "Cart merged", "data": result}
