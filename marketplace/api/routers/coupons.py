# marketplace/api/routers/coupons.py
from typing import List

from fastapi import APIRouter, Depends, Query

from marketplace.api.deps import get_coupon_service, get_user_id, require_user_id
from marketplace.domain.schemas import (
    ApiResponse,
    CouponOut,
    CouponValidationOut,
    EligibilityOut,
    ValidateCouponIn,
)
from marketplace.services.coupon_service import CouponService

router = APIRouter(prefix="/api/coupons", tags=["coupons"])


@router.get("", response_model=ApiResponse[List[CouponOut]])
def list_coupons(
    role: str | None = Query(None),
    svc: CouponService = Depends(get_coupon_service),
):
    return {"success": True, "data": svc.get_active_coupons(role)}


@router.get("/{code}/eligibility", response_model=ApiResponse[EligibilityOut])
def coupon_eligibility(
    code: str,
    user_id: int = Depends(require_user_id),
    svc: CouponService = Depends(get_coupon_service),
):
    return {"success": True, "data": svc.check_user_eligibility(code, user_id)}


@router.post("/validate", response_model=ApiResponse[CouponValidationOut])
def validate_coupon(
    payload: ValidateCouponIn,
    user_id: int | None = Depends(get_user_id),
    svc: CouponService = Depends(get_coupon_service),
):
    # samo sprawdzenie, nic nie zuzywa
    result = svc.validate_and_calculate(payload.coupon_code, user_id, payload.order_value)
    return {"success": result["valid"], "message": result["message"], "data": result}
