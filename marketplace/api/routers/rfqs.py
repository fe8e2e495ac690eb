# marketplace/api/routers/rfqs.py
from typing import List

from fastapi import APIRouter, Depends, Query, status

from marketplace.api.deps import get_quote_service, get_rfq_service, require_user_id
from marketplace.domain.schemas import (
    ApiResponse,
    QuoteOut,
    QuoteSubmitIn,
    QuoteWithRFQOut,
    QuoteWithSupplierOut,
    RFQClosedOut,
    RFQCreateIn,
    RFQDetailOut,
    RFQListOut,
    RFQOut,
)
from marketplace.services.quote_service import QuoteService
from marketplace.services.rfq_service import RFQService

router = APIRouter(tags=["rfqs"])


# --- kupujacy ---

@router.post("/api/rfqs", response_model=ApiResponse[RFQOut], status_code=status.HTTP_201_CREATED)
def create_rfq(
    payload: RFQCreateIn,
    buyer_id: int = Depends(require_user_id),
    svc: RFQService = Depends(get_rfq_service),
):
    rfq = svc.create_rfq(buyer_id, payload.model_dump())
    return {"success": True, "message": "RFQ created", "data": rfq}


@router.get("/api/rfqs/{rfq_id}/quotes", response_model=ApiResponse[List[QuoteWithSupplierOut]])
def list_rfq_quotes(
    rfq_id: int,
    buyer_id: int = Depends(require_user_id),
    svc: QuoteService = Depends(get_quote_service),
):
    return {"success": True, "data": svc.list_quotes_for_rfq(rfq_id, buyer_id)}


@router.put("/api/rfqs/{rfq_id}/close", response_model=ApiResponse[RFQClosedOut])
def close_rfq(
    rfq_id: int,
    buyer_id: int = Depends(require_user_id),
    svc: RFQService = Depends(get_rfq_service),
):
    return {"success": True, "message": "RFQ closed", "data": svc.close_rfq(rfq_id, buyer_id)}


@router.put("/api/rfqs/{rfq_id}/fulfill", response_model=ApiResponse[RFQOut])
def fulfill_rfq(
    rfq_id: int,
    buyer_id: int = Depends(require_user_id),
    svc: RFQService = Depends(get_rfq_service),
):
    return {"success": True, "message": "RFQ marked as fulfilled", "data": svc.fulfill_rfq(rfq_id, buyer_id)}


# --- dostawca ---

@router.get("/api/supplier/rfqs", response_model=ApiResponse[RFQListOut])
def list_open_rfqs(
    category_id: int | None = Query(None, alias="categoryId"),
    search: str | None = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    supplier_id: int = Depends(require_user_id),
    svc: RFQService = Depends(get_rfq_service),
):
    return {"success": True, "data": svc.list_open_rfqs(supplier_id, category_id, search, page, limit)}


@router.get("/api/supplier/rfqs/{rfq_id}", response_model=ApiResponse[RFQDetailOut])
def get_rfq(
    rfq_id: int,
    supplier_id: int = Depends(require_user_id),
    svc: RFQService = Depends(get_rfq_service),
):
    return {"success": True, "data": svc.get_rfq(rfq_id, supplier_id)}


@router.post(
    "/api/supplier/rfqs/{rfq_id}/quotes",
    response_model=ApiResponse[QuoteOut],
    status_code=status.HTTP_201_CREATED,
)
def submit_quote(
    rfq_id: int,
    payload: QuoteSubmitIn,
    supplier_id: int = Depends(require_user_id),
    svc: QuoteService = Depends(get_quote_service),
):
    quote = svc.submit_quote(
        rfq_id=rfq_id,
        supplier_id=supplier_id,
        quote_price=payload.quote_price,
        delivery_days=payload.delivery_days,
        valid_until=payload.valid_until,
        notes=payload.notes,
    )
    return {"success": True, "message": "Quote submitted successfully", "data": quote}


@router.get("/api/supplier/quotes", response_model=ApiResponse[List[QuoteWithRFQOut]])
def list_supplier_quotes(
    quote_status: str | None = Query(None, alias="status"),
    supplier_id: int = Depends(require_user_id),
    svc: QuoteService = Depends(get_quote_service),
):
    return {"success": True, "data": svc.list_supplier_quotes(supplier_id, quote_status)}
