# marketplace/api/routers/quotes.py
from fastapi import APIRouter, Depends

from marketplace.api.deps import get_quote_service, require_user_id
from marketplace.domain.schemas import ApiResponse, QuoteAcceptIn, QuoteOut, QuoteRejectIn
from marketplace.services.quote_service import QuoteService

router = APIRouter(prefix="/api/quotes", tags=["quotes"])


@router.put("/{quote_id}/accept", response_model=ApiResponse[QuoteOut])
def accept_quote(
    quote_id: int,
    payload: QuoteAcceptIn | None = None,
    buyer_id: int = Depends(require_user_id),
    svc: QuoteService = Depends(get_quote_service),
):
    fulfill_rfq = payload.fulfill_rfq if payload else False
    quote = svc.accept_quote(quote_id, buyer_id, fulfill_rfq=fulfill_rfq)
    return {"success": True, "message": "Quote accepted", "data": quote}


@router.put("/{quote_id}/reject", response_model=ApiResponse[QuoteOut])
def reject_quote(
    quote_id: int,
    payload: QuoteRejectIn | None = None,
    buyer_id: int = Depends(require_user_id),
    svc: QuoteService = Depends(get_quote_service),
):
    reason = payload.reason if payload else None
    quote = svc.reject_quote(quote_id, buyer_id, reason)
    return {"success": True, "message": "Quote rejected", "data": quote}
