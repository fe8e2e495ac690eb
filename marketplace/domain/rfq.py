# marketplace/domain/rfq.py
import random
from typing import Any, Callable, Dict

from marketplace.data.models.quote import QuoteModel
from marketplace.data.models.rfq import RFQModel
from marketplace.domain.errors import ConflictError
from marketplace.utils.dates import utcnow, as_utc, today

RFQ_STATUSES = ("active", "closed", "expired", "fulfilled")
QUOTE_STATUSES = ("pending", "accepted", "rejected", "expired", "converted")


def generate_number(prefix: str) -> str:
    """RFQ-20260117-042 / QT-20260117-913"""
    return f"{prefix}-{utcnow():%Y%m%d}-{random.randint(0, 999):03d}"


def unique_number(prefix: str, exists: Callable[[str], bool], attempts: int = 10) -> str:
    # 1000 numerow na dzien, po wyczerpaniu nie krecimy sie w nieskonczonosc
    for _ in range(attempts):
        number = generate_number(prefix)
        if not exists(number):
            return number
    raise ConflictError("NUMBER_GENERATION_FAILED")


def effective_status(rfq: RFQModel) -> str:
    # brak sweepera: aktywne RFQ po expires_at traktujemy jako expired
    if rfq.status == "active" and rfq.expires_at is not None and as_utc(rfq.expires_at) <= utcnow():
        return "expired"
    return rfq.status


def effective_quote_status(quote: QuoteModel) -> str:
    if quote.status == "pending" and quote.valid_until is not None and quote.valid_until < today():
        return "expired"
    return quote.status


def rfq_dict(rfq: RFQModel) -> Dict[str, Any]:
    return {
        "id": rfq.id,
        "rfq_number": rfq.rfq_number,
        "buyer_id": rfq.buyer_id,
        "category_id": rfq.category_id,
        "title": rfq.title,
        "quantity": rfq.quantity,
        "unit": rfq.unit,
        "budget_min": rfq.budget_min,
        "budget_max": rfq.budget_max,
        "required_by_date": rfq.required_by_date,
        "detailed_requirements": rfq.detailed_requirements,
        "preferred_location": rfq.preferred_location,
        "attachments": rfq.attachments or [],
        "duration_days": rfq.duration_days,
        "status": effective_status(rfq),
        "view_count": rfq.view_count,
        "quote_count": rfq.quote_count,
        "expires_at": rfq.expires_at,
        "created_at": rfq.created_at,
    }


def quote_dict(quote: QuoteModel) -> Dict[str, Any]:
    return {
        "id": quote.id,
        "quote_number": quote.quote_number,
        "rfq_id": quote.rfq_id,
        "supplier_id": quote.supplier_id,
        "buyer_id": quote.buyer_id,
        "quote_price": quote.quote_price,
        "quantity": quote.quantity,
        "unit": quote.unit,
        "delivery_days": quote.delivery_days,
        "valid_until": quote.valid_until,
        "notes": quote.notes,
        "status": effective_quote_status(quote),
        "accepted_at": quote.accepted_at,
        "rejected_at": quote.rejected_at,
        "rejection_reason": quote.rejection_reason,
        "created_at": quote.created_at,
    }
