# marketplace/services/quote_service.py
from datetime import date
from typing import Any, Dict, List

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from marketplace.data.models.quote import QuoteModel
from marketplace.data.models.rfq import RFQModel
from marketplace.domain.errors import BusinessRuleError, NotFoundError
from marketplace.domain.rfq import unique_number, effective_status, quote_dict
from marketplace.repos.quote_repo import QuoteRepo
from marketplace.repos.rfq_repo import RFQRepo
from marketplace.repos.user_repo import UserRepo
from marketplace.services.notification_service import NotificationService
from marketplace.utils.dates import utcnow, today
from marketplace.utils.money import to_decimal
from marketplace.utils.logging import get_logger

logger = get_logger(__name__)


def _user_payload(user) -> dict:
    if user is None:
        return {}
    return {"id": user.id, "name": user.name, "email": user.email}


def _rfq_payload(rfq: RFQModel) -> dict:
    return {"id": rfq.id, "rfq_number": rfq.rfq_number, "title": rfq.title}


def _quote_payload(quote: QuoteModel) -> dict:
    # celery serializuje json, wiec Decimal/date jako str
    return {
        "id": quote.id,
        "quote_number": quote.quote_number,
        "quote_price": str(quote.quote_price),
        "delivery_days": quote.delivery_days,
        "valid_until": quote.valid_until.isoformat() if quote.valid_until else None,
    }


class QuoteService:
    """
    Oferta: pending -> accepted | rejected | expired | converted.
    Jedna oferta na (rfq, dostawca), pilnuje tego tez unique w bazie.
    Powiadomienia sa best-effort, blad wysylki nie cofa operacji.
    """

    def __init__(self, db: Session, notification_service: NotificationService | None = None):
        self.repo = QuoteRepo(db)
        self.rfq_repo = RFQRepo(db)
        self.user_repo = UserRepo(db)
        self.notifications = notification_service or NotificationService()

    def _notify(self, action: str, fn, *args) -> None:
        try:
            fn(*args)
        except Exception as e:
            logger.warning(f"Failed to send {action} notification: {e}")

    def submit_quote(
        self,
        rfq_id: int,
        supplier_id: int,
        quote_price,
        delivery_days: int,
        valid_until: date,
        notes: str | None = None,
    ) -> Dict[str, Any]:
        if quote_price is None or to_decimal(quote_price) <= 0:
            raise BusinessRuleError("INVALID_QUOTE", "Quote price must be greater than 0")
        if delivery_days is None or delivery_days < 1:
            raise BusinessRuleError("INVALID_QUOTE", "Delivery days must be at least 1")
        if valid_until is None or valid_until < today():
            raise BusinessRuleError("INVALID_QUOTE", "Valid until date cannot be in the past")

        rfq = self.rfq_repo.get_rfq(rfq_id)
        if not rfq:
            raise NotFoundError("RFQ_NOT_FOUND")

        if rfq.buyer_id == supplier_id:
            raise BusinessRuleError("SELF_QUOTE_NOT_ALLOWED")

        if effective_status(rfq) != "active":
            raise BusinessRuleError("RFQ_NOT_ACTIVE")

        if self.repo.get_supplier_quote(rfq_id, supplier_id):
            raise BusinessRuleError("DUPLICATE_QUOTE")

        quote_number = unique_number("QT", self.repo.quote_number_exists)

        try:
            quote = self.repo.add_quote(
                QuoteModel(
                    quote_number=quote_number,
                    rfq_id=rfq.id,
                    supplier_id=supplier_id,
                    buyer_id=rfq.buyer_id,
                    quote_price=to_decimal(quote_price),
                    quantity=rfq.quantity,
                    unit=rfq.unit,
                    delivery_days=delivery_days,
                    valid_until=valid_until,
                    notes=notes,
                    status="pending",
                )
            )
        except IntegrityError:
            # rownolegly submit tego samego dostawcy, unique (rfq_id, supplier_id)
            self.repo.rollback()
            raise BusinessRuleError("DUPLICATE_QUOTE")

        self.rfq_repo.increment_quote_count(rfq.id)
        self.repo.commit()

        logger.info(f"Quote {quote.quote_number} submitted by supplier {supplier_id} for RFQ {rfq.rfq_number}")

        buyer = self.user_repo.get_user(rfq.buyer_id)
        self._notify(
            "quote submitted",
            self.notifications.quote_submitted,
            _user_payload(buyer),
            _rfq_payload(rfq),
            _quote_payload(quote),
        )

        return quote_dict(quote)

    def _buyer_quote(self, quote_id: int, buyer_id: int) -> QuoteModel:
        quote = self.repo.get_quote(quote_id)
        if not quote or quote.buyer_id != buyer_id:
            raise NotFoundError("QUOTE_NOT_FOUND")

        if quote.status != "pending":
            raise BusinessRuleError("QUOTE_NOT_PENDING")
        return quote

    def accept_quote(self, quote_id: int, buyer_id: int, fulfill_rfq: bool = False) -> Dict[str, Any]:
        quote = self._buyer_quote(quote_id, buyer_id)

        if quote.valid_until < today():
            self.repo.update_status(quote.id, "pending", {"status": "expired", "updated_at": utcnow()})
            self.repo.commit()
            logger.info(f"Quote {quote.quote_number} expired on accept")
            raise BusinessRuleError("QUOTE_EXPIRED")

        # rfq po expires_at jest juz expired, nie da sie go fulfill
        if fulfill_rfq and effective_status(quote.rfq) != "active":
            raise BusinessRuleError("RFQ_NOT_ACTIVE")

        now = utcnow()
        rowcount = self.repo.update_status(quote.id, "pending", {
            "status": "accepted",
            "accepted_at": now,
            "updated_at": now,
        })
        if rowcount == 0:
            self.repo.rollback()
            raise BusinessRuleError("QUOTE_NOT_PENDING")

        if fulfill_rfq:
            if self.rfq_repo.update_status(quote.rfq_id, "active", "fulfilled") == 0:
                self.repo.rollback()
                raise BusinessRuleError("RFQ_NOT_ACTIVE")

        self.repo.commit()
        self.repo.refresh(quote)

        logger.info(f"Quote {quote.quote_number} accepted by buyer {buyer_id}")

        self._notify(
            "quote accepted",
            self.notifications.quote_accepted,
            _user_payload(self.user_repo.get_user(quote.supplier_id)),
            _rfq_payload(quote.rfq),
            _quote_payload(quote),
        )
        return quote_dict(quote)

    def reject_quote(self, quote_id: int, buyer_id: int, reason: str | None = None) -> Dict[str, Any]:
        quote = self._buyer_quote(quote_id, buyer_id)

        now = utcnow()
        rowcount = self.repo.update_status(quote.id, "pending", {
            "status": "rejected",
            "rejected_at": now,
            "rejection_reason": reason,
            "updated_at": now,
        })
        if rowcount == 0:
            self.repo.rollback()
            raise BusinessRuleError("QUOTE_NOT_PENDING")

        self.repo.commit()
        self.repo.refresh(quote)

        logger.info(f"Quote {quote.quote_number} rejected by buyer {buyer_id}")

        self._notify(
            "quote rejected",
            self.notifications.quote_rejected,
            _user_payload(self.user_repo.get_user(quote.supplier_id)),
            _rfq_payload(quote.rfq),
            _quote_payload(quote),
            reason,
        )
        return quote_dict(quote)

    def list_quotes_for_rfq(self, rfq_id: int, buyer_id: int) -> List[Dict[str, Any]]:
        rfq = self.rfq_repo.get_rfq(rfq_id)
        if not rfq or rfq.buyer_id != buyer_id:
            raise NotFoundError("RFQ_NOT_FOUND")

        quotes = self.repo.list_for_rfq(rfq_id)
        suppliers = self.user_repo.get_users(q.supplier_id for q in quotes)

        result = []
        for q in quotes:
            supplier = suppliers.get(q.supplier_id)
            result.append({
                **quote_dict(q),
                "supplier": {
                    "id": q.supplier_id,
                    "name": supplier.name if supplier else None,
                    "company_name": supplier.company_name if supplier else None,
                    "verified": supplier.is_verified if supplier else False,
                },
            })
        return result

    def list_supplier_quotes(self, supplier_id: int, status: str | None = None) -> List[Dict[str, Any]]:
        quotes = self.repo.list_for_supplier(supplier_id, status)
        return [
            {
                **quote_dict(q),
                "rfq": {
                    "id": q.rfq.id,
                    "rfq_number": q.rfq.rfq_number,
                    "title": q.rfq.title,
                    "status": effective_status(q.rfq),
                },
            }
            for q in quotes
        ]
