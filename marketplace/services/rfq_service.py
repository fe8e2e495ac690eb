# marketplace/services/rfq_service.py
from datetime import timedelta
from typing import Any, Dict

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from marketplace.data.models.rfq import RFQModel
from marketplace.domain.errors import BusinessRuleError, NotFoundError
from marketplace.domain.rfq import unique_number, effective_status, rfq_dict, quote_dict
from marketplace.repos.quote_repo import QuoteRepo
from marketplace.repos.rfq_repo import RFQRepo
from marketplace.utils.dates import utcnow
from marketplace.utils.money import to_decimal
from marketplace.utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_DURATION_DAYS = 7


class RFQService:
    """
    RFQ: active -> closed | expired | fulfilled (koncowe).
    Przejscia tylko przez UPDATE ... WHERE status = 'active'.
    """

    def __init__(self, db: Session):
        self.repo = RFQRepo(db)
        self.quote_repo = QuoteRepo(db)

    def create_rfq(self, buyer_id: int, data: Dict[str, Any]) -> Dict[str, Any]:
        budget_min = data.get("budget_min")
        budget_max = data.get("budget_max")
        if budget_min is not None and budget_max is not None and to_decimal(budget_min) > to_decimal(budget_max):
            raise BusinessRuleError("INVALID_BUDGET")

        rfq_number = unique_number("RFQ", self.repo.rfq_number_exists)

        duration_days = data.get("duration_days") or DEFAULT_DURATION_DAYS
        now = utcnow()

        rfq = self.repo.create_rfq(
            RFQModel(
                rfq_number=rfq_number,
                buyer_id=buyer_id,
                category_id=data.get("category_id"),
                title=data["title"],
                quantity=data["quantity"],
                unit=data["unit"],
                budget_min=budget_min,
                budget_max=budget_max,
                required_by_date=data.get("required_by_date"),
                detailed_requirements=data.get("detailed_requirements"),
                preferred_location=data.get("preferred_location"),
                attachments=data.get("attachments") or [],
                duration_days=duration_days,
                status="active",
                created_at=now,
                expires_at=now + timedelta(days=duration_days),
            )
        )

        logger.info(f"RFQ {rfq.rfq_number} created by buyer {buyer_id}")
        return rfq_dict(rfq)

    def list_open_rfqs(
        self,
        supplier_id: int,
        category_id: int | None = None,
        search: str | None = None,
        page: int = 1,
        limit: int = 20,
    ) -> Dict[str, Any]:
        page = max(page, 1)
        now = utcnow()

        rfqs = self.repo.list_open(now, category_id, search, limit=limit, offset=(page - 1) * limit)
        total = self.repo.count_open(now, category_id, search)
        quoted = self.quote_repo.quoted_rfq_ids(supplier_id, (r.id for r in rfqs))

        return {
            "rfqs": [{**rfq_dict(r), "has_quoted": r.id in quoted} for r in rfqs],
            "pagination": {
                "page": page,
                "limit": limit,
                "total": total,
                "total_pages": (total + limit - 1) // limit if limit else 0,
            },
        }

    def get_rfq(self, rfq_id: int, supplier_id: int | None = None) -> Dict[str, Any]:
        rfq = self.repo.get_rfq(rfq_id)
        if not rfq:
            raise NotFoundError("RFQ_NOT_FOUND")

        my_quote = None
        if supplier_id is not None:
            quote = self.quote_repo.get_supplier_quote(rfq_id, supplier_id)
            if quote:
                my_quote = quote_dict(quote)

        self._bump_view_count(rfq)

        data = rfq_dict(rfq)
        data["my_quote"] = my_quote
        data["has_quoted"] = my_quote is not None
        return data

    def _bump_view_count(self, rfq: RFQModel) -> None:
        try:
            self.repo.increment_view_count(rfq.id)
            self.repo.commit()
        except SQLAlchemyError as e:
            self.repo.rollback()
            logger.warning(f"Failed to increment view count for RFQ {rfq.id}: {e}")

    def _owned_active_rfq(self, rfq_id: int, buyer_id: int) -> RFQModel:
        rfq = self.repo.get_rfq(rfq_id)
        if not rfq or rfq.buyer_id != buyer_id:
            raise NotFoundError("RFQ_NOT_FOUND")

        if effective_status(rfq) != "active":
            raise BusinessRuleError("RFQ_NOT_ACTIVE")
        return rfq

    def _transition(self, rfq: RFQModel, new_status: str) -> None:
        rowcount = self.repo.update_status(rfq.id, "active", new_status)
        if rowcount == 0:
            self.repo.rollback()
            raise BusinessRuleError("RFQ_NOT_ACTIVE")

    def close_rfq(self, rfq_id: int, buyer_id: int) -> Dict[str, Any]:
        rfq = self._owned_active_rfq(rfq_id, buyer_id)

        self._transition(rfq, "closed")
        expired = self.repo.expire_pending_quotes(rfq.id)
        self.repo.commit()

        logger.info(f"RFQ {rfq.rfq_number} closed, {expired} pending quotes expired")
        return {**rfq_dict(rfq), "expired_quotes": expired}

    def fulfill_rfq(self, rfq_id: int, buyer_id: int) -> Dict[str, Any]:
        rfq = self._owned_active_rfq(rfq_id, buyer_id)

        self._transition(rfq, "fulfilled")
        self.repo.commit()

        logger.info(f"RFQ {rfq.rfq_number} fulfilled")
        return rfq_dict(rfq)
