# marketplace/repos/rfq_repo.py
from datetime import datetime

from sqlalchemy import select, update, func, or_
from sqlalchemy.orm import Session

from marketplace.data.models.rfq import RFQModel
from marketplace.data.models.quote import QuoteModel


class RFQRepo:
    def __init__(self, db: Session):
        self.db = db

    def get_rfq(self, rfq_id: int) -> RFQModel | None:
        return self.db.get(RFQModel, rfq_id)

    def rfq_number_exists(self, rfq_number: str) -> bool:
        return self.db.execute(
            select(RFQModel.id).where(RFQModel.rfq_number == rfq_number)
        ).first() is not None

    def create_rfq(self, rfq: RFQModel) -> RFQModel:
        self.db.add(rfq)
        self.db.commit()
        self.db.refresh(rfq)
        return rfq

    def _open_filters(self, now: datetime, category_id: int | None, search: str | None):
        clauses = [
            RFQModel.status == "active",
            or_(RFQModel.expires_at.is_(None), RFQModel.expires_at > now),
        ]
        if category_id is not None:
            clauses.append(RFQModel.category_id == category_id)
        if search:
            pattern = f"%{search.lower()}%"
            clauses.append(
                or_(func.lower(RFQModel.title).like(pattern), func.lower(RFQModel.rfq_number).like(pattern))
            )
        return clauses

    def list_open(
        self,
        now: datetime,
        category_id: int | None = None,
        search: str | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> list[RFQModel]:
        stmt = (
            select(RFQModel)
            .where(*self._open_filters(now, category_id, search))
            .order_by(RFQModel.created_at.desc(), RFQModel.id.desc())
            .limit(limit)
            .offset(offset)
        )
        return list(self.db.execute(stmt).scalars())

    def count_open(self, now: datetime, category_id: int | None = None, search: str | None = None) -> int:
        return self.db.execute(
            select(func.count(RFQModel.id)).where(*self._open_filters(now, category_id, search))
        ).scalar_one()

    def increment_quote_count(self, rfq_id: int) -> int:
        result = self.db.execute(
            update(RFQModel).where(RFQModel.id == rfq_id).values(quote_count=RFQModel.quote_count + 1)
        )
        return result.rowcount

    def increment_view_count(self, rfq_id: int) -> int:
        result = self.db.execute(
            update(RFQModel).where(RFQModel.id == rfq_id).values(view_count=RFQModel.view_count + 1)
        )
        return result.rowcount

    def update_status(self, rfq_id: int, old_status: str, new_status: str) -> int:
        # przejscie stanu warunkowane obecnym statusem, rowcount 0 = ktos byl szybszy
        result = self.db.execute(
            update(RFQModel)
            .where(RFQModel.id == rfq_id, RFQModel.status == old_status)
            .values(status=new_status)
        )
        return result.rowcount

    def expire_pending_quotes(self, rfq_id: int) -> int:
        result = self.db.execute(
            update(QuoteModel)
            .where(QuoteModel.rfq_id == rfq_id, QuoteModel.status == "pending")
            .values(status="expired")
        )
        return result.rowcount

    def commit(self):
        self.db.commit()

    def rollback(self):
        self.db.rollback()
