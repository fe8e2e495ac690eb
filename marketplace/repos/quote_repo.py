# marketplace/repos/quote_repo.py
from sqlalchemy import select, update
from sqlalchemy.orm import Session

from marketplace.data.models.quote import QuoteModel


class QuoteRepo:
    def __init__(self, db: Session):
        self.db = db

    def get_quote(self, quote_id: int) -> QuoteModel | None:
        return self.db.get(QuoteModel, quote_id)

    def get_supplier_quote(self, rfq_id: int, supplier_id: int) -> QuoteModel | None:
        return self.db.execute(
            select(QuoteModel).where(
                QuoteModel.rfq_id == rfq_id,
                QuoteModel.supplier_id == supplier_id,
            )
        ).scalar_one_or_none()

    def quoted_rfq_ids(self, supplier_id: int, rfq_ids) -> set[int]:
        ids = set(rfq_ids)
        if not ids:
            return set()
        rows = self.db.execute(
            select(QuoteModel.rfq_id).where(
                QuoteModel.supplier_id == supplier_id,
                QuoteModel.rfq_id.in_(ids),
            )
        ).scalars()
        return set(rows)

    def quote_number_exists(self, quote_number: str) -> bool:
        return self.db.execute(
            select(QuoteModel.id).where(QuoteModel.quote_number == quote_number)
        ).first() is not None

    def add_quote(self, quote: QuoteModel) -> QuoteModel:
        self.db.add(quote)
        self.db.flush()
        return quote

    def update_status(self, quote_id: int, old_status: str, new_data: dict) -> int:
        result = self.db.execute(
            update(QuoteModel)
            .where(QuoteModel.id == quote_id, QuoteModel.status == old_status)
            .values(**new_data)
        )
        return result.rowcount

    def list_for_rfq(self, rfq_id: int) -> list[QuoteModel]:
        return list(
            self.db.execute(
                select(QuoteModel).where(QuoteModel.rfq_id == rfq_id).order_by(QuoteModel.quote_price, QuoteModel.id)
            ).scalars()
        )

    def list_for_supplier(self, supplier_id: int, status: str | None = None) -> list[QuoteModel]:
        stmt = select(QuoteModel).where(QuoteModel.supplier_id == supplier_id)
        if status:
            stmt = stmt.where(QuoteModel.status == status)
        return list(self.db.execute(stmt.order_by(QuoteModel.created_at.desc(), QuoteModel.id.desc())).scalars())

    def refresh(self, quote: QuoteModel) -> QuoteModel:
        self.db.refresh(quote)
        return quote

    def commit(self):
        self.db.commit()

    def rollback(self):
        self.db.rollback()
