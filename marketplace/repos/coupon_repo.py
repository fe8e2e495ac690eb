# marketplace/repos/coupon_repo.py
from datetime import datetime

from sqlalchemy import select, update, func, or_
from sqlalchemy.orm import Session

from marketplace.data.models.coupon import CouponModel, CouponUsageModel


class CouponRepo:
    def __init__(self, db: Session):
        self.db = db

    def get_active_by_code(self, code: str) -> CouponModel | None:
        return self.db.execute(
            select(CouponModel).where(
                CouponModel.code == code.upper(),
                CouponModel.is_active.is_(True),
            )
        ).scalar_one_or_none()

    def count_user_usage(self, coupon_id: int, user_id: int) -> int:
        return self.db.execute(
            select(func.count(CouponUsageModel.id)).where(
                CouponUsageModel.coupon_id == coupon_id,
                CouponUsageModel.user_id == user_id,
            )
        ).scalar_one()

    def add_usage(self, usage: CouponUsageModel) -> CouponUsageModel:
        self.db.add(usage)
        self.db.flush()
        return usage

    def increment_usage(self, coupon_id: int) -> int:
        # licznik w jednym UPDATE, bez read-modify-write
        result = self.db.execute(
            update(CouponModel)
            .where(CouponModel.id == coupon_id)
            .values(current_usage_count=CouponModel.current_usage_count + 1)
        )
        return result.rowcount

    def list_active_visible(self, now: datetime, user_role: str | None = None) -> list[CouponModel]:
        stmt = select(CouponModel).where(
            CouponModel.is_active.is_(True),
            CouponModel.is_visible.is_(True),
            CouponModel.valid_until >= now,
        )
        if user_role:
            stmt = stmt.where(
                or_(
                    CouponModel.user_role_restriction.is_(None),
                    CouponModel.user_role_restriction == user_role,
                )
            )
        else:
            stmt = stmt.where(CouponModel.user_role_restriction.is_(None))

        return list(self.db.execute(stmt.order_by(CouponModel.created_at.desc(), CouponModel.id.desc())).scalars())

    def commit(self):
        self.db.commit()
