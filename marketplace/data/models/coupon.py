from sqlalchemy import Column, Integer, String, Numeric, DateTime, Boolean, ForeignKey, JSON, Text
from sqlalchemy.orm import relationship

from marketplace.data.database import Base
from marketplace.utils.dates import utcnow


class CouponModel(Base):
    __tablename__ = "coupons"

    id = Column(Integer, primary_key=True)
    code = Column(String(50), nullable=False, unique=True, index=True)  # zawsze UPPERCASE
    description = Column(Text, nullable=True)

    discount_type = Column(String(20), nullable=False)  # percentage, flat
    discount_value = Column(Numeric(15, 2), nullable=False)
    max_discount = Column(Numeric(15, 2), nullable=True)

    min_order_value = Column(Numeric(15, 2), nullable=False, default=0)
    max_usage_per_user = Column(Integer, nullable=False, default=1)
    total_usage_limit = Column(Integer, nullable=True)
    current_usage_count = Column(Integer, nullable=False, default=0)

    # pusta lista = dotyczy wszystkiego
    applicable_categories = Column(JSON, nullable=False, default=list)
    applicable_products = Column(JSON, nullable=False, default=list)
    excluded_products = Column(JSON, nullable=False, default=list)
    user_role_restriction = Column(String(20), nullable=True)

    valid_from = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    valid_until = Column(DateTime(timezone=True), nullable=False)

    is_active = Column(Boolean, nullable=False, default=True)
    is_visible = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    usages = relationship("CouponUsageModel", back_populates="coupon", cascade="all, delete-orphan")


class CouponUsageModel(Base):
    __tablename__ = "coupon_usage"

    id = Column(Integer, primary_key=True)
    coupon_id = Column(Integer, ForeignKey("coupons.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    order_id = Column(String(64), nullable=True)

    discount_applied = Column(Numeric(15, 2), nullable=False)
    order_value = Column(Numeric(15, 2), nullable=False)
    used_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    coupon = relationship("CouponModel", back_populates="usages")
