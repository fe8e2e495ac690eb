from sqlalchemy import Column, Integer, String, Numeric, DateTime, ForeignKey, JSON, Text

from marketplace.data.database import Base
from marketplace.utils.dates import utcnow


class CheckoutSessionModel(Base):
    __tablename__ = "checkout_sessions"

    id = Column(Integer, primary_key=True)
    session_token = Column(String(255), nullable=False, unique=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    cart_snapshot = Column(JSON, nullable=False)

    item_subtotal = Column(Numeric(15, 2), nullable=False)
    discount_amount = Column(Numeric(15, 2), nullable=False, default=0)
    coupon_discount = Column(Numeric(15, 2), nullable=False, default=0)
    gst_amount = Column(Numeric(15, 2), nullable=False)
    shipping_charges = Column(Numeric(15, 2), nullable=False, default=0)
    platform_fee = Column(Numeric(15, 2), nullable=False, default=0)
    final_amount = Column(Numeric(15, 2), nullable=False)

    shipping_city = Column(String(255), nullable=True)
    shipping_pincode = Column(String(10), nullable=True)
    shipping_address = Column(Text, nullable=True)
    coupon_code = Column(String(50), nullable=True)

    status = Column(String(20), nullable=False, default="pending")  # pending, completed, expired, cancelled
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    expires_at = Column(DateTime(timezone=True), nullable=False)
