from sqlalchemy import Column, Integer, String, Numeric, DateTime, Date, ForeignKey, Text, UniqueConstraint
from sqlalchemy.orm import relationship

from marketplace.data.database import Base
from marketplace.utils.dates import utcnow


class QuoteModel(Base):
    __tablename__ = "quotes"

    id = Column(Integer, primary_key=True)
    quote_number = Column(String(50), nullable=False, unique=True)
    rfq_id = Column(Integer, ForeignKey("rfqs.id", ondelete="CASCADE"), nullable=False, index=True)
    supplier_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    buyer_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    quote_price = Column(Numeric(15, 2), nullable=False)
    quantity = Column(Numeric(15, 2), nullable=False)
    unit = Column(String(50), nullable=False)
    delivery_days = Column(Integer, nullable=False)
    valid_until = Column(Date, nullable=False)
    notes = Column(Text, nullable=True)

    status = Column(String(20), nullable=False, default="pending")  # pending, accepted, rejected, expired, converted
    accepted_at = Column(DateTime(timezone=True), nullable=True)
    rejected_at = Column(DateTime(timezone=True), nullable=True)
    rejection_reason = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    rfq = relationship("RFQModel", back_populates="quotes")

    __table_args__ = (UniqueConstraint("rfq_id", "supplier_id", name="u_rfq_supplier"),)
