from sqlalchemy import Column, Integer, String, Numeric, DateTime, Date, ForeignKey, Text, JSON
from sqlalchemy.orm import relationship

from marketplace.data.database import Base
from marketplace.utils.dates import utcnow


class RFQModel(Base):
    __tablename__ = "rfqs"

    id = Column(Integer, primary_key=True)
    rfq_number = Column(String(50), nullable=False, unique=True)
    buyer_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    category_id = Column(Integer, nullable=True, index=True)

    title = Column(String(255), nullable=False)
    quantity = Column(Numeric(15, 2), nullable=False)
    unit = Column(String(50), nullable=False)
    budget_min = Column(Numeric(15, 2), nullable=True)
    budget_max = Column(Numeric(15, 2), nullable=True)
    required_by_date = Column(Date, nullable=True)
    detailed_requirements = Column(Text, nullable=True)
    preferred_location = Column(String(255), nullable=True)
    attachments = Column(JSON, nullable=False, default=list)

    duration_days = Column(Integer, nullable=False, default=7)
    status = Column(String(20), nullable=False, default="active")  # active, closed, expired, fulfilled
    view_count = Column(Integer, nullable=False, default=0)
    quote_count = Column(Integer, nullable=False, default=0)

    expires_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    quotes = relationship("QuoteModel", back_populates="rfq", cascade="all, delete-orphan")
