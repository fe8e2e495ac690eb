#marketplace/data/models/cart.py
from sqlalchemy import Column, Integer, ForeignKey, String, DateTime, Numeric, Boolean
from sqlalchemy.orm import relationship

from marketplace.data.database import Base
from marketplace.utils.dates import utcnow


class CartModel(Base):
    """Koszyk zalogowanego uzytkownika, dokladnie jeden na usera."""

    __tablename__ = "carts"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, unique=True)

    coupon_code = Column(String(50), nullable=True)
    coupon_discount = Column(Numeric(15, 2), nullable=False, default=0)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    items = relationship(
        "CartItemModel",
        back_populates="cart",
        cascade="all, delete-orphan",
    )


class CartSessionModel(Base):
    """Koszyk goscia identyfikowany tokenem (cookie cart_session)."""

    __tablename__ = "cart_sessions"

    id = Column(Integer, primary_key=True)
    session_token = Column(String(255), nullable=False, unique=True, index=True)

    user_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    is_guest = Column(Boolean, nullable=False, default=True)
    coupon_code = Column(String(50), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    expires_at = Column(DateTime(timezone=True), nullable=False)

    merged_to_user_cart = Column(Boolean, nullable=False, default=False)
    merged_at = Column(DateTime(timezone=True), nullable=True)

    items = relationship(
        "CartItemModel",
        back_populates="session",
        cascade="all, delete-orphan",
    )
