from sqlalchemy import (
    Column, Integer, ForeignKey, Numeric, String, Boolean, DateTime,
    CheckConstraint, UniqueConstraint,
)
from sqlalchemy.orm import relationship

from marketplace.data.database import Base
from marketplace.utils.dates import utcnow


class CartItemModel(Base):
    __tablename__ = "cart_items"

    id = Column(Integer, primary_key=True)
    cart_id = Column(Integer, ForeignKey("carts.id", ondelete="CASCADE"), nullable=True, index=True)
    session_id = Column(Integer, ForeignKey("cart_sessions.id", ondelete="CASCADE"), nullable=True, index=True)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="CASCADE"), nullable=False)

    quantity = Column(Integer, nullable=False)

    # snapshot ceny w momencie dodania
    price_at_add = Column(Numeric(15, 2), nullable=False)
    discount_percent_at_add = Column(Numeric(5, 2), nullable=False, default=0)
    gst_percent = Column(Numeric(5, 2), nullable=False, default=18)

    listing_type = Column(String(50), nullable=False)
    condition = Column(String(50), nullable=True)
    unit = Column(String(50), nullable=True)
    supplier_id = Column(Integer, ForeignKey("users.id"), nullable=False)

    # cache flag, zawsze liczone od nowa przy odczycie
    is_available = Column(Boolean, nullable=False, default=True)
    price_changed = Column(Boolean, nullable=False, default=False)
    stock_changed = Column(Boolean, nullable=False, default=False)

    added_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    cart = relationship("CartModel", back_populates="items")
    session = relationship("CartSessionModel", back_populates="items")

    __table_args__ = (
        CheckConstraint(
            "(cart_id IS NOT NULL AND session_id IS NULL) OR (cart_id IS NULL AND session_id IS NOT NULL)",
            name="ck_cart_item_owner",
        ),
        CheckConstraint("quantity > 0", name="ck_cart_item_quantity_positive"),
        UniqueConstraint("cart_id", "product_id", name="u_cart_product"),
        UniqueConstraint("session_id", "product_id", name="u_session_product"),
    )
