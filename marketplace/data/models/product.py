from sqlalchemy import Column, Integer, String, ForeignKey, Numeric

from marketplace.data.database import Base


class ProductModel(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True)
    supplier_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    category_id = Column(Integer, nullable=True, index=True)

    title = Column(String(255), nullable=False)
    slug = Column(String(255), nullable=True)
    image_url = Column(String, nullable=True)

    price_after = Column(Numeric(15, 2), nullable=False)
    discount_percent = Column(Numeric(5, 2), nullable=False, default=0)
    gst_percent = Column(Numeric(5, 2), nullable=True)

    # stan magazynowy
    quantity = Column(Integer, nullable=False, default=0)
    status = Column(String(20), nullable=False, default="active")
    listing_type = Column(String(20), nullable=False, default="fixed")  # fixed, negotiable, rfq, auction
    condition = Column(String(20), nullable=True)
    unit = Column(String(50), nullable=True)
