from sqlalchemy import Column, Integer, String, Numeric, Boolean, JSON

from marketplace.data.database import Base


class ShippingZoneModel(Base):
    __tablename__ = "shipping_zones"

    id = Column(Integer, primary_key=True)
    zone_name = Column(String(100), nullable=False)
    states = Column(JSON, nullable=False, default=list)

    base_charge = Column(Numeric(10, 2), nullable=False)
    per_kg_charge = Column(Numeric(10, 2), nullable=False, default=0)
    free_shipping_threshold = Column(Numeric(15, 2), nullable=True)

    estimated_days_min = Column(Integer, nullable=False, default=3)
    estimated_days_max = Column(Integer, nullable=False, default=7)
    is_active = Column(Boolean, nullable=False, default=True)
