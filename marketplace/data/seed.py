# marketplace/data/seed.py
from datetime import timedelta
from decimal import Decimal

from sqlalchemy.orm import Session

from marketplace.data.database import Base, SessionLocal, engine
from marketplace.data.models import CouponModel, ShippingZoneModel
from marketplace.utils.dates import utcnow
from marketplace.utils.logging import get_logger

logger = get_logger(__name__)

# (code, description, type, value, max_discount, min_order, per_user, total_limit, days)
COUPONS = [
    ("WELCOME10", "10% off on your first order", "percentage", "10", "5000", "10000", 1, 1000, 90),
    ("BULK20", "20% off on bulk orders", "percentage", "20", "15000", "50000", 3, 500, 60),
    ("FLAT5K", "Flat ₹5000 off on orders above ₹1,00,000", "flat", "5000", None, "100000", 2, 300, 45),
    ("NEWUSER500", "Flat ₹500 off for new users", "flat", "500", None, "5000", 1, 5000, 120),
    ("INDUSTRIAL15", "15% off on industrial equipment", "percentage", "15", "20000", "25000", 5, None, 30),
]

# (zone, states, base, per_kg, free_above, days_min, days_max)
SHIPPING_ZONES = [
    (
        "Metro Cities",
        ["Maharashtra", "Karnataka", "Delhi", "Tamil Nadu", "Telangana", "Gujarat"],
        "500", "10", "50000", 2, 4,
    ),
    (
        "North Zone",
        ["Punjab", "Haryana", "Himachal Pradesh", "Uttarakhand", "Uttar Pradesh", "Rajasthan"],
        "750", "12", "75000", 3, 6,
    ),
    (
        "South Zone",
        ["Andhra Pradesh", "Kerala", "Puducherry", "Goa"],
        "800", "12", "75000", 3, 6,
    ),
    (
        "East Zone",
        [
            "West Bengal", "Odisha", "Bihar", "Jharkhand", "Assam", "Tripura",
            "Meghalaya", "Manipur", "Nagaland", "Mizoram", "Arunachal Pradesh", "Sikkim",
        ],
        "900", "15", "100000", 4, 8,
    ),
    (
        "West Zone",
        ["Madhya Pradesh", "Chhattisgarh"],
        "850", "13", "80000", 4, 7,
    ),
]


def seed_coupons(db: Session) -> int:
    if db.query(CouponModel).first():
        return 0

    now = utcnow()
    for code, description, dtype, value, max_discount, min_order, per_user, total_limit, days in COUPONS:
        db.add(
            CouponModel(
                code=code,
                description=description,
                discount_type=dtype,
                discount_value=Decimal(value),
                max_discount=Decimal(max_discount) if max_discount else None,
                min_order_value=Decimal(min_order),
                max_usage_per_user=per_user,
                total_usage_limit=total_limit,
                valid_from=now,
                valid_until=now + timedelta(days=days),
            )
        )
    db.commit()
    return len(COUPONS)


def seed_shipping_zones(db: Session) -> int:
    if db.query(ShippingZoneModel).first():
        return 0

    for name, states, base, per_kg, free_above, days_min, days_max in SHIPPING_ZONES:
        db.add(
            ShippingZoneModel(
                zone_name=name,
                states=states,
                base_charge=Decimal(base),
                per_kg_charge=Decimal(per_kg),
                free_shipping_threshold=Decimal(free_above),
                estimated_days_min=days_min,
                estimated_days_max=days_max,
            )
        )
    db.commit()
    return len(SHIPPING_ZONES)


def seed():
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        # seedujemy tylko puste tabele
        coupons = seed_coupons(db)
        zones = seed_shipping_zones(db)
        logger.info(f"Seed done: {coupons} coupons, {zones} shipping zones")
    finally:
        db.close()


if __name__ == "__main__":
    seed()
