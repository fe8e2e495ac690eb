# marketplace/repos/shipping_repo.py
from sqlalchemy import select
from sqlalchemy.orm import Session

from marketplace.data.models.shipping_zone import ShippingZoneModel


class ShippingRepo:
    def __init__(self, db: Session):
        self.db = db

    def find_zone_for_state(self, state: str) -> ShippingZoneModel | None:
        # states to lista JSON, filtrujemy w pythonie zeby dzialalo na kazdej bazie
        wanted = state.strip().lower()
        zones = self.db.execute(
            select(ShippingZoneModel)
            .where(ShippingZoneModel.is_active.is_(True))
            .order_by(ShippingZoneModel.id)
        ).scalars()

        for zone in zones:
            if any(str(s).strip().lower() == wanted for s in (zone.states or [])):
                return zone
        return None
