import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["EMAIL_API_URL"] = ""

from contextlib import contextmanager
from datetime import timedelta
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import marketplace.data.models  # noqa: F401
from marketplace.api import deps
from marketplace.data.database import Base, get_db
from marketplace.data.models import CouponModel, ProductModel, RFQModel, UserModel
from marketplace.data.seed import seed_shipping_zones
from marketplace.domain.errors import ConflictError
from marketplace.main import create_app
from marketplace.services.cart_service import CartService
from marketplace.services.quote_service import QuoteService
from marketplace.services.rfq_service import RFQService
from marketplace.utils.dates import utcnow


class FakeLockService:
    """Lock w pamieci zamiast redisa."""

    def __init__(self):
        self.held = set()
        self.acquired = []

    @contextmanager
    def hold(self, key: str):
        if key in self.held:
            raise ConflictError("CART_BUSY")
        self.held.add(key)
        self.acquired.append(key)
        try:
            yield
        finally:
            self.held.discard(key)


class FakeNotifications:
    def __init__(self, fail: bool = False):
        self.sent = []
        self.fail = fail

    def _record(self, kind, *args):
        if self.fail:
            raise RuntimeError("broker down")
        self.sent.append((kind, *args))

    def quote_submitted(self, buyer, rfq, quote):
        self._record("submitted", buyer, rfq, quote)

    def quote_accepted(self, supplier, rfq, quote):
        self._record("accepted", supplier, rfq, quote)

    def quote_rejected(self, supplier, rfq, quote, reason=None):
        self._record("rejected", supplier, rfq, quote, reason)


@pytest.fixture
def engine():
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(eng)
    yield eng
    Base.metadata.drop_all(eng)
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def lock_service():
    return FakeLockService()


@pytest.fixture
def notifications():
    return FakeNotifications()


@pytest.fixture
def cart_service(db, lock_service):
    return CartService(db=db, lock_service=lock_service)


@pytest.fixture
def rfq_service(db):
    return RFQService(db)


@pytest.fixture
def quote_service(db, notifications):
    return QuoteService(db=db, notification_service=notifications)


@pytest.fixture
def zones(db):
    seed_shipping_zones(db)


@pytest.fixture
def make_user(db):
    def _make(name="Buyer", role="buyer", **kwargs):
        user = UserModel(
            name=name,
            email=kwargs.pop("email", f"{name.lower()}@example.com"),
            role=role,
            **kwargs,
        )
        db.add(user)
        db.commit()
        return user

    return _make


@pytest.fixture
def supplier(make_user):
    return make_user("Supplier", role="supplier", company_name="Acme Surplus", is_verified=True)


@pytest.fixture
def make_product(db, supplier):
    def _make(price="1000", quantity=10, discount="0", gst="18", **kwargs):
        product = ProductModel(
            supplier_id=kwargs.pop("supplier_id", supplier.id),
            title=kwargs.pop("title", "Hydraulic Pump"),
            price_after=Decimal(price),
            discount_percent=Decimal(discount),
            gst_percent=Decimal(gst) if gst is not None else None,
            quantity=quantity,
            status=kwargs.pop("status", "active"),
            listing_type=kwargs.pop("listing_type", "fixed"),
            **kwargs,
        )
        db.add(product)
        db.commit()
        return product

    return _make


@pytest.fixture
def make_coupon(db):
    def _make(code="SAVE10", discount_type="percentage", value="10", **kwargs):
        now = utcnow()
        coupon = CouponModel(
            code=code,
            discount_type=discount_type,
            discount_value=Decimal(value),
            max_discount=kwargs.pop("max_discount", None),
            min_order_value=Decimal(kwargs.pop("min_order_value", "0")),
            max_usage_per_user=kwargs.pop("max_usage_per_user", 1),
            valid_from=kwargs.pop("valid_from", now - timedelta(days=1)),
            valid_until=kwargs.pop("valid_until", now + timedelta(days=30)),
            **kwargs,
        )
        db.add(coupon)
        db.commit()
        return coupon

    return _make


@pytest.fixture
def make_rfq(rfq_service):
    def _make(buyer_id, **kwargs):
        data = {"title": "Need 50 industrial valves", "quantity": Decimal("50"), "unit": "pcs"}
        data.update(kwargs)
        return rfq_service.create_rfq(buyer_id, data)

    return _make


@pytest.fixture
def client(session_factory, lock_service, notifications):
    app = create_app()

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[deps.get_lock_service] = lambda: lock_service
    app.dependency_overrides[deps.get_notification_service] = lambda: notifications

    # bez "with" - lifespan (create_all na prawdziwym engine) sie nie odpala
    return TestClient(app)


@pytest.fixture
def expire_rfq(db):
    def _expire(rfq_id):
        db.get(RFQModel, rfq_id).expires_at = utcnow() - timedelta(minutes=1)
        db.commit()

    return _expire
