import os

# Must be set before order_intake reads its settings
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.pop("REDIS_URL", None)
os.environ.pop("TURNSTILE_SECRET_KEY", None)

from datetime import datetime, timedelta
from types import SimpleNamespace

import pytest
import pytz
from fastapi.testclient import TestClient

from order_intake.application.order_intake import OrderIntakeService
from order_intake.application.order_lookup import OrderLookupService
from order_intake.domain.models import Coupon, MenuItem, MenuItemAddon, MenuItemVariant, Restaurant
from order_intake.infrastructure.database import Base, SessionLocal, engine
from order_intake.infrastructure.rate_limiter import RateLimiter
from order_intake.infrastructure.repositories.catalog_repository import PostgresCatalogRepository
from order_intake.infrastructure.repositories.coupon_repository import PostgresCouponRepository
from order_intake.infrastructure.repositories.order_repository import PostgresOrderRepository
from order_intake.infrastructure.turnstile_service import TurnstileVerifier


class FakeClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def timestamp(self) -> float:
        return self.now.timestamp()

    def advance(self, **kwargs):
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture
def clock():
    return FakeClock(datetime(2026, 3, 14, 12, 0, tzinfo=pytz.utc))


@pytest.fixture
def db():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def catalog(db):
    """
    Two restaurants. "Bistro" sells:
      Burger 500 (variants: Large 700, Retired 900 inactive; add-ons: Cheese 100, Bacon 150, Old Sauce 50 inactive)
      Soup 300
      Fries 250 (inactive)
    "Elsewhere" sells Pizza 800 and is the owner of a foreign add-on.
    """
    bistro = Restaurant(name="Bistro", is_accepting_orders=True, currency_code="USD")
    closed = Restaurant(name="Closed Cafe", is_accepting_orders=False, currency_code="USD")
    elsewhere = Restaurant(name="Elsewhere", is_accepting_orders=True, currency_code="EUR")
    db.add_all([bistro, closed, elsewhere])
    db.flush()

    burger = MenuItem(restaurant_id=bistro.id, name="Burger", price_cents=500, is_active=True)
    soup = MenuItem(restaurant_id=bistro.id, name="Soup", price_cents=300, is_active=True)
    fries = MenuItem(restaurant_id=bistro.id, name="Fries", price_cents=250, is_active=False)
    pizza = MenuItem(restaurant_id=elsewhere.id, name="Pizza", price_cents=800, is_active=True)
    db.add_all([burger, soup, fries, pizza])
    db.flush()

    large = MenuItemVariant(restaurant_id=bistro.id, menu_item_id=burger.id, name="Large", price_cents=700, is_active=True)
    retired = MenuItemVariant(restaurant_id=bistro.id, menu_item_id=burger.id, name="Retired", price_cents=900, is_active=False)
    cheese = MenuItemAddon(restaurant_id=bistro.id, menu_item_id=burger.id, name="Cheese", price_cents=100, is_active=True)
    bacon = MenuItemAddon(restaurant_id=bistro.id, menu_item_id=burger.id, name="Bacon", price_cents=150, is_active=True)
    old_sauce = MenuItemAddon(restaurant_id=bistro.id, menu_item_id=burger.id, name="Old Sauce", price_cents=50, is_active=False)
    olives = MenuItemAddon(restaurant_id=elsewhere.id, menu_item_id=pizza.id, name="Olives", price_cents=120, is_active=True)
    db.add_all([large, retired, cheese, bacon, old_sauce, olives])
    db.commit()

    return SimpleNamespace(
        restaurant_id=bistro.id,
        closed_restaurant_id=closed.id,
        other_restaurant_id=elsewhere.id,
        burger=burger.id,
        soup=soup.id,
        fries=fries.id,
        pizza=pizza.id,
        large=large.id,
        retired=retired.id,
        cheese=cheese.id,
        bacon=bacon.id,
        old_sauce=old_sauce.id,
        olives=olives.id,
    )


@pytest.fixture
def make_coupon(db, catalog, clock):
    def _make(**overrides):
        values = dict(
            restaurant_id=catalog.restaurant_id,
            code="SAVE10",
            discount_type="percentage",
            discount_value=10,
            usage_count=0,
            is_active=True,
        )
        values.update(overrides)
        coupon = Coupon(**values)
        db.add(coupon)
        db.commit()
        return coupon.id
    return _make


@pytest.fixture
def order_service(clock):
    return OrderIntakeService(
        catalog_repo=PostgresCatalogRepository(),
        coupon_repo=PostgresCouponRepository(),
        order_repo=PostgresOrderRepository(),
        clock=clock,
    )


@pytest.fixture
def lookup_service(clock):
    return OrderLookupService(
        order_repo=PostgresOrderRepository(),
        rate_limiter=RateLimiter(None, clock=clock.timestamp),
        verifier=TurnstileVerifier(None),
    )


@pytest.fixture
def client(db, order_service, lookup_service):
    from order_intake.main import app

    app.state.order_service = order_service
    app.state.lookup_service = lookup_service
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def place(client):
    """POST /orders from a fixed caller address."""
    def _place(body, ip="203.0.113.7"):
        headers = {"X-Forwarded-For": f"{ip}, 10.0.0.1"} if ip else {}
        return client.post("/orders", json=body, headers=headers)
    return _place
