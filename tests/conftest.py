import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ["CELERY_TASK_ALWAYS_EAGER"] = "1"

from decimal import Decimal

import fakeredis
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from marketplace.data.database import init_db
from marketplace.domain.schemas import PlaceOrderIn, ProductCreate, StoreCreate
from marketplace.domain.status import Role
from marketplace.services.access_policy import Actor
from marketplace.services.cart_service import CartService
from marketplace.services.catalog_service import CatalogService
from marketplace.services.checkout_service import CheckoutService
from marketplace.services.lock_service import LockService
from marketplace.services.order_service import OrderService


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, autocommit=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def redis_client():
    return fakeredis.FakeRedis(decode_responses=True)


@pytest.fixture
def lock_service(redis_client):
    return LockService(client=redis_client)


# ---------- actors ----------

@pytest.fixture
def seller():
    return Actor(user_id=100, role=Role.SELLER)


@pytest.fixture
def other_seller():
    return Actor(user_id=101, role=Role.SELLER)


@pytest.fixture
def customer():
    return Actor(user_id=1, role=Role.CUSTOMER)


@pytest.fixture
def other_customer():
    return Actor(user_id=2, role=Role.CUSTOMER)


# ---------- services ----------

@pytest.fixture
def catalog(db):
    return CatalogService(db)


@pytest.fixture
def carts(db, catalog):
    return CartService(db, catalog=catalog)


@pytest.fixture
def orders(db, catalog):
    return OrderService(db, catalog=catalog)


@pytest.fixture
def checkout(db, lock_service, catalog, orders):
    return CheckoutService(db, lock_service, catalog=catalog, orders=orders)


# ---------- catalog data ----------

@pytest.fixture
def store(catalog, seller):
    return catalog.create_store(seller, StoreCreate(name="Bufo Grill"))


@pytest.fixture
def other_store(catalog, other_seller):
    return catalog.create_store(other_seller, StoreCreate(name="Kape Corner"))


@pytest.fixture
def make_product(catalog, store, seller):
    def _make(actor=None, **overrides):
        data = {
            "store_id": store.id,
            "name": "Chicken Adobo",
            "category": "Meals",
            "price": Decimal("50.00"),
            "stock": 10,
        }
        data.update(overrides)
        return catalog.create_product(actor or seller, ProductCreate(**data))

    return _make


@pytest.fixture
def details():
    return PlaceOrderIn(
        customer_name="Juan dela Cruz",
        contact_number="+63 912 345 6789",
        delivery_location="Building 5, Room 301",
        payment_method="Cash on Delivery",
    )
