"""Fixtures shared by the order service tests.

Every test gets its own SQLite file so that threads in the concurrency
tests contend on a real database lock.
"""

from decimal import Decimal

import pytest

from storefront.core_settings import Settings
from storefront.domain.models import Order, OrderItem, Product
from storefront.infrastructure.db import create_db_engine, create_session_factory, init_models


@pytest.fixture
def database_url(tmp_path):
    return f"sqlite:///{tmp_path / 'orders.db'}"


@pytest.fixture
def settings(database_url):
    return Settings(DATABASE_URL=database_url, DB_LOCK_TIMEOUT_MS=30000, _env_file=None)


@pytest.fixture
def engine(settings):
    engine = create_db_engine(settings)
    init_models(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return create_session_factory(engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def add_product(session_factory):
    def _add(name="Widget", price="10.00", stock=5, image=None, original_price=None):
        with session_factory() as session, session.begin():
            product = Product(
                name=name,
                price=Decimal(price),
                stock=stock,
                image=image,
                original_price=Decimal(original_price) if original_price else None,
            )
            session.add(product)
            session.flush()
            return product.id
    return _add


@pytest.fixture
def stock_of(session_factory):
    def _stock(product_id):
        with session_factory() as session:
            return session.get(Product, product_id).stock
    return _stock


@pytest.fixture
def row_counts(session_factory):
    def _counts():
        with session_factory() as session:
            return session.query(Order).count(), session.query(OrderItem).count()
    return _counts
