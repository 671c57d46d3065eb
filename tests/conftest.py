from datetime import datetime

import pytest

from retail_orders.adapters.db.sqlalchemy import models
from retail_orders.adapters.db.sqlalchemy.database import create_db_engine, create_session_factory, init_db
from retail_orders.adapters.db.sqlalchemy.uow import SQLAlchemyUnitOfWork
from retail_orders.application.dto import OrderInput, OrderItemInput
from retail_orders.application.use_cases.order_items import OrderItemReconciler
from retail_orders.application.use_cases.orders import OrderLifecycleManager
from retail_orders.domain.order import OrderStatus


def seed(session_factory):
    with session_factory() as session:
        session.add_all([
            models.Client(id=1, name="Acme Corp"),
            models.Client(id=2, name="Globex"),
            models.Product(id=1, name="Keyboard", price=50.0),
            models.Product(id=2, name="Mouse", price=25.0),
            models.Product(id=3, name="Monitor", price=300.0),
            models.Product(id=4, name="Retired cable", price=5.0, is_active=False),
        ])
        session.commit()


@pytest.fixture()
def seed_catalog():
    return seed


@pytest.fixture()
def engine():
    engine = create_db_engine("sqlite://")
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def session_factory(engine):
    factory = create_session_factory(engine)
    seed(factory)
    return factory


@pytest.fixture()
def begin(session_factory):
    return lambda: SQLAlchemyUnitOfWork(session_factory)


@pytest.fixture()
def reconciler():
    return OrderItemReconciler()


@pytest.fixture()
def manager(begin, reconciler):
    return OrderLifecycleManager(begin=begin, reconciler=reconciler)


@pytest.fixture()
def make_order_input():
    def _make(**overrides) -> OrderInput:
        data = {
            "order_date": datetime(2024, 5, 10, 9, 30),
            "total_value": 125.0,
            "status": OrderStatus.PENDING,
            "client_id": 1,
            "items": [
                OrderItemInput(product_id=1, quantity=2, unitary_price=50.0),
                OrderItemInput(product_id=2, quantity=1, unitary_price=25.0),
            ],
        }
        data.update(overrides)
        return OrderInput(**data)
    return _make


@pytest.fixture()
def order(manager, make_order_input):
    """An active order with two items (Keyboard x2, Mouse x1)."""
    return manager.create(make_order_input())
