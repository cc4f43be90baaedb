"""
Pytest configuration file for backend testing.
"""
import os
import sys
from decimal import Decimal
from pathlib import Path

# Add the backend directory to Python path so imports work correctly
backend_dir = Path(__file__).parent
if str(backend_dir) not in sys.path:
    sys.path.insert(0, str(backend_dir))

# The app engine must never touch a real database during tests
os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from core.database import Base, create_db_engine, create_session_factory, get_db  # noqa: E402
from modules.inventory.models.stock_models import (  # noqa: E402
    Inventory,
    ProductStock,
    ProductVariant,
)
from modules.tables.models.table_models import Room, Table, TableStatus  # noqa: E402
from modules.orders.models import order_models  # noqa: E402,F401
from modules.reservations.models import reservation_models  # noqa: E402,F401


@pytest.fixture(scope="function")
def engine():
    """Fresh in-memory database per test."""
    test_engine = create_db_engine("sqlite://")
    Base.metadata.create_all(bind=test_engine)
    yield test_engine
    Base.metadata.drop_all(bind=test_engine)
    test_engine.dispose()


@pytest.fixture(scope="function")
def db_session(engine):
    """Create a fresh database session for each test."""
    db = create_session_factory(engine)()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture(scope="function")
def client(db_session):
    """Create a test client with database dependency override."""
    from app.main import app

    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def room_factory(db_session):
    """Persist a room: ``room_factory(name="Main Hall", table_count=10, total_capacity=40)``"""

    def create(name="Main Hall", table_count=10, total_capacity=40, description=None):
        room = Room(
            name=name,
            description=description,
            table_count=table_count,
            total_capacity=total_capacity,
        )
        db_session.add(room)
        db_session.commit()
        return room

    return create


@pytest.fixture
def table_factory(db_session):
    """Persist a table in ``room``, Available unless ``status`` says otherwise"""

    def create(room, table_number, capacity=4, status=TableStatus.AVAILABLE, table_name=None):
        table = Table(
            room_id=room.id,
            table_number=table_number,
            table_name=table_name or f"Table {table_number}",
            capacity=capacity,
            status=status,
            is_active=True,
        )
        db_session.add(table)
        db_session.commit()
        return table

    return create


@pytest.fixture
def variant_factory(db_session):
    """Persist a product variant with ``stock`` units at one location"""

    def create(product_name="Milk Coffee", size="M", price="45000", stock=100):
        variant = ProductVariant(
            product_name=product_name, size=size, price=Decimal(price), is_active=True
        )
        inventory = Inventory(store_location="Main store")
        db_session.add_all([variant, inventory])
        db_session.flush()
        if stock is not None:
            db_session.add(
                ProductStock(variant_id=variant.id, inventory_id=inventory.id, amount=stock)
            )
        db_session.commit()
        return variant

    return create


@pytest.fixture
def restaurant(room_factory, table_factory, variant_factory):
    """One room, two tables (capacity 4 and 6) and a 45000 variant with 100 in stock"""
    room = room_factory()
    return {
        "room": room,
        "table1": table_factory(room, "T01", capacity=4, table_name="Table 1"),
        "table2": table_factory(room, "T02", capacity=6, table_name="Table 2"),
        "variant": variant_factory(),
    }
