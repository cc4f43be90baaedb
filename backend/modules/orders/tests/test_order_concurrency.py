# backend/modules/orders/tests/test_order_concurrency.py

"""
Same-table concurrency: parallel cashiers must share one session and never
oversell stock.
"""

import threading
import time
from decimal import Decimal

import pytest

from core.database import Base, create_db_engine, create_session_factory
from core.exceptions import ConflictError, ResourceBusyError
from core.locks import KeyedLockManager, table_lock_key
from modules.inventory.models.stock_models import Inventory, ProductStock, ProductVariant
from modules.inventory.services.stock_ledger import StockLedger
from modules.orders.models.order_models import Order, SessionStatus, TableSession
from modules.orders.services.order_service import OrderService
from modules.tables.models.table_models import Room, Table, TableStatus


@pytest.fixture
def file_db(tmp_path):
    """File-backed SQLite so every thread gets its own connection"""
    engine = create_db_engine(f"sqlite:///{tmp_path / 'pos.db'}")
    Base.metadata.create_all(bind=engine)
    SessionFactory = create_session_factory(engine)

    db = SessionFactory()
    room = Room(name="Main Hall", table_count=5, total_capacity=20)
    db.add(room)
    db.flush()
    tables = [
        Table(room_id=room.id, table_number=f"T0{n}", table_name=f"Table {n}", capacity=4)
        for n in range(1, 4)
    ]
    variant = ProductVariant(product_name="Tea", size="L", price=Decimal("20000"))
    inventory = Inventory(store_location="Main store")
    db.add_all([*tables, variant, inventory])
    db.flush()
    db.add(ProductStock(variant_id=variant.id, inventory_id=inventory.id, amount=5))
    db.commit()
    ids = {
        "table_id": tables[0].id,
        "table_ids": [table.id for table in tables],
        "variant_id": variant.id,
    }
    db.close()

    yield SessionFactory, ids
    engine.dispose()


def run_in_threads(count, target):
    errors = []
    barrier = threading.Barrier(count)

    def worker(index):
        barrier.wait()
        try:
            target(index)
        except Exception as exc:
            errors.append(exc)

    threads = [threading.Thread(target=worker, args=(i,)) for i in range(count)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=30)
    return errors


def test_parallel_orders_share_one_session(file_db):
    SessionFactory, ids = file_db
    locks = KeyedLockManager(timeout_seconds=20)

    def place_order(index):
        db = SessionFactory()
        try:
            OrderService(db, locks=locks).create_order_and_notify_kitchen(
                ids["table_id"],
                [{"variant_id": ids["variant_id"], "quantity": 1}],
                None,
                f"Table 1 - Invoice {index}",
                None,
            )
        finally:
            db.close()

    errors = run_in_threads(4, place_order)

    assert errors == []
    db = SessionFactory()
    try:
        sessions = (
            db.query(TableSession)
            .filter_by(table_id=ids["table_id"], status=SessionStatus.ACTIVE)
            .all()
        )
        assert len(sessions) == 1
        assert db.query(Order).count() == 4
        assert sessions[0].total_amount == Decimal("88000.00")
        assert StockLedger(db).get_quantity(ids["variant_id"]) == 1
        assert db.get(Table, ids["table_id"]).status == TableStatus.OCCUPIED
    finally:
        db.close()


def test_parallel_orders_never_oversell(file_db):
    SessionFactory, ids = file_db
    locks = KeyedLockManager(timeout_seconds=20)

    def place_order(index):
        db = SessionFactory()
        try:
            OrderService(db, locks=locks).create_order_and_notify_kitchen(
                ids["table_id"],
                [{"variant_id": ids["variant_id"], "quantity": 2}],
                None,
                "Table 1 - Invoice 1",
                None,
            )
        finally:
            db.close()

    errors = run_in_threads(4, place_order)

    # 5 units cover two orders of 2; the other two are rejected
    assert len(errors) == 2
    assert all(isinstance(error, ConflictError) for error in errors)
    db = SessionFactory()
    try:
        assert db.query(Order).count() == 2
        assert StockLedger(db).get_quantity(ids["variant_id"]) == 1
    finally:
        db.close()


def test_orders_on_different_tables_never_oversell(file_db, monkeypatch):
    SessionFactory, ids = file_db
    locks = KeyedLockManager(timeout_seconds=20)

    def place_order(db, table_id):
        OrderService(db, locks=locks).create_order_and_notify_kitchen(
            table_id,
            [{"variant_id": ids["variant_id"], "quantity": 1}],
            None,
            None,
            None,
        )

    db = SessionFactory()
    try:
        for table_id in ids["table_ids"]:
            place_order(db, table_id)
    finally:
        db.close()

    # Every thread reads the same stock row before any of them writes
    read_stock = StockLedger._locked_stock

    def slow_read(self, variant_id):
        stock = read_stock(self, variant_id)
        time.sleep(0.3)
        return stock

    monkeypatch.setattr(StockLedger, "_locked_stock", slow_read)

    def reorder(index):
        db = SessionFactory()
        try:
            place_order(db, ids["table_ids"][index])
        finally:
            db.close()

    errors = run_in_threads(3, reorder)

    # 2 units left after the first round; the third table is refused
    assert len(errors) == 1
    assert isinstance(errors[0], ConflictError)
    db = SessionFactory()
    try:
        assert db.query(Order).count() == 5
        assert StockLedger(db).get_quantity(ids["variant_id"]) == 0
    finally:
        db.close()


def test_busy_table_times_out(file_db):
    SessionFactory, ids = file_db
    locks = KeyedLockManager(timeout_seconds=0.05)
    db = SessionFactory()

    try:
        outcome = {}
        with locks.hold(table_lock_key(ids["table_id"])):

            def contender():
                try:
                    OrderService(db, locks=locks).create_order_and_notify_kitchen(
                        ids["table_id"],
                        [{"variant_id": ids["variant_id"], "quantity": 1}],
                        None,
                        "Table 1 - Invoice 1",
                        None,
                    )
                except ResourceBusyError as exc:
                    outcome["error"] = exc

            thread = threading.Thread(target=contender)
            thread.start()
            thread.join(timeout=5)

        error = outcome["error"]
        assert error.status_code == 503
        assert error.retryable
        assert error.error_code == "TABLE_BUSY"
        assert db.query(Order).count() == 0
    finally:
        db.close()
