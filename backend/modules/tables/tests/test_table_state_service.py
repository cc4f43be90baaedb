# backend/modules/tables/tests/test_table_state_service.py

"""
Tests for the table status mechanism and the transition policy.
"""

import uuid

import pytest

from core.exceptions import ValidationError
from modules.tables.models.table_models import TableStateLog, TableStatus
from modules.tables.services.table_state_service import (
    TableStateService,
    is_transition_allowed,
    parse_table_status,
)


class TestTransitionPolicy:
    @pytest.mark.parametrize(
        "current,new",
        [
            (TableStatus.AVAILABLE, TableStatus.OCCUPIED),
            (TableStatus.AVAILABLE, TableStatus.RESERVED),
            (TableStatus.AVAILABLE, TableStatus.MAINTENANCE),
            (TableStatus.OCCUPIED, TableStatus.AVAILABLE),
            (TableStatus.RESERVED, TableStatus.OCCUPIED),
            (TableStatus.RESERVED, TableStatus.AVAILABLE),
            (TableStatus.MAINTENANCE, TableStatus.AVAILABLE),
        ],
    )
    def test_allowed(self, current, new):
        assert is_transition_allowed(current, new)

    @pytest.mark.parametrize(
        "current,new",
        [
            (TableStatus.OCCUPIED, TableStatus.RESERVED),
            (TableStatus.OCCUPIED, TableStatus.MAINTENANCE),
            (TableStatus.MAINTENANCE, TableStatus.OCCUPIED),
            (TableStatus.MAINTENANCE, TableStatus.RESERVED),
            (TableStatus.RESERVED, TableStatus.MAINTENANCE),
        ],
    )
    def test_rejected(self, current, new):
        assert not is_transition_allowed(current, new)

    def test_parse_accepts_value_and_name(self):
        assert parse_table_status("Occupied") == TableStatus.OCCUPIED
        assert parse_table_status("MAINTENANCE") == TableStatus.MAINTENANCE
        assert parse_table_status(TableStatus.RESERVED) == TableStatus.RESERVED

    def test_parse_rejects_unknown_status(self):
        with pytest.raises(ValidationError) as exc_info:
            parse_table_status("Broken")
        assert "invalid table status" in str(exc_info.value)


class TestTableStateService:
    @pytest.fixture
    def service(self, db_session):
        return TableStateService(db_session)

    def test_update_status_persists_and_logs(self, service, db_session, restaurant):
        table = restaurant["table1"]

        assert service.update_status(table.id, TableStatus.MAINTENANCE, reason="Broken leg")

        db_session.refresh(table)
        assert table.status == TableStatus.MAINTENANCE
        log = db_session.query(TableStateLog).filter_by(table_id=table.id).one()
        assert log.previous_status == TableStatus.AVAILABLE
        assert log.new_status == TableStatus.MAINTENANCE
        assert log.reason == "Broken leg"

    def test_mechanism_applies_transitions_the_policy_forbids(
        self, service, db_session, restaurant
    ):
        table = restaurant["table1"]
        service.update_status(table.id, "Maintenance")

        assert not is_transition_allowed(TableStatus.MAINTENANCE, TableStatus.OCCUPIED)
        assert service.update_status(table.id, "Occupied")

        db_session.refresh(table)
        assert table.status == TableStatus.OCCUPIED

    def test_unknown_table_returns_false(self, service):
        assert service.update_status(uuid.uuid4(), TableStatus.AVAILABLE) is False

    def test_invalid_status_changes_nothing(self, service, db_session, restaurant):
        table = restaurant["table1"]

        with pytest.raises(ValidationError):
            service.update_status(table.id, "Dirty")

        db_session.refresh(table)
        assert table.status == TableStatus.AVAILABLE
        assert db_session.query(TableStateLog).count() == 0

    def test_same_status_is_not_logged(self, service, db_session, restaurant):
        assert service.update_status(restaurant["table1"].id, TableStatus.AVAILABLE)
        assert db_session.query(TableStateLog).count() == 0
