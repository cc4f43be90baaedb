# backend/modules/tables/services/table_state_service.py

"""
Table status mechanism and transition policy.

``TableStateService`` stores whatever structurally valid status it is given;
it does not decide whether a transition is appropriate right now. That
decision belongs to the callers (order coordinator, reservation allocator,
staff override), which consult :func:`is_transition_allowed`.
"""

import logging
from typing import Dict, FrozenSet, Optional, Union
from uuid import UUID

from sqlalchemy.orm import Session

from core.exceptions import ValidationError
from ..models.table_models import Table, TableStateLog, TableStatus

logger = logging.getLogger(__name__)


ALLOWED_TABLE_TRANSITIONS: Dict[TableStatus, FrozenSet[TableStatus]] = {
    TableStatus.AVAILABLE: frozenset(
        {TableStatus.OCCUPIED, TableStatus.RESERVED, TableStatus.MAINTENANCE}
    ),
    TableStatus.OCCUPIED: frozenset({TableStatus.AVAILABLE}),
    TableStatus.RESERVED: frozenset({TableStatus.AVAILABLE, TableStatus.OCCUPIED}),
    TableStatus.MAINTENANCE: frozenset({TableStatus.AVAILABLE}),
}


def is_transition_allowed(current: TableStatus, new: TableStatus) -> bool:
    """Business policy: may a table move from ``current`` to ``new``?"""
    if current == new:
        return True
    return new in ALLOWED_TABLE_TRANSITIONS.get(current, frozenset())


def parse_table_status(value: Union[str, TableStatus]) -> TableStatus:
    """Accept a ``TableStatus``, its value ("Available") or its name ("AVAILABLE")"""
    if isinstance(value, TableStatus):
        return value
    if isinstance(value, str):
        candidate = value.strip()
        for status in TableStatus:
            if candidate == status.value or candidate == status.name:
                return status
    raise ValidationError(f"invalid table status: {value}")


class TableStateService:
    """Owns table occupancy status writes"""

    def __init__(self, db: Session):
        self.db = db

    def get_table(self, table_id: UUID, for_update: bool = False) -> Optional[Table]:
        query = self.db.query(Table).filter(Table.id == table_id)
        if for_update:
            query = query.with_for_update()
        return query.first()

    def apply_status(
        self,
        table: Table,
        new_status: TableStatus,
        reason: Optional[str] = None,
    ) -> None:
        """Set ``table.status`` and log the change inside the current transaction"""
        if table.status == new_status:
            return

        self.db.add(
            TableStateLog(
                table_id=table.id,
                previous_status=table.status,
                new_status=new_status,
                reason=reason,
            )
        )
        logger.info(
            f"Table {table.table_number} status {table.status.value if table.status else None}"
            f" -> {new_status.value} ({reason or 'no reason'})"
        )
        table.status = new_status

    def update_status(
        self,
        table_id: UUID,
        new_status: Union[str, TableStatus],
        reason: Optional[str] = None,
    ) -> bool:
        """
        Persist a new status for a table.

        Returns False when the table does not exist. Any structurally valid
        status is applied; transition legality is the caller's concern.
        """
        status = parse_table_status(new_status)

        table = self.get_table(table_id, for_update=True)
        if table is None:
            logger.warning(f"Status update for unknown table {table_id}")
            return False

        try:
            self.apply_status(table, status, reason=reason or "Manual status update")
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        return True
