# backend/modules/tables/__init__.py

from .models.table_models import Room, Table, TableStateLog, TableStatus

from .services.table_state_service import (
    TableStateService,
    ALLOWED_TABLE_TRANSITIONS,
    is_transition_allowed,
)
from .services.room_table_service import RoomTableService

__all__ = [
    # Models
    "Room", "Table", "TableStateLog", "TableStatus",

    # Services
    "TableStateService", "RoomTableService",
    "ALLOWED_TABLE_TRANSITIONS", "is_transition_allowed",
]
