# backend/modules/tables/schemas/table_schemas.py

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from typing import Optional, List
from datetime import datetime
from uuid import UUID

from ..models.table_models import TableStatus


class RoomTableModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, from_attributes=True
    )


# Room schemas
class RoomBase(RoomTableModel):
    name: str = Field(..., max_length=100)
    description: Optional[str] = None
    table_count: int
    total_capacity: int


class RoomCreate(RoomBase):
    pass


class RoomUpdate(RoomBase):
    pass


class RoomResponse(RoomBase):
    id: UUID
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


# Table schemas
class TableBase(RoomTableModel):
    table_number: str = Field(..., max_length=20)
    table_name: Optional[str] = Field(None, max_length=50)
    capacity: int
    room_id: UUID


class TableCreate(TableBase):
    pass


class TableUpdate(TableBase):
    pass


class TableResponse(TableBase):
    id: UUID
    status: TableStatus
    is_active: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class TableStatusUpdate(RoomTableModel):
    # Free text so an unknown status is reported as an invalid table status
    status: str
    reason: Optional[str] = Field(None, max_length=255)


# Envelopes
class RoomResult(RoomTableModel):
    success: bool = True
    message: str
    room: Optional[RoomResponse] = None


class RoomListResult(RoomTableModel):
    success: bool = True
    message: str = "OK"
    rooms: List[RoomResponse]


class TableResult(RoomTableModel):
    success: bool = True
    message: str
    table: Optional[TableResponse] = None


class TableListResult(RoomTableModel):
    success: bool = True
    message: str = "OK"
    tables: List[TableResponse]


class RoomCapacityUsage(RoomTableModel):
    success: bool = True
    message: str = "OK"
    room_id: UUID
    declared_table_count: int
    declared_total_capacity: int
    current_table_count: int
    current_total_capacity: int


class RoomTableStats(RoomTableModel):
    success: bool = True
    message: str = "OK"
    total_rooms: int
    total_tables: int
    available_tables: int
    occupied_tables: int
