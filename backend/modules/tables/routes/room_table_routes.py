# backend/modules/tables/routes/room_table_routes.py

"""
Room and table management API.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from uuid import UUID

from core.database import get_db
from core.exceptions import NotFoundError
from ..models.table_models import Room, Table
from ..services.room_table_service import RoomTableService
from ..schemas.table_schemas import (
    RoomCreate,
    RoomUpdate,
    RoomResponse,
    RoomResult,
    RoomListResult,
    TableCreate,
    TableUpdate,
    TableResponse,
    TableResult,
    TableListResult,
    TableStatusUpdate,
    RoomCapacityUsage,
    RoomTableStats,
)

router = APIRouter(prefix="/api/room-table", tags=["Rooms & Tables"])


def _room_or_404(service: RoomTableService, room_id: UUID) -> Room:
    room = service.get_room_by_id(room_id)
    if room is None:
        raise NotFoundError("room not found", error_code="ROOM_NOT_FOUND")
    return room


def _table_or_404(service: RoomTableService, table_id: UUID) -> Table:
    table = service.get_table_by_id(table_id)
    if table is None:
        raise NotFoundError("table not found", error_code="TABLE_NOT_FOUND")
    return table


# Rooms


@router.get("/rooms", response_model=RoomListResult)
def list_rooms(db: Session = Depends(get_db)):
    rooms = RoomTableService(db).get_all_rooms()
    return RoomListResult(rooms=[RoomResponse.model_validate(room) for room in rooms])


@router.post("/rooms", response_model=RoomResult, status_code=status.HTTP_201_CREATED)
def create_room(request: RoomCreate, db: Session = Depends(get_db)):
    room = Room(**request.model_dump())
    RoomTableService(db).add_room(room)
    return RoomResult(message="Room created", room=RoomResponse.model_validate(room))


@router.get("/rooms/{room_id}", response_model=RoomResult)
def get_room(room_id: UUID, db: Session = Depends(get_db)):
    room = _room_or_404(RoomTableService(db), room_id)
    return RoomResult(message="OK", room=RoomResponse.model_validate(room))


@router.put("/rooms/{room_id}", response_model=RoomResult)
def update_room(room_id: UUID, request: RoomUpdate, db: Session = Depends(get_db)):
    service = RoomTableService(db)
    if not service.update_room(Room(id=room_id, **request.model_dump())):
        raise NotFoundError("room not found", error_code="ROOM_NOT_FOUND")
    room = service.get_room_by_id(room_id)
    return RoomResult(message="Room updated", room=RoomResponse.model_validate(room))


@router.delete("/rooms/{room_id}", response_model=RoomResult)
def delete_room(room_id: UUID, db: Session = Depends(get_db)):
    if not RoomTableService(db).delete_room(room_id):
        raise NotFoundError("room not found", error_code="ROOM_NOT_FOUND")
    return RoomResult(message="Room deleted")


@router.get("/rooms/{room_id}/tables", response_model=TableListResult)
def list_room_tables(room_id: UUID, db: Session = Depends(get_db)):
    service = RoomTableService(db)
    _room_or_404(service, room_id)
    tables = service.get_tables_by_room_id(room_id)
    return TableListResult(tables=[TableResponse.model_validate(t) for t in tables])


@router.get("/rooms/{room_id}/capacity", response_model=RoomCapacityUsage)
def get_room_capacity(room_id: UUID, db: Session = Depends(get_db)):
    """Declared room limits against the active tables currently in the room"""
    return RoomCapacityUsage(**RoomTableService(db).get_room_capacity_usage(room_id))


# Tables


@router.get("/tables", response_model=TableListResult)
def list_tables(db: Session = Depends(get_db)):
    tables = RoomTableService(db).get_all_tables()
    return TableListResult(tables=[TableResponse.model_validate(t) for t in tables])


@router.post("/tables", response_model=TableResult, status_code=status.HTTP_201_CREATED)
def create_table(request: TableCreate, db: Session = Depends(get_db)):
    table = Table(**request.model_dump())
    RoomTableService(db).add_table(table)
    return TableResult(message="Table created", table=TableResponse.model_validate(table))


@router.get("/tables/{table_id}", response_model=TableResult)
def get_table(table_id: UUID, db: Session = Depends(get_db)):
    table = _table_or_404(RoomTableService(db), table_id)
    return TableResult(message="OK", table=TableResponse.model_validate(table))


@router.put("/tables/{table_id}", response_model=TableResult)
def update_table(table_id: UUID, request: TableUpdate, db: Session = Depends(get_db)):
    service = RoomTableService(db)
    if not service.update_table(Table(id=table_id, **request.model_dump())):
        raise NotFoundError("table not found", error_code="TABLE_NOT_FOUND")
    table = service.get_table_by_id(table_id)
    return TableResult(message="Table updated", table=TableResponse.model_validate(table))


@router.delete("/tables/{table_id}", response_model=TableResult)
def delete_table(table_id: UUID, db: Session = Depends(get_db)):
    """Soft-deletes tables with session history, removes the rest"""
    if not RoomTableService(db).delete_table(table_id):
        raise NotFoundError("table not found", error_code="TABLE_NOT_FOUND")
    return TableResult(message="Table deleted")


@router.put("/tables/{table_id}/status", response_model=TableResult)
def update_table_status(
    table_id: UUID, request: TableStatusUpdate, db: Session = Depends(get_db)
):
    """Staff override; any of the four statuses is applied as given"""
    service = RoomTableService(db)
    table = _table_or_404(service, table_id)
    service.update_table_status(table_id, request.status, request.reason)
    return TableResult(
        message=f"Table {table.table_number} is {table.status.value}",
        table=TableResponse.model_validate(table),
    )


@router.get("/stats", response_model=RoomTableStats)
def get_stats(db: Session = Depends(get_db)):
    service = RoomTableService(db)
    return RoomTableStats(
        total_rooms=service.get_total_rooms(),
        total_tables=service.get_total_tables(),
        available_tables=service.get_available_tables(),
        occupied_tables=service.get_occupied_tables(),
    )
