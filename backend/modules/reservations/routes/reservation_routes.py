# backend/modules/reservations/routes/reservation_routes.py

"""
Reception API routes for reservations.
"""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from typing import Optional
from datetime import date, datetime

from core.database import get_db
from ..models.reservation_models import Reservation
from ..services.reservation_service import ReservationService
from ..schemas.reservation_schemas import (
    ReservationCreate,
    ReservationUpdate,
    ReservationAction,
    ReservationCancellation,
    TableAssignment,
    ReservationResponse,
    ReservationResult,
    ReservationListResponse,
    AvailabilityResponse,
    ReservationCodeResponse,
    TableAssignmentResponse,
)

router = APIRouter(prefix="/api/reservation", tags=["Reservations"])


def _result(reservation: Reservation, message: str) -> ReservationResult:
    return ReservationResult(
        message=message,
        reservation_id=reservation.id,
        reservation_code=reservation.reservation_code,
        reservation=ReservationResponse.model_validate(reservation),
    )


@router.post(
    "/create", response_model=ReservationResult, status_code=status.HTTP_201_CREATED
)
def create_reservation(request: ReservationCreate, db: Session = Depends(get_db)):
    """
    Create a reservation.

    - Validates phone number, arrival time and guest count
    - Holds the requested table when ``tableId`` is given
    - Records pre-ordered items without touching stock
    """
    reservation = ReservationService(db).create_reservation(request)
    return _result(reservation, "Reservation created")


@router.post("/update", response_model=ReservationResult)
def update_reservation(request: ReservationUpdate, db: Session = Depends(get_db)):
    reservation = ReservationService(db).update_reservation(request.reservation_id, request)
    return _result(reservation, "Reservation updated")


@router.post("/confirm", response_model=ReservationResult)
def confirm_reservation(request: ReservationAction, db: Session = Depends(get_db)):
    reservation = ReservationService(db).confirm_reservation(request.reservation_id)
    return _result(reservation, "Reservation confirmed")


@router.post("/confirm-arrival", response_model=ReservationResult)
def confirm_arrival(request: ReservationAction, db: Session = Depends(get_db)):
    """Seat the guests of a reservation"""
    reservation = ReservationService(db).confirm_arrival(request.reservation_id)
    return _result(reservation, "Guests seated")


@router.post("/cancel", response_model=ReservationResult)
def cancel_reservation(request: ReservationCancellation, db: Session = Depends(get_db)):
    reservation = ReservationService(db).cancel_reservation(
        request.reservation_id, request.reason
    )
    return _result(reservation, "Reservation cancelled")


@router.post("/assign-table", response_model=TableAssignmentResponse)
def assign_table(request: TableAssignment, db: Session = Depends(get_db)):
    ReservationService(db).assign_table(request.reservation_id, request.table_id)
    return TableAssignmentResponse(
        reservation_id=request.reservation_id, table_id=request.table_id
    )


@router.get("/availability", response_model=AvailabilityResponse)
def check_availability(
    arrival_time: datetime = Query(..., alias="arrivalTime"),
    number_of_guests: int = Query(..., alias="numberOfGuests"),
    db: Session = Depends(get_db),
):
    """Whether the currently free tables can seat the party"""
    available = ReservationService(db).validate_availability(arrival_time, number_of_guests)
    return AvailabilityResponse(
        message="Tables available" if available else "Not enough free seats",
        available=available,
        arrival_time=arrival_time,
        number_of_guests=number_of_guests,
    )


@router.get("/code", response_model=ReservationCodeResponse)
def generate_reservation_code(
    for_date: Optional[date] = Query(None, alias="date"),
    db: Session = Depends(get_db),
):
    return ReservationCodeResponse(
        reservation_code=ReservationService(db).generate_reservation_code(for_date)
    )


@router.get("/by-date", response_model=ReservationListResponse)
def get_reservations_by_date(
    for_date: Optional[date] = Query(None, alias="date"),
    db: Session = Depends(get_db),
):
    """Reservations arriving on the given day (today when omitted)"""
    for_date = for_date or date.today()
    reservations = ReservationService(db).get_reservations_by_date(for_date)
    return ReservationListResponse(
        arrival_date=for_date,
        reservations=[ReservationResponse.model_validate(r) for r in reservations],
    )
