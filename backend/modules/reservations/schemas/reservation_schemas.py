# backend/modules/reservations/schemas/reservation_schemas.py

"""
Pydantic schemas for the reception (reservation) API.

Booking rules (phone format, future arrival, guest count) are enforced by
``ReservationService`` so that callers get the same messages from the API
and from the service.
"""

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from datetime import date, datetime
from typing import Optional, List
from uuid import UUID

from ..models.reservation_models import ReservationStatus


class ReceptionModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, from_attributes=True
    )


class PreOrderedItem(ReceptionModel):
    """Item the guest wants ready on arrival"""

    variant_id: UUID = Field(
        ..., validation_alias=AliasChoices("variantId", "productId", "variant_id")
    )
    quantity: int = 1
    note: Optional[str] = Field(None, max_length=255)


class ReservationCreate(ReceptionModel):
    """Schema for creating a new reservation"""

    customer_name: str = Field(..., max_length=150)
    customer_phone: Optional[str] = None
    customer_email: Optional[str] = Field(None, max_length=150)
    arrival_time: datetime
    number_of_guests: int
    room_id: Optional[UUID] = None
    table_id: Optional[UUID] = None
    notes: Optional[str] = None
    pre_ordered_items: List[PreOrderedItem] = []


class ReservationUpdate(ReceptionModel):
    """Schema for updating a reservation; only the fields sent are changed"""

    reservation_id: UUID
    customer_name: Optional[str] = Field(None, max_length=150)
    customer_phone: Optional[str] = None
    customer_email: Optional[str] = Field(None, max_length=150)
    arrival_time: Optional[datetime] = None
    number_of_guests: Optional[int] = None
    notes: Optional[str] = None
    pre_ordered_items: Optional[List[PreOrderedItem]] = None


class ReservationAction(ReceptionModel):
    reservation_id: UUID


class ReservationCancellation(ReceptionModel):
    reservation_id: UUID
    reason: Optional[str] = Field(None, max_length=500)


class TableAssignment(ReceptionModel):
    reservation_id: UUID
    table_id: UUID


class ReservationItemResponse(ReceptionModel):
    variant_id: UUID
    quantity: int
    note: Optional[str] = None


class ReservationResponse(ReceptionModel):
    """Schema for reservation response"""

    id: UUID
    reservation_code: str
    customer_name: str
    customer_phone: str
    customer_email: Optional[str] = None
    arrival_time: datetime
    number_of_guests: int
    status: ReservationStatus
    table_id: Optional[UUID] = None
    room_id: Optional[UUID] = None
    notes: Optional[str] = None
    cancellation_reason: Optional[str] = None
    confirmed_at: Optional[datetime] = None
    seated_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    items: List[ReservationItemResponse] = []


class ReservationResult(ReceptionModel):
    success: bool = True
    message: str
    reservation_id: UUID
    reservation_code: str
    reservation: ReservationResponse


class ReservationListResponse(ReceptionModel):
    success: bool = True
    message: str = "OK"
    arrival_date: date
    reservations: List[ReservationResponse]


class AvailabilityResponse(ReceptionModel):
    success: bool = True
    message: str
    available: bool
    arrival_time: datetime
    number_of_guests: int


class ReservationCodeResponse(ReceptionModel):
    success: bool = True
    message: str = "OK"
    reservation_code: str


class TableAssignmentResponse(ReceptionModel):
    success: bool = True
    message: str = "Table assigned"
    reservation_id: UUID
    table_id: UUID
