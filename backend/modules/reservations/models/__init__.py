from .reservation_models import (
    Reservation,
    ReservationItem,
    ReservationStatus,
)

__all__ = [
    "Reservation",
    "ReservationItem",
    "ReservationStatus",
]
