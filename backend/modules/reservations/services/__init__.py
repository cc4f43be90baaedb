from .reservation_service import ReservationService

__all__ = [
    "ReservationService",
]
