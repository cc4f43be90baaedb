from .reservation_routes import router

__all__ = ["router"]
