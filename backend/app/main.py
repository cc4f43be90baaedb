from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from core.config import get_settings
from core.exceptions import register_exception_handlers
from app.startup import configure_startup_logging, run_startup_checks

# ========== Cashier ==========
from modules.orders.routes.cashier_routes import router as cashier_router

# ========== Rooms & Tables ==========
from modules.tables.routes.room_table_routes import router as room_table_router

# ========== Reception ==========
from modules.reservations.routes.reservation_routes import router as reservation_router

configure_startup_logging()
settings = get_settings()

app = FastAPI(
    title="LiteFlow POS - Restaurant Operations API",
    description="""
    Order, table and reservation lifecycle for a single restaurant.

    ## Features

    * **Cashier**: place orders per table, notify the kitchen, check out
    * **Rooms & Tables**: room/table management and status overrides
    * **Reception**: reservations, table assignment and arrival
    """,
    version="1.0.0",
    debug=settings.debug,
)

# Register exception handlers
register_exception_handlers(app)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(cashier_router)
app.include_router(room_table_router)
app.include_router(reservation_router)


@app.on_event("startup")
async def startup_event():
    """Initialize the database schema and validate the environment"""
    run_startup_checks()


@app.get("/health", tags=["Health"])
def health():
    return {"success": True, "message": "OK", "environment": settings.environment}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
