"""
Application startup validation and initialization.

Creates the schema when missing and checks that the database is reachable
before the app serves requests.
"""

import logging
import sys
from typing import List, Tuple

from sqlalchemy import inspect, text

from core.config import get_settings
from core.database import engine, init_db

logger = logging.getLogger(__name__)

REQUIRED_TABLES = [
    "rooms",
    "tables",
    "table_sessions",
    "orders",
    "order_details",
    "product_stocks",
    "reservations",
]


class StartupValidator:
    """Validates application startup requirements"""

    def __init__(self, bind=None):
        self.bind = bind or engine
        self.errors: List[str] = []
        self.warnings: List[str] = []

    def check_database_connection(self) -> bool:
        """Check database connectivity"""
        try:
            with self.bind.connect() as conn:
                conn.execute(text("SELECT 1")).fetchone()
            logger.info("Database connection successful")
            return True
        except Exception as e:
            self.errors.append(f"Database connection failed: {str(e)}")
            return False

    def check_required_tables(self) -> bool:
        """Check if required database tables exist"""
        existing = set(inspect(self.bind).get_table_names())
        missing = [name for name in REQUIRED_TABLES if name not in existing]
        if missing:
            self.errors.append(f"Missing tables: {', '.join(missing)}")
            return False
        return True

    def check_settings(self) -> bool:
        settings = get_settings()
        if settings.is_production and settings.database_url.startswith("sqlite"):
            self.warnings.append("SQLite in production serializes all writers")
        if not settings.enforce_room_limits:
            self.warnings.append("Room limits are advisory (ENFORCE_ROOM_LIMITS is off)")
        return True

    def validate_all(self) -> Tuple[bool, List[str], List[str]]:
        """Run all validation checks"""
        checks = [
            ("Settings", self.check_settings),
            ("Database Connection", self.check_database_connection),
            ("Database Tables", self.check_required_tables),
        ]

        all_passed = True

        for check_name, check_func in checks:
            logger.info(f"Running check: {check_name}")
            try:
                if not check_func():
                    all_passed = False
            except Exception as e:
                self.errors.append(f"{check_name} check failed with error: {str(e)}")
                all_passed = False

        return all_passed, self.errors, self.warnings


def run_startup_checks(bind=None) -> Tuple[bool, List[str]]:
    """Create missing tables, then run all startup validation checks"""
    settings = get_settings()
    logger.info(f"Starting LiteFlow POS backend ({settings.environment})")

    init_db(bind)

    validator = StartupValidator(bind)
    passed, errors, warnings = validator.validate_all()

    for warning in warnings:
        logger.warning(f"Startup warning: {warning}")
    for error in errors:
        logger.error(f"Startup error: {error}")

    if not passed and settings.is_production:
        logger.error("Cannot start in production with errors!")
        sys.exit(1)
    elif not passed:
        logger.warning("Starting in development mode despite errors")
    else:
        logger.info("All startup checks passed")

    return passed, warnings


def configure_startup_logging():
    """Configure logging for startup"""
    settings = get_settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
