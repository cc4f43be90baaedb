# backend/core/database.py

from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from .config import get_settings

Base = declarative_base()


def create_db_engine(database_url: str, echo: bool = False):
    """Build an engine for ``database_url`` with pool settings suited to the backend."""
    settings = get_settings()
    engine_kwargs = {
        "echo": echo,
        "pool_pre_ping": True,
    }

    if database_url.startswith("sqlite"):
        engine_kwargs["connect_args"] = {"check_same_thread": False}
        if database_url in {"sqlite://", "sqlite:///:memory:"}:
            engine_kwargs["poolclass"] = StaticPool
    else:
        engine_kwargs["pool_size"] = settings.db_pool_size
        engine_kwargs["max_overflow"] = settings.db_max_overflow

    return create_engine(database_url, **engine_kwargs)


def create_session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


_settings = get_settings()
engine = create_db_engine(_settings.database_url, echo=_settings.log_sql_queries)
SessionLocal = create_session_factory(engine)


def init_db(bind=None):
    """Create all tables known to ``Base`` on ``bind`` (defaults to the app engine)."""
    # Register every model with the metadata before creating tables
    import modules.inventory.models.stock_models  # noqa: F401
    import modules.tables.models.table_models  # noqa: F401
    import modules.orders.models.order_models  # noqa: F401
    import modules.reservations.models.reservation_models  # noqa: F401

    Base.metadata.create_all(bind=bind or engine)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
