# porteria/database.py
"""
Database engines, session management, and table creation.

Two stores are involved:
  - the local embedded store (SQLite by default) owned by this station
  - the web reservations store (MySQL), owned by the booking site; only
    engine construction lives here, its table is never created or altered.

Engines are built by AppContext at startup and handed to FastAPI through
app.state, so get_db() always yields a session bound to the live context.
"""

from typing import Optional

from fastapi import Request
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

Base = declarative_base()

# Official categories: (id, nombre, tarifa_minuto, tarifa_hora, capacidad_max, prefijo)
DEFAULT_CATEGORIES = [
    ("moto", "Motos", 50, 3000, 50, "M"),
    ("liviano", "Livianos", 100, 5000, 30, "L"),
    ("otros", "Otros", 150, 7000, 10, "X"),
]


def _sqlite_engine(url: str) -> Engine:
    kwargs = {"connect_args": {"check_same_thread": False}}
    if url in ("sqlite://", "sqlite:///:memory:"):
        kwargs["poolclass"] = StaticPool   # one shared in-memory DB
    return create_engine(url, **kwargs)


def build_local_engine(url: str) -> Engine:
    """Engine for the station's own store. SQLite is shared across the request threadpool."""
    if url.startswith("sqlite"):
        return _sqlite_engine(url)
    return create_engine(
        url,
        pool_pre_ping=True,          # Auto-reconnect if DB connection drops
        pool_size=10,
        max_overflow=20,
        echo=False,
    )


def build_reservation_engine(url: Optional[str]) -> Optional[Engine]:
    """Engine for the foreign reservations DB, or None when the module is not configured."""
    if not url:
        return None
    if url.startswith("sqlite"):
        return _sqlite_engine(url)
    return create_engine(
        url,
        pool_pre_ping=True,
        pool_size=10,
        max_overflow=0,
        pool_recycle=1800,           # MySQL drops idle connections
        connect_args={"connect_timeout": 3},
    )


def build_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_context(request: Request):
    """FastAPI dependency: the process-lifetime AppContext."""
    return request.app.state.context


def get_db(request: Request):
    """FastAPI dependency: yields a DB session and closes it after request."""
    db = request.app.state.context.session_factory()
    try:
        yield db
    finally:
        db.close()


def create_tables(engine: Engine):
    """
    Creates all local tables. Safe to call multiple times.
    Import all models here so SQLAlchemy knows about them.
    """
    from porteria.models.user import User                    # noqa
    from porteria.models.category import Category            # noqa
    from porteria.models.shift import Shift                  # noqa
    from porteria.models.vehicle_record import VehicleRecord  # noqa

    Base.metadata.create_all(bind=engine)


def seed_categories(session_factory: sessionmaker) -> int:
    """Insert the official categories that are missing. Existing rows (and central tariffs) are kept."""
    from porteria.models.category import Category

    db = session_factory()
    try:
        existing = {row[0] for row in db.query(Category.id).all()}
        created = 0
        for cat_id, nombre, minuto, hora, capacidad, prefijo in DEFAULT_CATEGORIES:
            if cat_id in existing:
                continue
            db.add(Category(id=cat_id, nombre=nombre, tarifa_minuto=minuto, tarifa_hora=hora,
                            capacidad_max=capacidad, prefijo=prefijo))
            created += 1
        db.commit()
        return created
    finally:
        db.close()
