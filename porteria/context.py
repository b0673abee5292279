# porteria/context.py
"""
Process-lifetime context.

Owns every shared resource of the station: the local engine and session
factory, the reservation bridge (with its own engine) and the master sync
reporter (with its HTTP client). Built once in the app lifespan, reached by
request handlers through app.state, released on shutdown.
"""

from dataclasses import dataclass, field
from typing import Optional

import httpx
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from porteria.config import Settings
from porteria.database import (build_local_engine, build_reservation_engine,
                               build_session_factory, create_tables, seed_categories)
from porteria.services.reservation_bridge import ReservationBridge
from porteria.services.sync_reporter import DeliveryOutbox, MasterSyncReporter
from porteria.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class AppContext:
    settings: Settings
    engine: Engine
    session_factory: sessionmaker
    reservations: ReservationBridge
    sync: MasterSyncReporter
    tasks: list = field(default_factory=list)

    @classmethod
    def build(cls, settings: Settings,
              reservation_engine: Optional[Engine] = None,
              transport: Optional[httpx.AsyncBaseTransport] = None,
              outbox: Optional[DeliveryOutbox] = None) -> "AppContext":
        engine = build_local_engine(settings.DATABASE_URL)
        create_tables(engine)
        session_factory = build_session_factory(engine)
        seeded = seed_categories(session_factory)
        if seeded:
            logger.info(f"Seeded {seeded} default categories")

        if reservation_engine is None:
            reservation_engine = build_reservation_engine(settings.RESERVATIONS_DATABASE_URL)
        reservations = ReservationBridge(
            reservation_engine,
            expired_state=settings.RESERVATION_EXPIRED_STATE,
            lookback_hours=settings.RESERVATION_LOOKBACK_HOURS,
        )
        sync = MasterSyncReporter(
            central_url=settings.CENTRAL_API_URL,
            master_url=settings.MASTER_API_URL,
            station_id=settings.STATION_ID,
            pull_timeout=settings.CENTRAL_PULL_TIMEOUT_SECONDS,
            push_timeout=settings.MASTER_PUSH_TIMEOUT_SECONDS,
            outbox=outbox,
            transport=transport,
        )
        return cls(settings=settings, engine=engine, session_factory=session_factory,
                   reservations=reservations, sync=sync)

    async def aclose(self):
        await self.sync.aclose()
        if self.reservations.engine is not None:
            self.reservations.engine.dispose()
        self.engine.dispose()
