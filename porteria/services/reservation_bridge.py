# porteria/services/reservation_bridge.py
"""
Bridge to the web reservations database.

The `reservas` table belongs to the booking site. This station only reads it
and performs narrow, guarded state updates:

  Pendiente ──check-in──▶ En Sitio ──payment──▶ Finalizada
      ├──operator release──▶ Cancelada
      └──expiry sweep──────▶ <RESERVATION_EXPIRED_STATE>

Every UPDATE is conditioned on the expected current state, so a transition
never skips or overwrites a state set by the booking site. Nothing here is
transactional with the local store: callers commit locally first and then
call the bridge, which swallows remote failures on the best-effort paths.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import Column, DateTime, Float, MetaData, String, Table, func, select, text, update
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from porteria.exceptions import NotFoundError, RemoteUnavailableError
from porteria.services.category_vocabulary import display_label, resolve_category_id
from porteria.utils import clock
from porteria.utils.logger import get_logger
from porteria.utils.plates import normalize_plate

logger = get_logger(__name__)


class ReservationState:
    PENDING = "Pendiente"
    ON_SITE = "En Sitio"
    FINALIZED = "Finalizada"
    CANCELLED = "Cancelada"


# Foreign table: declared for query building only, never created or altered here.
foreign_metadata = MetaData()
reservas = Table(
    "reservas",
    foreign_metadata,
    Column("id_reserva", String(50), primary_key=True),
    Column("placa", String(20)),
    Column("tipo_vehiculo", String(50)),
    Column("color", String(30)),
    Column("fecha_registro", DateTime),
    Column("fecha_expiracion", DateTime),
    Column("estado", String(20)),
    Column("total_pagado", Float),
)

_normalized_plate = func.replace(func.replace(func.upper(reservas.c.placa), "-", ""), " ", "")


@dataclass
class ReservationMatch:
    id_reserva: str
    placa: str
    categoria: Optional[str]        # booth label, e.g. "Carro"
    categoria_id: Optional[str]     # local category id, e.g. "liviano"
    color: Optional[str]
    fecha_reserva: Optional[datetime]


class ReservationBridge:
    def __init__(self, engine: Optional[Engine], expired_state: str = "Expirada",
                 lookback_hours: int = 2):
        self.engine = engine
        self.expired_state = expired_state
        self.lookback = timedelta(hours=lookback_hours)

    @property
    def available(self) -> bool:
        return self.engine is not None

    def _require_engine(self) -> Engine:
        if self.engine is None:
            raise RemoteUnavailableError("Módulo de reservas no disponible")
        return self.engine

    # ── Reads ────────────────────────────────────────────────────────────
    def find_pending_by_plate(self, plate: str) -> Optional[ReservationMatch]:
        """Most recent Pendiente reservation for the plate created within the lookback window."""
        engine = self._require_engine()
        normalized = normalize_plate(plate)
        cutoff = clock.now() - self.lookback
        stmt = (
            select(reservas.c.id_reserva, reservas.c.placa, reservas.c.tipo_vehiculo,
                   reservas.c.color, reservas.c.fecha_registro)
            .where(_normalized_plate == normalized)
            .where(reservas.c.estado == ReservationState.PENDING)
            .where(reservas.c.fecha_registro >= cutoff)
            .order_by(reservas.c.fecha_registro.desc())
            .limit(1)
        )
        try:
            with engine.connect() as conn:
                row = conn.execute(stmt).first()
        except SQLAlchemyError as e:
            logger.warning(f"[RESERVAS] Lookup for {normalized} failed: {e}")
            raise RemoteUnavailableError("Módulo de reservas no disponible")

        if row is None:
            return None
        return ReservationMatch(
            id_reserva=str(row.id_reserva),
            placa=row.placa,
            categoria=display_label(row.tipo_vehiculo),
            categoria_id=resolve_category_id(row.tipo_vehiculo),
            color=row.color,
            fecha_reserva=row.fecha_registro,
        )

    def list_pending(self) -> list[dict]:
        engine = self._require_engine()
        stmt = (
            select(reservas.c.id_reserva, reservas.c.placa, reservas.c.tipo_vehiculo,
                   reservas.c.fecha_registro, reservas.c.fecha_expiracion)
            .where(reservas.c.estado == ReservationState.PENDING)
            .order_by(reservas.c.fecha_registro.asc())
        )
        try:
            with engine.connect() as conn:
                rows = conn.execute(stmt).all()
        except SQLAlchemyError as e:
            logger.warning(f"[RESERVAS] Pending list failed: {e}")
            raise RemoteUnavailableError("Módulo de reservas no disponible")
        return [
            {
                "id_reserva": str(r.id_reserva),
                "placa": r.placa,
                "tipo_vehiculo": r.tipo_vehiculo,
                "categoria": display_label(r.tipo_vehiculo),
                "fecha_registro": r.fecha_registro,
                "fecha_expiracion": r.fecha_expiracion,
            }
            for r in rows
        ]

    # ── Guarded transitions ──────────────────────────────────────────────
    def _transition(self, reservation_id, from_states: tuple, values: dict) -> int:
        engine = self._require_engine()
        stmt = (
            update(reservas)
            .where(reservas.c.id_reserva == str(reservation_id))
            .where(reservas.c.estado.in_(from_states))
            .values(**values)
        )
        with engine.begin() as conn:
            return conn.execute(stmt).rowcount

    def _best_effort(self, action: str, reservation_id, from_states: tuple, values: dict) -> bool:
        if reservation_id is None or self.engine is None:
            return False
        try:
            changed = self._transition(reservation_id, from_states, values)
        except SQLAlchemyError as e:
            logger.warning(f"[RESERVAS] {action} for reservation {reservation_id} failed: {e}")
            return False
        if not changed:
            logger.info(f"[RESERVAS] {action}: reservation {reservation_id} not in {from_states}, left untouched")
        return bool(changed)

    def mark_on_site(self, reservation_id) -> bool:
        """Check-in side effect. Best effort."""
        return self._best_effort("On-site", reservation_id, (ReservationState.PENDING,),
                                 {"estado": ReservationState.ON_SITE})

    def mark_finalized(self, reservation_id, amount: float) -> bool:
        """
        Payment side effect. Best effort. Also accepts a reservation still
        Pendiente, for when the on-site update was lost while the store was down.
        """
        return self._best_effort("Finalize", reservation_id,
                                 (ReservationState.PENDING, ReservationState.ON_SITE),
                                 {"estado": ReservationState.FINALIZED, "total_pagado": amount})

    def release(self, reservation_id) -> bool:
        """
        Operator cancellation of a Pendiente reservation.
        Returns True when it was cancelled now, False when it was already past
        Pendiente. Raises NotFoundError for an unknown id.
        """
        try:
            changed = self._transition(reservation_id, (ReservationState.PENDING,),
                                       {"estado": ReservationState.CANCELLED})
            if changed:
                logger.info(f"[RESERVAS] Reservation {reservation_id} cancelled by operator")
                return True
            with self.engine.connect() as conn:
                exists = conn.execute(
                    select(reservas.c.estado).where(reservas.c.id_reserva == str(reservation_id))
                ).first()
        except SQLAlchemyError as e:
            logger.warning(f"[RESERVAS] Release of {reservation_id} failed: {e}")
            raise RemoteUnavailableError("Módulo de reservas no disponible")
        if exists is None:
            raise NotFoundError(f"Reserva {reservation_id} no existe")
        return False

    def expire_overdue(self, now: Optional[datetime] = None) -> int:
        """Move every Pendiente reservation whose expiry has passed to the expired state."""
        if self.engine is None:
            return 0
        now = now or clock.now()
        stmt = (
            update(reservas)
            .where(reservas.c.estado == ReservationState.PENDING)
            .where(reservas.c.fecha_expiracion.is_not(None))
            .where(reservas.c.fecha_expiracion < now)
            .values(estado=self.expired_state)
        )
        try:
            with self.engine.begin() as conn:
                expired = conn.execute(stmt).rowcount
        except SQLAlchemyError as e:
            logger.error(f"[RESERVAS] Expiry sweep failed: {e}")
            return 0
        if expired:
            logger.info(f"[RESERVAS] {expired} overdue reservations set to '{self.expired_state}'")
        return expired

    def ping(self) -> bool:
        if self.engine is None:
            return False
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            return True
        except SQLAlchemyError:
            return False
