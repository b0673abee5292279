# porteria/services/sync_reporter.py
"""
Master sync reporter.

Pull (startup):  GET {central}/tarifas and {central}/usuarios with a short
                 timeout; on any failure the station keeps its local data.
Push (always):   POST {master}/sincronizar-movimiento   after check-in / payment
                 POST {master}/actualizar-estado-patio  after every mutation + timer
                 POST {master}/reportar-cierre          on shift close

Pushes are fire-and-forget with an at-most-once contract: no retry, no queue.
A push that fails is handed to the DeliveryOutbox, whose default implementation
logs it and drops it. The master is observational; local state is never rolled
back because of it.
"""

import asyncio
import time
from abc import ABC, abstractmethod
from typing import Optional

import httpx
import requests
from fastapi.encoders import jsonable_encoder
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from porteria.models.shift import Shift
from porteria.models.vehicle_record import VehicleRecord
from porteria.services import auth_service, occupancy_service, record_service
from porteria.services.fee_calculator import billable_minutes
from porteria.utils import clock
from porteria.utils.logger import get_logger

logger = get_logger(__name__)

MOVEMENT_PATH = "sincronizar-movimiento"
LIVE_STATUS_PATH = "actualizar-estado-patio"
CLOSURE_PATH = "reportar-cierre"


class DeliveryOutbox(ABC):
    """Receives every push the master did not accept."""

    @abstractmethod
    def record_failure(self, path: str, payload: dict, error: str):
        ...


class DiscardOutbox(DeliveryOutbox):
    def record_failure(self, path: str, payload: dict, error: str):
        logger.warning(f"[SYNC] Push to /{path} dropped: {error}")


# ── Payloads ─────────────────────────────────────────────────────────────────
def movement_payload(record: VehicleRecord, operator: str, station_id: str) -> dict:
    payload = {
        "id": record.id,
        "placa": record.placa,
        "tipo_vehiculo": record.categoria_id,
        "puesto": record.puesto,
        "estado": record.estado,
        "entrada": record.entrada,
        "usuario_nombre": operator,
        "porteria_id": station_id,
    }
    if record.salida is not None:
        payload.update({
            "salida": record.salida,
            "total_pagado": record.total_pagado,
            "metodo_pago": record.metodo_pago,
            "duracion_minutos": billable_minutes(record.entrada, record.salida),
        })
    return payload


def closure_payload(shift: Shift, summary: dict, operator: str) -> dict:
    return {
        "porteria_turno_id": shift.id,
        "usuario_nombre": operator,
        "hora_apertura": shift.hora_apertura,
        "hora_cierre": shift.hora_cierre,
        "base_inicial": shift.base_inicial,
        "total_efectivo_sistema": summary["total_efectivo"],
        "total_digital_sistema": summary["total_digital"],
        "total_efectivo_reportado": summary["total_efectivo"],
        "total_digital_reportado": summary["total_digital"],
        "vehiculos_ingresados": summary["vehiculos_ingresados"],
        "vehiculos_salidos": summary["vehiculos_salidos"],
        "observaciones": "Cierre desde Portería Local",
    }


def _live_snapshot(session_factory: sessionmaker) -> dict:
    db = session_factory()
    try:
        return occupancy_service.live_snapshot(db)
    finally:
        db.close()


def _mark_synced(session_factory: sessionmaker, record_id: int):
    db = session_factory()
    try:
        record_service.mark_synced(db, record_id)
    finally:
        db.close()


class MasterSyncReporter:
    def __init__(self, central_url: str, master_url: str, station_id: str,
                 pull_timeout: float = 3.0, push_timeout: float = 5.0,
                 outbox: Optional[DeliveryOutbox] = None,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self.central_url = central_url.rstrip("/")
        self.master_url = master_url.rstrip("/")
        self.station_id = station_id
        self.pull_timeout = pull_timeout
        self.outbox = outbox or DiscardOutbox()
        self.client = httpx.AsyncClient(timeout=push_timeout, transport=transport)

    # ── Pull ─────────────────────────────────────────────────────────────
    def pull_from_central(self, session_factory: sessionmaker) -> bool:
        """Refresh tariffs and operators from the central server. Never raises."""
        deadline = time.monotonic() + self.pull_timeout

        def _get(path: str):
            # Both calls share one overall budget
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                raise requests.exceptions.Timeout(f"Pull budget of {self.pull_timeout}s spent before /{path}")
            return requests.get(f"{self.central_url}/{path}", timeout=remaining)

        db = session_factory()
        try:
            resp = _get("tarifas")
            resp.raise_for_status()
            tariffs = resp.json()
            if isinstance(tariffs, dict):
                occupancy_service.apply_tariffs(db, tariffs)

            resp = _get("usuarios")
            resp.raise_for_status()
            users = resp.json()
            if isinstance(users, list):
                auth_service.upsert_users(db, users)
        except requests.exceptions.RequestException as e:
            logger.warning(f"[SINCRO] Servidor central no disponible: {e}")
            return False
        except ValueError as e:
            logger.warning(f"[SINCRO] Respuesta inválida del servidor central: {e}")
            return False
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"[SINCRO] Could not store central data locally: {e}")
            return False
        finally:
            db.close()
        logger.info("[SINCRO] Datos de central actualizados")
        return True

    # ── Push ─────────────────────────────────────────────────────────────
    async def _post(self, path: str, payload: dict) -> bool:
        body = jsonable_encoder(payload)
        try:
            resp = await self.client.post(f"{self.master_url}/{path}", json=body)
        except httpx.HTTPError as e:
            self.outbox.record_failure(path, body, f"{type(e).__name__}: {e}")
            return False
        if resp.status_code >= 400:
            self.outbox.record_failure(path, body, f"HTTP {resp.status_code}")
            return False
        logger.debug(f"[SYNC] /{path} → {resp.status_code}")
        return True

    async def push_movement(self, payload: dict, session_factory: Optional[sessionmaker] = None) -> bool:
        delivered = await self._post(MOVEMENT_PATH, payload)
        if delivered and session_factory is not None:
            try:
                await asyncio.to_thread(_mark_synced, session_factory, payload["id"])
            except SQLAlchemyError as e:
                logger.warning(f"[SYNC] Could not flag record {payload['id']} as synced: {e}")
        return delivered

    async def push_live_status(self, session_factory: sessionmaker) -> bool:
        try:
            snapshot = await asyncio.to_thread(_live_snapshot, session_factory)
        except SQLAlchemyError as e:
            logger.error(f"[SYNC] Live snapshot unavailable: {e}")
            return False
        snapshot["porteria_id"] = self.station_id
        snapshot["timestamp"] = clock.now()
        return await self._post(LIVE_STATUS_PATH, snapshot)

    async def report_shift_closure(self, payload: dict) -> bool:
        delivered = await self._post(CLOSURE_PATH, payload)
        if delivered:
            logger.info(f"[SYNC] Shift {payload.get('porteria_turno_id')} closure reported to master")
        return delivered

    def ping_central(self) -> bool:
        try:
            requests.get(f"{self.central_url}/tarifas", timeout=self.pull_timeout)
            return True
        except requests.exceptions.RequestException:
            return False

    async def aclose(self):
        await self.client.aclose()
