# porteria/services/occupancy_service.py
"""
Category store and live occupancy.

Occupancy is never stored: it is always the count of ACTIVO records per
category, so it cannot drift from the intake log. Capacity checks read that
count without a lock; the storage-level unique indexes are what keep two
concurrent check-ins from sharing a stall.
"""

from datetime import datetime, time, timedelta

from sqlalchemy import func
from sqlalchemy.orm import Session

from porteria.exceptions import NotFoundError
from porteria.models.category import Category
from porteria.models.vehicle_record import VehicleRecord, RecordState
from porteria.services.category_vocabulary import resolve_category_id
from porteria.utils import clock
from porteria.utils.logger import get_logger

logger = get_logger(__name__)


def list_categories(db: Session) -> list[Category]:
    return db.query(Category).order_by(Category.id).all()


def get_category(db: Session, category_id: str) -> Category:
    category = db.query(Category).filter(Category.id == category_id).first()
    if not category:
        raise NotFoundError(f"Categoría '{category_id}' no existe")
    return category


def active_count(db: Session, category_id: str) -> int:
    return db.query(func.count(VehicleRecord.id)).filter(
        VehicleRecord.categoria_id == category_id,
        VehicleRecord.estado == RecordState.ACTIVE,
    ).scalar() or 0


def active_counts(db: Session) -> dict[str, int]:
    """ACTIVO records per category id; categories with no vehicles are reported as 0."""
    rows = (
        db.query(VehicleRecord.categoria_id, func.count(VehicleRecord.id))
        .filter(VehicleRecord.estado == RecordState.ACTIVE)
        .group_by(VehicleRecord.categoria_id)
        .all()
    )
    counts = {cat.id: 0 for cat in list_categories(db)}
    counts.update({cat_id: total for cat_id, total in rows})
    return counts


def total_active(db: Session) -> int:
    return db.query(func.count(VehicleRecord.id)).filter(
        VehicleRecord.estado == RecordState.ACTIVE
    ).scalar() or 0


def check_capacity(db: Session, category_id: str) -> dict:
    category = get_category(db, category_id)
    occupied = active_count(db, category_id)
    return {
        "categoria_id": category.id,
        "capacidad_max": category.capacidad_max,
        "ocupados": occupied,
        "disponible": category.capacidad_max - occupied,
    }


def revenue_for_day(db: Session, day=None) -> float:
    """Sum collected on records that left during `day` (today by default)."""
    day = day or clock.now().date()
    start = datetime.combine(day, time.min)
    end = start + timedelta(days=1)
    total = db.query(func.sum(VehicleRecord.total_pagado)).filter(
        VehicleRecord.estado != RecordState.ACTIVE,
        VehicleRecord.salida >= start,
        VehicleRecord.salida < end,
    ).scalar()
    return total or 0


def dashboard_stats(db: Session) -> dict:
    counts = active_counts(db)
    ocupacion = {
        cat.nombre: {"actual": counts.get(cat.id, 0), "max": cat.capacidad_max}
        for cat in list_categories(db)
    }
    return {
        "ocupacion": ocupacion,
        "ingresosHoy": revenue_for_day(db),
        "vehiculosActivos": sum(counts.values()),
    }


def live_snapshot(db: Session) -> dict:
    """Payload for the master's live yard board."""
    counts = active_counts(db)
    detalle = {cat.nombre: counts.get(cat.id, 0) for cat in list_categories(db)}
    return {
        "ingresos_hoy": revenue_for_day(db),
        "ocupacion_total": sum(counts.values()),
        "detalle_ocupacion": detalle,
    }


def apply_tariffs(db: Session, tariffs: dict) -> int:
    """
    Upsert rates/capacity pulled from the central server.
    `tariffs` is keyed by the central server's own label, e.g.
    {"Motos": {"minuto": 50, "hora": 3000, "capacidad": 50}, ...}.
    Unknown labels and invalid values are skipped. Returns rows updated.
    """
    updated = 0
    for label, values in (tariffs or {}).items():
        category_id = resolve_category_id(label)
        if not category_id or not isinstance(values, dict):
            logger.warning(f"[TARIFAS] Ignoring unknown tariff label '{label}'")
            continue
        try:
            minuto = float(values.get("minuto", 0))
            hora = float(values.get("hora", 0))
            capacidad = int(values.get("capacidad", 100))
        except (TypeError, ValueError):
            logger.warning(f"[TARIFAS] Ignoring non-numeric tariff for '{label}': {values}")
            continue
        if minuto < 0 or hora < 0 or capacidad <= 0:
            logger.warning(f"[TARIFAS] Ignoring invalid tariff for '{label}': {values}")
            continue
        category = db.query(Category).filter(Category.id == category_id).first()
        if not category:
            logger.warning(f"[TARIFAS] Local category '{category_id}' missing, run init_db")
            continue
        category.tarifa_minuto = minuto
        category.tarifa_hora = hora
        category.capacidad_max = capacidad
        updated += 1
    db.commit()
    logger.info(f"[TARIFAS] {updated} categories updated from central")
    return updated
