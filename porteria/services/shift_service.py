# porteria/services/shift_service.py
"""
Cash-drawer shifts: open, live summary, close.

Totals are always recomputed from FINALIZADO records on the shift:
  cash    = payments whose method is "efectivo" (any case)
  digital = every other method
The running totals kept on the shift row are a convenience for the booth
screen; close() overwrites them with the recomputed figures.
"""

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from porteria.exceptions import ConflictError, NotFoundError, ValidationError
from porteria.models.shift import Shift, ShiftState
from porteria.models.user import User
from porteria.models.vehicle_record import VehicleRecord, RecordState
from porteria.utils import clock
from porteria.utils.logger import get_logger

logger = get_logger(__name__)

CASH_METHOD = "efectivo"
FALLBACK_OPERATOR = "Sistema"


def is_cash(method) -> bool:
    return (method or "").strip().lower() == CASH_METHOD


def get_shift(db: Session, shift_id: int) -> Shift:
    shift = db.query(Shift).filter(Shift.id == shift_id).first()
    if not shift:
        raise NotFoundError(f"Turno {shift_id} no existe")
    return shift


def require_open_shift(db: Session, shift_id: int) -> Shift:
    shift = get_shift(db, shift_id)
    if shift.estado != ShiftState.OPEN:
        raise ConflictError(f"Turno {shift_id} está cerrado")
    return shift


def open_shift(db: Session, usuario_id: str, base_inicial=None, default_base: float = 50000) -> Shift:
    if not usuario_id:
        raise ValidationError("usuario_id requerido")
    if not db.query(User).filter(User.id == usuario_id).first():
        raise NotFoundError(f"Usuario {usuario_id} no existe")
    base = default_base if base_inicial is None else base_inicial
    if base < 0:
        raise ValidationError("base_inicial no puede ser negativa")

    already_open = db.query(Shift).filter(
        Shift.usuario_id == usuario_id, Shift.estado == ShiftState.OPEN
    ).first()
    if already_open:
        raise ConflictError(f"El usuario ya tiene el turno {already_open.id} abierto")

    shift = Shift(usuario_id=usuario_id, hora_apertura=clock.now(), base_inicial=base,
                  total_efectivo=0, total_digital=0, vehiculos_ingresados=0,
                  vehiculos_salidos=0, estado=ShiftState.OPEN)
    db.add(shift)
    try:
        db.commit()
    except IntegrityError:
        # Lost the race against a concurrent open for the same operator
        db.rollback()
        raise ConflictError("El usuario ya tiene un turno abierto")
    db.refresh(shift)
    logger.info(f"[TURNO] Opened shift {shift.id} for user {usuario_id} base={base}")
    return shift


def register_entry(shift: Shift):
    # Incremented in SQL so concurrent booths on one shift never lose a count
    shift.vehiculos_ingresados = Shift.vehiculos_ingresados + 1


def register_payment(shift: Shift, amount: float, method: str):
    if is_cash(method):
        shift.total_efectivo = Shift.total_efectivo + amount
    else:
        shift.total_digital = Shift.total_digital + amount
    shift.vehiculos_salidos = Shift.vehiculos_salidos + 1


def operator_name(db: Session, shift_id) -> str:
    row = (
        db.query(User.nombre)
        .join(Shift, Shift.usuario_id == User.id)
        .filter(Shift.id == shift_id)
        .first()
    )
    return (row[0] if row else None) or FALLBACK_OPERATOR


def _totals(db: Session, shift_id: int) -> dict:
    finalized = (VehicleRecord.id_turno == shift_id, VehicleRecord.estado == RecordState.FINALIZED)
    lowered = func.lower(VehicleRecord.metodo_pago)

    cash = db.query(func.coalesce(func.sum(VehicleRecord.total_pagado), 0)).filter(
        *finalized, lowered == CASH_METHOD).scalar()
    digital = db.query(func.coalesce(func.sum(VehicleRecord.total_pagado), 0)).filter(
        *finalized, lowered != CASH_METHOD).scalar()
    vehicles_in = db.query(func.count(VehicleRecord.id)).filter(
        VehicleRecord.id_turno == shift_id).scalar()
    vehicles_out = db.query(func.count(VehicleRecord.id)).filter(*finalized).scalar()
    # Lot-wide on purpose: "how many cars are in the yard right now"
    pending = db.query(func.count(VehicleRecord.id)).filter(
        VehicleRecord.estado == RecordState.ACTIVE).scalar()

    return {
        "total_efectivo": cash or 0,
        "total_digital": digital or 0,
        "vehiculos_ingresados": vehicles_in or 0,
        "vehiculos_salidos": vehicles_out or 0,
        "vehiculos_pendientes": pending or 0,
    }


def summarize(db: Session, shift_id: int) -> dict:
    shift = get_shift(db, shift_id)
    totals = _totals(db, shift.id)
    recaudado = totals["total_efectivo"] + totals["total_digital"]
    return {
        "id": shift.id,
        "usuario_id": shift.usuario_id,
        "hora_apertura": shift.hora_apertura,
        "hora_cierre": shift.hora_cierre,
        "base_inicial": shift.base_inicial,
        "estado": shift.estado,
        **totals,
        "total_recaudado": recaudado,
        "efectivo_esperado": (shift.base_inicial or 0) + totals["total_efectivo"],
    }


def close_shift(db: Session, shift_id: int) -> tuple[Shift, dict]:
    """Freeze the summary into the shift and mark it CERRADO. Irreversible."""
    shift = get_shift(db, shift_id)
    if shift.estado == ShiftState.CLOSED:
        raise ConflictError(f"Turno {shift_id} ya fue cerrado")

    totals = _totals(db, shift.id)
    shift.total_efectivo = totals["total_efectivo"]
    shift.total_digital = totals["total_digital"]
    shift.vehiculos_ingresados = totals["vehiculos_ingresados"]
    shift.vehiculos_salidos = totals["vehiculos_salidos"]
    shift.hora_cierre = clock.now()
    shift.estado = ShiftState.CLOSED
    db.commit()
    db.refresh(shift)

    logger.info(
        f"[TURNO] Closed shift {shift.id}: efectivo={shift.total_efectivo} "
        f"digital={shift.total_digital} in={shift.vehiculos_ingresados} out={shift.vehiculos_salidos}"
    )
    return shift, summarize(db, shift.id)
