# porteria/services/record_service.py
"""
Vehicle stay lifecycle: check-in, quote, paid check-out, manual release.

  ACTIVO ──pay──▶ FINALIZADO
     └───release──▶ LIBERADO   (administrative, always 0)

Only local state is touched here. Reservation transitions and master pushes
are scheduled by the routers after the local commit, as separate best-effort
steps.
"""

from datetime import date, datetime, time, timedelta
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from porteria.exceptions import ConflictError, NotFoundError, ValidationError
from porteria.models.category import Category
from porteria.models.vehicle_record import VehicleRecord, RecordState
from porteria.services import occupancy_service, shift_service
from porteria.services.fee_calculator import FeeQuote, calculate_fee
from porteria.utils import clock
from porteria.utils.logger import get_logger
from porteria.utils.plates import normalize_plate

logger = get_logger(__name__)


def get_record(db: Session, record_id: int) -> VehicleRecord:
    record = db.query(VehicleRecord).filter(VehicleRecord.id == record_id).first()
    if not record:
        raise NotFoundError(f"Registro {record_id} no existe")
    return record


def find_active_by_plate(db: Session, plate: str) -> Optional[VehicleRecord]:
    return db.query(VehicleRecord).filter(
        VehicleRecord.placa == normalize_plate(plate),
        VehicleRecord.estado == RecordState.ACTIVE,
    ).first()


def _stall_prefix(category: Category) -> str:
    return f"{category.prefijo}-"


def assign_stall(db: Session, category: Category, bounded: bool = True) -> str:
    """
    Lowest free `{prefix}-{n}` among the ACTIVO records of the category.
    With `bounded`, n must stay within the category capacity.
    """
    prefix = _stall_prefix(category)
    taken = set()
    rows = db.query(VehicleRecord.puesto).filter(
        VehicleRecord.categoria_id == category.id,
        VehicleRecord.estado == RecordState.ACTIVE,
    ).all()
    for (puesto,) in rows:
        if puesto and puesto.startswith(prefix) and puesto[len(prefix):].isdigit():
            taken.add(int(puesto[len(prefix):]))

    upper = category.capacidad_max if bounded else len(taken) + 1
    for n in range(1, upper + 1):
        if n not in taken:
            return f"{prefix}{n}"
    raise ConflictError(f"No hay puestos disponibles para {category.nombre}")


def _stall_in_use(db: Session, category_id: str, stall: str) -> bool:
    return db.query(VehicleRecord.id).filter(
        VehicleRecord.categoria_id == category_id,
        VehicleRecord.puesto == stall,
        VehicleRecord.estado == RecordState.ACTIVE,
    ).first() is not None


def check_in(db: Session, placa: str, categoria_id: str, color: str, id_turno: int,
             id_reserva: Optional[str] = None, puesto_reserva: Optional[str] = None,
             hard_block: bool = True) -> VehicleRecord:
    plate = normalize_plate(placa)
    if not plate:
        raise ValidationError("Placa inválida")
    if not categoria_id:
        raise ValidationError("Categoría requerida")
    if not color or not color.strip():
        raise ValidationError("Color requerido")

    category = occupancy_service.get_category(db, categoria_id)
    shift = shift_service.require_open_shift(db, id_turno)

    if find_active_by_plate(db, plate):
        raise ConflictError(f"El vehículo {plate} ya está dentro")

    if hard_block and occupancy_service.active_count(db, category.id) >= category.capacidad_max:
        raise ConflictError(f"Sin cupo para {category.nombre}")

    if puesto_reserva:
        stall = puesto_reserva.strip().upper()
        if _stall_in_use(db, category.id, stall):
            raise ConflictError(f"El puesto {stall} está ocupado")
    else:
        stall = assign_stall(db, category, bounded=hard_block)

    record = VehicleRecord(
        placa=plate,
        categoria_id=category.id,
        puesto=stall,
        color=color.strip(),
        entrada=clock.now(),
        id_turno=shift.id,
        estado=RecordState.ACTIVE,
        id_reserva=str(id_reserva) if id_reserva else None,
        estado_sincro=0,
    )
    db.add(record)
    shift_service.register_entry(shift)
    try:
        db.commit()
    except IntegrityError:
        # A concurrent check-in won the plate or the stall
        db.rollback()
        if find_active_by_plate(db, plate):
            raise ConflictError(f"El vehículo {plate} ya está dentro")
        raise ConflictError(f"El puesto {stall} fue asignado a otro vehículo, intente de nuevo")
    db.refresh(record)
    logger.info(f"[INGRESO] {plate} → {stall} ({category.id}) shift={shift.id} reserva={record.id_reserva}")
    return record


def quote(record: VehicleRecord, now: Optional[datetime] = None) -> FeeQuote:
    category = record.categoria
    return calculate_fee(record.entrada, now or clock.now(), category.tarifa_minuto, category.tarifa_hora)


def _finish_active(db: Session, record_id: int, values: dict):
    """
    Compare-and-set ACTIVO → terminal. Of two concurrent exits for the same
    record exactly one matches the row; the other gets ConflictError.
    """
    changed = db.query(VehicleRecord).filter(
        VehicleRecord.id == record_id,
        VehicleRecord.estado == RecordState.ACTIVE,
    ).update(values, synchronize_session=False)
    if not changed:
        db.rollback()
        raise ConflictError(f"Registro {record_id} ya no está activo")


def settle_payment(db: Session, record_id: int, total_pagado: float, metodo_pago: str,
                   id_turno: Optional[int] = None) -> VehicleRecord:
    """
    Paid exit. The amount charged is the one submitted by the booth, never a
    recomputation; negative totals are stored as 0.
    """
    if not metodo_pago or not metodo_pago.strip():
        raise ValidationError("Método de pago requerido")
    record = get_record(db, record_id)
    if record.estado != RecordState.ACTIVE:
        raise ConflictError(f"Registro {record_id} ya no está activo ({record.estado})")

    # The drawer that received the money owns the payment
    shift = shift_service.require_open_shift(db, id_turno if id_turno is not None else record.id_turno)

    amount = max(0, total_pagado or 0)
    method = metodo_pago.strip()
    exit_time = clock.now()
    expected = quote(record, exit_time)
    if amount != expected.amount:
        logger.warning(
            f"[PAGO] Registro {record.id} ({record.placa}): charged {amount}, "
            f"quote at payment time is {expected.amount} for {expected.minutes} min"
        )

    _finish_active(db, record_id, {
        VehicleRecord.salida: exit_time,
        VehicleRecord.total_pagado: amount,
        VehicleRecord.metodo_pago: method,
        VehicleRecord.estado: RecordState.FINALIZED,
        VehicleRecord.id_turno: shift.id,
        VehicleRecord.estado_sincro: 0,
    })
    shift_service.register_payment(shift, amount, method)
    db.commit()
    db.refresh(record)
    logger.info(f"[PAGO] {record.placa} paid {amount} ({record.metodo_pago}) shift={shift.id}")
    return record


def release(db: Session, record_id: int) -> VehicleRecord:
    """Administrative release: exit now, amount forced to 0 whatever the elapsed time."""
    record = get_record(db, record_id)
    if record.estado != RecordState.ACTIVE:
        raise ConflictError(f"Registro {record_id} ya no está activo ({record.estado})")
    _finish_active(db, record_id, {
        VehicleRecord.salida: clock.now(),
        VehicleRecord.total_pagado: 0,
        VehicleRecord.estado: RecordState.LIBERATED,
        VehicleRecord.estado_sincro: 0,
    })
    db.commit()
    db.refresh(record)
    logger.warning(f"[LIBERADO] {record.placa} released from {record.puesto} without charge")
    return record


def mark_synced(db: Session, record_id: int):
    record = db.query(VehicleRecord).filter(VehicleRecord.id == record_id).first()
    if record:
        record.estado_sincro = 1
        db.commit()


def list_active(db: Session) -> list[VehicleRecord]:
    return (
        db.query(VehicleRecord)
        .filter(VehicleRecord.estado == RecordState.ACTIVE)
        .order_by(VehicleRecord.entrada.desc())
        .all()
    )


def history(db: Session, placa: Optional[str] = None, inicio: Optional[date] = None,
            fin: Optional[date] = None, offset: int = 0, limit: int = 50) -> list[VehicleRecord]:
    q = db.query(VehicleRecord)
    if placa:
        q = q.filter(VehicleRecord.placa.like(f"%{normalize_plate(placa)}%"))
    if inicio:
        q = q.filter(VehicleRecord.entrada >= datetime.combine(inicio, time.min))
    if fin:
        q = q.filter(VehicleRecord.entrada < datetime.combine(fin, time.min) + timedelta(days=1))
    return q.order_by(VehicleRecord.entrada.desc(), VehicleRecord.id.desc()).offset(offset).limit(limit).all()
