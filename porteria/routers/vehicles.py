# porteria/routers/vehicles.py
"""
Vehicle stays: check-in, quote, paid exit, manual release, history.

Local state is committed first. Reservation transitions and master pushes are
queued as background tasks and never change the response.
"""

from datetime import date
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query
from sqlalchemy.orm import Session

from porteria.context import AppContext
from porteria.database import get_context, get_db
from porteria.exceptions import NotFoundError
from porteria.models.vehicle_record import VehicleRecord
from porteria.schemas.vehicle_record import (ActiveVehicleQuote, CheckInRequest, CheckInResponse,
                                             FeeQuoteOut, PaymentRequest, PaymentResponse,
                                             VehicleRecordOut)
from porteria.services import record_service, shift_service
from porteria.services.sync_reporter import movement_payload

router = APIRouter()


def _queue_movement(background: BackgroundTasks, ctx: AppContext, db: Session, record: VehicleRecord):
    # Payload is built now, while the session is still open
    payload = movement_payload(record, shift_service.operator_name(db, record.id_turno), ctx.settings.STATION_ID)
    background.add_task(ctx.sync.push_movement, payload, ctx.session_factory)
    background.add_task(ctx.sync.push_live_status, ctx.session_factory)


@router.post("/ingreso", response_model=CheckInResponse, summary="Register a vehicle entering the lot")
def check_in(body: CheckInRequest, background: BackgroundTasks,
             db: Session = Depends(get_db), ctx: AppContext = Depends(get_context)):
    record = record_service.check_in(
        db,
        placa=body.placa,
        categoria_id=body.categoria_id,
        color=body.color,
        id_turno=body.id_turno,
        id_reserva=body.id_reserva,
        puesto_reserva=body.puesto_reserva,
        hard_block=ctx.settings.CAPACITY_HARD_BLOCK,
    )
    if record.id_reserva:
        background.add_task(ctx.reservations.mark_on_site, record.id_reserva)
    _queue_movement(background, ctx, db, record)
    return {"success": True, "id": record.id, "puesto": record.puesto}


@router.get("/vehiculo/{placa}", response_model=ActiveVehicleQuote, summary="Active stay for a plate with its current fee")
def lookup_active(placa: str, db: Session = Depends(get_db)):
    record = record_service.find_active_by_plate(db, placa)
    if not record:
        raise NotFoundError("Vehículo no encontrado o ya salió.")
    fee = record_service.quote(record)
    out = VehicleRecordOut.model_validate(record).model_dump()
    return {
        **out,
        "tarifa_minuto": record.categoria.tarifa_minuto,
        "tarifa_hora": record.categoria.tarifa_hora,
        "minutos_totales": fee.minutes,
        "total_pagar": fee.amount,
    }


@router.get("/calcular/{record_id}", response_model=FeeQuoteOut, summary="Fee quote for a record")
def calculate(record_id: int, db: Session = Depends(get_db)):
    record = record_service.get_record(db, record_id)
    # Closed stays are quoted up to their exit, open ones up to now
    fee = record_service.quote(record, record.salida)
    return {"duracion_minutos": fee.minutes, "total": fee.amount}


@router.post("/procesar-pago", response_model=PaymentResponse, summary="Settle payment and close the stay")
def process_payment(body: PaymentRequest, background: BackgroundTasks,
                    db: Session = Depends(get_db), ctx: AppContext = Depends(get_context)):
    record = record_service.settle_payment(db, body.id, body.total_pagado, body.metodo_pago, body.id_turno)
    if record.id_reserva:
        background.add_task(ctx.reservations.mark_finalized, record.id_reserva, record.total_pagado)
    _queue_movement(background, ctx, db, record)
    return {
        "success": True,
        "id": record.id,
        "placa": record.placa,
        "total_pagado": record.total_pagado,
        "metodo_pago": record.metodo_pago,
        "salida": record.salida,
    }


@router.delete("/registros/{record_id}", summary="Release a vehicle without charge")
def release(record_id: int, background: BackgroundTasks,
            db: Session = Depends(get_db), ctx: AppContext = Depends(get_context)):
    record = record_service.release(db, record_id)
    _queue_movement(background, ctx, db, record)
    return {"success": True}


@router.get("/historial", response_model=list[VehicleRecordOut], summary="Stay history")
def history(
    placa: Optional[str] = None,
    inicio: Optional[date] = None,
    fin: Optional[date] = None,
    offset: int = Query(default=0, ge=0),
    limit: int = Query(default=50, ge=1, le=500),
    db: Session = Depends(get_db),
):
    return record_service.history(db, placa=placa, inicio=inicio, fin=fin, offset=offset, limit=limit)
