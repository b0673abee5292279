# porteria/routers/shifts.py
"""Cash-drawer shifts: open, live summary, close."""

from fastapi import APIRouter, BackgroundTasks, Depends
from sqlalchemy.orm import Session

from porteria.context import AppContext
from porteria.database import get_context, get_db
from porteria.schemas.shift import (ShiftCloseRequest, ShiftCloseResponse, ShiftOpenRequest,
                                    ShiftOpenResponse, ShiftSummary)
from porteria.services import shift_service
from porteria.services.sync_reporter import closure_payload

router = APIRouter()


@router.post("/turnos/abrir", response_model=ShiftOpenResponse, summary="Open a shift for an operator")
def open_shift(body: ShiftOpenRequest, db: Session = Depends(get_db), ctx: AppContext = Depends(get_context)):
    shift = shift_service.open_shift(db, body.usuario_id, body.base_inicial,
                                     default_base=ctx.settings.DEFAULT_OPENING_BASE)
    return {"success": True, "turno_id": shift.id}


@router.get("/turnos/resumen-actual", response_model=ShiftSummary, summary="Running totals of a shift")
def current_summary(turno_id: int, db: Session = Depends(get_db)):
    return shift_service.summarize(db, turno_id)


@router.post("/turnos/cerrar", response_model=ShiftCloseResponse, summary="Close a shift and report it to the master")
def close_shift(body: ShiftCloseRequest, background: BackgroundTasks,
                db: Session = Depends(get_db), ctx: AppContext = Depends(get_context)):
    shift, summary = shift_service.close_shift(db, body.turno_id)
    payload = closure_payload(shift, summary, shift_service.operator_name(db, shift.id))
    background.add_task(ctx.sync.report_shift_closure, payload)
    return {"success": True, "resumen": summary}
