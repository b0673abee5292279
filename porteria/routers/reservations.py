# porteria/routers/reservations.py
"""
Web reservations. Served straight from the booking site's store; every
endpoint answers 503 when that store is not configured or unreachable.
"""

from dataclasses import asdict

from fastapi import APIRouter, Depends
from fastapi.concurrency import run_in_threadpool

from porteria.context import AppContext
from porteria.database import get_context
from porteria.exceptions import NotFoundError
from porteria.schemas.reservation import (PendingReservationOut, ReservationLookupOut,
                                          ReservationReleaseOut)

router = APIRouter()


@router.get("/reservas/buscar/{placa}", response_model=ReservationLookupOut, summary="Pending reservation for a plate")
async def find_reservation(placa: str, ctx: AppContext = Depends(get_context)):
    match = await run_in_threadpool(ctx.reservations.find_pending_by_plate, placa)
    if match is None:
        raise NotFoundError("No hay reserva pendiente")
    return {"existe": True, **asdict(match)}


@router.get("/reservas/pendientes", response_model=list[PendingReservationOut], summary="All pending reservations")
async def pending_reservations(ctx: AppContext = Depends(get_context)):
    return await run_in_threadpool(ctx.reservations.list_pending)


@router.delete("/reservas/liberar/{reservation_id}", response_model=ReservationReleaseOut,
               summary="Cancel a pending reservation")
async def release_reservation(reservation_id: str, ctx: AppContext = Depends(get_context)):
    released = await run_in_threadpool(ctx.reservations.release, reservation_id)
    return {"success": True, "liberada": released}
