# porteria/schemas/reservation.py
from pydantic import BaseModel
from datetime import datetime
from typing import Optional


class ReservationLookupOut(BaseModel):
    existe: bool = True
    id_reserva: str
    placa: str
    categoria: Optional[str]
    categoria_id: Optional[str]
    color: Optional[str]
    fecha_reserva: Optional[datetime]


class PendingReservationOut(BaseModel):
    id_reserva: str
    placa: Optional[str]
    tipo_vehiculo: Optional[str]
    categoria: Optional[str]
    fecha_registro: Optional[datetime]
    fecha_expiracion: Optional[datetime]


class ReservationReleaseOut(BaseModel):
    success: bool = True
    liberada: bool
