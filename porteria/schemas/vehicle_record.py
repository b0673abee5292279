# porteria/schemas/vehicle_record.py
from pydantic import BaseModel
from datetime import datetime
from typing import Optional, Union


class CheckInRequest(BaseModel):
    placa: str
    categoria_id: str
    color: str
    id_turno: int
    id_reserva: Optional[Union[int, str]] = None
    puesto_reserva: Optional[str] = None      # stall pre-assigned by the reservation


class CheckInResponse(BaseModel):
    success: bool = True
    id: int
    puesto: str


class PaymentRequest(BaseModel):
    id: int
    total_pagado: float
    metodo_pago: str
    id_turno: Optional[int] = None       # collecting shift; defaults to the check-in shift


class PaymentResponse(BaseModel):
    success: bool = True
    id: int
    placa: str
    total_pagado: float
    metodo_pago: str
    salida: datetime


class VehicleRecordOut(BaseModel):
    id: int
    placa: str
    categoria_id: str
    categoria_nombre: Optional[str]
    puesto: str
    color: Optional[str]
    entrada: datetime
    salida: Optional[datetime]
    total_pagado: Optional[float]
    metodo_pago: Optional[str]
    id_turno: int
    estado: str
    id_reserva: Optional[str]
    estado_sincro: int

    class Config:
        from_attributes = True


class ActiveVehicleQuote(VehicleRecordOut):
    """An ACTIVO record plus the fee it would pay right now."""
    tarifa_minuto: float
    tarifa_hora: float
    minutos_totales: int
    total_pagar: int


class FeeQuoteOut(BaseModel):
    duracion_minutos: int
    total: int
