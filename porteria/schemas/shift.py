# porteria/schemas/shift.py
from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional


class ShiftOpenRequest(BaseModel):
    usuario_id: str
    base_inicial: Optional[float] = Field(default=None, ge=0)


class ShiftOpenResponse(BaseModel):
    success: bool = True
    turno_id: int


class ShiftCloseRequest(BaseModel):
    turno_id: int


class ShiftSummary(BaseModel):
    id: int
    usuario_id: str
    hora_apertura: datetime
    hora_cierre: Optional[datetime]
    base_inicial: float
    estado: str
    total_efectivo: float
    total_digital: float
    total_recaudado: float
    efectivo_esperado: float         # opening base + cash collected
    vehiculos_ingresados: int
    vehiculos_salidos: int
    vehiculos_pendientes: int        # whole lot, not just this shift


class ShiftCloseResponse(BaseModel):
    success: bool = True
    resumen: ShiftSummary
