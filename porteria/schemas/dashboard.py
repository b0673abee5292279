# porteria/schemas/dashboard.py
from pydantic import BaseModel


class CategoryOccupancy(BaseModel):
    actual: int
    max: int


class DashboardStats(BaseModel):
    ocupacion: dict[str, CategoryOccupancy]     # keyed by category display name
    ingresosHoy: float
    vehiculosActivos: int
