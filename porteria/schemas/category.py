# porteria/schemas/category.py
from pydantic import BaseModel


class CategoryOut(BaseModel):
    id: str
    nombre: str
    tarifa_minuto: float
    tarifa_hora: float
    capacidad_max: int
    prefijo: str

    class Config:
        from_attributes = True


class CapacityOut(BaseModel):
    categoria_id: str
    capacidad_max: int
    ocupados: int
    disponible: int
