# porteria/models/category.py
"""
Vehicle categories (motos, livianos, otros).
Rates and capacity are seeded at startup and refreshed from the central server.
"""

from sqlalchemy import Column, Integer, String, Float, CheckConstraint
from porteria.database import Base


class Category(Base):
    __tablename__ = "categorias"
    __table_args__ = (
        CheckConstraint("tarifa_minuto >= 0", name="ck_categorias_tarifa_minuto"),
        CheckConstraint("tarifa_hora >= 0", name="ck_categorias_tarifa_hora"),
        CheckConstraint("capacidad_max > 0", name="ck_categorias_capacidad"),
    )

    id = Column(String(20), primary_key=True)
    nombre = Column(String(50), nullable=False)
    tarifa_minuto = Column(Float, nullable=False, default=0)
    tarifa_hora = Column(Float, nullable=False, default=0)
    capacidad_max = Column(Integer, nullable=False, default=100)
    prefijo = Column(String(5), nullable=False, default="P")

    def __repr__(self):
        return f"<Category {self.id} {self.tarifa_minuto}/min {self.tarifa_hora}/h cap={self.capacidad_max}>"
