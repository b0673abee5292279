# porteria/models/shift.py
"""
Cash-drawer shifts (turnos).
A shift is opened by one operator with a cash base, accumulates the payments
collected on it and is frozen on close. One OPEN shift per operator is
enforced by a partial unique index.
"""

from sqlalchemy import Column, Integer, String, DateTime, Float, ForeignKey, Index, text
from porteria.database import Base


class ShiftState:
    OPEN = "ABIERTO"
    CLOSED = "CERRADO"


_OPEN_ONLY = text("estado = 'ABIERTO'")


class Shift(Base):
    __tablename__ = "turnos"
    __table_args__ = (
        Index("uq_turnos_usuario_abierto", "usuario_id", unique=True,
              sqlite_where=_OPEN_ONLY, postgresql_where=_OPEN_ONLY),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    usuario_id = Column(String(50), ForeignKey("usuarios.id"), nullable=False, index=True)
    hora_apertura = Column(DateTime, nullable=False)
    hora_cierre = Column(DateTime)
    base_inicial = Column(Float, nullable=False, default=50000)
    total_efectivo = Column(Float, nullable=False, default=0)
    total_digital = Column(Float, nullable=False, default=0)
    vehiculos_ingresados = Column(Integer, nullable=False, default=0)
    vehiculos_salidos = Column(Integer, nullable=False, default=0)
    estado = Column(String(10), nullable=False, default=ShiftState.OPEN)

    def __repr__(self):
        return f"<Shift {self.id} user={self.usuario_id} {self.estado}>"
