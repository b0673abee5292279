# porteria/models/vehicle_record.py
"""
Vehicle stays (registros).
One row per check-in: ACTIVO while the vehicle is on the lot, then FINALIZADO
(paid exit) or LIBERADO (administrative release at zero charge). Rows are never
deleted. The partial unique indexes make concurrent check-ins of the same plate
or the same stall fail at the storage layer instead of double-assigning.
"""

from sqlalchemy import (Column, Integer, String, DateTime, Float, ForeignKey,
                        Index, CheckConstraint, text)
from sqlalchemy.orm import relationship
from porteria.database import Base


class RecordState:
    ACTIVE = "ACTIVO"
    FINALIZED = "FINALIZADO"
    LIBERATED = "LIBERADO"


_ACTIVE_ONLY = text("estado = 'ACTIVO'")


class VehicleRecord(Base):
    __tablename__ = "registros"
    __table_args__ = (
        Index("uq_registros_placa_activa", "placa", unique=True,
              sqlite_where=_ACTIVE_ONLY, postgresql_where=_ACTIVE_ONLY),
        Index("uq_registros_puesto_activo", "categoria_id", "puesto", unique=True,
              sqlite_where=_ACTIVE_ONLY, postgresql_where=_ACTIVE_ONLY),
        CheckConstraint("(salida IS NULL) = (estado = 'ACTIVO')", name="ck_registros_salida_estado"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    placa = Column(String(15), nullable=False, index=True)
    categoria_id = Column(String(20), ForeignKey("categorias.id"), nullable=False)
    puesto = Column(String(20), nullable=False)
    color = Column(String(30))
    entrada = Column(DateTime, nullable=False, index=True)
    salida = Column(DateTime)
    total_pagado = Column(Float)
    metodo_pago = Column(String(30))
    id_turno = Column(Integer, ForeignKey("turnos.id"), nullable=False, index=True)
    estado = Column(String(12), nullable=False, default=RecordState.ACTIVE, index=True)
    id_reserva = Column(String(50))
    estado_sincro = Column(Integer, nullable=False, default=0)   # 1 once the master acknowledged the last movement

    categoria = relationship("Category", lazy="joined")

    @property
    def categoria_nombre(self):
        return self.categoria.nombre if self.categoria else None

    def __repr__(self):
        return f"<VehicleRecord {self.id} plate={self.placa} stall={self.puesto} {self.estado}>"
