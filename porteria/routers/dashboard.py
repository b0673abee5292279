# porteria/routers/dashboard.py
"""Occupancy, capacity and today's revenue for the booth dashboard."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from porteria.database import get_db
from porteria.schemas.category import CapacityOut, CategoryOut
from porteria.schemas.dashboard import DashboardStats
from porteria.schemas.vehicle_record import VehicleRecordOut
from porteria.services import occupancy_service, record_service

router = APIRouter()


@router.get("/dashboard/stats", response_model=DashboardStats, summary="Occupancy per category and today's revenue")
def stats(db: Session = Depends(get_db)):
    return occupancy_service.dashboard_stats(db)


@router.get("/dashboard/activos", response_model=list[VehicleRecordOut], summary="Vehicles currently on the lot")
def active_vehicles(db: Session = Depends(get_db)):
    return record_service.list_active(db)


@router.get("/verificar-cupo/{categoria}", response_model=CapacityOut, summary="Free stalls in a category")
def check_capacity(categoria: str, db: Session = Depends(get_db)):
    return occupancy_service.check_capacity(db, categoria)


@router.get("/categorias", response_model=list[CategoryOut], summary="Categories with rates and capacity")
def categories(db: Session = Depends(get_db)):
    return occupancy_service.list_categories(db)
