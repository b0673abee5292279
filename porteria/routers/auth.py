# porteria/routers/auth.py
"""Operator login and listing."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from porteria.database import get_db
from porteria.schemas.user import LoginRequest, UserOut
from porteria.services import auth_service

router = APIRouter()


@router.post("/login", response_model=UserOut, summary="Check operator credentials")
def login(body: LoginRequest, db: Session = Depends(get_db)):
    return auth_service.authenticate(db, body.usuario, body.password)


@router.get("/usuarios", response_model=list[UserOut], summary="Operators known to this station")
def users(db: Session = Depends(get_db)):
    return auth_service.list_users(db)
