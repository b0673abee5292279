# porteria/schemas/user.py
from pydantic import BaseModel
from typing import Optional


class LoginRequest(BaseModel):
    usuario: str
    password: str


class UserOut(BaseModel):
    id: str
    usuario: str
    rol: Optional[str]
    nombre: Optional[str]

    class Config:
        from_attributes = True
