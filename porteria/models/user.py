# porteria/models/user.py
"""
Booth operators. Pulled from the central server; passwords are stored as bcrypt hashes.
"""

from sqlalchemy import Column, String
from porteria.database import Base


class User(Base):
    __tablename__ = "usuarios"

    id = Column(String(50), primary_key=True)
    usuario = Column(String(100), unique=True, nullable=False, index=True)
    password = Column(String(100), nullable=False)
    rol = Column(String(30))
    nombre = Column(String(200))

    def __repr__(self):
        return f"<User {self.usuario} rol={self.rol}>"
