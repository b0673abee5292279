# porteria/services/auth_service.py
"""
Operator credentials.
Users arrive from the central server, sometimes with plaintext passwords and
sometimes already bcrypt-hashed; both are stored hashed.
"""

import bcrypt
from sqlalchemy.orm import Session

from porteria.exceptions import AuthenticationError, ValidationError
from porteria.models.user import User
from porteria.utils.logger import get_logger

logger = get_logger(__name__)

BCRYPT_PREFIXES = ("$2a$", "$2b$", "$2y$")
BCRYPT_ROUNDS = 10


def is_hashed(value: str) -> bool:
    return bool(value) and value.startswith(BCRYPT_PREFIXES)


def hash_password(plain: str) -> str:
    return bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt(rounds=BCRYPT_ROUNDS)).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    if not plain or not is_hashed(hashed):
        return False
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        logger.warning("Stored password hash is malformed")
        return False


def authenticate(db: Session, usuario: str, password: str) -> User:
    user = db.query(User).filter(User.usuario == usuario).first()
    if not user:
        raise AuthenticationError("Usuario no existe")
    if not verify_password(password, user.password):
        raise AuthenticationError("Clave incorrecta")
    logger.info(f"[LOGIN] {user.usuario} ({user.rol}) logged in")
    return user


def list_users(db: Session) -> list[User]:
    return db.query(User).order_by(User.nombre).all()


def upsert_user(db: Session, id: str, usuario: str, password: str, rol: str = None, nombre: str = None) -> User:
    if not id or not usuario or not password:
        raise ValidationError("id, usuario y password son requeridos")
    stored = password if is_hashed(password) else hash_password(password)
    user = db.query(User).filter(User.id == str(id)).first()
    if user is None:
        user = db.query(User).filter(User.usuario == usuario).first()
    if user is None:
        user = User(id=str(id))
        db.add(user)
    user.usuario = usuario
    user.password = stored
    user.rol = rol
    user.nombre = nombre
    return user


def upsert_users(db: Session, users: list) -> int:
    """Apply the central user list. Entries missing id/usuario/password are skipped."""
    applied = 0
    for raw in users or []:
        if not isinstance(raw, dict):
            continue
        try:
            upsert_user(db, raw.get("id"), raw.get("usuario"), raw.get("password"),
                        rol=raw.get("rol"), nombre=raw.get("nombre"))
            applied += 1
        except ValidationError:
            logger.warning(f"[USUARIOS] Skipping incomplete user entry {raw.get('usuario')!r}")
    db.commit()
    logger.info(f"[USUARIOS] {applied} users synchronized from central")
    return applied
