"""Reglas de negocio de autenticación: unicidad en el registro y verificación de credenciales."""

import logging
from typing import Optional
from passlib.context import CryptContext

from auth_service.models import User
from auth_service.store import CredentialStore
from auth_service.utils import TRACK_EMAIL, check_password_value, get_password_hash, verify_password
from auth_service.utils import pwd_context as default_pwd_context

logger = logging.getLogger(__name__)


class DuplicateIdentity(Exception):
    """Registro rechazado porque el email o el usuario ya existen."""

    def __init__(self, field: str):
        self.field = field
        super().__init__(f"{field.capitalize()} already exists")

    @property
    def message(self) -> str:
        return str(self)


class AuthService:
    """
    Servicio sin estado: cada operación consulta el almacén de nuevo.

    Con track_email=True el email es obligatorio y único, y es la identidad de login.
    Con track_email=False la única identidad es el nombre de usuario.
    """

    def __init__(self, store: CredentialStore, pwd_context: Optional[CryptContext] = None, track_email: bool = TRACK_EMAIL):
        self.store = store
        self.pwd_context = pwd_context or default_pwd_context
        self.track_email = track_email

    @property
    def identity_field(self) -> str:
        return "email" if self.track_email else "username"

    def signup(self, username: str, password: str, email: Optional[str] = None) -> User:
        """
        Crea un usuario nuevo con la contraseña hasheada.
        Lanza DuplicateIdentity (email primero, luego usuario) sin crear nada si hay colisión,
        y ValueError si la contraseña no cabe en bcrypt sin truncarse.
        """
        check_password_value(password)
        if self.track_email and not email:
            raise ValueError("Email is required")
        if not self.track_email:
            email = None

        collision = self._find_collision(username, email)
        if collision:
            raise DuplicateIdentity(collision)

        user = User(
            username=username,
            email=email,
            hashed_password=get_password_hash(password, self.pwd_context),
        )
        if not self.store.insert_if_absent(user):
            # Otra petición registró la misma identidad entre la lectura y la inserción
            raise DuplicateIdentity(self._find_collision(username, email) or "username")

        logger.info(f"User created: {user.username}")
        return user

    def login(self, identity: str, password: str) -> bool:
        """True solo si el usuario existe y la contraseña coincide con su hash."""
        user = self.get_user_by_identity(identity)
        if user is None:
            return False
        return verify_password(password, user.hashed_password, self.pwd_context)

    def get_user_by_identity(self, identity: str) -> Optional[User]:
        if self.track_email:
            return self.store.get_by_email(identity)
        return self.store.get_by_username(identity)

    def _find_collision(self, username: str, email: Optional[str]) -> Optional[str]:
        if self.track_email and self.store.get_by_email(email):
            return "email"
        if self.store.get_by_username(username):
            return "username"
        return None
