"""Almacén de credenciales sobre una sesión SQLAlchemy."""

import logging
from typing import Optional
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from auth_service.models import User

logger = logging.getLogger(__name__)


class CredentialStore:
    """
    Acceso a la tabla 'users' por nombre de usuario o email.
    La unicidad la garantizan las restricciones de la base de datos, no una lectura previa.
    """

    def __init__(self, db: Session):
        self.db = db

    def get_by_username(self, username: str) -> Optional[User]:
        return self.db.query(User).filter(User.username == username).first()

    def get_by_email(self, email: Optional[str]) -> Optional[User]:
        if not email:
            return None
        return self.db.query(User).filter(User.email == email).first()

    def count(self) -> int:
        return self.db.query(User).count()

    def insert_if_absent(self, user: User) -> bool:
        """
        Inserta el usuario en una sola transacción.
        Devuelve False si ya existe un registro con la misma clave única.
        """
        try:
            self.db.add(user)
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            logger.warning(f"Inserción rechazada por restricción única para '{user.username}': {e.orig}")
            return False
        self.db.refresh(user)
        return True
