"""Define el modelo de la tabla 'users' usando SQLAlchemy ORM."""

from sqlalchemy import Column, DateTime, String, func
from auth_service.db import Base

class User(Base):
    """
    Modelo SQLAlchemy que representa la tabla 'users' en la base de datos.
    Almacena la identidad de cada usuario y el hash de su contraseña.
    """
    __tablename__ = "users"

    # El nombre de usuario es el identificador: único e inmutable tras el registro
    username = Column(String(100), primary_key=True, index=True)

    # Email opcional, clave única secundaria (solo en la variante usuario + email)
    email = Column(String(255), unique=True, index=True, nullable=True)

    # Hash bcrypt de la contraseña, con la sal incluida en el propio hash
    hashed_password = Column(String(255), nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Nota: No se almacena la contraseña en texto plano por seguridad.

    def __repr__(self) -> str:
        return f"<User username={self.username!r} email={self.email!r}>"
