"""Modelos Pydantic (schemas) para validación de datos de entrada/salida en el Servicio de Autenticación."""

from pydantic import BaseModel, Field, field_validator
from typing import Optional

from auth_service.utils import check_password_value

# --- Schemas de Petición ---

class SignupRequest(BaseModel):
    """Schema para los datos requeridos al crear un nuevo usuario."""
    username: str = Field(..., min_length=1, max_length=100)
    password: str = Field(..., min_length=1)
    # Obligatorio solo cuando el servicio registra emails (se valida en el endpoint)
    email: Optional[str] = Field(default=None, min_length=1, max_length=255)

    @field_validator("password")
    @classmethod
    def password_fits_bcrypt(cls, value: str) -> str:
        return check_password_value(value)

class LoginRequest(BaseModel):
    """Schema para el login: la identidad requerida depende de la variante configurada."""
    email: Optional[str] = Field(default=None, min_length=1)
    username: Optional[str] = Field(default=None, min_length=1)
    password: str = Field(..., min_length=1)


# --- Schemas de Respuesta ---

class AuthResponse(BaseModel):
    """Respuesta común de signup y login. Nunca incluye la contraseña ni su hash."""
    success: bool
    message: str
    username: Optional[str] = None
    email: Optional[str] = None
