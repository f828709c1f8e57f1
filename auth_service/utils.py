"""Funciones de utilidad para el servicio de autenticación: configuración y hash de contraseñas."""

import os
import logging
from typing import List, Optional
from passlib.context import CryptContext
from dotenv import load_dotenv

# Carga variables de entorno desde .env
load_dotenv()

# Configuración del logger
logger = logging.getLogger(__name__)


def _env_flag(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


# --- Configuración del Servicio ---

# True: usuario + email (login por email). False: solo usuario (login por usuario).
TRACK_EMAIL = _env_flag("AUTH_TRACK_EMAIL", True)

BCRYPT_ROUNDS = int(os.getenv("BCRYPT_ROUNDS", 12))
if BCRYPT_ROUNDS < 10:
    logger.warning(f"BCRYPT_ROUNDS={BCRYPT_ROUNDS} es bajo. Usar solo en desarrollo o pruebas.")

CORS_ORIGINS: List[str] = [
    origin.strip()
    for origin in os.getenv("CORS_ORIGINS", "http://localhost:3000,http://localhost:5173").split(",")
    if origin.strip()
]


# --- Configuración de Seguridad ---

def build_password_context(rounds: int = BCRYPT_ROUNDS) -> CryptContext:
    """Crea un contexto passlib con bcrypt y el costo indicado."""
    return CryptContext(
        schemes=["bcrypt"],
        deprecated="auto",
        bcrypt__default_rounds=rounds,
    )

pwd_context = build_password_context()

# bcrypt solo usa los primeros 72 bytes y no admite bytes NUL
BCRYPT_MAX_PASSWORD_BYTES = 72

def check_password_value(password: str) -> str:
    """Lanza ValueError si bcrypt no puede hashear la contraseña tal cual."""
    if "\x00" in password:
        raise ValueError("Password must not contain NUL characters")
    if len(password.encode("utf-8")) > BCRYPT_MAX_PASSWORD_BYTES:
        raise ValueError(f"Password must be at most {BCRYPT_MAX_PASSWORD_BYTES} bytes")
    return password

def verify_password(plain_password: str, hashed_password: str, context: Optional[CryptContext] = None) -> bool:
    """Verifica una contraseña plana contra un hash almacenado.

    Un hash que passlib no reconoce cuenta como contraseña incorrecta, igual que una
    contraseña que bcrypt truncaría: nunca coincide con un hash guardado.
    """
    context = context or pwd_context
    try:
        check_password_value(plain_password)
    except ValueError:
        return False
    try:
        return context.verify(plain_password, hashed_password)
    except ValueError as e:
        logger.warning(f"Hash almacenado no reconocido: {e}")
        return False

def get_password_hash(password: str, context: Optional[CryptContext] = None) -> str:
    """Genera el hash de una contraseña plana usando bcrypt (sal aleatoria por registro)."""
    return (context or pwd_context).hash(password)
