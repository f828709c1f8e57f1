"""Configuración de la conexión a la base de datos de credenciales usando SQLAlchemy."""

import os
import logging
from fastapi import HTTPException, status
from sqlalchemy import create_engine, exc
from sqlalchemy.engine import make_url
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool
from dotenv import load_dotenv

# Configuración del logger
logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
logger = logging.getLogger(__name__)

# Carga variables de entorno desde el archivo .env
load_dotenv()


def _build_database_url() -> str:
    """Usa DATABASE_URL si existe; si no, arma la URL de MariaDB con las variables DB_*."""
    url = os.getenv("DATABASE_URL")
    if url:
        return url

    required_db_vars = {"DB_USER", "DB_PASS", "DB_HOST", "DB_NAME"}
    missing_vars = required_db_vars - set(os.environ)
    if missing_vars:
        logger.error(f"Faltan variables de entorno para la base de datos: {', '.join(sorted(missing_vars))}")

    return (
        f"mysql+pymysql://{os.getenv('DB_USER')}:{os.getenv('DB_PASS')}"
        f"@{os.getenv('DB_HOST')}/{os.getenv('DB_NAME')}"
    )


def _engine_options(url: str) -> dict:
    """Opciones del engine según el dialecto."""
    parsed = make_url(url)
    if parsed.get_backend_name() != "sqlite":
        # pool_pre_ping=True ayuda a manejar conexiones inactivas en el pool.
        return {"pool_pre_ping": True}

    options = {"connect_args": {"check_same_thread": False}}
    if parsed.database in (None, "", ":memory:"):
        # Una sola conexión compartida: cada sesión ve la misma base en memoria.
        options["poolclass"] = StaticPool
    return options


SQLALCHEMY_DATABASE_URL = _build_database_url()

# Crea el motor (Engine) de SQLAlchemy: el punto de entrada a la base de datos.
try:
    engine = create_engine(SQLALCHEMY_DATABASE_URL, **_engine_options(SQLALCHEMY_DATABASE_URL))
    # Intenta conectar para verificar credenciales y disponibilidad al inicio
    with engine.connect() as connection:
        logger.info("Conexión a la base de datos establecida exitosamente.")
except exc.SQLAlchemyError as e:
    logger.error(f"Error al conectar con la base de datos: {e}", exc_info=True)
    engine = None # El servicio responde 503 hasta que haya conexión


# Cada petición web usa su propia sesión.
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine) if engine else None

# Clase base para los modelos declarativos (User hereda de esta clase).
Base = declarative_base()

# --- Función de Dependencia para FastAPI ---
def get_db():
    """
    Generador de dependencia de FastAPI para obtener una sesión de base de datos.
    Asegura que la sesión se cierre correctamente después de cada petición.
    Los errores de base de datos se revierten y se propagan al manejador de la app.
    """
    if SessionLocal is None:
        logger.error("La fábrica de sesiones de base de datos no está inicializada.")
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Servicio de base de datos no disponible.")

    db = SessionLocal()
    try:
        yield db # Proporciona la sesión a la ruta
    except exc.SQLAlchemyError as e:
        logger.error(f"Error de base de datos durante la petición: {e}", exc_info=True)
        db.rollback()
        raise
    finally:
        db.close() # Cierra la sesión al finalizar la petición
