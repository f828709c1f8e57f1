# tests/conftest.py
import os

# Base de datos en memoria y bcrypt barato, antes de importar el servicio
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("BCRYPT_ROUNDS", "4")

import pytest
from fastapi.testclient import TestClient

from auth_service.db import Base, SessionLocal, engine
from auth_service.main import app, get_auth_service
from auth_service.service import AuthService
from auth_service.store import CredentialStore
from auth_service.utils import build_password_context

TEST_USERNAME = "alice"
TEST_EMAIL = "alice@example.com"
TEST_PASSWORD = "s3cret"


@pytest.fixture
def db_session():
    """Esquema limpio por prueba sobre la base en memoria."""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture(scope="session")
def pwd_context():
    return build_password_context(rounds=4)


@pytest.fixture
def store(db_session):
    return CredentialStore(db_session)


@pytest.fixture
def service(store, pwd_context):
    """Variante usuario + email (login por email)."""
    return AuthService(store, pwd_context=pwd_context, track_email=True)


@pytest.fixture
def username_service(store, pwd_context):
    """Variante solo usuario (login por usuario)."""
    return AuthService(store, pwd_context=pwd_context, track_email=False)


def _client_for(service):
    app.dependency_overrides[get_auth_service] = lambda: service
    return TestClient(app)


@pytest.fixture
def client(service):
    with _client_for(service) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def username_client(username_service):
    with _client_for(username_service) as c:
        yield c
    app.dependency_overrides.clear()
