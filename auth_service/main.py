import logging
import time
from fastapi import APIRouter, FastAPI, Depends, status, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

# Importaciones locales
from auth_service.db import engine, Base, get_db
from auth_service import schemas
from auth_service.service import AuthService, DuplicateIdentity
from auth_service.store import CredentialStore
from auth_service.utils import CORS_ORIGINS, TRACK_EMAIL, pwd_context

# Configura logger
logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
logger = logging.getLogger(__name__)

# Crea tablas si no existen al iniciar
try:
    Base.metadata.create_all(bind=engine)
    logger.info("Database tables verified/created.")
except Exception as e:
    logger.error(f"Error initializing database: {e}", exc_info=True)


# Inicializa FastAPI
app = FastAPI(
    title="Auth Service",
    description="Handles user signup and password login.",
    version="1.0.0"
)

# --- Configuración de CORS ---
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# --- Métricas Prometheus ---
REQUEST_COUNT = Counter(
    "auth_requests_total",
    "Total requests processed by Auth Service",
    ["method", "endpoint", "status_code"]
)
REQUEST_LATENCY = Histogram(
    "auth_request_latency_seconds",
    "Request latency in seconds for Auth Service",
    ["endpoint"]
)
SIGNUP_OUTCOMES = Counter(
    "auth_signups_total",
    "Signup attempts by outcome",
    ["outcome"]
)
LOGIN_OUTCOMES = Counter(
    "auth_logins_total",
    "Login attempts by outcome",
    ["outcome"]
)

# --- Middleware para Métricas ---
@app.middleware("http")
async def metrics_middleware(request: Request, call_next):
    start_time = time.time()
    response = None
    status_code = 500 # Default a 500

    try:
        response = await call_next(request)
        status_code = response.status_code
    except Exception as exc:
        logger.error(f"Unhandled exception during request processing: {exc}", exc_info=True)
        response = Response("Internal Server Error", status_code=500)
    finally:
        latency = time.time() - start_time
        endpoint = request.url.path

        final_status_code = getattr(response, 'status_code', status_code)

        REQUEST_LATENCY.labels(endpoint=endpoint).observe(latency)
        REQUEST_COUNT.labels(
            method=request.method,
            endpoint=endpoint,
            status_code=final_status_code
        ).inc()

    return response

# --- Manejadores de Errores ---

def _error_response(status_code: int, message: str, **extra) -> JSONResponse:
    content = schemas.AuthResponse(success=False, message=message).model_dump(exclude_none=True)
    content.update(extra)
    return JSONResponse(status_code=status_code, content=content)

@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    field = "body"
    if errors:
        # loc = ("body", "<campo>") o ("body", <posición>) si el JSON no se pudo leer
        names = [part for part in errors[0].get("loc", ()) if isinstance(part, str) and part != "body"]
        if names:
            field = names[-1]
    logger.warning(f"Rejected malformed request on {request.url.path}: field '{field}'")
    return _error_response(
        422,
        f"Missing or invalid field: {field}",
        # Sin "input" ni "ctx": el input de un campo ausente es el cuerpo entero, con la contraseña
        errors=jsonable_encoder([
            {key: value for key, value in error.items() if key not in ("input", "ctx")}
            for error in errors
        ]),
    )

@app.exception_handler(SQLAlchemyError)
async def store_exception_handler(request: Request, exc: SQLAlchemyError):
    logger.error(f"Credential store failure on {request.url.path}: {exc}", exc_info=True)
    return _error_response(status.HTTP_503_SERVICE_UNAVAILABLE, "Credential store unavailable")

# --- Endpoints de Salud y Métricas ---
@app.get("/metrics", tags=["Monitoring"])
def metrics():
    """Exposes application metrics for Prometheus."""
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)

@app.get("/health", tags=["Monitoring"])
def health_check():
    """Performs a basic health check of the service."""
    return {"status": "ok", "service": "auth_service"}

# --- Dependencias ---

def get_auth_service(db: Session = Depends(get_db)) -> AuthService:
    """Builds a request-scoped AuthService over the request's DB session."""
    return AuthService(CredentialStore(db), pwd_context=pwd_context, track_email=TRACK_EMAIL)

# --- Endpoints de API ---

router = APIRouter(prefix="/api/auth", tags=["Authentication"])

@router.post("/signup", response_model=schemas.AuthResponse, response_model_exclude_none=True)
def signup(payload: schemas.SignupRequest, service: AuthService = Depends(get_auth_service)):
    """
    Registers a new user. Email is required when the service tracks emails.
    Responds 400 with the colliding field's message when the identity is taken.
    """
    if service.track_email and payload.email is None:
        logger.warning("Rejected malformed request on /api/auth/signup: field 'email'")
        return _error_response(422, "Missing or invalid field: email")

    logger.info(f"Signup attempt for username: {payload.username}")
    try:
        user = service.signup(payload.username, payload.password, email=payload.email)
    except DuplicateIdentity as e:
        logger.warning(f"Signup failed for username {payload.username}: {e.message}")
        SIGNUP_OUTCOMES.labels(outcome=f"duplicate_{e.field}").inc()
        return _error_response(status.HTTP_400_BAD_REQUEST, e.message)

    SIGNUP_OUTCOMES.labels(outcome="created").inc()
    return schemas.AuthResponse(
        success=True,
        message="User created",
        username=user.username,
        email=user.email,
    )


@router.post("/login", response_model=schemas.AuthResponse, response_model_exclude_none=True)
def login(payload: schemas.LoginRequest, service: AuthService = Depends(get_auth_service)):
    """
    Checks a password against the stored hash.
    Always 200: the outcome is in `success`, and an unknown user looks like a wrong password.
    """
    field = service.identity_field
    identity = getattr(payload, field)
    if identity is None:
        logger.warning(f"Rejected malformed request on /api/auth/login: field '{field}'")
        return _error_response(422, f"Missing or invalid field: {field}")

    logger.info(f"Login attempt for {field}: {identity}")
    ok = service.login(identity, payload.password)

    response = schemas.AuthResponse(
        success=ok,
        message="Login successful" if ok else "Invalid credentials",
        **{field: identity},
    )
    if ok:
        LOGIN_OUTCOMES.labels(outcome="success").inc()
        # El registro pudo desaparecer entre ambas consultas; en ese caso se omite
        user = service.get_user_by_identity(identity)
        if user is not None:
            response.username = user.username
        logger.info(f"Login successful for {field}: {identity}")
    else:
        LOGIN_OUTCOMES.labels(outcome="failure").inc()
        logger.warning(f"Login failed for {field}: {identity}")

    return response


app.include_router(router)
