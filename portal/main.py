from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.sessions import SessionMiddleware
from sqlalchemy import text
from datetime import datetime
import logging
import anyio

from .config import get_settings
from .db import engine, mask_database_url, check_database_connection
from .exceptions import EntidadEnUso, InvalidNodeDefinition, InvalidPermissionToken, NotFoundError
from .middleware import AuthMiddleware
from .routers import (
    auth_router,
    modulos_router,
    pestanas_router,
    roles_router,
    accesos_router,
    usuarios_router,
    auditorias_router,
)
from .services.contratos_service import ContractRegistryClient
from .services.menu_cache import MenuCache
from .services.rate_limiter import LoginRateLimiter
from .version import read_version

logger = logging.getLogger("uvicorn")

SETTINGS = get_settings()
APP_VERSION = read_version()

# Inicializar la aplicación FastAPI
app = FastAPI(
    title="Portal API",
    description="Control de acceso, login con bloqueo y auditoría del portal corporativo",
    version=APP_VERSION
)

# Colaboradores compartidos por proceso, inyectados como dependencias
app.state.menu_cache = MenuCache()
app.state.login_limiter = LoginRateLimiter(SETTINGS.login_rate_limit)
app.state.contratos = ContractRegistryClient()

# Configurar CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if SETTINGS.environment == "development" else [],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Middleware de autenticación
app.add_middleware(
    AuthMiddleware,
    exclude_paths=["/health", "/login", "/logout", "/registro", "/docs", "/openapi.json"],
    public_paths=["/"],
)

# Middleware de sesión (se agrega al final para ejecutarse primero)
app.add_middleware(
    SessionMiddleware,
    secret_key=SETTINGS.session_secret_key,
    max_age=SETTINGS.session_max_age
)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(_request: Request, exc: RequestValidationError):
    errors = dict()
    for error in exc.errors():
        if "msg" not in error:
            continue
        key = str(error["loc"][-1]) if error.get("loc") else "root"
        errors.setdefault(key, error["msg"].replace("Value error, ", "", 1))
    logger.info("Request validation error %s", errors)
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=jsonable_encoder({"code": "validation_error", "errors": errors}),
    )


@app.exception_handler(NotFoundError)
async def not_found_handler(_request: Request, exc: NotFoundError):
    return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"detail": str(exc)})


@app.exception_handler(InvalidPermissionToken)
async def invalid_permission_handler(_request: Request, exc: InvalidPermissionToken):
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"code": "invalid_permission_token", "token": exc.token, "errors": {"permisos": str(exc)}},
    )


@app.exception_handler(InvalidNodeDefinition)
async def invalid_node_handler(_request: Request, exc: InvalidNodeDefinition):
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"code": "invalid_node_definition", "errors": {exc.campo: exc.mensaje}},
    )


@app.exception_handler(EntidadEnUso)
async def in_use_handler(_request: Request, exc: EntidadEnUso):
    return JSONResponse(status_code=status.HTTP_409_CONFLICT, content={"detail": exc.mensaje})


# Incluir routers
app.include_router(auth_router)
app.include_router(modulos_router)
app.include_router(pestanas_router)
app.include_router(roles_router)
app.include_router(accesos_router)
app.include_router(usuarios_router)
app.include_router(auditorias_router)


@app.on_event("startup")
async def _log_version_on_startup() -> None:
    logger.info("🚀 Portal API starting - version=%s environment=%s", APP_VERSION, SETTINGS.environment)
    logger.info("📊 Database URL: %s", mask_database_url(SETTINGS.database_url))
    logger.info("📄 Contratos API URL: %s", SETTINGS.contratos_api_url)
    logger.info("🔐 Login: max_intentos=%s rate_limit=%s", SETTINGS.login_max_intentos, SETTINGS.login_rate_limit)
    await anyio.to_thread.run_sync(check_database_connection)


def _check_db_sync() -> bool:
    """Check if the database is ready by executing a simple query."""
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.error(f"Health check: database unavailable: {str(e)}")
        return False


@app.get("/")
async def root() -> dict:
    return {"name": "Portal API", "version": APP_VERSION}


@app.get("/health")
async def health(request: Request) -> dict:
    """Basic health check endpoint with status summary."""
    db_ok = await anyio.to_thread.run_sync(_check_db_sync)
    contratos_ok = await request.app.state.contratos.ping()
    status_txt = "ok" if (db_ok and contratos_ok) else ("degraded" if db_ok else "down")

    return {
        "status": status_txt,
        "version": APP_VERSION,
        "db_ok": db_ok,
        "contratos_ok": contratos_ok,
        "time": datetime.now().isoformat(),
    }
