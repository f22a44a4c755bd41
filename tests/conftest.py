import os
import tempfile
from unittest.mock import AsyncMock, MagicMock

import pytest

# La configuración se lee al importar portal: la base de pruebas va primero
_DB_DIR = tempfile.mkdtemp(prefix="portal-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{_DB_DIR}/portal_test.db"
os.environ["ENVIRONMENT"] = "test"
os.environ["SESSION_SECRET_KEY"] = "clave-de-pruebas"

from fastapi.testclient import TestClient  # noqa: E402
from werkzeug.security import generate_password_hash  # noqa: E402

from portal.db import Base, SessionLocal, engine  # noqa: E402
from portal.main import app  # noqa: E402
from portal.models import Modulo, Pestana, Rol, RolAcceso, Usuario  # noqa: E402
from portal.services.menu_cache import MenuCache  # noqa: E402
from portal.services.permisos import BASE_PERMISOS  # noqa: E402
from portal.services.rate_limiter import LoginRateLimiter  # noqa: E402

ROL_ADMIN = 1
ROL_ESTANDAR = 2

ADMIN_DOC = "1000"
ESTANDAR_DOC = "2000"
PASSWORD = "Clave123*"

# Superficies administrativas (ids por defecto de la configuración)
PADRE_ADMIN = 10
MODULO_GESTION = 11
MODULO_ROLES = 12
MODULO_USUARIOS = 13
MODULO_CONTROL_ACCESO = 15
MODULO_AUDITORIA = 5

# Módulo de negocio con pestañas
MODULO_VENTAS = 20
PESTANA_RESUMEN = 30
PESTANA_DETALLE = 31


def _cargar_datos(db):
    db.add_all([
        Rol(id=ROL_ADMIN, nombre="SuperAdmin", abreviatura="SA"),
        Rol(id=ROL_ESTANDAR, nombre="Estandar", abreviatura="EST"),
    ])
    db.add(Modulo(id=PADRE_ADMIN, nombre="Administración", icono="settings", ruta="/admin", es_padre=True, orden=90))
    db.flush()
    db.add_all([
        Modulo(id=MODULO_GESTION, nombre="Módulos", icono="view-module", ruta="/modulos",
               modulo_padre_id=PADRE_ADMIN, orden=1),
        Modulo(id=MODULO_ROLES, nombre="Roles", icono="badge", ruta="/roles",
               modulo_padre_id=PADRE_ADMIN, orden=2),
        Modulo(id=MODULO_USUARIOS, nombre="Usuarios", icono="group", ruta="/usuarios",
               modulo_padre_id=PADRE_ADMIN, orden=3),
        Modulo(id=MODULO_CONTROL_ACCESO, nombre="Control de acceso", icono="lock", ruta="/accesos",
               modulo_padre_id=PADRE_ADMIN, orden=4),
        Modulo(id=MODULO_AUDITORIA, nombre="Auditoría", icono="history", ruta="/auditorias",
               modulo_padre_id=PADRE_ADMIN, orden=5),
        Modulo(id=MODULO_VENTAS, nombre="Ventas", icono="store", ruta="/ventas",
               permisos_extra=["exportar"], orden=1),
    ])
    db.flush()
    db.add_all([
        Pestana(id=PESTANA_RESUMEN, modulo_id=MODULO_VENTAS, nombre="Resumen", ruta="/resumen", orden=1),
        Pestana(id=PESTANA_DETALLE, modulo_id=MODULO_VENTAS, nombre="Detalle", ruta="/detalle",
                permisos_extra=["aprobar"], orden=2),
    ])

    db.add(RolAcceso(rol_id=ROL_ADMIN, tipo_nodo="modulo", nodo_id=PADRE_ADMIN, permisos=[]))
    for modulo_id in (MODULO_GESTION, MODULO_ROLES, MODULO_USUARIOS, MODULO_CONTROL_ACCESO, MODULO_AUDITORIA):
        db.add(RolAcceso(rol_id=ROL_ADMIN, tipo_nodo="modulo", nodo_id=modulo_id, permisos=list(BASE_PERMISOS)))

    db.add_all([
        Usuario(numero_documento=ADMIN_DOC, email="admin@empresa.com", rol_id=ROL_ADMIN,
                password_hash=generate_password_hash(PASSWORD), intentos_fallidos=0),
        Usuario(numero_documento=ESTANDAR_DOC, email="estandar@empresa.com", rol_id=ROL_ESTANDAR,
                password_hash=generate_password_hash(PASSWORD), intentos_fallidos=0),
    ])
    db.commit()


@pytest.fixture
def db():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    _cargar_datos(session)
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def contratos():
    """Registro de contratos simulado: por defecto todo documento tiene contrato activo."""
    mock = MagicMock()
    mock.tiene_contrato_activo = AsyncMock(return_value=True)
    mock.ping = AsyncMock(return_value=True)
    return mock


@pytest.fixture
def client(db, contratos):
    app.state.contratos = contratos
    app.state.login_limiter = LoginRateLimiter("100/minute")
    app.state.menu_cache = MenuCache()
    return TestClient(app, follow_redirects=False)


def login(client, documento=ADMIN_DOC, password=PASSWORD):
    response = client.post("/login", data={"numero_documento": documento, "password": password})
    assert response.status_code == 302, response.text
    return response


def usuario(db, documento):
    db.expire_all()
    return db.query(Usuario).filter(Usuario.numero_documento == documento).one()
