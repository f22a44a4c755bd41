"""
Carga inicial del portal: roles, superficies administrativas, accesos del
rol administrador y un usuario administrador.

Es idempotente: lo que ya existe no se vuelve a crear.

Uso:
  python scripts/seed_portal.py <numero_documento> <email> <password>
"""
import logging
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from sqlalchemy import text

from portal.config import get_settings
from portal.db import SessionLocal
from portal.models import Modulo, Rol, TipoNodo
from portal.repositories import AccesosRepository, ModulosRepository, RolesRepository, UsuariosRepository
from portal.services.permisos import BASE_PERMISOS

logging.basicConfig(level=logging.INFO, format="%(levelname)s %(message)s")
logger = logging.getLogger("seed")

ROL_ADMIN_ID = 1

ROLES = [
    {"id": ROL_ADMIN_ID, "nombre": "SuperAdmin", "abreviatura": "SA"},
    {"id": 2, "nombre": "Estandar", "abreviatura": "EST"},
]

PADRE_ADMINISTRACION_ID = 10


def _modulos(settings):
    return [
        {"id": PADRE_ADMINISTRACION_ID, "nombre": "Administración", "icono": "settings",
         "ruta": "/admin", "es_padre": True, "orden": 90},
        {"id": settings.modulo_gestion_modulos_id, "nombre": "Módulos", "icono": "view-module",
         "ruta": "/modulos", "modulo_padre_id": PADRE_ADMINISTRACION_ID, "orden": 1},
        {"id": settings.modulo_roles_id, "nombre": "Roles", "icono": "badge",
         "ruta": "/roles", "modulo_padre_id": PADRE_ADMINISTRACION_ID, "orden": 2},
        {"id": settings.modulo_usuarios_id, "nombre": "Usuarios", "icono": "group",
         "ruta": "/usuarios", "modulo_padre_id": PADRE_ADMINISTRACION_ID, "orden": 3},
        {"id": settings.modulo_control_acceso_id, "nombre": "Control de acceso", "icono": "lock",
         "ruta": "/accesos", "modulo_padre_id": PADRE_ADMINISTRACION_ID, "orden": 4},
        {"id": settings.modulo_auditoria_id, "nombre": "Auditoría", "icono": "history",
         "ruta": "/auditorias", "modulo_padre_id": PADRE_ADMINISTRACION_ID, "orden": 5},
    ]


def _ajustar_secuencias(db) -> None:
    """En PostgreSQL los ids explícitos no avanzan la secuencia SERIAL."""
    if db.bind.dialect.name != "postgresql":
        return
    for tabla in ("roles", "modulos"):
        db.execute(text(
            f"SELECT setval(pg_get_serial_sequence('{tabla}', 'id'), "
            f"(SELECT COALESCE(MAX(id), 1) FROM {tabla}))"
        ))
    db.commit()


def seed(numero_documento: str, email: str, password: str) -> None:
    settings = get_settings()
    db = SessionLocal()
    try:
        roles = RolesRepository(db)
        for datos in ROLES:
            if db.get(Rol, datos["id"]) is None:
                roles.create(datos)
                logger.info("Rol creado: %s", datos["nombre"])

        modulos = ModulosRepository(db)
        for datos in _modulos(settings):
            if db.get(Modulo, datos["id"]) is None:
                modulos.crear(datos)
                logger.info("Módulo creado: %s", datos["nombre"])
        _ajustar_secuencias(db)

        accesos = AccesosRepository(db)
        for datos in _modulos(settings):
            if datos.get("es_padre"):
                continue
            accesos.grant(ROL_ADMIN_ID, TipoNodo.MODULO, datos["id"], BASE_PERMISOS)
        logger.info("Accesos del rol administrador actualizados")

        usuarios = UsuariosRepository(db)
        if usuarios.get_by_documento(numero_documento) is None:
            usuarios.crear(numero_documento, email, password, ROL_ADMIN_ID)
            logger.info("Usuario administrador creado: %s", numero_documento)
        else:
            logger.info("El usuario %s ya existe", numero_documento)
    finally:
        db.close()


if __name__ == "__main__":
    if len(sys.argv) != 4:
        print(__doc__)
        sys.exit(1)
    seed(*sys.argv[1:])
