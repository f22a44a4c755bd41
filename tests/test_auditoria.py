import logging
from unittest.mock import patch

from sqlalchemy.exc import OperationalError
from werkzeug.security import generate_password_hash

from conftest import ROL_ESTANDAR, usuario
from portal.db import SessionLocal
from portal.models import Auditoria, Rol
from portal.repositories import AccesosRepository, RolesRepository, UsuariosRepository
from portal.services.auditoria_service import VALOR_OCULTO, VALOR_OCULTO_CAMBIADO, AuditRecorder, diff


def _registros(db, tabla, accion=None):
    db.expire_all()
    query = db.query(Auditoria).filter(Auditoria.tabla_afectada == tabla)
    if accion:
        query = query.filter(Auditoria.accion == accion)
    return query.order_by(Auditoria.id.asc()).all()


def test_diff_solo_campos_cambiados():
    cambios = diff({"a": 1, "b": 2}, {"a": 1, "b": 3, "c": None})
    assert cambios == [{"field": "b", "before": 2, "after": 3}]


def test_insert_registra_todos_los_campos_sin_valor_previo(db):
    repo = UsuariosRepository(db, AuditRecorder(db, actor_id=1))
    nuevo = repo.crear("3000", "nuevo@empresa.com", "Clave123*", ROL_ESTANDAR)

    [registro] = _registros(db, "usuarios", "INSERT")
    assert registro.id_registro_afectado == str(nuevo.id)
    assert registro.usuario_id == 1
    assert all(c["before"] is None for c in registro.cambios)
    campos = {c["field"]: c["after"] for c in registro.cambios}
    assert campos["numero_documento"] == "3000"
    assert campos["password_hash"] == VALOR_OCULTO
    assert "created_at" not in campos


def test_update_de_un_campo_genera_una_sola_tupla(db):
    repo = UsuariosRepository(db)
    estandar = usuario(db, "2000")
    repo.update(estandar.id, {"email": "otro@empresa.com"}, actor_id=1)

    [registro] = _registros(db, "usuarios", "UPDATE")
    assert registro.cambios == [
        {"field": "email", "before": "estandar@empresa.com", "after": "otro@empresa.com"}
    ]


def test_cambio_de_contrasena_se_registra_con_marcadores_distintos(db):
    repo = UsuariosRepository(db)
    estandar = usuario(db, "2000")
    repo.update(estandar.id, {"password_hash": generate_password_hash("Otra123*")}, actor_id=1)

    [registro] = _registros(db, "usuarios", "UPDATE")
    assert registro.cambios == [
        {"field": "password_hash", "before": VALOR_OCULTO, "after": VALOR_OCULTO_CAMBIADO}
    ]
    assert VALOR_OCULTO != VALOR_OCULTO_CAMBIADO


def test_update_sin_cambios_no_registra(db):
    repo = UsuariosRepository(db)
    estandar = usuario(db, "2000")
    repo.update(estandar.id, {"email": "estandar@empresa.com"}, actor_id=1)

    assert _registros(db, "usuarios", "UPDATE") == []


def test_delete_registra_valores_previos_sin_valor_posterior(db):
    repo = RolesRepository(db)
    rol_id = repo.create({"nombre": "Temporal", "abreviatura": "TMP"}).id
    repo.eliminar(rol_id, actor_id=1)

    [registro] = _registros(db, "roles", "DELETE")
    assert registro.id_registro_afectado == str(rol_id)
    assert all(c["after"] is None for c in registro.cambios)
    assert {c["field"]: c["before"] for c in registro.cambios}["nombre"] == "Temporal"


def test_fallo_de_auditoria_no_deshace_la_mutacion(db, caplog):
    otra = SessionLocal()
    try:
        auditor = AuditRecorder(otra)
        repo = UsuariosRepository(db, auditor)
        with patch.object(otra, "commit", side_effect=OperationalError("INSERT", {}, Exception("sin conexión"))):
            with caplog.at_level(logging.ERROR, logger="uvicorn"):
                repo.crear("3001", "fallo@empresa.com", "Clave123*", ROL_ESTANDAR)
    finally:
        otra.close()

    assert usuario(db, "3001").email == "fallo@empresa.com"
    assert _registros(db, "usuarios") == []
    assert "AuditWriteFailed" in caplog.text


def test_eliminar_rol_audita_sus_accesos(db):
    repo = RolesRepository(db)
    rol_id = repo.create({"nombre": "Con accesos", "abreviatura": "CA"}).id
    AccesosRepository(db).grant(rol_id, "modulo", 20, ["view"])

    repo.eliminar(rol_id)

    borrados = _registros(db, "rol_accesos", "DELETE")
    assert [r.id_registro_afectado for r in borrados] == [f"{rol_id}-modulo-20"]
    db.expire_all()
    assert db.get(Rol, rol_id) is None
