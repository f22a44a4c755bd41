from datetime import datetime, timezone
from unittest.mock import patch

from sqlalchemy.dialects import postgresql
from sqlalchemy.orm import Query

from conftest import ADMIN_DOC, ESTANDAR_DOC, ROL_ESTANDAR, login, usuario
from portal.db import SessionLocal
from portal.repositories.usuarios_repository import UsuariosRepository
from portal.services.auditoria_service import AuditRecorder


def _sql_postgres(llamada) -> str:
    """SQL que emitiría la consulta en PostgreSQL, sin ejecutarla."""
    consultas = []

    def capturar(query):
        consultas.append(query)
        return None

    with patch.object(Query, "first", autospec=True, side_effect=capturar):
        llamada()
    [query] = consultas
    return str(query.statement.compile(dialect=postgresql.dialect()))


def test_lectura_para_login_bloquea_la_fila(db):
    repo = UsuariosRepository(db)
    sql = _sql_postgres(lambda: repo.get_by_documento(ESTANDAR_DOC, for_update=True))
    assert sql.rstrip().endswith("FOR UPDATE")

    sql = _sql_postgres(lambda: repo.get_by_documento(ESTANDAR_DOC))
    assert "FOR UPDATE" not in sql


def test_get_for_update_bloquea_la_fila(db):
    repo = UsuariosRepository(db)
    sql = _sql_postgres(lambda: repo.get_for_update(1))
    assert sql.rstrip().endswith("FOR UPDATE")


def test_intentos_fallidos_intercalados_terminan_en_bloqueo(db):
    estandar = usuario(db, ESTANDAR_DOC)
    estandar.intentos_fallidos = 2
    db.commit()

    primera, segunda = SessionLocal(), SessionLocal()
    try:
        repo_a = UsuariosRepository(primera, AuditRecorder(primera))
        repo_b = UsuariosRepository(segunda, AuditRecorder(segunda))
        a = repo_a.get_by_documento(ESTANDAR_DOC, for_update=True)
        b = repo_b.get_by_documento(ESTANDAR_DOC, for_update=True)
        assert a.intentos_fallidos == b.intentos_fallidos == 2

        repo_a.registrar_intento_fallido(a, max_intentos=3)
        b = repo_b.registrar_intento_fallido(b, max_intentos=3)
        assert b.intentos_fallidos == 4
    finally:
        primera.close()
        segunda.close()

    final = usuario(db, ESTANDAR_DOC)
    assert final.intentos_fallidos == 4
    assert final.bloqueado_at is not None
    assert final.esta_bloqueado(3)


def _crear_usuarios(db, cantidad):
    repo = UsuariosRepository(db)
    return [
        repo.crear(f"30{i:02d}", f"usuario{i}@empresa.com", "Clave123*", ROL_ESTANDAR)
        for i in range(cantidad)
    ]


def test_listar_filtra_bloqueados_antes_de_paginar(db):
    creados = _crear_usuarios(db, 4)
    creados[2].bloqueado_at = datetime.now(timezone.utc)
    creados[3].intentos_fallidos = 3
    db.commit()
    repo = UsuariosRepository(db)

    pagina = repo.listar(bloqueados=True, max_intentos=3, skip=0, limit=1)
    assert [u.id for u in pagina] == [creados[2].id]
    pagina = repo.listar(bloqueados=True, max_intentos=3, skip=1, limit=1)
    assert [u.id for u in pagina] == [creados[3].id]

    habilitados = repo.listar(bloqueados=False, max_intentos=3)
    documentos = [u.numero_documento for u in habilitados]
    assert documentos == [ADMIN_DOC, ESTANDAR_DOC, "3000", "3001"]

    assert len(repo.listar(rol_id=ROL_ESTANDAR, bloqueados=False, max_intentos=3)) == 3


def test_listado_de_bloqueados_por_http(client, db):
    creados = _crear_usuarios(db, 3)
    creados[1].bloqueado_at = datetime.now(timezone.utc)
    db.commit()
    login(client)

    response = client.get("/usuarios/", params={"bloqueados": True, "limit": 1})
    assert response.status_code == 200
    assert [u["numero_documento"] for u in response.json()] == ["3001"]
