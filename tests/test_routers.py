from datetime import datetime, timezone

from conftest import (
    ADMIN_DOC,
    ESTANDAR_DOC,
    MODULO_VENTAS,
    PASSWORD,
    PESTANA_DETALLE,
    PESTANA_RESUMEN,
    ROL_ADMIN,
    ROL_ESTANDAR,
    login,
    usuario,
)
from portal.main import app
from portal.models import RolAcceso
from portal.services.rate_limiter import LoginRateLimiter


# Sesión y login

def test_api_sin_sesion_responde_401(client):
    assert client.get("/api/menu").status_code == 401
    assert client.get("/modulos/").status_code == 401


def test_navegacion_sin_sesion_redirige_al_login(client):
    response = client.get("/dashboard", headers={"accept": "text/html"})
    assert response.status_code == 303
    assert response.headers["location"] == "/login?next=/dashboard"


def test_login_exitoso_crea_la_sesion(client):
    response = login(client)
    assert response.headers["location"] == "/dashboard"

    me = client.get("/api/auth/me").json()
    assert me["numero_documento"] == ADMIN_DOC
    assert me["rol_id"] == ROL_ADMIN


def test_logout(client):
    login(client)
    assert client.get("/logout").status_code == 303
    assert client.get("/api/auth/me").status_code == 401


def test_login_formulario_invalido(client):
    response = client.post("/login", data={"numero_documento": "12a", "password": ""})
    assert response.status_code == 422
    body = response.json()
    assert body["code"] == "validation_error"
    assert set(body["errors"]) == {"numero_documento", "password"}


def test_login_contrasena_incorrecta_y_bloqueo(client, db):
    for _ in range(2):
        response = client.post("/login", data={"numero_documento": ESTANDAR_DOC, "password": "Mala123"})
        assert response.status_code == 422
        assert response.json()["code"] == "wrong_password"

    response = client.post("/login", data={"numero_documento": ESTANDAR_DOC, "password": "Mala123"})
    body = response.json()
    assert body["code"] == "blocked"
    assert "múltiples intentos" in body["errors"]["numero_documento"]
    assert usuario(db, ESTANDAR_DOC).bloqueado_at is not None


def test_login_documento_como_contrasena_redirige_al_registro(client):
    response = client.post("/login", data={"numero_documento": "5555", "password": "5555"})
    assert response.status_code == 422
    body = response.json()
    assert body["code"] == "registration_required"
    assert body["redirect"] == "/registro?documento=5555"


def test_login_limitado_responde_429(client):
    app.state.login_limiter = LoginRateLimiter("1/minute")
    client.post("/login", data={"numero_documento": "5555", "password": "Clave1"})

    response = client.post("/login", data={"numero_documento": "5555", "password": "Clave1"})

    assert response.status_code == 429
    assert int(response.headers["retry-after"]) >= 1
    assert response.json()["code"] == "rate_limited"


# Autoregistro

REGISTRO = {
    "numero_documento": "7777",
    "email": "Nuevo@Empresa.com",
    "password": "Clave123*",
    "password_confirmation": "Clave123*",
}


def test_registro_crea_usuario_y_sesion(client, db):
    response = client.post("/registro", json=REGISTRO)
    assert response.status_code == 201
    assert response.json()["email"] == "nuevo@empresa.com"

    assert client.get("/api/auth/me").json()["numero_documento"] == "7777"
    assert usuario(db, "7777").rol_id == ROL_ESTANDAR


def test_registro_duplicado(client):
    response = client.post("/registro", json={**REGISTRO, "numero_documento": ESTANDAR_DOC})
    assert response.status_code == 409
    assert response.json()["code"] == "already_registered"


def test_registro_sin_contrato(client, contratos):
    contratos.tiene_contrato_activo.return_value = False
    response = client.post("/registro", json=REGISTRO)
    assert response.status_code == 422
    assert response.json()["code"] == "registration_rejected"


def test_registro_contrasenas_distintas(client):
    response = client.post("/registro", json={**REGISTRO, "password_confirmation": "Otra123*"})
    assert response.status_code == 422
    assert "password_confirmation" in response.json()["errors"]


# Puerta de acceso

def test_403_sin_acceso(client):
    login(client, ESTANDAR_DOC)
    response = client.get("/modulos/")
    assert response.status_code == 403
    assert response.json() == {
        "detail": {"code": "no_access", "message": "Su rol no tiene acceso a este recurso"}
    }


def test_acceso_a_pestanas(client, db):
    db.add(RolAcceso(rol_id=ROL_ESTANDAR, tipo_nodo="pestana", nodo_id=PESTANA_RESUMEN, permisos=["view"]))
    db.commit()
    login(client, ESTANDAR_DOC)

    assert client.get(f"/pestanas/{PESTANA_RESUMEN}/acceso").status_code == 200
    assert client.get(f"/pestanas/{PESTANA_DETALLE}/acceso").json()["detail"]["code"] == "no_access"
    assert client.get("/pestanas/999/acceso").json()["detail"]["code"] == "node_missing"


def test_menu_del_usuario(client, db):
    db.add(RolAcceso(rol_id=ROL_ESTANDAR, tipo_nodo="pestana", nodo_id=PESTANA_RESUMEN, permisos=[]))
    db.commit()
    login(client, ESTANDAR_DOC)

    menu = client.get("/api/menu").json()
    assert [m["id"] for m in menu] == [MODULO_VENTAS]
    assert menu[0]["pestanas"][0]["ruta"] == "/ventas/resumen"

    visibles = client.get(f"/modulos/{MODULO_VENTAS}/pestanas/visibles")
    # Ver las pestañas exige acceso al módulo mismo
    assert visibles.status_code == 403


def test_cambio_de_rol_surte_efecto_sin_cerrar_sesion(client, db):
    login(client, ESTANDAR_DOC)
    assert client.get("/modulos/").status_code == 403

    usuario(db, ESTANDAR_DOC).rol_id = ROL_ADMIN
    db.commit()

    assert client.get("/modulos/").status_code == 200
    assert client.get("/api/auth/me").json()["rol_id"] == ROL_ADMIN


# Administración

def test_crud_de_modulos(client):
    login(client)
    response = client.post("/modulos/", json={
        "nombre": "Compras", "icono": "cart", "ruta": "/compras", "permisos_extra": "aprobar",
    })
    assert response.status_code == 201
    modulo = response.json()
    assert modulo["permisos_extra"] == ["aprobar"]

    response = client.patch(f"/modulos/{modulo['id']}", json={"orden": 3})
    assert response.json()["orden"] == 3

    assert client.delete(f"/modulos/{modulo['id']}").json() == {"success": True}
    assert client.get(f"/modulos/{modulo['id']}").status_code == 404


def test_modulo_invalido(client):
    login(client)
    response = client.post("/modulos/", json={"nombre": "Ventas", "icono": "x", "ruta": "/otra"})
    assert response.status_code == 422
    assert response.json() == {"code": "invalid_node_definition",
                               "errors": {"nombre": "Ya existe un módulo con este nombre"}}

    response = client.post("/modulos/", json={"nombre": "Otra", "icono": "X", "ruta": "otra"})
    assert response.status_code == 422
    assert set(response.json()["errors"]) == {"icono", "ruta"}


def test_actualizar_con_null_en_campo_obligatorio_responde_422(client):
    login(client)
    for campo in ("nombre", "icono", "ruta", "es_padre", "orden", "permisos_extra"):
        response = client.patch(f"/modulos/{MODULO_VENTAS}", json={campo: None})
        assert response.status_code == 422, campo
        assert response.json()["errors"] == {campo: "El campo no puede ser nulo"}

    for campo in ("modulo_id", "nombre", "ruta", "orden"):
        response = client.patch(f"/pestanas/{PESTANA_RESUMEN}", json={campo: None})
        assert response.status_code == 422, campo
        assert response.json()["errors"] == {campo: "El campo no puede ser nulo"}


def test_actualizar_con_null_en_campos_opcionales(client):
    login(client)
    response = client.patch(f"/modulos/{MODULO_VENTAS}", json={"modulo_padre_id": None})
    assert response.status_code == 200
    assert response.json()["modulo_padre_id"] is None

    response = client.patch(f"/pestanas/{PESTANA_RESUMEN}", json={"icono": None})
    assert response.status_code == 200
    assert response.json()["icono"] is None


def test_conceder_y_revocar_accesos(client):
    login(client)
    url = f"/accesos/roles/{ROL_ESTANDAR}/modulo/{MODULO_VENTAS}"

    response = client.put(url, json={"permisos": ["view", "exportar"]})
    assert response.status_code == 200
    assert response.json()["permisos"] == ["exportar", "view"]
    assert response.json()["estado"] == "presente"

    response = client.put(url, json={"permisos": ["imprimir"]})
    assert response.status_code == 422
    assert response.json()["code"] == "invalid_permission_token"
    assert response.json()["token"] == "imprimir"

    listado = client.get(f"/accesos/roles/{ROL_ESTANDAR}").json()
    assert [(a["nodo_id"], a["permisos"]) for a in listado] == [(MODULO_VENTAS, ["exportar", "view"])]

    assert client.delete(url).json() == {"success": True}
    assert client.delete(url).status_code == 404


def test_accesos_exigen_permisos_de_control_de_acceso(client, db):
    acceso = db.get(RolAcceso, (ROL_ADMIN, "modulo", 15))
    acceso.permisos = ["view", "edit"]
    db.commit()
    login(client)

    response = client.put(f"/accesos/roles/{ROL_ESTANDAR}/modulo/{MODULO_VENTAS}", json={"permisos": []})
    assert response.status_code == 403
    assert response.json()["detail"]["code"] == "missing_permission"


def test_consulta_de_auditoria(client):
    login(client)
    client.put(f"/accesos/roles/{ROL_ESTANDAR}/modulo/{MODULO_VENTAS}", json={"permisos": ["view"]})

    pagina = client.get("/auditorias/", params={"tabla": "rol_accesos", "accion": "insert"}).json()
    assert pagina["total"] == 1
    [registro] = pagina["items"]
    assert registro["id_registro_afectado"] == f"{ROL_ESTANDAR}-modulo-{MODULO_VENTAS}"
    assert registro["usuario"]["numero_documento"] == ADMIN_DOC

    assert "rol_accesos" in client.get("/auditorias/tablas").json()


def test_desbloquear_usuario(client, db):
    bloqueado = usuario(db, ESTANDAR_DOC)
    bloqueado.intentos_fallidos = 3
    bloqueado.bloqueado_at = datetime.now(timezone.utc)
    db.commit()
    login(client)

    response = client.post(f"/usuarios/{bloqueado.id}/desbloquear")
    assert response.status_code == 200
    assert response.json()["intentos_fallidos"] == 0
    assert response.json()["bloqueado_at"] is None

    client.post("/logout")
    login(client, ESTANDAR_DOC, PASSWORD)


def test_rol_con_usuarios_no_se_elimina(client):
    login(client)
    response = client.delete(f"/roles/{ROL_ESTANDAR}")
    assert response.status_code == 409


def test_pagina_de_login_indica_si_hay_sesion(client):
    assert client.get("/login").json()["autenticado"] is False
    login(client)
    assert client.get("/login").json()["autenticado"] is True
