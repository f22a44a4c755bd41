import pytest

from conftest import MODULO_GESTION, MODULO_VENTAS, PADRE_ADMIN
from portal.exceptions import InvalidNodeDefinition
from portal.repositories import ModulosRepository, PestanasRepository
from portal.schemas.modulos import ModuloCreate, PestanaCreate


@pytest.fixture
def modulos(db):
    return ModulosRepository(db)


@pytest.fixture
def pestanas(db):
    return PestanasRepository(db)


def _error(funcion, *args):
    with pytest.raises(InvalidNodeDefinition) as exc:
        funcion(*args)
    return exc.value.campo


def test_crear_modulo_hijo(modulos):
    modulo = modulos.crear(ModuloCreate(
        nombre="Reportes", icono="chart", ruta="/reportes", modulo_padre_id=PADRE_ADMIN,
        permisos_extra="exportar, imprimir",
    ))
    assert modulo.permisos_extra == ["exportar", "imprimir"]
    assert modulo.ruta_completa == "/admin/reportes"


def test_modulo_padre_sin_padre_ni_permisos_extra(modulos):
    assert _error(modulos.crear, {"nombre": "Otro", "icono": "x", "ruta": "/otro", "es_padre": True,
                                  "modulo_padre_id": PADRE_ADMIN}) == "modulo_padre_id"
    assert _error(modulos.crear, {"nombre": "Otro", "icono": "x", "ruta": "/otro", "es_padre": True,
                                  "permisos_extra": ["exportar"]}) == "permisos_extra"


def test_padre_debe_existir_y_ser_padre(modulos):
    assert _error(modulos.crear, {"nombre": "Otro", "icono": "x", "ruta": "/otro",
                                  "modulo_padre_id": 999}) == "modulo_padre_id"
    assert _error(modulos.crear, {"nombre": "Otro", "icono": "x", "ruta": "/otro",
                                  "modulo_padre_id": MODULO_VENTAS}) == "modulo_padre_id"


def test_modulo_no_puede_ser_su_propio_padre(modulos):
    assert _error(modulos.actualizar, MODULO_VENTAS, {"modulo_padre_id": MODULO_VENTAS}) == "modulo_padre_id"


def test_nombre_y_ruta_unicos(modulos):
    assert _error(modulos.crear, {"nombre": "Ventas", "icono": "x", "ruta": "/nueva"}) == "nombre"
    assert _error(modulos.crear, {"nombre": "Nueva", "icono": "x", "ruta": "/ventas"}) == "ruta"


def test_modulo_con_pestanas_no_puede_ser_padre(modulos):
    assert _error(modulos.actualizar, MODULO_VENTAS, {"es_padre": True, "permisos_extra": []}) == "es_padre"


def test_modulo_con_hijos_sigue_siendo_padre(modulos):
    assert _error(modulos.actualizar, PADRE_ADMIN, {"es_padre": False}) == "es_padre"


def test_permisos_extra_invalidos(modulos):
    assert _error(modulos.actualizar, MODULO_VENTAS, {"permisos_extra": ["Exportar"]}) == "permisos_extra"


def test_pestana_en_modulo_padre_o_eliminado(modulos, pestanas):
    assert _error(pestanas.crear, {"modulo_id": PADRE_ADMIN, "nombre": "Uno", "ruta": "/uno"}) == "modulo_id"

    modulos.eliminar(MODULO_GESTION)
    assert _error(pestanas.crear, {"modulo_id": MODULO_GESTION, "nombre": "Uno", "ruta": "/uno"}) == "modulo_id"


def test_ruta_de_pestana_unica_en_su_modulo(modulos, pestanas):
    assert _error(pestanas.crear, {"modulo_id": MODULO_VENTAS, "nombre": "Otra", "ruta": "/resumen"}) == "ruta"

    pestana = pestanas.crear(PestanaCreate(modulo_id=MODULO_GESTION, nombre="Resumen", ruta="/resumen"))
    assert pestana.ruta_completa == "/admin/modulos/resumen"


def test_eliminar_es_logico(db, modulos):
    assert modulos.eliminar(MODULO_VENTAS)
    assert modulos.get(MODULO_VENTAS) is None
    assert modulos.get(MODULO_VENTAS, include_deleted=True).deleted_at is not None
    assert modulos.eliminar(MODULO_VENTAS) is False
