import pytest

from conftest import (
    MODULO_AUDITORIA,
    MODULO_GESTION,
    MODULO_VENTAS,
    PADRE_ADMIN,
    PESTANA_DETALLE,
    PESTANA_RESUMEN,
    ROL_ADMIN,
    ROL_ESTANDAR,
)
from portal.exceptions import NotFoundError
from portal.models import Pestana, TipoNodo
from portal.repositories import AccesosRepository, ModulosRepository, PestanasRepository
from portal.services.arbol_autorizacion import AuthorizationTree, EstadoNodo


@pytest.fixture
def arbol(db):
    return AuthorizationTree(db)


@pytest.fixture
def accesos(db):
    return AccesosRepository(db)


def test_resolve_estados(db, arbol):
    assert arbol.resolve(TipoNodo.MODULO, MODULO_VENTAS).estado == EstadoNodo.PRESENTE
    assert arbol.resolve("pestana", 999).estado == EstadoNodo.INEXISTENTE
    assert arbol.resolve("carpeta", 1).estado == EstadoNodo.INEXISTENTE

    ModulosRepository(db).eliminar(PADRE_ADMIN)
    hijo = arbol.resolve(TipoNodo.MODULO, MODULO_GESTION)
    assert hijo.estado == EstadoNodo.ELIMINADO
    assert hijo.etiqueta == "padre eliminado"


def test_children_of_ordena_por_orden_e_id(db, arbol):
    db.add(Pestana(modulo_id=MODULO_VENTAS, nombre="Primera", ruta="/primera", orden=0))
    db.commit()

    rutas = [p.ruta for p in arbol.children_of(MODULO_VENTAS)]
    assert rutas == ["/primera", "/resumen", "/detalle"]


def test_children_of_modulo_eliminado(db, arbol):
    ModulosRepository(db).eliminar(MODULO_VENTAS)
    with pytest.raises(NotFoundError):
        arbol.children_of(MODULO_VENTAS)


def test_menu_vacio_sin_accesos(arbol):
    assert arbol.menu_for(ROL_ESTANDAR) == []


def test_menu_incluye_modulo_por_pestana_concedida(arbol, accesos):
    accesos.grant(ROL_ESTANDAR, TipoNodo.PESTANA, PESTANA_RESUMEN, [])

    [ventas] = arbol.menu_for(ROL_ESTANDAR)
    assert ventas.id == MODULO_VENTAS
    assert ventas.acceso_directo is False
    assert [(p.id, p.ruta) for p in ventas.pestanas] == [(PESTANA_RESUMEN, "/ventas/resumen")]


def test_menu_de_modulos_hijos_bajo_su_padre(arbol):
    menu = arbol.menu_for(ROL_ADMIN)

    [admin] = [m for m in menu if m.id == PADRE_ADMIN]
    assert admin.es_padre
    hijos = [h.id for h in admin.hijos]
    assert hijos[0] == MODULO_GESTION
    assert hijos[-1] == MODULO_AUDITORIA
    assert admin.hijos[0].ruta == "/admin/modulos"


def test_menu_omite_hijos_de_padre_eliminado(db, arbol):
    ModulosRepository(db).eliminar(PADRE_ADMIN)
    assert arbol.menu_for(ROL_ADMIN) == []


def test_menu_omite_pestanas_eliminadas(db, arbol, accesos):
    accesos.grant(ROL_ESTANDAR, TipoNodo.MODULO, MODULO_VENTAS, ["view"])
    accesos.grant(ROL_ESTANDAR, TipoNodo.PESTANA, PESTANA_DETALLE, ["view"])
    PestanasRepository(db).eliminar(PESTANA_DETALLE)

    [ventas] = arbol.menu_for(ROL_ESTANDAR)
    assert ventas.acceso_directo
    assert ventas.pestanas == []


def test_pestanas_visibles(arbol, accesos):
    accesos.grant(ROL_ESTANDAR, TipoNodo.PESTANA, PESTANA_DETALLE, ["aprobar"])

    visibles = arbol.pestanas_visibles(MODULO_VENTAS, ROL_ESTANDAR)
    assert [p.id for p in visibles] == [PESTANA_DETALLE]
    assert visibles[0].ruta == "/ventas/detalle"
