from typing import Any, Dict, List, Optional, Union
from sqlalchemy.orm import Session

from portal.exceptions import InvalidNodeDefinition, NotFoundError
from portal.models import Modulo, Pestana, TipoNodo
from portal.repositories.accesos_repository import AccesosRepository
from portal.repositories.base import BaseRepository
from portal.schemas.modulos import ModuloCreate, ModuloUpdate, PestanaCreate, PestanaUpdate
from portal.services.auditoria_service import AuditRecorder
from portal.services.menu_cache import MenuCache
from portal.services.permisos import PermissionCatalog


def _datos(obj_in: Union[Any, Dict[str, Any]], parcial: bool) -> Dict[str, Any]:
    if hasattr(obj_in, "model_dump"):
        return obj_in.model_dump(exclude_unset=parcial)
    return dict(obj_in)


class _NodoRepository(BaseRepository):
    """Comportamiento común de módulos y pestañas: caché de menús y depuración de permisos."""

    tipo_nodo: TipoNodo

    def __init__(
        self,
        model,
        db: Session,
        auditor: Optional[AuditRecorder] = None,
        menu_cache: Optional[MenuCache] = None,
        catalogo: Optional[PermissionCatalog] = None,
    ):
        super().__init__(model, db, auditor)
        self.menu_cache = menu_cache
        self.catalogo = catalogo or PermissionCatalog()

    def listar(self, include_deleted: bool = False) -> List:
        return self._query(include_deleted).order_by(self.model.orden.asc(), self.model.id.asc()).all()

    def _validar(self, datos: Dict[str, Any], actual=None) -> Dict[str, Any]:
        raise NotImplementedError

    def crear(self, obj_in, actor_id: Optional[int] = None):
        """
        Crea el nodo tras validar las reglas del árbol.

        Raises:
            InvalidNodeDefinition: si la definición rompe alguna regla
        """
        limpio = self._validar(_datos(obj_in, parcial=False))
        nodo = self.create(limpio, actor_id=actor_id)
        self._vaciar_cache()
        return nodo

    def actualizar(self, id: int, obj_in, actor_id: Optional[int] = None):
        """
        Actualiza el nodo. Si se retiran permisos extra, se quitan también de
        los accesos que los tenían concedidos.

        Returns:
            Nodo actualizado o None si no existe
        """
        actual = self.get(id)
        if not actual:
            return None
        extra_previo = list(actual.permisos_extra or [])
        limpio = self._validar(_datos(obj_in, parcial=True), actual)
        nodo = self.update(id, limpio, actor_id=actor_id)
        if nodo is not None and set(extra_previo) - set(nodo.permisos_extra or []):
            AccesosRepository(self.db, self.auditor, self.menu_cache, self.catalogo).depurar_tokens(
                self.tipo_nodo, nodo.id, nodo.permisos_extra, actor_id=actor_id
            )
        self._vaciar_cache()
        return nodo

    def eliminar(self, id: int, actor_id: Optional[int] = None) -> bool:
        """Borrado lógico. Los accesos que apuntan al nodo se conservan."""
        ok = self.delete(id, actor_id=actor_id)
        if ok:
            self._vaciar_cache()
        return ok

    def _vaciar_cache(self) -> None:
        if self.menu_cache is not None:
            self.menu_cache.clear()


class ModulosRepository(_NodoRepository):
    """
    Repositorio de módulos.

    Reglas: un módulo padre no tiene padre ni permisos extra; el padre de un
    módulo hijo debe existir, ser módulo padre y no ser el propio módulo.
    Nombre y ruta son únicos.
    """

    tipo_nodo = TipoNodo.MODULO

    def __init__(self, db: Session, auditor=None, menu_cache=None, catalogo=None):
        super().__init__(Modulo, db, auditor, menu_cache, catalogo)

    def padres(self) -> List[Modulo]:
        return (
            self._query()
            .filter(self.model.es_padre.is_(True))
            .order_by(self.model.orden.asc(), self.model.id.asc())
            .all()
        )

    def _validar(self, datos: Dict[str, Any], actual: Optional[Modulo] = None) -> Dict[str, Any]:
        def valor(campo, defecto=None):
            if campo in datos:
                return datos[campo]
            return getattr(actual, campo) if actual is not None else defecto

        es_padre = bool(valor("es_padre", False))
        modulo_padre_id = valor("modulo_padre_id")
        permisos_extra = valor("permisos_extra", []) or []
        actual_id = actual.id if actual is not None else None

        if es_padre:
            if modulo_padre_id is not None:
                raise InvalidNodeDefinition("modulo_padre_id", "Un módulo padre no puede tener módulo padre")
            if permisos_extra:
                raise InvalidNodeDefinition("permisos_extra", "Un módulo padre no puede tener permisos extra")
            if actual_id is not None and self._tiene_pestanas(actual_id):
                raise InvalidNodeDefinition("es_padre", "No se pueden asignar pestañas a módulos padre")
        else:
            if modulo_padre_id is not None:
                if modulo_padre_id == actual_id:
                    raise InvalidNodeDefinition("modulo_padre_id", "Un módulo no puede ser su propio padre")
                padre = self.get(modulo_padre_id)
                if padre is None:
                    raise InvalidNodeDefinition("modulo_padre_id", "El módulo padre seleccionado no existe")
                if not padre.es_padre:
                    raise InvalidNodeDefinition("modulo_padre_id", "El módulo seleccionado no es un módulo padre")
            if actual_id is not None and self._tiene_hijos(actual_id):
                raise InvalidNodeDefinition("es_padre", "El módulo tiene módulos hijos y debe seguir siendo módulo padre")

        limpio = dict(datos)
        if "permisos_extra" in datos or actual is None:
            limpio["permisos_extra"] = self.catalogo.normalizar_extra(permisos_extra)
        if es_padre:
            limpio["modulo_padre_id"] = None

        nombre = valor("nombre")
        if nombre and self._duplicado(self.model.nombre == nombre, actual_id):
            raise InvalidNodeDefinition("nombre", "Ya existe un módulo con este nombre")
        ruta = valor("ruta")
        if ruta and self._duplicado(self.model.ruta == ruta, actual_id):
            raise InvalidNodeDefinition("ruta", "Ya existe un módulo con esta ruta")
        return limpio

    def _duplicado(self, condicion, actual_id: Optional[int]) -> bool:
        query = self.db.query(self.model.id).filter(condicion)
        if actual_id is not None:
            query = query.filter(self.model.id != actual_id)
        return query.first() is not None

    def _tiene_pestanas(self, modulo_id: int) -> bool:
        return self.db.query(Pestana.id).filter(
            Pestana.modulo_id == modulo_id, Pestana.deleted_at.is_(None)
        ).first() is not None

    def _tiene_hijos(self, modulo_id: int) -> bool:
        return self.db.query(self.model.id).filter(
            self.model.modulo_padre_id == modulo_id, self.model.deleted_at.is_(None)
        ).first() is not None


class PestanasRepository(_NodoRepository):
    """
    Repositorio de pestañas.

    Una pestaña pertenece a un módulo vivo que no es módulo padre; su ruta es
    única dentro del módulo.
    """

    tipo_nodo = TipoNodo.PESTANA

    def __init__(self, db: Session, auditor=None, menu_cache=None, catalogo=None):
        super().__init__(Pestana, db, auditor, menu_cache, catalogo)

    def por_modulo(self, modulo_id: int) -> List[Pestana]:
        if self.db.get(Modulo, modulo_id) is None:
            raise NotFoundError("modulo", modulo_id)
        return (
            self._query()
            .filter(self.model.modulo_id == modulo_id)
            .order_by(self.model.orden.asc(), self.model.id.asc())
            .all()
        )

    def _validar(self, datos: Dict[str, Any], actual: Optional[Pestana] = None) -> Dict[str, Any]:
        def valor(campo, defecto=None):
            if campo in datos:
                return datos[campo]
            return getattr(actual, campo) if actual is not None else defecto

        modulo_id = valor("modulo_id")
        modulo = self.db.get(Modulo, modulo_id) if modulo_id is not None else None
        if modulo is None or modulo.is_deleted:
            raise InvalidNodeDefinition("modulo_id", "El módulo seleccionado no existe")
        if modulo.es_padre:
            raise InvalidNodeDefinition("modulo_id", "No se pueden asignar pestañas a módulos padre")

        limpio = dict(datos)
        if "permisos_extra" in datos or actual is None:
            limpio["permisos_extra"] = self.catalogo.normalizar_extra(valor("permisos_extra", []))

        ruta = valor("ruta")
        query = self.db.query(self.model.id).filter(
            self.model.modulo_id == modulo_id,
            self.model.ruta == ruta,
            self.model.deleted_at.is_(None),
        )
        if actual is not None:
            query = query.filter(self.model.id != actual.id)
        if query.first() is not None:
            raise InvalidNodeDefinition("ruta", "Ya existe una pestaña con esta ruta en el módulo seleccionado")
        return limpio
