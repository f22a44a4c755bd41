"""
Almacén de accesos rol → nodo con su conjunto de permisos.

Una fila de rol_accesos, aun con 'permisos' vacío, hace visible el nodo para
el rol; su ausencia lo oculta y deniega toda acción sobre él.
"""
from dataclasses import dataclass
from typing import Iterable, List, Optional, Union

from sqlalchemy.orm import Session

from portal.exceptions import NotFoundError
from portal.models import Modulo, Rol, RolAcceso, TipoNodo
from portal.services.arbol_autorizacion import AuthorizationTree, normalizar_tipo
from portal.services.auditoria_service import AuditRecorder, snapshot
from portal.services.menu_cache import MenuCache
from portal.services.permisos import PermisoSet, PermissionCatalog


@dataclass
class AccesoNodo:
    """Acceso de un rol tal como lo ve el administrador, con el estado del nodo."""
    rol_id: int
    tipo_nodo: str
    nodo_id: int
    permisos: List[str]
    estado: str
    nombre: Optional[str] = None
    ruta: Optional[str] = None


class AccesosRepository:
    """
    Repositorio de accesos (RolAcceso).

    Args:
        db: Sesión del banco de datos
        auditor: Registrador de auditoría
        menu_cache: Caché de menús a invalidar en cada escritura
        catalogo: Catálogo de permisos para validar concesiones
    """

    def __init__(
        self,
        db: Session,
        auditor: Optional[AuditRecorder] = None,
        menu_cache: Optional[MenuCache] = None,
        catalogo: Optional[PermissionCatalog] = None,
    ):
        self.db = db
        self.model = RolAcceso
        self.auditor = auditor or AuditRecorder(db)
        self.menu_cache = menu_cache
        self.catalogo = catalogo or PermissionCatalog()
        self.arbol = AuthorizationTree(db)

    def _query(self, rol_id: int, tipo: str, nodo_id: int):
        return self.db.query(self.model).filter(
            self.model.rol_id == rol_id,
            self.model.tipo_nodo == tipo,
            self.model.nodo_id == nodo_id,
        )

    def get(self, rol_id: int, tipo: Union[TipoNodo, str], nodo_id: int) -> Optional[RolAcceso]:
        return self._query(rol_id, normalizar_tipo(tipo), nodo_id).first()

    def _get_for_update(self, rol_id: int, tipo: str, nodo_id: int) -> Optional[RolAcceso]:
        return self._query(rol_id, tipo, nodo_id).with_for_update().populate_existing().first()

    def tokens_for(self, rol_id: int, tipo: Union[TipoNodo, str], nodo_id: int) -> Optional[PermisoSet]:
        """
        Permisos concedidos al rol sobre el nodo.

        Returns:
            PermisoSet (vacío = visible sin acciones) o None si no hay acceso
        """
        fila = self.get(rol_id, tipo, nodo_id)
        if fila is None:
            return None
        return PermisoSet(fila.permisos or [])

    def is_granted(self, rol_id: int, tipo: Union[TipoNodo, str], nodo_id: int, token: str) -> bool:
        tokens = self.tokens_for(rol_id, tipo, nodo_id)
        return tokens is not None and token in tokens

    def grant(
        self,
        rol_id: int,
        tipo: Union[TipoNodo, str],
        nodo_id: int,
        tokens: Iterable[str],
        actor_id: Optional[int] = None,
    ) -> RolAcceso:
        """
        Reemplaza el conjunto completo de permisos del rol sobre el nodo.

        Conceder un módulo hijo crea además un acceso vacío sobre su módulo
        padre si el rol aún no lo tiene.

        Raises:
            NotFoundError: rol inexistente o nodo no presente
            InvalidPermissionToken: algún token fuera del vocabulario del nodo
        """
        tipo = normalizar_tipo(tipo)
        if self.db.get(Rol, rol_id) is None:
            raise NotFoundError("rol", rol_id)
        nodo = self.arbol.require(tipo, nodo_id)
        # Se valida todo antes de escribir
        permisos = self.catalogo.validar_concesion(tokens, nodo.permisos_extra, nodo=f"{tipo} {nodo_id}")

        fila = self._get_for_update(rol_id, tipo, nodo_id)
        before = snapshot(fila) if fila is not None else None
        if fila is None:
            fila = self.model(rol_id=rol_id, tipo_nodo=tipo, nodo_id=nodo_id, permisos=permisos.ordenado())
            self.db.add(fila)
        else:
            fila.permisos = permisos.ordenado()

        padre = None
        modulo_padre_id = getattr(nodo, "modulo_padre_id", None) if tipo == TipoNodo.MODULO.value else None
        if modulo_padre_id is not None and self._get_for_update(rol_id, tipo, modulo_padre_id) is None:
            padre = self.model(rol_id=rol_id, tipo_nodo=tipo, nodo_id=modulo_padre_id, permisos=[])
            self.db.add(padre)

        self.db.commit()
        self.db.refresh(fila)
        if before is None:
            self.auditor.on_created(fila, actor_id=actor_id)
        else:
            self.auditor.on_updated(fila, before, actor_id=actor_id)
        if padre is not None:
            self.auditor.on_created(padre, actor_id=actor_id)
        self._invalidar(rol_id)
        return fila

    def revoke(self, rol_id: int, tipo: Union[TipoNodo, str], nodo_id: int, actor_id: Optional[int] = None) -> bool:
        """
        Elimina el acceso del rol al nodo (también si el nodo fue eliminado).

        Revocar el último módulo hijo concedido elimina el acceso al padre
        cuando este no tiene permisos propios.

        Returns:
            True si existía el acceso, False en caso contrario
        """
        tipo = normalizar_tipo(tipo)
        fila = self._get_for_update(rol_id, tipo, nodo_id)
        if fila is None:
            return False
        borrados = [(fila, snapshot(fila))]
        self.db.delete(fila)

        if tipo == TipoNodo.MODULO.value:
            modulo = self.db.get(Modulo, nodo_id)
            if modulo is not None and modulo.modulo_padre_id is not None:
                padre = self._padre_sin_hijos(rol_id, modulo.modulo_padre_id, excluir=nodo_id)
                if padre is not None:
                    borrados.append((padre, snapshot(padre)))
                    self.db.delete(padre)

        self.db.commit()
        for entidad, antes in borrados:
            self.auditor.on_deleted(entidad, antes, actor_id=actor_id)
        self._invalidar(rol_id)
        return True

    def _padre_sin_hijos(self, rol_id: int, padre_id: int, excluir: int) -> Optional[RolAcceso]:
        hermanos = [
            m_id for (m_id,) in self.db.query(Modulo.id).filter(
                Modulo.modulo_padre_id == padre_id, Modulo.id != excluir
            )
        ]
        if hermanos:
            restantes = self.db.query(self.model).filter(
                self.model.rol_id == rol_id,
                self.model.tipo_nodo == TipoNodo.MODULO.value,
                self.model.nodo_id.in_(hermanos),
            ).count()
            if restantes:
                return None
        padre = self._get_for_update(rol_id, TipoNodo.MODULO.value, padre_id)
        if padre is None or padre.permisos:
            return None
        return padre

    def listar_por_rol(self, rol_id: int) -> List[AccesoNodo]:
        """
        Accesos del rol con el estado de cada nodo, incluidos los huérfanos
        ("eliminado", "padre eliminado", "inexistente") para su limpieza.

        Raises:
            NotFoundError: si el rol no existe
        """
        if self.db.get(Rol, rol_id) is None:
            raise NotFoundError("rol", rol_id)
        filas = (
            self.db.query(self.model)
            .filter(self.model.rol_id == rol_id)
            .order_by(self.model.tipo_nodo.asc(), self.model.nodo_id.asc())
            .all()
        )
        resultado = []
        for fila in filas:
            ref = self.arbol.resolve(fila.tipo_nodo, fila.nodo_id)
            resultado.append(AccesoNodo(
                rol_id=fila.rol_id,
                tipo_nodo=fila.tipo_nodo,
                nodo_id=fila.nodo_id,
                permisos=list(fila.permisos or []),
                estado=ref.etiqueta,
                nombre=ref.nodo.nombre if ref.nodo is not None else None,
                ruta=ref.nodo.ruta_completa if ref.presente else None,
            ))
        return resultado

    def depurar_tokens(
        self,
        tipo: Union[TipoNodo, str],
        nodo_id: int,
        permisos_extra: Iterable[str],
        actor_id: Optional[int] = None,
    ) -> int:
        """
        Quita de los accesos al nodo los permisos extra que el nodo ya no declara.

        Returns:
            Número de accesos modificados
        """
        tipo = normalizar_tipo(tipo)
        vocabulario = self.catalogo.vocabulario(permisos_extra)
        filas = (
            self.db.query(self.model)
            .filter(self.model.tipo_nodo == tipo, self.model.nodo_id == nodo_id)
            .with_for_update()
            .populate_existing()
            .all()
        )
        cambiados = []
        for fila in filas:
            actuales = list(fila.permisos or [])
            validos = [t for t in actuales if t in vocabulario]
            if validos != actuales:
                cambiados.append((fila, snapshot(fila)))
                fila.permisos = validos
        self.db.commit()
        for fila, antes in cambiados:
            self.auditor.on_updated(fila, antes, actor_id=actor_id)
            self._invalidar(fila.rol_id)
        return len(cambiados)

    def _invalidar(self, rol_id: int) -> None:
        if self.menu_cache is not None:
            self.menu_cache.invalidate(rol_id)
