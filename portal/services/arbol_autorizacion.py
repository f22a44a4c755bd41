"""
Árbol de autorización: módulos padre/hijo y sus pestañas.

Toda referencia a un nodo se resuelve a un NodoRef con uno de tres estados
(PRESENTE, ELIMINADO, INEXISTENTE). La puerta de acceso, el menú y el listado
administrativo de accesos comparten esta única evaluación.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Set, Tuple, Union

from sqlalchemy.orm import Session

from portal.exceptions import NotFoundError
from portal.models import Modulo, Pestana, RolAcceso, TipoNodo


class EstadoNodo(str, Enum):
    PRESENTE = "presente"
    ELIMINADO = "eliminado"
    INEXISTENTE = "inexistente"


@dataclass(frozen=True)
class NodoRef:
    """Resultado de resolver (tipo, id) contra el árbol."""
    tipo: str
    id: int
    estado: EstadoNodo
    nodo: Optional[Union[Modulo, Pestana]] = None
    # El nodo está vivo pero su módulo contenedor fue eliminado
    padre_eliminado: bool = False

    @property
    def presente(self) -> bool:
        return self.estado == EstadoNodo.PRESENTE

    @property
    def etiqueta(self) -> str:
        if self.padre_eliminado:
            return "padre eliminado"
        return self.estado.value


@dataclass
class PestanaMenu:
    id: int
    nombre: str
    icono: Optional[str]
    ruta: str
    orden: int


@dataclass
class ModuloMenu:
    id: int
    nombre: str
    icono: str
    ruta: str
    orden: int
    es_padre: bool
    acceso_directo: bool
    pestanas: List[PestanaMenu] = field(default_factory=list)
    hijos: List["ModuloMenu"] = field(default_factory=list)


def normalizar_tipo(tipo: Union[TipoNodo, str]) -> str:
    """Valor textual del tipo de nodo. Lanza ValueError si no es un tipo conocido."""
    return TipoNodo(tipo).value


def _orden(nodo) -> Tuple[int, int]:
    return (nodo.orden or 0, nodo.id)


class AuthorizationTree:
    """
    Consultas de solo lectura sobre la jerarquía Modulo/Pestana.

    Args:
        db: Sesión del banco de datos
    """

    def __init__(self, db: Session):
        self.db = db

    def resolve(self, tipo: Union[TipoNodo, str], nodo_id: int) -> NodoRef:
        """
        Resuelve un nodo incluyendo el estado de sus contenedores.

        Una pestaña cuyo módulo (o el padre de ese módulo) está eliminado, y un
        módulo hijo cuyo padre está eliminado, se resuelven como ELIMINADO.
        """
        try:
            tipo = normalizar_tipo(tipo)
        except ValueError:
            return NodoRef(str(tipo), nodo_id, EstadoNodo.INEXISTENTE)

        if tipo == TipoNodo.MODULO.value:
            return self._resolver_modulo(nodo_id)

        pestana = self.db.get(Pestana, nodo_id)
        if pestana is None:
            return NodoRef(tipo, nodo_id, EstadoNodo.INEXISTENTE)
        if pestana.is_deleted:
            return NodoRef(tipo, nodo_id, EstadoNodo.ELIMINADO, pestana)
        contenedor = self._resolver_modulo(pestana.modulo_id)
        if not contenedor.presente:
            return NodoRef(tipo, nodo_id, EstadoNodo.ELIMINADO, pestana, padre_eliminado=True)
        return NodoRef(tipo, nodo_id, EstadoNodo.PRESENTE, pestana)

    def _resolver_modulo(self, modulo_id: int) -> NodoRef:
        tipo = TipoNodo.MODULO.value
        modulo = self.db.get(Modulo, modulo_id)
        if modulo is None:
            return NodoRef(tipo, modulo_id, EstadoNodo.INEXISTENTE)
        if modulo.is_deleted:
            return NodoRef(tipo, modulo_id, EstadoNodo.ELIMINADO, modulo)
        if modulo.modulo_padre_id is not None:
            padre = self.db.get(Modulo, modulo.modulo_padre_id)
            if padre is None or padre.is_deleted:
                return NodoRef(tipo, modulo_id, EstadoNodo.ELIMINADO, modulo, padre_eliminado=True)
        return NodoRef(tipo, modulo_id, EstadoNodo.PRESENTE, modulo)

    def require(self, tipo: Union[TipoNodo, str], nodo_id: int) -> Union[Modulo, Pestana]:
        """Como resolve, pero lanza NotFoundError si el nodo no está presente."""
        ref = self.resolve(tipo, nodo_id)
        if not ref.presente:
            raise NotFoundError(str(ref.tipo), nodo_id)
        return ref.nodo

    def children_of(self, modulo_id: int) -> List[Pestana]:
        """
        Pestañas vivas de un módulo ordenadas por (orden, id).

        Raises:
            NotFoundError: si el módulo no está presente
        """
        self.require(TipoNodo.MODULO, modulo_id)
        pestanas = (
            self.db.query(Pestana)
            .filter(Pestana.modulo_id == modulo_id, Pestana.deleted_at.is_(None))
            .order_by(Pestana.orden.asc(), Pestana.id.asc())
            .all()
        )
        return pestanas

    def concedidos(self, rol_id: int) -> Set[Tuple[str, int]]:
        filas = self.db.query(RolAcceso.tipo_nodo, RolAcceso.nodo_id).filter(RolAcceso.rol_id == rol_id).all()
        return {(tipo, nodo_id) for tipo, nodo_id in filas}

    def pestanas_visibles(self, modulo_id: int, rol_id: int) -> List[PestanaMenu]:
        """Pestañas del módulo con acceso para el rol, con su ruta completa."""
        concedidas = {nodo_id for tipo, nodo_id in self.concedidos(rol_id) if tipo == TipoNodo.PESTANA.value}
        return [
            self._entrada_pestana(p)
            for p in self.children_of(modulo_id)
            if p.id in concedidas
        ]

    def menu_for(self, rol_id: int) -> List[ModuloMenu]:
        """
        Menú navegable para un rol.

        Un módulo entra al menú si está concedido directamente, si tiene alguna
        pestaña concedida o (para módulos padre) si alguno de sus hijos entra.
        Los nodos eliminados o colgados de un padre eliminado nunca aparecen.
        """
        concedidos = self.concedidos(rol_id)
        if not concedidos:
            return []
        modulos_concedidos = {i for t, i in concedidos if t == TipoNodo.MODULO.value}
        pestanas_concedidas = {i for t, i in concedidos if t == TipoNodo.PESTANA.value}

        modulos = self.db.query(Modulo).filter(Modulo.deleted_at.is_(None)).all()
        vivos: Dict[int, Modulo] = {m.id: m for m in modulos}

        pestanas_por_modulo: Dict[int, List[Pestana]] = {}
        if pestanas_concedidas:
            pestanas = (
                self.db.query(Pestana)
                .filter(Pestana.id.in_(pestanas_concedidas), Pestana.deleted_at.is_(None))
                .all()
            )
            for p in pestanas:
                pestanas_por_modulo.setdefault(p.modulo_id, []).append(p)

        hijos_por_padre: Dict[int, List[ModuloMenu]] = {}
        raices: List[Modulo] = []
        for modulo in sorted(vivos.values(), key=_orden):
            if modulo.modulo_padre_id is None:
                raices.append(modulo)
                continue
            # Hijo de un padre eliminado o inexistente
            if modulo.modulo_padre_id not in vivos:
                continue
            entrada = self._entrada_modulo(modulo, vivos, modulos_concedidos, pestanas_por_modulo)
            if entrada.acceso_directo or entrada.pestanas:
                hijos_por_padre.setdefault(modulo.modulo_padre_id, []).append(entrada)

        menu: List[ModuloMenu] = []
        for modulo in raices:
            entrada = self._entrada_modulo(modulo, vivos, modulos_concedidos, pestanas_por_modulo)
            entrada.hijos = hijos_por_padre.get(modulo.id, [])
            if entrada.acceso_directo or entrada.pestanas or entrada.hijos:
                menu.append(entrada)
        return menu

    def _entrada_modulo(
        self,
        modulo: Modulo,
        vivos: Dict[int, Modulo],
        modulos_concedidos: Set[int],
        pestanas_por_modulo: Dict[int, List[Pestana]],
    ) -> ModuloMenu:
        pestanas = sorted(pestanas_por_modulo.get(modulo.id, []), key=_orden)
        return ModuloMenu(
            id=modulo.id,
            nombre=modulo.nombre,
            icono=modulo.icono,
            ruta=self._ruta_modulo(modulo, vivos),
            orden=modulo.orden or 0,
            es_padre=bool(modulo.es_padre),
            acceso_directo=modulo.id in modulos_concedidos,
            pestanas=[self._entrada_pestana(p, vivos) for p in pestanas],
        )

    @staticmethod
    def _ruta_modulo(modulo: Modulo, vivos: Optional[Dict[int, Modulo]] = None) -> str:
        if modulo.modulo_padre_id is None:
            return modulo.ruta
        padre = (vivos or {}).get(modulo.modulo_padre_id) or modulo.modulo_padre
        return f"{padre.ruta}{modulo.ruta}"

    def _entrada_pestana(self, pestana: Pestana, vivos: Optional[Dict[int, Modulo]] = None) -> PestanaMenu:
        modulo = (vivos or {}).get(pestana.modulo_id) or pestana.modulo
        return PestanaMenu(
            id=pestana.id,
            nombre=pestana.nombre,
            icono=pestana.icono,
            ruta=f"{self._ruta_modulo(modulo, vivos)}{pestana.ruta}",
            orden=pestana.orden or 0,
        )
