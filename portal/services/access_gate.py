"""
Puerta de acceso: decide si un actor puede entrar a un nodo o ejecutar una
acción sobre él.

Nunca lanza por resultados esperados; toda ambigüedad (actor sin rol, nodo
eliminado, tipo desconocido) se resuelve como denegación.
"""
from dataclasses import dataclass
from typing import Any, Optional, Union

from portal.models import TipoNodo
from portal.services.arbol_autorizacion import AuthorizationTree

NODE_MISSING = "node_missing"
NO_ACCESS = "no_access"
MISSING_PERMISSION = "missing_permission"

MENSAJES = {
    NODE_MISSING: "El recurso solicitado no existe o fue eliminado",
    NO_ACCESS: "Su rol no tiene acceso a este recurso",
    MISSING_PERMISSION: "Su rol no tiene el permiso '{token}' sobre este recurso",
}


@dataclass(frozen=True)
class Decision:
    allowed: bool
    reason: Optional[str] = None
    message: str = ""

    def __bool__(self) -> bool:
        return self.allowed

    @classmethod
    def allow(cls) -> "Decision":
        return cls(True)

    @classmethod
    def deny(cls, reason: str, token: Optional[str] = None) -> "Decision":
        return cls(False, reason, MENSAJES[reason].format(token=token))


def rol_del_actor(actor: Any) -> Optional[int]:
    """Rol de un actor dado como dict de sesión o como Usuario."""
    if actor is None:
        return None
    if isinstance(actor, dict):
        return actor.get("rol_id")
    return getattr(actor, "rol_id", None)


class AccessGate:
    """
    Combina el árbol de autorización con el almacén de accesos.

    Args:
        arbol: AuthorizationTree para resolver nodos
        accesos: almacén de accesos con tokens_for(rol_id, tipo, nodo_id)
    """

    def __init__(self, arbol: AuthorizationTree, accesos):
        self.arbol = arbol
        self.accesos = accesos

    def require_permission(
        self,
        actor: Any,
        tipo: Union[TipoNodo, str],
        nodo_id: int,
        token: Optional[str] = None,
    ) -> Decision:
        ref = self.arbol.resolve(tipo, nodo_id)
        if not ref.presente:
            return Decision.deny(NODE_MISSING)

        rol_id = rol_del_actor(actor)
        if rol_id is None:
            return Decision.deny(NO_ACCESS)

        tokens = self.accesos.tokens_for(rol_id, ref.tipo, nodo_id)
        if tokens is None:
            return Decision.deny(NO_ACCESS)
        if token is not None and token not in tokens:
            return Decision.deny(MISSING_PERMISSION, token)
        return Decision.allow()

    def can_access(self, actor: Any, tipo: Union[TipoNodo, str], nodo_id: int) -> bool:
        return self.require_permission(actor, tipo, nodo_id).allowed
