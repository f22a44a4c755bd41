from .access_gate import AccessGate, Decision
from .arbol_autorizacion import AuthorizationTree, EstadoNodo, NodoRef
from .auditoria_service import AuditRecorder
from .contratos_service import ContractRegistryClient
from .menu_cache import MenuCache
from .permisos import PermissionCatalog, PermisoSet
from .rate_limiter import LoginRateLimiter

__all__ = [
    "AccessGate",
    "Decision",
    "AuthorizationTree",
    "EstadoNodo",
    "NodoRef",
    "AuditRecorder",
    "ContractRegistryClient",
    "MenuCache",
    "PermissionCatalog",
    "PermisoSet",
    "LoginRateLimiter",
]
