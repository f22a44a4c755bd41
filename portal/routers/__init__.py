from .auth import router as auth_router
from .modulos import router as modulos_router
from .pestanas import router as pestanas_router
from .roles import router as roles_router
from .accesos import router as accesos_router
from .usuarios import router as usuarios_router
from .auditorias import router as auditorias_router

__all__ = [
    "auth_router",
    "modulos_router",
    "pestanas_router",
    "roles_router",
    "accesos_router",
    "usuarios_router",
    "auditorias_router",
]
