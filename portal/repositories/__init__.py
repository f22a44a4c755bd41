from .base import BaseRepository
from .accesos_repository import AccesosRepository
from .auditorias_repository import AuditoriasRepository
from .modulos_repository import ModulosRepository, PestanasRepository
from .roles_repository import RolesRepository
from .usuarios_repository import UsuariosRepository

__all__ = [
    "BaseRepository",
    "AccesosRepository",
    "AuditoriasRepository",
    "ModulosRepository",
    "PestanasRepository",
    "RolesRepository",
    "UsuariosRepository",
]
