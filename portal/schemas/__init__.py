from .base import BaseSchema, ErrorDenegado
from .modulos import ModuloSchema, ModuloCreate, ModuloUpdate, PestanaSchema, PestanaCreate, PestanaUpdate
from .roles import RolSchema, RolCreate, RolUpdate, AccesoSchema, AccesoUpdate
from .usuarios import UsuarioSchema, UsuarioCreate, UsuarioUpdate, LoginForm, RegistroForm
from .auditoria import AuditoriaSchema, AuditoriaPage

__all__ = [
    "BaseSchema", "ErrorDenegado",
    "ModuloSchema", "ModuloCreate", "ModuloUpdate", "PestanaSchema", "PestanaCreate", "PestanaUpdate",
    "RolSchema", "RolCreate", "RolUpdate", "AccesoSchema", "AccesoUpdate",
    "UsuarioSchema", "UsuarioCreate", "UsuarioUpdate", "LoginForm", "RegistroForm",
    "AuditoriaSchema", "AuditoriaPage",
]
