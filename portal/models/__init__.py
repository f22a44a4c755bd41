"""SQLAlchemy models for the application."""

from portal.db import Base

# Import all models here to ensure they are registered with SQLAlchemy
from .modulo import Modulo, Pestana
from .auth import Rol, RolAcceso, TipoNodo
from .usuarios import Usuario
from .auditoria import Auditoria
