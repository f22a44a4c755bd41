from pydantic import Field, field_validator
from datetime import datetime
from typing import List, Optional

from portal.schemas.base import BaseSchema


class RolBase(BaseSchema):
    """Esquema base para roles."""
    nombre: str = Field(min_length=1, max_length=50)
    abreviatura: str = Field(min_length=1, max_length=10)

    @field_validator("nombre", "abreviatura")
    @classmethod
    def sin_espacios_extremos(cls, v: str) -> str:
        return v.strip()


class RolCreate(RolBase):
    """Esquema para creación de roles."""
    pass


class RolUpdate(BaseSchema):
    """Esquema para actualización de roles."""
    nombre: Optional[str] = Field(default=None, min_length=1, max_length=50)
    abreviatura: Optional[str] = Field(default=None, min_length=1, max_length=10)


class RolSchema(RolBase):
    """Esquema para representación de roles."""
    id: int
    created_at: Optional[datetime] = None


class AccesoUpdate(BaseSchema):
    """Conjunto completo de permisos a conceder sobre un nodo (reemplaza el anterior)."""
    permisos: List[str] = []


class AccesoSchema(BaseSchema):
    """Acceso de un rol a un nodo, con el estado del nodo."""
    rol_id: int
    tipo_nodo: str
    nodo_id: int
    permisos: List[str]
    estado: str
    nombre: Optional[str] = None
    ruta: Optional[str] = None
