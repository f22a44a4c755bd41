import re
from pydantic import AfterValidator, BeforeValidator, field_validator
from datetime import datetime
from typing import Annotated, Optional, List

from portal.schemas.base import BaseSchema

_NOMBRE_RE = re.compile(r"^[a-zA-ZáéíóúÁÉÍÓÚñÑüÜ\s]+$")
_ICONO_RE = re.compile(r"^[a-z-]+$")
_RUTA_RE = re.compile(r"^/[a-z0-9\-/]*$")


def validar_nombre(value: Optional[str]) -> Optional[str]:
    if value is None:
        return value
    value = value.strip()
    if not value:
        raise ValueError("El nombre es obligatorio")
    if len(value) > 50:
        raise ValueError("El nombre no debe superar 50 caracteres")
    if not _NOMBRE_RE.match(value):
        raise ValueError("El nombre solo debe contener letras y espacios")
    return value


def validar_icono(value: Optional[str]) -> Optional[str]:
    if value is None:
        return value
    value = value.strip()
    if len(value) > 50:
        raise ValueError("El ícono no debe superar 50 caracteres")
    if not _ICONO_RE.match(value):
        raise ValueError("El ícono solo debe contener letras minúsculas y guiones")
    return value


def validar_ruta(value: Optional[str]) -> Optional[str]:
    if value is None:
        return value
    value = value.strip()
    if len(value) > 255:
        raise ValueError("La ruta no debe superar 255 caracteres")
    if not _RUTA_RE.match(value):
        raise ValueError("La ruta debe empezar con / y solo contener letras minúsculas, números y guiones")
    if value.endswith("/"):
        raise ValueError("La ruta no debe terminar con /")
    return value


def no_nulo(value):
    """En una actualización parcial un campo puede omitirse, pero no enviarse como null."""
    if value is None:
        raise ValueError("El campo no puede ser nulo")
    return value


def separar_permisos(value):
    """Acepta una lista o un texto separado por comas."""
    if value is None:
        return []
    if isinstance(value, str):
        return [p.strip() for p in value.split(",") if p.strip()]
    return value


Nombre = Annotated[str, AfterValidator(validar_nombre)]
Icono = Annotated[str, AfterValidator(validar_icono)]
Ruta = Annotated[str, AfterValidator(validar_ruta)]
PermisosExtra = Annotated[List[str], BeforeValidator(separar_permisos)]


class ModuloBase(BaseSchema):
    """Esquema base para módulos."""
    nombre: Nombre
    icono: Icono
    ruta: Ruta
    es_padre: bool = False
    modulo_padre_id: Optional[int] = None
    permisos_extra: PermisosExtra = []
    orden: int = 0


class ModuloCreate(ModuloBase):
    """Esquema para creación de módulos."""
    pass


class ModuloUpdate(BaseSchema):
    """Esquema para actualización de módulos."""
    nombre: Optional[Nombre] = None
    icono: Optional[Icono] = None
    ruta: Optional[Ruta] = None
    es_padre: Optional[bool] = None
    modulo_padre_id: Optional[int] = None
    permisos_extra: Optional[PermisosExtra] = None
    orden: Optional[int] = None

    @field_validator("nombre", "icono", "ruta", "es_padre", "permisos_extra", "orden", mode="before")
    @classmethod
    def rechazar_nulos(cls, value):
        return no_nulo(value)


class ModuloSchema(BaseSchema):
    """Esquema para representación de módulos."""
    id: int
    nombre: str
    icono: str
    ruta: str
    es_padre: bool
    modulo_padre_id: Optional[int] = None
    permisos_extra: List[str] = []
    orden: int = 0
    ruta_completa: str
    created_at: Optional[datetime] = None
    deleted_at: Optional[datetime] = None


class PestanaBase(BaseSchema):
    """Esquema base para pestañas."""
    modulo_id: int
    nombre: Nombre
    icono: Optional[Icono] = None
    ruta: Ruta
    permisos_extra: PermisosExtra = []
    orden: int = 0


class PestanaCreate(PestanaBase):
    """Esquema para creación de pestañas."""
    pass


class PestanaUpdate(BaseSchema):
    """Esquema para actualización de pestañas."""
    modulo_id: Optional[int] = None
    nombre: Optional[Nombre] = None
    icono: Optional[Icono] = None
    ruta: Optional[Ruta] = None
    permisos_extra: Optional[PermisosExtra] = None
    orden: Optional[int] = None

    @field_validator("modulo_id", "nombre", "ruta", "permisos_extra", "orden", mode="before")
    @classmethod
    def rechazar_nulos(cls, value):
        return no_nulo(value)


class PestanaSchema(BaseSchema):
    """Esquema para representación de pestañas."""
    id: int
    modulo_id: int
    nombre: str
    icono: Optional[str] = None
    ruta: str
    permisos_extra: List[str] = []
    orden: int = 0
    ruta_completa: str
    created_at: Optional[datetime] = None
    deleted_at: Optional[datetime] = None
