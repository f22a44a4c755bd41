import re
from pydantic import BaseModel, Field, EmailStr, ValidationInfo, field_validator
from datetime import datetime
from typing import Optional

from portal.schemas.base import BaseSchema

_DOCUMENTO_RE = re.compile(r"^[0-9]+$")
_PASSWORD_LOGIN_RE = re.compile(r"^[a-zA-Z0-9@$!%*?&#+\-.]+$")
_PASSWORD_REGISTRO_RE = re.compile(
    r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)(?=.*[@$!%*?&#+\-.])[A-Za-z\d@$!%*?&#+\-.]+$"
)


def _validar_documento(value: str) -> str:
    value = str(value or "").strip()
    if not value:
        raise ValueError("El número de documento es obligatorio")
    if not _DOCUMENTO_RE.match(value):
        raise ValueError("El número de documento solo debe contener números")
    if len(value) > 15:
        raise ValueError("El número de documento debe tener máximo 15 caracteres")
    return value


class RolResumen(BaseSchema):
    """Rol embebido en la representación de un usuario."""
    id: int
    nombre: str
    abreviatura: str


class UsuarioBase(BaseSchema):
    """Esquema base para usuarios."""
    numero_documento: str
    email: EmailStr
    rol_id: int


class UsuarioCreate(UsuarioBase):
    """Esquema para creación de usuarios (la contraseña llega en texto plano)."""
    password: str


class UsuarioUpdate(BaseSchema):
    """Esquema para actualización administrativa de usuarios."""
    rol_id: Optional[int] = None


class UsuarioSchema(UsuarioBase):
    """Esquema para representación de usuarios. Nunca expone el hash."""
    id: int
    intentos_fallidos: int = 0
    bloqueado_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    rol: Optional[RolResumen] = None


class LoginForm(BaseModel):
    """Datos del formulario de login."""
    numero_documento: str
    password: str
    remember: bool = False

    @field_validator("numero_documento", mode="before")
    @classmethod
    def documento_valido(cls, v):
        return _validar_documento(v)

    @field_validator("password")
    @classmethod
    def password_valida(cls, v: str) -> str:
        if not v:
            raise ValueError("La contraseña es obligatoria")
        if len(v) > 20:
            raise ValueError("La contraseña debe tener máximo 20 caracteres")
        if not _PASSWORD_LOGIN_RE.match(v):
            raise ValueError("La contraseña contiene caracteres no permitidos")
        return v


class RegistroForm(BaseModel):
    """Datos del formulario de autoregistro."""
    numero_documento: str
    email: EmailStr = Field(max_length=255)
    password: str
    password_confirmation: str

    @field_validator("numero_documento", mode="before")
    @classmethod
    def documento_valido(cls, v):
        return _validar_documento(v)

    @field_validator("email", mode="before")
    @classmethod
    def email_minusculas(cls, v):
        return str(v or "").strip().lower()

    @field_validator("password")
    @classmethod
    def password_segura(cls, v: str) -> str:
        if len(v) < 8:
            raise ValueError("La contraseña debe tener al menos 8 caracteres")
        if len(v) > 20:
            raise ValueError("La contraseña debe tener máximo 20 caracteres")
        if not _PASSWORD_REGISTRO_RE.match(v):
            raise ValueError(
                "La contraseña debe incluir al menos una mayúscula, una minúscula, un número y un símbolo"
            )
        return v

    @field_validator("password_confirmation")
    @classmethod
    def passwords_coinciden(cls, v: str, info: ValidationInfo) -> str:
        if "password" in info.data and v != info.data["password"]:
            raise ValueError("Las contraseñas no coinciden")
        return v
