from pydantic import BaseModel, ConfigDict


class BaseSchema(BaseModel):
    """Esquema base para todos los modelos Pydantic."""
    model_config = ConfigDict(from_attributes=True)


class ErrorDenegado(BaseModel):
    """Cuerpo de una respuesta 403 de la puerta de acceso."""
    code: str
    message: str

