from datetime import datetime
from typing import Any, List, Optional

from pydantic import BaseModel

from portal.schemas.base import BaseSchema


class CambioSchema(BaseModel):
    field: str
    before: Any = None
    after: Any = None


class ActorSchema(BaseSchema):
    id: int
    numero_documento: str
    email: str


class AuditoriaSchema(BaseSchema):
    """Registro de auditoría tal como se muestra en la consulta."""
    id: int
    tabla_afectada: str
    id_registro_afectado: str
    accion: str
    usuario_id: Optional[int] = None
    usuario: Optional[ActorSchema] = None
    cambios: List[CambioSchema] = []
    fecha_creacion: datetime


class AuditoriaPage(BaseModel):
    total: int
    items: List[AuditoriaSchema]
