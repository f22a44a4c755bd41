"""
Registro de auditoría por diferencias de campos.

Los repositorios llaman explícitamente a on_created / on_updated / on_deleted
después de confirmar la mutación principal. La escritura de auditoría va en
su propia transacción: si falla se registra como error operativo y la
mutación principal se conserva.
"""
import logging
from typing import Any, Dict, List, Optional

from fastapi.encoders import jsonable_encoder
from sqlalchemy import inspect
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from portal.exceptions import AuditWriteFailed
from portal.models.auditoria import Auditoria

logger = logging.getLogger("uvicorn")

VALOR_OCULTO = "********"
VALOR_OCULTO_CAMBIADO = "******** (cambiada)"

INSERT = "INSERT"
UPDATE = "UPDATE"
DELETE = "DELETE"


def snapshot(entity: Any) -> Dict[str, Any]:
    """Valores persistidos de la entidad, serializables a JSON."""
    excluir = set(getattr(entity, "__auditoria_excluir__", ()))
    mapper = inspect(type(entity))
    valores: Dict[str, Any] = {}
    for attr in mapper.column_attrs:
        if attr.key in excluir:
            continue
        valores[attr.key] = jsonable_encoder(getattr(entity, attr.key))
    return valores


def diff(before: Dict[str, Any], after: Dict[str, Any]) -> List[Dict[str, Any]]:
    """
    Tuplas {field, before, after} solo para los campos cuyo valor cambió.

    Un campo ausente en uno de los lados cuenta como None en ese lado; los
    campos ausentes en ambos no aparecen.
    """
    campos = list(before.keys()) + [k for k in after.keys() if k not in before]
    cambios = []
    for campo in campos:
        antes = before.get(campo)
        despues = after.get(campo)
        if antes != despues:
            cambios.append({"field": campo, "before": antes, "after": despues})
    return cambios


class AuditRecorder:
    """
    Escribe registros de auditoría para las entidades que optan por ser auditadas.

    Args:
        db: Sesión del banco de datos
        actor_id: Usuario que realiza los cambios (None para cambios del sistema)
    """

    def __init__(self, db: Session, actor_id: Optional[int] = None):
        self.db = db
        self.actor_id = actor_id

    def on_created(self, entity: Any, actor_id: Optional[int] = None) -> Optional[Auditoria]:
        despues = snapshot(entity)
        cambios = [{"field": campo, "before": None, "after": valor} for campo, valor in despues.items()]
        return self._persist(entity, despues, INSERT, cambios, actor_id)

    def on_updated(
        self,
        entity: Any,
        previous_snapshot: Dict[str, Any],
        actor_id: Optional[int] = None,
    ) -> Optional[Auditoria]:
        actual = snapshot(entity)
        cambios = diff(previous_snapshot, actual)
        if not cambios:
            return None
        return self._persist(entity, actual, UPDATE, cambios, actor_id)

    def on_deleted(
        self,
        entity: Any,
        previous_snapshot: Optional[Dict[str, Any]] = None,
        actor_id: Optional[int] = None,
    ) -> Optional[Auditoria]:
        # Para borrados físicos la foto debe tomarse antes de borrar la fila
        antes = previous_snapshot if previous_snapshot is not None else snapshot(entity)
        cambios = [{"field": campo, "before": valor, "after": None} for campo, valor in antes.items()]
        return self._persist(entity, antes, DELETE, cambios, actor_id)

    def _id_registro(self, entity: Any, valores: Dict[str, Any]) -> str:
        columnas = inspect(type(entity)).primary_key
        return "-".join(str(valores.get(col.key)) for col in columnas)

    def _ocultar(self, entity: Any, cambios: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        ocultos = set(getattr(entity, "__auditoria_ocultar__", ()))
        if not ocultos:
            return cambios
        for cambio in cambios:
            if cambio["field"] in ocultos:
                cambio["before"] = VALOR_OCULTO if cambio["before"] is not None else None
                if cambio["after"] is None:
                    continue
                cambio["after"] = VALOR_OCULTO_CAMBIADO if cambio["before"] is not None else VALOR_OCULTO
        return cambios

    def _persist(
        self,
        entity: Any,
        valores: Dict[str, Any],
        accion: str,
        cambios: List[Dict[str, Any]],
        actor_id: Optional[int],
    ) -> Optional[Auditoria]:
        tabla = entity.__tablename__
        id_registro = self._id_registro(entity, valores)
        registro = Auditoria(
            tabla_afectada=tabla,
            id_registro_afectado=id_registro,
            accion=accion,
            usuario_id=actor_id if actor_id is not None else self.actor_id,
            cambios=self._ocultar(entity, cambios),
        )
        try:
            self.db.add(registro)
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.error("%s", AuditWriteFailed(tabla, id_registro, accion), exc_info=exc)
            return None
        return registro
