from datetime import datetime, timezone
from typing import TypeVar, Generic, Type, List, Optional, Any, Dict, Union
from sqlalchemy.orm import Session
from pydantic import BaseModel

from portal.services.auditoria_service import AuditRecorder, snapshot

# Tipo genérico para modelos SQLAlchemy
ModelType = TypeVar("ModelType")
# Tipo genérico para esquemas de creación Pydantic
CreateSchemaType = TypeVar("CreateSchemaType", bound=BaseModel)
# Tipo genérico para esquemas de actualización Pydantic
UpdateSchemaType = TypeVar("UpdateSchemaType", bound=BaseModel)


class BaseRepository(Generic[ModelType, CreateSchemaType, UpdateSchemaType]):
    """
    Repositorio base con operaciones CRUD auditadas.

    Toda creación, actualización o borrado confirma primero la mutación y luego
    la notifica explícitamente al AuditRecorder. Para modelos con 'deleted_at'
    el borrado es lógico y las consultas excluyen las filas borradas.
    """

    def __init__(self, model: Type[ModelType], db: Session, auditor: Optional[AuditRecorder] = None):
        """
        Inicializa el repositorio base.

        Args:
            model: Clase del modelo SQLAlchemy
            db: Sesión del banco de datos
            auditor: Registrador de auditoría (por defecto uno sin actor)
        """
        self.model = model
        self.db = db
        self.auditor = auditor or AuditRecorder(db)

    @property
    def soft_delete(self) -> bool:
        return hasattr(self.model, "deleted_at")

    def _query(self, include_deleted: bool = False):
        query = self.db.query(self.model)
        if self.soft_delete and not include_deleted:
            query = query.filter(self.model.deleted_at.is_(None))
        return query

    def get(self, id: Any, include_deleted: bool = False) -> Optional[ModelType]:
        """
        Obtiene un registro por su ID.

        Args:
            id: ID del registro
            include_deleted: Incluir registros con borrado lógico

        Returns:
            Instancia del modelo o None si no se encuentra
        """
        return self._query(include_deleted).filter(self.model.id == id).first()

    def get_for_update(self, id: Any) -> Optional[ModelType]:
        """Obtiene un registro bloqueando la fila hasta el fin de la transacción."""
        return self._query().filter(self.model.id == id).with_for_update().populate_existing().first()

    def get_all(self, skip: int = 0, limit: int = 100) -> List[ModelType]:
        return self._query().order_by(self.model.id.asc()).offset(skip).limit(limit).all()

    def create(self, obj_in: Union[CreateSchemaType, Dict[str, Any]], actor_id: Optional[int] = None) -> ModelType:
        """
        Crea un nuevo registro y audita el INSERT.

        Args:
            obj_in: Datos para crear el registro (esquema Pydantic o diccionario)
            actor_id: Usuario que realiza la acción

        Returns:
            Instancia del modelo creado
        """
        obj_data = obj_in.model_dump() if hasattr(obj_in, "model_dump") else obj_in
        db_obj = self.model(**obj_data)
        self.db.add(db_obj)
        self.db.commit()
        self.db.refresh(db_obj)
        self.auditor.on_created(db_obj, actor_id=actor_id)
        return db_obj

    def update(
        self,
        id: Any,
        obj_in: Union[UpdateSchemaType, Dict[str, Any]],
        actor_id: Optional[int] = None,
    ) -> Optional[ModelType]:
        """
        Actualiza un registro existente y audita los campos modificados.

        La foto previa se toma con la fila bloqueada, dentro de la misma
        transacción que la escritura.

        Returns:
            Instancia del modelo actualizado o None si no se encuentra
        """
        db_obj = self.get_for_update(id)
        if not db_obj:
            return None
        before = snapshot(db_obj)

        obj_data = obj_in.model_dump(exclude_unset=True) if hasattr(obj_in, "model_dump") else obj_in
        for field, value in obj_data.items():
            if hasattr(db_obj, field):
                setattr(db_obj, field, value)

        self.db.add(db_obj)
        self.db.commit()
        self.db.refresh(db_obj)
        self.auditor.on_updated(db_obj, before, actor_id=actor_id)
        return db_obj

    def delete(self, id: Any, actor_id: Optional[int] = None) -> bool:
        """
        Elimina un registro (lógicamente si el modelo tiene 'deleted_at').

        Returns:
            True si el registro fue eliminado, False en caso contrario
        """
        db_obj = self.get_for_update(id)
        if not db_obj:
            return False
        before = snapshot(db_obj)

        if self.soft_delete:
            db_obj.deleted_at = datetime.now(timezone.utc)
            self.db.add(db_obj)
        else:
            self.db.delete(db_obj)
        self.db.commit()
        self.auditor.on_deleted(db_obj, before, actor_id=actor_id)
        return True

    def count(self) -> int:
        return self._query().count()
