from typing import List, Optional
from sqlalchemy.orm import Session, joinedload

from portal.models import Auditoria


class AuditoriasRepository:
    """Consulta de solo lectura de los registros de auditoría."""

    def __init__(self, db: Session):
        self.db = db
        self.model = Auditoria

    def _filtrar(self, tabla: Optional[str], id_registro: Optional[str], accion: Optional[str]):
        query = self.db.query(self.model)
        if tabla:
            query = query.filter(self.model.tabla_afectada == tabla)
        if id_registro:
            query = query.filter(self.model.id_registro_afectado == id_registro)
        if accion:
            query = query.filter(self.model.accion == accion.upper())
        return query

    def list(
        self,
        tabla: Optional[str] = None,
        id_registro: Optional[str] = None,
        accion: Optional[str] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> List[Auditoria]:
        """
        Lista registros del más reciente al más antiguo.

        Args:
            tabla: Nombre de la tabla afectada
            id_registro: Identificador del registro afectado
            accion: INSERT, UPDATE o DELETE
            skip: Número de registros a saltar
            limit: Número máximo de registros a devolver
        """
        return (
            self._filtrar(tabla, id_registro, accion)
            .options(joinedload(self.model.usuario))
            .order_by(self.model.id.desc())
            .offset(skip)
            .limit(limit)
            .all()
        )

    def count(self, tabla: Optional[str] = None, id_registro: Optional[str] = None, accion: Optional[str] = None) -> int:
        return self._filtrar(tabla, id_registro, accion).count()

    def get(self, id: int) -> Optional[Auditoria]:
        return self.db.get(self.model, id)

    def tablas(self) -> List[str]:
        filas = self.db.query(self.model.tabla_afectada).distinct().order_by(self.model.tabla_afectada.asc()).all()
        return [tabla for (tabla,) in filas]
