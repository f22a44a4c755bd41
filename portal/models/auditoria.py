"""SQLAlchemy model for the 'auditorias' table."""

from sqlalchemy import Column, Integer, Text, String, ForeignKey, DateTime, JSON, CheckConstraint, Index
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship

from portal.db import Base


class Auditoria(Base):
    """
    Registro inmutable de un INSERT, UPDATE o DELETE sobre una entidad auditada.

    'cambios' es una lista ordenada de {"field", "before", "after"}.
    """
    __tablename__ = "auditorias"
    __table_args__ = (
        CheckConstraint("accion IN ('INSERT', 'UPDATE', 'DELETE')", name="ck_auditorias_accion"),
        Index("idx_auditorias_registro", "tabla_afectada", "id_registro_afectado"),
    )

    id = Column(Integer, primary_key=True)
    tabla_afectada = Column(String(100), nullable=False)
    id_registro_afectado = Column(String(100), nullable=False)
    accion = Column(String(10), nullable=False)
    usuario_id = Column(Integer, ForeignKey("usuarios.id", ondelete="SET NULL"), nullable=True)
    cambios = Column(JSON, nullable=False, default=list)
    fecha_creacion = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    # Relaciones
    usuario = relationship("Usuario")

    def __repr__(self):
        return f"<Auditoria(accion='{self.accion}', tabla='{self.tabla_afectada}', id='{self.id_registro_afectado}')>"
