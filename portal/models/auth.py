"""SQLAlchemy models for roles and role grants."""

from enum import Enum

from sqlalchemy import Column, Integer, Text, DateTime, ForeignKey, JSON, CheckConstraint, Index
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship

from portal.db import Base


class TipoNodo(str, Enum):
    """Tipo de nodo del árbol de autorización."""
    MODULO = "modulo"
    PESTANA = "pestana"


class Rol(Base):
    """
    Representa los roles del sistema (ej. SuperAdmin, Estandar).

    Cada usuario tiene exactamente un rol; el rol concentra los accesos.
    """
    __tablename__ = "roles"
    __auditoria_excluir__ = ("created_at", "updated_at")

    id = Column(Integer, primary_key=True)
    nombre = Column(Text, nullable=False, unique=True)
    abreviatura = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False
    )

    # Relaciones
    accesos = relationship(
        "RolAcceso",
        back_populates="rol",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    usuarios = relationship("Usuario", back_populates="rol")

    def __repr__(self):
        return f"<Rol(id={self.id}, nombre='{self.nombre}')>"


class RolAcceso(Base):
    """
    Acceso de un rol a un nodo (módulo o pestaña) con su conjunto de permisos.

    La existencia de la fila, aun con 'permisos' vacío, hace visible el nodo
    para el rol. Las filas sobreviven al borrado lógico del nodo.
    """
    __tablename__ = "rol_accesos"
    __table_args__ = (
        CheckConstraint("tipo_nodo IN ('modulo', 'pestana')", name="ck_rol_accesos_tipo"),
        Index("idx_rol_accesos_nodo", "tipo_nodo", "nodo_id"),
    )
    __auditoria_excluir__ = ("created_at", "updated_at")

    rol_id = Column(Integer, ForeignKey("roles.id", ondelete="CASCADE"), primary_key=True)
    tipo_nodo = Column(Text, primary_key=True)
    nodo_id = Column(Integer, primary_key=True)
    permisos = Column(JSON, nullable=False, default=list)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False
    )

    # Relaciones
    rol = relationship("Rol", back_populates="accesos")

    def __repr__(self):
        return f"<RolAcceso(rol_id={self.rol_id}, tipo_nodo='{self.tipo_nodo}', nodo_id={self.nodo_id})>"
