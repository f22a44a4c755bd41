"""SQLAlchemy models for the 'modulos' and 'pestanas' tables."""

from sqlalchemy import Column, Integer, Text, Boolean, DateTime, ForeignKey, JSON, Index
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship

from portal.db import Base


class Modulo(Base):
    """
    Representa las superficies administrativas del portal.

    Un módulo puede ser padre (contenedor) o hijo de un módulo padre; no se
    anidan más de dos niveles. Además de los permisos base declara un
    vocabulario propio de permisos extra (p. ej. 'exportar', 'aprobar').
    """
    __tablename__ = "modulos"
    __table_args__ = (
        Index("idx_modulos_padre", "modulo_padre_id"),
    )
    __auditoria_excluir__ = ("created_at", "updated_at")

    id = Column(Integer, primary_key=True)
    nombre = Column(Text, nullable=False, unique=True)
    icono = Column(Text, nullable=False)
    ruta = Column(Text, nullable=False, unique=True)
    es_padre = Column(Boolean, nullable=False, default=False)
    modulo_padre_id = Column(Integer, ForeignKey("modulos.id"), nullable=True)
    permisos_extra = Column(JSON, nullable=False, default=list)
    orden = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False
    )
    deleted_at = Column(DateTime(timezone=True), nullable=True)

    # Relaciones
    modulo_padre = relationship("Modulo", remote_side=[id], back_populates="modulos_hijos")
    modulos_hijos = relationship("Modulo", back_populates="modulo_padre")
    pestanas = relationship("Pestana", back_populates="modulo")

    def __repr__(self):
        return f"<Modulo(id={self.id}, nombre='{self.nombre}', ruta='{self.ruta}')>"

    @property
    def is_deleted(self):
        return self.deleted_at is not None

    @property
    def ruta_completa(self):
        if self.modulo_padre is not None:
            return f"{self.modulo_padre.ruta}{self.ruta}"
        return self.ruta


class Pestana(Base):
    """
    Representa las pestañas (secciones) de un módulo.

    Una pestaña pertenece siempre a exactamente un módulo y tiene su propio
    vocabulario de permisos extra, independiente del de su módulo.
    """
    __tablename__ = "pestanas"
    __table_args__ = (
        Index("idx_pestanas_modulo", "modulo_id"),
    )
    __auditoria_excluir__ = ("created_at", "updated_at")

    id = Column(Integer, primary_key=True)
    modulo_id = Column(Integer, ForeignKey("modulos.id"), nullable=False)
    nombre = Column(Text, nullable=False)
    icono = Column(Text, nullable=True)
    ruta = Column(Text, nullable=False)
    permisos_extra = Column(JSON, nullable=False, default=list)
    orden = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False
    )
    deleted_at = Column(DateTime(timezone=True), nullable=True)

    # Relaciones
    modulo = relationship("Modulo", back_populates="pestanas")

    def __repr__(self):
        return f"<Pestana(id={self.id}, modulo_id={self.modulo_id}, nombre='{self.nombre}')>"

    @property
    def is_deleted(self):
        return self.deleted_at is not None

    @property
    def ruta_completa(self):
        return f"{self.modulo.ruta_completa}{self.ruta}"
