"""SQLAlchemy model for the 'usuarios' table."""

from sqlalchemy import Column, Integer, Text, String, ForeignKey, DateTime
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship

from portal.db import Base


class Usuario(Base):
    """
    Representa los usuarios del portal.

    El número de documento es la llave de identidad externa (la misma que usa
    el registro de contratos). Incluye los campos del bloqueo por intentos
    fallidos.
    """
    __tablename__ = "usuarios"
    __auditoria_excluir__ = ("created_at", "updated_at")
    __auditoria_ocultar__ = ("password_hash",)

    id = Column(Integer, primary_key=True)
    numero_documento = Column(String(15), nullable=False, unique=True)
    email = Column(Text, nullable=False)
    password_hash = Column(Text, nullable=True)
    rol_id = Column(Integer, ForeignKey("roles.id"), nullable=False)
    intentos_fallidos = Column(Integer, nullable=False, default=0)
    bloqueado_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False
    )

    # Relaciones
    rol = relationship("Rol", back_populates="usuarios")

    def __repr__(self):
        return f"<Usuario(numero_documento='{self.numero_documento}', email='{self.email}')>"

    def esta_bloqueado(self, max_intentos: int = 3) -> bool:
        """Ambas señales son autoritativas: fecha de bloqueo o contador agotado."""
        return self.bloqueado_at is not None or (self.intentos_fallidos or 0) >= max_intentos
