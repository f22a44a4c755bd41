from typing import List, Optional
from datetime import datetime, timezone
from sqlalchemy import func, not_, or_
from sqlalchemy.orm import Session
from werkzeug.security import generate_password_hash

from portal.models import Usuario, Rol
from portal.exceptions import NotFoundError
from portal.repositories.base import BaseRepository
from portal.schemas.usuarios import UsuarioCreate, UsuarioUpdate
from portal.services.auditoria_service import AuditRecorder, snapshot


class UsuariosRepository(BaseRepository[Usuario, UsuarioCreate, UsuarioUpdate]):
    """
    Repositorio para operaciones con usuarios.

    Además del CRUD auditado, concentra las escrituras del protocolo de login
    (contador de intentos y bloqueo), siempre sobre la fila bloqueada.
    """

    def __init__(self, db: Session, auditor: Optional[AuditRecorder] = None):
        super().__init__(Usuario, db, auditor)

    def get_by_documento(self, numero_documento: str, for_update: bool = False) -> Optional[Usuario]:
        """
        Obtiene un usuario por su número de documento.

        Args:
            numero_documento: Documento del usuario
            for_update: Bloquear la fila hasta el fin de la transacción

        Returns:
            Instancia del usuario o None si no se encuentra
        """
        query = self.db.query(self.model).filter(self.model.numero_documento == numero_documento)
        if for_update:
            query = query.with_for_update().populate_existing()
        return query.first()

    def listar(
        self,
        rol_id: Optional[int] = None,
        bloqueados: Optional[bool] = None,
        max_intentos: int = 3,
        skip: int = 0,
        limit: int = 100,
    ) -> List[Usuario]:
        """
        Lista usuarios filtrando por rol y por estado de bloqueo antes de paginar.

        Args:
            rol_id: Solo usuarios de este rol
            bloqueados: True para cuentas bloqueadas, False para las habilitadas
            max_intentos: Umbral de intentos que también cuenta como bloqueo
        """
        query = self._query()
        if rol_id is not None:
            query = query.filter(self.model.rol_id == rol_id)
        if bloqueados is not None:
            bloqueado = or_(
                self.model.bloqueado_at.isnot(None),
                func.coalesce(self.model.intentos_fallidos, 0) >= max_intentos,
            )
            query = query.filter(bloqueado if bloqueados else not_(bloqueado))
        return query.order_by(self.model.id.asc()).offset(skip).limit(limit).all()

    def crear(
        self,
        numero_documento: str,
        email: str,
        password: str,
        rol_id: int,
        actor_id: Optional[int] = None,
    ) -> Usuario:
        """
        Crea un usuario guardando solo el hash de la contraseña.

        Raises:
            NotFoundError: si el rol no existe
        """
        if self.db.get(Rol, rol_id) is None:
            raise NotFoundError("rol", rol_id)
        return self.create(
            {
                "numero_documento": numero_documento,
                "email": email,
                "password_hash": generate_password_hash(password),
                "rol_id": rol_id,
                "intentos_fallidos": 0,
            },
            actor_id=actor_id,
        )

    def registrar_intento_fallido(self, usuario: Usuario, max_intentos: int = 3) -> Usuario:
        """
        Incrementa el contador de intentos y bloquea la cuenta al llegar al máximo.

        El usuario debe haberse leído con for_update=True en la transacción actual.
        """
        before = snapshot(usuario)
        # El incremento se resuelve en la base sobre el valor vigente de la fila
        usuario.intentos_fallidos = func.coalesce(self.model.intentos_fallidos, 0) + 1
        self.db.flush()
        self.db.refresh(usuario)
        if usuario.intentos_fallidos >= max_intentos and usuario.bloqueado_at is None:
            usuario.bloqueado_at = datetime.now(timezone.utc)
        self.db.commit()
        self.db.refresh(usuario)
        self.auditor.on_updated(usuario, before)
        return usuario

    def reiniciar_intentos(self, usuario: Usuario, actor_id: Optional[int] = None) -> Usuario:
        """Pone el contador en 0 y quita el bloqueo. Si no hay nada que cambiar, no escribe."""
        if not usuario.intentos_fallidos and usuario.bloqueado_at is None:
            self.db.commit()
            return usuario
        before = snapshot(usuario)
        usuario.intentos_fallidos = 0
        usuario.bloqueado_at = None
        self.db.add(usuario)
        self.db.commit()
        self.db.refresh(usuario)
        self.auditor.on_updated(usuario, before, actor_id=actor_id)
        return usuario

    def desbloquear(self, id: int, actor_id: Optional[int] = None) -> Optional[Usuario]:
        """
        Desbloqueo administrativo de una cuenta.

        Returns:
            Usuario desbloqueado o None si no existe
        """
        usuario = self.get_for_update(id)
        if not usuario:
            return None
        return self.reiniciar_intentos(usuario, actor_id=actor_id)

    def cambiar_rol(self, id: int, rol_id: int, actor_id: Optional[int] = None) -> Optional[Usuario]:
        """
        Cambia el rol de un usuario.

        Raises:
            NotFoundError: si el rol no existe
        """
        if self.db.get(Rol, rol_id) is None:
            raise NotFoundError("rol", rol_id)
        return self.update(id, {"rol_id": rol_id}, actor_id=actor_id)
