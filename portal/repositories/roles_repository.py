from typing import List, Optional
from sqlalchemy.orm import Session

from portal.exceptions import EntidadEnUso, InvalidNodeDefinition
from portal.models import Rol, Usuario
from portal.repositories.base import BaseRepository
from portal.schemas.roles import RolCreate, RolUpdate
from portal.services.auditoria_service import AuditRecorder, snapshot
from portal.services.menu_cache import MenuCache


class RolesRepository(BaseRepository[Rol, RolCreate, RolUpdate]):
    """
    Repositorio de roles.

    Borrar un rol borra en cascada sus accesos (cada uno queda auditado) y
    descarta su menú de la caché.
    """

    def __init__(self, db: Session, auditor: Optional[AuditRecorder] = None, menu_cache: Optional[MenuCache] = None):
        super().__init__(Rol, db, auditor)
        self.menu_cache = menu_cache

    def listar(self) -> List[Rol]:
        return self.db.query(self.model).order_by(self.model.id.asc()).all()

    def get_by_nombre(self, nombre: str) -> Optional[Rol]:
        return self.db.query(self.model).filter(self.model.nombre == nombre).first()

    def _validar_nombre(self, nombre: Optional[str], actual_id: Optional[int] = None) -> None:
        if not nombre:
            return
        existente = self.get_by_nombre(nombre)
        if existente is not None and existente.id != actual_id:
            raise InvalidNodeDefinition("nombre", "Ya existe un rol con este nombre")

    def crear(self, obj_in: RolCreate, actor_id: Optional[int] = None) -> Rol:
        self._validar_nombre(obj_in.nombre)
        return self.create(obj_in, actor_id=actor_id)

    def actualizar(self, id: int, obj_in: RolUpdate, actor_id: Optional[int] = None) -> Optional[Rol]:
        self._validar_nombre(obj_in.nombre, actual_id=id)
        return self.update(id, obj_in, actor_id=actor_id)

    def eliminar(self, id: int, actor_id: Optional[int] = None) -> bool:
        """
        Elimina el rol y sus accesos.

        Raises:
            EntidadEnUso: si hay usuarios con ese rol
        """
        rol = self.get_for_update(id)
        if not rol:
            return False
        if self.db.query(Usuario.id).filter(Usuario.rol_id == id).first() is not None:
            self.db.rollback()
            raise EntidadEnUso("rol", id, "No se puede eliminar un rol asignado a usuarios")

        accesos = [(acceso, snapshot(acceso)) for acceso in list(rol.accesos)]
        before = snapshot(rol)
        self.db.delete(rol)
        self.db.commit()

        for acceso, antes in accesos:
            self.auditor.on_deleted(acceso, antes, actor_id=actor_id)
        self.auditor.on_deleted(rol, before, actor_id=actor_id)
        if self.menu_cache is not None:
            self.menu_cache.invalidate(id)
        return True
