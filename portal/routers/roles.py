from typing import List, Dict, Any
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from portal.db import get_db
from portal.dependencies import get_auditor, get_menu_cache, require_modulo_access
from portal.repositories.roles_repository import RolesRepository
from portal.schemas.roles import RolCreate, RolSchema, RolUpdate
from portal.services.auditoria_service import AuditRecorder
from portal.services.menu_cache import MenuCache

router = APIRouter(
    prefix="/roles",
    tags=["roles"],
)

ROLES = "modulo_roles_id"


def get_repo(
    db: Session = Depends(get_db),
    auditor: AuditRecorder = Depends(get_auditor),
    menu_cache: MenuCache = Depends(get_menu_cache),
) -> RolesRepository:
    return RolesRepository(db, auditor, menu_cache)


@router.get("/", response_model=List[RolSchema])
async def list_roles(
    user: Dict[str, Any] = Depends(require_modulo_access(ROLES, "view")),
    repo: RolesRepository = Depends(get_repo),
):
    return repo.listar()


@router.get("/{rol_id}", response_model=RolSchema)
async def get_rol(
    rol_id: int,
    user: Dict[str, Any] = Depends(require_modulo_access(ROLES, "view")),
    repo: RolesRepository = Depends(get_repo),
):
    rol = repo.get(rol_id)
    if not rol:
        raise HTTPException(status_code=404, detail="Rol no encontrado")
    return rol


@router.post("/", response_model=RolSchema, status_code=201)
async def create_rol(
    payload: RolCreate,
    user: Dict[str, Any] = Depends(require_modulo_access(ROLES, "create")),
    repo: RolesRepository = Depends(get_repo),
):
    return repo.crear(payload, actor_id=user["id"])


@router.patch("/{rol_id}", response_model=RolSchema)
async def update_rol(
    rol_id: int,
    payload: RolUpdate,
    user: Dict[str, Any] = Depends(require_modulo_access(ROLES, "edit")),
    repo: RolesRepository = Depends(get_repo),
):
    rol = repo.actualizar(rol_id, payload, actor_id=user["id"])
    if not rol:
        raise HTTPException(status_code=404, detail="Rol no encontrado")
    return rol


@router.delete("/{rol_id}", response_model=Dict[str, Any])
async def delete_rol(
    rol_id: int,
    user: Dict[str, Any] = Depends(require_modulo_access(ROLES, "delete")),
    repo: RolesRepository = Depends(get_repo),
):
    ok = repo.eliminar(rol_id, actor_id=user["id"])
    if not ok:
        raise HTTPException(status_code=404, detail="Rol no encontrado")
    return {"success": True}
