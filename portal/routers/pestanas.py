from typing import Dict, Any
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from portal.db import get_db
from portal.dependencies import get_auditor, get_menu_cache, require_modulo_access, require_pestana_access
from portal.repositories.modulos_repository import PestanasRepository
from portal.schemas.modulos import PestanaCreate, PestanaSchema, PestanaUpdate
from portal.services.auditoria_service import AuditRecorder
from portal.services.menu_cache import MenuCache

router = APIRouter(
    prefix="/pestanas",
    tags=["pestanas"],
)

GESTION = "modulo_gestion_modulos_id"


def get_repo(
    db: Session = Depends(get_db),
    auditor: AuditRecorder = Depends(get_auditor),
    menu_cache: MenuCache = Depends(get_menu_cache),
) -> PestanasRepository:
    return PestanasRepository(db, auditor, menu_cache)


@router.get("/{pestana_id}/acceso")
async def acceso_pestana(
    pestana_id: int,
    user: Dict[str, Any] = Depends(require_pestana_access()),
):
    """Comprobación de acceso del usuario actual a la pestaña."""
    return {"pestana_id": pestana_id, "acceso": True}


@router.get("/{pestana_id}", response_model=PestanaSchema)
async def get_pestana(
    pestana_id: int,
    user: Dict[str, Any] = Depends(require_modulo_access(GESTION, "view")),
    repo: PestanasRepository = Depends(get_repo),
):
    p = repo.get(pestana_id)
    if not p:
        raise HTTPException(status_code=404, detail="Pestaña no encontrada")
    return p


@router.post("/", response_model=PestanaSchema, status_code=201)
async def create_pestana(
    payload: PestanaCreate,
    user: Dict[str, Any] = Depends(require_modulo_access(GESTION, "create")),
    repo: PestanasRepository = Depends(get_repo),
):
    return repo.crear(payload, actor_id=user["id"])


@router.patch("/{pestana_id}", response_model=PestanaSchema)
async def update_pestana(
    pestana_id: int,
    payload: PestanaUpdate,
    user: Dict[str, Any] = Depends(require_modulo_access(GESTION, "edit")),
    repo: PestanasRepository = Depends(get_repo),
):
    p = repo.actualizar(pestana_id, payload, actor_id=user["id"])
    if not p:
        raise HTTPException(status_code=404, detail="Pestaña no encontrada")
    return p


@router.delete("/{pestana_id}", response_model=Dict[str, Any])
async def delete_pestana(
    pestana_id: int,
    user: Dict[str, Any] = Depends(require_modulo_access(GESTION, "delete")),
    repo: PestanasRepository = Depends(get_repo),
):
    ok = repo.eliminar(pestana_id, actor_id=user["id"])
    if not ok:
        raise HTTPException(status_code=404, detail="Pestaña no encontrada")
    return {"success": True}
