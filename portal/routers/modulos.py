from typing import List, Dict, Any
from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.encoders import jsonable_encoder
from sqlalchemy.orm import Session

from portal.db import get_db
from portal.dependencies import get_auditor, get_menu_cache, require_modulo_access
from portal.repositories.modulos_repository import ModulosRepository, PestanasRepository
from portal.schemas.modulos import ModuloCreate, ModuloSchema, ModuloUpdate, PestanaSchema
from portal.services.arbol_autorizacion import AuthorizationTree
from portal.services.auditoria_service import AuditRecorder
from portal.services.menu_cache import MenuCache

router = APIRouter(
    prefix="/modulos",
    tags=["modulos"],
)

GESTION = "modulo_gestion_modulos_id"


def get_repo(
    db: Session = Depends(get_db),
    auditor: AuditRecorder = Depends(get_auditor),
    menu_cache: MenuCache = Depends(get_menu_cache),
) -> ModulosRepository:
    return ModulosRepository(db, auditor, menu_cache)


@router.get("/", response_model=List[ModuloSchema])
async def list_modulos(
    user: Dict[str, Any] = Depends(require_modulo_access(GESTION, "view")),
    repo: ModulosRepository = Depends(get_repo),
    incluir_eliminados: bool = Query(False),
):
    return repo.listar(include_deleted=incluir_eliminados)


@router.get("/padres", response_model=List[ModuloSchema])
async def list_padres(
    user: Dict[str, Any] = Depends(require_modulo_access(GESTION, "view")),
    repo: ModulosRepository = Depends(get_repo),
):
    return repo.padres()


@router.get("/{modulo_id}/pestanas/visibles")
async def pestanas_visibles(
    modulo_id: int,
    user: Dict[str, Any] = Depends(require_modulo_access()),
    db: Session = Depends(get_db),
):
    """Pestañas del módulo a las que tiene acceso el rol del usuario, con su ruta completa."""
    return jsonable_encoder(AuthorizationTree(db).pestanas_visibles(modulo_id, user["rol_id"]))


@router.get("/{modulo_id}/pestanas", response_model=List[PestanaSchema])
async def list_pestanas(
    modulo_id: int,
    user: Dict[str, Any] = Depends(require_modulo_access(GESTION, "view")),
    db: Session = Depends(get_db),
):
    return PestanasRepository(db).por_modulo(modulo_id)


@router.get("/{modulo_id}", response_model=ModuloSchema)
async def get_modulo(
    modulo_id: int,
    user: Dict[str, Any] = Depends(require_modulo_access(GESTION, "view")),
    repo: ModulosRepository = Depends(get_repo),
):
    m = repo.get(modulo_id)
    if not m:
        raise HTTPException(status_code=404, detail="Módulo no encontrado")
    return m


@router.post("/", response_model=ModuloSchema, status_code=201)
async def create_modulo(
    payload: ModuloCreate,
    user: Dict[str, Any] = Depends(require_modulo_access(GESTION, "create")),
    repo: ModulosRepository = Depends(get_repo),
):
    return repo.crear(payload, actor_id=user["id"])


@router.patch("/{modulo_id}", response_model=ModuloSchema)
async def update_modulo(
    modulo_id: int,
    payload: ModuloUpdate,
    user: Dict[str, Any] = Depends(require_modulo_access(GESTION, "edit")),
    repo: ModulosRepository = Depends(get_repo),
):
    m = repo.actualizar(modulo_id, payload, actor_id=user["id"])
    if not m:
        raise HTTPException(status_code=404, detail="Módulo no encontrado")
    return m


@router.delete("/{modulo_id}", response_model=Dict[str, Any])
async def delete_modulo(
    modulo_id: int,
    user: Dict[str, Any] = Depends(require_modulo_access(GESTION, "delete")),
    repo: ModulosRepository = Depends(get_repo),
):
    ok = repo.eliminar(modulo_id, actor_id=user["id"])
    if not ok:
        raise HTTPException(status_code=404, detail="Módulo no encontrado")
    return {"success": True}
