from typing import List, Dict, Any, Optional
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from portal.config import get_settings
from portal.db import get_db
from portal.dependencies import get_auditor, require_modulo_access
from portal.repositories.usuarios_repository import UsuariosRepository
from portal.schemas.usuarios import UsuarioCreate, UsuarioSchema, UsuarioUpdate
from portal.services.auditoria_service import AuditRecorder

router = APIRouter(
    prefix="/usuarios",
    tags=["usuarios"],
)

USUARIOS = "modulo_usuarios_id"


def get_repo(db: Session = Depends(get_db), auditor: AuditRecorder = Depends(get_auditor)) -> UsuariosRepository:
    return UsuariosRepository(db, auditor)


@router.get("/", response_model=List[UsuarioSchema])
async def list_usuarios(
    user: Dict[str, Any] = Depends(require_modulo_access(USUARIOS, "view")),
    repo: UsuariosRepository = Depends(get_repo),
    rol_id: Optional[int] = Query(None),
    bloqueados: Optional[bool] = Query(None),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
):
    return repo.listar(
        rol_id=rol_id,
        bloqueados=bloqueados,
        max_intentos=get_settings().login_max_intentos,
        skip=skip,
        limit=limit,
    )


@router.get("/{usuario_id}", response_model=UsuarioSchema)
async def get_usuario(
    usuario_id: int,
    user: Dict[str, Any] = Depends(require_modulo_access(USUARIOS, "view")),
    repo: UsuariosRepository = Depends(get_repo),
):
    u = repo.get(usuario_id)
    if not u:
        raise HTTPException(status_code=404, detail="Usuario no encontrado")
    return u


@router.post("/", response_model=UsuarioSchema, status_code=201)
async def create_usuario(
    payload: UsuarioCreate,
    user: Dict[str, Any] = Depends(require_modulo_access(USUARIOS, "create")),
    repo: UsuariosRepository = Depends(get_repo),
):
    if repo.get_by_documento(payload.numero_documento) is not None:
        raise HTTPException(status_code=409, detail="Ya existe un usuario con este número de documento")
    return repo.crear(
        payload.numero_documento, payload.email, payload.password, payload.rol_id, actor_id=user["id"]
    )


@router.patch("/{usuario_id}", response_model=UsuarioSchema)
async def update_usuario(
    usuario_id: int,
    payload: UsuarioUpdate,
    user: Dict[str, Any] = Depends(require_modulo_access(USUARIOS, "edit")),
    repo: UsuariosRepository = Depends(get_repo),
):
    """Cambia el rol del usuario."""
    if payload.rol_id is None:
        raise HTTPException(status_code=400, detail="'rol_id' es obligatorio")
    u = repo.cambiar_rol(usuario_id, payload.rol_id, actor_id=user["id"])
    if not u:
        raise HTTPException(status_code=404, detail="Usuario no encontrado")
    return u


@router.post("/{usuario_id}/desbloquear", response_model=UsuarioSchema)
async def desbloquear_usuario(
    usuario_id: int,
    user: Dict[str, Any] = Depends(require_modulo_access(USUARIOS, "edit")),
    repo: UsuariosRepository = Depends(get_repo),
):
    """Reinicia el contador de intentos fallidos y quita el bloqueo."""
    u = repo.desbloquear(usuario_id, actor_id=user["id"])
    if not u:
        raise HTTPException(status_code=404, detail="Usuario no encontrado")
    return u
