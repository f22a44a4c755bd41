from typing import List, Dict, Any
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from portal.config import get_settings
from portal.db import get_db
from portal.dependencies import (
    get_access_gate,
    get_auditor,
    get_current_user,
    get_menu_cache,
    require_modulo_access,
)
from portal.dependencies.auth import denegado
from portal.models import TipoNodo
from portal.repositories.accesos_repository import AccesosRepository
from portal.schemas.roles import AccesoSchema, AccesoUpdate
from portal.services.access_gate import AccessGate
from portal.services.auditoria_service import AuditRecorder
from portal.services.menu_cache import MenuCache

router = APIRouter(
    prefix="/accesos",
    tags=["accesos"],
)

CONTROL_ACCESO = "modulo_control_acceso_id"


def get_repo(
    db: Session = Depends(get_db),
    auditor: AuditRecorder = Depends(get_auditor),
    menu_cache: MenuCache = Depends(get_menu_cache),
) -> AccesosRepository:
    return AccesosRepository(db, auditor, menu_cache)


def _exigir(gate: AccessGate, user: Dict[str, Any], permiso: str) -> None:
    decision = gate.require_permission(
        user, TipoNodo.MODULO, get_settings().modulo_control_acceso_id, permiso
    )
    if not decision:
        raise denegado(decision)


@router.get("/roles/{rol_id}", response_model=List[AccesoSchema])
async def list_accesos_rol(
    rol_id: int,
    user: Dict[str, Any] = Depends(require_modulo_access(CONTROL_ACCESO, "view")),
    repo: AccesosRepository = Depends(get_repo),
):
    """Accesos del rol, incluidos los que apuntan a nodos eliminados."""
    return repo.listar_por_rol(rol_id)


@router.put("/roles/{rol_id}/{tipo_nodo}/{nodo_id}", response_model=AccesoSchema)
async def replace_acceso(
    rol_id: int,
    tipo_nodo: TipoNodo,
    nodo_id: int,
    payload: AccesoUpdate,
    user: Dict[str, Any] = Depends(get_current_user),
    gate: AccessGate = Depends(get_access_gate),
    repo: AccesosRepository = Depends(get_repo),
):
    """
    Reemplaza el conjunto completo de permisos del rol sobre el nodo.

    Requiere 'create' sobre control de acceso si el acceso es nuevo y 'edit'
    si ya existía.
    """
    existente = repo.get(rol_id, tipo_nodo, nodo_id)
    _exigir(gate, user, "edit" if existente is not None else "create")
    fila = repo.grant(rol_id, tipo_nodo, nodo_id, payload.permisos, actor_id=user["id"])
    ref = repo.arbol.resolve(fila.tipo_nodo, fila.nodo_id)
    return AccesoSchema(
        rol_id=fila.rol_id,
        tipo_nodo=fila.tipo_nodo,
        nodo_id=fila.nodo_id,
        permisos=list(fila.permisos or []),
        estado=ref.etiqueta,
        nombre=ref.nodo.nombre if ref.nodo is not None else None,
        ruta=ref.nodo.ruta_completa if ref.presente else None,
    )


@router.delete("/roles/{rol_id}/{tipo_nodo}/{nodo_id}", response_model=Dict[str, Any])
async def revoke_acceso(
    rol_id: int,
    tipo_nodo: TipoNodo,
    nodo_id: int,
    user: Dict[str, Any] = Depends(require_modulo_access(CONTROL_ACCESO, "delete")),
    repo: AccesosRepository = Depends(get_repo),
):
    ok = repo.revoke(rol_id, tipo_nodo, nodo_id, actor_id=user["id"])
    if not ok:
        raise HTTPException(status_code=404, detail="Acceso no encontrado")
    return {"success": True}
