from typing import Dict, Any, List, Optional
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from portal.db import get_db
from portal.dependencies import require_modulo_access
from portal.repositories.auditorias_repository import AuditoriasRepository
from portal.schemas.auditoria import AuditoriaPage, AuditoriaSchema

router = APIRouter(
    prefix="/auditorias",
    tags=["auditorias"],
)

AUDITORIA = "modulo_auditoria_id"


@router.get("/", response_model=AuditoriaPage)
async def list_auditorias(
    user: Dict[str, Any] = Depends(require_modulo_access(AUDITORIA, "view")),
    db: Session = Depends(get_db),
    tabla: Optional[str] = Query(None),
    id_registro: Optional[str] = Query(None),
    accion: Optional[str] = Query(None, pattern="^(INSERT|UPDATE|DELETE|insert|update|delete)$"),
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=500),
):
    """Registros de auditoría filtrables por tabla, registro y acción."""
    repo = AuditoriasRepository(db)
    return {
        "total": repo.count(tabla, id_registro, accion),
        "items": repo.list(tabla, id_registro, accion, skip=skip, limit=limit),
    }


@router.get("/tablas", response_model=List[str])
async def list_tablas(
    user: Dict[str, Any] = Depends(require_modulo_access(AUDITORIA, "view")),
    db: Session = Depends(get_db),
):
    return AuditoriasRepository(db).tablas()


@router.get("/{auditoria_id}", response_model=AuditoriaSchema)
async def get_auditoria(
    auditoria_id: int,
    user: Dict[str, Any] = Depends(require_modulo_access(AUDITORIA, "view")),
    db: Session = Depends(get_db),
):
    registro = AuditoriasRepository(db).get(auditoria_id)
    if not registro:
        raise HTTPException(status_code=404, detail="Registro de auditoría no encontrado")
    return registro
