import logging
from typing import Optional, Dict, Any, Union
from fastapi import Depends, HTTPException, status, Request
from sqlalchemy.orm import Session

from portal.config import get_settings
from portal.db import get_db
from portal.models import TipoNodo, Usuario
from portal.repositories.accesos_repository import AccesosRepository
from portal.schemas.base import ErrorDenegado
from portal.services.access_gate import AccessGate, Decision
from portal.services.arbol_autorizacion import AuthorizationTree
from portal.services.auditoria_service import AuditRecorder
from portal.services.auth_service import AuthService, usuario_sesion
from portal.services.contratos_service import ContractRegistryClient
from portal.services.menu_cache import MenuCache
from portal.services.rate_limiter import LoginRateLimiter

logger = logging.getLogger("uvicorn")


def get_current_user(request: Request, db: Session = Depends(get_db)) -> Dict[str, Any]:
    """
    Obtiene el usuario actual de la sesión.

    El rol se relee de la base en cada petición para que un cambio de rol
    surta efecto sin cerrar la sesión.

    Raises:
        HTTPException: 401 si no hay sesión o el usuario ya no existe
    """
    user = request.session.get("user")
    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="No autenticado")

    usuario = db.get(Usuario, user.get("id"))
    if usuario is None:
        request.session.clear()
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="No autenticado")

    datos = usuario_sesion(usuario)
    if datos != user:
        request.session["user"] = datos
    return datos


def get_optional_user(request: Request) -> Optional[Dict[str, Any]]:
    """Devuelve el usuario de la sesión si existe, si no None. No lanza 401."""
    return request.session.get("user")


def get_actor_id(user: Dict[str, Any] = Depends(get_current_user)) -> int:
    return user["id"]


def get_auditor(db: Session = Depends(get_db), actor_id: int = Depends(get_actor_id)) -> AuditRecorder:
    return AuditRecorder(db, actor_id=actor_id)


def get_menu_cache(request: Request) -> MenuCache:
    return request.app.state.menu_cache


def get_rate_limiter(request: Request) -> LoginRateLimiter:
    return request.app.state.login_limiter


def get_contratos_client(request: Request) -> ContractRegistryClient:
    return request.app.state.contratos


def get_accesos_repository(
    db: Session = Depends(get_db),
    menu_cache: MenuCache = Depends(get_menu_cache),
) -> AccesosRepository:
    return AccesosRepository(db, menu_cache=menu_cache)


def get_access_gate(
    db: Session = Depends(get_db),
    accesos: AccesosRepository = Depends(get_accesos_repository),
) -> AccessGate:
    return AccessGate(AuthorizationTree(db), accesos)


def get_auth_service(
    db: Session = Depends(get_db),
    contratos: ContractRegistryClient = Depends(get_contratos_client),
    limiter: LoginRateLimiter = Depends(get_rate_limiter),
) -> AuthService:
    return AuthService(db, contratos, limiter)


def denegado(decision: Decision) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail=ErrorDenegado(code=decision.reason, message=decision.message).model_dump(),
    )


def _resolver_id(nodo: Union[int, str, None], request: Request, parametro: str) -> int:
    """
    Id del nodo a proteger: un entero fijo, el nombre de un ajuste de
    configuración (ej. "modulo_roles_id") o, si es None, el parámetro de ruta.
    """
    if isinstance(nodo, int):
        return nodo
    if isinstance(nodo, str):
        return int(getattr(get_settings(), nodo))
    try:
        return int(request.path_params[parametro])
    except (KeyError, ValueError):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Parámetro {parametro} no válido")


def require_modulo_access(modulo: Union[int, str, None] = None, permiso: Optional[str] = None):
    """
    Dependencia que exige acceso del rol al módulo (y opcionalmente un permiso).

    Args:
        modulo: Id del módulo, nombre del ajuste que lo contiene o None para
            tomarlo del parámetro de ruta 'modulo_id'
        permiso: Permiso base o extra requerido sobre el módulo

    Returns:
        Una dependencia que devuelve el usuario autorizado o lanza 403
    """
    def checker(
        request: Request,
        user: Dict[str, Any] = Depends(get_current_user),
        gate: AccessGate = Depends(get_access_gate),
    ) -> Dict[str, Any]:
        modulo_id = _resolver_id(modulo, request, "modulo_id")
        decision = gate.require_permission(user, TipoNodo.MODULO, modulo_id, permiso)
        if not decision:
            logger.info(f"Acceso denegado a módulo {modulo_id} para usuario {user['id']}: {decision.reason}")
            raise denegado(decision)
        return user

    return checker


def require_pestana_access(pestana: Union[int, str, None] = None, permiso: Optional[str] = None):
    """
    Dependencia que exige acceso del rol a la pestaña (y opcionalmente un permiso).

    Args:
        pestana: Id de la pestaña, nombre del ajuste o None para el parámetro 'pestana_id'
        permiso: Permiso base o extra requerido sobre la pestaña
    """
    def checker(
        request: Request,
        user: Dict[str, Any] = Depends(get_current_user),
        gate: AccessGate = Depends(get_access_gate),
    ) -> Dict[str, Any]:
        pestana_id = _resolver_id(pestana, request, "pestana_id")
        decision = gate.require_permission(user, TipoNodo.PESTANA, pestana_id, permiso)
        if not decision:
            logger.info(f"Acceso denegado a pestaña {pestana_id} para usuario {user['id']}: {decision.reason}")
            raise denegado(decision)
        return user

    return checker
