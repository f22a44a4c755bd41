import logging
from typing import Any, Dict, List, Optional
from fastapi import APIRouter, Depends, Form, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse, RedirectResponse
from pydantic import ValidationError
from sqlalchemy.orm import Session

from portal.db import get_db
from portal.dependencies import get_auth_service, get_current_user, get_menu_cache, get_optional_user
from portal.exceptions import ExternalLookupUnavailable, RegistroRechazado, UsuarioYaRegistrado
from portal.schemas.usuarios import LoginForm, RegistroForm
from portal.services.arbol_autorizacion import AuthorizationTree, ModuloMenu
from portal.services.auth_service import AuthService, EstadoLogin, usuario_sesion
from portal.services.menu_cache import MenuCache

logger = logging.getLogger("uvicorn")

router = APIRouter(tags=["auth"])


def errores_de_validacion(exc: ValidationError) -> Dict[str, str]:
    """Primer mensaje de error por campo, sin el prefijo de pydantic."""
    errores: Dict[str, str] = {}
    for error in exc.errors():
        campo = str(error["loc"][-1]) if error.get("loc") else "root"
        mensaje = error.get("msg", "")
        if mensaje.startswith("Value error, "):
            mensaje = mensaje[len("Value error, "):]
        errores.setdefault(campo, mensaje)
    return errores


def menu_del_rol(db: Session, menu_cache: MenuCache, rol_id: int) -> List[ModuloMenu]:
    return menu_cache.get_or_build(rol_id, lambda: AuthorizationTree(db).menu_for(rol_id))


@router.get("/login")
async def login_page(
    documento: Optional[str] = None,
    user: Optional[Dict[str, Any]] = Depends(get_optional_user),
) -> Dict[str, Any]:
    """Estado previo al login: si ya hay sesión, el cliente puede ir al dashboard."""
    return {"autenticado": user is not None, "documento": documento}


@router.post("/login")
async def login_form(
    request: Request,
    numero_documento: str = Form(""),
    password: str = Form(""),
    remember: bool = Form(False),
    auth: AuthService = Depends(get_auth_service),
):
    """
    Procesa el formulario de login.

    Éxito: redirección a /dashboard con la sesión creada. Cualquier otro
    resultado responde 422 con el error asociado a su campo (429 si se
    superó el límite de intentos).
    """
    try:
        form = LoginForm(numero_documento=numero_documento, password=password, remember=remember)
    except ValidationError as e:
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={"code": "validation_error", "errors": errores_de_validacion(e)},
        )

    ip = request.client.host if request.client else None
    resultado = await auth.authenticate(form.numero_documento, form.password, ip)

    if resultado.autenticado:
        request.session.clear()
        request.session["user"] = usuario_sesion(resultado.usuario)
        request.session["remember"] = form.remember
        return RedirectResponse(url="/dashboard", status_code=status.HTTP_302_FOUND)

    contenido: Dict[str, Any] = {"code": resultado.code, "errors": resultado.errores()}
    if resultado.estado == EstadoLogin.RATE_LIMITED:
        contenido["retry_after"] = resultado.retry_after
        return JSONResponse(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            content=contenido,
            headers={"Retry-After": str(resultado.retry_after)},
        )
    if resultado.estado == EstadoLogin.REGISTRATION_REQUIRED:
        contenido["redirect"] = f"/registro?documento={resultado.documento}"
    return JSONResponse(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, content=contenido)


@router.api_route("/logout", methods=["GET", "POST"])
async def logout(request: Request):
    """Cierra la sesión."""
    request.session.clear()
    return RedirectResponse(url="/login", status_code=status.HTTP_303_SEE_OTHER)


@router.post("/registro", status_code=status.HTTP_201_CREATED)
async def registro(
    request: Request,
    payload: Dict[str, Any],
    auth: AuthService = Depends(get_auth_service),
):
    """
    Autoregistro de un propietario con contrato activo. Deja la sesión iniciada.
    """
    try:
        form = RegistroForm(**payload)
    except ValidationError as e:
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={"code": "validation_error", "errors": errores_de_validacion(e)},
        )

    try:
        usuario = await auth.registrar(form.numero_documento, form.email, form.password)
    except UsuarioYaRegistrado as e:
        return JSONResponse(
            status_code=status.HTTP_409_CONFLICT,
            content={"code": "already_registered", "errors": {e.campo: e.mensaje}, "redirect": "/login"},
        )
    except RegistroRechazado as e:
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={"code": "registration_rejected", "errors": {e.campo: e.mensaje}},
        )
    except ExternalLookupUnavailable:
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={
                "code": "verification_unavailable",
                "errors": {"numero_documento": "No fue posible verificar tu documento en este momento."},
            },
        )

    request.session.clear()
    request.session["user"] = usuario_sesion(usuario)
    return usuario_sesion(usuario)


@router.get("/api/auth/me")
async def me(user: Dict[str, Any] = Depends(get_current_user)) -> Dict[str, Any]:
    return user


@router.get("/api/menu")
async def menu(
    user: Dict[str, Any] = Depends(get_current_user),
    db: Session = Depends(get_db),
    menu_cache: MenuCache = Depends(get_menu_cache),
):
    """Menú navegable del rol del usuario actual."""
    return jsonable_encoder(menu_del_rol(db, menu_cache, user["rol_id"]))


@router.get("/dashboard")
async def dashboard(
    user: Dict[str, Any] = Depends(get_current_user),
    db: Session = Depends(get_db),
    menu_cache: MenuCache = Depends(get_menu_cache),
):
    return {
        "user": user,
        "menu": jsonable_encoder(menu_del_rol(db, menu_cache, user["rol_id"])),
    }
