from typing import Callable, List, Optional
import logging
from fastapi import Request, Response, status
from fastapi.responses import JSONResponse, RedirectResponse
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger("uvicorn")


class AuthMiddleware(BaseHTTPMiddleware):
    """
    Middleware que exige una sesión autenticada fuera de las rutas públicas.

    Las peticiones de API (prefijo /api o que aceptan JSON) reciben 401; las de
    navegación se redirigen a /login conservando el destino en 'next'.
    """

    def __init__(
        self,
        app,
        exclude_paths: Optional[List[str]] = None,
        public_paths: Optional[List[str]] = None,
    ):
        super().__init__(app)
        self.exclude_paths = exclude_paths or [
            "/health",
            "/login",
            "/logout",
            "/registro",
            "/docs",
            "/openapi.json",
        ]
        self.public_paths = public_paths or ["/"]

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        path = request.url.path
        if self._should_skip_auth(path) or path in self.public_paths:
            return await call_next(request)

        if request.session.get("user"):
            return await call_next(request)

        if self._es_api(request):
            return JSONResponse(
                status_code=status.HTTP_401_UNAUTHORIZED,
                content={"detail": "No autenticado"},
            )
        # 303 para forzar GET en la página de login
        qs = ("?" + str(request.query_params)) if str(request.query_params) else ""
        return RedirectResponse(url=f"/login?next={path}{qs}", status_code=status.HTTP_303_SEE_OTHER)

    def _should_skip_auth(self, path: str) -> bool:
        """Indica si la ruta no requiere verificación de autenticación."""
        return any(path.startswith(exclude) for exclude in self.exclude_paths)

    @staticmethod
    def _es_api(request: Request) -> bool:
        if request.url.path.startswith("/api/"):
            return True
        return "text/html" not in request.headers.get("accept", "")
