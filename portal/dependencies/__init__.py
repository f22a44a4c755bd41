from .auth import (
    get_current_user,
    get_optional_user,
    get_actor_id,
    get_auditor,
    get_menu_cache,
    get_rate_limiter,
    get_contratos_client,
    get_access_gate,
    get_accesos_repository,
    get_auth_service,
    require_modulo_access,
    require_pestana_access,
)

__all__ = [
    "get_current_user",
    "get_optional_user",
    "get_actor_id",
    "get_auditor",
    "get_menu_cache",
    "get_rate_limiter",
    "get_contratos_client",
    "get_access_gate",
    "get_accesos_repository",
    "get_auth_service",
    "require_modulo_access",
    "require_pestana_access",
]
