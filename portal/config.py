from pydantic_settings import BaseSettings
from pydantic_settings import SettingsConfigDict
from pydantic import Field
from typing import List

class Settings(BaseSettings):
    """Application settings loaded from environment variables (.env)."""
    environment: str = Field(default="development", alias="ENVIRONMENT")
    database_url: str = Field(alias="DATABASE_URL")
    app_port: int = Field(default=8000, alias="APP_PORT")

    # Sesiones
    session_secret_key: str = Field(default="insecure_key_for_dev_only", alias="SESSION_SECRET_KEY")
    session_max_age: int = Field(default=86400, alias="SESSION_MAX_AGE")  # 24 horas en segundos

    # Registro externo de contratos
    contratos_api_url: str = Field(default="http://contratos.example.com", alias="CONTRATOS_API_URL")
    contratos_timeout: float = Field(default=5.0, alias="CONTRATOS_TIMEOUT")
    verificar_contrato_en_login: bool = Field(default=False, alias="VERIFICAR_CONTRATO_EN_LOGIN")

    # Protocolo de login
    login_max_intentos: int = Field(default=3, alias="LOGIN_MAX_INTENTOS")
    login_rate_limit: str = Field(default="5/minute", alias="LOGIN_RATE_LIMIT")

    # Autoregistro
    rol_defecto_id: int = Field(default=2, alias="ROL_DEFECTO_ID")
    registro_dominios_permitidos: List[str] = Field(default_factory=list, alias="REGISTRO_DOMINIOS_PERMITIDOS")

    # Superficies administrativas (ids de módulos)
    modulo_control_acceso_id: int = Field(default=15, alias="MODULO_CONTROL_ACCESO_ID")
    modulo_gestion_modulos_id: int = Field(default=11, alias="MODULO_GESTION_MODULOS_ID")
    modulo_roles_id: int = Field(default=12, alias="MODULO_ROLES_ID")
    modulo_usuarios_id: int = Field(default=13, alias="MODULO_USUARIOS_ID")
    modulo_auditoria_id: int = Field(default=5, alias="MODULO_AUDITORIA_ID")

    # pydantic-settings v2 style config
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

def get_settings() -> "Settings":
    return Settings()  # type: ignore[call-arg]
