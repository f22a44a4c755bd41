import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session
from werkzeug.security import check_password_hash

from portal.config import Settings, get_settings
from portal.exceptions import ExternalLookupUnavailable, RegistroRechazado, UsuarioYaRegistrado
from portal.models import Usuario
from portal.repositories.usuarios_repository import UsuariosRepository
from portal.services.auditoria_service import AuditRecorder
from portal.services.contratos_service import ContractRegistryClient
from portal.services.rate_limiter import LoginRateLimiter

logger = logging.getLogger("uvicorn")


class EstadoLogin(str, Enum):
    AUTHENTICATED = "authenticated"
    BLOCKED = "blocked"
    REGISTRATION_REQUIRED = "registration_required"
    PASSWORD_PROMPT = "password_prompt"
    REJECTED = "rejected"
    RATE_LIMITED = "rate_limited"


# Motivos de REJECTED
DOCUMENT_NOT_FOUND = "document_not_found"
NO_ACCOUNT = "no_account"
WRONG_PASSWORD = "wrong_password"
VERIFICATION_UNAVAILABLE = "verification_unavailable"
CONTRACT_INACTIVE = "contract_inactive"

_MENSAJES = {
    (EstadoLogin.REJECTED, DOCUMENT_NOT_FOUND): (
        "numero_documento",
        "No encontramos registros con este número de documento. Verifica que sea correcto "
        "o comunícate con el área encargada.",
    ),
    (EstadoLogin.REJECTED, NO_ACCOUNT): (
        "numero_documento",
        "No existe un usuario en nuestra web con este número de documento.",
    ),
    (EstadoLogin.REJECTED, WRONG_PASSWORD): ("password", "La contraseña es incorrecta"),
    (EstadoLogin.REJECTED, VERIFICATION_UNAVAILABLE): (
        "numero_documento",
        "No fue posible verificar tu documento en este momento. Intenta de nuevo más tarde.",
    ),
    (EstadoLogin.REJECTED, CONTRACT_INACTIVE): (
        "numero_documento",
        "Lo sentimos, pero ya no formas parte de nuestro equipo.",
    ),
    (EstadoLogin.BLOCKED, None): (
        "numero_documento",
        "La cuenta está bloqueada. Contacte con un administrador.",
    ),
    (EstadoLogin.REGISTRATION_REQUIRED, None): (
        "status",
        "Tu documento fue validado, pero aún no tienes un usuario registrado en nuestra web. "
        "Completa los datos para continuar por favor.",
    ),
    (EstadoLogin.PASSWORD_PROMPT, None): (
        "status",
        "Verificamos tu identidad y estas registrado en nuestra web. "
        "Ahora ingresa tu contraseña habitual para acceder.",
    ),
    (EstadoLogin.RATE_LIMITED, None): (
        "numero_documento",
        "Demasiados intentos de acceso. Intenta de nuevo en {segundos} segundos.",
    ),
}


@dataclass
class LoginResult:
    """Resultado tipado de un intento de login; el llamador decide la respuesta."""
    estado: EstadoLogin
    documento: str
    motivo: Optional[str] = None
    usuario: Optional[Usuario] = None
    retry_after: Optional[int] = None
    recien_bloqueado: bool = False

    @property
    def autenticado(self) -> bool:
        return self.estado == EstadoLogin.AUTHENTICATED

    @property
    def code(self) -> str:
        return self.motivo or self.estado.value

    @property
    def campo(self) -> str:
        return _MENSAJES.get((self.estado, self.motivo), ("numero_documento", ""))[0]

    @property
    def mensaje(self) -> str:
        if self.recien_bloqueado:
            return "Cuenta bloqueada por múltiples intentos fallidos. Contacte con un administrador."
        texto = _MENSAJES.get((self.estado, self.motivo), ("", ""))[1]
        return texto.format(segundos=self.retry_after)

    def errores(self) -> Dict[str, str]:
        return {self.campo: self.mensaje}


def usuario_sesion(usuario: Usuario) -> Dict[str, Any]:
    """Datos del usuario que se guardan en la sesión firmada."""
    return {
        "id": usuario.id,
        "numero_documento": usuario.numero_documento,
        "email": usuario.email,
        "rol_id": usuario.rol_id,
    }


class AuthService:
    """
    Servicio de autenticación: protocolo de login con bloqueo por intentos
    fallidos, validación inicial contra el registro de contratos y autoregistro.

    Args:
        db: Sesión del banco de datos
        contratos: Cliente del registro de contratos
        limiter: Limitador de intentos por (documento, IP)
        settings: Configuración (por defecto la del entorno)
    """

    def __init__(
        self,
        db: Session,
        contratos: ContractRegistryClient,
        limiter: LoginRateLimiter,
        settings: Optional[Settings] = None,
    ):
        self.db = db
        self.contratos = contratos
        self.limiter = limiter
        self.settings = settings or get_settings()
        self.usuarios = UsuariosRepository(db, AuditRecorder(db))

    async def authenticate(self, documento: str, password: str, ip: Optional[str] = None) -> LoginResult:
        """
        Evalúa un intento de login.

        Args:
            documento: Número de documento
            password: Contraseña enviada (o el mismo documento en la validación inicial)
            ip: Dirección de origen, parte de la llave del limitador

        Returns:
            LoginResult con uno de los estados de EstadoLogin
        """
        espera = self.limiter.consumir(documento, ip)
        if espera is not None:
            logger.warning(f"Login limitado para {documento} desde {ip}: {espera}s")
            return LoginResult(EstadoLogin.RATE_LIMITED, documento, retry_after=espera)

        if documento == password:
            resultado = await self._validacion_inicial(documento)
        else:
            resultado = await self._login_normal(documento, password)

        if resultado.autenticado:
            self.limiter.limpiar(documento, ip)
            logger.info(f"Login exitoso: {documento}")
        else:
            logger.info(f"Login no exitoso para {documento}: {resultado.code}")
        return resultado

    async def _validacion_inicial(self, documento: str) -> LoginResult:
        try:
            activo = await self.contratos.tiene_contrato_activo(documento)
        except ExternalLookupUnavailable:
            return LoginResult(EstadoLogin.REJECTED, documento, VERIFICATION_UNAVAILABLE)
        if not activo:
            return LoginResult(EstadoLogin.REJECTED, documento, DOCUMENT_NOT_FOUND)

        if self.usuarios.get_by_documento(documento) is None:
            return LoginResult(EstadoLogin.REGISTRATION_REQUIRED, documento)
        return LoginResult(EstadoLogin.PASSWORD_PROMPT, documento)

    async def _login_normal(self, documento: str, password: str) -> LoginResult:
        if self.usuarios.get_by_documento(documento) is None:
            return LoginResult(EstadoLogin.REJECTED, documento, NO_ACCOUNT)

        # La consulta externa va antes de bloquear la fila
        if self.settings.verificar_contrato_en_login:
            try:
                activo = await self.contratos.tiene_contrato_activo(documento)
            except ExternalLookupUnavailable:
                return LoginResult(EstadoLogin.REJECTED, documento, VERIFICATION_UNAVAILABLE)
            if not activo:
                return LoginResult(EstadoLogin.REJECTED, documento, CONTRACT_INACTIVE)

        max_intentos = self.settings.login_max_intentos
        usuario = self.usuarios.get_by_documento(documento, for_update=True)
        if usuario is None:
            self.db.rollback()
            return LoginResult(EstadoLogin.REJECTED, documento, NO_ACCOUNT)

        if usuario.esta_bloqueado(max_intentos):
            self.db.rollback()
            logger.warning(f"Intento de login sobre cuenta bloqueada: {documento}")
            return LoginResult(EstadoLogin.BLOCKED, documento, usuario=usuario)

        if not usuario.password_hash or not check_password_hash(usuario.password_hash, password):
            usuario = self.usuarios.registrar_intento_fallido(usuario, max_intentos)
            if usuario.esta_bloqueado(max_intentos):
                logger.warning(f"Cuenta bloqueada por intentos fallidos: {documento}")
                return LoginResult(EstadoLogin.BLOCKED, documento, usuario=usuario, recien_bloqueado=True)
            return LoginResult(EstadoLogin.REJECTED, documento, WRONG_PASSWORD, usuario=usuario)

        usuario = self.usuarios.reiniciar_intentos(usuario)
        return LoginResult(EstadoLogin.AUTHENTICATED, documento, usuario=usuario)

    async def registrar(self, numero_documento: str, email: str, password: str) -> Usuario:
        """
        Autoregistro de un propietario con contrato activo.

        Raises:
            RegistroRechazado: dominio de correo no permitido o sin contrato activo
            UsuarioYaRegistrado: ya existe un usuario con el documento
            ExternalLookupUnavailable: el registro de contratos no respondió
        """
        dominios = [d.lower().lstrip("@") for d in self.settings.registro_dominios_permitidos]
        dominio = email.rsplit("@", 1)[-1].lower()
        if dominios and dominio not in dominios:
            raise RegistroRechazado("email", "El correo electrónico debe pertenecer a una empresa autorizada.")

        if not await self.contratos.tiene_contrato_activo(numero_documento):
            raise RegistroRechazado(
                "numero_documento",
                "No encontramos registros con este número de documento. Verifica que esté correcto "
                "o comunícate con el área encargada.",
            )

        if self.usuarios.get_by_documento(numero_documento) is not None:
            raise UsuarioYaRegistrado(numero_documento)

        usuario = self.usuarios.crear(numero_documento, email, password, self.settings.rol_defecto_id)
        logger.info(f"Nuevo usuario registrado: {numero_documento}")
        return usuario
