"""Error taxonomy for the access-control core.

Expected business outcomes (gate denial, lockout, registration redirect, rate
limiting) are returned as typed results by the services; only the conditions
below are raised.
"""
from typing import Optional


class PortalError(Exception):
    """Base de los errores propios del portal."""


class NotFoundError(PortalError):
    """Nodo, rol o usuario inexistente (o eliminado)."""

    def __init__(self, entidad: str, identificador: object):
        super().__init__(f"{entidad} {identificador} no encontrado")
        self.entidad = entidad
        self.identificador = identificador


class InvalidPermissionToken(PortalError):
    """Permiso no declarado en el vocabulario del nodo."""

    def __init__(self, token: str, nodo: Optional[str] = None):
        mensaje = f"Permiso no válido: '{token}'"
        if nodo:
            mensaje += f" (no declarado en {nodo})"
        super().__init__(mensaje)
        self.token = token
        self.nodo = nodo


class InvalidNodeDefinition(PortalError):
    """Escritura de módulo/pestaña que rompe las reglas del árbol."""

    def __init__(self, campo: str, mensaje: str):
        super().__init__(mensaje)
        self.campo = campo
        self.mensaje = mensaje


class ExternalLookupUnavailable(PortalError):
    """El registro de contratos no respondió a tiempo o respondió con error."""


class AuditWriteFailed(PortalError):
    """No se pudo escribir un registro de auditoría. Nunca aborta la operación principal."""

    def __init__(self, tabla: str, id_registro: str, accion: str):
        super().__init__(f"AuditWriteFailed: {accion} {tabla}#{id_registro}")
        self.tabla = tabla
        self.id_registro = id_registro
        self.accion = accion


class RegistroRechazado(PortalError):
    """Autoregistro rechazado por una regla de negocio (contrato, dominio)."""

    def __init__(self, campo: str, mensaje: str):
        super().__init__(mensaje)
        self.campo = campo
        self.mensaje = mensaje


class UsuarioYaRegistrado(RegistroRechazado):
    """Ya existe un usuario con ese número de documento."""

    def __init__(self, documento: str):
        super().__init__("numero_documento", "Ya existe un usuario registrado con este número de documento")
        self.documento = documento


class EntidadEnUso(PortalError):
    """La entidad tiene dependencias que impiden borrarla (ej. rol con usuarios)."""

    def __init__(self, entidad: str, identificador: object, mensaje: str):
        super().__init__(mensaje)
        self.entidad = entidad
        self.identificador = identificador
        self.mensaje = mensaje
