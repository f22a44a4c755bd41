import httpx
import logging
from typing import Any, Dict, List, Optional

from portal.config import get_settings
from portal.exceptions import ExternalLookupUnavailable

logger = logging.getLogger("uvicorn")
SETTINGS = get_settings()


class ContractRegistryClient:
    """
    Cliente del registro externo de contratos.

    Un documento tiene contrato activo si alguno de sus contratos no tiene
    motivo de retiro. Toda llamada tiene un timeout acotado; un timeout o un
    error del servicio se reporta como ExternalLookupUnavailable.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = (base_url or SETTINGS.contratos_api_url).rstrip("/")
        self.timeout = timeout if timeout is not None else SETTINGS.contratos_timeout
        self.transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(base_url=self.base_url, timeout=self.timeout, transport=self.transport)

    async def contratos(self, documento: str) -> List[Dict[str, Any]]:
        """
        Obtiene los contratos registrados para un documento.

        Args:
            documento: Número de documento del propietario

        Returns:
            Lista de contratos (vacía si el documento no existe en el registro)

        Raises:
            ExternalLookupUnavailable: si el registro no responde a tiempo o falla
        """
        try:
            async with self._client() as client:
                response = await client.get(f"/contratos/{documento}")
        except httpx.TimeoutException as e:
            logger.error(f"Timeout consultando contratos de {documento}: {str(e)}")
            raise ExternalLookupUnavailable("El registro de contratos no respondió a tiempo") from e
        except httpx.RequestError as e:
            logger.error(f"Error al conectar con el registro de contratos: {str(e)}")
            raise ExternalLookupUnavailable("Registro de contratos indisponible") from e

        if response.status_code == 404:
            return []
        if response.status_code != 200:
            logger.error(f"Registro de contratos respondió {response.status_code} para {documento}")
            raise ExternalLookupUnavailable(f"Registro de contratos respondió {response.status_code}")

        data = response.json()
        if isinstance(data, dict):
            data = data.get("contratos", [])
        return list(data or [])

    async def tiene_contrato_activo(self, documento: str) -> bool:
        contratos = await self.contratos(documento)
        return any(not (c.get("motivo_retiro") or "").strip() for c in contratos)

    async def ping(self) -> bool:
        """Indica si el registro responde; usado por /health."""
        try:
            async with self._client() as client:
                response = await client.get("/health")
            return response.status_code < 500
        except httpx.HTTPError as e:
            logger.warning(f"Registro de contratos no disponible: {str(e)}")
            return False
