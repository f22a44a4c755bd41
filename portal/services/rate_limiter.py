"""Limitador de intentos de login por ventana deslizante (identidad + IP)."""
import math
import time
from typing import Optional

from limits import parse
from limits.storage import MemoryStorage, Storage
from limits.strategies import MovingWindowRateLimiter


class LoginRateLimiter:
    """
    Rechaza intentos de login por encima del límite dentro de la ventana.

    Args:
        limite: Expresión de límite de 'limits' (ej. "5/minute")
        storage: Almacenamiento de 'limits' (memoria por defecto)
    """

    def __init__(self, limite: str = "5/minute", storage: Optional[Storage] = None):
        self.item = parse(limite)
        self.storage = storage or MemoryStorage()
        self.limiter = MovingWindowRateLimiter(self.storage)

    @staticmethod
    def clave(documento: str, ip: Optional[str]) -> str:
        return f"{(documento or '').strip().lower()}|{ip or 'desconocida'}"

    def consumir(self, documento: str, ip: Optional[str]) -> Optional[int]:
        """
        Registra el intento y lo admite en un solo paso.

        Returns:
            None si el intento entra en la ventana; si no, los segundos de
            espera (el intento rechazado no se registra)
        """
        clave = self.clave(documento, ip)
        if self.limiter.hit(self.item, clave):
            return None
        stats = self.limiter.get_window_stats(self.item, clave)
        return max(1, math.ceil(stats.reset_time - time.time()))

    def limpiar(self, documento: str, ip: Optional[str]) -> None:
        self.limiter.clear(self.item, self.clave(documento, ip))
