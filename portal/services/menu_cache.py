"""Caché de menús por rol con invalidación explícita."""
import logging
import threading
from typing import Callable, Dict, List, TypeVar

logger = logging.getLogger("uvicorn")

T = TypeVar("T")


class MenuCache:
    """
    Caché de lectura a través: el menú de un rol se construye la primera vez
    que se pide y se descarta cuando cambian sus accesos o el árbol.

    Cada invalidación avanza la generación del rol; un menú construido antes
    de una invalidación se devuelve al llamador pero no se guarda.

    Se guarda en app.state y se inyecta como dependencia.
    """

    def __init__(self):
        self._menus: Dict[int, List] = {}
        self._generaciones: Dict[int, int] = {}
        self._generacion_global = 0
        self._lock = threading.Lock()

    def _generacion(self, rol_id: int) -> tuple:
        return (self._generacion_global, self._generaciones.get(rol_id, 0))

    def get_or_build(self, rol_id: int, construir: Callable[[], List[T]]) -> List[T]:
        with self._lock:
            if rol_id in self._menus:
                return self._menus[rol_id]
            generacion = self._generacion(rol_id)
        menu = construir()
        with self._lock:
            if self._generacion(rol_id) == generacion:
                self._menus[rol_id] = menu
            else:
                logger.debug(f"Menú del rol {rol_id} invalidado durante su construcción, no se guarda")
        return menu

    def invalidate(self, rol_id: int) -> None:
        with self._lock:
            self._menus.pop(rol_id, None)
            self._generaciones[rol_id] = self._generaciones.get(rol_id, 0) + 1
        logger.debug(f"Menú del rol {rol_id} invalidado")

    def clear(self) -> None:
        with self._lock:
            self._menus.clear()
            self._generacion_global += 1
        logger.debug("Caché de menús vaciada")

    def __contains__(self, rol_id: int) -> bool:
        with self._lock:
            return rol_id in self._menus
