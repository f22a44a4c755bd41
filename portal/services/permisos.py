"""
Catálogo de permisos: acciones base y vocabulario de permisos extra por nodo.

Los permisos extra son tokens libres declarados en cada módulo o pestaña.
Un conjunto de permisos concedidos siempre se valida contra el vocabulario
del nodo al que apunta.
"""
from __future__ import annotations

import re
from typing import FrozenSet, Iterable, List, Tuple

from portal.exceptions import InvalidNodeDefinition, InvalidPermissionToken

BASE_PERMISOS: Tuple[str, ...] = ("create", "edit", "delete", "view")

_TOKEN_EXTRA_RE = re.compile(r"^[a-z_]+$")
MAX_LONGITUD_TOKEN = 50
MAX_PERMISOS_POR_ACCESO = 50


class PermisoSet(frozenset):
    """Conjunto de permisos ya validado contra un vocabulario."""

    def ordenado(self) -> List[str]:
        return sorted(self)


class PermissionCatalog:
    """Valida vocabularios de permisos extra y conjuntos de permisos concedidos."""

    base: Tuple[str, ...] = BASE_PERMISOS

    def normalizar_extra(self, tokens: Iterable[str] | None) -> List[str]:
        """
        Valida y normaliza los permisos extra declarados en un nodo.

        Conserva el orden de declaración. Rechaza tokens con caracteres fuera
        de [a-z_], más largos de 50 caracteres, duplicados (sin distinguir
        mayúsculas) o que repitan una acción base.

        Raises:
            InvalidNodeDefinition: si algún token no cumple las reglas
        """
        resultado: List[str] = []
        vistos = set()
        for posicion, token in enumerate(tokens or [], start=1):
            token = (token or "").strip()
            if not token:
                continue
            if len(token) > MAX_LONGITUD_TOKEN:
                raise InvalidNodeDefinition(
                    "permisos_extra", f"Permiso {posicion}: no debe superar {MAX_LONGITUD_TOKEN} caracteres"
                )
            if not _TOKEN_EXTRA_RE.match(token):
                raise InvalidNodeDefinition(
                    "permisos_extra", f"Permiso {posicion}: solo debe contener letras minúsculas y guiones bajos"
                )
            clave = token.lower()
            if clave in vistos:
                raise InvalidNodeDefinition("permisos_extra", "No se permiten permisos duplicados")
            if clave in self.base:
                raise InvalidNodeDefinition(
                    "permisos_extra", f"Permiso {posicion}: '{token}' ya es un permiso base"
                )
            vistos.add(clave)
            resultado.append(token)
        return resultado

    def vocabulario(self, permisos_extra: Iterable[str] | None) -> FrozenSet[str]:
        return frozenset(self.base) | frozenset(permisos_extra or [])

    def validar_concesion(
        self,
        tokens: Iterable[str] | None,
        permisos_extra: Iterable[str] | None,
        nodo: str | None = None,
    ) -> PermisoSet:
        """
        Valida un conjunto de permisos a conceder sobre un nodo.

        Raises:
            InvalidPermissionToken: nombrando el primer token fuera del vocabulario
        """
        vocabulario = self.vocabulario(permisos_extra)
        limpios = []
        for token in tokens or []:
            token = (token or "").strip()
            if token not in vocabulario:
                raise InvalidPermissionToken(token, nodo)
            limpios.append(token)
        if len(set(limpios)) > MAX_PERMISOS_POR_ACCESO:
            raise InvalidPermissionToken(limpios[-1], nodo)
        return PermisoSet(limpios)
