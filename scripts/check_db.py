#!/usr/bin/env python3
"""
Diagnóstico de la conexión a PostgreSQL y del esquema del portal.

Verifica conectividad de red, la consulta de prueba y la presencia de las
tablas de control de acceso creadas por las migraciones.
"""
import os
import socket
import sys
from urllib.parse import urlparse

import psycopg

TABLAS_ESPERADAS = ("auditorias", "modulos", "pestanas", "rol_accesos", "roles", "usuarios")


def _dsn() -> str:
    db_url = os.getenv("DATABASE_URL", "")
    # Formato SQLAlchemy -> formato directo de psycopg
    if db_url.startswith("postgresql+psycopg://"):
        db_url = db_url.replace("postgresql+psycopg://", "postgresql://", 1)
    return db_url


def check_network() -> bool:
    """Prueba la conexión TCP al host de la base."""
    parsed = urlparse(_dsn())
    host = parsed.hostname
    port = parsed.port or 5432
    if not host:
        print("❌ ERROR: DATABASE_URL no definida o sin host")
        return False

    print(f"🌐 Probando conectividad con {host}:{port}...")
    try:
        with socket.create_connection((host, port), timeout=10):
            pass
    except OSError as e:
        print(f"❌ Conectividad de red: FALLÓ ({e})")
        return False
    print("✅ Conectividad de red: OK")
    return True


def check_schema() -> bool:
    """Ejecuta SELECT 1 y verifica que existan las tablas del portal."""
    try:
        with psycopg.connect(_dsn(), connect_timeout=10) as conn:
            with conn.cursor() as cur:
                cur.execute("SELECT 1")
                if cur.fetchone() != (1,):
                    print("❌ ERROR: la consulta de prueba falló")
                    return False
                print("✅ Conexión con la base de datos: OK")

                cur.execute(
                    "SELECT table_name FROM information_schema.tables "
                    "WHERE table_schema = 'public' ORDER BY table_name"
                )
                existentes = {fila[0] for fila in cur.fetchall()}
    except psycopg.OperationalError as e:
        print(f"❌ ERROR de conexión: {e}")
        return False
    except psycopg.Error as e:
        print(f"❌ ERROR de PostgreSQL: {e}")
        return False

    faltantes = [t for t in TABLAS_ESPERADAS if t not in existentes]
    for tabla in TABLAS_ESPERADAS:
        print(f"   {'✅' if tabla in existentes else '❌'} {tabla}")
    if faltantes:
        print("💡 Ejecute 'alembic upgrade head' para crear las tablas faltantes")
        return False
    return True


if __name__ == "__main__":
    print("🔧 DIAGNÓSTICO DE LA BASE DE DATOS DEL PORTAL")
    print("=" * 50)
    ok = check_network() and check_schema()
    print("🎉 TODO OK" if ok else "💥 HAY PROBLEMAS")
    sys.exit(0 if ok else 1)
