"""
Genera una nueva revisión de Alembic por autogeneración.

Uso:
  python scripts/create_migration.py "mensaje de la migración"
"""

import sys
from pathlib import Path

# Agregar el directorio raíz al sys.path
root_dir = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(root_dir))

from alembic import command
from alembic.config import Config
from alembic.util import CommandError
from portal.config import get_settings
from portal.db import mask_database_url
from portal.models import Auditoria, Modulo, Pestana, Rol, RolAcceso, Usuario  # noqa: F401


def create_migration(message: str) -> None:
    """Crea una revisión comparando los modelos con la base actual."""
    settings = get_settings()

    alembic_cfg = Config(str(root_dir / "alembic.ini"))
    alembic_cfg.set_main_option("script_location", str(root_dir / "alembic"))

    # Escapar % para evitar errores de interpolación de configparser
    alembic_cfg.set_main_option("sqlalchemy.url", settings.database_url.replace("%", "%%"))

    print(f"Creando migración usando URL: {mask_database_url(settings.database_url)}")
    try:
        command.revision(alembic_cfg, message=message, autogenerate=True)
    except CommandError as e:
        print(f"Error al crear la migración: {e}")
        sys.exit(1)
    print("¡Migración creada con éxito!")


if __name__ == "__main__":
    create_migration(sys.argv[1] if len(sys.argv) > 1 else "auto")
