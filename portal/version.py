from pathlib import Path


def read_version() -> str:
    """Lee la versión semántica del archivo VERSION en la raíz del repositorio."""
    version_file = Path(__file__).resolve().parents[1] / "VERSION"
    try:
        return version_file.read_text(encoding="utf-8").strip() or "0.0.0"
    except OSError:
        return "0.0.0"


def parse_version(version: str) -> tuple:
    """Convierte 'X.Y.Z' en una tupla de enteros para comparar versiones."""
    return tuple(int(parte) for parte in version.strip().split("."))
