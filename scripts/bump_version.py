"""
Incrementa la versión semántica del archivo VERSION (patch por defecto).
Uso:
  python scripts/bump_version.py [major|minor|patch]
"""
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from portal.version import parse_version, read_version

PARTES = ("major", "minor", "patch")


def bump(part: str = "patch") -> str:
    if part not in PARTES:
        raise SystemExit(f"Parte inválida: {part} (use {', '.join(PARTES)})")
    major, minor, patch = parse_version(read_version())
    if part == "major":
        major, minor, patch = major + 1, 0, 0
    elif part == "minor":
        minor, patch = minor + 1, 0
    else:
        patch += 1
    new_v = f"{major}.{minor}.{patch}"
    (Path(__file__).resolve().parents[1] / "VERSION").write_text(new_v + "\n", encoding="utf-8")
    print(new_v)
    return new_v


if __name__ == "__main__":
    bump(sys.argv[1] if len(sys.argv) > 1 else "patch")
