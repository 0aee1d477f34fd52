"""
peskas.utils.paths
==================

Resolver único de rutas del document store local.

Reglas de resolución
--------------------
- Si existe `PESKAS_DATA_DIR`, ese directorio es la fuente de verdad.
- Si no existe, se usa `<repo_root>/data/store`.
- `repo_root` se infiere:
  1) `PESKAS_PROJECT_ROOT` si está definido.
  2) Subiendo desde este archivo buscando `Makefile` o carpeta `backend/`.
  3) Fallback: `Path.cwd()`.

Cada colección del store vive en `<data_dir>/<collection>.parquet`.

Este módulo es intencionalmente **pequeño** y **sin side effects** (no crea carpetas).
"""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Any, Optional


_SEGMENT_RE = re.compile(r"[^a-zA-Z0-9._-]+")


def safe_segment(value: Any) -> str:
    """Convierte `value` en un segmento seguro de path.

    - Reemplaza separadores de path y caracteres raros por "_".
    - Evita ".." (traversal).

    Args:
        value: Valor a convertir (nombre de colección).

    Returns:
        Segmento apto para usar como nombre de archivo.
    """
    s = str(value or "").strip()
    s = s.replace("\\", "_").replace("/", "_")
    s = s.replace("..", "_")
    s = _SEGMENT_RE.sub("_", s)
    s = s.strip("_")
    return s or "x"


def _find_project_root() -> Path:
    """Encuentra una raíz razonable del repo.

    Orden:
    1) PESKAS_PROJECT_ROOT si existe.
    2) Buscar hacia arriba un dir con Makefile o backend/.
    3) Fallback al cwd.
    """
    env_root = os.getenv("PESKAS_PROJECT_ROOT")
    if env_root:
        p = Path(env_root).expanduser().resolve()
        if p.exists():
            return p

    here = Path(__file__).resolve()
    for p in (here, *here.parents):
        if (p / "Makefile").exists() or (p / "backend").is_dir():
            return p

    return Path.cwd().resolve()


def project_root(*, refresh: bool = False) -> Path:
    """Retorna la raíz del repo (ver `_find_project_root`)."""
    global _PROJECT_ROOT_CACHE
    if refresh or _PROJECT_ROOT_CACHE is None:
        _PROJECT_ROOT_CACHE = _find_project_root()
    return _PROJECT_ROOT_CACHE


_PROJECT_ROOT_CACHE: Optional[Path] = None


def data_dir() -> Path:
    """Directorio del document store local.

    - Prioriza PESKAS_DATA_DIR si está definido (se relee en cada llamada para
      que los tests puedan cambiarlo con monkeypatch.setenv).
    - Si no, usa <repo_root>/data/store.
    """
    env_dir = os.getenv("PESKAS_DATA_DIR")
    if env_dir:
        return Path(env_dir).expanduser().resolve()
    return (project_root() / "data" / "store").resolve()


def collection_path(name: str) -> Path:
    """Ruta del parquet de una colección: <data_dir>/<name>.parquet."""
    return data_dir() / f"{safe_segment(name)}.parquet"


def rel_store_path(path: Path) -> str:
    """Path lógico para respuestas HTTP (relativo al repo si es posible)."""
    p = Path(path).expanduser().resolve()
    try:
        return str(p.relative_to(project_root())).replace("\\", "/")
    except ValueError:
        return str(p)
