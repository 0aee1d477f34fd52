"""
Configuración de la API leída desde variables de entorno.

Variables soportadas:

- ``PESKAS_ALLOWED_ORIGINS``: orígenes CORS separados por coma.
- ``PESKAS_MIN_YEAR``: primer año graficado en ``/catch/*`` (2023).
- ``PESKAS_RECENT_WINDOW``: tamaño de la ventana reciente (6).
- ``PESKAS_COLOR_MODE``: ``sorted`` o ``frozen`` para el registro de colores.
- ``PESKAS_MAX_COLOR_SESSIONS``: registros de colores retenidos en memoria (256).
- ``API_VERSION``: versión reportada en ``/docs``.

Las rutas del store (``PESKAS_DATA_DIR``/``PESKAS_PROJECT_ROOT``) se resuelven
en :mod:`peskas.utils.paths`.
"""

from __future__ import annotations

import os
from typing import List, Optional

from peskas.dashboard.colors import DEFAULT_MAX_SESSIONS, SUPPORTED_MODES

DEFAULT_ORIGINS = ["http://localhost:5173", "http://127.0.0.1:5173"]
DEFAULT_MIN_YEAR = 2023
DEFAULT_RECENT_WINDOW = 6


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ValueError(f"{name} debe ser un entero (llegó {raw!r})") from exc


def allowed_origins() -> List[str]:
    raw = os.getenv("PESKAS_ALLOWED_ORIGINS")
    if not raw:
        return list(DEFAULT_ORIGINS)
    return [o.strip() for o in raw.split(",") if o.strip()]


def min_year() -> Optional[int]:
    """Primer año graficado; ``0`` o negativo desactiva el filtro."""
    year = _env_int("PESKAS_MIN_YEAR", DEFAULT_MIN_YEAR)
    return year if year > 0 else None


def recent_window() -> int:
    window = _env_int("PESKAS_RECENT_WINDOW", DEFAULT_RECENT_WINDOW)
    if window < 1:
        raise ValueError("PESKAS_RECENT_WINDOW debe ser >= 1")
    return window


def color_mode() -> str:
    """Modo del registro de colores; un valor desconocido falla al importar la app."""
    mode = (os.getenv("PESKAS_COLOR_MODE") or "sorted").strip().lower()
    if mode not in SUPPORTED_MODES:
        raise ValueError(f"PESKAS_COLOR_MODE no soportado: {mode!r}. Soportados={SUPPORTED_MODES}")
    return mode


def max_color_sessions() -> int:
    sessions = _env_int("PESKAS_MAX_COLOR_SESSIONS", DEFAULT_MAX_SESSIONS)
    if sessions < 1:
        raise ValueError("PESKAS_MAX_COLOR_SESSIONS debe ser >= 1")
    return sessions


def api_version() -> str:
    return os.getenv("API_VERSION", "0.3.0")
