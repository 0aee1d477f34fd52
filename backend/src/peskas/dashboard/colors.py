"""peskas.dashboard.colors

Asignación de colores para series (sitios, especies, artes) y paleta del
heatmap de distritos/especies.

Registro de colores
-------------------
Cada sesión construye su propio :class:`ColorRegistry` (nada de estado global
a nivel de módulo). El registro es un conjunto ordenado alfabéticamente de
los nombres vistos; la posición de un nombre módulo el tamaño de la paleta
define su color.

Modos:

- ``"sorted"`` (por defecto): el color sale del índice alfabético actual. Si
  más tarde aparece un nombre alfabéticamente anterior, los índices se
  desplazan y el color de un nombre ya visto puede cambiar.
- ``"frozen"``: el color se fija en el momento del primer registro y no
  vuelve a cambiar.

Las escrituras se serializan con un ``threading.Lock`` porque un mismo
registro puede compartirse entre requests concurrentes de la misma sesión.
"""

from __future__ import annotations

import bisect
import logging
import math
import threading
from collections import OrderedDict
from typing import Dict, Iterable, List, Mapping, Optional, Sequence

from peskas.dashboard.rows import AVERAGE_KEY, HISTORICAL_AVERAGE_KEY, RESERVED_KEYS

logger = logging.getLogger(__name__)


REFERENCE_COLOR = "#fc3468"
AVERAGE_COLOR = "#64748b"
HISTORICAL_AVERAGE_COLOR = "#94a3b8"

PALETTE: Sequence[str] = (
    "#0c526e",
    "#f09609",
    "#2563eb",
    "#16a34a",
    "#9333ea",
    "#ea580c",
    "#0891b2",
)

# Distritos conocidos con color fijo (mismo color en todas las gráficas).
KNOWN_SITE_COLORS: Mapping[str, str] = {
    "central": "#4A90E2",
    "chake chake": "#F28F3B",
    "micheweni": "#27AE60",
    "mkoani": "#E74C3C",
    "north a": "#9B59B6",
    "north b": "#F39C12",
    "south": "#3498DB",
    "urban": "#75ABBC",
    "west": "#FC3468",
    "wete": "#2ECC71",
}

SUPPORTED_MODES = ("sorted", "frozen")

# Paleta secuencial YlGnBu de 8 pasos.
YLGNBU_8: Sequence[str] = (
    "#ffffd9",
    "#edf8b1",
    "#c7e9b4",
    "#7fcdbb",
    "#41b6c4",
    "#1d91c0",
    "#225ea8",
    "#253494",
)

LIGHT_TEXT = "#fff"
DARK_TEXT = "#222"


def _is_registrable(name: object) -> bool:
    return isinstance(name, str) and bool(name.strip()) and name not in RESERVED_KEYS


class ColorRegistry:
    """Registro de colores por sesión.

    Parameters
    ----------
    palette:
        Colores que se ciclan para nombres sin color fijo.
    known_colors:
        Tabla de nombres conocidos (comparación sin mayúsculas) con color fijo.
    mode:
        ``"sorted"`` o ``"frozen"`` (ver docstring del módulo).
    """

    def __init__(
        self,
        palette: Sequence[str] = PALETTE,
        known_colors: Optional[Mapping[str, str]] = None,
        mode: str = "sorted",
    ) -> None:
        if mode not in SUPPORTED_MODES:
            raise ValueError(f"mode no soportado: {mode}. Soportados={SUPPORTED_MODES}")
        if not palette:
            raise ValueError("palette no puede estar vacía")
        self._palette = tuple(palette)
        self._known = {
            k.casefold(): v for k, v in (KNOWN_SITE_COLORS if known_colors is None else known_colors).items()
        }
        self._mode = mode
        self._names: List[str] = []
        self._frozen: Dict[str, str] = {}
        self._lock = threading.Lock()

    @property
    def mode(self) -> str:
        return self._mode

    @property
    def names(self) -> List[str]:
        """Copia de los nombres registrados (orden alfabético)."""
        with self._lock:
            return list(self._names)

    def __len__(self) -> int:
        with self._lock:
            return len(self._names)

    def __contains__(self, name: object) -> bool:
        with self._lock:
            return self._contains(name)

    def _contains(self, name: object) -> bool:
        i = bisect.bisect_left(self._names, name) if isinstance(name, str) else len(self._names)
        return i < len(self._names) and self._names[i] == name

    def _register_locked(self, names: Iterable[object]) -> List[str]:
        added: List[str] = []
        for name in names:
            if not _is_registrable(name) or self._contains(name):
                continue
            bisect.insort(self._names, name)
            added.append(name)
        if self._mode == "frozen":
            for name in added:
                idx = bisect.bisect_left(self._names, name)
                self._frozen[name] = self._palette[idx % len(self._palette)]
        return added

    def register(self, names: Iterable[object]) -> List[str]:
        """Agrega ``names`` al registro y retorna los nombres nuevos.

        Se ignoran nombres reservados (``average``, ``historical_average``),
        vacíos y los que no son string.
        """
        if isinstance(names, str):
            names = [names]
        with self._lock:
            added = self._register_locked(list(names))
        if added:
            logger.debug("ColorRegistry: %d nombres nuevos registrados", len(added))
        return added

    def color_for(self, name: str, reference_name: Optional[str] = None) -> str:
        """Color estable para la serie ``name``.

        Orden de resolución: sitio de referencia, series de promedio, tabla
        de nombres conocidos y, por último, la paleta según el registro
        (registrando ``name`` si aún no existe).
        """
        if not isinstance(name, str):
            raise TypeError(f"name debe ser str, llegó {type(name).__name__}")
        if reference_name is not None and name == reference_name:
            return REFERENCE_COLOR
        if name == AVERAGE_KEY:
            return AVERAGE_COLOR
        if name == HISTORICAL_AVERAGE_KEY:
            return HISTORICAL_AVERAGE_COLOR
        known = self._known.get(name.strip().casefold())
        if known is not None:
            return known
        if not name.strip():
            raise ValueError("name vacío no tiene color asignable")

        with self._lock:
            self._register_locked([name])
            if self._mode == "frozen":
                return self._frozen[name]
            idx = bisect.bisect_left(self._names, name)
            return self._palette[idx % len(self._palette)]

    def site_colors(
        self,
        names: Iterable[str],
        reference_name: Optional[str] = None,
        *,
        include_historical: bool = False,
    ) -> Dict[str, str]:
        """Mapa nombre → color para una gráfica completa.

        Registra todos los nombres antes de resolver colores (así el índice
        alfabético ya refleja el lote completo) y agrega la serie ``average``
        (y ``historical_average`` si se pide).
        """
        names = [n for n in names if _is_registrable(n)]
        self.register(names)
        out = {n: self.color_for(n, reference_name) for n in names}
        out[AVERAGE_KEY] = AVERAGE_COLOR
        if include_historical:
            out[HISTORICAL_AVERAGE_KEY] = HISTORICAL_AVERAGE_COLOR
        return out


DEFAULT_SESSION = "-"
DEFAULT_MAX_SESSIONS = 256


class RegistryStore:
    """Registros por sesión dentro del proceso (clave = id de sesión).

    Se conservan como máximo ``max_sessions`` registros; al superar el límite
    se descarta el de uso menos reciente. Un id vacío comparte el registro
    ``DEFAULT_SESSION``.
    """

    def __init__(self, mode: str = "sorted", max_sessions: int = DEFAULT_MAX_SESSIONS) -> None:
        if mode not in SUPPORTED_MODES:
            raise ValueError(f"mode no soportado: {mode}. Soportados={SUPPORTED_MODES}")
        if max_sessions < 1:
            raise ValueError("max_sessions debe ser >= 1")
        self._mode = mode
        self._max_sessions = max_sessions
        self._registries: "OrderedDict[str, ColorRegistry]" = OrderedDict()
        self._lock = threading.Lock()

    @property
    def mode(self) -> str:
        return self._mode

    def get(self, session_id: Optional[str]) -> ColorRegistry:
        key = (session_id or "").strip() or DEFAULT_SESSION
        with self._lock:
            reg = self._registries.get(key)
            if reg is not None:
                self._registries.move_to_end(key)
                return reg
            reg = ColorRegistry(mode=self._mode)
            self._registries[key] = reg
            while len(self._registries) > self._max_sessions:
                evicted, _ = self._registries.popitem(last=False)
                logger.debug("RegistryStore: sesión %s descartada (límite %d)", evicted, self._max_sessions)
            return reg

    def clear(self) -> None:
        with self._lock:
            self._registries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._registries)


# ---------------------------------------------------------------------------
# Heatmap (tabla distrito/especie)
# ---------------------------------------------------------------------------

def palette_color(value: Optional[float], vmin: float, vmax: float) -> str:
    """Mapea ``value`` sobre la rampa YlGnBu-8.

    ``idx = floor((value - vmin) / (vmax - vmin) * 7)`` acotado a [0, 7].
    Si ``vmax == vmin`` retorna el último color; ``None``/NaN el primero.
    """
    if value is None or (isinstance(value, float) and math.isnan(value)):
        return YLGNBU_8[0]
    if vmax == vmin:
        return YLGNBU_8[-1]
    steps = len(YLGNBU_8) - 1
    idx = math.floor(((float(value) - vmin) / (vmax - vmin)) * steps)
    return YLGNBU_8[max(0, min(steps, idx))]


def _parse_hex(color: str) -> tuple:
    if not isinstance(color, str):
        raise TypeError(f"color debe ser str, llegó {type(color).__name__}")
    hx = color.strip().lstrip("#")
    if len(hx) == 3:
        hx = "".join(c * 2 for c in hx)
    if len(hx) != 6:
        raise ValueError(f"Color hex inválido: {color!r}")
    try:
        return int(hx[0:2], 16), int(hx[2:4], 16), int(hx[4:6], 16)
    except ValueError as exc:
        raise ValueError(f"Color hex inválido: {color!r}") from exc


def text_color(bg_color: str) -> str:
    """Color de texto legible (oscuro o claro) sobre ``bg_color``."""
    r, g, b = _parse_hex(bg_color)
    luminance = (0.299 * r + 0.587 * g + 0.114 * b) / 255
    return DARK_TEXT if luminance > 0.6 else LIGHT_TEXT
