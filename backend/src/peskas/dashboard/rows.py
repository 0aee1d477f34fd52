"""peskas.dashboard.rows

Tipos de datos compartidos por la capa de métricas derivadas.

Las filas "anchas" separan los valores por serie (sitio, especie, arte) de los
campos derivados (``average`` / ``historical_average``). Así un sitio que se
llame literalmente ``"average"`` no colisiona con el promedio calculado.

Notas
-----
- ``date`` siempre se expresa como ``datetime`` UTC; ``timestamp_ms`` entrega
  el equivalente en milisegundos para gráficas y para el ajuste OLS.
- Un sitio sin observación **no** aparece en ``values`` (nunca se usa 0 como
  marcador de "sin dato").
"""

from __future__ import annotations

import math
import numbers
from dataclasses import dataclass, field
from datetime import date as date_cls
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import numpy as np
import pandas as pd


AVERAGE_KEY = "average"
HISTORICAL_AVERAGE_KEY = "historical_average"
RESERVED_KEYS = frozenset({AVERAGE_KEY, HISTORICAL_AVERAGE_KEY})


@dataclass(frozen=True)
class Observation:
    """Un hecho puntual devuelto por el document store."""

    date: datetime
    site: str
    metric: str
    value: Optional[float]


@dataclass
class WideRow:
    """Fila ancha: una fecha con un valor por serie y campos derivados."""

    date: datetime
    values: Dict[str, float] = field(default_factory=dict)
    average: Optional[float] = None
    historical_average: Optional[float] = None

    @property
    def timestamp_ms(self) -> int:
        return to_timestamp_ms(self.date)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "date": self.date.isoformat(),
            "timestamp": self.timestamp_ms,
            "values": dict(self.values),
            "average": self.average,
            "historical_average": self.historical_average,
        }


@dataclass
class ComparisonRow:
    """Fila de comparación contra el histórico propio de un sitio."""

    date: datetime
    actual: float
    baseline: float
    difference: float
    above_average: bool


@dataclass(frozen=True)
class TrendLine:
    """Resultado del ajuste por mínimos cuadrados.

    ``status`` es ``"ok"`` o ``"insufficient_variance"``; en el segundo caso
    ``slope``/``intercept``/``monthly_slope`` son ``None``.
    """

    slope: Optional[float]
    intercept: Optional[float]
    monthly_slope: Optional[float]
    status: str = "ok"

    @property
    def ok(self) -> bool:
        return self.status == "ok"


# ---------------------------------------------------------------------------
# Helpers de fechas y validación
# ---------------------------------------------------------------------------

def to_utc_datetime(value: Any) -> datetime:
    """Normaliza ``value`` a ``datetime`` con tz UTC.

    Acepta ``datetime``, ``date``, ``pandas.Timestamp``, ``numpy.datetime64``
    y strings ISO. Cualquier otro tipo es un error de programación.
    """
    if isinstance(value, bool):
        raise TypeError(f"Fecha inválida: {value!r}")
    if isinstance(value, str):
        ts = pd.Timestamp(value)
    elif isinstance(value, (datetime, date_cls, np.datetime64, pd.Timestamp)):
        ts = pd.Timestamp(value)
    else:
        raise TypeError(f"Fecha inválida: {value!r} ({type(value).__name__})")
    if ts is pd.NaT:
        raise ValueError("Fecha vacía (NaT)")
    if ts.tzinfo is None:
        ts = ts.tz_localize("UTC")
    else:
        ts = ts.tz_convert("UTC")
    return ts.to_pydatetime()


def month_start(value: Any) -> datetime:
    """Trunca una fecha al primer día del mes (00:00 UTC)."""
    dt = to_utc_datetime(value)
    return datetime(dt.year, dt.month, 1, tzinfo=timezone.utc)


def year_start(year: int) -> datetime:
    return datetime(int(year), 1, 1, tzinfo=timezone.utc)


def to_timestamp_ms(value: Any) -> int:
    dt = to_utc_datetime(value)
    return int(round(dt.timestamp() * 1000))


def coerce_value(value: Any) -> Optional[float]:
    """Valida un valor numérico de observación.

    - ``None`` y NaN se consideran "ausente" (retorna ``None``).
    - Números finitos se devuelven como ``float``.
    - Cualquier otro tipo (strings, bool, inf) lanza error.
    """
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        raise TypeError(f"Valor no numérico: {value!r}")
    v = float(value)
    if math.isnan(v):
        return None
    if math.isinf(v):
        raise ValueError(f"Valor no finito: {value!r}")
    return v


def mean_or_none(values) -> Optional[float]:
    """Promedio aritmético; ``None`` si no hay valores."""
    vals = [float(v) for v in values]
    if not vals:
        return None
    return float(sum(vals) / len(vals))
