"""peskas.dashboard.derived

Series derivadas a partir de filas anchas (:class:`WideRow`).

Este módulo implementa las transformaciones que la UI necesita para las
pestañas de tendencias, comparación y resumen anual:

- ``with_cross_site_average``: promedio entre sitios por fecha.
- ``annual_rollup``: media por sitio y año calendario.
- ``recent_window_delta``: diferencia de cada sitio contra su propia media en
  la ventana más reciente (6 periodos por defecto).
- ``own_history_comparison``: comparación de un sitio contra su histórico
  reciente (modo de usuario restringido).
- ``fit_trendline``: recta de tendencia por mínimos cuadrados ordinarios.

Reglas de negocio
-----------------
- "Sin dato" se propaga como ausente (``None`` / clave inexistente), nunca
  como 0. Un cero implicaría "actividad medida igual a cero".
- Todas las funciones son puras: no mutan las filas de entrada.
- La entrada mal formada (no lista, filas que no son ``WideRow``) falla rápido.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import replace
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

import numpy as np

from peskas.dashboard.rows import (
    ComparisonRow,
    TrendLine,
    WideRow,
    mean_or_none,
    to_timestamp_ms,
    year_start,
)

logger = logging.getLogger(__name__)

DEFAULT_RECENT_WINDOW = 6

# 30 días en milisegundos: escala la pendiente a "por mes" para mostrarla.
MS_PER_MONTH = 30 * 24 * 60 * 60 * 1000

TREND_OK = "ok"
TREND_INSUFFICIENT_VARIANCE = "insufficient_variance"


def _require_rows(rows: Any) -> List[WideRow]:
    if not isinstance(rows, (list, tuple)):
        raise TypeError(f"rows debe ser list/tuple, llegó {type(rows).__name__}")
    for r in rows:
        if not isinstance(r, WideRow):
            raise TypeError(f"Elemento no es WideRow: {r!r}")
    return list(rows)


def _require_window(window: Any) -> int:
    if isinstance(window, bool) or not isinstance(window, int) or window < 1:
        raise ValueError(f"window debe ser un entero >= 1 (llegó {window!r})")
    return window


def _positive_mean(values: Iterable[float]) -> Optional[float]:
    return mean_or_none(v for v in values if v is not None and v > 0)


# ---------------------------------------------------------------------------
# Promedio entre sitios
# ---------------------------------------------------------------------------

def with_cross_site_average(rows: Sequence[WideRow]) -> List[WideRow]:
    """Calcula ``average`` por fila: media de los valores definidos y > 0.

    Si ningún sitio tiene valor positivo en la fila, ``average`` queda en
    ``None`` para que la gráfica muestre un hueco en lugar de un falso cero.
    """
    out = []
    for row in _require_rows(rows):
        out.append(replace(row, values=dict(row.values), average=_positive_mean(row.values.values())))
    return out


# ---------------------------------------------------------------------------
# Rollup anual
# ---------------------------------------------------------------------------

def annual_rollup(
    rows: Sequence[WideRow],
    *,
    restricted: bool = False,
    reference_site: Optional[str] = None,
) -> List[WideRow]:
    """Agrupa filas por año calendario con la media por sitio.

    Parameters
    ----------
    rows:
        Filas anchas (típicamente mensuales).
    restricted:
        Modo de usuario restringido. En lugar del promedio entre sitios se
        expone ``historical_average`` con la media anual del sitio designado,
        solo si hay más de un año de datos.
    reference_site:
        Sitio designado para ``historical_average``. Si no se indica se usa el
        primero en orden alfabético.

    Returns
    -------
    list[WideRow]
        Una fila por año (``date`` = 1 de enero), ascendente. Un par
        (año, sitio) sin filas aportantes queda ausente.
    """
    rows = _require_rows(rows)
    if not rows:
        return []

    buckets: Dict[int, Dict[str, List[float]]] = {}
    for row in rows:
        per_site = buckets.setdefault(row.date.year, {})
        for site, value in row.values.items():
            if value is None:
                continue
            per_site.setdefault(site, []).append(float(value))

    all_sites = sorted({s for per_site in buckets.values() for s in per_site})
    primary = reference_site if reference_site is not None else (all_sites[0] if all_sites else None)
    multi_year = len(buckets) > 1

    out: List[WideRow] = []
    for year in sorted(buckets):
        values = {
            site: float(np.mean(vals)) for site, vals in sorted(buckets[year].items()) if vals
        }
        annual = WideRow(date=year_start(year), values=values)
        if not restricted:
            annual.average = _positive_mean(values.values())
        elif primary is not None and multi_year and primary in values:
            annual.historical_average = values[primary]
        out.append(annual)

    logger.debug("annual_rollup: %d filas -> %d años (restricted=%s)", len(rows), len(out), restricted)
    return out


# ---------------------------------------------------------------------------
# Ventana reciente (delta contra la media del propio sitio)
# ---------------------------------------------------------------------------

def _recent_rows(rows: List[WideRow], window: int) -> List[WideRow]:
    newest_first = sorted(rows, key=lambda r: r.date, reverse=True)
    return sorted(newest_first[:window], key=lambda r: r.date)


def recent_window_delta(rows: Sequence[WideRow], window: int = DEFAULT_RECENT_WINDOW) -> List[WideRow]:
    """Delta de cada sitio contra su media en los ``window`` periodos recientes.

    La media base se calcula **por sitio** e ignora valores ausentes. Un sitio
    sin valores en la ventana se excluye. ``average`` lleva la media de las
    medias por sitio de la ventana (referencia común para la gráfica).

    El resultado no depende del orden de ``rows``: se ordena por fecha antes
    de recortar la ventana.
    """
    rows = _require_rows(rows)
    window = _require_window(window)
    if not rows:
        return []

    recent = _recent_rows(rows, window)

    site_values: Dict[str, List[float]] = {}
    for row in recent:
        for site, value in row.values.items():
            if value is not None:
                site_values.setdefault(site, []).append(float(value))
    site_means = {site: float(np.mean(vals)) for site, vals in site_values.items() if vals}
    overall = mean_or_none(site_means.values())

    out = []
    for row in recent:
        deltas = {
            site: float(value) - site_means[site]
            for site, value in row.values.items()
            if value is not None and site in site_means
        }
        out.append(WideRow(date=row.date, values=deltas, average=overall))
    return out


def own_history_comparison(
    rows: Sequence[WideRow],
    site: str,
    window: int = DEFAULT_RECENT_WINDOW,
) -> List[ComparisonRow]:
    """Compara un sitio contra la media de sus ``window`` periodos recientes.

    Modo "comparar contra el propio histórico" (usuarios restringidos a un
    solo BMU): la línea base es un único valor fijo, la media del sitio en
    las filas más recientes, y cada fila donde el sitio tenga dato reporta el
    valor real, la diferencia y si quedó por encima de la base.

    Retorna lista vacía si hay menos de ``window`` filas o si el sitio no
    tiene valores en la ventana (no hay base que comparar).
    """
    rows = _require_rows(rows)
    window = _require_window(window)
    if not isinstance(site, str) or not site.strip():
        raise ValueError("site es obligatorio para la comparación contra el histórico")
    if len(rows) < window:
        return []

    recent = sorted(rows, key=lambda r: r.date, reverse=True)[:window]
    baseline = mean_or_none(r.values[site] for r in recent if r.values.get(site) is not None)
    if baseline is None:
        return []

    out = []
    for row in sorted(rows, key=lambda r: r.date):
        actual = row.values.get(site)
        if actual is None:
            continue
        diff = float(actual) - baseline
        out.append(
            ComparisonRow(
                date=row.date,
                actual=float(actual),
                baseline=baseline,
                difference=diff,
                above_average=diff > 0,
            )
        )
    return out


# ---------------------------------------------------------------------------
# Tendencia (mínimos cuadrados ordinarios)
# ---------------------------------------------------------------------------

def _point_xy(point: Any) -> Tuple[float, Optional[float]]:
    if isinstance(point, Mapping):
        x, y = point.get("date"), point.get("difference")
    elif isinstance(point, (tuple, list)) and len(point) == 2:
        x, y = point
    else:
        raise TypeError(f"Punto inválido para tendencia: {point!r}")
    if isinstance(x, bool):
        raise TypeError(f"date inválida en punto de tendencia: {x!r}")
    x_ms = float(x) if isinstance(x, (int, float, np.integer, np.floating)) else float(to_timestamp_ms(x))
    if y is None:
        return x_ms, None
    if isinstance(y, bool) or not isinstance(y, (int, float, np.integer, np.floating)):
        raise TypeError(f"difference no numérica: {y!r}")
    return x_ms, float(y)


def fit_trendline(points: Sequence[Any]) -> TrendLine:
    """Ajusta ``y = slope * x + intercept`` por mínimos cuadrados.

    Parameters
    ----------
    points:
        Secuencia de ``{"date": <ms|datetime>, "difference": <float>}`` o
        tuplas ``(date, difference)``. Puntos con ``difference`` ausente se
        ignoran.

    Returns
    -------
    TrendLine
        ``monthly_slope`` = pendiente (por milisegundo) × ms de 30 días.
        Si hay menos de dos puntos o todas las ``x`` son iguales, retorna
        ``status="insufficient_variance"`` sin pendiente.
    """
    if not isinstance(points, (list, tuple)):
        raise TypeError(f"points debe ser list/tuple, llegó {type(points).__name__}")

    xy = [p for p in (_point_xy(pt) for pt in points) if p[1] is not None]
    if len(xy) < 2:
        return TrendLine(None, None, None, TREND_INSUFFICIENT_VARIANCE)

    x = np.array([p[0] for p in xy], dtype=float)
    y = np.array([p[1] for p in xy], dtype=float)
    # Centrar x evita pérdida de precisión con timestamps grandes.
    dx = x - x.mean()
    denominator = float(np.sum(dx * dx))
    if denominator == 0.0:
        return TrendLine(None, None, None, TREND_INSUFFICIENT_VARIANCE)

    slope = float(np.sum(dx * (y - y.mean())) / denominator)
    intercept = float(y.mean() - slope * x.mean())
    return TrendLine(slope, intercept, slope * MS_PER_MONTH, TREND_OK)


def difference_series(rows: Sequence[WideRow], site: str) -> List[Dict[str, float]]:
    """Serie ``{date, difference}`` = valor del sitio − promedio de la fila.

    Solo incluye filas donde existen ambos valores.
    """
    out = []
    for row in _require_rows(rows):
        value = row.values.get(site)
        if value is None or row.average is None:
            continue
        out.append({"date": row.timestamp_ms, "difference": float(value) - float(row.average)})
    return out
