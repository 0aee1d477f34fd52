"""peskas.dashboard.reshape

Pivot de observaciones (formato largo) a filas anchas (una fila por mes).

Reglas
------
- La fecha de cada observación se trunca al primer día del mes (UTC).
- Dentro de cada mes, ``row.values[site] = value``. Los sitios sin observación
  quedan **ausentes** (no en cero) para que la UI dibuje huecos.
- Si dos observaciones caen en el mismo ``(mes, sitio)`` gana la última según
  el orden de la lista de entrada.
- Valores ``None``/NaN se ignoran (ausente), nunca se convierten a 0.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional, Sequence

from peskas.dashboard.rows import (
    Observation,
    WideRow,
    coerce_value,
    month_start,
)

logger = logging.getLogger(__name__)


def _iter_months(first: datetime, last: datetime) -> Iterable[datetime]:
    year, month = first.year, first.month
    while (year, month) <= (last.year, last.month):
        yield datetime(year, month, 1, tzinfo=timezone.utc)
        month += 1
        if month > 12:
            month = 1
            year += 1


def pivot_observations(
    observations: Sequence[Observation],
    metric: Optional[str] = None,
    *,
    fill_gaps: bool = False,
    min_year: Optional[int] = None,
) -> List[WideRow]:
    """Pivotea observaciones a una lista de :class:`WideRow` ordenada por fecha.

    Parameters
    ----------
    observations:
        Lista de observaciones ya filtradas por la capa de queries.
    metric:
        Si se indica, solo se consideran observaciones de esa métrica.
    fill_gaps:
        Si es True, se emite una fila por cada mes entre el primero y el último
        observado (meses sin datos quedan con ``values`` vacío).
    min_year:
        Descarta observaciones anteriores a este año.

    Returns
    -------
    list[WideRow]
        Filas ascendentes por fecha, sin ``average`` calculado.

    Raises
    ------
    TypeError
        Si ``observations`` no es una lista/tupla o trae elementos inválidos.
    """
    if not isinstance(observations, (list, tuple)):
        raise TypeError(
            f"observations debe ser list/tuple, llegó {type(observations).__name__}"
        )

    grouped: Dict[datetime, Dict[str, float]] = {}
    for obs in observations:
        if not isinstance(obs, Observation):
            raise TypeError(f"Elemento no es Observation: {obs!r}")
        if metric is not None and obs.metric != metric:
            continue
        value = coerce_value(obs.value)
        if value is None:
            continue
        key = month_start(obs.date)
        if min_year is not None and key.year < int(min_year):
            continue
        # Última escritura gana en colisiones (mes, sitio).
        grouped.setdefault(key, {})[str(obs.site)] = value

    if not grouped:
        return []

    months: Iterable[datetime]
    if fill_gaps:
        months = _iter_months(min(grouped), max(grouped))
    else:
        months = sorted(grouped)

    rows = [WideRow(date=m, values=dict(grouped.get(m, {}))) for m in months]
    logger.debug("pivot_observations: %d observaciones -> %d filas", len(observations), len(rows))
    return rows


def series_names(rows: Iterable[WideRow]) -> List[str]:
    """Nombres de serie presentes en las filas, ordenados alfabéticamente."""
    names = set()
    for row in rows:
        names.update(row.values.keys())
    return sorted(names)
