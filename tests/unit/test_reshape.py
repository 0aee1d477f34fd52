"""
Unit tests para el pivot de observaciones a filas anchas.

Objetivo:
- Validar agrupación por mes, ausencia (no cero) de sitios sin dato y
  precedencia de la última escritura.
- Cubrir ``fill_gaps``, ``min_year`` y la validación de entrada.
"""

from __future__ import annotations

import random
from datetime import datetime, timezone

import pytest

from peskas.dashboard.reshape import pivot_observations, series_names
from peskas.dashboard.rows import Observation


def _obs(date, site, value, metric="catch"):
    return Observation(date=date, site=site, metric=metric, value=value)


def _utc(y, m, d=1):
    return datetime(y, m, d, tzinfo=timezone.utc)


def test_pivot_example_two_sites_same_month():
    """Dos sitios el mismo día producen una fila con ambos valores."""
    rows = pivot_observations([_obs("2024-01-01", "A", 10), _obs("2024-01-01", "B", 20)])

    assert len(rows) == 1
    assert rows[0].date == _utc(2024, 1)
    assert rows[0].values == {"A": 10.0, "B": 20.0}


def test_pivot_preserves_every_pair_and_leaves_missing_absent():
    """Cada (mes, sitio) de la entrada aparece con su valor; el resto queda ausente."""
    observations = [
        _obs("2024-03-10", "A", 1.5),
        _obs("2024-01-20", "B", 2.0),
        _obs("2024-01-05", "A", 3.0),
        _obs("2024-02-28", "C", 0.0),
    ]
    random.Random(7).shuffle(observations)
    rows = pivot_observations(observations)

    by_month = {r.date: r.values for r in rows}
    assert by_month == {
        _utc(2024, 1): {"A": 3.0, "B": 2.0},
        _utc(2024, 2): {"C": 0.0},
        _utc(2024, 3): {"A": 1.5},
    }
    assert [r.date for r in rows] == sorted(by_month)
    assert "B" not in by_month[_utc(2024, 3)]


def test_pivot_truncates_to_first_of_month_utc():
    """Fechas dentro del mes (con o sin tz) caen en el día 1 a las 00:00 UTC."""
    rows = pivot_observations([_obs(datetime(2024, 5, 31, 23, 0), "A", 1)])
    assert rows[0].date == _utc(2024, 5)
    assert rows[0].date.tzinfo is not None


def test_pivot_last_write_wins_on_collision():
    """Dos observaciones en el mismo (mes, sitio): gana la última de la lista."""
    rows = pivot_observations([_obs("2024-01-02", "A", 1), _obs("2024-01-20", "A", 9)])
    assert rows[0].values == {"A": 9.0}


def test_pivot_skips_none_and_nan_values():
    """None/NaN son ausencia: no generan clave ni se convierten a 0."""
    rows = pivot_observations([_obs("2024-01-01", "A", None), _obs("2024-01-01", "B", float("nan"))])
    assert rows == []


def test_pivot_filters_by_metric():
    rows = pivot_observations(
        [_obs("2024-01-01", "A", 1, metric="catch"), _obs("2024-01-01", "B", 2, metric="effort")],
        metric="effort",
    )
    assert rows[0].values == {"B": 2.0}


def test_pivot_fill_gaps_emits_empty_months():
    """Con ``fill_gaps`` los meses sin datos aparecen con ``values`` vacío."""
    rows = pivot_observations(
        [_obs("2023-11-01", "A", 1), _obs("2024-02-01", "A", 2)],
        fill_gaps=True,
    )
    assert [r.date for r in rows] == [_utc(2023, 11), _utc(2023, 12), _utc(2024, 1), _utc(2024, 2)]
    assert rows[1].values == {} and rows[2].values == {}


def test_pivot_min_year_drops_older_observations():
    rows = pivot_observations(
        [_obs("2022-12-01", "A", 1), _obs("2023-01-01", "A", 2)],
        min_year=2023,
    )
    assert [r.date for r in rows] == [_utc(2023, 1)]


def test_pivot_rejects_non_list_input():
    with pytest.raises(TypeError):
        pivot_observations(_obs("2024-01-01", "A", 1))


def test_pivot_rejects_non_observation_items():
    with pytest.raises(TypeError):
        pivot_observations([{"date": "2024-01-01", "site": "A", "value": 1}])


def test_pivot_rejects_non_numeric_values():
    with pytest.raises(TypeError):
        pivot_observations([_obs("2024-01-01", "A", "10")])


def test_pivot_rejects_bad_dates():
    with pytest.raises(TypeError):
        pivot_observations([_obs(20240101, "A", 1)])


def test_site_named_average_is_a_regular_series():
    """Un sitio llamado "average" no colisiona con el promedio derivado."""
    rows = pivot_observations([_obs("2024-01-01", "average", 4)])
    assert rows[0].values == {"average": 4.0}
    assert rows[0].average is None


def test_series_names_sorted_and_unique():
    rows = pivot_observations([_obs("2024-01-01", "B", 1), _obs("2024-02-01", "A", 2), _obs("2024-02-01", "B", 3)])
    assert series_names(rows) == ["A", "B"]
