"""
Unit tests para las series derivadas (promedio, rollup anual, ventana
reciente, comparación contra el histórico y tendencia OLS).
"""

from __future__ import annotations

import random
from datetime import datetime, timezone

import pytest

from peskas.dashboard.derived import (
    MS_PER_MONTH,
    TREND_INSUFFICIENT_VARIANCE,
    annual_rollup,
    difference_series,
    fit_trendline,
    own_history_comparison,
    recent_window_delta,
    with_cross_site_average,
)
from peskas.dashboard.rows import WideRow


def _row(y, m, **values):
    return WideRow(date=datetime(y, m, 1, tzinfo=timezone.utc), values=dict(values))


# ---------------------------------------------------------------------------
# Promedio entre sitios
# ---------------------------------------------------------------------------

def test_average_is_mean_of_all_defined_values():
    rows = with_cross_site_average([_row(2024, 1, A=10, B=20)])
    assert rows[0].average == pytest.approx(15.0)


def test_average_absent_when_row_has_no_values():
    rows = with_cross_site_average([_row(2024, 1)])
    assert rows[0].average is None


def test_average_ignores_zero_and_negative_values():
    """Solo cuentan valores > 0; si ninguno califica el promedio queda ausente."""
    rows = with_cross_site_average([_row(2024, 1, A=0, B=4), _row(2024, 2, A=0, B=-1)])
    assert rows[0].average == pytest.approx(4.0)
    assert rows[1].average is None


def test_average_does_not_mutate_input():
    original = _row(2024, 1, A=1)
    with_cross_site_average([original])
    assert original.average is None


def test_average_rejects_non_list():
    with pytest.raises(TypeError):
        with_cross_site_average(_row(2024, 1, A=1))


# ---------------------------------------------------------------------------
# Rollup anual
# ---------------------------------------------------------------------------

def test_annual_rollup_means_per_site_and_year():
    rows = [_row(2023, 1, A=10, B=5), _row(2023, 2, A=20), _row(2024, 1, A=30, B=15)]
    annual = annual_rollup(rows)

    assert [r.date.year for r in annual] == [2023, 2024]
    assert annual[0].date == datetime(2023, 1, 1, tzinfo=timezone.utc)
    assert annual[0].values == {"A": 15.0, "B": 5.0}
    assert annual[0].average == pytest.approx(10.0)
    assert annual[1].values == {"A": 30.0, "B": 15.0}


def test_annual_rollup_leaves_sites_without_rows_absent():
    annual = annual_rollup([_row(2023, 1, A=1), _row(2024, 1, B=2)])
    assert "B" not in annual[0].values
    assert "A" not in annual[1].values


def test_annual_rollup_is_idempotent_on_annual_rows():
    """Re-anualizar filas anuales con un valor por sitio no cambia los valores."""
    annual_rows = [_row(2022, 1, A=3.25, B=7), _row(2023, 1, A=1.5)]
    again = annual_rollup(annual_rows)
    assert [r.values for r in again] == [r.values for r in annual_rows]
    assert annual_rollup(again)[0].values == again[0].values


def test_annual_rollup_restricted_exposes_historical_average():
    rows = [_row(2023, 1, A=10, B=1), _row(2023, 6, A=20), _row(2024, 1, A=40, B=2)]
    annual = annual_rollup(rows, restricted=True, reference_site="A")

    assert [r.historical_average for r in annual] == [15.0, 40.0]
    assert all(r.average is None for r in annual)


def test_annual_rollup_restricted_single_year_has_no_historical_average():
    annual = annual_rollup([_row(2024, 1, A=10), _row(2024, 2, A=20)], restricted=True, reference_site="A")
    assert annual[0].historical_average is None


def test_annual_rollup_empty():
    assert annual_rollup([]) == []


# ---------------------------------------------------------------------------
# Ventana reciente
# ---------------------------------------------------------------------------

def _eight_rows():
    return [_row(2024, m, A=float(m), B=float(10 * m)) for m in range(1, 9)]


def test_recent_window_uses_last_six_rows_sorted_ascending():
    deltas = recent_window_delta(_eight_rows())

    assert [r.date.month for r in deltas] == [3, 4, 5, 6, 7, 8]
    # A: media 5.5 sobre meses 3..8
    assert deltas[0].values["A"] == pytest.approx(3 - 5.5)
    assert deltas[-1].values["B"] == pytest.approx(80 - 55)
    assert deltas[0].average == pytest.approx((5.5 + 55) / 2)


def test_recent_window_is_invariant_to_input_order():
    expected = recent_window_delta(_eight_rows())
    shuffled = _eight_rows()
    random.Random(3).shuffle(shuffled)
    got = recent_window_delta(shuffled)
    assert [(r.date, r.values, r.average) for r in got] == [(r.date, r.values, r.average) for r in expected]


def test_recent_window_excludes_sites_without_values():
    rows = [_row(2020, 1, C=5.0)] + _eight_rows()
    deltas = recent_window_delta(rows)
    assert all("C" not in r.values for r in deltas)


def test_recent_window_ignores_absent_values_in_site_mean():
    rows = [_row(2024, 1, A=2), _row(2024, 2), _row(2024, 3, A=4)]
    deltas = recent_window_delta(rows, window=3)
    assert deltas[0].values == {"A": -1.0}
    assert deltas[1].values == {}
    assert deltas[2].values == {"A": 1.0}


@pytest.mark.parametrize("window", [0, -1, 2.5, True, "6"])
def test_recent_window_rejects_invalid_window(window):
    with pytest.raises(ValueError):
        recent_window_delta(_eight_rows(), window=window)


# ---------------------------------------------------------------------------
# Comparación contra el propio histórico
# ---------------------------------------------------------------------------

def test_own_history_comparison_uses_site_recent_mean():
    rows = _eight_rows()
    comparison = own_history_comparison(rows, "A")

    assert len(comparison) == 8
    assert all(c.baseline == pytest.approx(5.5) for c in comparison)
    assert comparison[0].actual == 1.0
    assert comparison[0].difference == pytest.approx(-4.5)
    assert comparison[0].above_average is False
    assert comparison[-1].above_average is True


def test_own_history_comparison_needs_a_full_window():
    assert own_history_comparison(_eight_rows()[:5], "A") == []


def test_own_history_comparison_without_site_values_is_empty():
    assert own_history_comparison(_eight_rows(), "Z") == []


def test_own_history_comparison_requires_site():
    with pytest.raises(ValueError):
        own_history_comparison(_eight_rows(), " ")


# ---------------------------------------------------------------------------
# Tendencia OLS
# ---------------------------------------------------------------------------

def test_trendline_exact_linear_data():
    points = [{"date": x, "difference": 2 * x + 1} for x in range(10)]
    trend = fit_trendline(points)

    assert trend.ok
    assert trend.slope == pytest.approx(2.0)
    assert trend.intercept == pytest.approx(1.0)
    assert trend.monthly_slope == pytest.approx(2.0 * MS_PER_MONTH)


def test_trendline_with_real_timestamps():
    """Timestamps grandes (ms) no degradan el ajuste."""
    base = 1_700_000_000_000
    points = [(base + i * MS_PER_MONTH, 0.5 * i) for i in range(6)]
    trend = fit_trendline(points)
    assert trend.monthly_slope == pytest.approx(0.5)


def test_trendline_identical_x_is_insufficient_variance():
    trend = fit_trendline([{"date": 5, "difference": 1.0}, {"date": 5, "difference": 3.0}])
    assert trend.status == TREND_INSUFFICIENT_VARIANCE
    assert trend.slope is None and trend.intercept is None and trend.monthly_slope is None


def test_trendline_needs_two_points():
    assert fit_trendline([(1, 1.0)]).status == TREND_INSUFFICIENT_VARIANCE
    assert fit_trendline([]).status == TREND_INSUFFICIENT_VARIANCE


def test_trendline_skips_missing_differences():
    trend = fit_trendline([(0, 1.0), (1, None), (2, 5.0)])
    assert trend.slope == pytest.approx(2.0)


def test_trendline_rejects_non_numeric_difference():
    with pytest.raises(TypeError):
        fit_trendline([(0, "1"), (1, 2.0)])


def test_difference_series_uses_row_average():
    rows = with_cross_site_average([_row(2024, 1, A=10, B=20), _row(2024, 2, B=4)])
    series = difference_series(rows, "A")
    assert series == [{"date": rows[0].timestamp_ms, "difference": -5.0}]
