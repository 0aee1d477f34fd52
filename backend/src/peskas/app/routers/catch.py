"""Router ``/catch/*``: series de captura por BMU y sus derivadas.

Los routers se mantienen delgados (HTTP/serialización). La lectura vive en
``peskas.dashboard.queries`` y las transformaciones en
``peskas.dashboard.reshape`` / ``peskas.dashboard.derived``.

Visibilidad
-----------
Un usuario CIA con BMU asignado solo ve su BMU. En ``/catch/annual`` recibe el
rollup en modo restringido y en ``/catch/recent`` / ``/catch/trend`` se compara
contra su propio histórico en lugar de contra otros sitios.
"""

from __future__ import annotations

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from peskas.app import settings
from peskas.app.deps import filters_from_query, get_color_registry, get_user_context, own_history_only
from peskas.app.schemas.dashboard import (
    AnnualResponse,
    ComparisonRowOut,
    PerformanceItem,
    PerformanceResponse,
    RadarMonth,
    RadarResponse,
    RecentResponse,
    SeriesResponse,
    TrendLineOut,
    TrendPoint,
    TrendResponse,
    WideRowOut,
    YearOverYearItem,
)
from peskas.dashboard.aggregations import catch_performance, mean_catch_radar, year_over_year
from peskas.dashboard.colors import ColorRegistry
from peskas.dashboard.derived import (
    annual_rollup,
    difference_series,
    fit_trendline,
    own_history_comparison,
    recent_window_delta,
    with_cross_site_average,
)
from peskas.dashboard.permissions import UserContext
from peskas.dashboard.queries import DashboardFilters, catch_observations
from peskas.dashboard.reshape import pivot_observations, series_names
from peskas.dashboard.rows import WideRow, to_timestamp_ms

logger = logging.getLogger(__name__)

router = APIRouter()


def _monthly_rows(metric: str, filters: DashboardFilters, *, fill_gaps: bool = False) -> List[WideRow]:
    """Observaciones -> filas mensuales anchas (sin promedio)."""
    try:
        observations = catch_observations(metric, filters)
        return pivot_observations(observations, metric, fill_gaps=fill_gaps, min_year=settings.min_year())
    except FileNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except (TypeError, ValueError) as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


def _reference(user: UserContext, reference: Optional[str]) -> Optional[str]:
    return user.bmu if user.has_restricted_access else reference


@router.get("/monthly", response_model=SeriesResponse)
def catch_monthly(
    metric: str = Query("mean_trip_catch", description="Métrica de catch_monthly."),  # noqa: B008
    bmus: Optional[str] = Query(None, description="BMUs coma-separados (opcional)."),  # noqa: B008
    date_from: Optional[str] = Query(None, description="Inicio de rango (incl.)."),  # noqa: B008
    date_to: Optional[str] = Query(None, description="Fin de rango (incl.)."),  # noqa: B008
    fill_gaps: bool = Query(False, description="Emitir meses sin datos como filas vacías."),  # noqa: B008
    reference: Optional[str] = Query(None, description="Sitio destacado."),  # noqa: B008
    user: UserContext = Depends(get_user_context),  # noqa: B008
    registry: ColorRegistry = Depends(get_color_registry),  # noqa: B008
) -> SeriesResponse:
    """Serie mensual por BMU con el promedio entre sitios."""
    filters = filters_from_query(bmus, date_from, date_to, user)
    rows = with_cross_site_average(_monthly_rows(metric, filters, fill_gaps=fill_gaps))
    series = series_names(rows)
    colors = registry.site_colors(series, _reference(user, reference))
    return SeriesResponse(
        metric=metric, series=series, rows=[WideRowOut.from_row(r) for r in rows], colors=colors
    )


@router.get("/annual", response_model=AnnualResponse)
def catch_annual(
    metric: str = Query("mean_trip_catch", description="Métrica de catch_monthly."),  # noqa: B008
    bmus: Optional[str] = Query(None, description="BMUs coma-separados (opcional)."),  # noqa: B008
    date_from: Optional[str] = Query(None, description="Inicio de rango (incl.)."),  # noqa: B008
    date_to: Optional[str] = Query(None, description="Fin de rango (incl.)."),  # noqa: B008
    user: UserContext = Depends(get_user_context),  # noqa: B008
    registry: ColorRegistry = Depends(get_color_registry),  # noqa: B008
) -> AnnualResponse:
    """Media anual por BMU y comparación interanual."""
    filters = filters_from_query(bmus, date_from, date_to, user)
    monthly = _monthly_rows(metric, filters)
    restricted = own_history_only(user)
    rows = annual_rollup(monthly, restricted=restricted, reference_site=user.bmu if restricted else None)
    series = series_names(rows)
    colors = registry.site_colors(series, _reference(user, None), include_historical=restricted)
    return AnnualResponse(
        metric=metric,
        restricted=restricted,
        series=series,
        rows=[WideRowOut.from_row(r) for r in rows],
        year_over_year=[YearOverYearItem(**item) for item in year_over_year(monthly)],
        colors=colors,
    )


@router.get("/recent", response_model=RecentResponse)
def catch_recent(
    metric: str = Query("mean_trip_catch", description="Métrica de catch_monthly."),  # noqa: B008
    bmus: Optional[str] = Query(None, description="BMUs coma-separados (opcional)."),  # noqa: B008
    window: Optional[int] = Query(None, ge=1, le=60, description="Periodos de la ventana reciente."),  # noqa: B008
    user: UserContext = Depends(get_user_context),  # noqa: B008
    registry: ColorRegistry = Depends(get_color_registry),  # noqa: B008
) -> RecentResponse:
    """Delta contra la media de la ventana reciente.

    Usuarios que no pueden compararse con otros sitios reciben la comparación
    contra el histórico de su BMU.
    """
    win = window or settings.recent_window()
    filters = filters_from_query(bmus, None, None, user)
    rows = _monthly_rows(metric, filters)

    if own_history_only(user):
        comparison = own_history_comparison(rows, user.bmu, win)
        return RecentResponse(
            metric=metric,
            window=win,
            mode="own_history",
            comparison=[ComparisonRowOut.from_row(c) for c in comparison],
            colors=registry.site_colors([user.bmu], user.bmu),
        )

    deltas = recent_window_delta(rows, win)
    colors = registry.site_colors(series_names(deltas))
    return RecentResponse(
        metric=metric,
        window=win,
        mode="cross_site",
        rows=[WideRowOut.from_row(r) for r in deltas],
        colors=colors,
    )


@router.get("/trend", response_model=TrendResponse)
def catch_trend(
    site: Optional[str] = Query(None, description="BMU a analizar."),  # noqa: B008
    metric: str = Query("mean_trip_catch", description="Métrica de catch_monthly."),  # noqa: B008
    bmus: Optional[str] = Query(None, description="BMUs coma-separados para el promedio."),  # noqa: B008
    date_from: Optional[str] = Query(None, description="Inicio de rango (incl.)."),  # noqa: B008
    date_to: Optional[str] = Query(None, description="Fin de rango (incl.)."),  # noqa: B008
    user: UserContext = Depends(get_user_context),  # noqa: B008
) -> TrendResponse:
    """Tendencia (OLS) de la diferencia del sitio contra su referencia.

    La referencia es el promedio entre sitios; para usuarios restringidos es
    la media reciente de su propio BMU.
    """
    filters = filters_from_query(bmus, date_from, date_to, user)
    rows = _monthly_rows(metric, filters)

    if own_history_only(user):
        site = user.bmu
        points = [
            {"date": to_timestamp_ms(c.date), "difference": c.difference}
            for c in own_history_comparison(rows, site, settings.recent_window())
        ]
    else:
        if not site or not site.strip():
            raise HTTPException(status_code=400, detail="site es obligatorio")
        site = site.strip()
        points = difference_series(with_cross_site_average(rows), site)

    trend = fit_trendline(points)
    if not trend.ok:
        logger.info("Tendencia sin varianza suficiente para %s (%d puntos)", site, len(points))
    return TrendResponse(
        metric=metric,
        site=site,
        points=[TrendPoint(timestamp=int(p["date"]), difference=p["difference"]) for p in points],
        trend=TrendLineOut(
            slope=trend.slope,
            intercept=trend.intercept,
            monthly_slope=trend.monthly_slope,
            status=trend.status,
        ),
    )


@router.get("/performance", response_model=PerformanceResponse)
def catch_performance_table(
    bmus: Optional[str] = Query(None, description="BMUs coma-separados (opcional)."),  # noqa: B008
    date_from: Optional[str] = Query(None, description="Inicio de rango (incl.)."),  # noqa: B008
    date_to: Optional[str] = Query(None, description="Fin de rango (incl.)."),  # noqa: B008
    user: UserContext = Depends(get_user_context),  # noqa: B008
) -> PerformanceResponse:
    """Desempeño por BMU relativo al mejor BMU de cada métrica."""
    filters = filters_from_query(bmus, date_from, date_to, user)
    try:
        rows = catch_performance(filters)
    except FileNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return PerformanceResponse(items=[PerformanceItem(**r) for r in rows])


@router.get("/radar", response_model=RadarResponse)
def catch_radar(
    metric: str = Query("mean_trip_catch", description="Métrica del radar."),  # noqa: B008
    bmus: Optional[str] = Query(None, description="BMUs coma-separados (opcional)."),  # noqa: B008
    date_from: Optional[str] = Query(None, description="Inicio de rango (incl.)."),  # noqa: B008
    date_to: Optional[str] = Query(None, description="Fin de rango (incl.)."),  # noqa: B008
    user: UserContext = Depends(get_user_context),  # noqa: B008
    registry: ColorRegistry = Depends(get_color_registry),  # noqa: B008
) -> RadarResponse:
    """Promedio por mes calendario y BMU."""
    filters = filters_from_query(bmus, date_from, date_to, user)
    try:
        rows = mean_catch_radar(metric, filters)
    except FileNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    names = sorted({bmu for r in rows for bmu in r["values"]})
    return RadarResponse(
        metric=metric,
        items=[RadarMonth(**r) for r in rows],
        colors=registry.site_colors(names, _reference(user, None)),
    )
