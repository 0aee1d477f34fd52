"""Router ``/districts/*``: indicadores por distrito y región."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from peskas.app import settings
from peskas.app.deps import get_color_registry, split_csv
from peskas.app.schemas.dashboard import (
    DistrictSummaryItem,
    DistrictSummaryResponse,
    HeatmapCell,
    HeatmapResponse,
    Quartiles,
    RegionSeries,
    RegionSummaryResponse,
    SeriesResponse,
    WideRowOut,
)
from peskas.dashboard.aggregations import (
    DISTRICT_INDICATORS,
    district_heatmap,
    district_summary_by_range,
    monthly_region_summary,
    parse_range,
    quartiles,
)
from peskas.dashboard.colors import ColorRegistry
from peskas.dashboard.derived import with_cross_site_average
from peskas.dashboard.queries import DashboardFilters, district_observations
from peskas.dashboard.reshape import pivot_observations, series_names

router = APIRouter()


@router.get("/summary", response_model=DistrictSummaryResponse)
def districts_summary(
    date_from: Optional[str] = Query(None, description="Inicio de rango (incl.)."),  # noqa: B008
    date_to: Optional[str] = Query(None, description="Fin de rango (incl.)."),  # noqa: B008
    districts: Optional[str] = Query(None, description="Distritos coma-separados (opcional)."),  # noqa: B008
) -> DistrictSummaryResponse:
    """Indicadores agregados por distrito y sus cuartiles entre distritos."""
    try:
        parse_range(date_from, date_to)
        rows = district_summary_by_range(date_from, date_to, split_csv(districts))
    except FileNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    spread = {
        ind: Quartiles(**quartiles(r["indicators"].get(ind) for r in rows)) for ind in DISTRICT_INDICATORS
    }
    return DistrictSummaryResponse(items=[DistrictSummaryItem(**r) for r in rows], quartiles=spread)


@router.get("/regions", response_model=RegionSummaryResponse)
def districts_regions(
    date_from: Optional[str] = Query(None, description="Inicio de rango (incl.)."),  # noqa: B008
    date_to: Optional[str] = Query(None, description="Fin de rango (incl.)."),  # noqa: B008
    months: int = Query(3, ge=1, le=36, description="Últimas N fechas por métrica."),  # noqa: B008
) -> RegionSummaryResponse:
    """Promedios Unguja/Pemba de las últimas ``months`` fechas por métrica."""
    try:
        parse_range(date_from, date_to)
        payload = monthly_region_summary(date_from, date_to, months=months)
    except FileNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return RegionSummaryResponse(metrics={k: RegionSeries(**v) for k, v in payload.items()})


@router.get("/timeseries", response_model=SeriesResponse)
def districts_timeseries(
    metric: str = Query(..., description="Métrica de monthly_summaries."),  # noqa: B008
    districts: Optional[str] = Query(None, description="Distritos coma-separados (opcional)."),  # noqa: B008
    date_from: Optional[str] = Query(None, description="Inicio de rango (incl.)."),  # noqa: B008
    date_to: Optional[str] = Query(None, description="Fin de rango (incl.)."),  # noqa: B008
    fill_gaps: bool = Query(False, description="Emitir meses sin datos como filas vacías."),  # noqa: B008
    registry: ColorRegistry = Depends(get_color_registry),  # noqa: B008
) -> SeriesResponse:
    """Serie mensual por distrito con el promedio entre distritos."""
    filters = DashboardFilters(sites=split_csv(districts), date_from=date_from, date_to=date_to)
    try:
        observations = district_observations(metric, filters)
        rows = pivot_observations(observations, metric, fill_gaps=fill_gaps, min_year=settings.min_year())
    except FileNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except (TypeError, ValueError) as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    rows = with_cross_site_average(rows)
    series = series_names(rows)
    return SeriesResponse(
        metric=metric,
        series=series,
        rows=[WideRowOut.from_row(r) for r in rows],
        colors=registry.site_colors(series),
    )


@router.get("/heatmap", response_model=HeatmapResponse)
def districts_heatmap(
    metric: str = Query(..., description="Indicador de district_summary."),  # noqa: B008
    date_from: Optional[str] = Query(None, description="Inicio de rango (incl.)."),  # noqa: B008
    date_to: Optional[str] = Query(None, description="Fin de rango (incl.)."),  # noqa: B008
) -> HeatmapResponse:
    """Celdas coloreadas (YlGnBu-8) para la tabla de distritos."""
    try:
        parse_range(date_from, date_to)
        rows = district_summary_by_range(date_from, date_to)
        cells = district_heatmap(rows, metric)
    except FileNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return HeatmapResponse(indicator=metric, items=[HeatmapCell(**c) for c in cells])
