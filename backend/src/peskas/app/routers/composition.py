"""Router ``/composition/*``: captura por categoría de pescado y sitio.

``/composition/series`` arma la serie mensual de una categoría con el mismo
pivot que ``/catch/monthly``. Un usuario que solo puede compararse contra su
BMU recibe la comparación contra su propio histórico reciente.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from peskas.app import settings
from peskas.app.deps import (
    filters_from_query,
    get_color_registry,
    get_user_context,
    own_history_only,
    split_csv,
)
from peskas.app.schemas.dashboard import (
    CategorySeriesResponse,
    CategorySummaryItem,
    CategorySummaryResponse,
    CategoryTrendItem,
    CategoryTrendsResponse,
    ComparisonRowOut,
    FishRecord,
    FishRecordsResponse,
    WideRowOut,
)
from peskas.dashboard.colors import ColorRegistry
from peskas.dashboard.derived import own_history_comparison, with_cross_site_average
from peskas.dashboard.fish_distribution import (
    category_observations,
    category_summary,
    monthly_category_trends,
    monthly_records,
)
from peskas.dashboard.permissions import UserContext
from peskas.dashboard.reshape import pivot_observations, series_names

router = APIRouter()


@router.get("/monthly", response_model=FishRecordsResponse)
def composition_monthly(
    bmus: Optional[str] = Query(None, description="Sitios coma-separados (opcional)."),  # noqa: B008
    user: UserContext = Depends(get_user_context),  # noqa: B008
) -> FishRecordsResponse:
    """Registros mensuales por sitio y categoría (sin captura nula)."""
    filters = filters_from_query(bmus, None, None, user)
    try:
        rows = monthly_records(filters)
    except FileNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return FishRecordsResponse(items=[FishRecord(**r) for r in rows])


@router.get("/categories", response_model=CategorySummaryResponse)
def composition_categories(
    bmus: Optional[str] = Query(None, description="Sitios coma-separados (opcional)."),  # noqa: B008
    date_from: Optional[str] = Query(None, description="Inicio de rango (incl.)."),  # noqa: B008
    date_to: Optional[str] = Query(None, description="Fin de rango (incl.)."),  # noqa: B008
    user: UserContext = Depends(get_user_context),  # noqa: B008
    registry: ColorRegistry = Depends(get_color_registry),  # noqa: B008
) -> CategorySummaryResponse:
    """Captura total por categoría y número de sitios que la reportan."""
    filters = filters_from_query(bmus, date_from, date_to, user)
    try:
        rows = category_summary(filters)
    except FileNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    colors = registry.site_colors([r["fish_category"] for r in rows])
    return CategorySummaryResponse(items=[CategorySummaryItem(**r) for r in rows], colors=colors)


@router.get("/trends", response_model=CategoryTrendsResponse)
def composition_trends(
    bmus: Optional[str] = Query(None, description="Sitios coma-separados (opcional)."),  # noqa: B008
    categories: Optional[str] = Query(None, description="Categorías coma-separadas (opcional)."),  # noqa: B008
    user: UserContext = Depends(get_user_context),  # noqa: B008
) -> CategoryTrendsResponse:
    """Por (mes, sitio): captura de cada categoría y total del mes."""
    filters = filters_from_query(bmus, None, None, user)
    try:
        rows = monthly_category_trends(filters, split_csv(categories))
    except FileNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return CategoryTrendsResponse(items=[CategoryTrendItem(**r) for r in rows])


@router.get("/series", response_model=CategorySeriesResponse)
def composition_series(
    category: str = Query(..., description="Categoría de pescado."),  # noqa: B008
    bmus: Optional[str] = Query(None, description="Sitios coma-separados (opcional)."),  # noqa: B008
    window: Optional[int] = Query(None, ge=1, le=60, description="Periodos del histórico propio."),  # noqa: B008
    user: UserContext = Depends(get_user_context),  # noqa: B008
    registry: ColorRegistry = Depends(get_color_registry),  # noqa: B008
) -> CategorySeriesResponse:
    """Serie mensual de una categoría por sitio."""
    category = category.strip()
    if not category:
        raise HTTPException(status_code=400, detail="category es obligatoria")
    filters = filters_from_query(bmus, None, None, user)
    try:
        trends = monthly_category_trends(filters, [category])
        win = window or settings.recent_window()
    except FileNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    rows = pivot_observations(category_observations(trends, category), category)

    if own_history_only(user):
        comparison = own_history_comparison(rows, user.bmu, win)
        return CategorySeriesResponse(
            category=category,
            mode="own_history",
            series=[user.bmu],
            comparison=[ComparisonRowOut.from_row(c) for c in comparison],
            colors=registry.site_colors([user.bmu], user.bmu, include_historical=True),
        )

    rows = with_cross_site_average(rows)
    series = series_names(rows)
    return CategorySeriesResponse(
        category=category,
        mode="cross_site",
        series=series,
        rows=[WideRowOut.from_row(r) for r in rows],
        colors=registry.site_colors(series),
    )
