"""Router ``/gear/*``: artes de pesca por sitio y por BMU."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from peskas.app.deps import filters_from_query, get_color_registry, get_user_context, split_csv
from peskas.app.schemas.dashboard import (
    GearDistributionItem,
    GearDistributionResponse,
    GearSummaryItem,
    GearSummaryResponse,
)
from peskas.dashboard.aggregations import gear_distribution, gear_summary
from peskas.dashboard.colors import ColorRegistry
from peskas.dashboard.permissions import UserContext

router = APIRouter()


@router.get("/distribution", response_model=GearDistributionResponse)
def gear_distribution_endpoint(
    sites: Optional[str] = Query(None, description="Sitios de desembarque coma-separados."),  # noqa: B008
    registry: ColorRegistry = Depends(get_color_registry),  # noqa: B008
) -> GearDistributionResponse:
    """Porcentaje de uso de cada arte por sitio de desembarque."""
    try:
        rows = gear_distribution(split_csv(sites))
    except FileNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    gears = sorted({g for r in rows for g in r["gears"]})
    return GearDistributionResponse(
        items=[GearDistributionItem(**r) for r in rows],
        colors=registry.site_colors(gears),
    )


@router.get("/summary", response_model=GearSummaryResponse)
def gear_summary_endpoint(
    bmus: Optional[str] = Query(None, description="BMUs coma-separados (opcional)."),  # noqa: B008
    date_from: Optional[str] = Query(None, description="Inicio de rango (incl.)."),  # noqa: B008
    date_to: Optional[str] = Query(None, description="Fin de rango (incl.)."),  # noqa: B008
    user: UserContext = Depends(get_user_context),  # noqa: B008
) -> GearSummaryResponse:
    """CPUE/RPUE/costo promedio por (BMU, arte)."""
    filters = filters_from_query(bmus, date_from, date_to, user)
    try:
        rows = gear_summary(filters)
    except FileNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return GearSummaryResponse(items=[GearSummaryItem(**r) for r in rows])
