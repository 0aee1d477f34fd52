"""Router ``/taxa/*``: métricas por especie."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from peskas.app.deps import get_color_registry, split_csv
from peskas.app.schemas.dashboard import (
    CompositionItem,
    CompositionResponse,
    TaxaRow,
    TaxaSummariesResponse,
)
from peskas.dashboard.aggregations import species_composition, taxa_summaries
from peskas.dashboard.colors import ColorRegistry

router = APIRouter()


@router.get("/summaries", response_model=TaxaSummariesResponse)
def taxa_summaries_endpoint(
    districts: Optional[str] = Query(None, description="Distritos coma-separados (opcional)."),  # noqa: B008
    species: Optional[str] = Query(None, description="Nombres comunes coma-separados (opcional)."),  # noqa: B008
    metrics: Optional[str] = Query(None, description="Métricas coma-separadas (opcional)."),  # noqa: B008
) -> TaxaSummariesResponse:
    """Una fila por (distrito, especie) con sus métricas."""
    try:
        rows = taxa_summaries(split_csv(districts), split_csv(species), split_csv(metrics))
    except FileNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return TaxaSummariesResponse(items=[TaxaRow(**r) for r in rows])


@router.get("/composition", response_model=CompositionResponse)
def taxa_composition(
    metric: str = Query("catch_kg", description="Métrica a componer."),  # noqa: B008
    districts: Optional[str] = Query(None, description="Distritos coma-separados (opcional)."),  # noqa: B008
    registry: ColorRegistry = Depends(get_color_registry),  # noqa: B008
) -> CompositionResponse:
    """Participación de cada especie en el total de la métrica."""
    try:
        rows = species_composition(metric, split_csv(districts))
    except FileNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    colors = registry.site_colors([r["common_name"] for r in rows])
    return CompositionResponse(metric=metric, items=[CompositionItem(**r) for r in rows], colors=colors)
