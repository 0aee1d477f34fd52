"""Router ``/fishers/*``: métricas por pescador (colección ``individual_data``)."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from peskas.app.deps import filters_from_query, get_user_context
from peskas.app.schemas.dashboard import (
    FisherMonthItem,
    FisherMonthlyResponse,
    FisherPerformanceItem,
    FisherPerformanceResponse,
    FisherRecord,
    FisherRecordsResponse,
    FisherSummaryResponse,
    FisherTrendItem,
    FisherTrendsResponse,
)
from peskas.dashboard.fishers import (
    DEFAULT_PERFORMANCE_LIMIT,
    fisher_monthly_trends,
    fisher_records,
    fisher_summary,
    monthly_trends,
    performance_metrics,
)
from peskas.dashboard.permissions import UserContext

router = APIRouter()


@router.get("/performance", response_model=FisherPerformanceResponse)
def fishers_performance(
    bmus: Optional[str] = Query(None, description="BMUs coma-separados (opcional)."),  # noqa: B008
    limit: int = Query(DEFAULT_PERFORMANCE_LIMIT, ge=1, le=500, description="Máximo de pescadores."),  # noqa: B008
    user: UserContext = Depends(get_user_context),  # noqa: B008
) -> FisherPerformanceResponse:
    """Ranking de pescadores por CPUE promedio."""
    filters = filters_from_query(bmus, None, None, user)
    try:
        rows = performance_metrics(filters, limit=limit)
    except FileNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return FisherPerformanceResponse(items=[FisherPerformanceItem(**r) for r in rows])


@router.get("/trends", response_model=FisherTrendsResponse)
def fishers_trends(
    metric: str = Query("fisher_cpue", description="fisher_cpue, fisher_rpue o fisher_cost."),  # noqa: B008
    bmus: Optional[str] = Query(None, description="BMUs coma-separados (opcional)."),  # noqa: B008
    user: UserContext = Depends(get_user_context),  # noqa: B008
) -> FisherTrendsResponse:
    """Promedio mensual de la métrica por BMU."""
    filters = filters_from_query(bmus, None, None, user)
    try:
        rows = monthly_trends(filters, metric)
    except FileNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return FisherTrendsResponse(metric=metric, items=[FisherTrendItem(**r) for r in rows])


@router.get("/{fisher_id}/records", response_model=FisherRecordsResponse)
def fisher_records_endpoint(
    fisher_id: str,
    date_from: Optional[str] = Query(None, description="Inicio de rango (incl.)."),  # noqa: B008
    date_to: Optional[str] = Query(None, description="Fin de rango (incl.)."),  # noqa: B008
) -> FisherRecordsResponse:
    """Registros del pescador, del más reciente al más antiguo."""
    try:
        rows = fisher_records(fisher_id, date_from, date_to)
    except FileNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return FisherRecordsResponse(fisher_id=fisher_id, items=[FisherRecord(**r) for r in rows])


@router.get("/{fisher_id}/trends", response_model=FisherMonthlyResponse)
def fisher_trends_endpoint(
    fisher_id: str,
    metric: str = Query("fisher_cpue", description="fisher_cpue, fisher_rpue o fisher_cost."),  # noqa: B008
) -> FisherMonthlyResponse:
    """Promedio mensual del pescador con el desglose por arte."""
    try:
        rows = fisher_monthly_trends(fisher_id, metric)
    except FileNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return FisherMonthlyResponse(fisher_id=fisher_id, metric=metric, items=[FisherMonthItem(**r) for r in rows])


@router.get("/{fisher_id}/summary", response_model=FisherSummaryResponse)
def fisher_summary_endpoint(
    fisher_id: str,
    date_from: Optional[str] = Query(None, description="Inicio de rango (incl.)."),  # noqa: B008
    date_to: Optional[str] = Query(None, description="Fin de rango (incl.)."),  # noqa: B008
) -> FisherSummaryResponse:
    """Resumen de desempeño del pescador (viajes, promedios, ganancia neta)."""
    try:
        summary = fisher_summary(fisher_id, date_from, date_to)
    except FileNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    if summary is None:
        raise HTTPException(status_code=404, detail=f"Sin registros para el pescador {fisher_id}")
    return FisherSummaryResponse(fisher_id=fisher_id, **summary)
