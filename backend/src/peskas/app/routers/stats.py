"""Router ``/stats/*``: totales mensuales por sitio de desembarque."""

from __future__ import annotations

from fastapi import APIRouter, HTTPException, Query

from peskas.app.schemas.dashboard import MonthlyStatIndicator, MonthlyStatsResponse
from peskas.dashboard.aggregations import monthly_stats

router = APIRouter()


@router.get("/monthly", response_model=MonthlyStatsResponse)
def stats_monthly(
    site: str = Query(..., description="Sitio de desembarque."),  # noqa: B008
) -> MonthlyStatsResponse:
    """Valor actual, cambio vs. el mes anterior y tendencia de 6 meses."""
    try:
        payload = monthly_stats(site)
    except FileNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return MonthlyStatsResponse(
        site=site.strip(),
        indicators={k: MonthlyStatIndicator(**v) for k, v in payload.items()},
    )
