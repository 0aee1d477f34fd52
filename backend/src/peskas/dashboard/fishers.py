"""peskas.dashboard.fishers

Métricas por pescador sobre la colección ``individual_data``.

- ``performance_metrics``: ranking de pescadores por CPUE promedio.
- ``monthly_trends``: promedio mensual de una métrica por BMU.
- ``fisher_records`` / ``fisher_monthly_trends`` / ``fisher_summary``: vista
  de un solo pescador (registros, tendencia mensual con desglose por arte y
  resumen de desempeño).

Los promedios se redondean a 2 decimales.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence

import pandas as pd

from peskas.dashboard.queries import DashboardFilters, apply_filters, load_collection

logger = logging.getLogger(__name__)

COLLECTION = "individual_data"
FISHER_METRICS: Sequence[str] = ("fisher_cpue", "fisher_rpue", "fisher_cost")
DEFAULT_PERFORMANCE_LIMIT = 50


def _round2(value: Any) -> Optional[float]:
    if value is None or pd.isna(value):
        return None
    return round(float(value), 2)


def _require_metric(metric: str) -> str:
    metric = (metric or "").strip()
    if metric not in FISHER_METRICS:
        raise ValueError(f"metric no soportada: {metric}. Soportadas={tuple(FISHER_METRICS)}")
    return metric


def _numeric(df: pd.DataFrame) -> pd.DataFrame:
    work = df.copy()
    for col in FISHER_METRICS:
        work[col] = pd.to_numeric(work[col], errors="coerce")
    return work


def _month_start(month: str) -> str:
    return pd.Timestamp(f"{month}-01", tz="UTC").isoformat()


def _fisher_frame(fisher_id: str, date_from: Optional[str] = None, date_to: Optional[str] = None) -> pd.DataFrame:
    fisher_id = (fisher_id or "").strip()
    if not fisher_id:
        raise ValueError("fisher_id es obligatorio")
    df = load_collection(COLLECTION)
    df = df.loc[df["fisher_id"].astype(str) == fisher_id]
    return apply_filters(df, DashboardFilters(date_from=date_from, date_to=date_to))


# ---------------------------------------------------------------------------
# Vista por BMU
# ---------------------------------------------------------------------------

def performance_table(df: pd.DataFrame, limit: int = DEFAULT_PERFORMANCE_LIMIT) -> List[Dict[str, Any]]:
    """Promedios por (pescador, BMU), ordenados por CPUE promedio descendente.

    Solo cuentan registros con CPUE y RPUE. ``primary_gear`` es el arte del
    primer registro (por fecha) del pescador en ese BMU.
    """
    if limit < 1:
        raise ValueError("limit debe ser >= 1")
    if df.empty:
        return []
    work = _numeric(df)
    work = work.loc[work["fisher_cpue"].notna() & work["fisher_rpue"].notna()]
    if work.empty:
        return []
    work = work.sort_values("date", kind="mergesort")

    out = []
    for (fisher_id, bmu), g in work.groupby(["fisher_id", "BMU"], sort=False):
        out.append(
            {
                "fisher_id": str(fisher_id),
                "bmu": str(bmu),
                "avg_cpue": _round2(g["fisher_cpue"].mean()),
                "avg_rpue": _round2(g["fisher_rpue"].mean()),
                "avg_cost": _round2(g["fisher_cost"].mean()),
                "total_trips": int(len(g)),
                "primary_gear": None if pd.isna(g["gear"].iloc[0]) else str(g["gear"].iloc[0]),
            }
        )
    out.sort(key=lambda r: (-(r["avg_cpue"] or 0.0), r["fisher_id"], r["bmu"]))
    logger.debug("performance_table: %d pescadores (limit=%d)", len(out), limit)
    return out[:limit]


def performance_metrics(filters: DashboardFilters, limit: int = DEFAULT_PERFORMANCE_LIMIT) -> List[Dict[str, Any]]:
    df = load_collection(COLLECTION)
    df = apply_filters(df, filters, site_col="BMU")
    return performance_table(df, limit=limit)


def monthly_trends_table(df: pd.DataFrame, metric: str = "fisher_cpue") -> List[Dict[str, Any]]:
    """Promedio mensual de ``metric`` por BMU con el número de registros."""
    metric = _require_metric(metric)
    if df.empty:
        return []
    work = _numeric(df)
    work = work.loc[work[metric].notna() & work["date"].notna()].copy()
    if work.empty:
        return []
    work["month"] = pd.to_datetime(work["date"], utc=True).dt.strftime("%Y-%m")
    grouped = work.groupby(["month", "BMU"])[metric].agg(["mean", "count"])
    return [
        {
            "month": month,
            "date": _month_start(month),
            "bmu": str(bmu),
            "avg_value": _round2(row["mean"]),
            "count": int(row["count"]),
        }
        for (month, bmu), row in grouped.iterrows()
    ]


def monthly_trends(filters: DashboardFilters, metric: str = "fisher_cpue") -> List[Dict[str, Any]]:
    metric = _require_metric(metric)
    df = load_collection(COLLECTION)
    df = apply_filters(df, filters, site_col="BMU")
    return monthly_trends_table(df, metric)


# ---------------------------------------------------------------------------
# Vista de un pescador
# ---------------------------------------------------------------------------

def fisher_records(
    fisher_id: str,
    date_from: Optional[str] = None,
    date_to: Optional[str] = None,
) -> List[Dict[str, Any]]:
    """Registros del pescador, del más reciente al más antiguo."""
    df = _fisher_frame(fisher_id, date_from, date_to)
    if df.empty:
        return []
    df = _numeric(df).sort_values("date", ascending=False, kind="mergesort")
    return [
        {
            "date": pd.Timestamp(r["date"]).isoformat(),
            "bmu": str(r["BMU"]),
            "gear": None if pd.isna(r["gear"]) else str(r["gear"]),
            "fisher_cpue": None if pd.isna(r["fisher_cpue"]) else float(r["fisher_cpue"]),
            "fisher_rpue": None if pd.isna(r["fisher_rpue"]) else float(r["fisher_rpue"]),
            "fisher_cost": None if pd.isna(r["fisher_cost"]) else float(r["fisher_cost"]),
        }
        for r in df.to_dict(orient="records")
    ]


def fisher_monthly_trends_table(df: pd.DataFrame, metric: str = "fisher_cpue") -> List[Dict[str, Any]]:
    """Promedio mensual de ``metric`` para un pescador con el desglose por arte."""
    metric = _require_metric(metric)
    if df.empty:
        return []
    work = _numeric(df)
    work = work.loc[work[metric].notna() & work["date"].notna()].sort_values("date", kind="mergesort").copy()
    if work.empty:
        return []
    work["month"] = pd.to_datetime(work["date"], utc=True).dt.strftime("%Y-%m")

    out = []
    for month, g in work.groupby("month"):
        out.append(
            {
                "month": month,
                "date": _month_start(month),
                "avg_value": _round2(g[metric].mean()),
                "count": int(len(g)),
                "gear_breakdown": [
                    {"gear": None if pd.isna(gear) else str(gear), "value": float(v)}
                    for gear, v in zip(g["gear"], g[metric])
                ],
            }
        )
    return out


def fisher_monthly_trends(fisher_id: str, metric: str = "fisher_cpue") -> List[Dict[str, Any]]:
    metric = _require_metric(metric)
    return fisher_monthly_trends_table(_fisher_frame(fisher_id), metric)


def fisher_summary_table(df: pd.DataFrame) -> Optional[Dict[str, Any]]:
    """Resumen de desempeño de un pescador; ``None`` si no hay registros.

    ``total_revenue`` suma la RPUE de cada viaje y ``net_profit`` es
    ``total_revenue - total_cost``.
    """
    if df.empty:
        return None
    work = _numeric(df)
    total_cost = float(work["fisher_cost"].sum())
    total_revenue = float(work["fisher_rpue"].sum())
    dates = pd.to_datetime(work["date"], utc=True).dropna()
    return {
        "total_trips": int(len(work)),
        "avg_cpue": _round2(work["fisher_cpue"].mean()),
        "avg_rpue": _round2(work["fisher_rpue"].mean()),
        "avg_cost": _round2(work["fisher_cost"].mean()),
        "total_cost": round(total_cost, 2),
        "total_revenue": round(total_revenue, 2),
        "net_profit": round(total_revenue - total_cost, 2),
        "gears_used": sorted({str(g) for g in work["gear"].dropna()}),
        "bmus_visited": sorted({str(b) for b in work["BMU"].dropna()}),
        "latest_trip": dates.max().isoformat() if not dates.empty else None,
        "earliest_trip": dates.min().isoformat() if not dates.empty else None,
    }


def fisher_summary(
    fisher_id: str,
    date_from: Optional[str] = None,
    date_to: Optional[str] = None,
) -> Optional[Dict[str, Any]]:
    return fisher_summary_table(_fisher_frame(fisher_id, date_from, date_to))
