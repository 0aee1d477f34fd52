"""peskas.dashboard.aggregations

Agregaciones del lado servidor para el Dashboard.

Este módulo se apoya en :mod:`peskas.dashboard.queries` para cargar y
filtrar colecciones, y expone agregaciones reutilizables para endpoints como:

- ``GET /catch/performance`` (tabla de desempeño por BMU)
- ``GET /catch/radar`` (promedio mensual por BMU)
- ``GET /districts/summary`` / ``/districts/regions`` / ``/districts/heatmap``
- ``GET /taxa/summaries`` / ``/taxa/composition``
- ``GET /gear/distribution`` / ``/gear/summary``
- ``GET /stats/monthly``

Decisiones de diseño
--------------------
- Cada agregación tiene una versión pura sobre ``DataFrame`` (testeable sin
  disco) y un wrapper que carga la colección.
- Medias sobre conjuntos vacíos retornan ``None`` (nunca NaN) para que el JSON
  sea serializable y la UI distinga "sin dato" de cero.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from peskas.dashboard.colors import palette_color, text_color
from peskas.dashboard.derived import annual_rollup
from peskas.dashboard.queries import (
    DashboardFilters,
    apply_filters,
    load_collection,
    parse_date_bound,
)
from peskas.dashboard.rows import WideRow

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Constantes
# ---------------------------------------------------------------------------

MONTH_LABELS: Tuple[str, ...] = (
    "Jan", "Feb", "Mar", "Apr", "May", "Jun",
    "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
)

RADAR_METRICS: Tuple[str, ...] = ("mean_trip_catch", "mean_effort", "mean_cpue", "mean_cpua")

DISTRICT_INDICATORS: Tuple[str, ...] = (
    "n_submissions",
    "n_fishers",
    "trip_duration",
    "mean_cpue",
    "mean_rpue",
    "mean_price_kg",
    "estimated_revenue_TZS",
    "estimated_catch_tn",
)

# Indicadores acumulables: se suman en lugar de promediarse.
SUM_INDICATORS = frozenset({"n_submissions", "estimated_catch_tn", "estimated_revenue_TZS"})

DISTRICT_REGIONS: Dict[str, str] = {
    "central": "Unguja",
    "north a": "Unguja",
    "north b": "Unguja",
    "south": "Unguja",
    "urban": "Unguja",
    "west": "Unguja",
    "chake chake": "Pemba",
    "mkoani": "Pemba",
    "micheweni": "Pemba",
    "wete": "Pemba",
}
REGIONS: Tuple[str, ...] = ("Unguja", "Pemba")

TAXA_METRICS: Tuple[str, ...] = ("catch_kg", "mean_length", "price_kg", "n_individuals", "total_value")

MONTHLY_STATS_INDICATORS: Dict[str, str] = {
    "submissions": "tot_submissions",
    "fishers": "tot_fishers",
    "catches": "tot_catches",
    "weight": "tot_kg",
}


# ---------------------------------------------------------------------------
# Helpers numéricos
# ---------------------------------------------------------------------------

def _finite(values: Iterable[Any]) -> List[float]:
    out = []
    for v in values:
        if v is None or isinstance(v, bool):
            continue
        try:
            f = float(v)
        except (TypeError, ValueError):
            continue
        if np.isfinite(f):
            out.append(f)
    return out


def _safe_mean(series: pd.Series) -> Optional[float]:
    """Mean numérico tolerante a NaN; retorna None si no hay datos."""
    x = pd.to_numeric(series, errors="coerce").astype(float)
    if x.dropna().empty:
        return None
    return float(x.mean())


def _none_if_nan(value: Any) -> Optional[float]:
    if value is None:
        return None
    f = float(value)
    return None if not np.isfinite(f) else f


def percentage_change(current: Optional[float], previous: Optional[float]) -> float:
    """Cambio porcentual ``(current - previous) / previous * 100`` a 2 decimales.

    Si ``previous`` es falsy (None/0) retorna 0.
    """
    if not previous or current is None:
        return 0.0
    return round((float(current) - float(previous)) / float(previous) * 100.0, 2)


def aggregate_district_value(values: Iterable[Any], indicator: str) -> Optional[float]:
    """Agrega valores de un indicador de distrito.

    Suma para indicadores acumulables (envíos, captura y ingreso estimados),
    media para el resto. ``None`` si no hay valores válidos.
    """
    valid = _finite(values)
    if not valid:
        return None
    if indicator in SUM_INDICATORS:
        return float(sum(valid))
    return float(sum(valid) / len(valid))


def quartiles(values: Iterable[Any]) -> Dict[str, Optional[float]]:
    """Cuartiles (q1, mediana, q3) con interpolación lineal de numpy."""
    valid = _finite(values)
    if not valid:
        return {"q1": None, "median": None, "q3": None}
    q1, med, q3 = np.percentile(np.asarray(valid, dtype=float), [25, 50, 75])
    return {"q1": float(q1), "median": float(med), "q3": float(q3)}


# ---------------------------------------------------------------------------
# Captura: desempeño y radar
# ---------------------------------------------------------------------------

_PERFORMANCE_FIELDS: Tuple[Tuple[str, str, str], ...] = (
    ("mean_trip_catch", "avg_catch", "catch_performance"),
    ("mean_effort", "avg_effort", "effort_performance"),
    ("mean_cpue", "avg_cpue", "cpue_performance"),
    ("mean_cpua", "avg_cpua", "cpua_performance"),
)


def performance_table(df: pd.DataFrame) -> List[Dict[str, Any]]:
    """Tabla de desempeño por BMU.

    Para cada BMU calcula medias y totales; el desempeño de cada métrica es
    ``media / máximo entre BMUs × 100``. Orden descendente por desempeño de
    captura.
    """
    if df.empty:
        return []
    if "mean_trip_catch" in df.columns:
        df = df.loc[df["mean_trip_catch"].notna()]
    grouped = df.groupby("BMU", dropna=True)

    rows: List[Dict[str, Any]] = []
    for bmu, g in grouped:
        row: Dict[str, Any] = {"bmu": str(bmu), "n_months": int(len(g))}
        for col, avg_key, _ in _PERFORMANCE_FIELDS:
            row[avg_key] = _safe_mean(g[col]) if col in g.columns else None
        row["total_catch"] = (
            float(pd.to_numeric(g["mean_trip_catch"], errors="coerce").sum())
            if "mean_trip_catch" in g.columns
            else None
        )
        row["total_effort"] = (
            float(pd.to_numeric(g["mean_effort"], errors="coerce").sum())
            if "mean_effort" in g.columns
            else None
        )
        rows.append(row)

    for _, avg_key, perf_key in _PERFORMANCE_FIELDS:
        present = _finite(r[avg_key] for r in rows)
        top = max(present) if present else None
        for r in rows:
            v = r[avg_key]
            r[perf_key] = (v / top * 100.0) if (v is not None and top) else None

    rows.sort(key=lambda r: (r["catch_performance"] is None, -(r["catch_performance"] or 0.0), r["bmu"]))
    return rows


def catch_performance(filters: DashboardFilters) -> List[Dict[str, Any]]:
    """Tabla de desempeño por BMU desde ``catch_monthly``."""
    df = load_collection("catch_monthly")
    df = apply_filters(df, filters, site_col="BMU")
    return performance_table(df)


def radar_by_month(df: pd.DataFrame, metric: str) -> List[Dict[str, Any]]:
    """Promedio de ``metric`` por (mes calendario, BMU), redondeado a 1 decimal.

    Returns
    -------
    list[dict]
        ``[{"month": "Jan", "values": {"<bmu>": 12.3, ...}}, ...]`` en orden
        calendario; solo meses con datos.
    """
    metric = (metric or "").strip()
    if metric not in RADAR_METRICS:
        raise ValueError(f"metric no soportada: {metric}. Soportadas={RADAR_METRICS}")
    if df.empty or metric not in df.columns:
        return []

    work = df.loc[df[metric].notna(), ["date", "BMU", metric]].copy()
    if work.empty:
        return []
    work["month_num"] = pd.to_datetime(work["date"], utc=True).dt.month
    means = work.groupby(["month_num", "BMU"])[metric].mean()

    out: List[Dict[str, Any]] = []
    for month_num in sorted(means.index.get_level_values(0).unique()):
        per_bmu = means.loc[month_num]
        values = {str(b): round(float(v), 1) for b, v in per_bmu.items() if np.isfinite(v)}
        out.append({"month": MONTH_LABELS[int(month_num) - 1], "values": values})
    return out


def mean_catch_radar(metric: str, filters: DashboardFilters) -> List[Dict[str, Any]]:
    df = load_collection("catch_monthly")
    df = apply_filters(df, filters, site_col="BMU")
    return radar_by_month(df, metric)


# ---------------------------------------------------------------------------
# Distritos
# ---------------------------------------------------------------------------

def district_summary_table(
    df: pd.DataFrame,
    districts: Optional[Sequence[str]] = None,
    indicators: Sequence[str] = DISTRICT_INDICATORS,
) -> List[Dict[str, Any]]:
    """Una fila por distrito con cada indicador agregado.

    Si se pasan ``districts`` se emite una fila por cada uno (aunque no tenga
    datos); si no, los distritos presentes en ``df``.
    """
    if districts:
        names = [str(d) for d in districts]
    elif df.empty:
        names = []
    else:
        names = sorted({str(d) for d in df["district"].dropna().tolist()})

    grouped: Dict[Tuple[str, str], List[Any]] = {}
    if not df.empty:
        for (district, indicator), g in df.groupby(["district", "indicator"]):
            grouped[(str(district), str(indicator))] = g["value"].tolist()

    out = []
    for district in names:
        values = {
            ind: aggregate_district_value(grouped.get((district, ind), []), ind) for ind in indicators
        }
        out.append({"district": district, "indicators": values})
    return out


def district_summary_by_range(
    date_from: Optional[str],
    date_to: Optional[str],
    districts: Optional[Sequence[str]] = None,
) -> List[Dict[str, Any]]:
    """Resumen por distrito dentro de un rango de fechas (inclusivo)."""
    df = load_collection("district_summary")
    df = apply_filters(
        df,
        DashboardFilters(sites=tuple(districts or ()), date_from=date_from, date_to=date_to),
        site_col="district",
    )
    return district_summary_table(df, districts=districts)


def region_summary_table(df: pd.DataFrame, months: int = 3) -> Dict[str, Any]:
    """Media por métrica, fecha y región (Unguja/Pemba), últimas ``months`` fechas.

    Distritos sin región conocida se ignoran.
    """
    if months < 1:
        raise ValueError("months debe ser >= 1")

    result: Dict[str, Any] = {}
    if df.empty:
        for metric in DISTRICT_INDICATORS:
            result[metric] = {"data": [], "months": []}
        return result

    work = df.copy()
    work["region"] = work["district"].astype(str).str.strip().str.casefold().map(DISTRICT_REGIONS)
    work = work.loc[work["region"].notna() & work["date"].notna()]
    work["day"] = pd.to_datetime(work["date"], utc=True).dt.normalize()

    for metric in DISTRICT_INDICATORS:
        sub = work.loc[work["indicator"] == metric]
        dates = sorted(sub["day"].unique())[-months:]
        data = []
        for day in dates:
            ts = pd.Timestamp(day)
            day_rows = sub.loc[sub["day"] == day]
            data.append(
                {
                    "month": ts.strftime("%b %y"),
                    "date": ts.date().isoformat(),
                    "values": {
                        region: _safe_mean(day_rows.loc[day_rows["region"] == region, "value"])
                        for region in REGIONS
                    },
                }
            )
        result[metric] = {"data": data, "months": [p["month"] for p in data]}
    return result


def monthly_region_summary(
    date_from: Optional[str],
    date_to: Optional[str],
    months: int = 3,
) -> Dict[str, Any]:
    df = load_collection("district_summary")
    df = apply_filters(df, DashboardFilters(date_from=date_from, date_to=date_to, metrics=DISTRICT_INDICATORS),
                       metric_col="indicator")
    return region_summary_table(df, months=months)


def district_heatmap(rows: List[Dict[str, Any]], indicator: str) -> List[Dict[str, Any]]:
    """Celdas coloreadas para la tabla de distritos de un indicador.

    El color de fondo sale de la rampa YlGnBu-8 entre el mínimo y el máximo
    del indicador; el color del texto se elige por luminancia.
    """
    if indicator not in DISTRICT_INDICATORS:
        raise ValueError(f"indicator no soportado: {indicator}. Soportados={DISTRICT_INDICATORS}")
    present = _finite(r["indicators"].get(indicator) for r in rows)
    vmin = min(present) if present else 0.0
    vmax = max(present) if present else 0.0

    out = []
    for r in rows:
        value = r["indicators"].get(indicator)
        bg = palette_color(value, vmin, vmax)
        out.append({"district": r["district"], "value": value, "color": bg, "text_color": text_color(bg)})
    return out


# ---------------------------------------------------------------------------
# Taxa
# ---------------------------------------------------------------------------

def taxa_pivot(df: pd.DataFrame) -> List[Dict[str, Any]]:
    """Pivot a una fila por (distrito, especie) con columnas por métrica."""
    if df.empty:
        return []
    work = df.sort_values(["district", "common_name", "metric"], kind="mergesort")
    grouped: Dict[Tuple[str, str], Dict[str, Any]] = {}
    for rec in work.to_dict(orient="records"):
        key = (str(rec["district"]), str(rec["common_name"]))
        row = grouped.get(key)
        if row is None:
            sci = rec.get("scientific_name")
            row = {
                "district": key[0],
                "common_name": key[1],
                "scientific_name": None if sci is None or pd.isna(sci) else str(sci),
                "metrics": {},
            }
            grouped[key] = row
        value = _none_if_nan(rec.get("value"))
        if value is not None:
            row["metrics"][str(rec["metric"])] = value
    return list(grouped.values())


def taxa_summaries(
    districts: Optional[Sequence[str]] = None,
    species: Optional[Sequence[str]] = None,
    metrics: Optional[Sequence[str]] = None,
) -> List[Dict[str, Any]]:
    for m in metrics or ():
        if m not in TAXA_METRICS:
            raise ValueError(f"metric no soportada: {m}. Soportadas={TAXA_METRICS}")
    df = load_collection("taxa_summaries")
    df = df.loc[df["value"].notna()]
    df = apply_filters(
        df,
        DashboardFilters(sites=tuple(districts or ()), metrics=tuple(metrics or ())),
        site_col="district",
        metric_col="metric",
    )
    if species:
        df = df.loc[df["common_name"].astype(str).isin([str(s) for s in species])]
    return taxa_pivot(df)


def composition_table(df: pd.DataFrame, metric: str) -> List[Dict[str, Any]]:
    """Composición por especie: total, porcentaje del total y desglose por distrito.

    Solo valores positivos cuentan; especies con total 0 se excluyen.
    """
    if df.empty:
        return []
    work = df.loc[(df["metric"] == metric)].copy()
    work["value"] = pd.to_numeric(work["value"], errors="coerce")
    work = work.loc[work["value"] > 0]
    if work.empty:
        return []

    grand_total = float(work["value"].sum())
    out = []
    for name, g in work.groupby("common_name"):
        total = float(g["value"].sum())
        if total <= 0:
            continue
        sci = g["scientific_name"].dropna() if "scientific_name" in g.columns else pd.Series(dtype=object)
        by_district = g.groupby("district")["value"].sum()
        out.append(
            {
                "common_name": str(name),
                "scientific_name": str(sci.iloc[0]) if not sci.empty else None,
                "total_value": total,
                "share_pct": total / grand_total * 100.0,
                "districts": [
                    {"district": str(d), "value": float(v)} for d, v in sorted(by_district.items())
                ],
            }
        )
    out.sort(key=lambda r: (-r["total_value"], r["common_name"]))
    return out


def species_composition(metric: str = "catch_kg", districts: Optional[Sequence[str]] = None) -> List[Dict[str, Any]]:
    if metric not in TAXA_METRICS:
        raise ValueError(f"metric no soportada: {metric}. Soportadas={TAXA_METRICS}")
    df = load_collection("taxa_summaries")
    df = apply_filters(df, DashboardFilters(sites=tuple(districts or ())), site_col="district")
    return composition_table(df, metric)


# ---------------------------------------------------------------------------
# Artes de pesca
# ---------------------------------------------------------------------------

def gear_pivot(df: pd.DataFrame) -> List[Dict[str, Any]]:
    """``[{"landing_site": ..., "gears": {<arte>: gear_perc}}]`` en orden de aparición."""
    out: Dict[str, Dict[str, Any]] = {}
    for rec in df.to_dict(orient="records"):
        site = str(rec["landing_site"])
        row = out.setdefault(site, {"landing_site": site, "gears": {}})
        perc = _none_if_nan(rec.get("gear_perc"))
        if perc is not None:
            row["gears"][str(rec["gear"])] = perc
    return list(out.values())


def gear_distribution(sites: Optional[Sequence[str]] = None) -> List[Dict[str, Any]]:
    df = load_collection("gear_distribution")
    df = apply_filters(df, DashboardFilters(sites=tuple(sites or ())), site_col="landing_site")
    return gear_pivot(df)


def gear_summary_table(df: pd.DataFrame) -> List[Dict[str, Any]]:
    """Promedios por (BMU, arte) de cpue/rpue/costo por pescador.

    Incluye el número de registros y los cuartiles de cpue.
    """
    if df.empty:
        return []
    out = []
    for (bmu, gear), g in df.groupby(["BMU", "gear"]):
        avg_cpue = _safe_mean(g["fisher_cpue"])
        avg_rpue = _safe_mean(g["fisher_rpue"])
        avg_cost = _safe_mean(g["fisher_cost"])
        out.append(
            {
                "bmu": str(bmu),
                "gear": str(gear),
                "avg_cpue": None if avg_cpue is None else round(avg_cpue, 2),
                "avg_rpue": None if avg_rpue is None else round(avg_rpue, 2),
                "avg_cost": None if avg_cost is None else round(avg_cost, 2),
                "total_fishers": int(len(g)),
                "cpue_quartiles": quartiles(g["fisher_cpue"].tolist()),
            }
        )
    out.sort(key=lambda r: (r["bmu"], r["gear"]))
    return out


def gear_summary(filters: DashboardFilters) -> List[Dict[str, Any]]:
    df = load_collection("individual_data")
    df = apply_filters(df, filters, site_col="BMU")
    return gear_summary_table(df)


# ---------------------------------------------------------------------------
# Estadísticas mensuales por sitio
# ---------------------------------------------------------------------------

def monthly_stats_table(df: pd.DataFrame, trend_months: int = 6) -> Dict[str, Any]:
    """Valor actual, cambio mes a mes y tendencia reciente por indicador.

    Raises
    ------
    ValueError
        Si no hay registros para calcular el valor actual.
    """
    if df.empty:
        raise ValueError("No hay estadísticas mensuales para el sitio solicitado")
    latest = df.sort_values("date", ascending=False).head(trend_months + 1)
    records = latest.to_dict(orient="records")

    out: Dict[str, Any] = {}
    for key, col in MONTHLY_STATS_INDICATORS.items():
        current = _none_if_nan(records[0].get(col))
        previous = _none_if_nan(records[1].get(col)) if len(records) > 1 else None
        trend = [
            {"month": pd.Timestamp(r["date"]).strftime("%b"), "value": _none_if_nan(r.get(col))}
            for r in reversed(records[:trend_months])
        ]
        out[key] = {
            "current": current,
            "percentage": percentage_change(current, previous),
            "trend": trend,
        }
    return out


def monthly_stats(site: str) -> Dict[str, Any]:
    site = (site or "").strip()
    if not site:
        raise ValueError("site es obligatorio")
    df = load_collection("monthly_stats")
    df = df.loc[df["landing_site"].astype(str).str.casefold() == site.casefold()]
    return monthly_stats_table(df)


# ---------------------------------------------------------------------------
# Comparación interanual
# ---------------------------------------------------------------------------

def year_over_year(rows: Sequence[WideRow]) -> List[Dict[str, Any]]:
    """Media anual por sitio y cambio porcentual contra el año anterior.

    El cambio es ``None`` el primer año de cada sitio o si el año anterior no
    tiene valor.
    """
    annual = annual_rollup(list(rows))
    out: List[Dict[str, Any]] = []
    previous: Dict[str, float] = {}
    for row in annual:
        for site, value in sorted(row.values.items()):
            prev = previous.get(site)
            change = percentage_change(value, prev) if prev else None
            out.append({"year": row.date.year, "site": site, "value": value, "change_pct": change})
            previous[site] = value
        for site in list(previous):
            if site not in row.values:
                previous.pop(site)
    return out


def parse_range(date_from: Optional[str], date_to: Optional[str]) -> None:
    """Valida un rango de fechas (``date_from`` <= ``date_to``)."""
    start = parse_date_bound(date_from)
    end = parse_date_bound(date_to)
    if start is not None and end is not None and start > end:
        raise ValueError("date_from debe ser anterior o igual a date_to")
