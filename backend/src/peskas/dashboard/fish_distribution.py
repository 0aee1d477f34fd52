"""peskas.dashboard.fish_distribution

Composición de la captura por categoría de pescado y sitio de desembarque.

Se apoya en la colección ``fish_distribution`` (``landing_site``, ``date``,
``fish_category``, ``total_catch_kg``) y expone:

- ``monthly_records``: registros mensuales crudos (sin captura nula).
- ``category_summary``: captura total por categoría y número de sitios.
- ``monthly_category_trends``: por (mes, sitio), la captura de cada
  categoría y el total del mes.
- ``category_observations``: convierte las tendencias de una categoría en
  :class:`Observation` para reutilizar el pivot y las series derivadas
  (promedio entre sitios, comparación contra el histórico propio).
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence

import pandas as pd

from peskas.dashboard.queries import DashboardFilters, apply_filters, load_collection
from peskas.dashboard.rows import Observation

logger = logging.getLogger(__name__)

COLLECTION = "fish_distribution"


def _with_catch(df: pd.DataFrame) -> pd.DataFrame:
    if df.empty:
        return df
    work = df.copy()
    work["total_catch_kg"] = pd.to_numeric(work["total_catch_kg"], errors="coerce")
    return work.loc[work["total_catch_kg"].notna() & work["date"].notna()].copy()


def _load(filters: DashboardFilters, categories: Optional[Sequence[str]] = None) -> pd.DataFrame:
    df = load_collection(COLLECTION)
    df = apply_filters(df, filters, site_col="landing_site")
    if categories:
        df = df.loc[df["fish_category"].astype(str).isin([str(c) for c in categories])]
    return _with_catch(df)


def records_table(df: pd.DataFrame) -> List[Dict[str, Any]]:
    """Registros ``{date, landing_site, fish_category, total_catch_kg}`` por fecha y categoría."""
    work = _with_catch(df)
    if work.empty:
        return []
    work = work.sort_values(["date", "fish_category"], kind="mergesort")
    return [
        {
            "date": pd.Timestamp(r["date"]).isoformat(),
            "landing_site": str(r["landing_site"]),
            "fish_category": str(r["fish_category"]),
            "total_catch_kg": float(r["total_catch_kg"]),
        }
        for r in work.to_dict(orient="records")
    ]


def monthly_records(filters: DashboardFilters) -> List[Dict[str, Any]]:
    return records_table(_load(filters))


def category_summary_table(df: pd.DataFrame) -> List[Dict[str, Any]]:
    """Captura total por categoría y cantidad de sitios que la reportan.

    Orden descendente por captura total.
    """
    work = _with_catch(df)
    if work.empty:
        return []
    grouped = work.groupby("fish_category").agg(
        total_catch=("total_catch_kg", "sum"),
        bmu_count=("landing_site", "nunique"),
    )
    out = [
        {"fish_category": str(cat), "total_catch": float(row.total_catch), "bmu_count": int(row.bmu_count)}
        for cat, row in grouped.iterrows()
    ]
    out.sort(key=lambda r: (-r["total_catch"], r["fish_category"]))
    return out


def category_summary(filters: DashboardFilters) -> List[Dict[str, Any]]:
    return category_summary_table(_load(filters))


def monthly_category_trends_table(df: pd.DataFrame) -> List[Dict[str, Any]]:
    """Una fila por (mes, sitio) con la captura de cada categoría.

    ``total_for_month`` suma todas las categorías del sitio en el mes. Orden
    ascendente por fecha y luego por sitio.
    """
    work = _with_catch(df)
    if work.empty:
        return []
    work["month"] = pd.to_datetime(work["date"], utc=True).dt.strftime("%Y-%m")
    sums = work.groupby(["month", "landing_site", "fish_category"])["total_catch_kg"].sum()

    out: List[Dict[str, Any]] = []
    for (month, site), per_cat in sums.groupby(level=[0, 1]):
        categories = [
            {"category": str(cat), "total_catch": float(v)}
            for (_, _, cat), v in per_cat.items()
        ]
        out.append(
            {
                "month": month,
                "date": pd.Timestamp(f"{month}-01", tz="UTC").isoformat(),
                "landing_site": str(site),
                "categories": categories,
                "total_for_month": float(per_cat.sum()),
            }
        )
    out.sort(key=lambda r: (r["date"], r["landing_site"]))
    return out


def monthly_category_trends(
    filters: DashboardFilters,
    categories: Optional[Sequence[str]] = None,
) -> List[Dict[str, Any]]:
    return monthly_category_trends_table(_load(filters, categories))


def category_observations(trends: Sequence[Dict[str, Any]], category: str) -> List[Observation]:
    """Observaciones (sitio = sitio de desembarque) de una categoría.

    Meses donde el sitio no reporta la categoría quedan ausentes.
    """
    out: List[Observation] = []
    for row in trends:
        for item in row["categories"]:
            if item["category"] == category:
                out.append(
                    Observation(
                        date=pd.Timestamp(row["date"]).to_pydatetime(),
                        site=row["landing_site"],
                        metric=category,
                        value=item["total_catch"],
                    )
                )
    logger.debug("category_observations(%s): %d observaciones", category, len(out))
    return out
