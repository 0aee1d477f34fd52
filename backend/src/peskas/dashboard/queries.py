"""peskas.dashboard.queries

Capa de consultas del Dashboard sobre el document store.

Este módulo concentra la lectura y filtrado de las colecciones que alimentan
los endpoints HTTP:

- ``catch_monthly``: métricas mensuales de captura por BMU.
- ``monthly_summaries``: resúmenes mensuales por distrito (formato largo).
- ``district_summary``: indicadores por distrito y fecha.
- ``taxa_summaries``: métricas por distrito y especie.
- ``gear_distribution``: distribución de artes de pesca por sitio.
- ``individual_data``: registros por pescador.
- ``monthly_stats``: totales mensuales por sitio de desembarque.
- ``fish_distribution``: captura mensual por categoría de pescado y sitio.

Reglas de negocio
-----------------
1) Filtros estándar: lista de sitios (BMU/distrito), rango de fechas
   inclusivo y lista de métricas.
2) Las filas con valor nulo en la métrica no se convierten a cero: quedan
   fuera (ausentes) para que las capas superiores dibujen huecos.
3) El motor del document store es externo; cada colección se materializa como
   ``<data_dir>/<colección>.parquet`` y los filtros/agrupaciones se expresan
   con pandas.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple

import pandas as pd

from peskas.dashboard.rows import Observation
from peskas.utils.paths import collection_path

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Contrato de colecciones
# ---------------------------------------------------------------------------

COLLECTIONS: Dict[str, Tuple[str, ...]] = {
    "catch_monthly": (
        "BMU",
        "date",
        "mean_trip_catch",
        "mean_effort",
        "mean_cpue",
        "mean_cpua",
        "mean_rpue",
        "mean_rpua",
    ),
    "monthly_summaries": ("district", "date", "metric", "value"),
    "district_summary": ("district", "date", "indicator", "value"),
    "taxa_summaries": ("district", "common_name", "scientific_name", "metric", "value"),
    "gear_distribution": ("landing_site", "gear", "gear_n", "gear_perc"),
    "individual_data": ("date", "BMU", "gear", "fisher_id", "fisher_cpue", "fisher_rpue", "fisher_cost"),
    "monthly_stats": ("landing_site", "date", "tot_submissions", "tot_fishers", "tot_catches", "tot_kg"),
    "fish_distribution": ("landing_site", "date", "fish_category", "total_catch_kg"),
}

# Columna de sitio (BMU, distrito o sitio de desembarque) de cada colección.
SITE_COLUMNS: Dict[str, str] = {
    "catch_monthly": "BMU",
    "monthly_summaries": "district",
    "district_summary": "district",
    "taxa_summaries": "district",
    "gear_distribution": "landing_site",
    "individual_data": "BMU",
    "monthly_stats": "landing_site",
    "fish_distribution": "landing_site",
}

CATCH_METRICS: Tuple[str, ...] = (
    "mean_trip_catch",
    "mean_effort",
    "mean_cpue",
    "mean_cpua",
    "mean_rpue",
    "mean_rpua",
)


# ---------------------------------------------------------------------------
# Filtros
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class DashboardFilters:
    """Filtros estándar aplicables a las colecciones del Dashboard.

    Campos vacíos no filtran. El rango de fechas es inclusivo en ambos
    extremos.
    """

    sites: Tuple[str, ...] = ()
    date_from: Optional[str] = None
    date_to: Optional[str] = None
    metrics: Tuple[str, ...] = ()


def parse_date_bound(value: Any) -> Optional[pd.Timestamp]:
    """Parsea un límite de rango a ``Timestamp`` UTC (``None`` si vacío).

    Raises
    ------
    ValueError
        Si el valor no es una fecha reconocible.
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    try:
        ts = pd.Timestamp(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Fecha inválida: {value!r}") from exc
    if ts is pd.NaT:
        raise ValueError(f"Fecha inválida: {value!r}")
    return ts.tz_localize("UTC") if ts.tzinfo is None else ts.tz_convert("UTC")


def _clean_list(items: Optional[Sequence[Any]]) -> List[str]:
    return [str(x).strip() for x in (items or []) if x is not None and str(x).strip()]


def apply_filters(
    df: pd.DataFrame,
    f: DashboardFilters,
    *,
    site_col: Optional[str] = None,
    metric_col: Optional[str] = None,
    date_col: str = "date",
) -> pd.DataFrame:
    """Aplica filtros del Dashboard sobre un DataFrame de colección.

    Parameters
    ----------
    df:
        DataFrame leído desde el store.
    f:
        Filtros de Dashboard.
    site_col:
        Columna de sitio (``BMU``, ``district``, ``landing_site``). Si es None
        no se filtra por sitio.
    metric_col:
        Columna de métrica en colecciones de formato largo.
    date_col:
        Columna de fecha; si no existe, el filtro de fechas se ignora.

    Returns
    -------
    pandas.DataFrame
        Subconjunto filtrado (vía máscara booleana).
    """
    if df.empty:
        return df

    mask = pd.Series(True, index=df.index)

    sites = _clean_list(f.sites)
    if site_col and sites:
        if site_col not in df.columns:
            raise KeyError(f"La colección no contiene columna '{site_col}'")
        mask &= df[site_col].astype(str).str.strip().isin(sites)

    metrics = _clean_list(f.metrics)
    if metric_col and metrics:
        if metric_col not in df.columns:
            raise KeyError(f"La colección no contiene columna '{metric_col}'")
        mask &= df[metric_col].astype(str).isin(metrics)

    start = parse_date_bound(f.date_from)
    end = parse_date_bound(f.date_to)
    if date_col in df.columns and (start is not None or end is not None):
        dates = pd.to_datetime(df[date_col], utc=True, errors="coerce")
        if start is not None:
            mask &= dates.ge(start)
        if end is not None:
            mask &= dates.le(end)

    return df.loc[mask]


# ---------------------------------------------------------------------------
# Lectura de colecciones
# ---------------------------------------------------------------------------

def load_collection(name: str, columns: Optional[List[str]] = None) -> pd.DataFrame:
    """Carga una colección del store como DataFrame.

    Parameters
    ----------
    name:
        Nombre de la colección (ver ``COLLECTIONS``).
    columns:
        Lista opcional de columnas a leer.

    Raises
    ------
    ValueError
        Si la colección no es conocida.
    FileNotFoundError
        Si el parquet de la colección no existe.

    Returns
    -------
    pandas.DataFrame
        Con la columna ``date`` (si existe) normalizada a datetime UTC.
    """
    if name not in COLLECTIONS:
        raise ValueError(f"Colección desconocida: {name}. Soportadas={sorted(COLLECTIONS)}")
    path = collection_path(name)
    if not path.exists():
        raise FileNotFoundError(f"No existe {path.as_posix()} (colección {name})")

    df = pd.read_parquet(path, columns=columns)
    if "date" in df.columns:
        df["date"] = pd.to_datetime(df["date"], utc=True, errors="coerce")
    logger.debug("load_collection(%s): %d filas", name, len(df))
    return df


def _observations_from_frame(
    df: pd.DataFrame,
    *,
    site_col: str,
    metric: str,
    value_col: str,
) -> List[Observation]:
    out: List[Observation] = []
    if df.empty:
        return out
    values = pd.to_numeric(df[value_col], errors="coerce")
    for dt, site, value in zip(df["date"], df[site_col], values):
        if pd.isna(dt) or site is None:
            continue
        out.append(
            Observation(
                date=dt.to_pydatetime(),
                site=str(site),
                metric=metric,
                value=None if pd.isna(value) else float(value),
            )
        )
    return out


def catch_observations(metric: str, filters: DashboardFilters) -> List[Observation]:
    """Observaciones mensuales de captura por BMU para una métrica.

    Se excluyen documentos con ``mean_trip_catch`` nulo. El resultado se
    ordena por fecha ascendente (orden estable): en una colisión (mes, BMU)
    el pivot conserva el documento más reciente.

    Raises
    ------
    ValueError
        Si ``metric`` no está soportada.
    FileNotFoundError
        Si la colección no existe.
    """
    metric = (metric or "").strip()
    if metric not in CATCH_METRICS:
        raise ValueError(f"metric no soportada: {metric}. Soportadas={CATCH_METRICS}")

    df = load_collection("catch_monthly")
    df = apply_filters(df, filters, site_col="BMU")
    if "mean_trip_catch" in df.columns:
        df = df.loc[df["mean_trip_catch"].notna()]
    if metric not in df.columns:
        raise ValueError(f"La colección catch_monthly no contiene la métrica {metric}")

    df = df.sort_values("date", ascending=True, kind="mergesort")
    return _observations_from_frame(df, site_col="BMU", metric=metric, value_col=metric)


def district_observations(metric: str, filters: DashboardFilters) -> List[Observation]:
    """Observaciones de ``monthly_summaries`` (sitio = distrito) para una métrica."""
    metric = (metric or "").strip()
    if not metric:
        raise ValueError("metric es obligatoria")

    df = load_collection("monthly_summaries")
    scoped = DashboardFilters(
        sites=filters.sites,
        date_from=filters.date_from,
        date_to=filters.date_to,
        metrics=(metric,),
    )
    df = apply_filters(df, scoped, site_col="district", metric_col="metric")
    df = df.sort_values("date", ascending=True, kind="mergesort")
    return _observations_from_frame(df, site_col="district", metric=metric, value_col="value")


def list_sites(collection: str, site_col: Optional[str] = None) -> List[str]:
    """Catálogo de sitios distintos (sin nulos, orden alfabético).

    Si no se indica ``site_col`` se usa la columna de sitio de la colección
    (ver ``SITE_COLUMNS``).
    """
    if collection not in SITE_COLUMNS:
        raise ValueError(f"Colección desconocida: {collection}. Soportadas={sorted(SITE_COLUMNS)}")
    site_col = site_col or SITE_COLUMNS[collection]
    df = load_collection(collection, columns=[site_col])
    return sorted({str(x).strip() for x in df[site_col].dropna().tolist() if str(x).strip()})
