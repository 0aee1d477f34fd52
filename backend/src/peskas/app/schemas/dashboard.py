"""Esquemas (Pydantic) para la API del Dashboard de pesquerías.

Este módulo define contratos de respuesta **estables** para los endpoints
``/dashboard/*``, ``/catch/*``, ``/districts/*``, ``/taxa/*``, ``/gear/*``,
``/stats/*``, ``/composition/*`` y ``/fishers/*``.

Notas
-----
- Las filas anchas separan ``values`` (una clave por serie) de los campos
  derivados ``average``/``historical_average``.
- "Sin dato" se serializa como ``null`` o como clave ausente, nunca como 0.
"""

from __future__ import annotations

from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from peskas.dashboard.rows import ComparisonRow, WideRow, to_timestamp_ms


# ---------------------------------------------------------------------------
# Estado y colores
# ---------------------------------------------------------------------------

class CollectionStatus(BaseModel):
    """Estado mínimo de una colección del store."""

    name: str
    path: str = Field(..., description="Ruta relativa al repo (si es posible).")
    exists: bool
    mtime: Optional[str] = Field(None, description="Fecha de modificación ISO UTC.")


class DashboardStatus(BaseModel):
    """Contrato para ``GET /dashboard/status``."""

    collections: List[CollectionStatus] = Field(default_factory=list)
    ready: bool = Field(..., description="True si existen todas las colecciones.")


class ColorMap(BaseModel):
    """Contrato para ``GET /dashboard/colors``."""

    mode: str
    colors: Dict[str, str] = Field(default_factory=dict)


# ---------------------------------------------------------------------------
# Series anchas
# ---------------------------------------------------------------------------

class WideRowOut(BaseModel):
    date: str = Field(..., description="Fecha ISO (UTC) del periodo.")
    timestamp: int = Field(..., description="Epoch en milisegundos.")
    values: Dict[str, float] = Field(default_factory=dict)
    average: Optional[float] = None
    historical_average: Optional[float] = None

    @classmethod
    def from_row(cls, row: WideRow) -> "WideRowOut":
        return cls(**row.to_dict())


class SeriesResponse(BaseModel):
    """Serie mensual por sitio (``/catch/monthly``, ``/districts/timeseries``)."""

    metric: str
    series: List[str] = Field(default_factory=list)
    rows: List[WideRowOut] = Field(default_factory=list)
    colors: Dict[str, str] = Field(default_factory=dict)


class YearOverYearItem(BaseModel):
    year: int
    site: str
    value: float
    change_pct: Optional[float] = None


class AnnualResponse(BaseModel):
    metric: str
    restricted: bool = False
    series: List[str] = Field(default_factory=list)
    rows: List[WideRowOut] = Field(default_factory=list)
    year_over_year: List[YearOverYearItem] = Field(default_factory=list)
    colors: Dict[str, str] = Field(default_factory=dict)


class ComparisonRowOut(BaseModel):
    date: str
    timestamp: int
    actual: float
    baseline: float
    difference: float
    above_average: bool

    @classmethod
    def from_row(cls, row: ComparisonRow) -> "ComparisonRowOut":
        return cls(
            date=row.date.isoformat(),
            timestamp=to_timestamp_ms(row.date),
            actual=row.actual,
            baseline=row.baseline,
            difference=row.difference,
            above_average=row.above_average,
        )


class RecentResponse(BaseModel):
    """``/catch/recent``: delta contra la ventana reciente.

    ``mode`` es ``"cross_site"`` (filas con deltas por sitio) u
    ``"own_history"`` (usuarios restringidos, filas de comparación).
    """

    metric: str
    window: int
    mode: str
    rows: List[WideRowOut] = Field(default_factory=list)
    comparison: List[ComparisonRowOut] = Field(default_factory=list)
    colors: Dict[str, str] = Field(default_factory=dict)


class TrendPoint(BaseModel):
    timestamp: int
    difference: float


class TrendLineOut(BaseModel):
    slope: Optional[float] = None
    intercept: Optional[float] = None
    monthly_slope: Optional[float] = None
    status: str


class TrendResponse(BaseModel):
    metric: str
    site: str
    points: List[TrendPoint] = Field(default_factory=list)
    trend: TrendLineOut


# ---------------------------------------------------------------------------
# Captura: desempeño y radar
# ---------------------------------------------------------------------------

class PerformanceItem(BaseModel):
    bmu: str
    n_months: int
    avg_catch: Optional[float] = None
    avg_effort: Optional[float] = None
    avg_cpue: Optional[float] = None
    avg_cpua: Optional[float] = None
    total_catch: Optional[float] = None
    total_effort: Optional[float] = None
    catch_performance: Optional[float] = None
    effort_performance: Optional[float] = None
    cpue_performance: Optional[float] = None
    cpua_performance: Optional[float] = None


class PerformanceResponse(BaseModel):
    items: List[PerformanceItem] = Field(default_factory=list)


class RadarMonth(BaseModel):
    month: str
    values: Dict[str, float] = Field(default_factory=dict)


class RadarResponse(BaseModel):
    metric: str
    items: List[RadarMonth] = Field(default_factory=list)
    colors: Dict[str, str] = Field(default_factory=dict)


# ---------------------------------------------------------------------------
# Distritos
# ---------------------------------------------------------------------------

class Quartiles(BaseModel):
    q1: Optional[float] = None
    median: Optional[float] = None
    q3: Optional[float] = None


class DistrictSummaryItem(BaseModel):
    district: str
    indicators: Dict[str, Optional[float]] = Field(default_factory=dict)


class DistrictSummaryResponse(BaseModel):
    items: List[DistrictSummaryItem] = Field(default_factory=list)
    quartiles: Dict[str, Quartiles] = Field(default_factory=dict)


class RegionPoint(BaseModel):
    month: str = Field(..., description="Etiqueta corta, p. ej. 'Feb 25'.")
    date: str
    values: Dict[str, Optional[float]] = Field(default_factory=dict)


class RegionSeries(BaseModel):
    data: List[RegionPoint] = Field(default_factory=list)
    months: List[str] = Field(default_factory=list)


class RegionSummaryResponse(BaseModel):
    metrics: Dict[str, RegionSeries] = Field(default_factory=dict)


class HeatmapCell(BaseModel):
    district: str
    value: Optional[float] = None
    color: str
    text_color: str


class HeatmapResponse(BaseModel):
    indicator: str
    items: List[HeatmapCell] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Taxa y artes
# ---------------------------------------------------------------------------

class TaxaRow(BaseModel):
    district: str
    common_name: str
    scientific_name: Optional[str] = None
    metrics: Dict[str, float] = Field(default_factory=dict)


class TaxaSummariesResponse(BaseModel):
    items: List[TaxaRow] = Field(default_factory=list)


class DistrictValue(BaseModel):
    district: str
    value: float


class CompositionItem(BaseModel):
    common_name: str
    scientific_name: Optional[str] = None
    total_value: float
    share_pct: float = Field(..., description="Porcentaje del total (0..100).")
    districts: List[DistrictValue] = Field(default_factory=list)


class CompositionResponse(BaseModel):
    metric: str
    items: List[CompositionItem] = Field(default_factory=list)
    colors: Dict[str, str] = Field(default_factory=dict)


class GearDistributionItem(BaseModel):
    landing_site: str
    gears: Dict[str, float] = Field(default_factory=dict)


class GearDistributionResponse(BaseModel):
    items: List[GearDistributionItem] = Field(default_factory=list)
    colors: Dict[str, str] = Field(default_factory=dict)


class GearSummaryItem(BaseModel):
    bmu: str
    gear: str
    avg_cpue: Optional[float] = None
    avg_rpue: Optional[float] = None
    avg_cost: Optional[float] = None
    total_fishers: int
    cpue_quartiles: Quartiles


class GearSummaryResponse(BaseModel):
    items: List[GearSummaryItem] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Estadísticas mensuales
# ---------------------------------------------------------------------------

class TrendValue(BaseModel):
    month: str
    value: Optional[float] = None


class MonthlyStatIndicator(BaseModel):
    current: Optional[float] = None
    percentage: float = 0.0
    trend: List[TrendValue] = Field(default_factory=list)


class MonthlyStatsResponse(BaseModel):
    site: str
    indicators: Dict[str, MonthlyStatIndicator] = Field(default_factory=dict)


# ---------------------------------------------------------------------------
# Catálogo de sitios
# ---------------------------------------------------------------------------

class SitesResponse(BaseModel):
    """Contrato para ``GET /dashboard/sites``."""

    collection: str
    sites: List[str] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Composición por categoría de pescado
# ---------------------------------------------------------------------------

class FishRecord(BaseModel):
    date: str
    landing_site: str
    fish_category: str
    total_catch_kg: float


class FishRecordsResponse(BaseModel):
    items: List[FishRecord] = Field(default_factory=list)


class CategorySummaryItem(BaseModel):
    fish_category: str
    total_catch: float
    bmu_count: int


class CategorySummaryResponse(BaseModel):
    items: List[CategorySummaryItem] = Field(default_factory=list)
    colors: Dict[str, str] = Field(default_factory=dict)


class CategoryCatch(BaseModel):
    category: str
    total_catch: float


class CategoryTrendItem(BaseModel):
    month: str = Field(..., description="Mes 'YYYY-MM'.")
    date: str
    landing_site: str
    categories: List[CategoryCatch] = Field(default_factory=list)
    total_for_month: float


class CategoryTrendsResponse(BaseModel):
    items: List[CategoryTrendItem] = Field(default_factory=list)


class CategorySeriesResponse(BaseModel):
    """``/composition/series``: una categoría por sitio.

    ``mode`` es ``"cross_site"`` (filas con promedio entre sitios) u
    ``"own_history"`` (usuarios restringidos, comparación contra su histórico).
    """

    category: str
    mode: str
    series: List[str] = Field(default_factory=list)
    rows: List[WideRowOut] = Field(default_factory=list)
    comparison: List[ComparisonRowOut] = Field(default_factory=list)
    colors: Dict[str, str] = Field(default_factory=dict)


# ---------------------------------------------------------------------------
# Pescadores
# ---------------------------------------------------------------------------

class FisherPerformanceItem(BaseModel):
    fisher_id: str
    bmu: str
    avg_cpue: Optional[float] = None
    avg_rpue: Optional[float] = None
    avg_cost: Optional[float] = None
    total_trips: int
    primary_gear: Optional[str] = None


class FisherPerformanceResponse(BaseModel):
    items: List[FisherPerformanceItem] = Field(default_factory=list)


class FisherTrendItem(BaseModel):
    month: str
    date: str
    bmu: str
    avg_value: Optional[float] = None
    count: int


class FisherTrendsResponse(BaseModel):
    metric: str
    items: List[FisherTrendItem] = Field(default_factory=list)


class FisherRecord(BaseModel):
    date: str
    bmu: str
    gear: Optional[str] = None
    fisher_cpue: Optional[float] = None
    fisher_rpue: Optional[float] = None
    fisher_cost: Optional[float] = None


class FisherRecordsResponse(BaseModel):
    fisher_id: str
    items: List[FisherRecord] = Field(default_factory=list)


class GearValue(BaseModel):
    gear: Optional[str] = None
    value: float


class FisherMonthItem(BaseModel):
    month: str
    date: str
    avg_value: Optional[float] = None
    count: int
    gear_breakdown: List[GearValue] = Field(default_factory=list)


class FisherMonthlyResponse(BaseModel):
    fisher_id: str
    metric: str
    items: List[FisherMonthItem] = Field(default_factory=list)


class FisherSummaryResponse(BaseModel):
    fisher_id: str
    total_trips: int
    avg_cpue: Optional[float] = None
    avg_rpue: Optional[float] = None
    avg_cost: Optional[float] = None
    total_cost: float
    total_revenue: float
    net_profit: float
    gears_used: List[str] = Field(default_factory=list)
    bmus_visited: List[str] = Field(default_factory=list)
    latest_trip: Optional[str] = None
    earliest_trip: Optional[str] = None
