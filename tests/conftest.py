# tests/conftest.py
"""Fixtures compartidas.

Los tests son herméticos: cada uno arma un store mínimo (un parquet por
colección) en ``tmp_path`` y apunta ``PESKAS_DATA_DIR`` a ese directorio.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List

import pandas as pd
import pytest
from fastapi.testclient import TestClient

from peskas.app.deps import REGISTRY_STORE
from peskas.app.main import app


def _ts(value: str) -> pd.Timestamp:
    return pd.Timestamp(value)


CATCH_MONTHLY: List[Dict[str, Any]] = [
    # 2022 queda fuera de las series (primer año graficado: 2023)
    {"BMU": "Kizimkazi", "date": _ts("2022-12-15"), "mean_trip_catch": 100.0, "mean_effort": 1.0,
     "mean_cpue": 1.0, "mean_cpua": 1.0, "mean_rpue": 1.0, "mean_rpua": 1.0},
    {"BMU": "Kizimkazi", "date": _ts("2023-01-15"), "mean_trip_catch": 10.0, "mean_effort": 2.0,
     "mean_cpue": 1.0, "mean_cpua": 1.0, "mean_rpue": 1.0, "mean_rpua": 1.0},
    {"BMU": "Kizimkazi", "date": _ts("2023-02-15"), "mean_trip_catch": 20.0, "mean_effort": 2.0,
     "mean_cpue": 1.0, "mean_cpua": 1.0, "mean_rpue": 1.0, "mean_rpua": 1.0},
    {"BMU": "Kizimkazi", "date": _ts("2024-01-15"), "mean_trip_catch": 30.0, "mean_effort": 2.0,
     "mean_cpue": 1.0, "mean_cpua": 1.0, "mean_rpue": 1.0, "mean_rpua": 1.0},
    {"BMU": "Kizimkazi", "date": _ts("2024-02-15"), "mean_trip_catch": 40.0, "mean_effort": 2.0,
     "mean_cpue": 1.0, "mean_cpua": 1.0, "mean_rpue": 1.0, "mean_rpua": 1.0},
    {"BMU": "Mkokotoni", "date": _ts("2023-01-15"), "mean_trip_catch": 5.0, "mean_effort": 1.0,
     "mean_cpue": 2.0, "mean_cpua": 2.0, "mean_rpue": 2.0, "mean_rpua": 2.0},
    # mean_trip_catch nulo: el documento completo se excluye
    {"BMU": "Mkokotoni", "date": _ts("2023-02-15"), "mean_trip_catch": None, "mean_effort": 9.0,
     "mean_cpue": 9.0, "mean_cpua": 9.0, "mean_rpue": 9.0, "mean_rpua": 9.0},
    {"BMU": "Mkokotoni", "date": _ts("2024-01-15"), "mean_trip_catch": 15.0, "mean_effort": 1.0,
     "mean_cpue": 2.0, "mean_cpua": 2.0, "mean_rpue": 2.0, "mean_rpua": 2.0},
    {"BMU": "Mkokotoni", "date": _ts("2024-02-15"), "mean_trip_catch": 25.0, "mean_effort": 1.0,
     "mean_cpue": 2.0, "mean_cpua": 2.0, "mean_rpue": 2.0, "mean_rpua": 2.0},
]

MONTHLY_SUMMARIES: List[Dict[str, Any]] = [
    {"district": "Central", "date": _ts("2024-01-01"), "metric": "mean_cpue", "value": 2.0},
    {"district": "Central", "date": _ts("2024-02-01"), "metric": "mean_cpue", "value": 4.0},
    {"district": "Wete", "date": _ts("2024-01-01"), "metric": "mean_cpue", "value": 6.0},
    {"district": "Wete", "date": _ts("2024-03-01"), "metric": "mean_cpue", "value": 0.0},
    {"district": "Wete", "date": _ts("2024-01-01"), "metric": "n_fishers", "value": 30.0},
]

DISTRICT_SUMMARY: List[Dict[str, Any]] = [
    {"district": "Central", "date": _ts("2024-01-01"), "indicator": "n_submissions", "value": 10.0},
    {"district": "Central", "date": _ts("2024-02-01"), "indicator": "n_submissions", "value": 20.0},
    {"district": "Central", "date": _ts("2024-01-01"), "indicator": "mean_cpue", "value": 2.0},
    {"district": "Central", "date": _ts("2024-02-01"), "indicator": "mean_cpue", "value": 4.0},
    {"district": "Wete", "date": _ts("2024-01-01"), "indicator": "n_submissions", "value": 5.0},
    {"district": "Wete", "date": _ts("2024-01-01"), "indicator": "mean_cpue", "value": 6.0},
    {"district": "Chake Chake", "date": _ts("2024-02-01"), "indicator": "mean_cpue", "value": 1.0},
]

TAXA_SUMMARIES: List[Dict[str, Any]] = [
    {"district": "Central", "common_name": "Octopus", "scientific_name": "Octopus cyanea",
     "metric": "catch_kg", "value": 60.0},
    {"district": "Central", "common_name": "Octopus", "scientific_name": "Octopus cyanea",
     "metric": "price_kg", "value": 5.0},
    {"district": "Wete", "common_name": "Octopus", "scientific_name": "Octopus cyanea",
     "metric": "catch_kg", "value": 20.0},
    {"district": "Central", "common_name": "Rabbitfish", "scientific_name": "Siganus sutor",
     "metric": "catch_kg", "value": 20.0},
    {"district": "Wete", "common_name": "Rabbitfish", "scientific_name": "Siganus sutor",
     "metric": "catch_kg", "value": None},
    {"district": "Wete", "common_name": "Rabbitfish", "scientific_name": "Siganus sutor",
     "metric": "price_kg", "value": 3.0},
]

GEAR_DISTRIBUTION: List[Dict[str, Any]] = [
    {"landing_site": "Kizimkazi", "gear": "handline", "gear_n": 6, "gear_perc": 60.0},
    {"landing_site": "Kizimkazi", "gear": "gillnet", "gear_n": 4, "gear_perc": 40.0},
    {"landing_site": "Mkokotoni", "gear": "seine net", "gear_n": 10, "gear_perc": 100.0},
]

INDIVIDUAL_DATA: List[Dict[str, Any]] = [
    {"date": _ts("2024-01-10"), "BMU": "Kizimkazi", "gear": "handline", "fisher_id": "f1",
     "fisher_cpue": 1.0, "fisher_rpue": 10.0, "fisher_cost": 5.0},
    {"date": _ts("2024-01-11"), "BMU": "Kizimkazi", "gear": "handline", "fisher_id": "f2",
     "fisher_cpue": 2.0, "fisher_rpue": 20.0, "fisher_cost": 5.0},
    {"date": _ts("2024-01-12"), "BMU": "Kizimkazi", "gear": "handline", "fisher_id": "f3",
     "fisher_cpue": 3.0, "fisher_rpue": 30.0, "fisher_cost": 5.0},
    {"date": _ts("2024-02-01"), "BMU": "Mkokotoni", "gear": "gillnet", "fisher_id": "f4",
     "fisher_cpue": 4.0, "fisher_rpue": 40.0, "fisher_cost": 7.333333},
]

MONTHLY_STATS: List[Dict[str, Any]] = [
    {"landing_site": "kenyatta", "date": _ts(f"2024-{m:02d}-01"), "tot_submissions": 10.0 * m,
     "tot_fishers": 5.0, "tot_catches": float(m), "tot_kg": 0.0}
    for m in range(1, 9)
]

FISH_DISTRIBUTION: List[Dict[str, Any]] = [
    {"landing_site": "Kizimkazi", "date": _ts("2024-01-01"), "fish_category": "Octopus", "total_catch_kg": 30.0},
    {"landing_site": "Kizimkazi", "date": _ts("2024-01-01"), "fish_category": "Tuna", "total_catch_kg": 10.0},
    {"landing_site": "Mkokotoni", "date": _ts("2024-01-01"), "fish_category": "Octopus", "total_catch_kg": 20.0},
    {"landing_site": "Kizimkazi", "date": _ts("2024-02-01"), "fish_category": "Octopus", "total_catch_kg": 50.0},
    # captura nula: se excluye
    {"landing_site": "Mkokotoni", "date": _ts("2024-02-01"), "fish_category": "Tuna", "total_catch_kg": None},
]

COLLECTION_DATA: Dict[str, List[Dict[str, Any]]] = {
    "catch_monthly": CATCH_MONTHLY,
    "monthly_summaries": MONTHLY_SUMMARIES,
    "district_summary": DISTRICT_SUMMARY,
    "taxa_summaries": TAXA_SUMMARIES,
    "gear_distribution": GEAR_DISTRIBUTION,
    "individual_data": INDIVIDUAL_DATA,
    "monthly_stats": MONTHLY_STATS,
    "fish_distribution": FISH_DISTRIBUTION,
}


def write_collection(data_dir: Path, name: str, records: List[Dict[str, Any]]) -> Path:
    """Escribe ``records`` como ``<data_dir>/<name>.parquet``."""
    data_dir.mkdir(parents=True, exist_ok=True)
    path = data_dir / f"{name}.parquet"
    pd.DataFrame.from_records(records).to_parquet(path, index=False)
    return path


@pytest.fixture
def store(tmp_path, monkeypatch) -> Path:
    """Store completo en ``tmp_path/store`` con todas las colecciones."""
    data_dir = tmp_path / "store"
    for name, records in COLLECTION_DATA.items():
        write_collection(data_dir, name, records)
    monkeypatch.setenv("PESKAS_DATA_DIR", str(data_dir))
    monkeypatch.delenv("PESKAS_MIN_YEAR", raising=False)
    monkeypatch.delenv("PESKAS_RECENT_WINDOW", raising=False)
    return data_dir


@pytest.fixture
def empty_store(tmp_path, monkeypatch) -> Path:
    """Store sin colecciones (todas las lecturas dan 404)."""
    data_dir = tmp_path / "empty"
    data_dir.mkdir()
    monkeypatch.setenv("PESKAS_DATA_DIR", str(data_dir))
    return data_dir


@pytest.fixture(autouse=True)
def _fresh_color_registries():
    REGISTRY_STORE.clear()
    yield
    REGISTRY_STORE.clear()


@pytest.fixture(scope="session")
def client():
    return TestClient(app)
