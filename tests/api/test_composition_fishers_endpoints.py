"""Tests de API para ``/composition/*`` y ``/fishers/*``."""

from __future__ import annotations

import pytest

from peskas.dashboard.colors import AVERAGE_COLOR, HISTORICAL_AVERAGE_COLOR, REFERENCE_COLOR

CIA_KIZIMKAZI = {"X-User-Groups": "CIA", "X-User-Bmu": "Kizimkazi"}


# ---------------------------------------------------------------------------
# /composition
# ---------------------------------------------------------------------------

def test_composition_monthly(client, store):
    items = client.get("/composition/monthly").json()["items"]
    assert len(items) == 4
    assert items[0] == {
        "date": "2024-01-01T00:00:00+00:00",
        "landing_site": "Kizimkazi",
        "fish_category": "Octopus",
        "total_catch_kg": 30.0,
    }

    restricted = client.get("/composition/monthly", headers={"X-User-Groups": "CIA", "X-User-Bmu": "Mkokotoni"})
    assert [i["landing_site"] for i in restricted.json()["items"]] == ["Mkokotoni"]


def test_composition_categories(client, store):
    body = client.get("/composition/categories").json()
    assert body["items"] == [
        {"fish_category": "Octopus", "total_catch": 100.0, "bmu_count": 2},
        {"fish_category": "Tuna", "total_catch": 10.0, "bmu_count": 1},
    ]
    assert set(body["colors"]) == {"Octopus", "Tuna", "average"}


def test_composition_trends(client, store):
    items = client.get("/composition/trends").json()["items"]
    assert [(i["month"], i["landing_site"], i["total_for_month"]) for i in items] == [
        ("2024-01", "Kizimkazi", 40.0),
        ("2024-01", "Mkokotoni", 20.0),
        ("2024-02", "Kizimkazi", 50.0),
    ]

    only_tuna = client.get("/composition/trends", params={"categories": "Tuna"}).json()["items"]
    assert [i["categories"] for i in only_tuna] == [[{"category": "Tuna", "total_catch": 10.0}]]


def test_composition_series_cross_site(client, store):
    body = client.get("/composition/series", params={"category": "Octopus"}).json()

    assert body["mode"] == "cross_site"
    assert body["series"] == ["Kizimkazi", "Mkokotoni"]
    assert [r["values"] for r in body["rows"]] == [{"Kizimkazi": 30.0, "Mkokotoni": 20.0}, {"Kizimkazi": 50.0}]
    assert body["rows"][0]["average"] == pytest.approx(25.0)
    assert body["colors"]["average"] == AVERAGE_COLOR
    assert body["comparison"] == []


def test_composition_series_own_history_for_restricted_user(client, store):
    r = client.get("/composition/series", params={"category": "Octopus", "window": 1}, headers=CIA_KIZIMKAZI)
    body = r.json()

    assert body["mode"] == "own_history"
    assert body["series"] == ["Kizimkazi"]
    assert body["rows"] == []
    assert [(c["actual"], c["baseline"], c["difference"]) for c in body["comparison"]] == [
        (30.0, 50.0, -20.0),
        (50.0, 50.0, 0.0),
    ]
    assert body["colors"] == {
        "Kizimkazi": REFERENCE_COLOR,
        "average": AVERAGE_COLOR,
        "historical_average": HISTORICAL_AVERAGE_COLOR,
    }


def test_composition_validation_and_missing_store(client, store, tmp_path, monkeypatch):
    assert client.get("/composition/series", params={"category": "  "}).status_code == 400
    assert client.get("/composition/series").status_code == 422
    assert client.get("/composition/categories", params={"date_from": "ayer"}).status_code == 400

    monkeypatch.setenv("PESKAS_DATA_DIR", str(tmp_path / "nada"))
    assert client.get("/composition/monthly").status_code == 404


# ---------------------------------------------------------------------------
# /fishers
# ---------------------------------------------------------------------------

def test_fishers_performance(client, store):
    items = client.get("/fishers/performance").json()["items"]
    assert [i["fisher_id"] for i in items] == ["f4", "f3", "f2", "f1"]
    assert items[0]["primary_gear"] == "gillnet"

    limited = client.get("/fishers/performance", params={"limit": 1}, headers=CIA_KIZIMKAZI).json()["items"]
    assert [i["fisher_id"] for i in limited] == ["f3"]
    assert client.get("/fishers/performance", params={"limit": 0}).status_code == 422


def test_fishers_trends(client, store):
    body = client.get("/fishers/trends").json()
    assert body["metric"] == "fisher_cpue"
    assert [(i["month"], i["bmu"], i["avg_value"], i["count"]) for i in body["items"]] == [
        ("2024-01", "Kizimkazi", 2.0, 3),
        ("2024-02", "Mkokotoni", 4.0, 1),
    ]
    assert client.get("/fishers/trends", params={"metric": "tot_kg"}).status_code == 400


def test_single_fisher_views(client, store):
    records = client.get("/fishers/f4/records").json()
    assert records["fisher_id"] == "f4"
    assert [r["gear"] for r in records["items"]] == ["gillnet"]

    monthly = client.get("/fishers/f4/trends", params={"metric": "fisher_rpue"}).json()
    assert monthly["items"][0]["month"] == "2024-02"
    assert monthly["items"][0]["gear_breakdown"] == [{"gear": "gillnet", "value": 40.0}]

    summary = client.get("/fishers/f1/summary").json()
    assert summary["total_trips"] == 1
    assert summary["net_profit"] == 5.0
    assert summary["gears_used"] == ["handline"]


def test_fisher_summary_unknown_fisher(client, store):
    assert client.get("/fishers/nobody/summary").status_code == 404
    assert client.get("/fishers/f1/records", params={"date_to": "no-es-fecha"}).status_code == 400
