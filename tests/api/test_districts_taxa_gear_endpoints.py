"""Tests de API para ``/districts/*``, ``/taxa/*``, ``/gear/*`` y ``/stats/*``."""

from __future__ import annotations

import pytest

from peskas.dashboard.colors import KNOWN_SITE_COLORS


def test_districts_summary(client, store):
    body = client.get("/districts/summary").json()
    items = {i["district"]: i["indicators"] for i in body["items"]}

    assert items["Central"]["n_submissions"] == 30.0
    assert items["Central"]["mean_cpue"] == 3.0
    assert items["Chake Chake"]["n_submissions"] is None
    assert body["quartiles"]["mean_cpue"] == {"q1": 2.0, "median": 3.0, "q3": 4.5}


def test_districts_summary_inverted_range_is_400(client, store):
    r = client.get("/districts/summary", params={"date_from": "2024-03-01", "date_to": "2024-01-01"})
    assert r.status_code == 400


def test_districts_regions(client, store):
    body = client.get("/districts/regions", params={"months": 3}).json()
    cpue = body["metrics"]["mean_cpue"]

    assert cpue["months"] == ["Jan 24", "Feb 24"]
    assert cpue["data"][1]["values"] == {"Unguja": 4.0, "Pemba": 1.0}


def test_districts_timeseries(client, store):
    body = client.get("/districts/timeseries", params={"metric": "mean_cpue"}).json()

    assert body["series"] == ["Central", "Wete"]
    assert [r["date"][:7] for r in body["rows"]] == ["2024-01", "2024-02", "2024-03"]
    assert body["rows"][0]["average"] == pytest.approx(4.0)
    # Wete 2024-03 = 0: el valor se conserva pero no cuenta para el promedio
    assert body["rows"][2]["values"] == {"Wete": 0.0}
    assert body["rows"][2]["average"] is None
    assert body["colors"]["Central"] == KNOWN_SITE_COLORS["central"]


def test_districts_timeseries_requires_metric(client, store):
    assert client.get("/districts/timeseries").status_code == 422


def test_districts_heatmap(client, store):
    body = client.get("/districts/heatmap", params={"metric": "mean_cpue"}).json()
    cells = {c["district"]: c for c in body["items"]}

    assert body["indicator"] == "mean_cpue"
    assert cells["Wete"] == {"district": "Wete", "value": 6.0, "color": "#253494", "text_color": "#fff"}
    assert cells["Chake Chake"]["color"] == "#ffffd9"


def test_districts_heatmap_unknown_metric_is_400(client, store):
    assert client.get("/districts/heatmap", params={"metric": "landings"}).status_code == 400


def test_taxa_summaries(client, store):
    body = client.get("/taxa/summaries", params={"districts": "Central", "metrics": "catch_kg"}).json()
    assert body["items"] == [
        {"district": "Central", "common_name": "Octopus", "scientific_name": "Octopus cyanea",
         "metrics": {"catch_kg": 60.0}},
        {"district": "Central", "common_name": "Rabbitfish", "scientific_name": "Siganus sutor",
         "metrics": {"catch_kg": 20.0}},
    ]


def test_taxa_composition(client, store):
    body = client.get("/taxa/composition").json()

    assert body["metric"] == "catch_kg"
    assert [(i["common_name"], i["share_pct"]) for i in body["items"]] == [("Octopus", 80.0), ("Rabbitfish", 20.0)]
    assert set(body["colors"]) == {"Octopus", "Rabbitfish", "average"}


def test_taxa_composition_unknown_metric_is_400(client, store):
    assert client.get("/taxa/composition", params={"metric": "weight"}).status_code == 400


def test_gear_distribution(client, store):
    body = client.get("/gear/distribution", params={"sites": "Kizimkazi"}).json()
    assert body["items"] == [{"landing_site": "Kizimkazi", "gears": {"handline": 60.0, "gillnet": 40.0}}]
    assert set(body["colors"]) == {"gillnet", "handline", "average"}


def test_gear_summary_restricted_user(client, store):
    headers = {"X-User-Groups": "CIA", "X-User-Bmu": "Mkokotoni"}
    items = client.get("/gear/summary", headers=headers).json()["items"]

    assert len(items) == 1
    assert items[0]["bmu"] == "Mkokotoni"
    assert items[0]["avg_cost"] == 7.33
    assert items[0]["total_fishers"] == 1


def test_stats_monthly(client, store):
    body = client.get("/stats/monthly", params={"site": "kenyatta"}).json()

    assert body["site"] == "kenyatta"
    assert body["indicators"]["submissions"]["current"] == 80.0
    assert body["indicators"]["submissions"]["percentage"] == 14.29
    assert len(body["indicators"]["fishers"]["trend"]) == 6


def test_stats_monthly_unknown_site_is_400(client, store):
    assert client.get("/stats/monthly", params={"site": "nowhere"}).status_code == 400


def test_missing_collections_are_404(client, empty_store):
    for path in ("/districts/summary", "/taxa/summaries", "/gear/distribution", "/stats/monthly?site=x"):
        assert client.get(path).status_code == 404, path
