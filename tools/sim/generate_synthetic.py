#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
Genera un store sintético (un parquet por colección) compatible con la API de Peskas.

Colecciones:
- catch_monthly      (BMU, date, mean_trip_catch, mean_effort, mean_cpue, mean_cpua, mean_rpue, mean_rpua)
- monthly_summaries  (district, date, metric, value)
- district_summary   (district, date, indicator, value)
- taxa_summaries     (district, common_name, scientific_name, metric, value)
- gear_distribution  (landing_site, gear, gear_n, gear_perc)
- individual_data    (date, BMU, gear, fisher_id, fisher_cpue, fisher_rpue, fisher_cost)
- monthly_stats      (landing_site, date, tot_submissions, tot_fishers, tot_catches, tot_kg)
- fish_distribution  (landing_site, date, fish_category, total_catch_kg)

Uso:
  python tools/sim/generate_synthetic.py --out data/store
  python tools/sim/generate_synthetic.py --out data/store --start 2022-01 --months 36 --seed 7
"""
import argparse
import os

import numpy as np
import pandas as pd

BMUS = ["Bweleo", "Kizimkazi", "Kukuu", "Mkokotoni", "Nungwi", "kenyatta"]
DISTRICTS = ["Central", "Chake Chake", "Micheweni", "Mkoani", "North A", "North B", "South", "Urban", "West", "Wete"]
GEARS = ["handline", "gillnet", "seine net", "spear", "trap"]
SPECIES = [
    ("Octopus", "Octopus cyanea"),
    ("Rabbitfish", "Siganus sutor"),
    ("Emperor", "Lethrinus harak"),
    ("Parrotfish", "Scarus ghobban"),
    ("Sardine", "Sardinella gibbosa"),
]
FISH_CATEGORIES = ["Octopus", "Tuna", "Rabbitfish", "Emperor", "Squid", "Other"]
DISTRICT_INDICATORS = [
    "n_submissions", "n_fishers", "trip_duration", "mean_cpue",
    "mean_rpue", "mean_price_kg", "estimated_revenue_TZS", "estimated_catch_tn",
]


def _catch_monthly(rng, dates):
    rows = []
    for bmu in BMUS:
        level = rng.uniform(5, 25)
        for d in dates:
            seasonal = 1 + 0.3 * np.sin(2 * np.pi * d.month / 12)
            trip_catch = level * seasonal * rng.lognormal(0, 0.2)
            effort = rng.uniform(2, 8)
            rows.append({
                "BMU": bmu,
                "date": d,
                # ~5% de meses sin dato de captura
                "mean_trip_catch": None if rng.random() < 0.05 else trip_catch,
                "mean_effort": effort,
                "mean_cpue": trip_catch / effort,
                "mean_cpua": trip_catch / rng.uniform(1, 4),
                "mean_rpue": trip_catch / effort * rng.uniform(3000, 6000),
                "mean_rpua": trip_catch * rng.uniform(1000, 3000),
            })
    return pd.DataFrame(rows)


def _district_long(rng, dates, key):
    rows = []
    for district in DISTRICTS:
        for d in dates:
            for ind in DISTRICT_INDICATORS:
                if rng.random() < 0.05:
                    continue
                scale = 1000.0 if ind.startswith("estimated") else 10.0
                rows.append({"district": district, "date": d, key: ind, "value": rng.gamma(2.0, scale)})
    return pd.DataFrame(rows)


def _taxa(rng):
    rows = []
    for district in DISTRICTS:
        for common, scientific in SPECIES:
            for metric, scale in (("catch_kg", 500.0), ("mean_length", 20.0), ("price_kg", 4000.0),
                                  ("n_individuals", 300.0), ("total_value", 1e6)):
                value = None if rng.random() < 0.1 else rng.gamma(2.0, scale / 2)
                rows.append({"district": district, "common_name": common, "scientific_name": scientific,
                             "metric": metric, "value": value})
    return pd.DataFrame(rows)


def _gear_distribution(rng):
    rows = []
    for site in BMUS:
        counts = rng.integers(0, 20, size=len(GEARS))
        total = max(int(counts.sum()), 1)
        for gear, n in zip(GEARS, counts):
            if n:
                rows.append({"landing_site": site, "gear": gear, "gear_n": int(n), "gear_perc": 100.0 * n / total})
    return pd.DataFrame(rows)


def _individual(rng, dates, n):
    picks = rng.integers(0, len(dates), size=n)
    return pd.DataFrame({
        "date": [dates[i] + pd.Timedelta(days=int(rng.integers(0, 27))) for i in picks],
        "BMU": rng.choice(BMUS, size=n),
        "gear": rng.choice(GEARS, size=n),
        "fisher_id": [f"fisher-{i:05d}" for i in rng.integers(0, n // 3 + 1, size=n)],
        "fisher_cpue": rng.gamma(2.0, 1.5, size=n),
        "fisher_rpue": rng.gamma(2.0, 6000.0, size=n),
        "fisher_cost": rng.gamma(2.0, 2500.0, size=n),
    })


def _monthly_stats(rng, dates):
    rows = []
    for site in BMUS:
        for d in dates:
            subs = int(rng.integers(10, 120))
            rows.append({
                "landing_site": site,
                "date": d,
                "tot_submissions": subs,
                "tot_fishers": int(subs * rng.uniform(1.0, 2.5)),
                "tot_catches": int(subs * rng.uniform(2, 6)),
                "tot_kg": float(subs * rng.uniform(5, 30)),
            })
    return pd.DataFrame(rows)


def _fish_distribution(rng, dates):
    rows = []
    for site in BMUS:
        for d in dates:
            for category in FISH_CATEGORIES:
                if rng.random() < 0.2:
                    continue
                rows.append({
                    "landing_site": site,
                    "date": d,
                    "fish_category": category,
                    "total_catch_kg": None if rng.random() < 0.03 else float(rng.gamma(2.0, 80.0)),
                })
    return pd.DataFrame(rows)


def main():
    ap = argparse.ArgumentParser()
    ap.add_argument("--out", required=True, help="Directorio de salida del store")
    ap.add_argument("--start", default="2023-01", help="Primer mes (YYYY-MM)")
    ap.add_argument("--months", type=int, default=24, help="Meses a generar")
    ap.add_argument("--individuals", type=int, default=2000, help="Registros de individual_data")
    ap.add_argument("--seed", type=int, default=42)
    args = ap.parse_args()
    rng = np.random.default_rng(args.seed)

    dates = list(pd.date_range(start=f"{args.start}-01", periods=args.months, freq="MS"))
    collections = {
        "catch_monthly": _catch_monthly(rng, dates),
        "monthly_summaries": _district_long(rng, dates, "metric"),
        "district_summary": _district_long(rng, dates, "indicator"),
        "taxa_summaries": _taxa(rng),
        "gear_distribution": _gear_distribution(rng),
        "individual_data": _individual(rng, dates, args.individuals),
        "monthly_stats": _monthly_stats(rng, dates),
        "fish_distribution": _fish_distribution(rng, dates),
    }

    os.makedirs(args.out, exist_ok=True)
    for name, df in collections.items():
        df.to_parquet(os.path.join(args.out, f"{name}.parquet"), index=False)
        print(f"[OK] {name}: {len(df)} filas")

    print(f"[OK] Store sintético escrito en: {args.out}")


if __name__ == "__main__":
    main()
