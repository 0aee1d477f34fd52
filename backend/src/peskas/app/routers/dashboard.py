"""Router ``/dashboard/*``: estado del store y colores de la sesión.

- ``/dashboard/status`` no lee parquets; solo inspecciona existencia y mtime.
- ``/dashboard/sites`` lista los sitios de una colección visibles para el usuario.
- ``/dashboard/colors`` resuelve colores con el registro de la sesión, de
  modo que la misma serie conserve su color entre gráficas.
"""

from __future__ import annotations

import time
from pathlib import Path
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from peskas.app.deps import get_color_registry, get_user_context, split_csv
from peskas.app.schemas.dashboard import CollectionStatus, ColorMap, DashboardStatus, SitesResponse
from peskas.dashboard.colors import ColorRegistry
from peskas.dashboard.permissions import UserContext
from peskas.dashboard.queries import COLLECTIONS, list_sites
from peskas.utils.paths import collection_path, rel_store_path

router = APIRouter()


def _mtime_iso(path: Path) -> Optional[str]:
    """mtime en ISO UTC, o None si el archivo no existe."""
    try:
        st = path.stat()
    except FileNotFoundError:
        return None
    return time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime(st.st_mtime))


@router.get("/status", response_model=DashboardStatus)
def dashboard_status() -> DashboardStatus:
    """Estado de cada colección del store."""
    items = []
    for name in COLLECTIONS:
        path = collection_path(name)
        items.append(
            CollectionStatus(
                name=name,
                path=rel_store_path(path),
                exists=path.exists(),
                mtime=_mtime_iso(path),
            )
        )
    return DashboardStatus(collections=items, ready=all(c.exists for c in items))


@router.get("/colors", response_model=ColorMap)
def dashboard_colors(
    names: str = Query(..., description="Series coma-separadas."),  # noqa: B008
    reference: Optional[str] = Query(None, description="Sitio de referencia (color destacado)."),  # noqa: B008
    historical: bool = Query(False, description="Incluir historical_average."),  # noqa: B008
    registry: ColorRegistry = Depends(get_color_registry),  # noqa: B008
) -> ColorMap:
    """Colores estables para un conjunto de series."""
    series = split_csv(names)
    if not series:
        raise HTTPException(status_code=400, detail="names no puede estar vacío")
    colors = registry.site_colors(series, reference, include_historical=historical)
    return ColorMap(mode=registry.mode, colors=colors)



@router.get("/sites", response_model=SitesResponse)
def dashboard_sites(
    collection: str = Query("catch_monthly", description="Colección a consultar."),  # noqa: B008
    user: UserContext = Depends(get_user_context),  # noqa: B008
) -> SitesResponse:
    """Catálogo de sitios de una colección visibles para el usuario."""
    try:
        sites = list_sites(collection)
    except FileNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return SitesResponse(collection=collection, sites=user.accessible_sites(sites))
