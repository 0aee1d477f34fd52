"""Dependencias compartidas por los routers (contexto de usuario, colores, filtros).

La autenticación es externa: el proxy/front resuelve la sesión y envía los
grupos y el BMU del usuario en headers. Aquí solo se interpretan.
"""

from __future__ import annotations

from typing import Optional, Tuple

from fastapi import Header, Request

from peskas.app import settings
from peskas.dashboard.colors import ColorRegistry, RegistryStore
from peskas.dashboard.permissions import UserContext
from peskas.dashboard.queries import DashboardFilters

# Un registro de colores por sesión (LRU acotado).
REGISTRY_STORE = RegistryStore(mode=settings.color_mode(), max_sessions=settings.max_color_sessions())


def split_csv(value: Optional[str]) -> Tuple[str, ...]:
    """``"a, b,,c"`` -> ``("a", "b", "c")``."""
    return tuple(x.strip() for x in (value or "").split(",") if x.strip())


def get_user_context(
    x_user_groups: Optional[str] = Header(None),  # noqa: B008
    x_user_bmu: Optional[str] = Header(None),  # noqa: B008
) -> UserContext:
    return UserContext.from_header_values(x_user_groups, x_user_bmu)


def get_color_registry(request: Request) -> ColorRegistry:
    """Registro de colores de la sesión del request.

    Sin ``X-Session-Id`` todos los requests comparten el registro por defecto.
    """
    session_id = getattr(request.state, "session_id", None) or request.headers.get("X-Session-Id")
    return REGISTRY_STORE.get(session_id)


def filters_from_query(
    sites: Optional[str],
    date_from: Optional[str],
    date_to: Optional[str],
    user: Optional[UserContext] = None,
) -> DashboardFilters:
    """Construye ``DashboardFilters`` desde query params.

    Un usuario restringido (CIA con BMU) solo ve su BMU, sin importar los
    sitios pedidos.
    """
    requested = split_csv(sites)
    if user is not None and user.has_restricted_access:
        requested = tuple(user.accessible_sites(requested))
    return DashboardFilters(sites=requested, date_from=date_from, date_to=date_to)


def own_history_only(user: UserContext) -> bool:
    """True si el usuario solo puede compararse contra su propio BMU."""
    return bool(user.bmu) and not user.can_compare_with_others
