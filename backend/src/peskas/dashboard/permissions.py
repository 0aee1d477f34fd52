"""peskas.dashboard.permissions

Visibilidad por rol para el Dashboard.

Grupos conocidos:

- ``CIA``: usuario de un solo BMU. Solo ve su BMU y compara contra su propio
  histórico (no contra otros sitios).
- ``WBCIA``: usuario regional; por ahora ve todos los BMUs.
- ``admin``/``Admin``: acceso completo.

La autenticación es externa: aquí solo se interpreta el contexto ya resuelto.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import FrozenSet, Iterable, List, Optional


CIA_GROUP = "CIA"
WBCIA_GROUP = "WBCIA"
ADMIN_GROUPS = frozenset({"admin", "Admin"})


@dataclass(frozen=True)
class UserContext:
    """Grupos y BMU del usuario actual."""

    groups: FrozenSet[str] = field(default_factory=frozenset)
    bmu: Optional[str] = None

    @classmethod
    def from_header_values(cls, groups: Optional[str], bmu: Optional[str]) -> "UserContext":
        """Construye el contexto desde valores de headers (grupos coma-separados)."""
        parsed = frozenset(g.strip() for g in (groups or "").split(",") if g.strip())
        b = (bmu or "").strip() or None
        return cls(groups=parsed, bmu=b)

    @property
    def is_cia(self) -> bool:
        return CIA_GROUP in self.groups

    @property
    def is_wbcia(self) -> bool:
        return WBCIA_GROUP in self.groups

    @property
    def is_admin(self) -> bool:
        return bool(self.groups & ADMIN_GROUPS)

    @property
    def has_restricted_access(self) -> bool:
        return self.is_cia and bool(self.bmu)

    @property
    def can_compare_with_others(self) -> bool:
        return (not self.is_cia) or self.is_admin or self.is_wbcia

    def accessible_sites(self, all_sites: Iterable[str]) -> List[str]:
        """Sitios visibles para el usuario dentro de ``all_sites``."""
        sites = list(all_sites)
        if self.is_admin or self.is_wbcia:
            return sites
        if self.is_cia and self.bmu:
            return [self.bmu]
        return sites
