"""
template_catalog/features/templates/tier.py

Licensing tier policy for template listings.

The free tier shows a small fixed number of importable templates in store
order. The pro tier lifts the cap, honours the admin-defined ordering list
and turns on restriction rules.
"""

from dataclasses import dataclass
from typing import List, Optional

from template_catalog.core.config import Settings, settings, parse_id_list


@dataclass(frozen=True)
class TierPolicy:
    has_pro: bool
    limit: int  # 0 = unlimited
    restrictions_enabled: bool
    ordering_enabled: bool

    @classmethod
    def free(cls, limit: int) -> "TierPolicy":
        return cls(has_pro=False, limit=max(limit, 0), restrictions_enabled=False, ordering_enabled=False)

    @classmethod
    def pro(cls) -> "TierPolicy":
        return cls(has_pro=True, limit=0, restrictions_enabled=True, ordering_enabled=True)

    def exceeds(self, importable_count: int) -> bool:
        return self.limit > 0 and importable_count > self.limit


def resolve_tier_policy(settings_obj: Optional[Settings] = None) -> TierPolicy:
    cfg = settings_obj or settings
    if cfg.PRO_ENABLED:
        return TierPolicy.pro()
    return TierPolicy.free(cfg.FREE_TEMPLATE_LIMIT)


def resolve_ordering(policy: TierPolicy, settings_obj: Optional[Settings] = None) -> List[int]:
    """Admin-defined template order; empty unless the tier allows ordering."""
    if not policy.ordering_enabled:
        return []
    cfg = settings_obj or settings
    return parse_id_list(cfg.TEMPLATE_ORDER)
