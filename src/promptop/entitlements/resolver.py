"""Plan entitlement resolution for PromptOp.

Decides which catalog models a subscription plan can see and use.

Rules:
- A plan string normalizes to exactly one Tier (free, pro or team).
- A plan unlocks every tier at or below its own rank.
- Disabled models never appear in plan-scoped results.
- Unknown plans, unknown models and non-string input resolve to the most
  restrictive answer. Nothing here raises on caller input.

Every function takes the catalog explicitly, so tests can pass a synthetic
catalog and request handlers share one immutable instance.

Example:
    >>> catalog = load_catalog()
    >>> [m.id for m in list_available_models("pro", catalog)][:2]
    ['deepseek-chat-v2', 'deepseek-r1']
    >>> is_model_available("claude-3-opus", "free", catalog)
    False
"""

from typing import Any, Dict, FrozenSet, List, Optional, Union

from .catalog import CatalogError, ModelCatalog, parse_tier
from .types import ModelEntry, Tier

# The only place plan string variants are handled
PLAN_ALIASES: Dict[str, Tier] = {
    "basic": Tier.FREE,
    "premium": Tier.PRO,
    "business": Tier.TEAM,
    "unlimited": Tier.TEAM,
    "enterprise": Tier.TEAM,
}

_PLAN_TIERS: Dict[Tier, FrozenSet[Tier]] = {
    tier: frozenset(t for t in Tier if t <= tier) for tier in Tier
}


def normalize_plan(plan: Any) -> Tier:
    """Normalize a plan string to a Tier.

    Args:
        plan: Plan name in any case, possibly padded with whitespace.
              Non-string values (including None) are treated as unknown.

    Returns:
        The canonical Tier. Unknown plans resolve to Tier.FREE.
    """
    if isinstance(plan, Tier):
        return plan
    if not isinstance(plan, str):
        return Tier.FREE

    key = plan.strip().lower()
    if key in PLAN_ALIASES:
        return PLAN_ALIASES[key]
    try:
        return Tier(key)
    except ValueError:
        return Tier.FREE


def resolve_plan_tiers(plan: Any) -> FrozenSet[Tier]:
    """Get the set of model tiers visible to a plan.

    free -> {free}; pro -> {free, pro}; team -> {free, pro, team}.
    Never empty.
    """
    return _PLAN_TIERS[normalize_plan(plan)]


def list_available_models(plan: Any, catalog: ModelCatalog) -> List[ModelEntry]:
    """List enabled models whose tier the plan unlocks, in catalog order."""
    tiers = resolve_plan_tiers(plan)
    return [entry for entry in catalog if entry.enabled and entry.tier in tiers]


def lookup_model(model_id: Any, catalog: ModelCatalog) -> Optional[ModelEntry]:
    """Get a model by id. Returns None when the id is unknown."""
    return catalog.get(model_id)


def is_model_available(model_id: Any, plan: Any, catalog: ModelCatalog) -> bool:
    """Check whether a plan may use a specific model.

    Returns False for unknown or disabled models, and for models whose tier
    is above the plan.
    """
    entry = lookup_model(model_id, catalog)
    if entry is None or not entry.enabled:
        return False
    return entry.tier in resolve_plan_tiers(plan)


def list_models_by_tier(tier: Union[Tier, str], catalog: ModelCatalog) -> List[ModelEntry]:
    """List every model with exactly the given tier, enabled or not.

    Accepts the legacy "enterprise" tier name. An unknown tier name yields
    an empty list.
    """
    try:
        wanted = parse_tier(tier)
    except CatalogError:
        return []
    return [entry for entry in catalog if entry.tier == wanted]


def list_enabled_models(catalog: ModelCatalog) -> List[ModelEntry]:
    """List every enabled model regardless of tier, in catalog order."""
    return [entry for entry in catalog if entry.enabled]


class EntitlementResolver:
    """Resolver bound to one catalog.

    Thin wrapper over the module functions for callers that prefer
    constructor injection (e.g., HTTP handlers).

    Example:
        >>> resolver = EntitlementResolver(load_catalog())
        >>> resolver.is_available("gpt-4o", "Premium")
        True
    """

    def __init__(self, catalog: ModelCatalog):
        self._catalog = catalog

    @property
    def catalog(self) -> ModelCatalog:
        return self._catalog

    def tiers_for(self, plan: Any) -> FrozenSet[Tier]:
        return resolve_plan_tiers(plan)

    def available_models(self, plan: Any) -> List[ModelEntry]:
        return list_available_models(plan, self._catalog)

    def is_available(self, model_id: Any, plan: Any) -> bool:
        return is_model_available(model_id, plan, self._catalog)

    def lookup(self, model_id: Any) -> Optional[ModelEntry]:
        return lookup_model(model_id, self._catalog)

    def models_by_tier(self, tier: Union[Tier, str]) -> List[ModelEntry]:
        return list_models_by_tier(tier, self._catalog)

    def enabled_models(self) -> List[ModelEntry]:
        return list_enabled_models(self._catalog)
