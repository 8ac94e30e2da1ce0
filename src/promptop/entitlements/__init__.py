"""Plan entitlements for PromptOp.

This package holds the model catalog and the rules deciding which models a
subscription plan may use.

Example usage:
    from promptop.entitlements import (
        get_default_catalog,
        list_available_models,
        is_model_available,
    )

    catalog = get_default_catalog()
    models = list_available_models("pro", catalog)
    allowed = is_model_available("gpt-4o", "pro", catalog)
"""

from .types import (
    LEGACY_TIER_ALIASES,
    ModelCategory,
    ModelEntry,
    Quality,
    Speed,
    Tier,
)
from .catalog import (
    BUNDLED_CATALOG_PATH,
    CatalogError,
    ModelCatalog,
    catalog_from_records,
    entry_from_record,
    get_default_catalog,
    load_catalog,
    parse_tier,
    _reset_default_catalog,
)
from .resolver import (
    PLAN_ALIASES,
    EntitlementResolver,
    is_model_available,
    list_available_models,
    list_enabled_models,
    list_models_by_tier,
    lookup_model,
    normalize_plan,
    resolve_plan_tiers,
)

__all__ = [
    # Types
    "Tier",
    "ModelCategory",
    "Speed",
    "Quality",
    "ModelEntry",
    "LEGACY_TIER_ALIASES",
    # Catalog
    "ModelCatalog",
    "CatalogError",
    "BUNDLED_CATALOG_PATH",
    "load_catalog",
    "catalog_from_records",
    "entry_from_record",
    "get_default_catalog",
    "parse_tier",
    # Resolver
    "PLAN_ALIASES",
    "EntitlementResolver",
    "normalize_plan",
    "resolve_plan_tiers",
    "list_available_models",
    "is_model_available",
    "lookup_model",
    "list_models_by_tier",
    "list_enabled_models",
]
