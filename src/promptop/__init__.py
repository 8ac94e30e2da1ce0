"""PromptOp entitlements - plan-tiered AI model access and usage quotas.

Usage:
    from promptop import get_default_catalog, list_available_models

    catalog = get_default_catalog()
    for model in list_available_models("pro", catalog):
        print(model.id, model.tier.value)

For the HTTP API:
    pip install "promptop-entitlements[http]"
    promptop-serve
"""

from promptop.entitlements import (
    CatalogError,
    EntitlementResolver,
    ModelCatalog,
    ModelEntry,
    Tier,
    get_default_catalog,
    is_model_available,
    list_available_models,
    list_enabled_models,
    list_models_by_tier,
    load_catalog,
    lookup_model,
    normalize_plan,
    resolve_plan_tiers,
)
from promptop.usage import (
    AccessDecision,
    PlanQuota,
    UsageDecision,
    UsageKind,
    UsageSnapshot,
    authorize_request,
    check_usage,
    get_plan_quota,
    summarize_usage,
)
from promptop.unified_config import get_config
from promptop._version import __version__, __version_tuple__

__all__ = [
    # Catalog
    "ModelCatalog",
    "ModelEntry",
    "Tier",
    "CatalogError",
    "load_catalog",
    "get_default_catalog",
    # Entitlements
    "EntitlementResolver",
    "normalize_plan",
    "resolve_plan_tiers",
    "list_available_models",
    "is_model_available",
    "lookup_model",
    "list_models_by_tier",
    "list_enabled_models",
    # Usage
    "UsageKind",
    "UsageSnapshot",
    "UsageDecision",
    "AccessDecision",
    "PlanQuota",
    "check_usage",
    "summarize_usage",
    "get_plan_quota",
    "authorize_request",
    # Configuration
    "get_config",
    # Version
    "__version__",
    "__version_tuple__",
]
