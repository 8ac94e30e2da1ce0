"""Plan usage quotas for PromptOp.

Compares a user's per-period counters with the quotas of their plan before
a prompt test, an AI enhancement, or a prompt save is allowed.

The persistence layer owns the counters. This module only reads a snapshot
of them and never increments anything.

Quotas (None = unlimited):

    plan   prompts  enhancements  slots
    free   15       5             25
    pro    1000     150           500
    team   7500     2000          None
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Mapping, Optional

from .entitlements.catalog import ModelCatalog
from .entitlements.resolver import is_model_available, lookup_model, normalize_plan
from .entitlements.types import ModelEntry, Tier


class UsageKind(Enum):
    """Metered action types."""

    PROMPTS = "prompts"
    ENHANCEMENTS = "enhancements"
    SLOTS = "slots"


# Denial reasons, in the order authorize_request() checks them
REASON_MODEL_UNAVAILABLE = "model_unavailable"
REASON_QUOTA_EXCEEDED = "quota_exceeded"
REASON_PROMPT_TOO_LONG = "prompt_too_long"

_QUOTA_MESSAGES: Dict[UsageKind, str] = {
    UsageKind.PROMPTS: "Prompt limit reached for your plan. Please upgrade to continue.",
    UsageKind.ENHANCEMENTS: "AI enhancement limit reached for your plan. Please upgrade to continue.",
    UsageKind.SLOTS: "Saved prompt limit reached for your plan. Please upgrade to continue.",
}


@dataclass(frozen=True)
class PlanQuota:
    """Per-period limits for one plan. None means unlimited."""

    prompts_per_month: Optional[int]
    enhancements_per_month: Optional[int]
    prompt_slots: Optional[int]

    def limit_for(self, kind: UsageKind) -> Optional[int]:
        if kind is UsageKind.PROMPTS:
            return self.prompts_per_month
        if kind is UsageKind.ENHANCEMENTS:
            return self.enhancements_per_month
        return self.prompt_slots


DEFAULT_PLAN_QUOTAS: Dict[Tier, PlanQuota] = {
    Tier.FREE: PlanQuota(prompts_per_month=15, enhancements_per_month=5, prompt_slots=25),
    Tier.PRO: PlanQuota(prompts_per_month=1000, enhancements_per_month=150, prompt_slots=500),
    Tier.TEAM: PlanQuota(prompts_per_month=7500, enhancements_per_month=2000, prompt_slots=None),
}


@dataclass(frozen=True)
class UsageSnapshot:
    """Counters for the current billing period, as read from storage."""

    plan: Any = "free"
    prompts_used: int = 0
    enhancements_used: int = 0
    prompts_saved: int = 0

    def used_for(self, kind: UsageKind) -> Optional[int]:
        """Counter for ``kind``, or None when the stored value is unreadable."""
        if kind is UsageKind.PROMPTS:
            return _count(self.prompts_used)
        if kind is UsageKind.ENHANCEMENTS:
            return _count(self.enhancements_used)
        return _count(self.prompts_saved)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "UsageSnapshot":
        """Build a snapshot from a user profile record.

        Accepts both the database column names (prompts_used) and the
        client field names (promptsUsed).
        """

        def pick(snake: str, camel: str) -> Any:
            value = data.get(snake)
            if value is None:
                value = data.get(camel, 0)
            count = _count(value)
            # Unreadable values are kept so check_usage() denies on them
            return value if count is None else count

        return cls(
            plan=data.get("plan", "free"),
            prompts_used=pick("prompts_used", "promptsUsed"),
            enhancements_used=pick("enhancements_used", "enhancementsUsed"),
            prompts_saved=pick("prompts_saved", "promptsSaved"),
        )


@dataclass(frozen=True)
class UsageDecision:
    """Result of comparing one counter with its quota.

    Attributes:
        allowed: Whether one more action of this kind is permitted
        kind: The metered action
        plan: Canonical plan value (free, pro or team)
        used: Counter value the decision was based on
        limit: Quota, or None when unlimited
        remaining: Actions left this period, or None when unlimited
        percentage: Share of the quota consumed (0-100; 0 when unlimited)
        reason: None when allowed, otherwise a denial reason code
    """

    allowed: bool
    kind: UsageKind
    plan: str
    used: int
    limit: Optional[int]
    remaining: Optional[int]
    percentage: float
    reason: Optional[str] = None

    @property
    def unlimited(self) -> bool:
        return self.limit is None

    @property
    def message(self) -> Optional[str]:
        return None if self.allowed else _QUOTA_MESSAGES[self.kind]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "allowed": self.allowed,
            "kind": self.kind.value,
            "plan": self.plan,
            "used": self.used,
            "limit": self.limit,
            "remaining": self.remaining,
            "percentage": self.percentage,
            "unlimited": self.unlimited,
            "reason": self.reason,
            "message": self.message,
        }


@dataclass(frozen=True)
class AccessDecision:
    """Combined model entitlement, quota and prompt length decision."""

    allowed: bool
    model_id: str
    plan: str
    reason: Optional[str] = None
    message: Optional[str] = None
    usage: Optional[UsageDecision] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "allowed": self.allowed,
            "model_id": self.model_id,
            "plan": self.plan,
            "reason": self.reason,
            "message": self.message,
            "usage": self.usage.to_dict() if self.usage else None,
        }


def _count(value: Any) -> Optional[int]:
    """Coerce a stored counter to a non-negative int.

    Integral floats, Decimals and digit strings are converted. A missing
    counter (None) is zero and negatives clamp to zero. Returns None when the
    value cannot be read as a whole number; check_usage() then treats the
    quota as exhausted.
    """
    if value is None:
        return 0
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return max(0, value)
    if isinstance(value, str):
        try:
            return max(0, int(value.strip()))
        except ValueError:
            return None
    try:
        number = int(value)
    except (TypeError, ValueError, ArithmeticError):
        return None
    if number != value:
        return None
    return max(0, number)


def get_plan_quota(plan: Any, quotas: Optional[Mapping[Tier, PlanQuota]] = None) -> PlanQuota:
    """Get the quota for a plan. Unknown plans get the free quota."""
    table = quotas if quotas is not None else DEFAULT_PLAN_QUOTAS
    tier = normalize_plan(plan)
    quota = table.get(tier)
    if quota is None:
        quota = table.get(Tier.FREE, DEFAULT_PLAN_QUOTAS[Tier.FREE])
    return quota


def usage_percentage(used: int, limit: Optional[int]) -> float:
    """Share of a quota consumed, capped at 100. Zero for unlimited quotas."""
    if limit is None or limit <= 0:
        return 0.0
    return min(100.0, (used / limit) * 100)


def check_usage(
    snapshot: UsageSnapshot,
    kind: UsageKind,
    quotas: Optional[Mapping[Tier, PlanQuota]] = None,
) -> UsageDecision:
    """Decide whether one more action of ``kind`` fits within the plan quota.

    Allowed when the quota is unlimited, or positive and not yet reached.
    A zero quota always denies, and so does a counter that cannot be read.

    Args:
        snapshot: Current counters and plan
        kind: Which counter to check
        quotas: Optional quota table (defaults to DEFAULT_PLAN_QUOTAS)

    Returns:
        UsageDecision; never raises
    """
    tier = normalize_plan(snapshot.plan)
    limit = get_plan_quota(tier, quotas).limit_for(kind)
    counted = snapshot.used_for(kind)

    if limit is None:
        return UsageDecision(
            allowed=True,
            kind=kind,
            plan=tier.value,
            used=counted or 0,
            limit=None,
            remaining=None,
            percentage=0.0,
        )

    # An unreadable counter uses up the whole quota
    used = limit if counted is None else counted
    allowed = limit > 0 and used < limit
    return UsageDecision(
        allowed=allowed,
        kind=kind,
        plan=tier.value,
        used=used,
        limit=limit,
        remaining=max(0, limit - used),
        percentage=usage_percentage(used, limit),
        reason=None if allowed else REASON_QUOTA_EXCEEDED,
    )


def summarize_usage(
    snapshot: UsageSnapshot,
    quotas: Optional[Mapping[Tier, PlanQuota]] = None,
) -> Dict[UsageKind, UsageDecision]:
    """Check every metered counter at once (e.g., for a usage dashboard)."""
    return {kind: check_usage(snapshot, kind, quotas) for kind in UsageKind}


def check_prompt_length(prompt: Any, model: ModelEntry) -> bool:
    """Check a prompt against the model's maximum prompt length (characters).

    A missing prompt (None) counts as empty. Any other non-string prompt
    fails when the model has a limit.
    """
    if model.max_prompt_length is None:
        return True
    if prompt is None:
        return True
    if not isinstance(prompt, str):
        return False
    return len(prompt) <= model.max_prompt_length


def authorize_request(
    snapshot: UsageSnapshot,
    model_id: str,
    prompt: Any,
    catalog: ModelCatalog,
    kind: UsageKind = UsageKind.PROMPTS,
    quotas: Optional[Mapping[Tier, PlanQuota]] = None,
) -> AccessDecision:
    """Gate a prompt test or enhancement call.

    Checks, in order: model entitlement, plan quota, prompt length.
    The first failing check decides the denial reason.

    Returns:
        AccessDecision; never raises
    """
    plan = normalize_plan(snapshot.plan).value
    model_key = model_id if isinstance(model_id, str) else ""

    if not is_model_available(model_key, plan, catalog):
        return AccessDecision(
            allowed=False,
            model_id=model_key,
            plan=plan,
            reason=REASON_MODEL_UNAVAILABLE,
            message=f"Model '{model_key}' is not available on the {plan} plan.",
        )

    usage = check_usage(snapshot, kind, quotas)
    if not usage.allowed:
        return AccessDecision(
            allowed=False,
            model_id=model_key,
            plan=plan,
            reason=REASON_QUOTA_EXCEEDED,
            message=usage.message,
            usage=usage,
        )

    model = lookup_model(model_key, catalog)
    if model is not None and not check_prompt_length(prompt, model):
        return AccessDecision(
            allowed=False,
            model_id=model_key,
            plan=plan,
            reason=REASON_PROMPT_TOO_LONG,
            message=f"Prompt exceeds the {model.max_prompt_length} character limit for {model.name}.",
            usage=usage,
        )

    return AccessDecision(allowed=True, model_id=model_key, plan=plan, usage=usage)
