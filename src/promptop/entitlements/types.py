"""Model Catalog Types for PromptOp.

This module defines the core data structures for plan entitlements:
- Tier: Ordered plan level attached to each model (free < pro < team)
- ModelCategory, Speed, Quality: Descriptive classification of a model
- ModelEntry: Frozen dataclass describing one AI model offering

Only ``id``, ``tier`` and ``enabled`` take part in entitlement decisions.
Everything else is display metadata passed through to callers.
"""

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional


class Tier(Enum):
    """Plan tier, ordered from least to most privileged.

    A plan unlocks every tier at or below its own rank.
    """

    FREE = "free"
    PRO = "pro"
    TEAM = "team"

    @property
    def rank(self) -> int:
        return _TIER_RANKS[self]

    def __lt__(self, other: "Tier") -> bool:
        if not isinstance(other, Tier):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other: "Tier") -> bool:
        if not isinstance(other, Tier):
            return NotImplemented
        return self.rank <= other.rank


_TIER_RANKS: Dict[Tier, int] = {Tier.FREE: 0, Tier.PRO: 1, Tier.TEAM: 2}

# Catalog data written before the three-tier model used "enterprise"
LEGACY_TIER_ALIASES: Dict[str, Tier] = {"enterprise": Tier.TEAM}


class ModelCategory(Enum):
    """Descriptive classification tag. Not used for gating."""

    GENERAL = "general"
    CODING = "coding"
    REASONING = "reasoning"
    MULTIMODAL = "multimodal"
    IMAGE = "image"
    AUDIO = "audio"


class Speed(Enum):
    FAST = "fast"
    MEDIUM = "medium"
    SLOW = "slow"


class Quality(Enum):
    GOOD = "good"
    EXCELLENT = "excellent"
    PREMIUM = "premium"


@dataclass(frozen=True)
class ModelEntry:
    """Immutable description of one AI model offering.

    Frozen so entries can be shared between request handlers without copying.

    Attributes:
        id: Stable model identifier (e.g., "gpt-4o-mini")
        tier: Minimum plan tier required to use the model
        enabled: Disabled models never appear in plan-scoped results
        name: Display name
        provider: Upstream provider name (e.g., "OpenAI")
        description: Marketing description
        category: Classification tag
        speed: Relative latency bucket
        quality: Relative output quality bucket
        context_length: Display string such as "128K tokens"
        coming_soon: UI hint only; does not affect availability
        max_prompt_length: Maximum prompt length in characters, if limited
        api_key_env_var: Environment variable holding the provider key
        extra: Unrecognized catalog fields, kept as opaque metadata

    Example:
        >>> entry = ModelEntry(id="gpt-4o", tier=Tier.PRO, name="GPT-4o")
        >>> entry.enabled
        True
    """

    id: str
    tier: Tier = Tier.FREE
    enabled: bool = True
    name: str = ""
    provider: str = ""
    description: str = ""
    category: ModelCategory = ModelCategory.GENERAL
    speed: Speed = Speed.MEDIUM
    quality: Quality = Quality.GOOD
    context_length: str = ""
    coming_soon: bool = False
    max_prompt_length: Optional[int] = None
    api_key_env_var: str = ""
    extra: Mapping[str, Any] = field(default_factory=dict, compare=False, hash=False)

    def __post_init__(self):
        """Validate required fields."""
        if not self.id:
            raise ValueError("ModelEntry.id cannot be empty")
        if not isinstance(self.tier, Tier):
            raise ValueError(f"ModelEntry.tier must be a Tier, got {self.tier!r}")
        if self.max_prompt_length is not None and self.max_prompt_length <= 0:
            raise ValueError("ModelEntry.max_prompt_length must be positive")
        # Read-only copy; entries are shared by every catalog reader
        object.__setattr__(self, "extra", MappingProxyType(dict(self.extra)))

    def to_dict(self) -> Dict[str, Any]:
        """Serialize using the camelCase keys of the catalog file format.

        Extra metadata is emitted first so it never shadows a catalog field.
        """
        data: Dict[str, Any] = dict(self.extra)
        data.update({
            "id": self.id,
            "name": self.name,
            "provider": self.provider,
            "description": self.description,
            "tier": self.tier.value,
            "category": self.category.value,
            "speed": self.speed.value,
            "quality": self.quality.value,
            "contextLength": self.context_length,
            "enabled": self.enabled,
            "comingSoon": self.coming_soon,
            "apiKeyEnvVar": self.api_key_env_var,
        })
        if self.max_prompt_length is not None:
            data["maxPromptLength"] = self.max_prompt_length
        else:
            data.pop("maxPromptLength", None)
        return data
