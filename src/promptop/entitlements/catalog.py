"""Model Catalog for PromptOp.

The catalog is the static, ordered collection of every AI model PromptOp
knows about. It is loaded once (from the bundled ``models.yaml`` or a path
named in configuration) and never mutated afterwards.

- ModelCatalog: Immutable ordered collection with O(1) lookup by id
- load_catalog(): Build a ModelCatalog from a YAML document
- get_default_catalog(): Lazily loaded process-wide catalog

Example:
    >>> catalog = load_catalog()
    >>> entry = catalog.get("gpt-4o-mini")
    >>> entry.tier
    <Tier.FREE: 'free'>
"""

import logging
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, Optional, Tuple, Type, TypeVar, Union

import yaml

from .types import (
    LEGACY_TIER_ALIASES,
    ModelCategory,
    ModelEntry,
    Quality,
    Speed,
    Tier,
)

logger = logging.getLogger(__name__)

BUNDLED_CATALOG_PATH = Path(__file__).parent / "models.yaml"

# Catalog files use the camelCase keys of the web client; snake_case also works
_FIELD_ALIASES: Dict[str, str] = {
    "comingSoon": "coming_soon",
    "contextLength": "context_length",
    "maxPromptLength": "max_prompt_length",
    "apiKeyEnvVar": "api_key_env_var",
}

_KNOWN_FIELDS = {
    "id",
    "tier",
    "enabled",
    "name",
    "provider",
    "description",
    "category",
    "speed",
    "quality",
    "context_length",
    "coming_soon",
    "max_prompt_length",
    "api_key_env_var",
}

E = TypeVar("E", bound=Enum)


class CatalogError(ValueError):
    """Raised when catalog data is malformed or violates catalog invariants."""


class ModelCatalog:
    """Immutable, ordered collection of ModelEntry objects.

    Entries keep their insertion order. Model ids must be unique.

    Attributes:
        _entries: Tuple of entries in catalog order
        _index: Dict mapping model id to entry
        source: Where the catalog was loaded from, if anywhere
    """

    __slots__ = ("_entries", "_index", "source")

    def __init__(self, entries: Iterable[ModelEntry], source: Optional[str] = None):
        entries = tuple(entries)
        index: Dict[str, ModelEntry] = {}
        for entry in entries:
            if not isinstance(entry, ModelEntry):
                raise CatalogError(f"Catalog entries must be ModelEntry, got {type(entry).__name__}")
            if entry.id in index:
                raise CatalogError(f"Duplicate model id in catalog: {entry.id}")
            index[entry.id] = entry

        object.__setattr__(self, "_entries", entries)
        object.__setattr__(self, "_index", index)
        object.__setattr__(self, "source", source)

    def __setattr__(self, name: str, value: Any) -> None:
        raise AttributeError("ModelCatalog is immutable")

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[ModelEntry]:
        return iter(self._entries)

    def __contains__(self, item: object) -> bool:
        if isinstance(item, ModelEntry):
            return self._index.get(item.id) == item
        return isinstance(item, str) and item in self._index

    def __repr__(self) -> str:
        return f"ModelCatalog({len(self._entries)} models, source={self.source!r})"

    @property
    def entries(self) -> Tuple[ModelEntry, ...]:
        return self._entries

    @property
    def ids(self) -> Tuple[str, ...]:
        return tuple(entry.id for entry in self._entries)

    def get(self, model_id: str) -> Optional[ModelEntry]:
        """Get a model by id (O(1) lookup).

        Args:
            model_id: Model identifier (e.g., "gpt-4o")

        Returns:
            ModelEntry if found, None otherwise.
        """
        if not isinstance(model_id, str):
            return None
        return self._index.get(model_id)


def parse_tier(value: Any) -> Tier:
    """Parse a catalog tier value, accepting the legacy "enterprise" name.

    Raises:
        CatalogError: If the value is not a known tier
    """
    if isinstance(value, Tier):
        return value
    if not isinstance(value, str):
        raise CatalogError(f"Invalid tier: {value!r}")
    key = value.strip().lower()
    if key in LEGACY_TIER_ALIASES:
        logger.debug(f"Mapping legacy tier '{key}' to '{LEGACY_TIER_ALIASES[key].value}'")
        return LEGACY_TIER_ALIASES[key]
    try:
        return Tier(key)
    except ValueError:
        valid = ", ".join(t.value for t in Tier)
        raise CatalogError(f"Unknown tier '{value}'. Valid tiers: {valid}")


def _parse_enum(enum_cls: Type[E], value: Any, field_name: str, default: E) -> E:
    if value is None:
        return default
    try:
        return enum_cls(str(value).strip().lower())
    except ValueError:
        raise CatalogError(f"Invalid {field_name} '{value}'")


def _parse_bool(value: Any, field_name: str, default: bool) -> bool:
    if value is None:
        return default
    if not isinstance(value, bool):
        raise CatalogError(f"Field '{field_name}' must be a boolean, got {value!r}")
    return value


def entry_from_record(record: Dict[str, Any]) -> ModelEntry:
    """Build a ModelEntry from one catalog record.

    Args:
        record: Mapping with at least ``id`` and ``tier``

    Returns:
        ModelEntry for the record

    Raises:
        CatalogError: If the record is malformed
    """
    if not isinstance(record, dict):
        raise CatalogError(f"Catalog record must be a mapping, got {type(record).__name__}")

    data = {_FIELD_ALIASES.get(key, key): value for key, value in record.items()}

    model_id = data.get("id")
    if not isinstance(model_id, str) or not model_id.strip():
        raise CatalogError(f"Catalog record is missing a valid 'id': {record!r}")
    model_id = model_id.strip()

    if "tier" not in data:
        raise CatalogError(f"Model '{model_id}' is missing 'tier'")

    max_prompt_length = data.get("max_prompt_length")
    if max_prompt_length is not None and (
        isinstance(max_prompt_length, bool) or not isinstance(max_prompt_length, int)
    ):
        raise CatalogError(f"Model '{model_id}' has non-integer maxPromptLength")

    extra = {key: value for key, value in record.items() if _FIELD_ALIASES.get(key, key) not in _KNOWN_FIELDS}

    try:
        return ModelEntry(
            id=model_id,
            tier=parse_tier(data["tier"]),
            enabled=_parse_bool(data.get("enabled"), "enabled", True),
            name=str(data.get("name") or model_id),
            provider=str(data.get("provider") or ""),
            description=str(data.get("description") or ""),
            category=_parse_enum(ModelCategory, data.get("category"), "category", ModelCategory.GENERAL),
            speed=_parse_enum(Speed, data.get("speed"), "speed", Speed.MEDIUM),
            quality=_parse_enum(Quality, data.get("quality"), "quality", Quality.GOOD),
            context_length=str(data.get("context_length") or ""),
            coming_soon=_parse_bool(data.get("coming_soon"), "comingSoon", False),
            max_prompt_length=max_prompt_length,
            api_key_env_var=str(data.get("api_key_env_var") or ""),
            extra=extra,
        )
    except ValueError as e:
        if isinstance(e, CatalogError):
            raise
        raise CatalogError(f"Invalid model '{model_id}': {e}")


def catalog_from_records(
    records: Iterable[Dict[str, Any]],
    source: Optional[str] = None,
) -> ModelCatalog:
    """Build a ModelCatalog from raw records (e.g., parsed YAML or JSON)."""
    return ModelCatalog((entry_from_record(r) for r in records), source=source)


def load_catalog(path: Optional[Union[str, Path]] = None) -> ModelCatalog:
    """Load a model catalog from a YAML file.

    Expected format:

        version: "1.0"
        models:
          - id: gpt-4o-mini
            tier: free
            enabled: true

    Args:
        path: Path to the catalog file. Uses the bundled models.yaml if None.

    Returns:
        ModelCatalog with entries in file order

    Raises:
        CatalogError: If the file is missing, not valid YAML, or violates
            catalog invariants (duplicate ids, unknown tiers, missing ids)
    """
    catalog_path = Path(path) if path is not None else BUNDLED_CATALOG_PATH

    try:
        with open(catalog_path, "r", encoding="utf-8") as f:
            document = yaml.safe_load(f)
    except OSError as e:
        raise CatalogError(f"Cannot read catalog {catalog_path}: {e}")
    except yaml.YAMLError as e:
        raise CatalogError(f"Invalid YAML in catalog {catalog_path}: {e}")

    if not isinstance(document, dict):
        raise CatalogError(f"Catalog {catalog_path} must be a mapping with a 'models' list")

    records = document.get("models")
    if not isinstance(records, list):
        raise CatalogError(f"Catalog {catalog_path} must contain a 'models' list")

    catalog = catalog_from_records(records, source=str(catalog_path))
    logger.info(
        f"Loaded model catalog: {len(catalog)} models from {catalog_path} "
        f"(version {document.get('version', 'unknown')})"
    )
    return catalog


# Lazy-loaded process-wide catalog
_default_catalog: Optional[ModelCatalog] = None


def get_default_catalog() -> ModelCatalog:
    """Get the process-wide catalog (lazy-loaded).

    The catalog path comes from unified configuration; when none is set,
    the bundled models.yaml is used.
    """
    global _default_catalog
    if _default_catalog is None:
        # Lazy import to avoid circular dependency
        from ..unified_config import get_config

        _default_catalog = load_catalog(get_config().catalog.path)
    return _default_catalog


def _reset_default_catalog() -> None:
    """Reset the cached catalog (for testing only)."""
    global _default_catalog
    _default_catalog = None
