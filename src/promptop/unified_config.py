"""Unified YAML Configuration for PromptOp.

Consolidates the settings of the entitlement service:
- Model catalog location
- Plan quota overrides
- HTTP server settings
- Logging

Configuration Priority: Environment Variables (including .env) > YAML > Defaults

Example YAML configuration (promptop.yaml):

    promptop:
      catalog:
        path: /etc/promptop/models.yaml
      quotas:
        free:
          enhancements_per_month: 10
        team:
          prompt_slots: null   # unlimited
      server:
        port: 8080
        api_token: ${PROMPTOP_API_TOKEN}
      logging:
        level: DEBUG
"""

import logging
import os
import re
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError, field_validator

from .entitlements.catalog import _reset_default_catalog
from .entitlements.types import Tier
from .usage import DEFAULT_PLAN_QUOTAS, PlanQuota

logger = logging.getLogger(__name__)


# =============================================================================
# Sub-configuration Models
# =============================================================================


class CatalogConfig(BaseModel):
    """Configuration for the model catalog source."""

    path: Optional[Path] = None  # None = bundled models.yaml


class PlanQuotaConfig(BaseModel):
    """Quota overrides for one plan.

    Only fields present in the YAML override the defaults. An explicit
    null means unlimited.
    """

    prompts_per_month: Optional[int] = Field(default=None, ge=0)
    enhancements_per_month: Optional[int] = Field(default=None, ge=0)
    prompt_slots: Optional[int] = Field(default=None, ge=0)

    def apply_to(self, base: PlanQuota) -> PlanQuota:
        """Merge the explicitly set fields over a base quota."""
        values = {
            "prompts_per_month": base.prompts_per_month,
            "enhancements_per_month": base.enhancements_per_month,
            "prompt_slots": base.prompt_slots,
        }
        for name in self.model_fields_set:
            values[name] = getattr(self, name)
        return PlanQuota(**values)


class QuotaConfig(BaseModel):
    """Per-plan quota overrides, merged over DEFAULT_PLAN_QUOTAS."""

    free: PlanQuotaConfig = Field(default_factory=PlanQuotaConfig)
    pro: PlanQuotaConfig = Field(default_factory=PlanQuotaConfig)
    team: PlanQuotaConfig = Field(default_factory=PlanQuotaConfig)

    def to_plan_quotas(self) -> Dict[Tier, PlanQuota]:
        """Build the quota table used by the usage gate."""
        return {
            tier: getattr(self, tier.value).apply_to(DEFAULT_PLAN_QUOTAS[tier])
            for tier in Tier
        }


class ServerConfig(BaseModel):
    """Configuration for the HTTP server."""

    host: str = "127.0.0.1"
    port: int = Field(default=8000, ge=1, le=65535)
    api_token: Optional[str] = None  # None/empty = auth not required


class LoggingConfig(BaseModel):
    """Configuration for logging."""

    level: str = Field(default="INFO")

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        level = v.upper()
        if level not in valid_levels:
            raise ValueError(f"invalid log level '{v}', must be one of {valid_levels}")
        return level


# =============================================================================
# Main Unified Configuration
# =============================================================================


class UnifiedConfig(BaseModel):
    """Unified configuration for the PromptOp entitlement service."""

    catalog: CatalogConfig = Field(default_factory=CatalogConfig)
    quotas: QuotaConfig = Field(default_factory=QuotaConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    def get_plan_quotas(self) -> Dict[Tier, PlanQuota]:
        """Get the effective quota table with overrides applied."""
        return self.quotas.to_plan_quotas()

    def to_yaml(self) -> str:
        """Serialize configuration to YAML string."""
        config_dict = {"promptop": self.to_dict()}
        return yaml.dump(config_dict, default_flow_style=False, sort_keys=False)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize configuration to dictionary.

        Only explicitly set values are included, so a dict round trip keeps
        the difference between "unlimited" (null) and "not overridden".
        """
        return self.model_dump(mode="json", exclude_unset=True)


# =============================================================================
# Configuration Loading Functions
# =============================================================================


# ${VAR} or ${VAR:-default}
_ENV_VAR_PATTERN = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)(?::-([^}]*))?\}")


def _substitute_env_vars(value: Any) -> Any:
    """Recursively substitute environment variables in configuration values.

    Supports ${VAR_NAME} and ${VAR_NAME:-default}. An unset variable without
    a default becomes an empty string.
    """
    if isinstance(value, str):

        def replace(match: "re.Match[str]") -> str:
            var_name, default = match.group(1), match.group(2)
            env_value = os.getenv(var_name)
            if env_value is None:
                if default is None:
                    logger.debug(f"Config references unset variable {var_name}")
                    return ""
                return default
            return env_value

        return _ENV_VAR_PATTERN.sub(replace, value)
    if isinstance(value, dict):
        return {k: _substitute_env_vars(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_substitute_env_vars(item) for item in value]
    return value


def _check_catalog_path(config: UnifiedConfig, config_path: Path, strict: bool) -> None:
    """Report a configured catalog file that does not exist.

    The catalog itself is loaded lazily, so without this check a typo in
    ``catalog.path`` would only surface on the first entitlement lookup.
    """
    catalog_path = config.catalog.path
    if catalog_path is None or catalog_path.exists():
        return
    if strict:
        raise ValueError(f"Catalog file not found: {catalog_path} (from {config_path})")
    logger.warning(f"Catalog file {catalog_path} named in {config_path} does not exist")


def load_config(
    config_path: Optional[Path] = None,
    strict: bool = False,
) -> UnifiedConfig:
    """Load configuration from the ``promptop`` section of a YAML file.

    Args:
        config_path: Path to YAML configuration file. If None, uses defaults.
        strict: If True, raise ValueError on invalid YAML, invalid values or
                a missing catalog file. If False, fall back to defaults and
                log a warning.

    Returns:
        UnifiedConfig object

    Raises:
        ValueError: If strict=True and configuration is invalid
    """
    if config_path is None or not config_path.exists():
        return UnifiedConfig()

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            raw_config = yaml.safe_load(f)
    except yaml.YAMLError as e:
        if strict:
            raise ValueError(f"Invalid YAML: {e}")
        logger.warning(f"Invalid YAML in {config_path}, using defaults: {e}")
        return UnifiedConfig()
    except OSError as e:
        if strict:
            raise ValueError(f"Cannot read config {config_path}: {e}")
        logger.warning(f"Cannot read {config_path}, using defaults: {e}")
        return UnifiedConfig()

    if raw_config is None:
        return UnifiedConfig()

    section = raw_config.get("promptop") if isinstance(raw_config, dict) else None
    if section is None:
        logger.debug(f"No 'promptop' section in {config_path}, using defaults")
        return UnifiedConfig()
    if not isinstance(section, dict):
        if strict:
            raise ValueError(f"Configuration error: 'promptop' section in {config_path} must be a mapping")
        logger.warning(f"'promptop' section in {config_path} is not a mapping, using defaults")
        return UnifiedConfig()

    try:
        config = UnifiedConfig(**_substitute_env_vars(section))
    except (ValidationError, TypeError) as e:
        if strict:
            raise ValueError(f"Configuration error: {e}")
        logger.warning(f"Invalid settings in {config_path}, using defaults: {e}")
        return UnifiedConfig()

    _check_catalog_path(config, config_path, strict)
    logger.debug(f"Loaded configuration from {config_path}")
    return config


def _find_config_file() -> Optional[Path]:
    """Find configuration file in standard locations.

    Search order:
    1. PROMPTOP_CONFIG environment variable
    2. ./promptop.yaml (current directory)
    3. ~/.config/promptop/promptop.yaml
    """
    env_path = os.getenv("PROMPTOP_CONFIG")
    if env_path:
        path = Path(env_path)
        if path.exists():
            return path
        logger.warning(f"PROMPTOP_CONFIG points to missing file {env_path}, searching defaults")

    candidates = (
        Path.cwd() / "promptop.yaml",
        Path.home() / ".config" / "promptop" / "promptop.yaml",
    )
    for candidate in candidates:
        if candidate.exists():
            return candidate

    return None


def _apply_env_overrides(config: UnifiedConfig) -> UnifiedConfig:
    """Apply environment variable overrides to configuration.

    Environment variables take precedence over YAML configuration.
    """
    config_dict = config.to_dict()

    catalog_path = os.getenv("PROMPTOP_CATALOG_PATH")
    if catalog_path:
        config_dict.setdefault("catalog", {})["path"] = catalog_path

    api_token = os.getenv("PROMPTOP_API_TOKEN")
    if api_token:
        config_dict.setdefault("server", {})["api_token"] = api_token

    log_level = os.getenv("PROMPTOP_LOG_LEVEL")
    if log_level:
        config_dict.setdefault("logging", {})["level"] = log_level

    return UnifiedConfig(**config_dict)


def get_effective_config(config_path: Optional[Path] = None) -> UnifiedConfig:
    """Get the effective configuration with all overrides applied.

    Priority: Environment Variables > YAML > Defaults

    Args:
        config_path: Optional explicit path to configuration file.
                    If None, searches standard locations.

    Returns:
        UnifiedConfig with all overrides applied
    """
    # .env never overrides variables already set in the process environment
    load_dotenv()

    if config_path is None:
        config_path = _find_config_file()

    config = load_config(config_path)

    return _apply_env_overrides(config)


# =============================================================================
# Global Configuration Instance
# =============================================================================

_global_config: Optional[UnifiedConfig] = None


def get_config() -> UnifiedConfig:
    """Get the process-wide configuration (cached after first load)."""
    global _global_config
    if _global_config is None:
        _global_config = get_effective_config()
    return _global_config


def reload_config() -> UnifiedConfig:
    """Reload configuration from disk and the environment.

    The cached default catalog is dropped when the catalog path changes, so
    the next lookup reads the newly configured file.
    """
    global _global_config
    previous = _global_config
    _global_config = get_effective_config()
    if previous is None or previous.catalog.path != _global_config.catalog.path:
        _reset_default_catalog()
    return _global_config


def _reset_config() -> None:
    """Reset the cached configuration (for testing only)."""
    global _global_config
    _global_config = None
