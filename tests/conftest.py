"""Shared test configuration and fixtures."""
import pytest

from promptop.entitlements import ModelCatalog, ModelEntry, Tier, _reset_default_catalog
from promptop.unified_config import _reset_config

# =============================================================================
# Environment Reset
# =============================================================================


@pytest.fixture(autouse=True)
def reset_env(monkeypatch):
    """Clear PromptOp environment variables and cached state before each test."""
    monkeypatch.delenv("PROMPTOP_CONFIG", raising=False)
    monkeypatch.delenv("PROMPTOP_CATALOG_PATH", raising=False)
    monkeypatch.delenv("PROMPTOP_API_TOKEN", raising=False)
    monkeypatch.delenv("PROMPTOP_LOG_LEVEL", raising=False)
    # Keep ./promptop.yaml and ~/.config lookups away from the developer's files
    monkeypatch.setattr("promptop.unified_config._find_config_file", lambda: None)
    monkeypatch.setattr("promptop.unified_config.load_dotenv", lambda *a, **kw: False)
    _reset_config()
    _reset_default_catalog()
    yield
    _reset_config()
    _reset_default_catalog()


# =============================================================================
# Catalog Fixtures
# =============================================================================


@pytest.fixture
def small_catalog():
    """Three-model catalog: free (enabled), pro (enabled), team (disabled)."""
    return ModelCatalog(
        [
            ModelEntry(id="a", tier=Tier.FREE, enabled=True),
            ModelEntry(id="b", tier=Tier.PRO, enabled=True),
            ModelEntry(id="c", tier=Tier.TEAM, enabled=False),
        ]
    )


@pytest.fixture
def mixed_catalog():
    """Catalog with enabled and disabled models in every tier, interleaved."""
    return ModelCatalog(
        [
            ModelEntry(id="team-on", tier=Tier.TEAM),
            ModelEntry(id="free-on", tier=Tier.FREE, max_prompt_length=20),
            ModelEntry(id="pro-off", tier=Tier.PRO, enabled=False, coming_soon=True),
            ModelEntry(id="pro-on", tier=Tier.PRO),
            ModelEntry(id="free-off", tier=Tier.FREE, enabled=False),
            ModelEntry(id="team-off", tier=Tier.TEAM, enabled=False, coming_soon=True),
        ]
    )


# =============================================================================
# Custom Pytest Markers
# =============================================================================


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')")
    config.addinivalue_line("markers", "integration: marks tests as integration tests")
