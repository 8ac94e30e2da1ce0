"""Tests for ModelCatalog and the YAML catalog loader."""

import pytest

from promptop.entitlements.catalog import (
    BUNDLED_CATALOG_PATH,
    CatalogError,
    ModelCatalog,
    catalog_from_records,
    entry_from_record,
    get_default_catalog,
    load_catalog,
    parse_tier,
)
from promptop.entitlements.types import ModelEntry, Quality, Tier


class TestModelCatalog:
    """Test the immutable catalog container."""

    def test_preserves_insertion_order(self, mixed_catalog):
        """Iteration follows the order entries were given in."""
        assert [e.id for e in mixed_catalog] == [
            "team-on",
            "free-on",
            "pro-off",
            "pro-on",
            "free-off",
            "team-off",
        ]
        assert mixed_catalog.ids[0] == "team-on"

    def test_len_and_contains(self, small_catalog):
        """Catalog supports len() and membership by id or entry."""
        assert len(small_catalog) == 3
        assert "a" in small_catalog
        assert "z" not in small_catalog
        assert small_catalog.get("b") in small_catalog

    @pytest.mark.parametrize("item", [["a"], {"id": "a"}, None, 42])
    def test_contains_odd_items_is_false(self, small_catalog, item):
        """Membership never raises, even for unhashable items."""
        assert (item in small_catalog) is False

    def test_get_unknown_returns_none(self, small_catalog):
        """Unknown ids yield None rather than raising."""
        assert small_catalog.get("missing") is None
        assert small_catalog.get(None) is None
        assert small_catalog.get(42) is None

    def test_duplicate_ids_rejected(self):
        """Model ids must be unique."""
        with pytest.raises(CatalogError, match="Duplicate model id"):
            ModelCatalog([ModelEntry(id="a"), ModelEntry(id="a", tier=Tier.PRO)])

    def test_non_entry_rejected(self):
        """Only ModelEntry objects can be stored."""
        with pytest.raises(CatalogError):
            ModelCatalog([{"id": "a", "tier": "free"}])

    def test_catalog_is_immutable(self, small_catalog):
        """Attributes cannot be reassigned after construction."""
        with pytest.raises(AttributeError):
            small_catalog.source = "elsewhere"
        with pytest.raises(AttributeError):
            small_catalog._entries = ()

    def test_input_list_mutation_does_not_leak(self):
        """The catalog copies its input."""
        entries = [ModelEntry(id="a")]
        catalog = ModelCatalog(entries)
        entries.append(ModelEntry(id="b"))
        assert len(catalog) == 1


class TestParseTier:
    """Test tier parsing for catalog records."""

    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("free", Tier.FREE),
            ("PRO", Tier.PRO),
            (" team ", Tier.TEAM),
            ("enterprise", Tier.TEAM),
            (Tier.PRO, Tier.PRO),
        ],
    )
    def test_known_tiers(self, raw, expected):
        assert parse_tier(raw) is expected

    @pytest.mark.parametrize("raw", ["platinum", "", None, 3])
    def test_unknown_tier_raises(self, raw):
        """Catalog data with an unknown tier is a configuration error."""
        with pytest.raises(CatalogError):
            parse_tier(raw)


class TestEntryFromRecord:
    """Test conversion of raw catalog records."""

    def test_camel_case_record(self):
        """Records use the web client's camelCase keys."""
        entry = entry_from_record(
            {
                "id": "gpt-5-nano",
                "name": "GPT-5 Nano",
                "tier": "pro",
                "quality": "premium",
                "contextLength": "64K tokens",
                "enabled": False,
                "comingSoon": True,
                "maxPromptLength": 2000,
                "apiKeyEnvVar": "OPENAI_API_KEY",
            }
        )
        assert entry.tier is Tier.PRO
        assert entry.quality is Quality.PREMIUM
        assert entry.context_length == "64K tokens"
        assert entry.enabled is False
        assert entry.coming_soon is True
        assert entry.max_prompt_length == 2000
        assert entry.api_key_env_var == "OPENAI_API_KEY"

    def test_snake_case_record(self):
        """snake_case keys are accepted too."""
        entry = entry_from_record(
            {"id": "m", "tier": "free", "coming_soon": True, "max_prompt_length": 10}
        )
        assert entry.coming_soon is True
        assert entry.max_prompt_length == 10

    def test_enabled_defaults_true(self):
        """Records without 'enabled' are live."""
        assert entry_from_record({"id": "m", "tier": "free"}).enabled is True

    def test_name_defaults_to_id(self):
        assert entry_from_record({"id": "m", "tier": "free"}).name == "m"

    def test_unknown_fields_kept_as_extra(self):
        """Unrecognized fields pass through untouched."""
        entry = entry_from_record({"id": "m", "tier": "free", "badge": "beta"})
        assert entry.extra == {"badge": "beta"}

    def test_legacy_enterprise_tier(self):
        """Records written with tier 'enterprise' become team models."""
        assert entry_from_record({"id": "m", "tier": "enterprise"}).tier is Tier.TEAM

    @pytest.mark.parametrize(
        "record,message",
        [
            ({"tier": "free"}, "missing a valid 'id'"),
            ({"id": "  ", "tier": "free"}, "missing a valid 'id'"),
            ({"id": "m"}, "missing 'tier'"),
            ({"id": "m", "tier": "gold"}, "Unknown tier"),
            ({"id": "m", "tier": "free", "enabled": "yes"}, "must be a boolean"),
            ({"id": "m", "tier": "free", "speed": "warp"}, "Invalid speed"),
            ({"id": "m", "tier": "free", "maxPromptLength": "2000"}, "non-integer"),
            ({"id": "m", "tier": "free", "maxPromptLength": -5}, "Invalid model"),
        ],
    )
    def test_malformed_records(self, record, message):
        """Malformed records raise CatalogError with a useful message."""
        with pytest.raises(CatalogError, match=message):
            entry_from_record(record)

    def test_record_must_be_mapping(self):
        with pytest.raises(CatalogError, match="must be a mapping"):
            entry_from_record(["id", "m"])

    def test_catalog_from_records_rejects_duplicates(self):
        with pytest.raises(CatalogError, match="Duplicate"):
            catalog_from_records(
                [{"id": "m", "tier": "free"}, {"id": "m", "tier": "pro"}]
            )


class TestLoadCatalog:
    """Test loading catalogs from YAML files."""

    def test_load_custom_catalog(self, tmp_path):
        """Custom catalog files load in file order."""
        path = tmp_path / "models.yaml"
        path.write_text(
            """
version: "1.0"
models:
  - id: b
    tier: pro
  - id: a
    tier: free
    enabled: false
"""
        )
        catalog = load_catalog(path)

        assert catalog.ids == ("b", "a")
        assert catalog.get("a").enabled is False
        assert catalog.source == str(path)

    def test_load_accepts_string_path(self, tmp_path):
        path = tmp_path / "models.yaml"
        path.write_text("models:\n  - id: a\n    tier: free\n")
        assert len(load_catalog(str(path))) == 1

    def test_missing_file_raises(self, tmp_path):
        with pytest.raises(CatalogError, match="Cannot read catalog"):
            load_catalog(tmp_path / "missing.yaml")

    def test_invalid_yaml_raises(self, tmp_path):
        path = tmp_path / "models.yaml"
        path.write_text("models: [unclosed")
        with pytest.raises(CatalogError, match="Invalid YAML"):
            load_catalog(path)

    @pytest.mark.parametrize("content", ["", "- a\n- b\n", "models: nope\n", "version: 1\n"])
    def test_wrong_document_shape_raises(self, tmp_path, content):
        path = tmp_path / "models.yaml"
        path.write_text(content)
        with pytest.raises(CatalogError):
            load_catalog(path)

    def test_duplicate_ids_in_file_raise(self, tmp_path):
        path = tmp_path / "models.yaml"
        path.write_text("models:\n  - {id: a, tier: free}\n  - {id: a, tier: team}\n")
        with pytest.raises(CatalogError, match="Duplicate model id"):
            load_catalog(path)


class TestBundledCatalog:
    """Test the catalog shipped with the package."""

    def test_bundled_catalog_exists(self):
        assert BUNDLED_CATALOG_PATH.exists()

    def test_bundled_catalog_loads(self):
        """The bundled catalog holds the full PromptOp model list."""
        catalog = load_catalog()
        assert len(catalog) == 25
        assert catalog.source == str(BUNDLED_CATALOG_PATH)

    def test_bundled_catalog_has_every_tier(self):
        catalog = load_catalog()
        assert {entry.tier for entry in catalog} == set(Tier)

    def test_bundled_catalog_known_entries(self):
        """Spot-check entries carried over from the web client."""
        catalog = load_catalog()

        assert catalog.get("gpt-4o-mini").tier is Tier.FREE
        assert catalog.get("gpt-4o-mini").max_prompt_length == 2000
        assert catalog.get("gpt-4o").tier is Tier.PRO
        assert catalog.get("claude-3-opus").tier is Tier.TEAM
        # Listed twice in the legacy data; the first (free) entry wins
        assert catalog.get("claude-3.5-sonnet").tier is Tier.FREE
        # Formerly an "enterprise" model
        assert catalog.get("command-r-plus").tier is Tier.TEAM

    def test_coming_soon_models_are_disabled(self):
        """Every coming-soon model in the bundled catalog is not yet live."""
        catalog = load_catalog()
        coming = [entry for entry in catalog if entry.coming_soon]
        assert {e.id for e in coming} == {"gpt-5-nano", "gpt-5-mini", "gpt-5", "claude-4-opus"}
        assert all(not entry.enabled for entry in coming)


class TestDefaultCatalog:
    """Test the lazily loaded process-wide catalog."""

    def test_default_catalog_is_cached(self):
        assert get_default_catalog() is get_default_catalog()

    def test_default_catalog_uses_bundled_file(self):
        assert get_default_catalog().source == str(BUNDLED_CATALOG_PATH)

    def test_default_catalog_honours_env_path(self, tmp_path, monkeypatch):
        """PROMPTOP_CATALOG_PATH points the service at another catalog."""
        path = tmp_path / "custom.yaml"
        path.write_text("models:\n  - id: only-model\n    tier: team\n")
        monkeypatch.setenv("PROMPTOP_CATALOG_PATH", str(path))

        catalog = get_default_catalog()

        assert catalog.ids == ("only-model",)
