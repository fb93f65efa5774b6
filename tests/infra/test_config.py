"""
Tests for infra/config/ module.

Tests the library configuration system:
- Library config loading/saving
- Env var expansion in API keys
- Validation of provider settings

All tests use temporary directories - no production data touched.
"""

import pytest
import yaml

from infra.config import (
    DefaultsConfig,
    LibraryConfig,
    LibraryConfigManager,
    ProviderConfig,
    get_storage_root,
    load_library_config,
    resolve_env_vars,
)
from infra.errors import ValidationError


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def tmp_storage(tmp_path):
    """Create a temporary storage root directory."""
    storage = tmp_path / "scriptorium"
    storage.mkdir()
    return storage


@pytest.fixture
def library_manager(tmp_storage):
    """Create a LibraryConfigManager with temp storage."""
    return LibraryConfigManager(tmp_storage)


# =============================================================================
# Env Var Resolution
# =============================================================================

class TestResolveEnvVars:

    def test_resolves_set_variable(self, monkeypatch):
        monkeypatch.setenv("TEST_KEY", "secret-123")
        assert resolve_env_vars("${TEST_KEY}") == "secret-123"

    def test_missing_variable_is_empty(self, monkeypatch):
        monkeypatch.delenv("NOT_SET_ANYWHERE", raising=False)
        assert resolve_env_vars("${NOT_SET_ANYWHERE}") == ""

    def test_literal_passthrough(self):
        assert resolve_env_vars("literal-value") == "literal-value"

    def test_embedded_reference(self, monkeypatch):
        monkeypatch.setenv("HOST", "example.org")
        assert resolve_env_vars("https://${HOST}/v1") == "https://example.org/v1"


# =============================================================================
# Schemas
# =============================================================================

class TestLibraryConfig:

    def test_with_defaults(self):
        """Default config references the Gemini key through the environment."""
        config = LibraryConfig.with_defaults()

        assert config.api_keys == {"gemini": "${GEMINI_API_KEY}"}
        assert config.defaults.model == DefaultsConfig().model
        assert config.provider.max_retries == 3

    def test_resolve_api_key(self, monkeypatch):
        monkeypatch.setenv("GEMINI_API_KEY", "abc")
        assert LibraryConfig.with_defaults().resolve_api_key("gemini") == "abc"

    def test_resolve_unset_key_is_none(self, monkeypatch):
        """An env reference that resolves to nothing counts as no key."""
        monkeypatch.delenv("GEMINI_API_KEY", raising=False)
        config = LibraryConfig.with_defaults()

        assert config.resolve_api_key("gemini") is None
        assert config.resolve_api_key("openai") is None

    def test_max_retries_must_be_positive(self):
        with pytest.raises(ValueError):
            ProviderConfig(max_retries=0)


# =============================================================================
# Manager
# =============================================================================

class TestLibraryConfigManager:

    def test_load_missing_returns_defaults(self, library_manager):
        assert not library_manager.exists()
        assert library_manager.load() == LibraryConfig.with_defaults()

    def test_save_and_load(self, library_manager):
        config = LibraryConfig.with_defaults()
        config.defaults.language = "Greek"

        library_manager.save(config)

        assert library_manager.exists()
        assert library_manager.load().defaults.language == "Greek"

    def test_saved_file_is_yaml(self, library_manager):
        library_manager.save(LibraryConfig.with_defaults())

        with open(library_manager.config_path) as f:
            data = yaml.safe_load(f)
        assert data["api_keys"]["gemini"] == "${GEMINI_API_KEY}"

    def test_update_deep_merges(self, library_manager):
        """Nested updates change one field and keep its siblings."""
        library_manager.save(LibraryConfig.with_defaults())

        updated = library_manager.update({"defaults": {"ocr_limit": 25}})

        assert updated.defaults.ocr_limit == 25
        assert updated.defaults.translate_limit == DefaultsConfig().translate_limit
        assert load_library_config(library_manager.storage_root).defaults.ocr_limit == 25

    def test_update_rejects_invalid(self, library_manager):
        with pytest.raises(ValueError):
            library_manager.update({"provider": {"max_retries": 0}})

    def test_set_value_parses_command_line_strings(self, library_manager):
        """Dotted keys from the CLI are parsed into typed values."""
        config, stored = library_manager.set_value("defaults.ocr_limit", "40")
        assert stored == 40
        assert config.defaults.ocr_limit == 40

        _, stored = library_manager.set_value("provider.backoff_base", "0.5")
        assert stored == 0.5

    def test_set_value_rejects_bad_keys(self, library_manager):
        with pytest.raises(ValidationError, match="top-level"):
            library_manager.set_value("defaults", "1")
        with pytest.raises(ValidationError, match="Unknown config section"):
            library_manager.set_value("nonsense.field", "1")
        with pytest.raises(ValidationError, match="Invalid value"):
            library_manager.set_value("provider.max_retries", "0")

    def test_set_api_key(self, library_manager):
        library_manager.set_api_key("gemini", "literal-key")
        assert library_manager.load().resolve_api_key("gemini") == "literal-key"

    def test_partial_file_fills_defaults(self, library_manager):
        library_manager.config_path.write_text("defaults:\n  target_language: French\n")

        config = library_manager.load()

        assert config.defaults.target_language == "French"
        assert config.defaults.language == DefaultsConfig().language


class TestStorageRoot:

    def test_env_override(self, tmp_path, monkeypatch):
        monkeypatch.setenv("BOOK_STORAGE_ROOT", str(tmp_path / "lib"))
        assert get_storage_root() == (tmp_path / "lib").resolve()
