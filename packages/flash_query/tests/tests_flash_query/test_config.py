import pytest
from flash_query import QuerySettings
from pydantic import ValidationError


class TestQuerySettings:
    def test_defaults(self, monkeypatch):
        """Verify the defaults when no environment overrides exist."""
        names = ("LOG_LEVEL", "LOG_MERGES", "DEFAULT_STORE", "DEBUG", "ENVIRONMENT")
        for name in names:
            monkeypatch.delenv(f"FLASH_QUERY_{name}", raising=False)
        settings = QuerySettings(_env_file=None)

        assert settings.LOG_LEVEL == "INFO"
        assert settings.LOG_FILE is None
        assert settings.LOG_MERGES is False
        assert settings.DEFAULT_STORE == "default"
        assert settings.is_development() is True

    def test_environment_overrides_use_prefix(self, monkeypatch):
        """Test that FLASH_QUERY_ environment variables override defaults."""
        monkeypatch.setenv("FLASH_QUERY_LOG_MERGES", "true")
        monkeypatch.setenv("FLASH_QUERY_DEFAULT_STORE", "primary")
        settings = QuerySettings(_env_file=None)

        assert settings.LOG_MERGES is True
        assert settings.DEFAULT_STORE == "primary"

    def test_log_level_is_normalized(self):
        """Test that the log level is upper-cased."""
        assert QuerySettings(LOG_LEVEL="debug", _env_file=None).LOG_LEVEL == "DEBUG"

    def test_unknown_log_level_rejected(self):
        """Test that an unknown log level fails validation."""
        with pytest.raises(ValidationError, match="Unknown log level"):
            QuerySettings(LOG_LEVEL="chatty", _env_file=None)

    def test_production_is_not_development(self):
        """Test that is_development() is False in production."""
        settings = QuerySettings(ENVIRONMENT="production", _env_file=None)
        assert settings.is_development() is False
