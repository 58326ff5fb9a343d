"""
Unit tests for application settings.
"""

import pytest
from pydantic import ValidationError

from auditflow.config import Settings, get_settings


@pytest.mark.unit
class TestSettings:
    """Test settings defaults, environment overrides and validation."""

    def test_defaults(self) -> None:
        settings = Settings(_env_file=None)
        assert settings.weight_tolerance == 0.01
        assert settings.default_min_maturity_level == 0
        assert settings.default_max_maturity_level == 5
        assert settings.audit_code_prefix == "AUD"
        assert settings.is_sqlite

    def test_environment_override(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("AUDITFLOW_WEIGHT_TOLERANCE", "0.05")
        monkeypatch.setenv("AUDITFLOW_AUDIT_CODE_PREFIX", "ISO")
        settings = Settings(_env_file=None)
        assert settings.weight_tolerance == 0.05
        assert settings.audit_code_prefix == "ISO"

    def test_log_level_is_uppercased(self) -> None:
        assert Settings(_env_file=None, log_level="debug").log_level == "DEBUG"

    def test_unknown_log_level_rejected(self) -> None:
        with pytest.raises(ValidationError):
            Settings(_env_file=None, log_level="verbose")

    @pytest.mark.parametrize("tolerance", [0, -0.01, 1])
    def test_tolerance_bounds(self, tolerance: float) -> None:
        with pytest.raises(ValidationError):
            Settings(_env_file=None, weight_tolerance=tolerance)

    def test_inverted_maturity_range_rejected(self) -> None:
        with pytest.raises(ValidationError):
            Settings(_env_file=None, default_min_maturity_level=4, default_max_maturity_level=3)

    def test_postgres_url_is_not_sqlite(self) -> None:
        assert not Settings(_env_file=None, database_url="postgresql://u:p@localhost/db").is_sqlite

    def test_get_settings_is_cached(self) -> None:
        assert get_settings() is get_settings()
