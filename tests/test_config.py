"""Tests for the circulation server configuration.

These tests cover:
1. Default values and environment loading
2. Field validation, including holiday weekday names
3. Computed properties used by the calendar and the MCP handshake
"""

import os
from pathlib import Path
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from library_circulation.config import CirculationConfig, get_config, reset_config


@pytest.fixture
def in_tmp_dir(tmp_path, monkeypatch, clean_env):
    """Run in an empty directory so the default database path stays inside tmp."""
    monkeypatch.chdir(tmp_path)
    return tmp_path


class TestCirculationConfig:
    """Test configuration behaviour."""

    def test_default_configuration(self, in_tmp_dir):
        config = CirculationConfig()

        assert config.server_name == "library-circulation"
        assert config.server_version == "0.1.0"
        assert config.transport == "stdio"
        assert config.database_path == Path.cwd() / "data" / "circulation.db"
        assert config.holiday_weekdays == ["Sun"]
        assert config.ignore_holidays_fine_calc is False
        assert config.allow_ignore_rules is True

    def test_environment_variable_loading(self, in_tmp_dir):
        env_vars = {
            "LIBRARY_CIRCULATION_SERVER_NAME": "branch-library",
            "LIBRARY_CIRCULATION_DATABASE_PATH": str(in_tmp_dir / "branch.db"),
            "LIBRARY_CIRCULATION_HOLIDAY_WEEKDAYS": '["Sat", "Sun"]',
            "LIBRARY_CIRCULATION_IGNORE_HOLIDAYS_FINE_CALC": "true",
            "LIBRARY_CIRCULATION_LOG_LEVEL": "DEBUG",
        }

        with patch.dict(os.environ, env_vars):
            config = CirculationConfig()

        assert config.server_name == "branch-library"
        assert config.database_path == in_tmp_dir / "branch.db"
        assert config.holiday_weekdays == ["Sat", "Sun"]
        assert config.ignore_holidays_fine_calc is True
        assert config.log_level == "DEBUG"

    def test_server_name_validation(self, in_tmp_dir):
        for name in ["library-circulation", "branch-01"]:
            assert CirculationConfig(server_name=name).server_name == name

        for name in ["Library", "my library", "ab", "a" * 51]:
            with pytest.raises(ValidationError):
                CirculationConfig(server_name=name)

    def test_transport_validation(self, in_tmp_dir):
        assert CirculationConfig(transport="streamable_http").transport == "streamable_http"

        with pytest.raises(ValidationError):
            CirculationConfig(transport="sse")

    def test_holiday_weekdays_are_normalised(self, in_tmp_dir):
        config = CirculationConfig(holiday_weekdays=["sunday", " SAT", "Sun"])

        assert config.holiday_weekdays == ["Sun", "Sat"]
        assert config.holiday_weekday_numbers == frozenset({5, 6})

    def test_unknown_holiday_weekday_rejected(self, in_tmp_dir):
        with pytest.raises(ValidationError, match="Unknown holiday weekday"):
            CirculationConfig(holiday_weekdays=["Sun", "Funday"])

    def test_every_weekday_a_holiday_rejected(self, in_tmp_dir):
        with pytest.raises(ValidationError, match="At least one weekday must be open"):
            CirculationConfig(holiday_weekdays=["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"])

    def test_no_weekly_holidays(self, in_tmp_dir):
        config = CirculationConfig(holiday_weekdays=[])

        assert config.holiday_weekday_numbers == frozenset()

    def test_database_path_validation(self, tmp_path):
        db_path = tmp_path / "subdir" / "circulation.db"
        config = CirculationConfig(database_path=db_path)

        assert db_path.parent.is_dir()
        assert config.database_path.is_absolute()
        assert config.get_database_url() == f"sqlite:///{db_path}"

    def test_computed_properties(self, in_tmp_dir):
        assert CirculationConfig(debug=False, log_level="INFO").is_development is False
        assert CirculationConfig(debug=True).is_development is True
        assert CirculationConfig(log_level="DEBUG").is_development is True

        info = CirculationConfig().server_info
        assert info == {"name": "library-circulation", "version": "0.1.0", "transport": "stdio"}

    def test_global_config_singleton(self, in_tmp_dir):
        reset_config()

        config1 = get_config()
        assert get_config() is config1

        reset_config()
        assert get_config() is not config1

    def test_test_config_fixture_is_isolated(self, test_config, test_db_path: Path):
        assert test_config.database_path == test_db_path
        assert test_config.holiday_weekday_numbers == frozenset({6})
