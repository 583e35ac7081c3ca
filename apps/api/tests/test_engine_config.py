"""
Tests for engine configuration, policy defaults and structured logging.
"""
from __future__ import annotations

import json
import logging
from datetime import time

import pytest

from core.config import Settings, parse_default_start_time, validate_engine_config
from core.exceptions import ThresholdValidationError, WindowConfigError
from core.logging import JSONFormatter, setup_logging
from services.checkin_constants import EngineDefaults, ScoringProfile
from services.traffic_light import build_thresholds, get_default_thresholds


class TestEngineConfigValidation:
    """validate_engine_config raises for unusable policy values."""

    def test_valid_config_passes(self):
        validate_engine_config(scoring_profile="lifestyle", start_day="friday", start_time="10:00", timezone="UTC")

    def test_unknown_profile_fails(self):
        with pytest.raises(ValueError, match="CHECKIN_DEFAULT_SCORING_PROFILE"):
            validate_engine_config(scoring_profile="elite", start_day="friday", start_time="10:00", timezone="UTC")

    def test_unknown_day_fails(self):
        with pytest.raises(ValueError, match="CHECKIN_DEFAULT_START_DAY"):
            validate_engine_config(scoring_profile="lifestyle", start_day="funday", start_time="10:00", timezone="UTC")

    @pytest.mark.parametrize("bad_time", ["ten", "25:00", "10:60", "", "10"])
    def test_unparsable_start_time_fails(self, bad_time):
        with pytest.raises(ValueError, match="CHECKIN_DEFAULT_START_TIME"):
            validate_engine_config(scoring_profile="lifestyle", start_day="friday", start_time=bad_time, timezone="UTC")

    @pytest.mark.parametrize("raw,expected", [("07:45", time(7, 45)), ("7:05", time(7, 5)), ("18:30:00", time(18, 30))])
    def test_start_time_formats(self, raw, expected):
        assert parse_default_start_time(raw) == expected

    def test_unknown_timezone_fails(self):
        with pytest.raises(ValueError, match="CHECKIN_TIMEZONE"):
            validate_engine_config(scoring_profile="lifestyle", start_day="friday", start_time="10:00", timezone="Mars/Olympus")


class TestEngineDefaults:

    def test_from_settings(self):
        source = Settings(
            CHECKIN_DEFAULT_SCORING_PROFILE="moderate",
            CHECKIN_DEFAULT_START_DAY="Monday",
            CHECKIN_DEFAULT_START_TIME="07:45",
            CHECKIN_TIMEZONE="Europe/London",
            CHECKIN_SCORE_HISTORY_LIMIT=6,
        )
        defaults = EngineDefaults.from_settings(source)
        assert defaults.scoring_profile == ScoringProfile.MODERATE
        assert defaults.start_day == 1
        assert defaults.start_time == time(7, 45)
        assert defaults.timezone == "Europe/London"
        assert defaults.score_history_limit == 6

    def test_from_settings_names_bad_start_time(self):
        with pytest.raises(ValueError, match="CHECKIN_DEFAULT_START_TIME"):
            EngineDefaults.from_settings(Settings(CHECKIN_DEFAULT_START_TIME="ten"))

    def test_from_settings_rejects_unknown_day(self):
        with pytest.raises(ValueError, match="CHECKIN_DEFAULT_START_DAY"):
            EngineDefaults.from_settings(Settings(CHECKIN_DEFAULT_START_DAY="someday"))

    def test_injected_defaults_drive_fallback_profile(self):
        strict = EngineDefaults(scoring_profile=ScoringProfile.HIGH_PERFORMANCE)
        t = get_default_thresholds(None, strict)
        assert (t.red_max, t.orange_max) == (75, 89)


class TestErrors:

    def test_threshold_error_carries_code(self):
        with pytest.raises(ThresholdValidationError) as exc:
            build_thresholds(80, 20)
        assert exc.value.error_code == "INVALID_THRESHOLDS"
        assert exc.value.red_max == 80

    def test_window_error_code_names_field(self):
        err = WindowConfigError("bad", field="start_time")
        assert err.error_code == "INVALID_WINDOW_START_TIME"


class TestJSONFormatter:

    def test_formats_record_as_json(self):
        record = logging.LogRecord(
            name="services.checkin_window", level=logging.WARNING, pathname=__file__,
            lineno=10, msg="Check-in window unusable: %s", args=("bad time",), exc_info=None,
        )
        record.extra_fields = {"client_id": "c-1"}
        payload = json.loads(JSONFormatter().format(record))
        assert payload["level"] == "WARNING"
        assert payload["logger"] == "services.checkin_window"
        assert payload["message"] == "Check-in window unusable: bad time"
        assert payload["client_id"] == "c-1"


class TestSetupLogging:
    """setup_logging installs a single stdout handler on the root logger."""

    @pytest.fixture(autouse=True)
    def restore_root_logger(self):
        root = logging.getLogger()
        handlers, level = list(root.handlers), root.level
        yield
        root.handlers[:] = handlers
        root.setLevel(level)

    def test_json_format(self):
        root = setup_logging(level="debug", fmt="json")
        assert root.level == logging.DEBUG
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, JSONFormatter)

    def test_text_format(self, monkeypatch):
        monkeypatch.setattr("core.logging.settings.ENVIRONMENT", "development")
        root = setup_logging(level="WARNING", fmt="text")
        assert root.level == logging.WARNING
        assert not isinstance(root.handlers[0].formatter, JSONFormatter)
