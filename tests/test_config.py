"""
Unit tests for application settings
"""
import logging

import pytest

from config import Settings


class TestSettings:

    @pytest.mark.parametrize("value", ["info", "Info", " INFO "])
    def test_log_level_is_upper_cased(self, value):
        settings = Settings(LOG_LEVEL=value)

        assert settings.get_log_level() == "INFO"
        assert logging.getLevelName(settings.get_log_level()) == logging.INFO

    def test_allowed_origins_comma_separated(self):
        settings = Settings(ALLOWED_ORIGINS="http://a.example.com, http://b.example.com")

        assert settings.get_allowed_origins() == ["http://a.example.com", "http://b.example.com"]

    def test_allowed_origins_json_list(self):
        settings = Settings(ALLOWED_ORIGINS='["http://a.example.com"]')

        assert settings.get_allowed_origins() == ["http://a.example.com"]
