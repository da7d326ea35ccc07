"""
Tests for configuration loading
"""

from unittest.mock import patch

from names_bot.config import Settings, get_database_path


class TestSettings:
    """Test settings defaults and parsing"""

    def test_defaults(self):
        settings = Settings(telegram_bot_token="token")

        assert settings.database_url == "sqlite:///data/bot.db"
        assert settings.names_file == "data/names.json"
        assert settings.mastery_threshold == 3
        assert settings.default_names_per_day == 1
        assert settings.default_quiz_length == 5
        assert settings.reminder_interval_hours == 4
        assert settings.allowed_users_list == []

    def test_allowed_users_list(self):
        settings = Settings(telegram_bot_token="token", allowed_users="1, 2,,3 ")
        assert settings.allowed_users_list == [1, 2, 3]

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("TELEGRAM_BOT_TOKEN", "from-env")
        monkeypatch.setenv("MASTERY_THRESHOLD", "5")
        monkeypatch.setenv("REMINDER_ENABLED", "false")

        settings = Settings()

        assert settings.telegram_bot_token == "from-env"
        assert settings.mastery_threshold == 5
        assert settings.reminder_enabled is False

    def test_database_path_from_url(self):
        settings = Settings(telegram_bot_token="token", database_url="sqlite:///tmp/x.db")
        with patch("names_bot.config.get_settings", return_value=settings):
            assert get_database_path() == "tmp/x.db"

    def test_database_path_fallback(self):
        settings = Settings(telegram_bot_token="token", database_url="postgres://db")
        with patch("names_bot.config.get_settings", return_value=settings):
            assert get_database_path() == "data/bot.db"
