import pytest
from pydantic import ValidationError

from fkb.config.settings import Settings


class TestSettings:

    def test_log_values_are_normalized(self):
        settings = Settings(LOG_LEVEL=" debug ", LOG_FORMAT="TEXT")
        assert settings.LOG_LEVEL == "DEBUG"
        assert settings.LOG_FORMAT == "text"

    def test_database_url_override_wins(self):
        settings = Settings(DATABASE_URL_OVERRIDE="sqlite+aiosqlite:///./fkb.db", TESTING=True, TEST_POSTGRES_DB="t")
        assert settings.DATABASE_URL == "sqlite+aiosqlite:///./fkb.db"

    def test_test_database_when_testing(self):
        settings = Settings(DATABASE_URL_OVERRIDE=None, TESTING=True, TEST_POSTGRES_DB="fkb_test", POSTGRES_DB="fkb")
        assert settings.DATABASE_URL.endswith("/fkb_test")
        assert settings.DATABASE_URL.startswith("postgresql+psycopg://")

    @pytest.mark.parametrize(
        "field, value",
        [("DB_POOL_SIZE", 0), ("DB_MAX_OVERFLOW", -1), ("LOG_QUEUE_MAX_SIZE", -5), ("DB_POOL_TIMEOUT", 0)],
    )
    def test_pool_ranges(self, field, value):
        with pytest.raises(ValidationError) as exc_info:
            Settings(**{field: value})
        assert field in str(exc_info.value)
