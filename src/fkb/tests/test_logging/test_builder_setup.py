import logging

from fkb.core.logging.builder import make_dict_config, setup_logging

from ..test_fixtures.logging_fixtures import make_test_settings


class TestMakeDictConfig:

    def test_file_handlers_when_not_on_stdout(self, tmp_path):
        cfg = make_dict_config(make_test_settings(tmp_path))

        assert set(cfg["handlers"]) == {"console", "file", "error_file"}
        assert cfg["handlers"]["file"]["filename"].endswith("fkb.log")
        assert cfg["handlers"]["error_file"]["filename"].endswith("errors.log")
        assert set(cfg["filters"]) == {"correlation_id", "redact"}
        assert "json" in cfg["formatters"]

    def test_stdout_only(self, tmp_path):
        cfg = make_dict_config(make_test_settings(tmp_path, LOG_TO_STDOUT=True, LOG_FORMAT="text"))

        assert set(cfg["handlers"]) == {"console", "error_console"}
        assert cfg["handlers"]["console"]["formatter"] == "standard"

    def test_sql_loggers_follow_flag(self, tmp_path):
        quiet = make_dict_config(make_test_settings(tmp_path))
        loud = make_dict_config(make_test_settings(tmp_path, ENABLE_SQL_LOGGING=True))

        assert quiet["loggers"]["sqlalchemy.engine"]["level"] == "WARNING"
        assert loud["loggers"]["sqlalchemy.engine"]["level"] == "DEBUG"
        assert loud["loggers"]["sqlalchemy.pool"]["level"] == "DEBUG"


class TestSetupLogging:

    def test_creates_log_dir_and_writes(self, tmp_path, restore_logging):
        settings = make_test_settings(tmp_path / "logs")
        assert not settings.LOG_DIR.exists()

        setup_logging(settings)
        logging.getLogger("fkb.test").info("setup.check", extra={"model": "Friend"})
        for handler in logging.getLogger().handlers:
            handler.flush()

        assert settings.LOG_DIR.exists()
        text = (settings.LOG_DIR / "fkb.log").read_text()
        assert "setup.check" in text
        assert '"model": "Friend"' in text
