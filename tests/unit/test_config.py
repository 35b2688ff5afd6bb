"""
Unit Tests - Settings and Logging
"""
import logging

from structlog.stdlib import ProcessorFormatter

from supermarket_dw.config.logging import ROUTED_LOGGERS, configure_logging
from supermarket_dw.config.settings import DatabaseSettings


class TestDatabaseSettings:
    """Tests for store URL resolution"""

    def test_database_url_wins(self):
        config = DatabaseSettings(DATABASE_URL="sqlite+aiosqlite:///tmp/w.db")

        assert config.async_url == "sqlite+aiosqlite:///tmp/w.db"

    def test_url_built_from_parts(self):
        config = DatabaseSettings(host="db", port=5433, database="dw", user="etl", password="pw")

        assert config.async_url == "postgresql+asyncpg://etl:pw@db:5433/dw"


class TestConfigureLogging:
    """Tests for configure_logging"""

    def test_single_structured_handler_on_root(self, restore_logging):
        handler = configure_logging("debug", "console")

        root = logging.getLogger()
        assert root.handlers == [handler]
        assert root.level == logging.DEBUG
        assert isinstance(handler.formatter, ProcessorFormatter)

    def test_server_loggers_share_the_handler(self, restore_logging):
        handler = configure_logging("WARNING", "json")

        for name in ROUTED_LOGGERS:
            routed = logging.getLogger(name)
            assert routed.handlers == [handler]
            assert routed.propagate is False
            assert routed.level == logging.WARNING

    def test_unknown_level_falls_back_to_info(self, restore_logging):
        configure_logging("chatty", "json")

        assert logging.getLogger().level == logging.INFO
