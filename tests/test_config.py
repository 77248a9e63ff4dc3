"""
Unit tests for configuration module.

Tests configuration loading, path resolution, and validation.
"""

import logging
import os
from pathlib import Path
from unittest.mock import patch

from config import (
    DEFAULT_GEOCODE_BASE_URL,
    DEFAULT_INVOICE_BASE_URL,
    DEFAULT_ROUTE_BASE_URL,
    DEFAULT_USER_AGENT,
    Config,
    get_config,
)


class TestConfig:
    """Test suite for Config class."""

    def test_default_configuration(self):
        with patch.dict(os.environ, {}, clear=True):
            config = Config()

            assert config.log_level == "INFO"
            assert config.log_file is None
            assert config.server_name == "fieldcrm-mcp-server"
            assert config.db_path == config._repo_root / "data" / "crm.db"
            assert config.http_user_agent == DEFAULT_USER_AGENT
            assert config.http_timeout_seconds == 8.0
            assert config.geocode_base_url == DEFAULT_GEOCODE_BASE_URL
            assert config.geocode_fallback_api_key is None
            assert config.geocode_country_suffix == "Israel"
            assert config.route_base_url == DEFAULT_ROUTE_BASE_URL
            assert config.cache_ttl_seconds == 86400
            assert config.cache_max_entries == 2048
            assert config.invoice_base_url == DEFAULT_INVOICE_BASE_URL
            assert config.invoice_configured is False
            assert config.schedule_limit == 500

    def test_db_path_from_env_absolute(self):
        with patch.dict(os.environ, {"FIELDCRM_DB": "/absolute/path/to/crm.db"}, clear=True):
            assert str(Config().db_path) == "/absolute/path/to/crm.db"

    def test_db_path_from_env_relative(self):
        with patch.dict(os.environ, {"FIELDCRM_DB": "custom/crm.db"}, clear=True):
            config = Config()
            assert config.db_path == config._repo_root / "custom" / "crm.db"

    def test_db_path_from_root(self):
        with patch.dict(os.environ, {"FIELDCRM_ROOT": "/srv/fieldcrm"}, clear=True):
            assert Config().db_path == Path("/srv/fieldcrm/data/crm.db")

    def test_db_env_takes_precedence_over_root(self):
        env = {"FIELDCRM_DB": "/a/crm.db", "FIELDCRM_ROOT": "/b"}
        with patch.dict(os.environ, env, clear=True):
            assert str(Config().db_path) == "/a/crm.db"

    def test_log_level_is_upper_cased(self):
        with patch.dict(os.environ, {"FIELDCRM_LOG_LEVEL": "debug"}, clear=True):
            assert Config().log_level == "DEBUG"

    def test_base_urls_lose_trailing_slash(self):
        env = {
            "FIELDCRM_GEOCODE_BASE_URL": "http://geo.local/",
            "FIELDCRM_ROUTE_BASE_URL": "http://osrm.local/",
            "FIELDCRM_INVOICE_BASE_URL": "http://invoice.local/api/v1/",
        }
        with patch.dict(os.environ, env, clear=True):
            config = Config()
            assert config.geocode_base_url == "http://geo.local"
            assert config.route_base_url == "http://osrm.local"
            assert config.invoice_base_url == "http://invoice.local/api/v1"

    def test_numeric_settings(self):
        env = {
            "FIELDCRM_HTTP_TIMEOUT_SECONDS": "2.5",
            "FIELDCRM_CACHE_TTL_SECONDS": "60",
            "FIELDCRM_SCHEDULE_LIMIT": "25",
        }
        with patch.dict(os.environ, env, clear=True):
            config = Config()
            assert config.http_timeout_seconds == 2.5
            assert config.cache_ttl_seconds == 60
            assert config.schedule_limit == 25

    def test_junk_numbers_fall_back_to_defaults(self):
        env = {"FIELDCRM_CACHE_MAX_ENTRIES": "lots", "FIELDCRM_HTTP_TIMEOUT_SECONDS": "soon"}
        with patch.dict(os.environ, env, clear=True):
            config = Config()
            assert config.cache_max_entries == 2048
            assert config.http_timeout_seconds == 8.0

    def test_invoice_configured_needs_both_credentials(self):
        with patch.dict(os.environ, {"FIELDCRM_INVOICE_API_KEY": "k"}, clear=True):
            assert Config().invoice_configured is False
        env = {"FIELDCRM_INVOICE_API_KEY": "k", "FIELDCRM_INVOICE_API_SECRET": "s"}
        with patch.dict(os.environ, env, clear=True):
            assert Config().invoice_configured is True

    def test_get_db_path_str(self):
        with patch.dict(os.environ, {"FIELDCRM_DB": "/tmp/crm.db"}, clear=True):
            assert Config().get_db_path_str() == "/tmp/crm.db"

    def test_get_config_returns_singleton(self):
        assert get_config() is get_config()


class TestConfigValidate:
    def test_missing_database_warns(self, tmp_path):
        with patch.dict(os.environ, {"FIELDCRM_DB": str(tmp_path / "missing.db")}, clear=True):
            warnings = Config().validate()
        assert any("Database file not found" in w for w in warnings)

    def test_existing_database_no_warning(self, tmp_path):
        db_file = tmp_path / "crm.db"
        db_file.touch()
        with patch.dict(os.environ, {"FIELDCRM_DB": str(db_file)}, clear=True):
            assert Config().validate() == []

    def test_disabled_cache_warns(self, tmp_path):
        db_file = tmp_path / "crm.db"
        db_file.touch()
        env = {"FIELDCRM_DB": str(db_file), "FIELDCRM_CACHE_TTL_SECONDS": "0"}
        with patch.dict(os.environ, env, clear=True):
            warnings = Config().validate()
        assert any("caching is disabled" in w for w in warnings)

    def test_half_configured_invoicing_warns(self, tmp_path):
        db_file = tmp_path / "crm.db"
        db_file.touch()
        env = {"FIELDCRM_DB": str(db_file), "FIELDCRM_INVOICE_API_SECRET": "s"}
        with patch.dict(os.environ, env, clear=True):
            warnings = Config().validate()
        assert any("FIELDCRM_INVOICE_API_KEY" in w for w in warnings)

    def test_log_directory_is_created(self, tmp_path):
        db_file = tmp_path / "crm.db"
        db_file.touch()
        log_file = tmp_path / "logs" / "server.log"
        env = {"FIELDCRM_DB": str(db_file), "FIELDCRM_LOG_FILE": str(log_file)}
        with patch.dict(os.environ, env, clear=True):
            assert Config().validate() == []
        assert log_file.parent.is_dir()


class TestSetupLogging:
    def test_setup_logging_installs_handlers(self, tmp_path):
        log_file = tmp_path / "server.log"
        env = {"FIELDCRM_LOG_LEVEL": "WARNING", "FIELDCRM_LOG_FILE": str(log_file)}
        root_logger = logging.getLogger()
        saved_handlers, saved_level = root_logger.handlers[:], root_logger.level
        try:
            with patch.dict(os.environ, env, clear=True):
                Config().setup_logging()

            assert root_logger.level == logging.WARNING
            assert len(root_logger.handlers) == 2
            assert log_file.exists()
        finally:
            for handler in root_logger.handlers:
                handler.close()
            root_logger.handlers[:] = saved_handlers
            root_logger.setLevel(saved_level)
