"""
Configuration module for FieldCRM MCP Server.

Provides centralized configuration management with support for:
- Environment variables
- Default values
- Path resolution
- Logging configuration
"""

import logging
import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# Load environment variables from .env file at project root
_env_path = Path(__file__).resolve().parent / ".env"
load_dotenv(dotenv_path=_env_path)

DEFAULT_GEOCODE_BASE_URL = "https://nominatim.openstreetmap.org"
DEFAULT_ROUTE_BASE_URL = "https://router.project-osrm.org"
DEFAULT_INVOICE_BASE_URL = "https://api.greeninvoice.co.il/api/v1"
DEFAULT_USER_AGENT = "FieldCRM/1.0"


def _parse_int(env_var: str, default: int) -> int:
    """Parse an integer from env, falling back to default on junk values."""
    value = os.getenv(env_var)
    if value is None or not value.strip():
        return default
    try:
        return int(value)
    except ValueError:
        logging.getLogger(__name__).warning(
            f"Ignoring non-integer {env_var}={value!r}, using {default}"
        )
        return default


def _parse_float(env_var: str, default: float) -> float:
    """Parse a float from env, falling back to default on junk values."""
    value = os.getenv(env_var)
    if value is None or not value.strip():
        return default
    try:
        return float(value)
    except ValueError:
        logging.getLogger(__name__).warning(
            f"Ignoring non-numeric {env_var}={value!r}, using {default}"
        )
        return default


class Config:
    """
    Configuration class for MCP server settings.

    Supports configuration via environment variables (and .env file) with sensible defaults.
    All paths are resolved relative to the repository root.
    """

    def __init__(self):
        """Initialize configuration from environment variables and defaults."""
        self._repo_root = self._find_repo_root()

        # Database configuration
        self.db_path = self._resolve_db_path()

        # Logging configuration
        self.log_level = os.getenv("FIELDCRM_LOG_LEVEL", "INFO").upper()
        self.log_file = self._resolve_log_path()

        # Server configuration
        self.server_name = os.getenv("FIELDCRM_SERVER_NAME", "fieldcrm-mcp-server")

        # Outbound HTTP (geocoding, routing, invoicing)
        self.http_user_agent = os.getenv("FIELDCRM_HTTP_USER_AGENT", DEFAULT_USER_AGENT)
        self.http_timeout_seconds = _parse_float("FIELDCRM_HTTP_TIMEOUT_SECONDS", 8.0)

        self.geocode_base_url = os.getenv(
            "FIELDCRM_GEOCODE_BASE_URL", DEFAULT_GEOCODE_BASE_URL
        ).rstrip("/")
        self.geocode_fallback_api_key = os.getenv("FIELDCRM_GEOCODE_FALLBACK_API_KEY") or None
        self.geocode_country_suffix = os.getenv("FIELDCRM_GEOCODE_COUNTRY_SUFFIX", "Israel")

        self.route_base_url = os.getenv("FIELDCRM_ROUTE_BASE_URL", DEFAULT_ROUTE_BASE_URL).rstrip(
            "/"
        )

        # Geocode/route cache policy
        self.cache_ttl_seconds = _parse_int("FIELDCRM_CACHE_TTL_SECONDS", 86400)
        self.cache_max_entries = _parse_int("FIELDCRM_CACHE_MAX_ENTRIES", 2048)

        # Invoicing API
        self.invoice_base_url = os.getenv(
            "FIELDCRM_INVOICE_BASE_URL", DEFAULT_INVOICE_BASE_URL
        ).rstrip("/")
        self.invoice_api_key = os.getenv("FIELDCRM_INVOICE_API_KEY") or None
        self.invoice_api_secret = os.getenv("FIELDCRM_INVOICE_API_SECRET") or None

        # list_schedule defaults
        self.schedule_limit = _parse_int("FIELDCRM_SCHEDULE_LIMIT", 500)

    def _find_repo_root(self) -> Path:
        """
        Find the repository root directory.

        config.py lives at the repository root.
        """
        return Path(__file__).resolve().parent

    def _resolve_db_path(self) -> Path:
        """
        Resolve the database path from environment or default.

        Resolution order:
        1. FIELDCRM_DB environment variable (absolute or relative)
        2. FIELDCRM_ROOT/data/crm.db
        3. Default: <repo_root>/data/crm.db

        Returns:
            Resolved absolute Path to database
        """
        db_env = os.getenv("FIELDCRM_DB")
        if db_env:
            db_path = Path(db_env)
            if db_path.is_absolute():
                return db_path
            return self._repo_root / db_path

        root_env = os.getenv("FIELDCRM_ROOT")
        if root_env:
            return Path(root_env) / "data" / "crm.db"

        return self._repo_root / "data" / "crm.db"

    def _resolve_log_path(self) -> Optional[Path]:
        """
        Resolve the log file path from environment.

        If FIELDCRM_LOG_FILE is set, logs will be written to that file.
        Otherwise, logs go to stderr only.
        """
        log_env = os.getenv("FIELDCRM_LOG_FILE")
        if not log_env:
            return None

        log_path = Path(log_env)
        if log_path.is_absolute():
            return log_path
        return self._repo_root / log_path

    @property
    def invoice_configured(self) -> bool:
        """True when both invoicing credentials are present."""
        return bool(self.invoice_api_key and self.invoice_api_secret)

    def setup_logging(self):
        """
        Configure logging based on configuration settings.

        Sets up logging to stderr and optionally to a file.
        Log level is controlled by FIELDCRM_LOG_LEVEL.
        """
        numeric_level = getattr(logging, self.log_level, logging.INFO)

        formatter = logging.Formatter(
            fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s", datefmt="%Y-%m-%d %H:%M:%S"
        )

        root_logger = logging.getLogger()
        root_logger.setLevel(numeric_level)

        # Remove existing handlers to avoid duplicates
        root_logger.handlers.clear()

        stderr_handler = logging.StreamHandler()
        stderr_handler.setLevel(numeric_level)
        stderr_handler.setFormatter(formatter)
        root_logger.addHandler(stderr_handler)

        if self.log_file:
            self.log_file.parent.mkdir(parents=True, exist_ok=True)

            file_handler = logging.FileHandler(self.log_file)
            file_handler.setLevel(numeric_level)
            file_handler.setFormatter(formatter)
            root_logger.addHandler(file_handler)

            logging.info(f"Logging to file: {self.log_file}")

        logging.info(f"Log level set to: {self.log_level}")
        logging.info(f"Repository root: {self._repo_root}")
        logging.info(f"Database path: {self.db_path}")

    def get_db_path_str(self) -> str:
        """Get database path as string for use in tool handlers."""
        return str(self.db_path)

    def validate(self) -> list[str]:
        """
        Validate configuration and return any warnings.

        Returns:
            List of warning messages (empty if all valid)
        """
        warnings = []

        if not self.db_path.exists():
            warnings.append(
                f"Database file not found: {self.db_path}. "
                "Run scripts/seed_workflow_fixtures.py or point FIELDCRM_DB at an existing database."
            )

        if self.log_file:
            log_dir = self.log_file.parent
            if not log_dir.exists():
                try:
                    log_dir.mkdir(parents=True, exist_ok=True)
                except OSError as e:
                    warnings.append(f"Cannot create log directory {log_dir}: {e}")
            elif not os.access(log_dir, os.W_OK):
                warnings.append(f"Log directory not writable: {log_dir}")

        if self.cache_ttl_seconds <= 0:
            warnings.append("FIELDCRM_CACHE_TTL_SECONDS is not positive; caching is disabled.")

        if bool(self.invoice_api_key) != bool(self.invoice_api_secret):
            warnings.append(
                "Only one of FIELDCRM_INVOICE_API_KEY / FIELDCRM_INVOICE_API_SECRET is set; "
                "create_invoice_draft will fail until both are provided."
            )

        return warnings


# Global configuration instance
config = Config()


def get_config() -> Config:
    """Get the global configuration instance."""
    return config
