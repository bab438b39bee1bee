import os
import logging
from pathlib import Path
from typing import Optional

from concurrent_log_handler import ConcurrentRotatingFileHandler
from dotenv import load_dotenv

from .api_client import DEFAULT_CF_BASE_URL, DEFAULT_ESA_ENDPOINT
from .credentials import cdn_credential_source, edge_credential_source

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def setup_logging(level: Optional[str] = None, log_dir: Optional[str] = None) -> logging.Logger:
    """Configure logging settings."""
    level = (level or os.getenv('LOG_LEVEL', 'INFO')).upper()
    log_dir = Path(log_dir or os.getenv('LOG_DIR', 'logs'))
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / 'traffic_adapter.log'

    # Rotating file handler safe for several server worker processes
    file_handler = ConcurrentRotatingFileHandler(
        str(log_file),
        maxBytes=10 * 1024 * 1024,
        backupCount=7
    )

    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        handlers=[
            logging.StreamHandler(),
            file_handler
        ]
    )

    logger = logging.getLogger(__name__)
    logger.info(f"Logging initialized. Log file: {log_file}")
    logger.info(f"Python logger level: {logging.getLevelName(logger.getEffectiveLevel())}")

    return logger


class Config:
    """Configuration management for the traffic adapter."""

    def __init__(self):
        """Initialize configuration with environment variables and defaults."""
        load_dotenv()

        # Upstream endpoints
        self.cf_base_url = os.getenv('CF_API_BASE_URL', DEFAULT_CF_BASE_URL)
        self.esa_endpoint = os.getenv('ESA_ENDPOINT', DEFAULT_ESA_ENDPOINT)
        self.request_timeout = float(os.getenv('REQUEST_TIMEOUT', '30'))

        # Credential fallback file
        self.key_file = Path(os.getenv('KEY_FILE', 'key.txt')).resolve()

        # Server
        self.host = os.getenv('HOST', '0.0.0.0')
        self.port = int(os.getenv('PORT', '8080'))

        # Logging
        self.log_level = os.getenv('LOG_LEVEL', 'INFO')
        self.log_dir = os.getenv('LOG_DIR', 'logs')

    def cdn_credential_source(self):
        return cdn_credential_source(self.key_file)

    def edge_credential_source(self):
        return edge_credential_source(self.key_file)

    def __str__(self) -> str:
        """String representation of configuration."""
        return (
            f"Traffic Adapter Configuration:\n"
            f"- Cloudflare API: {self.cf_base_url}\n"
            f"- Edge Analytics Endpoint: {self.esa_endpoint}\n"
            f"- Request Timeout: {self.request_timeout}s\n"
            f"- Key File: {self.key_file}\n"
            f"- Listen: {self.host}:{self.port}"
        )

    def __repr__(self) -> str:
        """Detailed string representation of configuration."""
        return (
            f"Config("
            f"cf_base_url='{self.cf_base_url}', "
            f"esa_endpoint='{self.esa_endpoint}', "
            f"key_file='{self.key_file}', "
            f"port={self.port}"
            f")"
        )
