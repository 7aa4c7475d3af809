"""
Configuration and Logging Setup

Provides centralized configuration and logging for the browser control plane.
Values are read from environment variables (and a local .env file) with
defaults suitable for a single-host headless deployment.

Usage:
    from browser_control.config import ServiceConfig, configure_logging, get_logger

    # Configure at application startup
    configure_logging()
    config = ServiceConfig.from_env()

    # Get logger in any module
    logger = get_logger(__name__)
"""

import logging
import os
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from browser_control.browser.controller import BrowserConfig

# Load environment variables
load_dotenv()

# Default configuration
DEFAULT_LOG_LEVEL = "INFO"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_FORMAT_SIMPLE = "%(levelname)s: %(message)s"

# Valid log levels
VALID_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}


@dataclass
class ServiceConfig:
    """
    Control plane configuration.

    Paths default to subdirectories of ``home`` so a single
    BROWSER_CONTROL_HOME relocates all persisted state.
    """

    # Data directory holding profiles/, sessions/ and flows/
    home: Path = field(default_factory=lambda: Path("."))

    profiles_dir: Optional[Path] = None
    sessions_dir: Optional[Path] = None
    flows_dir: Optional[Path] = None

    # HTTP server binding
    host: str = "127.0.0.1"
    port: int = 3456

    # Browser launch settings shared by sessions and flow runs
    browser: BrowserConfig = field(default_factory=BrowserConfig)

    # Navigation upper bound for session start and flow runs (ms)
    start_timeout_ms: int = 120000

    # Navigation upper bound for subsequent navigate calls (ms)
    navigate_timeout_ms: int = 60000

    # Settle delay after navigation, for client-side rendering (ms)
    settle_ms: int = 1500

    # Settle delay after a chunk executes (ms)
    chunk_settle_ms: int = 500

    def __post_init__(self) -> None:
        self.home = Path(self.home)
        if self.profiles_dir is None:
            self.profiles_dir = self.home / "profiles"
        if self.sessions_dir is None:
            self.sessions_dir = self.home / "sessions"
        if self.flows_dir is None:
            self.flows_dir = self.home / "flows"
        self.profiles_dir = Path(self.profiles_dir)
        self.sessions_dir = Path(self.sessions_dir)
        self.flows_dir = Path(self.flows_dir)

    @classmethod
    def from_env(cls) -> "ServiceConfig":
        """
        Create ServiceConfig from environment variables.

        Environment variables:
            BROWSER_CONTROL_HOME: data directory (default: .)
            PROFILES_DIR / SESSIONS_DIR / FLOWS_DIR: override individual dirs
            BROWSER_CONTROL_HOST: bind address (default: 127.0.0.1)
            BROWSER_CONTROL_PORT: bind port (default: 3456)
            START_TIMEOUT_MS: initial navigation bound (default: 120000)
            NAVIGATE_TIMEOUT_MS: navigate bound (default: 60000)
            SETTLE_MS: post-navigation settle delay (default: 1500)
            CHUNK_SETTLE_MS: post-chunk settle delay (default: 500)

        Browser variables are documented on BrowserConfig.from_env().
        """
        home = Path(os.getenv("BROWSER_CONTROL_HOME", "."))

        def _optional_path(name: str) -> Optional[Path]:
            value = os.getenv(name)
            return Path(value) if value else None

        return cls(
            home=home,
            profiles_dir=_optional_path("PROFILES_DIR"),
            sessions_dir=_optional_path("SESSIONS_DIR"),
            flows_dir=_optional_path("FLOWS_DIR"),
            host=os.getenv("BROWSER_CONTROL_HOST", "127.0.0.1"),
            port=int(os.getenv("BROWSER_CONTROL_PORT", "3456")),
            browser=BrowserConfig.from_env(),
            start_timeout_ms=int(os.getenv("START_TIMEOUT_MS", "120000")),
            navigate_timeout_ms=int(os.getenv("NAVIGATE_TIMEOUT_MS", "60000")),
            settle_ms=int(os.getenv("SETTLE_MS", "1500")),
            chunk_settle_ms=int(os.getenv("CHUNK_SETTLE_MS", "500")),
        )


def get_log_level() -> int:
    """
    Get the log level from LOG_LEVEL environment variable.

    Returns:
        Logging level constant (e.g., logging.INFO)

    Supported values:
        DEBUG, INFO, WARNING, ERROR, CRITICAL
    """
    level_str = os.getenv("LOG_LEVEL", DEFAULT_LOG_LEVEL).upper()

    if level_str not in VALID_LEVELS:
        # Warn about invalid level and use default
        print(
            f"Warning: Invalid LOG_LEVEL '{level_str}'. "
            f"Valid values: {', '.join(VALID_LEVELS.keys())}. "
            f"Using {DEFAULT_LOG_LEVEL}.",
            file=sys.stderr,
        )
        return VALID_LEVELS[DEFAULT_LOG_LEVEL]

    return VALID_LEVELS[level_str]


def configure_logging(
    level: Optional[int] = None,
    verbose: bool = False,
) -> None:
    """
    Configure logging for the control plane.

    Should be called once at application startup.

    Args:
        level: Override log level (default: from LOG_LEVEL env var)
        verbose: Use detailed format with timestamps (default: simple format)
    """
    if level is None:
        level = get_log_level()

    log_format = LOG_FORMAT if verbose else LOG_FORMAT_SIMPLE

    logging.basicConfig(
        level=level,
        format=log_format,
        stream=sys.stderr,
        force=True,  # Override any existing configuration
    )

    logging.getLogger("browser_control").setLevel(level)

    # Quiet noisy third-party loggers in non-debug mode
    if level > logging.DEBUG:
        logging.getLogger("playwright").setLevel(logging.WARNING)
        logging.getLogger("asyncio").setLevel(logging.WARNING)
        logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
        logging.getLogger("httpx").setLevel(logging.WARNING)
        logging.getLogger("httpcore").setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger for a module.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured logger instance
    """
    return logging.getLogger(name)
