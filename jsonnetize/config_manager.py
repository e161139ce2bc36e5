import logging
import os
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import colorlog
from dotenv import load_dotenv

from jsonnetize.logging_config import configure_structlog

# Load environment variables
load_dotenv()

"""
Configuration Management for jsonnetize

Settings come from the environment (optionally via a .env file) and from
command-line overrides. The resulting objects are built once at startup and
handed to the core as plain parameters.
"""


logger = logging.getLogger(__name__)


@dataclass
class ToolConfig:
    """Names or paths of the external binaries."""

    jsonnet_bin: str = field(
        default_factory=lambda: os.getenv("JSONNETIZE_JSONNET_BIN", "jsonnet")
    )
    kustomize_bin: str = field(
        default_factory=lambda: os.getenv("JSONNETIZE_KUSTOMIZE_BIN", "kustomize")
    )

    def __post_init__(self) -> None:
        """Validate tool configuration."""
        if not self.jsonnet_bin.strip():
            raise ValueError("jsonnet binary must not be empty")
        if not self.kustomize_bin.strip():
            raise ValueError("kustomize binary must not be empty")


@dataclass
class LoggingConfig:
    """Configuration for logging behavior."""

    level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))
    format: str = field(
        default_factory=lambda: os.getenv(
            "LOG_FORMAT", "%(log_color)s%(levelname)s:%(name)s:%(message)s"
        )
    )
    file_output: Optional[str] = field(default_factory=lambda: os.getenv("LOG_FILE"))

    def __post_init__(self) -> None:
        """Validate logging configuration."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if self.level.upper() not in valid_levels:
            raise ValueError(f"Log level must be one of: {valid_levels}")
        self.level = self.level.upper()

    def get_log_level(self) -> int:
        """Convert string log level to logging constant."""
        level_attr = getattr(logging, self.level, None)
        if level_attr is None:
            raise ValueError(f"Invalid log level: {self.level}")
        return int(level_attr)


@dataclass
class JsonnetizeConfig:
    """Main configuration class that aggregates all configuration sections."""

    output_root: Path = field(default_factory=Path.cwd)
    tools: ToolConfig = field(default_factory=ToolConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    run_build: bool = True

    @classmethod
    def from_environment(
        cls,
        output: Optional[str] = None,
        log_level: Optional[str] = None,
        skip_build: bool = False,
    ) -> "JsonnetizeConfig":
        """
        Create configuration from environment variables.

        Args:
            output: Output location; the working directory when not given
            log_level: Optional log level overriding LOG_LEVEL
            skip_build: Do not run kustomize after materializing the tree

        Returns:
            JsonnetizeConfig: Configured instance
        """
        config = cls()
        if output:
            config.output_root = Path(output)
        config.output_root = config.output_root.resolve()
        if log_level:
            config.logging.level = log_level
        config.run_build = not skip_build
        return config

    def validate_all(self) -> None:
        """Validate all configuration sections."""
        try:
            self.tools.__post_init__()
            self.logging.__post_init__()
            if self.output_root.exists() and not self.output_root.is_dir():
                raise ValueError(
                    f"Output location is not a directory: {self.output_root}"
                )
        except Exception as e:
            logger.error(f"Configuration validation failed: {e}")
            raise

    def log_configuration_summary(self) -> None:
        """Log a summary of the current configuration."""
        logger.debug(f"Output root: {self.output_root}")
        logger.debug(f"jsonnet: {self.tools.jsonnet_bin}")
        logger.debug(f"kustomize: {self.tools.kustomize_bin}")
        logger.debug(f"Run build: {self.run_build}")
        logger.debug(f"Logging level: {self.logging.level}")
        if self.logging.file_output:
            logger.debug(f"Log file: {self.logging.file_output}")


def setup_logging(config: LoggingConfig) -> None:
    """
    Setup logging configuration based on config.

    Everything goes to stderr: stdout is reserved for the kustomize output.
    """
    root_logger = logging.getLogger()
    root_logger.handlers.clear()  # Remove any existing handlers
    root_logger.setLevel(config.get_log_level())

    console_handler = colorlog.StreamHandler(sys.stderr)
    console_handler.setFormatter(colorlog.ColoredFormatter(config.format))
    root_logger.addHandler(console_handler)

    # Add file handler if file output is configured
    if config.file_output:
        file_handler = logging.FileHandler(config.file_output)
        file_formatter = logging.Formatter(
            "%(asctime)s - %(levelname)s:%(name)s:%(message)s"
        )
        file_handler.setFormatter(file_formatter)
        root_logger.addHandler(file_handler)

    configure_structlog()

    logger.debug(
        f"Logging configured: level={config.level}, file={config.file_output or 'console'}"
    )


def create_config_from_env(
    output: Optional[str] = None,
    log_level: Optional[str] = None,
    skip_build: bool = False,
) -> JsonnetizeConfig:
    """
    Factory function to create and validate configuration from environment.

    Raises:
        ValueError: If configuration is invalid
    """
    config = JsonnetizeConfig.from_environment(output, log_level, skip_build)
    config.validate_all()
    return config
