# Copyright 2025 Ilya Makarov
#
# Licensed under the Business Source License 1.1
# Change Date: 2028-11-05
# Change License: Apache License 2.0

"""
Logging for the kernel gateway.

Console output plus an optional rotating log file. Components log through
the standard ``logging`` tree under the ``kgateway`` root, so configuring
that root once at startup covers every module.
"""

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Dict, Optional

from kgateway.core.config import GatewayConfig, get_config

ROOT_LOGGER = "kgateway"


class GatewayLogger:
    """
    Centralized logging for gateway components.

    Features:
    - Console and file logging
    - Automatic log rotation
    - Structured log format with timestamps
    """

    def __init__(
        self,
        name: str = ROOT_LOGGER,
        level: str = "INFO",
        log_dir: Optional[Path] = None,
        console_output: bool = True,
        file_output: bool = True
    ):
        self.name = name
        self.logger = logging.getLogger(name)

        # Clear any existing handlers
        self.logger.handlers.clear()

        self.logger.setLevel(self._parse_level(level))

        console_formatter = logging.Formatter(
            fmt='[%(asctime)s] [%(name)s:%(levelname)s] %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )

        file_formatter = logging.Formatter(
            fmt='%(asctime)s | %(name)s | %(levelname)s | %(filename)s:%(lineno)d | %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )

        if console_output:
            console_handler = logging.StreamHandler(sys.stdout)
            console_handler.setFormatter(console_formatter)
            console_handler.setLevel(self._parse_level(level))
            self.logger.addHandler(console_handler)

        if file_output:
            if log_dir is None:
                log_dir = Path.home() / ".kgateway" / "logs"

            log_dir.mkdir(parents=True, exist_ok=True)

            log_file = log_dir / f"{name}.log"

            # Rotate after 10MB, keep 5 backup files
            file_handler = RotatingFileHandler(
                log_file,
                maxBytes=10 * 1024 * 1024,
                backupCount=5,
                encoding='utf-8'
            )
            file_handler.setFormatter(file_formatter)
            file_handler.setLevel(logging.DEBUG)  # File gets everything
            self.logger.addHandler(file_handler)

    def _parse_level(self, level: str) -> int:
        """Convert string level to logging constant"""
        levels = {
            "DEBUG": logging.DEBUG,
            "INFO": logging.INFO,
            "WARNING": logging.WARNING,
            "ERROR": logging.ERROR,
            "CRITICAL": logging.CRITICAL
        }
        return levels.get(level.upper(), logging.INFO)

    def set_level(self, level: str):
        """Change log level dynamically"""
        self.logger.setLevel(self._parse_level(level))


_loggers: Dict[str, GatewayLogger] = {}


def setup_logging(config: Optional[GatewayConfig] = None) -> GatewayLogger:
    """
    Configure the ``kgateway`` logger tree from configuration.

    Safe to call more than once; later calls replace the handlers.
    """
    if config is None:
        config = get_config()

    obs = config.observability
    _loggers[ROOT_LOGGER] = GatewayLogger(
        name=ROOT_LOGGER,
        level=obs.log_level,
        log_dir=obs.log_dir,
        file_output=obs.file_logs,
    )
    return _loggers[ROOT_LOGGER]


def get_logger(name: str) -> logging.Logger:
    """
    Get a component logger below the gateway root.

    Args:
        name: Component name, e.g. ``kernels.ports``

    Returns:
        logging.Logger instance
    """
    if not name.startswith(ROOT_LOGGER):
        name = f"{ROOT_LOGGER}.{name}"
    return logging.getLogger(name)
