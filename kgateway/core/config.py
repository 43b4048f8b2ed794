# Copyright 2025 Ilya Makarov
#
# Licensed under the Business Source License 1.1
# Change Date: 2028-11-05
# Change License: Apache License 2.0

"""
Kernel Gateway Configuration System

Centralized configuration management supporting:
- Environment variables (KERNEL_GATEWAY_*)
- Config files (~/.kgateway/config.yaml, .kgateway.yaml)
- Programmatic defaults
- Pydantic validation
"""

import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from kgateway.core.exceptions import ConfigValidationError

logger = logging.getLogger("kgateway.config")

# Ports per kernel: heartbeat, control, shell, iopub, stdin
SEGMENT_WIDTH = 5


# ============================================================================
# Configuration Models
# ============================================================================


class ServerConfig(BaseModel):
    """HTTP listener configuration"""

    host: str = Field(default="::", description="Bind host (all interfaces)")
    port: int = Field(default=1111, description="HTTP listen port", ge=1, le=65535)


class KernelConfig(BaseModel):
    """Worker process configuration"""

    python_executable: Optional[str] = Field(
        default=None, description="Interpreter used to run the worker"
    )
    launcher: str = Field(
        default="ipykernel_launcher", description="Module passed to -m"
    )
    flags: List[str] = Field(
        default_factory=lambda: ["--debug"], description="Extra worker flags"
    )
    ip: str = Field(default="0.0.0.0", description="Address the worker binds")
    port_range_start: int = Field(default=2000, ge=1, le=65535)
    port_range_end: int = Field(
        default=65000, ge=1, le=65536, description="Exclusive upper bound"
    )
    confirm_delay_ms: int = Field(
        default=100, description="Settle delay before the liveness check", ge=0
    )
    terminate_timeout: float = Field(
        default=5.0, description="Seconds to wait for exit before SIGKILL", ge=0
    )
    env: Dict[str, str] = Field(
        default_factory=dict, description="Extra environment for the worker"
    )

    @model_validator(mode="after")
    def check_port_range(self):
        """The range must hold at least one full segment"""
        if self.port_range_end - self.port_range_start < SEGMENT_WIDTH:
            raise ValueError(
                f"Port range {self.port_range_start}-{self.port_range_end} "
                f"is smaller than one {SEGMENT_WIDTH}-port segment"
            )
        return self


class ObservabilityConfig(BaseModel):
    """Logging configuration"""
    model_config = ConfigDict(arbitrary_types_allowed=True)

    log_level: str = Field(default="INFO", description="Logging level")
    log_dir: Path = Field(
        default_factory=lambda: Path.home() / ".kgateway" / "logs",
        description="Log files directory",
    )
    file_logs: bool = Field(default=True, description="Write rotating log files")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v):
        """Validate log level"""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"Invalid log level. Must be one of: {valid_levels}")
        return v_upper

    @field_validator("log_dir", mode="before")
    @classmethod
    def ensure_path(cls, v):
        """Convert strings to Path objects"""
        if isinstance(v, str):
            return Path(v).expanduser()
        return v


class GatewayConfig(BaseModel):
    """Complete gateway configuration"""

    server: ServerConfig = Field(default_factory=ServerConfig)
    kernels: KernelConfig = Field(default_factory=KernelConfig)
    observability: ObservabilityConfig = Field(default_factory=ObservabilityConfig)


# ============================================================================
# Configuration Loader
# ============================================================================


class ConfigLoader:
    """Load configuration from multiple sources"""

    @staticmethod
    def load_from_env() -> Dict[str, Any]:
        """Load configuration from environment variables"""
        config: Dict[str, Any] = {}

        # Server
        host = os.getenv("KERNEL_GATEWAY_HOST")
        if host:
            config.setdefault("server", {})["host"] = host

        port = os.getenv("KERNEL_GATEWAY_PORT")
        if port:
            config.setdefault("server", {})["port"] = port

        # Kernels
        python_executable = os.getenv("KERNEL_GATEWAY_PYTHON")
        if python_executable:
            config.setdefault("kernels", {})["python_executable"] = python_executable

        launcher = os.getenv("KERNEL_GATEWAY_LAUNCHER")
        if launcher:
            config.setdefault("kernels", {})["launcher"] = launcher

        flags = os.getenv("KERNEL_GATEWAY_FLAGS")
        if flags is not None:
            config.setdefault("kernels", {})["flags"] = flags.split()

        kernel_ip = os.getenv("KERNEL_GATEWAY_KERNEL_IP")
        if kernel_ip:
            config.setdefault("kernels", {})["ip"] = kernel_ip

        port_range = os.getenv("KERNEL_GATEWAY_PORT_RANGE")
        if port_range:
            start, _, end = port_range.partition("-")
            kernels = config.setdefault("kernels", {})
            kernels["port_range_start"] = start.strip()
            kernels["port_range_end"] = end.strip()

        confirm_delay = os.getenv("KERNEL_GATEWAY_CONFIRM_DELAY_MS")
        if confirm_delay:
            config.setdefault("kernels", {})["confirm_delay_ms"] = confirm_delay

        terminate_timeout = os.getenv("KERNEL_GATEWAY_TERMINATE_TIMEOUT")
        if terminate_timeout:
            config.setdefault("kernels", {})["terminate_timeout"] = terminate_timeout

        # Observability
        log_level = os.getenv("KERNEL_GATEWAY_LOG_LEVEL")
        if log_level:
            config.setdefault("observability", {})["log_level"] = log_level

        log_dir = os.getenv("KERNEL_GATEWAY_LOG_DIR")
        if log_dir:
            config.setdefault("observability", {})["log_dir"] = log_dir

        no_file_logs = os.getenv("KERNEL_GATEWAY_NO_FILE_LOGS")
        if no_file_logs:
            config.setdefault("observability", {})["file_logs"] = (
                no_file_logs.lower() != "true"
            )

        return config

    @staticmethod
    def load_from_file(file_path: Path) -> Dict[str, Any]:
        """Load configuration from a YAML file"""
        if not file_path.exists():
            return {}

        try:
            with open(file_path, "r") as f:
                return yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigValidationError(
                f"Failed to parse config file {file_path}", cause=e
            ) from e

    @staticmethod
    def merge_configs(*configs: Dict[str, Any]) -> Dict[str, Any]:
        """Deep merge multiple configuration dictionaries"""
        result: Dict[str, Any] = {}
        for config in configs:
            for key, value in config.items():
                if (
                    key in result
                    and isinstance(result[key], dict)
                    and isinstance(value, dict)
                ):
                    result[key] = ConfigLoader.merge_configs(result[key], value)
                else:
                    result[key] = value
        return result


# ============================================================================
# Global Configuration Instance
# ============================================================================

_config: Optional[GatewayConfig] = None


def get_config() -> GatewayConfig:
    """
    Get global gateway configuration

    Configuration is loaded once, from (in order of precedence):
    1. Environment variables (KERNEL_GATEWAY_*)
    2. .kgateway.yaml in current directory
    3. ~/.kgateway/config.yaml
    4. Default values

    Returns:
        GatewayConfig instance
    """
    global _config

    if _config is None:
        _config = load_config()

    return _config


def load_config(
    config_file: Optional[Path] = None, env_override: bool = True
) -> GatewayConfig:
    """
    Load configuration from all sources

    Args:
        config_file: Optional specific config file to load
        env_override: Whether environment variables override file config

    Returns:
        GatewayConfig instance

    Raises:
        ConfigValidationError: if the merged configuration is invalid
    """
    configs = []

    default_locations = [
        Path.home() / ".kgateway" / "config.yaml",
        Path.cwd() / ".kgateway.yaml",
    ]

    for location in default_locations:
        file_config = ConfigLoader.load_from_file(location)
        if file_config:
            configs.append(file_config)
            logger.debug(f"Loaded config from {location}")

    if config_file:
        file_config = ConfigLoader.load_from_file(config_file)
        if file_config:
            configs.append(file_config)
            logger.debug(f"Loaded config from {config_file}")

    if env_override:
        env_config = ConfigLoader.load_from_env()
        if env_config:
            configs.append(env_config)
            logger.debug("Loaded config from environment")

    merged = ConfigLoader.merge_configs(*configs) if configs else {}

    try:
        return GatewayConfig(**merged)
    except ValidationError as e:
        raise ConfigValidationError(
            "Invalid gateway configuration",
            details={"errors": [err["msg"] for err in e.errors()]},
            cause=e,
        ) from e


def reload_config() -> GatewayConfig:
    """Reload global configuration"""
    global _config
    _config = load_config()
    logger.info("Configuration reloaded")
    return _config
