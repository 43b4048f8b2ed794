# Copyright 2025 Ilya Makarov
#
# Licensed under the Business Source License 1.1
# Change Date: 2028-11-05
# Change License: Apache License 2.0

"""
Kernel Gateway Exception Hierarchy

Exception Hierarchy:
    GatewayError (base)
    ├── ConfigError
    │   └── ConfigValidationError
    └── KernelError
        ├── PortAllocationError
        ├── SpawnError
        ├── KernelNotRunningError
        ├── KernelNotFoundError
        └── TerminateError
"""

from typing import Any, Dict, Optional

# ============================================================================
# Base Exceptions
# ============================================================================


class GatewayError(Exception):
    """Base exception for all gateway errors"""

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
    ):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.cause = cause

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/serialization"""
        result = {
            "type": self.__class__.__name__,
            "message": self.message,
            "details": self.details,
        }

        if self.cause:
            result["cause"] = {
                "type": self.cause.__class__.__name__,
                "message": str(self.cause),
            }

        return result

    def __str__(self):
        base = self.message
        if self.details:
            base += f" | Details: {self.details}"
        if self.cause:
            base += f" | Caused by: {self.cause}"
        return base


# ============================================================================
# Configuration Errors
# ============================================================================


class ConfigError(GatewayError):
    """Configuration-related errors"""


class ConfigValidationError(ConfigError):
    """Configuration validation failed"""


# ============================================================================
# Kernel Lifecycle Errors
# ============================================================================


class KernelError(GatewayError):
    """Kernel lifecycle errors"""

    def __init__(
        self,
        message: str,
        report_id: Optional[str] = None,
        **kwargs,
    ):
        super().__init__(message, **kwargs)
        self.report_id = report_id

    def to_dict(self) -> Dict[str, Any]:
        result = super().to_dict()
        result["report_id"] = self.report_id
        return result


class PortAllocationError(KernelError):
    """No bindable port segment left in the pool"""


class SpawnError(KernelError):
    """The OS failed to start the worker process"""


class KernelNotRunningError(KernelError):
    """Worker process was not running after the settle delay"""

    def __init__(self, message: str, pid: Optional[int] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.pid = pid

    def to_dict(self) -> Dict[str, Any]:
        result = super().to_dict()
        result["pid"] = self.pid
        return result


class KernelNotFoundError(KernelError):
    """No kernel registered for the report id"""


class TerminateError(KernelError):
    """Signal delivery to the worker process failed"""

    def __init__(self, message: str, pid: Optional[int] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.pid = pid

    def to_dict(self) -> Dict[str, Any]:
        result = super().to_dict()
        result["pid"] = self.pid
        return result
