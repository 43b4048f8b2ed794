# Copyright 2025 Ilya Makarov
#
# Licensed under the Business Source License 1.1
# Change Date: 2028-11-05
# Change License: Apache License 2.0

"""
Kernel lifecycle: port allocation, process supervision, the registry and
the manager that ties them together.
"""

from .manager import KernelManager
from .models import KernelRecord, KernelStatus, PortConfig, PortSegment, ReportId
from .ports import PortAllocator
from .registry import KernelRegistry
from .supervisor import ProcessSupervisor

__all__ = [
    "KernelManager",
    "KernelRecord",
    "KernelRegistry",
    "KernelStatus",
    "PortAllocator",
    "PortConfig",
    "PortSegment",
    "ProcessSupervisor",
    "ReportId",
]
