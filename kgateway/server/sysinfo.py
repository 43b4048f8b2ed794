# Copyright 2025 Ilya Makarov
#
# Licensed under the Business Source License 1.1
# Change Date: 2028-11-05
# Change License: Apache License 2.0

"""
Host metrics reporter.

Coarse system statistics for GET /sysinfo.
"""

import psutil

from kgateway.server.schemas import MemoryInfo, SystemInfo


class HostMetrics:
    """Reads host memory usage through psutil"""

    def snapshot(self) -> SystemInfo:
        memory = psutil.virtual_memory()
        return SystemInfo(memory=MemoryInfo(total=memory.total, used=memory.used))
