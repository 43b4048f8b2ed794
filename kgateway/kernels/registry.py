# Copyright 2025 Ilya Makarov
#
# Licensed under the Business Source License 1.1
# Change Date: 2028-11-05
# Change License: Apache License 2.0

"""In-memory map from report id to kernel record."""

from typing import Dict, List, Optional

from kgateway.kernels.models import KernelRecord, ReportId


class KernelRegistry:
    """
    Authoritative store of live kernels.

    Not locked on its own: callers hold the manager lock for every
    mutation and iteration.
    """

    def __init__(self):
        self._kernels: Dict[ReportId, KernelRecord] = {}

    def insert(self, report_id: ReportId, record: KernelRecord) -> Optional[KernelRecord]:
        """Register a record, returning whatever it replaced"""
        previous = self._kernels.get(report_id)
        self._kernels[report_id] = record
        return previous

    def get(self, report_id: ReportId) -> Optional[KernelRecord]:
        return self._kernels.get(report_id)

    def remove(self, report_id: ReportId) -> Optional[KernelRecord]:
        return self._kernels.pop(report_id, None)

    def list_all(self) -> List[KernelRecord]:
        return list(self._kernels.values())

    def __len__(self):
        return len(self._kernels)

    def __contains__(self, report_id):
        return report_id in self._kernels
