# Copyright 2025 Ilya Makarov
#
# Licensed under the Business Source License 1.1
# Change Date: 2028-11-05
# Change License: Apache License 2.0

"""
Kernel Lifecycle Manager

Orchestrates port allocation, process supervision and the registry:

    launch(report_id)   kill any existing kernel, then Created -> Running,
                        or Error (not registered)
    kill(report_id)     Running -> removed, segment back to the pool
    restart(report_id)  kill, then launch under a second lock acquisition
    get / list          reads only

Every public operation holds one asyncio.Lock for its full duration,
including the probe loop and the settle delay, so lifecycle operations are
totally ordered and no partial state is visible to other callers.
Port probing and process spawning run in worker threads so the event loop
keeps serving other requests meanwhile.

restart() is not atomic: between its kill and its launch another caller
can observe the report id with no kernel, and a failed launch leaves it
that way.
"""

import asyncio
from typing import List, Optional

from kgateway.core.config import GatewayConfig, KernelConfig
from kgateway.core.exceptions import (
    KernelError,
    KernelNotFoundError,
    KernelNotRunningError,
    PortAllocationError,
    SpawnError,
    TerminateError,
)
from kgateway.core.logger import get_logger
from kgateway.kernels.models import KernelRecord, KernelStatus, PortConfig, ReportId
from kgateway.kernels.ports import PortAllocator
from kgateway.kernels.registry import KernelRegistry
from kgateway.kernels.supervisor import ProcessSupervisor

logger = get_logger("kernels.manager")


class KernelManager:
    """Launches, tracks and tears down kernel workers"""

    def __init__(
        self,
        config: KernelConfig,
        allocator: Optional[PortAllocator] = None,
        supervisor: Optional[ProcessSupervisor] = None,
        registry: Optional[KernelRegistry] = None,
    ):
        self.config = config
        self.allocator = allocator or PortAllocator(
            start=config.port_range_start,
            end=config.port_range_end,
            bind_address=config.ip,
        )
        self.supervisor = supervisor or ProcessSupervisor(config)
        self.registry = registry or KernelRegistry()
        self._lock = asyncio.Lock()

    @classmethod
    def from_config(cls, config: GatewayConfig) -> "KernelManager":
        return cls(config.kernels)

    @property
    def available_segments(self) -> int:
        return self.allocator.available

    # =========================================================================
    # Reads
    # =========================================================================

    async def list(self) -> List[KernelRecord]:
        """All live kernels"""
        async with self._lock:
            return [k.model_copy() for k in self.registry.list_all()]

    async def get(self, report_id: ReportId) -> Optional[KernelRecord]:
        """Kernel for a report id, or None"""
        async with self._lock:
            kernel = self.registry.get(report_id)
            return kernel.model_copy() if kernel else None

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def launch(self, report_id: ReportId) -> KernelRecord:
        """
        Start a kernel for report_id.

        An existing kernel for the same id is killed first. If it cannot be
        killed nothing is launched and the old kernel stays registered.

        Raises:
            TerminateError: the existing kernel could not be killed
            PortAllocationError: no bindable segment
            SpawnError: the worker could not be started
            KernelNotRunningError: the worker was not running after the delay
        """
        async with self._lock:
            if report_id in self.registry:
                logger.info(f"Replacing kernel for report {report_id}")
                await self._kill(report_id)
            kernel = await self._launch(report_id)
            self.registry.insert(report_id, kernel)
            return kernel.model_copy()

    async def kill(self, report_id: ReportId) -> bool:
        """
        Terminate the kernel for report_id and drop its record.

        Raises:
            KernelNotFoundError: unknown report id
            TerminateError: the signal could not be delivered; the record
                is left untouched
        """
        async with self._lock:
            return await self._kill(report_id)

    async def restart(self, report_id: ReportId) -> KernelRecord:
        """
        Kill the kernel, then launch a fresh one for the same report id.

        The new kernel gets a new id, process and port segment. If kill
        fails nothing is launched.
        """
        await self.kill(report_id)
        return await self.launch(report_id)

    async def shutdown(self) -> None:
        """Kill every live kernel (gateway exit)"""
        async with self._lock:
            report_ids = [k.report_id for k in self.registry.list_all()]

        for report_id in report_ids:
            try:
                await self.kill(report_id)
            except KernelError as e:
                logger.error(f"Could not stop kernel for report {report_id}: {e}")

    # =========================================================================
    # Internals (lock held)
    # =========================================================================

    async def _kill(self, report_id: ReportId) -> bool:
        kernel = self.registry.get(report_id)
        if kernel is None:
            raise KernelNotFoundError(
                f"Kernel for report {report_id} not found", report_id=report_id
            )

        if kernel.process_id is not None:
            try:
                await self.supervisor.terminate(kernel.process_id)
            except TerminateError as e:
                e.report_id = report_id
                raise

        self.registry.remove(report_id)
        if kernel.config is not None:
            self.allocator.release(kernel.config.segment)

        logger.info(
            f"Killed kernel {kernel.id} for report {report_id} "
            f"(pid {kernel.process_id})"
        )
        logger.debug(f"Available port segments: {self.allocator.available}")
        return True

    async def _launch(self, report_id: ReportId) -> KernelRecord:
        kernel = KernelRecord(report_id=report_id)

        try:
            segment = await asyncio.to_thread(self.allocator.acquire)
        except PortAllocationError as e:
            e.report_id = report_id
            raise

        port_config = PortConfig.from_segment(self.config.ip, segment)

        try:
            pid = await asyncio.to_thread(self.supervisor.spawn, port_config)
        except SpawnError as e:
            self.allocator.release(segment)
            e.report_id = report_id
            raise

        logger.debug(f"Kernel for report {report_id} spawned with PID: {pid}")

        if not await self.supervisor.confirm_alive(pid):
            kernel.status = KernelStatus.ERROR
            logger.warning(f"Kernel process for report {report_id} is not running")
            await self._discard(pid)
            self.allocator.release(segment)
            raise KernelNotRunningError(
                f"Kernel process {report_id} is not running",
                report_id=report_id,
                pid=pid,
            )

        kernel.process_id = pid
        kernel.config = port_config
        kernel.status = KernelStatus.RUNNING
        logger.info(
            f"Kernel {kernel.id} for report {report_id} running with PID {pid} "
            f"on ports {segment}"
        )
        return kernel

    async def _discard(self, pid: int) -> None:
        """Make sure a worker that failed confirmation is gone"""
        try:
            await self.supervisor.terminate(pid)
        except TerminateError as e:
            logger.error(f"Could not clean up failed kernel process {pid}: {e}")

