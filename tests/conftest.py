# Copyright 2025 Ilya Makarov
#
# Licensed under the Business Source License 1.1
# Change Date: 2028-11-05
# Change License: Apache License 2.0

"""
Kernel Gateway - Test Configuration
"""

import itertools
import sys
from pathlib import Path
from typing import List, Optional

import pytest
import pytest_asyncio

# Root-level cli.py
sys.path.insert(0, str(Path(__file__).parent.parent))

from kgateway.core.config import KernelConfig
from kgateway.core.exceptions import SpawnError, TerminateError
from kgateway.kernels.manager import KernelManager
from kgateway.kernels.models import PortConfig
from kgateway.kernels.ports import PortAllocator

WORKERS_DIR = Path(__file__).parent / "workers"


class FakeSupervisor:
    """Records calls instead of touching the OS"""

    def __init__(self):
        self._pids = itertools.count(40000)
        self.spawned: List[PortConfig] = []
        self.terminated: List[int] = []
        self.alive = True
        self.spawn_error: Optional[Exception] = None
        self.terminate_error: Optional[Exception] = None

    def spawn(self, port_config: PortConfig) -> int:
        if self.spawn_error is not None:
            raise self.spawn_error
        self.spawned.append(port_config)
        return next(self._pids)

    async def confirm_alive(self, pid: int, delay=None) -> bool:
        return self.alive

    async def terminate(self, pid: int, timeout=None) -> None:
        if self.terminate_error is not None:
            raise self.terminate_error
        self.terminated.append(pid)


class StubAllocator(PortAllocator):
    """Allocator whose probes always succeed"""

    def __init__(self, *args, busy=(), **kwargs):
        super().__init__(*args, **kwargs)
        self.busy = set(busy)

    def probe(self, segment) -> bool:
        return segment.start not in self.busy


def make_kernel_config(**overrides) -> KernelConfig:
    values = {
        "python_executable": sys.executable,
        "launcher": "fake_kernel",
        "flags": ["--debug"],
        "ip": "127.0.0.1",
        "port_range_start": 2000,
        "port_range_end": 2010,
        "confirm_delay_ms": 0,
        "terminate_timeout": 2.0,
        "env": {"PYTHONPATH": str(WORKERS_DIR)},
    }
    values.update(overrides)
    return KernelConfig(**values)


@pytest.fixture
def kernel_config() -> KernelConfig:
    """Two-segment pool: 2000-2004 and 2005-2009"""
    return make_kernel_config()


@pytest.fixture
def fake_supervisor() -> FakeSupervisor:
    return FakeSupervisor()


@pytest.fixture
def manager(kernel_config, fake_supervisor) -> KernelManager:
    """Manager over a two-segment pool with no real processes"""
    allocator = StubAllocator(
        start=kernel_config.port_range_start,
        end=kernel_config.port_range_end,
        bind_address=kernel_config.ip,
    )
    return KernelManager(kernel_config, allocator=allocator, supervisor=fake_supervisor)


@pytest_asyncio.fixture
async def live_manager():
    """Manager that spawns the fake worker for real"""
    config = make_kernel_config(
        port_range_start=47100,
        port_range_end=47150,
        confirm_delay_ms=300,
    )
    mgr = KernelManager(config)
    yield mgr
    await mgr.shutdown()


@pytest.fixture
def spawn_failure():
    return SpawnError("Failed to start kernel: [Errno 2] No such file or directory")


@pytest.fixture
def terminate_failure():
    return TerminateError("Failed to kill kernel process: access denied", pid=1)
