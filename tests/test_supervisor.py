# Copyright 2025 Ilya Makarov
#
# Licensed under the Business Source License 1.1
# Change Date: 2028-11-05
# Change License: Apache License 2.0

"""
Tests for the worker process supervisor

Tests:
- Command line layout
- Spawn, liveness confirmation and termination of real processes
- SIGKILL escalation
- Spawn failures
"""

import sys

import psutil
import pytest

from kgateway.core.exceptions import ConfigError, SpawnError
from kgateway.kernels.models import PortConfig, PortSegment
from kgateway.kernels.supervisor import ProcessSupervisor

from conftest import make_kernel_config

PORTS = PortConfig.from_segment("127.0.0.1", PortSegment(47000))


def test_requires_python_executable():
    with pytest.raises(ConfigError) as exc_info:
        ProcessSupervisor(make_kernel_config(python_executable=None))

    assert "KERNEL_GATEWAY_PYTHON" in exc_info.value.message


def test_build_command():
    supervisor = ProcessSupervisor(
        make_kernel_config(python_executable="/opt/py/bin/python", launcher="ipykernel_launcher")
    )

    assert supervisor.build_command(PORTS) == [
        "/opt/py/bin/python",
        "-m",
        "ipykernel_launcher",
        "--debug",
        "--ip=127.0.0.1",
        "--hb=47000",
        "--control=47001",
        "--shell=47002",
        "--iopub=47003",
        "--stdin=47004",
    ]


def test_spawn_missing_executable():
    supervisor = ProcessSupervisor(
        make_kernel_config(python_executable="/nonexistent/bin/python")
    )

    with pytest.raises(SpawnError) as exc_info:
        supervisor.spawn(PORTS)

    assert "Failed to start kernel" in exc_info.value.message
    assert exc_info.value.details["command"][0] == "/nonexistent/bin/python"


def test_spawn_rejects_null_byte_in_command():
    supervisor = ProcessSupervisor(make_kernel_config(launcher="fake\0kernel"))

    with pytest.raises(SpawnError) as exc_info:
        supervisor.spawn(PORTS)

    assert isinstance(exc_info.value.cause, ValueError)


@pytest.mark.asyncio
async def test_spawn_confirm_and_terminate():
    supervisor = ProcessSupervisor(make_kernel_config())

    pid = supervisor.spawn(PORTS)
    try:
        assert await supervisor.confirm_alive(pid, delay=0.3)
        cmdline = psutil.Process(pid).cmdline()
        assert "--hb=47000" in cmdline
    finally:
        await supervisor.terminate(pid)

    assert not supervisor.is_running(pid)


@pytest.mark.asyncio
async def test_crashed_worker_is_not_alive():
    supervisor = ProcessSupervisor(make_kernel_config(launcher="crashing_kernel"))

    pid = supervisor.spawn(PORTS)

    assert await supervisor.confirm_alive(pid, delay=1.0) is False
    await supervisor.terminate(pid)


@pytest.mark.asyncio
async def test_terminate_escalates_to_sigkill():
    supervisor = ProcessSupervisor(
        make_kernel_config(launcher="stubborn_kernel", terminate_timeout=0.5)
    )

    pid = supervisor.spawn(PORTS)
    assert await supervisor.confirm_alive(pid, delay=0.5)

    await supervisor.terminate(pid)

    assert not supervisor.is_running(pid)


@pytest.mark.asyncio
async def test_terminate_unknown_pid_is_noop():
    supervisor = ProcessSupervisor(make_kernel_config())
    proc = psutil.Popen([sys.executable, "-c", "pass"])
    proc.wait()

    await supervisor.terminate(proc.pid)
