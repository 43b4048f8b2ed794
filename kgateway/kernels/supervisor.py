# Copyright 2025 Ilya Makarov
#
# Licensed under the Business Source License 1.1
# Change Date: 2028-11-05
# Change License: Apache License 2.0

"""
Worker process supervision.

Spawns the worker interpreter bound to an allocated port segment, checks
that the OS reports it alive, and terminates it on kill. The supervisor
never talks to the worker; stdin/stdout/stderr are discarded.

Examples:
    supervisor = ProcessSupervisor(config.kernels)
    pid = supervisor.spawn(port_config)
    if await supervisor.confirm_alive(pid):
        ...
    await supervisor.terminate(pid)
"""

import asyncio
import os
import subprocess
from typing import Dict, List, Optional

import psutil

from kgateway.core.config import KernelConfig
from kgateway.core.exceptions import ConfigError, SpawnError, TerminateError
from kgateway.core.logger import get_logger
from kgateway.kernels.models import PortConfig

logger = get_logger("kernels.supervisor")

# States in which a pid no longer counts as a live worker
_NOT_RUNNING = {psutil.STATUS_ZOMBIE, psutil.STATUS_DEAD, psutil.STATUS_STOPPED}


class ProcessSupervisor:
    """Spawns, checks and signals worker processes"""

    def __init__(self, config: KernelConfig):
        if not config.python_executable:
            raise ConfigError(
                "Worker interpreter not configured: set KERNEL_GATEWAY_PYTHON"
            )
        self.config = config
        self._children: Dict[int, subprocess.Popen] = {}

    def build_command(self, port_config: PortConfig) -> List[str]:
        """Argument vector for one worker"""
        return [
            self.config.python_executable,
            "-m",
            self.config.launcher,
            *self.config.flags,
            f"--ip={port_config.ip}",
            f"--hb={port_config.hb_port}",
            f"--control={port_config.control_port}",
            f"--shell={port_config.shell_port}",
            f"--iopub={port_config.iopub_port}",
            f"--stdin={port_config.stdin_port}",
        ]

    def spawn(self, port_config: PortConfig) -> int:
        """
        Start a worker detached from our standard streams.

        Returns:
            OS process id

        Raises:
            SpawnError: executable missing, permission denied, resource limits,
                or an argument the OS cannot accept
        """
        cmd = self.build_command(port_config)
        env = dict(os.environ)
        env.update(self.config.env)

        try:
            proc = subprocess.Popen(
                cmd,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                env=env,
                start_new_session=True,
            )
        except (OSError, ValueError) as e:
            raise SpawnError(
                f"Failed to start kernel: {e}",
                details={"command": cmd},
                cause=e,
            ) from e

        self._children[proc.pid] = proc
        logger.info(f"Spawned kernel process {proc.pid}: {' '.join(cmd)}")
        return proc.pid

    async def confirm_alive(self, pid: int, delay: Optional[float] = None) -> bool:
        """
        Wait the settle delay once, then ask the OS whether pid is running.

        Coarse signal only: says nothing about the worker having bound its
        ports.
        """
        if delay is None:
            delay = self.config.confirm_delay_ms / 1000
        await asyncio.sleep(delay)
        return self.is_running(pid)

    def is_running(self, pid: int) -> bool:
        try:
            proc = psutil.Process(pid)
            status = proc.status()
        except (psutil.NoSuchProcess, psutil.ZombieProcess):
            return False
        except psutil.AccessDenied:
            # Exists but belongs to someone else
            return True
        if status in _NOT_RUNNING:
            logger.debug(f"Process {pid} is in state {status}")
            return False
        return True

    async def terminate(self, pid: int, timeout: Optional[float] = None) -> None:
        """
        SIGTERM the worker, wait up to timeout for exit, then SIGKILL.

        A process that is already gone counts as terminated.

        Raises:
            TerminateError: the signal could not be delivered
        """
        if timeout is None:
            timeout = self.config.terminate_timeout

        try:
            proc = psutil.Process(pid)
            proc.terminate()
        except psutil.NoSuchProcess:
            logger.info(f"Process {pid} already exited")
            self._reap(pid)
            return
        except (psutil.AccessDenied, OSError) as e:
            raise TerminateError(
                f"Failed to kill kernel process {pid}: {e}", pid=pid, cause=e
            ) from e

        try:
            await asyncio.to_thread(proc.wait, timeout)
        except psutil.TimeoutExpired:
            logger.warning(f"Process {pid} ignored SIGTERM for {timeout}s, sending SIGKILL")
            try:
                proc.kill()
                await asyncio.to_thread(proc.wait, timeout)
            except psutil.NoSuchProcess:
                pass
            except (psutil.AccessDenied, psutil.TimeoutExpired, OSError) as e:
                raise TerminateError(
                    f"Failed to kill kernel process {pid}: {e}", pid=pid, cause=e
                ) from e
        except psutil.NoSuchProcess:
            pass

        self._reap(pid)
        logger.info(f"Terminated kernel process {pid}")

    def _reap(self, pid: int) -> None:
        proc = self._children.pop(pid, None)
        if proc is not None:
            # Collects the exit status; psutil may already have done so
            proc.poll()
