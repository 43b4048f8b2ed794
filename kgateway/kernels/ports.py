# Copyright 2025 Ilya Makarov
#
# Licensed under the Business Source License 1.1
# Change Date: 2028-11-05
# Change License: Apache License 2.0

"""
Port allocation for kernel workers.

The pool holds 5-port segments computed once by striding the configured
range. A segment is either in the pool (free) or owned by exactly one
kernel; it goes back to the pool only after that kernel is killed.

Allocation probes bindability before handing a segment out:

    1. Try the head of the pool.
    2. On conflict, try the remaining entries in uniformly random order,
       so concurrent gateways do not keep hammering the same stale segment.
    3. Each entry is probed at most once per acquire; when every entry has
       failed the pool counts as exhausted.

A segment that fails its probe stays in the pool, since the conflict may
be transient. Probing is best effort: another process can still grab a
port between the probe and the worker's own bind.
"""

import random
import socket
from typing import List, Optional

from kgateway.core.config import SEGMENT_WIDTH
from kgateway.core.exceptions import PortAllocationError
from kgateway.core.logger import get_logger
from kgateway.kernels.models import PortSegment

logger = get_logger("kernels.ports")


class PortAllocator:
    """Pool of reusable 5-port segments"""

    def __init__(
        self,
        start: int = 2000,
        end: int = 65000,
        bind_address: str = "0.0.0.0",
        rng: Optional[random.Random] = None,
    ):
        """
        Args:
            start: First port of the range
            end: Exclusive upper bound of the range
            bind_address: Address the probe sockets bind to
            rng: Random source for candidate selection
        """
        self.start = start
        self.end = end
        self.bind_address = bind_address
        self._rng = rng or random.Random()
        self._pool: List[int] = list(range(start, end - SEGMENT_WIDTH + 1, SEGMENT_WIDTH))
        self.capacity = len(self._pool)

    @property
    def available(self) -> int:
        """Number of free segments"""
        return len(self._pool)

    def is_free(self, segment: PortSegment) -> bool:
        return segment.start in self._pool

    def acquire(self) -> PortSegment:
        """
        Hand out a free segment whose ports all bind cleanly.

        Raises:
            PortAllocationError: pool empty, or no entry probed clean
        """
        if not self._pool:
            raise PortAllocationError(
                "No port segments available: pool exhausted",
                details={"capacity": self.capacity},
            )

        head = self._pool[0]
        rest = self._pool[1:]
        self._rng.shuffle(rest)

        for start in [head] + rest:
            segment = PortSegment(start)
            if self.probe(segment):
                self._pool.remove(start)
                logger.debug(
                    f"Allocated ports {segment}, {len(self._pool)} segments left"
                )
                return segment
            logger.debug(f"Ports {segment} not available, trying another segment")

        raise PortAllocationError(
            "No port segments available: every free segment failed to bind",
            details={"probed": len(rest) + 1},
        )

    def release(self, segment: PortSegment) -> None:
        """Put a segment back into the pool (no re-validation)"""
        if segment.start in self._pool:
            logger.warning(f"Ports {segment} released twice, ignoring")
            return
        self._pool.append(segment.start)
        logger.debug(f"Released ports {segment}, {len(self._pool)} segments free")

    def probe(self, segment: PortSegment) -> bool:
        """Try to bind a listening socket on each port, in order"""
        sockets = []
        try:
            for port in segment.ports:
                sock = socket.socket(self._family(), socket.SOCK_STREAM)
                sockets.append(sock)
                try:
                    sock.bind((self.bind_address, port))
                    sock.listen(1)
                except OSError as e:
                    logger.debug(f"Port {port} is not available: {e}")
                    return False
            return True
        finally:
            for sock in sockets:
                sock.close()

    def _family(self) -> int:
        return socket.AF_INET6 if ":" in self.bind_address else socket.AF_INET
