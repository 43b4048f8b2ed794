# Copyright 2025 Ilya Makarov
#
# Licensed under the Business Source License 1.1
# Change Date: 2028-11-05
# Change License: Apache License 2.0

"""
Kernel records and port configuration.
"""

import uuid
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple

from pydantic import BaseModel, Field

from kgateway.core.config import SEGMENT_WIDTH

ReportId = str


class KernelStatus(str, Enum):
    """Kernel lifecycle states"""
    CREATED = "Created"
    RUNNING = "Running"
    STOPPED = "Stopped"
    ERROR = "Error"


@dataclass(frozen=True)
class PortSegment:
    """A contiguous run of SEGMENT_WIDTH ports, allocated as a unit"""
    start: int

    @property
    def end(self) -> int:
        """Last port of the segment (inclusive)"""
        return self.start + SEGMENT_WIDTH - 1

    @property
    def ports(self) -> Tuple[int, ...]:
        return tuple(range(self.start, self.start + SEGMENT_WIDTH))

    def __str__(self):
        return f"{self.start}-{self.end}"


class PortConfig(BaseModel):
    """Bind address and the five channel ports of one worker"""
    model_config = {"frozen": True}

    ip: str
    hb_port: int
    control_port: int
    shell_port: int
    iopub_port: int
    stdin_port: int

    @classmethod
    def from_segment(cls, ip: str, segment: PortSegment) -> "PortConfig":
        hb, control, shell, iopub, stdin = segment.ports
        return cls(
            ip=ip,
            hb_port=hb,
            control_port=control,
            shell_port=shell,
            iopub_port=iopub,
            stdin_port=stdin,
        )

    @property
    def ports(self) -> Tuple[int, int, int, int, int]:
        return (
            self.hb_port,
            self.control_port,
            self.shell_port,
            self.iopub_port,
            self.stdin_port,
        )

    @property
    def segment(self) -> PortSegment:
        return PortSegment(self.hb_port)


class KernelRecord(BaseModel):
    """Identity and state of one worker"""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    process_id: Optional[int] = None
    config: Optional[PortConfig] = None
    status: KernelStatus = KernelStatus.CREATED
    report_id: ReportId

    def to_dict(self) -> dict:
        return self.model_dump(mode="json")
