# Copyright 2025 Ilya Makarov
#
# Licensed under the Business Source License 1.1
# Change Date: 2028-11-05
# Change License: Apache License 2.0

"""
API schemas
"""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from kgateway.kernels.models import ReportId


class ApiResponse(BaseModel):
    """Standard response envelope"""
    success: bool
    data: Any = None
    error: Optional[str] = None

    @classmethod
    def ok(cls, data: Any) -> "ApiResponse":
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, message: str) -> "ApiResponse":
        return cls(success=False, error=message)


class LaunchKernelRequest(BaseModel):
    """Body of POST /kernels"""
    model_config = ConfigDict(populate_by_name=True)

    report_id: ReportId = Field(alias="reportId", min_length=1)


class MemoryInfo(BaseModel):
    """Host memory in bytes"""
    total: int
    used: int


class SystemInfo(BaseModel):
    memory: MemoryInfo
