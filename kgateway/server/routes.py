# Copyright 2025 Ilya Makarov
#
# Licensed under the Business Source License 1.1
# Change Date: 2028-11-05
# Change License: Apache License 2.0

"""
Kernel Gateway API Routes

- GET    /kernels                     list kernels
- GET    /kernels/{report_id}         get kernel (404 if absent)
- POST   /kernels                     launch kernel
- DELETE /kernels/{report_id}         kill kernel
- POST   /kernels/{report_id}/restart restart kernel
- GET    /sysinfo                     host memory

Manager errors are not caught here; the app-level handler turns them
into 500 envelopes carrying the error message.
"""

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from kgateway.kernels.manager import KernelManager
from kgateway.kernels.models import ReportId
from kgateway.server.schemas import ApiResponse, LaunchKernelRequest
from kgateway.server.sysinfo import HostMetrics

router = APIRouter()


def get_manager(request: Request) -> KernelManager:
    return request.app.state.kernel_manager


def get_metrics(request: Request) -> HostMetrics:
    return request.app.state.host_metrics


# ============================================================================
# Kernels
# ============================================================================

@router.get("/kernels", tags=["kernels"])
async def list_kernels(manager: KernelManager = Depends(get_manager)):
    """List every live kernel"""
    kernels = await manager.list()
    return ApiResponse.ok([k.to_dict() for k in kernels]).model_dump()


@router.get("/kernels/{report_id}", tags=["kernels"])
async def get_kernel(report_id: ReportId, manager: KernelManager = Depends(get_manager)):
    """Get the kernel for a report"""
    kernel = await manager.get(report_id)
    if kernel is None:
        return JSONResponse(
            status_code=404,
            content=ApiResponse.fail("Kernel not found").model_dump(),
        )
    return ApiResponse.ok(kernel.to_dict()).model_dump()


@router.post("/kernels", tags=["kernels"])
async def launch_kernel(
    payload: LaunchKernelRequest, manager: KernelManager = Depends(get_manager)
):
    """Launch a kernel for a report"""
    kernel = await manager.launch(payload.report_id)
    return ApiResponse.ok(kernel.to_dict()).model_dump()


@router.delete("/kernels/{report_id}", tags=["kernels"])
async def kill_kernel(report_id: ReportId, manager: KernelManager = Depends(get_manager)):
    """Kill the kernel for a report"""
    killed = await manager.kill(report_id)
    return ApiResponse.ok(killed).model_dump()


@router.post("/kernels/{report_id}/restart", tags=["kernels"])
async def restart_kernel(
    report_id: ReportId, manager: KernelManager = Depends(get_manager)
):
    """Kill and relaunch the kernel for a report"""
    kernel = await manager.restart(report_id)
    return ApiResponse.ok(kernel.to_dict()).model_dump()


# ============================================================================
# System Info
# ============================================================================

@router.get("/sysinfo", tags=["system"])
async def get_sysinfo(metrics: HostMetrics = Depends(get_metrics)):
    """Host memory statistics"""
    return ApiResponse.ok(metrics.snapshot().model_dump()).model_dump()
