"""健康检查接口。"""

from fastapi import APIRouter, Depends, Request, status

from rcm_api.db.store import Store
from rcm_api.dependencies import get_store
from rcm_api.utils.response import success
from rcm_api.schemas.common import ErrorResponse, SuccessResponse
from rcm_api.schemas.responses import HealthStatusData

router = APIRouter(prefix="/health", tags=["health"])


@router.get(
    "/live",
    summary="存活探针",
    description="用于容器编排系统检测服务进程是否存活。",
    status_code=status.HTTP_200_OK,
    response_model=SuccessResponse[HealthStatusData],
    responses={500: {"model": ErrorResponse}},
)
async def live(request: Request):
    """仅表示进程存活，不校验外部依赖。"""
    return success(request, {"status": "ok"})


@router.get(
    "/ready",
    summary="就绪探针",
    description="通过数据库连通性检测服务是否具备对外提供能力。",
    status_code=status.HTTP_200_OK,
    response_model=SuccessResponse[HealthStatusData],
    responses={503: {"model": ErrorResponse}},
)
async def ready(request: Request, store: Store = Depends(get_store)):
    """执行轻量数据库探活语句验证数据库可用。"""
    await store.ping()
    return success(request, {"status": "ready"})
