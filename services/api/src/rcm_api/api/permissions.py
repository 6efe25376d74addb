"""权限点管理接口。"""

from fastapi import APIRouter, Depends, Path, Request, status

from rcm_api.db.store import Store
from rcm_api.dependencies import get_store
from rcm_api.schemas.common import ErrorResponse, ReorderRequest, SuccessResponse
from rcm_api.schemas.permission import PermissionCreateRequest, PermissionUpdateRequest
from rcm_api.schemas.records import PermissionRecord
from rcm_api.schemas.responses import DeletedData, PermissionTreeNode, SortAssignmentData
from rcm_api.services import permissions as permission_service
from rcm_api.utils.response import success

router = APIRouter(prefix="/permissions", tags=["permissions"])

_WRITE_ERRORS = {400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}, 422: {"model": ErrorResponse}}


@router.get(
    "",
    summary="查询权限点列表",
    description="按 sort、id 升序返回全部权限点（扁平结构）。",
    status_code=status.HTTP_200_OK,
    response_model=SuccessResponse[list[PermissionRecord]],
)
async def list_permissions(request: Request, store: Store = Depends(get_store)):
    return success(request, await permission_service.list_permissions(store))


@router.get(
    "/tree",
    summary="查询权限树",
    description="返回 class → method 两级嵌套结构。",
    status_code=status.HTTP_200_OK,
    response_model=SuccessResponse[list[PermissionTreeNode]],
)
async def get_permission_tree(request: Request, store: Store = Depends(get_store)):
    return success(request, await permission_service.permission_tree(store))


@router.put(
    "/reorder",
    summary="同级权限点重排",
    description="规则与菜单重排一致：ID 不可重复、必须存在且已属于目标父节点。",
    status_code=status.HTTP_200_OK,
    response_model=SuccessResponse[list[SortAssignmentData]],
    responses={400: {"model": ErrorResponse}, 422: {"model": ErrorResponse}},
)
async def reorder_permissions(payload: ReorderRequest, request: Request, store: Store = Depends(get_store)):
    data = await permission_service.reorder_permissions(store, parent_id=payload.parent_id, ids=payload.ids)
    return success(request, data)


@router.get(
    "/{permission_id}",
    summary="查询权限点详情",
    status_code=status.HTTP_200_OK,
    response_model=SuccessResponse[PermissionRecord],
    responses={404: {"model": ErrorResponse}},
)
async def get_permission(
    request: Request,
    permission_id: int = Path(..., ge=1, description="权限点 ID。"),
    store: Store = Depends(get_store),
):
    return success(request, await permission_service.get_permission(store, permission_id))


@router.post(
    "",
    summary="创建权限点",
    description="class 级不能有父节点；method 级必须挂在已存在的 class 级权限点之下。",
    status_code=status.HTTP_201_CREATED,
    response_model=SuccessResponse[PermissionRecord],
    responses=_WRITE_ERRORS,
)
async def create_permission(
    payload: PermissionCreateRequest,
    request: Request,
    store: Store = Depends(get_store),
):
    """创建权限点。"""
    return success(request, await permission_service.create_permission(store, payload))


@router.put(
    "/{permission_id}",
    summary="更新权限点",
    description="局部更新；按合并后的层级与父节点重新校验两级结构。",
    status_code=status.HTTP_200_OK,
    response_model=SuccessResponse[PermissionRecord],
    responses=_WRITE_ERRORS,
)
async def update_permission(
    payload: PermissionUpdateRequest,
    request: Request,
    permission_id: int = Path(..., ge=1, description="权限点 ID。"),
    store: Store = Depends(get_store),
):
    """更新权限点。"""
    return success(request, await permission_service.update_permission(store, permission_id, payload))


@router.delete(
    "/{permission_id}",
    summary="删除权限点",
    description="级联删除 method 级子权限及其角色关联。",
    status_code=status.HTTP_200_OK,
    response_model=SuccessResponse[DeletedData],
    responses={404: {"model": ErrorResponse}},
)
async def delete_permission(
    request: Request,
    permission_id: int = Path(..., ge=1, description="权限点 ID。"),
    store: Store = Depends(get_store),
):
    """删除权限点。"""
    return success(request, await permission_service.delete_permission(store, permission_id))
