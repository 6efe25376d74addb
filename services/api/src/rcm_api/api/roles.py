"""角色与角色授权接口。"""

from fastapi import APIRouter, Depends, Path, Request, status

from rcm_api.db.store import Store
from rcm_api.dependencies import get_store
from rcm_api.schemas.common import ErrorResponse, SuccessResponse
from rcm_api.schemas.records import RoleRecord
from rcm_api.schemas.responses import AssociationReplaceData, BulkAssociationData, DeletedData
from rcm_api.schemas.role import (
    AssociationReplaceRequest,
    BulkAssociationRequest,
    RoleCreateRequest,
    RoleUpdateRequest,
)
from rcm_api.services import associations as association_service
from rcm_api.services import roles as role_service
from rcm_api.utils.response import success

router = APIRouter(prefix="/roles", tags=["roles"])

_WRITE_ERRORS = {400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}, 422: {"model": ErrorResponse}}


def _role_id_path():
    return Path(..., ge=1, description="角色 ID。")


@router.get(
    "",
    summary="查询角色列表",
    description="按创建先后倒序返回全部角色。",
    status_code=status.HTTP_200_OK,
    response_model=SuccessResponse[list[RoleRecord]],
)
async def list_roles(request: Request, store: Store = Depends(get_store)):
    return success(request, await role_service.list_roles(store))


@router.post(
    "/bulk/menus",
    summary="批量绑定/解绑菜单",
    description="对 角色 × 菜单 的笛卡尔积执行绑定或解绑，整批在一个事务内完成；重复绑定不报错。",
    status_code=status.HTTP_200_OK,
    response_model=SuccessResponse[BulkAssociationData],
    responses={400: {"model": ErrorResponse}, 422: {"model": ErrorResponse}},
)
async def bulk_role_menus(payload: BulkAssociationRequest, request: Request, store: Store = Depends(get_store)):
    data = await association_service.bulk_update_role_menus(
        store, payload.role_ids, payload.target_ids, payload.action
    )
    return success(request, data)


@router.post(
    "/bulk/permissions",
    summary="批量绑定/解绑权限点",
    description="对 角色 × 权限点 的笛卡尔积执行绑定或解绑，整批在一个事务内完成；重复绑定不报错。",
    status_code=status.HTTP_200_OK,
    response_model=SuccessResponse[BulkAssociationData],
    responses={400: {"model": ErrorResponse}, 422: {"model": ErrorResponse}},
)
async def bulk_role_permissions(payload: BulkAssociationRequest, request: Request, store: Store = Depends(get_store)):
    data = await association_service.bulk_update_role_permissions(
        store, payload.role_ids, payload.target_ids, payload.action
    )
    return success(request, data)


@router.get(
    "/{role_id}",
    summary="查询角色详情",
    status_code=status.HTTP_200_OK,
    response_model=SuccessResponse[RoleRecord],
    responses={404: {"model": ErrorResponse}},
)
async def get_role(request: Request, role_id: int = _role_id_path(), store: Store = Depends(get_store)):
    return success(request, await role_service.get_role(store, role_id))


@router.post(
    "",
    summary="创建角色",
    status_code=status.HTTP_201_CREATED,
    response_model=SuccessResponse[RoleRecord],
    responses=_WRITE_ERRORS,
)
async def create_role(payload: RoleCreateRequest, request: Request, store: Store = Depends(get_store)):
    """创建角色。"""
    return success(request, await role_service.create_role(store, payload))


@router.put(
    "/{role_id}",
    summary="更新角色",
    description="局部更新；owner、description 显式传 null 表示清空。",
    status_code=status.HTTP_200_OK,
    response_model=SuccessResponse[RoleRecord],
    responses=_WRITE_ERRORS,
)
async def update_role(
    payload: RoleUpdateRequest,
    request: Request,
    role_id: int = _role_id_path(),
    store: Store = Depends(get_store),
):
    """更新角色。"""
    return success(request, await role_service.update_role(store, role_id, payload))


@router.delete(
    "/{role_id}",
    summary="删除角色",
    description="同时删除该角色的菜单与权限点关联。",
    status_code=status.HTTP_200_OK,
    response_model=SuccessResponse[DeletedData],
    responses={404: {"model": ErrorResponse}},
)
async def delete_role(request: Request, role_id: int = _role_id_path(), store: Store = Depends(get_store)):
    """删除角色。"""
    return success(request, await role_service.delete_role(store, role_id))


@router.get(
    "/{role_id}/menus",
    summary="查询角色菜单",
    description="返回角色已关联的菜单 ID 列表。",
    status_code=status.HTTP_200_OK,
    response_model=SuccessResponse[list[int]],
    responses={404: {"model": ErrorResponse}},
)
async def get_role_menus(request: Request, role_id: int = _role_id_path(), store: Store = Depends(get_store)):
    return success(request, await association_service.list_role_menu_ids(store, role_id))


@router.put(
    "/{role_id}/menus",
    summary="覆盖设置角色菜单",
    description="删除角色现有全部菜单关联后按传入列表重新写入；空列表表示清空。",
    status_code=status.HTTP_200_OK,
    response_model=SuccessResponse[AssociationReplaceData],
    responses=_WRITE_ERRORS,
)
async def set_role_menus(
    payload: AssociationReplaceRequest,
    request: Request,
    role_id: int = _role_id_path(),
    store: Store = Depends(get_store),
):
    """覆盖设置角色菜单。"""
    return success(request, await association_service.set_role_menus(store, role_id, payload.ids))


@router.get(
    "/{role_id}/permissions",
    summary="查询角色权限点",
    description="返回角色已关联的权限点 ID 列表。",
    status_code=status.HTTP_200_OK,
    response_model=SuccessResponse[list[int]],
    responses={404: {"model": ErrorResponse}},
)
async def get_role_permissions(request: Request, role_id: int = _role_id_path(), store: Store = Depends(get_store)):
    return success(request, await association_service.list_role_permission_ids(store, role_id))


@router.put(
    "/{role_id}/permissions",
    summary="覆盖设置角色权限点",
    description="删除角色现有全部权限点关联后按传入列表重新写入；空列表表示清空。",
    status_code=status.HTTP_200_OK,
    response_model=SuccessResponse[AssociationReplaceData],
    responses=_WRITE_ERRORS,
)
async def set_role_permissions(
    payload: AssociationReplaceRequest,
    request: Request,
    role_id: int = _role_id_path(),
    store: Store = Depends(get_store),
):
    """覆盖设置角色权限点。"""
    return success(request, await association_service.set_role_permissions(store, role_id, payload.ids))
