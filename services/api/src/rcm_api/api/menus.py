"""菜单管理接口。"""

from fastapi import APIRouter, Depends, Path, Request, status

from rcm_api.db.store import Store
from rcm_api.dependencies import get_store
from rcm_api.schemas.common import ErrorResponse, ReorderRequest, SuccessResponse
from rcm_api.schemas.menu import MenuCreateRequest, MenuUpdateRequest
from rcm_api.schemas.records import MenuRecord
from rcm_api.schemas.responses import DeletedData, MenuTreeNode, SortAssignmentData
from rcm_api.services import menus as menu_service
from rcm_api.utils.response import success

router = APIRouter(prefix="/menus", tags=["menus"])

_WRITE_ERRORS = {400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}, 422: {"model": ErrorResponse}}


@router.get(
    "",
    summary="查询菜单列表",
    description="按 sort、id 升序返回全部菜单（扁平结构）。",
    status_code=status.HTTP_200_OK,
    response_model=SuccessResponse[list[MenuRecord]],
)
async def list_menus(request: Request, store: Store = Depends(get_store)):
    return success(request, await menu_service.list_menus(store))


@router.get(
    "/tree",
    summary="查询菜单树",
    description="返回嵌套菜单树；父节点缺失或成环的脏数据按根节点展示。",
    status_code=status.HTTP_200_OK,
    response_model=SuccessResponse[list[MenuTreeNode]],
)
async def get_menu_tree(request: Request, store: Store = Depends(get_store)):
    return success(request, await menu_service.menu_tree(store))


@router.put(
    "/reorder",
    summary="同级菜单重排",
    description="按传入顺序为同一父节点下的菜单重新分配排序值（10、20、30…），不会改变父节点。",
    status_code=status.HTTP_200_OK,
    response_model=SuccessResponse[list[SortAssignmentData]],
    responses={400: {"model": ErrorResponse}, 422: {"model": ErrorResponse}},
)
async def reorder_menus(payload: ReorderRequest, request: Request, store: Store = Depends(get_store)):
    """重排同级菜单。"""
    data = await menu_service.reorder_menus(store, parent_id=payload.parent_id, ids=payload.ids)
    return success(request, data)


@router.get(
    "/{menu_id}",
    summary="查询菜单详情",
    status_code=status.HTTP_200_OK,
    response_model=SuccessResponse[MenuRecord],
    responses={404: {"model": ErrorResponse}},
)
async def get_menu(
    request: Request,
    menu_id: int = Path(..., ge=1, description="菜单 ID。"),
    store: Store = Depends(get_store),
):
    return success(request, await menu_service.get_menu(store, menu_id))


@router.post(
    "",
    summary="创建菜单",
    description="父菜单必须已存在；code 全局唯一。",
    status_code=status.HTTP_201_CREATED,
    response_model=SuccessResponse[MenuRecord],
    responses=_WRITE_ERRORS,
)
async def create_menu(payload: MenuCreateRequest, request: Request, store: Store = Depends(get_store)):
    """创建菜单并返回落库后的记录。"""
    return success(request, await menu_service.create_menu(store, payload))


@router.put(
    "/{menu_id}",
    summary="更新菜单",
    description="局部更新；修改父节点时校验不能指向自身或自身后代。",
    status_code=status.HTTP_200_OK,
    response_model=SuccessResponse[MenuRecord],
    responses=_WRITE_ERRORS,
)
async def update_menu(
    payload: MenuUpdateRequest,
    request: Request,
    menu_id: int = Path(..., ge=1, description="菜单 ID。"),
    store: Store = Depends(get_store),
):
    """更新菜单。"""
    return success(request, await menu_service.update_menu(store, menu_id, payload))


@router.delete(
    "/{menu_id}",
    summary="删除菜单",
    description="级联删除全部子菜单及其角色关联。",
    status_code=status.HTTP_200_OK,
    response_model=SuccessResponse[DeletedData],
    responses={404: {"model": ErrorResponse}},
)
async def delete_menu(
    request: Request,
    menu_id: int = Path(..., ge=1, description="菜单 ID。"),
    store: Store = Depends(get_store),
):
    """删除菜单。"""
    return success(request, await menu_service.delete_menu(store, menu_id))
