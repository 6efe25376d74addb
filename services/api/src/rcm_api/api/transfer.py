"""配置导出与导入接口。"""

from time import time

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse
from starlette.datastructures import UploadFile

from rcm_api.core.config import get_settings
from rcm_api.db.store import Store
from rcm_api.dependencies import get_store
from rcm_api.errors import ValidationFailed
from rcm_api.schemas.common import ErrorResponse, SuccessResponse
from rcm_api.schemas.responses import ImportResultData
from rcm_api.services.snapshot import export_snapshot, import_snapshot, parse_snapshot
from rcm_api.utils.response import success

router = APIRouter(tags=["transfer"])

_IMPORT_BODY_SCHEMA = {
    "requestBody": {
        "content": {
            "application/json": {"schema": {"type": "object", "description": "导出接口返回的配置文档。"}},
            "multipart/form-data": {
                "schema": {
                    "type": "object",
                    "properties": {"file": {"type": "string", "format": "binary"}},
                    "required": ["file"],
                }
            },
        },
        "required": True,
    }
}


async def _read_import_payload(request: Request, max_bytes: int) -> bytes:
    """读取导入内容：multipart 取 `file` 字段，否则取原始请求体。"""
    content_type = request.headers.get("content-type", "")
    if content_type.startswith("multipart/form-data"):
        form = await request.form()
        upload = form.get("file")
        if not isinstance(upload, UploadFile):
            raise ValidationFailed("Missing import payload", details={"field": "file"})
        raw = await upload.read(max_bytes + 1)
        await upload.close()
        return raw
    return await request.body()


@router.get(
    "/export",
    summary="导出配置",
    description="导出菜单、权限点、角色及其关联；所有引用以 code 表达，下载为 JSON 文件。",
    status_code=status.HTTP_200_OK,
    responses={200: {"description": "配置文档 JSON 附件。"}, 503: {"model": ErrorResponse}},
)
async def export_config(store: Store = Depends(get_store)):
    """导出完整配置文档。"""
    document = await export_snapshot(store, version=get_settings().snapshot_version)
    filename = f"role-config-export-{int(time() * 1000)}.json"
    return JSONResponse(
        content=document.to_wire(),
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.post(
    "/import",
    summary="导入配置",
    description=(
        "接收 JSON 请求体或 multipart 上传的 `file` 字段，按 code 合并写入。\n\n"
        "整个导入在一个事务中执行，任一记录校验失败则全部回滚。"
    ),
    status_code=status.HTTP_200_OK,
    response_model=SuccessResponse[ImportResultData],
    responses={400: {"model": ErrorResponse}, 503: {"model": ErrorResponse}},
    openapi_extra=_IMPORT_BODY_SCHEMA,
)
async def import_config(request: Request, store: Store = Depends(get_store)):
    """导入配置文档。"""
    max_bytes = get_settings().import_max_bytes
    raw = await _read_import_payload(request, max_bytes)
    document = parse_snapshot(raw, max_bytes=max_bytes)
    counts = await import_snapshot(store, document)
    return success(request, {"imported": True, "counts": counts})
