"""全局通用结构。

用于定义统一响应包裹结构，便于在线接口文档展示与联调。
"""

from typing import Any, ClassVar, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field, PositiveInt


class BaseSchema(BaseModel):
    """基础结构，开启对象映射能力。"""

    model_config = ConfigDict(from_attributes=True)


class ErrorPayload(BaseSchema):
    """错误主体。"""

    code: str = Field(description="机器可识别错误码。")
    message: str = Field(description="人类可读错误信息。")
    details: dict[str, Any] = Field(default_factory=dict, description="可选扩展错误细节。")


class ErrorResponse(BaseSchema):
    """统一错误响应。"""

    request_id: str = Field(description="服务端生成的请求追踪 ID。")
    error: ErrorPayload = Field(description="错误主体。")


T = TypeVar("T")


class SuccessResponse(BaseSchema, Generic[T]):
    """统一成功响应。"""

    request_id: str = Field(description="服务端生成的请求追踪 ID。")
    data: T = Field(description="业务返回数据主体。")
    meta: dict[str, Any] = Field(default_factory=dict, description="可选扩展元信息。")


class PartialUpdateSchema(BaseModel):
    """局部更新请求基类。

    规则：
    1. 未传字段保持原值。
    2. 可空字段显式传入 null 时清空；不可空字段传入 null 视为未传。
    """

    nullable_fields: ClassVar[frozenset[str]] = frozenset()

    def changes(self) -> dict[str, Any]:
        """返回本次请求实际要写入的字段。"""
        values: dict[str, Any] = {}
        for name in self.model_fields_set:
            value = getattr(self, name)
            if value is None and name not in self.nullable_fields:
                continue
            values[name] = value
        return values


class ReorderRequest(BaseModel):
    """同级节点重排请求。"""

    parent_id: PositiveInt | None = Field(default=None, description="目标父节点 ID，为空表示根级。")
    ids: list[PositiveInt] = Field(default_factory=list, description="按期望顺序排列的子节点 ID。")
