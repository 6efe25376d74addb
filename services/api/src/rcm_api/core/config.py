"""应用运行配置。"""

import logging
from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """接口服务共享配置。"""

    model_config = SettingsConfigDict(env_file=".env", env_prefix="RCM_", extra="ignore")

    app_name: str = Field(default="Role Config Manager", description="应用名称。")
    app_env: str = Field(default="dev", description="运行环境标识，prod 环境下不返回内部错误细节。")
    app_debug: bool = Field(default=True, description="是否开启调试模式。")
    api_prefix: str = Field(default="/api", description="统一接口前缀。")
    database_url: str = Field(
        default="sqlite+aiosqlite:///./data/app.db",
        description="嵌入式数据库连接地址。",
    )
    database_echo: bool = Field(default=False, description="是否输出执行的 SQL 语句。")

    log_level: str = Field(default="INFO", description="日志级别。")
    import_max_bytes: int = Field(default=5 * 1024 * 1024, description="导入配置文档的最大字节数。")
    snapshot_version: int = Field(default=1, description="导出文档的版本号。")

    @field_validator("log_level")
    @classmethod
    def normalize_log_level(cls, value: str) -> str:
        """规范化日志级别并确保是已知级别。"""
        level = value.strip().upper()
        if level not in logging.getLevelNamesMapping():
            raise ValueError(f"unknown log level: {value}")
        return level

    @property
    def is_production(self) -> bool:
        """是否生产环境。"""
        return self.app_env.strip().lower() in {"prod", "production"}


@lru_cache
def get_settings() -> Settings:
    """返回缓存后的配置单例。"""
    return Settings()
