"""应用设置模型."""

from __future__ import annotations

from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from thumbcraft.utils.constants import (
    DEFAULT_ASSET_TIMEOUT,
    DEFAULT_FONT_TIMEOUT,
    DEFAULT_VIEWPORT_PADDING,
    EXPORT_DIR,
    EXPORT_PREFIX,
)


class Settings(BaseSettings):
    """应用设置.

    支持从环境变量（THUMBCRAFT_ 前缀）和 .env 文件加载配置。

    Attributes:
        log_level: 日志级别
        viewport_padding: 视口内边距（像素）
        asset_timeout: 单个图片资源加载超时（秒）
        font_timeout: 字体就绪等待超时（秒）
        export_dir: 默认导出目录
        export_prefix: 导出文件名前缀
        font_dirs: 额外的字体搜索目录
        debug: 调试模式
    """

    model_config = SettingsConfigDict(
        env_prefix="THUMBCRAFT_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    log_level: str = Field(default="INFO", description="日志级别")

    viewport_padding: int = Field(
        default=DEFAULT_VIEWPORT_PADDING,
        ge=0,
        le=400,
        description="视口内边距",
    )

    asset_timeout: float = Field(
        default=DEFAULT_ASSET_TIMEOUT,
        gt=0,
        le=120,
        description="图片加载超时",
    )

    font_timeout: float = Field(
        default=DEFAULT_FONT_TIMEOUT,
        gt=0,
        le=60,
        description="字体加载超时",
    )

    export_dir: Path = Field(default=EXPORT_DIR, description="导出目录")
    export_prefix: str = Field(default=EXPORT_PREFIX, min_length=1, description="导出文件名前缀")

    font_dirs: list[Path] = Field(default_factory=list, description="额外字体目录")

    debug: bool = Field(default=False, description="调试模式")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """验证日志级别."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper_v = v.upper()
        if upper_v not in valid_levels:
            raise ValueError(f"无效的日志级别: {v}，有效值: {valid_levels}")
        return upper_v
