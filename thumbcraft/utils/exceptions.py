"""自定义异常类."""

from __future__ import annotations


class AppException(Exception):
    """应用基础异常类.

    所有自定义异常都应继承此类。

    Attributes:
        message: 错误消息
        code: 错误代码
    """

    def __init__(self, message: str, code: str = "UNKNOWN") -> None:
        """初始化异常.

        Args:
            message: 错误消息
            code: 错误代码
        """
        self.message = message
        self.code = code
        super().__init__(self.message)

    def __str__(self) -> str:
        """返回异常字符串表示."""
        return f"[{self.code}] {self.message}"


# ===================
# 配置相关异常
# ===================
class ConfigError(AppException):
    """配置错误异常."""

    def __init__(self, message: str) -> None:
        super().__init__(message, "CONFIG_ERROR")


# ===================
# 资源加载相关异常
# ===================
class AssetLoadError(AppException):
    """资源加载错误异常.

    Attributes:
        uri: 加载失败的资源地址
    """

    def __init__(self, uri: str, reason: str = "") -> None:
        self.uri = uri
        msg = f"资源加载失败: {_shorten_uri(uri)}"
        if reason:
            msg += f" ({reason})"
        super().__init__(msg, "ASSET_LOAD_ERROR")


class AssetTimeoutError(AssetLoadError):
    """资源加载超时异常."""

    def __init__(self, uri: str, timeout: float) -> None:
        super().__init__(uri, f"超时 {timeout:.1f}秒")


class UnsupportedAssetUriError(AssetLoadError):
    """不支持的资源地址异常."""

    def __init__(self, uri: str) -> None:
        super().__init__(uri, "不支持的地址格式")


# ===================
# 渲染相关异常
# ===================
class RenderError(AppException):
    """渲染错误异常."""

    def __init__(self, message: str) -> None:
        super().__init__(message, "RENDER_ERROR")


class ExportError(RenderError):
    """导出错误异常."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.code = "EXPORT_ERROR"


def _shorten_uri(uri: str, max_length: int = 80) -> str:
    """截断过长的资源地址（data URI 可能非常长）."""
    if len(uri) <= max_length:
        return uri
    return uri[: max_length - 3] + "..."
