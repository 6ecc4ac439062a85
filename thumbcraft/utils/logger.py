"""日志工具模块.

所有模块的日志记录器挂在 "thumbcraft" 命名空间下，处理器只配置一次。

Features:
    - 控制台彩色输出
    - app.log / error.log 轮转文件
    - 全局日志级别（由设置中的 log_level 驱动）
"""

from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler

from thumbcraft.utils.constants import LOG_DIR

# 应用日志命名空间
LOGGER_NAMESPACE = "thumbcraft"

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

LOG_FILE_MAX_BYTES = 5 * 1024 * 1024  # 5MB
LOG_FILE_BACKUP_COUNT = 3

_log_level: int = logging.INFO
_configured: bool = False


class ColoredFormatter(logging.Formatter):
    """按级别着色的控制台格式化器."""

    COLORS = {
        logging.DEBUG: "\033[36m",
        logging.INFO: "\033[32m",
        logging.WARNING: "\033[33m",
        logging.ERROR: "\033[31m",
        logging.CRITICAL: "\033[35m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        # 在副本上着色，文件日志保持纯文本
        record = logging.makeLogRecord(record.__dict__)
        color = self.COLORS.get(record.levelno, "")
        record.levelname = f"{color}{record.levelname}{self.RESET}"
        return super().format(record)


def _rotating_file(filename: str, level: int) -> RotatingFileHandler:
    handler = RotatingFileHandler(
        LOG_DIR / filename,
        maxBytes=LOG_FILE_MAX_BYTES,
        backupCount=LOG_FILE_BACKUP_COUNT,
        encoding="utf-8",
    )
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))
    return handler


def _configure() -> None:
    global _configured
    if _configured:
        return
    _configured = True

    app_logger = logging.getLogger(LOGGER_NAMESPACE)
    app_logger.setLevel(_log_level)
    app_logger.handlers.clear()

    console = logging.StreamHandler(sys.stdout)
    console.setLevel(_log_level)
    console.setFormatter(ColoredFormatter(LOG_FORMAT, DATE_FORMAT))
    app_logger.addHandler(console)

    try:
        LOG_DIR.mkdir(parents=True, exist_ok=True)
        app_logger.addHandler(_rotating_file("app.log", _log_level))
        app_logger.addHandler(_rotating_file("error.log", logging.ERROR))
    except OSError as e:
        app_logger.warning(f"无法创建日志文件，仅输出到控制台: {e}")


def setup_logger(name: str) -> logging.Logger:
    """获取模块日志记录器.

    Args:
        name: 日志记录器名称，通常使用 __name__

    Returns:
        日志记录器
    """
    _configure()
    logger = logging.getLogger(name)
    logger.setLevel(_log_level)
    return logger


def set_log_level(level: int | str) -> None:
    """设置全局日志级别，已创建的记录器与非错误处理器同步更新."""
    global _log_level
    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)
    _log_level = level

    app_logger = logging.getLogger(LOGGER_NAMESPACE)
    app_logger.setLevel(level)
    for handler in app_logger.handlers:
        if handler.level != logging.ERROR:
            handler.setLevel(level)

    prefix = f"{LOGGER_NAMESPACE}."
    for name, logger in logging.root.manager.loggerDict.items():
        if name.startswith(prefix) and isinstance(logger, logging.Logger):
            logger.setLevel(level)


def get_log_level() -> int:
    """当前全局日志级别."""
    return _log_level
