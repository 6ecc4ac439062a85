"""应用初始化和管理."""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

from thumbcraft.utils.logger import setup_logger

if TYPE_CHECKING:
    from thumbcraft.models.app_settings import Settings
    from thumbcraft.ui.studio_window import StudioWindow

logger = setup_logger(__name__)


class Application:
    """应用管理类.

    负责应用的初始化、配置加载和主窗口生命周期。
    """

    def __init__(self) -> None:
        """初始化应用管理器."""
        self._main_window: Optional["StudioWindow"] = None
        self._settings: Optional["Settings"] = None
        self._initialized: bool = False

    def initialize(self) -> None:
        """初始化应用.

        执行以下初始化步骤:
        1. 确保应用数据目录存在
        2. 加载配置并应用日志级别
        """
        if self._initialized:
            logger.warning("应用已初始化，跳过重复初始化")
            return

        logger.info("开始初始化应用...")
        self._ensure_data_directory()
        self._load_settings()

        self._initialized = True
        logger.info("应用初始化完成")

    def _ensure_data_directory(self) -> None:
        """确保应用数据目录存在."""
        from thumbcraft.utils.constants import APP_DATA_DIR

        APP_DATA_DIR.mkdir(parents=True, exist_ok=True)
        logger.debug(f"数据目录: {APP_DATA_DIR}")

    def _load_settings(self) -> None:
        """加载应用设置."""
        from thumbcraft.core.config_manager import get_config
        from thumbcraft.utils.logger import set_log_level

        self._settings = get_config().settings
        set_log_level("DEBUG" if self._settings.debug else self._settings.log_level)
        logger.debug(f"日志级别: {self._settings.log_level}")

    def show_main_window(self) -> None:
        """显示主窗口."""
        from thumbcraft.ui.studio_window import StudioWindow

        if self._main_window is None:
            self._main_window = StudioWindow(self._settings)

        self._main_window.show()
        logger.info("主窗口已显示")

    def cleanup(self) -> None:
        """清理应用资源."""
        logger.info("开始清理应用资源...")
        if self._main_window is not None:
            self._main_window.close()
            self._main_window = None
        logger.info("应用资源清理完成")

    @property
    def is_initialized(self) -> bool:
        """返回应用是否已初始化."""
        return self._initialized

    @property
    def main_window(self) -> Optional["StudioWindow"]:
        """返回主窗口实例."""
        return self._main_window
