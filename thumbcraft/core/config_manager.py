"""配置管理器模块."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Optional

from thumbcraft.models.app_settings import Settings
from thumbcraft.utils.constants import APP_DATA_DIR
from thumbcraft.utils.exceptions import ConfigError
from thumbcraft.utils.logger import setup_logger

logger = setup_logger(__name__)

# 配置文件路径
USER_CONFIG_FILE = APP_DATA_DIR / "config.json"


class ConfigManager:
    """配置管理器.

    负责应用设置的加载以及用户偏好（如最近导出目录）的读写。

    Attributes:
        settings: 应用设置
    """

    _instance: Optional["ConfigManager"] = None

    def __new__(cls, *args: Any, **kwargs: Any) -> "ConfigManager":
        """单例模式."""
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._initialized = False
        return cls._instance

    def __init__(self, user_config_file: Optional[Path] = None) -> None:
        """初始化配置管理器.

        Args:
            user_config_file: 用户配置文件路径，默认位于应用数据目录
        """
        if self._initialized:
            return

        self._settings: Optional[Settings] = None
        self._user_config_file = user_config_file or USER_CONFIG_FILE
        self._initialized = True

        logger.debug("配置管理器初始化完成")

    @classmethod
    def reset_instance(cls) -> None:
        """重置单例（主要用于测试）."""
        cls._instance = None

    @property
    def settings(self) -> Settings:
        """获取应用设置."""
        if self._settings is None:
            self._settings = self._load_settings()
        return self._settings

    def _load_settings(self) -> Settings:
        """加载应用设置.

        优先从环境变量加载，然后从 .env 文件加载。

        Returns:
            Settings 实例
        """
        try:
            settings = Settings()
            logger.debug(
                f"应用设置加载完成: log_level={settings.log_level}, "
                f"asset_timeout={settings.asset_timeout}"
            )
            return settings
        except Exception as e:
            logger.error(f"加载应用设置失败: {e}")
            raise ConfigError(f"加载应用设置失败: {e}")

    def save_user_config(self, config: dict[str, Any]) -> None:
        """保存用户配置.

        Args:
            config: 配置字典
        """
        try:
            # 合并现有配置
            existing = self._load_user_config()
            existing.update(config)

            self._user_config_file.parent.mkdir(parents=True, exist_ok=True)
            self._user_config_file.write_text(
                json.dumps(existing, indent=2, ensure_ascii=False),
                encoding="utf-8",
            )
            logger.debug("用户配置已保存")
        except (OSError, TypeError, ValueError) as e:
            logger.error(f"保存用户配置失败: {e}")
            raise ConfigError(f"保存用户配置失败: {e}")

    def _load_user_config(self) -> dict[str, Any]:
        """加载用户配置文件."""
        if self._user_config_file.exists():
            try:
                content = self._user_config_file.read_text(encoding="utf-8")
                return json.loads(content)
            except (OSError, ValueError) as e:
                logger.warning(f"加载用户配置文件失败: {e}")
        return {}

    def get_user_config(self, key: str, default: Any = None) -> Any:
        """获取用户配置项.

        Args:
            key: 配置键
            default: 默认值

        Returns:
            配置值
        """
        return self._load_user_config().get(key, default)

    def set_user_config(self, key: str, value: Any) -> None:
        """设置用户配置项."""
        self.save_user_config({key: value})

    def reload(self) -> None:
        """重新加载设置."""
        self._settings = None
        logger.info("配置已重新加载")


def get_config() -> ConfigManager:
    """获取配置管理器实例.

    Returns:
        ConfigManager 单例实例
    """
    return ConfigManager()


def get_settings() -> Settings:
    """获取应用设置（便捷函数）."""
    return get_config().settings
