"""ThumbCraft 缩略图合成工作室 - 应用入口."""

from __future__ import annotations

import sys


def main() -> int:
    """应用主入口函数.

    Returns:
        退出码，0 表示正常退出
    """
    from PyQt6.QtWidgets import QApplication

    from thumbcraft.app import Application
    from thumbcraft.utils.constants import APP_AUTHOR, APP_NAME, APP_VERSION
    from thumbcraft.utils.exceptions import AppException
    from thumbcraft.utils.logger import setup_logger

    logger = setup_logger(__name__)
    logger.info(f"启动 {APP_NAME}")

    qt_app = QApplication(sys.argv)
    qt_app.setApplicationName(APP_NAME)
    qt_app.setApplicationVersion(APP_VERSION)
    qt_app.setOrganizationName(APP_AUTHOR)

    try:
        app = Application()
        app.initialize()
        app.show_main_window()

        exit_code = qt_app.exec()

        app.cleanup()

        logger.info(f"应用正常退出，退出码: {exit_code}")
        return exit_code

    except AppException as e:
        logger.exception(f"应用运行时发生错误: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
