"""资源任务工作器.

在 Qt 线程中运行异步资源任务（预取、导出），结果通过信号回到 UI 线程。

Features:
    - 每个任务在独立的 asyncio 事件循环中执行
    - 预取结果以 AssetBundle 快照交付，UI 线程不直接读取加载器缓存
    - 导出成功/失败信号
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any, Awaitable, Optional

from PyQt6.QtCore import QObject, QThread, pyqtSignal, pyqtSlot

from thumbcraft.models.canvas_document import CanvasDocument
from thumbcraft.services.asset_loader import (
    AssetBundle,
    AssetLoader,
    FontRegistry,
    collect_font_tokens,
    collect_image_uris,
)
from thumbcraft.services.exporter import export_document
from thumbcraft.utils.exceptions import AppException
from thumbcraft.utils.logger import setup_logger

logger = setup_logger(__name__)


class AssetWorker(QObject):
    """资源工作器.

    Signals:
        prefetch_finished: 预取完成 (AssetBundle)
        export_finished: 导出完成 (输出路径)
        export_failed: 导出失败 (错误信息)
    """

    prefetch_finished = pyqtSignal(object)  # AssetBundle
    export_finished = pyqtSignal(str)  # output_path
    export_failed = pyqtSignal(str)  # error_message

    def __init__(
        self,
        loader: AssetLoader,
        fonts: FontRegistry,
        parent: Optional[QObject] = None,
    ) -> None:
        """初始化资源工作器.

        Args:
            loader: 图片加载器（只在工作线程中使用）
            fonts: 字体注册表
            parent: 父对象
        """
        super().__init__(parent)
        self._loader = loader
        self._fonts = fonts
        self._export_prefix: Optional[str] = None

    def set_export_prefix(self, prefix: str) -> None:
        """设置导出文件名前缀."""
        self._export_prefix = prefix

    @pyqtSlot(object)
    def prefetch(self, document: CanvasDocument) -> None:
        """预取文档需要的图片与字体."""

        async def run() -> Any:
            bundle = await self._loader.prefetch(document)
            await self._fonts.ensure_ready(collect_font_tokens(document))
            return bundle

        try:
            bundle = self._run(run())
        except Exception as e:
            logger.error(f"预取失败: {e}", exc_info=True)
            # 全部标记为失败，避免预览端一直等待
            bundle = AssetBundle(images={uri: None for uri in collect_image_uris(document)})
        self.prefetch_finished.emit(bundle)

    @pyqtSlot(object, object)
    def export(self, document: CanvasDocument, output_dir: Path) -> None:
        """导出文档为 PNG."""
        kwargs = {"prefix": self._export_prefix} if self._export_prefix else {}
        try:
            path = self._run(
                export_document(document, Path(output_dir), self._loader, self._fonts, **kwargs)
            )
        except AppException as e:
            logger.error(f"导出失败: {e}")
            self.export_failed.emit(e.message)
            return
        except Exception as e:
            logger.error(f"导出异常: {e}", exc_info=True)
            self.export_failed.emit(f"导出异常: {e}")
            return
        self.export_finished.emit(str(path))

    def _run(self, coro: Awaitable[Any]) -> Any:
        """在新的事件循环中执行协程，结束后关闭 HTTP 客户端."""

        async def with_cleanup() -> Any:
            try:
                return await coro
            finally:
                await self._loader.close()

        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        try:
            return loop.run_until_complete(with_cleanup())
        finally:
            loop.close()
            asyncio.set_event_loop(None)


class AssetTaskThread(QThread):
    """资源任务线程.

    管理 AssetWorker 的线程生命周期，请求通过排队信号投递到工作线程。

    Example:
        >>> thread = AssetTaskThread(loader, fonts)
        >>> thread.worker.prefetch_finished.connect(renderer.on_assets_loaded)
        >>> thread.start()
        >>> thread.request_prefetch(document)
    """

    _prefetch_requested = pyqtSignal(object)
    _export_requested = pyqtSignal(object, object)

    def __init__(
        self,
        loader: AssetLoader,
        fonts: FontRegistry,
        parent: Optional[QObject] = None,
    ) -> None:
        """初始化资源任务线程.

        Args:
            loader: 图片加载器
            fonts: 字体注册表
            parent: 父对象
        """
        super().__init__(parent)
        self._worker = AssetWorker(loader, fonts)
        self._worker.moveToThread(self)
        self._prefetch_requested.connect(self._worker.prefetch)
        self._export_requested.connect(self._worker.export)

    @property
    def worker(self) -> AssetWorker:
        """获取工作器."""
        return self._worker

    def request_prefetch(self, document: CanvasDocument) -> None:
        """请求预取."""
        if not self.isRunning():
            self.start()
        self._prefetch_requested.emit(document)

    def request_export(self, document: CanvasDocument, output_dir: Path) -> None:
        """请求导出."""
        if not self.isRunning():
            self.start()
        self._export_requested.emit(document, output_dir)

    def stop(self) -> None:
        """停止线程."""
        self.quit()
        self.wait()
