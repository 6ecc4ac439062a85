"""画布预览组件.

显示画布渲染结果并把鼠标事件交给交互控制器。

Features:
    - 画布等比适配视口并居中，窗口缩放时重新计算
    - 预览与导出共用同一渲染流程，只对结果做显示缩放
    - 选中图层轮廓
    - 按下/拖动/释放（Qt 隐式鼠标抓取保证在组件外释放也能结束拖拽）
"""

from __future__ import annotations

from typing import Optional

from PIL import Image
from PyQt6.QtCore import QObject, QPointF, QRectF, Qt, QTimer, pyqtSignal
from PyQt6.QtGui import (
    QColor,
    QImage,
    QMouseEvent,
    QPainter,
    QPaintEvent,
    QPen,
    QPolygonF,
    QResizeEvent,
)
from PyQt6.QtWidgets import QWidget

from thumbcraft.core.editor_session import EditorSession
from thumbcraft.core.interaction import InteractionController
from thumbcraft.core.transform import ViewportFit, compute_viewport_fit
from thumbcraft.models.canvas_document import CanvasDocument
from thumbcraft.services.asset_loader import AssetBundle, FontRegistry, collect_image_uris
from thumbcraft.services.document_renderer import RenderReport, render_document
from thumbcraft.services.render_surface import RasterSurface
from thumbcraft.utils.constants import DEFAULT_VIEWPORT_PADDING
from thumbcraft.utils.logger import setup_logger

logger = setup_logger(__name__)


# ===================
# 常量定义
# ===================

VIEWPORT_BACKGROUND = QColor(9, 9, 11)
SELECTION_COLOR = QColor(59, 130, 246)


def pil_to_qimage(image: Image.Image) -> QImage:
    """Pillow 图片转换为 QImage（深拷贝）."""
    rgba = image if image.mode == "RGBA" else image.convert("RGBA")
    data = rgba.tobytes("raw", "RGBA")
    qimage = QImage(data, rgba.width, rgba.height, rgba.width * 4, QImage.Format.Format_RGBA8888)
    return qimage.copy()


# ===================
# 预览渲染
# ===================


class PreviewRenderer(QObject):
    """预览渲染器.

    只使用 UI 线程持有的图片快照渲染；缺失的图片通过 assets_requested
    请求后台加载，加载完成后触发 preview_updated。

    Signals:
        assets_requested: 需要后台加载资源 (CanvasDocument)
        preview_updated: 新资源就绪，需要重新渲染
    """

    assets_requested = pyqtSignal(object)  # CanvasDocument
    preview_updated = pyqtSignal()

    def __init__(self, fonts: FontRegistry, parent: Optional[QObject] = None) -> None:
        """初始化预览渲染器.

        Args:
            fonts: 字体注册表
            parent: 父对象
        """
        super().__init__(parent)
        self._fonts = fonts
        self._images: dict[str, Optional[Image.Image]] = {}
        self._pending: set[str] = set()

    def get(self, uri: str) -> Optional[Image.Image]:
        """获取已就绪的图片."""
        return self._images.get(uri)

    def has_asset(self, uri: str) -> bool:
        """图片是否已有加载结果."""
        return uri in self._images

    def render(self, document: CanvasDocument) -> tuple[Image.Image, RenderReport]:
        """渲染文档，必要时请求加载缺失资源.

        Returns:
            (RGBA 图片, 渲染结果)
        """
        missing = [
            uri
            for uri in collect_image_uris(document)
            if uri not in self._images and uri not in self._pending
        ]
        if missing:
            self._pending.update(missing)
            logger.debug(f"请求加载 {len(missing)} 个图片")
            self.assets_requested.emit(document)

        width, height = document.canvas_size
        surface = RasterSurface(width, height)
        report = render_document(document, surface, self, self._fonts)
        return surface.image, report

    def on_assets_loaded(self, bundle: AssetBundle) -> None:
        """合并后台加载结果."""
        self._images.update(bundle.images)
        self._pending.difference_update(bundle.images.keys())
        self.preview_updated.emit()


# ===================
# 画布视图
# ===================


class CanvasView(QWidget):
    """画布视图.

    Signals:
        edit_context_requested: 请求编辑图层 (layer_id)
    """

    edit_context_requested = pyqtSignal(str)

    def __init__(
        self,
        session: EditorSession,
        renderer: PreviewRenderer,
        padding: float = DEFAULT_VIEWPORT_PADDING,
        parent: Optional[QWidget] = None,
    ) -> None:
        """初始化画布视图.

        Args:
            session: 编辑会话
            renderer: 预览渲染器
            padding: 视口内边距
            parent: 父组件
        """
        super().__init__(parent)
        self._session = session
        self._renderer = renderer
        self._padding = padding
        self._fit = compute_viewport_fit(self.width(), self.height(), padding)
        self._qimage: Optional[QImage] = None
        self._report = RenderReport()

        self._controller = InteractionController(session, lambda: self._fit.scale, self)
        self._controller.edit_context_requested.connect(self.edit_context_requested.emit)

        # 合并同一事件循环周期内的多次重绘请求
        self._refresh_timer = QTimer(self)
        self._refresh_timer.setSingleShot(True)
        self._refresh_timer.setInterval(0)
        self._refresh_timer.timeout.connect(self.refresh)

        session.document_changed.connect(self.schedule_refresh)
        session.selection_changed.connect(lambda _: self.update())
        renderer.preview_updated.connect(self.schedule_refresh)

        self.setMinimumSize(320, 180)
        self.setFocusPolicy(Qt.FocusPolicy.StrongFocus)

        self.refresh()

    # ========================
    # 属性
    # ========================

    @property
    def controller(self) -> InteractionController:
        """交互控制器."""
        return self._controller

    @property
    def viewport_fit(self) -> ViewportFit:
        """当前视口适配结果."""
        return self._fit

    @property
    def render_report(self) -> RenderReport:
        """最近一次渲染结果."""
        return self._report

    @property
    def preview_image(self) -> Optional[QImage]:
        """最近一次渲染的预览图片（逻辑分辨率）."""
        return self._qimage

    # ========================
    # 渲染
    # ========================

    def schedule_refresh(self, *_args) -> None:
        """请求在下一个事件循环周期重新渲染."""
        self._refresh_timer.start()

    def refresh(self) -> None:
        """立即重新渲染预览."""
        self._refresh_timer.stop()
        image, report = self._renderer.render(self._session.document)
        self._qimage = pil_to_qimage(image)
        self._report = report
        self.update()

    def resizeEvent(self, event: QResizeEvent) -> None:
        """窗口缩放时重新适配画布."""
        size = event.size()
        self._fit = compute_viewport_fit(size.width(), size.height(), self._padding)
        super().resizeEvent(event)
        self.update()

    def paintEvent(self, event: QPaintEvent) -> None:
        """绘制预览与选中框."""
        painter = QPainter(self)
        painter.setRenderHint(QPainter.RenderHint.SmoothPixmapTransform)
        painter.setRenderHint(QPainter.RenderHint.Antialiasing)
        painter.fillRect(self.rect(), VIEWPORT_BACKGROUND)

        fit = self._fit
        target = QRectF(fit.offset_x, fit.offset_y, fit.canvas_width, fit.canvas_height)
        if self._qimage is not None:
            painter.drawImage(target, self._qimage)

        selection_id = self._session.selection_id
        region = self._report.region_for(selection_id) if selection_id else None
        if region is not None:
            points = [QPointF(*fit.logical_to_device(x, y)) for x, y in region.corners()]
            pen = QPen(SELECTION_COLOR, 2)
            pen.setStyle(Qt.PenStyle.DashLine)
            painter.setPen(pen)
            painter.setBrush(Qt.BrushStyle.NoBrush)
            painter.drawPolygon(QPolygonF(points))

        painter.end()

    # ========================
    # 鼠标事件
    # ========================

    def mousePressEvent(self, event: QMouseEvent) -> None:
        """按下：命中图层则选中并开始拖拽，否则清除选中."""
        if event.button() != Qt.MouseButton.LeftButton:
            super().mousePressEvent(event)
            return

        position = event.position()
        logical_x, logical_y = self._fit.device_to_logical(position.x(), position.y())
        self._controller.press_at(
            self._report.hit_regions,
            logical_x,
            logical_y,
            position.x(),
            position.y(),
        )
        event.accept()

    def mouseMoveEvent(self, event: QMouseEvent) -> None:
        """拖动图层."""
        if self._controller.is_dragging:
            position = event.position()
            self._controller.move(position.x(), position.y())
            event.accept()
            return
        super().mouseMoveEvent(event)

    def mouseReleaseEvent(self, event: QMouseEvent) -> None:
        """结束拖拽."""
        if event.button() == Qt.MouseButton.LeftButton:
            self._controller.release()
            event.accept()
            return
        super().mouseReleaseEvent(event)
