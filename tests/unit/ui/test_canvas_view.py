"""画布预览组件测试."""

from __future__ import annotations

import pytest
from PyQt6.QtCore import QPoint, QSize, Qt
from PyQt6.QtGui import QResizeEvent

from thumbcraft.core.editor_session import EditorSession
from thumbcraft.models.canvas_document import CanvasDocument, ImageLayer, TextLayer
from thumbcraft.services.asset_loader import AssetBundle
from thumbcraft.ui.canvas_view import CanvasView, PreviewRenderer, pil_to_qimage


# ========================
# Fixtures
# ========================


@pytest.fixture
def session(app) -> EditorSession:
    """编辑会话."""
    return EditorSession()


@pytest.fixture
def renderer(app, fonts) -> PreviewRenderer:
    """预览渲染器."""
    return PreviewRenderer(fonts)


@pytest.fixture
def view(qtbot, session: EditorSession, renderer: PreviewRenderer) -> CanvasView:
    """960x540 的画布视图."""
    widget = CanvasView(session, renderer, padding=40)
    qtbot.addWidget(widget)
    widget.resize(960, 540)
    widget.show()
    qtbot.waitExposed(widget)
    return widget


def device_point(view: CanvasView, x: float, y: float) -> QPoint:
    """逻辑坐标转视口整数坐标."""
    px, py = view.viewport_fit.logical_to_device(x, y)
    return QPoint(int(round(px)), int(round(py)))


class TestPreviewRenderer:
    """测试预览渲染器."""

    def test_requests_missing_assets_once(self, renderer: PreviewRenderer) -> None:
        """测试缺失资源只请求一次."""
        requested: list = []
        renderer.assets_requested.connect(requested.append)
        doc = CanvasDocument().add_layer(ImageLayer.create_element("a.png"))

        _, report = renderer.render(doc)
        renderer.render(doc)
        assert len(requested) == 1
        assert report.failed == [doc.layers[0].id]

    def test_assets_loaded(self, renderer: PreviewRenderer, red_image) -> None:
        """测试资源就绪后重新渲染."""
        updates: list = []
        renderer.preview_updated.connect(lambda: updates.append(True))
        doc = CanvasDocument().add_layer(ImageLayer.create_element("a.png"))
        renderer.render(doc)

        renderer.on_assets_loaded(AssetBundle(images={"a.png": red_image}))
        assert updates == [True]
        assert renderer.has_asset("a.png")

        image, report = renderer.render(doc)
        assert report.drawn == [doc.layers[0].id]
        assert image.getpixel((960, 540)) == (255, 0, 0, 255)

    def test_pil_to_qimage(self, app, red_image) -> None:
        """测试图片转换."""
        qimage = pil_to_qimage(red_image)
        assert qimage.width() == 100
        assert qimage.pixelColor(0, 0).red() == 255


class TestCanvasView:
    """测试画布视图."""

    def test_fit_on_resize(self, view: CanvasView) -> None:
        """测试窗口缩放后重新适配."""
        view.resizeEvent(QResizeEvent(QSize(960, 540), view.size()))
        assert view.viewport_fit.scale == pytest.approx(500 / 1080, abs=1e-3)
        assert view.viewport_fit.offset_y == pytest.approx(20)

        view.resizeEvent(QResizeEvent(QSize(1960, 1120), QSize(960, 540)))
        assert view.viewport_fit.scale == pytest.approx(1.0)

    def test_initial_render(self, view: CanvasView) -> None:
        """测试初始渲染为逻辑分辨率."""
        assert view.preview_image is not None
        assert view.preview_image.width() == 1920
        assert view.preview_image.height() == 1080

    def test_refresh_after_change(self, view: CanvasView, session: EditorSession, qtbot) -> None:
        """测试文档变化后刷新预览."""
        layer_id = session.add_layer(TextLayer.create())
        qtbot.waitUntil(lambda: view.render_report.region_for(layer_id) is not None)

    def test_press_selects_and_drags(
        self, view: CanvasView, session: EditorSession, qtbot
    ) -> None:
        """测试按下选中图层并拖拽."""
        layer_id = session.add_layer(TextLayer.create(), select=False)
        view.refresh()

        point = device_point(view, 960, 540)
        qtbot.mousePress(view, Qt.MouseButton.LeftButton, pos=point)
        assert session.selection_id == layer_id
        assert view.controller.is_dragging

        scale = view.viewport_fit.scale
        view.controller.move(point.x() + 50, point.y() + 30)
        qtbot.mouseRelease(view, Qt.MouseButton.LeftButton, pos=point)

        layer = session.document.get_layer(layer_id)
        assert layer.x == pytest.approx(960 + 50 / scale)
        assert layer.y == pytest.approx(540 + 30 / scale)
        assert not view.controller.is_dragging
        assert session.selection_id == layer_id

    def test_press_background_clears_selection(
        self, view: CanvasView, session: EditorSession, qtbot
    ) -> None:
        """测试点击空白处清除选中."""
        session.add_layer(TextLayer.create())
        view.refresh()
        qtbot.mousePress(view, Qt.MouseButton.LeftButton, pos=device_point(view, 50, 50))
        assert session.selection_id is None

    def test_edit_context_signal(self, view: CanvasView, session: EditorSession, qtbot) -> None:
        """测试按下图层请求编辑."""
        layer_id = session.add_layer(TextLayer.create(), select=False)
        view.refresh()
        with qtbot.waitSignal(view.edit_context_requested) as blocker:
            qtbot.mousePress(view, Qt.MouseButton.LeftButton, pos=device_point(view, 960, 540))
        assert blocker.args == [layer_id]
