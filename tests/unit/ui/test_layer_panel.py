"""图层面板测试."""

from __future__ import annotations

import pytest

from thumbcraft.models.canvas_document import (
    CanvasDocument,
    ImageLayer,
    LayerDirection,
    TextLayer,
)
from thumbcraft.ui.layer_panel import LayerPanel, layer_display_name


# ========================
# Fixtures
# ========================


@pytest.fixture
def document() -> CanvasDocument:
    """三个图层的文档."""
    return (
        CanvasDocument()
        .add_layer(ImageLayer(id="bottom", source_uri="/tmp/sticker.png"))
        .add_layer(TextLayer(id="middle", text="Hello"))
        .add_layer(ImageLayer.create_product("p.png").model_copy(update={"id": "top"}))
    )


@pytest.fixture
def panel(app, qtbot, document: CanvasDocument) -> LayerPanel:
    """图层面板."""
    widget = LayerPanel()
    qtbot.addWidget(widget)
    widget.set_document(document)
    return widget


class TestLayerDisplayName:
    """测试图层显示名称."""

    def test_names(self) -> None:
        """测试各类图层名称."""
        assert layer_display_name(TextLayer(text="Hello")) == "Hello"
        assert layer_display_name(TextLayer(text="x" * 30)).endswith("...")
        assert layer_display_name(ImageLayer.create_product("p.png")) == "产品主体"
        assert layer_display_name(ImageLayer(source_uri="/a/b/star.png")) == "star.png"
        assert layer_display_name(ImageLayer(source_uri="data:image/png;base64,AAA")) == "图片素材"


class TestLayerPanel:
    """测试图层面板."""

    def test_front_first_order(self, panel: LayerPanel) -> None:
        """测试最前图层在列表顶部."""
        assert panel.layer_list.get_layer_order() == ["top", "middle", "bottom"]

    def test_buttons_follow_selection(self, panel: LayerPanel) -> None:
        """测试无选中时操作按钮禁用."""
        assert not panel._btn_delete.isEnabled()
        panel.select_layer("middle")
        assert panel._btn_delete.isEnabled()
        assert panel.layer_list.get_selected_layer_id() == "middle"
        panel.select_layer(None)
        assert not panel._btn_forward.isEnabled()

    def test_sync_select_does_not_emit(self, panel: LayerPanel) -> None:
        """测试程序同步选中不发出选中信号."""
        selected: list[str] = []
        panel.layer_selected.connect(selected.append)
        panel.select_layer("middle")
        assert selected == []

    def test_user_selection_emits(self, panel: LayerPanel) -> None:
        """测试用户选中发出信号."""
        selected: list[str] = []
        panel.layer_selected.connect(selected.append)
        panel.layer_list.setCurrentRow(2)
        assert selected == ["bottom"]

    def test_reorder_buttons(self, panel: LayerPanel) -> None:
        """测试上移/下移请求."""
        requests: list = []
        panel.layer_reorder_requested.connect(lambda i, d: requests.append((i, d)))
        panel.select_layer("middle")
        panel._btn_forward.click()
        panel._btn_backward.click()
        assert requests == [
            ("middle", LayerDirection.FORWARD),
            ("middle", LayerDirection.BACKWARD),
        ]

    def test_duplicate_and_delete(self, panel: LayerPanel) -> None:
        """测试复制与删除请求."""
        duplicated: list[str] = []
        deleted: list[str] = []
        panel.layer_duplicate_requested.connect(duplicated.append)
        panel.layer_delete_requested.connect(deleted.append)
        panel.select_layer("top")
        panel._btn_duplicate.click()
        panel._btn_delete.click()
        assert duplicated == ["top"]
        assert deleted == ["top"]

    def test_visibility_and_lock_buttons(self, panel: LayerPanel) -> None:
        """测试显示与锁定按钮."""
        toggled: list[str] = []
        locked: list[str] = []
        panel.layer_visibility_toggled.connect(toggled.append)
        panel.layer_lock_toggled.connect(locked.append)
        item = panel.layer_list.item_widget("bottom")
        item.visibility_button.click()
        item.lock_button.click()
        assert toggled == ["bottom"]
        assert locked == ["bottom"]

    def test_refresh_keeps_selection(self, panel: LayerPanel, document: CanvasDocument) -> None:
        """测试刷新文档保留选中."""
        panel.select_layer("middle")
        panel.set_document(document.toggle_visibility("middle"))
        assert panel.layer_list.get_selected_layer_id() == "middle"
        assert panel.layer_list.item_widget("middle").visibility_button.text() == "隐"

    def test_add_buttons(self, panel: LayerPanel, qtbot) -> None:
        """测试添加按钮."""
        with qtbot.waitSignal(panel.add_text_requested):
            panel._btn_add_text.click()
        with qtbot.waitSignal(panel.add_image_requested):
            panel._btn_add_image.click()
