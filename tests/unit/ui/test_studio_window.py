"""工作室主窗口测试."""

from __future__ import annotations

from pathlib import Path

import pytest

from thumbcraft.core.config_manager import get_config
from thumbcraft.models.app_settings import Settings
from thumbcraft.models.canvas_document import TEXT_MAX_LENGTH, BackgroundMode, TextLayer
from thumbcraft.services.composition import get_gradient_preset
from thumbcraft.ui import studio_window
from thumbcraft.ui.studio_window import EXPORT_DIR_KEY, StudioWindow


# ========================
# Fixtures
# ========================


@pytest.fixture
def window(app, qtbot, tmp_path) -> StudioWindow:
    """主窗口."""
    settings = Settings(font_dirs=[tmp_path / "fonts"], export_prefix="test-export")
    widget = StudioWindow(settings=settings)
    qtbot.addWidget(widget)
    return widget


def focus_on(monkeypatch, widget) -> None:
    """模拟指定控件拥有焦点."""

    class FocusedApp:
        @staticmethod
        def focusWidget():
            return widget

    monkeypatch.setattr(studio_window, "QApplication", FocusedApp)


class TestStudioWindow:
    """测试主窗口."""

    def test_title(self, window: StudioWindow) -> None:
        """测试窗口标题."""
        assert "ThumbCraft" in window.windowTitle()

    def test_add_text_layer(self, window: StudioWindow) -> None:
        """测试添加文字图层后同步面板与编辑框."""
        layer_id = window.add_text_layer()
        assert window.session.selection_id == layer_id
        assert window.layer_panel.layer_list.get_layer_order() == [layer_id]
        assert window.layer_panel.layer_list.get_selected_layer_id() == layer_id
        assert window.text_edit.isEnabled()
        assert window.text_edit.text() == "NEW TEXT"

    def test_edit_text(self, window: StudioWindow) -> None:
        """测试编辑框修改文字图层内容."""
        layer_id = window.add_text_layer()
        window.text_edit.textEdited.emit("Big Sale")
        assert window.session.document.get_layer(layer_id).text == "Big Sale"

    def test_text_edit_disabled_without_text_layer(self, window: StudioWindow) -> None:
        """测试未选中文字图层时禁用编辑框."""
        window.add_text_layer()
        window.session.clear_selection()
        assert not window.text_edit.isEnabled()
        assert window.text_edit.text() == ""

    def test_delete_key_removes_selected(self, window: StudioWindow, monkeypatch) -> None:
        """测试删除键删除选中图层."""
        focus_on(monkeypatch, None)
        window.add_text_layer()
        assert window.handle_delete_key()
        assert window.session.document.layer_count == 0

    def test_delete_key_ignored_while_typing(self, window: StudioWindow, monkeypatch) -> None:
        """测试编辑文字时删除键不删除图层."""
        window.add_text_layer()
        focus_on(monkeypatch, window.text_edit)
        assert window.is_text_input_focused()
        assert not window.handle_delete_key()
        assert window.session.document.layer_count == 1

    def test_panel_requests_reach_session(self, window: StudioWindow) -> None:
        """测试图层面板操作转交编辑会话."""
        first = window.add_text_layer()
        window.add_text_layer()
        window.layer_panel.select_layer(first)
        window.layer_panel.layer_reorder_requested.emit(first, "forward")
        assert window.session.document.layer_ids[-1] == first

        window.layer_panel.layer_lock_toggled.emit(first)
        assert window.session.document.get_layer(first).locked

        window.layer_panel.layer_duplicate_requested.emit(first)
        assert window.session.document.layer_count == 3

    def test_panel_selection_reaches_session(self, window: StudioWindow) -> None:
        """测试在面板选中图层同步到会话."""
        first = window.session.add_layer(TextLayer.create("a"), select=False)
        window.session.add_layer(TextLayer.create("b"), select=False)
        window.layer_panel.layer_list.setCurrentRow(1)
        assert window.session.selection_id == first

    def test_gradient_preset(self, window: StudioWindow) -> None:
        """测试应用渐变预设."""
        window.apply_gradient_preset(get_gradient_preset("Oceanic"))
        document = window.session.document
        assert document.background_mode == BackgroundMode.GRADIENT
        assert document.background_gradient.color_start == "#0ea5e9"

    def test_export(self, window: StudioWindow, qtbot, tmp_path) -> None:
        """测试后台导出并记住导出目录."""
        window.add_text_layer()
        output_dir = tmp_path / "exports"
        worker = window._asset_thread.worker
        with qtbot.waitSignal(worker.export_finished, timeout=30000) as blocker:
            window.export_to(output_dir)

        path = Path(blocker.args[0])
        assert path.exists()
        assert path.name.startswith("test-export-")
        assert get_config().get_user_config(EXPORT_DIR_KEY) == str(output_dir)
        qtbot.waitUntil(lambda: window._action_export.isEnabled())


class TestStudioWindowProperties:
    """测试属性面板与会话的联动."""

    def test_panel_follows_selection(self, window: StudioWindow) -> None:
        """测试属性面板跟随选中图层."""
        layer_id = window.add_text_layer()
        assert window.property_panel.current_layer_id == layer_id
        window.session.clear_selection()
        assert window.property_panel.current_layer_id is None

    def test_property_change_updates_layer(self, window: StudioWindow) -> None:
        """测试属性面板修改写回图层."""
        layer_id = window.add_text_layer()
        window.property_panel.text_editor.skew_spin.setValue(-12)
        window.property_panel.text_editor.shadow_check.setChecked(False)

        layer = window.session.document.get_layer(layer_id)
        assert layer.skew_x == -12
        assert not layer.has_shadow

    def test_image_effects_reachable(self, window: StudioWindow) -> None:
        """测试图片图层的缩放与外发光可编辑."""
        (layer_id,) = window.add_elements(["sticker.png"])
        editor = window.property_panel.image_editor
        editor.scale_spin.setValue(1.25)
        editor.glow_check.setChecked(True)
        editor.glow_color_button.apply_color("#ff00ff")

        layer = window.session.document.get_layer(layer_id)
        assert layer.scale == 1.25
        assert layer.has_glow
        assert layer.glow_color == "#ff00ff"

    def test_text_edit_max_length(self, window: StudioWindow) -> None:
        """测试文字输入框长度受限."""
        assert window.text_edit.maxLength() == TEXT_MAX_LENGTH

    def test_invalid_value_keeps_document(self, window: StudioWindow) -> None:
        """测试非法属性值被拒绝，文档与面板保持原值."""
        layer_id = window.add_text_layer()
        before = window.session.document

        window.property_panel.layer_property_changed.emit(
            layer_id, "text", "a" * (TEXT_MAX_LENGTH + 1)
        )
        window.property_panel.layer_property_changed.emit(layer_id, "font_size", 0)

        assert window.session.document is before
        assert window.text_edit.text() == "NEW TEXT"
