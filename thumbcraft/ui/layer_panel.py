"""图层管理面板组件.

提供图层列表显示和管理功能。

Features:
    - 最前图层显示在列表顶部
    - 显示/隐藏切换
    - 锁定/解锁
    - 上移/下移一层
    - 复制、删除
    - 与画布选择同步
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from PyQt6.QtCore import Qt, pyqtSignal
from PyQt6.QtWidgets import (
    QFrame,
    QHBoxLayout,
    QLabel,
    QListWidget,
    QListWidgetItem,
    QPushButton,
    QSizePolicy,
    QStyle,
    QVBoxLayout,
    QWidget,
)

from thumbcraft.models.canvas_document import (
    AnyLayer,
    CanvasDocument,
    ImageLayer,
    LayerDirection,
    TextLayer,
)

# 图层名称最大显示长度
NAME_MAX_LENGTH = 18


def layer_display_name(layer: AnyLayer) -> str:
    """获取图层显示名称."""
    if isinstance(layer, TextLayer):
        content = layer.text[:NAME_MAX_LENGTH]
        if len(layer.text) > NAME_MAX_LENGTH:
            content += "..."
        return content or "文字"
    if isinstance(layer, ImageLayer):
        if layer.is_product_marker:
            return "产品主体"
        if layer.source_uri and not layer.source_uri.startswith("data:"):
            return Path(layer.source_uri).name[:NAME_MAX_LENGTH] or "图片"
        return "图片素材"
    return f"图层 {layer.id[:6]}"


# ===================
# 图层项组件
# ===================


class LayerItemWidget(QFrame):
    """图层项显示组件.

    显示单个图层的类型、名称和显示/锁定按钮。
    """

    # 信号
    visibility_toggled = pyqtSignal(str)  # layer_id
    lock_toggled = pyqtSignal(str)  # layer_id

    def __init__(self, layer: AnyLayer, parent: Optional[QWidget] = None) -> None:
        """初始化图层项组件.

        Args:
            layer: 图层数据
            parent: 父组件
        """
        super().__init__(parent)
        self._layer = layer
        self._is_selected = False

        self.setAutoFillBackground(True)
        self._setup_ui()
        self._update_display()

    @property
    def layer(self) -> AnyLayer:
        """获取图层数据."""
        return self._layer

    @property
    def layer_id(self) -> str:
        """获取图层ID."""
        return self._layer.id

    @property
    def visibility_button(self) -> QPushButton:
        """显示/隐藏按钮."""
        return self._visibility_btn

    @property
    def lock_button(self) -> QPushButton:
        """锁定按钮."""
        return self._lock_btn

    def _setup_ui(self) -> None:
        """设置UI."""
        self.setFrameStyle(QFrame.Shape.StyledPanel)

        layout = QHBoxLayout(self)
        layout.setContentsMargins(8, 6, 8, 6)
        layout.setSpacing(6)
        layout.setAlignment(Qt.AlignmentFlag.AlignVCenter)
        self.setMinimumHeight(44)

        # 类型图标
        self._icon_label = QLabel()
        self._icon_label.setFixedSize(24, 24)
        self._icon_label.setAlignment(Qt.AlignmentFlag.AlignCenter)
        layout.addWidget(self._icon_label)

        # 名称
        self._name_label = QLabel()
        self._name_label.setMinimumWidth(80)
        self._name_label.setSizePolicy(QSizePolicy.Policy.Expanding, QSizePolicy.Policy.Preferred)
        layout.addWidget(self._name_label)

        # 可见性按钮
        self._visibility_btn = QPushButton()
        self._visibility_btn.setFixedSize(28, 24)
        self._visibility_btn.setFlat(True)
        self._visibility_btn.setToolTip("显示/隐藏")
        self._visibility_btn.clicked.connect(lambda: self.visibility_toggled.emit(self.layer_id))
        layout.addWidget(self._visibility_btn)

        # 锁定按钮
        self._lock_btn = QPushButton()
        self._lock_btn.setFixedSize(28, 24)
        self._lock_btn.setFlat(True)
        self._lock_btn.setToolTip("锁定/解锁")
        self._lock_btn.clicked.connect(lambda: self.lock_toggled.emit(self.layer_id))
        layout.addWidget(self._lock_btn)

    def _update_display(self) -> None:
        """更新显示."""
        layer = self._layer

        if isinstance(layer, TextLayer):
            self._icon_label.setText("文")
        elif layer.is_product_marker:
            self._icon_label.setText("品")
        else:
            self._icon_label.setText("图")

        self._name_label.setText(layer_display_name(layer))

        self._visibility_btn.setText("显" if layer.visible else "隐")
        self._visibility_btn.setStyleSheet("" if layer.visible else "color: gray;")
        self._lock_btn.setText("锁" if layer.locked else "开")

        self.setProperty("hidden_layer", not layer.visible)
        self.style().unpolish(self)
        self.style().polish(self)

    def set_selected(self, selected: bool) -> None:
        """设置选中状态."""
        if self._is_selected != selected:
            self._is_selected = selected
            self.setProperty("selected", selected)
            self.style().unpolish(self)
            self.style().polish(self)
            self.update()


# ===================
# 图层列表组件
# ===================


class LayerListWidget(QListWidget):
    """图层列表组件.

    列表顺序与绘制顺序相反：第一行是最前的图层。
    """

    # 信号
    layer_selected = pyqtSignal(str)  # layer_id
    layer_visibility_toggled = pyqtSignal(str)  # layer_id
    layer_lock_toggled = pyqtSignal(str)  # layer_id

    def __init__(self, parent: Optional[QWidget] = None) -> None:
        """初始化图层列表."""
        super().__init__(parent)
        self._layer_items: dict[str, LayerItemWidget] = {}
        self.setSpacing(4)
        self.itemSelectionChanged.connect(self._on_selection_changed)

    def set_layers(self, layers: tuple[AnyLayer, ...] | list[AnyLayer]) -> None:
        """设置图层列表（绘制顺序）."""
        self.blockSignals(True)
        self.clear()
        self._layer_items.clear()
        for layer in reversed(list(layers)):
            self._add_layer_item(layer)
        self.blockSignals(False)

    def _add_layer_item(self, layer: AnyLayer) -> None:
        """添加图层项."""
        item_widget = LayerItemWidget(layer)
        item_widget.visibility_toggled.connect(self.layer_visibility_toggled.emit)
        item_widget.lock_toggled.connect(self.layer_lock_toggled.emit)

        list_item = QListWidgetItem(self)
        list_item.setData(Qt.ItemDataRole.UserRole, layer.id)
        list_item.setSizeHint(item_widget.sizeHint())
        self.addItem(list_item)
        self.setItemWidget(list_item, item_widget)

        self._layer_items[layer.id] = item_widget

    def item_widget(self, layer_id: str) -> Optional[LayerItemWidget]:
        """获取图层项组件."""
        return self._layer_items.get(layer_id)

    def select_layer(self, layer_id: Optional[str]) -> None:
        """选中指定图层（None 清除选中）.

        注意: 此方法不会触发 layer_selected 信号，仅更新UI状态。
        """
        if self.get_selected_layer_id() == layer_id:
            return

        self.blockSignals(True)
        if layer_id is None:
            self.setCurrentItem(None)
            self.clearSelection()
        else:
            for i in range(self.count()):
                item = self.item(i)
                if item.data(Qt.ItemDataRole.UserRole) == layer_id:
                    self.setCurrentItem(item)
                    break
        self.blockSignals(False)

        self._update_selection_visual()

    def get_selected_layer_id(self) -> Optional[str]:
        """获取选中的图层ID."""
        item = self.currentItem()
        if item and item.isSelected():
            return item.data(Qt.ItemDataRole.UserRole)
        return None

    def get_layer_order(self) -> list[str]:
        """获取当前列表顺序（从最前到最后）."""
        return [self.item(i).data(Qt.ItemDataRole.UserRole) for i in range(self.count())]

    def _update_selection_visual(self) -> None:
        """更新图层项的选中视觉状态."""
        selected_id = self.get_selected_layer_id()
        for layer_id, item_widget in self._layer_items.items():
            item_widget.set_selected(layer_id == selected_id)

    def _on_selection_changed(self) -> None:
        """选择变化处理 - 用户交互触发."""
        self._update_selection_visual()
        selected_id = self.get_selected_layer_id()
        if selected_id:
            self.layer_selected.emit(selected_id)


# ===================
# 图层管理面板
# ===================


class LayerPanel(QWidget):
    """图层管理面板.

    包含图层列表和操作按钮，只发出请求信号，由窗口转交编辑会话。
    """

    # 信号
    layer_selected = pyqtSignal(str)  # layer_id
    layer_visibility_toggled = pyqtSignal(str)  # layer_id
    layer_lock_toggled = pyqtSignal(str)  # layer_id
    layer_reorder_requested = pyqtSignal(str, object)  # layer_id, LayerDirection
    layer_duplicate_requested = pyqtSignal(str)  # layer_id
    layer_delete_requested = pyqtSignal(str)  # layer_id
    add_text_requested = pyqtSignal()
    add_image_requested = pyqtSignal()

    def __init__(self, parent: Optional[QWidget] = None) -> None:
        """初始化图层管理面板."""
        super().__init__(parent)
        self.setAutoFillBackground(True)
        self._setup_ui()
        self._update_buttons()

    def _setup_ui(self) -> None:
        """设置UI."""
        layout = QVBoxLayout(self)
        layout.setContentsMargins(4, 4, 4, 4)
        layout.setSpacing(4)

        title_label = QLabel("图层")
        title_label.setStyleSheet("font-weight: bold;")
        layout.addWidget(title_label)

        # 图层列表
        self._layer_list = LayerListWidget()
        self._layer_list.layer_selected.connect(self.layer_selected.emit)
        self._layer_list.layer_visibility_toggled.connect(self.layer_visibility_toggled.emit)
        self._layer_list.layer_lock_toggled.connect(self.layer_lock_toggled.emit)
        self._layer_list.itemSelectionChanged.connect(self._update_buttons)
        layout.addWidget(self._layer_list, 1)

        style = self.style()

        # 添加按钮
        add_layout = QHBoxLayout()
        add_layout.setSpacing(2)

        self._btn_add_text = QPushButton("文字")
        self._btn_add_text.setToolTip("添加文字图层")
        self._btn_add_text.clicked.connect(self.add_text_requested.emit)
        add_layout.addWidget(self._btn_add_text)

        self._btn_add_image = QPushButton("素材")
        self._btn_add_image.setIcon(style.standardIcon(QStyle.StandardPixmap.SP_DirIcon))
        self._btn_add_image.setToolTip("添加图片素材")
        self._btn_add_image.clicked.connect(self.add_image_requested.emit)
        add_layout.addWidget(self._btn_add_image)
        add_layout.addStretch()
        layout.addLayout(add_layout)

        # 图层操作按钮
        btn_layout = QHBoxLayout()
        btn_layout.setSpacing(2)

        self._btn_forward = QPushButton()
        self._btn_forward.setIcon(style.standardIcon(QStyle.StandardPixmap.SP_ArrowUp))
        self._btn_forward.setFixedSize(36, 32)
        self._btn_forward.setToolTip("上移一层")
        self._btn_forward.clicked.connect(lambda: self._emit_reorder(LayerDirection.FORWARD))
        btn_layout.addWidget(self._btn_forward)

        self._btn_backward = QPushButton()
        self._btn_backward.setIcon(style.standardIcon(QStyle.StandardPixmap.SP_ArrowDown))
        self._btn_backward.setFixedSize(36, 32)
        self._btn_backward.setToolTip("下移一层")
        self._btn_backward.clicked.connect(lambda: self._emit_reorder(LayerDirection.BACKWARD))
        btn_layout.addWidget(self._btn_backward)

        self._btn_duplicate = QPushButton()
        self._btn_duplicate.setIcon(style.standardIcon(QStyle.StandardPixmap.SP_FileDialogNewFolder))
        self._btn_duplicate.setFixedSize(36, 32)
        self._btn_duplicate.setToolTip("复制图层")
        self._btn_duplicate.clicked.connect(self._emit_duplicate)
        btn_layout.addWidget(self._btn_duplicate)

        btn_layout.addStretch()

        self._btn_delete = QPushButton()
        self._btn_delete.setIcon(style.standardIcon(QStyle.StandardPixmap.SP_TrashIcon))
        self._btn_delete.setFixedSize(36, 32)
        self._btn_delete.setToolTip("删除选中图层")
        self._btn_delete.clicked.connect(self._emit_delete)
        btn_layout.addWidget(self._btn_delete)

        layout.addLayout(btn_layout)

    @property
    def layer_list(self) -> LayerListWidget:
        """图层列表."""
        return self._layer_list

    def set_document(self, document: CanvasDocument) -> None:
        """按文档刷新图层列表，保留当前选中."""
        selected = self._layer_list.get_selected_layer_id()
        self._layer_list.set_layers(document.layers)
        if selected and document.has_layer(selected):
            self._layer_list.select_layer(selected)
        self._update_buttons()

    def select_layer(self, layer_id: Optional[str]) -> None:
        """同步选中图层."""
        self._layer_list.select_layer(layer_id)
        self._update_buttons()

    def _selected_id(self) -> Optional[str]:
        return self._layer_list.get_selected_layer_id()

    def _emit_reorder(self, direction: LayerDirection) -> None:
        layer_id = self._selected_id()
        if layer_id:
            self.layer_reorder_requested.emit(layer_id, direction)

    def _emit_duplicate(self) -> None:
        layer_id = self._selected_id()
        if layer_id:
            self.layer_duplicate_requested.emit(layer_id)

    def _emit_delete(self) -> None:
        layer_id = self._selected_id()
        if layer_id:
            self.layer_delete_requested.emit(layer_id)

    def _update_buttons(self) -> None:
        """按选中状态启用操作按钮."""
        has_selection = self._selected_id() is not None
        for button in (self._btn_forward, self._btn_backward, self._btn_duplicate, self._btn_delete):
            button.setEnabled(has_selection)
