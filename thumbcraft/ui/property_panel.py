"""属性编辑面板组件.

根据选中图层类型切换属性编辑器，所有修改以 (图层ID, 属性名, 值) 的形式发出，
由主窗口交给编辑会话处理。

Features:
    - 位置与旋转数值输入
    - 图片图层：缩放、投影、外发光及发光颜色
    - 文字图层：内容、字体、颜色、字号、倾斜、描边、投影参数
    - 无选中时显示提示
"""

from __future__ import annotations

from typing import Any, Optional

from PyQt6.QtCore import Qt, pyqtSignal
from PyQt6.QtGui import QColor
from PyQt6.QtWidgets import (
    QCheckBox,
    QColorDialog,
    QComboBox,
    QDoubleSpinBox,
    QFrame,
    QGridLayout,
    QGroupBox,
    QHBoxLayout,
    QLabel,
    QLineEdit,
    QPushButton,
    QScrollArea,
    QSlider,
    QStackedWidget,
    QVBoxLayout,
    QWidget,
)

from thumbcraft.models.canvas_document import (
    MAX_FONT_SIZE,
    MAX_SKEW,
    TEXT_MAX_LENGTH,
    AnyLayer,
    BrandFont,
    ImageLayer,
    LayerElement,
    TextLayer,
)
from thumbcraft.utils.helpers import parse_color


# 字体显示名称
FONT_LABELS = {
    BrandFont.BEBAS_NEUE: "Bebas Neue",
    BrandFont.ANTON: "Anton",
    BrandFont.MONTSERRAT: "Montserrat",
    BrandFont.ROBOTO_CONDENSED: "Roboto Condensed",
}


# ===================
# 通用属性控件
# ===================


class ColorButton(QPushButton):
    """颜色选择按钮."""

    color_changed = pyqtSignal(str)  # "#rrggbb"

    def __init__(self, color: str = "#ffffff", parent: Optional[QWidget] = None) -> None:
        """初始化颜色按钮.

        Args:
            color: 初始颜色（十六进制）
            parent: 父组件
        """
        super().__init__(parent)
        self._color = color
        self.setFixedSize(72, 24)
        self._update_style()
        self.clicked.connect(self._pick_color)

    @property
    def color(self) -> str:
        """获取当前颜色."""
        return self._color

    def set_color(self, color: str) -> None:
        """设置颜色（不发出信号）."""
        self._color = color
        self._update_style()

    def _update_style(self) -> None:
        r, g, b, _ = parse_color(self._color)
        # 文字颜色随背景亮度切换
        brightness = (r * 299 + g * 587 + b * 114) / 1000
        text_color = "#000" if brightness > 128 else "#fff"
        self.setStyleSheet(
            f"QPushButton {{ background-color: rgb({r},{g},{b}); "
            f"color: {text_color}; border: 1px solid #ccc; }}"
        )
        self.setText(f"#{r:02x}{g:02x}{b:02x}")

    def _pick_color(self) -> None:
        r, g, b, _ = parse_color(self._color)
        color = QColorDialog.getColor(QColor(r, g, b), self, "选择颜色")
        if color.isValid():
            self.apply_color(color.name())

    def apply_color(self, color: str) -> None:
        """设置颜色并发出信号."""
        self.set_color(color)
        self.color_changed.emit(color)


def _double_spin(
    minimum: float,
    maximum: float,
    step: float = 1.0,
    decimals: int = 0,
) -> QDoubleSpinBox:
    spin = QDoubleSpinBox()
    spin.setRange(minimum, maximum)
    spin.setSingleStep(step)
    spin.setDecimals(decimals)
    spin.setMinimumWidth(70)
    return spin


def _set_silently(widget: QWidget, setter: str, value: Any) -> None:
    """设置控件值但不触发信号."""
    widget.blockSignals(True)
    getattr(widget, setter)(value)
    widget.blockSignals(False)


# ===================
# 位置/旋转编辑器
# ===================


class TransformEditor(QGroupBox):
    """位置与旋转编辑器."""

    property_changed = pyqtSignal(str, object)  # property_name, value

    def __init__(self, parent: Optional[QWidget] = None) -> None:
        """初始化."""
        super().__init__("位置与旋转", parent)

        layout = QGridLayout(self)
        layout.setSpacing(4)

        layout.addWidget(QLabel("X:"), 0, 0)
        self._x = _double_spin(-10000, 10000)
        self._x.valueChanged.connect(lambda v: self.property_changed.emit("x", v))
        layout.addWidget(self._x, 0, 1)

        layout.addWidget(QLabel("Y:"), 0, 2)
        self._y = _double_spin(-10000, 10000)
        self._y.valueChanged.connect(lambda v: self.property_changed.emit("y", v))
        layout.addWidget(self._y, 0, 3)

        layout.addWidget(QLabel("旋转:"), 1, 0)
        self._rotation = _double_spin(-360, 360)
        self._rotation.setSuffix("°")
        self._rotation.valueChanged.connect(lambda v: self.property_changed.emit("rotation", v))
        layout.addWidget(self._rotation, 1, 1, 1, 3)

    @property
    def rotation_spin(self) -> QDoubleSpinBox:
        """旋转输入框."""
        return self._rotation

    def set_layer(self, layer: LayerElement) -> None:
        """显示图层的位置与旋转."""
        _set_silently(self._x, "setValue", layer.x)
        _set_silently(self._y, "setValue", layer.y)
        _set_silently(self._rotation, "setValue", layer.rotation)


# ===================
# 图片图层属性编辑器
# ===================


class ImagePropertyEditor(QWidget):
    """图片图层属性编辑器."""

    property_changed = pyqtSignal(str, object)  # property_name, value

    def __init__(self, parent: Optional[QWidget] = None) -> None:
        """初始化."""
        super().__init__(parent)
        self._setup_ui()

    def _setup_ui(self) -> None:
        layout = QVBoxLayout(self)
        layout.setContentsMargins(0, 0, 0, 0)
        layout.setSpacing(8)

        self._transform = TransformEditor()
        self._transform.property_changed.connect(self.property_changed.emit)
        layout.addWidget(self._transform)

        scale_layout = QHBoxLayout()
        scale_layout.addWidget(QLabel("缩放:"))
        self._scale = _double_spin(0.05, 10, 0.05, 2)
        self._scale.valueChanged.connect(lambda v: self.property_changed.emit("scale", v))
        scale_layout.addWidget(self._scale, 1)
        layout.addLayout(scale_layout)

        effect_group = QGroupBox("效果")
        effect_layout = QGridLayout(effect_group)
        effect_layout.setSpacing(4)

        self._shadow = QCheckBox("投影")
        self._shadow.toggled.connect(lambda v: self.property_changed.emit("has_shadow", v))
        effect_layout.addWidget(self._shadow, 0, 0, 1, 2)

        self._glow = QCheckBox("外发光")
        self._glow.toggled.connect(lambda v: self.property_changed.emit("has_glow", v))
        effect_layout.addWidget(self._glow, 1, 0)

        self._glow_color = ColorButton()
        self._glow_color.color_changed.connect(lambda c: self.property_changed.emit("glow_color", c))
        effect_layout.addWidget(self._glow_color, 1, 1)

        layout.addWidget(effect_group)
        layout.addStretch()

    @property
    def scale_spin(self) -> QDoubleSpinBox:
        """缩放输入框."""
        return self._scale

    @property
    def shadow_check(self) -> QCheckBox:
        """投影开关."""
        return self._shadow

    @property
    def glow_check(self) -> QCheckBox:
        """外发光开关."""
        return self._glow

    @property
    def glow_color_button(self) -> ColorButton:
        """外发光颜色按钮."""
        return self._glow_color

    def set_layer(self, layer: ImageLayer) -> None:
        """显示图层属性."""
        self._transform.set_layer(layer)
        _set_silently(self._scale, "setValue", layer.scale)
        _set_silently(self._shadow, "setChecked", layer.has_shadow)
        _set_silently(self._glow, "setChecked", layer.has_glow)
        self._glow_color.set_color(layer.glow_color)
        self._glow_color.setEnabled(layer.has_glow)


# ===================
# 文字图层属性编辑器
# ===================


class TextPropertyEditor(QWidget):
    """文字图层属性编辑器."""

    property_changed = pyqtSignal(str, object)  # property_name, value

    def __init__(self, parent: Optional[QWidget] = None) -> None:
        """初始化."""
        super().__init__(parent)
        self._setup_ui()

    def _setup_ui(self) -> None:
        layout = QVBoxLayout(self)
        layout.setContentsMargins(0, 0, 0, 0)
        layout.setSpacing(4)

        # 内容
        self._text = QLineEdit()
        self._text.setMaxLength(TEXT_MAX_LENGTH)
        self._text.setPlaceholderText("文字内容")
        self._text.textEdited.connect(lambda t: self.property_changed.emit("text", t))
        layout.addWidget(self._text)

        self._transform = TransformEditor()
        self._transform.property_changed.connect(self.property_changed.emit)
        layout.addWidget(self._transform)

        # 字体样式组
        font_group = QGroupBox("字体样式")
        font_layout = QGridLayout(font_group)
        font_layout.setContentsMargins(4, 8, 4, 4)
        font_layout.setSpacing(4)

        font_layout.addWidget(QLabel("字体:"), 0, 0)
        self._font = QComboBox()
        for token, label in FONT_LABELS.items():
            self._font.addItem(label, token.value)
        self._font.currentIndexChanged.connect(self._on_font_changed)
        font_layout.addWidget(self._font, 0, 1, 1, 3)

        font_layout.addWidget(QLabel("大小:"), 1, 0)
        self._font_size = _double_spin(1, MAX_FONT_SIZE)
        self._font_size.valueChanged.connect(lambda v: self.property_changed.emit("font_size", v))
        font_layout.addWidget(self._font_size, 1, 1)

        font_layout.addWidget(QLabel("颜色:"), 1, 2)
        self._color = ColorButton()
        self._color.color_changed.connect(lambda c: self.property_changed.emit("color", c))
        font_layout.addWidget(self._color, 1, 3)

        font_layout.addWidget(QLabel("倾斜:"), 2, 0)
        self._skew = _double_spin(-MAX_SKEW, MAX_SKEW)
        self._skew.setSuffix("°")
        self._skew.valueChanged.connect(lambda v: self.property_changed.emit("skew_x", v))
        font_layout.addWidget(self._skew, 2, 1)

        layout.addWidget(font_group)

        # 描边设置组
        stroke_group = QGroupBox("描边")
        stroke_layout = QGridLayout(stroke_group)
        stroke_layout.setContentsMargins(4, 8, 4, 4)
        stroke_layout.setSpacing(4)

        stroke_layout.addWidget(QLabel("宽度:"), 0, 0)
        self._stroke_width = _double_spin(0, 100)
        self._stroke_width.valueChanged.connect(
            lambda v: self.property_changed.emit("stroke_width", v)
        )
        stroke_layout.addWidget(self._stroke_width, 0, 1)

        stroke_layout.addWidget(QLabel("颜色:"), 0, 2)
        self._stroke_color = ColorButton("#000000")
        self._stroke_color.color_changed.connect(
            lambda c: self.property_changed.emit("stroke_color", c)
        )
        stroke_layout.addWidget(self._stroke_color, 0, 3)

        layout.addWidget(stroke_group)

        # 投影设置组
        shadow_group = QGroupBox("投影")
        shadow_layout = QGridLayout(shadow_group)
        shadow_layout.setContentsMargins(4, 8, 4, 4)
        shadow_layout.setSpacing(4)

        self._shadow = QCheckBox("启用投影")
        self._shadow.toggled.connect(lambda v: self.property_changed.emit("has_shadow", v))
        shadow_layout.addWidget(self._shadow, 0, 0, 1, 2)

        shadow_layout.addWidget(QLabel("颜色:"), 0, 2)
        self._shadow_color = ColorButton("#000000")
        self._shadow_color.color_changed.connect(
            lambda c: self.property_changed.emit("shadow_color", c)
        )
        shadow_layout.addWidget(self._shadow_color, 0, 3)

        shadow_layout.addWidget(QLabel("不透明度:"), 1, 0)
        self._shadow_opacity = QSlider(Qt.Orientation.Horizontal)
        self._shadow_opacity.setRange(0, 100)
        self._shadow_opacity.valueChanged.connect(
            lambda v: self.property_changed.emit("shadow_opacity", v / 100)
        )
        shadow_layout.addWidget(self._shadow_opacity, 1, 1, 1, 3)

        shadow_layout.addWidget(QLabel("模糊:"), 2, 0)
        self._shadow_blur = _double_spin(0, 200)
        self._shadow_blur.valueChanged.connect(
            lambda v: self.property_changed.emit("shadow_blur", v)
        )
        shadow_layout.addWidget(self._shadow_blur, 2, 1)

        shadow_layout.addWidget(QLabel("偏移:"), 3, 0)
        self._shadow_offset_x = _double_spin(-200, 200)
        self._shadow_offset_x.valueChanged.connect(
            lambda v: self.property_changed.emit("shadow_offset_x", v)
        )
        shadow_layout.addWidget(self._shadow_offset_x, 3, 1)
        self._shadow_offset_y = _double_spin(-200, 200)
        self._shadow_offset_y.valueChanged.connect(
            lambda v: self.property_changed.emit("shadow_offset_y", v)
        )
        shadow_layout.addWidget(self._shadow_offset_y, 3, 2, 1, 2)

        layout.addWidget(shadow_group)
        layout.addStretch()

    @property
    def text_edit(self) -> QLineEdit:
        """文字内容输入框."""
        return self._text

    @property
    def font_combo(self) -> QComboBox:
        """字体选择框."""
        return self._font

    @property
    def font_size_spin(self) -> QDoubleSpinBox:
        """字号输入框."""
        return self._font_size

    @property
    def skew_spin(self) -> QDoubleSpinBox:
        """倾斜输入框."""
        return self._skew

    @property
    def stroke_width_spin(self) -> QDoubleSpinBox:
        """描边宽度输入框."""
        return self._stroke_width

    @property
    def shadow_check(self) -> QCheckBox:
        """投影开关."""
        return self._shadow

    @property
    def shadow_opacity_slider(self) -> QSlider:
        """投影不透明度滑块."""
        return self._shadow_opacity

    def set_layer(self, layer: TextLayer) -> None:
        """显示图层属性."""
        if self._text.text() != layer.text:
            self._text.setText(layer.text)
        self._transform.set_layer(layer)
        _set_silently(self._font, "setCurrentIndex", self._font.findData(layer.font_token.value))
        _set_silently(self._font_size, "setValue", layer.font_size)
        self._color.set_color(layer.color)
        _set_silently(self._skew, "setValue", layer.skew_x)
        _set_silently(self._stroke_width, "setValue", layer.stroke_width)
        self._stroke_color.set_color(layer.stroke_color)
        _set_silently(self._shadow, "setChecked", layer.has_shadow)
        self._shadow_color.set_color(layer.shadow_color)
        _set_silently(self._shadow_opacity, "setValue", round(layer.shadow_opacity * 100))
        _set_silently(self._shadow_blur, "setValue", layer.shadow_blur)
        _set_silently(self._shadow_offset_x, "setValue", layer.shadow_offset_x)
        _set_silently(self._shadow_offset_y, "setValue", layer.shadow_offset_y)

    def clear(self) -> None:
        """清空内容."""
        self._text.clear()

    def _on_font_changed(self, index: int) -> None:
        token = self._font.itemData(index)
        if token is not None:
            self.property_changed.emit("font_token", BrandFont(token))


# ===================
# 属性面板主组件
# ===================


class PropertyPanel(QWidget):
    """属性编辑面板.

    根据选中图层类型切换属性编辑器。

    Signals:
        layer_property_changed: 图层属性修改 (layer_id, 属性名, 值)
    """

    layer_property_changed = pyqtSignal(str, str, object)  # layer_id, prop, value

    # 堆叠页索引
    PAGE_EMPTY = 0
    PAGE_TEXT = 1
    PAGE_IMAGE = 2

    def __init__(self, parent: Optional[QWidget] = None) -> None:
        """初始化属性面板."""
        super().__init__(parent)
        self._current_layer: Optional[AnyLayer] = None
        self._setup_ui()
        self.set_layer(None)

    def _setup_ui(self) -> None:
        layout = QVBoxLayout(self)
        layout.setContentsMargins(4, 4, 4, 4)
        layout.setSpacing(4)

        title_label = QLabel("属性")
        title_label.setStyleSheet("font-weight: bold;")
        layout.addWidget(title_label)

        scroll = QScrollArea()
        scroll.setWidgetResizable(True)
        scroll.setFrameShape(QFrame.Shape.NoFrame)
        layout.addWidget(scroll, 1)

        self._stack = QStackedWidget()
        scroll.setWidget(self._stack)

        hint_label = QLabel("选择图层以编辑其属性")
        hint_label.setStyleSheet("color: gray; font-style: italic;")
        hint_label.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self._stack.addWidget(hint_label)

        self._text_editor = TextPropertyEditor()
        self._text_editor.property_changed.connect(self._on_property_changed)
        self._stack.addWidget(self._text_editor)

        self._image_editor = ImagePropertyEditor()
        self._image_editor.property_changed.connect(self._on_property_changed)
        self._stack.addWidget(self._image_editor)

    @property
    def text_editor(self) -> TextPropertyEditor:
        """文字属性编辑器."""
        return self._text_editor

    @property
    def image_editor(self) -> ImagePropertyEditor:
        """图片属性编辑器."""
        return self._image_editor

    @property
    def current_page(self) -> int:
        """当前显示的编辑器页."""
        return self._stack.currentIndex()

    @property
    def current_layer_id(self) -> Optional[str]:
        """当前编辑的图层ID."""
        return self._current_layer.id if self._current_layer else None

    def set_layer(self, layer: Optional[AnyLayer]) -> None:
        """设置当前图层.

        Args:
            layer: 图层数据，None 表示无选中
        """
        self._current_layer = layer
        is_text = isinstance(layer, TextLayer)
        self._text_editor.setEnabled(is_text)

        if is_text:
            self._text_editor.set_layer(layer)
            self._stack.setCurrentIndex(self.PAGE_TEXT)
            return

        self._text_editor.clear()
        if isinstance(layer, ImageLayer):
            self._image_editor.set_layer(layer)
            self._stack.setCurrentIndex(self.PAGE_IMAGE)
        else:
            self._stack.setCurrentIndex(self.PAGE_EMPTY)

    def refresh(self) -> None:
        """按当前图层刷新显示."""
        self.set_layer(self._current_layer)

    def _on_property_changed(self, prop: str, value: Any) -> None:
        if self._current_layer is not None:
            self.layer_property_changed.emit(self._current_layer.id, prop, value)
