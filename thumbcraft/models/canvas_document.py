"""画布文档与图层数据模型.

提供缩略图合成的核心数据模型：有序图层栈（图片/文字）与画布背景。

Features:
    - 图片图层与文字图层（按 type 区分的联合类型）
    - 固定逻辑画布 (1920x1080)，坐标均为图层中心点
    - 纯函数式图层操作（旧文档输入，新文档输出）
    - 图层层级即数组顺序（索引 0 位于最底层）
    - JSON序列化/反序列化
"""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from thumbcraft.utils.constants import CANVAS_HEIGHT, CANVAS_WIDTH, DUPLICATE_OFFSET
from thumbcraft.utils.helpers import generate_layer_id


# ===================
# 常量定义
# ===================

# 图片图层默认值
DEFAULT_PRODUCT_SCALE = 1.0
DEFAULT_ELEMENT_SCALE = 0.8
DEFAULT_GLOW_COLOR = "#ffffff"

# 文字图层默认值
DEFAULT_TEXT_CONTENT = "NEW TEXT"
DEFAULT_HEADLINE_CONTENT = "VIRAL TITLE"
DEFAULT_TEXT_FONT_SIZE = 150
DEFAULT_HEADLINE_FONT_SIZE = 250
DEFAULT_TEXT_COLOR = "#ffffff"
DEFAULT_TEXT_STROKE_COLOR = "#000000"
DEFAULT_TEXT_STROKE_WIDTH = 8
TEXT_MAX_LENGTH = 500
MAX_FONT_SIZE = 1000
MAX_SKEW = 89

# 受保护字段（局部更新不可修改）
_PROTECTED_FIELDS = frozenset({"id", "type"})


# ===================
# 枚举定义
# ===================


class LayerType(str, Enum):
    """图层类型枚举."""

    IMAGE = "image"  # 图片图层（产品主体或装饰元素）
    TEXT = "text"  # 文字图层


class BackgroundMode(str, Enum):
    """背景模式."""

    IMAGE = "image"
    GRADIENT = "gradient"


class GradientDirection(str, Enum):
    """渐变方向（与 CSS linear-gradient 方向关键字一致）."""

    TO_RIGHT = "to right"
    TO_BOTTOM = "to bottom"
    TO_BOTTOM_RIGHT = "to bottom right"
    TO_TOP_RIGHT = "to top right"


class LayerDirection(str, Enum):
    """图层层级移动方向."""

    FORWARD = "forward"  # 上移一层（靠近最前）
    BACKWARD = "backward"  # 下移一层（靠近最后）


class BrandFont(str, Enum):
    """品牌字体标识."""

    BEBAS_NEUE = "font-bebas"
    ANTON = "font-anton"
    MONTSERRAT = "font-montserrat"
    ROBOTO_CONDENSED = "font-roboto"


# 字体显示名称
BRAND_FONT_NAMES: dict[BrandFont, str] = {
    BrandFont.BEBAS_NEUE: "Bebas Neue (Headline)",
    BrandFont.ANTON: "Anton (Impactful)",
    BrandFont.MONTSERRAT: "Montserrat (Modern)",
    BrandFont.ROBOTO_CONDENSED: "Roboto (Subtitle)",
}


# ===================
# 背景
# ===================


class GradientBackground(BaseModel):
    """渐变背景.

    Attributes:
        color_start: 起始颜色
        color_end: 结束颜色
        direction: 渐变方向
    """

    model_config = ConfigDict(frozen=True)

    color_start: str = Field(default="#1a1a1a", description="起始颜色")
    color_end: str = Field(default="#000000", description="结束颜色")
    direction: GradientDirection = Field(
        default=GradientDirection.TO_BOTTOM,
        description="渐变方向",
    )


# ===================
# 图层基类
# ===================


class LayerElement(BaseModel):
    """图层元素基类.

    所有图层均以中心点定位，坐标为逻辑画布坐标，而非视口像素。
    模型不可变：任何修改都会返回新实例。

    Attributes:
        id: 图层唯一标识符（删除后不复用）
        x: 中心点X坐标
        y: 中心点Y坐标
        rotation: 旋转角度（度，绕中心点）
        visible: 是否可见（不可见图层不参与渲染与拾取）
        locked: 是否锁定（锁定后不可拖拽/选中，但仍渲染和导出）
    """

    model_config = ConfigDict(frozen=True, extra="forbid", use_enum_values=False)

    id: str = Field(default_factory=generate_layer_id, description="图层唯一ID")
    x: float = Field(default=CANVAS_WIDTH / 2, description="中心点X坐标")
    y: float = Field(default=CANVAS_HEIGHT / 2, description="中心点Y坐标")
    rotation: float = Field(default=0.0, description="旋转角度")
    visible: bool = Field(default=True, description="是否可见")
    locked: bool = Field(default=False, description="是否锁定")

    @property
    def position(self) -> tuple[float, float]:
        """中心点坐标."""
        return (self.x, self.y)

    def updated(self, **fields: Any) -> "LayerElement":
        """返回局部更新后的新图层.

        id 和 type 不可通过更新修改，未指定的字段保持不变。

        Args:
            **fields: 要更新的字段

        Returns:
            新的图层实例

        Raises:
            ValueError: 字段不存在或取值非法
        """
        changes = {k: v for k, v in fields.items() if k not in _PROTECTED_FIELDS}
        if not changes:
            return self
        data = self.model_dump()
        data.update(changes)
        return type(self).model_validate(data)

    def moved_to(self, x: float, y: float) -> "LayerElement":
        """返回移动到指定中心点的新图层."""
        return self.updated(x=x, y=y)

    def duplicate(self) -> "LayerElement":
        """复制图层.

        Returns:
            新图层，具有新ID，位置偏移 (+40, +40)，其余字段相同
        """
        data = self.model_dump()
        data["id"] = generate_layer_id()
        data["x"] = self.x + DUPLICATE_OFFSET
        data["y"] = self.y + DUPLICATE_OFFSET
        return type(self).model_validate(data)


# ===================
# 图片图层
# ===================


class ImageLayer(LayerElement):
    """图片图层.

    用于产品主体与装饰元素（贴纸、图标、Logo）。

    Attributes:
        source_uri: 图片地址（data URI / URL / 本地路径）
        scale: 统一缩放比例
        has_shadow: 是否启用投影
        has_glow: 是否启用外发光
        glow_color: 外发光颜色
        stroke_width: 描边宽度（保留字段，当前不参与渲染）
        stroke_color: 描边颜色（保留字段）
        is_product_marker: 是否为产品主体图层（供外部协作方使用）
        original_source_uri: 未处理的原始图片（供重新处理）

    Example:
        >>> layer = ImageLayer.create_element("https://example.com/arrow.png")
        >>> layer.scale
        0.8
    """

    type: Literal[LayerType.IMAGE] = Field(default=LayerType.IMAGE, description="图层类型")

    source_uri: str = Field(default="", description="图片地址")
    scale: float = Field(default=DEFAULT_PRODUCT_SCALE, gt=0, description="缩放比例")

    # 效果
    has_shadow: bool = Field(default=False, description="投影")
    has_glow: bool = Field(default=False, description="外发光")
    glow_color: str = Field(default=DEFAULT_GLOW_COLOR, description="外发光颜色")
    stroke_width: float = Field(default=0, ge=0, description="描边宽度")
    stroke_color: str = Field(default="#ffffff", description="描边颜色")

    # 外部协作方使用的元数据
    is_product_marker: bool = Field(default=False, description="产品主体标记")
    original_source_uri: Optional[str] = Field(default=None, description="原始图片")

    @property
    def has_source(self) -> bool:
        """是否已设置图片."""
        return bool(self.source_uri)

    @classmethod
    def create_product(
        cls,
        source_uri: str,
        original_source_uri: Optional[str] = None,
    ) -> "ImageLayer":
        """创建产品主体图层（居中、原始比例、带投影）.

        Args:
            source_uri: 已抠图的主体图片
            original_source_uri: 原始上传图片

        Returns:
            ImageLayer实例
        """
        return cls(
            source_uri=source_uri,
            original_source_uri=original_source_uri,
            scale=DEFAULT_PRODUCT_SCALE,
            has_shadow=True,
            is_product_marker=True,
        )

    @classmethod
    def create_element(cls, source_uri: str) -> "ImageLayer":
        """创建装饰元素图层（居中、0.8 缩放、无效果）.

        Args:
            source_uri: 元素图片地址

        Returns:
            ImageLayer实例
        """
        return cls(source_uri=source_uri, scale=DEFAULT_ELEMENT_SCALE)


# ===================
# 文字图层
# ===================


class TextLayer(LayerElement):
    """文字图层.

    文字始终以大写渲染，水平垂直居中于中心点。

    Attributes:
        text: 文字内容
        font_token: 品牌字体标识
        color: 填充颜色
        font_size: 字号（像素）
        letter_spacing: 字间距（保留字段，当前不参与渲染）
        skew_x: 水平倾斜角度（度）
        stroke_width: 描边宽度（0 表示无描边）
        stroke_color: 描边颜色
        has_shadow: 是否启用投影
        shadow_color: 投影颜色
        shadow_opacity: 投影不透明度 (0-1)
        shadow_blur: 投影模糊半径
        shadow_offset_x: 投影X偏移
        shadow_offset_y: 投影Y偏移
    """

    type: Literal[LayerType.TEXT] = Field(default=LayerType.TEXT, description="图层类型")

    text: str = Field(default=DEFAULT_TEXT_CONTENT, max_length=TEXT_MAX_LENGTH, description="文字内容")
    font_token: BrandFont = Field(default=BrandFont.BEBAS_NEUE, description="字体")
    color: str = Field(default=DEFAULT_TEXT_COLOR, description="文字颜色")
    font_size: float = Field(default=DEFAULT_TEXT_FONT_SIZE, gt=0, le=MAX_FONT_SIZE, description="字号")
    letter_spacing: float = Field(default=0, description="字间距")
    skew_x: float = Field(default=0, ge=-MAX_SKEW, le=MAX_SKEW, description="水平倾斜角度")

    # 描边
    stroke_width: float = Field(default=DEFAULT_TEXT_STROKE_WIDTH, ge=0, description="描边宽度")
    stroke_color: str = Field(default=DEFAULT_TEXT_STROKE_COLOR, description="描边颜色")

    # 投影
    has_shadow: bool = Field(default=True, description="投影")
    shadow_color: str = Field(default="#000000", description="投影颜色")
    shadow_opacity: float = Field(default=0.8, ge=0, le=1, description="投影不透明度")
    shadow_blur: float = Field(default=0, ge=0, description="投影模糊")
    shadow_offset_x: float = Field(default=4, description="投影X偏移")
    shadow_offset_y: float = Field(default=4, description="投影Y偏移")

    @property
    def display_text(self) -> str:
        """实际渲染的文字（大写）."""
        return self.text.upper()

    @classmethod
    def create(cls, text: str = DEFAULT_TEXT_CONTENT) -> "TextLayer":
        """快速创建文字图层（居中，默认样式）.

        Args:
            text: 文字内容

        Returns:
            TextLayer实例
        """
        return cls(text=text)

    @classmethod
    def create_headline(cls, text: Optional[str] = None) -> "TextLayer":
        """创建标题文字图层.

        生成结果到达时用于承载概念的 hook 文案：大字号、轻微倾斜、不透明投影。

        Args:
            text: 标题文字，为空时使用默认标题

        Returns:
            TextLayer实例
        """
        return cls(
            text=text or DEFAULT_HEADLINE_CONTENT,
            font_size=DEFAULT_HEADLINE_FONT_SIZE,
            skew_x=-5,
            shadow_opacity=1.0,
        )


# ===================
# 图层联合类型
# ===================

AnyLayer = Annotated[Union[ImageLayer, TextLayer], Field(discriminator="type")]


# ===================
# 画布文档
# ===================


class CanvasDocument(BaseModel):
    """画布文档.

    管理背景与有序图层栈。所有操作都是纯函数：返回新文档，不修改原文档；
    目标图层不存在时返回原文档（不视为错误）。

    Attributes:
        background_mode: 背景模式
        background_image_uri: 背景图片地址
        background_gradient: 渐变背景参数
        layers: 图层序列（索引 0 最底层，最后一个最前）

    Example:
        >>> doc = CanvasDocument()
        >>> doc = doc.add_layer(TextLayer.create("Hello"))
        >>> doc.layer_count
        1
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    background_mode: BackgroundMode = Field(default=BackgroundMode.IMAGE, description="背景模式")
    background_image_uri: Optional[str] = Field(default=None, description="背景图片")
    background_gradient: GradientBackground = Field(
        default_factory=GradientBackground,
        description="渐变背景",
    )
    layers: tuple[AnyLayer, ...] = Field(default=(), description="图层序列")

    # ========================
    # 查询
    # ========================

    @property
    def canvas_size(self) -> tuple[int, int]:
        """逻辑画布尺寸（固定）."""
        return (CANVAS_WIDTH, CANVAS_HEIGHT)

    @property
    def layer_count(self) -> int:
        """图层数量."""
        return len(self.layers)

    @property
    def layer_ids(self) -> list[str]:
        """按层级顺序（从后到前）的图层ID列表."""
        return [layer.id for layer in self.layers]

    @property
    def visible_layers(self) -> list[AnyLayer]:
        """可见图层（保持层级顺序）."""
        return [layer for layer in self.layers if layer.visible]

    @property
    def product_layer(self) -> Optional[ImageLayer]:
        """产品主体图层（第一个带产品标记的图片图层）."""
        for layer in self.layers:
            if isinstance(layer, ImageLayer) and layer.is_product_marker:
                return layer
        return None

    @property
    def is_empty(self) -> bool:
        """是否为空画布（无图层且无背景内容）."""
        if self.layers:
            return False
        return self.background_mode == BackgroundMode.IMAGE and not self.background_image_uri

    def index_of(self, layer_id: str) -> Optional[int]:
        """获取图层索引，不存在返回None."""
        for i, layer in enumerate(self.layers):
            if layer.id == layer_id:
                return i
        return None

    def get_layer(self, layer_id: str) -> Optional[AnyLayer]:
        """根据ID获取图层，不存在返回None."""
        index = self.index_of(layer_id)
        return self.layers[index] if index is not None else None

    def has_layer(self, layer_id: str) -> bool:
        """图层是否存在."""
        return self.index_of(layer_id) is not None

    # ========================
    # 图层栈操作
    # ========================

    def add_layer(self, layer: AnyLayer) -> "CanvasDocument":
        """添加图层到最前.

        Args:
            layer: 图层对象

        Returns:
            新文档

        Raises:
            ValueError: 图层ID已存在
        """
        if self.has_layer(layer.id):
            raise ValueError(f"图层ID已存在: {layer.id}")
        return self._with_layers(self.layers + (layer,))

    def update_layer(self, layer_id: str, **fields: Any) -> "CanvasDocument":
        """局部更新图层.

        保持图层身份与未指定字段；图层不存在时为空操作。

        Args:
            layer_id: 图层ID
            **fields: 要更新的字段

        Returns:
            新文档（图层不存在时返回原文档）
        """
        index = self.index_of(layer_id)
        if index is None:
            return self

        layer = self.layers[index]
        new_layer = layer.updated(**fields)
        if new_layer is layer:
            return self

        layers = list(self.layers)
        layers[index] = new_layer
        return self._with_layers(tuple(layers))

    def remove_layer(self, layer_id: str) -> "CanvasDocument":
        """删除图层，不存在时为空操作."""
        if not self.has_layer(layer_id):
            return self
        return self._with_layers(tuple(l for l in self.layers if l.id != layer_id))

    def reorder_layer(self, layer_id: str, direction: LayerDirection) -> "CanvasDocument":
        """与相邻图层交换位置.

        FORWARD 与前方相邻图层交换，BACKWARD 与后方相邻图层交换；
        已处于边界或图层不存在时为空操作。其余图层顺序不变。

        Args:
            layer_id: 图层ID
            direction: 移动方向

        Returns:
            新文档
        """
        index = self.index_of(layer_id)
        if index is None:
            return self

        direction = LayerDirection(direction)
        target = index + 1 if direction == LayerDirection.FORWARD else index - 1
        if not 0 <= target < len(self.layers):
            return self

        layers = list(self.layers)
        layers[index], layers[target] = layers[target], layers[index]
        return self._with_layers(tuple(layers))

    def duplicate_layer(self, layer_id: str) -> tuple["CanvasDocument", Optional[str]]:
        """复制图层并放到最前.

        Args:
            layer_id: 源图层ID

        Returns:
            (新文档, 新图层ID)，源图层不存在时返回 (原文档, None)
        """
        layer = self.get_layer(layer_id)
        if layer is None:
            return self, None
        copy = layer.duplicate()
        return self._with_layers(self.layers + (copy,)), copy.id

    def toggle_visibility(self, layer_id: str) -> "CanvasDocument":
        """切换图层可见性."""
        layer = self.get_layer(layer_id)
        if layer is None:
            return self
        return self.update_layer(layer_id, visible=not layer.visible)

    def toggle_lock(self, layer_id: str) -> "CanvasDocument":
        """切换图层锁定状态."""
        layer = self.get_layer(layer_id)
        if layer is None:
            return self
        return self.update_layer(layer_id, locked=not layer.locked)

    def replace_layers(self, layers: list[AnyLayer]) -> "CanvasDocument":
        """替换整个图层栈."""
        return self._with_layers(tuple(layers))

    # ========================
    # 背景
    # ========================

    def with_background_image(self, uri: Optional[str]) -> "CanvasDocument":
        """切换为图片背景."""
        return self.model_copy(
            update={"background_mode": BackgroundMode.IMAGE, "background_image_uri": uri}
        )

    def with_background_gradient(
        self,
        color_start: Optional[str] = None,
        color_end: Optional[str] = None,
        direction: Optional[GradientDirection] = None,
    ) -> "CanvasDocument":
        """切换为渐变背景，未指定的参数沿用当前值."""
        current = self.background_gradient
        gradient = GradientBackground(
            color_start=color_start if color_start is not None else current.color_start,
            color_end=color_end if color_end is not None else current.color_end,
            direction=direction if direction is not None else current.direction,
        )
        return self.model_copy(
            update={"background_mode": BackgroundMode.GRADIENT, "background_gradient": gradient}
        )

    def _with_layers(self, layers: tuple[AnyLayer, ...]) -> "CanvasDocument":
        """返回替换图层序列后的新文档."""
        return self.model_copy(update={"layers": layers})

    # ========================
    # 序列化
    # ========================

    def to_json(self, indent: int = 2) -> str:
        """序列化为JSON字符串（只读快照，供持久化或缩略预览使用）."""
        return self.model_dump_json(indent=indent)

    @classmethod
    def from_json(cls, json_str: str) -> "CanvasDocument":
        """从JSON字符串反序列化."""
        return cls.model_validate_json(json_str)
