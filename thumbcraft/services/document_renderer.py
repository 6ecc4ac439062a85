"""文档渲染引擎.

把画布文档绘制到绘图表面上，预览与导出共用同一个绘制流程。

Features:
    - 背景：渐变 / 图片铺满（cover） / 占位填充
    - 图层按数组顺序绘制，跳过隐藏图层
    - 图片图层投影与外发光
    - 文字图层大写、居中、倾斜、描边与投影
    - 单个图层失败只跳过该图层
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Protocol

from PIL import Image

from thumbcraft.core.transform import HitRegion, layer_matrix, layer_transform_steps
from thumbcraft.models.canvas_document import (
    AnyLayer,
    BackgroundMode,
    BrandFont,
    CanvasDocument,
    GradientDirection,
    ImageLayer,
    TextLayer,
)
from thumbcraft.services.asset_loader import ImageSource
from thumbcraft.services.render_surface import DrawingSurface, FontType, RasterSurface
from thumbcraft.utils.constants import (
    IMAGE_GLOW_BLUR,
    IMAGE_SHADOW_BLUR,
    IMAGE_SHADOW_COLOR,
    IMAGE_SHADOW_OFFSET,
    PLACEHOLDER_FILL,
)
from thumbcraft.utils.helpers import hex_to_rgba, parse_color
from thumbcraft.utils.logger import setup_logger

logger = setup_logger(__name__)


class FontProvider(Protocol):
    """按字体标识与字号提供字体."""

    def get_font(self, token: BrandFont, size: float) -> FontType: ...


# ===================
# 渲染结果
# ===================


@dataclass
class RenderReport:
    """一次渲染的结果.

    Attributes:
        drawn: 成功绘制的图层ID（绘制顺序）
        failed: 绘制失败被跳过的图层ID
        hit_regions: 已绘制图层的命中区域（绘制顺序）
        background_failed: 背景图片是否不可用
    """

    drawn: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)
    hit_regions: list[HitRegion] = field(default_factory=list)
    background_failed: bool = False

    @property
    def all_failed(self) -> bool:
        """是否所有可见图层都绘制失败."""
        return bool(self.failed) and not self.drawn

    def region_for(self, layer_id: str) -> Optional[HitRegion]:
        """获取图层的命中区域."""
        for region in self.hit_regions:
            if region.layer_id == layer_id:
                return region
        return None


# ===================
# 背景
# ===================


def gradient_endpoints(
    direction: GradientDirection,
    width: float,
    height: float,
) -> tuple[tuple[float, float], tuple[float, float]]:
    """计算渐变方向对应的起止点.

    Args:
        direction: 渐变方向
        width: 画布宽度
        height: 画布高度

    Returns:
        (起点, 终点)
    """
    if direction == GradientDirection.TO_RIGHT:
        return (0, 0), (width, 0)
    if direction == GradientDirection.TO_BOTTOM_RIGHT:
        return (0, 0), (width, height)
    if direction == GradientDirection.TO_TOP_RIGHT:
        return (0, height), (width, 0)
    return (0, 0), (0, height)


def cover_rect(
    image_size: tuple[int, int],
    canvas_size: tuple[int, int],
) -> tuple[float, float, float, float]:
    """等比铺满画布并居中的绘制区域 (x, y, width, height)."""
    image_width, image_height = image_size
    canvas_width, canvas_height = canvas_size
    scale = max(canvas_width / image_width, canvas_height / image_height)
    width = image_width * scale
    height = image_height * scale
    return ((canvas_width - width) / 2, (canvas_height - height) / 2, width, height)


def _draw_background(
    document: CanvasDocument,
    surface: DrawingSurface,
    assets: ImageSource,
    report: RenderReport,
) -> None:
    width, height = document.canvas_size

    if document.background_mode == BackgroundMode.GRADIENT:
        gradient = document.background_gradient
        start, end = gradient_endpoints(gradient.direction, width, height)
        surface.fill_linear_gradient(
            (0, 0, width, height),
            start,
            end,
            parse_color(gradient.color_start),
            parse_color(gradient.color_end),
        )
        return

    background: Optional[Image.Image] = None
    if document.background_image_uri:
        background = assets.get(document.background_image_uri)
        if background is None:
            report.background_failed = True
            logger.warning("背景图片不可用，使用占位填充")

    if background is None or background.width == 0 or background.height == 0:
        surface.fill_rect(0, 0, width, height, parse_color(PLACEHOLDER_FILL))
        return

    x, y, draw_width, draw_height = cover_rect(background.size, (width, height))
    surface.draw_image(background, x, y, draw_width, draw_height)


# ===================
# 图层
# ===================


def _apply_transform(layer: AnyLayer, surface: DrawingSurface) -> None:
    for step in layer_transform_steps(layer):
        step.apply_to_surface(surface)


def _draw_image_layer(
    layer: ImageLayer,
    surface: DrawingSurface,
    assets: ImageSource,
) -> Optional[tuple[float, float]]:
    """绘制图片图层，返回内容尺寸，图片不可用时返回None."""
    image = assets.get(layer.source_uri) if layer.has_source else None
    if image is None:
        return None

    _apply_transform(layer, surface)

    # 外发光只覆盖投影的颜色与模糊，偏移沿用投影设置
    offset_x, offset_y = IMAGE_SHADOW_OFFSET if layer.has_shadow else (0, 0)
    if layer.has_glow:
        surface.set_shadow(parse_color(layer.glow_color), IMAGE_GLOW_BLUR, offset_x, offset_y)
    elif layer.has_shadow:
        surface.set_shadow(IMAGE_SHADOW_COLOR, IMAGE_SHADOW_BLUR, offset_x, offset_y)

    surface.draw_image(image, -image.width / 2, -image.height / 2)
    return (image.width, image.height)


def _draw_text_layer(
    layer: TextLayer,
    surface: DrawingSurface,
    fonts: FontProvider,
) -> tuple[float, float]:
    """绘制文字图层，返回内容尺寸."""
    _apply_transform(layer, surface)

    font = fonts.get_font(layer.font_token, layer.font_size)
    text = layer.display_text

    if layer.has_shadow:
        surface.set_shadow(
            hex_to_rgba(layer.shadow_color, layer.shadow_opacity),
            layer.shadow_blur,
            layer.shadow_offset_x,
            layer.shadow_offset_y,
        )
    else:
        surface.clear_shadow()

    if layer.stroke_width > 0:
        surface.stroke_text(
            text, 0, 0, font, parse_color(layer.stroke_color), layer.stroke_width * 2
        )
    surface.fill_text(text, 0, 0, font, parse_color(layer.color))

    width, height = surface.measure_text(text, font)
    return (width + layer.stroke_width * 2, height + layer.stroke_width * 2)


# ===================
# 渲染入口
# ===================


def render_document(
    document: CanvasDocument,
    surface: DrawingSurface,
    assets: ImageSource,
    fonts: FontProvider,
) -> RenderReport:
    """绘制画布文档.

    绘制顺序：背景 → 图层（数组顺序，最后一个在最上层）。
    每个图层在独立的 save/restore 中绘制，失败的图层被跳过。

    Args:
        document: 画布文档
        surface: 绘图表面（尺寸应与逻辑画布一致）
        assets: 已就绪的图片
        fonts: 字体来源

    Returns:
        渲染结果
    """
    report = RenderReport()
    base = surface.matrix

    with surface.saved():
        _draw_background(document, surface, assets, report)

    for layer in document.layers:
        if not layer.visible:
            continue

        with surface.saved():
            try:
                if isinstance(layer, ImageLayer):
                    content = _draw_image_layer(layer, surface, assets)
                else:
                    content = _draw_text_layer(layer, surface, fonts)
            except (OSError, ValueError) as e:
                logger.error(f"图层绘制失败，已跳过: {layer.id}, {e}")
                content = None
            else:
                if content is None:
                    logger.warning(f"图层资源不可用，已跳过: {layer.id}")

        if content is None:
            report.failed.append(layer.id)
            continue

        report.drawn.append(layer.id)
        report.hit_regions.append(
            HitRegion(
                layer_id=layer.id,
                matrix=layer_matrix(layer, base),
                width=content[0],
                height=content[1],
            )
        )

    return report


class DocumentRenderer:
    """文档渲染器.

    持有图片来源与字体来源，按需创建离屏表面。
    """

    def __init__(self, assets: ImageSource, fonts: FontProvider) -> None:
        """初始化文档渲染器.

        Args:
            assets: 图片来源
            fonts: 字体来源
        """
        self._assets = assets
        self._fonts = fonts

    @property
    def assets(self) -> ImageSource:
        """图片来源."""
        return self._assets

    @assets.setter
    def assets(self, value: ImageSource) -> None:
        self._assets = value

    def render(self, document: CanvasDocument) -> tuple[Image.Image, RenderReport]:
        """渲染到新的逻辑尺寸离屏图片.

        Returns:
            (RGBA 图片, 渲染结果)
        """
        width, height = document.canvas_size
        surface = RasterSurface(width, height)
        report = render_document(document, surface, self._assets, self._fonts)
        return surface.image, report
