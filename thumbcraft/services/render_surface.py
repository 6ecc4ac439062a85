"""绘图表面.

提供与 2D canvas 上下文语义一致的绘图接口：

    - save/restore 状态栈（变换矩阵与投影）
    - translate/scale/rotate/transform 右乘当前矩阵
    - 投影作为状态的一部分，作用于之后的每一次绘制调用

RasterSurface 使用 Pillow 在离屏 RGBA 图片上实现该接口，
预览与导出共用同一实现。
"""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from contextlib import contextmanager
from dataclasses import dataclass, field, replace
from typing import Iterator, Optional

from PIL import Image, ImageDraw, ImageFilter, ImageFont

from thumbcraft.core.transform import AffineMatrix
from thumbcraft.utils.helpers import RGBAColor
from thumbcraft.utils.logger import setup_logger

logger = setup_logger(__name__)

FontType = ImageFont.FreeTypeFont | ImageFont.ImageFont

# 渐变色带上下填充的行数，覆盖起止点之外的区域
_GRADIENT_PADDING = 16384


# ===================
# 状态
# ===================


@dataclass(frozen=True)
class ShadowStyle:
    """投影样式.

    偏移量使用设备像素，不受当前变换影响。

    Attributes:
        color: 投影颜色 (RGBA)
        blur: 模糊半径
        offset_x: X偏移
        offset_y: Y偏移
    """

    color: RGBAColor
    blur: float = 0
    offset_x: float = 0
    offset_y: float = 0

    @property
    def is_visible(self) -> bool:
        """是否会产生可见投影."""
        return self.color[3] > 0 and (
            self.blur > 0 or self.offset_x != 0 or self.offset_y != 0
        )

    @property
    def margin(self) -> int:
        """模糊向外扩散的像素范围."""
        return int(math.ceil(self.blur * 1.5))


@dataclass(frozen=True)
class SurfaceState:
    """绘图状态."""

    matrix: AffineMatrix = field(default_factory=AffineMatrix)
    shadow: Optional[ShadowStyle] = None


# ===================
# 抽象接口
# ===================


class DrawingSurface(ABC):
    """绘图表面抽象接口."""

    @property
    @abstractmethod
    def size(self) -> tuple[int, int]:
        """表面尺寸 (宽, 高)."""

    @property
    @abstractmethod
    def matrix(self) -> AffineMatrix:
        """当前变换矩阵."""

    @abstractmethod
    def save(self) -> None:
        """保存当前状态."""

    @abstractmethod
    def restore(self) -> None:
        """恢复最近保存的状态."""

    @abstractmethod
    def translate(self, dx: float, dy: float) -> None:
        """平移."""

    @abstractmethod
    def scale(self, sx: float, sy: float) -> None:
        """缩放."""

    @abstractmethod
    def rotate(self, radians: float) -> None:
        """旋转."""

    @abstractmethod
    def transform(self, a: float, b: float, c: float, d: float, e: float, f: float) -> None:
        """右乘任意仿射矩阵."""

    @abstractmethod
    def set_shadow(
        self,
        color: RGBAColor,
        blur: float = 0,
        offset_x: float = 0,
        offset_y: float = 0,
    ) -> None:
        """设置投影，覆盖之前的投影设置."""

    @abstractmethod
    def clear_shadow(self) -> None:
        """清除投影."""

    @abstractmethod
    def fill_rect(self, x: float, y: float, width: float, height: float, color: RGBAColor) -> None:
        """填充矩形."""

    @abstractmethod
    def fill_linear_gradient(
        self,
        rect: tuple[float, float, float, float],
        start: tuple[float, float],
        end: tuple[float, float],
        color_start: RGBAColor,
        color_end: RGBAColor,
    ) -> None:
        """用线性渐变填充矩形.

        Args:
            rect: (x, y, width, height)
            start: 渐变起点
            end: 渐变终点
            color_start: 起点颜色
            color_end: 终点颜色
        """

    @abstractmethod
    def draw_image(
        self,
        image: Image.Image,
        x: float,
        y: float,
        width: Optional[float] = None,
        height: Optional[float] = None,
    ) -> None:
        """绘制图片，左上角位于 (x, y)."""

    @abstractmethod
    def measure_text(self, text: str, font: FontType) -> tuple[float, float]:
        """测量文字尺寸 (宽, 高)."""

    @abstractmethod
    def stroke_text(
        self,
        text: str,
        x: float,
        y: float,
        font: FontType,
        color: RGBAColor,
        line_width: float,
    ) -> None:
        """描边文字，以 (x, y) 为中心.

        描边线宽以轮廓为中心，向外扩展 line_width / 2。
        """

    @abstractmethod
    def fill_text(self, text: str, x: float, y: float, font: FontType, color: RGBAColor) -> None:
        """填充文字，以 (x, y) 为中心."""

    @contextmanager
    def saved(self) -> Iterator["DrawingSurface"]:
        """save/restore 上下文."""
        self.save()
        try:
            yield self
        finally:
            self.restore()


# ===================
# Pillow 实现
# ===================


class RasterSurface(DrawingSurface):
    """基于 Pillow 的离屏绘图表面.

    每次绘制调用先把内容绘制到局部坐标的小图上，
    再按当前矩阵做仿射变换并合成到画布；投影由合成后内容的
    alpha 通道着色、模糊、偏移得到，先于内容合成。

    Example:
        >>> surface = RasterSurface(1920, 1080)
        >>> surface.fill_rect(0, 0, 1920, 1080, (17, 17, 17, 255))
        >>> surface.image.getpixel((0, 0))
        (17, 17, 17, 255)
    """

    def __init__(
        self,
        width: int,
        height: int,
        background: RGBAColor = (0, 0, 0, 0),
    ) -> None:
        """初始化绘图表面.

        Args:
            width: 宽度
            height: 高度
            background: 初始填充颜色
        """
        self._image = Image.new("RGBA", (width, height), background)
        self._state = SurfaceState()
        self._stack: list[SurfaceState] = []

    @property
    def image(self) -> Image.Image:
        """绘制结果."""
        return self._image

    @property
    def size(self) -> tuple[int, int]:
        return self._image.size

    @property
    def matrix(self) -> AffineMatrix:
        return self._state.matrix

    @property
    def shadow(self) -> Optional[ShadowStyle]:
        """当前投影."""
        return self._state.shadow

    # ========================
    # 状态
    # ========================

    def save(self) -> None:
        self._stack.append(self._state)

    def restore(self) -> None:
        if self._stack:
            self._state = self._stack.pop()

    def translate(self, dx: float, dy: float) -> None:
        self._set_matrix(self._state.matrix.translate(dx, dy))

    def scale(self, sx: float, sy: float) -> None:
        self._set_matrix(self._state.matrix.scale(sx, sy))

    def rotate(self, radians: float) -> None:
        self._set_matrix(self._state.matrix.rotate(radians))

    def transform(self, a: float, b: float, c: float, d: float, e: float, f: float) -> None:
        self._set_matrix(self._state.matrix.multiply(AffineMatrix(a, b, c, d, e, f)))

    def _set_matrix(self, matrix: AffineMatrix) -> None:
        self._state = replace(self._state, matrix=matrix)

    def set_shadow(
        self,
        color: RGBAColor,
        blur: float = 0,
        offset_x: float = 0,
        offset_y: float = 0,
    ) -> None:
        self._state = replace(
            self._state,
            shadow=ShadowStyle(color=color, blur=blur, offset_x=offset_x, offset_y=offset_y),
        )

    def clear_shadow(self) -> None:
        self._state = replace(self._state, shadow=None)

    # ========================
    # 绘制
    # ========================

    def fill_rect(self, x: float, y: float, width: float, height: float, color: RGBAColor) -> None:
        size = (_to_pixels(width), _to_pixels(height))
        if size[0] == 0 or size[1] == 0:
            return
        self._composite_tile(Image.new("RGBA", size, color), x, y)

    def fill_linear_gradient(
        self,
        rect: tuple[float, float, float, float],
        start: tuple[float, float],
        end: tuple[float, float],
        color_start: RGBAColor,
        color_end: RGBAColor,
    ) -> None:
        x, y, width, height = rect
        size = (_to_pixels(width), _to_pixels(height))
        if size[0] == 0 or size[1] == 0:
            return

        dx = end[0] - start[0]
        dy = end[1] - start[1]
        length_sq = dx * dx + dy * dy
        if length_sq == 0:
            # 起止点重合时按终点色填充
            self.fill_rect(x, y, width, height, color_end)
            return

        # t = ((u, v) - start) · (dx, dy) / |d|²，映射到色带的 P + 255 * t 行
        ox = start[0] - x
        oy = start[1] - y
        k = 255 / length_sq
        data = (0, 0, 0.5, k * dx, k * dy, _GRADIENT_PADDING - k * (ox * dx + oy * dy))
        mask = _gradient_ramp().transform(
            size, Image.Transform.AFFINE, data, resample=Image.Resampling.NEAREST
        )

        tile = Image.composite(
            Image.new("RGBA", size, color_end),
            Image.new("RGBA", size, color_start),
            mask,
        )
        self._composite_tile(tile, x, y)

    def draw_image(
        self,
        image: Image.Image,
        x: float,
        y: float,
        width: Optional[float] = None,
        height: Optional[float] = None,
    ) -> None:
        tile = image if image.mode == "RGBA" else image.convert("RGBA")
        if width is not None and height is not None:
            target = (_to_pixels(width), _to_pixels(height))
            if target[0] == 0 or target[1] == 0:
                return
            if target != tile.size:
                tile = tile.resize(target, Image.Resampling.LANCZOS)
        self._composite_tile(tile, x, y)

    def measure_text(self, text: str, font: FontType) -> tuple[float, float]:
        left, top, right, bottom = font.getbbox(text, anchor="mm")
        return (right - left, bottom - top)

    def stroke_text(
        self,
        text: str,
        x: float,
        y: float,
        font: FontType,
        color: RGBAColor,
        line_width: float,
    ) -> None:
        stroke = int(round(line_width / 2))
        if stroke <= 0 or not text:
            return
        self._draw_text_tile(text, x, y, font, color, stroke)

    def fill_text(self, text: str, x: float, y: float, font: FontType, color: RGBAColor) -> None:
        if not text:
            return
        self._draw_text_tile(text, x, y, font, color, 0)

    def _draw_text_tile(
        self,
        text: str,
        x: float,
        y: float,
        font: FontType,
        color: RGBAColor,
        stroke: int,
    ) -> None:
        """把文字绘制到局部小图后合成.

        描边轮次的字形内部也用描边色填充，随后的填充轮次覆盖内部，
        与 canvas 先 strokeText 后 fillText 的结果一致。
        """
        left, top, right, bottom = font.getbbox(text, anchor="mm", stroke_width=stroke)
        pad = 2
        size = (int(math.ceil(right - left)) + pad * 2, int(math.ceil(bottom - top)) + pad * 2)
        if size[0] <= pad * 2 or size[1] <= pad * 2:
            return

        tile = Image.new("RGBA", size, (0, 0, 0, 0))
        draw = ImageDraw.Draw(tile)
        anchor = (pad - left, pad - top)
        if stroke > 0:
            draw.text(
                anchor,
                text,
                font=font,
                fill=color,
                anchor="mm",
                stroke_width=stroke,
                stroke_fill=color,
            )
        else:
            draw.text(anchor, text, font=font, fill=color, anchor="mm")

        self._composite_tile(tile, x + left - pad, y + top - pad)

    # ========================
    # 合成
    # ========================

    def _composite_tile(self, tile: Image.Image, x: float, y: float) -> None:
        """把局部坐标 (x, y) 处的小图按当前矩阵合成到画布."""
        matrix = self._state.matrix.translate(x, y)
        try:
            inverse = matrix.inverse()
        except ValueError:
            return

        tile_width, tile_height = tile.size
        corners = [
            matrix.apply(px, py)
            for px, py in ((0, 0), (tile_width, 0), (tile_width, tile_height), (0, tile_height))
        ]
        xs = [point[0] for point in corners]
        ys = [point[1] for point in corners]

        shadow = self._state.shadow
        if shadow is not None and not shadow.is_visible:
            shadow = None

        margin = 0
        reach = 0
        if shadow is not None:
            margin = shadow.margin
            reach = margin + int(math.ceil(max(abs(shadow.offset_x), abs(shadow.offset_y))))
        canvas_width, canvas_height = self._image.size

        left = max(int(math.floor(min(xs))) - margin, -reach)
        top = max(int(math.floor(min(ys))) - margin, -reach)
        right = min(int(math.ceil(max(xs))) + margin, canvas_width + reach)
        bottom = min(int(math.ceil(max(ys))) + margin, canvas_height + reach)
        if right <= left or bottom <= top:
            return

        # 输出像素 (u, v) → 画布 (u + left, v + top) → 局部坐标
        local = inverse.multiply(AffineMatrix(e=left, f=top))
        layer = tile.convert("RGBa").transform(
            (right - left, bottom - top),
            Image.Transform.AFFINE,
            (local.a, local.c, local.e, local.b, local.d, local.f),
            resample=Image.Resampling.BICUBIC,
        ).convert("RGBA")

        if shadow is not None:
            self._blend(
                _shadow_from(layer, shadow),
                left + int(round(shadow.offset_x)),
                top + int(round(shadow.offset_y)),
            )
        self._blend(layer, left, top)

    def _blend(self, layer: Image.Image, left: int, top: int) -> None:
        """alpha 合成，裁掉超出画布的部分."""
        canvas_width, canvas_height = self._image.size
        src_left = max(0, -left)
        src_top = max(0, -top)
        dest_left = max(0, left)
        dest_top = max(0, top)
        width = min(layer.width - src_left, canvas_width - dest_left)
        height = min(layer.height - src_top, canvas_height - dest_top)
        if width <= 0 or height <= 0:
            return
        self._image.alpha_composite(
            layer,
            dest=(dest_left, dest_top),
            source=(src_left, src_top, src_left + width, src_top + height),
        )


# ===================
# 辅助函数
# ===================


def _to_pixels(value: float) -> int:
    return max(0, int(round(value)))


_ramp_cache: Optional[Image.Image] = None


def _gradient_ramp() -> Image.Image:
    """1 像素宽的灰度色带：上方填充 0，中间 0→255，下方填充 255."""
    global _ramp_cache
    if _ramp_cache is None:
        ramp = Image.new("L", (1, _GRADIENT_PADDING * 2 + 256), 255)
        ramp.paste(0, (0, 0, 1, _GRADIENT_PADDING))
        ramp.paste(
            Image.linear_gradient("L").crop((0, 0, 1, 256)),
            (0, _GRADIENT_PADDING),
        )
        _ramp_cache = ramp
    return _ramp_cache


def _shadow_from(layer: Image.Image, shadow: ShadowStyle) -> Image.Image:
    """由内容的 alpha 通道生成投影图."""
    red, green, blue, alpha = shadow.color
    mask = layer.getchannel("A")
    if alpha < 255:
        mask = mask.point(lambda value: value * alpha // 255)

    result = Image.new("RGBA", layer.size, (red, green, blue, 0))
    result.putalpha(mask)
    if shadow.blur > 0:
        result = result.filter(ImageFilter.GaussianBlur(shadow.blur / 2))
    return result
