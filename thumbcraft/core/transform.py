"""变换引擎.

负责两类坐标计算：

    - 视口适配：把固定的逻辑画布 (1920x1080) 等比缩放并居中放入任意尺寸的视口
    - 图层变换：根据图层的逻辑字段生成仿射变换（平移 → 缩放/倾斜 → 旋转）

图层变换以“步骤序列”的形式给出，渲染管线把步骤依次作用到绘图表面，
命中检测把同一序列折叠成矩阵，两者共用一份定义。
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Protocol, Union

from thumbcraft.models.canvas_document import ImageLayer, TextLayer
from thumbcraft.utils.constants import (
    CANVAS_HEIGHT,
    CANVAS_WIDTH,
    DEFAULT_VIEWPORT_PADDING,
)

# 视口过小时的最小缩放，避免除零
MIN_VIEWPORT_SCALE = 0.01


def degrees_to_radians(degrees: float) -> float:
    """角度转弧度."""
    return degrees * math.pi / 180


# ===================
# 仿射矩阵
# ===================


@dataclass(frozen=True)
class AffineMatrix:
    """二维仿射矩阵.

    与 2D canvas 的 setTransform(a, b, c, d, e, f) 含义一致::

        x' = a * x + c * y + e
        y' = b * x + d * y + f

    translate/scale/rotate/skew_x 均为右乘，即新变换先作用于局部坐标。
    """

    a: float = 1.0
    b: float = 0.0
    c: float = 0.0
    d: float = 1.0
    e: float = 0.0
    f: float = 0.0

    @classmethod
    def identity(cls) -> "AffineMatrix":
        """单位矩阵."""
        return cls()

    @property
    def determinant(self) -> float:
        """行列式."""
        return self.a * self.d - self.b * self.c

    def multiply(self, other: "AffineMatrix") -> "AffineMatrix":
        """返回 self × other（先应用 other，再应用 self）."""
        return AffineMatrix(
            a=self.a * other.a + self.c * other.b,
            b=self.b * other.a + self.d * other.b,
            c=self.a * other.c + self.c * other.d,
            d=self.b * other.c + self.d * other.d,
            e=self.a * other.e + self.c * other.f + self.e,
            f=self.b * other.e + self.d * other.f + self.f,
        )

    def translate(self, dx: float, dy: float) -> "AffineMatrix":
        """平移."""
        return self.multiply(AffineMatrix(e=dx, f=dy))

    def scale(self, sx: float, sy: float | None = None) -> "AffineMatrix":
        """缩放，sy 为空时等比缩放."""
        return self.multiply(AffineMatrix(a=sx, d=sx if sy is None else sy))

    def rotate(self, radians: float) -> "AffineMatrix":
        """旋转（弧度，屏幕坐标系下顺时针为正）."""
        cos = math.cos(radians)
        sin = math.sin(radians)
        return self.multiply(AffineMatrix(a=cos, b=sin, c=-sin, d=cos))

    def skew_x(self, factor: float) -> "AffineMatrix":
        """水平错切，factor 为 tan(倾斜角)."""
        return self.multiply(AffineMatrix(c=factor))

    def apply(self, x: float, y: float) -> tuple[float, float]:
        """变换一个点."""
        return (
            self.a * x + self.c * y + self.e,
            self.b * x + self.d * y + self.f,
        )

    def inverse(self) -> "AffineMatrix":
        """逆矩阵.

        Raises:
            ValueError: 矩阵不可逆
        """
        det = self.determinant
        if abs(det) < 1e-12:
            raise ValueError("矩阵不可逆")
        return AffineMatrix(
            a=self.d / det,
            b=-self.b / det,
            c=-self.c / det,
            d=self.a / det,
            e=(self.c * self.f - self.d * self.e) / det,
            f=(self.b * self.e - self.a * self.f) / det,
        )

    def as_tuple(self) -> tuple[float, float, float, float, float, float]:
        """(a, b, c, d, e, f) 元组."""
        return (self.a, self.b, self.c, self.d, self.e, self.f)


# ===================
# 变换步骤
# ===================


class SupportsTransform(Protocol):
    """可接受变换步骤的绘图表面."""

    def translate(self, dx: float, dy: float) -> None: ...

    def scale(self, sx: float, sy: float) -> None: ...

    def rotate(self, radians: float) -> None: ...

    def transform(self, a: float, b: float, c: float, d: float, e: float, f: float) -> None: ...


class StepKind(str, Enum):
    """变换步骤类型."""

    TRANSLATE = "translate"
    SCALE = "scale"
    ROTATE = "rotate"
    SKEW_X = "skew_x"


@dataclass(frozen=True)
class TransformStep:
    """单个变换步骤."""

    kind: StepKind
    values: tuple[float, ...]

    def apply_to_matrix(self, matrix: AffineMatrix) -> AffineMatrix:
        """作用到矩阵."""
        if self.kind == StepKind.TRANSLATE:
            return matrix.translate(*self.values)
        if self.kind == StepKind.SCALE:
            return matrix.scale(*self.values)
        if self.kind == StepKind.ROTATE:
            return matrix.rotate(self.values[0])
        return matrix.skew_x(self.values[0])

    def apply_to_surface(self, surface: SupportsTransform) -> None:
        """作用到绘图表面."""
        if self.kind == StepKind.TRANSLATE:
            surface.translate(*self.values)
        elif self.kind == StepKind.SCALE:
            surface.scale(*self.values)
        elif self.kind == StepKind.ROTATE:
            surface.rotate(self.values[0])
        else:
            surface.transform(1, 0, self.values[0], 1, 0, 0)


def layer_transform_steps(layer: Union[ImageLayer, TextLayer]) -> list[TransformStep]:
    """计算图层的变换步骤.

    顺序固定，预览与导出都必须按此顺序合成：

        1. 平移到图层中心 (x, y)
        2. 图片图层：等比缩放，再旋转
        3. 文字图层：水平错切 tan(skew_x)，再旋转
        4. 内容以局部原点为中心绘制

    Args:
        layer: 图层

    Returns:
        变换步骤列表
    """
    steps = [TransformStep(StepKind.TRANSLATE, (layer.x, layer.y))]
    rotation = TransformStep(StepKind.ROTATE, (degrees_to_radians(layer.rotation),))

    if isinstance(layer, ImageLayer):
        steps.append(TransformStep(StepKind.SCALE, (layer.scale, layer.scale)))
        steps.append(rotation)
    elif isinstance(layer, TextLayer):
        shear = math.tan(degrees_to_radians(layer.skew_x))
        steps.append(TransformStep(StepKind.SKEW_X, (shear,)))
        steps.append(rotation)
    return steps


def layer_matrix(
    layer: Union[ImageLayer, TextLayer],
    base: AffineMatrix | None = None,
) -> AffineMatrix:
    """把图层变换步骤折叠为矩阵（局部坐标 → 画布坐标）."""
    matrix = base or AffineMatrix.identity()
    for step in layer_transform_steps(layer):
        matrix = step.apply_to_matrix(matrix)
    return matrix


# ===================
# 视口适配
# ===================


@dataclass(frozen=True)
class ViewportFit:
    """画布在视口中的适配结果.

    Attributes:
        viewport_width: 视口宽度
        viewport_height: 视口高度
        scale: 逻辑画布到视口的统一缩放
        offset_x: 画布左上角在视口中的X偏移（居中）
        offset_y: 画布左上角在视口中的Y偏移（居中）
    """

    viewport_width: float
    viewport_height: float
    scale: float
    offset_x: float
    offset_y: float

    @property
    def canvas_width(self) -> float:
        """画布在视口中的显示宽度."""
        return CANVAS_WIDTH * self.scale

    @property
    def canvas_height(self) -> float:
        """画布在视口中的显示高度."""
        return CANVAS_HEIGHT * self.scale

    def device_to_logical(self, px: float, py: float) -> tuple[float, float]:
        """视口像素坐标 → 逻辑画布坐标."""
        return ((px - self.offset_x) / self.scale, (py - self.offset_y) / self.scale)

    def logical_to_device(self, x: float, y: float) -> tuple[float, float]:
        """逻辑画布坐标 → 视口像素坐标."""
        return (x * self.scale + self.offset_x, y * self.scale + self.offset_y)

    def contains_device_point(self, px: float, py: float) -> bool:
        """视口点是否落在画布显示区域内."""
        return (
            self.offset_x <= px <= self.offset_x + self.canvas_width
            and self.offset_y <= py <= self.offset_y + self.canvas_height
        )


def compute_scale_factor(
    width: float,
    height: float,
    padding: float = DEFAULT_VIEWPORT_PADDING,
) -> float:
    """计算画布适配视口的缩放比例.

    scale = min((width - padding) / 1920, (height - padding) / 1080)，
    视口小于内边距时取最小缩放。

    Args:
        width: 视口宽度
        height: 视口高度
        padding: 内边距

    Returns:
        统一缩放比例
    """
    scale = min((width - padding) / CANVAS_WIDTH, (height - padding) / CANVAS_HEIGHT)
    return max(scale, MIN_VIEWPORT_SCALE)


def compute_viewport_fit(
    width: float,
    height: float,
    padding: float = DEFAULT_VIEWPORT_PADDING,
) -> ViewportFit:
    """计算画布在视口中的适配结果（等比、居中、不裁剪）.

    幂等，可在任意时刻（包括拖拽过程中）重复调用。
    """
    scale = compute_scale_factor(width, height, padding)
    return ViewportFit(
        viewport_width=width,
        viewport_height=height,
        scale=scale,
        offset_x=(width - CANVAS_WIDTH * scale) / 2,
        offset_y=(height - CANVAS_HEIGHT * scale) / 2,
    )


def device_delta_to_logical(dx: float, dy: float, scale: float) -> tuple[float, float]:
    """把视口像素位移换算为逻辑画布位移."""
    return (dx / scale, dy / scale)


# ===================
# 命中区域
# ===================


@dataclass(frozen=True)
class HitRegion:
    """图层在画布上的命中区域.

    由渲染管线在绘制时产出，内容框以局部原点为中心。

    Attributes:
        layer_id: 图层ID
        matrix: 局部坐标 → 画布坐标
        width: 内容宽度（局部坐标）
        height: 内容高度（局部坐标）
    """

    layer_id: str
    matrix: AffineMatrix
    width: float
    height: float

    def contains(self, x: float, y: float) -> bool:
        """画布坐标点是否落在内容框内."""
        try:
            local_x, local_y = self.matrix.inverse().apply(x, y)
        except ValueError:
            return False
        return abs(local_x) <= self.width / 2 and abs(local_y) <= self.height / 2

    def corners(self) -> list[tuple[float, float]]:
        """内容框四角的画布坐标（用于绘制选中框）."""
        hw, hh = self.width / 2, self.height / 2
        return [
            self.matrix.apply(-hw, -hh),
            self.matrix.apply(hw, -hh),
            self.matrix.apply(hw, hh),
            self.matrix.apply(-hw, hh),
        ]
