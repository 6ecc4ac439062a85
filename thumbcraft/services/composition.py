"""画布组合服务.

用外部协作方（概念生成、图片生成、抠图、素材库）的产出初始化或扩充画布文档。
所有函数都是纯函数：输入旧文档，返回新文档。
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional

from thumbcraft.models.canvas_document import (
    CanvasDocument,
    GradientDirection,
    ImageLayer,
    TextLayer,
)
from thumbcraft.models.concept import Concept
from thumbcraft.utils.logger import setup_logger

logger = setup_logger(__name__)


@dataclass(frozen=True)
class GradientPreset:
    """渐变背景预设."""

    name: str
    color_start: str
    color_end: str


# 背景渐变预设
GRADIENT_PRESETS: tuple[GradientPreset, ...] = (
    GradientPreset("Midnight", "#0f172a", "#312e81"),
    GradientPreset("Hot YouTube", "#ef4444", "#7f1d1d"),
    GradientPreset("Oceanic", "#0ea5e9", "#1e3a8a"),
    GradientPreset("Neon Violet", "#a855f7", "#4c1d95"),
    GradientPreset("Emerald", "#10b981", "#064e3b"),
    GradientPreset("Sunset", "#f97316", "#be123c"),
    GradientPreset("Charcoal", "#27272a", "#09090b"),
    GradientPreset("Gold", "#eab308", "#854d0e"),
)


def get_gradient_preset(name: str) -> Optional[GradientPreset]:
    """按名称查找渐变预设."""
    for preset in GRADIENT_PRESETS:
        if preset.name == name:
            return preset
    return None


def apply_gradient_preset(
    document: CanvasDocument,
    preset: GradientPreset,
    direction: Optional[GradientDirection] = None,
) -> CanvasDocument:
    """切换为渐变背景并应用预设颜色，方向保持不变（除非指定）."""
    return document.with_background_gradient(preset.color_start, preset.color_end, direction)


def apply_generated_thumbnail(
    document: CanvasDocument,
    concept: Optional[Concept],
    image_uri: str,
) -> CanvasDocument:
    """用生成的缩略图重置画布.

    背景替换为生成图片；图层重置为一个标题文字图层，
    若原文档有产品主体图层则保留在其上方。

    Args:
        document: 当前文档
        concept: 对应的创意概念（可为空）
        image_uri: 生成的图片地址

    Returns:
        新文档
    """
    hook_text = concept.hook_text if concept else None
    headline = TextLayer.create_headline(hook_text or None)

    layers = [headline]
    product = document.product_layer
    if product is not None:
        layers.append(product)

    logger.info(f"应用生成缩略图，保留产品图层: {product is not None}")
    return document.with_background_image(image_uri).replace_layers(layers)


def apply_split_layers(
    document: CanvasDocument,
    background_uri: str,
    subject_uri: str,
) -> CanvasDocument:
    """应用拆分结果：替换背景并在最前添加主体图层."""
    layer = ImageLayer.create_product(subject_uri)
    return document.with_background_image(background_uri).add_layer(layer)


def insert_product(
    document: CanvasDocument,
    source_uri: str,
    original_source_uri: Optional[str] = None,
) -> tuple[CanvasDocument, str]:
    """在最前添加产品主体图层.

    Returns:
        (新文档, 新图层ID)
    """
    layer = ImageLayer.create_product(source_uri, original_source_uri)
    return document.add_layer(layer), layer.id


def insert_elements(
    document: CanvasDocument,
    uris: Iterable[str],
) -> tuple[CanvasDocument, list[str]]:
    """依次添加装饰元素图层（0.8 缩放）.

    Returns:
        (新文档, 新图层ID列表)
    """
    new_ids: list[str] = []
    for uri in uris:
        if not uri:
            continue
        layer = ImageLayer.create_element(uri)
        document = document.add_layer(layer)
        new_ids.append(layer.id)
    return document, new_ids


def new_text_layer(text: Optional[str] = None) -> TextLayer:
    """创建默认文字图层."""
    return TextLayer.create(text) if text else TextLayer.create()
