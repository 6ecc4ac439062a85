"""数据模型模块."""

from thumbcraft.models.canvas_document import (
    AnyLayer,
    BackgroundMode,
    BrandFont,
    CanvasDocument,
    GradientBackground,
    GradientDirection,
    ImageLayer,
    LayerDirection,
    LayerElement,
    LayerType,
    TextLayer,
)
from thumbcraft.models.concept import Concept

__all__ = [
    "AnyLayer",
    "BackgroundMode",
    "BrandFont",
    "CanvasDocument",
    "Concept",
    "GradientBackground",
    "GradientDirection",
    "ImageLayer",
    "LayerDirection",
    "LayerElement",
    "LayerType",
    "TextLayer",
]
