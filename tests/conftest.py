"""Pytest 配置和共享 fixtures."""

from __future__ import annotations

import base64
import io
import os

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

import pytest
from PIL import Image

from thumbcraft.core.config_manager import ConfigManager
from thumbcraft.models.canvas_document import CanvasDocument
from thumbcraft.services.asset_loader import FontRegistry


def make_png_bytes(size: tuple[int, int] = (40, 20), color=(255, 0, 0, 255)) -> bytes:
    """生成纯色 PNG 字节."""
    buffer = io.BytesIO()
    Image.new("RGBA", size, color).save(buffer, format="PNG")
    return buffer.getvalue()


def make_data_uri(size: tuple[int, int] = (40, 20), color=(255, 0, 0, 255)) -> str:
    """生成纯色 PNG 的 data URI."""
    encoded = base64.b64encode(make_png_bytes(size, color)).decode("ascii")
    return f"data:image/png;base64,{encoded}"


@pytest.fixture(autouse=True)
def isolated_config(tmp_path):
    """每个测试使用独立的配置管理器与用户配置文件."""
    ConfigManager.reset_instance()
    manager = ConfigManager(user_config_file=tmp_path / "config.json")
    yield manager
    ConfigManager.reset_instance()


@pytest.fixture
def empty_document() -> CanvasDocument:
    """空画布文档."""
    return CanvasDocument()


@pytest.fixture
def fonts(tmp_path) -> FontRegistry:
    """字体注册表."""
    return FontRegistry(font_dirs=[tmp_path / "fonts"])


@pytest.fixture
def red_image() -> Image.Image:
    """100x100 红色图片."""
    return Image.new("RGBA", (100, 100), (255, 0, 0, 255))


@pytest.fixture
def png_bytes():
    """纯色 PNG 字节工厂."""
    return make_png_bytes


@pytest.fixture
def data_uri():
    """纯色 PNG data URI 工厂."""
    return make_data_uri
