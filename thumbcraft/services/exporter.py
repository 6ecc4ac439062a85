"""导出服务.

把画布文档以逻辑分辨率 (1920x1080) 渲染为 PNG。
"""

from __future__ import annotations

import asyncio
import io
from pathlib import Path
from typing import Optional

from PIL import Image

from thumbcraft.models.canvas_document import CanvasDocument
from thumbcraft.services.asset_loader import AssetLoader, FontRegistry, collect_font_tokens
from thumbcraft.services.document_renderer import RenderReport, render_document
from thumbcraft.services.render_surface import RasterSurface
from thumbcraft.utils.constants import EXPORT_FORMAT, EXPORT_PREFIX
from thumbcraft.utils.exceptions import ExportError
from thumbcraft.utils.helpers import get_timestamp_ms
from thumbcraft.utils.logger import setup_logger

logger = setup_logger(__name__)


def export_filename(prefix: str = EXPORT_PREFIX, timestamp_ms: Optional[int] = None) -> str:
    """生成导出文件名 <prefix>-<毫秒时间戳>.png."""
    stamp = get_timestamp_ms() if timestamp_ms is None else timestamp_ms
    return f"{prefix}-{stamp}.png"


async def render_export_image(
    document: CanvasDocument,
    loader: AssetLoader,
    fonts: FontRegistry,
) -> tuple[Image.Image, RenderReport]:
    """等待资源就绪后渲染导出图片.

    Raises:
        ExportError: 所有可见图层都绘制失败
    """
    bundle = await loader.prefetch(document)
    await fonts.ensure_ready(collect_font_tokens(document))

    width, height = document.canvas_size
    surface = RasterSurface(width, height)
    report = render_document(document, surface, bundle, fonts)

    if report.failed:
        logger.warning(f"导出时跳过 {len(report.failed)} 个图层: {report.failed}")
    if report.all_failed:
        raise ExportError(f"所有可见图层都无法绘制 ({len(report.failed)} 个)")
    return surface.image, report


async def render_png_bytes(
    document: CanvasDocument,
    loader: AssetLoader,
    fonts: FontRegistry,
) -> bytes:
    """渲染为 PNG 字节."""
    image, _ = await render_export_image(document, loader, fonts)
    buffer = io.BytesIO()
    image.save(buffer, format=EXPORT_FORMAT)
    return buffer.getvalue()


async def export_document(
    document: CanvasDocument,
    output_dir: Path,
    loader: AssetLoader,
    fonts: FontRegistry,
    prefix: str = EXPORT_PREFIX,
) -> Path:
    """导出画布为 PNG 文件.

    空文档导出占位背景。

    Args:
        document: 画布文档
        output_dir: 输出目录（不存在时创建）
        loader: 图片加载器
        fonts: 字体注册表
        prefix: 文件名前缀

    Returns:
        导出文件路径

    Raises:
        ExportError: 全部图层失败或文件写入失败
    """
    image, report = await render_export_image(document, loader, fonts)

    output_path = Path(output_dir) / export_filename(prefix)
    loop = asyncio.get_running_loop()
    try:
        await loop.run_in_executor(None, _save_png, image, output_path)
    except OSError as e:
        logger.error(f"导出文件写入失败: {output_path}, {e}")
        raise ExportError(f"无法写入导出文件: {output_path}") from e

    logger.info(f"导出完成: {output_path} (绘制 {len(report.drawn)} 个图层)")
    return output_path


def _save_png(image: Image.Image, path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    image.save(path, format=EXPORT_FORMAT)
