"""资源加载服务.

负责渲染前的资源就绪：

    - 图片：data URI / http(s) URL / file:// URI / 本地路径
    - 字体：品牌字体标识解析为字体文件

每个资源独立计时，失败只影响对应图层，不会中断合成。
"""

from __future__ import annotations

import asyncio
import base64
import binascii
import io
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Optional, Protocol
from urllib.parse import unquote, unquote_to_bytes, urlparse

import httpx
from PIL import Image, ImageFont

from thumbcraft.models.canvas_document import (
    BackgroundMode,
    BrandFont,
    CanvasDocument,
    ImageLayer,
    TextLayer,
)
from thumbcraft.utils.constants import DEFAULT_ASSET_TIMEOUT, DEFAULT_FONT_TIMEOUT
from thumbcraft.utils.exceptions import (
    AssetLoadError,
    AssetTimeoutError,
    UnsupportedAssetUriError,
)
from thumbcraft.utils.logger import setup_logger

logger = setup_logger(__name__)


# ===================
# 资源集合
# ===================


class ImageSource(Protocol):
    """按地址取图片的资源来源."""

    def get(self, uri: str) -> Optional[Image.Image]: ...


@dataclass
class AssetBundle:
    """一次预取得到的图片集合.

    Attributes:
        images: 地址 → 图片，加载失败的地址映射为 None
    """

    images: dict[str, Optional[Image.Image]] = field(default_factory=dict)

    def get(self, uri: str) -> Optional[Image.Image]:
        """获取图片，未加载或加载失败返回 None."""
        return self.images.get(uri)

    @property
    def failed_uris(self) -> list[str]:
        """加载失败的地址."""
        return [uri for uri, image in self.images.items() if image is None]

    def __contains__(self, uri: object) -> bool:
        return uri in self.images

    def __len__(self) -> int:
        return len(self.images)


def collect_image_uris(document: CanvasDocument) -> list[str]:
    """收集文档渲染需要的图片地址（背景 + 可见图片图层，去重保序）."""
    uris: list[str] = []
    if document.background_mode == BackgroundMode.IMAGE and document.background_image_uri:
        uris.append(document.background_image_uri)
    for layer in document.visible_layers:
        if isinstance(layer, ImageLayer) and layer.has_source:
            uris.append(layer.source_uri)
    return list(dict.fromkeys(uris))


def collect_font_tokens(document: CanvasDocument) -> list[BrandFont]:
    """收集可见文字图层使用的字体."""
    tokens = [layer.font_token for layer in document.visible_layers if isinstance(layer, TextLayer)]
    return list(dict.fromkeys(tokens))


# ===================
# 图片加载
# ===================


class AssetLoader:
    """图片加载器.

    加载结果（包括失败）按地址缓存，同一地址只加载一次。

    Example:
        >>> loader = AssetLoader(timeout=5)
        >>> image = await loader.load_image("https://example.com/a.png")
        >>> bundle = await loader.prefetch(document)
    """

    def __init__(
        self,
        timeout: float = DEFAULT_ASSET_TIMEOUT,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        """初始化图片加载器.

        Args:
            timeout: 单个资源加载超时（秒）
            http_client: 外部提供的 HTTP 客户端，不提供时按需创建
        """
        self._timeout = timeout
        self._external_client = http_client
        self._http_client: Optional[httpx.AsyncClient] = None
        self._client_loop: Optional[asyncio.AbstractEventLoop] = None
        self._cache: dict[str, Optional[Image.Image]] = {}

    @property
    def timeout(self) -> float:
        """单个资源加载超时."""
        return self._timeout

    @property
    def http_client(self) -> httpx.AsyncClient:
        """获取 HTTP 客户端（绑定当前事件循环）."""
        if self._external_client is not None:
            return self._external_client
        loop = asyncio.get_running_loop()
        if self._http_client is None or self._client_loop is not loop:
            self._http_client = httpx.AsyncClient(timeout=self._timeout, follow_redirects=True)
            self._client_loop = loop
        return self._http_client

    # ========================
    # 缓存
    # ========================

    def is_cached(self, uri: str) -> bool:
        """地址是否已有加载结果（成功或失败）."""
        return uri in self._cache

    def cached(self, uri: str) -> Optional[Image.Image]:
        """获取缓存的图片."""
        return self._cache.get(uri)

    def missing(self, document: CanvasDocument) -> list[str]:
        """文档中尚未加载的图片地址."""
        return [uri for uri in collect_image_uris(document) if uri not in self._cache]

    def snapshot(self) -> AssetBundle:
        """当前缓存的快照."""
        return AssetBundle(images=dict(self._cache))

    def evict(self, uri: str) -> None:
        """移除缓存（下次重新加载）."""
        self._cache.pop(uri, None)

    def clear(self) -> None:
        """清空缓存."""
        self._cache.clear()

    # ========================
    # 加载
    # ========================

    async def load_image(self, uri: str) -> Optional[Image.Image]:
        """加载图片.

        失败或超时只记录日志并缓存为 None，不向调用方抛出。

        Args:
            uri: 图片地址

        Returns:
            RGBA 图片，失败返回 None
        """
        if uri in self._cache:
            return self._cache[uri]

        image: Optional[Image.Image] = None
        try:
            image = await asyncio.wait_for(self._fetch(uri), timeout=self._timeout)
            logger.debug(f"图片加载完成: {_describe(uri)} {image.size}")
        except asyncio.TimeoutError:
            error = AssetTimeoutError(uri, self._timeout)
            logger.warning(str(error))
        except AssetLoadError as e:
            logger.warning(str(e))
        except Exception as e:
            logger.error(f"图片加载异常: {_describe(uri)} - {e}", exc_info=True)

        self._cache[uri] = image
        return image

    async def prefetch(self, document: CanvasDocument) -> AssetBundle:
        """并发加载文档需要的全部图片.

        Args:
            document: 画布文档

        Returns:
            本次需要的图片集合
        """
        uris = collect_image_uris(document)
        if not uris:
            return AssetBundle()

        images = await asyncio.gather(*(self.load_image(uri) for uri in uris))
        bundle = AssetBundle(images=dict(zip(uris, images)))
        if bundle.failed_uris:
            logger.warning(f"预取完成，{len(bundle.failed_uris)}/{len(uris)} 个图片加载失败")
        else:
            logger.debug(f"预取完成: {len(uris)} 个图片")
        return bundle

    async def _fetch(self, uri: str) -> Image.Image:
        data = await self._read_bytes(uri)
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, _decode_image, data, uri)

    async def _read_bytes(self, uri: str) -> bytes:
        """读取资源字节.

        Raises:
            AssetLoadError: 读取失败
            UnsupportedAssetUriError: 地址格式不支持
        """
        if not uri:
            raise AssetLoadError(uri, "地址为空")

        if uri.startswith("data:"):
            return _decode_data_uri(uri)

        try:
            parsed = urlparse(uri)
        except ValueError as e:
            raise AssetLoadError(uri, f"地址格式错误: {e}") from e
        scheme = parsed.scheme.lower()

        if scheme in ("http", "https"):
            try:
                response = await self.http_client.get(uri)
            except httpx.TimeoutException as e:
                raise AssetTimeoutError(uri, self._timeout) from e
            except (httpx.HTTPError, httpx.InvalidURL) as e:
                raise AssetLoadError(uri, f"网络错误: {e}") from e
            if response.status_code != 200:
                raise AssetLoadError(uri, f"HTTP {response.status_code}")
            return response.content

        if scheme == "file":
            path = Path(unquote(parsed.path))
        elif scheme == "" or len(scheme) == 1:
            # 无协议或 Windows 盘符
            path = Path(uri).expanduser()
        else:
            raise UnsupportedAssetUriError(uri)

        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(None, path.read_bytes)
        except (OSError, ValueError) as e:
            raise AssetLoadError(uri, f"读取文件失败: {e}") from e

    async def close(self) -> None:
        """关闭内部创建的 HTTP 客户端."""
        if self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None
            self._client_loop = None
            logger.debug("图片加载器 HTTP 客户端已关闭")

    async def __aenter__(self) -> "AssetLoader":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()


def _decode_data_uri(uri: str) -> bytes:
    header, sep, payload = uri.partition(",")
    if not sep:
        raise AssetLoadError(uri, "data URI 格式错误")
    try:
        if header.endswith(";base64"):
            return base64.b64decode(payload, validate=False)
        return unquote_to_bytes(payload)
    except (binascii.Error, ValueError) as e:
        raise AssetLoadError(uri, f"data URI 解码失败: {e}") from e


def _decode_image(data: bytes, uri: str) -> Image.Image:
    try:
        with Image.open(io.BytesIO(data)) as image:
            image.load()
            return image.convert("RGBA")
    except (OSError, ValueError, Image.DecompressionBombError) as e:
        raise AssetLoadError(uri, f"图片解码失败: {e}") from e


def _describe(uri: str) -> str:
    if uri.startswith("data:"):
        return f"data URI ({len(uri)} 字符)"
    return uri


# ===================
# 字体
# ===================

# 字体搜索路径
FONT_SEARCH_PATHS = [
    "/System/Library/Fonts/",
    "/System/Library/Fonts/Supplemental/",
    "/Library/Fonts/",
    "~/Library/Fonts/",
    "C:/Windows/Fonts/",
    "~/.local/share/fonts/",
    "~/.fonts/",
    "/usr/share/fonts/",
    "/usr/local/share/fonts/",
]

# 品牌字体候选文件（按字重从粗到细）
BRAND_FONT_FILES: dict[BrandFont, list[str]] = {
    BrandFont.BEBAS_NEUE: ["BebasNeue-Regular.ttf", "BebasNeue.ttf", "Bebas Neue.ttf", "BebasNeue.otf"],
    BrandFont.ANTON: ["Anton-Regular.ttf", "Anton.ttf"],
    BrandFont.MONTSERRAT: [
        "Montserrat-Black.ttf",
        "Montserrat-ExtraBold.ttf",
        "Montserrat-Bold.ttf",
        "Montserrat-Regular.ttf",
    ],
    BrandFont.ROBOTO_CONDENSED: [
        "RobotoCondensed-Black.ttf",
        "RobotoCondensed-Bold.ttf",
        "RobotoCondensed-Regular.ttf",
        "Roboto-Black.ttf",
    ],
}

# 品牌字体缺失时的回退
FALLBACK_FONT_FILES = [
    "Impact.ttf",
    "impact.ttf",
    "Arial Black.ttf",
    "ariblk.ttf",
    "Arial Bold.ttf",
    "arialbd.ttf",
    "DejaVuSans-Bold.ttf",
    "LiberationSans-Bold.ttf",
]


class FontRegistry:
    """品牌字体注册表.

    解析结果按字体标识缓存；找不到任何字体文件时使用 Pillow 默认字体。
    """

    def __init__(
        self,
        font_dirs: Optional[Iterable[Path]] = None,
        timeout: float = DEFAULT_FONT_TIMEOUT,
    ) -> None:
        """初始化字体注册表.

        Args:
            font_dirs: 额外的字体目录（优先于系统目录）
            timeout: 字体就绪等待超时（秒）
        """
        extra = [Path(d).expanduser() for d in (font_dirs or [])]
        system = [Path(os.path.expanduser(p)) for p in FONT_SEARCH_PATHS]
        self._search_dirs = extra + system
        self._timeout = timeout
        self._resolved: dict[BrandFont, Optional[Path]] = {}
        self._fallback: Optional[Path] = None
        self._fallback_resolved = False
        self._fonts: dict[tuple[Optional[Path], int], ImageFont.FreeTypeFont | ImageFont.ImageFont] = {}

    @property
    def search_dirs(self) -> list[Path]:
        """字体搜索目录."""
        return list(self._search_dirs)

    def is_ready(self, token: BrandFont) -> bool:
        """字体是否已解析."""
        return token in self._resolved

    def resolve_path(self, token: BrandFont) -> Optional[Path]:
        """解析字体文件路径（阻塞，含文件系统扫描）.

        Returns:
            字体文件路径，品牌字体与回退字体都不存在时返回None
        """
        if token in self._resolved:
            return self._resolved[token]

        path = self._find_file(BRAND_FONT_FILES.get(token, []))
        if path is None:
            path = self._fallback_path()
            logger.warning(f"品牌字体 '{token.value}' 未找到，使用回退字体: {path or 'Pillow 默认字体'}")
        else:
            logger.debug(f"字体解析: {token.value} -> {path}")

        self._resolved[token] = path
        return path

    def _fallback_path(self) -> Optional[Path]:
        if not self._fallback_resolved:
            self._fallback = self._find_file(FALLBACK_FONT_FILES)
            self._fallback_resolved = True
        return self._fallback

    def _find_file(self, names: list[str]) -> Optional[Path]:
        for directory in self._search_dirs:
            if not directory.is_dir():
                continue
            for name in names:
                direct = directory / name
                if direct.is_file():
                    return direct
            for name in names:
                match = next(directory.rglob(name), None)
                if match is not None:
                    return match
        return None

    async def ensure_ready(self, tokens: Iterable[BrandFont]) -> None:
        """在后台线程解析字体，超时后放弃等待.

        超时的字体在绘制时按需解析。
        """
        pending = [token for token in dict.fromkeys(tokens) if token not in self._resolved]
        if not pending:
            return

        loop = asyncio.get_running_loop()
        try:
            await asyncio.wait_for(
                asyncio.gather(*(loop.run_in_executor(None, self.resolve_path, t) for t in pending)),
                timeout=self._timeout,
            )
        except asyncio.TimeoutError:
            logger.warning(f"字体就绪等待超时 ({self._timeout}s): {[t.value for t in pending]}")

    def get_font(self, token: BrandFont, size: float) -> ImageFont.FreeTypeFont | ImageFont.ImageFont:
        """获取指定字号的字体.

        Args:
            token: 品牌字体标识
            size: 字号（像素）

        Returns:
            Pillow 字体对象
        """
        pixel_size = max(1, int(round(size)))
        path = self.resolve_path(token)
        key = (path, pixel_size)
        font = self._fonts.get(key)
        if font is None:
            font = self._load(path, pixel_size)
            self._fonts[key] = font
        return font

    def _load(
        self,
        path: Optional[Path],
        size: int,
    ) -> ImageFont.FreeTypeFont | ImageFont.ImageFont:
        if path is not None:
            try:
                return ImageFont.truetype(str(path), size)
            except OSError as e:
                logger.warning(f"字体加载失败: {path}, {e}")
        return ImageFont.load_default(size)
