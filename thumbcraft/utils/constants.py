"""应用常量定义."""

from pathlib import Path

# ===================
# 应用信息
# ===================
APP_NAME = "ThumbCraft 缩略图合成工作室"
APP_VERSION = "0.3.0"
APP_AUTHOR = "Yang"

# ===================
# 路径常量
# ===================
# 应用数据目录
APP_DATA_DIR = Path.home() / ".thumbcraft"

# 日志目录
LOG_DIR = APP_DATA_DIR / "logs"

# 默认导出目录
EXPORT_DIR = APP_DATA_DIR / "exports"

# ===================
# 画布常量
# ===================
# 逻辑画布尺寸（所有图层坐标均使用该坐标系）
CANVAS_WIDTH = 1920
CANVAS_HEIGHT = 1080
CANVAS_SIZE = (CANVAS_WIDTH, CANVAS_HEIGHT)

# 视口内边距（画布适配视口时预留）
DEFAULT_VIEWPORT_PADDING = 40

# 复制图层的位置偏移
DUPLICATE_OFFSET = 40

# 空画布占位填充色
PLACEHOLDER_FILL = "#111111"

# ===================
# 效果参数
# ===================
# 图片图层投影
IMAGE_SHADOW_COLOR = (0, 0, 0, 204)  # rgba(0,0,0,0.8)
IMAGE_SHADOW_BLUR = 30
IMAGE_SHADOW_OFFSET = (10, 10)

# 图片图层外发光
IMAGE_GLOW_BLUR = 40

# ===================
# 资源加载
# ===================
DEFAULT_ASSET_TIMEOUT = 10.0  # 秒
DEFAULT_FONT_TIMEOUT = 5.0  # 秒

# 支持的图片格式
SUPPORTED_IMAGE_FORMATS = {".jpg", ".jpeg", ".png", ".webp", ".bmp", ".gif"}

# ===================
# 导出设置
# ===================
EXPORT_PREFIX = "thumbcraft-export"
EXPORT_FORMAT = "PNG"
