"""辅助函数模块.

提供各种通用辅助函数。
"""

from __future__ import annotations

import re
import time
import uuid
from typing import Tuple

RGBAColor = Tuple[int, int, int, int]

# 安全回退颜色（不透明黑）
FALLBACK_COLOR: RGBAColor = (0, 0, 0, 255)

_HEX_COLOR_PATTERN = re.compile(r"^#([A-Fa-f0-9]{3}){1,2}$")


def generate_layer_id() -> str:
    """生成唯一的图层ID.

    Returns:
        32位十六进制UUID字符串
    """
    return uuid.uuid4().hex


def get_timestamp_ms() -> int:
    """获取当前毫秒时间戳."""
    return int(time.time() * 1000)


def clamp(value: float, min_val: float, max_val: float) -> float:
    """限制值在指定范围内.

    Args:
        value: 原始值
        min_val: 最小值
        max_val: 最大值

    Returns:
        限制后的值
    """
    return max(min_val, min(max_val, value))


def is_hex_color(value: str) -> bool:
    """是否为合法的十六进制颜色（#rgb 或 #rrggbb）."""
    return bool(_HEX_COLOR_PATTERN.match(value or ""))


def hex_to_rgba(hex_color: str, alpha: float = 1.0) -> RGBAColor:
    """十六进制颜色转 RGBA.

    非法颜色回退为黑色（保留给定透明度），不抛出异常。

    Args:
        hex_color: 十六进制颜色字符串，支持 #rgb 与 #rrggbb
        alpha: 透明度 (0-1)

    Returns:
        RGBA 元组
    """
    a = int(round(clamp(alpha, 0.0, 1.0) * 255))
    if not is_hex_color(hex_color):
        return (0, 0, 0, a)

    digits = hex_color[1:]
    if len(digits) == 3:
        digits = "".join(c * 2 for c in digits)
    r, g, b = (int(digits[i:i + 2], 16) for i in (0, 2, 4))
    return (r, g, b, a)


def parse_color(value: str) -> RGBAColor:
    """解析颜色字符串.

    支持 #rgb / #rrggbb 以及 "transparent"，其余输入回退为不透明黑。

    Args:
        value: 颜色字符串

    Returns:
        RGBA 元组
    """
    if value == "transparent":
        return (0, 0, 0, 0)
    if is_hex_color(value):
        return hex_to_rgba(value)
    return FALLBACK_COLOR
