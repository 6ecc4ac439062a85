"""ThumbCraft 缩略图合成工作室."""

__version__ = "0.3.0"
