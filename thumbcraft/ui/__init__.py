"""UI模块."""
