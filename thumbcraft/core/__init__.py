"""核心模块."""
