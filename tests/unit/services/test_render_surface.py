"""绘图表面单元测试."""

from __future__ import annotations

import math

import pytest
from PIL import Image

from thumbcraft.core.transform import AffineMatrix
from thumbcraft.models.canvas_document import BrandFont
from thumbcraft.services.render_surface import RasterSurface, ShadowStyle


BLACK = (0, 0, 0, 255)
WHITE = (255, 255, 255, 255)


class TestState:
    """测试状态栈."""

    def test_save_restore(self) -> None:
        """测试恢复变换与投影."""
        surface = RasterSurface(10, 10)
        surface.save()
        surface.translate(5, 5)
        surface.set_shadow(BLACK, 4, 2, 2)
        surface.restore()
        assert surface.matrix == AffineMatrix.identity()
        assert surface.shadow is None

    def test_saved_context(self) -> None:
        """测试上下文管理器在异常时也会恢复."""
        surface = RasterSurface(10, 10)
        with pytest.raises(RuntimeError):
            with surface.saved():
                surface.rotate(math.pi)
                raise RuntimeError("boom")
        assert surface.matrix == AffineMatrix.identity()

    def test_restore_without_save(self) -> None:
        """测试多余的 restore 被忽略."""
        surface = RasterSurface(10, 10)
        surface.restore()
        assert surface.matrix == AffineMatrix.identity()

    def test_shadow_style(self) -> None:
        """测试投影可见性判断."""
        assert not ShadowStyle((0, 0, 0, 0), 10, 4, 4).is_visible
        assert not ShadowStyle(BLACK).is_visible
        assert ShadowStyle(BLACK, blur=2).is_visible
        assert ShadowStyle(BLACK, blur=10).margin == 15


class TestFill:
    """测试填充."""

    def test_fill_rect_with_translate(self) -> None:
        """测试平移后填充."""
        surface = RasterSurface(20, 20)
        surface.translate(10, 10)
        surface.fill_rect(0, 0, 5, 5, (255, 0, 0, 255))
        assert surface.image.getpixel((12, 12)) == (255, 0, 0, 255)
        assert surface.image.getpixel((5, 5)) == (0, 0, 0, 0)

    def test_fill_rect_clipped(self) -> None:
        """测试超出画布的部分被裁掉."""
        surface = RasterSurface(20, 20)
        surface.fill_rect(-10, -10, 20, 20, WHITE)
        assert surface.image.getpixel((0, 0)) == WHITE
        assert surface.image.getpixel((15, 15)) == (0, 0, 0, 0)

    def test_gradient_to_bottom(self) -> None:
        """测试垂直渐变：顶部接近黑色，底部接近白色."""
        surface = RasterSurface(40, 200)
        surface.fill_linear_gradient((0, 0, 40, 200), (0, 0), (0, 200), BLACK, WHITE)
        top = surface.image.getpixel((20, 0))
        middle = surface.image.getpixel((20, 100))
        bottom = surface.image.getpixel((20, 199))
        assert top[0] < 10
        assert bottom[0] > 245
        assert 110 < middle[0] < 145
        assert surface.image.getpixel((0, 100)) == middle

    def test_gradient_to_right(self) -> None:
        """测试水平渐变."""
        surface = RasterSurface(200, 20)
        surface.fill_linear_gradient((0, 0, 200, 20), (0, 0), (200, 0), BLACK, WHITE)
        assert surface.image.getpixel((0, 10))[0] < 10
        assert surface.image.getpixel((199, 10))[0] > 245

    def test_gradient_degenerate(self) -> None:
        """测试起止点重合时填充终点色."""
        surface = RasterSurface(10, 10)
        surface.fill_linear_gradient((0, 0, 10, 10), (5, 5), (5, 5), BLACK, WHITE)
        assert surface.image.getpixel((5, 5)) == WHITE


class TestDrawImage:
    """测试绘制图片."""

    def test_draw_scaled(self) -> None:
        """测试缩放绘制."""
        surface = RasterSurface(100, 100)
        surface.draw_image(Image.new("RGB", (10, 10), (0, 0, 255)), 0, 0, 50, 50)
        assert surface.image.getpixel((40, 40)) == (0, 0, 255, 255)
        assert surface.image.getpixel((60, 60)) == (0, 0, 0, 0)

    def test_draw_rotated(self) -> None:
        """测试旋转绘制."""
        surface = RasterSurface(100, 100)
        surface.translate(50, 50)
        surface.rotate(math.pi / 2)
        surface.draw_image(Image.new("RGBA", (60, 10), WHITE), -30, -5)
        # 旋转 90 度后变为竖条
        assert surface.image.getpixel((50, 25)) == WHITE
        assert surface.image.getpixel((25, 50))[3] == 0

    def test_shadow_offset(self) -> None:
        """测试投影偏移."""
        surface = RasterSurface(60, 60, background=WHITE)
        surface.set_shadow(BLACK, 0, 10, 10)
        surface.fill_rect(10, 10, 20, 20, (255, 0, 0, 255))
        assert surface.image.getpixel((20, 20)) == (255, 0, 0, 255)
        assert surface.image.getpixel((35, 35)) == BLACK
        assert surface.image.getpixel((5, 5)) == WHITE

    def test_shadow_blur_spreads(self) -> None:
        """测试模糊投影向外扩散."""
        surface = RasterSurface(100, 100, background=WHITE)
        surface.set_shadow(BLACK, 20, 0, 0)
        surface.fill_rect(40, 40, 20, 20, (255, 0, 0, 255))
        r, g, b, _ = surface.image.getpixel((62, 50))
        assert r < 255 and g < 255

    def test_clear_shadow(self) -> None:
        """测试清除投影."""
        surface = RasterSurface(60, 60, background=WHITE)
        surface.set_shadow(BLACK, 0, 10, 10)
        surface.clear_shadow()
        surface.fill_rect(10, 10, 20, 20, (255, 0, 0, 255))
        assert surface.image.getpixel((35, 35)) == WHITE


class TestText:
    """测试文字绘制."""

    def test_stroke_then_fill(self, fonts) -> None:
        """测试描边与填充都可见."""
        font = fonts.get_font(BrandFont.BEBAS_NEUE, 80)
        surface = RasterSurface(600, 200, background=(17, 17, 17, 255))
        surface.translate(300, 100)
        surface.stroke_text("HELLO", 0, 0, font, BLACK, 16)
        surface.fill_text("HELLO", 0, 0, font, WHITE)

        colors = surface.image.getcolors(maxcolors=600 * 200)
        assert any(c[0] < 5 and c[1] < 5 and c[2] < 5 for _, c in colors)
        assert any(c[0] > 250 and c[1] > 250 and c[2] > 250 for _, c in colors)

    def test_measure_text(self, fonts) -> None:
        """测试文字测量."""
        font = fonts.get_font(BrandFont.BEBAS_NEUE, 80)
        surface = RasterSurface(10, 10)
        short_width, height = surface.measure_text("AB", font)
        long_width, _ = surface.measure_text("ABABAB", font)
        assert height > 0
        assert long_width > short_width

    def test_empty_text_noop(self, fonts) -> None:
        """测试空文字不绘制."""
        font = fonts.get_font(BrandFont.BEBAS_NEUE, 40)
        surface = RasterSurface(50, 50)
        surface.fill_text("", 25, 25, font, WHITE)
        surface.stroke_text("A", 25, 25, font, WHITE, 0)
        assert surface.image.getbbox() is None
