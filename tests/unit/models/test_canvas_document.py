"""画布文档模型单元测试."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from thumbcraft.models.canvas_document import (
    BackgroundMode,
    CanvasDocument,
    GradientDirection,
    ImageLayer,
    LayerDirection,
    LayerType,
    TextLayer,
)


# ========================
# Fixtures
# ========================


@pytest.fixture
def three_layers() -> CanvasDocument:
    """包含三个图层的文档 (a, b, c)."""
    doc = CanvasDocument()
    for layer_id in ("a", "b", "c"):
        doc = doc.add_layer(TextLayer(id=layer_id, text=layer_id))
    return doc


class TestLayerDefaults:
    """测试图层默认值与工厂方法."""

    def test_text_layer_defaults(self) -> None:
        """测试文字图层默认值."""
        layer = TextLayer.create()
        assert layer.type == LayerType.TEXT
        assert layer.text == "NEW TEXT"
        assert (layer.x, layer.y) == (960, 540)
        assert layer.stroke_width == 8
        assert layer.stroke_color == "#000000"
        assert layer.has_shadow is True
        assert layer.visible and not layer.locked

    def test_headline(self) -> None:
        """测试标题图层."""
        layer = TextLayer.create_headline("buy now")
        assert layer.font_size == 250
        assert layer.skew_x == -5
        assert layer.shadow_opacity == 1.0
        assert layer.display_text == "BUY NOW"

    def test_product_layer(self) -> None:
        """测试产品主体图层."""
        layer = ImageLayer.create_product("p.png", "raw.png")
        assert layer.scale == 1.0
        assert layer.has_shadow
        assert layer.is_product_marker
        assert layer.original_source_uri == "raw.png"

    def test_element_layer(self) -> None:
        """测试装饰元素图层."""
        layer = ImageLayer.create_element("e.png")
        assert layer.scale == 0.8
        assert not layer.has_shadow
        assert not layer.is_product_marker

    def test_frozen(self) -> None:
        """测试图层不可变."""
        layer = TextLayer.create()
        with pytest.raises(ValidationError):
            layer.x = 10  # type: ignore[misc]

    def test_invalid_scale_rejected(self) -> None:
        """测试非法缩放比例."""
        with pytest.raises(ValidationError):
            ImageLayer(source_uri="a.png", scale=0)


class TestLayerStack:
    """测试图层栈操作."""

    def test_add_layer_is_pure(self) -> None:
        """测试添加图层返回新文档."""
        doc = CanvasDocument()
        new_doc = doc.add_layer(TextLayer.create())
        assert doc.layer_count == 0
        assert new_doc.layer_count == 1

    def test_add_duplicate_id_rejected(self, three_layers: CanvasDocument) -> None:
        """测试重复ID."""
        with pytest.raises(ValueError):
            three_layers.add_layer(TextLayer(id="a"))

    def test_new_layer_on_top(self, three_layers: CanvasDocument) -> None:
        """测试新图层位于最前."""
        doc = three_layers.add_layer(TextLayer(id="d"))
        assert doc.layer_ids == ["a", "b", "c", "d"]

    def test_update_layer(self, three_layers: CanvasDocument) -> None:
        """测试局部更新保留其他字段."""
        doc = three_layers.update_layer("b", x=100, color="#ff0000")
        layer = doc.get_layer("b")
        assert layer.x == 100
        assert layer.color == "#ff0000"
        assert layer.text == "b"
        assert layer.y == 540
        assert doc.layer_ids == ["a", "b", "c"]

    def test_update_cannot_change_identity(self, three_layers: CanvasDocument) -> None:
        """测试 id 与 type 不可更新."""
        doc = three_layers.update_layer("a", id="zzz")
        assert doc is three_layers
        assert doc.has_layer("a")

    def test_update_unknown_layer_noop(self, three_layers: CanvasDocument) -> None:
        """测试更新不存在的图层."""
        assert three_layers.update_layer("missing", x=1) is three_layers

    def test_remove_layer(self, three_layers: CanvasDocument) -> None:
        """测试删除图层."""
        doc = three_layers.remove_layer("b")
        assert doc.layer_ids == ["a", "c"]
        assert doc.remove_layer("missing") is doc

    def test_reorder_forward(self, three_layers: CanvasDocument) -> None:
        """测试上移一层."""
        doc = three_layers.reorder_layer("a", LayerDirection.FORWARD)
        assert doc.layer_ids == ["b", "a", "c"]

    def test_reorder_backward(self, three_layers: CanvasDocument) -> None:
        """测试下移一层."""
        doc = three_layers.reorder_layer("c", LayerDirection.BACKWARD)
        assert doc.layer_ids == ["a", "c", "b"]

    def test_reorder_at_boundary_noop(self, three_layers: CanvasDocument) -> None:
        """测试边界处移动为空操作."""
        assert three_layers.reorder_layer("c", LayerDirection.FORWARD) is three_layers
        assert three_layers.reorder_layer("a", LayerDirection.BACKWARD) is three_layers
        assert three_layers.reorder_layer("missing", LayerDirection.FORWARD) is three_layers

    def test_reorder_accepts_string_direction(self, three_layers: CanvasDocument) -> None:
        """测试方向可用字符串."""
        doc = three_layers.reorder_layer("a", "forward")
        assert doc.layer_ids == ["b", "a", "c"]

    def test_duplicate_layer(self, three_layers: CanvasDocument) -> None:
        """测试复制图层."""
        source = three_layers.get_layer("a").moved_to(100, 200)
        doc = three_layers.replace_layers([source, *three_layers.layers[1:]])

        doc, new_id = doc.duplicate_layer("a")
        assert new_id is not None and new_id != "a"
        assert doc.layer_ids[-1] == new_id

        copy = doc.get_layer(new_id)
        assert (copy.x, copy.y) == (140, 240)
        original = source.model_dump(exclude={"id", "x", "y"})
        assert copy.model_dump(exclude={"id", "x", "y"}) == original

    def test_duplicate_unknown(self, three_layers: CanvasDocument) -> None:
        """测试复制不存在的图层."""
        doc, new_id = three_layers.duplicate_layer("missing")
        assert doc is three_layers
        assert new_id is None

    def test_toggle_visibility_and_lock(self, three_layers: CanvasDocument) -> None:
        """测试切换可见性与锁定."""
        doc = three_layers.toggle_visibility("a").toggle_lock("b")
        assert doc.get_layer("a").visible is False
        assert doc.get_layer("b").locked is True
        assert [layer.id for layer in doc.visible_layers] == ["b", "c"]

        doc = doc.toggle_visibility("a")
        assert doc.get_layer("a").visible is True


class TestBackground:
    """测试背景设置."""

    def test_default_is_empty(self) -> None:
        """测试默认空画布."""
        doc = CanvasDocument()
        assert doc.is_empty
        assert doc.canvas_size == (1920, 1080)

    def test_image_background(self) -> None:
        """测试图片背景."""
        doc = CanvasDocument().with_background_image("bg.png")
        assert doc.background_mode == BackgroundMode.IMAGE
        assert doc.background_image_uri == "bg.png"
        assert not doc.is_empty

    def test_gradient_background_keeps_unspecified(self) -> None:
        """测试渐变背景沿用未指定参数."""
        doc = CanvasDocument().with_background_gradient(color_start="#ff0000")
        doc = doc.with_background_gradient(direction=GradientDirection.TO_RIGHT)
        gradient = doc.background_gradient
        assert doc.background_mode == BackgroundMode.GRADIENT
        assert gradient.color_start == "#ff0000"
        assert gradient.color_end == "#000000"
        assert gradient.direction == GradientDirection.TO_RIGHT

    def test_product_layer(self) -> None:
        """测试查找产品主体图层."""
        product = ImageLayer.create_product("p.png")
        doc = CanvasDocument().add_layer(ImageLayer.create_element("e.png")).add_layer(product)
        assert doc.product_layer.id == product.id


class TestSerialization:
    """测试序列化."""

    def test_json_round_trip(self, three_layers: CanvasDocument) -> None:
        """测试JSON序列化保持图层类型与顺序."""
        doc = three_layers.add_layer(ImageLayer.create_product("p.png"))
        doc = doc.with_background_gradient("#123456", "#654321", GradientDirection.TO_TOP_RIGHT)

        restored = CanvasDocument.from_json(doc.to_json())
        assert restored == doc
        assert isinstance(restored.layers[-1], ImageLayer)
        assert isinstance(restored.layers[0], TextLayer)
