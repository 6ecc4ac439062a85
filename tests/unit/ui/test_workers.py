"""资源工作器测试."""

from __future__ import annotations

import pytest

from thumbcraft.models.canvas_document import CanvasDocument, ImageLayer
from thumbcraft.services.asset_loader import AssetLoader
from thumbcraft.ui.workers import AssetWorker


@pytest.fixture
def worker(app, fonts) -> AssetWorker:
    """资源工作器（在当前线程直接调用）."""
    return AssetWorker(AssetLoader(timeout=2), fonts)


class TestAssetWorker:
    """测试资源工作器."""

    def test_prefetch(self, worker: AssetWorker, tmp_path, png_bytes) -> None:
        """测试预取结果通过信号交付."""
        path = tmp_path / "a.png"
        path.write_bytes(png_bytes((10, 10)))
        doc = (
            CanvasDocument()
            .add_layer(ImageLayer.create_element(str(path)))
            .add_layer(ImageLayer.create_element(str(tmp_path / "missing.png")))
        )
        bundles: list = []
        worker.prefetch_finished.connect(bundles.append)

        worker.prefetch(doc)
        assert len(bundles) == 1
        assert bundles[0].get(str(path)).size == (10, 10)
        assert bundles[0].failed_uris == [str(tmp_path / "missing.png")]

    def test_export(self, worker: AssetWorker, tmp_path) -> None:
        """测试导出成功信号."""
        finished: list[str] = []
        worker.export_finished.connect(finished.append)
        worker.set_export_prefix("unit")
        worker.export(CanvasDocument(), tmp_path)
        assert len(finished) == 1
        assert "unit-" in finished[0]

    def test_export_failed(self, worker: AssetWorker, tmp_path) -> None:
        """测试导出失败信号."""
        failed: list[str] = []
        worker.export_failed.connect(failed.append)
        doc = CanvasDocument().add_layer(ImageLayer(source_uri=str(tmp_path / "missing.png")))
        worker.export(doc, tmp_path)
        assert len(failed) == 1
        assert failed[0]

    def test_prefetch_unexpected_error(self, worker: AssetWorker, monkeypatch) -> None:
        """测试预取异常时所有图片标记为失败，信号照常发出."""

        async def broken(document):
            raise RuntimeError("boom")

        monkeypatch.setattr(worker._loader, "prefetch", broken)
        doc = CanvasDocument().add_layer(ImageLayer.create_element("a.png"))
        bundles: list = []
        worker.prefetch_finished.connect(bundles.append)

        worker.prefetch(doc)
        assert len(bundles) == 1
        assert bundles[0].failed_uris == ["a.png"]

    def test_export_unexpected_error(self, worker: AssetWorker, tmp_path, monkeypatch) -> None:
        """测试导出中的非应用异常转为失败信号."""

        async def broken(document):
            raise RuntimeError("boom")

        monkeypatch.setattr(worker._loader, "prefetch", broken)
        failed: list[str] = []
        finished: list[str] = []
        worker.export_failed.connect(failed.append)
        worker.export_finished.connect(finished.append)

        worker.export(CanvasDocument().add_layer(ImageLayer.create_element("a.png")), tmp_path)
        assert finished == []
        assert len(failed) == 1
        assert "boom" in failed[0]
