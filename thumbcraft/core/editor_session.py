"""编辑会话模块.

持有当前画布文档与单一选中状态，对外提供图层栈操作并广播变更。

Features:
    - 图层添加、局部更新、删除、复制、层级调整
    - 显示/隐藏与锁定切换
    - 单选语义：任意时刻至多一个图层被选中
    - 文档只读快照对外暴露
"""

from __future__ import annotations

from typing import Any, Optional

from PyQt6.QtCore import QObject, pyqtSignal

from thumbcraft.models.canvas_document import (
    AnyLayer,
    CanvasDocument,
    GradientDirection,
    LayerDirection,
)
from thumbcraft.utils.logger import setup_logger

logger = setup_logger(__name__)


class EditorSession(QObject):
    """编辑会话.

    文档本身不可变，会话只替换引用；所有修改都在 UI 线程上同步完成。

    Signals:
        document_changed: 文档已替换 (CanvasDocument)
        selection_changed: 选中图层变化 (Optional[str])

    Example:
        >>> session = EditorSession()
        >>> layer_id = session.add_layer(TextLayer.create("Hello"))
        >>> session.selection_id == layer_id
        True
    """

    document_changed = pyqtSignal(object)  # CanvasDocument
    selection_changed = pyqtSignal(object)  # Optional[str]

    def __init__(
        self,
        document: Optional[CanvasDocument] = None,
        parent: Optional[QObject] = None,
    ) -> None:
        """初始化编辑会话.

        Args:
            document: 初始文档，默认为空文档
            parent: 父对象
        """
        super().__init__(parent)
        self._document = document or CanvasDocument()
        self._selection_id: Optional[str] = None

    # ========================
    # 只读属性
    # ========================

    @property
    def document(self) -> CanvasDocument:
        """当前文档快照."""
        return self._document

    @property
    def selection_id(self) -> Optional[str]:
        """当前选中的图层ID."""
        return self._selection_id

    @property
    def selected_layer(self) -> Optional[AnyLayer]:
        """当前选中的图层."""
        if self._selection_id is None:
            return None
        return self._document.get_layer(self._selection_id)

    # ========================
    # 文档
    # ========================

    def replace_document(self, document: CanvasDocument) -> None:
        """整体替换文档，选中图层不存在时清除选中."""
        self._commit(document)
        if self._selection_id and not document.has_layer(self._selection_id):
            self._set_selection(None)

    def _commit(self, document: CanvasDocument) -> bool:
        """提交新文档.

        Returns:
            文档是否发生变化
        """
        if document is self._document:
            return False
        self._document = document
        self.document_changed.emit(document)
        return True

    # ========================
    # 选中
    # ========================

    def select(self, layer_id: Optional[str]) -> None:
        """选中图层（单选），None 表示清除选中.

        不存在的图层ID被忽略。
        """
        if layer_id is not None and not self._document.has_layer(layer_id):
            logger.debug(f"忽略选中不存在的图层: {layer_id}")
            return
        self._set_selection(layer_id)

    def clear_selection(self) -> None:
        """清除选中."""
        self._set_selection(None)

    def _set_selection(self, layer_id: Optional[str]) -> None:
        if layer_id == self._selection_id:
            return
        self._selection_id = layer_id
        self.selection_changed.emit(layer_id)

    # ========================
    # 图层栈操作
    # ========================

    def add_layer(self, layer: AnyLayer, select: bool = True) -> str:
        """添加图层到最前.

        Args:
            layer: 图层
            select: 是否选中新图层

        Returns:
            新图层ID
        """
        self._commit(self._document.add_layer(layer))
        logger.debug(f"添加图层: {layer.id} ({layer.type.value})")
        if select:
            self._set_selection(layer.id)
        return layer.id

    def update_layer(self, layer_id: str, **fields: Any) -> bool:
        """局部更新图层，图层不存在时为空操作.

        Returns:
            文档是否发生变化
        """
        return self._commit(self._document.update_layer(layer_id, **fields))

    def move_layer_to(self, layer_id: str, x: float, y: float) -> bool:
        """移动图层中心点."""
        return self.update_layer(layer_id, x=x, y=y)

    def remove_layer(self, layer_id: str) -> bool:
        """删除图层，若为选中图层则同时清除选中.

        Returns:
            是否删除成功
        """
        changed = self._commit(self._document.remove_layer(layer_id))
        if changed:
            logger.debug(f"删除图层: {layer_id}")
        if self._selection_id == layer_id:
            self._set_selection(None)
        return changed

    def reorder_layer(self, layer_id: str, direction: LayerDirection) -> bool:
        """调整图层层级，边界处为空操作."""
        return self._commit(self._document.reorder_layer(layer_id, direction))

    def duplicate_layer(self, layer_id: str) -> Optional[str]:
        """复制图层并选中副本.

        Returns:
            新图层ID，源图层不存在时返回None
        """
        document, new_id = self._document.duplicate_layer(layer_id)
        if new_id is None:
            return None
        self._commit(document)
        self._set_selection(new_id)
        logger.debug(f"复制图层: {layer_id} -> {new_id}")
        return new_id

    def toggle_visibility(self, layer_id: str) -> bool:
        """切换图层可见性."""
        return self._commit(self._document.toggle_visibility(layer_id))

    def toggle_lock(self, layer_id: str) -> bool:
        """切换图层锁定."""
        return self._commit(self._document.toggle_lock(layer_id))

    def delete_selected(self) -> bool:
        """删除当前选中图层.

        Returns:
            是否删除了图层
        """
        if self._selection_id is None:
            return False
        return self.remove_layer(self._selection_id)

    # ========================
    # 背景
    # ========================

    def set_background_image(self, uri: Optional[str]) -> None:
        """设置图片背景."""
        self._commit(self._document.with_background_image(uri))

    def set_background_gradient(
        self,
        color_start: Optional[str] = None,
        color_end: Optional[str] = None,
        direction: Optional[GradientDirection] = None,
    ) -> None:
        """设置渐变背景."""
        self._commit(
            self._document.with_background_gradient(color_start, color_end, direction)
        )
