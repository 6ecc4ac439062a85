"""交互控制器.

把指针事件翻译为图层选中与拖拽移动。

状态机::

    Idle --press_layer(可拖拽图层)--> Dragging --move--> Dragging
    Dragging --release--> Idle

拖拽过程只保存一份实例持有的 DragState，不存在全局状态。
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Iterable, Optional

from PyQt6.QtCore import QObject, pyqtSignal

from thumbcraft.core.editor_session import EditorSession
from thumbcraft.core.transform import HitRegion, device_delta_to_logical
from thumbcraft.utils.logger import setup_logger

logger = setup_logger(__name__)


@dataclass
class DragState:
    """拖拽状态.

    Attributes:
        layer_id: 被拖拽的图层
        start_x: 按下时的视口X坐标
        start_y: 按下时的视口Y坐标
        origin_x: 按下时图层的逻辑X坐标
        origin_y: 按下时图层的逻辑Y坐标
    """

    layer_id: str
    start_x: float
    start_y: float
    origin_x: float
    origin_y: float


class InteractionController(QObject):
    """交互控制器.

    Signals:
        edit_context_requested: 请求打开图层编辑面板 (layer_id)
        drag_finished: 拖拽结束 (layer_id)
    """

    edit_context_requested = pyqtSignal(str)
    drag_finished = pyqtSignal(str)

    def __init__(
        self,
        session: EditorSession,
        scale_provider: Callable[[], float],
        parent: Optional[QObject] = None,
    ) -> None:
        """初始化交互控制器.

        Args:
            session: 编辑会话
            scale_provider: 返回当前视口缩放比例，每次移动时调用
            parent: 父对象
        """
        super().__init__(parent)
        self._session = session
        self._scale_provider = scale_provider
        self._drag: Optional[DragState] = None

    @property
    def is_dragging(self) -> bool:
        """是否处于拖拽状态."""
        return self._drag is not None

    @property
    def drag_state(self) -> Optional[DragState]:
        """当前拖拽状态."""
        return self._drag

    # ========================
    # 指针事件
    # ========================

    def press_layer(self, layer_id: str, device_x: float, device_y: float) -> bool:
        """在图层上按下.

        不存在、隐藏或锁定的图层不响应，也不改变选中。

        Args:
            layer_id: 图层ID
            device_x: 视口X坐标
            device_y: 视口Y坐标

        Returns:
            是否开始拖拽
        """
        layer = self._session.document.get_layer(layer_id)
        if layer is None or not layer.visible or layer.locked:
            return False

        self._session.select(layer_id)
        self._drag = DragState(
            layer_id=layer_id,
            start_x=device_x,
            start_y=device_y,
            origin_x=layer.x,
            origin_y=layer.y,
        )
        self.edit_context_requested.emit(layer_id)
        return True

    def move(self, device_x: float, device_y: float) -> None:
        """指针移动.

        新位置 = 起点逻辑坐标 + 视口位移 / 当前缩放。
        """
        drag = self._drag
        if drag is None:
            return

        scale = self._scale_provider()
        if scale <= 0:
            return
        dx, dy = device_delta_to_logical(
            device_x - drag.start_x, device_y - drag.start_y, scale
        )

        # 图层可能在拖拽期间被删除、隐藏或锁定
        layer = self._session.document.get_layer(drag.layer_id)
        if layer is None or not layer.visible or layer.locked:
            self._drag = None
            return
        self._session.move_layer_to(drag.layer_id, drag.origin_x + dx, drag.origin_y + dy)

    def release(self) -> None:
        """指针释放，保留选中."""
        if self._drag is None:
            return
        layer_id = self._drag.layer_id
        self._drag = None
        self.drag_finished.emit(layer_id)

    def press_background(self) -> None:
        """在背景上按下，清除选中."""
        self._drag = None
        self._session.clear_selection()

    def press_at(
        self,
        regions: Iterable[HitRegion],
        logical_x: float,
        logical_y: float,
        device_x: float,
        device_y: float,
    ) -> Optional[str]:
        """按下指针并分派到命中图层或背景.

        锁定图层吸收按下事件：既不选中，也不清除当前选中。

        Returns:
            命中的图层ID，命中背景时返回None
        """
        layer_id = self.hit_test(regions, logical_x, logical_y)
        if layer_id is None:
            self.press_background()
        else:
            self.press_layer(layer_id, device_x, device_y)
        return layer_id

    def handle_delete_key(self, text_input_focused: bool) -> bool:
        """处理删除键.

        Args:
            text_input_focused: 文本输入控件是否拥有焦点

        Returns:
            是否删除了图层
        """
        if text_input_focused:
            return False
        if self._drag is not None and self._drag.layer_id == self._session.selection_id:
            self._drag = None
        return self._session.delete_selected()

    # ========================
    # 命中检测
    # ========================

    def hit_test(
        self,
        regions: Iterable[HitRegion],
        logical_x: float,
        logical_y: float,
    ) -> Optional[str]:
        """返回包含该点的最前图层.

        Args:
            regions: 按绘制顺序排列的命中区域
            logical_x: 画布X坐标
            logical_y: 画布Y坐标

        Returns:
            图层ID，未命中时返回None
        """
        document = self._session.document
        for region in reversed(list(regions)):
            layer = document.get_layer(region.layer_id)
            if layer is None or not layer.visible:
                continue
            if region.contains(logical_x, logical_y):
                return region.layer_id
        return None
