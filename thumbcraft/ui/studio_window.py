"""工作室主窗口.

布局结构:
    ┌──────────────────────────────────────────────┐
    │                    菜单栏                     │
    ├──────────────────────────────────────────────┤
    │                    工具栏                     │
    ├───────────────────────────────┬──────────────┤
    │                               │   属性面板    │
    │          画布预览              ├──────────────┤
    │                               │   图层面板    │
    ├───────────────────────────────┴──────────────┤
    │                    状态栏                     │
    └──────────────────────────────────────────────┘
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from PyQt6.QtCore import Qt
from PyQt6.QtGui import QAction, QCloseEvent, QKeySequence, QShortcut
from PyQt6.QtWidgets import (
    QAbstractSpinBox,
    QApplication,
    QFileDialog,
    QLineEdit,
    QMainWindow,
    QMenu,
    QMessageBox,
    QPlainTextEdit,
    QSplitter,
    QStatusBar,
    QTextEdit,
    QToolBar,
    QWidget,
)
from pydantic import ValidationError

from thumbcraft.core.config_manager import get_config
from thumbcraft.core.editor_session import EditorSession
from thumbcraft.models.app_settings import Settings
from thumbcraft.models.canvas_document import CanvasDocument, LayerDirection, TextLayer
from thumbcraft.services import composition
from thumbcraft.services.asset_loader import AssetLoader, FontRegistry
from thumbcraft.ui.canvas_view import CanvasView, PreviewRenderer
from thumbcraft.ui.layer_panel import LayerPanel
from thumbcraft.ui.property_panel import PropertyPanel
from thumbcraft.ui.workers import AssetTaskThread
from thumbcraft.utils.constants import APP_NAME, APP_VERSION, SUPPORTED_IMAGE_FORMATS
from thumbcraft.utils.exceptions import ConfigError
from thumbcraft.utils.logger import setup_logger

logger = setup_logger(__name__)

# 文本输入类控件，拥有焦点时删除键不删除图层
TEXT_INPUT_WIDGETS = (QLineEdit, QTextEdit, QPlainTextEdit, QAbstractSpinBox)

# 用户配置键
EXPORT_DIR_KEY = "export_dir"


def _image_file_filter() -> str:
    patterns = " ".join(f"*{ext}" for ext in sorted(SUPPORTED_IMAGE_FORMATS))
    return f"图片文件 ({patterns})"


class StudioWindow(QMainWindow):
    """工作室主窗口."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        document: Optional[CanvasDocument] = None,
        parent: Optional[QWidget] = None,
    ) -> None:
        """初始化主窗口.

        Args:
            settings: 应用设置，默认读取全局配置
            document: 初始文档
            parent: 父组件
        """
        super().__init__(parent)
        self._settings = settings or get_config().settings

        self._session = EditorSession(document, self)
        self._fonts = FontRegistry(self._settings.font_dirs, self._settings.font_timeout)
        self._loader = AssetLoader(self._settings.asset_timeout)
        self._asset_thread = AssetTaskThread(self._loader, self._fonts, self)
        self._asset_thread.worker.set_export_prefix(self._settings.export_prefix)
        self._renderer = PreviewRenderer(self._fonts, self)

        self._setup_window()
        self._setup_central_widget()
        self._setup_menubar()
        self._setup_toolbar()
        self._setup_statusbar()
        self._setup_shortcuts()
        self._connect_signals()

        self._layer_panel.set_document(self._session.document)

    # ========================
    # 属性
    # ========================

    @property
    def session(self) -> EditorSession:
        """编辑会话."""
        return self._session

    @property
    def canvas_view(self) -> CanvasView:
        """画布视图."""
        return self._canvas_view

    @property
    def layer_panel(self) -> LayerPanel:
        """图层面板."""
        return self._layer_panel

    @property
    def property_panel(self) -> PropertyPanel:
        """属性面板."""
        return self._property_panel

    @property
    def text_edit(self) -> QLineEdit:
        """文字内容编辑框."""
        return self._property_panel.text_editor.text_edit

    # ========================
    # 界面
    # ========================

    def _setup_window(self) -> None:
        """设置窗口属性."""
        self.setWindowTitle(f"{APP_NAME} v{APP_VERSION}")
        self.setMinimumSize(960, 600)
        self.resize(1400, 860)

    def _setup_central_widget(self) -> None:
        """设置中心区域."""
        splitter = QSplitter(Qt.Orientation.Horizontal)

        self._canvas_view = CanvasView(
            self._session,
            self._renderer,
            padding=self._settings.viewport_padding,
        )
        splitter.addWidget(self._canvas_view)

        side = QSplitter(Qt.Orientation.Vertical)

        self._property_panel = PropertyPanel()
        side.addWidget(self._property_panel)

        self._layer_panel = LayerPanel()
        side.addWidget(self._layer_panel)
        side.setSizes([480, 320])

        splitter.addWidget(side)
        splitter.setStretchFactor(0, 1)
        splitter.setSizes([1060, 340])
        self.setCentralWidget(splitter)

    def _setup_menubar(self) -> None:
        """设置菜单栏."""
        menubar = self.menuBar()

        file_menu = menubar.addMenu("文件(&F)")

        self._action_export = QAction("导出 PNG(&E)...", self)
        self._action_export.setShortcut(QKeySequence("Ctrl+E"))
        self._action_export.triggered.connect(self._on_export)
        file_menu.addAction(self._action_export)

        file_menu.addSeparator()

        action_exit = QAction("退出(&X)", self)
        action_exit.setShortcut(QKeySequence.StandardKey.Quit)
        action_exit.triggered.connect(self.close)
        file_menu.addAction(action_exit)

        layer_menu = menubar.addMenu("图层(&L)")

        self._action_add_text = QAction("添加文字(&T)", self)
        self._action_add_text.setShortcut(QKeySequence("Ctrl+T"))
        self._action_add_text.triggered.connect(self._on_add_text)
        layer_menu.addAction(self._action_add_text)

        self._action_add_element = QAction("添加素材(&I)...", self)
        self._action_add_element.triggered.connect(self._on_add_element)
        layer_menu.addAction(self._action_add_element)

        self._action_duplicate = QAction("复制图层(&D)", self)
        self._action_duplicate.setShortcut(QKeySequence("Ctrl+D"))
        self._action_duplicate.triggered.connect(self._on_duplicate_selected)
        layer_menu.addAction(self._action_duplicate)

        background_menu = menubar.addMenu("背景(&B)")

        self._action_background_image = QAction("设置背景图片(&I)...", self)
        self._action_background_image.triggered.connect(self._on_set_background_image)
        background_menu.addAction(self._action_background_image)

        self._gradient_menu = QMenu("渐变预设(&G)", self)
        for preset in composition.GRADIENT_PRESETS:
            action = QAction(preset.name, self)
            action.triggered.connect(lambda _checked=False, p=preset: self.apply_gradient_preset(p))
            self._gradient_menu.addAction(action)
        background_menu.addMenu(self._gradient_menu)

    def _setup_toolbar(self) -> None:
        """设置工具栏."""
        toolbar = QToolBar("主工具栏")
        toolbar.setMovable(False)
        toolbar.addAction(self._action_add_text)
        toolbar.addAction(self._action_add_element)
        toolbar.addAction(self._action_background_image)
        toolbar.addSeparator()
        toolbar.addAction(self._action_export)
        self.addToolBar(toolbar)

    def _setup_statusbar(self) -> None:
        """设置状态栏."""
        self.setStatusBar(QStatusBar(self))

    def _setup_shortcuts(self) -> None:
        """删除键与退格键删除选中图层."""
        for key in (Qt.Key.Key_Delete, Qt.Key.Key_Backspace):
            shortcut = QShortcut(QKeySequence(key), self)
            shortcut.setContext(Qt.ShortcutContext.WindowShortcut)
            shortcut.activated.connect(self.handle_delete_key)

    def _connect_signals(self) -> None:
        """连接信号."""
        # 资源加载
        self._renderer.assets_requested.connect(self._asset_thread.request_prefetch)
        self._asset_thread.worker.prefetch_finished.connect(self._renderer.on_assets_loaded)
        self._asset_thread.worker.export_finished.connect(self._on_export_finished)
        self._asset_thread.worker.export_failed.connect(self._on_export_failed)

        # 会话
        self._session.document_changed.connect(self._on_document_changed)
        self._session.selection_changed.connect(self._on_selection_changed)

        # 图层面板
        panel = self._layer_panel
        panel.layer_selected.connect(self._session.select)
        panel.layer_visibility_toggled.connect(self._session.toggle_visibility)
        panel.layer_lock_toggled.connect(self._session.toggle_lock)
        panel.layer_reorder_requested.connect(self._on_reorder_requested)
        panel.layer_duplicate_requested.connect(self._session.duplicate_layer)
        panel.layer_delete_requested.connect(self._session.remove_layer)
        panel.add_text_requested.connect(self._on_add_text)
        panel.add_image_requested.connect(self._on_add_element)

        # 属性编辑
        self._property_panel.layer_property_changed.connect(self._on_layer_property_changed)
        self._canvas_view.edit_context_requested.connect(self._on_edit_context_requested)

    # ========================
    # 会话同步
    # ========================

    def _on_document_changed(self, document: CanvasDocument) -> None:
        self._layer_panel.set_document(document)
        self._sync_property_panel()

    def _on_selection_changed(self, layer_id: Optional[str]) -> None:
        self._layer_panel.select_layer(layer_id)
        self._sync_property_panel()

    def _sync_property_panel(self) -> None:
        """属性面板跟随选中图层."""
        self._property_panel.set_layer(self._session.selected_layer)

    def _on_layer_property_changed(self, layer_id: str, prop: str, value: object) -> None:
        try:
            self._session.update_layer(layer_id, **{prop: value})
        except ValidationError as e:
            logger.warning(f"图层属性无效: {prop}={value!r} - {e.errors()[0]['msg']}")
            self.statusBar().showMessage(f"属性值无效: {prop}", 3000)
            self._sync_property_panel()

    def _on_edit_context_requested(self, layer_id: str) -> None:
        layer = self._session.document.get_layer(layer_id)
        self._property_panel.set_layer(layer)
        if isinstance(layer, TextLayer):
            self.statusBar().showMessage("已选中文字图层，可在右侧编辑属性", 3000)

    def _on_reorder_requested(self, layer_id: str, direction: LayerDirection) -> None:
        self._session.reorder_layer(layer_id, direction)

    # ========================
    # 操作
    # ========================

    def is_text_input_focused(self) -> bool:
        """文本输入控件是否拥有焦点."""
        return isinstance(QApplication.focusWidget(), TEXT_INPUT_WIDGETS)

    def handle_delete_key(self) -> bool:
        """删除选中图层（文本输入拥有焦点时忽略）."""
        return self._canvas_view.controller.handle_delete_key(self.is_text_input_focused())

    def add_text_layer(self) -> str:
        """添加默认文字图层并选中."""
        return self._session.add_layer(composition.new_text_layer())

    def add_elements(self, uris: list[str]) -> list[str]:
        """添加装饰素材图层，选中最后一个."""
        document, new_ids = composition.insert_elements(self._session.document, uris)
        self._session.replace_document(document)
        if new_ids:
            self._session.select(new_ids[-1])
        return new_ids

    def apply_gradient_preset(self, preset: composition.GradientPreset) -> None:
        """应用渐变背景预设."""
        self._session.replace_document(
            composition.apply_gradient_preset(self._session.document, preset)
        )
        self.statusBar().showMessage(f"背景: {preset.name}", 2000)

    def export_to(self, output_dir: Path) -> None:
        """后台导出到指定目录."""
        try:
            get_config().set_user_config(EXPORT_DIR_KEY, str(output_dir))
        except ConfigError as e:
            logger.warning(f"记住导出目录失败: {e}")
        self._action_export.setEnabled(False)
        self.statusBar().showMessage("正在导出...")
        self._asset_thread.request_export(self._session.document, output_dir)

    def _on_add_text(self) -> None:
        self.add_text_layer()

    def _on_add_element(self) -> None:
        paths, _ = QFileDialog.getOpenFileNames(self, "添加素材", "", _image_file_filter())
        if paths:
            self.add_elements(paths)

    def _on_duplicate_selected(self) -> None:
        if self._session.selection_id:
            self._session.duplicate_layer(self._session.selection_id)

    def _on_set_background_image(self) -> None:
        path, _ = QFileDialog.getOpenFileName(self, "设置背景图片", "", _image_file_filter())
        if path:
            self._session.set_background_image(path)

    def _on_export(self) -> None:
        default_dir = get_config().get_user_config(EXPORT_DIR_KEY) or str(self._settings.export_dir)
        directory = QFileDialog.getExistingDirectory(self, "选择导出目录", default_dir)
        if directory:
            self.export_to(Path(directory))

    def _on_export_finished(self, path: str) -> None:
        self._action_export.setEnabled(True)
        self.statusBar().showMessage(f"已导出: {path}", 5000)

    def _on_export_failed(self, message: str) -> None:
        self._action_export.setEnabled(True)
        self.statusBar().clearMessage()
        QMessageBox.warning(self, "导出失败", message)

    def closeEvent(self, event: QCloseEvent) -> None:
        """关闭窗口时停止后台线程."""
        if self._asset_thread.isRunning():
            self._asset_thread.stop()
        super().closeEvent(event)
