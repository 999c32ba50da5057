"""
Main Application Window
=======================
The primary GUI container: menu bar, control panel and the 3D scene.

Why is this file needed?
------------------------
1. Layout: It organizes the high-level visual structure of the application.
2. Routing: It connects control-panel signals and pick events to the
   IndexController and pushes the results back into the scene.
"""
import logging
import os
from typing import Optional, Sequence

from PySide6.QtWidgets import (
    QMainWindow, QWidget, QHBoxLayout, QSplitter, QFileDialog, QMessageBox
)
from PySide6.QtCore import Qt
from PySide6.QtGui import QAction, QCloseEvent

from kdviewer.config import ASSETS_PATH
from kdviewer.controller.index_controller import IndexController
from kdviewer.model.point_sources import ModelName
from kdviewer.model.state import ViewerState
from kdviewer.view.control_panel import ControlPanel
from kdviewer.view.widgets.point_cloud_view import PointCloudWidget

logger = logging.getLogger(__name__)

MESH_FILE_FILTER = "Mesh files (*.obj *.ply *.stl *.vtk *.vtp *.vtu);;All files (*)"


class MainWindow(QMainWindow):
    def __init__(self, state: ViewerState) -> None:
        super().__init__()
        self.state: ViewerState = state

        self.setWindowTitle(self.state.app_name)
        self.resize(1400, 900)

        # --- MAIN CONTAINER ---
        main_widget = QWidget()
        self.setCentralWidget(main_widget)
        main_layout = QHBoxLayout(main_widget)
        main_layout.setContentsMargins(0, 0, 0, 0)

        splitter = QSplitter(Qt.Horizontal)
        main_layout.addWidget(splitter)

        # --- LEFT SIDE: Controls ---
        self.control_panel = ControlPanel(self.state)
        splitter.addWidget(self.control_panel)

        # --- RIGHT SIDE: 3D Visualization ---
        self.visualizer = PointCloudWidget()
        splitter.addWidget(self.visualizer)
        splitter.setSizes([300, 1100])

        # The scene widget is the index's highlight collaborator
        self.controller = IndexController(self.state, highlighter=self.visualizer)

        # --- SIGNAL CONNECTIONS ---
        self.control_panel.name_changed.connect(self.on_name_changed)
        self.control_panel.model_changed.connect(self.on_model_changed)
        self.control_panel.scale_changed.connect(self.on_scale_changed)
        self.control_panel.show_partition_toggled.connect(self.on_show_partition_toggled)
        self.control_panel.neighbor_count_changed.connect(self.on_neighbor_count_changed)
        self.visualizer.point_picked.connect(self.on_point_picked)

        # --- ACTIONS & MENUS ---
        self._create_actions()
        self._create_menus()

        # Initial Render
        self.reload_index()

    def _create_actions(self) -> None:
        self.act_open = QAction("Open Mesh...", self)
        self.act_open.setShortcut("Ctrl+O")
        self.act_open.triggered.connect(self.on_file_open)

        self.act_reset = QAction("Reset", self)
        self.act_reset.triggered.connect(self.on_reset)

        self.act_exit = QAction("Exit", self)
        self.act_exit.triggered.connect(self.close)

    def _create_menus(self) -> None:
        file_menu = self.menuBar().addMenu("&File")
        file_menu.addAction(self.act_open)
        file_menu.addAction(self.act_reset)
        file_menu.addSeparator()
        file_menu.addAction(self.act_exit)

    # --- INDEX / SCENE UPDATES ---

    def reload_index(self) -> None:
        """Rebuilds the index from the current source and refreshes every layer."""
        try:
            self.controller.load_source()
        except (OSError, ValueError) as e:
            logger.exception("Failed to rebuild index.")
            QMessageBox.critical(self, "Error", f"Could not load model:\n{e}")
            return

        self.visualizer.set_points(self.controller.points, reset_camera=True)
        self._refresh_query()
        self._refresh_partition()

    def _refresh_query(self, point: Optional[Sequence[float]] = None) -> None:
        try:
            neighbors = self.controller.query(point)
        except ValueError as e:
            QMessageBox.warning(self, "Query", str(e))
            return
        self.control_panel.show_neighbors(self.state.query_point, neighbors)

    def _refresh_partition(self) -> None:
        regions = []
        if self.state.show_partition:
            regions = self.controller.regions()
            self.visualizer.set_regions(regions)
        else:
            self.controller.clear_regions()
            self.visualizer.clear_regions()

        self.control_panel.set_status(
            f"{len(self.controller.tree)} points indexed, {len(regions)} planes shown."
        )

    # --- SLOTS ---

    def on_name_changed(self, name: str) -> None:
        self.state.app_name = name
        self.setWindowTitle(name)

    def on_model_changed(self, name: str) -> None:
        if name not in {m.value for m in ModelName}:
            # File entries are only re-selectable via File > Open
            return
        self.state.model = name
        self.state.mesh_path = None
        self.reload_index()

    def on_scale_changed(self, scale: float) -> None:
        self.controller.set_scale(scale)
        self.visualizer.set_points(self.controller.points, reset_camera=False)
        self._refresh_query()
        self._refresh_partition()

    def on_show_partition_toggled(self, show: bool) -> None:
        self.state.show_partition = show
        self._refresh_partition()

    def on_neighbor_count_changed(self, count: int) -> None:
        try:
            neighbors = self.controller.set_neighbor_count(count)
        except ValueError as e:
            QMessageBox.warning(self, "Query", str(e))
            return
        self.control_panel.show_neighbors(self.state.query_point, neighbors)

    def on_point_picked(self, point: Sequence[float]) -> None:
        self._refresh_query(point)

    def on_file_open(self) -> None:
        path, _ = QFileDialog.getOpenFileName(self, "Open Mesh", ASSETS_PATH, MESH_FILE_FILTER)
        if not path:
            return
        self.state.mesh_path = path
        self.control_panel.set_model_text(os.path.basename(path))
        self.reload_index()

    def on_reset(self) -> None:
        self.state.reset()
        self.control_panel.sync_from_state()
        self.setWindowTitle(self.state.app_name)
        self.reload_index()

    def closeEvent(self, event: QCloseEvent) -> None:
        self.visualizer.close_plotter()
        super().closeEvent(event)
