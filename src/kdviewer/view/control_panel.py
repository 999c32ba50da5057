"""
Viewer Control Panel
"""
from typing import List

from PySide6.QtWidgets import (
    QWidget, QVBoxLayout, QLabel, QLineEdit, QComboBox, QDoubleSpinBox, QSpinBox,
    QCheckBox, QGroupBox, QFormLayout, QListWidget
)
from PySide6.QtCore import Signal, Qt

from kdviewer.config import MIN_NEIGHBOR_COUNT, MAX_NEIGHBOR_COUNT, MAX_SCALE
from kdviewer.model.kd_tree import Neighbor
from kdviewer.model.point_sources import ModelName
from kdviewer.model.state import ViewerState


class ControlPanel(QWidget):
    name_changed = Signal(str)
    model_changed = Signal(str)
    scale_changed = Signal(float)
    show_partition_toggled = Signal(bool)
    neighbor_count_changed = Signal(int)

    def __init__(self, state: ViewerState) -> None:
        super().__init__()
        self.state = state

        layout = QVBoxLayout(self)

        # --- Settings Group ---
        grp = QGroupBox("Settings")
        form = QFormLayout(grp)

        # 1. App name (drives the window title)
        self.edit_name = QLineEdit(self.state.app_name)
        self.edit_name.textChanged.connect(self.name_changed.emit)
        form.addRow("App name:", self.edit_name)

        # 2. Model
        self.combo_model = QComboBox()
        for model in ModelName:
            self.combo_model.addItem(model.value)
        self.combo_model.setCurrentText(self.state.model)
        self.combo_model.currentTextChanged.connect(self.model_changed.emit)
        form.addRow("3D Model:", self.combo_model)

        # 3. Scale
        self.spin_scale = QDoubleSpinBox()
        self.spin_scale.setRange(0.0, MAX_SCALE)
        self.spin_scale.setSingleStep(0.1)
        self.spin_scale.setValue(self.state.scale)
        self.spin_scale.valueChanged.connect(self.scale_changed.emit)
        form.addRow("Size:", self.spin_scale)

        # 4. Partition visibility
        self.chk_partition = QCheckBox("")
        self.chk_partition.setChecked(self.state.show_partition)
        self.chk_partition.toggled.connect(self.show_partition_toggled.emit)
        form.addRow("Show kd-tree:", self.chk_partition)

        # 5. Neighbor count
        self.spin_k = QSpinBox()
        self.spin_k.setRange(MIN_NEIGHBOR_COUNT, MAX_NEIGHBOR_COUNT)
        self.spin_k.setValue(self.state.neighbor_count)
        self.spin_k.valueChanged.connect(self.neighbor_count_changed.emit)
        form.addRow("k:", self.spin_k)

        layout.addWidget(grp)

        # --- Query Results ---
        res_grp = QGroupBox("Nearest Neighbors")
        res_layout = QVBoxLayout(res_grp)
        self.lbl_query = QLabel("")
        self.lbl_query.setAlignment(Qt.AlignLeft)
        res_layout.addWidget(self.lbl_query)
        self.list_neighbors = QListWidget()
        res_layout.addWidget(self.list_neighbors)
        layout.addWidget(res_grp)

        # --- Status Info ---
        self.lbl_status = QLabel("No model loaded.")
        self.lbl_status.setAlignment(Qt.AlignCenter)
        self.lbl_status.setWordWrap(True)
        layout.addWidget(self.lbl_status)

        layout.addStretch()

    def sync_from_state(self) -> None:
        """Pushes the state into the widgets without emitting change signals."""
        widgets = (self.edit_name, self.spin_scale, self.chk_partition, self.spin_k)
        for w in widgets:
            w.blockSignals(True)
        self.edit_name.setText(self.state.app_name)
        self.spin_scale.setValue(self.state.scale)
        self.chk_partition.setChecked(self.state.show_partition)
        self.spin_k.setValue(self.state.neighbor_count)
        for w in widgets:
            w.blockSignals(False)
        self.set_model_text(self.state.model)

    def set_model_text(self, text: str) -> None:
        """Shows a file-based source in the combo without re-emitting model_changed."""
        self.combo_model.blockSignals(True)
        if self.combo_model.findText(text) < 0:
            self.combo_model.addItem(text)
        self.combo_model.setCurrentText(text)
        self.combo_model.blockSignals(False)

    def show_neighbors(self, query_point, neighbors: List[Neighbor]) -> None:
        coords = ", ".join(f"{v:.3f}" for v in query_point)
        self.lbl_query.setText(f"Query: ({coords})")

        self.list_neighbors.clear()
        for rank, n in enumerate(neighbors, start=1):
            point = ", ".join(f"{v:.3f}" for v in n.point)
            self.list_neighbors.addItem(f"{rank}. #{n.index} ({point})  d={n.distance:.4f}")

    def set_status(self, text: str) -> None:
        self.lbl_status.setText(text)
