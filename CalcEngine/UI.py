# UI.py
"""""PySide6 shell around the calculator sheet.

Structure
---------
- SheetWindow: one row per cell (input line + answer label), add / remove
  buttons, copy button and settings
- SettingsDialog: precision and number format

Responsibilities (SheetWindow)
------------------------------
- Turn the typed text of a cell into a literal node list
- Dispatch CellSheet.recalculate to a Worker thread
- Render the answers of every cell the pass touched
- Save the sheet on close, restore it on start

Threading Note
--------------
Evaluation runs off the UI thread in Worker(QObject). Results come back via a
Qt signal; only one calculation may run at a time.
"""""
import logging
import sys
import threading
from pathlib import Path

import pyperclip
from pynput.keyboard import Controller
from PySide6 import QtWidgets
from PySide6.QtCore import Qt, QObject, Signal

from . import CellSheet
from . import MathNodes as N
from . import Serializer
from . import config_manager
from . import error as E

logger = logging.getLogger(__name__)

# Resolve project root depending on run mode (Script or .exe)
if getattr(sys, 'frozen', False):
    PROJECT_ROOT = Path(sys._MEIPASS)
else:
    PROJECT_ROOT = Path(__file__).resolve().parent.parent


def is_shift_pressed():
    """Shift held while clicking copy copies the whole sheet instead of one answer."""
    keyboard_controller = Controller()
    return keyboard_controller.shift_pressed


def cells_path():
    return PROJECT_ROOT / config_manager.load_setting_value("cells_file")


def text_to_nodes(text):
    return [N.LiteralNode(text)]


def nodes_to_text(nodes):
    literal = N.literal_text(nodes)
    if literal or all(isinstance(node, N.LiteralNode) for node in nodes):
        return literal
    # structured cells restored from disk are edited as their flat form
    return Serializer.serialize(nodes)


class Worker(QObject):
    """Runs one recalculation pass and reports the touched cell indices."""

    job_finished = Signal(object, int)

    def __init__(self, state, changed_index, settings):
        super().__init__()
        self.state = state
        self.changed_index = changed_index
        self.settings = settings

    def run_calc(self):
        try:
            touched = CellSheet.recalculate(self.state, self.changed_index, self.settings)
            self.job_finished.emit(touched, self.changed_index)

        except E.MathError as e:
            self.job_finished.emit(e, self.changed_index)

        except RuntimeError as e:
            critical_error = E.MathError(message=f"Unexpected crash: {e}", code="9999")
            self.job_finished.emit(critical_error, self.changed_index)


class SettingsDialog(QtWidgets.QDialog):
    settings_saved = Signal()

    def __init__(self, parent=None):
        super().__init__(parent)
        self.setWindowTitle("Calculator Settings")
        self.setMinimumSize(300, 140)

        aktuelle = config_manager.get_settings()
        main_layout = QtWidgets.QFormLayout(self)

        self.precision_box = QtWidgets.QSpinBox()
        self.precision_box.setRange(0, 16)
        self.precision_box.setValue(aktuelle.precision)
        main_layout.addRow("Decimal places:", self.precision_box)

        self.format_box = QtWidgets.QComboBox()
        self.format_box.addItems(config_manager.NUMBER_FORMATS)
        self.format_box.setCurrentText(aktuelle.number_format)
        main_layout.addRow("Number format:", self.format_box)

        button_box = QtWidgets.QDialogButtonBox(QtWidgets.QDialogButtonBox.Ok | QtWidgets.QDialogButtonBox.Cancel)
        button_box.accepted.connect(self.save_settings)
        button_box.rejected.connect(self.reject)
        main_layout.addRow(button_box)

    def save_settings(self):
        try:
            config_manager.update_settings(
                precision=self.precision_box.value(),
                number_format=self.format_box.currentText(),
            )
        except E.MathError as e:
            QtWidgets.QMessageBox.critical(self, "Invalid Input:", str(e))
            return
        self.settings_saved.emit()
        self.accept()


class CellRow(QtWidgets.QWidget):
    def __init__(self, index, cell, window):
        super().__init__()
        self.index = index
        layout = QtWidgets.QHBoxLayout(self)
        layout.setContentsMargins(0, 0, 0, 0)

        self.label = QtWidgets.QLabel(f"ans{index}")
        self.input = QtWidgets.QLineEdit(nodes_to_text(cell.expression))
        self.answer = QtWidgets.QLabel(cell.answer)
        self.answer.setAlignment(Qt.AlignmentFlag.AlignRight | Qt.AlignmentFlag.AlignVCenter)
        self.answer.setTextInteractionFlags(Qt.TextInteractionFlag.TextSelectableByMouse)

        layout.addWidget(self.label)
        layout.addWidget(self.input, 3)
        layout.addWidget(self.answer, 2)

        self.input.returnPressed.connect(lambda: window.calculate(self.index))
        self.input.textEdited.connect(lambda text: window.cell_edited(self.index, text))


class SheetWindow(QtWidgets.QWidget):
    def __init__(self):
        super().__init__()
        self.state = CellSheet.load_state(cells_path())
        self.thread_active = False
        self.rows = []

        self.setWindowTitle("Calculator")
        self.resize(520, 420)
        main_v_layout = QtWidgets.QVBoxLayout(self)

        self.cell_container = QtWidgets.QWidget()
        self.cell_layout = QtWidgets.QVBoxLayout(self.cell_container)
        self.cell_layout.setAlignment(Qt.AlignmentFlag.AlignTop)
        scroll = QtWidgets.QScrollArea()
        scroll.setWidgetResizable(True)
        scroll.setWidget(self.cell_container)
        main_v_layout.addWidget(scroll, 1)

        button_row = QtWidgets.QHBoxLayout()
        main_v_layout.addLayout(button_row)
        for text, handler in (("+", self.add_cell), ("-", self.delete_cell),
                              ("Copy", self.copy_answer), ("Settings", self.open_settings)):
            button = QtWidgets.QPushButton(text)
            button.clicked.connect(handler)
            button_row.addWidget(button)

        self.rebuild_rows()

    # --- Cells ---
    def rebuild_rows(self):
        for row in self.rows:
            row.setParent(None)
        self.rows = []
        for index, cell in enumerate(self.state.cells):
            row = CellRow(index, cell, self)
            self.cell_layout.addWidget(row)
            self.rows.append(row)
        self.rows[self.state.active_index].input.setFocus()

    def cell_edited(self, index, text):
        self.state.active_index = index
        self.state.cells[index].expression = text_to_nodes(text)

    def add_cell(self):
        CellSheet.insert_cell(self.state, self.state.active_index)
        self.rebuild_rows()

    def delete_cell(self):
        CellSheet.remove_cell(self.state, self.state.active_index)
        self.rebuild_rows()
        self.calculate(0)

    def copy_answer(self):
        if is_shift_pressed():
            zeilen = [f"{nodes_to_text(cell.expression)} = {cell.answer}" for cell in self.state.cells]
            pyperclip.copy("\n".join(zeilen))
        else:
            pyperclip.copy(self.state.cells[self.state.active_index].answer)

    def open_settings(self):
        dialog = SettingsDialog(self)
        dialog.settings_saved.connect(lambda: self.calculate(0))
        dialog.exec()

    # --- Calculation ---
    def calculate(self, index):
        if self.thread_active:
            logger.warning("%s", E.MathError("", code="4002"))
            return
        self.thread_active = True
        self.rows[index].answer.setText("...")

        worker_instance = Worker(self.state, index, config_manager.get_settings())
        worker_instance.job_finished.connect(self.calc_result)
        # keep a reference until the signal arrived
        self.worker = worker_instance
        my_thread = threading.Thread(target=worker_instance.run_calc)
        my_thread.start()

    def calc_result(self, result, changed_index):
        self.thread_active = False
        if isinstance(result, E.MathError):
            error_box = QtWidgets.QMessageBox(self)
            error_box.setIcon(QtWidgets.QMessageBox.Critical)
            error_box.setWindowTitle("Calculation error")
            error_box.setText(f"Error {result.code}: {E.ERROR_MESSAGES.get(result.code, 'Unknown error')}")
            error_box.setInformativeText(f"Details: {result.message}")
            error_box.exec()
            self.rows[changed_index].answer.setText("")
            return

        for index in result:
            self.rows[index].answer.setText(self.state.cells[index].answer)

    def closeEvent(self, event):
        CellSheet.save_state(self.state, cells_path())
        super().closeEvent(event)


def main():
    app = QtWidgets.QApplication()
    window = SheetWindow()
    window.show()
    sys.exit(app.exec())
