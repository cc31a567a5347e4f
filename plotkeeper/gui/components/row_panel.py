"""
Row Panel component for the plot tracker GUI.

The panel shows:
- The list of drawn rows, labelled by species
- A metadata editor for the selected row
- A delete button for the selected row
"""

from typing import Dict, Optional, Sequence

from PySide6.QtWidgets import (
    QWidget,
    QVBoxLayout,
    QListWidgetItem,
)
from PySide6.QtCore import Qt, Signal
from loguru import logger
from qfluentwidgets import (
    BodyLabel,
    LineEdit,
    ListWidget,
    PlainTextEdit,
    PushButton,
    StrongBodyLabel,
    FluentIcon as FIF,
)

from plotkeeper.core.models import Row
from plotkeeper.gui.config import tr

_ROW_ID_ROLE = Qt.ItemDataRole.UserRole

# Editable fields in display order: (attribute, i18n key)
EDITOR_FIELDS = (
    ("species", "row_panel.field.species"),
    ("sowing_date", "row_panel.field.sowing_date"),
    ("planting_date", "row_panel.field.planting_date"),
    ("notes", "row_panel.field.notes"),
    ("photo", "row_panel.field.photo"),
)


def row_display_label(row: Row) -> str:
    """List label of a row: its species, or the unnamed placeholder."""
    return row.label or tr("row_panel.unnamed")


class RowPanel(QWidget):
    """
    Row list and metadata editor.

    The panel never mutates state itself; it emits user intents and is
    refreshed from the store by its owner.

    Signals
    -------
    sigRowSelected : Signal(str)
        A row was picked in the list. Args: (row_id)
    sigMetaEdited : Signal(str, dict)
        The user edited one field. Args: (row_id, {attribute: value})
    sigDeleteRequested : Signal(str)
        The delete button was pressed. Args: (row_id)
    """

    sigRowSelected = Signal(str)
    sigMetaEdited = Signal(str, dict)
    sigDeleteRequested = Signal(str)

    def __init__(self, parent: Optional[QWidget] = None) -> None:
        super().__init__(parent)
        self._row_id: Optional[str] = None
        self._editors: Dict[str, QWidget] = {}
        self._init_ui()
        self._connect_signals()
        self.show_row(None)

    def _init_ui(self) -> None:
        """Initialize the UI."""
        self.layout = QVBoxLayout(self)
        self.layout.setSpacing(8)
        self.layout.setContentsMargins(14, 16, 14, 14)
        self.layout.setAlignment(Qt.AlignTop)

        # --- Row list ---
        self.layout.addWidget(StrongBodyLabel(tr("row_panel.title.rows")))
        self.row_list = ListWidget()
        self.row_list.setMinimumHeight(160)
        self.layout.addWidget(self.row_list, 1)

        # --- Editor ---
        self.editor = QWidget()
        editor_layout = QVBoxLayout(self.editor)
        editor_layout.setContentsMargins(0, 8, 0, 0)
        editor_layout.setSpacing(6)

        editor_layout.addWidget(StrongBodyLabel(tr("row_panel.title.editor")))
        self.lbl_parcel = BodyLabel("")
        editor_layout.addWidget(self.lbl_parcel)

        for attr, key in EDITOR_FIELDS:
            editor_layout.addWidget(BodyLabel(tr(key)))
            if attr == "notes":
                widget = PlainTextEdit()
                widget.setFixedHeight(80)
            else:
                widget = LineEdit()
                widget.setClearButtonEnabled(True)
                if attr in ("sowing_date", "planting_date"):
                    widget.setPlaceholderText("YYYY-MM-DD")
            widget.setObjectName(f"edit_{attr}")
            self._editors[attr] = widget
            editor_layout.addWidget(widget)

        self.btn_delete = PushButton(FIF.DELETE, tr("row_panel.btn.delete"))
        editor_layout.addWidget(self.btn_delete)

        self.layout.addWidget(self.editor)

        self.setMinimumWidth(260)
        self.setMaximumWidth(360)

    def _connect_signals(self) -> None:
        self.row_list.currentItemChanged.connect(self._on_current_item_changed)
        for attr, widget in self._editors.items():
            if isinstance(widget, PlainTextEdit):
                widget.textChanged.connect(
                    lambda a=attr, w=widget: self._on_field_edited(a, w.toPlainText())
                )
            else:
                # textEdited only fires on user input
                widget.textEdited.connect(
                    lambda text, a=attr: self._on_field_edited(a, text)
                )
        self.btn_delete.clicked.connect(self._on_delete_clicked)

    # ---- Refresh from state ----

    def set_rows(self, rows: Sequence[Row], selected_row_id: Optional[str]) -> None:
        """
        Rebuild the row list.

        Parameters
        ----------
        rows : Sequence[Row]
            Rows in creation order.
        selected_row_id : str, optional
            Row to highlight.
        """
        self.row_list.blockSignals(True)
        self.row_list.clear()
        selected_item = None
        for row in rows:
            item = QListWidgetItem(row_display_label(row))
            item.setData(_ROW_ID_ROLE, row.id)
            self.row_list.addItem(item)
            if row.id == selected_row_id:
                selected_item = item
        if selected_item is not None:
            self.row_list.setCurrentItem(selected_item)
        else:
            self.row_list.setCurrentRow(-1)
        self.row_list.blockSignals(False)

    def show_row(self, row: Optional[Row], parcel_name: Optional[str] = None) -> None:
        """
        Load a row into the editor, or hide the editor for ``None``.

        Fields already showing the stored value are left untouched so the
        cursor does not jump while typing.
        """
        self._row_id = row.id if row is not None else None
        self.editor.setVisible(row is not None)
        if row is None:
            return

        if row.meta.parcel_id is None:
            parcel_text = tr("row_panel.parcel.none")
        else:
            parcel_text = parcel_name or row.meta.parcel_id
        self.lbl_parcel.setText(tr("row_panel.parcel").format(name=parcel_text))

        for attr, widget in self._editors.items():
            value = getattr(row.meta, attr) or ""
            widget.blockSignals(True)
            if isinstance(widget, PlainTextEdit):
                if widget.toPlainText() != value:
                    widget.setPlainText(value)
            elif widget.text() != value:
                widget.setText(value)
            widget.blockSignals(False)

    def current_row_id(self) -> Optional[str]:
        return self._row_id

    def editor_widget(self, attr: str) -> QWidget:
        return self._editors[attr]

    def row_ids(self) -> list:
        return [
            self.row_list.item(i).data(_ROW_ID_ROLE)
            for i in range(self.row_list.count())
        ]

    def row_labels(self) -> list:
        return [self.row_list.item(i).text() for i in range(self.row_list.count())]

    # ---- User intents ----

    def _on_current_item_changed(self, current, previous) -> None:
        if current is None:
            return
        row_id = current.data(_ROW_ID_ROLE)
        logger.debug(f"Row picked in list: {row_id}")
        self.sigRowSelected.emit(row_id)

    def _on_field_edited(self, attr: str, value: str) -> None:
        if self._row_id is None:
            return
        self.sigMetaEdited.emit(self._row_id, {attr: value})

    def _on_delete_clicked(self) -> None:
        if self._row_id is None:
            return
        self.sigDeleteRequested.emit(self._row_id)
