"""
Qt signal adapter for the remote view contract.

QtRemoteViewBridge turns every outgoing operation into a pyqtSignal emission
so any Qt-side transport (a QWebChannel object, a socket writer, a local
QListView model) can subscribe without implementing RemoteView itself.
Incoming requests are exposed as slots forwarding to a combo box.

Usage:
    bridge = QtRemoteViewBridge()
    bridge.range_set.connect(model.on_range)
    bridge.committed.connect(lambda uid, _: bridge.confirm_update(uid))
    bridge.bind(combo)
"""

import logging
from typing import Any, List, Optional

from PyQt6.QtCore import QObject, pyqtSignal, pyqtSlot

from pyqt_multiselect.protocols.remote_view import RemoteView, SerializedItem
from pyqt_multiselect.widgets.qt_meta import PyQtWidgetMeta

logger = logging.getLogger(__name__)


class QtRemoteViewBridge(QObject, RemoteView, metaclass=PyQtWidgetMeta):
    """
    RemoteView implemented as Qt signals.

    Signals:
        resized(int): total size under the committed filter
        range_set(int, list): offset and serialized items
        committed(int, str): update id and filter echo
        selected_items_set(list): full selection echo
        client_side_filtering_changed(bool)
    """

    resized = pyqtSignal(int)
    range_set = pyqtSignal(int, list)
    committed = pyqtSignal(int, str)
    selected_items_set = pyqtSignal(list)
    client_side_filtering_changed = pyqtSignal(bool)

    def __init__(self, parent: Optional[QObject] = None):
        super().__init__(parent)
        self._combo: Optional[Any] = None

    def bind(self, combo: Any) -> None:
        """Attach to a combo box; incoming slots forward to it."""
        self._combo = combo
        combo.attach(self)

    # ========== OUTGOING (core -> remote) ==========

    def resize(self, size: int) -> None:
        self.resized.emit(size)

    def set_range(self, offset: int, items: List[SerializedItem]) -> None:
        self.range_set.emit(offset, list(items))

    def commit(self, update_id: int, filter_text: str) -> None:
        self.committed.emit(update_id, filter_text)

    def set_selected_items(self, items: List[SerializedItem]) -> None:
        self.selected_items_set.emit(list(items))

    def set_client_side_filtering(self, enabled: bool) -> None:
        self.client_side_filtering_changed.emit(enabled)

    # ========== INCOMING (remote -> core) ==========

    @pyqtSlot(int, int, str)
    def request_range(self, offset: int, length: int, filter_text: str) -> None:
        self._require_combo().request_range(offset, length, filter_text)

    @pyqtSlot(list, list)
    def set_selection(self, added_keys: list, removed_keys: list) -> None:
        self._require_combo().set_selection(added_keys, removed_keys)

    @pyqtSlot(int)
    def confirm_update(self, update_id: int) -> None:
        self._require_combo().confirm_update(update_id)

    def _require_combo(self) -> Any:
        if self._combo is None:
            raise RuntimeError("QtRemoteViewBridge is not bound to a combo box")
        return self._combo
