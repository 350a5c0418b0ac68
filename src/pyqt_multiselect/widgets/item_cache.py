"""
In-memory remote view.

LocalItemCache mirrors what a rendering front-end would hold: the total size,
the rows received so far, the displayed selection and the filter the user has
typed. It buffers the operations of a batch and applies them only on commit,
and only when the commit's filter echo still matches the filter it is
currently showing. Batches for an abandoned filter are dropped unacknowledged.

When the combo box releases keys outside the acknowledged window (opt-in
passivation), the cache evicts rows outside the window it last requested so
it never offers a released key.

Usage:
    cache = LocalItemCache()
    cache.bind(combo)                     # attaches and wires callbacks
    cache.request(0, 50, "ap")            # what typing "ap" would do
    combo.flush()
    [row["label"] for row in cache.visible_rows()]
"""

import logging
from typing import Any, Callable, List, Optional, Tuple

from pyqt_multiselect.core.update_batch import Operation, Resize, SetRange
from pyqt_multiselect.protocols.remote_view import RemoteView, SerializedItem

logger = logging.getLogger(__name__)


class LocalItemCache(RemoteView):
    """Reference RemoteView implementation with the filter-echo staleness guard."""

    def __init__(
        self,
        on_commit: Optional[Callable[[int], Any]] = None,
        on_request: Optional[Callable[[int, int, str], None]] = None,
        on_selection: Optional[Callable[[List[str], List[str]], None]] = None,
        evict_outside_window: bool = False,
    ):
        self.on_commit = on_commit
        self.on_request = on_request
        self.on_selection = on_selection
        self.evict_outside_window = evict_outside_window

        self.filter_text = ""
        self.size = 0
        self.rows: List[Optional[SerializedItem]] = []
        self.selected_items: List[SerializedItem] = []
        self.client_side_filtering = False
        self.window: Optional[Tuple[int, int]] = None

        self.applied_update_ids: List[int] = []
        self.discarded_update_ids: List[int] = []
        self._buffer: List[Operation] = []

    def bind(self, combo: Any) -> None:
        """Wire this cache to a combo box's remote entry points and attach it."""
        self.on_commit = combo.confirm_update
        self.on_request = combo.request_range
        self.on_selection = combo.set_selection
        self.evict_outside_window = combo.data_communicator.passivate_inactive_keys
        combo.attach(self)

    # ========== REMOTE VIEW CONTRACT ==========

    def resize(self, size: int) -> None:
        self._buffer.append(Resize(size))

    def set_range(self, offset: int, items: List[SerializedItem]) -> None:
        self._buffer.append(SetRange(offset, list(items)))

    def commit(self, update_id: int, filter_text: str) -> None:
        operations, self._buffer = self._buffer, []
        if filter_text != self.filter_text:
            logger.debug(
                f"Discarding update {update_id} for filter {filter_text!r} "
                f"(showing {self.filter_text!r})"
            )
            self.discarded_update_ids.append(update_id)
            return

        for operation in operations:
            if isinstance(operation, Resize):
                self._apply_resize(operation.size)
            else:
                self._apply_range(operation.offset, operation.items)
        if self.evict_outside_window:
            self._evict_outside_window()
        self.applied_update_ids.append(update_id)

        if self.on_commit is not None:
            self.on_commit(update_id)

    def set_selected_items(self, items: List[SerializedItem]) -> None:
        self.selected_items = list(items)

    def set_client_side_filtering(self, enabled: bool) -> None:
        self.client_side_filtering = enabled

    # ========== USER INTERACTION ==========

    def request(self, offset: int, length: int, filter_text: str = "") -> None:
        """Ask for a window. Changing the filter drops every cached row."""
        if filter_text != self.filter_text and not self.client_side_filtering:
            self.rows = []
            self.size = 0
        self.window = (offset, length)
        self.filter_text = filter_text
        if self.on_request is not None:
            self.on_request(offset, length, filter_text)

    def toggle(self, key: str) -> None:
        """Select or deselect the row with ``key``, as a click would."""
        selected = {item["key"] for item in self.selected_items}
        if key in selected:
            self._report_selection([], [key])
        else:
            self._report_selection([key], [])

    def _report_selection(self, added: List[str], removed: List[str]) -> None:
        if self.on_selection is not None:
            self.on_selection(added, removed)

    # ========== VIEW STATE ==========

    def visible_rows(self) -> List[SerializedItem]:
        """Loaded rows, filtered locally when the view filters by itself."""
        rows = [row for row in self.rows if row is not None]
        if self.client_side_filtering and self.filter_text:
            needle = self.filter_text.casefold()
            rows = [row for row in rows if needle in row["label"].casefold()]
        return rows

    def keys(self) -> List[str]:
        return [row["key"] for row in self.visible_rows()]

    def labels(self) -> List[str]:
        return [row["label"] for row in self.visible_rows()]

    def selected_labels(self) -> List[str]:
        return [item["label"] for item in self.selected_items]

    def _apply_resize(self, size: int) -> None:
        self.size = size
        if len(self.rows) > size:
            del self.rows[size:]
        else:
            self.rows.extend([None] * (size - len(self.rows)))

    def _evict_outside_window(self) -> None:
        if self.window is None:
            return
        offset, length = self.window
        for index in range(len(self.rows)):
            if not offset <= index < offset + length:
                self.rows[index] = None

    def _apply_range(self, offset: int, items: List[SerializedItem]) -> None:
        needed = offset + len(items)
        if len(self.rows) < needed:
            self.rows.extend([None] * (needed - len(self.rows)))
        self.rows[offset:needed] = items
