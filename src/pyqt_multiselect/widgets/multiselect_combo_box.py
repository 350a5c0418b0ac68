"""
Multiselect combo box.

Server-side half of a multi-selection combo box. Rendering happens in a remote
view (see protocols.remote_view); this object owns the data, the selection and
the element properties, and exchanges update batches with the view.

Usage:
    combo = MultiselectComboBox(label="Fruits")
    combo.set_items(["Apple", "Banana", "Cherry"])
    combo.value_changed.connect(lambda event: print(event.value))

    cache = LocalItemCache()
    cache.bind(combo)
    combo.flush()

    combo.set_value(["Banana"])
    combo.get_value()               # ['Banana']
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from PyQt6.QtCore import QCoreApplication, QObject, pyqtSignal

from pyqt_multiselect.core.data_communicator import DataCommunicator, DataGenerator, LabelGenerator
from pyqt_multiselect.core.exceptions import InvalidConfiguration, UnknownKey
from pyqt_multiselect.core.filter_policy import ItemFilter
from pyqt_multiselect.core.item_source import (
    BoundedItemSource, CallbackItemSource, CountCallback, FetchCallback, FilterConverter, ItemSource,
)
from pyqt_multiselect.core.key_registry import IdentityFunction
from pyqt_multiselect.core.pending_actions import PendingActionQueue
from pyqt_multiselect.core.response_timer import ResponseTimer
from pyqt_multiselect.core.selection_model import SelectionDiff, SelectionModel
from pyqt_multiselect.protocols.combo_config import get_combo_config
from pyqt_multiselect.protocols.remote_view import RemoteView
from pyqt_multiselect.protocols.widget_protocols import (
    ChangeSignalEmitter, MultiSelectable, PlaceholderCapable, ValueGettable, ValueSettable,
)
from pyqt_multiselect.services.flag_context_manager import FlagContextManager
from pyqt_multiselect.widgets.qt_meta import PyQtWidgetMeta

logger = logging.getLogger(__name__)

ITEM_LABEL_PATH = "label"
ITEM_VALUE_PATH = "key"

SEND_SELECTED_ITEMS = "send_selected_items"


@dataclass(frozen=True)
class ValueChangeEvent:
    """Emitted by value_changed."""
    source: Any
    old_value: List[Any]
    value: List[Any]
    from_client: bool


@dataclass(frozen=True)
class MultiSelectionEvent:
    """Emitted by selection_changed."""
    source: Any
    old_selection: List[Any]
    new_selection: List[Any]
    added: List[Any]
    removed: List[Any]
    from_client: bool


class MultiselectComboBox(QObject, ValueGettable, ValueSettable, PlaceholderCapable,
                          ChangeSignalEmitter, MultiSelectable, metaclass=PyQtWidgetMeta):
    """
    Composition root of the multiselect core.

    Wires a DataCommunicator (keys, paging, batches) and a SelectionModel
    (selected keys) to one remote view. The value is the list of selected
    items in selection order; it is empty, never None.

    Installing a new data provider always resets the value to empty.
    Hosts that want to keep a selection across providers re-apply it with
    set_value() after the swap.
    """

    value_changed = pyqtSignal(object)  # ValueChangeEvent
    selection_changed = pyqtSignal(object)  # MultiSelectionEvent

    def __init__(
        self,
        label: Optional[str] = None,
        items: Optional[Iterable[Any]] = None,
        page_size: Optional[int] = None,
        identity: Optional[IdentityFunction] = None,
        parent: Optional[QObject] = None,
    ):
        super().__init__(parent)
        config = get_combo_config()

        # Flags managed by FlagContextManager
        self._from_client = False
        self._in_provider_reset = False

        self._pending = PendingActionQueue()
        self._communicator: DataCommunicator[Any] = DataCommunicator(
            self._pending, page_size=page_size, identity=identity
        )
        self._selection: SelectionModel[Any] = SelectionModel(self._communicator.registry)
        self._communicator.set_pinned_keys_supplier(lambda: self._selection.keys)

        self._auto_flush = config.auto_flush
        self._response_timer = ResponseTimer(handler=self.flush)
        self._change_callbacks: Dict[Callable[[Any], None], Callable[[ValueChangeEvent], None]] = {}

        self._properties: Dict[str, Any] = {
            "itemIdPath": ITEM_VALUE_PATH,
            "itemValuePath": ITEM_VALUE_PATH,
            "itemLabelPath": ITEM_LABEL_PATH,
            "pageSize": self._communicator.page_size,
        }

        if label is not None:
            self.set_label(label)
        if items is not None:
            self.set_items(items)

    # ========== COLLABORATORS ==========

    @property
    def data_communicator(self) -> DataCommunicator:
        return self._communicator

    @property
    def selection_model(self) -> SelectionModel:
        return self._selection

    # ========== DATA ==========

    def set_items(self, items: Iterable[Any], item_filter: Optional[ItemFilter] = None) -> None:
        """
        Show a fixed collection.

        Args:
            items: The items, copied into an in-memory source
            item_filter: Optional ``(item, filter_text) -> bool`` replacing the
                default label match; forces filtering on this side
        """
        if items is None:
            raise InvalidConfiguration("The items can not be None")
        self._communicator.set_item_filter(item_filter)
        self.set_data_provider(BoundedItemSource(items))

    def set_fetch_callbacks(
        self,
        fetch: FetchCallback,
        count: CountCallback,
        filter_converter: Optional[FilterConverter] = None,
    ) -> None:
        """Show an externally paged source; see CallbackItemSource."""
        if fetch is None or count is None:
            raise InvalidConfiguration("Both fetch and count callbacks are required")
        self.set_data_provider(CallbackItemSource(fetch, count), filter_converter)

    def set_data_provider(self, source: ItemSource, filter_converter: Optional[FilterConverter] = None) -> None:
        """
        Install an item source. Resets the value to empty.

        Args:
            source: The item source, not None
            filter_converter: Converts filter text into the source's filter type

        Raises:
            SourceFetchFailure: If the new source can not be counted; the old
                provider and the value are kept
        """
        if source is None:
            raise InvalidConfiguration("The data provider can not be None")

        with FlagContextManager.provider_reset(self):
            old = self._resolved_selection()
            self._communicator.set_data_provider(source, filter_converter)
            diff = self._selection.clear()
            self._fire_events(old, diff)
            self._queue_selection_echo()
        self._schedule_flush()

    def get_data_provider(self) -> Optional[ItemSource]:
        return self._communicator.source

    def refresh_all(self) -> None:
        """Re-read the data provider after its contents changed."""
        self._communicator.refresh_all()
        self._queue_selection_echo()
        self._schedule_flush()

    def set_item_label_generator(self, label_generator: LabelGenerator) -> None:
        """
        Set the function producing display labels. Defaults to ``str``.

        The selection is kept; labels of the loaded rows and of the selected
        items are regenerated and pushed again.
        """
        self._communicator.set_label_generator(label_generator)
        self._queue_selection_echo()
        self._schedule_flush()

    def get_item_label_generator(self) -> LabelGenerator:
        return self._communicator.label_generator

    def set_item_filter(self, item_filter: Optional[ItemFilter]) -> None:
        self._communicator.set_item_filter(item_filter)
        self._schedule_flush()

    def set_filter_locale(self, locale_name: Optional[str]) -> None:
        self._communicator.set_locale(locale_name)
        self._schedule_flush()

    def set_item_identity(self, identity: Optional[IdentityFunction]) -> None:
        """Install the identity function. Only possible before any item was keyed."""
        self._communicator.registry.set_identity(identity)

    def add_data_generator(self, generator: DataGenerator) -> None:
        """Add extra fields to every serialized item."""
        self._communicator.add_data_generator(generator)
        self._queue_selection_echo()
        self._schedule_flush()

    def get_page_size(self) -> int:
        return self._communicator.page_size

    def set_page_size(self, page_size: int) -> None:
        self._communicator.set_page_size(page_size)
        self._properties["pageSize"] = page_size
        self._schedule_flush()

    # ========== VALUE ==========

    def get_empty_value(self) -> List[Any]:
        return []

    def get_value(self) -> List[Any]:
        return self._selection.get_value()

    def set_value(self, value: Optional[Iterable[Any]]) -> None:
        """Replace the selection. None clears it. The view receives the full selection."""
        self._change_selection(lambda: self._selection.set_value(value))
        self._queue_selection_echo()
        self._schedule_flush()

    @property
    def value(self) -> List[Any]:
        return self.get_value()

    @value.setter
    def value(self, value: Optional[Iterable[Any]]) -> None:
        self.set_value(value)

    def clear(self) -> None:
        self.set_value(None)

    def is_empty(self) -> bool:
        return len(self._selection) == 0

    def select(self, *items: Any) -> None:
        self.update_selection(items, ())

    def deselect(self, *items: Any) -> None:
        self.update_selection((), items)

    def deselect_all(self) -> None:
        self.set_value(None)

    def update_selection(self, added: Iterable[Any], removed: Iterable[Any]) -> None:
        self._change_selection(lambda: self._selection.update_selection_items(added, removed))
        self._queue_selection_echo()
        self._schedule_flush()

    def get_selected_items(self) -> List[Any]:
        return self.get_value()

    def is_selected(self, item: Any) -> bool:
        return self._selection.is_selected(item)

    def connect_change_signal(self, callback: Callable[[Any], None]) -> None:
        def on_value_changed(event: ValueChangeEvent) -> None:
            callback(event.value)
        self._change_callbacks[callback] = on_value_changed
        self.value_changed.connect(on_value_changed)

    def disconnect_change_signal(self, callback: Callable[[Any], None]) -> None:
        wrapper = self._change_callbacks.pop(callback, None)
        if wrapper is not None:
            self.value_changed.disconnect(wrapper)

    # ========== REMOTE VIEW ==========

    def attach(self, remote_view: RemoteView) -> None:
        self._communicator.attach(remote_view)
        self._queue_selection_echo()
        self._schedule_flush()

    def detach(self) -> None:
        self._response_timer.cancel()
        self._communicator.detach()

    def is_attached(self) -> bool:
        return self._communicator.remote_view is not None

    def flush(self) -> int:
        """Deliver everything pending to the remote view. Returns the number of actions run."""
        return self._communicator.flush()

    def request_range(self, offset: int, length: int, filter_text: Optional[str] = "") -> None:
        """Remote entry point: the view wants ``length`` rows from ``offset`` under ``filter_text``."""
        self._communicator.request_range(offset, length, filter_text)
        self._schedule_flush()

    def confirm_update(self, update_id: int) -> bool:
        """Remote entry point: the view applied the batch ``update_id``."""
        return self._communicator.confirm_update(update_id)

    def set_selection(self, added_keys: Iterable[str], removed_keys: Iterable[str]) -> None:
        """
        Remote entry point: the user toggled rows.

        Unknown keys are ignored. The view always gets the resulting selection
        back; while readonly that is the unchanged selection.
        """
        added_keys, removed_keys = list(added_keys), list(removed_keys)
        if self.is_readonly():
            logger.warning("Rejecting selection change from a readonly combo box's remote view")
            self._queue_selection_echo()
            self._schedule_flush()
            return

        with FlagContextManager.from_client(self):
            diff = self._change_selection(
                lambda: self._selection.update_selection(added_keys, removed_keys)
            )

        self._queue_selection_echo()
        self._schedule_flush()
        logger.debug(f"Remote selection change applied: {diff}")

    # ========== ELEMENT PROPERTIES ==========

    def get_element_property(self, name: str, default: Any = None) -> Any:
        return self._properties.get(name, default)

    def _set_string_property(self, name: str, value: Optional[str]) -> None:
        self._properties[name] = "" if value is None else value

    def get_label(self) -> Optional[str]:
        return self._properties.get("label")

    def set_label(self, label: Optional[str]) -> None:
        self._set_string_property("label", label)

    def get_title(self) -> Optional[str]:
        return self._properties.get("title")

    def set_title(self, title: Optional[str]) -> None:
        self._set_string_property("title", title)

    def get_placeholder(self) -> Optional[str]:
        return self._properties.get("placeholder")

    def set_placeholder(self, text: Optional[str]) -> None:
        self._set_string_property("placeholder", text)

    def get_error_message(self) -> Optional[str]:
        return self._properties.get("errorMessage")

    def set_error_message(self, error_message: Optional[str]) -> None:
        """Message shown while the combo box is invalid."""
        self._set_string_property("errorMessage", error_message)

    def is_required(self) -> bool:
        return self._properties.get("required", False)

    def set_required(self, required: bool) -> None:
        self._properties["required"] = bool(required)

    def is_readonly(self) -> bool:
        return self._properties.get("readonly", False)

    def set_readonly(self, readonly: bool) -> None:
        self._properties["readonly"] = bool(readonly)

    def is_invalid(self) -> bool:
        return self._properties.get("invalid", False)

    def set_invalid(self, invalid: bool) -> None:
        self._properties["invalid"] = bool(invalid)

    def is_compact_mode(self) -> bool:
        """Compact mode shows a selection count instead of one chip per item."""
        return self._properties.get("compactMode", False)

    def set_compact_mode(self, compact_mode: bool) -> None:
        self._properties["compactMode"] = bool(compact_mode)

    def is_ordered(self) -> bool:
        """Ordered mode displays selected items sorted by label."""
        return self._properties.get("ordered", False)

    def set_ordered(self, ordered: bool) -> None:
        self._properties["ordered"] = bool(ordered)

    def is_clear_button_visible(self) -> bool:
        return self._properties.get("clearButtonVisible", False)

    def set_clear_button_visible(self, visible: bool) -> None:
        self._properties["clearButtonVisible"] = bool(visible)

    # ========== INTERNALS ==========

    def _resolved_selection(self) -> List[Tuple[str, Any]]:
        registry = self._communicator.registry
        resolved = []
        for key in self._selection.keys:
            try:
                resolved.append((key, registry.get(key)))
            except UnknownKey:
                continue
        return resolved

    def _change_selection(self, change: Callable[[], SelectionDiff]) -> SelectionDiff:
        old = self._resolved_selection()
        diff = change()
        self._fire_events(old, diff)
        return diff

    def _fire_events(self, old: List[Tuple[str, Any]], diff: SelectionDiff) -> None:
        if not diff.changed:
            return

        registry = self._communicator.registry
        removed_keys = set(diff.removed_keys)
        old_value = [item for _, item in old]
        removed = [item for key, item in old if key in removed_keys]
        added = [registry.get(key) for key in diff.added_keys if registry.has_key(key)]
        new_value = self.get_value()
        if self._in_provider_reset:
            logger.info(f"Data provider changed; value reset to empty ({len(old_value)} items dropped)")

        self.selection_changed.emit(MultiSelectionEvent(
            self, old_value, new_value, added, removed, self._from_client
        ))
        self.value_changed.emit(ValueChangeEvent(self, old_value, new_value, self._from_client))

    def _queue_selection_echo(self) -> None:
        self._pending.run_before_response(SEND_SELECTED_ITEMS, self._send_selected_items)

    def _send_selected_items(self) -> None:
        remote_view = self._communicator.remote_view
        if remote_view is None:
            return
        serialize = self._communicator.serialize
        remote_view.set_selected_items([serialize(item) for item in self.get_value()])

    def _schedule_flush(self) -> None:
        if self._auto_flush and self.is_attached() and QCoreApplication.instance() is not None:
            self._response_timer.schedule()
