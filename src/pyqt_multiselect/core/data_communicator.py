"""
Data communicator: lazy paging, keying and incremental updates.

The communicator sits between an item source and one remote view. The remote
view asks for a window (offset, length, filter text); the communicator counts
and fetches exactly that slice, keys every item, serializes it, diffs the
result against what it sent last time and pushes the difference as one
UpdateBatch:

    Resize(size)            only when the size or the data filter changed
    SetRange(offset, rows)  one per contiguous run of changed rows
    Commit(id, filter)      always, with a strictly increasing id

A batch is fully built before the first operation goes out, so a failing
source or label generator never leaves a half-applied batch on the remote.

Work is not done when a request arrives. Requests only move the window and
queue a "push_window" action on the shared PendingActionQueue; flush() drains
the queue, so any number of requests between two flushes cost one fetch.
"""

import logging
from enum import Enum
from typing import Any, Callable, Dict, Generic, Iterable, List, Optional, Set, TypeVar

from pyqt_multiselect.core.exceptions import InvalidConfiguration, LabelGenerationFailure
from pyqt_multiselect.core.filter_policy import FilterPolicy, ItemFilter
from pyqt_multiselect.core.item_source import FilterAdapter, FilterConverter, ItemSource, Query
from pyqt_multiselect.core.key_registry import IdentityFunction, KeyRegistry
from pyqt_multiselect.core.pending_actions import PendingActionQueue
from pyqt_multiselect.core.update_batch import PageWindow, Resize, SetRange, UpdateBatch
from pyqt_multiselect.protocols.combo_config import get_combo_config
from pyqt_multiselect.protocols.remote_view import RemoteView, SerializedItem

logger = logging.getLogger(__name__)

# Verbose logging of every outgoing operation
DEBUG_WIRE = False

T = TypeVar('T')

LabelGenerator = Callable[[Any], Optional[str]]
DataGenerator = Callable[[Any, Dict[str, Any]], None]

PUSH_WINDOW = "push_window"


class CommunicatorState(Enum):
    UNINITIALIZED = "uninitialized"
    ACTIVE = "active"


def validate_page_size(page_size: Any) -> int:
    if isinstance(page_size, bool) or not isinstance(page_size, int) or page_size < 1:
        raise InvalidConfiguration(f"Page size must be a positive integer, got {page_size!r}")
    return page_size


class DataCommunicator(Generic[T]):
    """
    Serves windowed requests from one remote view.

    The communicator exclusively owns its KeyRegistry. Keys survive filter
    and range changes and are only invalidated when a new data provider is
    installed. With passivation enabled, keys are also released once the
    remote view acknowledged a batch that no longer contains them; the view
    must then drop rows outside the acknowledged window. Keys returned by the
    pinned-keys supplier, normally the current selection, are never released.
    """

    def __init__(
        self,
        pending: Optional[PendingActionQueue] = None,
        label_generator: LabelGenerator = str,
        page_size: Optional[int] = None,
        identity: Optional[IdentityFunction] = None,
        item_filter: Optional[ItemFilter] = None,
        locale_name: Optional[str] = None,
        passivate_inactive_keys: Optional[bool] = None,
    ):
        config = get_combo_config()

        self._pending = pending if pending is not None else PendingActionQueue()
        self._registry: KeyRegistry[T] = KeyRegistry(identity)
        self._label_generator = self._require_label_generator(label_generator)
        self._data_generators: List[DataGenerator] = []
        self._page_size = validate_page_size(config.page_size if page_size is None else page_size)
        self._filter_policy = FilterPolicy(
            self.generate_label, item_filter, locale_name or config.filter_locale
        )
        self._passivate = (
            config.passivate_inactive_keys if passivate_inactive_keys is None
            else passivate_inactive_keys
        )
        self._pinned_keys: Callable[[], Iterable[str]] = lambda: ()

        self.state = CommunicatorState.UNINITIALIZED
        self._source: Optional[ItemSource] = None
        self._text_filtered = False
        self._remote_view: Optional[RemoteView] = None
        self._window = PageWindow(0, self._page_size, "")

        # What the remote view is believed to hold
        self._sent_rows: Dict[int, SerializedItem] = {}
        self._sent_size: Optional[int] = None
        self._sent_filter: Optional[str] = None
        self._sent_client_side: Optional[bool] = None
        self._sent_keys: Set[str] = set()

        self._last_update_id = 0
        self._last_confirmed_id = 0
        self._outstanding: Dict[int, UpdateBatch] = {}

    # ========== COLLABORATORS ==========

    @property
    def registry(self) -> KeyRegistry[T]:
        return self._registry

    @property
    def pending(self) -> PendingActionQueue:
        return self._pending

    @property
    def filter_policy(self) -> FilterPolicy:
        return self._filter_policy

    @property
    def source(self) -> Optional[ItemSource]:
        return self._source

    @property
    def remote_view(self) -> Optional[RemoteView]:
        return self._remote_view

    @property
    def window(self) -> PageWindow:
        return self._window

    @property
    def page_size(self) -> int:
        return self._page_size

    @property
    def client_side_filtering(self) -> bool:
        return self._filter_policy.client_side

    @property
    def passivate_inactive_keys(self) -> bool:
        return self._passivate

    @property
    def last_update_id(self) -> int:
        return self._last_update_id

    @property
    def last_confirmed_id(self) -> int:
        return self._last_confirmed_id

    @property
    def outstanding_update_ids(self) -> List[int]:
        return sorted(self._outstanding)

    def set_pinned_keys_supplier(self, supplier: Callable[[], Iterable[str]]) -> None:
        """Install the supplier of keys that passivation must keep."""
        self._pinned_keys = supplier

    # ========== REMOTE VIEW LIFECYCLE ==========

    def attach(self, remote_view: RemoteView) -> None:
        """Connect a remote view. A fresh view holds nothing, so everything is resent."""
        if remote_view is None:
            raise InvalidConfiguration("The remote view can not be None")
        self._remote_view = remote_view
        self._reset_sent_state()
        logger.info(f"Attached remote view {type(remote_view).__name__}")
        self._schedule_push()

    def detach(self) -> None:
        if self._remote_view is not None:
            logger.info(f"Detached remote view {type(self._remote_view).__name__}")
        self._remote_view = None
        self._reset_sent_state()

    def flush(self) -> int:
        """
        Drain pending actions. This is the only point where the remote view
        receives data. Nothing runs while no remote view is attached.
        """
        if self._remote_view is None:
            return 0
        return self._pending.drain()

    # ========== CONFIGURATION ==========

    def set_data_provider(self, source: ItemSource, filter_converter: Optional[FilterConverter] = None) -> None:
        """
        Install a new item source and reset everything derived from the old one.

        Keys issued for the previous source are invalidated: identity from
        one source is not assumed to be valid against another.

        Args:
            source: The item source
            filter_converter: Converts remote filter text into the source's filter
        """
        if source is None:
            raise InvalidConfiguration("The data provider can not be None")

        if filter_converter is not None:
            source = FilterAdapter(source, filter_converter)
        # Counted before anything is reset: a failing source leaves the old provider installed
        item_count = source.count(None)

        self._text_filtered = filter_converter is not None or not source.in_memory
        self._source = source

        self._registry.remove_all()
        self._reset_sent_state()
        self._window = PageWindow(0, self._page_size, "")
        self.state = CommunicatorState.ACTIVE
        logger.info(f"Installed data provider {source!r}")

        self._filter_policy.evaluate(item_count, self._page_size)
        self._schedule_push()

    def set_label_generator(self, label_generator: LabelGenerator) -> None:
        self._label_generator = self._require_label_generator(label_generator)
        self._schedule_push()

    @property
    def label_generator(self) -> LabelGenerator:
        return self._label_generator

    def add_data_generator(self, generator: DataGenerator) -> None:
        """Add a generator contributing extra fields to every serialized item."""
        self._data_generators.append(generator)
        self._schedule_push()

    def set_item_filter(self, item_filter: Optional[ItemFilter]) -> None:
        self._filter_policy.set_item_filter(item_filter)
        if self.state is CommunicatorState.ACTIVE:
            self._evaluate_filter_policy()
            self._schedule_push()

    def set_locale(self, locale_name: Optional[str]) -> None:
        self._filter_policy.set_locale(locale_name)
        self._schedule_push()

    def set_page_size(self, page_size: int) -> None:
        self._page_size = validate_page_size(page_size)
        if self.state is CommunicatorState.ACTIVE:
            self._evaluate_filter_policy()
            self._schedule_push()

    def refresh_all(self) -> None:
        """Re-read the source: the filtering decision and the current window."""
        if self.state is not CommunicatorState.ACTIVE:
            return
        self._evaluate_filter_policy()
        self._schedule_push()

    # ========== REMOTE REQUESTS ==========

    def set_requested_range(self, offset: int, length: int) -> None:
        offset, length = self._clamp("offset", offset), self._clamp("length", length)
        self._window = PageWindow(offset, length, self._window.filter_text)
        self._schedule_push()

    def set_filter(self, filter_text: Optional[str]) -> None:
        self._window = PageWindow(self._window.offset, self._window.length, filter_text or "")
        self._schedule_push()

    def request_range(self, offset: int, length: int, filter_text: Optional[str]) -> None:
        """Move the window and change the filter in one step."""
        offset, length = self._clamp("offset", offset), self._clamp("length", length)
        self._window = PageWindow(offset, length, filter_text or "")
        self._schedule_push()

    def confirm_update(self, update_id: int) -> bool:
        """
        Acknowledge a batch.

        Returns:
            True if the batch is the authoritative current state, False if it
            was unknown or produced for a filter the view has moved away from
        """
        batch = self._outstanding.pop(update_id, None)
        if batch is None:
            logger.warning(f"Ignoring confirmation of unknown or already confirmed update {update_id}")
            return False

        if batch.filter_text != self._window.filter_text:
            logger.debug(
                f"Update {update_id} was produced for filter {batch.filter_text!r}, "
                f"current filter is {self._window.filter_text!r}; not authoritative"
            )
            return False

        for uid in [uid for uid in self._outstanding if uid < update_id]:
            del self._outstanding[uid]

        self._last_confirmed_id = max(self._last_confirmed_id, update_id)
        if self._passivate:
            self._passivate_keys()
        return True

    # ========== SERIALIZATION ==========

    def generate_label(self, item: Any) -> str:
        """
        Produce the display label for ``item``.

        Raises:
            LabelGenerationFailure: If the generator returns None (or a non-string)
                for a non-None item
        """
        if item is None:
            return ""
        label = self._label_generator(item)
        if label is None:
            raise LabelGenerationFailure(
                f"Got 'None' as a label value for the item '{item}'. "
                f"The item label generator may not return None"
            )
        if not isinstance(label, str):
            raise LabelGenerationFailure(
                f"The item label generator returned {type(label).__name__} "
                f"instead of str for the item '{item}'"
            )
        return label

    def serialize(self, item: T) -> SerializedItem:
        data: SerializedItem = {"label": self.generate_label(item)}
        for generator in self._data_generators:
            generator(item, data)
        data["key"] = self._registry.key(item)
        return data

    # ========== BATCHES ==========

    def build_batch(self) -> UpdateBatch:
        """
        Build the batch bringing the remote view up to date with the current window.

        Only the registry changes: serializing keys the fetched items. If the
        build fails, keys issued during it are released again. send_batch()
        records what was sent.
        """
        if self._source is None:
            raise InvalidConfiguration("No data provider has been set")

        window = self._window
        data_filter = "" if self.client_side_filtering else window.filter_text
        effective = self._effective_filter(window.filter_text)

        size = self._source.count(effective)
        start = min(window.offset, size)
        end = min(window.end, size)
        items = self._source.fetch(Query(start, end - start, effective)) if end > start else []
        rows = self._serialize_rows(items)

        batch = UpdateBatch(self._last_update_id + 1, window.filter_text)
        context_changed = data_filter != self._sent_filter
        if context_changed or size != self._sent_size:
            batch.add(Resize(size))

        previous = {} if context_changed else self._sent_rows
        for offset, run in self._changed_runs(start, rows, previous):
            batch.add(SetRange(offset, run))

        batch.close()
        return batch

    def send_batch(self, batch: UpdateBatch) -> None:
        """Record ``batch`` as sent and deliver it to the remote view."""
        resize = batch.resize
        data_filter = "" if self.client_side_filtering else batch.filter_text
        if data_filter != self._sent_filter:
            self._sent_rows = {}
        self._sent_filter = data_filter
        if resize is not None:
            self._sent_size = resize.size
            self._sent_rows = {i: row for i, row in self._sent_rows.items() if i < resize.size}
        for set_range in batch.ranges:
            for i, row in enumerate(set_range.items):
                self._sent_rows[set_range.offset + i] = row

        self._sent_keys |= batch.keys
        self._last_update_id = batch.update_id
        self._outstanding[batch.update_id] = batch

        if DEBUG_WIRE:
            for operation in batch:
                logger.info(f"WIRE -> {operation}")
        logger.debug(
            f"Sending update {batch.update_id} ({len(batch.operations)} operations, "
            f"filter={batch.filter_text!r})"
        )
        if self._remote_view is None:
            return
        if self._sent_client_side != self.client_side_filtering:
            self._remote_view.set_client_side_filtering(self.client_side_filtering)
            self._sent_client_side = self.client_side_filtering
        batch.send(self._remote_view)

    def push_window(self) -> UpdateBatch:
        batch = self.build_batch()
        self.send_batch(batch)
        return batch

    # ========== INTERNALS ==========

    @staticmethod
    def _require_label_generator(label_generator: LabelGenerator) -> LabelGenerator:
        if label_generator is None:
            raise InvalidConfiguration("The item label generator can not be None")
        return label_generator

    @staticmethod
    def _clamp(name: str, value: int) -> int:
        if value < 0:
            logger.warning(f"Remote view requested a negative {name} ({value}); using 0")
            return 0
        return value

    def _serialize_rows(self, items: List[T]) -> List[SerializedItem]:
        issued: List[str] = []
        rows: List[SerializedItem] = []
        try:
            for item in items:
                known = self._registry.key_if_registered(item) is not None
                row = self.serialize(item)
                if not known:
                    issued.append(row["key"])
                rows.append(row)
        except Exception:
            for key in issued:
                self._registry.remove_key(key)
            raise
        return rows

    @staticmethod
    def _changed_runs(start: int, rows: List[SerializedItem], previous: Dict[int, SerializedItem]):
        """Yield (offset, rows) for each contiguous run of rows differing from ``previous``."""
        run: List[SerializedItem] = []
        run_start = start
        for i, row in enumerate(rows):
            index = start + i
            if previous.get(index) == row:
                if run:
                    yield run_start, run
                    run = []
                continue
            if not run:
                run_start = index
            run.append(row)
        if run:
            yield run_start, run

    def _effective_filter(self, filter_text: str) -> Any:
        if self.client_side_filtering or not filter_text:
            return None
        if self._text_filtered:
            return filter_text
        return self._filter_policy.predicate(filter_text)

    def _evaluate_filter_policy(self) -> None:
        self._filter_policy.evaluate(self._source.count(None), self._page_size)

    def _schedule_push(self) -> None:
        if self.state is CommunicatorState.ACTIVE:
            self._pending.run_before_response(PUSH_WINDOW, self.push_window)

    def _reset_sent_state(self) -> None:
        self._sent_rows = {}
        self._sent_size = None
        self._sent_filter = None
        self._sent_client_side = None
        self._sent_keys = set()
        self._outstanding.clear()

    def _passivate_keys(self) -> None:
        """Release keys sent earlier that the remote view no longer needs."""
        window = self._window
        active = {
            row["key"] for index, row in self._sent_rows.items()
            if window.offset <= index < window.end
        }
        for batch in self._outstanding.values():
            active |= batch.keys
        keep = active | set(self._pinned_keys())

        released = self._sent_keys - keep
        for key in released:
            self._registry.remove_key(key)
        self._sent_keys -= released
        self._sent_rows = {
            index: row for index, row in self._sent_rows.items()
            if window.offset <= index < window.end
        }
        if released:
            logger.debug(f"Passivated {len(released)} keys outside the active window")
