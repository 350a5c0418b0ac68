"""
Selection held as item keys.

The selection never stores items, only keys issued by the communicator's
KeyRegistry, so replacing the data set cannot leave stale item references
behind. Items are resolved through the registry on demand.

Reconciliation rules:
- Data provider swap: the selection is cleared; keys do not cross providers.
- Label generator change: the selection survives (it is keyed, not labeled).
- Filter change: the selection survives, including filtered-out items.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Generic, Iterable, List, Optional, Tuple, TypeVar

from pyqt_multiselect.core.exceptions import UnknownKey
from pyqt_multiselect.core.key_registry import KeyRegistry

logger = logging.getLogger(__name__)

T = TypeVar('T')


@dataclass(frozen=True)
class SelectionDiff:
    """Keys that entered and left the selection in one change."""
    added_keys: Tuple[str, ...] = field(default_factory=tuple)
    removed_keys: Tuple[str, ...] = field(default_factory=tuple)

    @property
    def changed(self) -> bool:
        return bool(self.added_keys or self.removed_keys)


class SelectionModel(Generic[T]):
    """Insertion-ordered set of selected keys."""

    def __init__(self, registry: KeyRegistry[T]):
        self._registry = registry
        self._keys: Dict[str, None] = {}

    @property
    def keys(self) -> List[str]:
        return list(self._keys)

    def get_value(self) -> List[T]:
        """
        Resolve the selection to items, in selection order.

        Keys that no longer resolve belong to data that has left the source;
        they are dropped rather than raised.
        """
        items = []
        for key in self._keys:
            try:
                items.append(self._registry.get(key))
            except UnknownKey:
                logger.warning(f"Dropping selected key {key!r}: no longer registered")
        return items

    def set_value(self, items: Optional[Iterable[T]]) -> SelectionDiff:
        """Replace the selection with ``items``. None clears it."""
        new_keys: Dict[str, None] = {}
        for item in items or ():
            new_keys[self._registry.key(item)] = None
        return self._replace(new_keys)

    def update_selection(self, added_keys: Iterable[str], removed_keys: Iterable[str]) -> SelectionDiff:
        """
        Apply a remote-driven change: ``(current | added) - removed``.

        Keys the registry does not know are ignored; a remote view may still
        reference rows from a batch that has since been superseded.
        """
        removed = set(removed_keys)
        new_keys = dict(self._keys)
        for key in added_keys:
            if not self._registry.has_key(key):
                logger.warning(f"Ignoring selection of unknown key {key!r}")
                continue
            new_keys[key] = None
        for key in removed:
            new_keys.pop(key, None)
        return self._replace(new_keys)

    def update_selection_items(self, added: Iterable[T], removed: Iterable[T]) -> SelectionDiff:
        """Item-based variant of update_selection(); unseen added items get keys."""
        added_keys = [self._registry.key(item) for item in added]
        removed_keys = [
            key for key in (self._registry.key_if_registered(item) for item in removed)
            if key is not None
        ]
        return self.update_selection(added_keys, removed_keys)

    def select(self, *items: T) -> SelectionDiff:
        return self.update_selection_items(items, ())

    def deselect(self, *items: T) -> SelectionDiff:
        return self.update_selection_items((), items)

    def is_selected(self, item: T) -> bool:
        key = self._registry.key_if_registered(item)
        return key is not None and key in self._keys

    def clear(self) -> SelectionDiff:
        return self._replace({})

    def _replace(self, new_keys: Dict[str, None]) -> SelectionDiff:
        added = tuple(key for key in new_keys if key not in self._keys)
        removed = tuple(key for key in self._keys if key not in new_keys)
        self._keys = new_keys
        diff = SelectionDiff(added, removed)
        if diff.changed:
            logger.debug(f"Selection changed: +{len(added)} -{len(removed)} (now {len(new_keys)})")
        return diff

    def __len__(self) -> int:
        return len(self._keys)

    def __contains__(self, key: str) -> bool:
        return key in self._keys
