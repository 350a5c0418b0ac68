"""
Client/server filtering decision and filter predicates.

When every item fits into one page the remote view already holds the whole
set and can filter by itself. Otherwise filtering runs here against the item
source. A custom item filter always forces filtering here, because a host
predicate cannot run inside the remote view.
"""

import logging
from typing import Any, Callable, Optional

from PyQt6.QtCore import QLocale

from pyqt_multiselect.core.item_source import ItemPredicate

logger = logging.getLogger(__name__)

# (item, filter_text) -> bool
ItemFilter = Callable[[Any, str], bool]


class FilterPolicy:
    """
    Decides where filtering happens and builds the effective predicate.

    The default predicate is a case-insensitive substring match of the
    generated label, case folded with the configured locale.
    """

    def __init__(
        self,
        label_for: Callable[[Any], str],
        item_filter: Optional[ItemFilter] = None,
        locale_name: Optional[str] = None,
    ):
        self._label_for = label_for
        self._item_filter = item_filter
        self._locale = QLocale(locale_name) if locale_name else QLocale()
        self.client_side = False

    @property
    def item_filter(self) -> Optional[ItemFilter]:
        return self._item_filter

    @property
    def has_custom_filter(self) -> bool:
        return self._item_filter is not None

    @property
    def locale_name(self) -> str:
        return self._locale.name()

    def set_item_filter(self, item_filter: Optional[ItemFilter]) -> None:
        """Install (or remove with None) a custom item filter. Discards the last decision."""
        self._item_filter = item_filter
        self.client_side = False

    def set_locale(self, locale_name: Optional[str]) -> None:
        self._locale = QLocale(locale_name) if locale_name else QLocale()

    def evaluate(self, item_count: int, page_size: int) -> bool:
        """
        Re-derive the filtering location.

        The boundary is inclusive: exactly ``page_size`` items still filter
        on the client.
        """
        if self.has_custom_filter:
            self.client_side = False
        else:
            self.client_side = item_count <= page_size
        logger.debug(
            f"Filtering on {'client' if self.client_side else 'server'} "
            f"(items={item_count}, page_size={page_size}, custom={self.has_custom_filter})"
        )
        return self.client_side

    def fold_case(self, text: str) -> str:
        return self._locale.toLower(text)

    def predicate(self, filter_text: Optional[str]) -> Optional[ItemPredicate]:
        """Return the item predicate for ``filter_text``, or None when nothing is filtered."""
        if not filter_text:
            return None

        if self._item_filter is not None:
            item_filter = self._item_filter
            return lambda item: item_filter(item, filter_text)

        needle = self.fold_case(filter_text)
        return lambda item: needle in self.fold_case(self._label_for(item))
