"""
Pull-based item sources.

An item source answers two questions: "give me ``limit`` items starting at
``offset`` matching ``filter``" and "how many items match ``filter``". Two
concrete sources exist, plus a decorator that converts the filter text typed
in the remote view into whatever filter type the wrapped source understands.

Usage:
    source = BoundedItemSource(["Apple", "Banana", "Cherry"])
    source.fetch(Query(offset=0, limit=2))       # ['Apple', 'Banana']

    source = CallbackItemSource(
        fetch=lambda text, offset, limit: api.search(text, offset, limit),
        count=lambda text: api.count(text),
    )
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Generic, Iterable, List, Optional, Protocol, TypeVar

from pyqt_multiselect.core.exceptions import SourceFetchFailure

logger = logging.getLogger(__name__)

T = TypeVar('T')

ItemPredicate = Callable[[Any], bool]
FetchCallback = Callable[[Any, int, int], Iterable[Any]]
CountCallback = Callable[[Any], int]
FilterConverter = Callable[[str], Any]


@dataclass(frozen=True)
class Query:
    """A window into an item source."""
    offset: int = 0
    limit: Optional[int] = None  # None means "everything from offset"
    filter: Any = None


class ItemSource(Protocol):
    """Structural interface shared by every item source."""

    in_memory: bool

    def fetch(self, query: Query) -> List[Any]:
        """Return at most ``query.limit`` items starting at ``query.offset``."""
        ...

    def count(self, filter: Any = None) -> int:
        """Return the number of items matching ``filter``."""
        ...


class BoundedItemSource(Generic[T]):
    """
    Finite, eagerly available collection.

    The filter understood by this source is an item predicate (or None).
    """

    in_memory = True

    def __init__(self, items: Iterable[T]):
        self._items: List[T] = list(items)

    @property
    def items(self) -> List[T]:
        return self._items

    def _matching(self, filter: Optional[ItemPredicate]) -> List[T]:
        if filter is None:
            return self._items
        return [item for item in self._items if filter(item)]

    def fetch(self, query: Query) -> List[T]:
        matching = self._matching(query.filter)
        end = None if query.limit is None else query.offset + query.limit
        return matching[query.offset:end]

    def count(self, filter: Optional[ItemPredicate] = None) -> int:
        if filter is None:
            return len(self._items)
        return sum(1 for item in self._items if filter(item))

    def __repr__(self) -> str:
        return f"BoundedItemSource({len(self._items)} items)"


class CallbackItemSource:
    """
    Externally paged source backed by two host callbacks.

    ``fetch(filter, offset, limit)`` must return at most ``limit`` items and
    ``count(filter)`` the total number of matches. Failures in either callback
    surface as SourceFetchFailure and are never retried here.
    """

    in_memory = False

    def __init__(self, fetch: FetchCallback, count: CountCallback):
        self._fetch = fetch
        self._count = count

    def fetch(self, query: Query) -> List[Any]:
        limit = query.limit
        if limit is None:
            limit = self.count(query.filter) - query.offset
        if limit <= 0:
            return []

        try:
            items = list(self._fetch(query.filter, query.offset, limit))
        except Exception as e:
            raise SourceFetchFailure(
                f"Fetching {limit} items at offset {query.offset} failed: {e}"
            ) from e

        if len(items) > limit:
            raise SourceFetchFailure(
                f"Item source returned {len(items)} items for a query limited to {limit}"
            )
        return items

    def count(self, filter: Any = None) -> int:
        try:
            size = int(self._count(filter))
        except Exception as e:
            raise SourceFetchFailure(f"Counting items failed: {e}") from e

        if size < 0:
            raise SourceFetchFailure(f"Item source reported a negative size: {size}")
        return size

    def __repr__(self) -> str:
        return f"CallbackItemSource(fetch={self._fetch!r}, count={self._count!r})"


class FilterAdapter:
    """
    Decorator converting remote filter text into the wrapped source's filter.

    Empty filter text is passed through as None so the wrapped source sees an
    unfiltered query.
    """

    def __init__(self, source: ItemSource, converter: FilterConverter):
        self._source = source
        self._converter = converter
        self.in_memory = source.in_memory

    @property
    def source(self) -> ItemSource:
        return self._source

    def _convert(self, filter_text: Optional[str]) -> Any:
        if not filter_text:
            return None
        return self._converter(filter_text)

    def fetch(self, query: Query) -> List[Any]:
        converted = Query(query.offset, query.limit, self._convert(query.filter))
        return self._source.fetch(converted)

    def count(self, filter: Optional[str] = None) -> int:
        return self._source.count(self._convert(filter))

    def __repr__(self) -> str:
        return f"FilterAdapter({self._source!r})"
