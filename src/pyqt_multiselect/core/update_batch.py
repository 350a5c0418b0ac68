"""Update batches pushed to a remote view."""

from dataclasses import dataclass, field
from typing import Iterator, List, Optional, Set, Union

from pyqt_multiselect.protocols.remote_view import RemoteView, SerializedItem


@dataclass(frozen=True)
class PageWindow:
    """The slice of items a remote view is currently looking at."""
    offset: int = 0
    length: int = 0
    filter_text: str = ""

    @property
    def end(self) -> int:
        return self.offset + self.length


@dataclass(frozen=True)
class Resize:
    size: int

    def apply(self, view: RemoteView) -> None:
        view.resize(self.size)


@dataclass(frozen=True)
class SetRange:
    offset: int
    items: List[SerializedItem]

    def apply(self, view: RemoteView) -> None:
        view.set_range(self.offset, self.items)


@dataclass(frozen=True)
class Commit:
    update_id: int
    filter_text: str

    def apply(self, view: RemoteView) -> None:
        view.commit(self.update_id, self.filter_text)


Operation = Union[Resize, SetRange, Commit]


@dataclass
class UpdateBatch:
    """
    Ordered operations for one request cycle, closed by a Commit.

    ``keys`` records every item key carried by the batch so the keys can be
    released once the remote view no longer holds them.
    """
    update_id: int
    filter_text: str
    operations: List[Operation] = field(default_factory=list)
    keys: Set[str] = field(default_factory=set)

    def add(self, operation: Operation) -> None:
        self.operations.append(operation)
        if isinstance(operation, SetRange):
            self.keys.update(item["key"] for item in operation.items)

    def close(self) -> None:
        self.operations.append(Commit(self.update_id, self.filter_text))

    @property
    def resize(self) -> Optional[Resize]:
        return next((op for op in self.operations if isinstance(op, Resize)), None)

    @property
    def ranges(self) -> List[SetRange]:
        return [op for op in self.operations if isinstance(op, SetRange)]

    def send(self, view: RemoteView) -> None:
        for operation in self.operations:
            operation.apply(view)

    def __iter__(self) -> Iterator[Operation]:
        return iter(self.operations)
