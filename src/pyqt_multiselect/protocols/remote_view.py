"""
Remote view contract.

The remote view is whatever renders the combo box: a widget in the same
process, a browser on the other end of a socket, or a test double. The core
only ever talks to it through this ABC, so the transport stays pluggable.

Wire format of a serialized item:
    {"key": "17", "label": "Banana", ...extra generated fields}
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List

SerializedItem = Dict[str, Any]


class RemoteView(ABC):
    """
    ABC for the receiving end of update batches.

    Operations of one batch arrive in order (resize, set_range..., commit).
    Implementations must apply every operation of a batch before they
    acknowledge its update id.
    """

    @abstractmethod
    def resize(self, size: int) -> None:
        """
        Set the total number of items matching the current filter.

        Args:
            size: Item count under the filter echoed by the following commit
        """
        pass

    @abstractmethod
    def set_range(self, offset: int, items: List[SerializedItem]) -> None:
        """
        Replace the rows starting at ``offset`` with ``items``.

        Args:
            offset: Index of the first replaced row
            items: Serialized items, never more than the requested window
        """
        pass

    @abstractmethod
    def commit(self, update_id: int, filter_text: str) -> None:
        """
        Close a batch.

        Args:
            update_id: Strictly increasing id to acknowledge with confirm_update
            filter_text: Filter the batch was produced for; a view whose filter
                has moved on must discard the batch
        """
        pass

    @abstractmethod
    def set_selected_items(self, items: List[SerializedItem]) -> None:
        """
        Replace the displayed selection with ``items`` (full echo).
        """
        pass

    @abstractmethod
    def set_client_side_filtering(self, enabled: bool) -> None:
        """
        Tell the view whether it holds every item and must filter by itself.
        """
        pass
