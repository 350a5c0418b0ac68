"""
Widget ABC contracts for multiselect components.

Explicit contracts a selection widget implements, so hosts (form builders,
binders, tests) can rely on inheritance instead of duck typing.

Design Philosophy:
- Explicit inheritance over duck typing
- Fail-loud over fail-silent
- Multiple inheritance for composable capabilities
"""

from abc import ABC, abstractmethod
from typing import Any, Callable, Iterable, List


class ValueGettable(ABC):
    """
    ABC for widgets that can return a value.
    """

    @abstractmethod
    def get_value(self) -> Any:
        """
        Get the current value from the widget.

        Returns:
            The widget's current value. Multi-value widgets return an empty
            collection, never None.
        """
        pass


class ValueSettable(ABC):
    """
    ABC for widgets that can accept a value.
    """

    @abstractmethod
    def set_value(self, value: Any) -> None:
        """
        Set the widget's value.

        Args:
            value: The value to set. None clears the widget.
        """
        pass


class PlaceholderCapable(ABC):
    """
    ABC for widgets that can display placeholder text while empty.
    """

    @abstractmethod
    def set_placeholder(self, text: str) -> None:
        """
        Args:
            text: Placeholder text to display (e.g., "Add fruits")
        """
        pass


class ChangeSignalEmitter(ABC):
    """
    ABC for widgets that emit change signals.

    Gives hosts one way to subscribe regardless of the concrete signal name.
    """

    @abstractmethod
    def connect_change_signal(self, callback: Callable[[Any], None]) -> None:
        """
        Connect callback to the widget's value change signal.

        Args:
            callback: Function to call when the value changes.
                     Signature: callback(new_value: Any) -> None
        """
        pass

    @abstractmethod
    def disconnect_change_signal(self, callback: Callable[[Any], None]) -> None:
        """
        Disconnect a callback connected with connect_change_signal().
        """
        pass


class MultiSelectable(ABC):
    """
    ABC for widgets holding a set of selected items.

    Incremental operations let hosts toggle single items without resending
    the whole selection.
    """

    @abstractmethod
    def select(self, *items: Any) -> None:
        """Add items to the selection."""
        pass

    @abstractmethod
    def deselect(self, *items: Any) -> None:
        """Remove items from the selection."""
        pass

    @abstractmethod
    def update_selection(self, added: Iterable[Any], removed: Iterable[Any]) -> None:
        """
        Add and remove items in one change.

        Args:
            added: Items to add
            removed: Items to remove; wins over ``added`` for items in both
        """
        pass

    @abstractmethod
    def get_selected_items(self) -> List[Any]:
        """Selected items in selection order."""
        pass

    @abstractmethod
    def is_selected(self, item: Any) -> bool:
        pass
