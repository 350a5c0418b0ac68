"""
Protocol definitions.

ABC-based contracts for the remote view and for selection widgets, and the
process-wide configuration hook.
"""

from .remote_view import RemoteView, SerializedItem
from .widget_protocols import (
    ValueGettable,
    ValueSettable,
    PlaceholderCapable,
    ChangeSignalEmitter,
    MultiSelectable,
)
from .combo_config import MultiselectConfig, set_combo_config, get_combo_config

__all__ = [
    "RemoteView",
    "SerializedItem",
    "ValueGettable",
    "ValueSettable",
    "PlaceholderCapable",
    "ChangeSignalEmitter",
    "MultiSelectable",
    "MultiselectConfig",
    "set_combo_config",
    "get_combo_config",
]
