"""
Qt-facing widgets and remote view adapters.
"""

from .qt_meta import PyQtWidgetMeta
from .item_cache import LocalItemCache
from .remote_view_bridge import QtRemoteViewBridge
from .multiselect_combo_box import (
    ITEM_LABEL_PATH,
    ITEM_VALUE_PATH,
    MultiselectComboBox,
    MultiSelectionEvent,
    ValueChangeEvent,
)

__all__ = [
    "PyQtWidgetMeta",
    "LocalItemCache",
    "QtRemoteViewBridge",
    "ITEM_LABEL_PATH",
    "ITEM_VALUE_PATH",
    "MultiselectComboBox",
    "MultiSelectionEvent",
    "ValueChangeEvent",
]
