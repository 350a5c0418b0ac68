"""
pyqt-multiselect: multi-selection combo box core for PyQt6.

Keeps a remote item view, a user-typed filter and a selection consistent
while paging lazily through arbitrarily large item sources.

Architecture:
- Tier 1 (Core): keys, item sources, filtering policy, data communicator,
  selection model
- Tier 2 (Protocols): remote view and widget ABCs, configuration
- Tier 3 (Services): flag management
- Tier 4 (Widgets): MultiselectComboBox composition root and remote view adapters

Key Features:
- Stable string keys for items without meaningful equality
- Windowed fetching with minimal, acknowledged update batches
- Filter-echo staleness guard for out-of-order responses
- Selection kept by key across filtering and relabeling
"""

__version__ = "0.1.0"

from pyqt_multiselect.core import (
    BoundedItemSource,
    CallbackItemSource,
    DataCommunicator,
    InvalidConfiguration,
    KeyRegistry,
    LabelGenerationFailure,
    MultiselectError,
    SelectionModel,
    SourceFetchFailure,
    UnknownKey,
)
from pyqt_multiselect.protocols import MultiselectConfig, RemoteView, get_combo_config, set_combo_config
from pyqt_multiselect.widgets import LocalItemCache, MultiselectComboBox, QtRemoteViewBridge

__all__ = [
    "__version__",
    "BoundedItemSource",
    "CallbackItemSource",
    "DataCommunicator",
    "InvalidConfiguration",
    "KeyRegistry",
    "LabelGenerationFailure",
    "MultiselectError",
    "SelectionModel",
    "SourceFetchFailure",
    "UnknownKey",
    "MultiselectConfig",
    "RemoteView",
    "get_combo_config",
    "set_combo_config",
    "LocalItemCache",
    "MultiselectComboBox",
    "QtRemoteViewBridge",
]
