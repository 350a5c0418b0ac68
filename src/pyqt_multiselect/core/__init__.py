"""
Core multiselect machinery.

Item keying, item sources, filtering policy, update batches and the data
communicator, plus the selection model. Only PyQt6.QtCore is used here.
"""

from .exceptions import (
    MultiselectError,
    InvalidConfiguration,
    UnknownKey,
    LabelGenerationFailure,
    SourceFetchFailure,
)
from .key_registry import KeyRegistry, default_identity
from .item_source import ItemSource, Query, BoundedItemSource, CallbackItemSource, FilterAdapter
from .filter_policy import FilterPolicy
from .update_batch import PageWindow, Resize, SetRange, Commit, UpdateBatch
from .pending_actions import PendingActionQueue
from .response_timer import ResponseTimer
from .data_communicator import CommunicatorState, DataCommunicator
from .selection_model import SelectionDiff, SelectionModel

__all__ = [
    "MultiselectError",
    "InvalidConfiguration",
    "UnknownKey",
    "LabelGenerationFailure",
    "SourceFetchFailure",
    "KeyRegistry",
    "default_identity",
    "ItemSource",
    "Query",
    "BoundedItemSource",
    "CallbackItemSource",
    "FilterAdapter",
    "FilterPolicy",
    "PageWindow",
    "Resize",
    "SetRange",
    "Commit",
    "UpdateBatch",
    "PendingActionQueue",
    "ResponseTimer",
    "CommunicatorState",
    "DataCommunicator",
    "SelectionDiff",
    "SelectionModel",
]
