"""
Context manager factory for temporary boolean flags on a combo box.

Pattern:
    Instead of:
        self._from_client = True
        try:
            # ... apply remote selection
        finally:
            self._from_client = False

    Use:
        with FlagContextManager.manage_flags(self, _from_client=True):
            # ... apply remote selection

Flags are restored to their previous values even when the body raises, and
nested use restores the outer value.
"""

from contextlib import contextmanager
from enum import Enum
from typing import Any, Dict, Set
import logging

logger = logging.getLogger(__name__)


class ComboFlag(Enum):
    """
    Registry of valid MultiselectComboBox flags.

    Add new flags here as they're introduced.
    """
    FROM_CLIENT = '_from_client'
    IN_PROVIDER_RESET = '_in_provider_reset'


class FlagContextManager:
    """Sets flags on entry and restores the previous values on exit."""

    VALID_FLAGS: Set[str] = {flag.value for flag in ComboFlag}

    @staticmethod
    @contextmanager
    def manage_flags(obj: Any, **flags: bool):
        """
        Args:
            obj: Object to set flags on (typically a MultiselectComboBox)
            **flags: Flag names and values to set (e.g., _from_client=True)

        Raises:
            ValueError: If any flag name is not in VALID_FLAGS
        """
        invalid_flags = set(flags) - FlagContextManager.VALID_FLAGS
        if invalid_flags:
            raise ValueError(
                f"Invalid flags: {invalid_flags}. "
                f"Valid flags: {FlagContextManager.VALID_FLAGS}. "
                f"Add new flags to ComboFlag enum."
            )

        # Direct attribute access: every flag must be initialized in __init__
        prev_values: Dict[str, bool] = {name: getattr(obj, name) for name in flags}
        for flag_name, flag_value in flags.items():
            setattr(obj, flag_name, flag_value)

        try:
            yield
        finally:
            for flag_name, prev_value in prev_values.items():
                setattr(obj, flag_name, prev_value)

    @staticmethod
    @contextmanager
    def from_client(obj: Any):
        """Mark changes made inside the block as originating from the remote view."""
        with FlagContextManager.manage_flags(obj, **{ComboFlag.FROM_CLIENT.value: True}):
            yield

    @staticmethod
    @contextmanager
    def provider_reset(obj: Any):
        """Mark changes made inside the block as part of a data provider swap."""
        with FlagContextManager.manage_flags(obj, **{ComboFlag.IN_PROVIDER_RESET.value: True}):
            yield

    @staticmethod
    def is_flag_set(obj: Any, flag: ComboFlag) -> bool:
        return getattr(obj, flag.value)

    @staticmethod
    def get_flag_state(obj: Any) -> Dict[str, bool]:
        """Current value of every registered flag, for logging."""
        return {flag.value: getattr(obj, flag.value) for flag in ComboFlag}
