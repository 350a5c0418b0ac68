"""Process-wide defaults for multiselect combo boxes.

Applications set a config once at startup; every combo box created afterwards
reads its defaults from it. Explicit constructor arguments still win.
"""

from typing import Optional
from dataclasses import dataclass


@dataclass
class MultiselectConfig:
    """Defaults for multiselect combo boxes.

    Attributes:
        page_size: Fetch chunk size and client/server filtering threshold
        filter_locale: Locale name used to case fold filter text (None = system locale)
        auto_flush: Flush pending updates on the next Qt event-loop turn
        passivate_inactive_keys: Opt in to releasing keys the remote view no longer holds
            once it acknowledges a batch
    """

    page_size: int = 50
    filter_locale: Optional[str] = None
    auto_flush: bool = False
    passivate_inactive_keys: bool = False


# Global config instance (set by application)
_combo_config: Optional[MultiselectConfig] = None


def set_combo_config(config: Optional[MultiselectConfig]) -> None:
    """Set (or clear with None) the global multiselect configuration."""
    global _combo_config
    _combo_config = config


def get_combo_config() -> MultiselectConfig:
    """Get the current configuration, or the defaults if none was set."""
    if _combo_config is None:
        return MultiselectConfig()
    return _combo_config
