"""
Service layer.

Cross-cutting helpers shared by widgets.
"""

from .flag_context_manager import ComboFlag, FlagContextManager

__all__ = [
    "ComboFlag",
    "FlagContextManager",
]
