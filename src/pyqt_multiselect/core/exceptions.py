"""Error taxonomy for the multiselect core."""


class MultiselectError(Exception):
    """Base class for all errors raised by the multiselect core."""


class InvalidConfiguration(MultiselectError, ValueError):
    """Raised when a required collaborator is missing or a setting is out of range."""


class UnknownKey(MultiselectError, KeyError):
    """Raised when a key was never issued by a registry or has been released."""

    def __init__(self, key: str):
        super().__init__(key)
        self.key = key

    def __str__(self) -> str:
        return f"Unknown item key: {self.key!r}"


class LabelGenerationFailure(MultiselectError, RuntimeError):
    """Raised when the label generator returns no label for a real item."""


class SourceFetchFailure(MultiselectError, RuntimeError):
    """Raised when an item source fails to count or fetch items."""
