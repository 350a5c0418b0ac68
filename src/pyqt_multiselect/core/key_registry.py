"""
Bidirectional item <-> key mapping.

Every item that crosses the wire to a remote view is referred to by an opaque
string key. The registry hands out keys on first sight of an item identity and
resolves keys back to items when the remote view reports selection changes.

Identity:
    By default an item's identity is the item itself (value equality via
    ``__eq__``/``__hash__``). Unhashable items fall back to reference identity
    (``id(item)``), which stays unique because the registry holds a strong
    reference to every registered item.

    Hash-based identity is unsafe for mutable items: mutating an already keyed
    item changes its hash and the registry will issue a second key for what
    the host considers the same item. Hosts with mutable items should install
    an identity function that extracts a stable id.

    Reference identity has the same problem for sources that build fresh
    unhashable objects on every fetch (dicts decoded from an API response):
    each refetch yields new keys and a selection made on an earlier fetch is
    not recognised. Such sources need an identity function, installed with
    MultiselectComboBox.set_item_identity() before items are set.
"""

import itertools
import logging
from typing import Any, Callable, Dict, Generic, Hashable, Optional, TypeVar

from pyqt_multiselect.core.exceptions import InvalidConfiguration, UnknownKey

logger = logging.getLogger(__name__)

T = TypeVar('T')

IdentityFunction = Callable[[Any], Hashable]


def default_identity(item: Any) -> Hashable:
    """Return the item itself when hashable, otherwise its reference identity."""
    try:
        hash(item)
    except TypeError:
        return ('__ref__', id(item))
    return item


class KeyRegistry(Generic[T]):
    """
    Per-widget registry of stable item keys.

    Keys come from a counter owned by the instance, so two registries never
    interfere and a key is never handed out twice within one registry.
    """

    def __init__(self, identity: Optional[IdentityFunction] = None):
        self._identity: IdentityFunction = identity or default_identity
        self._counter = itertools.count(1)
        self._key_by_identity: Dict[Hashable, str] = {}
        self._item_by_key: Dict[str, T] = {}
        self._identity_by_key: Dict[str, Hashable] = {}

    @property
    def identity(self) -> IdentityFunction:
        return self._identity

    def set_identity(self, identity: Optional[IdentityFunction]) -> None:
        """
        Install the identity function used to recognise items.

        Raises:
            InvalidConfiguration: If keys have already been issued.
        """
        if self._item_by_key:
            raise InvalidConfiguration(
                "Cannot change item identity while keys are registered; "
                "install the identity before setting items"
            )
        self._identity = identity or default_identity

    def key(self, item: T) -> str:
        """Return the key for ``item``, registering it on first sight."""
        identity = self._identity(item)
        key = self._key_by_identity.get(identity)
        if key is not None:
            return key

        key = str(next(self._counter))
        self._key_by_identity[identity] = key
        self._item_by_key[key] = item
        self._identity_by_key[key] = identity
        return key

    def get(self, key: str) -> T:
        """
        Resolve a key back to its item.

        Raises:
            UnknownKey: If the key was never issued or has been released.
        """
        try:
            return self._item_by_key[key]
        except KeyError:
            raise UnknownKey(key) from None

    def has_key(self, key: str) -> bool:
        return key in self._item_by_key

    def contains(self, item: T) -> bool:
        return self._identity(item) in self._key_by_identity

    def key_if_registered(self, item: T) -> Optional[str]:
        """Return the key of an already registered item without registering it."""
        return self._key_by_identity.get(self._identity(item))

    def remove(self, item: T) -> Optional[str]:
        """Release the entry for ``item``. Returns the released key, if any."""
        key = self._key_by_identity.get(self._identity(item))
        if key is not None:
            self.remove_key(key)
        return key

    def remove_key(self, key: str) -> None:
        identity = self._identity_by_key.pop(key, None)
        if identity is None:
            return
        self._item_by_key.pop(key, None)
        self._key_by_identity.pop(identity, None)

    def remove_all(self) -> None:
        """Invalidate every issued key."""
        if self._item_by_key:
            logger.debug(f"Releasing {len(self._item_by_key)} item keys")
        self._key_by_identity.clear()
        self._item_by_key.clear()
        self._identity_by_key.clear()

    def __len__(self) -> int:
        return len(self._item_by_key)
