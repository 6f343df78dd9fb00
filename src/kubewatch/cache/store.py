import copy
import dataclasses
import enum
import threading

from ..exceptions import DecodeError, StoreKeyError
from ..resources import identity, is_newer_version, resource_version


def meta_namespace_key_func(obj):
    """Create a key from the given object for use in a store."""
    try:
        namespace, name = identity(obj)
    except DecodeError as e:
        raise StoreKeyError(obj) from e
    if namespace is not None:
        return f'{namespace}/{name}'
    else:
        return name


class Outcome(enum.Enum):
    ADDED = 'added'
    UPDATED = 'updated'
    DELETED = 'deleted'
    IGNORED = 'ignored'


@dataclasses.dataclass
class PutResult:
    """What a write did to the store.

    old is the object that was stored under the key before the write.
    """

    outcome: Outcome
    old: object = None

    @property
    def ignored(self):
        return self.outcome is Outcome.IGNORED


class Store:
    """Keyed store of the last known state of objects.

    Writes are version checked: an object whose resource version is not newer
    than the stored one is ignored. Reads hand out copies.
    """

    def __init__(self, key_func=None):
        if key_func is None:
            key_func = meta_namespace_key_func
        self.key_func = key_func
        self._items = {}
        self._lock = threading.RLock()

    def __repr__(self):
        keys = list(self.keys())
        return f'<Store {keys}>'

    def __len__(self):
        return len(self._items)

    def __contains__(self, obj_or_key):
        return self._key(obj_or_key) in self._items

    def __getitem__(self, key):
        # also make store subscriptable by key
        return self._items[key]

    def _key(self, obj_or_key):
        if isinstance(obj_or_key, str):
            return obj_or_key
        return self.key_func(obj_or_key)

    def put(self, obj):
        """Add or update the given object unless it is stale."""
        key = self.key_func(obj)
        with self._lock:
            old = self._items.get(key, None)
            if old is None:
                self._items[key] = obj
                return PutResult(Outcome.ADDED)
            if not is_newer_version(resource_version(obj), resource_version(old)):
                return PutResult(Outcome.IGNORED, old)
            self._items[key] = obj
            return PutResult(Outcome.UPDATED, old)

    def delete(self, obj):
        """Delete the given object unless it is unknown or stale."""
        key = self.key_func(obj)
        with self._lock:
            old = self._items.get(key, None)
            if old is None:
                return PutResult(Outcome.IGNORED)
            version = resource_version(obj)
            # Deletes without a version are unconditional.
            if version is not None \
                    and not is_newer_version(version, resource_version(old)):
                return PutResult(Outcome.IGNORED, old)
            del self._items[key]
            return PutResult(Outcome.DELETED, old)

    def keys(self):
        """Return a list of keys of all items in the store."""
        with self._lock:
            return list(self._items.keys())

    def list(self, namespace=None):
        """Return copies of all items in the store.

        If namespace is given only items in that namespace are returned.
        """
        with self._lock:
            items = list(self._items.values())
        if namespace is not None:
            items = [obj for obj in items if identity(obj)[0] == namespace]
        # We return copies, so that external changes don't change the
        # objects in the store.
        return [copy.deepcopy(obj) for obj in items]

    def get(self, obj_or_key):
        """Get a copy of an item from the store.

        Raises KeyError if there is no such item.
        """
        key = self._key(obj_or_key)
        with self._lock:
            obj = self._items[key]
        return copy.deepcopy(obj)

    def replace(self, _list):
        """Replace all items in the store with those in the given list."""
        items = {self.key_func(obj): obj for obj in _list}
        with self._lock:
            self._items = items

    def clear(self):
        """Remove all items from the store."""
        with self._lock:
            self._items.clear()
