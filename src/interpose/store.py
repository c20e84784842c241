"""Default operations applied directly to backing stores.

A backing store is one of three kinds:

- a mutable mapping, keyed by its own keys;
- a mutable sequence, keyed by integer index plus the ``length`` key;
- any other object, keyed by attribute name.

Every function here behaves exactly as operating on the store directly would,
which is what a virtual object falls back to when no handler is configured.
"""

from collections.abc import Callable
from collections.abc import Mapping
from collections.abc import MutableMapping
from collections.abc import MutableSequence
from typing import Literal

from interpose.errors import UnsupportedOperationError

LENGTH_KEY: str = "length"
StoreKind = Literal["mapping", "sequence", "object"]


class _AbsentType:
    """Type of the ``ABSENT`` sentinel."""

    _instance: "_AbsentType | None" = None

    def __new__(cls) -> "_AbsentType":
        """Return the one shared sentinel.

        :returns: The sentinel instance.
        """
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "ABSENT"

    def __bool__(self) -> bool:
        return False

    def __reduce__(self) -> str:
        return "ABSENT"


ABSENT: _AbsentType = _AbsentType()


def store_kind(store: object) -> StoreKind:
    """Classify a backing store.

    :param store: Backing store.
    :returns: One of ``mapping``, ``sequence`` or ``object``.
    """
    if isinstance(store, Mapping) is True:
        return "mapping"
    if isinstance(store, MutableSequence) is True:
        return "sequence"
    return "object"


def _sequence_index(key: object) -> int | None:
    """Normalize a sequence key to a non-negative integer index.

    Decimal strings are accepted so that ``"0"`` and ``0`` address the same slot.

    :param key: Candidate key.
    :returns: Integer index, or ``None`` when ``key`` is not an index.
    """
    if isinstance(key, bool) is True:
        return None
    if isinstance(key, int) is True:
        if key < 0:
            return None
        return key
    if isinstance(key, str) is True and key.isdigit() is True:
        return int(key)
    return None


def _require_mutable_mapping(store: object) -> MutableMapping[object, object]:
    """Return ``store`` when it accepts writes.

    :param store: Mapping store.
    :returns: The same store.
    :raises UnsupportedOperationError: If the mapping is read-only.
    """
    if isinstance(store, MutableMapping) is False:
        raise UnsupportedOperationError(f"{type(store).__name__} mapping is read-only")
    return store


def _resize_sequence(store: MutableSequence[object], new_length: object) -> None:
    """Truncate or extend a sequence to ``new_length`` items.

    :param store: Sequence store.
    :param new_length: Requested length.
    :raises ValueError: If ``new_length`` is not a non-negative integer.
    """
    length: int | None = _sequence_index(new_length)
    if length is None:
        raise ValueError(f"Invalid sequence length: {new_length!r}")

    current: int = len(store)
    if length < current:
        del store[length:]
        return
    for _ in range(length - current):
        store.append(None)


def default_get(store: object, key: object) -> object:
    """Read one key, returning ``ABSENT`` when it does not exist.

    :param store: Backing store.
    :param key: Key to read.
    :returns: Stored value or ``ABSENT``.
    """
    kind: StoreKind = store_kind(store)
    if kind == "mapping":
        if key in store:
            return store[key]
        return ABSENT

    if kind == "sequence":
        if key == LENGTH_KEY:
            return len(store)
        index: int | None = _sequence_index(key)
        if index is None or index >= len(store):
            return ABSENT
        return store[index]

    if isinstance(key, str) is False:
        return ABSENT
    return getattr(store, key, ABSENT)


def default_set(store: object, key: object, value: object) -> None:
    """Write one key.

    Writing index ``len(store)`` or beyond on a sequence extends it, padding
    with ``None``; writing ``length`` truncates or extends it.

    :param store: Backing store.
    :param key: Key to write.
    :param value: New value.
    :raises UnsupportedOperationError: If the store cannot hold ``key``.
    """
    kind: StoreKind = store_kind(store)
    if kind == "mapping":
        writable: MutableMapping[object, object] = _require_mutable_mapping(store)
        writable[key] = value
        return

    if kind == "sequence":
        if key == LENGTH_KEY:
            _resize_sequence(store, value)
            return
        index: int | None = _sequence_index(key)
        if index is None:
            raise UnsupportedOperationError(f"Sequence stores cannot hold key {key!r}")
        if index >= len(store):
            _resize_sequence(store, index + 1)
        store[index] = value
        return

    if isinstance(key, str) is False:
        raise UnsupportedOperationError(f"Object stores require string keys, got {key!r}")
    setattr(store, key, value)


def default_has(store: object, key: object) -> bool:
    """Report whether ``key`` exists in the store.

    :param store: Backing store.
    :param key: Key to test.
    :returns: ``True`` when the key exists.
    """
    kind: StoreKind = store_kind(store)
    if kind == "mapping":
        return key in store

    if kind == "sequence":
        if key == LENGTH_KEY:
            return True
        index: int | None = _sequence_index(key)
        return index is not None and index < len(store)

    if isinstance(key, str) is False:
        return False
    return hasattr(store, key)


def default_delete(store: object, key: object) -> None:
    """Delete one key, raising whatever the store raises for missing keys.

    Sequence deletion removes the item and shifts later items down.

    :param store: Backing store.
    :param key: Key to delete.
    :raises KeyError: If a mapping key is missing.
    :raises IndexError: If a sequence index is out of range.
    :raises AttributeError: If an object attribute is missing.
    :raises UnsupportedOperationError: If the key can never be deleted.
    """
    kind: StoreKind = store_kind(store)
    if kind == "mapping":
        writable: MutableMapping[object, object] = _require_mutable_mapping(store)
        del writable[key]
        return

    if kind == "sequence":
        if key == LENGTH_KEY:
            raise UnsupportedOperationError("The length of a sequence store cannot be deleted")
        index: int | None = _sequence_index(key)
        if index is None:
            raise IndexError(f"Invalid sequence index: {key!r}")
        del store[index]
        return

    if isinstance(key, str) is False:
        raise AttributeError(key)
    delattr(store, key)


def default_keys(store: object) -> list[object]:
    """List the store keys in their natural order.

    Sequence stores list their indices; object stores list instance attributes.

    :param store: Backing store.
    :returns: Ordered keys.
    """
    kind: StoreKind = store_kind(store)
    if kind == "mapping":
        return list(store.keys())
    if kind == "sequence":
        return list(range(len(store)))

    instance_dict: object = getattr(store, "__dict__", None)
    if isinstance(instance_dict, Mapping) is False:
        return []
    return [name for name in instance_dict if name.startswith("__") is False]


def default_construct(store: object, args: tuple[object, ...], kwargs: dict[str, object]) -> object:
    """Instantiate a callable store.

    :param store: Backing store, normally a class.
    :param args: Positional constructor arguments.
    :param kwargs: Keyword constructor arguments.
    :returns: New instance.
    :raises UnsupportedOperationError: If the store is not callable.
    """
    if callable(store) is False:
        raise UnsupportedOperationError(f"{type(store).__name__} store is not constructible")
    constructor: Callable[..., object] = store
    return constructor(*args, **kwargs)
