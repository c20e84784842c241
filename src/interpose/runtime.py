"""Dispatch core for interpose virtual objects."""

import logging
import threading
from collections.abc import Callable
from collections.abc import Iterator
from collections.abc import Mapping
from typing import ClassVar
from typing import Literal
from typing import NamedTuple

from interpose.errors import RevokedAccessError
from interpose.store import ABSENT
from interpose.store import default_construct
from interpose.store import default_delete
from interpose.store import default_get
from interpose.store import default_has
from interpose.store import default_keys
from interpose.store import default_set

logger: logging.Logger = logging.getLogger(__name__)

Operation = Literal["get", "set", "has", "delete", "keys", "construct"]
Handler = Callable[..., object]
OPERATIONS: tuple[str, ...] = ("get", "set", "has", "delete", "keys", "construct")

_DEFAULT_OPERATIONS: dict[str, Handler] = {
    "get": default_get,
    "set": default_set,
    "has": default_has,
    "delete": default_delete,
    "keys": default_keys,
    "construct": default_construct,
}


def _validate_operation(op: str) -> Operation:
    """Validate and normalize an operation name.

    :param op: Requested operation name.
    :returns: Validated operation name.
    :raises ValueError: If the name is not a known operation.
    """
    if op == "get":
        return "get"
    if op == "set":
        return "set"
    if op == "has":
        return "has"
    if op == "delete":
        return "delete"
    if op == "keys":
        return "keys"
    if op == "construct":
        return "construct"
    raise ValueError("operation must be one of: " + ", ".join(OPERATIONS))


def _is_dunder(name: str) -> bool:
    """Report whether ``name`` is a ``__dunder__`` name.

    :param name: Attribute name.
    :returns: ``True`` for dunder names.
    """
    return len(name) > 4 and name.startswith("__") is True and name.endswith("__") is True


class HandlerTable(Mapping[str, Handler]):
    """Immutable mapping of operation name to intercept function.

    A handler is called with the raw backing store followed by the operands of
    its operation:

    - ``get(store, key)``
    - ``set(store, key, value)``
    - ``has(store, key)``
    - ``delete(store, key)``
    - ``keys(store)``
    - ``construct(store, args, kwargs)``

    Operations without an entry are forwarded to the store unchanged.
    """

    _handlers: dict[str, Handler]

    def __init__(self, handlers: Mapping[str, Handler] | None = None, **named_handlers: Handler) -> None:
        """Initialize a handler table.

        :param handlers: Optional mapping of operation name to handler.
        :param named_handlers: Handlers given as keyword arguments.
        :raises ValueError: If an operation name is unknown.
        :raises TypeError: If a handler is not callable.
        """
        merged: dict[str, Handler] = {}
        if handlers is not None:
            merged.update(handlers)
        merged.update(named_handlers)

        self._handlers = {}
        for op, handler in merged.items():
            normalized_op: Operation = _validate_operation(op)
            if callable(handler) is False:
                raise TypeError(f"Handler for {normalized_op!r} must be callable")
            self._handlers[normalized_op] = handler

    @classmethod
    def compose(cls, *tables: Mapping[str, Handler] | None) -> "HandlerTable":
        """Overlay several tables; later tables win per operation.

        :param tables: Tables or plain mappings, ``None`` entries are skipped.
        :returns: Combined table.
        """
        combined: dict[str, Handler] = {}
        for table in tables:
            if table is None:
                continue
            combined.update(table)
        return cls(combined)

    def __getitem__(self, op: str) -> Handler:
        return self._handlers[op]

    def __iter__(self) -> Iterator[str]:
        return iter(self._handlers)

    def __len__(self) -> int:
        return len(self._handlers)

    def __repr__(self) -> str:
        names: str = ", ".join(self._handlers)
        return f"HandlerTable({names})"


def as_handler_table(handlers: Mapping[str, Handler] | None) -> HandlerTable:
    """Coerce an optional mapping into a ``HandlerTable``.

    :param handlers: Table, plain mapping or ``None``.
    :returns: Handler table.
    """
    if isinstance(handlers, HandlerTable) is True:
        return handlers
    return HandlerTable(handlers)


class VirtualObject:
    """Wrapper that routes every operation on a backing store through a handler table.

    Besides the named operation methods, the native Python protocols are routed
    through :meth:`dispatch`: item access, ``in``, iteration, ``len``, calling,
    and attribute access for names that are neither methods nor dunders.
    """

    __slots__ = ("_store", "_handlers", "_revoked", "_lock")
    _internal_names: ClassVar[frozenset[str]]

    _store: object
    _handlers: HandlerTable
    _revoked: bool
    _lock: threading.RLock

    def __init__(self, store: object, handlers: Mapping[str, Handler] | None = None) -> None:
        """Initialize a virtual object.

        :param store: Backing store to wrap.
        :param handlers: Optional handler table or mapping.
        """
        object.__setattr__(self, "_store", store)
        object.__setattr__(self, "_handlers", as_handler_table(handlers))
        object.__setattr__(self, "_revoked", False)
        object.__setattr__(self, "_lock", threading.RLock())
        logger.debug("Created %s over %s with %r", type(self).__name__, type(store).__name__, self._handlers)

    def __init_subclass__(cls, **kwargs: object) -> None:
        super().__init_subclass__(**kwargs)
        cls._internal_names = _collect_slot_names(cls)

    def dispatch(self, op: str, *operands: object) -> object:
        """Run one operation through the handler table.

        :param op: Operation name.
        :param operands: Operation operands following the store argument.
        :returns: Handler or default operation result.
        :raises RevokedAccessError: If this object has been revoked.
        :raises ValueError: If ``op`` is not a known operation.
        """
        normalized_op: Operation = _validate_operation(op)
        with self._lock:
            if self._revoked is True:
                raise RevokedAccessError(f"Cannot {normalized_op} on a revoked virtual object")
            handler: Handler | None = self._handlers.get(normalized_op)
            if handler is None:
                handler = _DEFAULT_OPERATIONS[normalized_op]
            return handler(self._store, *operands)

    def get(self, key: object) -> object:
        """Read ``key``.

        :param key: Key to read.
        :returns: Value, or ``ABSENT`` when there is none.
        """
        return self.dispatch("get", key)

    def set(self, key: object, value: object) -> None:
        """Write ``value`` under ``key``.

        :param key: Key to write.
        :param value: New value.
        """
        self.dispatch("set", key, value)

    def has(self, key: object) -> bool:
        """Test membership of ``key``.

        :param key: Key to test.
        :returns: Membership result.
        """
        return bool(self.dispatch("has", key))

    def delete(self, key: object) -> None:
        """Delete ``key``.

        :param key: Key to delete.
        """
        self.dispatch("delete", key)

    def keys(self) -> list[object]:
        """List visible keys in order.

        :returns: Ordered keys.
        """
        result: object = self.dispatch("keys")
        return list(result)

    def construct(self, *args: object, **kwargs: object) -> object:
        """Construct an instance from the backing store.

        :param args: Positional constructor arguments.
        :param kwargs: Keyword constructor arguments.
        :returns: Constructed instance.
        """
        return self.dispatch("construct", args, kwargs)

    def _revoke(self) -> bool:
        """Set the revoked flag.

        :returns: ``True`` when this call performed the transition.
        """
        with self._lock:
            if self._revoked is True:
                return False
            object.__setattr__(self, "_revoked", True)
            return True

    def _is_revoked(self) -> bool:
        with self._lock:
            return self._revoked

    def __getitem__(self, key: object) -> object:
        value: object = self.get(key)
        if value is ABSENT:
            raise KeyError(key)
        return value

    def __setitem__(self, key: object, value: object) -> None:
        self.set(key, value)

    def __delitem__(self, key: object) -> None:
        self.delete(key)

    def __contains__(self, key: object) -> bool:
        return self.has(key)

    def __iter__(self) -> Iterator[object]:
        return iter(self.keys())

    def __len__(self) -> int:
        return len(self.keys())

    def __call__(self, *args: object, **kwargs: object) -> object:
        return self.construct(*args, **kwargs)

    def __getattr__(self, name: str) -> object:
        """Resolve unknown attributes through ``get``.

        :param name: Attribute name.
        :returns: Value read through the handler table.
        :raises AttributeError: If the name is internal or has no value.
        """
        if _is_dunder(name) is True or name in type(self)._internal_names:
            raise AttributeError(name)
        value: object = self.get(name)
        if value is ABSENT:
            raise AttributeError(name)
        return value

    def __setattr__(self, name: str, value: object) -> None:
        if name in type(self)._internal_names:
            object.__setattr__(self, name, value)
            return
        self.set(name, value)

    def __delattr__(self, name: str) -> None:
        if name in type(self)._internal_names:
            object.__delattr__(self, name)
            return
        self.delete(name)

    def __repr__(self) -> str:
        state: str = "revoked" if self._is_revoked() is True else "active"
        return f"<{type(self).__name__} over {type(self._store).__name__} ({state})>"


def _collect_slot_names(cls: type) -> frozenset[str]:
    """Collect every ``__slots__`` name declared along the MRO of ``cls``.

    :param cls: Virtual object class.
    :returns: Internal attribute names.
    """
    names: set[str] = set()
    for klass in cls.__mro__:
        slots: object = klass.__dict__.get("__slots__", ())
        if isinstance(slots, str) is True:
            names.add(slots)
            continue
        names.update(slots)
    return frozenset(names)


VirtualObject._internal_names = _collect_slot_names(VirtualObject)


class RevocationController:
    """Companion that irreversibly disables one virtual object."""

    _target: VirtualObject

    def __init__(self, target: VirtualObject) -> None:
        """Initialize a controller.

        :param target: Virtual object to control.
        """
        self._target = target

    @property
    def is_revoked(self) -> bool:
        """Report whether the controlled object has been revoked.

        :returns: ``True`` once :meth:`revoke` has been called.
        """
        return self._target._is_revoked()

    def revoke(self) -> None:
        """Revoke the controlled object; repeated calls have no effect."""
        transitioned: bool = self._target._revoke()
        if transitioned is True:
            logger.debug("Revoked %r", self._target)


class Revocable(NamedTuple):
    """A virtual object paired with its revocation controller."""

    proxy: VirtualObject
    controller: RevocationController

    def revoke(self) -> None:
        """Revoke ``proxy``."""
        self.controller.revoke()


def create_virtual_object(store: object, handlers: Mapping[str, Handler] | None = None) -> VirtualObject:
    """Wrap ``store`` in a plain virtual object.

    :param store: Backing store.
    :param handlers: Optional handler table or mapping.
    :returns: Virtual object.
    """
    return VirtualObject(store, handlers)


def create_revocable(
    store: object,
    handlers: Mapping[str, Handler] | None = None,
) -> Revocable:
    """Wrap ``store`` and attach a revocation controller.

    :param store: Backing store.
    :param handlers: Optional handler table or mapping.
    :returns: Proxy and controller pair.
    """
    proxy: VirtualObject = VirtualObject(store, handlers)
    return Revocable(proxy, RevocationController(proxy))
