"""Handler tables implementing the built-in interception policies."""

import logging
import threading
import types
from collections.abc import Callable
from collections.abc import Iterable
from collections.abc import Mapping

from interpose.errors import ImmutableError
from interpose.errors import PolicyViolationError
from interpose.errors import UnknownMemberError
from interpose.errors import UnsupportedOperationError
from interpose.errors import ValidationError
from interpose.runtime import HandlerTable
from interpose.runtime import VirtualObject
from interpose.store import ABSENT
from interpose.store import default_delete
from interpose.store import default_get
from interpose.store import default_has
from interpose.store import default_keys
from interpose.store import default_set
from interpose.store import store_kind

logger: logging.Logger = logging.getLogger(__name__)

Listener = Callable[[object, object, object, object], object]
KeyPredicate = Callable[[object], bool]
ValuePredicate = Callable[[object], bool]
MembershipPredicate = Callable[[object, object], bool]
Rule = tuple[ValuePredicate, str]


# Default values


class _FallbackGet:
    """``get`` handler that falls back to a defaults mapping."""

    _fallback: Mapping[object, object]

    def __init__(self, fallback: Mapping[object, object]) -> None:
        self._fallback = fallback

    def __call__(self, store: object, key: object) -> object:
        has_key: bool = default_has(store, key)
        if has_key is True:
            return default_get(store, key)
        return self._fallback.get(key, ABSENT)


def default_value_handlers(fallback: Mapping[object, object]) -> HandlerTable:
    """Build handlers that read missing keys from ``fallback``.

    Only ``get`` is intercepted, so ``has`` keeps reporting the store alone.

    :param fallback: Mapping of default values.
    :returns: Handler table.
    :raises TypeError: If ``fallback`` is not a mapping.
    """
    if isinstance(fallback, Mapping) is False:
        raise TypeError("fallback must be a mapping")
    return HandlerTable(get=_FallbackGet(fallback))


# Private properties


def is_underscore_private(key: object) -> bool:
    """Treat string keys with a leading underscore as private.

    :param key: Candidate key.
    :returns: ``True`` for private keys.
    """
    return isinstance(key, str) is True and key.startswith("_") is True


class _PrivateFilter:
    """Shared state of the private-property handlers."""

    _is_private: KeyPredicate

    def __init__(self, is_private: KeyPredicate) -> None:
        self._is_private = is_private

    def _reject_private(self, key: object, op: str) -> None:
        is_private: bool = bool(self._is_private(key))
        if is_private is True:
            logger.debug("Rejected %s of private key %r", op, key)
            raise PolicyViolationError(key, f"Cannot {op} private property {key!r}")

    def get(self, store: object, key: object) -> object:
        """Read a public key, binding plain functions to the raw store.

        Object stores are read with ``getattr``, which already binds methods;
        functions it returns are static methods or callbacks and stay unbound.

        :param store: Backing store.
        :param key: Key to read.
        :returns: Value, bound method, or ``ABSENT`` for private keys.
        """
        is_private: bool = bool(self._is_private(key))
        if is_private is True:
            return ABSENT
        value: object = default_get(store, key)
        is_function: bool = isinstance(value, types.FunctionType)
        if is_function is True and store_kind(store) != "object":
            return types.MethodType(value, store)
        return value

    def set(self, store: object, key: object, value: object) -> None:
        self._reject_private(key, "set")
        default_set(store, key, value)

    def has(self, store: object, key: object) -> bool:
        is_private: bool = bool(self._is_private(key))
        if is_private is True:
            return False
        return default_has(store, key)

    def delete(self, store: object, key: object) -> None:
        self._reject_private(key, "delete")
        default_delete(store, key)

    def keys(self, store: object) -> list[object]:
        return [key for key in default_keys(store) if bool(self._is_private(key)) is False]


def private_filter_handlers(is_private: KeyPredicate = is_underscore_private) -> HandlerTable:
    """Build handlers hiding keys matched by ``is_private``.

    :param is_private: Predicate selecting private keys.
    :returns: Handler table.
    :raises TypeError: If ``is_private`` is not callable.
    """
    if callable(is_private) is False:
        raise TypeError("is_private must be callable")
    policy = _PrivateFilter(is_private)
    return HandlerTable(
        get=policy.get,
        set=policy.set,
        has=policy.has,
        delete=policy.delete,
        keys=policy.keys,
    )


# Enumerations


def _enum_get(store: object, key: object) -> object:
    value: object = default_get(store, key)
    if value is ABSENT:
        raise UnknownMemberError(key, f"Unknown enumeration member: {key!r}")
    return value


def _enum_set(store: object, key: object, value: object) -> None:
    _ = store
    _ = value
    raise ImmutableError(key, f"Cannot assign enumeration member {key!r}")


def _enum_delete(store: object, key: object) -> None:
    _ = store
    raise ImmutableError(key, f"Cannot delete enumeration member {key!r}")


ENUMERATION_HANDLERS: HandlerTable = HandlerTable(
    get=_enum_get,
    set=_enum_set,
    delete=_enum_delete,
)


def _normalize_members(members: Mapping[str, object] | Iterable[str]) -> dict[str, object]:
    """Build the member table of an enumeration.

    :param members: Mapping of name to value, or an iterable of names.
    :returns: Ordered member dictionary.
    :raises TypeError: If a member name is not a string.
    """
    normalized: dict[str, object] = {}
    if isinstance(members, Mapping) is True:
        items: Iterable[tuple[object, object]] = members.items()
    else:
        items = ((name, name) for name in members)

    for name, value in items:
        if isinstance(name, str) is False:
            raise TypeError("Enumeration member names must be strings")
        normalized[name] = value
    return normalized


class Enumeration(VirtualObject):
    """Read-only named set of constants with reverse lookup."""

    __slots__ = ("_enum_name",)

    _enum_name: str

    def __init__(self, name: str, members: Mapping[str, object] | Iterable[str]) -> None:
        """Initialize an enumeration.

        :param name: Enumeration name used to qualify reverse lookups.
        :param members: Mapping of name to value, or an iterable of names.
        :raises ValueError: If ``name`` is empty.
        """
        if len(name) == 0:
            raise ValueError("Enumeration name cannot be empty")
        object.__setattr__(self, "_enum_name", name)
        super().__init__(_normalize_members(members), ENUMERATION_HANDLERS)

    @property
    def enum_name(self) -> str:
        """Return the enumeration name.

        :returns: Enumeration name.
        """
        return self._enum_name

    def key_of(self, value: object) -> str | None:
        """Find the qualified name of the first member equal to ``value``.

        :param value: Member value to look up.
        :returns: ``"<enum_name>.<key>"``, or ``None`` when no member matches.
        """
        for key in self.keys():
            if self.get(key) == value:
                return f"{self._enum_name}.{key}"
        return None


# Mutation tracking


class _ChangeTracker:
    """Write-then-notify handlers for one listener."""

    _listener: Listener

    def __init__(self, listener: Listener) -> None:
        self._listener = listener

    def set(self, store: object, key: object, value: object) -> None:
        old_value: object = default_get(store, key)
        default_set(store, key, value)
        self._listener(store, key, old_value, value)

    def delete(self, store: object, key: object) -> None:
        old_value: object = default_get(store, key)
        default_delete(store, key)
        self._listener(store, key, old_value, ABSENT)


def tracking_handlers(listener: Listener) -> HandlerTable:
    """Build handlers that notify ``listener`` after every write and delete.

    The listener runs synchronously after the store has changed and receives
    ``(store, key, old_value, new_value)``. Its exceptions propagate to the
    caller; the mutation is kept. Resizing a sequence through ``length``
    produces one notification for ``length`` only.

    :param listener: Change listener.
    :returns: Handler table.
    :raises TypeError: If ``listener`` is not callable.
    """
    if callable(listener) is False:
        raise TypeError("listener must be callable")
    tracker = _ChangeTracker(listener)
    return HandlerTable(set=tracker.set, delete=tracker.delete)


# Membership override


def value_containment(store: object, value: object) -> bool:
    """Report whether ``value`` is one of the store values.

    :param store: Backing store.
    :param value: Candidate value.
    :returns: Containment result.
    """
    if isinstance(store, Mapping) is True:
        return value in store.values()
    return value in store


class _WithinRange:
    """Membership predicate for a closed numeric interval."""

    _low: object
    _high: object

    def __init__(self, low: object, high: object) -> None:
        self._low = low
        self._high = high

    def __call__(self, store: object, value: object) -> bool:
        _ = store
        try:
            return bool(self._low <= value <= self._high)
        except TypeError:
            return False

    def __repr__(self) -> str:
        return f"within_range({self._low!r}, {self._high!r})"


def within_range(low: object, high: object) -> MembershipPredicate:
    """Build a predicate for ``low <= value <= high``.

    Values that cannot be compared with the bounds are reported as outside.

    :param low: Inclusive lower bound.
    :param high: Inclusive upper bound.
    :returns: Membership predicate.
    """
    return _WithinRange(low, high)


class _MembershipTest:
    """``has`` handler delegating to a membership predicate."""

    _predicate: MembershipPredicate

    def __init__(self, predicate: MembershipPredicate) -> None:
        self._predicate = predicate

    def __call__(self, store: object, value: object) -> bool:
        return bool(self._predicate(store, value))


def membership_handlers(predicate: MembershipPredicate = value_containment) -> HandlerTable:
    """Build handlers replacing ``has`` with ``predicate(store, value)``.

    :param predicate: Membership predicate.
    :returns: Handler table.
    :raises TypeError: If ``predicate`` is not callable.
    """
    if callable(predicate) is False:
        raise TypeError("predicate must be callable")
    return HandlerTable(has=_MembershipTest(predicate))


# Singleton construction


class SingletonCache:
    """Holds the one instance built by a singleton guard.

    The cache is populated once and never cleared. First construction happens
    under a lock; reads of a populated cache do not lock.
    """

    _instance: object
    _lock: threading.Lock

    def __init__(self) -> None:
        """Initialize an empty cache."""
        self._instance = ABSENT
        self._lock = threading.Lock()

    @property
    def is_populated(self) -> bool:
        """Report whether an instance has been built.

        :returns: ``True`` once the first construction succeeded.
        """
        return self._instance is not ABSENT

    @property
    def instance(self) -> object:
        """Return the cached instance.

        :returns: Cached instance, or ``ABSENT`` before first construction.
        """
        return self._instance

    def get_or_create(
        self,
        factory: Callable[..., object],
        args: tuple[object, ...],
        kwargs: dict[str, object],
    ) -> object:
        """Return the cached instance, building it on first use.

        :param factory: Constructor used for the first instance.
        :param args: Positional constructor arguments.
        :param kwargs: Keyword constructor arguments.
        :returns: The cached instance.
        """
        instance: object = self._instance
        if instance is not ABSENT:
            if len(args) > 0 or len(kwargs) > 0:
                logger.debug("Singleton already built; ignoring constructor arguments")
            return instance

        with self._lock:
            if self._instance is ABSENT:
                self._instance = factory(*args, **kwargs)
                logger.debug("Built singleton instance of %r", factory)
            return self._instance


class _SingletonConstruct:
    """``construct`` handler backed by a ``SingletonCache``."""

    _cache: SingletonCache

    def __init__(self, cache: SingletonCache) -> None:
        self._cache = cache

    def __call__(self, store: object, args: tuple[object, ...], kwargs: dict[str, object]) -> object:
        if callable(store) is False:
            raise UnsupportedOperationError(f"{type(store).__name__} store is not constructible")
        return self._cache.get_or_create(store, args, kwargs)


def singleton_handlers(cache: SingletonCache) -> HandlerTable:
    """Build handlers that construct through ``cache``.

    :param cache: Instance cache, possibly shared between guards.
    :returns: Handler table.
    """
    return HandlerTable(construct=_SingletonConstruct(cache))


# Validation


def _normalize_rules(rules: Mapping[object, Rule]) -> dict[object, Rule]:
    """Validate a rule table.

    :param rules: Mapping of field to ``(predicate, message)``.
    :returns: Copied rule table.
    :raises TypeError: If an entry is not a ``(callable, str)`` pair.
    """
    if isinstance(rules, Mapping) is False:
        raise TypeError("rules must be a mapping")

    normalized: dict[object, Rule] = {}
    for key, rule in rules.items():
        if isinstance(rule, tuple) is False or len(rule) != 2:
            raise TypeError(f"Rule for {key!r} must be a (predicate, message) pair")
        predicate, message = rule
        if callable(predicate) is False:
            raise TypeError(f"Rule predicate for {key!r} must be callable")
        if isinstance(message, str) is False:
            raise TypeError(f"Rule message for {key!r} must be a string")
        normalized[key] = (predicate, message)
    return normalized


class _ValidatedSet:
    """``set`` handler checking each write against its field rule."""

    _rules: dict[object, Rule]

    def __init__(self, rules: dict[object, Rule]) -> None:
        self._rules = rules

    def __call__(self, store: object, key: object, value: object) -> None:
        rule: Rule | None = self._rules.get(key)
        if rule is None:
            logger.debug("Rejected write to unknown field %r", key)
            raise PolicyViolationError(key, f"No validation rule for field {key!r}")

        predicate, message = rule
        is_valid: bool = bool(predicate(value))
        if is_valid is False:
            logger.debug("Rejected invalid value for field %r", key)
            raise ValidationError(key, message)
        default_set(store, key, value)


def validation_handlers(rules: Mapping[object, Rule]) -> HandlerTable:
    """Build handlers that accept writes only to ruled fields with valid values.

    :param rules: Mapping of field to ``(predicate, message)``.
    :returns: Handler table.
    """
    return HandlerTable(set=_ValidatedSet(_normalize_rules(rules)))
