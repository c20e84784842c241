"""User-facing API entrypoints for interpose."""

from collections.abc import Iterable
from collections.abc import Mapping

from interpose.policies import Enumeration
from interpose.policies import KeyPredicate
from interpose.policies import Listener
from interpose.policies import MembershipPredicate
from interpose.policies import Rule
from interpose.policies import SingletonCache
from interpose.policies import default_value_handlers
from interpose.policies import is_underscore_private
from interpose.policies import membership_handlers
from interpose.policies import private_filter_handlers
from interpose.policies import singleton_handlers
from interpose.policies import tracking_handlers
from interpose.policies import validation_handlers
from interpose.policies import value_containment
from interpose.runtime import Handler
from interpose.runtime import Revocable
from interpose.runtime import VirtualObject
from interpose.runtime import create_revocable
from interpose.runtime import create_virtual_object


def wrap(store: object, handlers: Mapping[str, Handler] | None = None) -> VirtualObject:
    """Wrap ``store`` so each operation runs through ``handlers``.

    :param store: Mapping, mutable sequence, or other object to wrap.
    :param handlers: Optional mapping of operation name to handler.
    :returns: Virtual object.
    """
    return create_virtual_object(store, handlers)


def wrap_revocable(store: object, handlers: Mapping[str, Handler] | None = None) -> Revocable:
    """Wrap ``store`` and return the proxy together with its revocation controller.

    :param store: Backing store.
    :param handlers: Optional mapping of operation name to handler.
    :returns: ``(proxy, controller)`` pair; ``revoke()`` disables the proxy.
    """
    return create_revocable(store, handlers)


def with_defaults(store: object, fallback: Mapping[object, object]) -> VirtualObject:
    """Read missing keys from ``fallback`` without reporting them as present.

    :param store: Backing store.
    :param fallback: Mapping of default values.
    :returns: Virtual object.
    """
    return create_virtual_object(store, default_value_handlers(fallback))


def hide_private(store: object, is_private: KeyPredicate = is_underscore_private) -> VirtualObject:
    """Hide private keys from reads, writes, membership tests and key listings.

    Plain functions read through the proxy are bound to ``store`` itself, so
    they can still reach private state.

    :param store: Backing store.
    :param is_private: Predicate selecting private keys.
    :returns: Virtual object.
    """
    return create_virtual_object(store, private_filter_handlers(is_private))


def enumeration(name: str, members: Mapping[str, object] | Iterable[str]) -> Enumeration:
    """Create an immutable enumeration.

    :param name: Enumeration name.
    :param members: Mapping of member name to value, or an iterable of names.
    :returns: Enumeration proxy.
    """
    return Enumeration(name, members)


def track_changes(store: object, listener: Listener) -> VirtualObject:
    """Call ``listener(store, key, old_value, new_value)`` after each write or delete.

    :param store: Backing store.
    :param listener: Change listener.
    :returns: Virtual object.
    """
    return create_virtual_object(store, tracking_handlers(listener))


def contains_by_value(store: object, predicate: MembershipPredicate = value_containment) -> VirtualObject:
    """Answer ``in`` tests with ``predicate(store, value)`` instead of key lookup.

    :param store: Backing store.
    :param predicate: Membership predicate; defaults to value containment.
    :returns: Virtual object.
    """
    return create_virtual_object(store, membership_handlers(predicate))


def singleton(definition: type, cache: SingletonCache | None = None) -> VirtualObject:
    """Guard ``definition`` so that constructing it always yields one instance.

    :param definition: Class or other constructible callable.
    :param cache: Optional cache to share between guards.
    :returns: Virtual object; call it or use ``construct`` to obtain the instance.
    :raises TypeError: If ``definition`` is not callable.
    """
    if callable(definition) is False:
        raise TypeError("definition must be callable")
    if cache is None:
        cache = SingletonCache()
    return create_virtual_object(definition, singleton_handlers(cache))


def validated(store: object, rules: Mapping[object, Rule]) -> Revocable:
    """Accept writes only to fields with a rule whose predicate passes.

    :param store: Backing store.
    :param rules: Mapping of field to ``(predicate, message)``.
    :returns: ``(proxy, controller)`` pair.
    """
    return create_revocable(store, validation_handlers(rules))
