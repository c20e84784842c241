"""Tests for the interpose dispatch core and revocation."""

import logging
import threading
import time
import types

import pytest

from interpose import ABSENT
from interpose import LENGTH_KEY
from interpose import HandlerTable
from interpose import RevokedAccessError
from interpose import UnsupportedOperationError
from interpose import VirtualObject
from interpose import wrap
from interpose import wrap_revocable
from tests.fixtures.sample_types import ServiceRegistry


class Marker:
    """Identity-carrying value used for passthrough checks."""


def test_passthrough_mapping_matches_direct_access() -> None:
    """An empty handler table reads, writes and deletes the dict itself."""
    marker = Marker()
    store: dict[str, object] = {"a": 1, "marker": marker}
    proxy: VirtualObject = wrap(store)

    assert proxy.get("a") == 1
    assert proxy.get("marker") is marker
    assert proxy.get("missing") is ABSENT
    assert proxy.has("a") is True
    assert proxy.has("missing") is False

    proxy.set("b", 2)
    assert store["b"] == 2
    assert proxy.keys() == ["a", "marker", "b"]

    proxy.delete("a")
    has_a: bool = "a" in store
    assert has_a is False
    assert proxy.keys() == list(store.keys())


def test_passthrough_delete_of_missing_key_raises_like_the_store() -> None:
    """Deleting a missing key surfaces the store's own error."""
    proxy: VirtualObject = wrap({})
    with pytest.raises(KeyError):
        proxy.delete("missing")


def test_passthrough_sequence_supports_indices_and_length() -> None:
    """Sequence stores are keyed by index and expose the length key."""
    store: list[object] = [10, 20, 30]
    proxy: VirtualObject = wrap(store)

    assert proxy.get(0) == 10
    assert proxy.get("1") == 20
    assert proxy.get(3) is ABSENT
    assert proxy.get(LENGTH_KEY) == 3
    assert proxy.has(LENGTH_KEY) is True
    assert proxy.has(2) is True
    assert proxy.has(3) is False
    assert proxy.keys() == [0, 1, 2]

    proxy.set(LENGTH_KEY, 1)
    assert store == [10]

    proxy.set(3, "x")
    assert store == [10, None, None, "x"]

    proxy.delete(1)
    assert store == [10, None, "x"]


def test_passthrough_object_store_uses_attributes() -> None:
    """Plain objects are keyed by attribute name."""
    store = types.SimpleNamespace(x=1)
    proxy: VirtualObject = wrap(store)

    assert proxy.get("x") == 1
    assert proxy.has("x") is True
    proxy.set("y", 2)
    assert store.y == 2
    assert proxy.keys() == ["x", "y"]
    proxy.delete("x")
    has_x: bool = hasattr(store, "x")
    assert has_x is False


def test_python_protocols_route_through_operations() -> None:
    """Item, attribute, membership and iteration syntax all dispatch."""
    store: dict[str, object] = {"name": "n"}
    proxy: VirtualObject = wrap(store)

    assert proxy["name"] == "n"
    assert proxy.name == "n"
    proxy["size"] = 3
    proxy.color = "red"
    assert store == {"name": "n", "size": 3, "color": "red"}

    del proxy.color
    del proxy["size"]
    assert store == {"name": "n"}

    contains_name: bool = "name" in proxy
    assert contains_name is True
    assert list(proxy) == ["name"]
    assert len(proxy) == 1

    with pytest.raises(KeyError):
        proxy["missing"]
    with pytest.raises(AttributeError):
        proxy.missing


def test_handlers_receive_the_raw_store() -> None:
    """Handlers are called with the backing store, not the wrapper."""
    store: dict[str, int] = {"a": 1}
    seen: list[object] = []

    def get(target: object, key: object) -> object:
        seen.append(target)
        return f"intercepted:{key}"

    proxy: VirtualObject = wrap(store, {"get": get})
    assert proxy.get("a") == "intercepted:a"
    assert seen[0] is store
    proxy.set("b", 2)
    assert store["b"] == 2


def test_construct_calls_a_callable_store() -> None:
    """Constructing forwards to the wrapped class."""
    proxy: VirtualObject = wrap(ServiceRegistry)
    registry: object = proxy("alpha")
    assert isinstance(registry, ServiceRegistry) is True
    assert registry.name == "alpha"
    assert proxy.get("kind") == "registry"


def test_construct_rejects_non_callable_store() -> None:
    """Mappings cannot be constructed."""
    proxy: VirtualObject = wrap({})
    with pytest.raises(UnsupportedOperationError):
        proxy.construct()


def test_dispatch_rejects_unknown_operation() -> None:
    """Only the six operation names are dispatchable."""
    proxy: VirtualObject = wrap({})
    with pytest.raises(ValueError):
        proxy.dispatch("frobnicate", "key")


def test_handler_table_validation() -> None:
    """Unknown operation names and non-callable handlers are rejected."""
    with pytest.raises(ValueError):
        HandlerTable(frobnicate=lambda store: None)
    with pytest.raises(TypeError):
        HandlerTable(get=1)


def test_handler_table_compose_overrides_per_operation() -> None:
    """Later tables replace earlier handlers for the same operation."""

    def first_get(store: object, key: object) -> object:
        return "first"

    def second_get(store: object, key: object) -> object:
        return "second"

    def has(store: object, key: object) -> bool:
        return True

    table: HandlerTable = HandlerTable.compose({"get": first_get, "has": has}, None, HandlerTable(get=second_get))
    assert sorted(table) == ["get", "has"]
    assert len(table) == 2

    proxy: VirtualObject = wrap({}, table)
    assert proxy.get("anything") == "second"
    assert proxy.has("anything") is True


def test_revocation_blocks_every_operation() -> None:
    """After revoke, every operation raises and the store is untouched."""
    store: dict[str, int] = {"a": 1}
    proxy, controller = wrap_revocable(store)
    assert proxy.get("a") == 1
    assert controller.is_revoked is False

    controller.revoke()
    assert controller.is_revoked is True

    with pytest.raises(RevokedAccessError):
        proxy.get("a")
    with pytest.raises(RevokedAccessError):
        proxy.set("a", 2)
    with pytest.raises(RevokedAccessError):
        proxy.has("a")
    with pytest.raises(RevokedAccessError):
        proxy.delete("a")
    with pytest.raises(RevokedAccessError):
        proxy.keys()
    with pytest.raises(RevokedAccessError):
        proxy.construct()
    with pytest.raises(RevokedAccessError):
        proxy["a"]
    with pytest.raises(RevokedAccessError):
        proxy.a
    assert store == {"a": 1}


def test_revocation_overrides_handlers() -> None:
    """Revocation short-circuits before any handler runs."""
    calls: list[object] = []

    def get(store: object, key: object) -> object:
        calls.append(key)
        return key

    revocable = wrap_revocable({}, {"get": get})
    revocable.revoke()
    with pytest.raises(RevokedAccessError):
        revocable.proxy.get("a")
    assert calls == []


def test_revoke_is_idempotent(caplog: pytest.LogCaptureFixture) -> None:
    """Repeated revoke calls neither raise nor log again."""
    caplog.set_level(logging.DEBUG, logger="interpose.runtime")
    revocable = wrap_revocable({"a": 1})

    revocable.revoke()
    revocable.revoke()
    assert revocable.controller.is_revoked is True
    revoke_records: list[logging.LogRecord] = [
        record for record in caplog.records if record.getMessage().startswith("Revoked")
    ]
    assert len(revoke_records) == 1


def test_repr_does_not_dispatch() -> None:
    """Revoked objects can still be printed."""
    revocable = wrap_revocable({})
    revocable.revoke()
    representation: str = repr(revocable.proxy)
    assert "revoked" in representation


def test_repr_reads_revoked_flag_under_lock() -> None:
    """``repr`` waits for a revocation in progress on another thread."""
    proxy: VirtualObject = wrap({})
    assert "active" in repr(proxy)

    lock_held: threading.Event = threading.Event()
    release: threading.Event = threading.Event()
    representations: list[str] = []

    def revoke_while_locked() -> None:
        with proxy._lock:
            lock_held.set()
            release.wait(timeout=5)
            proxy._revoke()

    def describe() -> None:
        representations.append(repr(proxy))

    holder: threading.Thread = threading.Thread(target=revoke_while_locked)
    holder.start()
    assert lock_held.wait(timeout=5) is True
    reader: threading.Thread = threading.Thread(target=describe)
    reader.start()
    time.sleep(0.05)
    assert representations == []
    release.set()
    holder.join(timeout=5)
    reader.join(timeout=5)

    assert len(representations) == 1
    assert "revoked" in representations[0]
