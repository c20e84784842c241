"""Walk through every interpose policy and print what each one does."""

import argparse
import logging
import sys
from collections.abc import Callable

from interpose import LENGTH_KEY
from interpose import InterposeError
from interpose import contains_by_value
from interpose import enumeration
from interpose import hide_private
from interpose import singleton
from interpose import track_changes
from interpose import validated
from interpose import with_defaults
from interpose import within_range

DemoRunner = Callable[[], None]


def _show(label: str, value: object) -> None:
    """Print one labelled result.

    :param label: Expression being shown.
    :param value: Its value.
    """
    print(f"  {label:<40} -> {value!r}")


def _show_error(label: str, action: Callable[[], object]) -> None:
    """Run ``action`` and print the interpose error it raises.

    :param label: Expression being shown.
    :param action: Callable expected to raise.
    """
    try:
        result: object = action()
    except InterposeError as exc:
        _show(label, f"{type(exc).__name__}: {exc}")
        return
    _show(label, result)


def _demo_defaults() -> None:
    """Show fallback reads."""
    settings = with_defaults({}, {"theme": "light"})
    _show("settings.get('theme')", settings.get("theme"))
    _show("settings.has('theme')", settings.has("theme"))
    settings.set("theme", "dark")
    _show("after set: settings.get('theme')", settings.get("theme"))
    settings.delete("theme")
    _show("after delete: settings.get('theme')", settings.get("theme"))


def _demo_private() -> None:
    """Show private-key hiding."""

    def secret_length(self: dict[str, object]) -> int:
        return len(str(self["_token"]))

    session = hide_private({"_token": "s3cr3t", "user": "ann", "secret_length": secret_length})
    _show("session.get('_token')", session.get("_token"))
    _show("session.keys()", session.keys())
    _show("session.secret_length()", session.secret_length())
    _show_error("session.set('_token', 'x')", lambda: session.set("_token", "x"))


def _demo_enumeration() -> None:
    """Show immutable enumerations."""
    status = enumeration("Status", {"ACTIVE": 1, "DISABLED": 0})
    _show("status.ACTIVE", status.ACTIVE)
    _show("status.key_of(0)", status.key_of(0))
    _show_error("status.get('UNKNOWN')", lambda: status.get("UNKNOWN"))
    _show_error("status.set('ACTIVE', 2)", lambda: status.set("ACTIVE", 2))


def _demo_tracking() -> None:
    """Show change notifications."""

    def listener(store: object, key: object, old_value: object, new_value: object) -> None:
        print(f"    change {key!r}: {old_value!r} -> {new_value!r}")

    items = track_changes([1, 2, 3], listener)
    items.set(0, 10)
    items.set(LENGTH_KEY, 1)
    items.delete(0)
    _show("items.get('length')", items.get(LENGTH_KEY))


def _demo_membership() -> None:
    """Show value-based membership tests."""
    fruits = contains_by_value(["apple", "pear"])
    _show("'apple' in fruits", "apple" in fruits)
    _show("0 in fruits", 0 in fruits)
    percent = contains_by_value([], within_range(0, 100))
    _show("42 in percent", 42 in percent)
    _show("101 in percent", 101 in percent)


class Configuration:
    """Class guarded by the singleton demo."""

    source: str

    def __init__(self, source: str) -> None:
        self.source = source


def _demo_singleton() -> None:
    """Show singleton construction."""
    guard = singleton(Configuration)
    first: object = guard("first.toml")
    second: object = guard("second.toml")
    _show("first is second", first is second)
    _show("second.source", getattr(second, "source"))


def _demo_validated() -> None:
    """Show validated writes and revocation."""
    rules = {"port": (lambda value: isinstance(value, int) and 0 < value < 65536, "port must be 1-65535")}
    server, controller = validated({}, rules)
    server.set("port", 8080)
    _show("server.get('port')", server.get("port"))
    _show_error("server.set('port', 0)", lambda: server.set("port", 0))
    _show_error("server.set('host', 'x')", lambda: server.set("host", "x"))
    controller.revoke()
    _show_error("after revoke: server.get('port')", lambda: server.get("port"))


_DEMOS: dict[str, DemoRunner] = {
    "defaults": _demo_defaults,
    "private": _demo_private,
    "enumeration": _demo_enumeration,
    "tracking": _demo_tracking,
    "membership": _demo_membership,
    "singleton": _demo_singleton,
    "validated": _demo_validated,
}


def _parse_args() -> argparse.Namespace:
    """Parse CLI arguments.

    :returns: Parsed arguments.
    """
    parser = argparse.ArgumentParser(description="Demonstrate interpose interception policies.")
    parser.add_argument(
        "demos",
        nargs="*",
        help="Policies to demonstrate (" + ", ".join(_DEMOS) + "); all when omitted.",
    )
    parser.add_argument("--verbose", action="store_true", help="Show interpose debug logging.")
    return parser.parse_args()


def main() -> int:
    """Run the selected demos.

    :returns: Process exit code.
    """
    args: argparse.Namespace = _parse_args()
    if args.verbose is True:
        logging.basicConfig(level=logging.DEBUG, stream=sys.stderr, format="%(name)s: %(message)s")

    selected: list[str] = list(args.demos)
    if len(selected) == 0:
        selected = list(_DEMOS)
    unknown: list[str] = [name for name in selected if name not in _DEMOS]
    if len(unknown) > 0:
        print("Unknown demos: " + ", ".join(unknown), file=sys.stderr)
        return 2

    for name in selected:
        print(f"[{name}]")
        _DEMOS[name]()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
