"""Measure dispatch overhead of interpose wrappers against direct store access."""

import argparse
import json
import pathlib
import statistics
import sys
import time
from collections.abc import Callable

from interpose import hide_private
from interpose import track_changes
from interpose import validated
from interpose import with_defaults
from interpose import wrap

StoreAccessor = tuple[Callable[[str], object], Callable[[str, object], None]]
CaseBuilder = Callable[[], StoreAccessor]
_KEY_COUNT: int = 64

_CASE_DESCRIPTIONS: dict[str, str] = {
    "direct": "Plain dict item access, the baseline.",
    "passthrough": "Virtual object with an empty handler table.",
    "defaults": "Fallback reads through the default-value policy.",
    "private": "Private-key filter on every read and write.",
    "tracking": "Write-then-notify with a no-op listener.",
    "validated": "Rule lookup and predicate on every write.",
}


def _keys() -> list[str]:
    """Return the benchmark key set.

    :returns: Key names.
    """
    return [f"field_{index}" for index in range(_KEY_COUNT)]


def _initial_store() -> dict[str, object]:
    """Build the shared starting store.

    :returns: Fresh store.
    """
    return {key: 0 for key in _keys()}


def _build_direct() -> StoreAccessor:
    store: dict[str, object] = _initial_store()
    return store.__getitem__, store.__setitem__


def _build_passthrough() -> StoreAccessor:
    proxy = wrap(_initial_store())
    return proxy.get, proxy.set


def _build_defaults() -> StoreAccessor:
    proxy = with_defaults({}, _initial_store())
    return proxy.get, proxy.set


def _build_private() -> StoreAccessor:
    proxy = hide_private(_initial_store())
    return proxy.get, proxy.set


def _noop_listener(store: object, key: object, old_value: object, new_value: object) -> None:
    _ = (store, key, old_value, new_value)


def _build_tracking() -> StoreAccessor:
    proxy = track_changes(_initial_store(), _noop_listener)
    return proxy.get, proxy.set


def _build_validated() -> StoreAccessor:
    rules: dict[object, tuple[Callable[[object], bool], str]] = {
        key: (lambda value: isinstance(value, int), f"{key} must be an int") for key in _keys()
    }
    proxy, _controller = validated(_initial_store(), rules)
    return proxy.get, proxy.set


_CASE_BUILDERS: dict[str, CaseBuilder] = {
    "direct": _build_direct,
    "passthrough": _build_passthrough,
    "defaults": _build_defaults,
    "private": _build_private,
    "tracking": _build_tracking,
    "validated": _build_validated,
}


def _run_case(case_name: str, iterations: int) -> tuple[float, int]:
    """Run one timed read/write loop.

    :param case_name: Case to run.
    :param iterations: Number of read-modify-write rounds over all keys.
    :returns: Tuple of ``(elapsed_seconds, operation_count)``.
    """
    read, write = _CASE_BUILDERS[case_name]()
    keys: list[str] = _keys()
    started: float = time.perf_counter()
    for round_index in range(iterations):
        for key in keys:
            current: object = read(key)
            if isinstance(current, int) is False:
                raise TypeError(f"{case_name} returned non-int for {key}")
            write(key, current + round_index)
    elapsed: float = time.perf_counter() - started
    return elapsed, iterations * len(keys) * 2


def _build_case_list(cases_arg: str | None) -> list[str]:
    """Resolve the requested case subset.

    :param cases_arg: Comma-separated case names or ``None``.
    :returns: Ordered case names.
    :raises ValueError: If an unknown case is requested.
    """
    if cases_arg is None:
        return list(_CASE_BUILDERS)

    selected: list[str] = []
    for raw_name in cases_arg.split(","):
        name: str = raw_name.strip()
        if len(name) == 0:
            continue
        if name not in _CASE_BUILDERS:
            raise ValueError(f"Unknown case: {name}")
        selected.append(name)
    return selected


def _render_table(stats: dict[str, dict[str, float]]) -> str:
    """Render a plain-text results table.

    :param stats: Per-case statistics.
    :returns: Table text.
    """
    baseline: float | None = None
    direct_stats: dict[str, float] | None = stats.get("direct")
    if direct_stats is not None:
        baseline = direct_stats["median_ns_per_op"]

    lines: list[str] = [f"{'case':<14}{'median ns/op':>14}{'mean ns/op':>14}{'vs direct':>12}"]
    for case_name, case_stats in stats.items():
        ratio: str = "-"
        if baseline is not None and baseline > 0:
            ratio = f"{case_stats['median_ns_per_op'] / baseline:.1f}x"
        lines.append(
            f"{case_name:<14}"
            + f"{case_stats['median_ns_per_op']:>14.1f}"
            + f"{case_stats['mean_ns_per_op']:>14.1f}"
            + f"{ratio:>12}"
        )
    return "\n".join(lines)


def _parse_args() -> argparse.Namespace:
    """Parse CLI arguments.

    :returns: Parsed arguments.
    """
    parser = argparse.ArgumentParser(
        description="Compare direct dict access against interpose wrappers."
    )
    parser.add_argument("--iterations", type=int, default=2_000, help="Rounds over all keys per repetition.")
    parser.add_argument("--repetitions", type=int, default=5, help="Timed repetitions per case.")
    parser.add_argument("--cases", type=str, default=None, help="Comma-separated subset of cases to run.")
    parser.add_argument(
        "--json-output",
        type=str,
        default=None,
        help="Optional path to write raw benchmark output as JSON.",
    )
    return parser.parse_args()


def main() -> int:
    """Run the benchmark.

    :returns: Process exit code.
    """
    args: argparse.Namespace = _parse_args()
    if args.iterations <= 0 or args.repetitions <= 0:
        print("--iterations and --repetitions must be positive", file=sys.stderr)
        return 2

    selected_cases: list[str] = _build_case_list(args.cases)
    stats: dict[str, dict[str, float]] = {}
    raw_results: dict[str, list[float]] = {}
    for case_name in selected_cases:
        per_op_ns: list[float] = []
        for _ in range(args.repetitions):
            elapsed, operations = _run_case(case_name, args.iterations)
            per_op_ns.append(elapsed * 1e9 / operations)
        raw_results[case_name] = per_op_ns
        stats[case_name] = {
            "median_ns_per_op": statistics.median(per_op_ns),
            "mean_ns_per_op": statistics.fmean(per_op_ns),
            "min_ns_per_op": min(per_op_ns),
            "max_ns_per_op": max(per_op_ns),
        }

    print("Interpose Dispatch Overhead Benchmark")
    print(f"Iterations: {args.iterations}  Repetitions: {args.repetitions}  Keys: {_KEY_COUNT}")
    print("")
    print(_render_table(stats))
    print("")
    print("Case descriptions:")
    for case_name in selected_cases:
        print(f"- {case_name}: {_CASE_DESCRIPTIONS[case_name]}")

    if args.json_output is not None:
        payload: dict[str, object] = {
            "iterations": args.iterations,
            "repetitions": args.repetitions,
            "cases": selected_cases,
            "stats": stats,
            "raw_results": raw_results,
        }
        json_path: pathlib.Path = pathlib.Path(args.json_output)
        json_path.write_text(json.dumps(payload, indent=2, sort_keys=True), encoding="utf-8")
        print("")
        print(f"Wrote raw benchmark JSON: {json_path}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
