"""Opt-in timing instrumentation for the loader and the check."""

from __future__ import annotations

import time
from collections.abc import Generator
from contextlib import contextmanager
from dataclasses import dataclass, field


@dataclass
class TimingStats:
    """Collected timing statistics."""

    timings: dict[str, float] = field(default_factory=dict)
    counts: dict[str, int] = field(default_factory=dict)
    counters: dict[str, int] = field(default_factory=dict)
    enabled: bool = False


_stats = TimingStats()


def enable() -> None:
    """Enable timing collection, discarding anything recorded before."""
    _stats.enabled = True
    _stats.timings.clear()
    _stats.counts.clear()
    _stats.counters.clear()


def disable() -> None:
    _stats.enabled = False


@contextmanager
def timed(name: str) -> Generator[None, None, None]:
    """Context manager to time a block of code."""
    if not _stats.enabled:
        yield
        return

    start = time.perf_counter()
    try:
        yield
    finally:
        elapsed = time.perf_counter() - start
        _stats.timings[name] = _stats.timings.get(name, 0.0) + elapsed
        _stats.counts[name] = _stats.counts.get(name, 0) + 1


def record_count(name: str, count: int) -> None:
    """Record a counter value (not a timing)."""
    if not _stats.enabled:
        return
    _stats.counters[name] = count


def get_report() -> dict[str, dict[str, float | int]]:
    """Get timing report as dict, slowest first."""
    return {
        name: {
            "total_seconds": _stats.timings[name],
            "count": _stats.counts[name],
            "avg_ms": (_stats.timings[name] / _stats.counts[name]) * 1000,
        }
        for name in sorted(_stats.timings, key=lambda k: _stats.timings[k], reverse=True)
    }


def format_report() -> str:
    """Format timing report as a string."""
    report = get_report()
    if not report and not _stats.counters:
        return "No timing data collected."

    lines = ["", "Timing breakdown:"]
    for name, data in report.items():
        total = data["total_seconds"]
        count = int(data["count"])
        if count == 1:
            lines.append(f"  {name:30s} {total:>8.3f}s")
        else:
            lines.append(
                f"  {name:30s} {total:>8.3f}s  ({count:,} calls, {data['avg_ms']:.2f}ms avg)"
            )

    if _stats.counters:
        lines.append("")
        lines.append("Check stats:")
        for name, count in _stats.counters.items():
            lines.append(f"  {name:30s} {count:,}")

    return "\n".join(lines)
