"""Monitoring for workflow runs: metrics, tracing spans and the execution event log."""
from __future__ import annotations

import logging
import time
from collections import defaultdict
from contextlib import contextmanager
from typing import Any, Dict, List, Optional


Labels = Optional[Dict[str, str]]


class MetricsRecorder:
    """
    In-memory counters and duration samples, keyed by metric name and labels.

    The runner records ``executions_total{status}`` and
    ``node_duration_seconds{kind}``; the engine adds ``failures_total{kind}``.
    """

    def __init__(self) -> None:
        self.counters: Dict[str, Dict[str, float]] = defaultdict(lambda: defaultdict(float))
        self.samples: Dict[str, Dict[str, List[float]]] = defaultdict(dict)

    def inc(self, name: str, labels: Labels = None, value: float = 1) -> None:
        self.counters[name][_series(labels)] += value

    def observe(self, name: str, value: float, labels: Labels = None) -> None:
        self.samples[name].setdefault(_series(labels), []).append(value)

    def get_counter(self, name: str, labels: Labels = None) -> float:
        return self.counters[name].get(_series(labels), 0.0)

    def get_observations(self, name: str, labels: Labels = None) -> List[float]:
        return list(self.samples[name].get(_series(labels), []))

    def snapshot(self) -> Dict[str, Any]:
        """Counters as-is, samples reduced to count/mean/max per series"""
        return {
            "counters": {name: dict(series) for name, series in self.counters.items()},
            "durations": {
                name: {key: _summarize(values) for key, values in series.items()}
                for name, series in self.samples.items()
            },
        }


def _series(labels: Labels) -> str:
    if not labels:
        return "__no_labels__"
    return "|".join(f"{k}={v}" for k, v in sorted(labels.items()))


def _summarize(values: List[float]) -> Dict[str, float]:
    return {
        "count": len(values),
        "mean": sum(values) / len(values) if values else 0.0,
        "max": max(values) if values else 0.0,
    }


class TracingManager:
    """Debug-level spans around node executions."""

    def __init__(self) -> None:
        self.logger = logging.getLogger("flowrunner.tracing")

    @contextmanager
    def span(self, name: str, **attrs: Any):
        start = time.monotonic()
        self.logger.debug(f"span start {name}", extra={"span": name, "span_attrs": attrs})
        try:
            yield
        finally:
            duration = time.monotonic() - start
            self.logger.debug(
                f"span end {name} ({duration:.4f}s)",
                extra={"span": name, "duration": duration, "span_attrs": attrs}
            )


class EventLogger:
    """Lifecycle events of executions and nodes (workflow_started, node_failed, ...)."""

    def __init__(self) -> None:
        self.logger = logging.getLogger("flowrunner.events")

    def log(self, event: str, **payload: Any) -> None:
        self.logger.info(event, extra={"event_payload": payload})
