"""
Per-flow temporal state.

A flow is identified by "source address:source port". The tracker remembers
when each flow was last seen and turns the gap since then into a quantized
duration, so the inter-arrival attribute stays a small discrete domain that
ID3 can split on.

Mutation discipline: the pipeline owns one tracker per run and calls it in
packet arrival order. State for different keys is independent, so work for
different flows may be interleaved as long as each key's calls stay ordered.
"""

import logging
from collections import OrderedDict
from datetime import timedelta
from typing import Optional

from . import config

logger = logging.getLogger(__name__)

_MICROS_PER_SECOND = 1_000_000


def quantize(delta_seconds: float, quantum_ms: int = config.TIME_QUANTUM_MS) -> timedelta:
    """
    Round a duration to the nearest multiple of quantum_ms.

    Halfway values round toward the larger multiple (150 ms -> 200 ms).
    """
    quantum = quantum_ms * 1000
    micros = int(round(delta_seconds * _MICROS_PER_SECOND))
    rounded = ((micros + quantum // 2) // quantum) * quantum
    return timedelta(microseconds=rounded)


class FlowTracker:
    """
    Last-seen bookkeeping keyed by flow key.

    Retention is unbounded by default, as long-lived captures only ever add
    keys. Pass max_flows to cap memory; the least recently seen flow is then
    evicted first and will read as new (zero gap) when it returns.
    """

    def __init__(self, quantum_ms: int = config.TIME_QUANTUM_MS,
                 max_flows: Optional[int] = None):
        if max_flows is not None and max_flows < 1:
            raise ValueError("max_flows must be at least 1")
        self.quantum_ms = int(quantum_ms)
        self.max_flows = max_flows
        self._last_seen: 'OrderedDict[str, float]' = OrderedDict()
        self.evicted = 0

    def __len__(self) -> int:
        return len(self._last_seen)

    def __contains__(self, flow_key: str) -> bool:
        return flow_key in self._last_seen

    def last_seen(self, flow_key: str) -> Optional[float]:
        return self._last_seen.get(flow_key)

    def elapsed(self, flow_key: str, now: float) -> timedelta:
        """Quantized time since flow_key was last observed, zero if never. No side effects."""
        last = self._last_seen.get(flow_key)
        if last is None:
            return timedelta(0)
        return quantize(now - last, self.quantum_ms)

    def observe(self, flow_key: str, now: float) -> None:
        """Record now as the last-seen time of flow_key."""
        self._last_seen[flow_key] = now
        self._last_seen.move_to_end(flow_key)

        if self.max_flows is not None:
            while len(self._last_seen) > self.max_flows:
                evicted_key, _ = self._last_seen.popitem(last=False)
                self.evicted += 1
                logger.debug(f"Evicted flow state for {evicted_key}")

    def inter_arrival(self, flow_key: str, now: float) -> timedelta:
        """
        Quantized gap since the previous packet of flow_key, then mark it seen.

        Returns a zero duration on the first observation of a flow.
        """
        delta = self.elapsed(flow_key, now)
        self.observe(flow_key, now)
        return delta

    def clear(self) -> None:
        self._last_seen.clear()
