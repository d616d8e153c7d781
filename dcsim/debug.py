"""Switches that decide which simulator objects emit debug output."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class DebugConfig:
    """Debug settings: global switches plus per-object selections.

    Per-flow tracing is held off by ``flow_debugging_enabled``, which is
    off by default, so ``debug_flow`` reports False unless it is turned on.
    """

    debug_mode: bool = True
    print_flow: bool = True
    debug_start_time: float = 0.0
    flow_debugging_enabled: bool = False
    debug_all_flows: bool = False
    flows_to_debug: set[int] = field(default_factory=set)
    debug_all_queues: bool = False
    queues_to_debug: set[int] = field(default_factory=set)
    debug_all_hosts: bool = False
    hosts_to_debug: set[int] = field(default_factory=set)

    def _active(self, now: float) -> bool:
        return self.debug_mode and now >= self.debug_start_time

    def debug_flow(self, fid: int, now: float) -> bool:
        """True when flow ``fid`` should be traced at time ``now``."""
        if not self.flow_debugging_enabled:
            return False
        return self._active(now) and (self.debug_all_flows or fid in self.flows_to_debug)

    def debug_queue(self, qid: int, now: float) -> bool:
        """True when queue ``qid`` should be traced at time ``now``."""
        return self._active(now) and (self.debug_all_queues or qid in self.queues_to_debug)

    def debug_host(self, hid: int, now: float) -> bool:
        """True when host ``hid`` should be traced at time ``now``."""
        return self._active(now) and (self.debug_all_hosts or hid in self.hosts_to_debug)

    def debug(self, now: float) -> bool:
        """True when general debugging is active at time ``now``."""
        return self._active(now)

    def print_flow_result(self) -> bool:
        """Whether finished flows are reported."""
        return self.print_flow