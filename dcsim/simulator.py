"""The simulation loop and the state it shares with events."""

from __future__ import annotations

import heapq
import random
import sys
from collections import deque
from dataclasses import dataclass
from typing import Any, TextIO

from dcsim.debug import DebugConfig
from dcsim.events import Event, EventType

DEAD_LOOP_LIMIT = 100000
_SAME_TIME_EPSILON = 1e-15


@dataclass
class SimParams:
    """Experiment parameters."""

    num_flows_to_run: int = 1000000
    flow_type: int = 1
    host_type: int = 1
    queue_type: int = 1
    bytes_mode: bool = False
    preemptive_queue: bool = False
    cut_through: int = 0
    initial_cwnd: int = 6
    max_cwnd: int = 12
    retx_timeout_value: float = 45e-6
    mss: int = 1460
    hdr_size: int = 40
    queue_size: int = 36864
    deadline: bool = False
    schedule_by_deadline: bool = False
    util_file: str = ""
    ddc: int = 0
    propagation_delay: float = 0.0000002
    load_balancing: int = 0
    bandwidth: float = 10e9
    BDP: int = 0
    dctcp_mark_thresh: int = 65


class _Scheduled:
    """Heap entry: earlier time first; near-equal times order by event type."""

    __slots__ = ("event",)

    def __init__(self, event: Event) -> None:
        self.event = event

    def __lt__(self, other: _Scheduled) -> bool:
        a, b = self.event, other.event
        if abs(a.time - b.time) < _SAME_TIME_EPSILON:
            if a.type != b.type:
                return a.type < b.type
            return a.unique_id < b.unique_id
        return a.time < b.time


class Simulator:
    """Holds the event queue, the clock and the run's statistics."""

    def __init__(
        self,
        params: SimParams | None = None,
        *,
        topology: Any = None,
        factory: Any = None,
        debug: DebugConfig | None = None,
        out: TextIO | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self.params = params if params is not None else SimParams()
        self.topology = topology
        self.factory = factory
        self.debug = debug if debug is not None else DebugConfig()
        self.out = out if out is not None else sys.stdout
        self.rng = rng if rng is not None else random.Random(0)

        self.current_time = 0.0
        self.start_time = -1.0
        self._events: list[_Scheduled] = []
        self.flows_to_schedule: list[Any] = []
        self.flow_arrivals: deque[Event] = deque()

        self.num_outstanding_packets = 0
        self.max_outstanding_packets = 0
        self.num_outstanding_packets_at_50 = 0
        self.num_outstanding_packets_at_100 = 0
        self.arrival_packets_at_50 = 0
        self.arrival_packets_at_100 = 0
        self.arrival_packets_count = 0
        self.total_finished_flows = 0
        self.duplicated_packets_received = 0
        self.injected_packets = 0
        self.duplicated_packets = 0
        self.dead_packets = 0
        self.completed_packets = 0
        self.backlog3 = 0
        self.backlog4 = 0
        self.total_completed_packets = 0
        self.sent_packets = 0
        self.flow_arrival_count = 0

    def add_event(self, event: Event) -> None:
        """Schedule an event."""
        heapq.heappush(self._events, _Scheduled(event))

    def event_queue_size(self) -> int:
        """Number of events waiting, cancelled ones included."""
        return len(self._events)

    def _pop_event(self) -> Event:
        return heapq.heappop(self._events).event

    def run_scenario(self) -> int:
        """Process events until none remain, enough flows finish, or a dead loop is seen.

        Returns the number of events processed.
        """
        if self.flow_arrivals:
            self.add_event(self.flow_arrivals.popleft())

        processed = 0
        last_type: int | None = None
        same_count = 0
        while self._events:
            event = self._pop_event()
            self.current_time = event.time
            if self.start_time < 0:
                self.start_time = self.current_time
            if event.cancelled:
                event.discard()
                continue

            event.process_event()
            processed += 1

            if last_type == event.type and last_type != EventType.LOGGING:
                same_count += 1
            else:
                same_count = 0
            last_type = event.type

            if same_count > DEAD_LOOP_LIMIT:
                print(f"Ended event dead loop. Type:{int(last_type)}", file=self.out)
                break
            if self.total_finished_flows >= self.params.num_flows_to_run:
                break

            event.discard()
        return processed