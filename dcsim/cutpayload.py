"""A two-level queue that trims payloads instead of dropping data packets."""

from __future__ import annotations

from collections import deque
from enum import IntEnum
from typing import TYPE_CHECKING

from dcsim.packet import Packet, PacketType
from dcsim.queue import Queue

if TYPE_CHECKING:
    from dcsim.simulator import Simulator

LOW_RATIO = 1
HI_RATIO = 10


class _Level(IntEnum):
    LOW = 0
    HI = 1


class CutPayloadQueue(Queue):
    """Data packets wait at low priority; headers and control packets at high.

    When the low level is full a data packet loses its payload and joins the
    high level as a header.  With both levels busy they are served 10:1.
    """

    def __init__(
        self, sim: Simulator, queue_id: int, rate: float, limit_bytes: int, location: int
    ) -> None:
        super().__init__(sim, queue_id, rate, limit_bytes, location)
        self.serving = _Level.HI
        self.counter = 0
        self.prio_queues: dict[_Level, deque[Packet]] = {
            _Level.LOW: deque(),
            _Level.HI: deque(),
        }
        self.bytes_in_queues: dict[_Level, int] = {_Level.LOW: 0, _Level.HI: 0}

    def enque(self, packet: Packet) -> None:
        self.p_arrivals += 1
        self.b_arrivals += packet.size
        is_data = packet.type == PacketType.STORM_DATA and not packet.is_header
        level = _Level.LOW if is_data else _Level.HI

        if level == _Level.LOW and self.bytes_in_queues[_Level.LOW] + packet.size > self.limit_bytes:
            level = _Level.HI
            packet.strip_payload()

        if self.bytes_in_queues[level] + packet.size > self.limit_bytes:
            self.pkt_drop += 1
            self.drop(packet)
            return

        self.prio_queues[level].append(packet)
        self.bytes_in_queues[level] += packet.size
        self.bytes_in_queue += packet.size

    def deque(self) -> Packet | None:
        low = self.prio_queues[_Level.LOW]
        high = self.prio_queues[_Level.HI]
        if not low and not high:
            return None

        if low and high:
            self.counter += 1
            if self.counter >= LOW_RATIO + HI_RATIO:
                self.counter = 0
            self.serving = _Level.HI if self.counter < HI_RATIO else _Level.LOW

        level = self.serving
        if not self.prio_queues[level]:
            level = _Level.LOW if level == _Level.HI else _Level.HI

        packet = self.prio_queues[level].popleft()
        self.bytes_in_queues[level] -= packet.size
        return packet