"""Output queues that sit on every link of the network."""

from __future__ import annotations

import itertools
from collections import deque
from typing import TYPE_CHECKING, Any

from dcsim.events import QueueProcessingEvent
from dcsim.packet import Packet, PacketType

if TYPE_CHECKING:
    from dcsim.simulator import Simulator

# Propagation delays used when the disaggregated layout (ddc) is enabled,
# keyed by queue location.
_DDC_PROPAGATION_DELAYS = {0: 10e-9, 1: 400e-9, 2: 400e-9, 3: 210e-9}
_RAND_MAX = 2**31 - 1


class Queue:
    """A drop-tail FIFO queue in front of a link."""

    _ids = itertools.count()

    def __init__(
        self, sim: Simulator, queue_id: int, rate: float, limit_bytes: int, location: int
    ) -> None:
        self.sim = sim
        self.id = queue_id
        self.unique_id = next(Queue._ids)
        self.rate = rate
        self.limit_bytes = limit_bytes
        self.location = location
        self.packets: deque[Packet] = deque()
        self.bytes_in_queue = 0
        self.busy = False
        self.queue_proc_event: QueueProcessingEvent | None = None
        self.busy_events: list[Any] = []
        self.packet_transmitting: Packet | None = None
        self.src: Any = None
        self.dst: Any = None
        self.interested = False

        if sim.params.ddc != 0:
            try:
                self.propagation_delay = _DDC_PROPAGATION_DELAYS[location]
            except KeyError:
                raise ValueError(f"unknown queue location {location}") from None
        else:
            self.propagation_delay = sim.params.propagation_delay

        self.p_arrivals = 0
        self.p_departures = 0
        self.b_arrivals = 0
        self.b_departures = 0
        self.pkt_drop = 0
        self.spray_counter = sim.rng.randint(0, _RAND_MAX)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(id={self.id}, unique_id={self.unique_id})"

    def set_src_dst(self, src: Any, dst: Any) -> None:
        """Attach the queue to the link from ``src`` to ``dst``."""
        self.src = src
        self.dst = dst

    def enque(self, packet: Packet) -> None:
        """Append a packet, or drop it if the queue would overflow."""
        self.p_arrivals += 1
        self.b_arrivals += packet.size
        if self.bytes_in_queue + packet.size <= self.limit_bytes:
            self.packets.append(packet)
            self.bytes_in_queue += packet.size
        else:
            self.pkt_drop += 1
            self.drop(packet)

    def deque(self) -> Packet | None:
        """Remove and return the head packet, or None when empty."""
        if self.bytes_in_queue <= 0:
            return None
        packet = self.packets.popleft()
        self.bytes_in_queue -= packet.size
        self.p_departures += 1
        self.b_departures += packet.size
        if packet.type in (PacketType.NORMAL, PacketType.STORM_DATA):
            if packet.flow.first_byte_send_time < 0:
                packet.flow.first_byte_send_time = self.sim.current_time
        return packet

    def drop(self, packet: Packet) -> None:
        """Account for a dropped packet."""
        flow = packet.flow
        flow.pkt_drop += 1
        if packet.seq_no < flow.size:
            flow.data_pkt_drop += 1
        if packet.type == PacketType.ACK:
            flow.ack_pkt_drop += 1
        if self.location != 0 and packet.type == PacketType.NORMAL:
            self.sim.dead_packets += 1
        now = self.sim.current_time
        if self.sim.debug.debug_flow(flow.id, now):
            print(
                f"{now} pkt drop. flow:{flow.id} type:{int(packet.type)} seq:{packet.seq_no}"
                f" at queue id:{self.id} loc:{self.location}",
                file=self.sim.out,
            )

    def get_transmission_delay(self, size: int) -> float:
        """Seconds needed to put ``size`` bytes on the wire."""
        return size * 8.0 / self.rate

    def preempt_current_transmission(self) -> None:
        """Abort the packet on the wire and put it back at the tail."""
        if not (self.sim.params.preemptive_queue and self.busy):
            return
        self.queue_proc_event.cancelled = True
        transmitting = self.packet_transmitting
        if transmitting is None:
            raise RuntimeError("a busy queue has no packet in transmission")

        for index, packet in enumerate(self.packets):
            if packet is transmitting:
                self.bytes_in_queue -= transmitting.size
                del self.packets[index]
                break

        for event in self.busy_events:
            event.cancelled = True
        self.busy_events.clear()
        self.enque(transmitting)
        self.packet_transmitting = None
        self.queue_proc_event = None
        self.busy = False


class ProbDropQueue(Queue):
    """A queue that silently loses each admitted packet with probability ``drop_prob``."""

    def __init__(
        self,
        sim: Simulator,
        queue_id: int,
        rate: float,
        limit_bytes: int,
        drop_prob: float,
        location: int,
    ) -> None:
        super().__init__(sim, queue_id, rate, limit_bytes, location)
        self.drop_prob = drop_prob

    def enque(self, packet: Packet) -> None:
        self.p_arrivals += 1
        self.b_arrivals += packet.size
        if self.bytes_in_queue + packet.size > self.limit_bytes:
            return
        if self.sim.rng.random() < self.drop_prob:
            return
        self.packets.append(packet)
        self.bytes_in_queue += packet.size
        if not self.busy:
            self.sim.add_event(QueueProcessingEvent(self.sim, self.sim.current_time, self))
            self.busy = True
            self.packet_transmitting = packet