"""ECN-marking queue and the flow that reacts to the marks."""

from __future__ import annotations

import itertools
import math
from collections import deque
from typing import TYPE_CHECKING, Any

from dcsim.events import FlowFinishedEvent, PacketQueuingEvent
from dcsim.flow import Flow
from dcsim.packet import Ack, Packet, PacketType
from dcsim.queue import Queue

if TYPE_CHECKING:
    from dcsim.simulator import Simulator

DCTCP_G = 0.0625


class DctcpQueue(Queue):
    """A drop-tail queue that sets ECN once it holds enough packets."""

    def enque(self, packet: Packet) -> None:
        self.p_arrivals += 1
        self.b_arrivals += packet.size
        if self.bytes_in_queue + packet.size <= self.limit_bytes:
            self.packets.append(packet)
            self.bytes_in_queue += packet.size
            if len(self.packets) >= self.sim.params.dctcp_mark_thresh:
                packet.ecn = True
        else:
            self.pkt_drop += 1
            self.drop(packet)


class DctcpFlow(Flow):
    """A flow whose window shrinks by the fraction of ECN-marked acks."""

    def __init__(
        self, sim: Simulator, flow_id: int, start_time: float, size: int, src: Any, dst: Any
    ) -> None:
        super().__init__(sim, flow_id, start_time, size, src, dst)
        self.dctcp_g = DCTCP_G
        self.dctcp_alpha = 0.0
        self.ecn_history: deque[bool] = deque([False] * self.max_cwnd)

    def receive(self, packet: Packet) -> None:
        if self.finished:
            return
        if packet.type == PacketType.ACK:
            self.receive_ack(packet)
        elif packet.type == PacketType.NORMAL:
            self.receive_data_pkt(packet)
        else:
            raise ValueError(f"flow cannot receive packet of type {packet.type!r}")

    def receive_data_pkt(self, packet: Packet) -> None:
        """Record a data segment and echo its ECN mark in the ack."""
        sim = self.sim
        self.received_count += 1
        self.total_queuing_time += packet.total_queuing_delay

        payload = packet.size - self.hdr_size
        if packet.seq_no not in self.received:
            self.received.add(packet.seq_no)
            sim.num_outstanding_packets = max(
                0, sim.num_outstanding_packets - payload // self.mss
            )
            self.received_bytes += payload
        else:
            sim.duplicated_packets_received += 1
        self.max_seq_no_recv = max(self.max_seq_no_recv, packet.seq_no)

        sack_list: list[int] = []
        in_sequence = True
        for s in range(self.recv_till, self.max_seq_no_recv + 1, self.mss):
            if s in self.received:
                if in_sequence:
                    self.recv_till += self.mss
                else:
                    sack_list.append(s)
            else:
                in_sequence = False

        ack = Ack(self, self.recv_till, sack_list, self.hdr_size, self.dst, self.src)
        ack.ecn = bool(getattr(packet, "ecn", False))
        sim.add_event(PacketQueuingEvent(sim, sim.current_time, ack, self.dst.queue))

    def _update_alpha(self, ecn: bool) -> None:
        self.ecn_history.appendleft(ecn)
        while len(self.ecn_history) > self.max_cwnd:
            self.ecn_history.pop()
        if self.cwnd_mss > len(self.ecn_history):
            raise RuntimeError(
                f"window of {self.cwnd_mss} exceeds ECN history of {len(self.ecn_history)}"
            )
        marked = sum(itertools.islice(self.ecn_history, self.cwnd_mss))
        # Integer fraction: only a fully marked window counts.
        frac_ecn = marked // self.cwnd_mss
        self.dctcp_alpha = (1 - self.dctcp_g) * self.dctcp_alpha + self.dctcp_g * frac_ecn

    def receive_ack(self, ack: Ack) -> None:
        """Process an ack, updating alpha from its ECN echo."""
        now = self.sim.current_time
        seq = ack.seq_no
        self.scoreboard_sack_bytes = len(ack.sack_list) * self.mss
        if self.next_seq_no < seq:
            self.next_seq_no = seq

        if seq > self.last_unacked_seq:
            self.last_unacked_seq = seq
            self._update_alpha(bool(getattr(ack, "ecn", False)))
            self.increase_cwnd()
            self.send_pending_data()
            if self.retx_event is not None:
                self.cancel_retx_event()
                if self.last_unacked_seq < self.size:
                    self.set_timeout(now + self.retx_timeout)

        if seq == self.size and not self.finished:
            self.finished = True
            self.received.clear()
            self.finish_time = now
            self.flow_completion_time = self.finish_time - self.start_time
            self.sim.add_event(FlowFinishedEvent(self.sim, now, self))

    def increase_cwnd(self) -> None:
        """Scale the window by (1 - alpha / 2), rounded to the nearest segment."""
        self.cwnd_mss = math.floor(self.cwnd_mss * (1 - self.dctcp_alpha / 2) + 0.5)

    def get_priority(self, seq: int) -> int:
        return 1