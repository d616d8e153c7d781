"""A window-based transport flow with cumulative and selective acks."""

from __future__ import annotations

import math
import weakref
from typing import TYPE_CHECKING, Any, TextIO

from dcsim.events import FlowFinishedEvent, PacketQueuingEvent, RetxTimeoutEvent
from dcsim.packet import Ack, Packet, PacketType

if TYPE_CHECKING:
    from dcsim.simulator import Simulator

_UINT32_MASK = 0xFFFFFFFF
_UTIL_INTERVAL = 0.00002


class _UtilizationLog:
    """Received-throughput samples shared by all flows of one simulator."""

    def __init__(self) -> None:
        self.total_recvd = 0.0
        self.total_recvd_last = 0.0
        self.last_time = 1.0
        self.file: TextIO | None = None


class Flow:
    """A flow sending ``size`` bytes from ``src`` to ``dst``."""

    _util_logs: weakref.WeakKeyDictionary[Any, _UtilizationLog] = weakref.WeakKeyDictionary()

    def __init__(
        self, sim: Simulator, flow_id: int, start_time: float, size: int, src: Any, dst: Any
    ) -> None:
        params = sim.params
        self.sim = sim
        self.id = flow_id
        self.start_time = start_time
        self.finish_time = 0.0
        self.size = size
        self.src = src
        self.dst = dst

        self.next_seq_no = 0
        self.last_unacked_seq = 0
        self.retx_event: RetxTimeoutEvent | None = None
        self.flow_proc_event: Any = None

        self.received: set[int] = set()
        self.received_bytes = 0
        self.recv_till = 0
        self.max_seq_no_recv = 0
        self.cwnd_mss = params.initial_cwnd
        self.max_cwnd = params.max_cwnd
        self.finished = False

        self.scoreboard_sack_bytes = 0

        self.retx_timeout = params.retx_timeout_value
        self.mss = params.mss
        self.hdr_size = params.hdr_size
        self.total_pkt_sent = 0
        self.size_in_pkt = math.ceil(size / self.mss)

        self.pkt_drop = 0
        self.data_pkt_drop = 0
        self.ack_pkt_drop = 0
        self.received_count = 0
        self.flow_priority = 0
        self.first_byte_send_time = -1.0
        self.first_byte_receive_time = -1.0
        self.first_hop_departure = 0
        self.last_hop_departure = 0
        self.flow_completion_time = 0.0
        self.total_queuing_time = 0.0
        self.deadline = 0.0

    def __repr__(self) -> str:
        return f"{type(self).__name__}(id={self.id}, size={self.size})"

    def start_flow(self) -> None:
        """Begin sending."""
        self.send_pending_data()

    def send_pending_data(self) -> None:
        """Send every segment the congestion window allows."""
        if self.received_bytes >= self.size:
            return
        seq = self.next_seq_no
        window = self.cwnd_mss * self.mss + self.scoreboard_sack_bytes
        while seq + self.mss <= self.last_unacked_seq + window and seq < self.size:
            if seq not in self.received:
                self.send(seq)
            seq = seq + self.mss if seq + self.mss < self.size else self.size
            self.next_seq_no = seq
            if self.retx_event is None:
                self.set_timeout(self.sim.current_time + self.retx_timeout)

    def send(self, seq: int) -> Packet:
        """Queue the data segment starting at ``seq`` at the source host."""
        if seq + self.mss > self.size:
            pkt_size = self.size - seq + self.hdr_size
        else:
            pkt_size = self.mss + self.hdr_size
        now = self.sim.current_time
        packet = Packet(now, self, seq, self.get_priority(seq), pkt_size, self.src, self.dst)
        self.total_pkt_sent += 1
        self.sim.add_event(PacketQueuingEvent(self.sim, now, packet, self.src.queue))
        return packet

    def send_ack(self, seq: int, sack_list: list[int]) -> None:
        """Send an ack from the destination back to the source."""
        ack = Ack(self, seq, sack_list, self.hdr_size, self.dst, self.src)
        self.sim.add_event(PacketQueuingEvent(self.sim, self.sim.current_time, ack, self.dst.queue))

    def receive_ack(self, ack: int, sack_list: list[int]) -> None:
        """Process a cumulative ack with its selective-ack list."""
        now = self.sim.current_time
        self.scoreboard_sack_bytes = len(sack_list) * self.mss
        # After a timeout next_seq_no is rewound, so an ack may run ahead of it.
        if self.next_seq_no < ack:
            self.next_seq_no = ack

        if ack > self.last_unacked_seq:
            self.last_unacked_seq = ack
            self.increase_cwnd()
            self.send_pending_data()
            if self.retx_event is not None:
                self.cancel_retx_event()
                if self.last_unacked_seq < self.size:
                    self.set_timeout(now + self.retx_timeout)

        if ack == self.size and not self.finished:
            self.finished = True
            self.received.clear()
            self.finish_time = now
            self.flow_completion_time = self.finish_time - self.start_time
            self.sim.add_event(FlowFinishedEvent(self.sim, now, self))

    def receive(self, packet: Packet) -> None:
        """Deliver a packet to this flow."""
        if self.finished:
            return
        if packet.type == PacketType.ACK:
            self.receive_ack(packet.seq_no, packet.sack_list)
        elif packet.type == PacketType.NORMAL:
            if self.first_byte_receive_time == -1:
                self.first_byte_receive_time = self.sim.current_time
            self.receive_data_pkt(packet)
        else:
            raise ValueError(f"flow cannot receive packet of type {packet.type!r}")

    def receive_data_pkt(self, packet: Packet) -> None:
        """Record a data segment at the receiver and answer with an ack."""
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
                    self.recv_till = min(self.recv_till + self.mss, self.size)
                else:
                    sack_list.append(s)
            else:
                in_sequence = False

        self.send_ack(self.recv_till, sack_list)

    def set_timeout(self, time: float) -> None:
        """Arm a retransmission timer unless everything is acked."""
        if self.last_unacked_seq < self.size:
            event = RetxTimeoutEvent(self.sim, time, self)
            self.sim.add_event(event)
            self.retx_event = event

    def handle_timeout(self) -> None:
        """Go back to the last unacked byte with a window of one segment."""
        self.next_seq_no = self.last_unacked_seq
        self.cwnd_mss = 1
        self.send_pending_data()
        self.set_timeout(self.sim.current_time + self.retx_timeout)

    def cancel_retx_event(self) -> None:
        """Disarm the retransmission timer."""
        if self.retx_event is not None:
            self.retx_event.cancelled = True
        self.retx_event = None

    def get_priority(self, seq: int) -> int:
        """Priority stamped on outgoing data; lower is more urgent."""
        params = self.sim.params
        if params.flow_type == 1:
            return 1
        if params.deadline and params.schedule_by_deadline:
            return int(self.deadline * 1000000)
        return (self.size - self.last_unacked_seq - self.scoreboard_sack_bytes) & _UINT32_MASK

    def increase_cwnd(self) -> None:
        """Grow the window by one segment, up to the maximum."""
        self.cwnd_mss = min(self.cwnd_mss + 1, self.max_cwnd)

    def get_avg_queuing_delay_in_us(self) -> float:
        """Mean queuing delay of received segments, in microseconds."""
        return self.total_queuing_time / self.received_count * 1000000

    def log_utilization(self, pkt_size: int) -> None:
        """Accumulate received bytes and append throughput samples to the util file."""
        log = Flow._util_logs.setdefault(self.sim, _UtilizationLog())
        log.total_recvd += pkt_size
        util_file = self.sim.params.util_file
        now = self.sim.current_time
        if not util_file or now - log.last_time <= _UTIL_INTERVAL:
            return
        if log.file is None:
            log.file = open(util_file, "w", encoding="utf-8")
        gbps = (log.total_recvd - log.total_recvd_last) / (now - log.last_time) / 1000000000 * 8
        log.file.write(f"{now:g} {gbps:g} Gbps\n")
        log.file.flush()
        log.total_recvd_last = log.total_recvd
        log.last_time = now