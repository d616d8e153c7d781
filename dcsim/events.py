"""Discrete events that drive the simulation."""

from __future__ import annotations

import itertools
from abc import ABC, abstractmethod
from enum import IntEnum
from typing import TYPE_CHECKING, Any

from dcsim.packet import PacketType

if TYPE_CHECKING:
    from dcsim.simulator import Simulator

GIANT_FLOW_PACKETS = 2500000
_MSS_BYTES = 1460
_STORM_FLOW_TYPE = 130
_NDP_FLOW_TYPE = 140
_UINT32_MASK = 0xFFFFFFFF


class EventType(IntEnum):
    """Event kinds; at equal times a lower value is processed first."""

    FLOW_ARRIVAL = 0
    PACKET_QUEUING = 1
    PACKET_ARRIVAL = 2
    QUEUE_PROCESSING = 3
    RETX_TIMEOUT = 5
    FLOW_FINISHED = 6
    FLOW_PROCESSING = 7
    FLOW_CREATION = 8
    LOGGING = 9


def _general(x: float) -> str:
    return f"{x:.15g}"


def _fixed(x: float) -> str:
    return f"{x:.4f}"


class Event(ABC):
    """Something that happens at a point in simulated time."""

    _ids = itertools.count()

    def __init__(self, sim: Simulator, event_type: int, time: float) -> None:
        self.sim = sim
        self.type = event_type
        self.time = time
        self.cancelled = False
        self.unique_id = next(Event._ids)

    @abstractmethod
    def process_event(self) -> None:
        """Carry out the event."""

    def discard(self) -> None:
        """Release links that other objects hold to this event; none by default."""

    def __repr__(self) -> str:
        return f"{type(self).__name__}(time={self.time!r}, type={int(self.type)})"


class FlowCreationForInitializationEvent(Event):
    """Draws a flow size, records a new flow and schedules the next creation."""

    def __init__(
        self, sim: Simulator, time: float, src: Any, dst: Any, nv_bytes: Any, nv_intarr: Any
    ) -> None:
        super().__init__(sim, EventType.FLOW_CREATION, time)
        self.src = src
        self.dst = dst
        self.nv_bytes = nv_bytes
        self.nv_intarr = nv_intarr

    def process_event(self) -> None:
        sim = self.sim
        params = sim.params
        flow_id = len(sim.flows_to_schedule)
        if params.bytes_mode:
            size = int(self.nv_bytes.value())
        else:
            nv_val = int(self.nv_bytes.value() + 0.5)
            if nv_val > GIANT_FLOW_PACKETS:
                print(
                    f"Giant Flow! event.cpp::FlowCreation:{_general(1000000.0 * self.time)}"
                    f" Generating new flow {flow_id} of size {(nv_val * _MSS_BYTES) & _UINT32_MASK}"
                    f" between {self.src.id} {self.dst.id}",
                    file=sim.out,
                )
                nv_val = GIANT_FLOW_PACKETS
            size = nv_val * _MSS_BYTES

        if size != 0:
            if sim.factory is None:
                raise RuntimeError("the simulator has no factory to create flows with")
            sim.flows_to_schedule.append(
                sim.factory.get_flow(flow_id, self.time, size, self.src, self.dst, params.flow_type)
            )

        tnext = self.time + self.nv_intarr.value()
        sim.add_event(
            FlowCreationForInitializationEvent(
                sim, tnext, self.src, self.dst, self.nv_bytes, self.nv_intarr
            )
        )


class FlowArrivalEvent(Event):
    """A flow starts sending."""

    def __init__(self, sim: Simulator, time: float, flow: Any) -> None:
        super().__init__(sim, EventType.FLOW_ARRIVAL, time)
        self.flow = flow

    def process_event(self) -> None:
        sim = self.sim
        flow = self.flow
        sim.num_outstanding_packets += flow.size // flow.mss
        sim.arrival_packets_count += flow.size_in_pkt
        sim.max_outstanding_packets = max(sim.max_outstanding_packets, sim.num_outstanding_packets)
        flow.start_flow()
        sim.flow_arrival_count += 1
        if sim.flow_arrivals:
            sim.add_event(sim.flow_arrivals.popleft())

        num_to_run = sim.params.num_flows_to_run
        if num_to_run > 10 and sim.flow_arrival_count % 100000 == 0:
            now = sim.current_time
            unfinished = sum(
                1 for f in sim.flows_to_schedule if f.start_time < now and not f.finished
            )
            if sim.flow_arrival_count == int(num_to_run * 0.5):
                sim.arrival_packets_at_50 = sim.arrival_packets_count
                sim.num_outstanding_packets_at_50 = sim.num_outstanding_packets
            if sim.flow_arrival_count == num_to_run:
                sim.arrival_packets_at_100 = sim.arrival_packets_count
                sim.num_outstanding_packets_at_100 = sim.num_outstanding_packets
            print(
                f"## {_general(sim.current_time)} NumPacketOutstanding {sim.num_outstanding_packets}"
                f" NumUnfinishedFlows {unfinished} StartedFlows {sim.flow_arrival_count}"
                f" StartedPkts {sim.arrival_packets_count}",
                file=sim.out,
            )


class PacketQueuingEvent(Event):
    """A packet reaches a queue."""

    def __init__(self, sim: Simulator, time: float, packet: Any, queue: Any) -> None:
        super().__init__(sim, EventType.PACKET_QUEUING, time)
        self.packet = packet
        self.queue = queue

    def _start_transmission(self) -> None:
        queue = self.queue
        queue.queue_proc_event = QueueProcessingEvent(self.sim, self.sim.current_time, queue)
        self.sim.add_event(queue.queue_proc_event)
        queue.busy = True
        queue.packet_transmitting = self.packet

    def process_event(self) -> None:
        queue = self.queue
        if not queue.busy:
            self._start_transmission()
        elif (
            self.sim.params.preemptive_queue
            and self.packet.pf_priority < queue.packet_transmitting.pf_priority
        ):
            remaining = (queue.queue_proc_event.time - self.sim.current_time) / (
                queue.get_transmission_delay(queue.packet_transmitting.size)
            )
            if remaining > 0.01:
                queue.preempt_current_transmission()
                self._start_transmission()
        queue.enque(self.packet)


class PacketArrivalEvent(Event):
    """A packet is delivered to its destination host."""

    def __init__(self, sim: Simulator, time: float, packet: Any) -> None:
        super().__init__(sim, EventType.PACKET_ARRIVAL, time)
        self.packet = packet

    def process_event(self) -> None:
        if self.packet.type == PacketType.NORMAL:
            self.sim.completed_packets += 1
        self.packet.flow.receive(self.packet)


class QueueProcessingEvent(Event):
    """A queue takes its next packet and puts it on the wire."""

    def __init__(self, sim: Simulator, time: float, queue: Any) -> None:
        super().__init__(sim, EventType.QUEUE_PROCESSING, time)
        self.queue = queue

    def process_event(self) -> None:
        sim = self.sim
        queue = self.queue
        packet = queue.deque()
        if packet is None:
            queue.busy = False
            queue.busy_events.clear()
            queue.packet_transmitting = None
            queue.queue_proc_event = None
            return

        queue.busy = True
        queue.busy_events.clear()
        queue.packet_transmitting = packet
        next_hop = sim.topology.get_next_hop(packet, queue)
        td = queue.get_transmission_delay(packet.size)
        pd = queue.propagation_delay
        queue.queue_proc_event = QueueProcessingEvent(sim, self.time + td, queue)
        sim.add_event(queue.queue_proc_event)
        queue.busy_events.append(queue.queue_proc_event)

        follow_up: Event
        if next_hop is None:
            follow_up = PacketArrivalEvent(sim, self.time + td + pd, packet)
        elif sim.params.cut_through == 1:
            cut_through_delay = queue.get_transmission_delay(packet.flow.hdr_size)
            follow_up = PacketQueuingEvent(sim, self.time + cut_through_delay + pd, packet, next_hop)
        else:
            follow_up = PacketQueuingEvent(sim, self.time + td + pd, packet, next_hop)
        sim.add_event(follow_up)
        queue.busy_events.append(follow_up)

    def discard(self) -> None:
        if self.queue.queue_proc_event is self:
            self.queue.queue_proc_event = None
            self.queue.busy = False


class LoggingEvent(Event):
    """A point at which simulator statistics may be recorded."""

    def __init__(self, sim: Simulator, time: float, ttl: float = 1e10) -> None:
        super().__init__(sim, EventType.LOGGING, time)
        self.ttl = ttl
        self.logged_time: float | None = None

    def process_event(self) -> None:
        self.logged_time = self.sim.current_time


class FlowFinishedEvent(Event):
    """A flow completes; its result line is reported."""

    def __init__(self, sim: Simulator, time: float, flow: Any) -> None:
        super().__init__(sim, EventType.FLOW_FINISHED, time)
        self.flow = flow

    def process_event(self) -> None:
        sim = self.sim
        flow = self.flow
        flow.finished = True
        flow.finish_time = sim.current_time
        flow.flow_completion_time = flow.finish_time - flow.start_time
        sim.total_finished_flows += 1

        oracle = sim.topology.get_oracle_fct(flow)
        slowdown = 1000000 * flow.flow_completion_time / oracle
        if 0.9999 < slowdown < 1.0:
            slowdown = 1.0
        if slowdown < 1.0:
            print(
                f"bad slowdown {flow.size} {_general(1e6 * flow.flow_completion_time)}"
                f" {_general(oracle)} {_general(slowdown)}",
                file=sim.out,
            )
            raise RuntimeError(
                f"flow {flow.id} finished faster than its oracle time (slowdown {slowdown})"
            )

        if sim.debug.print_flow_result():
            print(self._result_line(oracle, slowdown), file=sim.out)

    def _result_line(self, oracle: float, slowdown: float) -> str:
        flow = self.flow
        flow_type = self.sim.params.flow_type
        fields: list[str] = [
            str(flow.id),
            str(flow.size),
            str(flow.src.id),
            str(flow.dst.id),
            _fixed(1000000 * flow.start_time),
            _fixed(1000000 * flow.finish_time),
            _fixed(1000000.0 * flow.flow_completion_time),
            _fixed(oracle),
            _fixed(slowdown),
        ]
        drops = f"{flow.data_pkt_drop}/{flow.ack_pkt_drop}/{flow.pkt_drop}"
        sent = f"{flow.total_pkt_sent}/{flow.size // flow.mss}//{flow.received_count}"
        if flow_type == _STORM_FLOW_TYPE:
            fields += [
                sent,
                drops,
                f"{flow.num_trimmed_packets_received}/{flow.num_retransmits}"
                f"/{flow.num_bad_retransmits_received}",
            ]
        elif flow_type == _NDP_FLOW_TYPE:
            fields += [
                drops,
                f"{flow.size_in_pkt}/{flow.total_pkt_sent}/{flow.num_packets_received}"
                f"/{flow.num_trimmed_packets_received}/{flow.num_retransmits}"
                f"/{flow.num_bad_retransmits_received}",
            ]
        else:
            fields += [sent, drops]
        fields.append(_fixed(1000000 * (flow.first_byte_send_time - flow.start_time)))
        return " ".join(fields) + " "


class FlowProcessingEvent(Event):
    """A flow gets the chance to send pending data."""

    def __init__(self, sim: Simulator, time: float, flow: Any) -> None:
        super().__init__(sim, EventType.FLOW_PROCESSING, time)
        self.flow = flow

    def process_event(self) -> None:
        self.flow.send_pending_data()

    def discard(self) -> None:
        if self.flow.flow_proc_event is self:
            self.flow.flow_proc_event = None


class RetxTimeoutEvent(Event):
    """A flow's retransmission timer fires."""

    def __init__(self, sim: Simulator, time: float, flow: Any) -> None:
        super().__init__(sim, EventType.RETX_TIMEOUT, time)
        self.flow = flow

    def process_event(self) -> None:
        self.flow.handle_timeout()

    def discard(self) -> None:
        if self.flow.retx_event is self:
            self.flow.retx_event = None