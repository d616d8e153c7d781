import io
from types import SimpleNamespace

import pytest

from dcsim.dctcp import DctcpFlow, DctcpQueue
from dcsim.events import FlowArrivalEvent
from dcsim.packet import RTS, Ack, Packet
from dcsim.queue import Queue
from dcsim.simulator import SimParams, Simulator


class _DirectTopology:
    def get_next_hop(self, packet, queue):
        return None

    def get_oracle_fct(self, flow):
        return 1e-6


def _host(sim, host_id, queue_cls=Queue):
    return SimpleNamespace(id=host_id, queue=queue_cls(sim, host_id, 10e9, 1_000_000, 0))


def _flow(sim, size=2920):
    return DctcpFlow(sim, 0, 0.0, size, _host(sim, 0), _host(sim, 1))


def test_queue_marks_at_threshold():
    sim = Simulator(SimParams(dctcp_mark_thresh=2))
    q = DctcpQueue(sim, 0, 10e9, 10000, 0)
    flow = _flow(sim)
    first = Packet(0.0, flow, 0, 1, 1500, None, None)
    second = Packet(0.0, flow, 1460, 1, 1500, None, None)
    q.enque(first)
    q.enque(second)
    assert getattr(first, "ecn", False) is False
    assert second.ecn is True
    assert q.bytes_in_queue == 3000


def test_queue_drops_on_overflow():
    sim = Simulator()
    q = DctcpQueue(sim, 0, 10e9, 1500, 0)
    flow = _flow(sim)
    q.enque(Packet(0.0, flow, 0, 1, 1500, None, None))
    q.enque(Packet(0.0, flow, 1460, 1, 1500, None, None))
    assert q.pkt_drop == 1
    assert flow.pkt_drop == 1
    assert len(q.packets) == 1


def test_initial_state():
    sim = Simulator()
    flow = _flow(sim)
    assert list(flow.ecn_history) == [False] * flow.max_cwnd
    assert flow.dctcp_alpha == 0.0
    assert flow.get_priority(0) == 1


def test_increase_cwnd_keeps_window_without_marks():
    sim = Simulator()
    flow = _flow(sim)
    before = flow.cwnd_mss
    flow.increase_cwnd()
    assert flow.cwnd_mss == before


def test_increase_cwnd_halves_with_full_alpha():
    sim = Simulator(SimParams(initial_cwnd=6))
    flow = _flow(sim)
    flow.dctcp_alpha = 1.0
    flow.increase_cwnd()
    assert flow.cwnd_mss == 3


def test_receive_data_tracks_sacks_and_cumulative_ack():
    sim = Simulator()
    flow = _flow(sim)
    flow.receive_data_pkt(Packet(0.0, flow, 1460, 1, 1500, None, None))
    assert flow.recv_till == 0
    assert sim.event_queue_size() == 1
    flow.receive_data_pkt(Packet(0.0, flow, 0, 1, 1500, None, None))
    assert flow.recv_till == flow.size
    assert flow.received_bytes == 2 * flow.mss
    assert sim.event_queue_size() == 2


def test_duplicate_data_is_counted():
    sim = Simulator()
    flow = _flow(sim)
    flow.receive(Packet(0.0, flow, 0, 1, 1500, None, None))
    flow.receive(Packet(0.0, flow, 0, 1, 1500, None, None))
    assert sim.duplicated_packets_received == 1
    assert flow.received_count == 2


def test_ack_records_ecn_in_history():
    sim = Simulator()
    flow = _flow(sim)
    ack = Ack(flow, flow.mss, [], flow.hdr_size, flow.dst, flow.src)
    ack.ecn = True
    flow.receive(ack)
    assert flow.last_unacked_seq == flow.mss
    assert flow.ecn_history[0] is True
    assert len(flow.ecn_history) == flow.max_cwnd
    assert flow.dctcp_alpha == 0.0


def test_final_ack_finishes_flow():
    sim = Simulator()
    flow = _flow(sim)
    flow.receive(Ack(flow, flow.size, [], flow.hdr_size, flow.dst, flow.src))
    assert flow.finished
    assert flow.received == set()


def test_window_larger_than_history_raises():
    sim = Simulator()
    flow = _flow(sim)
    flow.cwnd_mss = flow.max_cwnd + 1
    with pytest.raises(RuntimeError):
        flow.receive(Ack(flow, flow.mss, [], flow.hdr_size, flow.dst, flow.src))


def test_unexpected_packet_type_raises():
    sim = Simulator()
    flow = _flow(sim)
    with pytest.raises(ValueError):
        flow.receive(RTS(flow, flow.src, flow.dst, 0.0, 0))


def test_finished_flow_ignores_packets():
    sim = Simulator()
    flow = _flow(sim)
    flow.finished = True
    flow.receive(Packet(0.0, flow, 0, 1, 1500, None, None))
    assert flow.received_count == 0


def test_marked_run_raises_alpha_and_shrinks_window():
    params = SimParams(num_flows_to_run=1, dctcp_mark_thresh=1, initial_cwnd=6)
    sim = Simulator(params, topology=_DirectTopology(), out=io.StringIO())
    src = _host(sim, 0, DctcpQueue)
    dst = _host(sim, 1)
    flow = DctcpFlow(sim, 0, 0.0, 20 * params.mss, src, dst)
    sim.add_event(FlowArrivalEvent(sim, 0.0, flow))
    sim.run_scenario()
    assert flow.finished
    assert sim.total_finished_flows == 1
    assert flow.dctcp_alpha > 0.0
    assert flow.cwnd_mss < params.initial_cwnd


def test_unmarked_run_keeps_alpha_zero():
    params = SimParams(num_flows_to_run=1)
    sim = Simulator(params, topology=_DirectTopology(), out=io.StringIO())
    src = _host(sim, 0, DctcpQueue)
    dst = _host(sim, 1)
    flow = DctcpFlow(sim, 0, 0.0, 4 * params.mss, src, dst)
    sim.add_event(FlowArrivalEvent(sim, 0.0, flow))
    sim.run_scenario()
    assert flow.finished
    assert flow.dctcp_alpha == 0.0
    assert flow.cwnd_mss == params.initial_cwnd