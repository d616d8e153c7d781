import io

import pytest

from dcsim.events import FlowArrivalEvent, FlowFinishedEvent, PacketQueuingEvent, RetxTimeoutEvent
from dcsim.flow import Flow
from dcsim.node import Host
from dcsim.packet import Ack, Packet, PacketType, RTS
from dcsim.queue import Queue
from dcsim.simulator import SimParams, Simulator


class DirectTopology:
    """Every queue delivers straight to the destination."""

    def get_next_hop(self, packet, queue):
        return None

    def get_oracle_fct(self, flow):
        return 1e-6


def make_sim(**kwargs):
    return Simulator(SimParams(**kwargs), topology=DirectTopology(), out=io.StringIO())


def make_host(sim, host_id):
    def make_queue(queue_id, rate, queue_size, queue_type, drop_prob, location):
        return Queue(sim, queue_id, rate, queue_size, location)

    return Host(host_id, 10e9, 1, 1, make_queue=make_queue, queue_size=10**7)


def make_flow(sim, size):
    return Flow(sim, 0, 0.0, size, make_host(sim, 0), make_host(sim, 1))


def drain(sim):
    events = []
    while sim.event_queue_size():
        events.append(sim._pop_event())
    return events


def test_size_in_packets_rounds_up():
    sim = make_sim(mss=1000)
    assert make_flow(sim, 2500).size_in_pkt == 3
    assert make_flow(sim, 2000).size_in_pkt == 2


def test_send_pending_data_fills_window():
    sim = make_sim(initial_cwnd=3, mss=1000)
    flow = make_flow(sim, 10000)
    flow.send_pending_data()
    events = drain(sim)
    data = [e.packet for e in events if isinstance(e, PacketQueuingEvent)]
    assert [p.seq_no for p in data] == [0, 1000, 2000]
    assert all(p.size == 1000 + flow.hdr_size for p in data)
    assert sum(isinstance(e, RetxTimeoutEvent) for e in events) == 1
    assert flow.next_seq_no == 3000
    assert flow.total_pkt_sent == 3


def test_last_segment_is_short():
    sim = make_sim(initial_cwnd=10, mss=1000)
    flow = make_flow(sim, 2500)
    flow.send_pending_data()
    data = [e.packet for e in drain(sim) if isinstance(e, PacketQueuingEvent)]
    assert [p.seq_no for p in data] == [0, 1000, 2000]
    assert data[-1].size == 500 + flow.hdr_size
    assert flow.next_seq_no == flow.size


def test_increase_cwnd_is_capped():
    sim = make_sim(initial_cwnd=2, max_cwnd=3)
    flow = make_flow(sim, 10000)
    flow.increase_cwnd()
    assert flow.cwnd_mss == 3
    flow.increase_cwnd()
    assert flow.cwnd_mss == 3


def test_priority_modes():
    sim = make_sim(flow_type=1)
    flow = make_flow(sim, 5000)
    assert flow.get_priority(0) == 1
    sim.params.flow_type = 2
    flow.last_unacked_seq = 1000
    assert flow.get_priority(0) == flow.size - 1000
    sim.params.deadline = True
    sim.params.schedule_by_deadline = True
    flow.deadline = 0.002
    assert flow.get_priority(0) == 2000


def test_out_of_order_segment_produces_sack():
    sim = make_sim(mss=1000, hdr_size=40)
    flow = make_flow(sim, 3000)
    flow.receive(Packet(0.0, flow, 1000, 0, 1040, flow.src, flow.dst))
    acks = [e.packet for e in drain(sim)]
    assert acks[0].type == PacketType.ACK
    assert acks[0].seq_no == 0
    assert acks[0].sack_list == [1000]
    flow.receive(Packet(0.0, flow, 0, 0, 1040, flow.src, flow.dst))
    ack = drain(sim)[0].packet
    assert ack.seq_no == 2000
    assert ack.sack_list == []
    assert flow.received_bytes == 2000
    assert flow.received_count == 2


def test_duplicate_segment_counted():
    sim = make_sim(mss=1000, hdr_size=40)
    flow = make_flow(sim, 3000)
    pkt = Packet(0.0, flow, 0, 0, 1040, flow.src, flow.dst)
    flow.receive_data_pkt(pkt)
    flow.receive_data_pkt(pkt)
    assert sim.duplicated_packets_received == 1
    assert flow.received_bytes == 1000


def test_final_ack_finishes_flow():
    sim = make_sim(mss=1000)
    flow = make_flow(sim, 2000)
    flow.send_pending_data()
    drain(sim)
    flow.receive(Ack(flow, 2000, [], 40, flow.dst, flow.src))
    assert flow.finished is True
    assert flow.last_unacked_seq == 2000
    events = drain(sim)
    assert any(isinstance(e, FlowFinishedEvent) for e in events)
    assert not any(isinstance(e, RetxTimeoutEvent) for e in events)


def test_receive_after_finish_is_ignored():
    sim = make_sim(mss=1000)
    flow = make_flow(sim, 2000)
    flow.finished = True
    flow.receive(Packet(0.0, flow, 0, 0, 1040, flow.src, flow.dst))
    assert flow.received_count == 0
    assert sim.event_queue_size() == 0


def test_unknown_packet_type_rejected():
    sim = make_sim()
    flow = make_flow(sim, 2000)
    with pytest.raises(ValueError):
        flow.receive(RTS(flow, flow.src, flow.dst, 0, 0))


def test_timeout_rewinds_and_shrinks_window():
    sim = make_sim(initial_cwnd=4, mss=1000)
    flow = make_flow(sim, 10000)
    flow.send_pending_data()
    drain(sim)
    flow.last_unacked_seq = 1000
    flow.handle_timeout()
    assert flow.cwnd_mss == 1
    assert flow.next_seq_no == 2000
    events = drain(sim)
    assert [e.packet.seq_no for e in events if isinstance(e, PacketQueuingEvent)] == [1000]
    assert flow.retx_event is not None


def test_cancel_retx_event():
    sim = make_sim()
    flow = make_flow(sim, 5000)
    flow.set_timeout(1.0)
    event = flow.retx_event
    flow.cancel_retx_event()
    assert event.cancelled is True
    assert flow.retx_event is None


def test_set_timeout_skipped_when_all_acked():
    sim = make_sim()
    flow = make_flow(sim, 5000)
    flow.last_unacked_seq = 5000
    flow.set_timeout(1.0)
    assert flow.retx_event is None
    assert sim.event_queue_size() == 0


def test_avg_queuing_delay():
    sim = make_sim()
    flow = make_flow(sim, 5000)
    flow.total_queuing_time = 4e-6
    flow.received_count = 2
    assert flow.get_avg_queuing_delay_in_us() == pytest.approx(2.0)


def test_log_utilization_writes_samples(tmp_path):
    path = tmp_path / "util.txt"
    sim = make_sim(util_file=str(path))
    flow = make_flow(sim, 5000)
    sim.current_time = 2.0
    flow.log_utilization(1000)
    flow.log_utilization(1000)
    lines = path.read_text().splitlines()
    assert len(lines) == 1
    when, rate, unit = lines[0].split()
    assert float(when) == 2.0
    assert float(rate) == pytest.approx(8e-6)
    assert unit == "Gbps"


def test_end_to_end_transfer():
    sim = make_sim(num_flows_to_run=1)
    flow = make_flow(sim, 3000)
    sim.add_event(FlowArrivalEvent(sim, 0.0, flow))
    sim.run_scenario()
    assert flow.finished is True
    assert flow.received_bytes == flow.size
    assert sim.total_finished_flows == 1
    assert sim.num_outstanding_packets == 0
    assert flow.total_pkt_sent == flow.size_in_pkt
    assert sim.out.getvalue().startswith("0 3000 0 1 ")