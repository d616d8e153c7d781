from types import SimpleNamespace

import pytest

from dcsim.packet import (
    Ack,
    CapabilityPkt,
    CTS,
    DecisionPkt,
    FastpassRTS,
    FastpassSchedulePkt,
    OfferPkt,
    Packet,
    PacketType,
    PlainAck,
    PullPkt,
    RTS,
    RTSCTS,
    StatusPkt,
    StormAcceptPkt,
    StormAckPkt,
    StormGrantPkt,
    StormNackPkt,
    StormNotifyPkt,
    StormPacket,
    StormRequestPkt,
)


@pytest.fixture
def flow():
    return SimpleNamespace(hdr_size=40)


def test_type_codes_fixed_by_format(flow):
    assert Packet(0, flow, 0, 0, 1500, None, None).type == 0
    assert Ack(flow, 0, [], 40, None, None).type == 1
    assert StormPacket(None, None, None, 0, 1500, False).type == 19


def test_packet_fields(flow):
    p = Packet(1.5, flow, 2920, 7, 1500, "a", "b")
    assert p.type is PacketType.NORMAL
    assert (p.sending_time, p.seq_no, p.pf_priority, p.size) == (1.5, 2920, 7, 1500)
    assert p.total_queuing_delay == 0
    assert p.is_header is False


def test_unique_ids_increase(flow):
    a = Packet(0, flow, 0, 0, 100, None, None)
    b = Packet(0, flow, 0, 0, 100, None, None)
    assert b.unique_id == a.unique_id + 1


def test_strip_payload(flow):
    p = Packet(0, flow, 0, 0, 1500, None, None)
    p.strip_payload()
    assert p.is_header is True
    assert p.size == 40


def test_ack_copies_sack_list(flow):
    sacks = [1460, 4380]
    a = Ack(flow, 1460, sacks, 40, "d", "s")
    sacks.append(1)
    assert a.sack_list == [1460, 4380]
    assert a.type is PacketType.ACK
    assert a.seq_no == 1460


def test_plain_ack(flow):
    a = PlainAck(flow, 2920, 40, None, None)
    assert a.type is PacketType.ACK
    assert a.seq_no == 2920


def test_rtscts_uses_flow_header():
    f = SimpleNamespace(hdr_size=52)
    assert RTSCTS(True, 0, f, 999, None, None).type is PacketType.RTS
    cts = RTSCTS(False, 0, f, 999, None, None)
    assert cts.type is PacketType.CTS
    assert cts.size == 52


@pytest.mark.parametrize(
    "pkt, kind",
    [
        (RTS(None, None, None, 0.5, 2), PacketType.RTS),
        (OfferPkt(None, None, None, True, 1), PacketType.OFFER),
        (DecisionPkt(None, None, None, False), PacketType.DECISION),
        (CTS(None, None, None), PacketType.CTS),
        (CapabilityPkt(None, None, None, 1.0, 3, 4, 5), PacketType.CAPABILITY),
        (StatusPkt(None, None, None, 2), PacketType.STATUS),
        (FastpassRTS(None, None, None, 8), PacketType.FASTPASS_RTS),
        (FastpassSchedulePkt(None, None, None, object()), PacketType.FASTPASS_SCHEDULE),
    ],
)
def test_control_packets_header_sized(pkt, kind):
    assert pkt.type is kind
    assert pkt.size == 40


def test_capability_fields():
    c = CapabilityPkt(None, None, None, 1.0, 3, 4, 5)
    assert (c.ttl, c.remaining_sz, c.cap_seq_num, c.data_seq_num) == (1.0, 3, 4, 5)


def test_status_packet_count_is_flag():
    assert StatusPkt(None, None, None, 2).num_flows_at_sender is True
    assert StatusPkt(None, None, None, 0).num_flows_at_sender is False


@pytest.mark.parametrize(
    "cls, kind",
    [
        (StormNotifyPkt, PacketType.STORM_NOTIFY),
        (StormRequestPkt, PacketType.STORM_REQUEST),
        (StormGrantPkt, PacketType.STORM_GRANT),
        (StormAcceptPkt, PacketType.STORM_ACCEPT),
    ],
)
def test_epoch_packets(cls, kind):
    p = cls(None, None, None, 6)
    assert p.type is kind
    assert p.epoch == 6
    assert p.is_header is True


def test_pull_ack_nack():
    pull = PullPkt(None, None, None, 9)
    assert pull.type is PacketType.PULL and pull.ctr == 9 and pull.is_header
    ack = StormAckPkt(None, None, None, 3, 2)
    assert (ack.type, ack.ackno, ack.cum_ackno) == (PacketType.STORM_ACK, 3, 2)
    nack = StormNackPkt(None, None, None, 4, True)
    assert (nack.type, nack.nackno, nack.pull) == (PacketType.STORM_NACK, 4, True)


def test_storm_data_packet_strip():
    p = StormPacket(None, None, None, 11, 1500, True)
    assert p.type is PacketType.STORM_DATA
    assert p.seqno == 11 and p.last_packet is True
    p.strip_payload()
    assert p.size == 40 and p.is_header