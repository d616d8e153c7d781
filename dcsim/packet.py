"""Packet kinds exchanged between hosts."""

from __future__ import annotations

import itertools
from enum import IntEnum
from typing import Any

DEFAULT_HDR_SIZE = 40


class PacketType(IntEnum):
    NORMAL = 0
    ACK = 1
    RTS = 3
    CTS = 4
    OFFER = 5
    DECISION = 6
    CAPABILITY = 7
    STATUS = 8
    FASTPASS_RTS = 9
    FASTPASS_SCHEDULE = 10
    STORM_NOTIFY = 12
    STORM_REQUEST = 13
    STORM_GRANT = 14
    STORM_ACCEPT = 15
    PULL = 16
    STORM_ACK = 17
    STORM_NACK = 18
    STORM_DATA = 19


class Packet:
    """A data packet; subclasses carry control information."""

    MSS = 1460
    _ids = itertools.count()

    def __init__(
        self,
        sending_time: float,
        flow: Any,
        seq_no: int,
        pf_priority: int,
        size: int,
        src: Any,
        dst: Any,
    ) -> None:
        self.sending_time = sending_time
        self.flow = flow
        self.seq_no = seq_no
        self.pf_priority = pf_priority
        self.size = size
        self.src = src
        self.dst = dst
        self.type = PacketType.NORMAL
        self.unique_id = next(Packet._ids)
        self.total_queuing_delay = 0.0
        self.last_enque_time = 0.0
        self.remaining_pkts_in_batch = 0
        self.capability_seq_num_in_data = 0
        self.capa_data_seq = 0
        self.is_header = False

    def strip_payload(self) -> None:
        """Reduce the packet to its header."""
        self.is_header = True
        self.size = DEFAULT_HDR_SIZE

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(id={self.unique_id}, type={self.type.name}, "
            f"seq={self.seq_no}, size={self.size})"
        )


class PlainAck(Packet):
    def __init__(self, flow: Any, seq_no_acked: int, size: int, src: Any, dst: Any) -> None:
        super().__init__(0, flow, seq_no_acked, 0, size, src, dst)
        self.type = PacketType.ACK


class Ack(Packet):
    """Cumulative acknowledgement with a selective-ack list."""

    def __init__(
        self, flow: Any, seq_no_acked: int, sack_list: list[int], size: int, src: Any, dst: Any
    ) -> None:
        super().__init__(0, flow, seq_no_acked, 0, size, src, dst)
        self.type = PacketType.ACK
        self.sack_list = list(sack_list)
        self.sack_bytes = 0


class RTSCTS(Packet):
    """RTS when ``is_rts`` is true, otherwise CTS; sized as the flow's header."""

    def __init__(
        self, is_rts: bool, sending_time: float, flow: Any, size: int, src: Any, dst: Any
    ) -> None:
        super().__init__(sending_time, flow, 0, 0, flow.hdr_size, src, dst)
        self.type = PacketType.RTS if is_rts else PacketType.CTS


class _ControlPacket(Packet):
    def __init__(self, flow: Any, src: Any, dst: Any, hdr_size: int) -> None:
        super().__init__(0, flow, 0, 0, hdr_size, src, dst)


class RTS(_ControlPacket):
    def __init__(
        self, flow: Any, src: Any, dst: Any, delay: float, iteration: int,
        hdr_size: int = DEFAULT_HDR_SIZE,
    ) -> None:
        super().__init__(flow, src, dst, hdr_size)
        self.type = PacketType.RTS
        self.delay = delay
        self.iteration = iteration


class OfferPkt(_ControlPacket):
    def __init__(
        self, flow: Any, src: Any, dst: Any, is_free: bool, iteration: int,
        hdr_size: int = DEFAULT_HDR_SIZE,
    ) -> None:
        super().__init__(flow, src, dst, hdr_size)
        self.type = PacketType.OFFER
        self.is_free = is_free
        self.iteration = iteration


class DecisionPkt(_ControlPacket):
    def __init__(
        self, flow: Any, src: Any, dst: Any, accept: bool, hdr_size: int = DEFAULT_HDR_SIZE
    ) -> None:
        super().__init__(flow, src, dst, hdr_size)
        self.type = PacketType.DECISION
        self.accept = accept


class CTS(_ControlPacket):
    def __init__(self, flow: Any, src: Any, dst: Any, hdr_size: int = DEFAULT_HDR_SIZE) -> None:
        super().__init__(flow, src, dst, hdr_size)
        self.type = PacketType.CTS


class CapabilityPkt(_ControlPacket):
    def __init__(
        self, flow: Any, src: Any, dst: Any, ttl: float, remaining: int,
        cap_seq_num: int, data_seq_num: int, hdr_size: int = DEFAULT_HDR_SIZE,
    ) -> None:
        super().__init__(flow, src, dst, hdr_size)
        self.type = PacketType.CAPABILITY
        self.ttl = ttl
        self.remaining_sz = remaining
        self.cap_seq_num = cap_seq_num
        self.data_seq_num = data_seq_num


class StatusPkt(_ControlPacket):
    """Sender status; the flow count is carried as a single flag."""

    def __init__(
        self, flow: Any, src: Any, dst: Any, num_flows_at_sender: int,
        hdr_size: int = DEFAULT_HDR_SIZE,
    ) -> None:
        super().__init__(flow, src, dst, hdr_size)
        self.type = PacketType.STATUS
        self.ttl = 0.0
        self.num_flows_at_sender = bool(num_flows_at_sender)


class FastpassRTS(_ControlPacket):
    def __init__(
        self, flow: Any, src: Any, dst: Any, remaining_pkt: int, hdr_size: int = DEFAULT_HDR_SIZE
    ) -> None:
        super().__init__(flow, src, dst, hdr_size)
        self.type = PacketType.FASTPASS_RTS
        self.remaining_num_pkts = remaining_pkt


class FastpassSchedulePkt(_ControlPacket):
    def __init__(
        self, flow: Any, src: Any, dst: Any, schedule: Any, hdr_size: int = DEFAULT_HDR_SIZE
    ) -> None:
        super().__init__(flow, src, dst, hdr_size)
        self.type = PacketType.FASTPASS_SCHEDULE
        self.schedule = schedule


class _EpochHeader(Packet):
    _kind = PacketType.STORM_NOTIFY

    def __init__(self, flow: Any, src: Any, dst: Any, epoch: int) -> None:
        super().__init__(0, flow, 0, 0, DEFAULT_HDR_SIZE, src, dst)
        self.type = self._kind
        self.is_header = True
        self.epoch = epoch


class StormNotifyPkt(_EpochHeader):
    _kind = PacketType.STORM_NOTIFY


class StormRequestPkt(_EpochHeader):
    _kind = PacketType.STORM_REQUEST


class StormGrantPkt(_EpochHeader):
    _kind = PacketType.STORM_GRANT


class StormAcceptPkt(_EpochHeader):
    _kind = PacketType.STORM_ACCEPT


class PullPkt(Packet):
    def __init__(self, flow: Any, src: Any, dst: Any, ctr: int) -> None:
        super().__init__(0, flow, 0, 0, DEFAULT_HDR_SIZE, src, dst)
        self.type = PacketType.PULL
        self.is_header = True
        self.ctr = ctr


class StormAckPkt(Packet):
    def __init__(self, flow: Any, src: Any, dst: Any, ackno: int, cum_ackno: int) -> None:
        super().__init__(0, flow, 0, 0, DEFAULT_HDR_SIZE, src, dst)
        self.type = PacketType.STORM_ACK
        self.ackno = ackno
        self.cum_ackno = cum_ackno


class StormNackPkt(Packet):
    def __init__(self, flow: Any, src: Any, dst: Any, nackno: int, pull: bool) -> None:
        super().__init__(0, flow, 0, 0, DEFAULT_HDR_SIZE, src, dst)
        self.type = PacketType.STORM_NACK
        self.nackno = nackno
        self.pull = pull


class StormPacket(Packet):
    def __init__(
        self, flow: Any, src: Any, dst: Any, seqno: int, size: int, last_packet: bool
    ) -> None:
        super().__init__(0, flow, 0, 0, size, src, dst)
        self.type = PacketType.STORM_DATA
        self.seqno = seqno
        self.last_packet = last_packet