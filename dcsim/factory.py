"""Builds queues, flows and hosts from their numeric type codes."""

from __future__ import annotations

from enum import IntEnum
from typing import TYPE_CHECKING, Any

from dcsim.cutpayload import CutPayloadQueue
from dcsim.dctcp import DctcpFlow, DctcpQueue
from dcsim.flow import Flow
from dcsim.node import Host
from dcsim.queue import ProbDropQueue, Queue

if TYPE_CHECKING:
    from dcsim.simulator import Simulator

CUT_PAYLOAD_LIMIT_BYTES = 49 * 1500


class QueueType(IntEnum):
    DROPTAIL = 1
    PFABRIC = 2
    PROB_DROP = 4
    DCTCP = 5
    CUT_PAYLOAD = 6


class FlowType(IntEnum):
    NORMAL = 1
    PFABRIC = 2
    VANILLA_TCP = 42
    DCTCP = 43
    CAPABILITY = 112
    MAGIC = 113
    FASTPASS = 114
    IDEAL = 120
    STORM = 130
    NDP = 140


class HostType(IntEnum):
    NORMAL = 1
    SCHEDULING = 2
    FASTPASS_ARBITER = 10
    CAPABILITY = 12
    MAGIC = 13
    FASTPASS = 14
    IDEAL = 20
    STORM = 30
    NDP = 40


def _unavailable(kind: str, code: int, known: type[IntEnum]) -> ValueError:
    try:
        name = known(code).name
    except ValueError:
        return ValueError(f"unknown {kind} type {code}")
    return ValueError(f"{kind} type {name} ({code}) is not available")


class Factory:
    """Creates simulator objects; attaches itself to the simulator if it has none."""

    def __init__(self, sim: Simulator) -> None:
        self.sim = sim
        self.flow_counter = 0
        if sim.factory is None:
            sim.factory = self

    def get_queue(
        self,
        queue_id: int,
        rate: float,
        queue_size: int,
        queue_type: int,
        drop_prob: float,
        location: int,
    ) -> Queue:
        """Return a queue of ``queue_type``."""
        sim = self.sim
        if queue_type == QueueType.DROPTAIL:
            return Queue(sim, queue_id, rate, queue_size, location)
        if queue_type == QueueType.PROB_DROP:
            return ProbDropQueue(sim, queue_id, rate, queue_size, drop_prob, location)
        if queue_type == QueueType.DCTCP:
            return DctcpQueue(sim, queue_id, rate, queue_size, location)
        if queue_type == QueueType.CUT_PAYLOAD:
            return CutPayloadQueue(sim, queue_id, rate, CUT_PAYLOAD_LIMIT_BYTES, location)
        raise _unavailable("queue", queue_type, QueueType)

    def get_flow(
        self,
        flow_id: int,
        start_time: float,
        size: int,
        src: Any,
        dst: Any,
        flow_type: int,
    ) -> Flow:
        """Return a flow of ``flow_type`` with the given id."""
        if flow_type == FlowType.NORMAL:
            return Flow(self.sim, flow_id, start_time, size, src, dst)
        if flow_type == FlowType.DCTCP:
            return DctcpFlow(self.sim, flow_id, start_time, size, src, dst)
        raise _unavailable("flow", flow_type, FlowType)

    def next_flow(
        self, start_time: float, size: int, src: Any, dst: Any, flow_type: int
    ) -> Flow:
        """Return a flow numbered from this factory's own counter."""
        flow_id = self.flow_counter
        self.flow_counter += 1
        return self.get_flow(flow_id, start_time, size, src, dst, flow_type)

    def get_host(self, host_id: int, rate: float, queue_type: int, host_type: int) -> Host:
        """Return a host of ``host_type`` whose queue is of ``queue_type``."""
        if host_type == HostType.NORMAL:
            return Host(
                host_id,
                rate,
                queue_type,
                HostType.NORMAL,
                make_queue=self.get_queue,
                queue_size=self.sim.params.queue_size,
            )
        raise _unavailable("host", host_type, HostType)