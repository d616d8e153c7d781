"""Hosts and switches."""

from __future__ import annotations

from enum import IntEnum
from typing import Any, Callable

from dcsim.queue import Queue

QueueMaker = Callable[[int, float, int, int, float, int], Queue]
"""Builds a queue from (queue_id, rate, queue_size, queue_type, drop_prob, location)."""


class NodeType(IntEnum):
    HOST = 0
    SWITCH = 1


class SwitchType(IntEnum):
    CORE = 10
    AGG = 11
    FAT_TREE_CORE = 12
    FAT_TREE_AGG = 13
    FAT_TREE_EDGE = 14


def flow_outranks(a: Any, b: Any) -> bool:
    """True when flow ``a`` has a strictly larger priority value than ``b``."""
    return a.flow_priority > b.flow_priority


class Node:
    """A network element."""

    def __init__(self, node_id: int, node_type: int) -> None:
        self.id = node_id
        self.type = node_type

    def __repr__(self) -> str:
        return f"{type(self).__name__}(id={self.id})"


class Host(Node):
    """An end host with one outgoing queue."""

    def __init__(
        self,
        host_id: int,
        rate: float,
        queue_type: int,
        host_type: int,
        *,
        make_queue: QueueMaker,
        queue_size: int,
    ) -> None:
        super().__init__(host_id, NodeType.HOST)
        self.queue = make_queue(host_id, rate, queue_size, queue_type, 0.0, 0)
        self.host_type = host_type


class Switch(Node):
    """A switch with one queue per output port."""

    def __init__(self, switch_id: int, switch_type: int) -> None:
        super().__init__(switch_id, NodeType.SWITCH)
        self.switch_type = switch_type
        self.queues: list[Queue] = []


class CoreSwitch(Switch):
    """Core switch whose queues all share one rate."""

    def __init__(
        self,
        switch_id: int,
        nq: int,
        rate: float,
        queue_type: int,
        *,
        make_queue: QueueMaker,
        queue_size: int,
    ) -> None:
        super().__init__(switch_id, SwitchType.CORE)
        self.queues = [make_queue(i, rate, queue_size, queue_type, 0.0, 2) for i in range(nq)]


class AggSwitch(Switch):
    """Aggregation switch: ``nq1`` host-facing queues then ``nq2`` core-facing ones."""

    def __init__(
        self,
        switch_id: int,
        nq1: int,
        r1: float,
        nq2: int,
        r2: float,
        queue_type: int,
        *,
        make_queue: QueueMaker,
        queue_size: int,
    ) -> None:
        super().__init__(switch_id, SwitchType.AGG)
        self.queues = [make_queue(i, r1, queue_size, queue_type, 0.0, 3) for i in range(nq1)]
        self.queues += [make_queue(i, r2, queue_size, queue_type, 0.0, 1) for i in range(nq2)]


class FatTreeSwitch(Switch):
    """A switch of a fat-tree at any layer."""

    def __init__(
        self,
        switch_id: int,
        nq: int,
        rate: float,
        queue_type: int,
        switch_type: int,
        *,
        make_queue: QueueMaker,
        queue_size: int,
    ) -> None:
        super().__init__(switch_id, switch_type)
        self.queue_to_arbiter: Queue | None = None
        self.queues = [make_queue(i, rate, queue_size, queue_type, 0.0, 2) for i in range(nq)]