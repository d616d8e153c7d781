"""A three-tier k-ary fat-tree."""

from __future__ import annotations

import math
from typing import TYPE_CHECKING, Any

from dcsim.factory import Factory
from dcsim.node import FatTreeSwitch, Host, Node, NodeType, SwitchType
from dcsim.queue import Queue
from dcsim.topology import Topology

if TYPE_CHECKING:
    from dcsim.simulator import Simulator

_FULL_PACKET_BYTES = 1500


class FatTreeTopology(Topology):
    """k pods of k/2 edge and k/2 aggregation switches under (k/2)^2 core switches."""

    def __init__(
        self,
        sim: Simulator,
        k: int,
        bandwidth: float,
        queue_type: int,
        factory: Factory | None = None,
    ) -> None:
        if k < 2 or k % 2:
            raise ValueError(f"fat-tree arity must be an even number of at least 2, not {k}")
        super().__init__(sim, factory)
        params = sim.params
        self._k = k
        half = k // 2
        self.num_hosts = k * k * k // 4
        self.num_edge_switches = k * k // 2
        self.num_agg_switches = k * k // 2
        self.num_core_switches = k * k // 4

        c = bandwidth
        self.hosts = self._make_hosts(self.num_hosts, c, queue_type)
        kw = self._queue_kwargs
        self.edge_switches = [
            FatTreeSwitch(i, k, c, queue_type, SwitchType.FAT_TREE_EDGE, **kw)
            for i in range(self.num_edge_switches)
        ]
        self.edge_switches[0].queue_to_arbiter = self.factory.get_queue(
            self.num_edge_switches + self.num_agg_switches + self.num_core_switches,
            c, params.queue_size, queue_type, 0.0, 2,
        )
        self.agg_switches = [
            FatTreeSwitch(i + self.num_edge_switches, k, c, queue_type,
                          SwitchType.FAT_TREE_AGG, **kw)
            for i in range(self.num_agg_switches)
        ]
        self.core_switches = [
            FatTreeSwitch(i + self.num_edge_switches + self.num_agg_switches, k, c, queue_type,
                          SwitchType.FAT_TREE_CORE, **kw)
            for i in range(self.num_core_switches)
        ]
        self.switches = [*self.edge_switches, *self.agg_switches, *self.core_switches]

        for i, host in enumerate(self.hosts):
            host.queue.set_src_dst(host, self.edge_switches[2 * i // k])

        for i, edge in enumerate(self.edge_switches):
            pod = i // half
            for j in range(half):
                edge.queues[j].set_src_dst(edge, self.hosts[i * k // 2 + j])
            for j in range(half):
                edge.queues[j + half].set_src_dst(edge, self.agg_switches[pod * k // 2 + j])

        for i, agg in enumerate(self.agg_switches):
            pod = i // half
            base = i % half * half
            for j in range(half):
                agg.queues[j].set_src_dst(agg, self.edge_switches[pod * k // 2 + j])
            for j in range(half):
                agg.queues[j + half].set_src_dst(agg, self.core_switches[j + base])

        for i, core in enumerate(self.core_switches):
            base = i // half
            for j in range(k):
                core.queues[j].set_src_dst(core, self.agg_switches[half * j + base])

        rtt = (
            6 * params.propagation_delay
            + (_FULL_PACKET_BYTES * 8 / params.bandwidth) * 6
        ) * 2
        params.BDP = math.ceil(rtt * params.bandwidth / _FULL_PACKET_BYTES / 8)

    @property
    def k(self) -> int:
        return self._k

    @staticmethod
    def _host_id(x: Host | int) -> int:
        return x.id if isinstance(x, Node) else x

    def is_same_rack(self, a: Host | int, b: Host | int) -> bool:
        """Whether two hosts (or host ids) hang off the same edge switch."""
        half = self._k // 2
        return self._host_id(a) // half == self._host_id(b) // half

    def get_rack_num(self, host: Host) -> int:
        """Index of the host's edge switch."""
        return host.id // (self._k // 2)

    def is_same_pod(self, a: Host, b: Host) -> bool:
        """Whether two hosts are in the same pod."""
        per_pod = self._k * self._k // 4
        return a.id // per_pod == b.id // per_pod

    def get_pod_num(self, host: Host) -> int:
        """Index of the host's pod."""
        return host.id // (self._k * self._k // 4)

    @staticmethod
    def _require_switch(node: Any, switch_type: SwitchType, role: str) -> None:
        if getattr(node, "switch_type", None) != switch_type:
            raise ValueError(f"expected {role} to be a {switch_type.name} switch, got {node!r}")

    def get_host_next_hop(self, packet: Any, queue: Queue) -> Queue:
        """Next queue for a packet leaving a host."""
        if queue.src.type != NodeType.HOST:
            raise ValueError(f"{queue!r} does not leave a host")
        if packet.src.id != queue.src.id:
            raise ValueError(f"packet from host {packet.src.id} at queue of host {queue.src.id}")
        half = self._k // 2
        if self.is_same_rack(packet.src, packet.dst):
            return queue.dst.queues[packet.dst.id % half]
        return queue.dst.queues[half + self._uplink_port(packet, queue, half)]

    def get_edge_next_hop(self, packet: Any, queue: Queue) -> Queue:
        """Next queue for a packet going from an edge switch up to an aggregation switch."""
        self._require_switch(queue.src, SwitchType.FAT_TREE_EDGE, "source")
        self._require_switch(queue.dst, SwitchType.FAT_TREE_AGG, "destination")
        half = self._k // 2
        if self.is_same_pod(packet.src, packet.dst):
            return queue.dst.queues[self.get_rack_num(packet.dst) % half]
        return queue.dst.queues[half + self._uplink_port(packet, queue, half)]

    def get_agg_next_hop(self, packet: Any, queue: Queue) -> Queue:
        """Next queue for a packet leaving an aggregation switch."""
        self._require_switch(queue.src, SwitchType.FAT_TREE_AGG, "source")
        if getattr(queue.dst, "switch_type", None) == SwitchType.FAT_TREE_EDGE:
            return queue.dst.queues[packet.dst.id % (self._k // 2)]
        self._require_switch(queue.dst, SwitchType.FAT_TREE_CORE, "destination")
        return queue.dst.queues[self.get_pod_num(packet.dst)]

    def get_core_next_hop(self, packet: Any, queue: Queue) -> Queue:
        """Next queue for a packet going from a core switch down to an aggregation switch."""
        self._require_switch(queue.src, SwitchType.FAT_TREE_CORE, "source")
        self._require_switch(queue.dst, SwitchType.FAT_TREE_AGG, "destination")
        return queue.dst.queues[self.get_rack_num(packet.dst) % (self._k // 2)]

    def get_next_hop(self, packet: Any, queue: Queue) -> Queue | None:
        if queue.dst.type == NodeType.HOST:
            return None
        if queue.src.type == NodeType.HOST:
            return self.get_host_next_hop(packet, queue)
        if queue.src.type == NodeType.SWITCH:
            switch_type = queue.src.switch_type
            if switch_type == SwitchType.FAT_TREE_EDGE:
                return self.get_edge_next_hop(packet, queue)
            if switch_type == SwitchType.FAT_TREE_AGG:
                return self.get_agg_next_hop(packet, queue)
            if switch_type == SwitchType.FAT_TREE_CORE:
                return self.get_core_next_hop(packet, queue)
        raise ValueError(f"cannot route packet at {queue!r}")

    def get_oracle_fct(self, flow: Any) -> float:
        params = self.sim.params
        if self.is_same_rack(flow.src, flow.dst):
            num_hops = 2
        elif self.is_same_pod(flow.src, flow.dst):
            num_hops = 4
        else:
            num_hops = 6

        if params.ddc != 0:
            propagation_delay = self._ddc_propagation(num_hops)
        else:
            propagation_delay = 2 * 1000000.0 * num_hops * flow.src.queue.propagation_delay

        np_full, leftover = self._segments(flow.size)
        incl_overhead_bytes = (params.mss + flow.hdr_size) * np_full + leftover
        if leftover > 0:
            incl_overhead_bytes += flow.hdr_size

        if params.cut_through:
            raise ValueError("the fat-tree oracle does not model cut-through switching")

        bandwidth = flow.src.queue.rate / 1000000.0
        transmission_delay = (incl_overhead_bytes + flow.hdr_size) * 8.0 / bandwidth
        last = leftover if leftover not in (0, params.mss) else params.mss
        transmission_delay += (num_hops - 1) * (last + 2 * params.hdr_size) * 8.0 / bandwidth
        return propagation_delay + transmission_delay

    def get_control_pkt_rtt(self, host_id: int) -> float:
        """Round trip of a header-only packet between host 0's neighbourhood and ``host_id``."""
        params = self.sim.params
        if host_id // (self._k // 2) == 0:
            hops = 2
        elif host_id // (self._k * self._k // 4) == 0:
            hops = 4
        else:
            hops = 6
        header_time = params.hdr_size * 8 / params.bandwidth
        return (hops * params.propagation_delay + hops * header_time) * 2

    def num_hosts_per_tor(self) -> int:
        return self._k * self._k // 4