"""Network topologies: how hosts and switches are wired and how packets are routed."""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

from dcsim.factory import Factory
from dcsim.node import AggSwitch, CoreSwitch, Host, NodeType, Switch, SwitchType
from dcsim.queue import Queue

if TYPE_CHECKING:
    from dcsim.simulator import Simulator

HOSTS_PER_RACK = 16
CORE_UPLINKS = 4
DDC_TWO_HOP_PROPAGATION_US = 0.440
DDC_FOUR_HOP_PROPAGATION_US = 2.040


class Topology(ABC):
    """A set of hosts and switches together with a routing function."""

    def __init__(self, sim: Simulator, factory: Factory | None = None) -> None:
        self.sim = sim
        if factory is None:
            factory = sim.factory if sim.factory is not None else Factory(sim)
        self.factory = factory
        self.num_hosts = 0
        self.hosts: list[Host] = []
        self.switches: list[Switch] = []
        if sim.topology is None:
            sim.topology = self

    @property
    def _queue_kwargs(self) -> dict[str, Any]:
        return {"make_queue": self.factory.get_queue, "queue_size": self.sim.params.queue_size}

    def _make_hosts(self, count: int, rate: float, queue_type: int) -> list[Host]:
        host_type = self.sim.params.host_type
        return [self.factory.get_host(i, rate, queue_type, host_type) for i in range(count)]

    def _uplink_port(self, packet: Any, queue: Queue, width: int) -> int:
        """Choose an uplink: round-robin spraying or a per-flow hash."""
        load_balancing = self.sim.params.load_balancing
        if load_balancing == 0:
            port = queue.spray_counter % width
            queue.spray_counter += 1
            return port
        if load_balancing == 1:
            return (packet.src.id + packet.dst.id + packet.flow.id) % width
        return 0

    def _segments(self, size: int) -> tuple[int, int]:
        """Full segments and leftover bytes of a flow of ``size`` bytes."""
        mss = self.sim.params.mss
        pkts = size / mss
        np_full = math.floor(pkts)
        leftover = int((pkts - np_full) * mss)
        return np_full, leftover

    def _ddc_propagation(self, num_hops: int) -> float:
        if num_hops == 2:
            return DDC_TWO_HOP_PROPAGATION_US
        if num_hops == 4:
            return DDC_FOUR_HOP_PROPAGATION_US
        raise ValueError(f"no disaggregated propagation delay for a {num_hops}-hop path")

    @abstractmethod
    def get_next_hop(self, packet: Any, queue: Queue) -> Queue | None:
        """The queue a packet leaving ``queue`` enters next; None at its destination."""

    @abstractmethod
    def get_oracle_fct(self, flow: Any) -> float:
        """Ideal completion time of ``flow`` on an idle network, in microseconds."""


class PFabricTopology(Topology):
    """Two-tier leaf-spine network with racks of 16 hosts and 4 core uplinks."""

    def __init__(
        self,
        sim: Simulator,
        num_hosts: int,
        num_agg_switches: int,
        num_core_switches: int,
        bandwidth: float,
        queue_type: int,
        factory: Factory | None = None,
    ) -> None:
        super().__init__(sim, factory)
        hosts_per_agg_switch = num_hosts // num_agg_switches
        self.num_hosts = num_hosts
        self.num_agg_switches = num_agg_switches
        self.num_core_switches = num_core_switches

        c1 = bandwidth
        c2 = hosts_per_agg_switch * bandwidth / num_core_switches

        self.hosts = self._make_hosts(num_hosts, c1, queue_type)
        self.agg_switches: list[AggSwitch] = [
            AggSwitch(i, hosts_per_agg_switch, c1, num_core_switches, c2, queue_type,
                      **self._queue_kwargs)
            for i in range(num_agg_switches)
        ]
        self.core_switches: list[CoreSwitch] = [
            CoreSwitch(i + num_agg_switches, num_agg_switches, c2, queue_type,
                       **self._queue_kwargs)
            for i in range(num_core_switches)
        ]
        self.switches = [*self.agg_switches, *self.core_switches]

        for i, host in enumerate(self.hosts):
            host.queue.set_src_dst(host, self.agg_switches[i // HOSTS_PER_RACK])

        for i, agg in enumerate(self.agg_switches):
            for j in range(hosts_per_agg_switch):
                agg.queues[j].set_src_dst(agg, self.hosts[i * HOSTS_PER_RACK + j])
            for j, core in enumerate(self.core_switches):
                agg.queues[j + HOSTS_PER_RACK].set_src_dst(agg, core)

        for core in self.core_switches:
            for j, agg in enumerate(self.agg_switches):
                core.queues[j].set_src_dst(core, agg)

    def get_next_hop(self, packet: Any, queue: Queue) -> Queue | None:
        if queue.dst.type == NodeType.HOST:
            return None

        if queue.src.type == NodeType.HOST:
            if packet.src.id != queue.src.id:
                raise ValueError(f"packet from host {packet.src.id} at queue of host {queue.src.id}")
            if packet.src.id // HOSTS_PER_RACK == packet.dst.id // HOSTS_PER_RACK:
                return queue.dst.queues[packet.dst.id % HOSTS_PER_RACK]
            port = self._uplink_port(packet, queue, CORE_UPLINKS)
            return queue.dst.queues[HOSTS_PER_RACK + port]

        if queue.src.type == NodeType.SWITCH:
            if queue.src.switch_type == SwitchType.AGG:
                return queue.dst.queues[packet.dst.id // HOSTS_PER_RACK]
            if queue.src.switch_type == SwitchType.CORE:
                return queue.dst.queues[packet.dst.id % HOSTS_PER_RACK]

        raise ValueError(f"cannot route packet at {queue!r}")

    def get_oracle_fct(self, flow: Any) -> float:
        params = self.sim.params
        same_rack = flow.src.id // HOSTS_PER_RACK == flow.dst.id // HOSTS_PER_RACK
        num_hops = 2 if same_rack else 4
        if params.ddc != 0:
            propagation_delay = self._ddc_propagation(num_hops)
        else:
            propagation_delay = 2 * 1000000.0 * num_hops * flow.src.queue.propagation_delay

        np_full, leftover = self._segments(flow.size)
        incl_overhead_bytes = (params.mss + flow.hdr_size) * np_full + (leftover + flow.hdr_size)
        bandwidth = flow.src.queue.rate / 1000000.0

        if params.cut_through:
            transmission_delay = (
                np_full * (params.mss + params.hdr_size)
                + params.hdr_size
                + 2.0 * params.hdr_size
            ) * 8.0 / bandwidth
            if num_hops == 4:
                transmission_delay += 2 * (2 * params.hdr_size) * 8.0 / (4 * bandwidth)
        else:
            transmission_delay = (incl_overhead_bytes + 2.0 * flow.hdr_size) * 8.0 / bandwidth
            if num_hops == 4:
                first = leftover if np_full == 0 else params.mss
                transmission_delay += 2 * (first + 2 * params.hdr_size) * 8.0 / (4 * bandwidth)
        return propagation_delay + transmission_delay


class BigSwitchTopology(Topology):
    """Every host attached to one non-blocking switch."""

    def __init__(
        self,
        sim: Simulator,
        num_hosts: int,
        bandwidth: float,
        queue_type: int,
        factory: Factory | None = None,
    ) -> None:
        super().__init__(sim, factory)
        self.num_hosts = num_hosts
        self.hosts = self._make_hosts(num_hosts, bandwidth, queue_type)
        self.the_switch = CoreSwitch(0, num_hosts, bandwidth, queue_type, **self._queue_kwargs)
        self.switches = [self.the_switch]
        for i, host in enumerate(self.hosts):
            host.queue.set_src_dst(host, self.the_switch)
            self.the_switch.queues[i].set_src_dst(self.the_switch, host)

    def get_next_hop(self, packet: Any, queue: Queue) -> Queue | None:
        if queue.dst.type == NodeType.HOST:
            if packet.dst.id != queue.dst.id:
                raise ValueError(f"packet for host {packet.dst.id} reached host {queue.dst.id}")
            return None
        if queue.src.type == NodeType.HOST:
            if packet.src.id != queue.src.id:
                raise ValueError(f"packet from host {packet.src.id} at queue of host {queue.src.id}")
            return self.the_switch.queues[packet.dst.id]
        raise ValueError(f"cannot route packet at {queue!r}")

    def get_oracle_fct(self, flow: Any) -> float:
        params = self.sim.params
        propagation_delay = 2 * 1000000.0 * 2 * flow.src.queue.propagation_delay
        np_full = flow.size // params.mss
        bandwidth = flow.src.queue.rate / 1000000.0
        if params.cut_through:
            transmission_delay = (
                np_full * (params.mss + params.hdr_size)
                + params.hdr_size
                + 2.0 * params.hdr_size
            ) * 8.0 / bandwidth
        else:
            transmission_delay = (
                (np_full + 1) * (params.mss + params.hdr_size) + 2.0 * params.hdr_size
            ) * 8.0 / bandwidth
        return propagation_delay + transmission_delay