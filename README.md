# dcsim

A packet-level, discrete-event simulator for datacenter networks. It models
hosts, switches and their output queues, moves packets hop by hop through a
topology, and runs window-based transport flows over them until a requested
number of flows has finished. For every finished flow it can print the flow
completion time and the slowdown against an ideal ("oracle") completion time
on an idle network.

The package is a library; it has no dependencies outside the standard library.

## A short run

```python
from dcsim.events import FlowArrivalEvent
from dcsim.factory import Factory, FlowType, QueueType
from dcsim.simulator import SimParams, Simulator
from dcsim.topology import BigSwitchTopology

params = SimParams(num_flows_to_run=1, flow_type=FlowType.NORMAL)
sim = Simulator(params)
factory = Factory(sim)                      # attaches itself as sim.factory
topo = BigSwitchTopology(sim, 4, 10e9, QueueType.DROPTAIL)  # becomes sim.topology

flow = factory.next_flow(0.0, 14600, topo.hosts[0], topo.hosts[1], FlowType.NORMAL)
sim.add_event(FlowArrivalEvent(sim, flow.start_time, flow))
sim.run_scenario()                          # prints one result line for the flow
```

## Modules

- `dcsim.simulator` — `SimParams` holds the experiment parameters (MSS,
  header size, bandwidth, propagation delay, queue size, initial and maximum
  congestion window, retransmission timeout, load balancing mode,
  cut-through, preemption, ECN marking threshold, number of flows to run and
  so on). `Simulator` owns the clock, the event queue, the run's counters,
  the output stream (`out`, standard output by default) and a seeded
  `random.Random`. `add_event(event)` schedules an event,
  `event_queue_size()` reports how many are pending (cancelled ones
  included), and `run_scenario()` processes events in time order until none
  remain, `num_flows_to_run` flows have finished, or more than 100000 events
  of one type run back to back; it returns the number of events processed.
- `dcsim.events` — `EventType` and the events: flow creation (draws a size
  and an inter-arrival time from random variables and asks the simulator's
  factory for a flow), flow arrival, packet queuing and arrival, queue
  processing, retransmission timeout, flow processing, flow completion and
  logging. Events at (nearly) the same instant are ordered by type.
- `dcsim.packet` — `PacketType`, `Packet` and its variants: `Ack` with a
  SACK list, `PlainAck`, RTS/CTS, offer, decision, capability, status and
  Fastpass packets, and the notify, request, grant, accept, pull, ack, NACK
  and data packets of receiver-driven transports. `Packet.strip_payload()`
  trims a packet to a 40-byte header.
- `dcsim.queue` — `Queue`, a drop-tail output port with a byte limit,
  transmission delay and optional preemption of the packet on the wire, and
  `ProbDropQueue`, which silently loses admitted packets with a given
  probability.
- `dcsim.cutpayload` — `CutPayloadQueue`: data packets wait at low priority,
  headers and control packets at high priority; when the low level is full a
  data packet is trimmed to its header. Both levels are served 10:1.
- `dcsim.dctcp` — `DctcpQueue` marks ECN once it holds `dctcp_mark_thresh`
  packets; `DctcpFlow` echoes the mark and scales its window by
  `1 - alpha / 2`.
- `dcsim.flow` — `Flow`, a sender and receiver with cumulative and selective
  acknowledgements, a congestion window and retransmission timeouts.
  `log_utilization(pkt_size)` appends throughput samples to
  `SimParams.util_file` when it is set.
- `dcsim.node` — `Host`, `Switch`, `CoreSwitch`, `AggSwitch` and
  `FatTreeSwitch`, with `NodeType`, `SwitchType` and `flow_outranks`.
- `dcsim.factory` — `Factory` builds queues, flows and hosts from
  `QueueType`, `FlowType` and `HostType`; `next_flow(...)` numbers flows from
  its own counter.
- `dcsim.topology` — `PFabricTopology`, a two-tier leaf/spine network with
  racks of 16 hosts and 4 core uplinks, and `BigSwitchTopology`, every host
  on one switch; each routes packets (`get_next_hop`) and computes an oracle
  completion time in microseconds (`get_oracle_fct`).
- `dcsim.fattree` — `FatTreeTopology`, a k-ary fat tree with edge,
  aggregation and core layers, round-robin spraying or hash-based load
  balancing, rack and pod helpers and `get_control_pkt_rtt`. Building it
  sets `SimParams.BDP`.
- `dcsim.randomvars` — uniform, exponential, Gaussian, constant and
  empirical random variables. Each takes an optional `rng`.
- `dcsim.debug` — `DebugConfig`, switches for tracing chosen flows, queues
  and hosts from a given simulated time on, and for printing flow results.
  Flow tracing stays off unless `flow_debugging_enabled` is set.

## Flow size distributions

Empirical distributions are read from plain text files, one entry per line:

```
<value> <ignored> <cumulative probability>
```

`EmpiricalRandomVariable` reads values in packets and interpolates between
entries (its `mean_flow_size` is in bytes, at 1460 bytes per packet);
`EmpiricalBytesRandomVariable` reads values in bytes; `CDFRandomVariable`
returns the first entry whose cumulative probability covers the draw;
`NAryRandomVariable` picks one of the sizes in the first column uniformly.
A decreasing cumulative probability raises `ValueError`.

## Output

When a flow finishes and `DebugConfig.print_flow` is on, one line is
written to the simulator's output: flow id, size, source and destination
host, start and finish times and completion time in microseconds, the oracle
completion time, the slowdown, packets sent / full segments // packets
received, data / ack / total drops, and the delay until the first byte left
the source. A flow that finishes faster than its oracle time raises
`RuntimeError`.

## What it does not do

- There is no command-line program and no experiment driver: scenarios are
  set up in Python by creating a `Simulator`, a `Factory`, a topology and
  flow events.
- `Factory` builds only normal and DCTCP flows, normal hosts, and drop-tail,
  probabilistic-drop, DCTCP and cut-payload queues. The other codes in
  `FlowType`, `HostType` and `QueueType` (pFabric, capability, Fastpass,
  ideal, Storm, NDP and others) raise `ValueError`.
- `FatTreeTopology.get_oracle_fct` does not model cut-through switching and
  raises `ValueError` when it is enabled.