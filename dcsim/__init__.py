"""Packet-level discrete-event simulator for datacenter networks: events, queues, flows, nodes and topologies."""

__version__ = "0.1.0"

__all__ = [
    "cutpayload",
    "dctcp",
    "debug",
    "events",
    "factory",
    "fattree",
    "flow",
    "node",
    "packet",
    "queue",
    "randomvars",
    "simulator",
    "topology",
]