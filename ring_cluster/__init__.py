"""
ring_cluster
============

Consistent-hashing command router for a cluster of independent Redis servers.

The package routes commands to one server per key using an MD5-based hash ring
with many replica points per server, and optionally splits reads from writes by
sending every data-modifying command to a designated master:

* :class:`ring_cluster.router.ClusterRouter` is the single dispatch entry point
* :class:`ring_cluster.hashring.HashRing` maps keys to dense server indices
* :class:`ring_cluster.client.ServerClient` adapts ``redis.Redis`` to the
  per-server client protocol

Typical usage::

    from ring_cluster import ClusterRouter

    router = ClusterRouter(
        [
            {"host": "10.0.0.5", "port": 6379, "alias": "alpha"},
            {"host": "10.0.0.6", "port": 6379, "alias": "beta"},
            {"host": "10.0.0.7", "port": 6379, "alias": "primary", "master": True},
        ],
        read_on_master=False,
    )

    router.execute("SET", "user:1", "Alice")   # master
    router.execute("GET", "user:1")            # hashed replica
    router.all("PING")                         # every routable server
"""

from .client import ServerClient
from .client_protocol import ClientFactory, SingleServerClient
from .commands import NO_HASH_COMMANDS, READ_ONLY_COMMANDS, is_no_hash_command, is_read_only_command
from .config import LookupPolicy, RouterConfig, ServerDescriptor, load_config
from .exceptions import ConfigurationError, NotFoundError, RingClusterError, TransportError
from .hashring import HashRing, ring_position
from .router import ClusterRouter

__version__ = "0.1.0"

__all__ = [
    "ClientFactory",
    "ClusterRouter",
    "ConfigurationError",
    "HashRing",
    "LookupPolicy",
    "NO_HASH_COMMANDS",
    "NotFoundError",
    "READ_ONLY_COMMANDS",
    "RingClusterError",
    "RouterConfig",
    "ServerClient",
    "ServerDescriptor",
    "SingleServerClient",
    "TransportError",
    "is_no_hash_command",
    "is_read_only_command",
    "load_config",
    "ring_position",
]
