"""
Cluster router for consistent-hashing command dispatch.

This module hosts the primary entry point, :class:`ClusterRouter`.
The router coordinates:

* one per-server client for every configured server
* an alias table for explicit addressing
* an optional master receiving every write (read/write splitting)
* a :class:`ring_cluster.hashring.HashRing` over the routable servers

All routing state is built once in ``__init__`` and never mutated afterwards,
so concurrent lookups from several threads need no locking.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from types import MappingProxyType
from typing import Any

from .client import ServerClient
from .client_protocol import ClientFactory, SingleServerClient
from .commands import canonical_name, is_no_hash_command, is_read_only_command
from .config import (
    DEFAULT_REPLICAS,
    LookupPolicy,
    RouterConfig,
    ServerDescriptor,
    coerce_descriptor,
)
from .exceptions import ConfigurationError, NotFoundError
from .hashring import HashRing

_LOGGER = logging.getLogger(__name__)


class ClusterRouter:
    """
    Route commands across independent servers.

    Parameters
    ----------
    servers:
        Ordered :class:`ServerDescriptor` objects or descriptor mappings.
    replicas:
        Replica count R; each routable server gets R+1 ring points.
    read_on_master:
        If false, the master is kept off the ring and the client list and only
        receives writes.
    standalone:
        Force every client into its standalone protocol mode.
    lookup:
        Ring lookup policy (``"successor"`` or ``"legacy"``).
    client_factory:
        Callable building one client per descriptor. Defaults to
        :class:`ring_cluster.client.ServerClient`.
    """

    def __init__(
        self,
        servers: Iterable[ServerDescriptor | Mapping[str, Any]],
        replicas: int = DEFAULT_REPLICAS,
        read_on_master: bool = True,
        standalone: bool = False,
        *,
        lookup: str | LookupPolicy = LookupPolicy.SUCCESSOR,
        client_factory: ClientFactory = ServerClient,
    ) -> None:
        self._replicas = replicas
        self._read_on_master = bool(read_on_master)
        self._master: SingleServerClient | None = None
        self._all_clients: list[SingleServerClient] = []

        clients: list[SingleServerClient] = []
        aliases: dict[str, SingleServerClient] = {}
        ring_members: list[tuple[str, int]] = []
        for raw in servers:
            server = coerce_descriptor(raw)
            client = client_factory(
                server.host,
                server.port,
                server.timeout,
                server.persistent,
                server.db,
                server.password,
            )
            self._all_clients.append(client)
            if standalone:
                client.force_standalone()
            if server.alias is not None:
                if server.alias in aliases:
                    raise ConfigurationError(f"Duplicate server alias {server.alias!r}.")
                aliases[server.alias] = client
            if server.master:
                if self._master is not None:
                    raise ConfigurationError("Only one server can be marked as master.")
                self._master = client
                if not self._read_on_master:
                    _LOGGER.debug("Master %s receives writes only", server.identity)
                    continue
            ring_members.append((server.identity, len(clients)))
            clients.append(client)

        self._clients: tuple[SingleServerClient, ...] = tuple(clients)
        self._aliases: Mapping[str, SingleServerClient] = MappingProxyType(aliases)
        self._ring = HashRing(ring_members, replicas, lookup=lookup)
        _LOGGER.debug(
            "Cluster router ready clients=%s aliases=%s master=%s ring_points=%s",
            len(self._clients),
            sorted(self._aliases),
            self._master is not None,
            len(self._ring),
        )

    @classmethod
    def from_config(
        cls,
        config: RouterConfig,
        *,
        client_factory: ClientFactory = ServerClient,
    ) -> "ClusterRouter":
        """Build a router from a :class:`RouterConfig`."""
        return cls(
            config.servers,
            config.replicas,
            config.read_on_master,
            config.standalone,
            lookup=config.lookup,
            client_factory=client_factory,
        )

    def __enter__(self) -> "ClusterRouter":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def close(self) -> None:
        """
        Close every client created by this router, master included.

        Every client is attempted; the first failure is re-raised afterwards.
        """
        first_error: Exception | None = None
        for client in self._all_clients:
            closer = getattr(client, "close", None)
            if not callable(closer):
                continue
            try:
                closer()
            except Exception as exc:  # noqa: BLE001 - re-raised after the loop
                _LOGGER.warning("Closing client=%r failed: %s", client, exc)
                if first_error is None:
                    first_error = exc
        if first_error is not None:
            raise first_error

    # ------------------------------------------------------------------ #
    # Introspection
    # ------------------------------------------------------------------ #

    @property
    def master(self) -> SingleServerClient | None:
        """Return the master client, or ``None`` without read/write splitting."""
        return self._master

    @property
    def aliases(self) -> Mapping[str, SingleServerClient]:
        """Return a read-only view of the alias table."""
        return self._aliases

    @property
    def ring(self) -> HashRing:
        """Return the hash ring over routable clients."""
        return self._ring

    @property
    def replicas(self) -> int:
        return self._replicas

    @property
    def read_on_master(self) -> bool:
        return self._read_on_master

    # ------------------------------------------------------------------ #
    # Explicit routing
    # ------------------------------------------------------------------ #

    def client(self, alias: int | str) -> SingleServerClient:
        """
        Return a client by dense index or alias.

        Integers are resolved against the routable client list first; aliases
        are consulted for anything else and for out-of-range integers.

        Raises
        ------
        NotFoundError
            If neither an index nor an alias matches.
        """
        if isinstance(alias, int) and not isinstance(alias, bool):
            if 0 <= alias < len(self._clients):
                return self._clients[alias]
        found = self._aliases.get(str(alias))
        if found is not None:
            return found
        raise NotFoundError(f"Client {alias!r} does not exist.")

    def clients(self) -> tuple[SingleServerClient, ...]:
        """Return routable clients in dense index order."""
        return self._clients

    def hash(self, key: Any) -> int:
        """
        Return the dense index of the client ``key`` hashes to.

        Raises
        ------
        ConfigurationError
            If no routable server is configured.
        """
        return self._ring.locate(key)

    def by_hash(self, key: Any) -> SingleServerClient:
        """Return the client ``key`` hashes to without executing anything."""
        return self._clients[self.hash(key)]

    def all(self, name: str, *args: Any) -> list[Any]:
        """
        Run one command on every routable client in index order.

        The first failure propagates immediately and remaining clients are not
        contacted.
        """
        _LOGGER.debug("Broadcasting command=%s clients=%s", name, len(self._clients))
        return [client.execute(name, args) for client in self._clients]

    # ------------------------------------------------------------------ #
    # Generic dispatch
    # ------------------------------------------------------------------ #

    def route(self, name: str, *args: Any) -> SingleServerClient:
        """
        Return the client :meth:`execute` would send the command to.
        """
        if self._master is not None and not is_read_only_command(name):
            return self._master
        if is_no_hash_command(name) or not args or args[0] is None:
            if not self._clients:
                raise ConfigurationError("No routable servers are configured.")
            return self._clients[0]
        return self.by_hash(args[0])

    def execute(self, name: str, *args: Any) -> Any:
        """
        Run one command with automatic read/write splitting and hashing.

        Writes go to the master when one is configured. Server-wide commands
        and commands without arguments (or with a ``None`` first argument) go to
        the first routable client. All
        other commands are routed by the hash of their first argument.
        Transport errors from the selected client propagate unchanged.
        """
        client = self.route(name, *args)
        _LOGGER.debug("Routing command=%s to client=%r", canonical_name(name), client)
        return client.execute(name, args)
