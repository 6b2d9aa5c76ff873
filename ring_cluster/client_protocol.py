"""
Per-server client protocol used by :class:`ring_cluster.router.ClusterRouter`.

The router depends on this narrow method surface rather than on a specific
Redis client, so tests and alternative transports can be injected without
changing routing code.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any, Protocol


class SingleServerClient(Protocol):
    """
    Behavioral contract for a client bound to exactly one server.

    Implementations own connection setup, authentication and timeouts. They are
    not required to be safe for concurrent commands on one connection.
    """

    def execute(self, name: str, args: Sequence[Any]) -> Any:
        """Run command ``name`` with positional ``args`` and return its result."""

    def force_standalone(self) -> None:
        """Switch to a protocol mode that does not rely on native extensions."""


class ClientFactory(Protocol):
    """
    Callable building one :class:`SingleServerClient` from descriptor values.
    """

    def __call__(
        self,
        host: str,
        port: int,
        timeout: float,
        persistent: bool,
        db: int,
        password: str | None,
    ) -> SingleServerClient:
        """Return a client for ``host:port``."""
