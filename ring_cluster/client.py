"""
Redis-backed implementation of the per-server client protocol.

The adapter forwards generic ``(name, args)`` commands to
``redis.Redis.execute_command``. Connection pooling, authentication and
RESP encoding stay inside redis-py.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from redis import Redis
from redis._parsers import _RESP2Parser

from .config import DEFAULT_TIMEOUT_SECONDS


class ServerClient:
    """
    Client for one Redis server, built from descriptor values.

    Parameters
    ----------
    host, port:
        Server endpoint.
    timeout:
        Connect and socket timeout in seconds.
    persistent:
        Enable TCP keepalive on pooled connections.
    db:
        Database index selected on connect.
    password:
        Optional ``AUTH`` credential.
    redis_client:
        Optional preconfigured Redis client instance. When supplied the other
        connection settings are only kept for reporting.
    """

    def __init__(
        self,
        host: str,
        port: int,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        persistent: bool = False,
        db: int = 0,
        password: str | None = None,
        *,
        redis_client: Redis | None = None,
    ) -> None:
        self.host = host
        self.port = int(port)
        self.timeout = float(timeout)
        self.persistent = bool(persistent)
        self.db = int(db)
        self._standalone = False
        self._redis = redis_client or Redis(
            host=host,
            port=self.port,
            db=self.db,
            password=password,
            socket_timeout=self.timeout,
            socket_connect_timeout=self.timeout,
            socket_keepalive=self.persistent,
            decode_responses=True,
        )

    def __repr__(self) -> str:
        return f"ServerClient({self.host}:{self.port}, db={self.db})"

    @property
    def redis(self) -> Redis:
        """Return the underlying redis-py client."""
        return self._redis

    @property
    def is_standalone(self) -> bool:
        """Return whether the pure-Python parser has been forced."""
        return self._standalone

    def execute(self, name: str, args: Sequence[Any]) -> Any:
        """
        Run one command and return the decoded reply.

        Transport and server errors raised by redis-py propagate unchanged.
        """
        return self._redis.execute_command(name, *args)

    def force_standalone(self) -> None:
        """
        Use redis-py's pure-Python RESP2 parser instead of ``hiredis``.

        Pooled connections are dropped so that new connections pick up the
        parser class.
        """
        pool = self._redis.connection_pool
        pool.disconnect()
        pool.connection_kwargs["parser_class"] = _RESP2Parser
        self._standalone = True

    def close(self) -> None:
        """Release pooled connections."""
        self._redis.close()
