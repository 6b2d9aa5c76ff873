"""
Configuration models for consistent-hashing router clusters.

This module centralizes every setting consumed at router construction:

* per-server connection descriptors
* replica point count of the hash ring
* master read/write splitting
* standalone protocol mode for the per-server clients
* ring lookup policy

Descriptors are validated eagerly so that a broken cluster layout fails at
startup rather than on the first routed command.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

from .exceptions import ConfigurationError

DEFAULT_REPLICAS = 128
DEFAULT_TIMEOUT_SECONDS = 2.5

_DESCRIPTOR_KEYS = frozenset(
    {"host", "port", "db", "password", "timeout", "alias", "persistent", "master"}
)


class LookupPolicy(str, Enum):
    """
    Supported strategies for resolving a key hash that falls between points.

    SUCCESSOR
        Nearest point at or above the key hash; hashes above the last point
        wrap to the first point of the ring.
    LEGACY
        Reference midpoint search that returns the last examined point. Use it
        to agree with older clients routing against the same servers.
    """

    SUCCESSOR = "successor"
    LEGACY = "legacy"


def normalize_lookup(policy: str | LookupPolicy) -> LookupPolicy:
    """
    Normalize a lookup policy name into :class:`LookupPolicy`.
    """
    if isinstance(policy, LookupPolicy):
        return policy
    lowered = str(policy).strip().lower()
    try:
        return LookupPolicy(lowered)
    except ValueError as exc:
        valid = ", ".join(item.value for item in LookupPolicy)
        raise ConfigurationError(
            f"Unknown lookup policy {policy!r}. Supported values: {valid}."
        ) from exc


@dataclass(frozen=True, slots=True)
class ServerDescriptor:
    """
    Connection settings for one server of the cluster.

    Parameters
    ----------
    host:
        DNS name or IP address of the server.
    port:
        TCP port of the server.
    db:
        Database index selected after connecting.
    password:
        Optional credential sent with ``AUTH``.
    timeout:
        Connect and socket timeout in seconds.
    alias:
        Optional name used to address this server explicitly.
    master:
        Whether writes are routed to this server.
    persistent:
        Whether the connection should be kept alive between commands.
    """

    host: str
    port: int
    db: int = 0
    password: str | None = None
    timeout: float = DEFAULT_TIMEOUT_SECONDS
    alias: str | None = None
    master: bool = False
    persistent: bool = False

    def __post_init__(self) -> None:
        """Validate the descriptor at construction time."""
        if not isinstance(self.host, str) or not self.host.strip():
            raise ConfigurationError("ServerDescriptor.host must be a non-empty string.")
        if isinstance(self.port, bool) or not isinstance(self.port, int):
            raise ConfigurationError(f"ServerDescriptor.port must be an integer, got {self.port!r}.")
        if not (1 <= self.port <= 65535):
            raise ConfigurationError("ServerDescriptor.port must be in range 1..65535.")
        if isinstance(self.db, bool) or not isinstance(self.db, int) or self.db < 0:
            raise ConfigurationError("ServerDescriptor.db must be an integer >= 0.")
        if isinstance(self.timeout, bool) or not isinstance(self.timeout, (int, float)):
            raise ConfigurationError(f"ServerDescriptor.timeout must be a number, got {self.timeout!r}.")
        if self.timeout <= 0:
            raise ConfigurationError("ServerDescriptor.timeout must be > 0.")
        if self.alias is not None and not str(self.alias).strip():
            raise ConfigurationError("ServerDescriptor.alias cannot be blank when provided.")

    @property
    def identity(self) -> str:
        """Return the ``host:port`` string hashed onto the ring."""
        return f"{self.host}:{self.port}"

    def as_dict(self) -> dict[str, Any]:
        """
        Convert the descriptor into a JSON-friendly dictionary.

        Optional keys are omitted when they hold their default value.
        """
        payload: dict[str, Any] = {"host": self.host, "port": self.port}
        if self.db:
            payload["db"] = self.db
        if self.password is not None:
            payload["password"] = self.password
        if self.timeout != DEFAULT_TIMEOUT_SECONDS:
            payload["timeout"] = self.timeout
        if self.alias is not None:
            payload["alias"] = self.alias
        if self.master:
            payload["master"] = True
        if self.persistent:
            payload["persistent"] = True
        return payload

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "ServerDescriptor":
        """
        Create a descriptor from a configuration mapping.

        Parameters
        ----------
        payload:
            Mapping that must contain ``host`` and ``port`` keys and may
            contain ``db``, ``password``, ``timeout``, ``alias``,
            ``persistent`` and ``master``.

        Raises
        ------
        ConfigurationError
            If required keys are missing, unknown keys are present, or a value
            cannot be converted.
        """
        if not isinstance(payload, Mapping):
            raise ConfigurationError(f"Server entry must be a mapping, got {type(payload).__name__}.")
        unknown = set(payload) - _DESCRIPTOR_KEYS
        if unknown:
            names = ", ".join(sorted(str(key) for key in unknown))
            raise ConfigurationError(f"Unknown server descriptor keys: {names}.")
        for required in ("host", "port"):
            if payload.get(required) in (None, ""):
                raise ConfigurationError(f"Server descriptor is missing {required!r}.")
        try:
            port = int(payload["port"])
            db = int(payload.get("db") or 0)
            raw_timeout = payload.get("timeout")
            timeout = DEFAULT_TIMEOUT_SECONDS if raw_timeout is None else float(raw_timeout)
        except (TypeError, ValueError) as exc:
            raise ConfigurationError(f"Invalid server descriptor {dict(payload)!r}: {exc}") from exc
        password = payload.get("password")
        alias = payload.get("alias")
        return cls(
            host=str(payload["host"]),
            port=port,
            db=db,
            password=None if password is None else str(password),
            timeout=timeout,
            alias=None if alias is None else str(alias),
            # Only a literal true marks a master; truthy strings do not.
            master=payload.get("master") is True,
            persistent=bool(payload.get("persistent", False)),
        )


def coerce_descriptor(server: ServerDescriptor | Mapping[str, Any]) -> ServerDescriptor:
    """Return ``server`` as a :class:`ServerDescriptor`."""
    if isinstance(server, ServerDescriptor):
        return server
    return ServerDescriptor.from_dict(server)


@dataclass(slots=True)
class RouterConfig:
    """
    Top-level settings used by :class:`ring_cluster.router.ClusterRouter`.

    Parameters
    ----------
    servers:
        Ordered server descriptors. Order determines dense indices.
    replicas:
        Replica count R; every routable server gets R+1 ring points.
    read_on_master:
        If false, the master only receives writes and is left off the ring.
    standalone:
        Force every per-server client into its pure-Python protocol mode.
    lookup:
        Ring lookup policy, see :class:`LookupPolicy`.
    """

    servers: list[ServerDescriptor] = field(default_factory=list)
    replicas: int = DEFAULT_REPLICAS
    read_on_master: bool = True
    standalone: bool = False
    lookup: LookupPolicy = LookupPolicy.SUCCESSOR

    def __post_init__(self) -> None:
        """Validate values that affect ring layout."""
        self.servers = [coerce_descriptor(server) for server in self.servers]
        if isinstance(self.replicas, bool) or not isinstance(self.replicas, int) or self.replicas < 0:
            raise ConfigurationError("RouterConfig.replicas must be an integer >= 0.")
        self.lookup = normalize_lookup(self.lookup)

    def as_dict(self) -> dict[str, Any]:
        """Convert the configuration into a JSON-friendly dictionary."""
        return {
            "servers": [server.as_dict() for server in self.servers],
            "replicas": self.replicas,
            "read_on_master": self.read_on_master,
            "standalone": self.standalone,
            "lookup": self.lookup.value,
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any] | list[Any]) -> "RouterConfig":
        """
        Create a configuration from a decoded JSON document.

        A bare list is treated as the server list with default settings.
        """
        if isinstance(payload, list):
            return cls(servers=payload)
        if not isinstance(payload, Mapping):
            raise ConfigurationError("Router configuration must be a list or a mapping.")
        servers = payload.get("servers")
        if not isinstance(servers, list):
            raise ConfigurationError("Router configuration requires a 'servers' list.")
        return cls(
            servers=servers,
            replicas=payload.get("replicas", DEFAULT_REPLICAS),
            read_on_master=bool(payload.get("read_on_master", True)),
            standalone=bool(payload.get("standalone", False)),
            lookup=payload.get("lookup", LookupPolicy.SUCCESSOR),
        )


def load_config(path: str | Path) -> RouterConfig:
    """
    Load a router configuration from a JSON file.

    Raises
    ------
    ConfigurationError
        If the file cannot be read or does not contain a valid layout.
    """
    resolved = Path(path).expanduser()
    try:
        with resolved.open("r", encoding="utf-8") as handle:
            data = json.load(handle)
    except OSError as exc:
        raise ConfigurationError(f"Cannot read cluster configuration {str(resolved)!r}: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise ConfigurationError(f"Cluster configuration {str(resolved)!r} is not valid JSON: {exc}") from exc
    return RouterConfig.from_dict(data)
