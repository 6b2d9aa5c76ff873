"""
Consistent-hashing ring mapping keys to dense server indices.

Every server contributes R+1 points to the ring. A point's position is the
first seven hexadecimal digits of the MD5 digest of ``"{host}:{port}-{r}"``,
read as a 28-bit unsigned integer. Keys are hashed the same way (without the
replica suffix) and resolved by binary search over the sorted positions.

The layout is a pure function of the server identities and the replica count,
so independent processes agree on routing without sharing state.
"""

from __future__ import annotations

import hashlib
import logging
from bisect import bisect_left
from collections.abc import Iterable
from typing import Any

from .config import DEFAULT_REPLICAS, LookupPolicy, normalize_lookup
from .exceptions import ConfigurationError

_LOGGER = logging.getLogger(__name__)

POSITION_HEX_DIGITS = 7
POSITION_MAX = (1 << (4 * POSITION_HEX_DIGITS)) - 1


def _key_bytes(key: Any) -> bytes:
    # Other clients of the cluster stringify booleans and floats differently.
    if isinstance(key, (bool, float)):
        raise TypeError(f"Keys must be str, bytes or int, got {type(key).__name__}.")
    if isinstance(key, bytes):
        return key
    if isinstance(key, (bytearray, memoryview)):
        return bytes(key)
    return str(key).encode("utf-8")


def ring_position(key: Any) -> int:
    """
    Return the 28-bit ring position of ``key``.

    ``str`` keys are UTF-8 encoded, ``bytes`` are hashed as-is and integers are
    hashed in their decimal form. ``bool`` and ``float`` keys raise
    ``TypeError``.
    """
    digest = hashlib.md5(_key_bytes(key)).hexdigest()
    return int(digest[:POSITION_HEX_DIGITS], 16)


class HashRing:
    """
    Immutable sorted ring of ``(position, client_index)`` points.

    Parameters
    ----------
    servers:
        Ordered ``(identity, client_index)`` pairs, where identity is the
        server's ``host:port`` string.
    replicas:
        Replica count R. Each server is placed on R+1 points, replicas
        ``0..R`` inclusive, matching other clients of the same cluster.
    lookup:
        Lookup policy used by :meth:`locate`.

    Notes
    -----
    Positions are truncated to 28 bits, so two points may collide. The later
    insertion wins; this is an accepted approximation and is logged rather than
    raised.
    """

    __slots__ = ("_replicas", "_lookup", "_positions", "_indices")

    def __init__(
        self,
        servers: Iterable[tuple[str, int]],
        replicas: int = DEFAULT_REPLICAS,
        *,
        lookup: str | LookupPolicy = LookupPolicy.SUCCESSOR,
    ) -> None:
        if isinstance(replicas, bool) or not isinstance(replicas, int) or replicas < 0:
            raise ConfigurationError(f"Replica count must be an integer >= 0, got {replicas!r}.")
        self._replicas = replicas
        self._lookup = normalize_lookup(lookup)

        points: dict[int, int] = {}
        for identity, client_index in servers:
            for replica in range(replicas + 1):
                position = ring_position(f"{identity}-{replica}")
                previous = points.get(position)
                if previous is not None and previous != client_index:
                    _LOGGER.warning(
                        "Ring point collision position=%s replaced_index=%s new_index=%s",
                        position,
                        previous,
                        client_index,
                    )
                points[position] = client_index

        ordered = sorted(points.items())
        self._positions: tuple[int, ...] = tuple(position for position, _ in ordered)
        self._indices: tuple[int, ...] = tuple(index for _, index in ordered)
        _LOGGER.debug(
            "Hash ring built points=%s replicas=%s lookup=%s",
            len(self._positions),
            replicas,
            self._lookup.value,
        )

    def __len__(self) -> int:
        return len(self._positions)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, HashRing):
            return NotImplemented
        return self._positions == other._positions and self._indices == other._indices

    def __hash__(self) -> int:
        return hash((self._positions, self._indices))

    def __repr__(self) -> str:
        return f"HashRing(points={len(self._positions)}, replicas={self._replicas}, lookup={self._lookup.value!r})"

    @property
    def replicas(self) -> int:
        """Return the configured replica count R."""
        return self._replicas

    @property
    def lookup(self) -> LookupPolicy:
        """Return the active lookup policy."""
        return self._lookup

    @property
    def positions(self) -> tuple[int, ...]:
        """Return ring positions in ascending order."""
        return self._positions

    def nodes(self) -> tuple[tuple[int, int], ...]:
        """Return ``(position, client_index)`` pairs in ascending order."""
        return tuple(zip(self._positions, self._indices))

    def position(self, key: Any) -> int:
        """Return the ring position ``key`` hashes to."""
        return ring_position(key)

    def locate(self, key: Any) -> int:
        """
        Return the client index owning ``key``.

        Raises
        ------
        ConfigurationError
            If the ring holds no points.
        """
        return self.locate_position(ring_position(key))

    def locate_position(self, needle: int) -> int:
        """
        Return the client index owning ring position ``needle``.
        """
        if not self._positions:
            raise ConfigurationError("Hash ring is empty; no routable servers are configured.")
        if self._lookup is LookupPolicy.LEGACY:
            slot = self._midpoint_search(needle)
        else:
            slot = bisect_left(self._positions, needle)
            if slot == len(self._positions):
                slot = 0
        return self._indices[slot]

    def _midpoint_search(self, needle: int) -> int:
        """
        Binary search that stops at the last examined midpoint.

        On a miss the result may be the predecessor or the successor of
        ``needle``, whichever the search examined last.
        """
        low, high = 0, len(self._positions) - 1
        slot = 0
        while high >= low:
            slot = (low + high) // 2
            current = self._positions[slot]
            if needle < current:
                high = slot - 1
            elif needle > current:
                low = slot + 1
            else:
                break
        return slot
