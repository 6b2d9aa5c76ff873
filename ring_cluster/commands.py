"""
Command classification used by the router's dispatch policy.

Two fixed sets drive routing:

* ``NO_HASH_COMMANDS`` are server-wide commands with no key argument; they go
  to the first routable server instead of being hashed.
* ``READ_ONLY_COMMANDS`` never modify data; when a master is configured every
  command outside this set is sent to the master.

Both checks are case-insensitive and compare the uppercased command name.
"""

from __future__ import annotations

NO_HASH_COMMANDS: frozenset[str] = frozenset(
    {
        "RANDOMKEY",
        "DBSIZE",
        "PIPELINE",
        "EXEC",
        "SELECT",
        "MOVE",
        "FLUSHDB",
        "FLUSHALL",
        "SAVE",
        "BGSAVE",
        "LASTSAVE",
        "SHUTDOWN",
        "INFO",
        "MONITOR",
        "SLAVEOF",
    }
)

READ_ONLY_COMMANDS: frozenset[str] = frozenset(
    {
        # keyspace / server
        "AUTH",
        "DBSIZE",
        "ECHO",
        "EXISTS",
        "INFO",
        "KEYS",
        "MONITOR",
        "OBJECT",
        "PING",
        "PTTL",
        "QUIT",
        "RANDOMKEY",
        "SCAN",
        "SELECT",
        "TIME",
        "TTL",
        "TYPE",
        # strings
        "BITCOUNT",
        "BITPOS",
        "GET",
        "GETBIT",
        "GETRANGE",
        "MGET",
        "STRLEN",
        "SUBSTR",
        # lists
        "LINDEX",
        "LLEN",
        "LRANGE",
        # sets
        "SCARD",
        "SDIFF",
        "SINTER",
        "SISMEMBER",
        "SMEMBERS",
        "SRANDMEMBER",
        "SSCAN",
        "SUNION",
        # sorted sets
        "ZCARD",
        "ZCOUNT",
        "ZLEXCOUNT",
        "ZRANGE",
        "ZRANGEBYLEX",
        "ZRANGEBYSCORE",
        "ZRANK",
        "ZREVRANGE",
        "ZREVRANGEBYLEX",
        "ZREVRANGEBYSCORE",
        "ZREVRANK",
        "ZSCAN",
        "ZSCORE",
        # hashes
        "HEXISTS",
        "HGET",
        "HGETALL",
        "HKEYS",
        "HLEN",
        "HMGET",
        "HSCAN",
        "HSTRLEN",
        "HVALS",
        # hyperloglog
        "PFCOUNT",
    }
)


def canonical_name(name: str) -> str:
    """Return the uppercased command name used for classification."""
    return str(name).strip().upper()


def is_read_only_command(name: str) -> bool:
    """Return true when ``name`` never modifies data."""
    return canonical_name(name) in READ_ONLY_COMMANDS


def is_no_hash_command(name: str) -> bool:
    """Return true when ``name`` bypasses the hash ring."""
    return canonical_name(name) in NO_HASH_COMMANDS
