"""
Custom exceptions used by the cluster router.

Keeping library-specific errors in one module gives users a predictable
import surface for catching and handling routing and configuration failures.
"""

from redis.exceptions import RedisError

TransportError = RedisError
"""
Transport failures raised by the per-server client.

The router never wraps, retries or interprets these errors; the alias exists so
callers can catch them without importing redis-py directly.
"""


class RingClusterError(Exception):
    """Base error type for all library-level exceptions."""


class ConfigurationError(RingClusterError, ValueError):
    """
    Raised when the cluster layout cannot be used for routing.

    Examples include malformed server descriptors, duplicate aliases, more than
    one master, an invalid replica count, or a lookup against an empty ring.
    """


class NotFoundError(RingClusterError, LookupError):
    """
    Raised when a client cannot be resolved by alias or dense index.
    """
