"""HTTP adapters."""

from .resolver_client import ResolverClient, TransportError

__all__ = ["ResolverClient", "TransportError"]
