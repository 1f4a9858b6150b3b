"""Identity provider adapters."""

from authz.infrastructure.identity.clerk_adapter import ClerkIdentityProvider
from authz.infrastructure.identity.memory_adapter import InMemoryIdentityProvider

__all__ = ["ClerkIdentityProvider", "InMemoryIdentityProvider"]
