"""Pure permission logic: catalog and resolver."""

from authz.domain.permissions import catalog, resolver

__all__ = ["catalog", "resolver"]
