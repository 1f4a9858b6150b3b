"""Infrastructure adapters (cache, identity provider, persistence, audit, logging)."""
