"""Domain layer: permission catalog, resolver, entities and ports.

Pure business logic with no framework dependencies.
"""
