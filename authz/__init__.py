"""Role-based, resource-scoped, time-bounded permission engine."""

__version__ = "0.1.0"
