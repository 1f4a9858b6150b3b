"""Core utilities shared by every layer (results, errors, settings)."""
