"""Presentation layer (FastAPI dependencies for host applications)."""
