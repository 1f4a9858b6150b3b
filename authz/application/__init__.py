"""Application layer: permission services and batch jobs."""
