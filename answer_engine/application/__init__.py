"""Application layer: services consumed by the API routes."""
