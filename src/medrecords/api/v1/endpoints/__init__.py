"""API v1 endpoints package."""
