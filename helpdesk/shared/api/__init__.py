"""Shared FastAPI plumbing: middleware, exception handlers, request dependencies."""
