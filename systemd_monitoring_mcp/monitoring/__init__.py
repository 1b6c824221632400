"""Monitoring queries and tool schemas."""
from .queries import ServiceQueries

__all__ = ["ServiceQueries"]
