"""Service module exports."""

from . import billing, cache, community, data_client, notifications, reports

__all__ = [
    "billing",
    "cache",
    "community",
    "data_client",
    "notifications",
    "reports",
]
