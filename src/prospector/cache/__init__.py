"""Query cache and cache reconciliation."""

from prospector.cache.query_cache import QueryCache
from prospector.cache.reconciler import (
    CacheReconciler,
    Created,
    Deleted,
    MembershipIndex,
    Updated,
)

__all__ = [
    "CacheReconciler",
    "Created",
    "Deleted",
    "MembershipIndex",
    "QueryCache",
    "Updated",
]
