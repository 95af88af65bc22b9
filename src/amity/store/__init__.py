"""Graph store layer for Amity.

The store is authoritative for the friendship graph:
- InMemoryStore: single-process deployments and tests
- FalkorDBStore: Cypher over FalkorDB for shared deployments
"""

from amity.store.base import Store, id_sort_key, sorted_ids
from amity.store.memory import InMemoryStore

__all__ = [
    "Store",
    "InMemoryStore",
    "id_sort_key",
    "sorted_ids",
]
