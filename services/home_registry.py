"""
Home registry: which top-level store nodes are behaviour-enabled homes.
"""

from typing import Any, Iterable, List

from models.document_store import DocumentStore

# Root-level nodes that are never homes, whatever they contain
RESERVED_KEYS = frozenset({"users", "reviews"})

ADMIN_ROLE = "admin"


def list_home_codes(snapshot: Any) -> List[str]:
    """Summary: Home codes in a root snapshot, sorted ascending.
    A key is a home iff its value is an object with a `behaviours` field
    and the key is not reserved."""
    if not isinstance(snapshot, dict):
        return []
    homes = []
    for key, value in snapshot.items():
        if key in RESERVED_KEYS:
            continue
        if isinstance(value, dict) and "behaviours" in value:
            homes.append(key)
    return sorted(homes)


def fetch_home_codes(store: DocumentStore) -> List[str]:
    """Read the root of the store and classify it. Raises StoreError."""
    return list_home_codes(store.get("/"))


def available_roles(homes: Iterable[str]) -> List[str]:
    """Roles offered when creating users: admin plus every current home."""
    roles = [ADMIN_ROLE]
    for home in homes:
        if home not in roles:
            roles.append(home)
    return roles
