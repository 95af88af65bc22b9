"""Redis key schema for Amity.

Key format: {prefix}:{area}:{token}

Where:
- prefix: "amity" (namespace for shared Redis)
- area: "nbr" (neighbor cache), "reply" (reply slot), "seq" (sequence counter)
- token: entity token ("i:<int>" or "s:<str>") or correlation key

Entity tokens keep the int ID 1 and the str ID "1" on separate keys.
"""

from __future__ import annotations

from amity.core.operations import EntityId


def entity_token(entity_id: EntityId) -> str:
    """Type-tagged token for an entity ID."""
    if isinstance(entity_id, str):
        return f"s:{entity_id}"
    return f"i:{entity_id}"


class CacheKeys:
    """Key generator following a consistent naming convention."""

    PREFIX = "amity"

    @classmethod
    def neighbors(cls, entity_id: EntityId) -> str:
        """Key for an entity's cached neighbor list."""
        return f"{cls.PREFIX}:nbr:{entity_token(entity_id)}"

    @classmethod
    def reply_slot(cls, correlation_key: str) -> str:
        """Key for the reply slot of a correlation key."""
        return f"{cls.PREFIX}:reply:{correlation_key}"

    @classmethod
    def sequence(cls, requester_id: EntityId) -> str:
        """Key for a requester's correlation sequence counter."""
        return f"{cls.PREFIX}:seq:{entity_token(requester_id)}"

    @classmethod
    def parse_key(cls, key: str) -> dict[str, str] | None:
        """Parse a key into its components.

        Returns None if the key doesn't match the expected format.
        """
        parts = key.split(":", 2)
        if len(parts) < 3 or parts[0] != cls.PREFIX:
            return None

        return {
            "prefix": parts[0],
            "area": parts[1],
            "token": parts[2],
        }

    @classmethod
    def area_pattern(cls, area: str) -> str:
        """Pattern matching every key in an area (for SCAN)."""
        return f"{cls.PREFIX}:{area}:*"
