"""
Graph schema for the friendship graph.

Node Labels:
    :Person  - A principal, keyed by uid (int or str)

Relationship Types:
    :BE_FRIEND_OF - Undirected friendship. Stored with an arbitrary direction
                    and always matched without one.

Indices:
    Person(uid) - Exact-match lookup for every operation
"""

PERSON_LABEL = "Person"
FRIEND_REL = "BE_FRIEND_OF"

# Cypher statements executed idempotently on store initialization.
SCHEMA_STATEMENTS: list[str] = [
    f"CREATE INDEX IF NOT EXISTS FOR (p:{PERSON_LABEL}) ON (p.uid)",
]

# FalkorDB doesn't support parameterized hop counts, so depth is validated
# against this ceiling before string-formatting into the traversal query.
MAX_TRAVERSAL_DEPTH = 4
