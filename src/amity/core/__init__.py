"""Core types for Amity: operations, reply envelopes and errors.

The cache-aside manager lives in amity.core.manager.
"""

from amity.core.envelope import ReplyEnvelope, ReplyStatus
from amity.core.errors import (
    AmityError,
    BridgeError,
    BusError,
    CacheError,
    CacheRefreshFailed,
    CallTimeout,
    DecodeFailed,
    PublishFailed,
    RemoteError,
    ReplyFailed,
    ReplySinkError,
    StoreError,
    Unavailable,
    UnknownOperation,
)
from amity.core.operations import (
    AddEdge,
    AddNode,
    AreConnected,
    EntityId,
    ListNeighbors,
    NodeExists,
    Operation,
    OperationKind,
    Recommend,
    RemoveEdge,
    RemoveNode,
    decode_operation,
    encode_operation,
)

__all__ = [
    # Operations
    "AddEdge",
    "AddNode",
    "AreConnected",
    "EntityId",
    "ListNeighbors",
    "NodeExists",
    "Operation",
    "OperationKind",
    "Recommend",
    "RemoveEdge",
    "RemoveNode",
    "decode_operation",
    "encode_operation",
    # Envelope
    "ReplyEnvelope",
    "ReplyStatus",
    # Errors
    "AmityError",
    "BridgeError",
    "BusError",
    "CacheError",
    "CacheRefreshFailed",
    "CallTimeout",
    "DecodeFailed",
    "PublishFailed",
    "RemoteError",
    "ReplyFailed",
    "ReplySinkError",
    "StoreError",
    "Unavailable",
    "UnknownOperation",
]
