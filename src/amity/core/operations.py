"""Operations carried over the bus.

Each operation is an immutable dataclass tagged on the wire by ``kind``:

    {"kind": "AddEdge", "a": 1, "b": 2}
    {"kind": "ListNeighbors", "id": 1}
    {"kind": "Recommend", "id": 1, "depth": 2, "threshold": 2}

Entity IDs are ``int`` or ``str``. Traversal parameters are small ints.
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from enum import Enum
from typing import Any, Union

import orjson

from amity.core.errors import DecodeFailed, UnknownOperation

EntityId = Union[int, str]


class OperationKind(str, Enum):
    """Wire tag of an operation."""

    ADD_EDGE = "AddEdge"
    REMOVE_EDGE = "RemoveEdge"
    LIST_NEIGHBORS = "ListNeighbors"
    RECOMMEND = "Recommend"
    ADD_NODE = "AddNode"
    REMOVE_NODE = "RemoveNode"
    ARE_CONNECTED = "AreConnected"
    NODE_EXISTS = "NodeExists"


@dataclass(frozen=True, slots=True)
class AddEdge:
    """Create a friendship between ``a`` and ``b``."""

    a: EntityId
    b: EntityId
    kind = OperationKind.ADD_EDGE


@dataclass(frozen=True, slots=True)
class RemoveEdge:
    """Remove the friendship between ``a`` and ``b``."""

    a: EntityId
    b: EntityId
    kind = OperationKind.REMOVE_EDGE


@dataclass(frozen=True, slots=True)
class ListNeighbors:
    id: EntityId
    kind = OperationKind.LIST_NEIGHBORS


@dataclass(frozen=True, slots=True)
class Recommend:
    """Recommend entities reachable from ``id``.

    ``depth``/``threshold`` of None fall back to the configured defaults.
    """

    id: EntityId
    depth: int | None = None
    threshold: int | None = None
    kind = OperationKind.RECOMMEND


@dataclass(frozen=True, slots=True)
class AddNode:
    id: EntityId
    kind = OperationKind.ADD_NODE


@dataclass(frozen=True, slots=True)
class RemoveNode:
    id: EntityId
    kind = OperationKind.REMOVE_NODE


@dataclass(frozen=True, slots=True)
class AreConnected:
    a: EntityId
    b: EntityId
    kind = OperationKind.ARE_CONNECTED


@dataclass(frozen=True, slots=True)
class NodeExists:
    id: EntityId
    kind = OperationKind.NODE_EXISTS


Operation = Union[
    AddEdge, RemoveEdge, ListNeighbors, Recommend, AddNode, RemoveNode, AreConnected, NodeExists
]

OPERATION_TYPES: dict[OperationKind, type] = {
    OperationKind.ADD_EDGE: AddEdge,
    OperationKind.REMOVE_EDGE: RemoveEdge,
    OperationKind.LIST_NEIGHBORS: ListNeighbors,
    OperationKind.RECOMMEND: Recommend,
    OperationKind.ADD_NODE: AddNode,
    OperationKind.REMOVE_NODE: RemoveNode,
    OperationKind.ARE_CONNECTED: AreConnected,
    OperationKind.NODE_EXISTS: NodeExists,
}

# Fields holding traversal parameters rather than entity IDs
_INT_FIELDS = frozenset({"depth", "threshold"})


def _is_entity_id(value: Any) -> bool:
    return isinstance(value, (int, str)) and not isinstance(value, bool)


def operation_to_dict(op: Operation) -> dict[str, Any]:
    """Convert an operation to its tagged wire dictionary."""
    data: dict[str, Any] = {"kind": op.kind.value}
    for f in fields(op):
        value = getattr(op, f.name)
        if f.name in _INT_FIELDS and value is None:
            continue
        data[f.name] = value
    return data


def encode_operation(op: Operation) -> bytes:
    """Serialize an operation to JSON bytes."""
    if type(op) not in OPERATION_TYPES.values():
        raise TypeError(f"Not an operation: {op!r}")
    return orjson.dumps(operation_to_dict(op))


def operation_from_dict(data: dict[str, Any]) -> Operation:
    """Build an operation from a tagged wire dictionary.

    Raises:
        DecodeFailed: on unknown kind, missing or unexpected fields, or bad types.
    """
    raw_kind = data.get("kind")
    try:
        kind = OperationKind(raw_kind)
    except ValueError as e:
        raise UnknownOperation(raw_kind) from e

    op_type = OPERATION_TYPES[kind]
    field_names = {f.name for f in fields(op_type)}
    payload = {k: v for k, v in data.items() if k != "kind"}

    unexpected = set(payload) - field_names
    if unexpected:
        raise DecodeFailed(f"Unexpected fields for {kind.value}: {sorted(unexpected)}")

    for f in fields(op_type):
        if f.name in _INT_FIELDS:
            value = payload.get(f.name)
            if value is not None and (not isinstance(value, int) or isinstance(value, bool)):
                raise DecodeFailed(f"{kind.value}.{f.name} must be an integer")
            if value is not None and value < 1:
                raise DecodeFailed(f"{kind.value}.{f.name} must be positive")
            continue
        if f.name not in payload:
            raise DecodeFailed(f"Missing field {kind.value}.{f.name}")
        if not _is_entity_id(payload[f.name]):
            raise DecodeFailed(f"{kind.value}.{f.name} must be an int or str entity id")

    return op_type(**payload)


def decode_operation(raw: bytes | str) -> Operation:
    """Deserialize JSON bytes into an operation.

    Raises:
        DecodeFailed: if the payload is not a valid tagged operation.
    """
    try:
        data = orjson.loads(raw)
    except orjson.JSONDecodeError as e:
        raise DecodeFailed(f"Invalid JSON payload: {e}") from e

    if not isinstance(data, dict):
        raise DecodeFailed("Operation payload must be a JSON object")

    return operation_from_dict(data)
