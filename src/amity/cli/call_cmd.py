"""CLI command for issuing one operation over the bridge.

Usage:
    amity call add-node 1
    amity call add-edge 1 2 --requester 42
    amity call list-neighbors 1
    amity call recommend 1 --depth 2 --threshold 2 --timeout 5

Exit codes:
    0  success, payload printed as JSON
    1  the server rejected the operation (do not retry blindly)
    2  the operation never reached the server or no reply arrived (safe to retry)
"""

from __future__ import annotations

import asyncio
import re
from dataclasses import fields

import typer

from amity.core.operations import (
    OPERATION_TYPES,
    EntityId,
    Operation,
    OperationKind,
    Recommend,
)

EXIT_REMOTE_ERROR = 1
EXIT_RETRY_SAFE = 2

_INT_PATTERN = re.compile(r"^-?\d+$")


def parse_entity_id(token: str) -> EntityId:
    """Integers stay integers; anything else is a string id."""
    if _INT_PATTERN.match(token):
        return int(token)
    return token


def parse_kind(name: str) -> OperationKind:
    """Accept ``AddEdge``, ``add-edge`` or ``add_edge``."""
    normalized = name.replace("-", "").replace("_", "").lower()
    for kind in OperationKind:
        if kind.value.lower() == normalized:
            return kind
    choices = ", ".join(k.value for k in OperationKind)
    raise typer.BadParameter(f"Unknown operation {name!r}. Choose from: {choices}")


def build_operation(
    kind: OperationKind,
    args: list[str],
    depth: int | None = None,
    threshold: int | None = None,
) -> Operation:
    """Build an operation from positional entity ids."""
    op_type = OPERATION_TYPES[kind]
    id_fields = [f.name for f in fields(op_type) if f.name not in ("depth", "threshold")]
    if len(args) != len(id_fields):
        raise typer.BadParameter(
            f"{kind.value} takes {len(id_fields)} id(s) ({', '.join(id_fields)}), got {len(args)}"
        )
    ids = [parse_entity_id(arg) for arg in args]
    if op_type is Recommend:
        return Recommend(ids[0], depth=depth, threshold=threshold)
    if depth is not None or threshold is not None:
        raise typer.BadParameter("--depth/--threshold only apply to recommend")
    return op_type(*ids)


def call(
    kind: str = typer.Argument(..., help="Operation, e.g. add-edge, list-neighbors"),
    args: list[str] = typer.Argument(None, help="Entity ids"),
    requester: str = typer.Option(
        "cli",
        "--requester",
        "-r",
        help="Requester id used for correlation keys",
    ),
    timeout: float | None = typer.Option(
        None,
        "--timeout",
        "-t",
        help="Seconds to wait for the reply (default: from settings)",
    ),
    depth: int | None = typer.Option(None, "--depth", min=1, help="Recommend: traversal depth"),
    threshold: int | None = typer.Option(
        None, "--threshold", min=1, help="Recommend: minimum number of paths"
    ),
) -> None:
    """Publish one operation and print the payload of its reply."""
    operation = build_operation(parse_kind(kind), args or [], depth, threshold)
    asyncio.run(_call(parse_entity_id(requester), operation, timeout))


async def _call(requester_id: EntityId, operation: Operation, timeout: float | None) -> None:
    """Async implementation of call command."""
    from rich.console import Console

    from amity.core.errors import AmityError, BridgeError, Unavailable
    from amity.runtime import build_client, shutdown

    console = Console()
    err_console = Console(stderr=True)

    try:
        client = await build_client()
        result = await client.call(requester_id, operation, timeout)
    except Unavailable as e:
        err_console.print(f"[red]Unavailable:[/red] {e.detail}")
        raise typer.Exit(code=EXIT_RETRY_SAFE) from e
    except BridgeError as e:
        err_console.print(f"[red]{type(e).__name__}:[/red] {e}")
        code = EXIT_RETRY_SAFE if e.retry_safe else EXIT_REMOTE_ERROR
        raise typer.Exit(code=code) from e
    except AmityError as e:
        err_console.print(f"[red]{type(e).__name__}:[/red] {e}")
        raise typer.Exit(code=EXIT_REMOTE_ERROR) from e
    finally:
        await shutdown()

    console.print_json(data=result)
