"""Error taxonomy for Amity.

Backend faults:
- StoreError / CacheError / BusError / ReplySinkError wrap collaborator failures
- Unavailable: the correlation sequence counter cannot be reached

Server-side processing:
- DecodeFailed: malformed inbound message (carries the recovered key, if any)
- CacheRefreshFailed: mutation committed, cache refresh did not succeed

Client-visible (BridgeError):
- PublishFailed: never reached the bus (retry is safe)
- CallTimeout: no reply within the deadline (retry is safe for the bridge)
- ReplyFailed: published, but the reply could not be read (as CallTimeout)
- RemoteError: the server processed and rejected the operation
"""

from __future__ import annotations

from typing import Any


class AmityError(Exception):
    """Base class for all Amity errors."""


class StoreError(AmityError):
    """Persistence fault in the graph store."""

    def __init__(self, detail: str):
        self.detail = detail
        super().__init__(detail)


class CacheError(AmityError):
    """Fault in the neighbor cache."""

    def __init__(self, detail: str):
        self.detail = detail
        super().__init__(detail)


class BusError(AmityError):
    """Fault publishing to or consuming from the message bus."""

    def __init__(self, detail: str):
        self.detail = detail
        super().__init__(detail)


class ReplySinkError(AmityError):
    """Fault delivering or awaiting a reply envelope."""

    def __init__(self, detail: str):
        self.detail = detail
        super().__init__(detail)


class Unavailable(AmityError):
    """The backing store of the sequence counter is unreachable."""

    def __init__(self, detail: str):
        self.detail = detail
        super().__init__(detail)


class DecodeFailed(AmityError):
    """A payload could not be decoded into an operation or envelope."""

    def __init__(self, detail: str, key: str | None = None):
        self.detail = detail
        self.key = key
        super().__init__(detail)


class UnknownOperation(DecodeFailed):
    """The payload names an operation kind that does not exist."""

    def __init__(self, kind: Any, key: str | None = None):
        self.kind = kind
        super().__init__(f"Unknown operation kind: {kind!r}", key=key)


class CacheRefreshFailed(AmityError):
    """The mutation was committed but refreshing the cache failed.

    The cache may be stale for ``entity_ids`` until the next successful
    mutation touching them.
    """

    def __init__(self, entity_ids: list[Any], cause: BaseException):
        self.entity_ids = entity_ids
        self.cause = cause
        ids = ", ".join(str(i) for i in entity_ids)
        super().__init__(f"Mutation committed but cache refresh failed for [{ids}]: {cause}")


class BridgeError(AmityError):
    """Base class for errors returned to a bridge caller."""

    retry_safe: bool = False

    def __init__(self, message: str, key: str | None = None):
        self.key = key
        super().__init__(message)


class PublishFailed(BridgeError):
    """The request never reached the bus."""

    retry_safe = True


class CallTimeout(BridgeError):
    """No reply arrived within the timeout."""

    retry_safe = True

    def __init__(self, key: str, timeout: float):
        self.timeout = timeout
        super().__init__(f"No reply for {key} within {timeout}s", key=key)


class ReplyFailed(BridgeError):
    """The request was published but its reply could not be read.

    Covers an unreachable reply slot store and a garbled reply envelope.
    Like CallTimeout, retry is safe for the bridge but the operation may
    already have been applied.
    """

    retry_safe = True

    def __init__(self, detail: str, key: str | None = None):
        self.detail = detail
        super().__init__(detail, key=key)


class RemoteError(BridgeError):
    """The server processed the operation and reported a failure."""

    retry_safe = False

    def __init__(self, detail: str, key: str | None = None):
        self.detail = detail
        super().__init__(detail, key=key)
