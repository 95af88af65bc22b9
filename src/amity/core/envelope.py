"""Reply envelope exchanged between the dispatcher and a waiting caller.

Wire format:
    {"status": "ok", "data": <payload>}
    {"status": "error", "detail": "<message>"}
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

import orjson

from amity.core.errors import DecodeFailed, RemoteError


class ReplyStatus(str, Enum):
    """Outcome of a processed operation."""

    OK = "ok"
    ERROR = "error"


@dataclass(frozen=True, slots=True)
class ReplyEnvelope:
    """Tagged success/error result for exactly one correlation key."""

    status: ReplyStatus
    data: Any = None
    detail: str | None = None

    @classmethod
    def ok(cls, data: Any = None) -> ReplyEnvelope:
        return cls(status=ReplyStatus.OK, data=data)

    @classmethod
    def error(cls, detail: str) -> ReplyEnvelope:
        return cls(status=ReplyStatus.ERROR, detail=detail)

    @property
    def is_ok(self) -> bool:
        return self.status == ReplyStatus.OK

    def to_dict(self) -> dict[str, Any]:
        """Serialize envelope to its wire dictionary."""
        if self.is_ok:
            return {"status": ReplyStatus.OK.value, "data": self.data}
        return {"status": ReplyStatus.ERROR.value, "detail": self.detail or ""}

    def encode(self) -> bytes:
        """Serialize envelope to JSON bytes."""
        return orjson.dumps(self.to_dict())

    @classmethod
    def decode(cls, raw: bytes | str) -> ReplyEnvelope:
        """Deserialize JSON bytes into an envelope.

        Raises:
            DecodeFailed: if the payload is not a valid envelope.
        """
        try:
            data = orjson.loads(raw)
        except orjson.JSONDecodeError as e:
            raise DecodeFailed(f"Invalid reply envelope: {e}") from e

        if not isinstance(data, dict):
            raise DecodeFailed("Reply envelope must be a JSON object")

        status = data.get("status")
        if status == ReplyStatus.OK.value:
            return cls.ok(data.get("data"))
        if status == ReplyStatus.ERROR.value:
            return cls.error(str(data.get("detail", "")))
        raise DecodeFailed(f"Unknown reply status: {status!r}")

    def unwrap(self, key: str | None = None) -> Any:
        """Return the payload, or raise RemoteError for an error envelope."""
        if self.is_ok:
            return self.data
        raise RemoteError(self.detail or "", key=key)
