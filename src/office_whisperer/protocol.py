"""JSON-RPC 2.0 wire models.

Pure data, no I/O. The dispatcher builds responses with these and the
transport serializes them with ``to_dict``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

# ── Standard error codes (JSON-RPC 2.0 §5.1) ────────────────────────
PARSE_ERROR = -32700
INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602
INTERNAL_ERROR = -32603

JSONRPC_VERSION = "2.0"


@dataclass(slots=True)
class JsonRpcError:
    """JSON-RPC 2.0 error object."""

    code: int
    message: str
    data: Any = None

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.data is not None:
            d["data"] = self.data
        return d


@dataclass(slots=True)
class JsonRpcRequest:
    """Inbound request. ``id`` is None for notifications."""

    method: Any
    params: dict[str, Any] = field(default_factory=dict)
    id: Any = None
    has_id: bool = False

    @property
    def is_notification(self) -> bool:
        return not self.has_id

    @classmethod
    def from_dict(cls, raw: Any) -> "JsonRpcRequest":
        """Parse a decoded JSON value; raises ``ValueError`` when it is not an object.

        ``method`` is kept as given (possibly missing or not a string) so the
        dispatcher can answer it with method-not-found. Params that are not an
        object are treated as empty.
        """
        if not isinstance(raw, dict):
            raise ValueError("request must be a JSON object")
        params = raw.get("params")
        if not isinstance(params, dict):
            params = {}
        return cls(method=raw.get("method"), params=params, id=raw.get("id"), has_id="id" in raw)


@dataclass(slots=True)
class JsonRpcResponse:
    """Outbound response: exactly one of ``result`` or ``error``."""

    id: Any
    result: Any = None
    error: JsonRpcError | None = None

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {"jsonrpc": JSONRPC_VERSION, "id": self.id}
        if self.error is not None:
            d["error"] = self.error.to_dict()
        else:
            d["result"] = self.result
        return d

    # -- Factories -----------------------------------------------------
    @classmethod
    def success(cls, req_id: Any, result: Any) -> "JsonRpcResponse":
        return cls(id=req_id, result=result)

    @classmethod
    def fail(cls, req_id: Any, code: int, message: str, data: Any = None) -> "JsonRpcResponse":
        return cls(id=req_id, error=JsonRpcError(code=code, message=message, data=data))


def text_result(text: str) -> dict[str, Any]:
    """Wrap a status string in the tools/call result envelope."""
    return {"content": [{"type": "text", "text": text}]}
