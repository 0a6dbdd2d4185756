"""JSON-RPC 2.0 envelope models and MCP handshake constants."""

from __future__ import annotations

import json
from enum import IntEnum
from typing import Any

from pydantic import BaseModel

from clickhouse_mcp.__about__ import __version__

JSONRPC_VERSION = "2.0"
PROTOCOL_VERSION = "2024-11-05"
SERVER_NAME = "clickhouse-mcp"

SERVER_CAPABILITIES: dict[str, Any] = {
    "tools": {"listChanged": False},
    "resources": {},
    "prompts": {},
}


class RpcErrorCode(IntEnum):
    PARSE_ERROR = -32700
    METHOD_NOT_FOUND = -32601
    INTERNAL_ERROR = -32603


class JsonRpcRequest(BaseModel):
    jsonrpc: str
    method: str
    params: Any = None
    id: Any = None


class RpcError(BaseModel):
    code: int
    message: str


class JsonRpcResponse(BaseModel):
    """A response envelope; exactly one of result/error is set."""

    jsonrpc: str = JSONRPC_VERSION
    id: Any = None
    result: Any = None
    error: RpcError | None = None

    @classmethod
    def success(cls, request_id: Any, result: Any) -> JsonRpcResponse:
        return cls(id=request_id, result=result)

    @classmethod
    def failure(cls, request_id: Any, code: int, message: str) -> JsonRpcResponse:
        return cls(id=request_id, error=RpcError(code=code, message=message))

    def to_dict(self) -> dict[str, Any]:
        # id is always present, null when the request id is unknown.
        data: dict[str, Any] = {"jsonrpc": self.jsonrpc, "id": self.id}
        if self.error is not None:
            data["error"] = self.error.model_dump()
        else:
            data["result"] = self.result if self.result is not None else {}
        return data

    def to_line(self) -> str:
        return json.dumps(self.to_dict(), default=str)


class ToolCallParams(BaseModel):
    name: str
    arguments: dict[str, Any] | None = None


def parse_request(line: str) -> JsonRpcRequest:
    """Parse one input line. Raises pydantic.ValidationError on bad input."""
    return JsonRpcRequest.model_validate_json(line)


def initialize_result() -> dict[str, Any]:
    return {
        "protocolVersion": PROTOCOL_VERSION,
        "capabilities": SERVER_CAPABILITIES,
        "serverInfo": {"name": SERVER_NAME, "version": __version__},
    }
