"""Line-delimited MCP session over a pair of text streams.

One request is read, dispatched and answered before the next line is
read, so responses are always written in request order. Logging goes to
stderr; the writer stream only ever receives response lines.
"""

from __future__ import annotations

import io
import sys
import time
from enum import StrEnum
from typing import TYPE_CHECKING, Any, TextIO

import sentry_sdk
from pydantic import ValidationError

from clickhouse_mcp.core.client import ChClient
from clickhouse_mcp.core.exceptions import (
    InvalidToolCallError,
    MetadataError,
    ToolError,
)
from clickhouse_mcp.core.logging import get_logger
from clickhouse_mcp.core.metadata import MetadataService
from clickhouse_mcp.rpc.protocol import (
    JsonRpcRequest,
    JsonRpcResponse,
    RpcErrorCode,
    ToolCallParams,
    initialize_result,
    parse_request,
)
from clickhouse_mcp.rpc.tools import TOOL_DEFINITIONS, call_tool

if TYPE_CHECKING:
    from collections.abc import Callable

    from clickhouse_mcp.core.config import ResolvedConfig

NOT_CONNECTED_MESSAGE = "ClickHouse client not connected"


class SessionState(StrEnum):
    UNINITIALIZED = "uninitialized"
    READY = "ready"


class McpSession:
    """Protocol state, routing table and the synchronous read/dispatch loop."""

    def __init__(
        self,
        config: ResolvedConfig,
        *,
        client_factory: Callable[[ResolvedConfig], ChClient] = ChClient,
        reader: TextIO | None = None,
        writer: TextIO | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.config = config
        self.state = SessionState.UNINITIALIZED
        self._client_factory = client_factory
        self._reader = reader if reader is not None else sys.stdin
        if isinstance(self._reader, io.TextIOWrapper):
            # Undecodable bytes reach handle_line as U+FFFD and fail parsing.
            self._reader.reconfigure(errors="replace")
        self._writer = writer if writer is not None else sys.stdout
        self._sleep = sleep
        self._client: ChClient | None = None
        self._service: MetadataService | None = None
        self._handlers: dict[str, Callable[[JsonRpcRequest], JsonRpcResponse]] = {
            "initialize": self._handle_initialize,
            "initialized": self._handle_initialized,
            "notifications/initialized": self._handle_initialized,
            "ping": self._handle_ping,
            "tools/list": self._handle_tools_list,
            "tools/call": self._handle_tools_call,
        }

    @property
    def connected(self) -> bool:
        return self._service is not None

    def connect(self) -> None:
        """Create the backend client and the metadata service bound to it.

        Raises ConnectionFailedError when the server cannot be reached.
        """
        client = self._client_factory(self.config)
        client.connect()
        self._client = client
        self._service = MetadataService(
            client, self.config.retry_policy, sleep=self._sleep
        )

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
        self._client = None
        self._service = None

    # -- Loop --

    def run(self) -> None:
        """Serve requests until end of input."""
        log = get_logger("session")
        log.info("starting mcp session loop")
        try:
            while True:
                line = self._reader.readline()
                if not line:
                    log.info("end of input reached, shutting down")
                    break
                response = self.handle_line(line)
                if response is not None:
                    self._write(response)
        finally:
            self.close()

    def _write(self, response: JsonRpcResponse) -> None:
        log = get_logger("session")
        payload = response.to_line()
        log.debug("sending response", response=payload)
        self._writer.write(payload + "\n")
        self._writer.flush()

    def handle_line(self, line: str) -> JsonRpcResponse | None:
        """Turn one input line into its response. Blank lines get none."""
        log = get_logger("session")
        line = line.strip()
        if not line:
            return None

        log.debug("received line", line=line)
        try:
            request = parse_request(line)
        except ValidationError as e:
            log.error("failed to parse request", error=str(e), line=line)
            return JsonRpcResponse.failure(
                None, RpcErrorCode.PARSE_ERROR, "Parse error"
            )
        return self.dispatch(request)

    def dispatch(self, request: JsonRpcRequest) -> JsonRpcResponse:
        log = get_logger("session")
        log.debug("handling request", method=request.method, id=request.id)

        handler = self._handlers.get(request.method)
        if handler is None:
            log.warning("unknown method requested", method=request.method)
            return JsonRpcResponse.failure(
                request.id, RpcErrorCode.METHOD_NOT_FOUND, "Method not found"
            )

        with sentry_sdk.start_transaction(op="rpc", name=request.method):
            try:
                return handler(request)
            except Exception as e:
                log.exception("request handling failed", method=request.method)
                sentry_sdk.capture_exception(e)
                return JsonRpcResponse.failure(
                    request.id, RpcErrorCode.INTERNAL_ERROR, f"Internal error: {e}"
                )

    # -- Handlers --

    def _handle_initialize(self, request: JsonRpcRequest) -> JsonRpcResponse:
        log = get_logger("session")
        log.info("initializing mcp server")
        return JsonRpcResponse.success(request.id, initialize_result())

    def _handle_initialized(self, request: JsonRpcRequest) -> JsonRpcResponse:
        log = get_logger("session")
        if self.state is SessionState.UNINITIALIZED:
            self.state = SessionState.READY
            log.info("mcp server initialization completed")

        if not self.connected:
            try:
                self.connect()
            except MetadataError as e:
                log.warning("failed to connect to clickhouse", error=e.message)
        return JsonRpcResponse.success(request.id, {})

    def _handle_ping(self, request: JsonRpcRequest) -> JsonRpcResponse:
        return JsonRpcResponse.success(request.id, {})

    def _handle_tools_list(self, request: JsonRpcRequest) -> JsonRpcResponse:
        return JsonRpcResponse.success(request.id, {"tools": TOOL_DEFINITIONS})

    def _handle_tools_call(self, request: JsonRpcRequest) -> JsonRpcResponse:
        log = get_logger("session")
        if self._service is None:
            return JsonRpcResponse.failure(
                request.id, RpcErrorCode.INTERNAL_ERROR, NOT_CONNECTED_MESSAGE
            )

        try:
            params = _parse_tool_call(request.params)
            log.debug("calling tool", tool=params.name)
            text = call_tool(self._service, params.name, params.arguments or {})
        except ToolError as e:
            log.error("tool call rejected", error=e.message)
            return JsonRpcResponse.failure(
                request.id, RpcErrorCode.INTERNAL_ERROR, f"Internal error: {e.message}"
            )
        except MetadataError as e:
            log.error("tool call failed", error=e.message)
            return JsonRpcResponse.failure(
                request.id,
                RpcErrorCode.INTERNAL_ERROR,
                f"Tool execution failed: {e.message}",
            )

        return JsonRpcResponse.success(
            request.id, {"content": [{"type": "text", "text": text}]}
        )


def _parse_tool_call(params: Any) -> ToolCallParams:
    try:
        return ToolCallParams.model_validate(params if params is not None else {})
    except ValidationError as e:
        fields = ", ".join(str(err["loc"][0]) for err in e.errors() if err["loc"])
        raise InvalidToolCallError(fields or "expected an object") from e
