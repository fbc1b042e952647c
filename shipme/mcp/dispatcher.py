from __future__ import annotations

import inspect
import json
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Mapping, Optional, Type, Union

import structlog
from pydantic import BaseModel

from .errors import DuplicateToolError, ShipMeError, UnknownToolError
from .metrics import TOOL_CALLS, TOOL_LATENCY
from .schema import ToolDefinition, compile_input_model, validate_arguments


logger = structlog.get_logger(__name__)

ToolHandler = Callable[[Dict[str, Any]], Union[Any, Awaitable[Any]]]


class ToolCallRequest(BaseModel):
    """A named call as sent by the orchestrator."""
    name: str
    arguments: Dict[str, Any] = {}


class ToolCallResult(BaseModel):
    """Normalized outcome of one tool call: success with data, or failure with a message."""
    success: bool
    data: Any = None
    error: Optional[str] = None

    @classmethod
    def ok(cls, data: Any = None) -> "ToolCallResult":
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, message: str) -> "ToolCallResult":
        return cls(success=False, error=message)

    def to_envelope(self) -> Dict[str, Any]:
        if not self.success:
            return {"success": False, "error": self.error or "Unknown error"}
        if isinstance(self.data, Mapping):
            envelope = {k: v for k, v in self.data.items() if k not in ("success", "error")}
            return {"success": True, **envelope}
        if self.data is None:
            return {"success": True}
        return {"success": True, "data": self.data}

    def to_json(self) -> str:
        try:
            return json.dumps(self.to_envelope(), indent=2, ensure_ascii=False, default=str)
        except (TypeError, ValueError) as exc:
            return json.dumps({"success": False, "error": f"Result could not be serialized: {exc}"})


@dataclass(frozen=True)
class Capability:
    """A tool definition paired with the handler that implements it."""
    definition: ToolDefinition
    handler: ToolHandler


@dataclass(frozen=True)
class _RegisteredTool:
    definition: ToolDefinition
    handler: ToolHandler
    input_model: Type[BaseModel]


def _error_message(exc: BaseException) -> str:
    if isinstance(exc, ShipMeError):
        return exc.message
    return str(exc) or exc.__class__.__name__


class ToolDispatcher:
    """Routes named tool calls to handlers and normalizes every outcome.

    The dispatcher keeps no business state: only the registered tools.
    Nothing raised by a handler escapes ``invoke``.
    """

    def __init__(self, name: str = "shipme") -> None:
        self.name = name
        self._tools: Dict[str, _RegisteredTool] = {}

    def register(self, definition: ToolDefinition, handler: ToolHandler) -> None:
        """Register a tool. Raises DuplicateToolError if the name is taken."""
        if definition.name in self._tools:
            raise DuplicateToolError(f"Tool '{definition.name}' is already registered")
        model = compile_input_model(f"{definition.name}_arguments", definition.input_schema)
        self._tools[definition.name] = _RegisteredTool(definition, handler, model)
        logger.debug("tool_registered", server=self.name, tool=definition.name)

    def register_all(self, capabilities: Iterable[Capability]) -> None:
        for capability in capabilities:
            self.register(capability.definition, capability.handler)

    def list(self) -> List[ToolDefinition]:
        return [tool.definition for tool in self._tools.values()]

    def get(self, name: str) -> Optional[ToolDefinition]:
        tool = self._tools.get(name)
        return tool.definition if tool else None

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)

    async def invoke(self, name: str, arguments: Optional[Mapping[str, Any]] = None) -> ToolCallResult:
        """Call a tool by name. Always returns a ToolCallResult, never raises."""
        started = time.perf_counter()
        tool = self._tools.get(name)
        if tool is None:
            TOOL_CALLS.labels(name, "unknown").inc()
            logger.warning("tool_call_unknown", server=self.name, tool=name)
            return ToolCallResult.fail(UnknownToolError(f"Unknown tool: {name}").message)

        try:
            validated = validate_arguments(name, tool.input_model, tool.definition.input_schema, arguments)
            result = tool.handler(validated)
            if inspect.isawaitable(result):
                result = await result
        except Exception as exc:
            message = _error_message(exc)
            code = exc.code if isinstance(exc, ShipMeError) else "internal"
            duration = time.perf_counter() - started
            TOOL_CALLS.labels(name, code).inc()
            TOOL_LATENCY.labels(name).observe(duration)
            logger.error(
                "tool_call_failed",
                server=self.name,
                tool=name,
                code=code,
                error=message,
                duration_seconds=round(duration, 3),
            )
            return ToolCallResult.fail(message)

        duration = time.perf_counter() - started
        TOOL_CALLS.labels(name, "ok").inc()
        TOOL_LATENCY.labels(name).observe(duration)
        logger.info("tool_call_succeeded", server=self.name, tool=name, duration_seconds=round(duration, 3))
        return ToolCallResult.ok(result)

    async def handle(self, request: ToolCallRequest) -> ToolCallResult:
        return await self.invoke(request.name, request.arguments)
