import json

import pytest

from shipme.mcp.dispatcher import Capability, ToolCallRequest, ToolCallResult, ToolDispatcher
from shipme.mcp.errors import DuplicateToolError, PermanentError
from shipme.mcp.schema import ToolDefinition


ECHO = ToolDefinition(
    name="echo",
    description="Echo a message",
    inputSchema={
        "type": "object",
        "properties": {
            "message": {"type": "string"},
            "times": {"type": "integer", "default": 1},
            "mode": {"type": "string", "enum": ["plain", "loud"], "default": "plain"},
        },
        "required": ["message"],
    },
)


def make_echo_dispatcher():
    received = []

    async def echo(args):
        received.append(args)
        text = args["message"] * args["times"]
        return {"echo": text.upper() if args["mode"] == "loud" else text}

    dispatcher = ToolDispatcher("test")
    dispatcher.register(ECHO, echo)
    return dispatcher, received


@pytest.mark.asyncio
async def test_successful_call_fills_defaults():
    dispatcher, received = make_echo_dispatcher()

    result = await dispatcher.invoke("echo", {"message": "hi"})

    assert result.success is True
    assert result.data == {"echo": "hi"}
    assert received == [{"message": "hi", "times": 1, "mode": "plain"}]


@pytest.mark.asyncio
async def test_unknown_tool_is_reported_in_band():
    dispatcher, _ = make_echo_dispatcher()

    result = await dispatcher.invoke("nope", {})

    assert result.success is False
    assert result.error == "Unknown tool: nope"


@pytest.mark.asyncio
async def test_missing_required_argument_never_reaches_handler():
    dispatcher, received = make_echo_dispatcher()

    result = await dispatcher.invoke("echo", {"times": 2})

    assert result.success is False
    assert "message" in result.error
    assert received == []


@pytest.mark.asyncio
async def test_wrong_type_and_enum_violations_fail_validation():
    dispatcher, received = make_echo_dispatcher()

    wrong_type = await dispatcher.invoke("echo", {"message": 5})
    bad_enum = await dispatcher.invoke("echo", {"message": "x", "mode": "whisper"})

    assert wrong_type.success is False
    assert bad_enum.success is False
    assert "mode" in bad_enum.error
    assert received == []


@pytest.mark.asyncio
async def test_handler_exception_becomes_failure_result():
    dispatcher = ToolDispatcher("test")

    async def boom(args):
        raise RuntimeError("boom")

    dispatcher.register(ToolDefinition(name="boom"), boom)

    result = await dispatcher.invoke("boom", {})

    assert result == ToolCallResult(success=False, error="boom")


@pytest.mark.asyncio
async def test_shipme_error_message_is_used():
    dispatcher = ToolDispatcher("test")

    def fail(args):
        raise PermanentError("Project not found", status=404, code="not_found")

    dispatcher.register(ToolDefinition(name="fail"), fail)

    result = await dispatcher.invoke("fail", None)

    assert result.success is False
    assert result.error == "Project not found"


@pytest.mark.asyncio
async def test_sync_handlers_and_extra_arguments_are_supported():
    dispatcher = ToolDispatcher("test")
    dispatcher.register(ToolDefinition(name="sync"), lambda args: {"args": args})

    result = await dispatcher.handle(ToolCallRequest(name="sync", arguments={"anything": [1, 2]}))

    assert result.success is True
    assert result.data == {"args": {"anything": [1, 2]}}


def test_duplicate_registration_is_rejected():
    dispatcher, _ = make_echo_dispatcher()

    with pytest.raises(DuplicateToolError):
        dispatcher.register(ECHO, lambda args: None)

    assert len(dispatcher) == 1


def test_list_preserves_registration_order():
    dispatcher = ToolDispatcher("test")
    dispatcher.register_all(
        Capability(ToolDefinition(name=name), lambda args: None) for name in ("b", "a", "c")
    )

    assert [d.name for d in dispatcher.list()] == ["b", "a", "c"]
    assert "a" in dispatcher
    assert dispatcher.get("c").name == "c"
    assert dispatcher.get("zzz") is None


def test_envelope_shapes():
    assert ToolCallResult.ok({"id": "x"}).to_envelope() == {"success": True, "id": "x"}
    assert ToolCallResult.ok([1, 2]).to_envelope() == {"success": True, "data": [1, 2]}
    assert ToolCallResult.ok().to_envelope() == {"success": True}
    assert ToolCallResult.fail("nope").to_envelope() == {"success": False, "error": "nope"}

    decoded = json.loads(ToolCallResult.ok({"n": 1}).to_json())
    assert decoded == {"success": True, "n": 1}


def test_tool_definition_wire_form():
    wire = ECHO.to_wire()
    assert wire["name"] == "echo"
    assert wire["inputSchema"]["required"] == ["message"]
    wire["inputSchema"]["required"].append("mutated")
    assert ECHO.input_schema["required"] == ["message"]
