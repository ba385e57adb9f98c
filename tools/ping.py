# QIQ MCP - Ping Tool

from typing import Any, Dict

from models import PingArguments, ToolDefinition


async def ping(params: Dict[str, Any]) -> Dict[str, Any]:
    arguments = PingArguments.model_validate(params)
    return {"reply": f"pong:{arguments.status}" if arguments.status else "pong"}


PING_TOOL = ToolDefinition(
    name="ping",
    description="Returns pong",
    inputSchema={
        "type": "object",
        "properties": {"status": {"type": "string"}},
        "additionalProperties": False,
    },
    outputSchema={
        "type": "object",
        "properties": {"reply": {"type": "string"}},
        "required": ["reply"],
        "additionalProperties": False,
    },
    arguments_model=PingArguments,
    call=ping,
)
