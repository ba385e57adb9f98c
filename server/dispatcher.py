"""
JSON-RPC Dispatcher - トランスポート非依存のメソッド振り分け

  initialize  -> サーバー情報・capabilities
  tools/list  -> 登録ツール一覧
  tools/call  -> 引数検証後にツール実行
"""

import json
import logging
import time
from typing import Any, Dict, List, Union

from pydantic import ValidationError

from config import SERVER_CONFIG
from models import JSONRPC_VERSION, MCPRequest
from server.protocol import (
    INTERNAL_ERROR,
    INVALID_PARAMS,
    INVALID_REQUEST,
    METHOD_NOT_FOUND,
    PARSE_ERROR,
    TOOL_INVOCATION_ERROR,
    ProtocolError,
    initialize_result,
    make_error,
    make_response,
)
from tools_manager import ToolsManager

logger = logging.getLogger(__name__)


def _validation_problems(exc: ValidationError) -> List[Dict[str, Any]]:
    return [
        {"loc": ".".join(str(part) for part in error["loc"]), "msg": error["msg"]}
        for error in exc.errors()
    ]


class Dispatcher:
    """1リクエストにつき必ず1レスポンスを返す"""

    def __init__(self, registry: ToolsManager, server_config: Dict[str, Any] = None):
        self.registry = registry
        self.server_config = server_config or SERVER_CONFIG

    async def handle(self, payload: Union[str, bytes, Dict[str, Any], Any]) -> Dict[str, Any]:
        start_time = time.time()

        if isinstance(payload, (str, bytes, bytearray)):
            try:
                payload = json.loads(payload)
            except (ValueError, UnicodeDecodeError, RecursionError) as e:
                logger.warning(f"[Dispatcher] Parse error: {e}")
                return make_error(None, PARSE_ERROR, "Parse error")

        if not isinstance(payload, dict):
            return make_error(None, INVALID_REQUEST, "Invalid Request: expected a single JSON object")

        request_id = payload.get("id")
        method = payload.get("method")
        if not method or not isinstance(method, str):
            return make_error(request_id, INVALID_REQUEST, "Invalid Request: method missing")

        request = MCPRequest.model_validate(payload)
        if request.jsonrpc != JSONRPC_VERSION:
            logger.warning(f"[Dispatcher] Unexpected jsonrpc version: {request.jsonrpc!r}")

        try:
            result = await self.route(request)
            response = make_response(request.id, result)
        except ProtocolError as e:
            logger.warning(f"[Dispatcher] {method} id={request.id} error {e.code}: {e.message}")
            response = make_error(request.id, e.code, e.message, e.data)
        except Exception as e:
            logger.error(f"[Dispatcher] Unhandled error in {method}: {e}", exc_info=True)
            response = make_error(request.id, INTERNAL_ERROR, "Internal error")

        logger.info(f"[Dispatcher] {method} id={request.id} done in {round((time.time() - start_time) * 1000, 2)}ms")
        return response

    async def route(self, request: MCPRequest) -> Dict[str, Any]:
        if request.method == "initialize":
            return initialize_result(
                server_name=self.server_config["name"],
                server_version=self.server_config["version"],
                protocol_version=self.server_config["protocol_version"],
            )

        if request.method == "tools/list":
            return {"tools": self.registry.list()}

        if request.method == "tools/call":
            return await self._handle_tools_call(request.params)

        raise ProtocolError(METHOD_NOT_FOUND, f"Method not found: {request.method}")

    async def _handle_tools_call(self, params: Any) -> Dict[str, Any]:
        if params is None:
            params = {}
        if not isinstance(params, dict):
            raise ProtocolError(INVALID_PARAMS, "Invalid params: params must be an object")

        name = params.get("name")
        if not name or not isinstance(name, str):
            raise ProtocolError(INVALID_PARAMS, "Invalid params: name is required")

        arguments = params.get("arguments")
        if arguments is None:
            arguments = {}
        if not isinstance(arguments, dict):
            raise ProtocolError(INVALID_PARAMS, "Invalid params: arguments must be an object")

        tool = self.registry.get(name)
        if tool is None:
            raise ProtocolError(METHOD_NOT_FOUND, f"Method not found: tool {name}")

        if tool.arguments_model is not None:
            try:
                tool.arguments_model.model_validate(arguments)
            except ValidationError as e:
                raise ProtocolError(
                    INVALID_PARAMS,
                    f"Invalid params for tool {name}",
                    _validation_problems(e),
                ) from e

        try:
            result = await tool.call(arguments)
        except Exception as e:
            logger.error(f"[Dispatcher] Tool {name} raised: {e}", exc_info=True)
            raise ProtocolError(TOOL_INVOCATION_ERROR, "Tool invocation error", str(e)) from e

        logger.info(f"[Dispatcher] Tool {name} completed")
        return result
