"""
JSON-RPC 2.0 エラーコードとレスポンス生成
"""

from typing import Any, Dict

from models import MCPResponse, RPCError

PARSE_ERROR = -32700
INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602
INTERNAL_ERROR = -32603
TOOL_INVOCATION_ERROR = -32000


class ProtocolError(Exception):
    """JSON-RPC プロトコルエラー"""

    def __init__(self, code: int, message: str, data: Any = None):
        self.code = code
        self.message = message
        self.data = data
        super().__init__(message)


def make_response(request_id: Any, result: Any) -> Dict[str, Any]:
    return MCPResponse(id=request_id, result=result).to_dict()


def make_error(request_id: Any, code: int, message: str, data: Any = None) -> Dict[str, Any]:
    return MCPResponse(id=request_id, error=RPCError(code=code, message=message, data=data)).to_dict()


def initialize_result(server_name: str, server_version: str, protocol_version: str) -> Dict[str, Any]:
    return {
        "protocolVersion": protocol_version,
        "serverInfo": {"name": server_name, "version": server_version},
        "capabilities": {"tools": {"listChanged": False}},
    }
