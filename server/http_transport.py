"""
HTTP Transport - POST 1リクエスト / 1レスポンス
"""

import logging

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from server.context import ServerContext
from server.websocket_transport import upgrade_required

logger = logging.getLogger(__name__)


def build_http_router(context: ServerContext, path: str = "/mcp/http") -> APIRouter:
    router = APIRouter()

    @router.post(path)
    async def mcp_http(request: Request):
        """MCPプロトコルエンドポイント（JSON-RPC エンベロープを返す）"""
        body = await request.body()
        response = await context.dispatcher.handle(body)
        return JSONResponse(content=response)

    @router.get(path)
    async def mcp_http_get():
        return upgrade_required("JSON-RPC over HTTP requires POST. Use /mcp for WebSocket or /mcp/sse for streaming.")

    return router
