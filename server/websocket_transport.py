"""
WebSocket Transport - 永続双方向接続（Connected -> (受信 -> Dispatch -> 送信)* -> Closed）
"""

import asyncio
import json
import logging
from typing import Any, List, Set, Union

from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from fastapi.responses import JSONResponse

from server.context import ServerContext
from server.dispatcher import Dispatcher

logger = logging.getLogger(__name__)

SUPPORTED_SUBPROTOCOLS = ("mcp", "jsonrpc")
DEFAULT_SUBPROTOCOL = "mcp"


def negotiate_subprotocol(offered: Union[str, List[str], None]) -> str:
    """mcp > jsonrpc > 既定 mcp（未指定でも拒否しない）"""
    if isinstance(offered, str):
        offered = offered.split(",")
    requested = [s.strip() for s in (offered or []) if s and s.strip()]
    for protocol in SUPPORTED_SUBPROTOCOLS:
        if protocol in requested:
            return protocol
    return DEFAULT_SUBPROTOCOL


def upgrade_required(message: str = "WebSocket-only endpoint. Use ws/wss upgrade.") -> JSONResponse:
    return JSONResponse(
        status_code=426,
        content={"error": message},
        headers={"Upgrade": "websocket"},
    )


class WebSocketConnection:
    def __init__(self, websocket: WebSocket, dispatcher: Dispatcher, subprotocol: str):
        self.websocket = websocket
        self.dispatcher = dispatcher
        self.subprotocol = subprotocol
        self.state = "connected"
        self._pending: Set[asyncio.Task] = set()

    async def run(self):
        client = self.websocket.client
        logger.info(f"[WebSocket] Connected from {client.host if client else '?'} subprotocol={self.subprotocol}")
        try:
            while True:
                message = await self.websocket.receive()
                if message["type"] == "websocket.disconnect":
                    break
                payload: Any = message.get("text")
                if payload is None:
                    payload = message.get("bytes") or b""
                task = asyncio.create_task(self._dispatch(payload))
                self._pending.add(task)
                task.add_done_callback(self._pending.discard)
        finally:
            self.state = "closed"
            # 実行中のツール呼び出しは完了まで待つ（送信は破棄）
            if self._pending:
                await asyncio.gather(*list(self._pending), return_exceptions=True)
            logger.info("[WebSocket] Closed")

    async def _dispatch(self, payload: Any):
        response = await self.dispatcher.handle(payload)
        if self.state == "closed":
            logger.debug(f"[WebSocket] Dropping response id={response.get('id')} for closed connection")
            return
        try:
            await self.websocket.send_text(json.dumps(response, ensure_ascii=False))
        except (WebSocketDisconnect, RuntimeError) as e:
            logger.debug(f"[WebSocket] Send failed for id={response.get('id')}: {e}")


def build_websocket_router(context: ServerContext, path: str = "/mcp") -> APIRouter:
    router = APIRouter()

    @router.get(path)
    async def websocket_only():
        """アップグレードなしのアクセスは 426"""
        return upgrade_required()

    @router.websocket(path)
    async def websocket_endpoint(websocket: WebSocket):
        offered = websocket.scope.get("subprotocols") or []
        selected = negotiate_subprotocol(offered)
        # クライアントが提示していないサブプロトコルはヘッダで返さない
        await websocket.accept(subprotocol=selected if selected in offered else None)
        await WebSocketConnection(websocket, context.dispatcher, selected).run()

    return router
