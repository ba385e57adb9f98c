"""
SSE Transport - サーバープッシュ型ストリーム

GET  /mcp/sse  initialize 結果を message イベントで送信後、一定間隔で ping
POST /mcp/sse  Dispatcher の結果を返却し、接続中の全ストリームへ message として配信
"""

import asyncio
import json
import logging
import uuid
from typing import Any, Awaitable, Callable, Dict, List

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse, StreamingResponse

from server.context import ServerContext
from server.dispatcher import Dispatcher

logger = logging.getLogger(__name__)

LISTENER_QUEUE_SIZE = 100


def format_event(event: str, data: Any) -> str:
    return f"event: {event}\ndata: {json.dumps(data, ensure_ascii=False, separators=(',', ':'))}\n\n"


class ListenerClosed(Exception):
    pass


class SseListener:
    """1ストリーム分の送信キュー"""

    def __init__(self, max_queue: int = LISTENER_QUEUE_SIZE):
        self.id = uuid.uuid4().hex[:8]
        self.queue: asyncio.Queue = asyncio.Queue(maxsize=max_queue)
        self.closed = False

    def send(self, event: str, data: Any):
        """書き込み失敗時は例外（QueueFull / ListenerClosed）"""
        if self.closed:
            raise ListenerClosed(f"listener {self.id} is closed")
        self.queue.put_nowait(format_event(event, data))

    def close(self):
        self.closed = True


class SseListenerRegistry:
    """接続中ストリームの登録簿（書き込み失敗で明示的に削除）"""

    def __init__(self):
        self._listeners: Dict[str, SseListener] = {}

    def add(self, listener: SseListener):
        self._listeners[listener.id] = listener
        logger.info(f"[SSE] Listener {listener.id} connected. listeners={len(self._listeners)}")

    def remove(self, listener: SseListener, reason: str) -> bool:
        listener.close()
        removed = self._listeners.pop(listener.id, None) is not None
        if removed:
            logger.info(f"[SSE] Listener {listener.id} removed ({reason}). listeners={len(self._listeners)}")
        return removed

    def broadcast(self, event: str, data: Any) -> List[str]:
        """全リスナーへ配信し、削除したリスナーIDを返す"""
        dropped = []
        for listener in list(self._listeners.values()):
            try:
                listener.send(event, data)
            except (asyncio.QueueFull, ListenerClosed) as e:
                self.remove(listener, f"write failed: {type(e).__name__}")
                dropped.append(listener.id)
        return dropped

    def __len__(self) -> int:
        return len(self._listeners)

    def __contains__(self, listener: SseListener) -> bool:
        return listener.id in self._listeners


async def sse_event_stream(
    dispatcher: Dispatcher,
    registry: SseListenerRegistry,
    listener: SseListener,
    is_disconnected: Callable[[], Awaitable[bool]],
    ping_interval: float,
):
    registry.add(listener)
    try:
        initialize = await dispatcher.handle({
            "jsonrpc": "2.0",
            "id": f"sse-{listener.id}",
            "method": "initialize",
        })
        yield format_event("message", initialize)
        while not await is_disconnected():
            try:
                chunk = await asyncio.wait_for(listener.queue.get(), timeout=ping_interval)
            except asyncio.TimeoutError:
                chunk = format_event("ping", {"ok": True})
            yield chunk
    finally:
        registry.remove(listener, "stream closed")


def build_sse_router(
    context: ServerContext,
    registry: SseListenerRegistry,
    ping_interval: float,
    path: str = "/mcp/sse",
) -> APIRouter:
    router = APIRouter()

    @router.get(path)
    async def mcp_sse_stream(request: Request):
        stream = sse_event_stream(
            context.dispatcher,
            registry,
            SseListener(),
            request.is_disconnected,
            ping_interval,
        )
        return StreamingResponse(
            stream,
            media_type="text/event-stream",
            headers={"Cache-Control": "no-cache", "Connection": "keep-alive", "X-Accel-Buffering": "no"},
        )

    @router.post(path)
    async def mcp_sse_post(request: Request):
        """結果を呼び出し元へ返し、同時に全ストリームへ配信"""
        body = await request.body()
        response = await context.dispatcher.handle(body)
        dropped = registry.broadcast("message", response)
        if dropped:
            logger.warning(f"[SSE] Dropped {len(dropped)} listeners during broadcast")
        return JSONResponse(content=response)

    return router
