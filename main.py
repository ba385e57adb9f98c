#!/usr/bin/env python3
"""
QIQ MCP Server - 商品検索ツールを JSON-RPC で公開
Transports: WebSocket /mcp, HTTP /mcp/http, SSE /mcp/sse
"""

import logging
from datetime import datetime
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from config import LOG_CONFIG, SERVER_CONFIG
from server.context import ServerContext, create_context
from server.http_transport import build_http_router
from server.sse_transport import SseListenerRegistry, build_sse_router
from server.websocket_transport import build_websocket_router

# ログ設定
logging.basicConfig(level=getattr(logging, LOG_CONFIG["level"], logging.INFO))
logger = logging.getLogger(__name__)


def create_app(context: Optional[ServerContext] = None) -> FastAPI:
    """FastAPI アプリ生成（コンテキスト単位で独立）"""
    context = context or create_context()
    server_config = context.server_config

    app = FastAPI(title=server_config["title"], version=server_config["version"])
    app.state.context = context
    app.state.sse_listeners = SseListenerRegistry()

    # CORS設定
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/")
    async def root():
        return {
            "service": server_config["name"],
            "version": server_config["version"],
            "status": "ok",
            "endpoints": {"websocket": "/mcp", "http": "/mcp/http", "sse": "/mcp/sse"},
            "timestamp": datetime.now().isoformat(),
        }

    @app.get("/health")
    async def health_check():
        return {
            "status": "healthy",
            "service": server_config["name"],
            "timestamp": datetime.now().isoformat(),
        }

    @app.get("/tools")
    async def list_available_tools():
        """MCPプロトコル準拠のツール一覧"""
        return {"tools": context.registry.list()}

    app.include_router(build_websocket_router(context))
    app.include_router(build_http_router(context))
    app.include_router(build_sse_router(
        context,
        app.state.sse_listeners,
        ping_interval=server_config.get("sse_ping_interval", 25.0),
    ))

    logger.info(f"[create_app] {server_config['name']} v{server_config['version']} ready")
    return app


app = create_app()

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=SERVER_CONFIG["host"], port=SERVER_CONFIG["port"])
