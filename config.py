# QIQ MCP Configuration

import os
from typing import Any, Dict, List


def _split_list(raw: str) -> List[str]:
    """カンマ区切り文字列をリストに変換"""
    return [item.strip() for item in (raw or "").split(",") if item.strip()]


# サーバー設定
SERVER_CONFIG = {
    "title": "QIQ MCP Server",
    "name": "QIQ_MCP",
    "version": "1.0.0",
    "protocol_version": "2024-11-05",
    "host": os.environ.get("MCP_HOST", "0.0.0.0"),
    "port": int(os.environ.get("PORT") or os.environ.get("MCP_PORT") or "3001"),
    "sse_ping_interval": float(os.environ.get("MCP_SSE_PING_INTERVAL", "25")),
}

# 画像・スペックシートURLの許可プレフィックス
MEDIA_CONFIG = {
    "approved_prefixes": _split_list(
        os.environ.get(
            "QIQ_MEDIA_PREFIXES",
            "https://cdn.quickitquote.com/,https://images.quickitquote.com/",
        )
    ),
    "catalog_url": "https://quickitquote.com/catalog/",
}

# ログ設定
LOG_CONFIG = {
    "level": os.environ.get("LOG_LEVEL", "INFO").upper(),
}


def load_typesense_config() -> Dict[str, Any]:
    """Typesense接続設定を環境変数から取得"""
    api_key = next(
        (
            value
            for value in (
                os.environ.get("TYPESENSE_SEARCH_ONLY_KEY"),
                os.environ.get("TYPESENSE_API_KEY"),
                os.environ.get("TYPESENSE_ADMIN_API_KEY"),
            )
            if value and value.strip()
        ),
        "",
    )
    port = os.environ.get("TYPESENSE_PORT")
    return {
        "host": os.environ.get("TYPESENSE_HOST", ""),
        "protocol": os.environ.get("TYPESENSE_PROTOCOL", "https").lower(),
        "port": int(port) if port else None,
        "api_key": api_key.strip(),
        "collection": os.environ.get("TYPESENSE_COLLECTION", "quickitquote_products"),
        "query_by": _split_list(os.environ.get("TYPESENSE_QUERY_BY", "")),
        "connection_timeout": float(os.environ.get("TYPESENSE_TIMEOUT", "10")),
    }


TYPESENSE_CONFIG = load_typesense_config()
