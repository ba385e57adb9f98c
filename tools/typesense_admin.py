# QIQ MCP - Typesense Runtime Configuration & Diagnostics

import asyncio
import logging
from typing import Any, Dict, List, Optional

from models import ToolDefinition, TypesenseConfigPatch, TypesenseHealthArguments, TypesenseSettings
from tools.typesense_search import TypesenseSearchAdapter

logger = logging.getLogger(__name__)


def effective_config(settings: TypesenseSettings) -> Dict[str, Any]:
    """公開可能な設定値（APIキーは含めない）"""
    return {
        "host": settings.host,
        "protocol": settings.protocol,
        "port": settings.effective_port,
        "collection": settings.collection,
        "queryBy": list(settings.query_by),
    }


def apply_config_patch(adapter: TypesenseSearchAdapter, patch: TypesenseConfigPatch) -> Dict[str, Any]:
    """指定フィールドのみ反映し、クライアントとキャッシュを破棄"""
    update = patch.to_settings_update()
    settings = adapter.reconfigure(update)
    return {
        "applied": sorted(update),
        "effective": effective_config(settings),
        "keyLength": len(settings.api_key),
    }


def _most_informative(errors: List[Exception]) -> Optional[str]:
    """HTTPステータス付きのエラーを優先"""
    if not errors:
        return None
    with_status = [e for e in errors if getattr(e, "status_code", None)]
    return str((with_status or errors)[0])


async def check_health(adapter: TypesenseSearchAdapter) -> Dict[str, Any]:
    settings, client = adapter.snapshot()
    report = dict(effective_config(settings))
    report.pop("queryBy")
    report["connected"] = False
    report["fields"] = []

    if client is None:
        report["error"] = "Typesense host or API key not configured"
        return report

    fields = await adapter.resolve_query_fields(client, settings)
    report["fields"] = fields
    errors: List[Exception] = []

    try:
        await asyncio.to_thread(client.search, settings.collection, {
            "q": "*",
            "query_by": ",".join(fields),
            "per_page": 1,
        })
        report["connected"] = True
        return report
    except Exception as e:
        logger.warning(f"[typesense_health] Search probe failed: {e}")
        errors.append(e)

    try:
        await asyncio.to_thread(client.retrieve_collection, settings.collection)
        report["connected"] = True
    except Exception as e:
        logger.warning(f"[typesense_health] Collection probe failed: {e}")
        errors.append(e)

    report["error"] = _most_informative(errors)
    return report


def build_config_set_tool(adapter: TypesenseSearchAdapter) -> ToolDefinition:
    async def typesense_config_set(params: Dict[str, Any]) -> Dict[str, Any]:
        patch = TypesenseConfigPatch.model_validate(params)
        result = apply_config_patch(adapter, patch)
        logger.info(f"[typesense_config_set] applied={result['applied']} keyLength={result['keyLength']}")
        return result

    return ToolDefinition(
        name="typesense_config_set",
        description="Update Typesense connection settings at runtime. Only supplied fields change.",
        inputSchema={
            "type": "object",
            "properties": {
                "host": {"type": "string"},
                "protocol": {"type": "string", "enum": ["http", "https"]},
                "port": {"type": "integer"},
                "apiKey": {"type": "string"},
                "collection": {"type": "string"},
                "queryBy": {
                    "oneOf": [
                        {"type": "string"},
                        {"type": "array", "items": {"type": "string"}},
                    ]
                },
            },
            "additionalProperties": False,
        },
        outputSchema={
            "type": "object",
            "properties": {
                "applied": {"type": "array", "items": {"type": "string"}},
                "effective": {"type": "object"},
                "keyLength": {"type": "integer"},
            },
            "required": ["applied", "effective", "keyLength"],
        },
        arguments_model=TypesenseConfigPatch,
        call=typesense_config_set,
    )


def build_health_tool(adapter: TypesenseSearchAdapter) -> ToolDefinition:
    async def typesense_health(params: Dict[str, Any]) -> Dict[str, Any]:
        report = await check_health(adapter)
        logger.info(f"[typesense_health] connected={report['connected']} host={report['host']}")
        return report

    return ToolDefinition(
        name="typesense_health",
        description="Probe the Typesense backend with the current settings and report connectivity.",
        inputSchema={"type": "object", "properties": {}},
        outputSchema={
            "type": "object",
            "properties": {
                "connected": {"type": "boolean"},
                "host": {"type": "string"},
                "protocol": {"type": "string"},
                "port": {"type": "integer"},
                "collection": {"type": "string"},
                "fields": {"type": "array", "items": {"type": "string"}},
                "error": {"type": "string"},
            },
            "required": ["connected", "host", "protocol", "port", "collection", "fields"],
        },
        arguments_model=TypesenseHealthArguments,
        call=typesense_health,
    )
