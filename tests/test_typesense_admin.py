"""Tests for runtime Typesense reconfiguration and diagnostics."""

import json

import pytest

from models import TypesenseConfigPatch
from server.protocol import INVALID_PARAMS
from tools.typesense_admin import apply_config_patch, build_config_set_tool, check_health
from utils.typesense_client import TypesenseError


class TestConfigSet:
    @pytest.mark.asyncio
    async def test_collection_change_retargets_next_search(self, adapter, backend):
        backend.collections["other"] = [{"objectID": "O-1", "name": "Other item", "category": "Misc"}]
        await adapter.search_by_keywords("elitebook")
        assert adapter.cached_query_fields is not None
        assert len(backend.created) == 1

        result = await build_config_set_tool(adapter).call({"collection": "other"})

        assert result["applied"] == ["collection"]
        assert result["effective"]["collection"] == "other"
        assert adapter.cached_query_fields is None

        products = await adapter.search_by_keywords("item")
        assert [p["objectID"] for p in products] == ["O-1"]
        assert backend.search_calls[-1][0] == "other"
        assert backend.schema_calls[-1] == "other"
        assert len(backend.created) == 2

    @pytest.mark.asyncio
    async def test_reconfigure_closes_previous_client(self, adapter, backend):
        await adapter.search_by_keywords("elitebook")
        first = backend.clients[-1]
        assert first.closed is False

        await build_config_set_tool(adapter).call({"host": "typesense2.example.com"})

        assert first.closed is True
        await adapter.search_by_keywords("elitebook")
        assert backend.clients[-1] is not first
        assert backend.clients[-1].closed is False

    def test_reconfigure_without_client(self, adapter, backend):
        adapter.reconfigure({"collection": "other"})
        assert backend.clients == []

    @pytest.mark.asyncio
    async def test_secret_never_returned(self, adapter):
        result = await build_config_set_tool(adapter).call({"apiKey": "  new-secret-value "})
        assert result["keyLength"] == len("new-secret-value")
        assert "new-secret-value" not in json.dumps(result)
        assert adapter.settings.api_key == "new-secret-value"

    def test_only_supplied_fields_change(self, adapter):
        result = apply_config_patch(adapter, TypesenseConfigPatch(protocol="HTTP"))
        assert result["applied"] == ["protocol"]
        assert result["effective"] == {
            "host": "typesense.example.com",
            "protocol": "http",
            "port": 80,
            "collection": "products",
            "queryBy": [],
        }
        assert result["keyLength"] == len("search-only-key")

    @pytest.mark.asyncio
    async def test_query_by_override(self, adapter, backend):
        apply_config_patch(adapter, TypesenseConfigPatch(queryBy="sku, name"))
        assert adapter.settings.query_by == ["sku", "name"]

        await adapter.search_by_keywords("elitebook")
        assert backend.schema_calls == []
        assert backend.search_calls[-1][1]["query_by"] == "sku,name"

    @pytest.mark.asyncio
    async def test_invalid_port_is_invalid_params(self, context):
        resp = await context.dispatcher.handle({
            "jsonrpc": "2.0",
            "id": 1,
            "method": "tools/call",
            "params": {"name": "typesense_config_set", "arguments": {"port": "not-a-port"}},
        })
        assert resp["error"]["code"] == INVALID_PARAMS
        assert context.search_adapter.settings.port is None


class TestHealth:
    @pytest.mark.asyncio
    async def test_unconfigured(self, unconfigured_adapter):
        report = await check_health(unconfigured_adapter)
        assert report["connected"] is False
        assert report["fields"] == []
        assert "not configured" in report["error"]

    @pytest.mark.asyncio
    async def test_connected(self, adapter):
        report = await check_health(adapter)
        assert report == {
            "host": "typesense.example.com",
            "protocol": "https",
            "port": 443,
            "collection": "products",
            "connected": True,
            "fields": ["name", "brand", "category", "tags"],
        }

    @pytest.mark.asyncio
    async def test_search_probe_fails_schema_probe_succeeds(self, adapter, backend):
        backend.search_error = TypesenseError("Typesense 400: Could not find a field named `tags`", 400)
        report = await check_health(adapter)
        assert report["connected"] is True
        assert "tags" in report["error"]

    @pytest.mark.asyncio
    async def test_most_informative_error(self, adapter, backend):
        backend.search_error = TypesenseError("Typesense connection error: timed out")
        backend.schema_error = TypesenseError("Typesense 401: Forbidden - a valid `x-typesense-api-key` header must be sent.", 401)
        report = await check_health(adapter)
        assert report["connected"] is False
        assert report["fields"] == ["name", "brand", "category"]
        assert report["error"].startswith("Typesense 401")
