# QIQ MCP - Typesense Product Search Tool

import asyncio
import logging
import time
from typing import Any, Callable, Dict, List, Optional, Tuple

from pydantic import ValidationError

from models import ProductRecord, ToolDefinition, TypesenseSearchArguments, TypesenseSettings
from utils.product_mapper import is_valid_record, map_record, placeholder_record
from utils.typesense_client import TypesenseClient

logger = logging.getLogger(__name__)

DEFAULT_QUERY_FIELDS = ["name", "brand", "category"]
MINIMAL_QUERY_FIELDS = ["name"]
IDENTIFIER_FIELDS = [
    "objectID",
    "object_id",
    "id",
    "mpn",
    "mpn_normalized",
    "sku",
    "manufacturer_part_number",
    "vendor_mpn",
]
KEYWORD_PAGE_SIZE = 20
MAX_PAGE_SIZE = 250

PRODUCT_SCHEMA = {
    "type": "object",
    "properties": {
        "objectID": {"type": "string"},
        "name": {"type": "string"},
        "brand": {"type": "string"},
        "item_type": {"type": "string"},
        "category": {"type": "string"},
        "price": {"type": "number"},
        "list_price": {"type": "number"},
        "availability": {"type": "number"},
        "image": {"type": "string"},
        "spec_sheet": {"type": "string"},
        "url": {"type": "string"},
    },
    "required": list(ProductRecord.model_fields),
    "additionalProperties": False,
}

INPUT_SCHEMA = {
    "type": "object",
    "properties": {
        "objectID": {"type": "string"},
        "objectIDs": {"type": "array", "items": {"type": "string"}},
        "keywords": {"type": "string"},
        "category": {"type": "string"},
    },
}

OUTPUT_SCHEMA = {
    "type": "object",
    "properties": {"products": {"type": "array", "items": PRODUCT_SCHEMA}},
    "required": ["products"],
    "additionalProperties": False,
}


def _filter_value(value: str) -> str:
    """filter_by 用にバッククォートでエスケープ"""
    return f"`{value.replace('`', '')}`"


def _exact_filter(field: str, values: List[str]) -> str:
    return f"{field}:=[{','.join(_filter_value(v) for v in values)}]"


def _lookup_values(identifiers: List[str]) -> List[str]:
    """入力値と小文字化した値の両方でフィルタする"""
    values: List[str] = []
    for identifier in identifiers:
        for variant in (identifier, identifier.lower()):
            if variant not in values:
                values.append(variant)
    return values


def dedupe_identifiers(identifiers: List[str]) -> List[str]:
    """大文字小文字を無視して重複除去（初出順を維持）"""
    seen = set()
    result = []
    for raw in identifiers:
        if raw is None:
            continue
        identifier = str(raw).strip()
        key = identifier.lower()
        if not identifier or key in seen:
            continue
        seen.add(key)
        result.append(identifier)
    return result


def _document_keys(document: Dict[str, Any]) -> List[str]:
    return [str(document[f]).strip().lower() for f in IDENTIFIER_FIELDS if document.get(f) not in (None, "")]


def _hit_documents(response: Dict[str, Any]) -> List[Dict[str, Any]]:
    hits = response.get("hits") if isinstance(response, dict) else None
    if not isinstance(hits, list):
        return []
    return [hit["document"] for hit in hits if isinstance(hit, dict) and isinstance(hit.get("document"), dict)]


class TypesenseSearchAdapter:
    """Typesense 検索アダプタ（設定変更時はクライアントを再生成）"""

    def __init__(
        self,
        settings: Optional[TypesenseSettings] = None,
        client_factory: Callable[[TypesenseSettings], Any] = TypesenseClient,
    ):
        self._settings = settings or TypesenseSettings()
        self._client_factory = client_factory
        self._client = None
        self._query_fields: Optional[List[str]] = None

    @property
    def settings(self) -> TypesenseSettings:
        return self._settings

    @property
    def cached_query_fields(self) -> Optional[List[str]]:
        return list(self._query_fields) if self._query_fields is not None else None

    def reconfigure(self, update: Dict[str, Any]) -> TypesenseSettings:
        """設定の部分更新（クライアントとフィールドキャッシュを破棄）"""
        merged = self._settings.model_dump()
        merged.update(update)
        self._settings = TypesenseSettings(**merged)
        previous, self._client = self._client, None
        self._query_fields = None
        if previous is not None and hasattr(previous, "close"):
            previous.close()
        logger.info(
            f"[TypesenseSearchAdapter] Reconfigured fields={sorted(update)} "
            f"host={self._settings.host} collection={self._settings.collection}"
        )
        return self._settings

    def get_client(self):
        """現在の設定でクライアントを取得（未設定なら None）"""
        if not self._settings.configured:
            return None
        if self._client is None:
            self._client = self._client_factory(self._settings)
        return self._client

    def snapshot(self) -> Tuple[TypesenseSettings, Any]:
        """呼び出し開始時点の設定とクライアント"""
        settings = self._settings
        return settings, self.get_client()

    async def resolve_query_fields(self, client: Any = None, settings: Optional[TypesenseSettings] = None) -> List[str]:
        """検索対象フィールドの解決（1回のみ実行しキャッシュ）"""
        settings = settings or self._settings
        if settings.query_by:
            return list(settings.query_by)
        if self._query_fields is not None:
            return list(self._query_fields)
        if client is None:
            return list(DEFAULT_QUERY_FIELDS)

        fields = list(DEFAULT_QUERY_FIELDS)
        try:
            schema = await asyncio.to_thread(client.retrieve_collection, settings.collection)
            introspected = [
                f["name"]
                for f in schema.get("fields", [])
                if isinstance(f, dict)
                and f.get("type") in ("string", "string[]")
                and f.get("index", True) is not False
                and isinstance(f.get("name"), str)
                and ".*" not in f["name"]
            ]
            if introspected:
                fields = introspected
            logger.info(f"[resolve_query_fields] Using introspected fields: {fields}")
        except Exception as e:
            logger.warning(f"[resolve_query_fields] Schema introspection failed, using defaults: {e}")

        # 取得時と同じ設定の場合のみキャッシュ
        if settings is self._settings:
            self._query_fields = fields
        return list(fields)

    async def _search(self, client: Any, collection: str, params: Dict[str, Any]) -> List[Dict[str, Any]]:
        response = await asyncio.to_thread(client.search, collection, params)
        return _hit_documents(response)

    async def search_by_identifiers(self, identifiers: List[str]) -> List[Dict[str, Any]]:
        """ID指定検索（入力と同数・同順で返却、未解決はプレースホルダ）"""
        ids = dedupe_identifiers(identifiers)
        if not ids:
            return []

        settings, client = self.snapshot()
        if client is None:
            logger.warning("[search_by_identifiers] Typesense not configured, returning placeholders")
            return [placeholder_record(oid).model_dump() for oid in ids]

        query_by = ",".join(await self.resolve_query_fields(client, settings))
        values = _lookup_values(ids)

        documents: List[Dict[str, Any]] = []
        for field in IDENTIFIER_FIELDS:
            try:
                documents = await self._search(client, settings.collection, {
                    "q": "*",
                    "query_by": query_by,
                    "filter_by": _exact_filter(field, values),
                    "per_page": min(max(len(values), 1), MAX_PAGE_SIZE),
                })
            except Exception as e:
                logger.debug(f"[search_by_identifiers] Batch lookup by {field} failed: {e}")
                continue
            if documents:
                logger.info(f"[search_by_identifiers] Batch lookup matched {len(documents)} docs by {field}")
                break

        by_key: Dict[str, Dict[str, Any]] = {}
        for document in documents:
            for key in _document_keys(document):
                by_key.setdefault(key, document)

        async def lookup(oid: str) -> Optional[Dict[str, Any]]:
            for field in IDENTIFIER_FIELDS:
                try:
                    found = await self._search(client, settings.collection, {
                        "q": "*",
                        "query_by": query_by,
                        "filter_by": _exact_filter(field, _lookup_values([oid])),
                        "per_page": 1,
                    })
                except Exception as e:
                    logger.debug(f"[search_by_identifiers] Lookup of {oid} by {field} failed: {e}")
                    continue
                if found:
                    return found[0]
            return None

        missing = [oid for oid in ids if oid.lower() not in by_key]
        if missing:
            resolved = await asyncio.gather(*(lookup(oid) for oid in missing))
            for oid, document in zip(missing, resolved):
                if document is not None:
                    by_key[oid.lower()] = document

        products = []
        for oid in ids:
            document = by_key.get(oid.lower())
            if document is None:
                products.append(placeholder_record(oid))
                continue
            record = map_record(document)
            if record.objectID.lower() != oid.lower():
                record = map_record(document, object_id=oid)
            products.append(record)

        unresolved = sum(1 for oid in ids if oid.lower() not in by_key)
        logger.info(f"[search_by_identifiers] Returned {len(products)} products ({unresolved} placeholders)")
        return [p.model_dump() for p in products]

    async def search_by_keywords(self, keywords: Optional[str], category: Optional[str] = None) -> List[Dict[str, Any]]:
        """キーワード検索（失敗時はフィールドを縮小して再試行）"""
        keywords = (keywords or "").strip()
        category = (category or "").strip()
        if not keywords and not category:
            return []

        settings, client = self.snapshot()
        if client is None:
            logger.warning("[search_by_keywords] Typesense not configured, returning empty result")
            return []

        attempts: List[List[str]] = []
        for fields in (await self.resolve_query_fields(client, settings), MINIMAL_QUERY_FIELDS, DEFAULT_QUERY_FIELDS):
            if fields not in attempts:
                attempts.append(list(fields))

        params: Dict[str, Any] = {"q": keywords or "*", "per_page": KEYWORD_PAGE_SIZE}
        if category:
            params["filter_by"] = f"category:={_filter_value(category)}"

        for fields in attempts:
            try:
                documents = await self._search(client, settings.collection, dict(params, query_by=",".join(fields)))
            except Exception as e:
                logger.warning(f"[search_by_keywords] Query by {fields} failed: {e}")
                continue
            records = [map_record(document) for document in documents]
            products = [r.model_dump() for r in records if is_valid_record(r)]
            logger.info(
                f"[search_by_keywords] {len(documents)} hits, {len(products)} valid products (query_by={fields})"
            )
            return products

        logger.error("[search_by_keywords] All query attempts failed, returning empty result")
        return []

    async def search(self, arguments: TypesenseSearchArguments) -> List[Dict[str, Any]]:
        if arguments.objectIDs:
            return await self.search_by_identifiers(arguments.objectIDs)
        return await self.search_by_keywords(arguments.keywords, arguments.category)


def build_typesense_search_tool(adapter: TypesenseSearchAdapter) -> ToolDefinition:
    async def typesense_search(params: Dict[str, Any]) -> Dict[str, Any]:
        """商品検索（例外は外に出さない）"""
        start_time = time.time()
        try:
            arguments = TypesenseSearchArguments.model_validate(params)
        except ValidationError as e:
            logger.warning(f"[typesense_search] Invalid arguments: {e}")
            return {"products": []}

        try:
            products = await adapter.search(arguments)
        except Exception as e:
            logger.error(f"[typesense_search] Unexpected error: {e}", exc_info=True)
            products = [placeholder_record(oid).model_dump() for oid in dedupe_identifiers(arguments.objectIDs)]
        logger.info(f"[typesense_search] {len(products)} products in {round((time.time() - start_time) * 1000, 2)}ms")
        return {"products": products}

    return ToolDefinition(
        name="typesense_search",
        description=(
            "Return products by objectIDs or keywords. If objectIDs are provided, returns those "
            "products in canonical QIQ shape, one per requested ID and in the same order."
        ),
        inputSchema=INPUT_SCHEMA,
        outputSchema=OUTPUT_SCHEMA,
        arguments_model=TypesenseSearchArguments,
        call=typesense_search,
    )
