"""Shared fixtures for QIQ MCP tests."""

import re
from typing import Any, Dict, List, Optional

import pytest

from models import TypesenseSettings
from server.context import create_context
from tools.typesense_search import TypesenseSearchAdapter

_LIST_FILTER = re.compile(r"^(\w+):=\[(.*)\]$")
_SINGLE_FILTER = re.compile(r"^(\w+):=`(.*)`$")


def _parse_filter(filter_by: str):
    match = _LIST_FILTER.match(filter_by) or _SINGLE_FILTER.match(filter_by)
    field, raw = match.group(1), match.group(2)
    values = re.findall(r"`([^`]*)`", raw) if filter_by.endswith("]") else [raw]
    return field, values


class FakeTypesenseClient:
    def __init__(self, backend: "FakeTypesenseBackend", settings: TypesenseSettings):
        self.backend = backend
        self.settings = settings
        self.closed = False

    def search(self, collection: str, params: Dict[str, Any]) -> Dict[str, Any]:
        self.backend.search_calls.append((collection, dict(params)))
        if self.backend.search_error is not None:
            error = self.backend.search_error(params) if callable(self.backend.search_error) else self.backend.search_error
            if error is not None:
                raise error

        documents = list(self.backend.collections.get(collection, []))
        if params.get("filter_by"):
            field, values = _parse_filter(params["filter_by"])
            documents = [d for d in documents if d.get(field) is not None and str(d.get(field)) in values]

        q = params.get("q", "*")
        if q != "*":
            fields = params.get("query_by", "").split(",")
            documents = [d for d in documents if any(q.lower() in str(d.get(f, "")).lower() for f in fields)]

        per_page = params.get("per_page", 10)
        return {"found": len(documents), "hits": [{"document": d} for d in documents[:per_page]]}

    def retrieve_collection(self, collection: str) -> Dict[str, Any]:
        self.backend.schema_calls.append(collection)
        if self.backend.schema_error is not None:
            raise self.backend.schema_error
        return self.backend.schema

    def close(self):
        self.closed = True


class FakeTypesenseBackend:
    """In-memory stand-in for a Typesense server; callable as a client factory."""

    def __init__(self, documents: Optional[List[Dict[str, Any]]] = None, collection: str = "products"):
        self.collections: Dict[str, List[Dict[str, Any]]] = {collection: list(documents or [])}
        self.schema: Dict[str, Any] = {
            "name": collection,
            "fields": [
                {"name": "name", "type": "string"},
                {"name": "brand", "type": "string", "facet": True},
                {"name": "category", "type": "string"},
                {"name": "tags", "type": "string[]"},
                {"name": "price", "type": "float"},
                {"name": "internal_note", "type": "string", "index": False},
                {"name": ".*_text", "type": "string"},
            ],
        }
        self.search_error: Any = None
        self.schema_error: Optional[Exception] = None
        self.search_calls: List[Any] = []
        self.schema_calls: List[str] = []
        self.created: List[TypesenseSettings] = []
        self.clients: List[FakeTypesenseClient] = []

    def __call__(self, settings: TypesenseSettings) -> FakeTypesenseClient:
        self.created.append(settings)
        client = FakeTypesenseClient(self, settings)
        self.clients.append(client)
        return client


PRODUCTS = [
    {
        "objectID": "KL4069IA1YRS",
        "name": "Kaspersky Endpoint Security 1 Year",
        "brand": "Kaspersky",
        "item_type": "license",
        "category": "Security",
        "price": "20",
        "list_price": 25,
        "availability": 5,
        "image": "https://cdn.quickitquote.com/img/kl4069.png",
        "spec_sheet": "http://evil.example.com/spec.pdf",
    },
    {
        "object_id": "HP-840-G9",
        "mpn": "6F6Z5EA",
        "name": "HP EliteBook 840 G9",
        "brand": "HP",
        "category": "Laptops",
        "price": 10,
        "list_price": "12.5",
        "availability": "n/a",
    },
    {
        "objectID": "NO-CATEGORY",
        "name": "Loose cable",
        "brand": "Generic",
        "price": 1,
    },
]

CONFIGURED_SETTINGS = TypesenseSettings(
    host="typesense.example.com",
    api_key="search-only-key",
    collection="products",
)


@pytest.fixture
def backend():
    return FakeTypesenseBackend([dict(p) for p in PRODUCTS])


@pytest.fixture
def adapter(backend):
    return TypesenseSearchAdapter(CONFIGURED_SETTINGS, client_factory=backend)


@pytest.fixture
def unconfigured_adapter(backend):
    return TypesenseSearchAdapter(TypesenseSettings(), client_factory=backend)


@pytest.fixture
def context(backend):
    return create_context(CONFIGURED_SETTINGS, client_factory=backend)


@pytest.fixture
def app(context):
    from main import create_app
    return create_app(context)


@pytest.fixture
def client(app):
    from fastapi.testclient import TestClient
    return TestClient(app)

