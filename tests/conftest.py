"""测试配置

提供一个内存版的 typesense.Client，覆盖集合、文档、别名、搜索和批量搜索接口，
并抛出真实的 typesense.exceptions 异常。
"""

from __future__ import annotations

import copy
from typing import Any

import pytest
from typesense import exceptions as ts_exceptions

from swapsearch.config.settings import reload_settings
from swapsearch.search.client import reset_client, set_client

DEFAULT_SEARCH_RESPONSE: dict[str, Any] = {
    "found": 0,
    "out_of": 0,
    "page": 1,
    "hits": [],
    "request_params": {"per_page": 10},
    "search_time_ms": 1,
}


class FakeStore:
    """单个集合的状态"""

    def __init__(self, schema: dict[str, Any], created_at: int) -> None:
        self.schema = copy.deepcopy(schema)
        self.schema["created_at"] = created_at
        self.documents: dict[str, dict[str, Any]] = {}

    def metadata(self) -> dict[str, Any]:
        return {**copy.deepcopy(self.schema), "num_documents": len(self.documents)}

    def validate(self, document: Any) -> str | None:
        if not isinstance(document, dict):
            return "Bad JSON: not a properly formed document."
        if not isinstance(document.get("id"), str):
            return "Document's `id` field should be a string."
        for field in self.schema.get("fields", []):
            name = field["name"]
            if ".*" in name or field.get("optional") or field.get("type", "auto") == "auto":
                continue
            if name not in document:
                return f"Field `{name}` has been declared in the schema, but is not found in the document."
        return None


class FakeDocument:
    def __init__(self, store: FakeStore, document_id: str) -> None:
        self.store = store
        self.document_id = document_id

    def retrieve(self) -> dict[str, Any]:
        if self.document_id not in self.store.documents:
            raise ts_exceptions.ObjectNotFound(404, "Could not find a document with that id.")
        return self.store.documents[self.document_id]

    def delete(self) -> dict[str, Any]:
        document = self.retrieve()
        del self.store.documents[self.document_id]
        return document


class FakeDocuments:
    def __init__(self, client: FakeTypesenseClient, store: FakeStore) -> None:
        self.client = client
        self.store = store

    def __getitem__(self, document_id: str) -> FakeDocument:
        return FakeDocument(self.store, document_id)

    def upsert(self, document: Any, params: dict[str, Any] | None = None) -> dict[str, Any]:
        error = self.store.validate(document)
        if error:
            raise ts_exceptions.RequestMalformed(400, error)
        self.store.documents[document["id"]] = document
        return document

    def import_(self, documents: list[Any], params: dict[str, Any] | None = None) -> list[dict[str, Any]]:
        self.client.import_calls.append((list(documents), params))
        if self.client.import_error is not None:
            raise self.client.import_error
        if not documents:
            raise ts_exceptions.TypesenseClientError("Cannot import an empty list of documents.")

        rows = []
        for document in documents:
            error = self.store.validate(document)
            if error:
                rows.append({"success": False, "error": error, "document": repr(document)})
            else:
                self.store.documents[document["id"]] = document
                rows.append({"success": True})
        return rows

    def delete(self, params: dict[str, Any] | None = None) -> dict[str, Any]:
        field, _, value = (params or {})["filter_by"].partition(":")
        matching = [
            document_id
            for document_id, document in self.store.documents.items()
            if str(document.get(field)) == value
        ]
        for document_id in matching:
            del self.store.documents[document_id]
        return {"num_deleted": len(matching)}

    def search(self, params: dict[str, Any]) -> dict[str, Any]:
        self.client.search_calls.append(params)
        return copy.deepcopy(self.client.search_response)


class FakeCollectionHandle:
    def __init__(self, client: FakeTypesenseClient, name: str) -> None:
        self.client = client
        self.name = client.aliases_map.get(name, name)

    def _store(self) -> FakeStore:
        if self.name not in self.client.stores:
            raise ts_exceptions.ObjectNotFound(404, f"No collection with name `{self.name}` found.")
        return self.client.stores[self.name]

    def retrieve(self) -> dict[str, Any]:
        return self._store().metadata()

    def delete(self) -> dict[str, Any]:
        metadata = self._store().metadata()
        del self.client.stores[self.name]
        return metadata

    @property
    def documents(self) -> FakeDocuments:
        return FakeDocuments(self.client, self._store())


class FakeCollections:
    def __init__(self, client: FakeTypesenseClient) -> None:
        self.client = client

    def __getitem__(self, name: str) -> FakeCollectionHandle:
        return FakeCollectionHandle(self.client, name)

    def create(self, schema: dict[str, Any]) -> dict[str, Any]:
        name = schema["name"]
        if name in self.client.stores:
            raise ts_exceptions.ObjectAlreadyExists(409, f"A collection with name `{name}` already exists.")
        self.client.clock += 1
        store = FakeStore(schema, created_at=self.client.clock)
        self.client.stores[name] = store
        return store.metadata()

    def retrieve(self) -> list[dict[str, Any]]:
        return [store.metadata() for store in self.client.stores.values()]


class FakeAlias:
    def __init__(self, client: FakeTypesenseClient, name: str) -> None:
        self.client = client
        self.name = name

    def retrieve(self) -> dict[str, Any]:
        if self.name not in self.client.aliases_map:
            raise ts_exceptions.ObjectNotFound(404, "Not Found")
        return {"name": self.name, "collection_name": self.client.aliases_map[self.name]}

    def delete(self) -> dict[str, Any]:
        alias = self.retrieve()
        del self.client.aliases_map[self.name]
        return alias


class FakeAliases:
    def __init__(self, client: FakeTypesenseClient) -> None:
        self.client = client

    def __getitem__(self, name: str) -> FakeAlias:
        return FakeAlias(self.client, name)

    def upsert(self, name: str, mapping: dict[str, Any]) -> dict[str, Any]:
        self.client.alias_calls.append((name, mapping["collection_name"]))
        self.client.aliases_map[name] = mapping["collection_name"]
        return {"name": name, **mapping}

    def retrieve(self) -> dict[str, Any]:
        return {
            "aliases": [
                {"name": name, "collection_name": target}
                for name, target in self.client.aliases_map.items()
            ]
        }


class FakeMultiSearch:
    def __init__(self, client: FakeTypesenseClient) -> None:
        self.client = client

    def perform(self, search_queries: dict[str, Any], common_params: dict[str, Any]) -> dict[str, Any]:
        self.client.multi_search_calls.append(search_queries)
        return {
            "results": [
                {**copy.deepcopy(self.client.search_response), "request_params": {"q": search["q"]}}
                for search in search_queries["searches"]
            ]
        }


class FakeTypesenseClient:
    """内存版 typesense.Client"""

    def __init__(self) -> None:
        self.stores: dict[str, FakeStore] = {}
        self.aliases_map: dict[str, str] = {}
        self.clock = 1_700_000_000
        self.import_error: Exception | None = None
        self.search_response: dict[str, Any] = copy.deepcopy(DEFAULT_SEARCH_RESPONSE)

        self.import_calls: list[tuple[list[Any], dict[str, Any] | None]] = []
        self.alias_calls: list[tuple[str, str]] = []
        self.search_calls: list[dict[str, Any]] = []
        self.multi_search_calls: list[dict[str, Any]] = []

        self.collections = FakeCollections(self)
        self.aliases = FakeAliases(self)
        self.multi_search = FakeMultiSearch(self)


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch, tmp_path):
    """隔离环境变量与 YAML 配置"""
    for name in ("SWAPSEARCH_ENV", "SWAPSEARCH_URL", "SWAPSEARCH_API_KEY", "APP_ENV", "ENVIRONMENT"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("SWAPSEARCH_CONFIG_FILE", str(tmp_path / "missing.yaml"))
    reload_settings()
    yield
    reset_client()


@pytest.fixture
def fake_client() -> FakeTypesenseClient:
    """注入为全局客户端的内存版 Typesense"""
    client = FakeTypesenseClient()
    set_client(client)
    return client
