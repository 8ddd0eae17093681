# src/chroma_explorer/storage/remote_store.py
from __future__ import annotations

import json
import logging
from collections.abc import Sequence
from typing import Any
from urllib.parse import quote

import requests

from chroma_explorer.config import ConnectionConfig
from chroma_explorer.postprocessing.normalize import (
    normalize_collections,
    normalize_names,
    normalize_records,
)
from chroma_explorer.storage.interfaces import (
    DEFAULT_N_RESULTS,
    BaseHierarchyStore,
    ChromaAPIError,
    CollectionInfo,
    Record,
)
from chroma_explorer.utils._json_default import _json_default

logger = logging.getLogger(__name__)

RECORD_FIELDS = ["documents", "metadatas", "embeddings"]


def _seg(value: str) -> str:
    return quote(str(value), safe="")


class RemoteStore(BaseHierarchyStore):
    """Chroma v2 REST backend over a ``requests.Session``.

    Every failure surfaces as ``ChromaAPIError``; deciding whether to absorb
    it is left to the caller.
    """

    def __init__(self, config: ConnectionConfig, session: requests.Session | None = None):
        self.config = config
        self.session = session or requests.Session()

    # ---- transport ----
    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json", "Accept": "application/json"}
        if self.config.api_key:
            headers["Authorization"] = f"Bearer {self.config.api_key}"
            headers["X-Chroma-Token"] = self.config.api_key
        return headers

    def request(self, path: str, method: str = "GET", body: Any = None) -> Any:
        url = f"{self.config.base_url}{path}"
        data = json.dumps(body, default=_json_default) if body is not None else None
        logger.debug("%s %s", method, url)
        try:
            r = self.session.request(method, url, data=data, headers=self._headers(), timeout=self.config.timeout)
        except requests.RequestException as e:
            raise ChromaAPIError(f"{method} {url} -> {e}") from e
        if not r.ok:
            text = r.text or ""
            raise ChromaAPIError(f"{method} {url} -> {r.status_code} {r.reason} {text}".rstrip(), status=r.status_code, body=text)
        if "application/json" in (r.headers.get("content-type") or ""):
            try:
                return r.json()
            except ValueError as e:
                raise ChromaAPIError(f"{method} {url} -> invalid JSON: {e}", status=r.status_code, body=r.text) from e
        return r.text

    def version(self) -> Any:
        return self.request("/version")

    # ---- paths ----
    @staticmethod
    def _db_path(tenant: str, database: str) -> str:
        return f"/tenants/{_seg(tenant)}/databases/{_seg(database)}"

    def _collection_path(self, tenant: str, database: str, collection: str) -> str:
        return f"{self._db_path(tenant, database)}/collections/{_seg(collection)}"

    # ---- tenants ----
    def list_tenants(self) -> list[str]:
        return normalize_names(self.request("/tenants"), "tenants")

    def create_tenant(self, name: str) -> bool:
        self.request("/tenants", "POST", {"name": name})
        return True

    def delete_tenant(self, name: str) -> bool:
        self.request(f"/tenants/{_seg(name)}", "DELETE")
        return True

    # ---- databases ----
    def list_databases(self, tenant: str) -> list[str]:
        return normalize_names(self.request(f"/tenants/{_seg(tenant)}/databases"), "databases")

    def create_database(self, tenant: str, name: str) -> bool:
        self.request(f"/tenants/{_seg(tenant)}/databases", "POST", {"name": name})
        return True

    def delete_database(self, tenant: str, name: str) -> bool:
        self.request(self._db_path(tenant, name), "DELETE")
        return True

    # ---- collections ----
    def list_collections(self, tenant: str, database: str) -> list[CollectionInfo]:
        return normalize_collections(self.request(f"{self._db_path(tenant, database)}/collections"))

    def create_collection(self, tenant: str, database: str, name: str) -> bool:
        self.request(f"{self._db_path(tenant, database)}/collections", "POST", {"name": name})
        return True

    def delete_collection(self, tenant: str, database: str, collection: str) -> bool:
        self.request(self._collection_path(tenant, database, collection), "DELETE")
        return True

    def rename_collection(self, tenant: str, database: str, collection: str, new_name: str) -> bool:
        # v2 servers read new_name, older builds read name. Some accept the
        # PUT without persisting either.
        self.request(self._collection_path(tenant, database, collection), "PUT", {"new_name": new_name, "name": new_name})
        return True

    # ---- records ----
    def list_records(self, tenant: str, database: str, collection: str, *, limit: int, offset: int) -> list[Record]:
        body = {"limit": limit, "offset": offset, "include": RECORD_FIELDS}
        res = self.request(f"{self._collection_path(tenant, database, collection)}/get", "POST", body)
        return normalize_records(res)

    def add_record(self, tenant: str, database: str, collection: str, record: Record) -> str:
        body = {
            "ids": [record.id],
            "documents": [record.document or ""],
            "metadatas": [record.metadata or {}],
            "embeddings": [record.embedding],
        }
        self.request(f"{self._collection_path(tenant, database, collection)}/add", "POST", body)
        return record.id

    def get_record(self, tenant: str, database: str, collection: str, record_id: str) -> Record | None:
        body = {"ids": [record_id], "include": RECORD_FIELDS}
        res = self.request(f"{self._collection_path(tenant, database, collection)}/get", "POST", body)
        records = normalize_records(res)
        return records[0] if records else None

    def update_record(
        self, tenant: str, database: str, collection: str, record_id: str, *,
        document: str | None = None,
        metadata: dict[str, Any] | None = None,
        embedding: Sequence[float] | None = None,
    ) -> bool:
        body: dict[str, Any] = {"ids": [record_id]}
        if document is not None:
            body["documents"] = [document]
        if metadata is not None:
            body["metadatas"] = [metadata]
        if embedding is not None:
            body["embeddings"] = [embedding]
        self.request(f"{self._collection_path(tenant, database, collection)}/update", "POST", body)
        return True

    def delete_record(self, tenant: str, database: str, collection: str, record_id: str) -> bool:
        self.request(f"{self._collection_path(tenant, database, collection)}/delete", "POST", {"ids": [record_id]})
        return True

    def query(
        self, tenant: str, database: str, collection: str, *,
        query_texts: Sequence[str] | None = None,
        query_embeddings: Sequence[Sequence[float]] | None = None,
        n_results: int = DEFAULT_N_RESULTS,
    ) -> dict[str, Any]:
        body: dict[str, Any] = {"n_results": n_results}
        if query_texts:
            body["query_texts"] = list(query_texts)
        if query_embeddings is not None:
            body["query_embeddings"] = query_embeddings
        res = self.request(f"{self._collection_path(tenant, database, collection)}/query", "POST", body)
        return res if isinstance(res, dict) else {"result": res}
