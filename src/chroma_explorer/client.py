# src/chroma_explorer/client.py
from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from typing import Any, TypeVar

import requests

from chroma_explorer.config import ConnectionConfig
from chroma_explorer.postprocessing.normalize import find_collection_id
from chroma_explorer.storage.interfaces import (
    DEFAULT_N_RESULTS,
    BaseHierarchyStore,
    ChromaAPIError,
    CollectionInfo,
    Record,
    ensure_embedding,
)
from chroma_explorer.storage.local_mirror import LocalMirror
from chroma_explorer.storage.remote_store import RemoteStore
from chroma_explorer.utils.ids import generate_record_id

logger = logging.getLogger(__name__)

T = TypeVar("T")

# read failures degrade to a default; writes re-raise
_READ_ERRORS = (ChromaAPIError, requests.RequestException)


class DataAccessClient:
    """One CRUD/list/query surface over a Chroma server or the local mirror.

    The backend is picked per call from the connection state: the remote
    store after a successful ``connect``, the in-process mirror otherwise.

    Reads (listing, ``get_record``, ``query_collection``, id resolution) never
    raise: failures come back as empty results. Writes raise
    ``ChromaAPIError`` so callers can report them.

    ``connect`` swaps config and state without locking; do not call it while
    other operations are in flight.
    """

    def __init__(self, config: ConnectionConfig | None = None, session: requests.Session | None = None):
        self._config = config or ConnectionConfig()
        self._session = session
        self._connected = False
        self._remote: RemoteStore | None = None
        self.mirror = LocalMirror()

    # ---- connection ----
    @property
    def config(self) -> ConnectionConfig:
        return self._config

    def connect(self, config: ConnectionConfig | None = None) -> bool:
        if config is not None:
            self._config = config
        remote = RemoteStore(self._config, session=self._session)
        try:
            remote.version()
        except _READ_ERRORS as e:
            logger.info("Chroma at %s unreachable, using local mirror: %s", self._config.base_url, e)
            self._connected = False
            self._remote = None
            return False
        logger.info("Connected to Chroma at %s (%s/%s)", self._config.base_url, self._config.tenant, self._config.database)
        self._remote = remote
        self._connected = True
        return True

    def is_connected(self) -> bool:
        return self._connected

    @property
    def store(self) -> BaseHierarchyStore:
        if self._connected and self._remote is not None:
            return self._remote
        return self.mirror

    # ---- helpers ----
    def _scope(self, tenant: str | None, database: str | None = None) -> tuple[str, str]:
        return tenant or self._config.tenant, database or self._config.database

    def _read(self, op: str, default: T, fn: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        try:
            return fn(*args, **kwargs)
        except _READ_ERRORS as e:
            logger.warning("%s failed, returning empty result: %s", op, e)
            return default

    # ---- tenants ----
    def list_tenants(self) -> list[str]:
        return self._read("list_tenants", [], self.store.list_tenants)

    def create_tenant(self, name: str) -> bool:
        return self.store.create_tenant(name)

    def delete_tenant(self, name: str) -> bool:
        return self.store.delete_tenant(name)

    # ---- databases ----
    def list_databases(self, tenant: str | None = None) -> list[str]:
        t, _ = self._scope(tenant)
        return self._read("list_databases", [], self.store.list_databases, t)

    def create_database(self, tenant: str | None, name: str) -> bool:
        t, _ = self._scope(tenant)
        return self.store.create_database(t, name)

    def delete_database(self, tenant: str | None, name: str) -> bool:
        t, _ = self._scope(tenant)
        return self.store.delete_database(t, name)

    # ---- collections ----
    def list_collections(self, tenant: str | None = None, database: str | None = None) -> list[CollectionInfo]:
        t, d = self._scope(tenant, database)
        return self._read("list_collections", [], self.store.list_collections, t, d)

    def resolve_collection_id(self, tenant: str | None, database: str | None, collection_or_id: str) -> str:
        """Map a collection name to the id the server addresses it by.

        Offline, names are the identifiers. Online, an id match wins over a
        name match; anything unresolved is returned as given.
        """
        if not self._connected or self._remote is None:
            return collection_or_id
        t, d = self._scope(tenant, database)
        collections = self._read("resolve_collection_id", None, self._remote.list_collections, t, d)
        if collections is None:
            return collection_or_id
        return find_collection_id(collections, collection_or_id) or collection_or_id

    def create_collection(self, tenant: str | None, database: str | None, name: str) -> bool:
        t, d = self._scope(tenant, database)
        return self.store.create_collection(t, d, name)

    def delete_collection(self, tenant: str | None, database: str | None, name: str) -> bool:
        t, d = self._scope(tenant, database)
        cid = self.resolve_collection_id(t, d, name)
        return self.store.delete_collection(t, d, cid)

    def rename_collection(self, tenant: str | None, database: str | None, name: str, new_name: str) -> bool:
        t, d = self._scope(tenant, database)
        cid = self.resolve_collection_id(t, d, name)
        return self.store.rename_collection(t, d, cid, new_name)

    # ---- records ----
    def list_records(
        self, tenant: str | None, database: str | None, collection: str, limit: int = 50, offset: int = 0
    ) -> list[Record]:
        t, d = self._scope(tenant, database)
        cid = self.resolve_collection_id(t, d, collection)
        return self._read("list_records", [], self.store.list_records, t, d, cid, limit=limit, offset=offset)

    def add_record(
        self, tenant: str | None, database: str | None, collection: str, document: str | None = None, *,
        record_id: str | None = None,
        metadata: dict[str, Any] | None = None,
        embedding: Sequence[float] | None = None,
    ) -> str:
        t, d = self._scope(tenant, database)
        cid = self.resolve_collection_id(t, d, collection)
        record = Record(
            id=record_id or generate_record_id(),
            document=document or "",
            metadata=dict(metadata or {}),
            embedding=ensure_embedding(embedding),
        )
        return self.store.add_record(t, d, cid, record)

    def get_record(self, tenant: str | None, database: str | None, collection: str, record_id: str) -> Record | None:
        t, d = self._scope(tenant, database)
        cid = self.resolve_collection_id(t, d, collection)
        return self._read("get_record", None, self.store.get_record, t, d, cid, record_id)

    def update_record(
        self, tenant: str | None, database: str | None, collection: str, record_id: str, *,
        document: str | None = None,
        metadata: dict[str, Any] | None = None,
        embedding: Sequence[float] | None = None,
    ) -> bool:
        """Change only the supplied fields; ``None`` leaves a field as stored."""
        t, d = self._scope(tenant, database)
        cid = self.resolve_collection_id(t, d, collection)
        if embedding is not None:
            embedding = ensure_embedding(embedding)
        return self.store.update_record(t, d, cid, record_id, document=document, metadata=metadata, embedding=embedding)

    def delete_record(self, tenant: str | None, database: str | None, collection: str, record_id: str) -> bool:
        t, d = self._scope(tenant, database)
        cid = self.resolve_collection_id(t, d, collection)
        return self.store.delete_record(t, d, cid, record_id)

    def query_collection(
        self, tenant: str | None, database: str | None, collection: str, *,
        query_texts: Sequence[str] | None = None,
        query_embeddings: Sequence[Sequence[float]] | None = None,
        n_results: int | None = None,
    ) -> dict[str, Any]:
        t, d = self._scope(tenant, database)
        cid = self.resolve_collection_id(t, d, collection)
        return self._read(
            "query_collection", {}, self.store.query, t, d, cid,
            query_texts=query_texts,
            query_embeddings=query_embeddings,
            n_results=n_results or DEFAULT_N_RESULTS,
        )
