from __future__ import annotations

import copy
import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

from chroma_explorer.storage.interfaces import (
    DEFAULT_N_RESULTS,
    BaseHierarchyStore,
    ChromaAPIError,
    CollectionInfo,
    Record,
)

logger = logging.getLogger(__name__)


@dataclass
class MirrorCollection:
    name: str
    records: list[Record] = field(default_factory=list)


@dataclass
class MirrorDatabase:
    name: str
    collections: list[MirrorCollection] = field(default_factory=list)


@dataclass
class MirrorTenant:
    name: str
    databases: list[MirrorDatabase] = field(default_factory=list)


def demo_tenants() -> list[MirrorTenant]:
    records = [
        Record(id="r1", document="Hello world", metadata={"source": "demo"}, embedding=[0.1, 0.2]),
        Record(id="r2", document="Sample doc", metadata={"source": "demo"}, embedding=[0.3, 0.4]),
        Record(id="r3", document="Another doc", metadata={"source": "demo"}, embedding=[0.5, 0.6]),
    ]
    collection = MirrorCollection(name="example_collection", records=records)
    database = MirrorDatabase(name="default_database", collections=[collection])
    return [MirrorTenant(name="default_tenant", databases=[database])]


class LocalMirror(BaseHierarchyStore):
    """In-process copy of the hierarchy used while no server is reachable.

    Lookups by tenant or database name fall back to the first entry, so a
    client configured for a server-side tenant still shows the demo data.
    Nothing is persisted.
    """

    def __init__(self, tenants: list[MirrorTenant] | None = None):
        self.tenants = demo_tenants() if tenants is None else tenants

    # ---- lookups ----
    def _tenant(self, name: str | None) -> MirrorTenant | None:
        for t in self.tenants:
            if t.name == name:
                return t
        return self.tenants[0] if self.tenants else None

    def _database(self, tenant: str | None, name: str | None) -> MirrorDatabase | None:
        t = self._tenant(tenant)
        if t is None:
            return None
        for d in t.databases:
            if d.name == name:
                return d
        return t.databases[0] if t.databases else None

    def _collection(self, tenant: str | None, database: str | None, name: str) -> MirrorCollection | None:
        d = self._database(tenant, database)
        if d is None:
            return None
        return next((c for c in d.collections if c.name == name), None)

    # ---- tenants ----
    def list_tenants(self) -> list[str]:
        return [t.name for t in self.tenants]

    def create_tenant(self, name: str) -> bool:
        if any(t.name == name for t in self.tenants):
            raise ChromaAPIError(f"Tenant '{name}' already exists", status=409)
        self.tenants.append(MirrorTenant(name=name))
        return True

    def delete_tenant(self, name: str) -> bool:
        self.tenants = [t for t in self.tenants if t.name != name]
        return True

    # ---- databases ----
    def list_databases(self, tenant: str) -> list[str]:
        t = self._tenant(tenant)
        return [d.name for d in t.databases] if t else []

    def create_database(self, tenant: str, name: str) -> bool:
        t = self._tenant(tenant)
        if t is None:
            raise ChromaAPIError(f"Tenant '{tenant}' not found", status=404)
        if any(d.name == name for d in t.databases):
            raise ChromaAPIError(f"Database '{name}' already exists in '{t.name}'", status=409)
        t.databases.append(MirrorDatabase(name=name))
        return True

    def delete_database(self, tenant: str, name: str) -> bool:
        t = self._tenant(tenant)
        if t is not None:
            t.databases = [d for d in t.databases if d.name != name]
        return True

    # ---- collections ----
    def list_collections(self, tenant: str, database: str) -> list[CollectionInfo]:
        d = self._database(tenant, database)
        if d is None:
            return []
        return [CollectionInfo(id=c.name, name=c.name, count=len(c.records)) for c in d.collections]

    def create_collection(self, tenant: str, database: str, name: str) -> bool:
        d = self._database(tenant, database)
        if d is None:
            raise ChromaAPIError(f"Database '{database}' not found", status=404)
        if any(c.name == name for c in d.collections):
            raise ChromaAPIError(f"Collection '{name}' already exists", status=409)
        d.collections.append(MirrorCollection(name=name))
        return True

    def delete_collection(self, tenant: str, database: str, collection: str) -> bool:
        d = self._database(tenant, database)
        if d is not None:
            d.collections = [c for c in d.collections if c.name != collection]
        return True

    def rename_collection(self, tenant: str, database: str, collection: str, new_name: str) -> bool:
        c = self._collection(tenant, database, collection)
        if c is not None:
            c.name = new_name
        return True

    # ---- records ----
    def list_records(self, tenant: str, database: str, collection: str, *, limit: int, offset: int) -> list[Record]:
        c = self._collection(tenant, database, collection)
        if c is None:
            return []
        return [copy.deepcopy(r) for r in c.records[offset:offset + limit]]

    def add_record(self, tenant: str, database: str, collection: str, record: Record) -> str:
        c = self._collection(tenant, database, collection)
        if c is None:
            raise ChromaAPIError(f"Collection '{collection}' not found", status=404)
        if any(r.id == record.id for r in c.records):
            raise ChromaAPIError(f"Record '{record.id}' already exists in '{collection}'", status=409)
        c.records.append(copy.deepcopy(record))
        return record.id

    def get_record(self, tenant: str, database: str, collection: str, record_id: str) -> Record | None:
        c = self._collection(tenant, database, collection)
        if c is None:
            return None
        found = next((r for r in c.records if r.id == record_id), None)
        return copy.deepcopy(found) if found is not None else None

    def update_record(
        self, tenant: str, database: str, collection: str, record_id: str, *,
        document: str | None = None,
        metadata: dict[str, Any] | None = None,
        embedding: Sequence[float] | None = None,
    ) -> bool:
        c = self._collection(tenant, database, collection)
        if c is None:
            return False
        for r in c.records:
            if r.id != record_id:
                continue
            if document is not None:
                r.document = document
            if metadata is not None:
                r.metadata = dict(metadata)
            if embedding is not None:
                r.embedding = [float(x) for x in embedding]
            return True
        logger.debug("update_record: %s not in mirror collection %s", record_id, collection)
        return False

    def delete_record(self, tenant: str, database: str, collection: str, record_id: str) -> bool:
        c = self._collection(tenant, database, collection)
        if c is not None:
            c.records = [r for r in c.records if r.id != record_id]
        return True

    def query(
        self, tenant: str, database: str, collection: str, *,
        query_texts: Sequence[str] | None = None,
        query_embeddings: Sequence[Sequence[float]] | None = None,
        n_results: int = DEFAULT_N_RESULTS,
    ) -> dict[str, Any]:
        # similarity search is only served by a live server
        return {}
