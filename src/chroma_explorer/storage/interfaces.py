from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

DEFAULT_N_RESULTS = 5
ZERO_EMBEDDING: tuple[float, ...] = (0.0,)


class ChromaAPIError(Exception):
    """A write against the store failed.

    ``status`` is the HTTP status when the server answered, ``None`` for
    transport failures.
    """

    def __init__(self, message: str, status: int | None = None, body: str = ""):
        super().__init__(message)
        self.status = status
        self.body = body


@dataclass
class Record:
    id: str
    document: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)
    embedding: list[float] = field(default_factory=lambda: list(ZERO_EMBEDDING))

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "document": self.document, "metadata": self.metadata, "embedding": self.embedding}


@dataclass(frozen=True)
class CollectionInfo:
    id: str
    name: str
    count: int = 0


def ensure_embedding(embedding: Sequence[float] | None) -> list[float]:
    # the server rejects zero-length vectors
    if embedding is None or len(embedding) == 0:
        return list(ZERO_EMBEDDING)
    return [float(x) for x in embedding]


class BaseHierarchyStore(ABC):
    """Tenant → database → collection → record surface shared by every backend.

    Record and collection-identity operations receive an already resolved
    collection identifier.
    """

    # ---- tenants ----
    @abstractmethod
    def list_tenants(self) -> list[str]: ...
    @abstractmethod
    def create_tenant(self, name: str) -> bool: ...
    @abstractmethod
    def delete_tenant(self, name: str) -> bool: ...

    # ---- databases ----
    @abstractmethod
    def list_databases(self, tenant: str) -> list[str]: ...
    @abstractmethod
    def create_database(self, tenant: str, name: str) -> bool: ...
    @abstractmethod
    def delete_database(self, tenant: str, name: str) -> bool: ...

    # ---- collections ----
    @abstractmethod
    def list_collections(self, tenant: str, database: str) -> list[CollectionInfo]: ...
    @abstractmethod
    def create_collection(self, tenant: str, database: str, name: str) -> bool: ...
    @abstractmethod
    def delete_collection(self, tenant: str, database: str, collection: str) -> bool: ...
    @abstractmethod
    def rename_collection(self, tenant: str, database: str, collection: str, new_name: str) -> bool: ...

    # ---- records ----
    @abstractmethod
    def list_records(self, tenant: str, database: str, collection: str, *, limit: int, offset: int) -> list[Record]: ...

    @abstractmethod
    def add_record(self, tenant: str, database: str, collection: str, record: Record) -> str: ...

    @abstractmethod
    def get_record(self, tenant: str, database: str, collection: str, record_id: str) -> Record | None: ...

    @abstractmethod
    def update_record(
        self, tenant: str, database: str, collection: str, record_id: str, *,
        document: str | None = None,
        metadata: dict[str, Any] | None = None,
        embedding: Sequence[float] | None = None,
    ) -> bool: ...

    @abstractmethod
    def delete_record(self, tenant: str, database: str, collection: str, record_id: str) -> bool: ...

    @abstractmethod
    def query(
        self, tenant: str, database: str, collection: str, *,
        query_texts: Sequence[str] | None = None,
        query_embeddings: Sequence[Sequence[float]] | None = None,
        n_results: int = DEFAULT_N_RESULTS,
    ) -> dict[str, Any]: ...
