from __future__ import annotations

import asyncio
import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from enum import Enum

from chroma_explorer.client import DataAccessClient
from chroma_explorer.utils.bounded import Outcome, run_bounded

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 5.0
DEFAULT_PAGE_SIZE = 50
_DESCRIPTION_WIDTH = 60


class NodeKind(str, Enum):
    NOT_CONNECTED = "not_connected"
    TENANT = "tenant"
    DATABASE = "database"
    COLLECTION = "collection"
    RECORD = "record"
    ERROR = "error"


@dataclass(frozen=True)
class Node:
    kind: NodeKind
    name: str
    label: str
    description: str = ""
    tenant: str | None = None
    database: str | None = None
    collection: str | None = None
    count: int = 0

    @property
    def collapsible(self) -> bool:
        return self.kind in (NodeKind.TENANT, NodeKind.DATABASE, NodeKind.COLLECTION)


def not_connected_node() -> Node:
    return Node(NodeKind.NOT_CONNECTED, name="not_connected", label="Not connected, run connect first")


def error_node(message: str, parent: Node | None = None) -> Node:
    return Node(
        NodeKind.ERROR, name="error", label=message,
        tenant=parent.tenant if parent else None,
        database=parent.database if parent else None,
        collection=parent.collection if parent else None,
    )


def tenant_node(name: str) -> Node:
    return Node(NodeKind.TENANT, name=name, label=name, tenant=name)


def _shorten(doc: str | None) -> str:
    if not doc:
        return ""
    return doc if len(doc) <= _DESCRIPTION_WIDTH else doc[:_DESCRIPTION_WIDTH - 3] + "..."


class HierarchyNavigator:
    """Lazily expands tenant → database → collection → record nodes.

    Each expansion races the backing client call against ``timeout``; a slow
    or failing call yields a single ERROR node instead of raising. Only the
    first ``page_size`` records of a collection are materialized.

    A timed-out call keeps its pool worker until it returns. Once as many
    calls have timed out as there are workers, the pool is replaced so later
    expansions are not starved; the abandoned workers finish in the
    background.
    """

    def __init__(
        self,
        client: DataAccessClient,
        timeout: float = DEFAULT_TIMEOUT,
        page_size: int = DEFAULT_PAGE_SIZE,
        max_workers: int = 4,
    ):
        self.client = client
        self.timeout = timeout
        self.page_size = page_size
        self._max_workers = max_workers
        self._lock = threading.Lock()
        self._stalled = 0
        self._executor = self._new_executor()

    def expand(self, node: Node | None = None) -> list[Node]:
        if node is None:
            return self._roots()
        if node.kind is NodeKind.TENANT:
            return self._bounded(node, self._databases, node)
        if node.kind is NodeKind.DATABASE:
            return self._bounded(node, self._collections, node)
        if node.kind is NodeKind.COLLECTION:
            return self._bounded(node, self._records, node)
        return []

    async def a_expand(self, node: Node | None = None) -> list[Node]:
        return await asyncio.to_thread(self.expand, node)

    def close(self) -> None:
        # a hung call keeps its worker; nobody waits for it
        with self._lock:
            self._executor.shutdown(wait=False, cancel_futures=True)

    def _new_executor(self) -> ThreadPoolExecutor:
        return ThreadPoolExecutor(max_workers=self._max_workers, thread_name_prefix="chroma-explorer-nav")

    def _note_stalled(self, executor: ThreadPoolExecutor) -> None:
        with self._lock:
            if executor is not self._executor:
                return
            self._stalled += 1
            if self._stalled < self._max_workers:
                return
            logger.warning("All %d navigator workers are stalled, starting a fresh pool", self._max_workers)
            executor.shutdown(wait=False)
            self._executor = self._new_executor()
            self._stalled = 0

    # ---- levels ----
    def _roots(self) -> list[Node]:
        if not self.client.is_connected():
            return [not_connected_node()]
        return [tenant_node(self.client.config.tenant)]

    def _databases(self, node: Node) -> list[Node]:
        return [
            Node(NodeKind.DATABASE, name=db, label=db, tenant=node.tenant)
            for db in self.client.list_databases(node.tenant)
        ]

    def _collections(self, node: Node) -> list[Node]:
        return [
            Node(
                NodeKind.COLLECTION, name=c.name, label=f"{c.name} ({c.count})",
                tenant=node.tenant, database=node.name, collection=c.name, count=c.count,
            )
            for c in self.client.list_collections(node.tenant, node.name)
        ]

    def _records(self, node: Node) -> list[Node]:
        records = self.client.list_records(node.tenant, node.database, node.name, self.page_size, 0)
        return [
            Node(
                NodeKind.RECORD, name=r.id, label=r.id, description=_shorten(r.document),
                tenant=node.tenant, database=node.database, collection=node.name,
            )
            for r in records
        ]

    def _bounded(self, parent: Node, fn, *args) -> list[Node]:
        executor = self._executor
        outcome: Outcome = run_bounded(fn, *args, timeout=self.timeout, executor=executor)
        if outcome.ok:
            return outcome.value
        if outcome.status == "timeout":
            self._note_stalled(executor)
            return [error_node(f"Timed out after {self.timeout:g}s loading {parent.label}", parent)]
        logger.warning("Expanding %s failed: %s", parent.label, outcome.error)
        return [error_node(f"Failed to load {parent.label}: {outcome.error}", parent)]
