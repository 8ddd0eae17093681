from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field

from tenacity import RetryError, retry, retry_if_result, stop_after_delay, wait_fixed

from chroma_explorer.client import DataAccessClient
from chroma_explorer.config import ConnectionConfig
from chroma_explorer.storage.interfaces import ChromaAPIError

logger = logging.getLogger(__name__)

SMALL_COLLECTION = "test_collection_small"
BIG_COLLECTION = "test_collection_big"


@dataclass
class SeedReport:
    created: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)


def wait_for_server(client: DataAccessClient, config: ConnectionConfig, *, timeout: float = 120.0, interval: float = 1.0) -> bool:
    """Poll the readiness probe until it answers or ``timeout`` elapses."""

    @retry(
        stop=stop_after_delay(timeout),
        wait=wait_fixed(interval),
        retry=retry_if_result(lambda ok: not ok),
    )
    def _probe() -> bool:
        return client.connect(config)

    try:
        return _probe()
    except RetryError:
        return False


def _step(report: SeedReport, label: str, fn, *args, **kwargs) -> bool:
    try:
        fn(*args, **kwargs)
    except ChromaAPIError as e:
        # usually "already exists" on a re-run
        logger.info("Seeding step '%s' skipped: %s", label, e)
        report.skipped.append(label)
        return False
    report.created.append(label)
    return True


def seed_test_data(
    client: DataAccessClient,
    config: ConnectionConfig,
    *,
    tenant: str = "test_tenant",
    database: str = "test_db",
    big_count: int = 20,
    wait_timeout: float = 120.0,
) -> SeedReport:
    """Populate a live server with a small and a big test collection."""
    if not wait_for_server(client, config, timeout=wait_timeout):
        raise ChromaAPIError(f"Timeout waiting for {config.base_url}/version")

    report = SeedReport()
    _step(report, f"tenant {tenant}", client.create_tenant, tenant)
    _step(report, f"database {tenant}/{database}", client.create_database, tenant, database)
    for name in (SMALL_COLLECTION, BIG_COLLECTION):
        _step(report, f"collection {name}", client.create_collection, tenant, database, name)

    small = [
        ("s1", "small doc one", [0.1, 0.2]),
        ("s2", "small doc two", [0.2, 0.1]),
        ("s3", "small doc three", [0.3, 0.4]),
    ]
    for rid, doc, emb in small:
        _step(
            report, f"record {SMALL_COLLECTION}/{rid}", client.add_record, tenant, database, SMALL_COLLECTION, doc,
            record_id=rid, metadata={"tag": "small"}, embedding=emb,
        )

    for i in range(1, big_count + 1):
        _step(
            report, f"record {BIG_COLLECTION}/b{i}", client.add_record, tenant, database, BIG_COLLECTION,
            f"big collection doc {i}",
            record_id=f"b{i}", metadata={"index": i}, embedding=[random.random() for _ in range(3)],
        )

    logger.info("Seeding complete: %d created, %d skipped", len(report.created), len(report.skipped))
    return report
