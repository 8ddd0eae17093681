import threading
import time

import pytest

from chroma_explorer.navigation.navigator import HierarchyNavigator, Node, NodeKind, tenant_node

COLLECTIONS = "/tenants/t/databases/d/collections"


@pytest.fixture
def release():
    event = threading.Event()
    yield event
    event.set()  # let hung workers finish so the interpreter can exit


def test_root_offline_is_placeholder(offline_client):
    nav = HierarchyNavigator(offline_client)
    nodes = nav.expand()
    assert [n.kind for n in nodes] == [NodeKind.NOT_CONNECTED]
    assert not nodes[0].collapsible
    nav.close()


def test_root_online_is_configured_tenant(online_client):
    nav = HierarchyNavigator(online_client)
    nodes = nav.expand(None)
    assert len(nodes) == 1
    assert nodes[0].kind is NodeKind.TENANT
    assert nodes[0].name == "t"
    nav.close()


def test_walks_down_to_records(online_client, session):
    session.route("GET", "/tenants/t/databases", [{"name": "d"}])
    session.route("GET", COLLECTIONS, [{"id": "abc", "name": "foo", "count": 2}])
    session.route(
        "POST", f"{COLLECTIONS}/abc/get",
        {"ids": ["r1", "r2"], "documents": ["short", "x" * 80], "metadatas": [{}, {}], "embeddings": [[0.1], [0.2]]},
    )
    nav = HierarchyNavigator(online_client)

    (tenant,) = nav.expand(None)
    (database,) = nav.expand(tenant)
    assert database.kind is NodeKind.DATABASE and database.tenant == "t"

    (collection,) = nav.expand(database)
    assert collection.label == "foo (2)"
    assert collection.database == "d"

    records = nav.expand(collection)
    assert [r.name for r in records] == ["r1", "r2"]
    assert records[0].description == "short"
    assert len(records[1].description) == 60 and records[1].description.endswith("...")
    assert nav.expand(records[0]) == []

    body = session.calls[-1].body
    assert body["limit"] == 50 and body["offset"] == 0
    nav.close()


def test_offline_walk_uses_mirror(offline_client):
    nav = HierarchyNavigator(offline_client)
    (database,) = nav.expand(tenant_node("default_tenant"))
    (collection,) = nav.expand(database)
    assert collection.label == "example_collection (3)"
    assert [r.name for r in nav.expand(collection)] == ["r1", "r2", "r3"]
    nav.close()


def test_stalled_call_times_out_with_error_node(offline_client, release):
    def hang(tenant=None):
        release.wait(10)
        return ["late"]

    offline_client.list_databases = hang
    nav = HierarchyNavigator(offline_client, timeout=0.2)

    started = time.monotonic()
    nodes = nav.expand(tenant_node("default_tenant"))
    elapsed = time.monotonic() - started

    assert elapsed < 1.5
    assert len(nodes) == 1
    assert nodes[0].kind is NodeKind.ERROR
    assert "Timed out" in nodes[0].label
    nav.close()


def test_stalled_workers_do_not_starve_later_expansions(offline_client, release):
    real = offline_client.list_databases
    calls = []

    def hang_once(tenant=None):
        calls.append(tenant)
        if len(calls) == 1:
            release.wait(10)
        return real(tenant)

    offline_client.list_databases = hang_once
    nav = HierarchyNavigator(offline_client, timeout=0.2, max_workers=1)

    (stalled,) = nav.expand(tenant_node("default_tenant"))
    assert stalled.kind is NodeKind.ERROR

    nodes = nav.expand(tenant_node("default_tenant"))
    assert [n.name for n in nodes] == ["default_database"]
    nav.close()


def test_failure_becomes_error_node(offline_client):
    def boom(tenant=None, database=None):
        raise RuntimeError("kaboom")

    offline_client.list_collections = boom
    nav = HierarchyNavigator(offline_client)
    database = Node(NodeKind.DATABASE, name="default_database", label="default_database", tenant="default_tenant")
    nodes = nav.expand(database)
    assert [n.kind for n in nodes] == [NodeKind.ERROR]
    assert "kaboom" in nodes[0].label
    nav.close()


def test_async_expand(offline_client):
    import asyncio

    nav = HierarchyNavigator(offline_client)
    nodes = asyncio.run(nav.a_expand(tenant_node("default_tenant")))
    assert [n.name for n in nodes] == ["default_database"]
    nav.close()


def test_run_bounded_on_closed_pool_is_an_error():
    from concurrent.futures import ThreadPoolExecutor

    from chroma_explorer.utils.bounded import run_bounded

    pool = ThreadPoolExecutor(max_workers=1)
    pool.shutdown()
    outcome = run_bounded(lambda: 1, timeout=0.5, executor=pool)
    assert outcome.status == "error"
    assert isinstance(outcome.error, RuntimeError)
