import json
import logging
from dataclasses import dataclass
from typing import Any

import typer

from chroma_explorer.client import DataAccessClient
from chroma_explorer.config import ConnectionConfig
from chroma_explorer.navigation.navigator import HierarchyNavigator, Node, tenant_node
from chroma_explorer.pipeline.seed import seed_test_data
from chroma_explorer.postprocessing.normalize import flatten_query_result
from chroma_explorer.storage.interfaces import ChromaAPIError
from chroma_explorer.utils._json_default import _json_default

app = typer.Typer(help="Browse and edit a Chroma server (tenants → databases → collections → records)")


@dataclass
class State:
    client: DataAccessClient
    config: ConnectionConfig


def _state(ctx: typer.Context) -> State:
    return ctx.obj


def _echo(value: Any) -> None:
    typer.echo(json.dumps(value, ensure_ascii=False, indent=2, default=_json_default))


def _parse_json(raw: str | None, option: str) -> Any:
    if raw is None:
        return None
    try:
        return json.loads(raw)
    except json.JSONDecodeError as e:
        typer.secho(f"Invalid {option} JSON: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=2)


def _write(fn, *args, **kwargs) -> Any:
    try:
        return fn(*args, **kwargs)
    except ChromaAPIError as e:
        typer.secho(f"Request failed: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)


@app.callback()
def main(
    ctx: typer.Context,
    url: str | None = typer.Option(None, help="Server URL, e.g. http://localhost:8000 (overrides host/port/ssl)"),
    host: str | None = typer.Option(None, help="Server host [env CHROMA_HOST]"),
    port: int | None = typer.Option(None, help="Server port [env CHROMA_PORT]"),
    ssl: bool | None = typer.Option(None, "--ssl/--no-ssl", help="Use https [env CHROMA_SSL]"),
    tenant: str | None = typer.Option(None, help="Tenant [env CHROMA_TENANT]"),
    database: str | None = typer.Option(None, help="Database [env CHROMA_DATABASE]"),
    api_key: str | None = typer.Option(None, help="API token [env CHROMA_API_KEY]"),
    offline: bool = typer.Option(False, "--offline", help="Skip connecting; work on the local mirror"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
):
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    config = ConnectionConfig.from_env().with_overrides(
        host=host, port=port, ssl=ssl, tenant=tenant, database=database, api_key=api_key,
    )
    if url:
        try:
            config = ConnectionConfig.from_url(
                url, tenant=config.tenant, database=config.database, api_key=config.api_key, timeout=config.timeout,
            )
        except ValueError as e:
            typer.secho(str(e), fg=typer.colors.RED, err=True)
            raise typer.Exit(code=2)

    client = DataAccessClient(config)
    if not offline and ctx.invoked_subcommand != "seed":
        if not client.connect(config):
            typer.secho(
                f"Could not reach {config.base_url}; showing local mirror data",
                fg=typer.colors.YELLOW, err=True,
            )
    ctx.obj = State(client=client, config=config)


@app.command()
def status(ctx: typer.Context):
    """Show the connection target and state."""
    st = _state(ctx)
    _echo({
        "connected": st.client.is_connected(),
        "url": st.config.base_url,
        "tenant": st.config.tenant,
        "database": st.config.database,
    })


@app.command()
def tenants(ctx: typer.Context):
    """List tenants."""
    _echo(_state(ctx).client.list_tenants())


@app.command()
def databases(ctx: typer.Context, tenant: str | None = typer.Argument(None)):
    """List databases of TENANT (default: configured tenant)."""
    _echo(_state(ctx).client.list_databases(tenant))


@app.command()
def collections(ctx: typer.Context, database: str | None = typer.Argument(None)):
    """List collections with their record counts."""
    cols = _state(ctx).client.list_collections(None, database)
    _echo([{"id": c.id, "name": c.name, "count": c.count} for c in cols])


@app.command()
def records(
    ctx: typer.Context,
    collection: str = typer.Argument(...),
    limit: int = typer.Option(50, help="Page size"),
    offset: int = typer.Option(0, help="Records to skip"),
):
    """List one page of records in COLLECTION."""
    recs = _state(ctx).client.list_records(None, None, collection, limit, offset)
    _echo([r.to_dict() for r in recs])


@app.command()
def get(ctx: typer.Context, collection: str, record_id: str):
    """Show a single record."""
    rec = _state(ctx).client.get_record(None, None, collection, record_id)
    if rec is None:
        typer.secho(f"Record '{record_id}' not found in '{collection}'", fg=typer.colors.YELLOW, err=True)
        raise typer.Exit(code=1)
    _echo(rec.to_dict())


@app.command()
def add(
    ctx: typer.Context,
    collection: str,
    document: str = typer.Argument("", help="Document text"),
    record_id: str | None = typer.Option(None, "--id", help="Record id (auto-generated when omitted)"),
    metadata: str | None = typer.Option(None, help='Metadata JSON, e.g. \'{"source": "cli"}\''),
    embedding: str | None = typer.Option(None, help="Embedding JSON array, e.g. [0.1, 0.2]"),
):
    """Add a record to COLLECTION and print its id."""
    meta = _parse_json(metadata, "--metadata")
    emb = _parse_json(embedding, "--embedding")
    if emb is not None and not isinstance(emb, list):
        emb = None
    new_id = _write(
        _state(ctx).client.add_record, None, None, collection, document,
        record_id=record_id, metadata=meta, embedding=emb,
    )
    _echo({"id": new_id})


@app.command()
def update(
    ctx: typer.Context,
    collection: str,
    record_id: str,
    document: str | None = typer.Option(None, help="New document text"),
    metadata: str | None = typer.Option(None, help="New metadata JSON"),
    embedding: str | None = typer.Option(None, help="New embedding JSON array"),
):
    """Update only the given fields of a record."""
    ok = _write(
        _state(ctx).client.update_record, None, None, collection, record_id,
        document=document,
        metadata=_parse_json(metadata, "--metadata"),
        embedding=_parse_json(embedding, "--embedding"),
    )
    _echo({"id": record_id, "updated": ok})


@app.command("delete-record")
def delete_record(ctx: typer.Context, collection: str, record_id: str):
    """Delete a record (no-op if it does not exist)."""
    ok = _write(_state(ctx).client.delete_record, None, None, collection, record_id)
    _echo({"id": record_id, "deleted": ok})


@app.command()
def query(
    ctx: typer.Context,
    collection: str,
    text: list[str] = typer.Argument(None, help="Query texts"),
    embedding: str | None = typer.Option(None, help="Query embeddings JSON, e.g. [[0.1, 0.2]]"),
    n_results: int = typer.Option(5, "--n-results", "-k"),
    raw: bool = typer.Option(False, "--raw", help="Print the server response untouched"),
):
    """Similarity query against COLLECTION (needs a live server)."""
    st = _state(ctx)
    if not st.client.is_connected():
        typer.secho("Queries need a live server; nothing to show offline", fg=typer.colors.YELLOW, err=True)
    res = st.client.query_collection(
        None, None, collection,
        query_texts=text or None,
        query_embeddings=_parse_json(embedding, "--embedding"),
        n_results=n_results,
    )
    _echo(res if raw else flatten_query_result(res))


@app.command("create-collection")
def create_collection(ctx: typer.Context, name: str, database: str | None = typer.Option(None)):
    _echo({"created": _write(_state(ctx).client.create_collection, None, database, name), "name": name})


@app.command("rename-collection")
def rename_collection(ctx: typer.Context, name: str, new_name: str, database: str | None = typer.Option(None)):
    _echo({"renamed": _write(_state(ctx).client.rename_collection, None, database, name, new_name), "name": new_name})


@app.command("delete-collection")
def delete_collection(
    ctx: typer.Context,
    name: str,
    database: str | None = typer.Option(None),
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation"),
):
    if not yes:
        typer.confirm(f"Delete collection '{name}'?", abort=True)
    _echo({"deleted": _write(_state(ctx).client.delete_collection, None, database, name), "name": name})


@app.command("create-tenant")
def create_tenant(ctx: typer.Context, name: str):
    _echo({"created": _write(_state(ctx).client.create_tenant, name), "name": name})


@app.command("delete-tenant")
def delete_tenant(ctx: typer.Context, name: str, yes: bool = typer.Option(False, "--yes", "-y")):
    if not yes:
        typer.confirm(f"Delete tenant '{name}'?", abort=True)
    _echo({"deleted": _write(_state(ctx).client.delete_tenant, name), "name": name})


@app.command("create-database")
def create_database(ctx: typer.Context, name: str, tenant: str | None = typer.Option(None)):
    _echo({"created": _write(_state(ctx).client.create_database, tenant, name), "name": name})


@app.command("delete-database")
def delete_database(
    ctx: typer.Context,
    name: str,
    tenant: str | None = typer.Option(None),
    yes: bool = typer.Option(False, "--yes", "-y"),
):
    if not yes:
        typer.confirm(f"Delete database '{name}'?", abort=True)
    _echo({"deleted": _write(_state(ctx).client.delete_database, tenant, name), "name": name})


def _render(nav: HierarchyNavigator, node: Node | None, depth: int, max_depth: int) -> None:
    for child in nav.expand(node):
        line = "  " * depth + child.label
        if child.description:
            line += f"  {child.description}"
        typer.echo(line)
        if child.collapsible and depth + 1 < max_depth:
            _render(nav, child, depth + 1, max_depth)


@app.command()
def tree(
    ctx: typer.Context,
    depth: int = typer.Option(4, help="Levels to expand (tenant=1 … record=4)"),
    timeout: float = typer.Option(5.0, help="Seconds to wait per level"),
):
    """Print the hierarchy, expanding one level at a time."""
    st = _state(ctx)
    nav = HierarchyNavigator(st.client, timeout=timeout)
    try:
        if st.client.is_connected():
            _render(nav, None, 0, depth)
            return
        # offline: the root is a placeholder, so walk the mirror's tenants instead
        typer.echo(nav.expand(None)[0].label)
        for name in st.client.list_tenants():
            node = tenant_node(name)
            typer.echo(f"{node.label}  (local mirror)")
            if depth > 1:
                _render(nav, node, 1, depth)
    finally:
        nav.close()


@app.command()
def seed(
    ctx: typer.Context,
    tenant: str = typer.Option("test_tenant"),
    database: str = typer.Option("test_db"),
    big_count: int = typer.Option(20, help="Records in the big collection"),
    wait: float = typer.Option(120.0, help="Seconds to wait for the server"),
):
    """Create test tenant/database/collections with sample records on a live server."""
    st = _state(ctx)
    report = _write(
        seed_test_data, st.client, st.config,
        tenant=tenant, database=database, big_count=big_count, wait_timeout=wait,
    )
    _echo({"created": report.created, "skipped": report.skipped})


if __name__ == "__main__":
    app()
