# src/chroma_explorer/postprocessing/normalize.py
"""Response-shape normalization for the Chroma REST API.

Servers and proxies disagree on envelopes: listings arrive as bare arrays of
names, arrays of objects, or an object wrapping the array; record fetches
put the parallel arrays at the root or under ``data``. Every shape is
handled here so call sites only see canonical values.
"""
from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from chroma_explorer.storage.interfaces import CollectionInfo, Record, ensure_embedding


def _entries(payload: Any, key: str) -> list[Any]:
    if isinstance(payload, list):
        return payload
    if isinstance(payload, dict) and isinstance(payload.get(key), list):
        return payload[key]
    return []


def _entry_name(entry: Any) -> str | None:
    if isinstance(entry, str):
        return entry
    if isinstance(entry, dict):
        value = entry.get("name") or entry.get("id")
        return str(value) if value is not None else None
    return None


def normalize_names(payload: Any, key: str) -> list[str]:
    names = (_entry_name(e) for e in _entries(payload, key))
    return [n for n in names if n]


def _count(value: Any) -> int:
    # bool is an int subclass but never a count
    if isinstance(value, int) and not isinstance(value, bool):
        return max(value, 0)
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return 0


def normalize_collections(payload: Any) -> list[CollectionInfo]:
    out: list[CollectionInfo] = []
    for entry in _entries(payload, "collections"):
        if isinstance(entry, str):
            out.append(CollectionInfo(id=entry, name=entry))
            continue
        if not isinstance(entry, dict):
            continue
        cid, name = entry.get("id"), entry.get("name")
        if cid is None and name is None:
            continue
        out.append(
            CollectionInfo(
                id=str(cid if cid is not None else name),
                name=str(name if name is not None else cid),
                count=_count(entry.get("count")),
            )
        )
    return out


def _field(payload: dict[str, Any], key: str) -> list[Any]:
    value = payload.get(key)
    if value is None and isinstance(payload.get("data"), dict):
        value = payload["data"].get(key)
    return list(value) if isinstance(value, (list, tuple)) else []


def _vector(value: Any) -> list[float]:
    """Numeric list from an embedding entry; anything else gets the zero vector."""
    if not isinstance(value, (list, tuple)):
        return ensure_embedding(None)
    if not all(isinstance(x, (int, float)) and not isinstance(x, bool) for x in value):
        return ensure_embedding(None)
    return ensure_embedding(value)


def normalize_records(payload: Any) -> list[Record]:
    if not isinstance(payload, dict):
        return []
    ids = _field(payload, "ids")
    docs = _field(payload, "documents")
    metas = _field(payload, "metadatas")
    embs = _field(payload, "embeddings")
    out: list[Record] = []
    for i, _id in enumerate(ids):
        if _id is None:
            continue
        meta = metas[i] if i < len(metas) else None
        doc = docs[i] if i < len(docs) else None
        out.append(
            Record(
                id=str(_id),
                document=doc if doc is None or isinstance(doc, str) else str(doc),
                metadata=dict(meta) if isinstance(meta, dict) else {},
                embedding=_vector(embs[i] if i < len(embs) else None),
            )
        )
    return out


def find_collection_id(collections: Sequence[CollectionInfo], name_or_id: str) -> str | None:
    # ids win over names: a collection may be named like another one's id
    for c in collections:
        if c.id == name_or_id:
            return c.id
    for c in collections:
        if c.name == name_or_id:
            return c.id
    return None


def flatten_query_result(raw: dict[str, Any]) -> list[dict[str, Any]]:
    """Flatten the per-query nested lists of a query response into hits."""
    if not isinstance(raw, dict):
        return []
    ids_per_query = raw.get("ids") or []
    dists_per_query = raw.get("distances") or []
    docs_per_query = raw.get("documents") or []
    metas_per_query = raw.get("metadatas") or []
    out = []
    for q, ids in enumerate(ids_per_query):
        dists = dists_per_query[q] if q < len(dists_per_query) and dists_per_query[q] else []
        docs = docs_per_query[q] if q < len(docs_per_query) and docs_per_query[q] else []
        metas = metas_per_query[q] if q < len(metas_per_query) and metas_per_query[q] else []
        for i, _id in enumerate(ids or []):
            out.append({
                "query": q,
                "id": _id,
                "distance": dists[i] if i < len(dists) else None,
                "document": docs[i] if i < len(docs) else None,
                "metadata": (metas[i] if i < len(metas) else None) or {},
            })
    return out
