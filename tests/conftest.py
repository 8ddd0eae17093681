from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any

import pytest
import requests

from chroma_explorer.client import DataAccessClient
from chroma_explorer.config import ConnectionConfig

BASE = "http://localhost:8000/api/v2"


@dataclass
class FakeResponse:
    status_code: int = 200
    payload: Any = None
    reason: str = "OK"
    content_type: str = "application/json"

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 400

    @property
    def headers(self) -> dict[str, str]:
        return {"content-type": self.content_type}

    @property
    def text(self) -> str:
        if isinstance(self.payload, str):
            return self.payload
        return json.dumps(self.payload)

    def json(self) -> Any:
        return self.payload


@dataclass
class Call:
    method: str
    path: str
    body: Any
    headers: dict[str, str]


@dataclass
class FakeSession:
    """Routes ``(METHOD, path-under-/api/v2)`` to canned responses.

    A route value may be a FakeResponse, an exception instance to raise, or
    a callable taking the decoded body.
    """

    routes: dict[tuple[str, str], Any] = field(default_factory=dict)
    calls: list[Call] = field(default_factory=list)

    def route(self, method: str, path: str, payload: Any = None, status: int = 200) -> None:
        self.routes[(method, path)] = FakeResponse(status_code=status, payload=payload, reason="OK" if status < 400 else "Error")

    def request(self, method, url, data=None, headers=None, timeout=None):
        assert url.startswith(BASE), url
        path = url[len(BASE):]
        body = json.loads(data) if data else None
        self.calls.append(Call(method, path, body, dict(headers or {})))
        handler = self.routes.get((method, path))
        if handler is None:
            return FakeResponse(status_code=404, payload={"error": "NotFound"}, reason="Not Found")
        if isinstance(handler, BaseException):
            raise handler
        if callable(handler):
            return handler(body)
        return handler

    def paths(self, method: str | None = None) -> list[str]:
        return [c.path for c in self.calls if method is None or c.method == method]


@pytest.fixture
def session() -> FakeSession:
    s = FakeSession()
    s.route("GET", "/version", "1.0.0")
    return s


@pytest.fixture
def config() -> ConnectionConfig:
    return ConnectionConfig(host="localhost", port=8000, tenant="t", database="d")


@pytest.fixture
def offline_client() -> DataAccessClient:
    return DataAccessClient()


@pytest.fixture
def online_client(session: FakeSession, config: ConnectionConfig) -> DataAccessClient:
    client = DataAccessClient(config, session=session)
    assert client.connect()
    return client


@pytest.fixture
def unreachable_session() -> FakeSession:
    s = FakeSession()
    s.routes[("GET", "/version")] = requests.ConnectionError("connection refused")
    return s
