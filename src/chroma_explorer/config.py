from __future__ import annotations

import os
from dataclasses import dataclass, replace
from urllib.parse import urlsplit

from dotenv import load_dotenv

DEFAULT_HOST = "localhost"
DEFAULT_PORT = 8000
DEFAULT_TENANT = "default_tenant"
DEFAULT_DATABASE = "default_database"
DEFAULT_TIMEOUT = 30.0
API_PREFIX = "/api/v2"


def _env_flag(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class ConnectionConfig:
    host: str = DEFAULT_HOST
    port: int | None = DEFAULT_PORT
    ssl: bool = False
    tenant: str = DEFAULT_TENANT
    database: str = DEFAULT_DATABASE
    api_key: str | None = None
    timeout: float = DEFAULT_TIMEOUT   # seconds per HTTP request

    @classmethod
    def from_url(
        cls,
        url: str,
        *,
        tenant: str = DEFAULT_TENANT,
        database: str = DEFAULT_DATABASE,
        api_key: str | None = None,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> ConnectionConfig:
        """Build a config from ``http[s]://host[:port]``; a bare host means http."""
        url = url.strip()
        if not url:
            raise ValueError("Empty server URL")
        if "://" not in url:
            url = f"http://{url}"
        parts = urlsplit(url)
        if parts.scheme not in ("http", "https") or not parts.hostname:
            raise ValueError(f"Unsupported server URL '{url}'")
        ssl = parts.scheme == "https"
        port = parts.port or (443 if ssl else DEFAULT_PORT)
        return cls(
            host=parts.hostname, port=port, ssl=ssl,
            tenant=tenant, database=database, api_key=api_key, timeout=timeout,
        )

    @classmethod
    def from_env(cls) -> ConnectionConfig:
        load_dotenv()
        port = os.getenv("CHROMA_PORT")
        return cls(
            host=os.getenv("CHROMA_HOST", DEFAULT_HOST),
            port=int(port) if port else DEFAULT_PORT,
            ssl=_env_flag("CHROMA_SSL"),
            tenant=os.getenv("CHROMA_TENANT", DEFAULT_TENANT),
            database=os.getenv("CHROMA_DATABASE", DEFAULT_DATABASE),
            api_key=os.getenv("CHROMA_API_KEY") or None,
            timeout=float(os.getenv("CHROMA_TIMEOUT", DEFAULT_TIMEOUT)),
        )

    @property
    def base_url(self) -> str:
        host = self.host or DEFAULT_HOST
        if "://" not in host:
            proto = "https" if self.ssl else "http"
            port = f":{self.port}" if self.port else ""
            host = f"{proto}://{host}{port}"
        return host.rstrip("/") + API_PREFIX

    def with_overrides(self, **changes) -> ConnectionConfig:
        # None means "keep the current value"
        return replace(self, **{k: v for k, v in changes.items() if v is not None})
