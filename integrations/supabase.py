import os
from typing import Any, Dict, List, Optional

import httpx
import logging

logger = logging.getLogger(__name__)


class SupabaseClient:
    """Thin PostgREST client for a Supabase project.

    Environment variables:
    - SUPABASE_URL: project URL, e.g. https://xyz.supabase.co
    - SUPABASE_SERVICE_KEY (or SUPABASE_KEY): service role key

    Filters use PostgREST syntax, e.g. ``{"id": "eq.5"}``.
    """

    def __init__(
        self,
        url: Optional[str] = None,
        service_key: Optional[str] = None,
        timeout_seconds: int = 15,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.url = (url or os.getenv("SUPABASE_URL") or "").rstrip("/")
        self.service_key = service_key or os.getenv("SUPABASE_SERVICE_KEY") or os.getenv("SUPABASE_KEY") or ""
        self.timeout_seconds = timeout_seconds
        if not self.url:
            raise ValueError("SUPABASE_URL is required")
        if not self.service_key:
            raise ValueError("SUPABASE_SERVICE_KEY is required")

        self._client = httpx.Client(
            base_url=f"{self.url}/rest/v1",
            headers={
                "apikey": self.service_key,
                "Authorization": f"Bearer {self.service_key}",
                "Content-Type": "application/json",
            },
            timeout=self.timeout_seconds,
            transport=transport,
        )

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def close(self):
        """Explicitly close the HTTP client."""
        if hasattr(self, "_client"):
            self._client.close()

    def select(
        self,
        table: str,
        filters: Optional[Dict[str, str]] = None,
        columns: str = "*",
        order: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        params: Dict[str, Any] = {"select": columns}
        if filters:
            params.update(filters)
        if order:
            params["order"] = order
        if limit is not None:
            params["limit"] = limit

        response = self._client.get(f"/{table}", params=params)
        response.raise_for_status()
        return response.json()

    def insert(self, table: str, rows: Any) -> List[Dict[str, Any]]:
        """Insert one row (dict) or many (list) and return the stored rows."""
        response = self._client.post(
            f"/{table}",
            json=rows,
            headers={"Prefer": "return=representation"},
        )
        response.raise_for_status()
        return response.json()

    def upsert(self, table: str, rows: List[Dict[str, Any]], on_conflict: str = "id") -> List[Dict[str, Any]]:
        response = self._client.post(
            f"/{table}",
            params={"on_conflict": on_conflict},
            json=rows,
            headers={"Prefer": "resolution=merge-duplicates,return=representation"},
        )
        response.raise_for_status()
        return response.json()

    def update(self, table: str, values: Dict[str, Any], filters: Dict[str, str]) -> List[Dict[str, Any]]:
        response = self._client.patch(
            f"/{table}",
            params=filters,
            json=values,
            headers={"Prefer": "return=representation"},
        )
        response.raise_for_status()
        return response.json()

    def delete(self, table: str, filters: Dict[str, str]) -> List[Dict[str, Any]]:
        if not filters:
            # PostgREST would refuse anyway; never issue an unfiltered delete
            raise ValueError("delete requires at least one filter")
        response = self._client.delete(
            f"/{table}",
            params=filters,
            headers={"Prefer": "return=representation"},
        )
        response.raise_for_status()
        return response.json()
