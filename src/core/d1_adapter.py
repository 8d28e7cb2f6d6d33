"""Cloudflare D1 backend over the D1 HTTP query API.

Each statement is one POST to
``{base_url}/accounts/{account_id}/d1/database/{database_id}/query`` with a
``{"sql": ..., "params": [...]}`` body. The response carries one result
object per statement:

    {"success": true, "errors": [], "result": [
        {"success": true, "results": [...], "meta": {"changes": 1, "last_row_id": 3}}
    ]}
"""

import logging
from typing import Any, Dict, List, Optional

import httpx

from core.database import (
    DatabaseAdapter,
    PreparedStatement,
    QueryResult,
    Row,
    RunMeta,
    RunResult,
)
from core.exceptions import D1QueryError

logger = logging.getLogger(__name__)


def _error_messages(payload: Dict[str, Any]) -> List[str]:
    messages = []
    for err in payload.get("errors") or []:
        if isinstance(err, dict):
            messages.append(str(err.get("message", err)))
        else:
            messages.append(str(err))
    return messages


class D1Statement(PreparedStatement):
    backend_name = "D1"

    def __init__(self, adapter: "D1Adapter", sql: str):
        super().__init__(sql)
        self._adapter = adapter

    def _execute(self) -> Dict[str, Any]:
        try:
            return self._adapter.query(self.sql, list(self.params))
        except Exception as exc:
            self._log_failure(exc)
            raise

    def first(self) -> Optional[Row]:
        rows = self._execute().get("results") or []
        return dict(rows[0]) if rows else None

    def all(self) -> QueryResult:
        rows = self._execute().get("results") or []
        return QueryResult(results=[dict(r) for r in rows])

    def run(self) -> RunResult:
        result = self._execute()
        meta = result.get("meta") or {}
        return RunResult(
            success=bool(result.get("success", True)),
            meta=RunMeta(
                changes=int(meta.get("changes") or 0),
                last_row_id=meta.get("last_row_id"),
            ),
        )


class D1Adapter(DatabaseAdapter):
    """Adapter over a remote D1 database."""

    name = "d1"

    def __init__(
        self,
        account_id: str,
        database_id: str,
        api_token: str,
        base_url: str = "https://api.cloudflare.com/client/v4",
        timeout: float = 30.0,
        client: Optional[httpx.Client] = None,
    ):
        """Initialize D1Adapter.

        Args:
            account_id: Cloudflare account id.
            database_id: D1 database id.
            api_token: API token with D1 edit permission.
            base_url: API root, overridable for tests or proxies.
            timeout: Per-request timeout in seconds.
            client: Optional preconfigured httpx client.
        """
        self.query_url = (
            f"{base_url.rstrip('/')}/accounts/{account_id}"
            f"/d1/database/{database_id}/query"
        )
        self._owns_client = client is None
        self._client = client or httpx.Client(timeout=timeout)
        self._headers = {
            "Authorization": f"Bearer {api_token}",
            "Content-Type": "application/json",
        }

    def prepare(self, sql: str) -> D1Statement:
        return D1Statement(self, sql)

    def query(self, sql: str, params: List[Any]) -> Dict[str, Any]:
        """Send one statement and return its result object.

        Raises:
            D1QueryError: If the API reports a failure.
            httpx.HTTPError: On transport failures.
        """
        response = self._client.post(
            self.query_url,
            json={"sql": sql, "params": params},
            headers=self._headers,
        )
        try:
            payload = response.json()
        except ValueError:
            payload = {}

        if response.status_code >= 400 or not payload.get("success", False):
            errors = _error_messages(payload)
            raise D1QueryError(
                "D1 query failed: " + ("; ".join(errors) or f"HTTP {response.status_code}"),
                status_code=response.status_code,
                errors=errors,
            )

        results = payload.get("result") or []
        if not results:
            return {"success": True, "results": [], "meta": {}}
        result = results[0]
        if not result.get("success", True):
            errors = _error_messages(result) or ["statement failed"]
            raise D1QueryError(
                "D1 query failed: " + "; ".join(errors),
                status_code=response.status_code,
                errors=errors,
            )
        return result

    def close(self) -> None:
        if self._owns_client:
            self._client.close()
