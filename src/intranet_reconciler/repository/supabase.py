"""
Supabase REST Repository.

Thin synchronous wrapper around the PostgREST endpoint of a Supabase project.
Every call is issued through one `requests.Session`, one request at a time.

Errors are split in two:
- `TransportError`: the store could not be reached or rejected our credential.
- `StoreError`: the store answered with a non-success status and a PostgREST
  error body; callers decide whether that means "absent" or "rejected".
"""

from typing import Any, Dict, List, Optional

import requests
from loguru import logger

from intranet_reconciler.config import Settings
from intranet_reconciler.exceptions import StoreError, TransportError


class SupabaseRestClient:
    """PostgREST client authenticated with a bearer credential."""

    def __init__(
        self,
        base_url: str,
        api_key: str,
        timeout: float = 10.0,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update(
            {
                "apikey": api_key,
                "Authorization": f"Bearer {api_key}",
                "Content-Type": "application/json",
                "Accept": "application/json",
            }
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "SupabaseRestClient":
        return cls(
            base_url=settings.rest_url,
            api_key=settings.SUPABASE_SERVICE_ROLE_KEY.get_secret_value(),
            timeout=settings.REQUEST_TIMEOUT,
        )

    def close(self) -> None:
        self.session.close()

    def __enter__(self) -> "SupabaseRestClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def select(
        self,
        table: str,
        columns: str = "*",
        limit: Optional[int] = 1,
    ) -> List[Dict[str, Any]]:
        """
        Read rows from a table.

        Args:
            table: Table or view name
            columns: PostgREST select expression (may embed relations)
            limit: Maximum rows returned, None for no limit
        """
        params: Dict[str, Any] = {"select": columns}
        if limit is not None:
            params["limit"] = limit
        return self._request("GET", f"/{table}", params=params) or []

    def upsert(
        self,
        table: str,
        row: Dict[str, Any],
        on_conflict: str,
    ) -> List[Dict[str, Any]]:
        """Insert a row, merging into the existing row that shares `on_conflict`."""
        return (
            self._request(
                "POST",
                f"/{table}",
                params={"on_conflict": on_conflict},
                json=row,
                headers={
                    "Prefer": "resolution=merge-duplicates,return=representation"
                },
            )
            or []
        )

    def delete(self, table: str, filters: Dict[str, str]) -> List[Dict[str, Any]]:
        """Delete the rows matching `filters`; refuses an unfiltered delete."""
        if not filters:
            raise ValueError("Refusing to delete without filters")
        return (
            self._request(
                "DELETE",
                f"/{table}",
                params=filters,
                headers={"Prefer": "return=representation"},
            )
            or []
        )

    def rpc(self, function: str, payload: Optional[Dict[str, Any]] = None) -> Any:
        """Invoke a Postgres function exposed under /rpc."""
        return self._request("POST", f"/rpc/{function}", json=payload or {})

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        json: Any = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> Any:
        url = f"{self.base_url}{path}"
        logger.debug(f"{method} {path} params={params}")
        try:
            response = self.session.request(
                method,
                url,
                params=params,
                json=json,
                headers=headers,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise TransportError(f"{method} {path} failed: {e}") from e

        if response.status_code == 401:
            raise TransportError(
                f"{method} {path} rejected credentials (HTTP 401): "
                f"{_store_error(response).message}"
            )

        if not response.ok:
            raise _store_error(response)

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            return response.text


def _error_body(response: requests.Response) -> Dict[str, Any]:
    try:
        body = response.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}


def _store_error(response: requests.Response) -> StoreError:
    body = _error_body(response)
    code = body.get("code")
    return StoreError(
        status_code=response.status_code,
        message=str(body.get("message") or response.text or response.reason or ""),
        code=str(code) if code is not None else None,
        details=body.get("details"),
        hint=body.get("hint"),
    )
