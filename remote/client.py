"""
remote.client: Async client for the hosted database's REST interface.

Design notes:
- Async-only: all public methods are coroutines. Caller must call close() when done.
- Speaks the PostgREST dialect exposed by the hosted database:
  ``/rest/v1/<table>`` with ``id=eq.<id>`` row filters and
  ``Prefer: return=representation`` so writes return the written row.
- Inserts carry an ``Idempotency-Key`` header so a replayed create can be
  de-duplicated server side.
- A 404 on delete means the row is already gone, which is the desired outcome.

Exports:
    RemoteStore            -- protocol the sync engine depends on
    RestRemoteStore        -- httpx implementation of RemoteStore
    RemoteStoreError       -- base class of remote failures
    RemoteConnectionError  -- server unreachable or request timed out
    RemoteRequestError     -- server answered with a non-2xx status
"""

from __future__ import annotations

import logging
from typing import Any, Optional, Protocol

import httpx

log = logging.getLogger("remote.client")


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class RemoteStoreError(Exception):
    """Base class for remote store failures."""


class RemoteConnectionError(RemoteStoreError):
    """
    Remote store is unreachable or the request timed out.

    Covers both connection failures (ConnectError) and timeouts
    (TimeoutException); both mean "no connectivity" to the caller.
    """


class RemoteRequestError(RemoteStoreError):
    """Remote store answered with an error status."""

    def __init__(self, message: str, status_code: int):
        super().__init__(message)
        self.status_code = status_code


# ---------------------------------------------------------------------------
# Capability
# ---------------------------------------------------------------------------


class RemoteStore(Protocol):
    """Create/update/delete by table name and record id."""

    async def insert(
        self, table: str, data: dict[str, Any], *, idempotency_key: Optional[str] = None
    ) -> dict[str, Any]: ...

    async def update(self, table: str, record_id: str, data: dict[str, Any]) -> dict[str, Any]: ...

    async def delete(self, table: str, record_id: str) -> None: ...

    async def ping(self) -> None: ...


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------


class RestRemoteStore:
    """
    Async REST client for the hosted database.

    Usage::

        store = RestRemoteStore("https://db.example.com", api_key="anon-key")
        try:
            row = await store.insert("clients", {"name": "Acme"})
        finally:
            await store.close()
    """

    def __init__(
        self,
        base_url: str,
        api_key: str = "",
        timeout: float = 30.0,
        access_token: Optional[str] = None,
    ) -> None:
        """
        Create the REST client.

        Args:
            base_url:     Project URL, e.g. ``https://db.example.com``.
                          Trailing slashes are stripped automatically.
            api_key:      Project API key, sent as ``apikey`` header.
            timeout:      Total request timeout in seconds. Connect timeout
                          is fixed at 5 seconds.
            access_token: Signed-in user's token; falls back to api_key.
        """
        self._base_url = base_url.rstrip("/")
        self._rest_url = self._base_url + "/rest/v1"

        headers: dict[str, str] = {
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        if api_key:
            headers["apikey"] = api_key
        bearer = access_token or api_key
        if bearer:
            headers["Authorization"] = f"Bearer {bearer}"

        self._client = httpx.AsyncClient(
            headers=headers,
            timeout=httpx.Timeout(timeout, connect=5.0),
        )
        log.debug("RestRemoteStore initialised, url=%s api_key=%s", self._rest_url, bool(api_key))

    @property
    def base_url(self) -> str:
        return self._base_url

    async def close(self) -> None:
        """Close the underlying httpx client and release connections."""
        await self._client.aclose()

    async def _request(
        self,
        method: str,
        table: str,
        *,
        record_id: Optional[str] = None,
        json: Optional[dict[str, Any]] = None,
        headers: Optional[dict[str, str]] = None,
    ) -> httpx.Response:
        """
        Send one request to ``/rest/v1/<table>``.

        Raises:
            RemoteConnectionError: Server unreachable or request timed out.
            RemoteRequestError:    Non-2xx response.
        """
        params = {"id": f"eq.{record_id}"} if record_id is not None else None
        try:
            resp = await self._client.request(
                method,
                f"{self._rest_url}/{table}",
                params=params,
                json=json,
                headers=headers,
            )
        except httpx.ConnectError as exc:
            raise RemoteConnectionError(f"Cannot connect to remote store: {exc}") from exc
        except httpx.TimeoutException as exc:
            raise RemoteConnectionError(f"Remote store request timed out: {exc}") from exc

        if resp.is_error:
            raise RemoteRequestError(
                f"{method} {table} failed with HTTP {resp.status_code}: {_error_message(resp)}",
                resp.status_code,
            )
        return resp

    async def insert(
        self, table: str, data: dict[str, Any], *, idempotency_key: Optional[str] = None
    ) -> dict[str, Any]:
        """
        Insert one row.

        Returns:
            The inserted row (including the id the server assigned).
        """
        headers = {"Prefer": "return=representation"}
        if idempotency_key:
            headers["Idempotency-Key"] = idempotency_key
        resp = await self._request("POST", table, json=data, headers=headers)
        return _first_row(resp)

    async def update(self, table: str, record_id: str, data: dict[str, Any]) -> dict[str, Any]:
        """Update the row whose id is record_id; returns the updated row ({} if none matched)."""
        resp = await self._request(
            "PATCH",
            table,
            record_id=record_id,
            json=data,
            headers={"Prefer": "return=representation"},
        )
        return _first_row(resp)

    async def delete(self, table: str, record_id: str) -> None:
        """Delete the row whose id is record_id. Already-deleted rows are not an error."""
        try:
            await self._request("DELETE", table, record_id=record_id)
        except RemoteRequestError as exc:
            if exc.status_code != 404:
                raise
            log.debug("Delete of %s/%s: row already gone", table, record_id)

    async def ping(self) -> None:
        """Cheap reachability check against the REST root."""
        try:
            resp = await self._client.get(self._rest_url + "/")
        except httpx.ConnectError as exc:
            raise RemoteConnectionError(f"Cannot connect to remote store: {exc}") from exc
        except httpx.TimeoutException as exc:
            raise RemoteConnectionError(f"Remote store request timed out: {exc}") from exc
        if resp.status_code >= 500:
            raise RemoteRequestError(f"Remote store unhealthy: HTTP {resp.status_code}", resp.status_code)


def _first_row(resp: httpx.Response) -> dict[str, Any]:
    if not resp.content:
        return {}
    body = resp.json()
    if isinstance(body, list):
        return body[0] if body else {}
    if isinstance(body, dict):
        return body
    return {}


def _error_message(resp: httpx.Response) -> str:
    try:
        body = resp.json()
    except ValueError:
        return resp.text[:200]
    if isinstance(body, dict):
        return str(body.get("message") or body.get("error") or body)
    return str(body)[:200]


__all__ = [
    "RemoteStore",
    "RestRemoteStore",
    "RemoteStoreError",
    "RemoteConnectionError",
    "RemoteRequestError",
]
