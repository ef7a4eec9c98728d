"""Async Supabase client (PostgREST + Storage signing) over httpx.

This is the single point of Supabase HTTP interaction for share-plane
repositories and stores. Every call carries an explicit timeout; failures
surface as ``SupabaseError`` subclasses and are never retried here.
"""

from __future__ import annotations

import json
from typing import Any, Mapping, Sequence
from urllib.parse import quote

import httpx

from .errors import (
    SupabaseAuthError,
    SupabaseConflictError,
    SupabaseError,
    SupabaseNotFoundError,
)

# Filters are {column: value} (eq) or {column: (op, value)}.
Filters = Mapping[str, "tuple[str, Any] | Any"]


def _split_schema_table(table: str, default_schema: str) -> tuple[str, str]:
    # "sharing.share_links" and "share_links" are both accepted; non-public
    # schemas are selected with Accept-Profile/Content-Profile headers.
    if "." in table:
        schema, name = table.split(".", 1)
        return schema.strip(), name.strip()
    return default_schema, table.strip()


def _encode_filter_value(op: str, value: Any) -> str:
    if op == "is":
        if value is None:
            return "null"
        if isinstance(value, bool):
            return "true" if value else "false"
        return str(value)

    if op == "in":
        if not isinstance(value, (list, tuple, set, frozenset)):
            raise ValueError("in operator requires an iterable of values")
        items = []
        for v in value:
            if isinstance(v, str):
                items.append(json.dumps(v))
            elif v is None:
                items.append("null")
            else:
                items.append(str(v))
        return f"({','.join(items)})"

    if value is None:
        raise ValueError(f"{op} does not support None; use op='is' with value=None")
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _filters_to_params(filters: Filters | None) -> dict[str, str]:
    params: dict[str, str] = {}
    for col, cond in (filters or {}).items():
        if isinstance(cond, tuple) and len(cond) == 2:
            op, val = cond
        else:
            op, val = "eq", cond
        params[str(col)] = f"{op}.{_encode_filter_value(str(op), val)}"
    return params


class SupabaseClient:
    """Minimal async Supabase client using the service role key."""

    def __init__(
        self,
        *,
        supabase_url: str,
        service_role_key: str,
        default_schema: str = "public",
        http_client: httpx.AsyncClient | None = None,
        timeout_seconds: float = 30.0,
    ) -> None:
        if not supabase_url:
            raise ValueError("supabase_url is required")
        if not service_role_key:
            raise ValueError("service_role_key is required")

        self._supabase_url = supabase_url.rstrip("/")
        self._service_role_key = service_role_key
        self._default_schema = default_schema or "public"
        self._timeout_seconds = float(timeout_seconds)
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient()

    @property
    def base_rest_url(self) -> str:
        return f"{self._supabase_url}/rest/v1"

    @property
    def base_storage_url(self) -> str:
        return f"{self._supabase_url}/storage/v1"

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    def _auth_headers(self) -> dict[str, str]:
        # Never log these headers.
        return {
            "apikey": self._service_role_key,
            "Authorization": f"Bearer {self._service_role_key}",
        }

    def _schema_headers(self, schema: str, method: str) -> dict[str, str]:
        headers: dict[str, str] = {}
        if schema:
            headers["Accept-Profile"] = schema
            if method.upper() in ("POST", "PATCH", "PUT", "DELETE"):
                headers["Content-Profile"] = schema
        return headers

    def _raise_for_error(self, resp: httpx.Response) -> None:
        if resp.status_code < 400:
            return

        message = resp.text
        code = details = hint = None
        try:
            payload = resp.json()
            if isinstance(payload, dict):
                message = payload.get("message") or payload.get("error") or message
                code = payload.get("code")
                details = payload.get("details")
                hint = payload.get("hint")
        except ValueError:
            pass

        err_cls: type[SupabaseError]
        if resp.status_code in (401, 403):
            err_cls = SupabaseAuthError
        elif resp.status_code == 404:
            err_cls = SupabaseNotFoundError
        elif resp.status_code == 409:
            err_cls = SupabaseConflictError
        else:
            err_cls = SupabaseError

        raise err_cls(
            status_code=resp.status_code,
            message=message,
            code=str(code) if code is not None else None,
            details=details,
            hint=hint,
        )

    async def _request_rows(
        self,
        method: str,
        table: str,
        *,
        params: dict[str, str] | None = None,
        json_body: Any = None,
        prefer: str | None = None,
    ) -> list[dict[str, Any]]:
        schema, table_name = _split_schema_table(table, self._default_schema)
        headers = {
            **self._auth_headers(),
            **self._schema_headers(schema, method),
        }
        if prefer:
            headers["Prefer"] = prefer

        resp = await self._client.request(
            method,
            f"{self.base_rest_url}/{table_name}",
            params=params,
            json=json_body,
            headers=headers,
            timeout=self._timeout_seconds,
        )
        self._raise_for_error(resp)
        payload = resp.json()
        if not isinstance(payload, list):
            raise SupabaseError(
                status_code=500,
                message=f"expected list response from {method} {table_name}",
            )
        return payload

    async def select(
        self,
        table: str,
        filters: Filters | None = None,
        *,
        columns: str = "*",
        limit: int | None = None,
        offset: int | None = None,
        order: str | None = None,
    ) -> list[dict[str, Any]]:
        params = _filters_to_params(filters)
        params["select"] = columns
        if limit is not None:
            params["limit"] = str(int(limit))
        if offset:
            params["offset"] = str(int(offset))
        if order:
            params["order"] = order
        return await self._request_rows("GET", table, params=params)

    async def insert(
        self,
        table: str,
        data: Mapping[str, Any] | Sequence[Mapping[str, Any]],
    ) -> list[dict[str, Any]]:
        return await self._request_rows(
            "POST", table, json_body=data, prefer="return=representation",
        )

    async def update(
        self,
        table: str,
        filters: Filters,
        data: Mapping[str, Any],
    ) -> list[dict[str, Any]]:
        if not filters:
            raise ValueError("update requires at least one filter")
        return await self._request_rows(
            "PATCH",
            table,
            params=_filters_to_params(filters),
            json_body=dict(data),
            prefer="return=representation",
        )

    async def delete(self, table: str, filters: Filters) -> list[dict[str, Any]]:
        if not filters:
            raise ValueError("delete requires at least one filter")
        return await self._request_rows(
            "DELETE",
            table,
            params=_filters_to_params(filters),
            prefer="return=representation",
        )

    async def rpc(
        self,
        function_name: str,
        params: Mapping[str, Any] | None = None,
        *,
        schema: str | None = None,
    ) -> Any:
        headers = {
            **self._auth_headers(),
            **self._schema_headers(schema or self._default_schema, "POST"),
        }
        resp = await self._client.request(
            "POST",
            f"{self.base_rest_url}/rpc/{function_name}",
            json=dict(params or {}),
            headers=headers,
            timeout=self._timeout_seconds,
        )
        self._raise_for_error(resp)
        return resp.json()

    async def create_signed_url(self, bucket: str, key: str, *, expires_in: int) -> str:
        """Sign a Storage object for ``expires_in`` seconds; returns an absolute URL."""
        object_path = quote(key.lstrip("/"), safe="/")
        resp = await self._client.request(
            "POST",
            f"{self.base_storage_url}/object/sign/{bucket}/{object_path}",
            json={"expiresIn": int(expires_in)},
            headers=self._auth_headers(),
            timeout=self._timeout_seconds,
        )
        self._raise_for_error(resp)
        payload = resp.json()
        signed = None
        if isinstance(payload, dict):
            signed = payload.get("signedURL") or payload.get("signedUrl")
        if not signed:
            raise SupabaseError(status_code=500, message="signed URL missing from storage response")
        if signed.startswith("http"):
            return signed
        return f"{self.base_storage_url}/{signed.lstrip('/')}"
