from __future__ import annotations

import logging
from typing import Any

import httpx

from .completion import provider_error_message
from .config import env_float, env_str

logger = logging.getLogger(__name__)


class GatewayError(RuntimeError):
    pass


class AuthError(GatewayError):
    pass


class SupabaseGateway:
    """Table and identity access against a hosted Supabase project.

    Tables go through PostgREST (``/rest/v1``) and identity through GoTrue
    (``/auth/v1``). The service key is used for table access; the
    service-role key is only needed to delete users.
    """

    def __init__(
        self,
        *,
        url: str | None = None,
        service_key: str | None = None,
        service_role_key: str | None = None,
        timeout_seconds: float | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.url = (url if url is not None else env_str("SUPABASE_URL", "VITE_SUPABASE_URL")).rstrip("/")
        self.service_key = (
            service_key if service_key is not None else env_str("SUPABASE_SERVICE_KEY", "VITE_SUPABASE_SERVICE_KEY")
        )
        self.service_role_key = (
            service_role_key if service_role_key is not None else env_str("SUPABASE_SERVICE_ROLE_KEY")
        )
        self.timeout_seconds = timeout_seconds or env_float("ANIMEDI_DB_TIMEOUT_SECONDS", 30.0)
        self._transport = transport

    def _client(self) -> httpx.Client:
        if not self.url:
            raise GatewayError("Supabase URL is not configured.")
        return httpx.Client(
            base_url=self.url,
            timeout=httpx.Timeout(self.timeout_seconds, connect=8.0),
            transport=self._transport,
        )

    def _headers(self, key: str, *, bearer: str | None = None, extra: dict[str, str] | None = None) -> dict[str, str]:
        headers = {
            "apikey": key,
            "Authorization": f"Bearer {bearer or key}",
            "Content-Type": "application/json",
        }
        if extra:
            headers.update(extra)
        return headers

    def _request(
        self,
        method: str,
        path: str,
        *,
        key: str,
        bearer: str | None = None,
        params: dict[str, Any] | None = None,
        json_body: Any = None,
        extra_headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        try:
            with self._client() as client:
                response = client.request(
                    method,
                    path,
                    params=params,
                    json=json_body,
                    headers=self._headers(key, bearer=bearer, extra=extra_headers),
                )
        except httpx.HTTPError as exc:
            raise GatewayError(f"{method} {path} failed: {exc}") from exc
        return response

    @staticmethod
    def _json(response: httpx.Response, what: str) -> Any:
        try:
            return response.json()
        except ValueError as exc:
            raise GatewayError(f"{what} returned a non-JSON body") from exc

    def _select(
        self,
        table: str,
        *,
        filters: dict[str, str] | None = None,
        order: str | None = None,
        limit: int | None = None,
        columns: str = "*",
    ) -> list[dict[str, Any]]:
        params: dict[str, Any] = {"select": columns}
        for column, value in (filters or {}).items():
            params[column] = f"eq.{value}"
        if order:
            params["order"] = order
        if limit is not None:
            params["limit"] = str(limit)
        response = self._request("GET", f"/rest/v1/{table}", key=self.service_key, params=params)
        if response.status_code >= 400:
            raise GatewayError(f"select from {table} failed: {provider_error_message(response)}")
        rows = self._json(response, f"select from {table}")
        return rows if isinstance(rows, list) else []

    def get_pet(self, pet_id: str) -> dict[str, Any]:
        rows = self._select("pets", filters={"id": pet_id}, limit=1)
        if not rows:
            raise GatewayError(f"pet {pet_id} not found")
        return rows[0]

    def list_pet_ids(self) -> list[str]:
        return [str(row["id"]) for row in self._select("pets", columns="id") if row.get("id") is not None]

    def recent_reminders(self, pet_id: str, limit: int = 3) -> list[dict[str, Any]]:
        return self._select("reminders", filters={"pet_id": pet_id}, order="due_date.desc", limit=limit)

    def recent_logs(self, pet_id: str, limit: int = 3) -> list[dict[str, Any]]:
        return self._select("logs", filters={"pet_id": pet_id}, order="created_at.desc", limit=limit)

    def recent_medical_records(self, pet_id: str, limit: int = 1) -> list[dict[str, Any]]:
        return self._select("medical_records", filters={"pet_id": pet_id}, order="date.desc", limit=limit)

    def update_pet(self, pet_id: str, fields: dict[str, Any]) -> None:
        response = self._request(
            "PATCH",
            "/rest/v1/pets",
            key=self.service_key,
            params={"id": f"eq.{pet_id}"},
            json_body=fields,
            extra_headers={"Prefer": "return=minimal"},
        )
        if response.status_code >= 400:
            raise GatewayError(f"update of pet {pet_id} failed: {provider_error_message(response)}")
        logger.info("updated pet %s fields=%s", pet_id, sorted(fields))

    def get_user(self, access_token: str) -> dict[str, Any]:
        if not access_token:
            raise AuthError("Authentication token not provided.")
        response = self._request("GET", "/auth/v1/user", key=self.service_key, bearer=access_token)
        if response.status_code in {401, 403}:
            raise AuthError("Invalid or expired token.")
        if response.status_code >= 400:
            raise GatewayError(f"token verification failed: {provider_error_message(response)}")
        user = self._json(response, "token verification")
        if not isinstance(user, dict) or not user.get("id"):
            raise AuthError("Invalid or expired token.")
        return user

    def delete_user(self, user_id: str) -> None:
        if not self.service_role_key:
            raise GatewayError("Supabase service role key is not configured.")
        response = self._request("DELETE", f"/auth/v1/admin/users/{user_id}", key=self.service_role_key)
        if response.status_code >= 400:
            raise GatewayError(provider_error_message(response))
