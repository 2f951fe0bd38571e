"""
Асинхронный HTTP-клиент EventHub API.

Разворачивает ответ {success, data, message} и превращает ошибки
в ApiError. Повторяет запрос только при сбоях инфраструктуры
(ошибки транспорта, 502/503/504); ошибки бизнес-правил не повторяются.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional

import httpx

from eventhub.client.retry import RetryConfig

logger = logging.getLogger(__name__)

RETRYABLE_STATUS_CODES = frozenset({502, 503, 504})


class ApiError(Exception):
    """Ошибка, возвращенная API или транспортом."""

    def __init__(
            self,
            kind: str,
            message: str,
            status_code: Optional[int] = None,
            details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.status_code = status_code
        self.details = details or {}

    def __str__(self) -> str:
        return f"{self.kind}: {self.message}"


def _drop_none(values: Dict[str, Any]) -> Dict[str, Any]:
    return {key: value for key, value in values.items() if value is not None}


class EventHubClient:
    """Клиент API событий, авторизации и пользователей"""

    def __init__(
            self,
            base_url: str = "http://127.0.0.1:8000",
            token: Optional[str] = None,
            retry: Optional[RetryConfig] = None,
            transport: Optional[httpx.AsyncBaseTransport] = None,
            timeout: float = 10.0,
    ):
        self.token = token
        self.user: Optional[Dict[str, Any]] = None
        self.retry = retry or RetryConfig()
        self._http = httpx.AsyncClient(
            base_url=base_url,
            transport=transport,
            timeout=httpx.Timeout(timeout),
        )

    @property
    def user_id(self) -> Optional[int]:
        return self.user["id"] if self.user else None

    async def __aenter__(self) -> "EventHubClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    def _headers(self) -> Dict[str, str]:
        if self.token:
            return {"Authorization": f"Bearer {self.token}"}
        return {}

    async def _request(
            self,
            method: str,
            path: str,
            *,
            json: Optional[Dict[str, Any]] = None,
            params: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        for attempt in range(self.retry.max_retries + 1):
            last_attempt = attempt >= self.retry.max_retries
            try:
                response = await self._http.request(
                    method,
                    path,
                    json=json,
                    params=params,
                    headers=self._headers(),
                )
            except httpx.TransportError as e:
                if last_attempt:
                    logger.error("%s %s failed after %s attempts: %s", method, path, attempt + 1, e)
                    raise ApiError("NETWORK_ERROR", f"Network error: {e}") from e
                reason = type(e).__name__
            else:
                if response.status_code not in RETRYABLE_STATUS_CODES or last_attempt:
                    return self._unwrap(response)
                reason = f"HTTP {response.status_code}"

            delay = self.retry.get_delay(attempt)
            logger.warning(
                "%s %s failed (%s), retrying in %.2fs (%s/%s)",
                method, path, reason, delay, attempt + 1, self.retry.max_retries,
            )
            await asyncio.sleep(delay)

        raise RuntimeError("Retry loop exited without a response")

    @staticmethod
    def _unwrap(response: httpx.Response) -> Dict[str, Any]:
        try:
            body = response.json()
        except ValueError:
            body = {}

        if response.is_success and body.get("success", True):
            return body

        raise ApiError(
            kind=body.get("error", "HTTP_ERROR"),
            message=body.get("message") or response.reason_phrase or "Request failed",
            status_code=response.status_code,
            details=body.get("details"),
        )

    # Авторизация

    async def register(self, name: str, email: str, password: str, role: str = "attendee") -> Dict[str, Any]:
        body = await self._request(
            "POST",
            "/api/auth/register",
            json={"name": name, "email": email, "password": password, "role": role},
        )
        return self._remember(body["data"])

    async def login(self, email: str, password: str) -> Dict[str, Any]:
        body = await self._request(
            "POST",
            "/api/auth/login",
            json={"email": email, "password": password},
        )
        return self._remember(body["data"])

    def _remember(self, data: Dict[str, Any]) -> Dict[str, Any]:
        self.token = data["access_token"]
        self.user = data["user"]
        return self.user

    async def logout(self) -> None:
        try:
            await self._request("POST", "/api/auth/logout")
        finally:
            self.token = None
            self.user = None

    async def get_me(self) -> Dict[str, Any]:
        body = await self._request("GET", "/api/auth/me")
        self.user = body["data"]
        return self.user

    async def update_profile(self, **changes: Any) -> Dict[str, Any]:
        body = await self._request("PUT", "/api/auth/me", json=changes)
        self.user = body["data"]
        return self.user

    async def change_password(self, old_password: str, new_password: str) -> None:
        await self._request(
            "PUT",
            "/api/auth/changepassword",
            json={"old_password": old_password, "new_password": new_password},
        )

    # События

    async def list_events(self, **params: Any) -> Dict[str, Any]:
        """Страница событий вместе с count, total, total_pages, current_page, limit."""
        return await self._request("GET", "/api/events/", params=_drop_none(params))

    async def get_event(self, event_id: int) -> Dict[str, Any]:
        body = await self._request("GET", f"/api/events/{event_id}")
        return body["data"]

    async def get_user_events(self, type: str = "all") -> List[Dict[str, Any]]:
        body = await self._request("GET", "/api/events/user/me", params={"type": type})
        return body["data"]

    async def create_event(self, event_data: Dict[str, Any]) -> Dict[str, Any]:
        body = await self._request("POST", "/api/events/", json=event_data)
        return body["data"]

    async def update_event(self, event_id: int, changes: Dict[str, Any]) -> Dict[str, Any]:
        body = await self._request("PUT", f"/api/events/{event_id}", json=changes)
        return body["data"]

    async def delete_event(self, event_id: int) -> None:
        await self._request("DELETE", f"/api/events/{event_id}")

    async def register_for_event(self, event_id: int) -> Dict[str, Any]:
        body = await self._request("POST", f"/api/events/{event_id}/register")
        return body["data"]

    async def unregister_from_event(self, event_id: int) -> Dict[str, Any]:
        body = await self._request("DELETE", f"/api/events/{event_id}/register")
        return body["data"]

    # Пользователи (администратор)

    async def list_users(self, **params: Any) -> Dict[str, Any]:
        return await self._request("GET", "/api/users/", params=_drop_none(params))

    async def get_user(self, user_id: int) -> Dict[str, Any]:
        body = await self._request("GET", f"/api/users/{user_id}")
        return body["data"]

    async def update_user(self, user_id: int, changes: Dict[str, Any]) -> Dict[str, Any]:
        body = await self._request("PUT", f"/api/users/{user_id}", json=changes)
        return body["data"]

    async def delete_user(self, user_id: int) -> None:
        await self._request("DELETE", f"/api/users/{user_id}")

    async def get_user_stats(self) -> Dict[str, Any]:
        body = await self._request("GET", "/api/users/stats/overview")
        return body["data"]
