import logging
from typing import Any, Dict, Optional

import httpx

from party_registration.services.errors import (
    ApiUnavailableError,
    NotFoundError,
    ValidationError,
)

logger = logging.getLogger(__name__)


class RegistrationApiClient:
    """Async client for the registration API.

    Maps responses onto the shared error types: 400 -> ValidationError,
    404 -> NotFoundError, anything else that fails (transport errors, 5xx,
    unexpected bodies) -> ApiUnavailableError, which callers show as a
    generic "try again" banner.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._client = httpx.AsyncClient(
            base_url=base_url, timeout=timeout, transport=transport
        )

    async def __aenter__(self) -> "RegistrationApiClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(self, method: str, path: str, **kwargs) -> Dict[str, Any]:
        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.RequestError as e:
            logger.warning(f"{method} {path} failed: {e}")
            raise ApiUnavailableError(f"Server offline or unreachable: {e}") from e

        try:
            body = response.json()
        except ValueError:
            body = None
        data = body if isinstance(body, dict) else {}
        message = data.get("message")

        if response.status_code == 400:
            raise ValidationError(
                message or "Registration failed", data.get("errors") or {}
            )
        if response.status_code == 404:
            raise NotFoundError(path.rsplit("/", 1)[-1])
        if response.is_error or body is not data:
            logger.error(
                f"{method} {path} returned {response.status_code}: {message or body}"
            )
            raise ApiUnavailableError(message or f"Server error {response.status_code}")
        return data

    async def register(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """POST /api/register; returns the created registration summary"""
        body = await self._request("POST", "/api/register", json=payload)
        registration = body.get("registration")
        if not isinstance(registration, dict):
            raise ApiUnavailableError("Unexpected response from server")
        return registration

    async def list_registrations(self) -> Dict[str, Any]:
        """GET /api/users; returns counts and the registrations list"""
        body = await self._request("GET", "/api/users")
        if not body.get("success"):
            raise ApiUnavailableError("Failed to load data")
        return body

    async def delete_registration(self, registration_id: str) -> Dict[str, Any]:
        body = await self._request("DELETE", f"/api/users/{registration_id}")
        registration = body.get("registration")
        if not isinstance(registration, dict):
            raise ApiUnavailableError("Unexpected response from server")
        return registration
