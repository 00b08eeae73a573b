from __future__ import annotations

import logging
from typing import Any

import httpx

from equipment_booking.client import settings
from equipment_booking.client.errors import BackendError, ConflictError, NotFoundError, TransientError
from equipment_booking.client.resources import CategoryAPI, CustomerAPI, EquipmentAPI, RentalAPI

BACKEND_LOGGER = logging.getLogger("equipment_booking.backend")

_CONFLICT_STATUSES = {400, 409, 422}


def _extract_detail(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        payload = None
    if isinstance(payload, dict):
        for key in ("detail", "message", "error"):
            value = payload.get(key)
            if value:
                return str(value)
    if isinstance(payload, str) and payload.strip():
        return payload.strip()
    text = (response.text or "").strip()
    return text or f"HTTP {response.status_code}"


def raise_for_backend_status(response: httpx.Response) -> None:
    status = response.status_code
    if status < 400:
        return
    detail = _extract_detail(response)
    if status == 404:
        raise NotFoundError(detail, status)
    if status in _CONFLICT_STATUSES:
        raise ConflictError(detail, status)
    if status >= 500:
        raise TransientError(detail, status)
    raise BackendError(detail, status)


class BackendClient:
    """Async REST client for the equipment rental backend.

    Owns one ``httpx.AsyncClient``; use as an async context manager or call
    ``aclose()``. Resource helpers hang off ``categories``, ``equipment``,
    ``customers`` and ``rentals``.
    """

    def __init__(
        self,
        base_url: str | None = None,
        *,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = (base_url or settings.API_BASE_URL).rstrip("/")
        effective_timeout = timeout if timeout is not None else settings.API_TIMEOUT_SECONDS
        self._http = httpx.AsyncClient(
            base_url=self.base_url + "/",
            timeout=httpx.Timeout(effective_timeout),
            transport=transport,
            headers={"Accept": "application/json"},
        )
        self.categories = CategoryAPI(self)
        self.equipment = EquipmentAPI(self)
        self.customers = CustomerAPI(self)
        self.rentals = RentalAPI(self)

    async def __aenter__(self) -> "BackendClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json: Any = None,
        files: dict[str, Any] | None = None,
    ) -> Any:
        url = path.lstrip("/")
        clean_params = {key: value for key, value in (params or {}).items() if value is not None}
        try:
            response = await self._http.request(method, url, params=clean_params or None, json=json, files=files)
        except httpx.TransportError as exc:
            BACKEND_LOGGER.warning("Backend unreachable method=%s path=%s error=%s", method, path, exc)
            raise TransientError(f"Backend unreachable: {exc}") from exc
        except httpx.HTTPError as exc:
            # Decoding and protocol failures while reading the response.
            BACKEND_LOGGER.warning("Backend request failed method=%s path=%s error=%s", method, path, exc)
            raise TransientError(f"Backend request failed: {exc}") from exc

        if response.status_code >= 400:
            BACKEND_LOGGER.info("Backend rejected method=%s path=%s status=%s", method, path, response.status_code)
        raise_for_backend_status(response)

        if response.status_code == 204 or not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise BackendError(f"Backend returned invalid JSON for {method} {path}", response.status_code) from exc
