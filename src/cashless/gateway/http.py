"""Shared plumbing for provider clients that speak JSON over HTTPS."""

from datetime import datetime
from typing import Any

import httpx

from cashless.exceptions import ProviderError, ProviderTimeoutError
from cashless.gateway.port import ProviderClient


def parse_timestamp(value: Any) -> datetime | None:
    """Parse an ISO-8601 provider timestamp, tolerating a trailing ``Z``."""
    if not isinstance(value, str) or not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None


class HttpProviderClient(ProviderClient):
    """Base for clients built on one ``httpx.AsyncClient`` with a bounded timeout."""

    provider_name: str = "provider"

    def __init__(
        self,
        *,
        base_url: str,
        headers: dict[str, str],
        timeout_seconds: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._http = httpx.AsyncClient(
            base_url=base_url,
            headers={"Accept": "application/json", **headers},
            timeout=httpx.Timeout(timeout_seconds),
            transport=transport,
        )

    async def _request(self, method: str, path: str, *, action: str, **kwargs) -> dict[str, Any]:
        try:
            response = await self._http.request(method, path, **kwargs)
            response.raise_for_status()
        except httpx.TimeoutException as exc:
            raise ProviderTimeoutError(
                f"{self.provider_name} timed out trying to {action}", provider=self.kind
            ) from exc
        except httpx.HTTPStatusError as exc:
            raise ProviderError(
                f"{self.provider_name} failed to {action}: HTTP {exc.response.status_code}",
                provider=self.kind,
                status=exc.response.status_code,
            ) from exc
        except httpx.HTTPError as exc:
            raise ProviderError(f"{self.provider_name} failed to {action}: {exc}", provider=self.kind) from exc

        if not response.content:
            return {}
        try:
            data = response.json()
        except ValueError as exc:
            raise ProviderError(
                f"{self.provider_name} returned an unreadable reply to {action}",
                provider=self.kind,
                retryable=False,
            ) from exc
        if not isinstance(data, dict):
            raise ProviderError(
                f"{self.provider_name} returned an unexpected reply to {action}",
                provider=self.kind,
                retryable=False,
            )
        return data

    async def aclose(self) -> None:
        await self._http.aclose()
