"""
API Client
----------
Small HTTP client for the server's REST endpoints.
Credentials travel in the request body only and are never logged.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum, auto
from typing import Any, Dict, Optional
import logging

import httpx


class APIStatus(Enum):
    """Status of an API response."""
    SUCCESS = auto()
    AUTH_ERROR = auto()
    NOT_FOUND = auto()
    SERVER_ERROR = auto()
    TIMEOUT = auto()
    NETWORK_ERROR = auto()


@dataclass
class APIConfig:
    """Configuration for an API client."""
    name: str
    base_url: str
    timeout_seconds: float = 30.0
    headers: Dict[str, str] = field(default_factory=dict)


@dataclass
class APIResponse:
    """Response from an API call. ``data`` is the raw body text."""
    status: APIStatus
    data: Optional[str] = None
    error: Optional[str] = None
    status_code: int = 0
    response_time_ms: float = 0.0

    @property
    def success(self) -> bool:
        return self.status == APIStatus.SUCCESS


class APIClient:
    """
    Async JSON API client.

    ``transport`` is handed to httpx as-is, which lets tests plug in an
    ``httpx.MockTransport``.
    """

    def __init__(self, config: APIConfig, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.config = config
        self._transport = transport
        self._logger = logging.getLogger(f"macron.api.{config.name}")

    def _get_headers(self) -> Dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
            "User-Agent": "macron-agent/1.0",
        }
        headers.update(self.config.headers)
        return headers

    async def post(self, endpoint: str, data: Optional[Dict[str, Any]] = None) -> APIResponse:
        """Make a POST request."""
        return await self._request("POST", endpoint, json=data)

    async def _request(
        self,
        method: str,
        endpoint: str,
        params: Optional[Dict] = None,
        json: Optional[Dict] = None
    ) -> APIResponse:
        """Make an HTTP request, folding failures into an APIResponse."""
        url = f"{self.config.base_url.rstrip('/')}/{endpoint.lstrip('/')}"
        start_time = datetime.now()
        self._logger.debug(f"{method} {url}")

        try:
            async with httpx.AsyncClient(
                timeout=self.config.timeout_seconds,
                transport=self._transport,
            ) as client:
                response = await client.request(
                    method=method,
                    url=url,
                    params=params,
                    json=json,
                    headers=self._get_headers()
                )
        except httpx.TimeoutException:
            return APIResponse(status=APIStatus.TIMEOUT, error="Request timed out")
        except httpx.HTTPError as e:
            return APIResponse(status=APIStatus.NETWORK_ERROR, error=f"Network error: {e}")

        response_time = (datetime.now() - start_time).total_seconds() * 1000
        code = response.status_code

        if 200 <= code < 300:
            status, error = APIStatus.SUCCESS, None
        elif code in (401, 403):
            status, error = APIStatus.AUTH_ERROR, "Authentication failed"
        elif code == 404:
            status, error = APIStatus.NOT_FOUND, "Resource not found"
        elif code >= 500:
            status, error = APIStatus.SERVER_ERROR, f"Server error: {code}"
        else:
            status, error = APIStatus.SERVER_ERROR, f"Unexpected status: {code}"

        return APIResponse(
            status=status,
            data=response.text,
            error=error,
            status_code=code,
            response_time_ms=response_time
        )
