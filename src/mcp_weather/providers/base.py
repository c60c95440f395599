"""Shared HTTP plumbing for the provider adapters."""

from typing import Any, Dict, Optional

import httpx

from mcp_weather.logging import get_logger

logger = get_logger(__name__)

DEFAULT_TIMEOUT = 10.0


async def fetch_json(
    client: httpx.AsyncClient,
    url: str,
    *,
    headers: Optional[Dict[str, str]] = None,
    params: Optional[Dict[str, Any]] = None,
    timeout: float = DEFAULT_TIMEOUT,
) -> Optional[Dict[str, Any]]:
    """Perform a single GET request and decode the JSON body.

    Args:
        client: The HTTP client to send the request with
        url: Absolute URL of the resource
        headers: Request headers
        params: Query string parameters
        timeout: Deadline in seconds for the whole request

    Returns:
        The decoded JSON object, or None on a non-2xx status, a network error,
        a timeout, a malformed body or a payload that is not an object
    """
    try:
        response = await client.get(url, headers=headers, params=params, timeout=httpx.Timeout(timeout))
        response.raise_for_status()
        payload = response.json()
    except httpx.TimeoutException:
        logger.warning("Provider request timed out", url=url, timeout=timeout)
    except httpx.HTTPStatusError as e:
        logger.warning("Provider returned an error status", url=url, status_code=e.response.status_code)
    except httpx.HTTPError as e:
        logger.warning("Provider request failed", url=url, error=str(e))
    except ValueError as e:
        logger.warning("Provider returned malformed JSON", url=url, error=str(e))
    else:
        if isinstance(payload, dict):
            return payload
        logger.warning("Provider returned a malformed payload", url=url, payload_type=type(payload).__name__)
    return None


class ProviderClient:
    """Base class for provider adapters.

    An adapter either borrows an ``httpx.AsyncClient`` (for connection reuse and
    for tests) or opens a short-lived one per request.
    """

    accept = "application/json"

    def __init__(
        self,
        user_agent: Optional[str] = None,
        timeout: float = DEFAULT_TIMEOUT,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.user_agent = user_agent
        self.timeout = timeout
        self._client = client

    @property
    def headers(self) -> Dict[str, str]:
        headers = {"Accept": self.accept}
        if self.user_agent:
            headers["User-Agent"] = self.user_agent
        return headers

    async def get_json(self, url: str, params: Optional[Dict[str, Any]] = None) -> Optional[Dict[str, Any]]:
        """Fetch ``url`` once and return its JSON payload or None."""
        if self._client is not None:
            return await fetch_json(self._client, url, headers=self.headers, params=params, timeout=self.timeout)
        async with httpx.AsyncClient() as client:
            return await fetch_json(client, url, headers=self.headers, params=params, timeout=self.timeout)
