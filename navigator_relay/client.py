"""IndexMeNow API client.

Thin aiohttp wrapper; every call carries the caller's API key as a
bearer token. Errors are raised as ``ApiError``.
"""
import asyncio
import logging
from typing import Any

import orjson
import aiohttp

from .conf import INDEXMENOW_API_URL
from .exceptions import ApiError

logger = logging.getLogger("navigator.relay")


class IndexMeNowClient:
    """Async client for the IndexMeNow v1 API."""

    def __init__(
        self,
        base_url: str = INDEXMENOW_API_URL,
        timeout: float = 30.0,
        session: aiohttp.ClientSession | None = None,
    ):
        self._base_url = base_url.rstrip("/")
        self._timeout = aiohttp.ClientTimeout(total=timeout)
        self._session = session
        self._owns_session = session is None

    @property
    def base_url(self) -> str:
        return self._base_url

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self._timeout)
            self._owns_session = True
        return self._session

    async def request(
        self,
        endpoint: str,
        params: dict[str, Any] | None = None,
        method: str = "GET",
        api_key: str | None = None,
    ) -> Any:
        """Call an API endpoint and return the decoded JSON body.

        GET requests send ``params`` as the query string, POST requests as
        a JSON body. ``None`` values are omitted.

        Raises:
            ApiError: On missing key, unsupported method, transport failure,
                non-2xx status or an undecodable body.
        """
        if not api_key:
            raise ApiError("API_KEY is not set")
        method = method.upper()
        payload = {k: v for k, v in (params or {}).items() if v is not None}
        if method == "GET":
            options: dict[str, Any] = {"params": payload}
        elif method == "POST":
            options = {"json": payload}
        else:
            raise ApiError(f"Unsupported HTTP method: {method}")

        url = f"{self._base_url}{endpoint}"
        headers = {
            "Accept": "application/json",
            "Content-Type": "application/json",
            "Authorization": f"Bearer {api_key}",
        }
        try:
            async with self._get_session().request(
                method, url, headers=headers, **options
            ) as response:
                if response.status >= 400:
                    body = await response.text()
                    raise ApiError(
                        f"Request failed with status code {response.status}: {body[:200]}",
                        status=response.status,
                    )
                return await response.json(content_type=None, loads=orjson.loads)
        except aiohttp.ClientError as err:
            logger.error("Error calling IndexMeNow %s %s: %s", method, endpoint, err)
            raise ApiError(str(err) or type(err).__name__) from err
        except asyncio.TimeoutError as err:
            logger.error("Timeout calling IndexMeNow %s %s", method, endpoint)
            raise ApiError("Request to IndexMeNow timed out") from err
        except ValueError as err:
            raise ApiError(f"Invalid JSON response from IndexMeNow: {err}") from err

    async def close(self) -> None:
        if self._owns_session and self._session is not None:
            await self._session.close()
            self._session = None
