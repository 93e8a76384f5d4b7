"""
Shared HTTP client for exchange data sources.

Every call is independently time-bounded and never raises: transport
errors, timeouts, non-2xx statuses and malformed JSON are logged and
reported as None so that one failing source cannot abort a batch.
"""

import asyncio
import json
import logging
from typing import Any, Dict, Optional

import aiohttp


class HttpClient:
    """
    Thin wrapper around one aiohttp session.
    """

    def __init__(self, session: Optional[aiohttp.ClientSession] = None):
        self.logger = logging.getLogger(self.__class__.__name__)
        self._session = session
        self._owns_session = session is None
        self.is_closed = False

    async def _get_session(self) -> Optional[aiohttp.ClientSession]:
        if self.is_closed:
            return None
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession()
            self._owns_session = True
        return self._session

    async def close(self):
        """Close the session if this client created it; no request is sent afterwards"""
        self.is_closed = True
        if self._session and self._owns_session and not self._session.closed:
            await self._session.close()
        self._session = None

    async def request_json(self,
                           source: str,
                           url: str,
                           method: str = "GET",
                           headers: Optional[Dict[str, str]] = None,
                           body: Optional[Any] = None,
                           params: Optional[Dict[str, str]] = None,
                           timeout: float = 30.0) -> Optional[Any]:
        """
        Issue one request and decode its JSON body.

        Args:
            source: Name of the data source, for logging
            url: Endpoint URL
            method: HTTP method
            headers: Extra headers
            body: JSON-serializable request body
            params: Query parameters
            timeout: Total timeout of the call in seconds

        Returns:
            Decoded JSON, or None on any failure
        """
        session = await self._get_session()
        if session is None:
            self.logger.warning(f"{source} skipped, HTTP client is closed")
            return None

        try:
            async with session.request(
                method,
                url,
                headers=headers or None,
                json=body,
                params=params,
                timeout=aiohttp.ClientTimeout(total=timeout)
            ) as response:
                if response.status < 200 or response.status >= 300:
                    self.logger.warning(f"{source} returned HTTP {response.status}")
                    return None
                raw = await response.read()

        except asyncio.TimeoutError:
            self.logger.warning(f"{source} timed out after {timeout}s")
            return None
        except aiohttp.ClientError as e:
            self.logger.warning(f"{source} request failed: {e}")
            return None

        # UnicodeDecodeError is a ValueError
        try:
            return json.loads(raw.decode("utf-8"))
        except ValueError as e:
            self.logger.error(f"{source} returned invalid JSON ({e}): {raw[:200]!r}...")
            return None

    async def __aenter__(self):
        self.is_closed = False
        await self._get_session()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
