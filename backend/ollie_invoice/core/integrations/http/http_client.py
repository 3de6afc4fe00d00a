"""
Generic async HTTP client wrapper using aiohttp.
Retries transient failures with exponential backoff.
"""

import asyncio
from typing import Optional, Dict, Any
import aiohttp
import logging

logger = logging.getLogger(__name__)

# Client errors other than these are not worth retrying
RETRYABLE_STATUSES = {408, 429, 500, 502, 503, 504}


class HttpClient:
    """
    Async HTTP client wrapper using aiohttp.
    Provides JSON request methods with retry/backoff support.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: int = 30,
        max_retries: int = 3,
        retry_delay: float = 1.0,
        headers: Optional[Dict[str, str]] = None,
    ):
        """
        Initialize HTTP client.

        Args:
            base_url: Optional base URL for all requests
            timeout: Request timeout in seconds
            max_retries: Maximum number of retry attempts
            retry_delay: Initial delay between retries in seconds
            headers: Headers sent with every request
        """
        self.base_url = base_url
        self.timeout = aiohttp.ClientTimeout(total=timeout)
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.headers = headers or {}
        self._session: Optional[aiohttp.ClientSession] = None

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create aiohttp session."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self.timeout, headers=self.headers)
        return self._session

    async def close(self) -> None:
        """Close the HTTP session."""
        if self._session and not self._session.closed:
            await self._session.close()

    def _build_url(self, endpoint: str) -> str:
        """Build full URL from endpoint."""
        if self.base_url:
            return f"{self.base_url.rstrip('/')}/{endpoint.lstrip('/')}"
        return endpoint

    async def _request_with_retry(
        self,
        method: str,
        url: str,
        **kwargs: Any,
    ) -> Dict[str, Any]:
        """
        Make HTTP request with retry logic and return the decoded JSON body.

        Args:
            method: HTTP method
            url: Request URL
            **kwargs: Additional arguments for aiohttp request

        Returns:
            JSON response as dictionary
        """
        session = await self._get_session()
        last_exception = None

        for attempt in range(self.max_retries):
            try:
                async with session.request(method, url, **kwargs) as response:
                    response.raise_for_status()
                    return await response.json(content_type=None)
            except aiohttp.ClientResponseError as e:
                last_exception = e
                if e.status not in RETRYABLE_STATUSES:
                    logger.error(f"Request to {url} rejected with status {e.status}: {e.message}")
                    raise
            except (aiohttp.ClientError, asyncio.TimeoutError) as e:
                last_exception = e

            if attempt < self.max_retries - 1:
                delay = self.retry_delay * (2 ** attempt)
                logger.warning(
                    f"Request failed (attempt {attempt + 1}/{self.max_retries}): {last_exception}. Retrying in {delay}s..."
                )
                await asyncio.sleep(delay)
            else:
                logger.error(f"Request failed after {self.max_retries} attempts: {last_exception}")

        raise last_exception or aiohttp.ClientError("Request failed")

    async def post(
        self,
        endpoint: str,
        json: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> Dict[str, Any]:
        """
        Make POST request.

        Args:
            endpoint: API endpoint
            json: JSON data
            headers: Request headers

        Returns:
            JSON response as dictionary
        """
        url = self._build_url(endpoint)
        return await self._request_with_retry("POST", url, json=json, headers=headers)
