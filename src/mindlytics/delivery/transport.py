"""
Module: transport.py
Description: HTTP transport for the collection service.

Wraps an httpx.AsyncClient and normalizes every response into a
TransportResult: success with the decoded body, or failure with status
code, reason phrase and headers. HTTP error statuses are returned, not
raised. Network-level failures (DNS, connection reset, timeouts) raise
httpx.TransportError so the caller can tell the two apart.
"""

import httpx
from typing import Any, Dict, Optional, Protocol

from pydantic import BaseModel, ConfigDict, Field

from mindlytics.utils.logger import get_logger


class TransportResult(BaseModel):
    """
    Normalized outcome of one HTTP request.

    Attributes:
        success: True for 2xx responses
        data: Decoded JSON body (or raw text when the body is not JSON)
        status: HTTP status code
        status_text: HTTP reason phrase
        headers: Response headers with case-insensitive lookup
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    success: bool
    data: Any = None
    status: int
    status_text: str = ""
    headers: httpx.Headers = Field(default_factory=httpx.Headers)


class Transport(Protocol):
    """What the delivery queue needs from a transport."""

    async def post(
        self,
        path: str,
        body: Any,
        params: Optional[Dict[str, Any]] = None
    ) -> TransportResult:
        ...


def _decode_body(response: httpx.Response) -> Any:
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return response.text


def _to_result(response: httpx.Response) -> TransportResult:
    return TransportResult(
        success=response.is_success,
        data=_decode_body(response),
        status=response.status_code,
        status_text=response.reason_phrase,
        headers=response.headers
    )


class HttpTransport:
    """
    HTTP transport for the Mindlytics collection service.

    One AsyncClient is reused for all requests so connections are pooled
    between deliveries.
    """

    def __init__(
        self,
        base_url: str,
        headers: Optional[Dict[str, str]] = None,
        timeout_seconds: float = 10,
        debug: bool = False,
        client: Optional[httpx.AsyncClient] = None
    ):
        """
        Initialize the transport.

        Args:
            base_url: Base URL of the collection service
            headers: Default headers sent with every request
            timeout_seconds: HTTP timeout in seconds
            debug: Log every request and response
            client: Preconfigured AsyncClient to use instead of creating one

        Raises:
            ValueError: If base_url is invalid
        """
        if not base_url or not isinstance(base_url, str):
            raise ValueError("base_url must be a non-empty string")
        if not base_url.startswith(('http://', 'https://')):
            raise ValueError("base_url must be a valid HTTP/HTTPS URL")

        self.base_url = base_url
        self.debug = debug
        self._logger = get_logger(__name__, debug=debug, component="HttpTransport")
        self.timeout = httpx.Timeout(timeout_seconds, connect=timeout_seconds)
        self._client = client or httpx.AsyncClient(
            base_url=base_url,
            headers=headers or {},
            timeout=self.timeout
        )

    async def post(
        self,
        path: str,
        body: Any,
        params: Optional[Dict[str, Any]] = None
    ) -> TransportResult:
        """
        POST a JSON body to the service.

        Args:
            path: Route relative to the base URL
            body: JSON-serializable payload
            params: Optional 'headers' and 'query' overrides

        Returns:
            Normalized TransportResult

        Raises:
            httpx.TransportError: On network-level failure
        """
        params = params or {}
        self._logger.debug("Request", method="POST", path=path, body=body)

        response = await self._client.post(
            path,
            json=body,
            headers=params.get('headers'),
            params=params.get('query')
        )

        return self._log_response("POST", path, _to_result(response))

    async def get(
        self,
        path: str,
        params: Optional[Dict[str, Any]] = None
    ) -> TransportResult:
        """
        GET from the service.

        Args:
            path: Route template; '{name}' placeholders are filled from params['path']
            params: Optional 'headers', 'query' and 'path' values

        Returns:
            Normalized TransportResult

        Raises:
            httpx.TransportError: On network-level failure
            KeyError: If a path placeholder has no value
        """
        params = params or {}
        url = path.format(**params['path']) if params.get('path') else path
        self._logger.debug("Request", method="GET", path=url, query=params.get('query'))

        response = await self._client.get(
            url,
            headers=params.get('headers'),
            params=params.get('query')
        )

        return self._log_response("GET", url, _to_result(response))

    def _log_response(self, method: str, path: str, result: TransportResult) -> TransportResult:
        self._logger.debug(
            "Response",
            method=method,
            path=path,
            status_code=result.status,
            success=result.success
        )
        return result

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()
