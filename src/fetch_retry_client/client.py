"""
Retry-enabled drop-in clients built on httpx.
"""
import logging
from typing import Any, Iterable, Mapping, Optional, Sequence, Union
from urllib.parse import urlencode

import httpx

from . import idle
from .config import ClientConfig, merge_config
from .context import CancelContext
from .executor import RetryExecutor

logger = logging.getLogger("fetch_retry_client.client")

FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"

Body = Union[bytes, str, Iterable[bytes], Any, None]
FormData = Mapping[str, Union[str, Sequence[str]]]


def _body_content(body: Body) -> Any:
    """Turn a post body into something httpx accepts as ``content``."""
    if body is None or isinstance(body, (bytes, str)):
        return body
    if hasattr(body, "read"):
        def chunks():
            while True:
                chunk = body.read(65536)
                if not chunk:
                    return
                yield chunk

        return chunks()
    return body


def _post_headers(content_type: str, headers: Optional[Mapping[str, str]]) -> dict:
    merged = dict(headers or {})
    merged["Content-Type"] = content_type
    return merged


def _encode_form(data: FormData) -> bytes:
    return urlencode(data, doseq=True).encode("ascii")


class RetryClient:
    """Synchronous HTTP client with transparent retries.

    Wraps an ``httpx.Client`` (or any SyncSender). ``send`` is the generic
    operation; ``get``, ``head``, ``post`` and ``post_form`` build a request
    and route it through ``send``.

    Example:
        with RetryClient(ClientConfig(max_retries=3)) as client:
            response = client.get("https://api.example.com/items")
    """

    def __init__(
        self,
        config: Optional[ClientConfig] = None,
        *,
        owns_client: Optional[bool] = None,
        **overrides: Any,
    ) -> None:
        """
        Create a new RetryClient.

        Args:
            config: Retry configuration
            owns_client: Whether close() also closes the underlying client.
                Defaults to True only when the client is created here.
            **overrides: ClientConfig fields applied on top of ``config``
        """
        self._config = merge_config(config, **overrides)
        created = self._config.client is None
        self._client = httpx.Client() if created else self._config.client
        self._owns_client = created if owns_client is None else owns_client
        self._executor = RetryExecutor(self._config)
        self._closed = False

    @property
    def config(self) -> ClientConfig:
        return self._config

    @property
    def client(self) -> Any:
        """The underlying client used for each attempt."""
        return self._client

    def build_request(self, method: str, url: Any, **kwargs: Any) -> httpx.Request:
        """Build a request with the underlying client's defaults."""
        return self._client.build_request(method, url, **kwargs)

    def send(self, request: httpx.Request, *, context: Optional[CancelContext] = None, **kwargs: Any) -> httpx.Response:
        """
        Send a request with retry logic.

        Args:
            request: Request to send; its body stream is replaced between attempts
            context: Cancellation context for this call
            **kwargs: Passed to the underlying client's ``send`` on every attempt
        """
        if self._closed:
            raise RuntimeError("Client has been closed")

        def attempt(req: httpx.Request) -> httpx.Response:
            return self._client.send(req, **kwargs)

        return self._executor.execute_sync(attempt, request, context)

    def get(
        self,
        url: Any,
        *,
        params: Any = None,
        headers: Optional[Mapping[str, str]] = None,
        context: Optional[CancelContext] = None,
    ) -> httpx.Response:
        """GET request."""
        request = self.build_request("GET", url, params=params, headers=headers)
        return self.send(request, context=context)

    def head(
        self,
        url: Any,
        *,
        params: Any = None,
        headers: Optional[Mapping[str, str]] = None,
        context: Optional[CancelContext] = None,
    ) -> httpx.Response:
        """HEAD request."""
        request = self.build_request("HEAD", url, params=params, headers=headers)
        return self.send(request, context=context)

    def post(
        self,
        url: Any,
        content_type: str,
        body: Body = None,
        *,
        headers: Optional[Mapping[str, str]] = None,
        context: Optional[CancelContext] = None,
    ) -> httpx.Response:
        """POST request with an explicit content type."""
        request = self.build_request(
            "POST",
            url,
            content=_body_content(body),
            headers=_post_headers(content_type, headers),
        )
        return self.send(request, context=context)

    def post_form(
        self,
        url: Any,
        data: FormData,
        *,
        headers: Optional[Mapping[str, str]] = None,
        context: Optional[CancelContext] = None,
    ) -> httpx.Response:
        """POST URL-encoded form values."""
        return self.post(url, FORM_CONTENT_TYPE, _encode_form(data), headers=headers, context=context)

    def close_idle_connections(self) -> None:
        """Close idle keep-alive connections in the underlying client's pools."""
        if not idle.close_idle_connections(self._client):
            logger.debug("RetryClient.close_idle_connections: not supported by underlying client")

    def close(self) -> None:
        """Close the client. An injected underlying client is left open."""
        self._closed = True
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> "RetryClient":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


class AsyncRetryClient:
    """Asynchronous HTTP client with transparent retries.

    Wraps an ``httpx.AsyncClient`` (or any AsyncSender).
    """

    def __init__(
        self,
        config: Optional[ClientConfig] = None,
        *,
        owns_client: Optional[bool] = None,
        **overrides: Any,
    ) -> None:
        self._config = merge_config(config, **overrides)
        created = self._config.client is None
        self._client = httpx.AsyncClient() if created else self._config.client
        self._owns_client = created if owns_client is None else owns_client
        self._executor = RetryExecutor(self._config)
        self._closed = False

    @property
    def config(self) -> ClientConfig:
        return self._config

    @property
    def client(self) -> Any:
        return self._client

    def build_request(self, method: str, url: Any, **kwargs: Any) -> httpx.Request:
        return self._client.build_request(method, url, **kwargs)

    async def send(
        self,
        request: httpx.Request,
        *,
        context: Optional[CancelContext] = None,
        **kwargs: Any,
    ) -> httpx.Response:
        """Send a request with retry logic."""
        if self._closed:
            raise RuntimeError("Client has been closed")

        async def attempt(req: httpx.Request) -> httpx.Response:
            return await self._client.send(req, **kwargs)

        return await self._executor.execute(attempt, request, context)

    async def get(
        self,
        url: Any,
        *,
        params: Any = None,
        headers: Optional[Mapping[str, str]] = None,
        context: Optional[CancelContext] = None,
    ) -> httpx.Response:
        """GET request."""
        request = self.build_request("GET", url, params=params, headers=headers)
        return await self.send(request, context=context)

    async def head(
        self,
        url: Any,
        *,
        params: Any = None,
        headers: Optional[Mapping[str, str]] = None,
        context: Optional[CancelContext] = None,
    ) -> httpx.Response:
        """HEAD request."""
        request = self.build_request("HEAD", url, params=params, headers=headers)
        return await self.send(request, context=context)

    async def post(
        self,
        url: Any,
        content_type: str,
        body: Body = None,
        *,
        headers: Optional[Mapping[str, str]] = None,
        context: Optional[CancelContext] = None,
    ) -> httpx.Response:
        """POST request with an explicit content type."""
        request = self.build_request(
            "POST",
            url,
            content=_body_content(body),
            headers=_post_headers(content_type, headers),
        )
        return await self.send(request, context=context)

    async def post_form(
        self,
        url: Any,
        data: FormData,
        *,
        headers: Optional[Mapping[str, str]] = None,
        context: Optional[CancelContext] = None,
    ) -> httpx.Response:
        """POST URL-encoded form values."""
        return await self.post(url, FORM_CONTENT_TYPE, _encode_form(data), headers=headers, context=context)

    async def close_idle_connections(self) -> None:
        """Close idle keep-alive connections in the underlying client's pools."""
        if not await idle.aclose_idle_connections(self._client):
            logger.debug("AsyncRetryClient.close_idle_connections: not supported by underlying client")

    async def aclose(self) -> None:
        """Close the client. An injected underlying client is left open."""
        self._closed = True
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "AsyncRetryClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()
