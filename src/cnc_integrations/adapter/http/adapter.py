"""HTTP API integration adapter."""

import logging
import re
import time
from collections.abc import Callable, Mapping
from enum import Enum
from typing import Any

import httpx
from pydantic import Field, TypeAdapter, ValidationError, field_validator

from ...models.api import (
    AdapterError,
    AdapterOperation,
    AdapterType,
    HttpCredentials,
    NoCredentials,
)
from ..errors import AdapterException, ConfigurationError, RateLimitExceeded
from ..models.framework import IntegrationAdapter, OperationHandler, OperationParams
from .auth import Credentials, auth_headers
from .config import HttpApiConfig
from .rate_limit import FixedWindowRateLimiter

logger = logging.getLogger(__name__)

_credentials_adapter: TypeAdapter[Credentials] = TypeAdapter(HttpCredentials)

_FILENAME_RE = re.compile(r"filename\*?=(?:UTF-8'')?\"?([^\";]+)\"?", re.IGNORECASE)

# Opaque failures are classified by message, checked in order
_MESSAGE_RULES: tuple[tuple[str, str, bool], ...] = (
    ("timeout", "TIMEOUT", True),
    ("rate limit", "RATE_LIMIT", True),
    ("500", "SERVER_ERROR", True),
    ("401", "UNAUTHORIZED", False),
    ("403", "FORBIDDEN", False),
    ("404", "NOT_FOUND", False),
)


class HttpVerb(str, Enum):
    """Verbs supported by the HTTP API adapter."""

    GET = "get"
    POST = "post"
    PUT = "put"
    PATCH = "patch"
    DELETE = "delete"
    UPLOAD = "upload"
    DOWNLOAD = "download"


class RequestParams(OperationParams):
    endpoint: str = Field(..., description="Path relative to the base URL")
    params: dict[str, Any] | None = Field(default=None, description="Query parameters")
    headers: dict[str, str] = Field(
        default_factory=dict, description="Per-request headers"
    )

    @field_validator("endpoint")
    @classmethod
    def validate_endpoint(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Endpoint is required")
        return v


class BodyRequestParams(RequestParams):
    data: Any = Field(
        default=None, description="JSON body, or raw text/bytes sent as-is"
    )


class UploadFile(OperationParams):
    name: str = Field(default="uploaded_file", min_length=1, description="File name")
    content: str | bytes = Field(..., description="File content")
    content_type: str = Field(
        default="application/octet-stream", description="MIME type of the file"
    )


class UploadParams(RequestParams):
    file: UploadFile = Field(..., description="File sent as multipart form data")
    data: dict[str, str] = Field(
        default_factory=dict, description="Additional form fields"
    )


def status_error(status_code: int) -> tuple[str, bool]:
    """Map an HTTP error status to ``(code, retryable)``."""
    if status_code == 429:
        return "RATE_LIMIT", True
    if status_code >= 500:
        return "SERVER_ERROR", True
    if status_code == 401:
        return "UNAUTHORIZED", False
    if status_code == 403:
        return "FORBIDDEN", False
    if status_code == 404:
        return "NOT_FOUND", False
    return "HTTP_ERROR", False


def message_error(message: str) -> tuple[str, bool]:
    """Map an opaque failure message to ``(code, retryable)``."""
    lowered = message.lower()
    for marker, code, retryable in _MESSAGE_RULES:
        if marker in lowered:
            return code, retryable
    return "HTTP_ERROR", False


def _response_data(response: httpx.Response) -> Any:
    if "json" in response.headers.get("content-type", ""):
        try:
            return response.json()
        except ValueError:
            return response.text
    return response.text


def _filename(response: httpx.Response, endpoint: str) -> str:
    disposition = response.headers.get("content-disposition", "")
    match = _FILENAME_RE.search(disposition)
    if match:
        return match.group(1).strip()
    return endpoint.rstrip("/").rsplit("/", 1)[-1] or "download"


class HttpApiAdapter(IntegrationAdapter):
    """HTTP REST API integration adapter.

    Requests go through one ``httpx.AsyncClient`` per session. Authentication
    headers are derived from the connect credentials for every request, and
    an optional fixed-window limiter gates each operation.
    """

    adapter_type = AdapterType.HTTP_API
    default_id = "http_api"
    default_name = "HTTP API Adapter"
    version = "1.0.0"
    description = "HTTP REST API integration adapter"
    config_class = HttpApiConfig
    connection_prefix = "http"
    backend_label = "HTTP API"

    config: HttpApiConfig | None

    def __init__(
        self,
        transport: httpx.AsyncBaseTransport | None = None,
        clock: Callable[[], float] = time.monotonic,
        adapter_id: str | None = None,
        name: str | None = None,
    ):
        """Create the adapter.

        Args:
            transport: httpx transport used by the session client
            clock: Monotonic clock in seconds for the rate limiter
            adapter_id: Override of the default identifier
            name: Override of the default display name
        """
        super().__init__(adapter_id=adapter_id, name=name)
        self._transport = transport
        self._clock = clock
        self._client: httpx.AsyncClient | None = None
        self._credentials: Credentials | None = None
        self._limiter: FixedWindowRateLimiter | None = None
        self._last_latency: float | None = None

    def _operations(self) -> dict[str, tuple[type[OperationParams], OperationHandler]]:
        return {
            HttpVerb.GET.value: (RequestParams, self._get),
            HttpVerb.POST.value: (BodyRequestParams, self._post),
            HttpVerb.PUT.value: (BodyRequestParams, self._put),
            HttpVerb.PATCH.value: (BodyRequestParams, self._patch),
            HttpVerb.DELETE.value: (RequestParams, self._delete),
            HttpVerb.UPLOAD.value: (UploadParams, self._upload),
            HttpVerb.DOWNLOAD.value: (RequestParams, self._download),
        }

    @property
    def limiter(self) -> FixedWindowRateLimiter | None:
        return self._limiter

    # Session hooks

    def _parse_credentials(self, credentials: Any) -> Credentials:
        if credentials is None:
            return NoCredentials()
        if isinstance(credentials, Mapping):
            try:
                return _credentials_adapter.validate_python(dict(credentials))
            except ValidationError as e:
                raise ConfigurationError(
                    f"Invalid HTTP credentials: {e.error_count()} validation error(s)",
                    details=e.errors(include_url=False, include_context=False),
                ) from e
        if isinstance(credentials, Credentials):
            return credentials
        raise ConfigurationError(
            f"Unsupported credentials type: {type(credentials).__name__}"
        )

    async def _open(self, credentials: Any) -> dict[str, Any]:
        assert self.config is not None
        config = self.config
        parsed = self._parse_credentials(credentials)

        client = httpx.AsyncClient(
            base_url=config.base_url,
            timeout=httpx.Timeout(config.timeout),
            limits=httpx.Limits(
                max_connections=config.max_connections, max_keepalive_connections=5
            ),
            headers=config.default_headers,
            transport=self._transport,
        )
        try:
            response = await self._send(
                client, "GET", config.probe_endpoint, parsed, retries=0, check=False
            )
            if response.status_code >= 400:
                raise AdapterException(
                    f"Connection test failed: HTTP {response.status_code}",
                    code="CONNECTION_FAILED",
                )
        except Exception:
            await client.aclose()
            raise

        self._client = client
        self._credentials = parsed
        if config.rate_limit is not None and (
            self._limiter is None
            or (self._limiter.requests, self._limiter.window)
            != (config.rate_limit.requests, config.rate_limit.window)
        ):
            self._limiter = FixedWindowRateLimiter(
                config.rate_limit.requests, config.rate_limit.window, clock=self._clock
            )
        elif config.rate_limit is None:
            self._limiter = None

        logger.info(f"Connected to HTTP API: {config.base_url}")
        return {"base_url": config.base_url, "credential_type": parsed.type}

    async def _close(self) -> None:
        client, self._client = self._client, None
        self._credentials = None
        if client is not None:
            await client.aclose()

    async def _check_health(self) -> bool:
        assert self.config is not None
        response = await self._send(
            self._session(), "GET", self.config.health_endpoint, retries=0, check=False
        )
        return response.status_code < 400

    async def _admit(self, operation: AdapterOperation) -> None:
        if self._limiter is not None and not self._limiter.try_acquire():
            raise RateLimitExceeded(
                "Rate limit exceeded",
                details={
                    "requests": self._limiter.requests,
                    "window": self._limiter.window,
                    "reset_in": self._limiter.reset_in,
                },
            )
        self.connection_count += 1

    async def _measure_latency(self) -> float | None:
        return self._last_latency

    def _status_metadata(self) -> dict[str, Any]:
        metadata = super()._status_metadata()
        metadata.update(
            base_url=self.config.base_url if self.config is not None else None,
            rate_limit_remaining=(
                self._limiter.remaining if self._limiter is not None else None
            ),
            credential_type=(
                self._credentials.type if self._credentials is not None else None
            ),
        )
        return metadata

    def _result_metadata(
        self, operation: AdapterOperation, data: Any
    ) -> dict[str, Any]:
        if isinstance(data, dict) and "status" in data:
            return {"status_code": data["status"]}
        return {}

    def _classify_error(self, exc: Exception) -> AdapterError:
        if isinstance(exc, httpx.HTTPStatusError):
            response = exc.response
            code, retryable = status_error(response.status_code)
            return AdapterError(
                code=code,
                message=f"HTTP {response.status_code}: {response.reason_phrase}",
                details={
                    "status_code": response.status_code,
                    "url": str(exc.request.url),
                    "body": response.text[:1000],
                },
                retryable=retryable,
            )
        if isinstance(exc, httpx.TimeoutException):
            return AdapterError(
                code="TIMEOUT",
                message=f"Request timeout: {exc}",
                details={"exception": type(exc).__name__},
                retryable=True,
            )
        if isinstance(exc, httpx.RequestError):
            return AdapterError(
                code="CONNECTION_ERROR",
                message=f"Connection error: {exc}",
                details={"exception": type(exc).__name__},
                retryable=True,
            )

        message = str(exc) or type(exc).__name__
        code, retryable = message_error(message)
        return AdapterError(
            code=code,
            message=message,
            details={"exception": type(exc).__name__},
            retryable=retryable,
        )

    # Transport

    def _session(self) -> httpx.AsyncClient:
        if self._client is None:
            raise AdapterException("HTTP API adapter not connected", code="NOT_CONNECTED")
        return self._client

    async def _send(
        self,
        client: httpx.AsyncClient,
        method: str,
        endpoint: str,
        credentials: Credentials | None = None,
        retries: int | None = None,
        check: bool = True,
        headers: Mapping[str, str] | None = None,
        **kwargs: Any,
    ) -> httpx.Response:
        """Send one request, retrying transient failures.

        Header precedence is client defaults, then ``headers``, then the
        authentication headers.

        Raises:
            httpx.HTTPError: If the request still fails after the retries
        """
        assert self.config is not None
        max_retries = self.config.retries if retries is None else retries
        request_headers = {
            **(headers or {}),
            **auth_headers(credentials if credentials is not None else self._credentials),
        }

        for attempt in range(max_retries + 1):
            start_time = time.perf_counter()
            try:
                logger.debug(f"{method} {endpoint}")
                response = await client.request(
                    method, endpoint, headers=request_headers, **kwargs
                )
                self._last_latency = (time.perf_counter() - start_time) * 1000
                if check:
                    response.raise_for_status()
                elif response.status_code >= 500 and attempt < max_retries:
                    logger.warning(
                        f"Server error {response.status_code} for {endpoint}, "
                        f"retrying ({attempt + 1}/{max_retries})"
                    )
                    continue
                return response

            except httpx.TimeoutException:
                if attempt == max_retries:
                    logger.error(
                        f"Request to {endpoint} timed out after {max_retries} retries"
                    )
                    raise
                logger.warning(
                    f"Request to {endpoint} timed out, retrying ({attempt + 1}/{max_retries})"
                )

            except httpx.HTTPStatusError as e:
                # Client errors (4xx) are never retried
                if e.response.status_code < 500 or attempt == max_retries:
                    raise
                logger.warning(
                    f"Server error {e.response.status_code} for {endpoint}, "
                    f"retrying ({attempt + 1}/{max_retries})"
                )

            except httpx.RequestError as e:
                if attempt == max_retries:
                    logger.error(
                        f"Connection error to {endpoint} after {max_retries} retries: {e}"
                    )
                    raise
                logger.warning(
                    f"Connection error to {endpoint}, retrying ({attempt + 1}/{max_retries}): {e}"
                )

        raise RuntimeError("Request retry loop completed without returning")

    async def _request(
        self, method: str, params: RequestParams, **kwargs: Any
    ) -> httpx.Response:
        return await self._send(
            self._session(),
            method,
            params.endpoint,
            headers=params.headers,
            params=params.params,
            **kwargs,
        )

    @staticmethod
    def _body(data: Any) -> dict[str, Any]:
        if data is None:
            return {}
        if isinstance(data, (str, bytes)):
            return {"content": data}
        return {"json": data}

    @staticmethod
    def _result(response: httpx.Response) -> dict[str, Any]:
        return {
            "status": response.status_code,
            "status_text": response.reason_phrase,
            "headers": dict(response.headers),
            "data": _response_data(response),
        }

    # Verb handlers

    async def _get(self, params: RequestParams) -> dict[str, Any]:
        return self._result(await self._request("GET", params))

    async def _post(self, params: BodyRequestParams) -> dict[str, Any]:
        return self._result(
            await self._request("POST", params, **self._body(params.data))
        )

    async def _put(self, params: BodyRequestParams) -> dict[str, Any]:
        return self._result(await self._request("PUT", params, **self._body(params.data)))

    async def _patch(self, params: BodyRequestParams) -> dict[str, Any]:
        return self._result(
            await self._request("PATCH", params, **self._body(params.data))
        )

    async def _delete(self, params: RequestParams) -> dict[str, Any]:
        return self._result(await self._request("DELETE", params))

    async def _upload(self, params: UploadParams) -> dict[str, Any]:
        logger.debug(f"Uploading {params.file.name} to: {params.endpoint}")
        content = params.file.content
        if isinstance(content, str):
            content = content.encode()
        response = await self._request(
            "POST",
            params,
            files={"file": (params.file.name, content, params.file.content_type)},
            data=params.data,
        )
        return self._result(response)

    async def _download(self, params: RequestParams) -> dict[str, Any]:
        logger.debug(f"Downloading from: {params.endpoint}")
        response = await self._request("GET", params)
        return {
            "status": response.status_code,
            "status_text": response.reason_phrase,
            "headers": dict(response.headers),
            "content": response.content,
            "filename": _filename(response, params.endpoint),
            "size": len(response.content),
        }
