"""
Base REST API client.

Shared HTTP plumbing for gateway clients:
- bounded retry with exponential backoff
- error mapping
- request/response debug logging
- bearer authentication
- overridable transport for fake upstreams
"""
import json
import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional, Union

import httpx
from pydantic import BaseModel
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

logger = logging.getLogger(__name__)


class HTTPMethod(Enum):
    GET = "GET"
    POST = "POST"


@dataclass
class APIResponse:
    status_code: int
    headers: Dict[str, str]
    data: Any
    raw_content: bytes
    elapsed_ms: float
    request_id: Optional[str] = None

    @property
    def is_error(self) -> bool:
        return self.status_code >= 400

    def json(self) -> Any:
        if self.data is not None:
            return self.data
        return json.loads(self.raw_content)


class APIError(Exception):
    """Base API error; status_code is None when no response was received."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        response: Optional[APIResponse] = None,
        request_id: Optional[str] = None
    ):
        self.message = message
        self.status_code = status_code
        self.response = response
        self.request_id = request_id
        super().__init__(self.message)

    def __str__(self):
        parts = [self.message]
        if self.status_code:
            parts.append(f"Status: {self.status_code}")
        if self.request_id:
            parts.append(f"Request ID: {self.request_id}")
        return " | ".join(parts)


class RateLimitError(APIError):
    pass


class AuthenticationError(APIError):
    pass


class NotFoundError(APIError):
    pass


class ServerError(APIError):
    pass


class RetryableAPIError(APIError):
    """Transient upstream failure, retried until attempts run out."""

    def __init__(self, message: str, status_code: Optional[int], response: Optional[APIResponse]):
        super().__init__(
            message=message,
            status_code=status_code,
            response=response,
            request_id=response.request_id if response else None,
        )


def is_retryable_status(status_code: int) -> bool:
    # 4xx are final: the same request would be rejected again
    return status_code >= 500


class BaseAPIClient:
    """
    REST API client base class.

    Subclasses add typed endpoint methods on top of get/post.
    """

    def __init__(
        self,
        base_url: str,
        timeout: Union[float, httpx.Timeout] = 30.0,
        max_retries: int = 3,
        retry_delay: float = 1.0,
        headers: Optional[Dict[str, str]] = None,
        auth_token: Optional[str] = None,
        verify_ssl: bool = True,
        debug: bool = False,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Args:
            base_url: API base URL
            timeout: request timeout in seconds, or an httpx.Timeout
            max_retries: retries after the first attempt (0 disables retrying)
            retry_delay: backoff multiplier in seconds
            headers: default request headers
            auth_token: bearer token
            verify_ssl: verify TLS certificates
            debug: log requests and responses
            transport: httpx transport override, e.g. httpx.MockTransport
        """
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.verify_ssl = verify_ssl
        self.debug = debug
        self.transport = transport

        self.default_headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
            "User-Agent": "paystack-payments/1.0",
        }
        if headers:
            self.default_headers.update(headers)

        if auth_token:
            self.set_auth_token(auth_token)

        self._client: Optional[httpx.AsyncClient] = None

    def set_auth_token(self, token: str, header_name: str = "Authorization", prefix: str = "Bearer"):
        self.default_headers[header_name] = f"{prefix} {token}" if prefix else token

    @property
    async def client(self) -> httpx.AsyncClient:
        """Lazily created pooled client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout),
                verify=self.verify_ssl,
                follow_redirects=True,
                transport=self.transport,
            )
        return self._client

    async def close(self):
        if self._client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    def _build_url(self, endpoint: str) -> str:
        endpoint = endpoint.lstrip('/')
        return f"{self.base_url}/{endpoint}"

    def _log_request(self, method: str, url: str, **kwargs):
        if self.debug:
            logger.debug(
                f"API Request: {method} {url}",
                extra={
                    "method": method,
                    "url": url,
                    "params": kwargs.get("params"),
                    "json": kwargs.get("json"),
                    "headers": {k: v for k, v in kwargs.get("headers", {}).items()
                                if k.lower() != "authorization"}
                }
            )

    def _log_response(self, response: APIResponse):
        if self.debug:
            logger.debug(
                f"API Response: {response.status_code}",
                extra={
                    "status_code": response.status_code,
                    "elapsed_ms": response.elapsed_ms,
                    "request_id": response.request_id,
                    "data": response.data if response.status_code < 400 else None
                }
            )

    @staticmethod
    def _error_message(status_code: int, response: APIResponse) -> str:
        if isinstance(response.data, dict):
            for key in ("message", "error", "detail"):
                value = response.data.get(key)
                if isinstance(value, str) and value:
                    return value
        return f"API request failed with status {status_code}"

    def _handle_error_response(self, status_code: int, response: APIResponse):
        error_map = {
            401: AuthenticationError,
            403: AuthenticationError,
            404: NotFoundError,
            429: RateLimitError,
        }
        error_class = ServerError if status_code >= 500 else error_map.get(status_code, APIError)
        raise error_class(
            message=self._error_message(status_code, response),
            status_code=status_code,
            response=response,
            request_id=response.request_id
        )

    def _retrying(self) -> AsyncRetrying:
        return AsyncRetrying(
            reraise=True,
            stop=stop_after_attempt(self.max_retries + 1),
            wait=wait_exponential(
                multiplier=self.retry_delay,
                min=self.retry_delay,
                max=self.retry_delay * 8
            ),
            retry=retry_if_exception_type((httpx.TimeoutException, httpx.NetworkError, RetryableAPIError)),
            before_sleep=before_sleep_log(logger, logging.WARNING)
        )

    async def _request(
        self,
        method: Union[str, HTTPMethod],
        endpoint: str,
        params: Optional[Dict[str, Any]] = None,
        json_data: Optional[Union[Dict[str, Any], BaseModel]] = None,
        headers: Optional[Dict[str, str]] = None,
        **kwargs
    ) -> APIResponse:
        """
        Send a request, retrying transient failures.

        Raises:
            APIError: final failure; carries the upstream status code and message
        """
        if isinstance(method, HTTPMethod):
            method = method.value

        url = self._build_url(endpoint)

        request_headers = {**self.default_headers}
        if headers:
            request_headers.update(headers)

        if isinstance(json_data, BaseModel):
            json_data = json_data.model_dump(exclude_none=True)

        self._log_request(method, url, params=params, json=json_data, headers=request_headers)

        async def _send_once() -> APIResponse:
            start_time = datetime.now()
            client = await self.client
            response = await client.request(
                method=method,
                url=url,
                params=params,
                json=json_data,
                headers=request_headers,
                **kwargs
            )

            elapsed = (datetime.now() - start_time).total_seconds() * 1000

            response_data = None
            if "application/json" in response.headers.get("content-type", ""):
                try:
                    response_data = response.json()
                except json.JSONDecodeError:
                    response_data = None

            api_response = APIResponse(
                status_code=response.status_code,
                headers=dict(response.headers),
                data=response_data,
                raw_content=response.content,
                elapsed_ms=elapsed,
                request_id=response.headers.get("x-request-id")
            )

            self._log_response(api_response)

            if api_response.is_error and is_retryable_status(api_response.status_code):
                raise RetryableAPIError(
                    message=f"Transient API error with status {api_response.status_code}",
                    status_code=api_response.status_code,
                    response=api_response,
                )

            if api_response.is_error:
                self._handle_error_response(api_response.status_code, api_response)

            return api_response

        try:
            async for attempt in self._retrying():
                with attempt:
                    return await _send_once()
        except httpx.TimeoutException as exc:
            raise APIError(f"Request timeout after {self.timeout}s") from exc
        except httpx.NetworkError as exc:
            raise APIError(f"Network error: {exc}") from exc
        except RetryableAPIError as exc:
            if exc.response:
                self._handle_error_response(exc.status_code or exc.response.status_code, exc.response)
            raise APIError(exc.message, status_code=exc.status_code) from exc
        except APIError:
            raise
        except httpx.HTTPError as exc:
            logger.error(f"Unexpected error during API request: {exc}")
            raise APIError(f"Unexpected error: {exc}") from exc

    async def get(self, endpoint: str, **kwargs) -> APIResponse:
        return await self._request(HTTPMethod.GET, endpoint, **kwargs)

    async def post(self, endpoint: str, **kwargs) -> APIResponse:
        return await self._request(HTTPMethod.POST, endpoint, **kwargs)
