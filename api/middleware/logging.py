"""
Request/response logging middleware with timing and masked bodies.
"""
import json
import time
from typing import Any

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from core.logging_config import get_logger
from core.config import settings


logger = get_logger(__name__)


class LoggingMiddleware(BaseHTTPMiddleware):
    """
    Logs request_started / request_completed events.

    Webhook bodies carry customer data (email, authorization, card bin), so
    bodies are only logged in DEBUG and keys below are masked.
    """

    SKIP_PATHS = {"/health", "/docs", "/redoc", "/openapi.json"}

    SENSITIVE_FIELDS = {
        "secret", "secret_key", "token", "authorization", "access_code",
        "authorization_code", "email", "phone", "bin", "last4", "signature",
    }

    def __init__(self, app: ASGIApp):
        super().__init__(app)
        self.enable_body_log_default: bool = settings.LOG_REQUEST_BODY_ENABLE_BY_DEFAULT
        self.max_body_log_bytes: int = settings.LOG_REQUEST_BODY_MAX_BYTES

    async def dispatch(self, request: Request, call_next):
        if request.url.path in self.SKIP_PATHS:
            return await call_next(request)

        start_time = time.time()
        request_info = await self._get_request_info(request)
        logger.info("request_started", **request_info)

        try:
            response = await call_next(request)
        except Exception as exc:
            logger.error(
                "request_failed",
                duration=time.time() - start_time,
                error=str(exc),
                error_type=type(exc).__name__,
                **request_info,
                exc_info=True
            )
            raise

        duration = time.time() - start_time
        self._log_response(response, duration, request_info)
        response.headers["X-Process-Time"] = f"{duration:.3f}"
        return response

    async def _get_request_info(self, request: Request) -> dict:
        info = {
            "method": request.method,
            "path": request.url.path,
            "query_params": dict(request.query_params),
        }
        if request.method == "POST" and self._should_log_body():
            body_snippet = await self._extract_and_sanitize_body(request)
            if body_snippet is not None:
                info["body"] = body_snippet
        user_agent = request.headers.get("User-Agent")
        if user_agent:
            info["user_agent"] = user_agent
        return info

    def _should_log_body(self) -> bool:
        return bool(self.enable_body_log_default and settings.DEBUG)

    async def _extract_and_sanitize_body(self, request: Request) -> Any:
        body = await request.body()
        if not body:
            return None
        snippet = body[: self.max_body_log_bytes].decode("utf-8", errors="ignore")
        if "application/json" in request.headers.get("content-type", "").lower():
            try:
                return self._sanitize_data(json.loads(snippet))
            except ValueError:
                return {"truncated": True}
        return snippet

    def _sanitize_data(self, data: Any) -> Any:
        if isinstance(data, dict):
            return {k: ("***" if k.lower() in self.SENSITIVE_FIELDS else self._sanitize_data(v)) for k, v in data.items()}
        if isinstance(data, list):
            return [self._sanitize_data(v) for v in data]
        return data

    def _log_response(self, response: Response, duration: float, request_info: dict):
        log_data = {
            "status_code": response.status_code,
            "duration": duration,
            **request_info
        }
        if response.status_code < 400:
            logger.info("request_completed", **log_data)
        elif response.status_code < 500:
            logger.warning("request_client_error", **log_data)
        else:
            logger.error("request_server_error", **log_data)
