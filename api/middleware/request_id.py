"""
Request ID middleware: accepts or mints a trace id and binds it for structlog.
"""
import uuid

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

import structlog


class RequestIDMiddleware(BaseHTTPMiddleware):
    """
    1. take X-Request-ID from the request or generate one
    2. bind request_id and client_ip into structlog contextvars
    3. echo the id back in the response headers
    """

    HEADER_NAME = "X-Request-ID"

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get(self.HEADER_NAME) or str(uuid.uuid4())
        client_ip = self._get_client_ip(request)

        request.state.request_id = request_id
        request.state.client_ip = client_ip

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            client_ip=client_ip,
            method=request.method,
            path=request.url.path,
        )

        response = await call_next(request)
        response.headers[self.HEADER_NAME] = request_id
        return response

    def _get_client_ip(self, request: Request) -> str:
        # first hop of X-Forwarded-For, then X-Real-IP, then the socket peer
        x_forwarded_for = request.headers.get("X-Forwarded-For")
        if x_forwarded_for:
            return x_forwarded_for.split(",")[0].strip()
        client_ip = request.headers.get("X-Real-IP")
        if client_ip:
            return client_ip
        return request.client.host if request.client else "unknown"
