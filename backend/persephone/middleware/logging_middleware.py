"""
FastAPI middleware for logging API requests and responses.

Uses pure ASGI middleware (not BaseHTTPMiddleware) so the wrapped app sees
the untouched receive/send channels.

Visitors are logged by identity token, never by raw address.
"""

import json
import logging
import time
from typing import Optional
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from ..core.identity import get_client_ip, hash_ip
from ..core.logging_config import mask_sensitive, truncate

logger = logging.getLogger(__name__)


def _sanitize_body(data: bytes) -> str:
    """Decode a body, mask credentials if it is JSON, and truncate."""
    text = data.decode("utf-8", errors="ignore")
    try:
        payload = json.loads(text)
    except json.JSONDecodeError:
        return truncate(text, limit=2000)
    return truncate(
        json.dumps(mask_sensitive(payload), ensure_ascii=False), limit=2000
    )


def _extract_error_reason(response_text: str) -> Optional[str]:
    """Pull the ``error`` string out of a ``{success: false, error}`` payload."""
    try:
        payload = json.loads(response_text)
    except json.JSONDecodeError:
        return truncate(response_text, limit=500) if response_text else None
    if isinstance(payload, dict):
        for key in ("error", "detail"):
            if payload.get(key):
                return str(payload[key])
    return None


class RequestLoggingMiddleware:
    """Pure ASGI middleware to log all API requests and responses."""

    def __init__(self, app: ASGIApp, exclude_paths: Optional[list] = None):
        """
        Args:
            app: The ASGI application
            exclude_paths: Paths that are passed through without logging
        """
        self.app = app
        self.exclude_paths = exclude_paths or ["/health", "/"]

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http" or scope.get("path", "") in self.exclude_paths:
            await self.app(scope, receive, send)
            return

        start_time = time.time()
        request_id = id(scope)
        method = scope.get("method", "UNKNOWN")
        path = scope.get("path", "")
        headers = {
            k.decode("latin-1").lower(): v.decode("latin-1")
            for k, v in scope.get("headers", [])
        }
        identity = hash_ip(get_client_ip(headers))

        body_chunks = []
        response_chunks = []
        status_code = 0

        async def logging_receive() -> Message:
            message = await receive()
            if message["type"] == "http.request":
                body_chunks.append(message.get("body", b""))
            return message

        async def logging_send(message: Message) -> None:
            nonlocal status_code
            if message["type"] == "http.response.start":
                status_code = message.get("status", 0)
            elif message["type"] == "http.response.body":
                response_chunks.append(message.get("body", b""))
            await send(message)

        logger.info(
            f"Request started: {method} {path}",
            extra={"extra_fields": {
                "request_id": request_id,
                "method": method,
                "path": path,
                "identity": identity,
            }}
        )

        try:
            await self.app(scope, logging_receive, logging_send)
        except Exception as e:
            duration_ms = (time.time() - start_time) * 1000
            logger.error(
                f"Request failed: {method} {path} - {str(e)}",
                exc_info=True,
                extra={"extra_fields": {
                    "request_id": request_id,
                    "identity": identity,
                    "duration_ms": round(duration_ms, 2),
                    "error": str(e),
                }}
            )
            raise

        duration_ms = (time.time() - start_time) * 1000
        request_body = _sanitize_body(b"".join(body_chunks)) if any(body_chunks) else None
        response_body = _sanitize_body(b"".join(response_chunks)) if any(response_chunks) else None
        error_reason = _extract_error_reason(response_body or "") if status_code >= 400 else None

        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(f"Request body: {request_body or '-'} | Response body: {response_body or '-'}")

        if status_code < 400:
            log_level = logging.INFO
        elif status_code < 500:
            log_level = logging.WARNING
        else:
            log_level = logging.ERROR

        completion_message = f"Request completed: {method} {path} - {status_code} ({duration_ms:.2f}ms)"
        if error_reason:
            completion_message += f" | error_reason={error_reason}"

        logger.log(
            log_level,
            completion_message,
            extra={"extra_fields": {
                "request_id": request_id,
                "method": method,
                "path": path,
                "identity": identity,
                "status_code": status_code,
                "duration_ms": round(duration_ms, 2),
                "error_reason": error_reason,
            }}
        )
