"""
Security middleware and configuration.

Implements CORS, security headers, request size limits and the denylist
content scan applied to JSON bodies and query values.
"""

from typing import Callable, Iterable, List, Optional

from fastapi import FastAPI, Request, Response, status
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from .exceptions import SecurityRejectionException
from .logging_config import get_logger, sanitize_for_logging
from .metrics import track_security_rejection
from .models import error_response

logger = get_logger(__name__)


class PatternScanner:
    """
    Case-insensitive substring matcher over a configurable denylist.

    Example:
        scanner = PatternScanner(["<script", "../"])
        scanner.find("GET <SCRIPT>")  # "<script"
    """

    def __init__(self, patterns: Iterable[str]) -> None:
        self.patterns: List[str] = [p for p in patterns if p]
        self._folded = [(p, p.casefold()) for p in self.patterns]

    def find(self, content: Optional[str]) -> Optional[str]:
        """
        Return the first denylisted pattern found in ``content``.

        Returns:
            The matching pattern, or None when the content is clean
        """
        if content is None or not content.strip():
            return None

        folded = content.casefold()
        for pattern, folded_pattern in self._folded:
            if folded_pattern in folded:
                return pattern
        return None

    def check(self, source: str, content: Optional[str]) -> None:
        """
        Raise when ``content`` contains a denylisted pattern.

        Args:
            source: Where the content came from, for logging
            content: Raw text to scan

        Raises:
            SecurityRejectionException: If any pattern matches
        """
        pattern = self.find(content)
        if pattern is not None:
            raise SecurityRejectionException(source=source, pattern=pattern)


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """
    Add security headers to all responses.

    Content-Security-Policy and HSTS are only sent outside development.
    """

    def __init__(self, app: ASGIApp, is_development: bool = False) -> None:
        super().__init__(app)
        self.is_development = is_development

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """
        Process request and add security headers to response.

        Args:
            request: Incoming request
            call_next: Next middleware in chain

        Returns:
            Response with security headers
        """
        response = await call_next(request)

        response.headers["X-Frame-Options"] = "DENY"
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-XSS-Protection"] = "1; mode=block"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        response.headers["Permissions-Policy"] = (
            "geolocation=(), microphone=(), camera=()"
        )

        if not self.is_development:
            response.headers["Content-Security-Policy"] = (
                "default-src 'self'; "
                "script-src 'self'; "
                "style-src 'self' 'unsafe-inline'; "
                "img-src 'self' data: https:; "
                "font-src 'self'; "
                "connect-src 'self'; "
                "frame-ancestors 'none'; "
                "base-uri 'self'; "
                "form-action 'self'"
            )
            response.headers["Strict-Transport-Security"] = (
                "max-age=31536000; includeSubDomains; preload"
            )

        for header in ("Server", "X-Powered-By"):
            if header in response.headers:
                del response.headers[header]

        return response


class InputValidationMiddleware(BaseHTTPMiddleware):
    """
    Refuse oversized requests and requests carrying denylisted content.

    JSON bodies are scanned as raw text; query values are always scanned.
    A match refuses the whole request with 400.
    """

    def __init__(
        self,
        app: ASGIApp,
        scanner: PatternScanner,
        max_body_bytes: int = 10 * 1024 * 1024,
    ) -> None:
        super().__init__(app)
        self.scanner = scanner
        self.max_body_bytes = max_body_bytes

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """
        Validate request before processing.

        Args:
            request: Incoming request
            call_next: Next middleware in chain

        Returns:
            Response or error if validation fails
        """
        client_host = request.client.host if request.client else "unknown"

        content_length = request.headers.get("content-length")
        if content_length and content_length.isdigit():
            if int(content_length) > self.max_body_bytes:
                return self._too_large(client_host, int(content_length))

        content_type = request.headers.get("content-type", "")
        if "application/json" in content_type.lower():
            body = await request.body()
            if len(body) > self.max_body_bytes:
                return self._too_large(client_host, len(body))

            if body:
                try:
                    self.scanner.check("body", body.decode("utf-8", errors="replace"))
                except SecurityRejectionException as exc:
                    track_security_rejection("unsafe_body")
                    logger.warning(
                        "Potentially malicious request detected",
                        client_host=client_host,
                        path=sanitize_for_logging(request.url.path),
                        pattern=exc.pattern,
                    )
                    return error_response(
                        status.HTTP_400_BAD_REQUEST,
                        "invalid_request_content",
                        exc.message,
                    )

        for name, value in request.query_params.multi_items():
            try:
                self.scanner.check(f"query:{name}", value)
            except SecurityRejectionException as exc:
                track_security_rejection("unsafe_query")
                logger.warning(
                    "Potentially malicious query parameter detected",
                    client_host=client_host,
                    parameter=sanitize_for_logging(name),
                    value=sanitize_for_logging(value),
                    pattern=exc.pattern,
                )
                return error_response(
                    status.HTTP_400_BAD_REQUEST,
                    "invalid_query_parameter",
                    "The query parameter contains potentially unsafe content",
                )

        return await call_next(request)

    def _too_large(self, client_host: str, size: int) -> Response:
        track_security_rejection("request_too_large")
        logger.warning(
            "Request too large",
            client_host=client_host,
            size_bytes=size,
            max_size_bytes=self.max_body_bytes,
        )
        return error_response(
            413, "request_too_large", "Request exceeds maximum allowed size"
        )


def configure_cors(app: FastAPI, allowed_origins: List[str]) -> None:
    """
    Configure CORS middleware.

    Args:
        app: FastAPI application instance
        allowed_origins: Origins allowed to call the API, "*" for any
    """
    logger.info("Configuring CORS", origins=allowed_origins)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        allow_credentials="*" not in allowed_origins,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "Retry-After"],
    )
