"""Security Headers Middleware

Adds security headers to HTTP responses of the shop and admin API.
Enabled by default (SECURITY_HEADERS_ENABLED); HSTS only when served over HTTPS.
"""

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response
import config


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Middleware that adds security headers to all HTTP responses."""

    async def dispatch(self, request: Request, call_next) -> Response:
        response = await call_next(request)

        if not config.SECURITY_HEADERS_ENABLED:
            return response

        # Prevent MIME type sniffing
        response.headers["X-Content-Type-Options"] = "nosniff"

        # Prevent clickjacking
        response.headers["X-Frame-Options"] = "DENY"

        if config.HSTS_ENABLED:
            # max-age: 31536000 seconds = 1 year
            response.headers["Strict-Transport-Security"] = (
                "max-age=31536000; includeSubDomains"
            )

        response.headers["Referrer-Policy"] = "no-referrer-when-downgrade"

        response.headers["Permissions-Policy"] = (
            "geolocation=(), microphone=(), camera=(), "
            "payment=(), usb=(), magnetometer=(), gyroscope=()"
        )

        # Admin responses carry card keys and customer data
        if request.url.path.startswith("/api/admin"):
            response.headers["Cache-Control"] = "no-store"

        return response
