"""
Security Headers Middleware
Adds security headers to all API responses.
"""

from starlette.middleware.base import BaseHTTPMiddleware
from app.config import settings

# The interactive docs page loads its assets from a CDN
DOCS_PATHS = ("/docs", "/redoc")


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """
    Middleware that adds security headers to all responses.

    Headers implemented:
    - X-Frame-Options: Prevents clickjacking
    - X-Content-Type-Options: Prevents MIME sniffing
    - Strict-Transport-Security: Forces HTTPS (production only)
    - Content-Security-Policy: JSON responses never load resources
    - Referrer-Policy: Controls referrer information
    - Cache-Control: Deposit data must not be cached by intermediaries
    """

    async def dispatch(self, request, call_next):
        response = await call_next(request)

        response.headers["X-Frame-Options"] = "DENY"
        response.headers["X-Content-Type-Options"] = "nosniff"

        # HTTPS enforcement (production only)
        if not settings.DEBUG:
            response.headers["Strict-Transport-Security"] = (
                "max-age=31536000; includeSubDomains"
            )

        if not request.url.path.startswith(DOCS_PATHS):
            response.headers["Content-Security-Policy"] = (
                "default-src 'none'; frame-ancestors 'none'"
            )

        response.headers["Referrer-Policy"] = "no-referrer"

        if request.url.path.startswith(settings.API_PREFIX):
            response.headers["Cache-Control"] = "no-store"

        return response
