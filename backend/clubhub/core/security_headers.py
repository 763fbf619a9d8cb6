"""HTTP security headers middleware."""

from __future__ import annotations

from fastapi import FastAPI, Request

from clubhub.core.config import Settings

_API_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "strict-origin-when-cross-origin",
    "Cross-Origin-Resource-Policy": "same-site",
    "Content-Security-Policy": "default-src 'none'; frame-ancestors 'none'",
    # Mailbox pages carry per-viewer read state.
    "Cache-Control": "no-store",
}


def install_security_headers_middleware(app: FastAPI, settings: Settings) -> None:
    @app.middleware("http")
    async def add_security_headers(request: Request, call_next):  # type: ignore[override]
        response = await call_next(request)

        if (request.url.path or "").startswith("/api"):
            for name, value in _API_HEADERS.items():
                response.headers[name] = value
            if settings.is_production:
                response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"

        return response
