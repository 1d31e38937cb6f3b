"""CORS middleware configuration."""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from napft.config import Settings

# The routers serve reads, creates and owner updates only; nothing is patched or deleted.
ALLOWED_METHODS = ["GET", "POST", "PUT", "OPTIONS"]

# Request tracing and the rate-limit budget are readable by the frontend.
EXPOSED_HEADERS = ["X-Request-Id", "X-RateLimit-Remaining", "X-RateLimit-Limit"]


def setup_cors(app: FastAPI, settings: Settings) -> None:
    """Allow the marketplace frontend origins."""
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=ALLOWED_METHODS,
        allow_headers=["*"],
        expose_headers=EXPOSED_HEADERS,
    )
