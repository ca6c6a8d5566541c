"""CORS middleware configuration"""
from fastapi.middleware.cors import CORSMiddleware
from waitlist.config import Settings


def setup_cors(app, settings: Settings):
    """
    Configure CORS for the proxy endpoints

    The proxies are meant to be same-origin; cross-origin callers are only
    admitted from the configured origins.

    Args:
        app: FastAPI application instance
        settings: Application settings
    """
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials="*" not in settings.cors_origins,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
    )
