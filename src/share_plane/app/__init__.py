"""Share-plane FastAPI application."""

from .main import create_app
from .settings import SharePlaneSettings

__all__ = ["create_app", "SharePlaneSettings"]
