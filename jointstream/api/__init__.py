"""
API layer - FastAPI application, routers and runtime wiring
"""

from .main import create_app

__all__ = ["create_app"]
