# intake/routes/__init__.py
"""
API route handlers.
"""

from intake.routes.health import router as health_router
from intake.routes.intake import router as intake_router

__all__ = [
    "health_router",
    "intake_router",
]
