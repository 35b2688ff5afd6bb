"""
API Routes Module
"""
from .health import router as health_router
from .margins import router as margins_router
from .audit import router as audit_router

__all__ = [
    "health_router",
    "margins_router",
    "audit_router",
]
