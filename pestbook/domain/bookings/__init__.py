"""Booking lifecycle: admission, transitions, availability"""

from .admin_router import router as admin_router
from .router import router
from .worker_router import router as worker_router

__all__ = ["admin_router", "router", "worker_router"]
