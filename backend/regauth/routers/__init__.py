"""Regulatory Authorization Engine - API Routers"""
from .cases import router as cases_router
from .scheduler import router as scheduler_router

__all__ = [
    "cases_router",
    "scheduler_router",
]
