"""API routers."""
from .push import router as push_router

__all__ = ["push_router"]
