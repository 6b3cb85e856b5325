"""
API endpoints for the Repo Monitor application.
"""

from .status_routes import router as status_router
from .approval_routes import router as approval_router
from .command_routes import router as command_router
from .config_routes import router as config_router

__all__ = [
    "status_router",
    "approval_router",
    "command_router",
    "config_router"
]
