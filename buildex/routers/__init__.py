"""
API route handlers for the BuildEx Marketplace API.
"""

from .auth import router as auth_router
from .properties import router as properties_router
from .payments import router as payments_router
from .enquiries import router as enquiries_router
from .rent_requests import router as rent_requests_router

__all__ = [
    "auth_router",
    "properties_router",
    "payments_router",
    "enquiries_router",
    "rent_requests_router"
]
