"""
API route modules.

Each module defines routes for one domain area.
"""

from routes.do_specifications import router as do_specifications_router
from routes.sales import router as sales_router

__all__ = [
    "do_specifications_router",
    "sales_router",
]
