# Routes package

from .discounts import router as discounts_router
from .offers import router as offers_router
from .loyalty import router as loyalty_router
from .health import router as health_router

__all__ = [
    "discounts_router",
    "offers_router",
    "loyalty_router",
    "health_router",
]
