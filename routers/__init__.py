# routers/__init__.py
from .auth import router as auth_router
from .catalog import router as catalog_router
from .holdings import router as holdings_router
from .cart import router as cart_router
from .orders import router as orders_router
from .retirements import router as retirements_router
from .health import router as health_router

__all__ = [
     "auth_router",
     "catalog_router",
     "holdings_router",
     "cart_router",
     "orders_router",
     "retirements_router",
     "health_router",
]
