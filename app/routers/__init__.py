# app/routers/__init__.py
"""
HTTP routers. `api_routers` is the ordered list mounted by app.main.create_app().
"""

from app.routers.checkout import router as checkout_router
from app.routers.invoices import router as invoices_router
from app.routers.products import router as products_router
from app.routers.uploads import router as uploads_router

api_routers = [products_router, checkout_router, invoices_router, uploads_router]

__all__ = ["api_routers", "checkout_router", "invoices_router", "products_router", "uploads_router"]
