"""
ORM models. Importing this package registers every mapper on `Base.metadata`.
"""

from app.core.db import Base
from app.models.product import Product, ProductVariant

__all__ = ["Base", "Product", "ProductVariant"]
