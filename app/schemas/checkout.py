"""
Checkout payload schemas.

Ids and quantities are strict integers: "101" or true are rejected instead of coerced.
Both are bounded to the database integer range so an oversized value never reaches the store.
"""

from pydantic import BaseModel, ConfigDict, Field, StrictInt

from app.schemas.base import DB_INT_MAX, DB_INT_MIN


class CartLine(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: StrictInt = Field(..., ge=DB_INT_MIN, le=DB_INT_MAX, description="Variant id")
    quantity: StrictInt = Field(..., gt=0, le=DB_INT_MAX, description="Units requested")


class CheckoutRequest(BaseModel):
    model_config = ConfigDict(extra="ignore")

    products: list[CartLine] = Field(..., min_length=1, description="Cart lines in purchase order")
