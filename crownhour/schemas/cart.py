from typing import Any, List, Optional
from pydantic import BaseModel, Field

from crownhour.models.cart import CartLine, ColorVariant, StrapVariant


class ApiEnvelope(BaseModel):
    """Standard response wrapper: {success, data, message}."""
    success: bool = True
    data: Any = None
    message: Optional[str] = None

    class Config:
        extra = "allow"


class AddToCartRequest(BaseModel):
    """Schema for adding a product to the server cart."""
    product_id: str = Field(alias="productId")
    quantity: int = Field(default=1, gt=0)
    color: Optional[ColorVariant] = None
    strap: Optional[StrapVariant] = None

    class Config:
        populate_by_name = True
        json_schema_extra = {
            "example": {
                "productId": "prod123",
                "quantity": 1,
                "color": {"name": "Midnight Blue", "hex": "#191970"},
                "strap": {"material": "Alligator", "priceModifier": 450}
            }
        }


class UpdateCartItemRequest(BaseModel):
    """Schema for updating cart item quantity."""
    quantity: int = Field(gt=0)

    class Config:
        json_schema_extra = {
            "example": {
                "quantity": 3
            }
        }


class CartPayload(BaseModel):
    """
    Cart document returned by every cart endpoint.

    `items` is required: a payload without it is treated as malformed.
    `count` is optional; when present it is mirrored as-is.
    """
    items: List[CartLine]
    subtotal: float = 0.0
    count: Optional[int] = None

    class Config:
        extra = "allow"
