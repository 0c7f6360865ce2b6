from typing import Any, List
from pydantic import BaseModel, Field, field_validator

from crownhour.models.cart import ProductSnapshot


class ToggleWishlistRequest(BaseModel):
    """Schema for toggling wishlist membership."""
    product_id: str = Field(alias="productId")

    class Config:
        populate_by_name = True


class WishlistPayload(BaseModel):
    """Wishlist document; `products` is the full updated list."""
    products: List[ProductSnapshot]

    class Config:
        extra = "allow"

    @field_validator("products", mode="before")
    @classmethod
    def widen_product_ids(cls, value: Any) -> Any:
        if isinstance(value, list):
            return [{"_id": item} if isinstance(item, str) else item for item in value]
        return value


class WishlistStatusPayload(BaseModel):
    """Response of the membership check endpoint."""
    success: bool = True
    is_in_wishlist: bool = Field(alias="isInWishlist")

    class Config:
        populate_by_name = True
        extra = "allow"
