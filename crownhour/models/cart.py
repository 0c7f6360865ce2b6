from typing import Any, List, Optional, Tuple
from pydantic import BaseModel, Field, field_validator


class ProductSnapshot(BaseModel):
    """Denormalized product data kept alongside cart lines and wishlist entries."""
    id: str = Field(alias="_id")
    name: str = ""
    price: float = Field(default=0.0, ge=0)
    image: Optional[str] = None
    images: List[str] = Field(default_factory=list)
    slug: Optional[str] = None
    stock: Optional[int] = None

    class Config:
        populate_by_name = True
        extra = "allow"
        json_schema_extra = {
            "example": {
                "_id": "65f1c0ffee",
                "name": "Royal Oak Chronograph",
                "price": 42500.0,
                "images": ["https://cdn.example.com/royal-oak.jpg"],
                "stock": 3
            }
        }


class ColorVariant(BaseModel):
    """Selected case/dial color."""
    name: Optional[str] = None
    hex: Optional[str] = None


class StrapVariant(BaseModel):
    """Selected strap; the modifier is added to the base price."""
    material: Optional[str] = None
    price_modifier: float = Field(default=0.0, alias="priceModifier")

    class Config:
        populate_by_name = True


class CartLine(BaseModel):
    """
    A product/variant combination in the cart.

    Guest lines are built locally with a temp_ id. Server lines are mirrored
    as sent; the backend stores them without an _id, so `id` is filled in
    by reconcile_cart when missing.
    """
    id: Optional[str] = Field(None, alias="_id")
    product: Optional[ProductSnapshot] = None
    quantity: int = 1
    price: float = 0.0  # Effective unit price (base + strap modifier)
    color: Optional[ColorVariant] = None
    strap: Optional[StrapVariant] = None

    class Config:
        populate_by_name = True
        extra = "allow"

    @field_validator("product", mode="before")
    @classmethod
    def widen_product_id(cls, value: Any) -> Any:
        # An unpopulated server line carries only the product id
        if isinstance(value, str):
            return {"_id": value}
        return value

    @field_validator("price", mode="before")
    @classmethod
    def missing_price_is_zero(cls, value: Any) -> Any:
        return 0.0 if value is None else value

    def variant_key(self) -> Tuple[Optional[str], Optional[str], Optional[str]]:
        return variant_key(self.product.id if self.product else None, self.color, self.strap)


class CartState(BaseModel):
    """Cart contents plus the derived totals shown to the user."""
    items: List[CartLine] = Field(default_factory=list)
    count: int = 0
    subtotal: float = 0.0


def variant_key(
    product_id: Optional[str],
    color: Optional[ColorVariant],
    strap: Optional[StrapVariant]
) -> Tuple[Optional[str], Optional[str], Optional[str]]:
    """Identity of a cart line: product id, color name and strap material."""
    return (
        product_id,
        color.name if color else None,
        strap.material if strap else None
    )


def effective_unit_price(product: ProductSnapshot, strap: Optional[StrapVariant]) -> float:
    """Base product price plus the strap modifier, if any."""
    price = product.price
    if strap and strap.price_modifier:
        price += strap.price_modifier
    return price


def derive_totals(items: List[CartLine]) -> Tuple[int, float]:
    """Return (count, subtotal) for a list of cart lines."""
    count = sum(item.quantity for item in items)
    subtotal = sum(item.price * item.quantity for item in items)
    return count, subtotal


def line_id_from_variant(line: CartLine) -> str:
    """Stable id for a server line sent without one: product:color:strap."""
    return ":".join(part or "" for part in line.variant_key())
