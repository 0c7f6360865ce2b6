from typing import List
from pydantic import BaseModel, Field

from crownhour.models.cart import ProductSnapshot


class WishlistState(BaseModel):
    """Saved products, unique by product id."""
    items: List[ProductSnapshot] = Field(default_factory=list)

    def contains(self, product_id: str) -> bool:
        return any(item.id == product_id for item in self.items)
