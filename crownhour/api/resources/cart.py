from typing import Any, Optional

from crownhour.api.client import ApiClient
from crownhour.models.cart import ColorVariant, StrapVariant
from crownhour.schemas.cart import AddToCartRequest, UpdateCartItemRequest


class CartResource:
    """Server cart endpoints. Every call returns the full updated cart envelope."""

    def __init__(self, client: ApiClient):
        self.client = client

    async def get_cart(self) -> Any:
        return await self.client.get("/cart")

    async def add_item(
        self,
        product_id: str,
        quantity: int,
        color: Optional[ColorVariant] = None,
        strap: Optional[StrapVariant] = None
    ) -> Any:
        request = AddToCartRequest(product_id=product_id, quantity=quantity, color=color, strap=strap)
        return await self.client.post("/cart/add", request.model_dump(by_alias=True))

    async def update_item(self, item_id: str, quantity: int) -> Any:
        request = UpdateCartItemRequest(quantity=quantity)
        return await self.client.put(f"/cart/item/{item_id}", request.model_dump())

    async def remove_item(self, item_id: str) -> Any:
        return await self.client.delete(f"/cart/item/{item_id}")

    async def clear_cart(self) -> Any:
        return await self.client.delete("/cart")
