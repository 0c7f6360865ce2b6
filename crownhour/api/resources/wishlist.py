from typing import Any

from crownhour.api.client import ApiClient
from crownhour.schemas.wishlist import ToggleWishlistRequest


class WishlistResource:
    """Server wishlist endpoints."""

    def __init__(self, client: ApiClient):
        self.client = client

    async def get_wishlist(self) -> Any:
        return await self.client.get("/wishlist")

    async def toggle_item(self, product_id: str) -> Any:
        """Add or remove a product; returns the full updated product list."""
        request = ToggleWishlistRequest(product_id=product_id)
        return await self.client.post("/wishlist/toggle", request.model_dump(by_alias=True))

    async def check_status(self, product_id: str) -> Any:
        return await self.client.get(f"/wishlist/check/{product_id}")
