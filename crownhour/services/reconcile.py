"""
Single entry point for turning a change into the next store state.

A change is either a server snapshot (authenticated mode: mirrored as-is,
totals included) or a local delta (guest mode: totals derived from the
lines). No other code computes cart totals.
"""

from typing import List, Union
from pydantic import BaseModel, Field

from crownhour.models.cart import CartLine, CartState, ProductSnapshot, derive_totals, line_id_from_variant
from crownhour.models.wishlist import WishlistState
from crownhour.schemas.cart import CartPayload
from crownhour.schemas.wishlist import WishlistPayload


class LocalCartDelta(BaseModel):
    """Guest-mode cart lines after a local mutation."""
    items: List[CartLine] = Field(default_factory=list)


class LocalWishlistDelta(BaseModel):
    """Guest-mode wishlist after a local toggle."""
    items: List[ProductSnapshot] = Field(default_factory=list)


CartChange = Union[CartPayload, LocalCartDelta]
WishlistChange = Union[WishlistPayload, LocalWishlistDelta]


def _with_line_ids(items: List[CartLine]) -> List[CartLine]:
    """Give server lines sent without an _id a stable one, unique within the cart."""
    lines = []
    seen = set()
    for index, line in enumerate(items):
        line_id = line.id or line_id_from_variant(line)
        if line_id in seen:
            line_id = f"{line_id}:{index}"
        seen.add(line_id)
        lines.append(line if line_id == line.id else line.model_copy(update={"id": line_id}))
    return lines


def reconcile_cart(change: CartChange) -> CartState:
    if isinstance(change, CartPayload):
        # Server snapshot: mirror it, even if its totals disagree with its lines
        count = change.count
        if count is None:
            count = sum(item.quantity for item in change.items)
        return CartState(items=_with_line_ids(change.items), count=count, subtotal=change.subtotal)

    if isinstance(change, LocalCartDelta):
        count, subtotal = derive_totals(change.items)
        return CartState(items=list(change.items), count=count, subtotal=subtotal)

    raise TypeError(f"Unsupported cart change: {type(change).__name__}")


def reconcile_wishlist(change: WishlistChange) -> WishlistState:
    if isinstance(change, WishlistPayload):
        return WishlistState(items=list(change.products))

    if isinstance(change, LocalWishlistDelta):
        seen = set()
        items = []
        for product in change.items:
            if product.id in seen:
                continue
            seen.add(product.id)
            items.append(product)
        return WishlistState(items=items)

    raise TypeError(f"Unsupported wishlist change: {type(change).__name__}")
