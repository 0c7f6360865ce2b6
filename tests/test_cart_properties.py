"""
Randomized guest-mode operation sequences.

After every operation the cart totals must equal what the lines imply:
count is the sum of quantities and subtotal the sum of effective unit
price times quantity.
"""

import random

import pytest
from unittest.mock import MagicMock

from crownhour.core.storage import MemoryStorage
from crownhour.services.cart_service import CartStore

PRODUCTS = [
    {"_id": "prod_a", "name": "Submariner", "price": 9100.0},
    {"_id": "prod_b", "name": "Speedmaster", "price": 6300.0},
    {"_id": "prod_c", "name": "Tank Must", "price": 2990.5},
]
COLORS = [None, {"name": "Gold"}, {"name": "Silver"}]
STRAPS = [None, {"material": "Leather", "priceModifier": 120}, {"material": "Rubber", "priceModifier": 45.5}]


def assert_totals_consistent(store: CartStore):
    expected_count = sum(line.quantity for line in store.items)
    expected_subtotal = sum(line.price * line.quantity for line in store.items)
    assert store.count == expected_count
    assert store.subtotal == pytest.approx(expected_subtotal)
    assert all(line.quantity >= 1 for line in store.items)


class TestGuestTotalsProperty:
    """Test derived totals never drift from the lines."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("seed", range(25))
    async def test_random_operation_sequence(self, seed, settings):
        """Test totals and invariants hold after random operation sequences."""
        rng = random.Random(seed)
        store = CartStore(MagicMock(), MemoryStorage(), lambda: False, settings)

        for _ in range(40):
            operation = rng.choice(["add", "add", "update", "remove"])
            lines = store.items

            if operation == "add" or not lines:
                await store.add_to_cart(
                    rng.choice(PRODUCTS),
                    rng.randint(1, 4),
                    rng.choice(COLORS),
                    rng.choice(STRAPS)
                )
            elif operation == "update":
                await store.update_quantity(rng.choice(lines).id, rng.randint(1, 6))
            else:
                await store.remove_from_cart(rng.choice(lines).id)

            assert_totals_consistent(store)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("seed", range(10))
    async def test_variant_keys_stay_unique(self, seed, settings):
        """Test no two lines share a variant key."""
        rng = random.Random(seed)
        store = CartStore(MagicMock(), MemoryStorage(), lambda: False, settings)

        for _ in range(30):
            await store.add_to_cart(rng.choice(PRODUCTS), 1, rng.choice(COLORS), rng.choice(STRAPS))

        keys = [line.variant_key() for line in store.items]
        assert len(keys) == len(set(keys))
        assert store.count == 30
