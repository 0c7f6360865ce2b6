"""Tests for state reconciliation, sequencing and session mode."""

import pytest

from crownhour.models.cart import CartLine, ProductSnapshot, StrapVariant, effective_unit_price
from crownhour.schemas.cart import CartPayload
from crownhour.schemas.wishlist import WishlistPayload
from crownhour.services.reconcile import LocalCartDelta, LocalWishlistDelta, reconcile_cart, reconcile_wishlist
from crownhour.services.sequencing import RequestSequencer
from crownhour.services.session_mode import SessionMode, resolve_mode


def line(line_id, quantity, price, product_id="prod_a"):
    return CartLine(id=line_id, product={"_id": product_id, "price": price}, quantity=quantity, price=price)


class TestReconcileCart:
    """Test cart reconciliation for local and server changes."""

    def test_local_delta_derives_totals(self):
        """Test a local delta derives count and subtotal."""
        state = reconcile_cart(LocalCartDelta(items=[line("l1", 2, 10.0), line("l2", 1, 5.5, "prod_b")]))

        assert state.count == 3
        assert state.subtotal == pytest.approx(25.5)

    def test_server_snapshot_is_mirrored(self):
        """Test a server snapshot is mirrored as sent."""
        payload = CartPayload(items=[line("l1", 2, 10.0)], subtotal=99.0, count=42)

        state = reconcile_cart(payload)

        assert (state.count, state.subtotal) == (42, 99.0)

    def test_unsupported_change(self):
        """Test an unsupported cart change raises TypeError."""
        with pytest.raises(TypeError):
            reconcile_cart({"items": []})


class TestReconcileWishlist:
    """Test wishlist reconciliation."""

    def test_local_delta_deduplicates(self):
        """Test a local delta removes duplicate products."""
        product = ProductSnapshot(id="prod_a", name="A", price=1.0)

        state = reconcile_wishlist(LocalWishlistDelta(items=[product, product]))

        assert len(state.items) == 1
        assert state.contains("prod_a")

    def test_server_payload(self):
        """Test a server payload mixes ids and snapshots."""
        state = reconcile_wishlist(WishlistPayload(products=["prod_a", {"_id": "prod_b", "name": "B"}]))

        assert [item.id for item in state.items] == ["prod_a", "prod_b"]

    def test_unsupported_change(self):
        """Test an unsupported wishlist change raises TypeError."""
        with pytest.raises(TypeError):
            reconcile_wishlist(["prod_a"])


class TestPricing:
    """Test the effective unit price."""

    def test_strap_modifier_added(self):
        """Test the strap modifier is added to the base price."""
        product = ProductSnapshot(id="prod_a", price=1000.0)
        assert effective_unit_price(product, StrapVariant(material="Leather", price_modifier=75)) == 1075.0
        assert effective_unit_price(product, None) == 1000.0


class TestRequestSequencer:
    """Test request ticket ordering."""

    def test_older_ticket_is_stale_after_newer_applied(self):
        """Test an older ticket is stale after a newer one is applied."""
        sequencer = RequestSequencer()
        first, second = sequencer.next_ticket(), sequencer.next_ticket()

        sequencer.mark_applied(second)

        assert sequencer.is_stale(first)
        assert not sequencer.is_stale(second)
        assert sequencer.last_applied == second

    def test_applying_older_ticket_does_not_rewind(self):
        """Test applying an older ticket does not rewind."""
        sequencer = RequestSequencer()
        first, second = sequencer.next_ticket(), sequencer.next_ticket()
        sequencer.mark_applied(second)

        sequencer.mark_applied(first)

        assert sequencer.last_applied == second


class TestSessionMode:
    """Test session mode resolution."""

    def test_resolve(self):
        """Test the mode follows the signed-in flag."""
        assert resolve_mode(lambda: True) is SessionMode.AUTHENTICATED
        assert resolve_mode(lambda: False) is SessionMode.GUEST


class TestServerLineIds:
    """Test ids for server lines sent without one."""

    def test_missing_ids_filled_from_variant(self):
        """Test missing ids come from the variant and keep existing ids."""
        payload = CartPayload(
            items=[
                {"product": "prod_a", "quantity": 1, "price": 5.0, "color": {"name": "Gold"}},
                {"_id": "srv_1", "product": "prod_b", "quantity": 1, "price": 5.0}
            ],
            subtotal=10.0
        )

        state = reconcile_cart(payload)

        assert [item.id for item in state.items] == ["prod_a:Gold:", "srv_1"]
