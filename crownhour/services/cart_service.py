import logging
from typing import Any, Dict, List, Optional, Tuple, Union

from pydantic import ValidationError

from crownhour.api.client import ApiError, extract_error_message
from crownhour.api.resources.cart import CartResource
from crownhour.core.config import Settings
from crownhour.core.storage import StateStorage
from crownhour.models.cart import (
    CartLine,
    CartState,
    ColorVariant,
    ProductSnapshot,
    StrapVariant,
    effective_unit_price,
    variant_key,
)
from crownhour.schemas.cart import ApiEnvelope, CartPayload
from crownhour.services.reconcile import LocalCartDelta, reconcile_cart
from crownhour.services.sequencing import RequestSequencer
from crownhour.services.session_mode import AuthStatus, SessionMode, resolve_mode
from crownhour.utils.helpers import generate_temp_id
from crownhour.utils.validators import validate_quantity

logger = logging.getLogger(__name__)

MALFORMED_CART_MESSAGE = "Received an invalid cart from the server"


class CartStore:
    """
    Cart state for both guests and signed-in users.

    Guests keep their cart locally (persisted to storage after every change).
    Signed-in users mirror the server cart: every mutation replaces the local
    items and totals with the cart the server sends back.

    Operations never raise on transport or payload problems; they return
    False and leave a message in `error`.
    """

    def __init__(
        self,
        resource: CartResource,
        storage: StateStorage,
        is_logged_in: AuthStatus,
        settings: Settings
    ):
        self.resource = resource
        self.storage = storage
        self.is_logged_in = is_logged_in
        self.storage_key = settings.CART_STORAGE_KEY
        self.error: Optional[str] = None
        self._state = CartState()
        self._sequencer = RequestSequencer()
        self._fetch_in_flight = False
        self._pending = 0

    # State accessors

    @property
    def state(self) -> CartState:
        return self._state

    @property
    def items(self) -> List[CartLine]:
        return list(self._state.items)

    @property
    def count(self) -> int:
        return self._state.count

    @property
    def subtotal(self) -> float:
        return self._state.subtotal

    @property
    def is_loading(self) -> bool:
        return self._pending > 0

    def get_line(self, line_id: str) -> Optional[CartLine]:
        for line in self._state.items:
            if line.id == line_id:
                return line
        return None

    # Persistence

    async def restore(self) -> None:
        """Load the persisted projection, e.g. a guest cart from a previous run."""
        try:
            stored = await self.storage.get(self.storage_key)
        except Exception as e:
            logger.warning(f"Could not read persisted cart: {str(e)}")
            return

        if not isinstance(stored, dict):
            if stored:
                logger.warning(f"Ignoring persisted cart of type {type(stored).__name__}")
            return

        try:
            self._state = CartState.model_validate(stored.get("state", {}))
        except ValidationError as e:
            logger.warning(f"Ignoring invalid persisted cart ({e.error_count()} errors)")

    async def _persist(self) -> None:
        projection = self._state.model_dump(mode="json", by_alias=True)
        try:
            await self.storage.set(self.storage_key, {"state": projection, "version": 0})
        except Exception as e:
            logger.warning(f"Could not persist cart: {str(e)}")

    # Transitions

    async def _commit(self, state: CartState, ticket: int) -> bool:
        if self._sequencer.is_stale(ticket):
            logger.info(f"Discarding stale cart snapshot (ticket {ticket} < {self._sequencer.last_applied})")
            return False
        self._sequencer.mark_applied(ticket)
        self._state = state
        await self._persist()
        return True

    def _fail(self, ticket: int, message: str) -> None:
        if not self._sequencer.is_stale(ticket):
            self.error = message

    async def _apply_server_cart(self, body: Any, ticket: int, action: str) -> bool:
        try:
            envelope = ApiEnvelope.model_validate(body)
            payload = CartPayload.model_validate(envelope.data)
        except ValidationError as e:
            logger.warning(f"Malformed cart payload after {action} ({e.error_count()} errors); keeping previous state")
            self._fail(ticket, MALFORMED_CART_MESSAGE)
            return False

        await self._commit(reconcile_cart(payload), ticket)
        return True

    async def _call_server(self, ticket: int, action: str, fallback: str, call) -> Tuple[bool, Any]:
        """Run one server call; returns (ok, body), recording the error on failure."""
        self._pending += 1
        try:
            return True, await call()
        except ApiError as e:
            logger.error(f"Cart {action} failed: {e.message}")
            self._fail(ticket, extract_error_message(e, fallback))
            return False, None
        finally:
            self._pending -= 1

    # Operations

    async def fetch(self) -> bool:
        """
        Refresh the cart from the server.

        Guests: no-op (local state is authoritative). Signed-in users: a call
        made while another fetch is outstanding is dropped.
        """
        if resolve_mode(self.is_logged_in) is SessionMode.GUEST:
            return True

        if self._fetch_in_flight:
            logger.debug("Cart fetch already in flight, skipping")
            return False

        self._fetch_in_flight = True
        self.error = None
        ticket = self._sequencer.next_ticket()
        try:
            ok, body = await self._call_server(ticket, "fetch", "Failed to retrieve cart", self.resource.get_cart)
        finally:
            self._fetch_in_flight = False

        if not ok:
            return False
        return await self._apply_server_cart(body, ticket, "fetch")

    async def add_to_cart(
        self,
        product: Union[ProductSnapshot, Dict[str, Any]],
        quantity: int = 1,
        color: Union[ColorVariant, Dict[str, Any], None] = None,
        strap: Union[StrapVariant, Dict[str, Any], None] = None
    ) -> bool:
        """Add a product/variant combination, merging with an identical line."""
        product = ProductSnapshot.model_validate(product)
        color = ColorVariant.model_validate(color) if color is not None else None
        strap = StrapVariant.model_validate(strap) if strap is not None else None

        is_valid, quantity, error = validate_quantity(quantity)
        if not is_valid:
            self.error = error
            return False

        if resolve_mode(self.is_logged_in) is SessionMode.AUTHENTICATED:
            return await self._authenticated_add(product, quantity, color, strap)
        return await self._guest_add(product, quantity, color, strap)

    async def _authenticated_add(self, product, quantity, color, strap) -> bool:
        self.error = None
        ticket = self._sequencer.next_ticket()

        ok, body = await self._call_server(
            ticket, "add", "Failed to add item to cart",
            lambda: self.resource.add_item(product.id, quantity, color, strap)
        )
        if not ok:
            return False
        return await self._apply_server_cart(body, ticket, "add")

    async def _guest_add(self, product, quantity, color, strap) -> bool:
        self.error = None
        ticket = self._sequencer.next_ticket()

        key = variant_key(product.id, color, strap)
        price = effective_unit_price(product, strap)
        items = list(self._state.items)

        for index, line in enumerate(items):
            if line.variant_key() == key:
                items[index] = line.model_copy(update={
                    "quantity": line.quantity + quantity,
                    "price": price
                })
                break
        else:
            items.append(CartLine(
                id=generate_temp_id(),
                product=product,
                quantity=quantity,
                price=price,
                color=color,
                strap=strap
            ))

        await self._commit(reconcile_cart(LocalCartDelta(items=items)), ticket)
        return True

    async def remove_from_cart(self, line_id: str) -> bool:
        if resolve_mode(self.is_logged_in) is SessionMode.AUTHENTICATED:
            return await self._authenticated_remove(line_id)
        return await self._guest_remove(line_id)

    async def _authenticated_remove(self, line_id: str) -> bool:
        self.error = None
        ticket = self._sequencer.next_ticket()

        ok, body = await self._call_server(
            ticket, "remove", "Failed to remove item",
            lambda: self.resource.remove_item(line_id)
        )
        if not ok:
            return False
        return await self._apply_server_cart(body, ticket, "remove")

    async def _guest_remove(self, line_id: str) -> bool:
        self.error = None
        ticket = self._sequencer.next_ticket()
        items = [line for line in self._state.items if line.id != line_id]
        if len(items) == len(self._state.items):
            return False

        await self._commit(reconcile_cart(LocalCartDelta(items=items)), ticket)
        return True

    async def update_quantity(self, line_id: str, quantity: int) -> bool:
        is_valid, quantity, error = validate_quantity(quantity)
        if not is_valid:
            self.error = error
            return False

        if resolve_mode(self.is_logged_in) is SessionMode.AUTHENTICATED:
            return await self._authenticated_update(line_id, quantity)
        return await self._guest_update(line_id, quantity)

    async def _authenticated_update(self, line_id: str, quantity: int) -> bool:
        self.error = None
        ticket = self._sequencer.next_ticket()

        ok, body = await self._call_server(
            ticket, "update", "Failed to update cart",
            lambda: self.resource.update_item(line_id, quantity)
        )
        if not ok:
            return False
        return await self._apply_server_cart(body, ticket, "update")

    async def _guest_update(self, line_id: str, quantity: int) -> bool:
        self.error = None
        ticket = self._sequencer.next_ticket()
        items = list(self._state.items)
        for index, line in enumerate(items):
            if line.id == line_id:
                items[index] = line.model_copy(update={"quantity": quantity})
                break
        else:
            return False

        await self._commit(reconcile_cart(LocalCartDelta(items=items)), ticket)
        return True

    async def clear_cart(self) -> bool:
        """
        Empty the cart.

        The local cart is reset even if the server call fails; the return
        value tells whether the server cart was cleared too.
        """
        server_cleared = True

        if resolve_mode(self.is_logged_in) is SessionMode.AUTHENTICATED:
            self.error = None
            self._pending += 1
            try:
                await self.resource.clear_cart()
            except ApiError as e:
                logger.error(f"Cart clear failed: {e.message}")
                self.error = extract_error_message(e, "Failed to clear cart")
                server_cleared = False
            finally:
                self._pending -= 1

        # Ticket taken after the server call so the reset is never stale
        ticket = self._sequencer.next_ticket()
        await self._commit(CartState(), ticket)
        return server_cleared
