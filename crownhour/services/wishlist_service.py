import logging
from typing import Any, Dict, List, Optional, Tuple, Union

from pydantic import ValidationError

from crownhour.api.client import ApiError, extract_error_message
from crownhour.api.resources.wishlist import WishlistResource
from crownhour.core.config import Settings
from crownhour.core.storage import StateStorage
from crownhour.models.cart import ProductSnapshot
from crownhour.models.wishlist import WishlistState
from crownhour.schemas.cart import ApiEnvelope
from crownhour.schemas.wishlist import WishlistPayload, WishlistStatusPayload
from crownhour.services.reconcile import LocalWishlistDelta, reconcile_wishlist
from crownhour.services.sequencing import RequestSequencer
from crownhour.services.session_mode import AuthStatus, SessionMode, resolve_mode

logger = logging.getLogger(__name__)

MALFORMED_WISHLIST_MESSAGE = "Received an invalid wishlist from the server"


class WishlistStore:
    """Saved products; local for guests, mirrored from the server when signed in."""

    def __init__(
        self,
        resource: WishlistResource,
        storage: StateStorage,
        is_logged_in: AuthStatus,
        settings: Settings
    ):
        self.resource = resource
        self.storage = storage
        self.is_logged_in = is_logged_in
        self.storage_key = settings.WISHLIST_STORAGE_KEY
        self.error: Optional[str] = None
        self._state = WishlistState()
        self._sequencer = RequestSequencer()
        self._pending = 0

    @property
    def state(self) -> WishlistState:
        return self._state

    @property
    def items(self) -> List[ProductSnapshot]:
        return list(self._state.items)

    @property
    def is_loading(self) -> bool:
        return self._pending > 0

    def is_in_wishlist(self, product_id: str) -> bool:
        return self._state.contains(product_id)

    async def restore(self) -> None:
        try:
            stored = await self.storage.get(self.storage_key)
        except Exception as e:
            logger.warning(f"Could not read persisted wishlist: {str(e)}")
            return

        if not isinstance(stored, dict):
            if stored:
                logger.warning(f"Ignoring persisted wishlist of type {type(stored).__name__}")
            return

        try:
            self._state = WishlistState.model_validate(stored.get("state", {}))
        except ValidationError as e:
            logger.warning(f"Ignoring invalid persisted wishlist ({e.error_count()} errors)")

    async def _persist(self) -> None:
        projection = self._state.model_dump(mode="json", by_alias=True)
        try:
            await self.storage.set(self.storage_key, {"state": projection, "version": 0})
        except Exception as e:
            logger.warning(f"Could not persist wishlist: {str(e)}")

    async def _commit(self, state: WishlistState, ticket: int) -> bool:
        if self._sequencer.is_stale(ticket):
            logger.info(f"Discarding stale wishlist snapshot (ticket {ticket})")
            return False
        self._sequencer.mark_applied(ticket)
        self._state = state
        await self._persist()
        return True

    def _fail(self, ticket: int, message: str) -> None:
        if not self._sequencer.is_stale(ticket):
            self.error = message

    async def _call_server(self, ticket: int, action: str, fallback: str, call) -> Tuple[bool, Any]:
        self._pending += 1
        try:
            return True, await call()
        except ApiError as e:
            logger.error(f"Wishlist {action} failed: {e.message}")
            self._fail(ticket, extract_error_message(e, fallback))
            return False, None
        finally:
            self._pending -= 1

    async def _apply_server_wishlist(self, body: Any, ticket: int, action: str) -> bool:
        try:
            envelope = ApiEnvelope.model_validate(body)
            payload = WishlistPayload.model_validate(envelope.data)
        except ValidationError as e:
            logger.warning(f"Malformed wishlist payload after {action} ({e.error_count()} errors); keeping previous state")
            self._fail(ticket, MALFORMED_WISHLIST_MESSAGE)
            return False

        await self._commit(reconcile_wishlist(payload), ticket)
        return True

    async def fetch(self) -> bool:
        if resolve_mode(self.is_logged_in) is SessionMode.GUEST:
            return True

        self.error = None
        ticket = self._sequencer.next_ticket()
        ok, body = await self._call_server(ticket, "fetch", "Failed to retrieve wishlist", self.resource.get_wishlist)
        if not ok:
            return False
        return await self._apply_server_wishlist(body, ticket, "fetch")

    async def toggle(self, product: Union[ProductSnapshot, Dict[str, Any]]) -> bool:
        """Add the product if absent, remove it if present."""
        product = ProductSnapshot.model_validate(product)

        if resolve_mode(self.is_logged_in) is SessionMode.AUTHENTICATED:
            return await self._authenticated_toggle(product)
        return await self._guest_toggle(product)

    async def _authenticated_toggle(self, product: ProductSnapshot) -> bool:
        self.error = None
        ticket = self._sequencer.next_ticket()
        ok, body = await self._call_server(
            ticket, "toggle", "Failed to update wishlist",
            lambda: self.resource.toggle_item(product.id)
        )
        if not ok:
            return False
        return await self._apply_server_wishlist(body, ticket, "toggle")

    async def _guest_toggle(self, product: ProductSnapshot) -> bool:
        self.error = None
        ticket = self._sequencer.next_ticket()

        items = [item for item in self._state.items if item.id != product.id]
        if len(items) == len(self._state.items):
            items.append(product)

        await self._commit(reconcile_wishlist(LocalWishlistDelta(items=items)), ticket)
        return True

    async def check_status(self, product_id: str) -> Optional[bool]:
        """
        Ask the server whether a product is saved.

        Guests get the local answer. Returns None if the server cannot answer.
        """
        if resolve_mode(self.is_logged_in) is SessionMode.GUEST:
            return self.is_in_wishlist(product_id)

        try:
            body = await self.resource.check_status(product_id)
        except ApiError as e:
            logger.error(f"Wishlist status check failed: {e.message}")
            return None

        try:
            return WishlistStatusPayload.model_validate(body).is_in_wishlist
        except ValidationError:
            logger.warning("Malformed wishlist status payload")
            return None
