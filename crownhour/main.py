import logging
from typing import Optional

from crownhour.api.client import ApiClient
from crownhour.api.resources.auth import AuthResource
from crownhour.api.resources.cart import CartResource
from crownhour.api.resources.wishlist import WishlistResource
from crownhour.core.config import Settings, settings as default_settings
from crownhour.core.database import close_mongo_connection, connect_to_mongo
from crownhour.core.storage import StateStorage, get_storage
from crownhour.services.auth_service import AuthStore
from crownhour.services.cart_service import CartStore
from crownhour.services.mfa_service import MFAEnrollment
from crownhour.services.notifications import Notifier
from crownhour.services.wishlist_service import WishlistStore

logger = logging.getLogger(__name__)


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )


class Storefront:
    """
    Wires the client together: one API session, one storage backend and the
    stores that share them. Stores read the auth flag from AuthStore at call
    time, so signing in or out switches them between guest and server mode.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        client: Optional[ApiClient] = None,
        storage: Optional[StateStorage] = None
    ):
        self.settings = settings or default_settings
        self.client = client or ApiClient(self.settings)
        self._storage = storage
        self.notifier = Notifier()

        self.auth_resource = AuthResource(self.client)
        self.cart_resource = CartResource(self.client)
        self.wishlist_resource = WishlistResource(self.client)

        self.auth: Optional[AuthStore] = None
        self.cart: Optional[CartStore] = None
        self.wishlist: Optional[WishlistStore] = None
        self.mfa: Optional[MFAEnrollment] = None

        if storage is not None:
            self._build_stores(storage)

    def _build_stores(self, storage: StateStorage) -> None:
        self._storage = storage
        self.auth = AuthStore(self.auth_resource, storage, self.settings)
        self.cart = CartStore(self.cart_resource, storage, self.auth.auth_status, self.settings)
        self.wishlist = WishlistStore(self.wishlist_resource, storage, self.auth.auth_status, self.settings)
        self.mfa = MFAEnrollment(self.auth_resource, self.auth, self.notifier, self.settings)

    async def startup(self) -> None:
        """Restore persisted state, verify the session and sync server-backed stores."""
        logger.info(f"Starting {self.settings.PROJECT_NAME} client...")

        if self._storage is None:
            db = None
            if self.settings.STORAGE_BACKEND.lower() == "mongo":
                db = await connect_to_mongo(self.settings.MONGODB_URI, self.settings.MONGODB_DB_NAME)
            self._build_stores(get_storage(self.settings, db))

        await self.auth.restore()
        await self.cart.restore()
        await self.wishlist.restore()

        await self.auth.check_auth()
        self.mfa.sync_from_profile()

        if self.auth.is_logged_in:
            # Server state supersedes whatever was cached locally
            await self.cart.fetch()
            await self.wishlist.fetch()

        logger.info(f"{self.settings.PROJECT_NAME} client started (signed in: {self.auth.is_logged_in})")

    async def login(self, email: str, password: str, mfa_token: Optional[str] = None):
        """Sign in and switch cart and wishlist to the server copies."""
        result = await self.auth.login(email, password, mfa_token)
        if result.success:
            self.mfa.sync_from_profile()
            await self.cart.fetch()
            await self.wishlist.fetch()
        return result

    async def logout(self, everywhere: bool = False) -> None:
        if everywhere:
            await self.auth.logout_all()
        else:
            await self.auth.logout()
        self.mfa.sync_from_profile()

    async def shutdown(self) -> None:
        logger.info(f"Shutting down {self.settings.PROJECT_NAME} client...")
        self.client.close()
        if self.settings.STORAGE_BACKEND.lower() == "mongo":
            await close_mongo_connection()
        logger.info("Client shut down")


async def create_storefront(settings: Optional[Settings] = None) -> Storefront:
    """Build and start a storefront client from settings."""
    settings = settings or default_settings
    configure_logging(settings.LOG_LEVEL)
    storefront = Storefront(settings)
    await storefront.startup()
    return storefront
