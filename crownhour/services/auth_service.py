import logging
from typing import Any, Dict, Optional, Union

from pydantic import BaseModel, ValidationError

from crownhour.api.client import ApiError, extract_error_message
from crownhour.api.resources.auth import AuthResource
from crownhour.core.config import Settings
from crownhour.core.storage import StateStorage
from crownhour.models.user import UserProfile
from crownhour.schemas.auth import LoginResponse, UserPayload
from crownhour.schemas.cart import ApiEnvelope

logger = logging.getLogger(__name__)


class LoginResult(BaseModel):
    """Outcome of a login attempt."""
    success: bool
    mfa_required: bool = False
    message: Optional[str] = None
    user: Optional[UserProfile] = None


class AuthStore:
    """
    Authentication state.

    The JWT lives in HTTP-only cookies managed by the API client's session;
    this store only tracks whether the user is signed in, the profile and
    the role. Logging out always clears local state, whatever the server says.
    """

    def __init__(self, resource: AuthResource, storage: StateStorage, settings: Settings):
        self.resource = resource
        self.storage = storage
        self.storage_key = settings.AUTH_STORAGE_KEY
        self.is_logged_in = False
        self.user: Optional[UserProfile] = None
        self.role: Optional[str] = None
        self.error: Optional[str] = None
        self.is_loading = False

    def auth_status(self) -> bool:
        """Accessor handed to the cart and wishlist stores."""
        return self.is_logged_in

    @property
    def mfa_enabled(self) -> bool:
        return bool(self.user and self.user.mfa_enabled)

    async def restore(self) -> None:
        try:
            stored = await self.storage.get(self.storage_key)
        except Exception as e:
            logger.warning(f"Could not read persisted session: {str(e)}")
            return

        state = stored.get("state") if isinstance(stored, dict) else None
        if not isinstance(state, dict) or not state.get("isLoggedIn") or not state.get("user"):
            return

        try:
            self.user = UserProfile.model_validate(state["user"])
        except ValidationError as e:
            logger.warning(f"Ignoring invalid persisted user ({e.error_count()} errors)")
            return

        self.is_logged_in = True
        self.role = state.get("role") or self.user.role

    async def _persist(self) -> None:
        state = {
            "isLoggedIn": self.is_logged_in,
            "user": self.user.model_dump(mode="json", by_alias=True) if self.user else None,
            "role": self.role
        }
        try:
            await self.storage.set(self.storage_key, {"state": state, "version": 0})
        except Exception as e:
            logger.warning(f"Could not persist session: {str(e)}")

    async def set_auth(self, user: Union[UserProfile, Dict[str, Any]]) -> None:
        """Mark the user as signed in with the given profile."""
        self.user = UserProfile.model_validate(user)
        self.role = self.user.role
        self.is_logged_in = True
        self.error = None
        await self._persist()

    async def _clear(self) -> None:
        self.is_logged_in = False
        self.user = None
        self.role = None
        self.error = None
        await self._persist()

    async def _fetch_profile(self) -> UserProfile:
        body = await self.resource.me()
        envelope = ApiEnvelope.model_validate(body)
        return UserPayload.model_validate(envelope.data).user

    async def check_auth(self) -> bool:
        """
        Verify the session on startup.

        A failure means "not signed in"; it is not reported as an error.
        """
        self.is_loading = True
        self.error = None
        try:
            user = await self._fetch_profile()
        except (ApiError, ValidationError) as e:
            logger.info(f"Session check failed, treating as signed out: {str(e)}")
            await self._clear()
            return False
        finally:
            self.is_loading = False

        await self.set_auth(user)
        return True

    async def refresh_user(self) -> bool:
        """Reload the profile without touching the signed-in flag or loading state."""
        try:
            user = await self._fetch_profile()
        except (ApiError, ValidationError) as e:
            logger.error(f"Failed to refresh user: {str(e)}")
            return False

        self.user = user
        self.role = user.role
        await self._persist()
        return True

    async def login(self, email: str, password: str, mfa_token: Optional[str] = None) -> LoginResult:
        """
        Sign in. When the account has MFA enabled and no token was given,
        the result has mfa_required set and the caller should retry with
        the TOTP (or a backup code) as mfa_token.
        """
        self.is_loading = True
        self.error = None
        try:
            body = await self.resource.login(email, password, mfa_token)
        except ValidationError:
            self.error = "Please enter a valid email address"
            return LoginResult(success=False, message=self.error)
        except ApiError as e:
            self.error = extract_error_message(e, "Invalid email or password")
            return LoginResult(success=False, message=self.error)
        finally:
            self.is_loading = False

        try:
            response = LoginResponse.model_validate(body)
        except ValidationError as e:
            logger.warning(f"Malformed login response ({e.error_count()} errors)")
            self.error = "Unexpected response from the server"
            return LoginResult(success=False, message=self.error)

        if response.mfa_required:
            return LoginResult(success=False, mfa_required=True, message=response.message)

        if not response.data:
            self.error = response.message or "Login failed"
            return LoginResult(success=False, message=self.error)

        await self.set_auth(response.data.user)
        logger.info("Login successful")
        return LoginResult(success=True, message=response.message, user=response.data.user)

    async def logout(self) -> None:
        try:
            await self.resource.logout()
        except ApiError as e:
            logger.error(f"Logout API call failed: {e.message}")
        await self._clear()

    async def logout_all(self) -> None:
        """Revoke every session of the user, then sign out locally."""
        try:
            await self.resource.logout_all()
        except ApiError as e:
            logger.error(f"Logout all API call failed: {e.message}")
        await self._clear()
