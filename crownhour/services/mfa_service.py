"""
Two-factor authentication enrollment.

    Idle/Disabled --initiate_setup--> SetupInitiated --verify_setup--> Enabled
    SetupInitiated --cancel_setup--> Idle
    Enabled --disable(password)--> Disabled

Backup codes can be listed or regenerated (password required) while MFA is
enabled. A failed operation never moves the state; it sets `error` and
sends an error notification.
"""

import logging
from typing import Any, Optional, Tuple

from pydantic import ValidationError

from crownhour.api.client import ApiError, extract_error_message
from crownhour.api.resources.auth import AuthResource
from crownhour.core.config import Settings
from crownhour.models.mfa import (
    BackupCode,
    Disabled,
    Enabled,
    Idle,
    MFAState,
    MFAStatus,
    SetupInitiated,
)
from crownhour.schemas.auth import BackupCodesPayload, MFASetupPayload
from crownhour.schemas.cart import ApiEnvelope
from crownhour.services.auth_service import AuthStore
from crownhour.services.notifications import Notifier
from crownhour.utils.qr import build_otpauth_uri, generate_qr_data_uri
from crownhour.utils.validators import validate_password_present, validate_totp_code

logger = logging.getLogger(__name__)


class MFAEnrollment:
    """Drives the MFA setup, verification and disable flows for the signed-in user."""

    def __init__(self, resource: AuthResource, auth_store: AuthStore, notifier: Notifier, settings: Settings):
        self.resource = resource
        self.auth_store = auth_store
        self.notifier = notifier
        self.issuer = settings.MFA_ISSUER
        self.error: Optional[str] = None
        self.loading = False
        self.backup_codes: Tuple[BackupCode, ...] = ()
        self._state: MFAState = Enabled() if auth_store.mfa_enabled else Idle()

    @property
    def state(self) -> MFAState:
        return self._state

    @property
    def status(self) -> MFAStatus:
        return self._state.status

    def sync_from_profile(self) -> None:
        """Re-derive the state from the profile's mfaEnabled flag (not during setup)."""
        if not self.auth_store.is_logged_in:
            self._state = Idle()
            self.backup_codes = ()
            return

        if isinstance(self._state, SetupInitiated):
            return

        if self.auth_store.mfa_enabled:
            if not isinstance(self._state, Enabled):
                self._state = Enabled()
        elif isinstance(self._state, Enabled):
            self._state = Disabled()
            self.backup_codes = ()

    def _begin(self) -> bool:
        if self.loading:
            logger.debug("MFA operation already in progress, ignoring")
            return False
        self.loading = True
        self.error = None
        return True

    def _reject(self, message: str) -> bool:
        self.error = message
        self.notifier.error(message)
        return False

    def _render_qr(self, secret: str) -> str:
        account = self.auth_store.user.email if self.auth_store.user else "account"
        return generate_qr_data_uri(build_otpauth_uri(secret, account, self.issuer))

    @staticmethod
    def _unwrap(body: Any) -> Any:
        return ApiEnvelope.model_validate(body).data

    async def initiate_setup(self) -> bool:
        """Request a new secret, QR code and backup codes."""
        if isinstance(self._state, SetupInitiated):
            return self._reject("MFA setup is already in progress")
        if isinstance(self._state, Enabled):
            return self._reject("MFA is already enabled")
        if not self._begin():
            return False

        try:
            body = await self.resource.enable_mfa()
            payload = MFASetupPayload.model_validate(self._unwrap(body))
        except ApiError as e:
            logger.error(f"MFA setup failed: {e.message}")
            return self._reject(extract_error_message(e, "Failed to start MFA setup"))
        except ValidationError as e:
            logger.warning(f"Malformed MFA setup response ({e.error_count()} errors)")
            return self._reject("Failed to start MFA setup")
        finally:
            self.loading = False

        qr_code = payload.qr_code or self._render_qr(payload.secret)
        self._state = SetupInitiated(
            secret=payload.secret,
            qr_code=qr_code,
            backup_codes=tuple(payload.backup_codes)
        )
        self.notifier.success("MFA setup initialized. Please scan the QR code.")
        return True

    async def verify_setup(self, code: Optional[str]) -> bool:
        """Confirm the setup with a code from the authenticator app."""
        setup = self._state
        if not isinstance(setup, SetupInitiated):
            return self._reject("No MFA setup in progress")

        is_valid, cleaned, error = validate_totp_code(code)
        if not is_valid:
            return self._reject(error)

        if not self._begin():
            return False

        try:
            await self.resource.verify_mfa(cleaned)
            await self.auth_store.refresh_user()
        except ApiError as e:
            logger.info(f"MFA verification rejected: {e.message}")
            return self._reject(extract_error_message(e, "Invalid verification code"))
        except ValidationError:
            return self._reject("Invalid verification code")
        finally:
            self.loading = False

        # Backup codes stay visible one last time
        self._state = Enabled(backup_codes=setup.backup_codes)
        self.notifier.success("Two-Factor Authentication Enabled Successfully!")
        return True

    def cancel_setup(self) -> bool:
        """Abandon an unconfirmed setup. Local only; the server expires the secret."""
        if self.loading or not isinstance(self._state, SetupInitiated):
            return False
        self._state = Idle()
        self.error = None
        return True

    def acknowledge_backup_codes(self) -> None:
        """Drop the setup backup codes shown after verification."""
        if isinstance(self._state, Enabled) and self._state.backup_codes:
            self._state = Enabled()

    async def disable(self, password: Optional[str]) -> bool:
        """Turn MFA off. Requires the current password."""
        is_valid, password, error = validate_password_present(password)
        if not is_valid:
            return self._reject(error)

        if not isinstance(self._state, Enabled):
            return self._reject("MFA is not enabled")

        if not self._begin():
            return False

        try:
            await self.resource.disable_mfa(password)
            await self.auth_store.refresh_user()
        except ApiError as e:
            logger.info(f"MFA disable rejected: {e.message}")
            return self._reject(extract_error_message(e, "Failed to disable MFA"))
        finally:
            self.loading = False

        self._state = Disabled()
        self.backup_codes = ()
        self.notifier.success("MFA has been disabled.")
        return True

    async def view_backup_codes(self) -> bool:
        """Load the current backup codes with their used flags."""
        if not isinstance(self._state, Enabled):
            return self._reject("MFA is not enabled")

        if not self._begin():
            return False

        try:
            body = await self.resource.get_backup_codes()
            payload = BackupCodesPayload.model_validate(self._unwrap(body))
        except ApiError as e:
            logger.error(f"Loading backup codes failed: {e.message}")
            return self._reject(extract_error_message(e, "Failed to retrieve backup codes"))
        except ValidationError as e:
            logger.warning(f"Malformed backup codes response ({e.error_count()} errors)")
            return self._reject("Failed to retrieve backup codes")
        finally:
            self.loading = False

        self.backup_codes = tuple(payload.backup_codes)
        return True

    async def regenerate_backup_codes(self, password: Optional[str]) -> bool:
        """Replace all backup codes. Requires the current password."""
        is_valid, password, error = validate_password_present(password)
        if not is_valid:
            return self._reject(error)

        if not isinstance(self._state, Enabled):
            return self._reject("MFA is not enabled")

        if not self._begin():
            return False

        try:
            body = await self.resource.regenerate_backup_codes(password)
            payload = BackupCodesPayload.model_validate(self._unwrap(body))
        except ApiError as e:
            logger.error(f"Regenerating backup codes failed: {e.message}")
            return self._reject(extract_error_message(e, "Failed to regenerate backup codes"))
        except ValidationError as e:
            logger.warning(f"Malformed backup codes response ({e.error_count()} errors)")
            return self._reject("Failed to regenerate backup codes")
        finally:
            self.loading = False

        # Old codes are void server-side, including any left from setup
        self._state = Enabled()
        self.backup_codes = tuple(BackupCode(code=code.code, used=False) for code in payload.backup_codes)
        self.notifier.success("Backup codes regenerated successfully")
        return True

    def hide_backup_codes(self) -> None:
        self.backup_codes = ()
