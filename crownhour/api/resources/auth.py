from typing import Any, Optional

from crownhour.api.client import ApiClient
from crownhour.schemas.auth import LoginRequest, PasswordConfirmationRequest, VerifyMFARequest


class AuthResource:
    """
    Authentication and MFA endpoints.

    Session tokens are HTTP-only cookies held by the client's session, so
    none of these calls handle tokens directly.
    """

    def __init__(self, client: ApiClient):
        self.client = client

    async def login(self, email: str, password: str, mfa_token: Optional[str] = None) -> Any:
        request = LoginRequest(email=email, password=password, mfa_token=mfa_token)
        return await self.client.post("/auth/login", request.model_dump(by_alias=True, exclude_none=True))

    async def logout(self) -> Any:
        return await self.client.post("/auth/logout")

    async def logout_all(self) -> Any:
        """Revoke every active session of the user."""
        return await self.client.post("/auth/logout-all")

    async def me(self) -> Any:
        return await self.client.get("/auth/me")

    # MFA

    async def enable_mfa(self) -> Any:
        """Start enrollment; returns secret, QR code and backup codes."""
        return await self.client.post("/auth/mfa/enable")

    async def verify_mfa(self, token: str) -> Any:
        request = VerifyMFARequest(token=token)
        return await self.client.post("/auth/mfa/verify", request.model_dump())

    async def disable_mfa(self, password: str) -> Any:
        request = PasswordConfirmationRequest(password=password)
        return await self.client.post("/auth/mfa/disable", request.model_dump())

    async def get_backup_codes(self) -> Any:
        return await self.client.get("/auth/mfa/backup-codes")

    async def regenerate_backup_codes(self, password: str) -> Any:
        request = PasswordConfirmationRequest(password=password)
        return await self.client.post("/auth/mfa/regenerate-backup-codes", request.model_dump())
