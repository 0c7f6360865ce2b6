from typing import Any, List, Optional
from pydantic import BaseModel, EmailStr, Field, field_validator

from crownhour.models.mfa import BackupCode
from crownhour.models.user import UserProfile


class LoginRequest(BaseModel):
    """Login request schema."""
    email: EmailStr
    password: str
    mfa_token: Optional[str] = Field(None, alias="mfaToken")

    class Config:
        populate_by_name = True
        json_schema_extra = {
            "example": {
                "email": "user@example.com",
                "password": "strongpassword123"
            }
        }


class LoginData(BaseModel):
    user: UserProfile

    class Config:
        extra = "allow"


class LoginResponse(BaseModel):
    """Login response; `mfa_required` asks for the second factor."""
    success: bool = True
    mfa_required: bool = Field(False, alias="mfaRequired")
    message: Optional[str] = None
    data: Optional[LoginData] = None

    class Config:
        populate_by_name = True
        extra = "allow"


class UserPayload(BaseModel):
    """Data of /auth/me."""
    user: UserProfile


class VerifyMFARequest(BaseModel):
    token: str = Field(min_length=6, max_length=6, pattern=r"^\d{6}$")


class PasswordConfirmationRequest(BaseModel):
    """Password re-entry for disable/regenerate."""
    password: str = Field(min_length=1)


class MFASetupPayload(BaseModel):
    """Data returned when MFA enrollment starts."""
    secret: str
    qr_code: Optional[str] = Field(None, alias="qrCode")
    backup_codes: List[str] = Field(default_factory=list, alias="backupCodes")

    class Config:
        populate_by_name = True
        json_schema_extra = {
            "example": {
                "secret": "JBSWY3DPEHPK3PXP",
                "qrCode": "data:image/png;base64,iVBORw0KGgo...",
                "backupCodes": ["A1B2C3D4", "E5F6A7B8"]
            }
        }


class BackupCodesPayload(BaseModel):
    """Backup codes as listed (with used flags) or freshly regenerated (plain strings)."""
    backup_codes: List[BackupCode] = Field(alias="backupCodes")

    class Config:
        populate_by_name = True

    @field_validator("backup_codes", mode="before")
    @classmethod
    def widen_plain_codes(cls, value: Any) -> Any:
        if isinstance(value, list):
            return [{"code": item, "used": False} if isinstance(item, str) else item for item in value]
        return value
