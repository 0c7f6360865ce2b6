"""
MFA enrollment states.

Each state is its own frozen model. The shared secret and QR payload are
fields of SetupInitiated only, so they cannot be read once the enrollment
has moved to any other state.
"""

from enum import Enum
from typing import Tuple, Union
from pydantic import BaseModel


class MFAStatus(str, Enum):
    """MFA enrollment state tags."""
    IDLE = "idle"
    SETUP_INITIATED = "setup_initiated"
    ENABLED = "enabled"
    DISABLED = "disabled"


class Idle(BaseModel):
    class Config:
        frozen = True

    @property
    def status(self) -> MFAStatus:
        return MFAStatus.IDLE


class SetupInitiated(BaseModel):
    """Enrollment started; the user still has to confirm a TOTP code."""
    class Config:
        frozen = True

    secret: str
    qr_code: str
    backup_codes: Tuple[str, ...] = ()

    @property
    def status(self) -> MFAStatus:
        return MFAStatus.SETUP_INITIATED


class Enabled(BaseModel):
    """
    MFA is active.

    Right after verification the setup's backup codes are carried here for
    one last display; they are dropped once acknowledged.
    """
    class Config:
        frozen = True

    backup_codes: Tuple[str, ...] = ()

    @property
    def status(self) -> MFAStatus:
        return MFAStatus.ENABLED


class Disabled(BaseModel):
    class Config:
        frozen = True

    @property
    def status(self) -> MFAStatus:
        return MFAStatus.DISABLED


MFAState = Union[Idle, SetupInitiated, Enabled, Disabled]


class BackupCode(BaseModel):
    """Single-use recovery code. The code itself is opaque."""
    class Config:
        frozen = True

    code: str
    used: bool = False
