"""
Client-side input validation.

Validation happens before any network call; every validator returns a
(is_valid, cleaned_value, error_message) tuple instead of raising.
"""

import re
from typing import Any, Optional, Tuple

TOTP_CODE_LENGTH = 6


def sanitize_totp_code(code: Optional[str], length: int = TOTP_CODE_LENGTH) -> str:
    """
    Keep digits only and truncate to the code length.

    "123 456" -> "123456", "12a34567" -> "123456"
    """
    if not code:
        return ""
    return re.sub(r"\D", "", str(code))[:length]


def validate_totp_code(code: Optional[str], length: int = TOTP_CODE_LENGTH) -> Tuple[bool, Optional[str], Optional[str]]:
    """
    Validate an authenticator code after sanitizing it.

    Returns:
        Tuple of (is_valid, cleaned_code, error_message)
    """
    cleaned = sanitize_totp_code(code, length)

    if not cleaned:
        return False, None, "Verification code is required"

    if len(cleaned) != length:
        return False, None, f"Verification code must be {length} digits"

    return True, cleaned, None


def validate_password_present(password: Optional[str]) -> Tuple[bool, Optional[str], Optional[str]]:
    """
    Check that a password was re-entered for a sensitive action.

    The password is passed through unchanged (no trimming).
    """
    if password is None or password == "" or not str(password).strip():
        return False, None, "Current password is required"
    return True, password, None


def validate_quantity(quantity: Any) -> Tuple[bool, Optional[int], Optional[str]]:
    """Cart quantities are integers of at least 1."""
    if isinstance(quantity, bool) or not isinstance(quantity, int):
        return False, None, "Quantity must be a whole number"

    if quantity < 1:
        return False, None, "Quantity must be at least 1"

    return True, quantity, None
