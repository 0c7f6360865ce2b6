from enum import Enum
from typing import Callable


class SessionMode(str, Enum):
    """Which side is the source of truth for cart and wishlist state."""
    GUEST = "guest"  # local storage is authoritative
    AUTHENTICATED = "authenticated"  # server is authoritative


AuthStatus = Callable[[], bool]


def resolve_mode(is_logged_in: AuthStatus) -> SessionMode:
    """Read the auth flag once and map it to a mode."""
    return SessionMode.AUTHENTICATED if is_logged_in() else SessionMode.GUEST
