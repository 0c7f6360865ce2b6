import secrets
from datetime import datetime


def generate_temp_id() -> str:
    """Identifier for a guest cart line that has never been sent to the server."""
    return f"temp_{int(datetime.utcnow().timestamp() * 1000)}_{secrets.token_hex(4)}"


def is_temp_id(line_id: str) -> bool:
    return line_id.startswith("temp_")


def get_current_timestamp() -> datetime:
    """Get current UTC timestamp."""
    return datetime.utcnow()
