"""Shared fixtures: settings, storage and server payload builders."""

from typing import Any, Dict, List, Optional
from unittest.mock import AsyncMock, MagicMock

import pytest

from crownhour.api.client import ApiError
from crownhour.core.config import Settings
from crownhour.core.storage import MemoryStorage


@pytest.fixture
def settings():
    return Settings(STORAGE_BACKEND="memory", API_BASE_URL="http://api.test/api")


@pytest.fixture
def storage():
    return MemoryStorage()


@pytest.fixture
def product():
    return {
        "_id": "prod_royal_oak",
        "name": "Royal Oak Chronograph",
        "price": 1000.0,
        "images": ["https://cdn.example.com/royal-oak.jpg"],
        "stock": 5
    }


@pytest.fixture
def other_product():
    return {
        "_id": "prod_nautilus",
        "name": "Nautilus 5711",
        "price": 2500.0,
        "images": [],
        "stock": 2
    }


def server_line(
    line_id: str,
    product_id: str = "prod_royal_oak",
    quantity: int = 1,
    price: float = 1000.0,
    strap: Optional[Dict[str, Any]] = None,
    color: Optional[Dict[str, Any]] = None
) -> Dict[str, Any]:
    return {
        "_id": line_id,
        "product": {"_id": product_id, "name": f"Watch {product_id}", "price": price},
        "quantity": quantity,
        "price": price,
        "color": color,
        "strap": strap
    }


def server_cart(lines: List[Dict[str, Any]], subtotal: float, count: Optional[int] = None) -> Dict[str, Any]:
    data = {"_id": "cart_1", "user": "user_1", "items": lines, "subtotal": subtotal}
    if count is not None:
        data["count"] = count
    return {"success": True, "data": data}


def api_error(message: str, status_code: int = 400) -> ApiError:
    return ApiError(message, status_code, {"success": False, "message": message})


def user_payload(mfa_enabled: bool = False, **overrides) -> Dict[str, Any]:
    user = {
        "_id": "user_1",
        "email": "client@example.com",
        "firstName": "Ada",
        "lastName": "Laurent",
        "role": {"name": "customer"},
        "mfaEnabled": mfa_enabled
    }
    user.update(overrides)
    return {"success": True, "data": {"user": user}}


@pytest.fixture
def make_server_line():
    return server_line


@pytest.fixture
def make_server_cart():
    return server_cart


@pytest.fixture
def make_api_error():
    return api_error


@pytest.fixture
def make_user_payload():
    return user_payload


@pytest.fixture
def cart_resource():
    resource = MagicMock()
    resource.get_cart = AsyncMock()
    resource.add_item = AsyncMock()
    resource.update_item = AsyncMock()
    resource.remove_item = AsyncMock()
    resource.clear_cart = AsyncMock()
    return resource


@pytest.fixture
def wishlist_resource():
    resource = MagicMock()
    resource.get_wishlist = AsyncMock()
    resource.toggle_item = AsyncMock()
    resource.check_status = AsyncMock()
    return resource


@pytest.fixture
def auth_resource():
    resource = MagicMock()
    for name in (
        "login", "logout", "logout_all", "me",
        "enable_mfa", "verify_mfa", "disable_mfa",
        "get_backup_codes", "regenerate_backup_codes"
    ):
        setattr(resource, name, AsyncMock())
    return resource
