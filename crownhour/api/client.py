"""
HTTP transport for the Crown Hour storefront API.

Authentication lives in HTTP-only cookies set by the server, so the client
only has to keep its requests.Session alive. Mutating requests carry a CSRF
token (double-submit cookie pattern) fetched from the API on first use.
"""

import asyncio
import logging
import threading
from typing import Any, Dict, Optional

import requests

from crownhour.core.config import Settings

logger = logging.getLogger(__name__)

MUTATING_METHODS = {"POST", "PUT", "PATCH", "DELETE"}
DEFAULT_ERROR_MESSAGE = "Something went wrong. Please try again."


class ApiError(Exception):
    """Raised for any failed call to the storefront API."""

    def __init__(self, message: str, status_code: Optional[int] = None, payload: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.payload = payload


def extract_error_message(error: Exception, fallback: str = DEFAULT_ERROR_MESSAGE) -> str:
    """
    Pick a human-readable message out of a transport error.

    Prefers the server's JSON `message` field, then the error's own message.
    """
    if isinstance(error, ApiError):
        payload = error.payload
        if isinstance(payload, dict) and isinstance(payload.get("message"), str) and payload["message"]:
            return payload["message"]
        if error.status_code is None and error.message:
            return error.message
        return fallback
    return fallback


class ApiClient:
    """Storefront API client with cookie session and CSRF handling."""

    def __init__(self, settings: Settings, session: Optional[requests.Session] = None):
        self.settings = settings
        self.base_url = settings.API_BASE_URL.rstrip("/")
        self.timeout = settings.REQUEST_TIMEOUT_SECONDS
        self.session = session or requests.Session()
        self._csrf_token: Optional[str] = None
        # request_sync runs on worker threads
        self._csrf_lock = threading.Lock()

    @property
    def csrf_token(self) -> Optional[str]:
        return self._csrf_token

    def _url(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    @staticmethod
    def _parse_body(response: requests.Response) -> Any:
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            return None

    def _send(self, method: str, path: str, json_body: Optional[Dict[str, Any]] = None) -> requests.Response:
        headers = {"Accept": "application/json"}
        if method in MUTATING_METHODS and self._csrf_token:
            headers[self.settings.CSRF_HEADER_NAME] = self._csrf_token

        try:
            return self.session.request(
                method,
                self._url(path),
                json=json_body,
                headers=headers,
                timeout=self.timeout
            )
        except requests.exceptions.RequestException as e:
            logger.error(f"{method} {path} failed: {str(e)}")
            raise ApiError(f"Network error: {str(e)}")

    def _refresh_csrf_token(self) -> str:
        response = self._send("GET", self.settings.CSRF_TOKEN_PATH)
        body = self._parse_body(response)
        if response.status_code >= 400 or not isinstance(body, dict) or not body.get("csrfToken"):
            raise ApiError("Failed to obtain CSRF token", response.status_code, body)
        self._csrf_token = body["csrfToken"]
        logger.debug("Obtained CSRF token")
        return self._csrf_token

    def request_sync(self, method: str, path: str, json_body: Optional[Dict[str, Any]] = None) -> Any:
        """
        Perform a request and return the parsed JSON body.

        A 401 is retried exactly once (never for /auth/me). A 403 on a
        mutating request refreshes the CSRF token and retries once.

        Raises:
            ApiError: On network failure or a non-2xx response
        """
        method = method.upper()
        if method in MUTATING_METHODS and not self._csrf_token:
            with self._csrf_lock:
                if not self._csrf_token:
                    self._refresh_csrf_token()

        sent_token = self._csrf_token
        response = self._send(method, path, json_body)

        if response.status_code == 401 and not path.startswith("/auth/me"):
            logger.info(f"{method} {path} returned 401, retrying once")
            response = self._send(method, path, json_body)
        elif response.status_code == 403 and method in MUTATING_METHODS:
            logger.info(f"{method} {path} returned 403, refreshing CSRF token")
            with self._csrf_lock:
                # Another request may already have replaced the rejected token
                if self._csrf_token == sent_token:
                    self._refresh_csrf_token()
            response = self._send(method, path, json_body)

        body = self._parse_body(response)

        if isinstance(body, dict) and body.get("csrfToken"):
            # The server rotates the token on login
            self._csrf_token = body["csrfToken"]

        if response.status_code >= 400:
            message = body.get("message") if isinstance(body, dict) else None
            logger.warning(f"{method} {path} -> {response.status_code}: {message or response.reason}")
            raise ApiError(
                message or f"Request failed with status {response.status_code}",
                response.status_code,
                body
            )

        return body

    async def request(self, method: str, path: str, json_body: Optional[Dict[str, Any]] = None) -> Any:
        return await asyncio.to_thread(self.request_sync, method, path, json_body)

    async def get(self, path: str) -> Any:
        return await self.request("GET", path)

    async def post(self, path: str, json_body: Optional[Dict[str, Any]] = None) -> Any:
        return await self.request("POST", path, json_body)

    async def put(self, path: str, json_body: Optional[Dict[str, Any]] = None) -> Any:
        return await self.request("PUT", path, json_body)

    async def delete(self, path: str) -> Any:
        return await self.request("DELETE", path)

    def close(self):
        self.session.close()
