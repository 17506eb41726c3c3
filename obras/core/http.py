"""
REST API client for the company backend.

Every domain service talks to the backend through ApiClient: it prefixes
the configured base URL, injects the bearer token, and turns any non-2xx
response into ApiError so callers handle one error type.

Usage:
    from obras.core import get_api
    api = get_api()
    projects = api.get("/proyectos/v1")
"""

from typing import Any, Dict, Optional, Tuple
from urllib.parse import quote

import requests

from obras.core.config import get_config_value
from obras.core.logging import get_logger

logger = get_logger("obras.core.http")


class ApiError(Exception):
    """Non-2xx response from the REST API."""

    def __init__(
        self,
        message: str,
        status: int,
        status_text: str = "",
        data: Any = None,
    ):
        super().__init__(message)
        self.message = message
        self.status = status
        self.status_text = status_text
        self.data = data

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": self.message,
            "status": self.status,
            "status_text": self.status_text,
            "data": self.data,
        }


class UnauthorizedError(ApiError):
    """401 from the REST API; the cached token has been dropped."""


def quote_id(value: Any) -> str:
    """Percent-encode a path segment (same safe set as encodeURIComponent)."""
    return quote(str(value), safe="-_.!~*'()")


def _error_body(resp: requests.Response) -> Any:
    try:
        return resp.json()
    except ValueError:
        return resp.text


class ApiClient:
    """Thin requests.Session wrapper with bearer-token injection."""

    def __init__(
        self,
        base_url: str,
        token_provider=None,
        timeout: float = 30,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.token_provider = token_provider
        self.timeout = timeout
        self.session = session or requests.Session()

    @classmethod
    def from_config(cls) -> "ApiClient":
        """Create client from the api/auth sections of config.yaml."""
        from obras.auth.tokens import token_provider_from_config

        base_url = get_config_value("api", "base_url", default="http://localhost:3000")
        timeout = float(get_config_value("api", "timeout_seconds", default=30))
        return cls(base_url, token_provider_from_config(), timeout=timeout)

    # --- Internals ---

    def _auth_headers(self) -> Dict[str, str]:
        token = self.token_provider.get_token() if self.token_provider else None
        return {"Authorization": f"Bearer {token}"} if token else {}

    def _send(
        self,
        method: str,
        endpoint: str,
        headers: Dict[str, str],
        json: Any = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> requests.Response:
        url = f"{self.base_url}{endpoint}"
        resp = self.session.request(
            method,
            url,
            headers=headers,
            json=json,
            params=params,
            timeout=self.timeout,
        )

        if resp.status_code == 401:
            logger.warning("%s %s -> 401, dropping cached token", method, endpoint)
            if self.token_provider:
                self.token_provider.invalidate()
            raise UnauthorizedError("Unauthorized", 401, "Unauthorized")

        if not resp.ok:
            logger.warning("%s %s -> %s %s", method, endpoint, resp.status_code, resp.reason)
            raise ApiError(
                f"API Error: {resp.status_code} {resp.reason}",
                resp.status_code,
                resp.reason or "",
                _error_body(resp),
            )

        return resp

    # --- Public API ---

    def request(
        self,
        method: str,
        endpoint: str,
        json: Any = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> Any:
        """Send a JSON request. Returns the parsed body, or None for 204."""
        headers = {"Content-Type": "application/json", **self._auth_headers()}
        resp = self._send(method, endpoint, headers, json=json, params=params)
        if resp.status_code == 204 or not resp.content:
            return None
        return resp.json()

    def download(
        self,
        method: str,
        endpoint: str,
        json: Any = None,
    ) -> Tuple[bytes, str]:
        """Fetch a binary payload. Returns (content, content_type)."""
        resp = self._send(method, endpoint, self._auth_headers(), json=json)
        content_type = resp.headers.get("Content-Type") or "application/octet-stream"
        return resp.content, content_type

    def get(self, endpoint: str, params: Optional[Dict[str, Any]] = None) -> Any:
        return self.request("GET", endpoint, params=params)

    def post(self, endpoint: str, json: Any = None) -> Any:
        return self.request("POST", endpoint, json=json)

    def put(self, endpoint: str, json: Any = None) -> Any:
        return self.request("PUT", endpoint, json=json)

    def delete(self, endpoint: str) -> Any:
        return self.request("DELETE", endpoint)


def get_or_none(api, endpoint: str) -> Optional[Any]:
    """GET that maps a 404 to None; every other ApiError propagates."""
    try:
        return api.get(endpoint)
    except ApiError as e:
        if e.status == 404:
            logger.debug("GET %s -> 404", endpoint)
            return None
        raise


_api_client: Optional[ApiClient] = None


def get_api(reload: bool = False) -> ApiClient:
    """Process-wide ApiClient built from config.yaml."""
    global _api_client
    if _api_client is None or reload:
        _api_client = ApiClient.from_config()
    return _api_client
