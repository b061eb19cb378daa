"""
HTTP transport for the Redmine REST API.
Builds one request, signs it with the session's auth variant, sends it through an injected
requests.Session and classifies the outcome. No retries and no timeout beyond the requests default.
"""

import json
import logging
from typing import Any, Dict, List, Optional

import requests
from requests.auth import AuthBase, HTTPBasicAuth

logger = logging.getLogger(__name__)

API_KEY_HEADER = "X-Redmine-API-Key"


class RedmineError(Exception):
    """Base exception for Redmine API errors."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.message = message
        self.status_code = status_code
        super().__init__(self.message)


class NetworkError(RedmineError):
    """Connection, DNS or timeout failure below the HTTP layer."""


class HTTPError(RedmineError):
    """Response status outside [200, 400)."""

    def __init__(self, status_code: int, reason: str = "", body: bytes = b""):
        self.reason = reason or ""
        self.body = body or b""
        message = f"{status_code} {self.reason}".strip()
        errors = self.errors
        if errors:
            message = f"{message}: {'; '.join(errors)}"
        super().__init__(message, status_code=status_code)

    @property
    def text(self) -> str:
        return self.body.decode("utf-8", errors="replace")

    @property
    def errors(self) -> List[str]:
        """Messages from a Redmine `{"errors": [...]}` body, or an empty list."""
        try:
            data = json.loads(self.body)
        except ValueError:
            return []
        if isinstance(data, dict) and isinstance(data.get("errors"), list):
            return [str(e) for e in data["errors"]]
        return []


class DecodeError(RedmineError):
    """Malformed JSON or an envelope that does not have the expected shape."""


class AuthError(RedmineError):
    """Exchanging credentials for an API key failed."""


class ApiKeyAuth(AuthBase):
    """Signs requests with the X-Redmine-API-Key header."""

    mode = "api-key"

    def __init__(self, api_key: str):
        if not api_key:
            raise ValueError("api_key must be a non-empty string")
        self.api_key = api_key

    def __call__(self, r):
        r.headers[API_KEY_HEADER] = self.api_key
        return r

    def __eq__(self, other):
        return isinstance(other, ApiKeyAuth) and other.api_key == self.api_key

    def __repr__(self):
        return "ApiKeyAuth(api_key='*****')"


class BasicAuth(HTTPBasicAuth):
    """HTTP Basic auth with a username/password pair."""

    mode = "basic"

    def __init__(self, username: str, password: str):
        if not username or not password:
            raise ValueError("username and password must both be non-empty")
        super().__init__(username, password)

    def __repr__(self):
        return f"BasicAuth(username={self.username!r}, password='*****')"


class Transport:
    """
    Sends requests to Redmine. Owns nothing global: pass your own requests.Session to share a
    connection pool or to substitute a fake in tests.
    """

    def __init__(self, http: Optional[requests.Session] = None):
        self.http = http if http is not None else requests.Session()

    def close(self):
        self.http.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def send(
        self,
        method: str,
        url: str,
        auth: AuthBase,
        params: Optional[Dict[str, str]] = None,
        body: Optional[Dict[str, Any]] = None,
    ) -> bytes:
        """Issue a single request and return the raw response body.

        Raises NetworkError for transport failures and HTTPError for statuses outside [200, 400).
        """
        data = json.dumps(body) if body is not None else None
        request = requests.Request(
            method,
            url,
            headers={"Content-Type": "application/json"},
            params=params or {},
            data=data,
            auth=auth,
        )
        prepared = self.http.prepare_request(request)
        # proxies and CA bundle from the environment (REQUESTS_CA_BUNDLE, HTTPS_PROXY, ...)
        settings = self.http.merge_environment_settings(prepared.url, {}, None, None, None)
        logger.debug("%s %s (auth: %s)", method, prepared.url, getattr(auth, "mode", "custom"))
        try:
            resp = self.http.send(prepared, **settings)
        except requests.RequestException as exc:
            raise NetworkError(f"{method} {url} failed: {exc}") from exc

        content = resp.content or b""
        if resp.status_code < 200 or resp.status_code >= 400:
            logger.debug("%s %s -> %s", method, url, resp.status_code)
            raise HTTPError(resp.status_code, resp.reason or "", content)
        return content


__all__ = [
    "RedmineError",
    "NetworkError",
    "HTTPError",
    "DecodeError",
    "AuthError",
    "ApiKeyAuth",
    "BasicAuth",
    "Transport",
]
