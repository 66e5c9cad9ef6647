"""Async HTTP client that owns one authenticated Superset session."""

import json
import logging
import shlex
from dataclasses import dataclass
from typing import Any, Dict, Optional
from urllib.parse import urlencode

import httpx

logger = logging.getLogger(__name__)

LOGIN_PATH = "/api/v1/security/login"
REFRESH_PATH = "/api/v1/security/refresh"
CSRF_PATH = "/api/v1/security/csrf_token/"

AUTH_PROVIDER = "ldap"
# Literal `msg` Superset returns with a 401 once the access token has expired
TOKEN_EXPIRED_MSG = "Token has expired"

SENSITIVE_HEADERS = {"authorization", "cookie", "x-csrftoken"}


@dataclass
class ApiError:
    message: str
    details: str
    status: Optional[int] = None


@dataclass
class SupersetResponse:
    """Envelope every request is normalized into."""

    success: bool
    status: int
    data: Any = None
    error: Optional[ApiError] = None


class SupersetHttpClient:
    """
    HTTP client for the Superset REST API.

    Every call goes through request(), which logs in on demand, attaches the
    bearer token, CSRF token and session cookies, and refreshes an expired
    access token once before giving up.
    """

    def __init__(
        self,
        base_url: str,
        username: str,
        password: str,
        *,
        provider: str = AUTH_PROVIDER,
        default_headers: Optional[Dict[str, str]] = None,
        timeout: float = 30.0,
        verify: bool = True,
        with_credentials: bool = True,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the client. No network call is made until the first request.

        Args:
            base_url: Superset root URL (a trailing slash is ignored)
            username: Account name
            password: Account password
            provider: Authentication provider sent with the login request
            default_headers: Headers added to every request
            timeout: Transport timeout in seconds
            verify: Verify TLS certificates
            with_credentials: Forward the stored session cookies
            transport: Custom httpx transport (used by tests)
        """
        self.base_url = base_url.rstrip("/")
        self.username = username
        self.password = password
        self.provider = provider
        self.with_credentials = with_credentials
        self.default_headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
            **(default_headers or {}),
        }

        self.access_token: Optional[str] = None
        self.refresh_token: Optional[str] = None
        self.csrf_token: Optional[str] = None
        self.cookies: Dict[str, str] = {}

        self._http = httpx.AsyncClient(timeout=timeout, verify=verify, transport=transport)

    # -- Session lifecycle --------------------------------------------------

    async def login(self) -> bool:
        """Log in and fetch the CSRF token. Returns False on any failure."""
        logger.info(f"Logging in to Superset at {self.base_url} as '{self.username}'")
        response = await self.request(
            "POST",
            LOGIN_PATH,
            body={
                "username": self.username,
                "password": self.password,
                "provider": self.provider,
                "refresh": True,
            },
            allow_refresh=False,
        )

        data = response.data if isinstance(response.data, dict) else {}
        if response.success and data.get("access_token"):
            self.access_token = data["access_token"]
            self.refresh_token = data.get("refresh_token")
            await self.get_csrf_token()
            logger.info("Login successful")
            return True

        reason = response.error.message if response.error else "no access token in response"
        logger.error(f"Login failed: {reason}")
        return False

    async def refresh_access_token(self) -> bool:
        """Exchange the refresh token for a new access token."""
        if not self.refresh_token:
            logger.warning("Cannot refresh access token: no refresh token held")
            return False

        logger.info("Refreshing access token...")
        response = await self.request(
            "POST",
            REFRESH_PATH,
            headers={"Authorization": f"Bearer {self.refresh_token}"},
            allow_refresh=False,
        )

        data = response.data if isinstance(response.data, dict) else {}
        if response.success and data.get("access_token"):
            self.access_token = data["access_token"]
            logger.info("Access token refreshed")
            return True

        reason = response.error.message if response.error else "no access token in response"
        logger.error(f"Access token refresh failed: {reason}")
        return False

    async def get_csrf_token(self) -> Optional[str]:
        """Fetch and store the CSRF token. Safe to call repeatedly."""
        response = await self.request("GET", CSRF_PATH)

        data = response.data if isinstance(response.data, dict) else {}
        if response.success and data.get("result"):
            self.csrf_token = data["result"]
            logger.info(f"CSRF token acquired: {self.csrf_token[:10]}...")
            return self.csrf_token

        reason = response.error.message if response.error else "no result in response"
        logger.error(f"Fetching CSRF token failed: {reason}")
        return None

    def is_authenticated(self) -> bool:
        """True when an access token is held. Not a liveness check."""
        return bool(self.access_token)

    def logout(self) -> None:
        """Forget all session state. No remote call is made."""
        self.access_token = None
        self.refresh_token = None
        self.csrf_token = None
        self.cookies = {}

    # -- Verbs --------------------------------------------------------------

    async def get(self, path: str, **kwargs) -> SupersetResponse:
        return await self.request("GET", path, **kwargs)

    async def post(self, path: str, body: Any = None, **kwargs) -> SupersetResponse:
        return await self.request("POST", path, body=body, **kwargs)

    async def put(self, path: str, body: Any = None, **kwargs) -> SupersetResponse:
        return await self.request("PUT", path, body=body, **kwargs)

    async def delete(self, path: str, **kwargs) -> SupersetResponse:
        return await self.request("DELETE", path, **kwargs)

    async def request(
        self,
        method: str,
        path: str,
        body: Any = None,
        headers: Optional[Dict[str, str]] = None,
        params: Optional[Dict[str, str]] = None,
        allow_refresh: bool = True,
    ) -> SupersetResponse:
        """
        Send a request and normalize the outcome into a SupersetResponse.

        Never raises: authentication and transport failures come back as
        unsuccessful envelopes (status 401 and 0 respectively).

        Args:
            method: HTTP method
            path: Path relative to the base URL, may carry a query string
            body: JSON-serializable body, or a pre-encoded string
            headers: Extra request headers
            params: Extra query parameters
            allow_refresh: Refresh an expired token and retry once

        Returns:
            SupersetResponse envelope
        """
        if not path.startswith("/"):
            path = f"/{path}"
        logger.debug(f"{method} {path}")

        if not path.startswith(LOGIN_PATH) and not self.is_authenticated():
            if not await self.login():
                return SupersetResponse(
                    success=False,
                    status=401,
                    error=ApiError(
                        message="Authentication failed",
                        details="Authentication failed",
                        status=401,
                    ),
                )

        url = f"{self.base_url}{path}"
        request_headers = self._build_headers(headers)

        content = None
        if body is not None:
            content = body if isinstance(body, str) else json.dumps(body)

        try:
            response = await self._http.request(
                method, url, headers=request_headers, content=content, params=params
            )
            self._store_cookies(path, response)
            data = self._parse_body(response)
        except Exception as e:
            message = str(e) or e.__class__.__name__
            logger.error(f"Request {method} {path} failed: {message}")
            logger.error(
                "Equivalent curl command: %s",
                self._curl_command(method, url, request_headers, content, params, path),
            )
            return SupersetResponse(
                success=False,
                status=0,
                error=ApiError(message=message, details=message),
            )

        result = SupersetResponse(
            success=response.is_success,
            status=response.status_code,
            data=data,
        )

        if not response.is_success:
            result.error = _error_from_body(data, response.status_code)
            logger.error(
                f"Request {method} {path} returned {response.status_code}: {result.error.message}"
            )
            logger.error(
                "Equivalent curl command: %s",
                self._curl_command(method, url, request_headers, content, params, path),
            )

            if (
                response.status_code == 401
                and allow_refresh
                and isinstance(data, dict)
                and data.get("msg") == TOKEN_EXPIRED_MSG
                and await self.refresh_access_token()
            ):
                logger.info(f"Retrying {method} {path} with refreshed token")
                return await self.request(
                    method, path, body=body, headers=headers, params=params, allow_refresh=False
                )

        return result

    # -- Internals ----------------------------------------------------------

    def _build_headers(self, headers: Optional[Dict[str, str]]) -> Dict[str, str]:
        request_headers = {**self.default_headers, **(headers or {})}

        # Refresh sends its own bearer token
        if self.access_token and "Authorization" not in request_headers:
            request_headers["Authorization"] = f"Bearer {self.access_token}"

        if self.csrf_token:
            request_headers["X-CSRFToken"] = self.csrf_token

        if self.with_credentials and self.cookies:
            request_headers["Cookie"] = "; ".join(
                f"{name}={value}" for name, value in self.cookies.items()
            )

        return request_headers

    def _store_cookies(self, path: str, response: httpx.Response) -> None:
        if "csrf_token" in path and "set-cookie" in response.headers:
            for cookie in response.cookies.jar:
                self.cookies[cookie.name] = cookie.value
                logger.debug(f"Stored session cookie '{cookie.name}'")

        # The session keeps its own jar; httpx must not replay cookies on its own
        self._http.cookies.clear()

    @staticmethod
    def _parse_body(response: httpx.Response) -> Any:
        content_type = response.headers.get("content-type", "")
        if "application/json" in content_type:
            return response.json()
        return response.text

    def _curl_command(
        self,
        method: str,
        url: str,
        headers: Dict[str, str],
        content: Optional[str],
        params: Optional[Dict[str, str]],
        path: str,
    ) -> str:
        full_url = f"{url}{'&' if '?' in url else '?'}{urlencode(params)}" if params else url
        parts = ["curl", "-X", method, shlex.quote(full_url)]
        for name, value in headers.items():
            if name.lower() in SENSITIVE_HEADERS:
                value = "***"
            parts += ["-H", shlex.quote(f"{name}: {value}")]
        if content:
            if path.startswith(LOGIN_PATH):
                content = "<credentials redacted>"
            parts += ["-d", shlex.quote(content)]
        return " ".join(parts)

    # -- Resource management ------------------------------------------------

    async def aclose(self) -> None:
        """Close the underlying connection pool."""
        await self._http.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()


def _error_from_body(data: Any, status: int) -> ApiError:
    if isinstance(data, dict):
        message = data.get("message") or data.get("msg") or "Request failed"
        details = data.get("error") or data.get("details") or json.dumps(data)
    else:
        message = "Request failed"
        details = str(data) if data else f"HTTP {status}"
    return ApiError(message=str(message), details=str(details), status=status)
