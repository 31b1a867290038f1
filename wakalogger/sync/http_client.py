"""Shared HTTP plumbing for the WakaTime and GitHub Gist clients."""

import base64
import logging
from typing import Optional

import requests

from .retry import NO_RETRY, RetryConfig, RetryExhausted, retry_with_backoff

__all__ = [
    "BaseApiClient",
    "ApiClientError",
    "ApiAuthError",
    "basic_auth_header",
]

logger = logging.getLogger(__name__)


class ApiClientError(Exception):
    """A remote API call failed."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class ApiAuthError(ApiClientError):
    """The remote API rejected our credentials."""

    pass


class _TransientError(Exception):
    """Internal: Marks an error as transient/retryable."""

    pass


def basic_auth_header(secret: str) -> str:
    """Build an HTTP basic ``Authorization`` value from a raw secret.

    ``secret`` is either ``user:password`` or a bare API key, which is how
    WakaTime expects its key to be sent.
    """
    encoded = base64.b64encode(secret.encode("utf-8")).decode("ascii")
    return f"Basic {encoded}"


class BaseApiClient:
    """Base HTTP client with retry logic.

    Handles:
    - Session management
    - Basic authentication header
    - Retry with exponential backoff on connection errors, timeouts, 429 and 5xx
    - Mapping of failures onto ApiClientError / ApiAuthError
    """

    DEFAULT_RETRY_CONFIG = RetryConfig(
        max_retries=3,
        base_delay=1.0,
        max_delay=30.0,
        exponential_base=2.0,
        jitter=True,
    )

    USER_AGENT = "WakaLogger/1.0.0"
    SERVICE_NAME = "API"

    def __init__(
        self,
        base_url: str,
        auth_secret: Optional[str] = None,
        timeout: int = 30,
        retry_config: Optional[RetryConfig] = None,
        session: Optional[requests.Session] = None,
    ):
        """Initialize base API client.

        Args:
            base_url: API base URL, without trailing slash
            auth_secret: ``user:password`` or API key for basic auth
            timeout: Request timeout in seconds
            retry_config: Configuration for retry with exponential backoff
            session: Optional requests session (for dependency injection/testing)
        """
        self.base_url = base_url.rstrip("/")
        self.auth_secret = auth_secret
        self.timeout = timeout
        self.retry_config = retry_config or self.DEFAULT_RETRY_CONFIG
        self._session = session or requests.Session()
        self._owns_session = session is None

    def _get_headers(self) -> dict:
        """Get request headers with authentication."""
        headers = {
            "Accept": "application/json",
            "User-Agent": self.USER_AGENT,
        }
        if self.auth_secret:
            headers["Authorization"] = basic_auth_header(self.auth_secret)
        return headers

    def _url(self, endpoint: str) -> str:
        if not endpoint:
            return self.base_url
        return f"{self.base_url}/{endpoint.lstrip('/')}"

    def _send(
        self,
        method: str,
        endpoint: str = "",
        data: Optional[dict] = None,
        params: Optional[dict] = None,
        retry: bool = True,
    ) -> requests.Response:
        """Send a request and return the successful response.

        Raises:
            ApiAuthError: For 401/403 responses (not retried)
            ApiClientError: For any other failure
        """
        url = self._url(endpoint)
        logger.debug(f"{method} {url}")
        kwargs: dict = {"timeout": self.timeout, "headers": self._get_headers()}
        if params:
            kwargs["params"] = params
        if data is not None:
            kwargs["json"] = data

        def do_request() -> requests.Response:
            try:
                response = self._session.request(method, url, **kwargs)

                if response.status_code in (401, 403):
                    raise ApiAuthError(
                        f"{self.SERVICE_NAME} rejected credentials ({response.status_code})",
                        status_code=response.status_code,
                    )

                if response.status_code == 429:
                    raise _TransientError("Rate limited (429)")

                if response.status_code >= 500:
                    raise _TransientError(f"Server error: {response.status_code}")

                response.raise_for_status()
                return response

            except requests.exceptions.ConnectionError:
                raise _TransientError(f"Cannot connect to {self.SERVICE_NAME}")
            except requests.exceptions.Timeout:
                raise _TransientError("Request timed out")
            except requests.exceptions.HTTPError as e:
                error_detail = ""
                try:
                    body = e.response.json()
                except ValueError:
                    body = None
                if isinstance(body, dict):
                    error_detail = body.get("message") or body.get("error") or ""
                raise ApiClientError(
                    f"{self.SERVICE_NAME} error ({e.response.status_code}): {error_detail or e}",
                    status_code=e.response.status_code,
                ) from e
            except requests.exceptions.RequestException as e:
                raise ApiClientError(f"{self.SERVICE_NAME} request failed: {e}") from e

        config = self.retry_config if retry else NO_RETRY
        try:
            return retry_with_backoff(
                do_request,
                config=config,
                retryable_exceptions=(_TransientError,),
            )
        except RetryExhausted as e:
            if e.last_error:
                raise ApiClientError(str(e.last_error)) from e.last_error
            raise ApiClientError("Request failed after retries") from e

    def _request(
        self,
        method: str,
        endpoint: str = "",
        data: Optional[dict] = None,
        params: Optional[dict] = None,
        retry: bool = True,
    ) -> dict:
        """Send a request and decode its JSON body.

        Raises:
            ApiClientError: On failure or when the body is not JSON
        """
        response = self._send(method, endpoint, data=data, params=params, retry=retry)
        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as e:
            raise ApiClientError(f"{self.SERVICE_NAME} returned invalid JSON") from e

    def close(self) -> None:
        """Close the session if we own it."""
        if self._owns_session and self._session is not None:
            self._session.close()
            self._session = None

    def __enter__(self) -> "BaseApiClient":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
