"""WakaTime client - reads per-day durations."""

import logging
from typing import Optional

import requests

from ..config import DEFAULT_WAKATIME_URL
from .http_client import ApiAuthError, ApiClientError, BaseApiClient
from .models import UNKNOWN_PROJECT, DayResult, Entry
from .retry import RetryConfig

__all__ = ["WakaTimeClient", "WakaTimeClientError", "WakaTimeAuthError"]

logger = logging.getLogger(__name__)


class WakaTimeClientError(ApiClientError):
    """WakaTime client error."""

    pass


class WakaTimeAuthError(WakaTimeClientError):
    """WakaTime rejected the API key."""

    pass


class WakaTimeClient(BaseApiClient):
    """Client for the WakaTime durations endpoint."""

    SERVICE_NAME = "WakaTime"

    def __init__(
        self,
        username: str,
        api_key: str,
        base_url: str = DEFAULT_WAKATIME_URL,
        timeout: int = 30,
        retry_config: Optional[RetryConfig] = None,
        session: Optional[requests.Session] = None,
    ):
        """Initialize WakaTime client.

        Args:
            username: WakaTime username (or ``current``)
            api_key: WakaTime secret API key
            base_url: WakaTime API base URL
            timeout: Request timeout in seconds
            retry_config: Configuration for retry with exponential backoff
            session: Optional requests session
        """
        super().__init__(
            base_url,
            auth_secret=api_key,
            timeout=timeout,
            retry_config=retry_config,
            session=session,
        )
        self.username = username

    def get_durations(self, date: str) -> list[dict]:
        """Get raw duration records for one day.

        Raises:
            WakaTimeAuthError: If the API key is rejected
            WakaTimeClientError: For any other failure
        """
        try:
            payload = self._request(
                "GET", f"users/{self.username}/durations", params={"date": date}
            )
        except ApiAuthError as e:
            raise WakaTimeAuthError(str(e), status_code=e.status_code) from e
        except ApiClientError as e:
            raise WakaTimeClientError(str(e), status_code=e.status_code) from e

        data = payload.get("data") if isinstance(payload, dict) else None
        if data is None:
            return []
        if not isinstance(data, list):
            raise WakaTimeClientError(f"Unexpected durations payload for {date}")
        return [record for record in data if isinstance(record, dict)]

    def fetch_day(self, date: str) -> DayResult:
        """Fetch one day as a DayResult.

        Never raises for remote failures; they come back as ``FAILED`` so
        one bad day does not stop the walk.
        """
        try:
            records = self.get_durations(date)
        except WakaTimeClientError as e:
            return DayResult.failed(date, str(e))

        if not records:
            return DayResult.empty(date)

        return DayResult.ok(
            date,
            [(record.get("project") or UNKNOWN_PROJECT, Entry.from_dict(record)) for record in records],
        )
