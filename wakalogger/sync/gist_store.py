"""Gist-backed storage for the aggregate log."""

import json
import logging
from datetime import date
from typing import Callable, Optional

import requests

from ..config import DEFAULT_GIST_FILENAME, DEFAULT_GIST_URL, DEFAULT_LOOKBACK_DAYS
from .dates import days_before, from_key, to_key
from .http_client import ApiClientError, BaseApiClient
from .models import Aggregate
from .retry import RetryConfig

__all__ = [
    "GistStore",
    "GistStoreError",
    "GistCreateError",
    "GistLoadError",
    "GistSaveError",
]

logger = logging.getLogger(__name__)


class GistStoreError(Exception):
    """Reading or writing the aggregate gist failed."""

    pass


class GistCreateError(GistStoreError):
    pass


class GistLoadError(GistStoreError):
    pass


class GistSaveError(GistStoreError):
    pass


class GistStore(BaseApiClient):
    """Keeps the aggregate as one JSON file inside a private gist.

    With no ``gist_id`` the first :meth:`load` creates the gist. The new id
    is then available on ``gist_id`` and ``created`` is set so the caller
    can hand it to the operator for the next run.
    """

    SERVICE_NAME = "GitHub"
    DESCRIPTION = "WakaLogger logs"

    def __init__(
        self,
        username: str,
        password: str,
        gist_id: Optional[str] = None,
        base_url: str = DEFAULT_GIST_URL,
        filename: str = DEFAULT_GIST_FILENAME,
        description: str = DESCRIPTION,
        lookback_days: int = DEFAULT_LOOKBACK_DAYS,
        today: Callable[[], date] = date.today,
        timeout: int = 30,
        retry_config: Optional[RetryConfig] = None,
        session: Optional[requests.Session] = None,
    ):
        super().__init__(
            base_url,
            auth_secret=f"{username}:{password}",
            timeout=timeout,
            retry_config=retry_config,
            session=session,
        )
        self.gist_id = gist_id or None
        self.filename = filename
        self.description = description
        self.lookback_days = lookback_days
        self._today = today
        self.created = False

    def default_high_water_mark(self) -> str:
        return days_before(to_key(self._today()), self.lookback_days)

    def _with_defaults(self, aggregate: Aggregate) -> Aggregate:
        if aggregate.high_water_mark is None:
            aggregate.high_water_mark = self.default_high_water_mark()
            logger.info(f"No high-water-mark stored, starting from {aggregate.high_water_mark}")
        return aggregate

    def _serialize(self, aggregate: Aggregate) -> str:
        return json.dumps(aggregate.to_dict(), indent=2)

    def create(self) -> str:
        """Create a private gist seeded with an empty aggregate.

        Returns:
            The new gist id
        """
        seed = Aggregate(high_water_mark=self.default_high_water_mark())
        body = {
            "description": self.description,
            "public": False,
            "files": {self.filename: {"content": self._serialize(seed)}},
        }
        try:
            payload = self._request("POST", data=body, retry=False)
        except ApiClientError as e:
            raise GistCreateError(f"Failed to create gist: {e}") from e

        gist_id = payload.get("id") if isinstance(payload, dict) else None
        if not gist_id:
            raise GistCreateError("GitHub did not return an id for the new gist")

        self.gist_id = gist_id
        self.created = True
        logger.info(f"Created gist {gist_id}")
        return gist_id

    def load(self) -> Aggregate:
        """Load the aggregate, creating the gist on first use.

        Raises:
            GistCreateError: If the gist could not be created
            GistLoadError: If the gist could not be read or parsed
        """
        if self.gist_id is None:
            self.create()
            return Aggregate(high_water_mark=self.default_high_water_mark())

        try:
            payload = self._request("GET", self.gist_id)
        except ApiClientError as e:
            raise GistLoadError(f"Failed to read gist {self.gist_id}: {e}") from e

        files = payload.get("files") if isinstance(payload, dict) else None
        if not isinstance(files, dict):
            raise GistLoadError(f"Unexpected response reading gist {self.gist_id}")
        file_info = files.get(self.filename)
        if not isinstance(file_info, dict):
            raise GistLoadError(f"Gist {self.gist_id} has no file named {self.filename}")
        if file_info.get("truncated"):
            raise GistLoadError(f"{self.filename} is too large to read from the gist API")

        try:
            data = json.loads(file_info.get("content") or "{}")
        except (json.JSONDecodeError, TypeError) as e:
            raise GistLoadError(f"{self.filename} does not contain valid JSON: {e}") from e
        if not isinstance(data, dict):
            raise GistLoadError(f"{self.filename} does not contain a JSON object")

        try:
            aggregate = Aggregate.from_dict(data)
        except ValueError as e:
            raise GistLoadError(f"{self.filename} is not a WakaLogger log: {e}") from e
        if aggregate.high_water_mark is not None:
            try:
                from_key(aggregate.high_water_mark)
            except ValueError as e:
                raise GistLoadError(
                    f"Stored high-water-mark {aggregate.high_water_mark!r} is not a date"
                ) from e

        logger.debug(
            f"Loaded {aggregate.entry_count} entries across "
            f"{len(aggregate.projects)} projects from gist {self.gist_id}"
        )
        return self._with_defaults(aggregate)

    def save(self, aggregate: Aggregate) -> bool:
        """Replace the gist file with the full aggregate.

        Returns:
            True when GitHub answered 200

        Raises:
            GistSaveError: If the request failed
        """
        if self.gist_id is None:
            raise GistSaveError("No gist to save to; load() must run first")

        body = {"files": {self.filename: {"content": self._serialize(aggregate)}}}
        try:
            response = self._send("PATCH", self.gist_id, data=body)
        except ApiClientError as e:
            raise GistSaveError(f"Failed to update gist {self.gist_id}: {e}") from e

        if response.status_code != 200:
            logger.error(f"Unexpected status {response.status_code} updating gist {self.gist_id}")
            return False
        return True
