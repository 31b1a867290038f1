"""Tests for the gist-backed aggregate store."""

import base64
import json
from datetime import date

import pytest
import responses

from wakalogger.sync.gist_store import (
    GistCreateError,
    GistLoadError,
    GistSaveError,
    GistStore,
)
from wakalogger.sync.models import Aggregate, Entry
from wakalogger.sync.retry import RetryConfig

GISTS_URL = "https://api.github.com/gists"


def gist_payload(content, filename="wakalogger.json"):
    return {"id": "abc123", "files": {filename: {"filename": filename, "content": content}}}


class TestGistStore:
    """Tests for GistStore."""

    def setup_method(self):
        """Set up test fixtures."""
        self.store = GistStore(
            username="octocat",
            password="token",
            gist_id="abc123",
            today=lambda: date(2019, 7, 16),
            retry_config=RetryConfig(max_retries=1, base_delay=0, jitter=False),
        )

    def teardown_method(self):
        """Clean up."""
        self.store.close()

    def test_basic_auth_header(self):
        expected = base64.b64encode(b"octocat:token").decode("ascii")

        assert self.store._get_headers()["Authorization"] == f"Basic {expected}"

    def test_default_high_water_mark_is_fifteen_days_back(self):
        assert self.store.default_high_water_mark() == "2019-07-01"

    @responses.activate
    def test_load_existing(self):
        stored = {
            "high_water_mark": "2019-07-10",
            "projects": {"alpha": [{"created_at": "c1", "duration": 120, "time": 5.0}]},
        }
        responses.add(
            responses.GET, f"{GISTS_URL}/abc123", json=gist_payload(json.dumps(stored))
        )

        aggregate = self.store.load()

        assert aggregate.high_water_mark == "2019-07-10"
        assert aggregate.projects == {"alpha": [Entry("c1", 120, 5.0)]}
        assert self.store.created is False

    @responses.activate
    def test_load_fills_missing_fields(self):
        responses.add(responses.GET, f"{GISTS_URL}/abc123", json=gist_payload("{}"))

        aggregate = self.store.load()

        assert aggregate.high_water_mark == "2019-07-01"
        assert aggregate.projects == {}

    @responses.activate
    def test_load_creates_gist_when_no_id(self):
        """First run: a private gist is created and its id surfaced."""
        store = GistStore(
            username="octocat",
            password="token",
            today=lambda: date(2019, 7, 16),
        )
        responses.add(responses.POST, GISTS_URL, json={"id": "new-gist"}, status=201)

        aggregate = store.load()

        assert store.gist_id == "new-gist"
        assert store.created is True
        assert aggregate.projects == {}
        assert aggregate.high_water_mark == "2019-07-01"

        body = json.loads(responses.calls[0].request.body)
        assert body["public"] is False
        assert body["description"] == "WakaLogger logs"
        seed = json.loads(body["files"]["wakalogger.json"]["content"])
        assert seed == {"high_water_mark": "2019-07-01", "projects": {}}
        store.close()

    @responses.activate
    def test_create_failure(self):
        store = GistStore(username="octocat", password="bad")
        responses.add(responses.POST, GISTS_URL, json={"message": "Bad credentials"}, status=401)

        with pytest.raises(GistCreateError):
            store.load()

        assert store.gist_id is None
        store.close()

    @responses.activate
    def test_create_without_id_in_response(self):
        store = GistStore(username="octocat", password="token")
        responses.add(responses.POST, GISTS_URL, json={}, status=201)

        with pytest.raises(GistCreateError, match="did not return an id"):
            store.load()
        store.close()

    @responses.activate
    def test_load_not_found(self):
        responses.add(
            responses.GET, f"{GISTS_URL}/abc123", json={"message": "Not Found"}, status=404
        )

        with pytest.raises(GistLoadError, match="404.*Not Found"):
            self.store.load()

    @responses.activate
    def test_load_missing_file(self):
        responses.add(
            responses.GET, f"{GISTS_URL}/abc123", json=gist_payload("{}", filename="other.json")
        )

        with pytest.raises(GistLoadError, match="no file named"):
            self.store.load()

    @responses.activate
    def test_load_invalid_json_content(self):
        responses.add(responses.GET, f"{GISTS_URL}/abc123", json=gist_payload("not json"))

        with pytest.raises(GistLoadError, match="valid JSON"):
            self.store.load()

    @responses.activate
    def test_load_malformed_entries(self):
        content = json.dumps({"high_water_mark": "2019-07-01", "projects": {"alpha": ["x"]}})
        responses.add(responses.GET, f"{GISTS_URL}/abc123", json=gist_payload(content))

        with pytest.raises(GistLoadError, match="not a WakaLogger log"):
            self.store.load()

    @responses.activate
    def test_load_projects_not_an_object(self):
        content = json.dumps({"high_water_mark": "2019-07-01", "projects": ["alpha"]})
        responses.add(responses.GET, f"{GISTS_URL}/abc123", json=gist_payload(content))

        with pytest.raises(GistLoadError, match="not a WakaLogger log"):
            self.store.load()

    @responses.activate
    def test_load_unexpected_gist_response(self):
        responses.add(responses.GET, f"{GISTS_URL}/abc123", json=["abc123"])

        with pytest.raises(GistLoadError, match="Unexpected response"):
            self.store.load()

    @responses.activate
    def test_load_invalid_high_water_mark(self):
        content = json.dumps({"high_water_mark": "July 1st", "projects": {}})
        responses.add(responses.GET, f"{GISTS_URL}/abc123", json=gist_payload(content))

        with pytest.raises(GistLoadError, match="not a date"):
            self.store.load()

    @responses.activate
    def test_save_replaces_whole_file(self):
        responses.add(responses.PATCH, f"{GISTS_URL}/abc123", json={"id": "abc123"}, status=200)
        aggregate = Aggregate(
            high_water_mark="2019-07-16", projects={"alpha": [Entry("c1", 120, 5.0)]}
        )

        assert self.store.save(aggregate) is True

        body = json.loads(responses.calls[0].request.body)
        content = json.loads(body["files"]["wakalogger.json"]["content"])
        assert content == aggregate.to_dict()

    @responses.activate
    def test_save_non_200_is_failure(self):
        responses.add(responses.PATCH, f"{GISTS_URL}/abc123", status=202)

        assert self.store.save(Aggregate(high_water_mark="2019-07-16")) is False

    @responses.activate
    def test_save_server_error_raises(self):
        responses.add(responses.PATCH, f"{GISTS_URL}/abc123", status=500)

        with pytest.raises(GistSaveError):
            self.store.save(Aggregate(high_water_mark="2019-07-16"))

        assert len(responses.calls) == 2

    def test_save_without_gist(self):
        store = GistStore(username="octocat", password="token")

        with pytest.raises(GistSaveError, match="load"):
            store.save(Aggregate())
        store.close()
