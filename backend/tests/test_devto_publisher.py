"""Tests for the Dev.to client and publishing endpoints, using httpx.MockTransport."""

import json
from types import SimpleNamespace

import httpx
import pytest

from articleflow.exceptions import PublishError
from articleflow.main import app
from articleflow.models import Profile, UserSettings
from articleflow.services.devto_publisher import (
    DevToClient,
    build_author_signature,
    extract_cover_image,
    format_tags,
    get_devto_client_factory,
)

from conftest import make_article


def _article(**overrides):
    fields = dict(
        title="Webhooks",
        content="![cover](https://cdn.example.com/c.png)\n\nBody",
        description="Short",
        tags=["Python", "Web-Dev", "a_b", "!!!", "fifth"],
    )
    fields.update(overrides)
    return SimpleNamespace(**fields)


class RecordingDevTo:
    """MockTransport handler standing in for the Dev.to API."""

    def __init__(self, status: int = 201, body=None):
        self.status = status
        self.body = body if body is not None else {"id": 42, "url": "https://dev.to/u/webhooks"}
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.path.endswith("/users/me"):
            if request.headers.get("api-key") == "good-key":
                return httpx.Response(200, json={"username": "writer"})
            return httpx.Response(401, json={"error": "unauthorized"})
        return httpx.Response(self.status, json=self.body)


def _client(handler, key="good-key") -> DevToClient:
    return DevToClient(key, base_url="https://dev.test/api", transport=httpx.MockTransport(handler))


class TestHelpers:

    def test_format_tags(self):
        assert format_tags(["Python", "Web-Dev", "a_b", "!!!", "fifth"]) == ["python", "webdev", "ab"]
        assert format_tags(None) == []

    def test_cover_image_markdown_then_html(self):
        assert extract_cover_image("x ![a](https://i.test/1.png) ![b](https://i.test/2.png)") == "https://i.test/1.png"
        assert extract_cover_image('<img alt="" src="https://i.test/3.png">') == "https://i.test/3.png"
        assert extract_cover_image("no images") is None

    def test_signature_from_profile(self):
        profile = SimpleNamespace(
            full_name="Ada", bio="Writes code.", linkedin_handle="@ada", twitter_handle=None,
            github_handle="ada", website="https://ada.dev",
        )
        signature = build_author_signature(profile)
        assert signature.startswith("## About the Author")
        assert "Written by **Ada**" in signature
        assert "[LinkedIn](https://linkedin.com/in/ada)" in signature
        assert "[GitHub](https://github.com/ada)" in signature
        assert "Twitter" not in signature

    def test_no_profile_no_signature(self):
        assert build_author_signature(None) == ""


class TestDevToClient:

    def test_publish_draft(self):
        handler = RecordingDevTo()
        result = _client(handler).publish(_article(), signature="## About the Author")

        request = handler.requests[0]
        assert request.headers["api-key"] == "good-key"
        payload = json.loads(request.content)["article"]
        assert payload["published"] is False
        assert payload["tags"] == ["python", "webdev", "ab"]
        assert payload["main_image"] == "https://cdn.example.com/c.png"
        assert payload["body_markdown"].endswith("Body\n\n---\n\n## About the Author")
        assert result.url == "https://dev.to/dashboard/posts/42/edit"
        assert result.platform_article_id == "42"

    def test_publish_live_keeps_public_url(self):
        result = _client(RecordingDevTo()).publish(_article(), published=True)
        assert result.url == "https://dev.to/u/webhooks"

    def test_error_response_raises(self):
        handler = RecordingDevTo(status=422, body={"error": "Title can't be blank"})
        with pytest.raises(PublishError) as exc:
            _client(handler).publish(_article())
        assert exc.value.message == "Title can't be blank"
        assert exc.value.details["upstream_status"] == 422

    def test_validate_api_key(self):
        assert _client(RecordingDevTo()).validate_api_key() == (True, "writer")
        assert _client(RecordingDevTo(), key="bad").validate_api_key() == (False, None)


@pytest.fixture()
def devto(client):
    handler = RecordingDevTo()
    app.dependency_overrides[get_devto_client_factory] = lambda: (
        lambda key: DevToClient(key, base_url="https://dev.test/api", transport=httpx.MockTransport(handler))
    )
    return handler


class TestPublishEndpoint:

    def test_publish_records_publication(self, client, db, devto):
        db.add(UserSettings(user_id="anonymous", devto_api_key="good-key"))
        db.add(Profile(id="anonymous", full_name="Ada"))
        db.commit()
        article_id = client.post("/api/articles", json=make_article()).json()["id"]

        resp = client.post(f"/api/articles/{article_id}/publish/devto")

        assert resp.status_code == 200
        assert resp.json() == {
            "published_url": "https://dev.to/dashboard/posts/42/edit",
            "article_id": article_id,
            "message": "Article published to Dev.to as draft",
        }
        assert client.get(f"/api/articles/{article_id}").json()["status"] == "published"
        body = json.loads(devto.requests[0].content)["article"]["body_markdown"]
        assert "Written by **Ada**" in body

    def test_second_publish_is_409(self, client, db, devto):
        db.add(UserSettings(user_id="anonymous", devto_api_key="good-key"))
        db.commit()
        article_id = client.post("/api/articles", json=make_article()).json()["id"]
        client.post(f"/api/articles/{article_id}/publish/devto")

        resp = client.post(f"/api/articles/{article_id}/publish/devto")

        assert resp.status_code == 409
        assert resp.json()["details"]["published_url"] == "https://dev.to/dashboard/posts/42/edit"
        assert len(devto.requests) == 1

    def test_missing_api_key_is_400(self, client, devto):
        article_id = client.post("/api/articles", json=make_article()).json()["id"]
        resp = client.post(f"/api/articles/{article_id}/publish/devto")
        assert resp.status_code == 400
        assert devto.requests == []

    def test_unknown_article_is_404(self, client, devto):
        assert client.post("/api/articles/nope/publish/devto").status_code == 404

    def test_upstream_failure_is_502(self, client, db, devto):
        devto.status = 500
        devto.body = {}
        db.add(UserSettings(user_id="anonymous", devto_api_key="good-key"))
        db.commit()
        article_id = client.post("/api/articles", json=make_article()).json()["id"]

        resp = client.post(f"/api/articles/{article_id}/publish/devto")

        assert resp.status_code == 502
        assert client.get(f"/api/articles/{article_id}").json()["status"] == "draft"


class TestConnectionCheck:

    def test_valid_key(self, client, devto):
        resp = client.post("/api/publishing/test-devto", json={"api_key": "good-key"})
        assert resp.json() == {"valid": True, "username": "writer"}

    def test_invalid_key(self, client, devto):
        resp = client.post("/api/publishing/test-devto", json={"api_key": "bad"})
        assert resp.json() == {"valid": False, "username": None}
