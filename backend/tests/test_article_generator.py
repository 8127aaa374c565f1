"""Tests for ArticleGenerator and POST /api/articles/generate with mocked LiteLLM calls."""

import json
from unittest.mock import MagicMock, patch

import pytest

from articleflow.exceptions import ArticleGenerationError, GenerationNotConfiguredError
from articleflow.main import app
from articleflow.models import UserSettings
from articleflow.services.article_generator import (
    DEFAULT_TEMPLATE,
    ArticleGenerator,
    fill_template,
    get_generator,
    parse_article_response,
)

ARTICLE_JSON = {
    "title": "Idempotent Webhooks",
    "description": "Make retries safe.",
    "tags": ["api", "webhooks"],
    "content": "# Idempotent Webhooks\n\nRetries happen. Plan for them.",
}


def _completion(text: str, tokens: int = 1200) -> MagicMock:
    response = MagicMock()
    response.choices[0].message.content = text
    response.usage.total_tokens = tokens
    response.model = "claude-test"
    return response


class TestTemplate:

    def test_fills_every_placeholder(self):
        filled = fill_template(DEFAULT_TEMPLATE, "Caching", "Focus on Redis", 1500, "devto")
        assert "Topic: Caching" in filled
        assert "User Instructions: Focus on Redis" in filled
        assert "1500 words" in filled
        assert "Dev.to" in filled
        assert "{{" not in filled

    def test_repeated_placeholders(self):
        assert fill_template("{{topic}} / {{topic}}", "X", "", 500, "all") == "X / X"


class TestParseArticleResponse:

    def test_json_wrapped_in_prose(self):
        article = parse_article_response("Here you go:\n" + json.dumps(ARTICLE_JSON) + "\nEnjoy!")
        assert article.title == "Idempotent Webhooks"
        assert article.tags == ["api", "webhooks"]
        assert article.word_count == 8

    def test_no_json(self):
        with pytest.raises(ArticleGenerationError):
            parse_article_response("I cannot help with that.")

    def test_missing_content(self):
        with pytest.raises(ArticleGenerationError):
            parse_article_response(json.dumps({"title": "Only a title"}))

    def test_invalid_json(self):
        with pytest.raises(ArticleGenerationError):
            parse_article_response("{title: nope}")


class TestArticleGenerator:

    def test_not_configured(self):
        with pytest.raises(GenerationNotConfiguredError):
            ArticleGenerator(model="").generate("topic")

    @patch("litellm.completion")
    def test_generate_passes_settings_and_metadata(self, mock_completion):
        mock_completion.return_value = _completion(json.dumps(ARTICLE_JSON))

        article = ArticleGenerator(model="anthropic/claude-test", api_key="k").generate(
            "Webhooks", prompt="be brief", word_count=800, platform="medium"
        )

        kwargs = mock_completion.call_args.kwargs
        assert kwargs["model"] == "anthropic/claude-test"
        assert kwargs["api_key"] == "k"
        assert "Medium" in kwargs["messages"][0]["content"]
        assert article.metadata["provider"] == "anthropic"
        assert article.metadata["tokens_used"] == 1200
        assert article.metadata["generation_time_ms"] >= 0

    @patch("litellm.completion", side_effect=RuntimeError("provider down"))
    def test_provider_failure(self, _mock):
        with pytest.raises(ArticleGenerationError) as exc:
            ArticleGenerator(model="openai/gpt-test").generate("topic")
        assert exc.value.status_code == 502


@pytest.fixture()
def configured_generator(client):
    app.dependency_overrides[get_generator] = lambda: ArticleGenerator(model="anthropic/claude-test", api_key="k")
    yield


class TestGenerateEndpoint:

    @patch("litellm.completion")
    def test_success(self, mock_completion, client, configured_generator):
        mock_completion.return_value = _completion(json.dumps(ARTICLE_JSON))

        resp = client.post("/api/articles/generate", json={"topic": "Webhooks", "word_count": 1000})

        assert resp.status_code == 201
        data = resp.json()
        assert data["status"] == "generated"
        assert data["title"] == "Idempotent Webhooks"
        assert data["generated_at"] is not None
        assert "<h1" in data["rich_text_content"]
        assert data["generation_metadata"]["model"] == "claude-test"

        logs = client.get(f"/api/articles/{data['id']}/logs").json()
        assert sorted((e["action"], e["status"]) for e in logs) == [
            ("generate", "started"), ("generate", "success"),
        ]

    @patch("litellm.completion")
    def test_failure_marks_article_failed(self, mock_completion, client, configured_generator):
        mock_completion.return_value = _completion("no json here")

        resp = client.post("/api/articles/generate", json={"topic": "Webhooks"})

        assert resp.status_code == 502
        articles = client.get("/api/articles", params={"status": "failed"}).json()
        assert len(articles) == 1
        article = client.get(f"/api/articles/{articles[0]['id']}").json()
        assert "no JSON" in article["error_message"]

    @patch("litellm.completion")
    def test_user_template_is_used(self, mock_completion, client, configured_generator, db):
        mock_completion.return_value = _completion(json.dumps(ARTICLE_JSON))
        db.add(UserSettings(user_id="anonymous", article_template="Write about {{topic}} as JSON"))
        db.commit()

        client.post("/api/articles/generate", json={"topic": "Queues"})

        assert mock_completion.call_args.kwargs["messages"][0]["content"] == "Write about Queues as JSON"

    def test_not_configured_is_503(self, client):
        resp = client.post("/api/articles/generate", json={"topic": "Webhooks"})
        assert resp.status_code == 503
        assert resp.json()["error"] == "GENERATION_NOT_CONFIGURED"

    def test_word_count_bounds(self, client):
        resp = client.post("/api/articles/generate", json={"topic": "x", "word_count": 100})
        assert resp.status_code == 422
