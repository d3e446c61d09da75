"""
Tests for caption generation and its template fallback.
"""
import asyncio
import json
from types import SimpleNamespace

from services.content_pipeline.caption_generator import (
    FALLBACK_TEMPLATES,
    FOLLOW_FOOTER,
    CaptionGenerator,
)
from services.content_pipeline.text_utils import format_hashtags, format_number, truncate


class FakeCompletions:
    def __init__(self, content=None, error=None):
        self.content = content
        self.error = error
        self.requests = []

    async def create(self, **kwargs):
        self.requests.append(kwargs)
        if self.error:
            raise self.error
        message = SimpleNamespace(content=self.content)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


def fake_client(content=None, error=None):
    completions = FakeCompletions(content, error)
    return SimpleNamespace(chat=SimpleNamespace(completions=completions)), completions


def test_generates_from_model_json(candidate_factory):
    """Model JSON becomes title, description and hashtags."""
    client, completions = fake_client(json.dumps({
        "title": "This Cat Has Zero Chill",
        "description": "You have to see how this ends. Follow for more!",
        "hashtags": ["cats", "#funny", "pets"],
    }))
    generator = CaptionGenerator(client=client)

    content = asyncio.run(generator.generate(candidate_factory("1")))

    assert content.fallback is False
    assert content.title == "This Cat Has Zero Chill"
    assert content.description == (
        "You have to see how this ends. Follow for more!\n\n#cats #funny #pets\n\n" + FOLLOW_FOOTER
    )
    assert content.hashtags == ["cats", "funny", "pets"]
    request = completions.requests[0]
    assert request["response_format"] == {"type": "json_object"}
    assert "Original caption 1" in request["messages"][1]["content"]


def test_long_model_output_is_truncated(candidate_factory):
    """Title and description are capped at their limits."""
    client, _ = fake_client(json.dumps({
        "title": "T" * 300,
        "description": "D" * 3000,
        "hashtags": [],
    }))
    content = asyncio.run(CaptionGenerator(client=client).generate(candidate_factory("1")))

    assert len(content.title) == 100
    assert len(content.description) == 2000


def test_model_error_falls_back(candidate_factory):
    """An API error yields a template caption."""
    client, _ = fake_client(error=RuntimeError("rate limited"))
    content = asyncio.run(CaptionGenerator(client=client).generate(candidate_factory("1")))

    assert content.fallback is True
    assert "#viral #trending #foryou #fyp #explore #follow" in content.description
    assert content.description.endswith(FOLLOW_FOOTER)


def test_missing_fields_fall_back(candidate_factory):
    client, _ = fake_client(json.dumps({"title": "Only a title"}))
    content = asyncio.run(CaptionGenerator(client=client).generate(candidate_factory("1")))
    assert content.fallback is True


def test_no_api_key_uses_fallback(candidate_factory):
    """Without a key no request is made."""
    content = asyncio.run(CaptionGenerator(api_key=None).generate(candidate_factory("1")))
    assert content.fallback is True
    assert content.title in [title for title, _ in FALLBACK_TEMPLATES]


def test_fallback_is_deterministic_per_video(candidate_factory):
    """The same video always gets the same template."""
    video = candidate_factory("7421")
    first = CaptionGenerator.fallback(video)
    second = CaptionGenerator.fallback(video)
    assert first == second


def test_text_helpers():
    assert format_hashtags(["a", "#b", " ", "c"], max_count=2) == "#a #b"
    assert truncate("short", 10) == "short"
    assert truncate("abcdefghijkl", 8) == "abcde..."
    assert format_number(1500000) == "1.5M"
    assert format_number(2500) == "2.5K"
    assert format_number(999) == "999"


def test_close_releases_client_for_reuse():
    """A closed generator builds a fresh client instead of reusing the closed one."""
    generator = CaptionGenerator(api_key="sk-test")
    first = generator._get_client()

    asyncio.run(generator.close())

    assert generator._client is None
    second = generator._get_client()
    assert second is not None
    assert second is not first
