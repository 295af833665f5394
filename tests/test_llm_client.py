import asyncio
import json
from types import SimpleNamespace

from movienight.services import llm as llm_module
from movienight.services.llm import (
    RecommendationClient,
    RecommendationStatus,
    extract_json_block,
    parse_recommendations,
)
from movienight.services.models import MediaKind


def _items(count):
    return [
        {
            "title": f"Film {idx}",
            "year": 1990 + idx,
            "director": "Director",
            "type": "series" if idx == 0 else "film",
            "genre": "Drama",
            "runtime": "2h",
            "logline": "A logline.",
            "why": "Because.",
            "trust": "Festival darling.",
            "tmdb_query": f"film {idx}",
        }
        for idx in range(count)
    ]


def _reply(count=4, *, prose=True):
    body = json.dumps({"recommendations": _items(count)})
    return f"Here are your picks!\n{body}\nEnjoy the show." if prose else body


class FakeLLM:
    def __init__(self, content=None, error=None):
        self.content = content
        self.error = error
        self.messages = None

    async def ainvoke(self, messages):
        self.messages = messages
        if self.error:
            raise self.error
        return SimpleNamespace(content=self.content)


def test_extract_json_block_is_greedy():
    text = 'noise {"a": {"b": 1}} trailing } end'
    assert extract_json_block(text) == '{"a": {"b": 1}} trailing }'
    assert extract_json_block("no braces here") is None


def test_parse_valid_reply_coerces_fields():
    result = parse_recommendations(_reply())
    assert result.ok
    assert len(result.recommendations) == 4
    first = result.recommendations[0]
    assert first.year == "1990"
    assert first.type is MediaKind.SERIES
    assert result.recommendations[1].type is MediaKind.FILM


def test_parse_accepts_numeric_titles():
    items = _items(4)
    items[1]["title"] = 1917
    result = parse_recommendations(json.dumps({"recommendations": items}))
    assert result.ok
    assert result.recommendations[1].title == "1917"


def test_parse_truncates_extra_items():
    result = parse_recommendations(_reply(6))
    assert result.ok
    assert [rec.title for rec in result.recommendations] == ["Film 0", "Film 1", "Film 2", "Film 3"]


def test_parse_failure_variants():
    assert parse_recommendations("sorry, I can't help").status is RecommendationStatus.UNPARSEABLE
    assert parse_recommendations("{not json}").status is RecommendationStatus.UNPARSEABLE
    assert parse_recommendations('{"picks": []}').status is RecommendationStatus.MALFORMED
    assert parse_recommendations(_reply(3)).status is RecommendationStatus.MALFORMED

    items = _items(4)
    items[2]["title"] = "  "
    missing_title = json.dumps({"recommendations": items})
    assert parse_recommendations(missing_title).status is RecommendationStatus.MALFORMED


def test_client_uses_injected_llm():
    fake = FakeLLM(content=_reply())
    result = asyncio.run(RecommendationClient(llm=fake).get_recommendations("prompt text"))
    assert result.ok
    assert len(fake.messages) == 1
    assert fake.messages[0].content == "prompt text"


def test_client_flattens_list_content():
    parts = [{"type": "text", "text": "Sure: "}, {"type": "text", "text": _reply(prose=False)}]
    result = asyncio.run(RecommendationClient(llm=FakeLLM(content=parts)).get_recommendations("p"))
    assert result.ok


def test_client_reports_provider_errors():
    fake = FakeLLM(error=RuntimeError("rate limited upstream"))
    result = asyncio.run(RecommendationClient(llm=fake).get_recommendations("p"))
    assert result.status is RecommendationStatus.PROVIDER_ERROR
    assert "rate limited" in result.detail


def test_client_without_api_key_is_unavailable():
    result = asyncio.run(RecommendationClient().get_recommendations("p"))
    assert result.status is RecommendationStatus.PROVIDER_ERROR


def test_client_builds_chat_openai_with_token_budget(monkeypatch):
    captured = {}

    def _fake_chat_openai(**kwargs):
        captured.update(kwargs)
        return FakeLLM(content=_reply())

    monkeypatch.setenv("OPENAI_API_KEY", "fake-key")
    monkeypatch.setenv("OPENAI_MAX_TOKENS", "1500")
    llm_module.get_settings.cache_clear()
    monkeypatch.setattr(llm_module, "ChatOpenAI", _fake_chat_openai)

    result = asyncio.run(RecommendationClient().get_recommendations("p"))
    assert result.ok
    assert captured["max_tokens"] == 1500
    assert captured["api_key"] == "fake-key"
