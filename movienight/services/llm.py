"""Ask the LLM for recommendations and parse its free-form reply."""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from langchain_core.messages import HumanMessage
from langchain_openai import ChatOpenAI
from pydantic import ValidationError

from movienight.core.config import get_settings
from movienight.services.models import RawRecommendation
from movienight.services.prompts import RECOMMENDATION_COUNT

logger = logging.getLogger(__name__)

# Greedy on purpose: spans from the first "{" to the last "}".
_JSON_BLOCK = re.compile(r"\{[\s\S]*\}")


class RecommendationStatus(str, Enum):
    OK = "ok"
    PROVIDER_ERROR = "provider_error"
    UNPARSEABLE = "unparseable"
    MALFORMED = "malformed"


@dataclass(slots=True)
class RecommendationResult:
    status: RecommendationStatus
    recommendations: list[RawRecommendation] = field(default_factory=list)
    detail: str | None = None

    @property
    def ok(self) -> bool:
        return self.status is RecommendationStatus.OK


class RecommendationUnavailable(Exception):
    """The LLM step produced nothing the rest of the pipeline can use."""

    def __init__(self, result: RecommendationResult) -> None:
        super().__init__(f"{result.status.value}: {result.detail}")
        self.result = result


def extract_json_block(text: str) -> str | None:
    match = _JSON_BLOCK.search(text or "")
    return match.group(0) if match else None


def parse_recommendations(text: str) -> RecommendationResult:
    block = extract_json_block(text)
    if block is None:
        return RecommendationResult(RecommendationStatus.UNPARSEABLE, detail="no JSON object in reply")
    try:
        payload = json.loads(block)
    except ValueError as exc:
        return RecommendationResult(RecommendationStatus.UNPARSEABLE, detail=f"invalid JSON: {exc}")

    items = payload.get("recommendations") if isinstance(payload, dict) else None
    if not isinstance(items, list):
        return RecommendationResult(RecommendationStatus.MALFORMED, detail="missing recommendations array")
    if len(items) < RECOMMENDATION_COUNT:
        return RecommendationResult(
            RecommendationStatus.MALFORMED,
            detail=f"expected {RECOMMENDATION_COUNT} recommendations, got {len(items)}",
        )
    if len(items) > RECOMMENDATION_COUNT:
        logger.warning("LLM returned %d recommendations, keeping the first %d", len(items), RECOMMENDATION_COUNT)
        items = items[:RECOMMENDATION_COUNT]

    try:
        recommendations = [RawRecommendation.model_validate(item) for item in items]
    except ValidationError as exc:
        return RecommendationResult(RecommendationStatus.MALFORMED, detail=str(exc))
    return RecommendationResult(RecommendationStatus.OK, recommendations=recommendations)


def _extract_text(message: Any) -> str:
    content = getattr(message, "content", "")
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts = []
        for chunk in content:
            if isinstance(chunk, str):
                parts.append(chunk)
            elif isinstance(chunk, dict) and chunk.get("type") == "text":
                parts.append(str(chunk.get("text", "")))
        return "".join(parts)
    return str(content)


def build_llm() -> ChatOpenAI:
    settings = get_settings()
    return ChatOpenAI(
        model=settings.openai_model,
        api_key=settings.openai_api_key,
        temperature=settings.openai_temperature,
        max_tokens=settings.openai_max_tokens,
        timeout=settings.openai_timeout,
        max_retries=1,
    )


class RecommendationClient:
    """Single-turn LLM call; never raises, always returns a result variant."""

    def __init__(self, *, llm: Any | None = None) -> None:
        self._llm = llm

    async def get_recommendations(self, prompt: str) -> RecommendationResult:
        llm = self._llm
        if llm is None:
            if not get_settings().openai_api_key:
                return RecommendationResult(
                    RecommendationStatus.PROVIDER_ERROR,
                    detail="OPENAI_API_KEY is not configured",
                )
            llm = build_llm()

        try:
            message = await llm.ainvoke([HumanMessage(content=prompt)])
        except Exception as exc:  # provider/network failure of any flavour
            logger.warning("LLM recommendation call failed: %r", exc)
            return RecommendationResult(RecommendationStatus.PROVIDER_ERROR, detail=repr(exc))

        text = _extract_text(message)
        logger.debug("LLM raw reply: %s", text)
        result = parse_recommendations(text)
        if not result.ok:
            logger.warning("Unusable LLM reply (%s): %s", result.status.value, result.detail)
        return result
