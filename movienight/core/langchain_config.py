"""Export optional LangSmith tracing settings before the first LLM call."""

from __future__ import annotations

import logging
import os

from movienight.core.config import get_settings

logger = logging.getLogger(__name__)


def configure_langchain_env() -> None:
    """Push tracing flags into ``os.environ`` where LangChain reads them.

    Values already present in the environment win over settings.
    """

    settings = get_settings()
    if not settings.langchain_tracing_v2:
        return
    os.environ.setdefault("LANGCHAIN_TRACING_V2", "true")
    if settings.langchain_api_key:
        os.environ.setdefault("LANGCHAIN_API_KEY", settings.langchain_api_key)
    else:
        logger.warning("LANGCHAIN_TRACING_V2 is set but LANGCHAIN_API_KEY is missing")
    if settings.langchain_project:
        os.environ.setdefault("LANGCHAIN_PROJECT", settings.langchain_project)
