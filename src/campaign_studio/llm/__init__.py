"""LLM provider abstraction."""

from campaign_studio.llm.base import (
    LLMProvider,
    MalformedDocument,
    Ok,
    SchemaViolation,
    extract_document,
    strip_code_fences,
)
from campaign_studio.llm.openai_provider import OpenAIProvider

__all__ = [
    "LLMProvider",
    "MalformedDocument",
    "Ok",
    "OpenAIProvider",
    "SchemaViolation",
    "extract_document",
    "strip_code_fences",
]
