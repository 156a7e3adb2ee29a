"""Base LLM provider interface with structured-output and document helpers.

Every call returns a tagged outcome instead of raising on bad output:

- ``Ok(value)``: the backend produced what was asked for.
- ``SchemaViolation``: structured output did not parse or validate.
- ``MalformedDocument``: free-text output held no locatable HTML document.

Transport failures (network, timeout, HTTP errors) are not outcomes; they
raise ``GenerationError(UPSTREAM_UNAVAILABLE)`` from ``generate_text``.
"""

from __future__ import annotations

import json
import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Generic, Type, TypeVar, Union

from pydantic import BaseModel, ValidationError

T = TypeVar("T")
M = TypeVar("M", bound=BaseModel)

logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"```(?:json|html)?\s*\n?(.*?)```", re.DOTALL | re.IGNORECASE)
_OPEN_FENCE_RE = re.compile(r"^```[a-zA-Z]*\s*\n?")
_DOC_START_RE = re.compile(r"<(!DOCTYPE\s+html|html)[\s>]", re.IGNORECASE)

JSON_NUDGE = (
    "\n\nIMPORTANT: Return ONLY valid JSON matching the schema. "
    "No markdown, no code fences, no commentary."
)


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T


@dataclass(frozen=True)
class SchemaViolation:
    message: str
    raw: str = ""


@dataclass(frozen=True)
class MalformedDocument:
    message: str
    raw: str = ""


StructuredOutcome = Union[Ok[M], SchemaViolation]
DocumentOutcome = Union[Ok[str], MalformedDocument]


def strip_code_fences(text: str) -> str:
    """Remove markdown code fences wrapping JSON or HTML."""
    m = _FENCE_RE.search(text)
    if m:
        return m.group(1).strip()
    # Unterminated fence (output cut off or closing fence omitted).
    return _OPEN_FENCE_RE.sub("", text.strip()).strip()


def extract_document(text: str) -> str | None:
    """Locate a complete HTML document in backend output.

    Accepts output that starts with ``<!DOCTYPE html>`` or ``<html``. When a
    preamble was prepended, the document is re-derived from the first marker
    onwards. Returns ``None`` when no document can be found.
    """
    cleaned = strip_code_fences(text)
    if _DOC_START_RE.match(cleaned + " "):
        return cleaned
    m = _DOC_START_RE.search(text)
    if m is None:
        return None
    tail = text[m.start():]
    end = tail.lower().rfind("</html>")
    if end != -1:
        tail = tail[: end + len("</html>")]
    return tail.strip()


class LLMProvider(ABC):
    """Abstract base class for LLM providers."""

    schema_retries: int = 0

    @abstractmethod
    def generate_text(self, system: str, user: str) -> str:
        """Send system + user messages and return the assistant response text."""
        ...

    def generate_json_text(self, system: str, user: str) -> str:
        """Text call used for structured output. Providers may tune sampling here."""
        return self.generate_text(system, user)

    def generate_structured(self, system: str, user: str, schema: Type[M]) -> StructuredOutcome:
        """Generate text, parse it as JSON, and validate against a Pydantic model."""
        last_error = ""
        raw = ""
        for attempt in range(1, self.schema_retries + 2):
            nudge = JSON_NUDGE if attempt > 1 else ""
            raw = self.generate_json_text(system + nudge, user)
            cleaned = strip_code_fences(raw)
            try:
                data = json.loads(cleaned)
                return Ok(schema.model_validate(data))
            except json.JSONDecodeError as exc:
                last_error = f"invalid JSON: {exc}"
            except ValidationError as exc:
                last_error = f"{exc.error_count()} validation error(s): {exc.errors()[0]['msg']}"
            logger.debug("Structured output for %s rejected (attempt %d): %s", schema.__name__, attempt, last_error)
        return SchemaViolation(f"{schema.__name__}: {last_error}", raw=raw)

    def generate_document(self, system: str, user: str) -> DocumentOutcome:
        """Generate a self-contained HTML document."""
        raw = self.generate_text(system, user)
        document = extract_document(raw)
        if document is None:
            return MalformedDocument("no <!DOCTYPE html> or <html> marker in output", raw=raw)
        return Ok(document)
