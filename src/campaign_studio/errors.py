"""Error taxonomy shared by every pipeline stage."""

from __future__ import annotations

from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    SCHEMA_VIOLATION = "schema_violation"
    MALFORMED_DOCUMENT = "malformed_document"
    UPSTREAM_UNAVAILABLE = "upstream_unavailable"
    AMBIGUOUS_INSTRUCTION = "ambiguous_instruction"


_USER_MESSAGES = {
    ErrorKind.SCHEMA_VIOLATION: "I couldn't make sense of the generated design data.",
    ErrorKind.MALFORMED_DOCUMENT: "The generated page came back incomplete.",
    ErrorKind.UPSTREAM_UNAVAILABLE: "The content generator is not responding right now.",
    ErrorKind.AMBIGUOUS_INSTRUCTION: "I wasn't sure which part of the campaign to change.",
}


class GenerationError(Exception):
    """A stage of the generation pipeline could not produce its artifact.

    ``message`` is for logs only. Anything shown to an end user must go
    through :meth:`user_message`.
    """

    def __init__(self, kind: ErrorKind, message: str, stage: Optional[str] = None) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.stage = stage

    def user_message(self) -> str:
        return f"{_USER_MESSAGES[self.kind]} Nothing was changed, please try again."

    def to_dict(self) -> dict:
        return {"kind": self.kind.value, "message": self.message, "stage": self.stage}

    @classmethod
    def from_dict(cls, data: dict) -> "GenerationError":
        return cls(ErrorKind(data["kind"]), data.get("message", ""), data.get("stage"))

    def __repr__(self) -> str:
        return f"GenerationError(kind={self.kind.value!r}, stage={self.stage!r}, message={self.message!r})"
