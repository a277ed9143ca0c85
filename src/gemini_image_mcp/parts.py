from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Sequence, Union


@dataclass(frozen=True)
class TextPart:
    text: str

    def to_json(self) -> dict[str, Any]:
        return {"text": self.text}


@dataclass(frozen=True)
class InlineImagePart:
    mime_type: str
    data: str  # base64

    def to_json(self) -> dict[str, Any]:
        return {"inline_data": {"mime_type": self.mime_type, "data": self.data}}


ContentPart = Union[TextPart, InlineImagePart]


def build_request_body(parts: Sequence[ContentPart]) -> dict[str, Any]:
    """Wrap one turn of parts in a ``generateContent`` request body."""
    if not parts:
        raise ValueError("a request needs at least one part")
    return {"contents": [{"parts": [part.to_json() for part in parts]}]}
