from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional

from ..core.constants import DEFAULT_EXTERNAL_MARKER

SEPARATOR = " / "

# a slash (half- or full-width) only separates when whitespace surrounds it
_SEGMENT_BREAK = re.compile(r"\s+[/／]\s+")
_LEADING_BREAK = re.compile(r"^\s*[/／]\s*")
_TRAILING_BREAK = re.compile(r"\s+[/／]$")


@dataclass(frozen=True)
class ExternalMemo:
    name: str
    memo: str = ""


class ExternalMemoCodec:
    """Stores an external worker's display name inside the memo column.

    Format: "<MARKER> / <name>[ / <memo>]". Decode splits on a slash with
    whitespace on both sides (full-width slash and space accepted), so "5/10"
    stays intact. A memo that itself contains " / " comes back as one memo
    (segments are re-joined), but surrounding whitespace and empty segments are
    not preserved.
    """

    def __init__(self, marker: str = DEFAULT_EXTERNAL_MARKER):
        if not marker or not marker.strip():
            raise ValueError("marker must not be empty")
        self._marker = marker.strip()

    @property
    def marker(self) -> str:
        return self._marker

    def encode(self, name: str, memo: Optional[str] = None) -> str:
        name = (name or "").strip()
        if not name:
            raise ValueError("external worker name must not be empty")
        parts = [self._marker, name]
        if memo and memo.strip():
            parts.append(memo.strip())
        return SEPARATOR.join(parts)

    def decode(self, text: Optional[str]) -> Optional[ExternalMemo]:
        if not text:
            return None
        normalized = text.strip()
        if not normalized.startswith(self._marker):
            return None
        rest = normalized[len(self._marker):]
        if rest and not (rest[0].isspace() or rest[0] in "/／"):
            return None
        rest = _TRAILING_BREAK.sub("", _LEADING_BREAK.sub("", rest, count=1))
        segments = [part.strip() for part in _SEGMENT_BREAK.split(rest)]
        segments = [part for part in segments if part]
        if not segments:
            return None
        return ExternalMemo(name=segments[0], memo=SEPARATOR.join(segments[1:]))

    def is_external(self, text: Optional[str]) -> bool:
        return self.decode(text) is not None

    def strip(self, text: Optional[str]) -> str:
        """Free memo part: the memo segment for external memos, the text itself otherwise."""
        decoded = self.decode(text)
        if decoded is not None:
            return decoded.memo
        return text or ""
