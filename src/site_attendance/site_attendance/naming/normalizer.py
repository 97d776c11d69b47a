from __future__ import annotations

import re
from typing import Iterable, Optional, Sequence

from ..core.constants import DEFAULT_LEGAL_ENTITY_TOKENS

_WHITESPACE = re.compile(r"\s+")
_TRAILING_NUMBER = re.compile(r"[ \u3000]*[0-9０-９]+$")


def _is_ascii_word_char(ch: str) -> bool:
    return ch.isascii() and ch.isalnum()


class NameNormalizer:
    """Contractor / worker name normalization.

    - strip_legal_suffix(): display form, company-form tokens removed from both ends
    - normalize(): comparison key (no whitespace, lower-case)
    - normalize_mapping_key(): comparison key for import labels ("山田工業 2" == "山田工業")

    Tokens are tried in order, each once as a prefix and once as a suffix.
    A token that starts or ends with an ASCII letter/digit only matches on a word
    boundary, so "Corpus" keeps its "Corp".
    """

    def __init__(self, tokens: Optional[Iterable[str]] = None):
        self._tokens: Sequence[str] = tuple(tokens) if tokens is not None else DEFAULT_LEGAL_ENTITY_TOKENS

    @property
    def tokens(self) -> Sequence[str]:
        return self._tokens

    def _strip_prefix(self, text: str, token: str) -> str:
        if not text.startswith(token):
            return text
        rest = text[len(token):]
        if rest and _is_ascii_word_char(token[-1]) and _is_ascii_word_char(rest[0]):
            return text
        return rest.strip()

    def _strip_suffix(self, text: str, token: str) -> str:
        if not text.endswith(token):
            return text
        rest = text[: len(text) - len(token)]
        if rest and _is_ascii_word_char(token[0]) and _is_ascii_word_char(rest[-1]):
            return text
        return rest.strip()

    def strip_legal_suffix(self, text: str) -> str:
        if not text:
            return text or ""
        work = text.replace("\u3000", " ").strip()
        for token in self._tokens:
            work = self._strip_prefix(work, token)
            work = self._strip_suffix(work, token)
        return work or text

    @staticmethod
    def compact(text: str) -> str:
        """Remove every whitespace character (U+3000 included) and lower-case."""
        return _WHITESPACE.sub("", text or "").lower()

    def normalize(self, text: str) -> str:
        # Repeat until stable: removing spaces can expose another token at the edge.
        current = text or ""
        while True:
            nxt = self.compact(self.strip_legal_suffix(current))
            if nxt == current:
                return nxt
            current = nxt

    def normalize_contractor_label(self, text: str) -> str:
        return _TRAILING_NUMBER.sub("", self.strip_legal_suffix(text or "")).strip()

    def normalize_mapping_key(self, text: str) -> str:
        return self.normalize(self.normalize_contractor_label(text))


default_normalizer = NameNormalizer()
