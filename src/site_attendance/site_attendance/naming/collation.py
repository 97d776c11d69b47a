from __future__ import annotations

import unicodedata

_KATAKANA_START = 0x30A1
_KATAKANA_END = 0x30F6
_KANA_OFFSET = 0x60


def _fold_kana(text: str) -> str:
    return "".join(
        chr(ord(ch) - _KANA_OFFSET) if _KATAKANA_START <= ord(ch) <= _KATAKANA_END else ch
        for ch in text
    )


def collation_key(text: str) -> tuple[str, str]:
    """Sort key for Japanese display names.

    Width variants are unified (NFKC), katakana sorts with hiragana, case is
    ignored. The raw text is the tie-breaker so ordering stays deterministic.
    """
    value = text or ""
    folded = _fold_kana(unicodedata.normalize("NFKC", value)).casefold()
    return folded, value
