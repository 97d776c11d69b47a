from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional, Tuple

from ..core.enums import MemoMatch

_SPLIT = re.compile(r"[\s\u3000]+")


def _tokens(text: Optional[str]) -> Tuple[str, ...]:
    return tuple(t for t in _SPLIT.split(text or "") if t)


@dataclass(frozen=True)
class MemoQuery:
    """Keyword query over memos: "仕上げ -手直し" means contains 仕上げ and not 手直し.

    A lone "-" is an ordinary inclusion term.
    """

    include: Tuple[str, ...] = ()
    exclude: Tuple[str, ...] = ()

    @classmethod
    def parse(cls, text: Optional[str]) -> "MemoQuery":
        include, exclude = [], []
        for token in _tokens(text):
            if token.startswith("-") and len(token) > 1:
                exclude.append(token[1:])
            else:
                include.append(token)
        return cls(include=tuple(include), exclude=tuple(exclude))

    @property
    def is_empty(self) -> bool:
        return not self.include and not self.exclude

    def matches(self, memo: Optional[str], mode: MemoMatch = MemoMatch.PARTIAL) -> bool:
        if self.is_empty:
            return True
        if not memo:
            return not self.include

        if mode == MemoMatch.EXACT:
            words = set(_tokens(memo))
            return all(t in words for t in self.include) and not any(t in words for t in self.exclude)

        return all(t in memo for t in self.include) and not any(t in memo for t in self.exclude)
