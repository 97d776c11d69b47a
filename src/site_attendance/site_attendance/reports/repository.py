from __future__ import annotations

from datetime import date
from typing import Protocol, Sequence

from .model import ReportEntry


class ReportRepository(Protocol):
    def fetch_page(self, site_id: str, start: date, end: date, *, offset: int, limit: int) -> Sequence[ReportEntry]:
        """Entries of one site in [start, end] joined with master names, stable order."""
        raise NotImplementedError
