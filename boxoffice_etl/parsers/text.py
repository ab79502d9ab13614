# boxoffice_etl/parsers/text.py
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import List, Sequence, Union

from boxoffice_etl.core.config import settings

# un blob texte, une page de fragments, ou plusieurs pages de fragments
RawReport = Union[str, Sequence[str], Sequence[Sequence[str]]]


@dataclass
class ReportText:
    """Les deux vues d'un même rapport : lignes de texte et fragments PDF dans l'ordre de lecture."""
    lines: List[str]
    pages: List[List[str]] = field(default_factory=list)
    sentinel_date: date = field(default_factory=lambda: date.fromisoformat(settings.sentinel_date))

    @property
    def tokens(self) -> List[str]:
        return [t for page in self.pages for t in page]

    @classmethod
    def from_raw(cls, raw: RawReport) -> "ReportText":
        if isinstance(raw, str):
            lines = _split_lines(raw)
            return cls(lines=lines, pages=[lines])
        raw = list(raw)
        if raw and not isinstance(raw[0], str):
            pages = [[str(t) for t in page] for page in raw]
        else:
            pages = [[str(t) for t in raw]]
        lines: List[str] = []
        for page in pages:
            for fragment in page:
                lines.extend(_split_lines(fragment))
        return cls(lines=lines, pages=[[t.strip() for t in page if t and t.strip()] for page in pages])


def _split_lines(text: str) -> List[str]:
    # les tabulations sont gardées : la stratégie tabulaire s'en sert
    return [line.strip(" \r") for line in text.split("\n") if line.strip()]
