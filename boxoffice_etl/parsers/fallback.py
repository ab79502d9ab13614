# boxoffice_etl/parsers/fallback.py
"""
Filet de secours : n'importe quel "Performance: XXX" / "Code: XXX" dans le texte.
Les lignes produites n'ont aucune donnée de vente (tout à zéro) et sont marquées low_confidence.
"""
from __future__ import annotations

import logging
import re
from typing import List

from boxoffice_etl.core.models import SalesRecord
from boxoffice_etl.parsers.text import ReportText

log = logging.getLogger(__name__)

_MENTION = re.compile(r"(?i:Performance|Code)\s*[:\-]?\s*([A-Z0-9]{3,})")


def parse(report: ReportText) -> List[SalesRecord]:
    text = " ".join(report.lines)
    seen = set()
    records: List[SalesRecord] = []
    for m in _MENTION.finditer(text):
        code = m.group(1)
        if code in seen:
            continue
        seen.add(code)
        records.append(SalesRecord(
            performance_code=code,
            performance_date=report.sentinel_date,
            date_is_placeholder=True,
            title=f"Performance {code}",
            low_confidence=True,
        ))
    if records:
        log.warning("fallback: %s codes repérés sans données de vente", len(records))
    return records
