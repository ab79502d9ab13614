# boxoffice_etl/parsers/direct_line.py
"""Lignes compactes : code, date et heure collés à une suite de chiffres sans séparateur."""
from __future__ import annotations

import logging
import re
from typing import List

from boxoffice_etl.core.errors import FieldDecodeMismatch
from boxoffice_etl.core.fields import decode_compact, parse_performance_date
from boxoffice_etl.core.models import SalesRecord
from boxoffice_etl.parsers.text import ReportText

log = logging.getLogger(__name__)

COMPACT_LINE = re.compile(
    r"^(\d{4,6}[A-Z]{1,2})(\d{1,2}/\d{1,2}/\d{4})\s*(\d{1,2}:\d{2}\s*[AP]M)(.+)$"
)


def parse(report: ReportText) -> List[SalesRecord]:
    records: List[SalesRecord] = []
    matched = failed = 0
    for line in report.lines:
        m = COMPACT_LINE.match(line)
        if not m:
            continue
        matched += 1
        code, day, _time, section = m.groups()
        try:
            breakdown = decode_compact(section)
        except FieldDecodeMismatch as e:
            failed += 1
            log.warning("direct_line: ligne %s ignorée (%s)", code, e.reason)
            continue
        records.append(breakdown.to_record(code, parse_performance_date(day), report.sentinel_date))
    if matched:
        log.info("direct_line: %s lignes reconnues, %s décodées, %s rejetées",
                 matched, len(records), failed)
    return records
