# boxoffice_etl/parsers/tabular.py
"""Lignes dont l'extraction a gardé l'espacement des colonnes (tabulations ou espaces)."""
from __future__ import annotations

import logging
import re
from typing import List, Optional

from boxoffice_etl.core.fields import PERFORMANCE_CODE, breakdown_from_columns, parse_performance_date
from boxoffice_etl.core.models import SalesRecord
from boxoffice_etl.parsers.text import ReportText

log = logging.getLogger(__name__)

MIN_FIELDS = 10

_DATE = re.compile(r"^\d{1,2}/\d{1,2}/\d{4}$|^\d{4}-\d{1,2}-\d{1,2}$")
_TIME = re.compile(r"^\d{1,2}:\d{2}(?:[AP]M)?$", re.I)
_MERIDIEM = re.compile(r"^[AP]M$", re.I)


def split_fields(line: str) -> List[str]:
    """
    Découpe sur les tabulations / espaces, puis recolle date + heure en un seul champ
    ("10/10/2025 8:00 PM") pour que les positions suivantes soient fixes.
    """
    parts = [p for p in re.split(r"[\t ]+", line.strip()) if p]
    if len(parts) < 2 or not _DATE.match(parts[1]):
        return parts
    stamp = [parts[1]]
    i = 2
    if i < len(parts) and _TIME.match(parts[i]):
        stamp.append(parts[i]); i += 1
        if i < len(parts) and _MERIDIEM.match(parts[i]):
            stamp.append(parts[i]); i += 1
    return [parts[0], " ".join(stamp)] + parts[i:]


def parse_line(line: str, report: ReportText) -> Optional[SalesRecord]:
    parts = split_fields(line)
    if len(parts) < MIN_FIELDS or not PERFORMANCE_CODE.match(parts[0]):
        return None
    breakdown = breakdown_from_columns(parts[2:])
    return breakdown.to_record(parts[0], parse_performance_date(parts[1]), report.sentinel_date)


def parse(report: ReportText) -> List[SalesRecord]:
    records: List[SalesRecord] = []
    for line in report.lines:
        rec = parse_line(line, report)
        if rec is not None:
            log.debug("tabular: %s single=%s sub=%s", rec.performance_code,
                      rec.single_tickets_sold, rec.subscription_tickets_sold)
            records.append(rec)
    return records
