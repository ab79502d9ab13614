# boxoffice_etl/parsers/comps.py
"""
Rapport "Performance Ticket Counts" : après chaque code, la ligne "Ticket Price" donne
Package #/$, Single #/$, Discount #/$ puis Comp #.
"""
from __future__ import annotations

import logging
import re
from datetime import date
from typing import List, Optional, Sequence, Tuple

from boxoffice_etl.core.fields import parse_int, parse_report_date
from boxoffice_etl.core.models import CompRecord

log = logging.getLogger(__name__)

COMP_CODE = re.compile(r"^(?:25|26|27)\d{4}[A-Z]{1,2}$|^(?:25|26|27)[A-Z]+\d*$")
_LOOKAHEAD = 20
# Package, Single, Discount : (#, $) chacun
_SKIPPED_COLUMNS = 6


def _is_code(items: Sequence[str], i: int) -> bool:
    if not COMP_CODE.match(items[i]):
        return False
    prev = items[i - 1] if i > 0 else ""
    return "Total" not in prev and "26 " not in prev


def parse_comp_report(items: Sequence[str]) -> Tuple[List[CompRecord], Optional[date]]:
    report_date: Optional[date] = None
    for item in items:
        if "Run by" in item:
            report_date = parse_report_date(item)
            if report_date:
                break

    records: List[CompRecord] = []
    for i in range(len(items)):
        if not _is_code(items, i):
            continue
        price_idx = None
        for j in range(i + 1, min(i + _LOOKAHEAD, len(items))):
            if items[j] == "Ticket Price":
                price_idx = j
                break
            if COMP_CODE.match(items[j]):
                break
        if price_idx is None:
            continue
        idx = price_idx + 1 + _SKIPPED_COLUMNS
        comp = items[idx] if idx < len(items) else "0"
        records.append(CompRecord(performance_code=items[i], comp_tickets=parse_int(comp)))

    log.info("comps: %s performances, %s billets exonérés",
             len(records), sum(r.comp_tickets for r in records))
    return records, report_date
