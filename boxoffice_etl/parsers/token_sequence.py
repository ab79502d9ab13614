# boxoffice_etl/parsers/token_sequence.py
"""
Fragments PDF un par un : chaque cellule du tableau est un fragment.
Séquence attendue après le code :
date/heure, budget%, fixed #, fixed $, non-fixed #, non-fixed $, single #, single $,
subtotal $, [reserved #], reserved $, total $, avail, capacité%.
"""
from __future__ import annotations

import logging
from typing import List

from boxoffice_etl.core.fields import (
    PERFORMANCE_CODE, breakdown_from_columns, is_count, is_currency, parse_performance_date,
)
from boxoffice_etl.core.models import SalesRecord
from boxoffice_etl.parsers.text import ReportText

log = logging.getLogger(__name__)


def _is_code(tokens: List[str], i: int) -> bool:
    # un code précédé de "Total" est une ligne de sous-total, pas une performance
    return bool(PERFORMANCE_CODE.match(tokens[i])) and not (i > 0 and "Total" in tokens[i - 1])


def parse(report: ReportText) -> List[SalesRecord]:
    records: List[SalesRecord] = []
    for page in report.pages:
        for i in range(len(page)):
            if not _is_code(page, i):
                continue
            idx = i + 1
            stamp = page[idx] if idx < len(page) else ""
            idx += 1
            head = page[idx: idx + 8]
            idx += 8
            if len(head) < 8:
                continue
            reserved_count, reserved = "0", "0.00"
            # reserved # n'est présent que si un compteur suit le sous-total
            if idx < len(page) and is_count(page[idx]):
                reserved_count = page[idx]; idx += 1
            # reserved $ puis total $ : deux montants de suite
            if idx + 1 < len(page) and is_currency(page[idx]) and is_currency(page[idx + 1]):
                reserved = page[idx]; idx += 1
            total, avail, capacity = (page[idx: idx + 3] + ["", "", ""])[:3]
            breakdown = breakdown_from_columns(head + [reserved_count, reserved, total, avail, capacity])
            records.append(breakdown.to_record(page[i], parse_performance_date(stamp), report.sentinel_date))
            log.debug("token_sequence: %s (%s)", page[i], stamp)
    return records
