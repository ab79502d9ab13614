# boxoffice_etl/parsers/narrative.py
"""
Rapports "paragraphe" : une suite de paires libellé: valeur.
Un bloc commence à chaque ligne "ID:" et se termine au bloc suivant ou en fin de texte.
"""
from __future__ import annotations

import logging
import re
from typing import Any, Dict, List

from boxoffice_etl.core.fields import parse_currency, parse_int, parse_performance_date
from boxoffice_etl.core.models import SalesRecord
from boxoffice_etl.parsers.text import ReportText

log = logging.getLogger(__name__)

DEFAULT_CAPACITY = 1000
DEFAULT_OCCUPANCY_GOAL = 85.0
DEFAULT_SEASON = "Unknown"

_ID = re.compile(r"^\s*(?:Performance\s+)?ID\s*:\s*(\d+)", re.I)
_CODE = re.compile(r"^\s*(?:Performance\s+)?Code\s*:\s*([A-Z0-9]+)", re.I)
_TITLE = re.compile(r"^\s*(?:Title|Name)\s*:\s*(.+?)(?:\s+Series:|$)", re.I)
_DATE = re.compile(r"^\s*(?:Performance\s+)?Date\s*:\s*(.+)$", re.I)
_VENUE = re.compile(r"^\s*Venue\s*:\s*(.+)$", re.I)
_SEASON = re.compile(r"^\s*Season\s*:\s*(.+)$", re.I)
_CAPACITY = re.compile(r"^\s*Capacity\s*:\s*([\d,]+)\s*$", re.I)
_TICKETS = re.compile(r"(?:Single|Individual)\D*?([\d,]+).*?(?:Subscription|Sub)\D*?([\d,]+)", re.I)
_REVENUE = re.compile(r"(?:Revenue|Sales).*?\$?([\d,]+(?:\.\d+)?)", re.I)

# (regex, clé, conversion) ; la première qui matche et se convertit consomme la ligne
_FIELDS = [
    (_CODE, "performance_code", str.upper),
    (_TITLE, "title", str.strip),
    (_DATE, "performance_date", parse_performance_date),
    (_VENUE, "venue", str.strip),
    (_SEASON, "season", str.strip),
    (_CAPACITY, "capacity", parse_int),
]


def _finish(block: Dict[str, Any], report: ReportText) -> SalesRecord:
    code = block.get("performance_code")
    perf_date = block.get("performance_date")
    return SalesRecord(
        performance_code=code or f"AUTO{block['performance_id']}",
        performance_date=perf_date or report.sentinel_date,
        date_is_placeholder=perf_date is None,
        single_tickets_sold=block.get("single_tickets_sold", 0),
        subscription_tickets_sold=block.get("subscription_tickets_sold", 0),
        total_revenue=block.get("total_revenue", 0),
        title=block.get("title"),
        venue=block.get("venue"),
        season=block.get("season") or DEFAULT_SEASON,
        capacity=block.get("capacity") or DEFAULT_CAPACITY,
        occupancy_goal=DEFAULT_OCCUPANCY_GOAL,
        low_confidence=code is None,
    )


def parse(report: ReportText) -> List[SalesRecord]:
    blocks: List[Dict[str, Any]] = []
    current: Dict[str, Any] = {}

    for line in report.lines:
        m = _ID.search(line)
        if m:
            if current:
                blocks.append(current)
            current = {"performance_id": int(m.group(1))}
            continue

        for pattern, key, convert in _FIELDS:
            m = pattern.search(line)
            value = convert(m.group(1)) if m else None
            if value is not None:
                current[key] = value
                break
        else:
            m = _TICKETS.search(line)
            if m:
                current["single_tickets_sold"] = parse_int(m.group(1))
                current["subscription_tickets_sold"] = parse_int(m.group(2))
                continue
            m = _REVENUE.search(line)
            if m:
                current["total_revenue"] = parse_currency(m.group(1))

    if current:
        blocks.append(current)

    # un bloc sans ID ni code n'identifie aucune performance
    blocks = [b for b in blocks if b.get("performance_code") or "performance_id" in b]
    return [_finish(b, report) for b in blocks]
