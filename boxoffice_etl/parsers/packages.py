# boxoffice_etl/parsers/packages.py
from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import List, Optional, Sequence

from boxoffice_etl.core.fields import parse_currency, parse_int, parse_report_date

log = logging.getLogger(__name__)

# premier motif trouvé = catégorie retenue
CATEGORY_PATTERNS = [
    ("Classical", re.compile(r"classical", re.I)),
    ("Pops", re.compile(r"pops", re.I)),
    ("Flex", re.compile(r"flex", re.I)),
    ("Family", re.compile(r"family", re.I)),
    ("Specials", re.compile(r"special", re.I)),
]

PACKAGE_TYPES = [
    ("SY-FlexPass", re.compile(r"^SY-FlexPass", re.I)),
    ("SY-Full", re.compile(r"^SY-Full", re.I)),
    ("SY-Mini", re.compile(r"^SY-Mini", re.I)),
]

DEFAULT_SEASON = "25-26"

_PACKAGE_NAME = re.compile(r"^(?:25|26|27)\s+.+$")
_NUMERIC = re.compile(r"^[\d,]+$|^[\d,]+\.\d{2}$")
_ROW_BREAK = re.compile(r"^(?:25|26|27)\s|^SY-")


@dataclass
class PackageRow:
    package_type: str
    package_name: str
    package_seats: int
    perf_seats: int
    total_amount: Decimal
    paid_amount: Decimal
    orders: int


@dataclass
class PackageReport:
    packages: List[PackageRow] = field(default_factory=list)
    report_date: Optional[date] = None
    season: Optional[str] = None


def detect_category(*hints: Optional[str]) -> Optional[str]:
    """Catégorie depuis le nom de fichier, l'objet du mail ou une valeur explicite."""
    for hint in hints:
        if not hint:
            continue
        for category, pattern in CATEGORY_PATTERNS:
            if pattern.search(hint):
                return category
    return None


def snapshot_date_from_filename(filename: Optional[str]) -> Optional[date]:
    """'12.04.25 Classical Package Sales.pdf' -> 2025-12-04 ; accepte aussi une date ISO."""
    if not filename:
        return None
    m = re.search(r"(\d{1,2})\.(\d{1,2})\.(\d{2})", filename)
    try:
        if m:
            month, day, yy = (int(g) for g in m.groups())
            return date(2000 + yy if yy < 50 else 1900 + yy, month, day)
        m = re.search(r"(\d{4})-(\d{2})-(\d{2})", filename)
        if m:
            return date(*(int(g) for g in m.groups()))
    except ValueError:
        return None
    return None


def _extract_season(items: Sequence[str]) -> Optional[str]:
    for item in items:
        m = re.search(r"Season:\s*(\d{2}-\d{2})", item) or re.search(r"(\d{2}-\d{2})\s*SY", item)
        if m:
            return m.group(1)
    return None


def parse_package_report(pages: Sequence[Sequence[str]]) -> PackageReport:
    report = PackageReport()
    for items in pages:
        report.season = report.season or _extract_season(items)
        if report.report_date is None:
            for item in items:
                report.report_date = parse_report_date(item)
                if report.report_date:
                    break

        package_type: Optional[str] = None
        for i, item in enumerate(items):
            header = next((name for name, pat in PACKAGE_TYPES if pat.match(item)), None)
            if header:
                package_type = header
                continue
            if not package_type or not _PACKAGE_NAME.match(item):
                continue

            values: List[str] = []
            for val in items[i + 1:]:
                if len(values) == 5:
                    break
                if _NUMERIC.match(val):
                    values.append(val)
                elif _ROW_BREAK.match(val) or val in ("SubTotal", "Total"):
                    break
            if len(values) < 5:
                continue
            report.packages.append(PackageRow(
                package_type=package_type,
                package_name=item,
                package_seats=parse_int(values[0]),
                perf_seats=parse_int(values[1]),
                total_amount=parse_currency(values[2]),
                paid_amount=parse_currency(values[3]),
                orders=parse_int(values[4]),
            ))

    report.season = report.season or DEFAULT_SEASON
    log.info("packages: %s lignes (saison %s)", len(report.packages), report.season)
    return report
