# boxoffice_etl/parsers/__init__.py

import logging
from typing import Callable, List, Tuple

from boxoffice_etl.core.errors import NoMatchingFormat
from boxoffice_etl.core.models import SalesRecord

from . import direct_line, fallback, narrative, tabular, token_sequence
from .text import RawReport, ReportText

log = logging.getLogger(__name__)

Strategy = Callable[[ReportText], List[SalesRecord]]

# ordre de priorité : la première stratégie qui rend quelque chose gagne
STRATEGIES: List[Tuple[str, Strategy]] = [
    ("tabular", tabular.parse),
    ("direct_line", direct_line.parse),
    ("token_sequence", token_sequence.parse),
    ("narrative", narrative.parse),
]

FALLBACK: Tuple[str, Strategy] = ("fallback", fallback.parse)


def parse(raw: RawReport) -> Tuple[List[SalesRecord], str]:
    """Rend (records, nom de la stratégie) ; NoMatchingFormat si rien ne sort."""
    report = raw if isinstance(raw, ReportText) else ReportText.from_raw(raw)
    log.info("parse: %s lignes, %s fragments", len(report.lines), len(report.tokens))

    for name, strategy in STRATEGIES + [FALLBACK]:
        records = strategy(report)
        if records:
            log.info("parse: %s performances via %s", len(records), name)
            return records, name
        log.debug("parse: %s n'a rien donné", name)

    raise NoMatchingFormat("Could not parse report with any known format")


__all__ = ["STRATEGIES", "FALLBACK", "ReportText", "parse"]
