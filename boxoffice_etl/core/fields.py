# boxoffice_etl/core/fields.py
"""
Décodage des champs numériques des rapports de ventes.

Le cas difficile est la ligne "compacte", où l'extraction PDF a supprimé tous les
séparateurs :

    251010E10/10/2025 8:00 PM51.1%48032,642.00171,209.6034017,790.7051,642.3000.0051,642.3061452.8%

La queue numérique suit l'ordre fixe
budget% | fixed #,$ | non-fixed #,$ | single #,$ | subtotal $ | reserved #,$ | total $ | avail | capacité%.
Seules les extrémités sont des ancres sûres (les % et les ".NN" des montants), on
décode donc depuis la fin. Un compteur est collé devant le montant qui suit : la
largeur du premier groupe de milliers de ce montant est ambiguë, on énumère les
découpages canoniques, on garde ceux dont les montants se recoupent et, parmi eux,
celui dont les sièges décodés collent le mieux à la capacité% imprimée.
"""
from __future__ import annotations

import logging
import re
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Iterator, List, Optional, Tuple

import dateparser

from boxoffice_etl.core.errors import FieldDecodeMismatch
from boxoffice_etl.core.models import CENT, SalesBreakdown

log = logging.getLogger(__name__)

# ------------------- valeurs simples -------------------

PERFORMANCE_CODE = re.compile(r"^\d{4,6}[A-Z]{1,2}$")

_CURRENCY = re.compile(r"(?:0|[1-9]\d{0,2}(?:,\d{3})*)\.\d{2}")
_COUNT = re.compile(r"0|[1-9]\d*|[1-9]\d{0,2}(?:,\d{3})+")
_BUDGET_PREFIX = re.compile(r"^([0-9.]+)%")
_CAPACITY_SUFFIX = re.compile(r"(100(?:\.\d+)?|\d{1,2}\.\d+)%$")


def _clean(text: Optional[str]) -> str:
    if not text:
        return ""
    return text.replace("$", "").replace("%", "").replace(",", "").replace(" ", "").strip()


def parse_int(text: Optional[str]) -> int:
    """'1,234' -> 1234 ; tout ce qui ne se lit pas vaut 0."""
    t = _clean(text)
    try:
        return int(t)
    except ValueError:
        try:
            return int(Decimal(t))
        except (InvalidOperation, ValueError):
            return 0


def parse_currency(text: Optional[str]) -> Decimal:
    """'$1,209.60' -> Decimal('1209.60') ; 0.00 si illisible."""
    t = _clean(text)
    try:
        return Decimal(t).quantize(CENT)
    except (InvalidOperation, ValueError):
        return Decimal("0.00")


def parse_percent(text: Optional[str]) -> float:
    t = _clean(text)
    try:
        return float(t)
    except ValueError:
        return 0.0


def is_currency(text: str) -> bool:
    return bool(re.fullmatch(r"\$?\d{1,3}(?:,\d{3})*\.\d{2}", text or ""))


def is_count(text: str) -> bool:
    return bool(re.fullmatch(r"[\d,]+", text or ""))


def is_percent(text: str) -> bool:
    return bool(re.fullmatch(r"\d+(?:\.\d+)?%", text or ""))


# ------------------- dates -------------------

_DATE_FORMATS: List[Tuple[re.Pattern, Tuple[int, int, int]]] = [
    (re.compile(r"(\d{1,2})/(\d{1,2})/(\d{4})"), (3, 1, 2)),   # MM/DD/YYYY
    (re.compile(r"(\d{4})-(\d{1,2})-(\d{1,2})"), (1, 2, 3)),   # YYYY-MM-DD
    (re.compile(r"(\d{1,2})-(\d{1,2})-(\d{4})"), (3, 1, 2)),   # MM-DD-YYYY
]


def parse_performance_date(text: Optional[str]) -> Optional[date]:
    """Date de performance depuis un texte libre ; None si rien ne se lit."""
    if not text:
        return None
    for pattern, (y, m, d) in _DATE_FORMATS:
        match = pattern.search(text)
        if match:
            try:
                return date(int(match.group(y)), int(match.group(m)), int(match.group(d)))
            except ValueError:
                return None
    parsed = dateparser.parse(
        text,
        languages=["en"],
        settings={"DATE_ORDER": "MDY", "RETURN_AS_TIMEZONE_AWARE": False, "STRICT_PARSING": True},
    )
    return parsed.date() if parsed else None


def parse_report_date(text: Optional[str]) -> Optional[date]:
    """'Run by jdoe on 10/14/2025 9:02 AM' -> 2025-10-14."""
    if not text:
        return None
    m = re.search(r"\bon\s+(\d{1,2}/\d{1,2}/\d{4})", text)
    return parse_performance_date(m.group(1)) if m else None


# ------------------- extraction depuis la fin -------------------

def _currency_splits(text: str) -> Iterator[Tuple[Decimal, str]]:
    """
    Tous les montants canoniques qui terminent `text`, du plus large au plus étroit,
    avec ce qui reste devant. Rien si `text` ne finit pas par '.NN'.
    """
    run = re.search(r"[\d,]*\.\d{2}$", text)
    if not run:
        return
    for start in range(run.start(), len(text) - 3):
        candidate = text[start:]
        if _CURRENCY.fullmatch(candidate):
            yield parse_currency(candidate), text[:start]


def _split_tail(text: str) -> Optional[Tuple[str, str]]:
    """'...642.30614' -> ('...642.30', '614') : les chiffres collés après le dernier '.NN'."""
    m = re.search(r"\.\d{2}([\d,]*)$", text)
    if not m:
        return None
    tail = m.group(1)
    if tail and not _COUNT.fullmatch(tail):
        return None
    return text[: len(text) - len(tail)], tail


def _currency_with_count(text: str, count_required: bool) -> Iterator[Tuple[Decimal, int, str]]:
    split = _split_tail(text)
    if split is None:
        return
    head, tail = split
    if count_required and not tail:
        return
    for value, rest in _currency_splits(head):
        yield value, parse_int(tail), rest


def _decode_tail(section: str) -> Iterator[SalesBreakdown]:
    """Toutes les lectures complètes de la partie numérique, dans l'ordre de préférence."""
    budget = _BUDGET_PREFIX.match(section)
    if not budget:
        return
    budget_percent = parse_percent(budget.group(1))
    body = section[budget.end():]

    # '...61452.8%' se lit 52.8% (614 sièges) avant 2.8% (6145 sièges)
    capacity_options = []
    m = _CAPACITY_SUFFIX.search(body)
    while m:
        capacity_options.append((parse_percent(m.group(1)), body[: m.start()]))
        m = _CAPACITY_SUFFIX.search(body, m.start() + 1)

    for capacity_percent, rest in capacity_options:
        for total, avail, r1 in _currency_with_count(rest, count_required=False):
            for reserved, r2 in _currency_splits(r1):
                for subtotal, reserved_count, r3 in _currency_with_count(r2, count_required=False):
                    for single_rev, r4 in _currency_splits(r3):
                        for non_fixed_rev, single_count, r5 in _currency_with_count(r4, count_required=True):
                            for fixed_rev, non_fixed_count, r6 in _currency_with_count(r5, count_required=True):
                                if not _COUNT.fullmatch(r6):
                                    continue
                                yield SalesBreakdown(
                                    budget_percent=budget_percent,
                                    fixed_count=parse_int(r6),
                                    fixed_revenue=fixed_rev,
                                    non_fixed_count=non_fixed_count,
                                    non_fixed_revenue=non_fixed_rev,
                                    single_count=single_count,
                                    single_revenue=single_rev,
                                    subtotal_revenue=subtotal,
                                    reserved_count=reserved_count,
                                    reserved_revenue=reserved,
                                    total_revenue=total,
                                    available_seats=avail,
                                    capacity_percent=capacity_percent,
                                )


# en deçà, deux lectures sont indiscernables par la capacité%
CAPACITY_TIE = 0.5


def decode_compact(section: str) -> SalesBreakdown:
    """
    Décode la partie numérique d'une ligne compacte.
    Parmi les lectures dont les montants se recoupent, garde celle dont la capacité%
    impliquée est la plus proche de celle imprimée. Égalité ou aucun recoupement :
    lecture marquée low_confidence. Lève FieldDecodeMismatch si aucune lecture complète n'existe.
    """
    if not _BUDGET_PREFIX.match(section):
        raise FieldDecodeMismatch(section, "no budget% prefix")
    if not _CAPACITY_SUFFIX.search(section):
        raise FieldDecodeMismatch(section, "no capacity% suffix")

    candidates = list(_decode_tail(section))
    if not candidates:
        raise FieldDecodeMismatch(section, "digits do not fit the column schema")

    reconciling = [c for c in candidates if c.revenues_reconcile()]
    if not reconciling:
        best = candidates[0]
        best.low_confidence = True
        log.warning("decode: aucun découpage ne recoupe les montants, lecture la plus large retenue",
                    extra={"section": section})
        return best

    # tri stable : à écart égal, le découpage le plus large reste devant
    ranked = sorted(reconciling, key=lambda c: c.capacity_gap())
    best = ranked[0]
    if len(ranked) > 1 and ranked[1].capacity_gap() - best.capacity_gap() < CAPACITY_TIE:
        best.low_confidence = True
        log.warning("decode: %s lectures plausibles, capacité%% non discriminante", len(ranked),
                    extra={"section": section})
    return best


# ------------------- colonnes séparées -------------------

def breakdown_from_columns(fields: List[str]) -> SalesBreakdown:
    """
    Lecture positionnelle quand les colonnes sont déjà séparées (tabulaire ou fragments PDF).
    `fields` commence au budget% ; la colonne "reserved #" est optionnelle.
    """
    f = list(fields) + [""] * max(0, 14 - len(fields))
    out = SalesBreakdown(
        budget_percent=parse_percent(f[0]),
        fixed_count=parse_int(f[1]),
        fixed_revenue=parse_currency(f[2]),
        non_fixed_count=parse_int(f[3]),
        non_fixed_revenue=parse_currency(f[4]),
        single_count=parse_int(f[5]),
        single_revenue=parse_currency(f[6]),
        subtotal_revenue=parse_currency(f[7]),
    )
    rest = list(fields[8:])
    if len(rest) >= 5:
        reserved_count, reserved, total, avail, capacity = rest[:5]
    elif len(rest) == 4:
        reserved_count, (reserved, total, avail, capacity) = "0", rest
    else:
        # colonnes de fin manquantes : le total retombe sur le sous-total
        rest = rest + [""] * (4 - len(rest))
        reserved_count, (reserved, total, avail, capacity) = "0", rest
    out.reserved_count = parse_int(reserved_count)
    out.reserved_revenue = parse_currency(reserved)
    out.total_revenue = parse_currency(total) if total else out.subtotal_revenue
    out.available_seats = parse_int(avail)
    out.capacity_percent = parse_percent(capacity)
    return out
