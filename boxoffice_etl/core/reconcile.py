# boxoffice_etl/core/reconcile.py
"""
Réconciliation d'un run : une liste de SalesRecord devient au plus quatre requêtes
(lookup, insert des nouvelles performances, insert des snapshots, update batch des existantes).
"""
from __future__ import annotations

import logging
import re
import uuid
from typing import Any, Dict, List, Optional

from boxoffice_etl.core.config import Settings, settings as default_settings
from boxoffice_etl.core.models import ReconcileResult, SalesRecord
from boxoffice_etl.storage.base import Warehouse

log = logging.getLogger(__name__)

_CODE_PARTS = re.compile(r"^(\d+)([A-Z]{0,2})$")


# ------------------- dérivations depuis le code -------------------

def performance_id_for(code: str) -> int:
    """
    Identifiant numérique stable : chiffres * 1000 + valeur base 27 du suffixe.
    '251010E' -> 251010005, '251010EF' -> 251010141.
    """
    m = _CODE_PARTS.match(code)
    if not m:
        digits = re.sub(r"\D", "", code) or "0"
        return int(digits) * 1000
    digits, letters = m.groups()
    suffix = 0
    for ch in letters:
        suffix = suffix * 27 + (ord(ch) - ord("A") + 1)
    return int(digits) * 1000 + suffix


def series_for(code: str) -> str:
    """'251010E' -> 'Series-10' (2 chiffres après la saison)."""
    m = re.match(r"^\d{2}(\d{2})", code)
    return f"Series-{m.group(1)}" if m else "Unknown"


def budget_goal_for(record: SalesRecord) -> float:
    if record.budget_percent > 0:
        return round(float(record.total_revenue) / record.budget_percent * 100)
    return 0


# ------------------- lignes -------------------

def new_performance_row(record: SalesRecord, cfg: Settings) -> Dict[str, Any]:
    """Ligne "performances" provisoire : les valeurs par défaut attendent l'enrichissement métadonnées."""
    return {
        "performance_id": performance_id_for(record.performance_code),
        "performance_code": record.performance_code,
        "title": record.title or f"Performance {record.performance_code}",
        "series": series_for(record.performance_code),
        "performance_date": record.performance_date,
        "venue": record.venue or cfg.default_venue,
        "season": record.season or cfg.default_season,
        "single_tickets_sold": record.single_tickets_sold,
        "subscription_tickets_sold": record.subscription_tickets_sold,
        "total_tickets_sold": record.total_tickets_sold,
        "total_revenue": record.total_revenue,
        "capacity": record.capacity or cfg.default_capacity,
        "capacity_percent": record.capacity_percent,
        "occupancy_goal": record.occupancy_goal or cfg.default_occupancy_goal,
        "budget_goal": budget_goal_for(record),
        "budget_percent": record.budget_percent,
        "has_sales_data": True,
    }


def snapshot_row(record: SalesRecord, performance_id: int, source: str) -> Dict[str, Any]:
    return {
        "snapshot_id": uuid.uuid4().hex[:16],
        "performance_id": performance_id,
        "performance_code": record.performance_code,
        "single_tickets_sold": record.single_tickets_sold,
        "subscription_tickets_sold": record.subscription_tickets_sold,
        "total_tickets_sold": record.total_tickets_sold,
        "total_revenue": record.total_revenue,
        "capacity_percent": record.capacity_percent,
        "budget_percent": record.budget_percent,
        "source": source,
    }


def current_state_row(record: SalesRecord) -> Dict[str, Any]:
    return {
        "performance_code": record.performance_code,
        # une date provisoire n'écrase pas la date connue
        "performance_date": None if record.date_is_placeholder else record.performance_date,
        "single_tickets_sold": record.single_tickets_sold,
        "subscription_tickets_sold": record.subscription_tickets_sold,
        "total_tickets_sold": record.total_tickets_sold,
        "total_revenue": record.total_revenue,
        "capacity_percent": record.capacity_percent,
        "budget_percent": record.budget_percent,
    }


def _last_per_code(records: List[SalesRecord]) -> List[SalesRecord]:
    latest: Dict[str, SalesRecord] = {}
    for r in records:
        latest[r.performance_code] = r
    return list(latest.values())


# ------------------- moteur -------------------

async def reconcile(
    records: List[SalesRecord],
    warehouse: Warehouse,
    cfg: Settings = default_settings,
    logger: Optional[logging.LoggerAdapter] = None,
) -> ReconcileResult:
    """
    Classe chaque record (nouveau / existant), crée les performances manquantes,
    ajoute un snapshot par record et met à jour l'état courant des existantes.
    Toute erreur d'entrepôt remonte telle quelle : le run est rejouable en entier.
    """
    logger = logger or log
    result = ReconcileResult()
    if not records:
        return result

    codes = sorted({r.performance_code for r in records})
    ids = await warehouse.fetch_performance_ids(codes)
    logger.info("reconcile: %s/%s performances déjà connues", len(ids), len(codes))

    new_perfs = [r for r in records if r.performance_code not in ids]
    existing_perfs = [r for r in records if r.performance_code in ids]

    if new_perfs:
        rows = [new_performance_row(r, cfg) for r in _last_per_code(new_perfs)]
        for r in rows:
            logger.info("reconcile: nouvelle performance %s", r["performance_code"],
                        extra={"performance_code": r["performance_code"]})
        await warehouse.insert_performances(rows)
        for r in rows:
            ids[r["performance_code"]] = r["performance_id"]
        result.inserted = len(rows)

    snapshots = []
    for r in new_perfs + existing_perfs:
        perf_id = ids.get(r.performance_code)
        if perf_id is None:
            result.anomalies += 1
            logger.warning("reconcile: code %s introuvable après création", r.performance_code)
            continue
        snapshots.append(snapshot_row(r, perf_id, cfg.snapshot_source))
    if snapshots:
        await warehouse.insert_sales_snapshots(snapshots)
    logger.info("reconcile: %s snapshots ajoutés", len(snapshots))

    # une lecture douteuse garde son snapshot mais n'écrase pas l'état courant
    confident = [r for r in existing_perfs if not r.low_confidence]
    for r in existing_perfs:
        if r.low_confidence:
            logger.warning("reconcile: %s peu fiable, état courant conservé", r.performance_code,
                           extra={"performance_code": r.performance_code})
    if confident:
        rows = [current_state_row(r) for r in _last_per_code(confident)]
        await warehouse.update_performances(rows)
        result.updated = len(rows)

    result.processed = len(snapshots)
    logger.info("reconcile: %s créées, %s mises à jour, %s snapshots",
                result.inserted, result.updated, len(snapshots),
                extra={"inserted": result.inserted, "updated": result.updated})
    return result
