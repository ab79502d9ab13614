# boxoffice_etl/core/subscriptions.py
from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal
from typing import List, Optional, Set

from boxoffice_etl.core.models import PackageInsertResult, PackageSalesRecord
from boxoffice_etl.parsers.packages import PackageReport
from boxoffice_etl.storage.base import Warehouse

log = logging.getLogger(__name__)

# seules ces catégories ont un historique hebdomadaire
TRACKED_CATEGORIES = ("Classical", "Pops")


def records_from_report(report: PackageReport, category: str, snapshot_date: date) -> List[PackageSalesRecord]:
    return [
        PackageSalesRecord(
            snapshot_date=snapshot_date,
            season=report.season,
            category=category,
            package_type=row.package_type,
            package_name=row.package_name,
            package_seats=row.package_seats,
            perf_seats=row.perf_seats,
            total_amount=row.total_amount,
            paid_amount=row.paid_amount,
            orders=row.orders,
        )
        for row in report.packages
    ]


async def ingest_packages(
    records: List[PackageSalesRecord],
    warehouse: Warehouse,
    logger: Optional[logging.LoggerAdapter] = None,
) -> PackageInsertResult:
    """Insère les lignes dont la clé (snapshot_date, category, package_name) est inédite."""
    logger = logger or log
    result = PackageInsertResult()
    if not records:
        return result

    dates = sorted({r.snapshot_date for r in records})
    categories = sorted({r.category for r in records})
    seen: Set[tuple] = set(await warehouse.existing_package_keys(dates, categories))

    fresh: List[PackageSalesRecord] = []
    for r in records:
        if r.natural_key in seen:
            result.skipped += 1
            continue
        seen.add(r.natural_key)
        fresh.append(r)

    if fresh:
        await warehouse.insert_package_snapshots(fresh)
    result.inserted = len(fresh)
    logger.info("packages: %s insérés, %s déjà présents", result.inserted, result.skipped)
    return result


async def merge_category_totals(
    records: List[PackageSalesRecord],
    category: str,
    snapshot_date: date,
    warehouse: Warehouse,
    logger: Optional[logging.LoggerAdapter] = None,
) -> bool:
    """Cumul du jour (sièges, revenu) dans l'historique hebdomadaire ; False si catégorie non suivie."""
    logger = logger or log
    if category not in TRACKED_CATEGORIES or not records:
        return False
    units = sum(r.package_seats for r in records)
    revenue = sum((r.total_amount for r in records), Decimal("0.00"))
    week = snapshot_date.isocalendar()[1]
    await warehouse.merge_subscription_totals(category, records[0].season, snapshot_date,
                                              week, units, revenue)
    logger.info("packages: historique %s semaine %s : %s sièges, %s $", category, week, units, revenue)
    return True
