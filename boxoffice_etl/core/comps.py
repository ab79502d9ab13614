# boxoffice_etl/core/comps.py
from __future__ import annotations

import logging
from typing import List, Optional

from boxoffice_etl.core.models import CompRecord, PatchResult
from boxoffice_etl.storage.base import Warehouse

log = logging.getLogger(__name__)


async def patch(
    records: List[CompRecord],
    warehouse: Warehouse,
    logger: Optional[logging.LoggerAdapter] = None,
) -> PatchResult:
    """
    Écrit comp_tickets sur le snapshot le plus récent de chaque code.
    Un code sans aucun snapshot est compté en not_found, rien n'est créé.
    """
    logger = logger or log
    result = PatchResult()
    if not records:
        return result

    latest = await warehouse.latest_snapshot_dates(sorted({r.performance_code for r in records}))

    entries = []
    for r in records:
        snap_date = latest.get(r.performance_code)
        if snap_date is None:
            result.not_found += 1
            logger.warning("comps: aucun snapshot pour %s", r.performance_code,
                           extra={"performance_code": r.performance_code})
            continue
        entries.append((r.performance_code, r.comp_tickets, snap_date))

    if entries:
        await warehouse.set_comp_tickets(entries)
    result.updated = len(entries)
    logger.info("comps: %s snapshots patchés, %s codes inconnus", result.updated, result.not_found)
    return result
