# boxoffice_etl/core/pipeline.py
"""
Un run = un rapport reçu. Chaque run a un execution_id, une ligne dans
pipeline_execution_log (best-effort) et rend un RunSummary ; toute autre erreur remonte.
"""
from __future__ import annotations

import logging
import time
import uuid
from datetime import date, datetime, timezone
from typing import Any, Dict, Optional, Union

from boxoffice_etl.core import comps, reconcile, subscriptions
from boxoffice_etl.core.config import Settings, settings as default_settings
from boxoffice_etl.core.errors import BoxOfficeError, WarehouseBatchFailure
from boxoffice_etl.core.logging import RunLogger, run_logger
from boxoffice_etl.core.models import RunSummary
from boxoffice_etl.parsers import parse
from boxoffice_etl.parsers.comps import parse_comp_report
from boxoffice_etl.parsers.packages import detect_category, parse_package_report, snapshot_date_from_filename
from boxoffice_etl.parsers.text import RawReport, ReportText
from boxoffice_etl.storage.base import Warehouse

log = logging.getLogger(__name__)


def new_execution_id(kind: str) -> str:
    return f"{kind}_{int(time.time() * 1000)}_{uuid.uuid4().hex[:8]}"


def _as_report(raw: Union[ReportText, RawReport]) -> ReportText:
    return raw if isinstance(raw, ReportText) else ReportText.from_raw(raw)


async def _log_start(warehouse: Warehouse, execution_id: str, kind: str, source: str, logger: RunLogger) -> None:
    try:
        await warehouse.log_execution_start(execution_id, kind, source)
    except WarehouseBatchFailure as e:
        logger.warning("run log: démarrage non écrit (%s)", e)


async def _log_end(warehouse: Warehouse, execution_id: str, updates: Dict[str, Any], logger: RunLogger) -> None:
    updates = {"end_time": datetime.now(timezone.utc), **updates}
    try:
        await warehouse.log_execution_end(execution_id, updates)
    except WarehouseBatchFailure as e:
        logger.warning("run log: fin non écrite (%s)", e)


async def _run(kind: str, source: str, warehouse: Warehouse, body) -> RunSummary:
    execution_id = new_execution_id(kind)
    logger = run_logger(__name__, execution_id=execution_id, pipeline=kind)
    logger.info("run: début (%s)", source or "inline")
    await _log_start(warehouse, execution_id, kind, source, logger)
    try:
        summary = await body(execution_id, logger)
    except Exception as e:
        logger.exception("run: échec")
        if isinstance(e, BoxOfficeError):
            e.execution_id = execution_id
        await _log_end(warehouse, execution_id, {"status": "failed", "error_message": str(e)}, logger)
        raise
    res = summary.result
    await _log_end(warehouse, execution_id, {
        "status": "completed",
        "records_processed": res.get("processed", summary.received),
        "records_inserted": res.get("inserted", 0),
        "records_updated": res.get("updated", 0),
    }, logger)
    logger.info("run: terminé", extra={"result": res})
    return summary


# ------------------- rapports de ventes -------------------

async def run_sales_report(
    raw: Union[ReportText, RawReport],
    warehouse: Warehouse,
    source: str = "",
    cfg: Settings = default_settings,
) -> RunSummary:
    async def body(execution_id: str, logger: RunLogger) -> RunSummary:
        records, strategy = parse(_as_report(raw))
        warnings = []
        low = sum(1 for r in records if r.low_confidence)
        if low:
            warnings.append(f"{low} low-confidence records (strategy {strategy})")
        undated = sum(1 for r in records if r.date_is_placeholder)
        if undated:
            warnings.append(f"{undated} records without a parseable performance date")
        for w in warnings:
            logger.warning("sales: %s", w)

        result = await reconcile.reconcile(records, warehouse, cfg, logger)
        if result.anomalies:
            warnings.append(f"{result.anomalies} records could not be resolved to a performance")
        return RunSummary(execution_id=execution_id, kind="sales", received=len(records),
                          strategy=strategy, result=result.model_dump(), warnings=warnings)

    return await _run("sales", source, warehouse, body)


# ------------------- billets de faveur -------------------

async def run_comp_report(
    raw: Union[ReportText, RawReport],
    warehouse: Warehouse,
    source: str = "",
) -> RunSummary:
    async def body(execution_id: str, logger: RunLogger) -> RunSummary:
        records, report_date = parse_comp_report(_as_report(raw).tokens)
        logger.info("comps: %s codes (rapport du %s)", len(records), report_date)
        result = await comps.patch(records, warehouse, logger)
        warnings = [f"{result.not_found} codes without any sales snapshot"] if result.not_found else []
        data = result.model_dump()
        data["processed"] = len(records)
        return RunSummary(execution_id=execution_id, kind="comps", received=len(records),
                          report_date=report_date, result=data, warnings=warnings)

    return await _run("comps", source, warehouse, body)


# ------------------- abonnements -------------------

async def run_package_report(
    raw: Union[ReportText, RawReport],
    warehouse: Warehouse,
    filename: Optional[str] = None,
    subject: Optional[str] = None,
    category: Optional[str] = None,
) -> RunSummary:
    async def body(execution_id: str, logger: RunLogger) -> RunSummary:
        warnings = []
        cat = detect_category(category, filename, subject)
        if cat is None:
            cat = "Unknown"
            warnings.append("category not found in filename, subject or explicit hint")
            logger.warning("packages: catégorie inconnue (%s / %s)", filename, subject)

        report = parse_package_report(_as_report(raw).pages)
        snapshot_date = report.report_date or snapshot_date_from_filename(filename) or date.today()
        records = subscriptions.records_from_report(report, cat, snapshot_date)

        result = await subscriptions.ingest_packages(records, warehouse, logger)
        try:
            merged = await subscriptions.merge_category_totals(records, cat, snapshot_date, warehouse, logger)
        except WarehouseBatchFailure as e:
            # snapshots déjà écrits : le run reste "completed"
            merged = False
            warnings.append(f"history update failed: {e}")
            logger.error("packages: historique non mis à jour (%s)", e)
        data = result.model_dump()
        data.update(processed=len(records), category=cat, season=report.season,
                    snapshot_date=snapshot_date, history_updated=merged)
        return RunSummary(execution_id=execution_id, kind="packages", received=len(records),
                          report_date=report.report_date, result=data, warnings=warnings)

    return await _run("packages", filename or "", warehouse, body)
