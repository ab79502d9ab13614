# boxoffice_etl/storage/bigquery.py
import asyncio
import logging
import os
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, Dict, List, Mapping, Sequence, Set, Tuple

from google.api_core.exceptions import GoogleAPIError
from google.cloud import bigquery
from google.oauth2.service_account import Credentials

from boxoffice_etl.core.config import Settings, settings as default_settings
from boxoffice_etl.core.errors import WarehouseBatchFailure
from boxoffice_etl.core.models import PackageSalesRecord
from boxoffice_etl.storage import statements as st

log = logging.getLogger(__name__)

_SCOPES = ["https://www.googleapis.com/auth/bigquery"]

PERFORMANCES = "performances"
SALES_SNAPSHOTS = "performance_sales_snapshots"
PACKAGE_SNAPSHOTS = "subscription_sales_snapshots"
SUBSCRIPTION_HISTORY = "subscription_historical_data"
EXECUTION_LOG = "pipeline_execution_log"


def make_client(cfg: Settings = default_settings) -> bigquery.Client:
    """Compte de service si un fichier de clé est fourni, sinon Application Default Credentials."""
    sa_path = cfg.credentials_path
    if sa_path and os.path.exists(sa_path):
        creds = Credentials.from_service_account_file(sa_path, scopes=_SCOPES)
        return bigquery.Client(project=cfg.gcp_project_id or creds.project_id,
                               credentials=creds, location=cfg.bigquery_location)
    if sa_path:
        log.warning("GOOGLE_APPLICATION_CREDENTIALS introuvable (%s) → ADC", sa_path)
    return bigquery.Client(project=cfg.gcp_project_id or None, location=cfg.bigquery_location)


class BigQueryWarehouse:
    """
    Façade async sur le client BigQuery (bloquant) : chaque requête part dans un thread,
    les moteurs n'ont donc que des `await` comme points de suspension.
    """

    def __init__(self, client: bigquery.Client = None, cfg: Settings = default_settings):
        self._client = client
        self._cfg = cfg
        self._project = cfg.gcp_project_id or (client.project if client is not None else "")

    @property
    def client(self) -> bigquery.Client:
        if self._client is None:
            self._client = make_client(self._cfg)
        return self._client

    def table(self, name: str) -> str:
        if not self._project:
            self._project = self.client.project
        return st.table_ref(self._project, self._cfg.bigquery_dataset, name)

    async def run(self, stmt: st.Statement) -> List[Any]:
        def _blocking():
            job_config = bigquery.QueryJobConfig(query_parameters=stmt.params)
            job = self.client.query(stmt.sql, job_config=job_config, location=self._cfg.bigquery_location)
            return list(job.result())

        try:
            rows = await asyncio.to_thread(_blocking)
        except GoogleAPIError as e:
            log.error("bigquery.failed", extra={"statement": stmt.name, "error": str(e)})
            raise WarehouseBatchFailure(stmt.name, e) from e
        log.debug("bigquery.ok", extra={"statement": stmt.name, "rows": len(rows)})
        return rows

    # ---- performances ----

    async def fetch_performance_ids(self, codes: Sequence[str]) -> Dict[str, int]:
        rows = await self.run(st.select_performance_ids(self.table(PERFORMANCES), codes))
        return {r["performance_code"]: r["performance_id"] for r in rows}

    async def insert_performances(self, rows: Sequence[Mapping[str, Any]]) -> None:
        now = "CURRENT_TIMESTAMP()"
        await self.run(st.insert_rows(
            "insert_performances", self.table(PERFORMANCES), st.PERFORMANCE_COLUMNS, rows,
            literals={"created_at": now, "updated_at": now, "last_pdf_import_date": now},
        ))

    async def update_performances(self, rows: Sequence[Mapping[str, Any]]) -> None:
        await self.run(st.update_current_state(self.table(PERFORMANCES), rows))

    # ---- snapshots ----

    async def insert_sales_snapshots(self, rows: Sequence[Mapping[str, Any]]) -> None:
        await self.run(st.insert_rows(
            "insert_sales_snapshots", self.table(SALES_SNAPSHOTS), st.SNAPSHOT_COLUMNS, rows,
            literals={"snapshot_date": "CURRENT_DATE()", "created_at": "CURRENT_TIMESTAMP()"},
        ))

    async def latest_snapshot_dates(self, codes: Sequence[str]) -> Dict[str, date]:
        rows = await self.run(st.select_latest_snapshot_dates(self.table(SALES_SNAPSHOTS), codes))
        return {r["performance_code"]: r["max_date"] for r in rows}

    async def set_comp_tickets(self, entries: Sequence[Tuple[str, int, date]]) -> None:
        await self.run(st.update_comp_tickets(self.table(SALES_SNAPSHOTS), entries))

    # ---- abonnements ----

    async def existing_package_keys(self, dates: Sequence[date],
                                    categories: Sequence[str]) -> Set[Tuple[date, str, str]]:
        rows = await self.run(st.select_package_keys(self.table(PACKAGE_SNAPSHOTS), dates, categories))
        return {(r["snapshot_date"], r["category"], r["package_name"]) for r in rows}

    async def insert_package_snapshots(self, records: Sequence[PackageSalesRecord]) -> None:
        rows = [r.model_dump() for r in records]
        await self.run(st.insert_rows(
            "insert_package_snapshots", self.table(PACKAGE_SNAPSHOTS), st.PACKAGE_COLUMNS, rows,
        ))

    async def merge_subscription_totals(self, series: str, season: str, snapshot_date: date,
                                        week_number: int, total_units: int,
                                        total_revenue: Decimal) -> None:
        await self.run(st.merge_subscription_totals(
            self.table(SUBSCRIPTION_HISTORY), series, season, snapshot_date,
            week_number, total_units, total_revenue,
        ))

    # ---- journal ----

    async def log_execution_start(self, execution_id: str, pipeline_type: str, source_file: str) -> None:
        await self.run(st.insert_execution_log(
            self.table(EXECUTION_LOG), execution_id, pipeline_type, source_file,
            datetime.now(timezone.utc),
        ))

    async def log_execution_end(self, execution_id: str, updates: Mapping[str, Any]) -> None:
        await self.run(st.update_execution_log(self.table(EXECUTION_LOG), execution_id, updates))
