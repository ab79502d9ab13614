# boxoffice_etl/storage/base.py
from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Mapping, Protocol, Sequence, Set, Tuple

from boxoffice_etl.core.models import PackageSalesRecord


class Warehouse(Protocol):
    """Ce dont les moteurs ont besoin côté entrepôt ; chaque méthode = un aller-retour."""

    async def fetch_performance_ids(self, codes: Sequence[str]) -> Dict[str, int]: ...

    async def insert_performances(self, rows: Sequence[Mapping[str, Any]]) -> None: ...

    async def insert_sales_snapshots(self, rows: Sequence[Mapping[str, Any]]) -> None: ...

    async def update_performances(self, rows: Sequence[Mapping[str, Any]]) -> None: ...

    async def latest_snapshot_dates(self, codes: Sequence[str]) -> Dict[str, date]: ...

    async def set_comp_tickets(self, entries: Sequence[Tuple[str, int, date]]) -> None: ...

    async def existing_package_keys(self, dates: Sequence[date],
                                    categories: Sequence[str]) -> Set[Tuple[date, str, str]]: ...

    async def insert_package_snapshots(self, records: Sequence[PackageSalesRecord]) -> None: ...

    async def merge_subscription_totals(self, series: str, season: str, snapshot_date: date,
                                        week_number: int, total_units: int,
                                        total_revenue: Decimal) -> None: ...

    async def log_execution_start(self, execution_id: str, pipeline_type: str, source_file: str) -> None: ...

    async def log_execution_end(self, execution_id: str, updates: Mapping[str, Any]) -> None: ...
