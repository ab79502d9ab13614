# boxoffice_etl/storage/statements.py
"""
Requêtes BigQuery paramétrées. Aucune valeur n'est interpolée dans le SQL :
seuls les noms de tables (validés) le sont, tout le reste passe en @paramètre.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Mapping, Sequence, Tuple

from google.cloud import bigquery

_IDENT = re.compile(r"^[A-Za-z0-9_\-]+$")

# ------------------- schéma -------------------

PERFORMANCE_COLUMNS: Dict[str, str] = {
    "performance_id": "INT64",
    "performance_code": "STRING",
    "title": "STRING",
    "series": "STRING",
    "performance_date": "DATE",
    "venue": "STRING",
    "season": "STRING",
    "single_tickets_sold": "INT64",
    "subscription_tickets_sold": "INT64",
    "total_tickets_sold": "INT64",
    "total_revenue": "FLOAT64",
    "capacity": "INT64",
    "capacity_percent": "FLOAT64",
    "occupancy_goal": "FLOAT64",
    "budget_goal": "FLOAT64",
    "budget_percent": "FLOAT64",
    "has_sales_data": "BOOL",
}

SNAPSHOT_COLUMNS: Dict[str, str] = {
    "snapshot_id": "STRING",
    "performance_id": "INT64",
    "performance_code": "STRING",
    "single_tickets_sold": "INT64",
    "subscription_tickets_sold": "INT64",
    "total_tickets_sold": "INT64",
    "total_revenue": "FLOAT64",
    "capacity_percent": "FLOAT64",
    "budget_percent": "FLOAT64",
    "source": "STRING",
}

PACKAGE_COLUMNS: Dict[str, str] = {
    "snapshot_date": "DATE",
    "season": "STRING",
    "category": "STRING",
    "package_type": "STRING",
    "package_name": "STRING",
    "package_seats": "INT64",
    "perf_seats": "INT64",
    "total_amount": "FLOAT64",
    "paid_amount": "FLOAT64",
    "orders": "INT64",
}

# colonnes des mises à jour "état courant" : (colonne, type)
CURRENT_STATE_FIELDS: List[Tuple[str, str]] = [
    ("single_tickets_sold", "INT64"),
    ("subscription_tickets_sold", "INT64"),
    ("total_tickets_sold", "INT64"),
    ("total_revenue", "FLOAT64"),
    ("capacity_percent", "FLOAT64"),
    ("budget_percent", "FLOAT64"),
]


@dataclass
class Statement:
    name: str
    sql: str
    params: List[Any] = field(default_factory=list)

    def param(self, name: str) -> Any:
        return next(p.value if hasattr(p, "value") else p.values for p in self.params if p.name == name)


def table_ref(project: str, dataset: str, table: str) -> str:
    parts = [p for p in (project, dataset, table) if p]
    for p in parts:
        if not _IDENT.match(p):
            raise ValueError(f"invalid BigQuery identifier: {p!r}")
    return "`" + ".".join(parts) + "`"


def _coerce(value: Any, type_: str) -> Any:
    if value is None:
        return None
    if type_ == "FLOAT64":
        return float(value)
    if type_ == "INT64":
        return int(value)
    if type_ == "DATE" and isinstance(value, str):
        return date.fromisoformat(value)
    if type_ == "TIMESTAMP" and isinstance(value, str):
        return datetime.fromisoformat(value)
    if type_ == "BOOL":
        return bool(value)
    if isinstance(value, Decimal):
        return str(value)
    return value


def scalar(name: str, type_: str, value: Any) -> bigquery.ScalarQueryParameter:
    return bigquery.ScalarQueryParameter(name, type_, _coerce(value, type_))


def array(name: str, type_: str, values: Iterable[Any]) -> bigquery.ArrayQueryParameter:
    return bigquery.ArrayQueryParameter(name, type_, [_coerce(v, type_) for v in values])


# ------------------- lectures -------------------

def select_performance_ids(table: str, codes: Sequence[str]) -> Statement:
    return Statement(
        "select_performance_ids",
        f"SELECT performance_code, performance_id FROM {table} "
        f"WHERE performance_code IN UNNEST(@codes)",
        [array("codes", "STRING", codes)],
    )


def select_latest_snapshot_dates(table: str, codes: Sequence[str]) -> Statement:
    return Statement(
        "select_latest_snapshot_dates",
        f"SELECT performance_code, MAX(snapshot_date) AS max_date FROM {table} "
        f"WHERE performance_code IN UNNEST(@codes) GROUP BY performance_code",
        [array("codes", "STRING", codes)],
    )


def select_package_keys(table: str, dates: Sequence[date], categories: Sequence[str]) -> Statement:
    return Statement(
        "select_package_keys",
        f"SELECT DISTINCT snapshot_date, category, package_name FROM {table} "
        f"WHERE snapshot_date IN UNNEST(@dates) AND category IN UNNEST(@categories)",
        [array("dates", "DATE", dates), array("categories", "STRING", categories)],
    )


# ------------------- écritures -------------------

def insert_rows(name: str, table: str, columns: Mapping[str, str], rows: Sequence[Mapping[str, Any]],
                literals: Mapping[str, str] = None) -> Statement:
    """
    Un seul INSERT multi-lignes. `literals` ajoute des colonnes calculées côté serveur
    (ex. {"created_at": "CURRENT_TIMESTAMP()"}).
    """
    literals = dict(literals or {})
    names = list(columns) + list(literals)
    params: List[Any] = []
    tuples: List[str] = []
    for i, row in enumerate(rows):
        slots = []
        for col, type_ in columns.items():
            pname = f"{col}_{i}"
            params.append(scalar(pname, type_, row.get(col)))
            slots.append(f"@{pname}")
        slots.extend(literals.values())
        tuples.append("(" + ", ".join(slots) + ")")
    sql = f"INSERT INTO {table} ({', '.join(names)}) VALUES " + ",\n".join(tuples)
    return Statement(name, sql, params)


def update_current_state(table: str, rows: Sequence[Mapping[str, Any]]) -> Statement:
    """
    Une seule UPDATE pour toutes les performances existantes :
    `col = CASE performance_code WHEN @code_i THEN @col_i ... ELSE col END`.
    Une ligne sans "performance_date" garde la date déjà connue.
    """
    params: List[Any] = []
    for i, row in enumerate(rows):
        params.append(scalar(f"code_{i}", "STRING", row["performance_code"]))

    def case(col: str, type_: str, indices: List[int]) -> str:
        branches = []
        for i in indices:
            params.append(scalar(f"{col}_{i}", type_, rows[i][col]))
            branches.append(f"WHEN @code_{i} THEN @{col}_{i}")
        return f"{col} = CASE performance_code {' '.join(branches)} ELSE {col} END"

    assignments = []
    dated = [i for i, row in enumerate(rows) if row.get("performance_date") is not None]
    if dated:
        assignments.append(case("performance_date", "DATE", dated))
    everyone = list(range(len(rows)))
    for col, type_ in CURRENT_STATE_FIELDS:
        assignments.append(case(col, type_, everyone))
    assignments += [
        "has_sales_data = TRUE",
        "last_pdf_import_date = CURRENT_TIMESTAMP()",
        "updated_at = CURRENT_TIMESTAMP()",
    ]
    params.append(array("codes", "STRING", [row["performance_code"] for row in rows]))
    sql = (f"UPDATE {table} SET\n  " + ",\n  ".join(assignments)
           + "\nWHERE performance_code IN UNNEST(@codes)")
    return Statement("update_current_state", sql, params)


def update_comp_tickets(table: str, entries: Sequence[Tuple[str, int, date]]) -> Statement:
    """
    Patch de comp_tickets sur le snapshot le plus récent de chaque code, via une table
    virtuelle UNION ALL jointe sur (performance_code, snapshot_date).
    """
    params: List[Any] = []
    selects = []
    for i, (code, comps, snap_date) in enumerate(entries):
        params += [
            scalar(f"code_{i}", "STRING", code),
            scalar(f"comp_{i}", "INT64", comps),
            scalar(f"date_{i}", "DATE", snap_date),
        ]
        selects.append(f"SELECT @code_{i} AS performance_code, @comp_{i} AS comp_tickets, "
                       f"@date_{i} AS snapshot_date")
    source = "\n    UNION ALL ".join(selects)
    sql = (f"UPDATE {table} target\n"
           f"SET comp_tickets = source.comp_tickets\n"
           f"FROM (\n    {source}\n) source\n"
           f"WHERE target.performance_code = source.performance_code\n"
           f"  AND target.snapshot_date = source.snapshot_date")
    return Statement("update_comp_tickets", sql, params)


def merge_subscription_totals(table: str, series: str, season: str, snapshot_date: date,
                              week_number: int, total_units: int, total_revenue: Decimal) -> Statement:
    sql = f"""
      MERGE {table} target
      USING (SELECT @series AS series, @season AS season, @snapshot_date AS snapshot_date) source
      ON target.series = source.series
        AND target.season = source.season
        AND target.snapshot_date = source.snapshot_date
        AND target.is_final = FALSE
      WHEN MATCHED THEN
        UPDATE SET week_number = @week_number, total_units = @total_units, total_revenue = @total_revenue
      WHEN NOT MATCHED THEN
        INSERT (series, season, snapshot_date, week_number, new_units, new_revenue,
                renewal_units, renewal_revenue, total_units, total_revenue, is_final)
        VALUES (@series, @season, @snapshot_date, @week_number, 0, 0, 0, 0,
                @total_units, @total_revenue, FALSE)
    """
    return Statement("merge_subscription_totals", sql, [
        scalar("series", "STRING", series),
        scalar("season", "STRING", season),
        scalar("snapshot_date", "DATE", snapshot_date),
        scalar("week_number", "INT64", week_number),
        scalar("total_units", "INT64", total_units),
        scalar("total_revenue", "FLOAT64", total_revenue),
    ])


# ------------------- journal d'exécution -------------------

def insert_execution_log(table: str, execution_id: str, pipeline_type: str, source_file: str,
                         start_time: datetime) -> Statement:
    return Statement(
        "insert_execution_log",
        f"INSERT INTO {table} (execution_id, pipeline_type, status, start_time, source_file, triggered_by) "
        f"VALUES (@execution_id, @pipeline_type, 'running', @start_time, @source_file, 'make.com')",
        [
            scalar("execution_id", "STRING", execution_id),
            scalar("pipeline_type", "STRING", pipeline_type),
            scalar("start_time", "TIMESTAMP", start_time),
            scalar("source_file", "STRING", source_file),
        ],
    )


_LOG_UPDATE_TYPES = {
    "status": "STRING",
    "end_time": "TIMESTAMP",
    "records_processed": "INT64",
    "records_inserted": "INT64",
    "records_updated": "INT64",
    "error_message": "STRING",
}


def update_execution_log(table: str, execution_id: str, updates: Mapping[str, Any]) -> Statement:
    unknown = set(updates) - set(_LOG_UPDATE_TYPES)
    if unknown:
        raise ValueError(f"unknown pipeline_execution_log columns: {sorted(unknown)}")
    params = [scalar(k, _LOG_UPDATE_TYPES[k], v) for k, v in updates.items()]
    params.append(scalar("execution_id", "STRING", execution_id))
    sets = ", ".join(f"{k} = @{k}" for k in updates)
    return Statement(
        "update_execution_log",
        f"UPDATE {table} SET {sets} WHERE execution_id = @execution_id",
        params,
    )
