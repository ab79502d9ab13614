"""Requêtes paramétrées générées pour BigQuery."""
import unittest
from datetime import date
from decimal import Decimal

from boxoffice_etl.storage import statements as st

TABLE = st.table_ref("proj", "symphony_dashboard", "performances")


def _row(code, perf_date=date(2025, 10, 10), single=10):
    return {
        "performance_code": code,
        "performance_date": perf_date,
        "single_tickets_sold": single,
        "subscription_tickets_sold": 5,
        "total_tickets_sold": single + 5,
        "total_revenue": Decimal("150.00"),
        "capacity_percent": 12.5,
        "budget_percent": 30.0,
    }


class TestTableRef(unittest.TestCase):

    def test_backticked(self):
        self.assertEqual(TABLE, "`proj.symphony_dashboard.performances`")

    def test_rejects_injection(self):
        with self.assertRaises(ValueError):
            st.table_ref("proj", "ds`; DROP TABLE x", "performances")


class TestReads(unittest.TestCase):

    def test_lookup_uses_array_parameter(self):
        stmt = st.select_performance_ids(TABLE, ["251010E", "251011F"])
        self.assertIn("IN UNNEST(@codes)", stmt.sql)
        self.assertEqual(stmt.param("codes"), ["251010E", "251011F"])
        self.assertNotIn("251010E", stmt.sql)


class TestWrites(unittest.TestCase):

    def test_insert_rows_is_one_statement(self):
        rows = [{"snapshot_id": "a", "performance_id": 1, "performance_code": "251010E"},
                {"snapshot_id": "b", "performance_id": 2, "performance_code": "251011F"}]
        stmt = st.insert_rows("insert_sales_snapshots", TABLE, st.SNAPSHOT_COLUMNS, rows,
                              literals={"created_at": "CURRENT_TIMESTAMP()"})
        self.assertEqual(stmt.sql.count("INSERT INTO"), 1)
        self.assertIn("@snapshot_id_1", stmt.sql)
        self.assertIn("created_at", stmt.sql)
        self.assertEqual(stmt.param("performance_code_1"), "251011F")
        self.assertIsNone(stmt.param("total_revenue_0"))

    def test_current_state_case_update(self):
        stmt = st.update_current_state(TABLE, [_row("251010E"), _row("251011F", single=20)])
        self.assertIn("single_tickets_sold = CASE performance_code WHEN @code_0 THEN @single_tickets_sold_0 "
                      "WHEN @code_1 THEN @single_tickets_sold_1 ELSE single_tickets_sold END", stmt.sql)
        self.assertIn("performance_date = CASE", stmt.sql)
        self.assertIn("WHERE performance_code IN UNNEST(@codes)", stmt.sql)
        self.assertEqual(stmt.param("single_tickets_sold_1"), 20)
        self.assertEqual(stmt.param("total_revenue_0"), 150.0)

    def test_placeholder_date_keeps_existing_value(self):
        stmt = st.update_current_state(TABLE, [_row("251010E", perf_date=None), _row("251011F")])
        self.assertIn("performance_date = CASE performance_code WHEN @code_1 THEN @performance_date_1 "
                      "ELSE performance_date END", stmt.sql)
        self.assertNotIn("@performance_date_0", stmt.sql)

    def test_no_dated_rows_drops_date_assignment(self):
        stmt = st.update_current_state(TABLE, [_row("251010E", perf_date=None)])
        self.assertNotIn("performance_date =", stmt.sql)

    def test_comp_patch_virtual_table(self):
        stmt = st.update_comp_tickets(TABLE, [("251010E", 12, date(2025, 10, 14)),
                                              ("251011F", 3, date(2025, 10, 13))])
        self.assertEqual(stmt.sql.count("UNION ALL"), 1)
        self.assertIn("target.snapshot_date = source.snapshot_date", stmt.sql)
        self.assertEqual(stmt.param("comp_1"), 3)
        self.assertEqual(stmt.param("date_0"), date(2025, 10, 14))

    def test_execution_log_update_rejects_unknown_columns(self):
        stmt = st.update_execution_log(TABLE, "sales_1_ab", {"status": "completed", "records_inserted": 2})
        self.assertIn("status = @status", stmt.sql)
        with self.assertRaises(ValueError):
            st.update_execution_log(TABLE, "sales_1_ab", {"pipeline_type": "x"})


if __name__ == "__main__":
    unittest.main()
