"""Moteur de réconciliation contre l'entrepôt en mémoire."""
import unittest
from datetime import date
from decimal import Decimal

from fake_warehouse import FakeWarehouse

from boxoffice_etl.core.config import Settings
from boxoffice_etl.core.errors import WarehouseBatchFailure
from boxoffice_etl.core.models import SalesRecord
from boxoffice_etl.core.reconcile import performance_id_for, reconcile, series_for

CFG = Settings()


def _record(code="251010E", single=357, sub=480, revenue="51642.30", **kw):
    return SalesRecord(performance_code=code, performance_date=kw.pop("performance_date", date(2025, 10, 10)),
                       single_tickets_sold=single, subscription_tickets_sold=sub,
                       total_revenue=Decimal(revenue), capacity_percent=52.8, budget_percent=51.1, **kw)


class TestDerivedValues(unittest.TestCase):

    def test_performance_id(self):
        self.assertEqual(performance_id_for("251010E"), 251010005)
        self.assertEqual(performance_id_for("251010EF"), 251010000 + 5 * 27 + 6)
        self.assertNotEqual(performance_id_for("251010E"), performance_id_for("251010F"))

    def test_series(self):
        self.assertEqual(series_for("251010E"), "Series-10")
        self.assertEqual(series_for("AUTO"), "Unknown")


class TestReconcile(unittest.IsolatedAsyncioTestCase):

    async def test_new_code(self):
        wh = FakeWarehouse()
        result = await reconcile([_record()], wh, CFG)
        self.assertEqual((result.processed, result.inserted, result.updated, result.anomalies), (1, 1, 0, 0))
        row = wh.performances["251010E"]
        self.assertEqual(row["performance_id"], 251010005)
        self.assertEqual(row["capacity"], CFG.default_capacity)
        self.assertEqual(row["venue"], CFG.default_venue)
        self.assertEqual(row["total_tickets_sold"], 837)
        self.assertEqual(row["budget_goal"], round(51642.30 / 51.1 * 100))
        self.assertEqual(len(wh.snapshots), 1)
        self.assertEqual(wh.snapshots[0]["source"], CFG.snapshot_source)
        self.assertNotIn("update_performances", wh.calls)

    async def test_existing_code_updates_current_state(self):
        wh = FakeWarehouse(performances=[{"performance_code": "251010E", "performance_id": 7,
                                          "performance_date": date(2025, 10, 10), "single_tickets_sold": 1}])
        result = await reconcile([_record(single=400)], wh, CFG)
        self.assertEqual((result.inserted, result.updated), (0, 1))
        self.assertEqual(wh.performances["251010E"]["single_tickets_sold"], 400)
        self.assertEqual(wh.snapshots[0]["performance_id"], 7)

    async def test_placeholder_date_does_not_overwrite(self):
        wh = FakeWarehouse(performances=[{"performance_code": "251010E", "performance_id": 7,
                                          "performance_date": date(2025, 10, 10)}])
        rec = _record(performance_date=date(2025, 1, 1), date_is_placeholder=True)
        await reconcile([rec], wh, CFG)
        self.assertEqual(wh.performances["251010E"]["performance_date"], date(2025, 10, 10))

    async def test_low_confidence_keeps_current_state(self):
        wh = FakeWarehouse(performances=[{"performance_code": "251010E", "performance_id": 7,
                                          "performance_date": date(2025, 10, 10), "single_tickets_sold": 400}])
        rec = _record(single=0, sub=0, revenue="0", low_confidence=True)
        result = await reconcile([rec], wh, CFG)
        self.assertEqual((result.processed, result.updated), (1, 0))
        self.assertEqual(wh.performances["251010E"]["single_tickets_sold"], 400)
        self.assertEqual(wh.snapshots[0]["single_tickets_sold"], 0)
        self.assertNotIn("update_performances", wh.calls)

    async def test_low_confidence_still_creates_new_performance(self):
        wh = FakeWarehouse()
        result = await reconcile([_record(low_confidence=True)], wh, CFG)
        self.assertEqual((result.inserted, result.updated), (1, 0))
        self.assertIn("251010E", wh.performances)

    async def test_one_snapshot_per_record(self):
        wh = FakeWarehouse(performances=[{"performance_code": "251011F", "performance_id": 9}])
        records = [_record("251010E"), _record("251011F"), _record("251012G", single=0, sub=0, revenue="0")]
        result = await reconcile(records, wh, CFG)
        self.assertEqual(len(wh.snapshots), 3)
        self.assertEqual((result.processed, result.inserted, result.updated), (3, 2, 1))
        self.assertEqual(wh.calls, ["fetch_performance_ids", "insert_performances",
                                    "insert_sales_snapshots", "update_performances"])

    async def test_replay_is_idempotent_on_current_state(self):
        wh = FakeWarehouse()
        await reconcile([_record()], wh, CFG)
        state = dict(wh.performances["251010E"])
        second = await reconcile([_record()], wh, CFG)
        self.assertEqual((second.inserted, second.updated), (0, 1))
        for key in ("single_tickets_sold", "subscription_tickets_sold", "total_revenue", "performance_date"):
            self.assertEqual(wh.performances["251010E"][key], state[key])
        self.assertEqual(len(wh.snapshots), 2)

    async def test_duplicate_codes_keep_last_for_state(self):
        wh = FakeWarehouse()
        result = await reconcile([_record(single=1), _record(single=2)], wh, CFG)
        self.assertEqual(result.inserted, 1)
        self.assertEqual(len(wh.snapshots), 2)
        self.assertEqual(wh.performances["251010E"]["single_tickets_sold"], 2)

    async def test_metadata_overrides_defaults(self):
        wh = FakeWarehouse()
        await reconcile([_record(title="Beethoven 5", capacity=1000, season="Unknown")], wh, CFG)
        row = wh.performances["251010E"]
        self.assertEqual((row["title"], row["capacity"], row["season"]), ("Beethoven 5", 1000, "Unknown"))

    async def test_empty_input_touches_nothing(self):
        wh = FakeWarehouse()
        result = await reconcile([], wh, CFG)
        self.assertEqual(result.processed, 0)
        self.assertEqual(wh.calls, [])

    async def test_batch_failure_propagates(self):
        wh = FakeWarehouse(fail_on={"insert_sales_snapshots"})
        with self.assertRaises(WarehouseBatchFailure):
            await reconcile([_record()], wh, CFG)


if __name__ == "__main__":
    unittest.main()
