"""Patch des billets de faveur et ingestion des abonnements."""
import unittest
from datetime import date
from decimal import Decimal

from fake_warehouse import FakeWarehouse

from boxoffice_etl.core.comps import patch
from boxoffice_etl.core.models import CompRecord, PackageSalesRecord
from boxoffice_etl.core.subscriptions import ingest_packages, merge_category_totals, records_from_report
from boxoffice_etl.parsers.packages import PackageReport, PackageRow


def _snap(code, day, comps=None):
    return {"performance_code": code, "snapshot_date": day, "comp_tickets": comps}


class TestCompPatch(unittest.IsolatedAsyncioTestCase):

    async def test_latest_snapshot_only(self):
        wh = FakeWarehouse(snapshots=[_snap("251010E", date(2025, 10, 12)), _snap("251010E", date(2025, 10, 13))])
        result = await patch([CompRecord(performance_code="251010E", comp_tickets=12)], wh)
        self.assertEqual((result.updated, result.not_found), (1, 0))
        self.assertEqual([s["comp_tickets"] for s in wh.snapshots], [None, 12])

    async def test_unknown_code_is_not_found(self):
        wh = FakeWarehouse(snapshots=[_snap("251010E", date(2025, 10, 13))])
        result = await patch([CompRecord(performance_code="259999Z", comp_tickets=4)], wh)
        self.assertEqual((result.updated, result.not_found), (0, 1))
        self.assertNotIn("set_comp_tickets", wh.calls)
        self.assertIsNone(wh.snapshots[0]["comp_tickets"])


def _package(name, seats=10, total="1000.00", day=date(2025, 12, 4), category="Classical"):
    return PackageSalesRecord(snapshot_date=day, season="25-26", category=category, package_type="SY-Full",
                              package_name=name, package_seats=seats, perf_seats=seats * 8,
                              total_amount=Decimal(total), paid_amount=Decimal(total), orders=seats)


class TestPackages(unittest.IsolatedAsyncioTestCase):

    async def test_dedup_against_warehouse_and_batch(self):
        wh = FakeWarehouse()
        wh.packages.append(_package("25 Classical Full A"))
        records = [_package("25 Classical Full A"), _package("25 Classical Full B"), _package("25 Classical Full B")]
        result = await ingest_packages(records, wh)
        self.assertEqual((result.inserted, result.skipped), (1, 2))
        self.assertEqual(len(wh.packages), 2)

    async def test_same_name_other_day_is_new(self):
        wh = FakeWarehouse()
        wh.packages.append(_package("25 Classical Full A"))
        result = await ingest_packages([_package("25 Classical Full A", day=date(2025, 12, 5))], wh)
        self.assertEqual(result.inserted, 1)

    async def test_history_merge_for_tracked_category(self):
        wh = FakeWarehouse()
        records = [_package("A", seats=10, total="100.00"), _package("B", seats=5, total="50.50")]
        merged = await merge_category_totals(records, "Classical", date(2025, 12, 4), wh)
        self.assertTrue(merged)
        h = wh.history[0]
        self.assertEqual((h["series"], h["week_number"], h["total_units"]), ("Classical", 49, 15))
        self.assertEqual(h["total_revenue"], Decimal("150.50"))

    async def test_history_skipped_for_other_categories(self):
        wh = FakeWarehouse()
        merged = await merge_category_totals([_package("F", category="Flex")], "Flex", date(2025, 12, 4), wh)
        self.assertFalse(merged)
        self.assertEqual(wh.calls, [])

    def test_records_from_report(self):
        report = PackageReport(packages=[PackageRow("SY-Mini", "25 Pops Mini", 4, 16, Decimal("400.00"),
                                                    Decimal("350.00"), 3)], season="25-26")
        (rec,) = records_from_report(report, "Pops", date(2025, 12, 4))
        self.assertEqual(rec.natural_key, (date(2025, 12, 4), "Pops", "25 Pops Mini"))
        self.assertEqual(rec.paid_amount, Decimal("350.00"))


if __name__ == "__main__":
    unittest.main()
