"""
Stratégies du parseur de rapports de ventes : ordre de priorité et chaque format.
"""
import unittest
from datetime import date
from decimal import Decimal

from boxoffice_etl.core.errors import NoMatchingFormat
from boxoffice_etl.parsers import STRATEGIES, ReportText, parse

TABULAR_LINE = ("251010E\t10/10/2025 8:00 PM\t51.1%\t480\t32,642.00\t17\t1,209.60\t340\t"
                "17,790.70\t51,642.30\t0.00\t51,642.30\t614\t52.8%")
COMPACT_LINE = ("251011F10/11/2025 8:00 PM51.1%48032,642.00171,209.6034017,790.70"
                "51,642.3000.0051,642.3061452.8%")


class TestStrategyOrder(unittest.TestCase):

    def test_declared_order(self):
        self.assertEqual([name for name, _ in STRATEGIES],
                         ["tabular", "direct_line", "token_sequence", "narrative"])

    def test_tabular_wins_over_direct_line(self):
        records, strategy = parse("Header\n" + TABULAR_LINE + "\n" + COMPACT_LINE)
        self.assertEqual(strategy, "tabular")
        self.assertEqual([r.performance_code for r in records], ["251010E"])

    def test_nothing_recognised(self):
        with self.assertRaises(NoMatchingFormat):
            parse("Box office summary\nnothing to see here")


class TestTabular(unittest.TestCase):

    def test_line(self):
        records, _ = parse(TABULAR_LINE)
        r = records[0]
        self.assertEqual(r.performance_date, date(2025, 10, 10))
        self.assertEqual(r.single_tickets_sold, 357)
        self.assertEqual(r.subscription_tickets_sold, 480)
        self.assertEqual(r.total_tickets_sold, 837)
        self.assertEqual(r.total_revenue, Decimal("51642.30"))
        self.assertAlmostEqual(r.capacity_percent, 52.8)
        self.assertFalse(r.date_is_placeholder)


class TestDirectLine(unittest.TestCase):

    def test_compact_line(self):
        records, strategy = parse(COMPACT_LINE)
        self.assertEqual(strategy, "direct_line")
        r = records[0]
        self.assertEqual(r.performance_code, "251011F")
        self.assertEqual(r.performance_date, date(2025, 10, 11))
        self.assertEqual(r.single_tickets_sold, 357)
        self.assertEqual(r.subscription_tickets_sold, 480)
        self.assertAlmostEqual(r.budget_percent, 51.1)

    def test_undecodable_line_is_skipped(self):
        records, strategy = parse(COMPACT_LINE + "\n251012G10/12/2025 2:00 PM51.1%1234552.8%")
        self.assertEqual(strategy, "direct_line")
        self.assertEqual([r.performance_code for r in records], ["251011F"])

    def test_only_undecodable_lines(self):
        with self.assertRaises(NoMatchingFormat):
            parse("251012G10/12/2025 2:00 PM51.1%1234552.8%")


class TestTokenSequence(unittest.TestCase):

    def test_fragments_without_reserved_count(self):
        page = ["Performance", "251010E", "10/10/2025 8:00 PM", "51.1%", "480", "32,642.00", "17",
                "1,209.60", "340", "17,790.70", "51,642.30", "0.00", "51,642.30", "614", "52.8%",
                "Total", "251010E"]
        records, strategy = parse([page])
        self.assertEqual(strategy, "token_sequence")
        self.assertEqual(len(records), 1)
        r = records[0]
        self.assertEqual(r.total_revenue, Decimal("51642.30"))
        self.assertAlmostEqual(r.capacity_percent, 52.8)
        self.assertEqual(r.single_tickets_sold, 357)

    def test_fragments_with_reserved_count(self):
        page = ["251010E", "10/10/2025 8:00 PM", "51.1%", "480", "32,642.00", "17", "1,209.60",
                "340", "17,790.70", "51,642.30", "4", "200.00", "51,842.30", "610", "53.0%"]
        records, _ = parse([page])
        self.assertEqual(records[0].total_revenue, Decimal("51842.30"))
        self.assertAlmostEqual(records[0].capacity_percent, 53.0)


class TestNarrative(unittest.TestCase):

    TEXT = "\n".join([
        "Performance ID: 12",
        "Performance Code: 251010E",
        "Title: Beethoven 5",
        "Date: 10/10/2025",
        "Venue: Helzberg Hall",
        "Single tickets: 340 Subscription tickets: 480",
        "Revenue: $51,642.30",
        "Performance ID: 13",
        "Title: Mystery",
    ])

    def test_blocks(self):
        records, strategy = parse(self.TEXT)
        self.assertEqual(strategy, "narrative")
        first, second = records
        self.assertEqual(first.performance_code, "251010E")
        self.assertEqual(first.title, "Beethoven 5")
        self.assertEqual(first.performance_date, date(2025, 10, 10))
        self.assertEqual(first.single_tickets_sold, 340)
        self.assertEqual(first.subscription_tickets_sold, 480)
        self.assertEqual(first.total_revenue, Decimal("51642.30"))
        self.assertEqual(first.capacity, 1000)
        self.assertEqual(first.season, "Unknown")
        self.assertFalse(first.low_confidence)

    def test_labels_inside_other_labels(self):
        records, _ = parse("\n".join([
            "Performance ID: 21",
            "Code: 251020A",
            "Date: 10/20/2025",
            "Sales to Date: $51,642.30",
            "Date: TBD",
        ]))
        r = records[0]
        self.assertEqual(r.performance_date, date(2025, 10, 20))
        self.assertFalse(r.date_is_placeholder)
        self.assertEqual(r.total_revenue, Decimal("51642.30"))
        self.assertIsNone(r.venue)

    def test_block_without_code(self):
        records, _ = parse(self.TEXT)
        second = records[1]
        self.assertEqual(second.performance_code, "AUTO13")
        self.assertTrue(second.low_confidence)
        self.assertTrue(second.date_is_placeholder)


class TestFallback(unittest.TestCase):

    def test_mentions(self):
        records, strategy = parse("Performance - 251010E was rescheduled.\n"
                                  "See Performance - 251011F and Performance - 251010E")
        self.assertEqual(strategy, "fallback")
        self.assertEqual([r.performance_code for r in records], ["251010E", "251011F"])
        for r in records:
            self.assertTrue(r.low_confidence)
            self.assertTrue(r.date_is_placeholder)
            self.assertEqual(r.total_tickets_sold, 0)
            self.assertEqual(r.performance_date, ReportText(lines=[]).sentinel_date)


if __name__ == "__main__":
    unittest.main()
