import unittest
from datetime import datetime, timezone

from kavach.core.errors import InvalidInput
from kavach.models.zone import RiskLevel
from kavach.services.risk_classifier import classify, zone_tally


class TestClassify(unittest.TestCase):

    def test_tier_boundaries(self):
        self.assertEqual(classify(0), RiskLevel.LOW)
        self.assertEqual(classify(5), RiskLevel.LOW)
        self.assertEqual(classify(6), RiskLevel.MEDIUM)
        self.assertEqual(classify(14), RiskLevel.MEDIUM)
        self.assertEqual(classify(15), RiskLevel.HIGH)
        self.assertEqual(classify(1000), RiskLevel.HIGH)

    def test_caution_band_is_stored_as_low(self):
        # 4-5 reports show as "caution" on the map legend only
        self.assertEqual(classify(4), RiskLevel.LOW)
        self.assertEqual(classify(5), RiskLevel.LOW)

    def test_monotonic(self):
        ranks = [classify(n).rank for n in range(0, 40)]
        self.assertEqual(ranks, sorted(ranks))

    def test_negative_count_rejected(self):
        with self.assertRaises(InvalidInput) as ctx:
            classify(-1)
        self.assertEqual(ctx.exception.context["report_count"], -1)


class TestZoneTally(unittest.TestCase):

    def test_tier_matches_count(self):
        for count in (0, 1, 5, 6, 14, 15, 30):
            tally = zone_tally(count)
            self.assertEqual(tally["report_count"], count)
            self.assertEqual(tally["risk_level"], classify(count).value)

    def test_uses_given_timestamp(self):
        now = datetime(2024, 3, 2, tzinfo=timezone.utc)
        self.assertEqual(zone_tally(3, now)["updated_at"], now)


if __name__ == '__main__':
    unittest.main()
