import logging
import unittest

from genz_analytics.core.records import DatasetSnapshot, ProfileRecord, RegionalIndicator, SurveyResponse
from genz_analytics.core.summary import _direction_from_delta, build_dashboard_summary


def setUpModule():
    logging.disable(logging.CRITICAL)


def tearDownModule():
    logging.disable(logging.NOTSET)


class TestDirection(unittest.TestCase):
    def test_direction(self):
        self.assertEqual(_direction_from_delta(5.0), "increase")
        self.assertEqual(_direction_from_delta(-5.0), "decrease")
        self.assertEqual(_direction_from_delta(0.05), "no_change")
        self.assertEqual(_direction_from_delta(float("nan")), "no_change")


class TestDashboardSummary(unittest.TestCase):
    def test_build(self):
        survey = tuple(
            [SurveyResponse(answers=[2] * 48, province="Jakarta")] * 4
            + [SurveyResponse(answers=[3] * 48, province="Atlantis")]
        )
        profiles = (
            ProfileRecord("u1", avg_monthly_income="Rp5.000.000", outstanding_loan=36_000_000,
                          financial_anxiety_score=4),
        )
        regional = (RegionalIndicator("DKI Jakarta", urbanization_percent=100),)
        summary = build_dashboard_summary(DatasetSnapshot(survey, profiles, regional), top_n=1, weakest_n=3)

        self.assertEqual(summary.kpis.respondents, 5)
        self.assertEqual(summary.trend_direction, "increase")
        self.assertEqual([g.group for g in summary.top_provinces], ["ATLANTIS"])
        self.assertEqual([g.group for g in summary.bottom_provinces], ["DKI JAKARTA"])
        self.assertEqual(summary.unjoined_provinces, ["ATLANTIS"])
        self.assertEqual(len(summary.weakest_questions), 3)
        self.assertEqual(summary.poor_behavior_count, 4)
        self.assertEqual({b.label: b.count for b in summary.debt_risk}["Critical"], 1)
        self.assertEqual({b.label: b.count for b in summary.anxiety}["High"], 1)

    def test_empty_snapshot(self):
        summary = build_dashboard_summary(DatasetSnapshot())
        self.assertEqual(summary.kpis.respondents, 0)
        self.assertEqual(summary.trend_direction, "no_change")
        self.assertEqual(summary.top_provinces, [])
        self.assertEqual(summary.province_regional, [])
        self.assertEqual(summary.weakest_questions, [])


if __name__ == "__main__":
    unittest.main()
