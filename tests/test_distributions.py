import logging
import unittest

from genz_analytics.core.distributions import (
    anxiety_bucket,
    anxiety_distribution,
    category_counts,
    debt_ratio_bucket,
    debt_to_income_distribution,
    debt_to_income_ratio,
    digital_time_vs_anxiety,
    education_employment_breakdown,
    ewallet_distribution,
    fintech_app_usage,
    income_distribution,
    income_expense_summary,
    investment_distribution,
    literacy_vs_digital,
    loan_purpose_summary,
    savings_rate,
    savings_rate_bucket,
    savings_rate_distribution,
    urbanization_bucket,
)
from genz_analytics.core.records import ProfileRecord, SurveyResponse


def setUpModule():
    logging.disable(logging.CRITICAL)


def tearDownModule():
    logging.disable(logging.NOTSET)


def _counts(buckets):
    return {b.label: b.count for b in buckets}


class TestBuckets(unittest.TestCase):
    def test_debt_ratio(self):
        self.assertEqual(debt_ratio_bucket(0), "Healthy")
        self.assertEqual(debt_ratio_bucket(30), "Healthy")
        self.assertEqual(debt_ratio_bucket(30.01), "Warning")
        self.assertEqual(debt_ratio_bucket(50), "Warning")
        self.assertEqual(debt_ratio_bucket(50.5), "Critical")

    def test_savings_rate(self):
        self.assertEqual(savings_rate_bucket(-0.1), "Deficit")
        self.assertEqual(savings_rate_bucket(0), "Low")
        self.assertEqual(savings_rate_bucket(10), "Low")
        self.assertEqual(savings_rate_bucket(30), "Moderate")
        self.assertEqual(savings_rate_bucket(30.5), "High")

    def test_urbanization(self):
        self.assertEqual(urbanization_bucket(29.9), "Rural (<30%)")
        self.assertEqual(urbanization_bucket(30), "Semi-Urban (30-50%)")
        self.assertEqual(urbanization_bucket(50), "Urban (50-70%)")
        self.assertEqual(urbanization_bucket(70), "Highly Urban (>70%)")

    def test_anxiety(self):
        self.assertEqual(anxiety_bucket(2.9), "Low")
        self.assertEqual(anxiety_bucket(3), "Moderate")
        self.assertEqual(anxiety_bucket(3.99), "Moderate")
        self.assertEqual(anxiety_bucket(4), "High")


class TestDebtToIncome(unittest.TestCase):
    def test_sixty_percent_is_critical(self):
        profile = ProfileRecord("u1", avg_monthly_income="Rp5.000.000", outstanding_loan=36_000_000)
        self.assertAlmostEqual(debt_to_income_ratio(profile), 60.0)

        dist = debt_to_income_distribution([profile])
        self.assertEqual(_counts(dist), {"Healthy": 0, "Warning": 0, "Critical": 1})
        critical = [b for b in dist if b.label == "Critical"][0]
        self.assertEqual(critical.percentage, 100.0)

    def test_only_borrowers_with_income_count(self):
        profiles = [
            ProfileRecord("a", avg_monthly_income="Rp5.000.000", outstanding_loan=1_000_000),
            ProfileRecord("b", avg_monthly_income="", outstanding_loan=1_000_000),
            ProfileRecord("c", avg_monthly_income="Rp5.000.000", outstanding_loan=0),
        ]
        self.assertEqual(_counts(debt_to_income_distribution(profiles)), {"Healthy": 1, "Warning": 0, "Critical": 0})
        self.assertIsNone(debt_to_income_ratio(profiles[1]))

    def test_empty(self):
        dist = debt_to_income_distribution([])
        self.assertEqual([b.label for b in dist], ["Healthy", "Warning", "Critical"])
        self.assertTrue(all(b.percentage == 0.0 for b in dist))


class TestSavings(unittest.TestCase):
    def test_rates(self):
        profiles = [
            ProfileRecord("a", avg_monthly_income="4000000", avg_monthly_expense="5000000"),
            ProfileRecord("b", avg_monthly_income="4000000", avg_monthly_expense="3800000"),
            ProfileRecord("c", avg_monthly_income="4000000", avg_monthly_expense="3000000"),
            ProfileRecord("d", avg_monthly_income="4000000", avg_monthly_expense=""),
            ProfileRecord("e", avg_monthly_income="", avg_monthly_expense="1000000"),
        ]
        self.assertAlmostEqual(savings_rate(profiles[0]), -25.0)
        self.assertIsNone(savings_rate(profiles[4]))

        dist = savings_rate_distribution(profiles)
        self.assertEqual(_counts(dist), {"Deficit": 1, "Low": 1, "Moderate": 1, "High": 1})
        self.assertEqual([b.percentage for b in dist], [25.0, 25.0, 25.0, 25.0])


class TestProfileDistributions(unittest.TestCase):
    def test_anxiety_distribution_ignores_missing(self):
        profiles = [ProfileRecord(str(i), financial_anxiety_score=s) for i, s in enumerate([0, 1, 3.5, 4, 5])]
        self.assertEqual(_counts(anxiety_distribution(profiles)), {"Low": 1, "Moderate": 1, "High": 2})

    def test_income_distribution(self):
        profiles = [
            ProfileRecord("a", avg_monthly_income="< Rp2.000.000"),
            ProfileRecord("b", avg_monthly_income="> Rp15.000.000"),
            ProfileRecord("c", avg_monthly_income="tidak tahu"),
        ]
        counts = _counts(income_distribution(profiles))
        self.assertEqual(counts["<2M"], 1)
        self.assertEqual(counts[">15M"], 1)
        self.assertNotIn("Unknown", counts)

    def test_income_expense_summary(self):
        profiles = [
            ProfileRecord("a", avg_monthly_income="< Rp2.000.000", avg_monthly_expense="Rp1.500.000"),
            ProfileRecord("b", avg_monthly_income="Rp3.000.000", avg_monthly_expense="Rp1.000.000"),
            ProfileRecord("c", avg_monthly_income="Rp3.000.000", avg_monthly_expense=""),
        ]
        summary = income_expense_summary(profiles)
        self.assertEqual(summary.count, 2)
        self.assertEqual(summary.average_income, 2_000_000)
        self.assertEqual(summary.average_expense, 1_250_000)
        self.assertEqual(summary.deficit_count, 1)
        self.assertEqual(summary.deficit_percentage, 50.0)
        self.assertEqual(income_expense_summary([]).count, 0)

    def test_category_defaults(self):
        profiles = [
            ProfileRecord("a", main_fintech_app="GoPay", investment_type=""),
            ProfileRecord("b", main_fintech_app="OVO", investment_type="Reksa Dana"),
            ProfileRecord("c", main_fintech_app="GoPay", investment_type="  "),
            ProfileRecord("d", main_fintech_app="", investment_type="Saham"),
        ]
        apps = fintech_app_usage(profiles)
        self.assertEqual([(b.label, b.count) for b in apps], [("GoPay", 2), ("OVO", 1), ("Tidak diketahui", 1)])
        invest = _counts(investment_distribution(profiles))
        self.assertEqual(invest["Tidak Berinvestasi"], 2)
        self.assertEqual(category_counts([], lambda p: p.gender), [])

    def test_ewallet_fixed_order(self):
        values = ["> Rp3.000.000", "< Rp500.000", "Lainnya", "< Rp500.000", "", "Rp500.001 - Rp1.000.000"]
        profiles = [ProfileRecord(str(i), ewallet_spending=v) for i, v in enumerate(values)]
        labels = [b.label for b in ewallet_distribution(profiles)]
        self.assertEqual(
            labels,
            ["< Rp500.000", "Rp500.001 - Rp1.000.000", "> Rp3.000.000", "Tidak diketahui", "Lainnya"],
        )

    def test_loan_purpose(self):
        profiles = [
            ProfileRecord("a", loan_usage_purpose="Pendidikan", outstanding_loan=2_000_000),
            ProfileRecord("b", loan_usage_purpose="Pendidikan", outstanding_loan=4_000_000),
            ProfileRecord("c", loan_usage_purpose="", outstanding_loan=0),
        ]
        result = loan_purpose_summary(profiles)
        self.assertEqual(result[0].purpose, "Pendidikan")
        self.assertEqual(result[0].count, 2)
        self.assertEqual(result[0].average_debt, 3_000_000)
        self.assertAlmostEqual(result[0].percentage, 200 / 3)
        self.assertEqual(result[1].purpose, "Tidak diketahui")
        self.assertEqual(loan_purpose_summary([]), [])

    def test_education_employment(self):
        profiles = [
            ProfileRecord("a", education_level="S1", employment_status="Karyawan"),
            ProfileRecord("b", education_level="S1", employment_status="Pelajar"),
            ProfileRecord("c", education_level="SMA", employment_status="Pelajar"),
        ]
        result = education_employment_breakdown(profiles)
        self.assertEqual([b.education for b in result], ["S1", "SMA"])
        self.assertEqual(result[0].by_employment, {"Karyawan": 1, "Pelajar": 1})

    def test_digital_time_vs_anxiety(self):
        profiles = [
            ProfileRecord("a", digital_time_spent_per_day=2, financial_anxiety_score=2),
            ProfileRecord("b", digital_time_spent_per_day=4, financial_anxiety_score=3),
            ProfileRecord("c", digital_time_spent_per_day=6, financial_anxiety_score=4),
            ProfileRecord("d", digital_time_spent_per_day=0, financial_anxiety_score=1),
        ]
        result = digital_time_vs_anxiety(profiles)
        self.assertEqual(result.n, 3)
        self.assertAlmostEqual(result.r, 1.0)
        self.assertAlmostEqual(result.slope, 0.5)
        self.assertIsNone(digital_time_vs_anxiety(profiles[:1]))

    def test_literacy_vs_digital_skips_unscored_rows(self):
        rows = [SurveyResponse(answers=[v] * 48) for v in (2, 3, 4, 1)]
        rows.append(SurveyResponse(answers=[4] * 9))
        result = literacy_vs_digital(rows)
        self.assertEqual(result.n, 3)
        self.assertAlmostEqual(result.r, 1.0)
        self.assertAlmostEqual(result.slope, 1.0)
        self.assertIsNone(literacy_vs_digital(rows[3:]))


if __name__ == "__main__":
    unittest.main()
