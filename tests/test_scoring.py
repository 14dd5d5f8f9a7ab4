import logging
import unittest

from genz_analytics.core.records import SurveyResponse
from genz_analytics.core.scoring import (
    DIMENSIONS,
    compute_kpis,
    count_poor_behavior,
    digital_adoption_score,
    dimension_for_question,
    dimension_scores,
    literacy_score,
    normalize_score,
    question_performance,
    raw_average,
    score_dimension,
    score_respondent,
)


def setUpModule():
    logging.disable(logging.CRITICAL)


def tearDownModule():
    logging.disable(logging.NOTSET)


def _uniform(value, **kwargs):
    return SurveyResponse(answers=[value] * 48, **kwargs)


class TestNormalizeScore(unittest.TestCase):
    def test_reference_points(self):
        self.assertEqual(normalize_score(0, 1, 4, 4), 0.0)
        self.assertEqual(normalize_score(4, 1, 4, 25), 25.0)
        self.assertEqual(normalize_score(2.5, 1, 4, 4), 2.0)
        self.assertEqual(normalize_score(1, 1, 4, 4), 0.0)

    def test_missing_and_degenerate(self):
        self.assertEqual(normalize_score(None), 0.0)
        self.assertEqual(normalize_score(float("nan")), 0.0)
        self.assertEqual(normalize_score("abc"), 0.0)
        self.assertEqual(normalize_score(3, 2, 2, 4), 0.0)

    def test_below_scale_minimum_is_clamped(self):
        self.assertEqual(normalize_score(0.5, 1, 4, 4), 0.0)
        partly_answered = SurveyResponse(answers=[1] * 10)
        self.assertEqual(literacy_score(partly_answered), 0.0)


class TestSurveyResponse(unittest.TestCase):
    def test_always_48_slots(self):
        short = SurveyResponse(answers=[4, 3])
        self.assertEqual(len(short.answers), 48)
        self.assertEqual(short.answer("Q2"), 3.0)
        self.assertEqual(short.answer(48), 0.0)

        long = SurveyResponse(answers=[1] * 60)
        self.assertEqual(len(long.answers), 48)

    def test_unreadable_answers_read_as_zero(self):
        row = SurveyResponse(answers=[4, None, 3, "abc", float("nan"), float("inf"), "2,5", True])
        self.assertEqual(row.answers[:8], (4.0, 0.0, 3.0, 0.0, 0.0, 0.0, 2.5, 0.0))
        self.assertEqual(len(SurveyResponse(answers=None).answers), 48)

    def test_out_of_range_question(self):
        row = _uniform(2)
        self.assertEqual(row.answer("Q49"), 0.0)
        self.assertEqual(row.answer(0), 0.0)
        self.assertEqual(row.answer("bogus"), 0.0)


class TestDimensions(unittest.TestCase):
    def test_partition_is_contiguous(self):
        covered = []
        for dim in DIMENSIONS:
            covered.extend(range(dim.first_question, dim.last_question + 1))
        self.assertEqual(covered, list(range(1, 49)))

    def test_dimension_for_question(self):
        self.assertEqual(dimension_for_question(9).key, "financial_knowledge")
        self.assertEqual(dimension_for_question(10).key, "digital_literacy")
        self.assertEqual(dimension_for_question(29).key, "financial_behavior")
        self.assertEqual(dimension_for_question(48).key, "wellbeing")
        self.assertIsNone(dimension_for_question(49))


class TestScoreDimension(unittest.TestCase):
    def test_three_respondent_scenario(self):
        rows = [
            SurveyResponse(answers=[4] * 9),
            SurveyResponse(answers=[1] * 9),
            SurveyResponse(answers=[2] * 9),
        ]
        self.assertAlmostEqual(raw_average(rows, (1, 9)), 7 / 3)
        self.assertAlmostEqual(score_dimension(rows, (1, 9), 4), 1.778, places=3)

    def test_empty_inputs(self):
        self.assertEqual(score_dimension([], (1, 9)), 0.0)
        self.assertEqual(score_dimension([_uniform(3)], (10, 5)), 0.0)
        self.assertEqual(score_dimension([_uniform(3)], (60, 70)), 0.0)

    def test_missing_answers_pull_average_down(self):
        row = SurveyResponse(answers=[4] * 24)
        self.assertAlmostEqual(raw_average([row], (1, 48)), 2.0)

    def test_respondent_scores(self):
        row = _uniform(4)
        self.assertEqual(score_respondent(row), 4.0)
        self.assertEqual(literacy_score(row), 4.0)
        self.assertEqual(digital_adoption_score(row), 4.0)
        self.assertEqual(literacy_score(SurveyResponse(answers=[])), 0.0)

    def test_dimension_scores_on_25_scale(self):
        scores = dimension_scores([_uniform(4)])
        self.assertEqual([s.key for s in scores], [d.key for d in DIMENSIONS])
        for s in scores:
            self.assertEqual(s.value, 25.0)
            self.assertEqual(s.scale, 25)


class TestKPIs(unittest.TestCase):
    def test_trend_compares_recent_rows(self):
        rows = [_uniform(2)] * 4 + [_uniform(3)]
        kpis = compute_kpis(rows)
        self.assertEqual(kpis.respondents, 5)
        self.assertAlmostEqual(kpis.trend, 100.0)

    def test_empty(self):
        kpis = compute_kpis([])
        self.assertEqual(kpis.respondents, 0)
        self.assertEqual(kpis.literacy, 0.0)
        self.assertEqual(kpis.trend, 0.0)
        self.assertEqual(len(kpis.dimensions), 5)

    def test_dimension_ranges(self):
        answers = [0.0] * 48
        for q in range(10, 19):
            answers[q - 1] = 4
        kpis = compute_kpis([SurveyResponse(answers=answers)])
        self.assertEqual(kpis.digital, 4.0)
        self.assertEqual(kpis.behavior, 0.0)
        self.assertEqual(kpis.wellbeing, 0.0)


class TestQuestionPerformance(unittest.TestCase):
    def test_weakest_first(self):
        answers = [3] * 48
        answers[4] = 1       # Q5
        answers[39] = 2      # Q40
        result = question_performance([SurveyResponse(answers=answers)])
        self.assertEqual(len(result), 48)
        self.assertEqual([q.question for q in result[:3]], ["Q5", "Q40", "Q1"])
        self.assertEqual(result[0].dimension, "Financial Knowledge")
        self.assertEqual(result[1].percentage, 50.0)

    def test_empty(self):
        self.assertEqual(question_performance([]), [])


class TestPoorBehavior(unittest.TestCase):
    def test_threshold(self):
        self.assertEqual(count_poor_behavior([_uniform(2), _uniform(3), _uniform(2.5)]), 1)


if __name__ == "__main__":
    unittest.main()
