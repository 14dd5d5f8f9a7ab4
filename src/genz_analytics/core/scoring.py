from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Tuple

from genz_analytics.config import (
    DIMENSION_SCALE,
    LIKERT_MAX,
    LIKERT_MIN,
    QUESTION_COUNT,
    TARGET_SCALE,
)
from genz_analytics.core.records import SurveyResponse, question_key

logger = logging.getLogger(__name__)

QuestionRange = Tuple[int, int]

ALL_QUESTIONS: QuestionRange = (1, QUESTION_COUNT)

# Share of rows (oldest first) treated as the baseline for the KPI trend
TREND_BASELINE_SHARE = 0.8

POOR_BEHAVIOR_THRESHOLD = 2.5


@dataclass(frozen=True)
class Dimension:
    key: str
    label_en: str
    label_id: str
    first_question: int
    last_question: int

    @property
    def question_range(self) -> QuestionRange:
        return (self.first_question, self.last_question)


# The five dimensions partition Q1..Q48 contiguously.
DIMENSIONS: Tuple[Dimension, ...] = (
    Dimension("financial_knowledge", "Financial Knowledge", "Pengetahuan Finansial", 1, 9),
    Dimension("digital_literacy", "Digital Literacy", "Literasi Digital", 10, 18),
    Dimension("financial_behavior", "Financial Behavior", "Perilaku Finansial", 19, 29),
    Dimension("decision_making", "Decision Making", "Pengambilan Keputusan", 30, 39),
    Dimension("wellbeing", "Well-being", "Kesejahteraan", 40, 48),
)

DIMENSIONS_BY_KEY = {d.key: d for d in DIMENSIONS}


@dataclass(frozen=True)
class DimensionScore:
    name: str
    value: float
    scale: float
    key: str = ""


@dataclass(frozen=True)
class QuestionScore:
    question: str
    score: float          # raw mean on the 1..4 scale (missing counted as 0)
    dimension: str
    percentage: float     # score / LIKERT_MAX * 100


@dataclass(frozen=True)
class KPISummary:
    respondents: int
    literacy: float
    digital: float
    behavior: float
    wellbeing: float
    dimensions: List[DimensionScore]
    trend: float          # % change of literacy, recent rows vs baseline rows


def normalize_score(
    raw_average: float,
    source_min: float = LIKERT_MIN,
    source_max: float = LIKERT_MAX,
    target_scale: float = TARGET_SCALE,
) -> float:
    """
    Linear rescale of a bounded ordinal average onto [0, target_scale].

    A raw average of 0 means "no data" and maps to 0 instead of a negative
    score; so does a degenerate source range. Averages below source_min
    (partly answered rows, where blanks count as 0) are clamped to 0.
    """
    if raw_average is None:
        return 0.0
    try:
        raw = float(raw_average)
    except (TypeError, ValueError):
        return 0.0
    if raw == 0 or math.isnan(raw):
        return 0.0
    if source_max == source_min:
        return 0.0
    return max(0.0, ((raw - source_min) / (source_max - source_min)) * target_scale)


def question_slots(question_range: QuestionRange) -> range:
    """1-based question numbers covered by a [start, end] range, clipped to Q1..Q48."""
    try:
        start, end = int(question_range[0]), int(question_range[1])
    except (TypeError, ValueError, IndexError):
        return range(0)
    start = max(start, 1)
    end = min(end, QUESTION_COUNT)
    if start > end:
        return range(0)
    return range(start, end + 1)


def dimension_for_question(number: int) -> Optional[Dimension]:
    for dim in DIMENSIONS:
        if dim.first_question <= number <= dim.last_question:
            return dim
    return None


def raw_average(rows: Sequence[SurveyResponse], question_range: QuestionRange) -> float:
    """Mean answer over every row and every question in range; 0 when empty."""
    slots = question_slots(question_range)
    if not rows or len(slots) == 0:
        return 0.0
    total = math.fsum(row.answers[q - 1] for row in rows for q in slots)
    return total / (len(rows) * len(slots))


def score_dimension(
    rows: Iterable[SurveyResponse],
    question_range: QuestionRange,
    target_scale: float = TARGET_SCALE,
) -> float:
    rows = list(rows)
    return normalize_score(raw_average(rows, question_range), target_scale=target_scale)


def score_respondent(
    row: SurveyResponse,
    question_range: QuestionRange = ALL_QUESTIONS,
    target_scale: float = TARGET_SCALE,
) -> float:
    """Score of a single respondent (used by scatter plots and per-province averages)."""
    return normalize_score(raw_average([row], question_range), target_scale=target_scale)


def literacy_score(row: SurveyResponse) -> float:
    return score_respondent(row, ALL_QUESTIONS)


def digital_adoption_score(row: SurveyResponse) -> float:
    return score_respondent(row, DIMENSIONS_BY_KEY["digital_literacy"].question_range)


def dimension_scores(
    rows: Iterable[SurveyResponse],
    target_scale: float = DIMENSION_SCALE,
) -> List[DimensionScore]:
    rows = list(rows)
    return [
        DimensionScore(
            name=dim.label_en,
            value=score_dimension(rows, dim.question_range, target_scale),
            scale=target_scale,
            key=dim.key,
        )
        for dim in DIMENSIONS
    ]


def _trend(rows: List[SurveyResponse]) -> float:
    if not rows:
        return 0.0
    cutoff = int(math.floor(len(rows) * TREND_BASELINE_SHARE))
    older, recent = rows[:cutoff], rows[cutoff:]

    older_score = score_dimension(older, ALL_QUESTIONS) if older else 0.0
    recent_score = score_dimension(recent, ALL_QUESTIONS) if recent else 0.0
    if older_score == 0:
        return 0.0
    return ((recent_score - older_score) / older_score) * 100


def compute_kpis(rows: Iterable[SurveyResponse]) -> KPISummary:
    """
    Headline KPI cards for a survey slice.

    Literacy covers Q1..Q48; digital, behavior and well-being use their own
    dimension ranges. All four are on the 0..4 scale, the dimension list on
    0..25. The trend assumes rows are in collection order.
    """
    rows = list(rows)
    logger.debug("Computing KPIs for %d survey rows.", len(rows))
    return KPISummary(
        respondents=len(rows),
        literacy=score_dimension(rows, ALL_QUESTIONS),
        digital=score_dimension(rows, DIMENSIONS_BY_KEY["digital_literacy"].question_range),
        behavior=score_dimension(rows, DIMENSIONS_BY_KEY["financial_behavior"].question_range),
        wellbeing=score_dimension(rows, DIMENSIONS_BY_KEY["wellbeing"].question_range),
        dimensions=dimension_scores(rows),
        trend=_trend(rows),
    )


def question_performance(rows: Iterable[SurveyResponse]) -> List[QuestionScore]:
    """Per-question raw means, weakest first."""
    rows = list(rows)
    if not rows:
        return []

    scores: List[QuestionScore] = []
    for number in range(1, QUESTION_COUNT + 1):
        avg = math.fsum(row.answers[number - 1] for row in rows) / len(rows)
        dim = dimension_for_question(number)
        scores.append(
            QuestionScore(
                question=question_key(number),
                score=avg,
                dimension=dim.label_en if dim else "",
                percentage=(avg / LIKERT_MAX) * 100,
            )
        )
    # stable sort keeps Q order among ties
    return sorted(scores, key=lambda s: s.score)


def count_poor_behavior(
    rows: Iterable[SurveyResponse],
    threshold: float = POOR_BEHAVIOR_THRESHOLD,
) -> int:
    """Respondents whose raw financial-behavior average is below threshold."""
    behavior = DIMENSIONS_BY_KEY["financial_behavior"].question_range
    return sum(1 for row in rows if raw_average([row], behavior) < threshold)
