from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import List, Optional

from genz_analytics.core.aggregator import (
    GroupSummary,
    ProvinceAggregate,
    join_survey_regional,
    rank_provinces,
    top_bottom,
)
from genz_analytics.core.distributions import (
    BucketCount,
    anxiety_distribution,
    debt_to_income_distribution,
    savings_rate_distribution,
)
from genz_analytics.core.provinces import ProvinceNormalizer
from genz_analytics.core.records import DatasetSnapshot
from genz_analytics.core.scoring import (
    KPISummary,
    QuestionScore,
    compute_kpis,
    count_poor_behavior,
    question_performance,
)

logger = logging.getLogger(__name__)


@dataclass
class DashboardSummary:
    """
    Headline facts for one dataset slice.

    Everything the overview page shows comes from here, so the numbers on
    screen can be traced back to a single computation.
    """
    kpis: KPISummary
    trend_direction: str          # 'increase', 'decrease', 'no_change'

    top_provinces: List[GroupSummary]
    bottom_provinces: List[GroupSummary]
    province_regional: List[ProvinceAggregate]
    unjoined_provinces: List[str]

    weakest_questions: List[QuestionScore]
    poor_behavior_count: int

    debt_risk: List[BucketCount] = field(default_factory=list)
    savings: List[BucketCount] = field(default_factory=list)
    anxiety: List[BucketCount] = field(default_factory=list)


def _direction_from_delta(delta: float, tolerance: float = 0.1) -> str:
    """
    Interpret a numeric delta as 'increase', 'decrease', or 'no_change'.

    Tolerance is used to treat very small changes as 'no_change' to avoid
    over-interpreting small fluctuations.
    """
    if math.isnan(delta):
        return "no_change"
    if delta > tolerance:
        return "increase"
    if delta < -tolerance:
        return "decrease"
    return "no_change"


def build_dashboard_summary(
    snapshot: DatasetSnapshot,
    normalizer: Optional[ProvinceNormalizer] = None,
    top_n: int = 5,
    weakest_n: int = 5,
    tolerance: float = 0.1,
) -> DashboardSummary:
    """
    Build the overview facts for a snapshot (usually already filtered).

    The KPI trend is a percentage, so tolerance is in percentage points.
    """
    normalizer = normalizer or ProvinceNormalizer()

    kpis = compute_kpis(snapshot.survey)
    ranking = rank_provinces(snapshot.survey, normalizer)
    top, bottom = top_bottom(ranking, top_n)
    joined = join_survey_regional(snapshot.survey, snapshot.regional, normalizer)

    summary = DashboardSummary(
        kpis=kpis,
        trend_direction=_direction_from_delta(kpis.trend, tolerance=tolerance),
        top_provinces=top,
        bottom_provinces=bottom,
        province_regional=joined,
        unjoined_provinces=[p.province for p in joined if not p.joined],
        weakest_questions=question_performance(snapshot.survey)[:max(weakest_n, 0)],
        poor_behavior_count=count_poor_behavior(snapshot.survey),
        debt_risk=debt_to_income_distribution(snapshot.profiles),
        savings=savings_rate_distribution(snapshot.profiles),
        anxiety=anxiety_distribution(snapshot.profiles),
    )
    logger.debug(
        "Dashboard summary: %d respondents, %d provinces ranked, %d unjoined.",
        kpis.respondents,
        len(ranking),
        len(summary.unjoined_provinces),
    )
    return summary
