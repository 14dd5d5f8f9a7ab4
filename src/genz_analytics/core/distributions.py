"""
Threshold buckets, categorical distributions and correlations over profile
and survey records.

Cut-points:
  debt-to-income (outstanding loan / annual income):
      Healthy <= 30% < Warning <= 50% < Critical
  savings rate ((income - expense) / income):
      Deficit < 0% <= Low <= 10% < Moderate <= 30% < High
  urbanization:
      Rural < 30% <= Semi-Urban < 50% <= Urban < 70% <= Highly Urban
  anxiety (1..5):
      Low < 3 <= Moderate < 4 <= High
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Optional, Sequence

from genz_analytics.core.amounts import (
    INCOME_BUCKET_LABELS,
    UNKNOWN_BUCKET,
    income_bucket,
    parse_amount,
)
from genz_analytics.core.records import ProfileRecord, SurveyResponse
from genz_analytics.core.scoring import digital_adoption_score, literacy_score
from genz_analytics.core.stats import CorrelationResult, correlation_result

logger = logging.getLogger(__name__)

NOT_KNOWN_LABEL = "Tidak diketahui"
NO_INVESTMENT_LABEL = "Tidak Berinvestasi"

DEBT_RATIO_LABELS = ("Healthy", "Warning", "Critical")
SAVINGS_RATE_LABELS = ("Deficit", "Low", "Moderate", "High")
URBANIZATION_LABELS = (
    "Rural (<30%)",
    "Semi-Urban (30-50%)",
    "Urban (50-70%)",
    "Highly Urban (>70%)",
)
ANXIETY_LABELS = ("Low", "Moderate", "High")

EWALLET_ORDER = (
    "< Rp500.000",
    "Rp500.001 - Rp1.000.000",
    "Rp1.000.001 - Rp3.000.000",
    "> Rp3.000.000",
    NOT_KNOWN_LABEL,
)

MONTHS_PER_YEAR = 12


@dataclass(frozen=True)
class BucketCount:
    label: str
    count: int
    percentage: float


@dataclass(frozen=True)
class LoanPurposeSummary:
    purpose: str
    count: int
    average_debt: float       # Rupiah
    percentage: float


@dataclass(frozen=True)
class EducationBreakdown:
    education: str
    total: int
    by_employment: Dict[str, int] = field(default_factory=dict)


@dataclass(frozen=True)
class IncomeExpenseSummary:
    count: int
    average_income: float
    average_expense: float
    deficit_count: int
    deficit_percentage: float


# ---------------------------------------------------------------------------
# Bucket functions
# ---------------------------------------------------------------------------

def debt_ratio_bucket(ratio_percent: float) -> str:
    if ratio_percent <= 30:
        return "Healthy"
    if ratio_percent <= 50:
        return "Warning"
    return "Critical"


def savings_rate_bucket(rate_percent: float) -> str:
    if rate_percent < 0:
        return "Deficit"
    if rate_percent <= 10:
        return "Low"
    if rate_percent <= 30:
        return "Moderate"
    return "High"


def urbanization_bucket(percent: float) -> str:
    if percent < 30:
        return URBANIZATION_LABELS[0]
    if percent < 50:
        return URBANIZATION_LABELS[1]
    if percent < 70:
        return URBANIZATION_LABELS[2]
    return URBANIZATION_LABELS[3]


def anxiety_bucket(score: float) -> str:
    if score < 3:
        return "Low"
    if score < 4:
        return "Moderate"
    return "High"


# ---------------------------------------------------------------------------
# Per-record derived metrics
# ---------------------------------------------------------------------------

def monthly_income(profile: ProfileRecord) -> float:
    return parse_amount(profile.avg_monthly_income)


def monthly_expense(profile: ProfileRecord) -> float:
    return parse_amount(profile.avg_monthly_expense)


def debt_to_income_ratio(profile: ProfileRecord) -> Optional[float]:
    """Outstanding loan as % of annual income; None without an income estimate."""
    income = monthly_income(profile)
    if income <= 0:
        return None
    return (profile.outstanding_loan / (income * MONTHS_PER_YEAR)) * 100


def savings_rate(profile: ProfileRecord) -> Optional[float]:
    income = monthly_income(profile)
    if income <= 0:
        return None
    return ((income - monthly_expense(profile)) / income) * 100


# ---------------------------------------------------------------------------
# Distributions
# ---------------------------------------------------------------------------

def _bucket_counts(labels: Sequence[str], values: Iterable[str], keep_empty: bool = True) -> List[BucketCount]:
    counts: Dict[str, int] = {label: 0 for label in labels}
    for value in values:
        counts[value] = counts.get(value, 0) + 1
    total = sum(counts.values())

    out: List[BucketCount] = []
    for label, count in counts.items():
        if not keep_empty and count == 0:
            continue
        pct = (count / total) * 100 if total else 0.0
        out.append(BucketCount(label=label, count=count, percentage=pct))
    return out


def debt_to_income_distribution(profiles: Iterable[ProfileRecord]) -> List[BucketCount]:
    """Risk buckets over borrowers with both an income estimate and a loan."""
    labels: List[str] = []
    for p in profiles:
        ratio = debt_to_income_ratio(p)
        if ratio is None or p.outstanding_loan <= 0:
            continue
        labels.append(debt_ratio_bucket(ratio))
    return _bucket_counts(DEBT_RATIO_LABELS, labels)


def savings_rate_distribution(profiles: Iterable[ProfileRecord]) -> List[BucketCount]:
    """Savings buckets over records with an income estimate; percentages use that base."""
    labels = []
    for p in profiles:
        rate = savings_rate(p)
        if rate is not None:
            labels.append(savings_rate_bucket(rate))
    return _bucket_counts(SAVINGS_RATE_LABELS, labels)


def anxiety_distribution(profiles: Iterable[ProfileRecord]) -> List[BucketCount]:
    # 0 is the missing-value sentinel, not a calm respondent
    labels = [anxiety_bucket(p.financial_anxiety_score) for p in profiles if p.financial_anxiety_score > 0]
    return _bucket_counts(ANXIETY_LABELS, labels)


def income_distribution(profiles: Iterable[ProfileRecord]) -> List[BucketCount]:
    labels = [income_bucket(p.avg_monthly_income) for p in profiles]
    known = [label for label in labels if label != UNKNOWN_BUCKET]
    if len(known) != len(labels):
        logger.debug("Income distribution: %d rows without an income estimate.", len(labels) - len(known))
    return _bucket_counts(INCOME_BUCKET_LABELS, known)


def income_expense_summary(profiles: Iterable[ProfileRecord]) -> IncomeExpenseSummary:
    """Averages in Rupiah over rows where both amounts parse to a positive value."""
    incomes: List[float] = []
    expenses: List[float] = []
    deficit = 0
    for p in profiles:
        income, expense = monthly_income(p), monthly_expense(p)
        if income <= 0 or expense <= 0:
            continue
        incomes.append(income)
        expenses.append(expense)
        if expense > income:
            deficit += 1

    n = len(incomes)
    if n == 0:
        return IncomeExpenseSummary(0, 0.0, 0.0, 0, 0.0)
    return IncomeExpenseSummary(
        count=n,
        average_income=sum(incomes) / n,
        average_expense=sum(expenses) / n,
        deficit_count=deficit,
        deficit_percentage=(deficit / n) * 100,
    )


def category_counts(
    profiles: Iterable[ProfileRecord],
    field_getter: Callable[[ProfileRecord], str],
    default: str = NOT_KNOWN_LABEL,
) -> List[BucketCount]:
    """Count a categorical field, most frequent first (label order on ties)."""
    values = [(field_getter(p) or "").strip() or default for p in profiles]
    counts = _bucket_counts((), values)
    return sorted(counts, key=lambda b: (-b.count, b.label))


def fintech_app_usage(profiles: Iterable[ProfileRecord]) -> List[BucketCount]:
    return category_counts(profiles, lambda p: p.main_fintech_app)


def investment_distribution(profiles: Iterable[ProfileRecord]) -> List[BucketCount]:
    return category_counts(profiles, lambda p: p.investment_type, default=NO_INVESTMENT_LABEL)


def ewallet_distribution(profiles: Iterable[ProfileRecord]) -> List[BucketCount]:
    """E-wallet spend buckets in ascending spend order; unlisted buckets follow by count."""
    counts = category_counts(profiles, lambda p: p.ewallet_spending)
    by_label = {b.label: b for b in counts}
    ordered = [by_label[label] for label in EWALLET_ORDER if label in by_label]
    extras = [b for b in counts if b.label not in EWALLET_ORDER]
    return ordered + extras


def loan_purpose_summary(profiles: Iterable[ProfileRecord]) -> List[LoanPurposeSummary]:
    profiles = list(profiles)
    if not profiles:
        return []

    totals: Dict[str, List[float]] = {}
    for p in profiles:
        purpose = (p.loan_usage_purpose or "").strip() or NOT_KNOWN_LABEL
        totals.setdefault(purpose, []).append(p.outstanding_loan)

    out = [
        LoanPurposeSummary(
            purpose=purpose,
            count=len(debts),
            average_debt=sum(debts) / len(debts),
            percentage=(len(debts) / len(profiles)) * 100,
        )
        for purpose, debts in totals.items()
    ]
    return sorted(out, key=lambda s: (-s.count, s.purpose))


def education_employment_breakdown(profiles: Iterable[ProfileRecord]) -> List[EducationBreakdown]:
    breakdown: Dict[str, Dict[str, int]] = {}
    for p in profiles:
        edu = (p.education_level or "").strip() or NOT_KNOWN_LABEL
        emp = (p.employment_status or "").strip() or NOT_KNOWN_LABEL
        by_emp = breakdown.setdefault(edu, {})
        by_emp[emp] = by_emp.get(emp, 0) + 1

    out = [
        EducationBreakdown(education=edu, total=sum(by_emp.values()), by_employment=dict(sorted(by_emp.items())))
        for edu, by_emp in breakdown.items()
    ]
    return sorted(out, key=lambda b: (-b.total, b.education))


def digital_time_vs_anxiety(profiles: Iterable[ProfileRecord]) -> Optional[CorrelationResult]:
    """Correlation of daily digital hours with anxiety, over rows with digital time > 0."""
    points = [
        (p.digital_time_spent_per_day, p.financial_anxiety_score)
        for p in profiles
        if p.digital_time_spent_per_day > 0
    ]
    return correlation_result([t for t, _ in points], [a for _, a in points])


def literacy_vs_digital(rows: Iterable[SurveyResponse]) -> Optional[CorrelationResult]:
    """Correlation of literacy with digital adoption, over respondents scoring above 0 on both."""
    points = []
    for row in rows:
        literacy, digital = literacy_score(row), digital_adoption_score(row)
        if literacy > 0 and digital > 0:
            points.append((literacy, digital))
    logger.debug("literacy_vs_digital: %d usable respondents.", len(points))
    return correlation_result([lit for lit, _ in points], [dig for _, dig in points])
