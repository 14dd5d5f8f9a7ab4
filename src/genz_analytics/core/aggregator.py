from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple, TypeVar

import pandas as pd

from genz_analytics.config import DIMENSION_SCALE, REFERENCE_YEAR, TARGET_SCALE
from genz_analytics.core.amounts import income_bucket
from genz_analytics.core.distributions import (
    ANXIETY_LABELS,
    URBANIZATION_LABELS,
    anxiety_bucket,
    urbanization_bucket,
)
from genz_analytics.core.provinces import ProvinceNormalizer
from genz_analytics.core.records import ProfileRecord, RegionalIndicator, SurveyResponse
from genz_analytics.core.scoring import DIMENSIONS, literacy_score, score_dimension

logger = logging.getLogger(__name__)

T = TypeVar("T")

UNKNOWN_GROUP = "Unknown"
AGE_GROUP_ORDER = ("13-17", "18-20", "21-23", "24-25", ">25", UNKNOWN_GROUP)

# (inclusive upper age, label)
_AGE_BOUNDS = ((17, "13-17"), (20, "18-20"), (23, "21-23"), (25, "24-25"))

EDUCATION_BANDS = ("SMA", "Sarjana", "Lainnya")

# Total PDRB is reported in billions; PDRB per capita is in thousand Rupiah
# and population in thousands.
_THOUSAND = 1000.0


@dataclass(frozen=True)
class GroupSummary:
    group: str
    average_score: float
    count: int


@dataclass(frozen=True)
class ProvinceAggregate:
    """One province's survey/profile average with the regional fields attached."""
    province: str
    average_score: float
    count: int
    joined: bool
    population_thousands: float = 0.0
    pdrb_ribu: float = 0.0
    outstanding_loan_billion: float = 0.0
    urbanization_percent: float = 0.0


@dataclass(frozen=True)
class UrbanizationImpact:
    category: str
    average_literacy: float
    respondents: int
    provinces: int


@dataclass(frozen=True)
class PdrbLoanPoint:
    province: str
    total_pdrb_billion: float
    outstanding_loan_billion: float
    pdrb_per_capita_ribu: float


@dataclass(frozen=True)
class InclusionGap:
    province: str
    gap_percent: float     # outstanding loans as % of PDRB per capita (millions)
    pdrb_per_capita_ribu: float
    outstanding_loan_billion: float


@dataclass(frozen=True)
class ProvinceLayerValue:
    """One province on a choropleth layer; value is 0 when no respondent lives there."""
    province: str
    value: float
    respondents: int


# Survey question texts behind the map layers, matched against the header labels.
FINANCIAL_STRAIN_QUESTIONS = (
    "I am behind with my finances",
    "My finances control my life",
)
DIGITAL_EXPERIENCE_QUESTIONS = (
    "Having experience in using the product and service of fintech for digital payment",
    "Experience in using the product and service of fintech for financing (loan) and investment",
    "Having a good understanding of digital payment products such as E-Debit, E-Credit, "
    "E-Money, Mobile/Internet banking, E -wallet",
)
# Unanswered strain questions read as neutral, unanswered digital ones as no experience.
STRAIN_DEFAULT = 3.0
DIGITAL_DEFAULT = 1.0


@dataclass(frozen=True)
class DimensionComparison:
    dimension: str
    scores: Dict[str, float]      # education band -> score on the 0..25 scale


# ---------------------------------------------------------------------------
# Demographic keys
# ---------------------------------------------------------------------------

def age_group(birth_year: Any, reference_year: int = REFERENCE_YEAR) -> str:
    """
    Age bucket for a birth year.

    Age is reference_year - birth_year; missing, zero or non-numeric birth
    years give "Unknown".
    """
    if birth_year is None or isinstance(birth_year, bool):
        return UNKNOWN_GROUP
    try:
        year = int(float(birth_year))
    except (TypeError, ValueError, OverflowError):
        return UNKNOWN_GROUP
    if year <= 0:
        return UNKNOWN_GROUP

    age = reference_year - year
    for upper, label in _AGE_BOUNDS:
        if age <= upper:
            return label
    return ">25"


def education_band(education_level: Any) -> str:
    text = str(education_level or "")
    if "Senior High School" in text or "SMA" in text:
        return "SMA"
    if "Bachelor" in text or "S1" in text:
        return "Sarjana"
    return "Lainnya"


def _group_label(value: Any) -> str:
    text = str(value).strip() if value is not None else ""
    return text or UNKNOWN_GROUP


# ---------------------------------------------------------------------------
# Group-by reduction
# ---------------------------------------------------------------------------

def group_scores(
    records: Iterable[T],
    key: Callable[[T], Any],
    value: Callable[[T], float],
    skip_zero: bool = False,
) -> List[GroupSummary]:
    """
    Average value per group, highest first (group name breaks ties).

    With skip_zero, records whose value is 0 (the "no data" sentinel) are
    left out of both the average and the count.
    """
    rows = []
    for rec in records:
        v = float(value(rec))
        if skip_zero and v == 0:
            continue
        rows.append({"group": _group_label(key(rec)), "value": v})

    if not rows:
        return []

    df = pd.DataFrame(rows)
    grouped = (
        df.groupby("group", sort=False)["value"]
        .agg(average_score="mean", n="count")
        .reset_index()
        .sort_values(["average_score", "group"], ascending=[False, True], kind="mergesort")
    )
    return [
        GroupSummary(group=str(r["group"]), average_score=float(r["average_score"]), count=int(r["n"]))
        for _, r in grouped.iterrows()
    ]


def rank_provinces(
    rows: Iterable[SurveyResponse],
    normalizer: Optional[ProvinceNormalizer] = None,
) -> List[GroupSummary]:
    """Province ranking by mean respondent literacy (0..4); unanswered rows are skipped."""
    normalizer = normalizer or ProvinceNormalizer()
    return group_scores(
        rows,
        key=lambda r: normalizer.normalize(r.province) or UNKNOWN_GROUP,
        value=literacy_score,
        skip_zero=True,
    )


def top_bottom(ranking: Sequence[GroupSummary], n: int = 5) -> Tuple[List[GroupSummary], List[GroupSummary]]:
    """(top n, bottom n) of an already-sorted ranking; bottom is lowest first."""
    if n <= 0:
        return [], []
    ranking = list(ranking)
    return ranking[:n], list(reversed(ranking[-n:]))


def _in_order(groups: List[GroupSummary], order: Sequence[str]) -> List[GroupSummary]:
    by_name = {g.group: g for g in groups}
    ordered = [by_name[name] for name in order if name in by_name]
    return ordered + [g for g in groups if g.group not in order]


def literacy_by_age_group(
    rows: Iterable[SurveyResponse],
    reference_year: int = REFERENCE_YEAR,
) -> List[GroupSummary]:
    """Mean literacy per age bucket, youngest bucket first."""
    groups = group_scores(rows, key=lambda r: age_group(r.birth_year, reference_year), value=literacy_score)
    return _in_order(groups, AGE_GROUP_ORDER)


def literacy_by_education(rows: Iterable[SurveyResponse]) -> List[GroupSummary]:
    return group_scores(rows, key=lambda r: r.education_level, value=literacy_score)


def dimension_comparison_by_education(rows: Iterable[SurveyResponse]) -> List[DimensionComparison]:
    """Each dimension scored on 0..25 per education band (SMA, Sarjana)."""
    bands: Dict[str, List[SurveyResponse]] = {band: [] for band in EDUCATION_BANDS}
    for row in rows:
        bands[education_band(row.education_level)].append(row)

    return [
        DimensionComparison(
            dimension=dim.label_en,
            scores={
                band: score_dimension(bands[band], dim.question_range, DIMENSION_SCALE)
                for band in ("SMA", "Sarjana")
            },
        )
        for dim in DIMENSIONS
    ]


# ---------------------------------------------------------------------------
# Cross-dataset joins
# ---------------------------------------------------------------------------

def index_regional(
    regional: Iterable[RegionalIndicator],
    normalizer: Optional[ProvinceNormalizer] = None,
) -> Dict[str, RegionalIndicator]:
    """Regional rows keyed by normalized province; the first row for a province wins."""
    normalizer = normalizer or ProvinceNormalizer()
    index: Dict[str, RegionalIndicator] = {}
    for rec in regional:
        key = normalizer.resolve(rec.province)
        if key is None:
            logger.warning("Regional row with unrecognized province %r skipped.", rec.province)
            continue
        if key in index:
            logger.warning("Duplicate regional row for %s ignored.", key)
            continue
        index[key] = rec
    return index


def _join(
    groups: List[GroupSummary],
    index: Dict[str, RegionalIndicator],
) -> List[ProvinceAggregate]:
    out: List[ProvinceAggregate] = []
    unjoined = []
    for g in groups:
        reg = index.get(g.group)
        if reg is None:
            unjoined.append(g.group)
            out.append(ProvinceAggregate(g.group, g.average_score, g.count, joined=False))
            continue
        out.append(
            ProvinceAggregate(
                province=g.group,
                average_score=g.average_score,
                count=g.count,
                joined=True,
                population_thousands=reg.population_thousands,
                pdrb_ribu=reg.pdrb_ribu,
                outstanding_loan_billion=reg.outstanding_loan_billion,
                urbanization_percent=reg.urbanization_percent,
            )
        )
    if unjoined:
        logger.warning("No regional data for %d province(s): %s", len(unjoined), ", ".join(unjoined))
    return out


def join_survey_regional(
    rows: Iterable[SurveyResponse],
    regional: Iterable[RegionalIndicator],
    normalizer: Optional[ProvinceNormalizer] = None,
) -> List[ProvinceAggregate]:
    """Per-province survey literacy with that province's regional indicators."""
    normalizer = normalizer or ProvinceNormalizer()
    return _join(rank_provinces(rows, normalizer), index_regional(regional, normalizer))


def join_profile_regional(
    profiles: Iterable[ProfileRecord],
    regional: Iterable[RegionalIndicator],
    value: Optional[Callable[[ProfileRecord], float]] = None,
    normalizer: Optional[ProvinceNormalizer] = None,
) -> List[ProvinceAggregate]:
    """
    Per-province profile average with regional indicators attached.

    value defaults to the financial anxiety score; zero values are skipped.
    """
    normalizer = normalizer or ProvinceNormalizer()
    value = value or (lambda p: p.financial_anxiety_score)
    groups = group_scores(
        profiles,
        key=lambda p: normalizer.normalize(p.province) or UNKNOWN_GROUP,
        value=value,
        skip_zero=True,
    )
    return _join(groups, index_regional(regional, normalizer))


def urbanization_impact(
    rows: Iterable[SurveyResponse],
    regional: Iterable[RegionalIndicator],
    normalizer: Optional[ProvinceNormalizer] = None,
) -> List[UrbanizationImpact]:
    """
    Mean respondent literacy per urbanization category of the respondent's
    province. Respondents without regional data or without answers are skipped.
    """
    normalizer = normalizer or ProvinceNormalizer()
    index = index_regional(regional, normalizer)

    scores: Dict[str, List[float]] = {label: [] for label in URBANIZATION_LABELS}
    provinces: Dict[str, set] = {label: set() for label in URBANIZATION_LABELS}
    for row in rows:
        key = normalizer.resolve(row.province)
        reg = index.get(key) if key is not None else None
        if reg is None:
            continue
        score = literacy_score(row)
        if score == 0:
            continue
        label = urbanization_bucket(reg.urbanization_percent)
        scores[label].append(score)
        provinces[label].add(key)

    return [
        UrbanizationImpact(
            category=label,
            average_literacy=sum(scores[label]) / len(scores[label]) if scores[label] else 0.0,
            respondents=len(scores[label]),
            provinces=len(provinces[label]),
        )
        for label in URBANIZATION_LABELS
    ]


def pdrb_vs_loans(regional: Iterable[RegionalIndicator]) -> List[PdrbLoanPoint]:
    """Total PDRB (billions) against outstanding loans, one point per province."""
    points = []
    for reg in regional:
        if reg.pdrb_ribu <= 0 or reg.population_thousands <= 0:
            continue
        total = (reg.pdrb_ribu / _THOUSAND) * reg.population_thousands / _THOUSAND
        points.append(
            PdrbLoanPoint(
                province=reg.province,
                total_pdrb_billion=total,
                outstanding_loan_billion=reg.outstanding_loan_billion,
                pdrb_per_capita_ribu=reg.pdrb_ribu,
            )
        )
    return sorted(points, key=lambda p: (-p.total_pdrb_billion, p.province))


def inclusion_gap(regional: Iterable[RegionalIndicator]) -> List[InclusionGap]:
    gaps = [
        InclusionGap(
            province=reg.province,
            gap_percent=reg.outstanding_loan_billion / (reg.pdrb_ribu / _THOUSAND) * 100,
            pdrb_per_capita_ribu=reg.pdrb_ribu,
            outstanding_loan_billion=reg.outstanding_loan_billion,
        )
        for reg in regional
        if reg.pdrb_ribu > 0
    ]
    return sorted(gaps, key=lambda g: (-g.gap_percent, g.province))


def _label_key(text: Any) -> str:
    return " ".join(str(text).split()).casefold()


def _question_keys(question_labels: Dict[str, str], texts: Sequence[str]) -> List[Optional[str]]:
    """Q-keys for question texts, via the survey header labels; None where a text is absent."""
    by_text = {_label_key(label): key for key, label in question_labels.items()}
    keys = [by_text.get(_label_key(text)) for text in texts]
    missing = [text for text, key in zip(texts, keys) if key is None]
    if missing:
        logger.warning("Survey header lacks %d layer question(s): %s", len(missing), "; ".join(missing))
    return keys


def _answer_or(row: SurveyResponse, key: Optional[str], default: float) -> float:
    value = row.answer(key) if key is not None else 0.0
    return value or default


def _province_layer(
    rows: Iterable[SurveyResponse],
    regional: Iterable[RegionalIndicator],
    score: Callable[[SurveyResponse], float],
    normalizer: Optional[ProvinceNormalizer],
) -> List[ProvinceLayerValue]:
    normalizer = normalizer or ProvinceNormalizer()
    by_province: Dict[str, List[float]] = {}
    for row in rows:
        key = normalizer.resolve(row.province)
        if key is not None:
            by_province.setdefault(key, []).append(score(row))

    out = []
    for key in index_regional(regional, normalizer):
        values = by_province.get(key, [])
        out.append(
            ProvinceLayerValue(
                province=key,
                value=sum(values) / len(values) if values else 0.0,
                respondents=len(values),
            )
        )
    return out


def province_vulnerability(
    rows: Iterable[SurveyResponse],
    regional: Iterable[RegionalIndicator],
    question_labels: Dict[str, str],
    normalizer: Optional[ProvinceNormalizer] = None,
) -> List[ProvinceLayerValue]:
    """
    Mean financial vulnerability per regional province; higher is worse.

    Per respondent: ((4 - literacy) + mean strain answer) / 2, where the strain
    answers are FINANCIAL_STRAIN_QUESTIONS located through question_labels
    (Q-key -> header text, see metadata_loader.load_question_labels).
    """
    keys = _question_keys(question_labels, FINANCIAL_STRAIN_QUESTIONS)

    def score(row: SurveyResponse) -> float:
        strain = sum(_answer_or(row, key, STRAIN_DEFAULT) for key in keys) / len(keys)
        return ((TARGET_SCALE - literacy_score(row)) + strain) / 2

    return _province_layer(rows, regional, score, normalizer)


def province_digital_adoption(
    rows: Iterable[SurveyResponse],
    regional: Iterable[RegionalIndicator],
    question_labels: Dict[str, str],
    normalizer: Optional[ProvinceNormalizer] = None,
) -> List[ProvinceLayerValue]:
    """Mean fintech experience answer (1..4) per regional province."""
    keys = _question_keys(question_labels, DIGITAL_EXPERIENCE_QUESTIONS)

    def score(row: SurveyResponse) -> float:
        return sum(_answer_or(row, key, DIGITAL_DEFAULT) for key in keys) / len(keys)

    return _province_layer(rows, regional, score, normalizer)


def anxiety_by_age_group(
    profiles: Iterable[ProfileRecord],
    reference_year: int = REFERENCE_YEAR,
) -> Dict[str, Dict[str, int]]:
    """Anxiety bucket counts per age group, in AGE_GROUP_ORDER; empty groups omitted."""
    counts: Dict[str, Dict[str, int]] = {}
    for p in profiles:
        if p.financial_anxiety_score <= 0:
            continue
        group = age_group(p.birth_year, reference_year)
        by_level = counts.setdefault(group, {label: 0 for label in ANXIETY_LABELS})
        by_level[anxiety_bucket(p.financial_anxiety_score)] += 1
    return {group: counts[group] for group in AGE_GROUP_ORDER if group in counts}


# ---------------------------------------------------------------------------
# Record filters
# ---------------------------------------------------------------------------

def _matches(
    record: Any,
    provinces: Optional[set],
    education_levels: Optional[Sequence[str]],
    age_groups: Optional[Sequence[str]],
    normalizer: ProvinceNormalizer,
    reference_year: int,
) -> bool:
    if provinces and normalizer.normalize(record.province) not in provinces:
        return False
    if education_levels and record.education_level not in education_levels:
        return False
    if age_groups and age_group(record.birth_year, reference_year) not in age_groups:
        return False
    return True


def filter_survey(
    rows: Iterable[SurveyResponse],
    provinces: Optional[Sequence[str]] = None,
    education_levels: Optional[Sequence[str]] = None,
    age_groups: Optional[Sequence[str]] = None,
    normalizer: Optional[ProvinceNormalizer] = None,
    reference_year: int = REFERENCE_YEAR,
) -> List[SurveyResponse]:
    """Rows matching every given filter; None or empty filters match everything."""
    normalizer = normalizer or ProvinceNormalizer()
    wanted = {normalizer.normalize(p) for p in provinces} if provinces else None
    return [
        r for r in rows
        if _matches(r, wanted, education_levels, age_groups, normalizer, reference_year)
    ]


def filter_profiles(
    profiles: Iterable[ProfileRecord],
    provinces: Optional[Sequence[str]] = None,
    education_levels: Optional[Sequence[str]] = None,
    age_groups: Optional[Sequence[str]] = None,
    income_buckets: Optional[Sequence[str]] = None,
    normalizer: Optional[ProvinceNormalizer] = None,
    reference_year: int = REFERENCE_YEAR,
) -> List[ProfileRecord]:
    normalizer = normalizer or ProvinceNormalizer()
    wanted = {normalizer.normalize(p) for p in provinces} if provinces else None
    out = []
    for p in profiles:
        if not _matches(p, wanted, education_levels, age_groups, normalizer, reference_year):
            continue
        if income_buckets and income_bucket(p.avg_monthly_income) not in income_buckets:
            continue
        out.append(p)
    return out
