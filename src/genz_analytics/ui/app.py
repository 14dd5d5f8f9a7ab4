from __future__ import annotations

import dataclasses
import time
import traceback
from typing import Any, Dict, List, Optional

import pandas as pd
import streamlit as st

from genz_analytics.config import APP_NAME, APP_VERSION
from genz_analytics.core.aggregator import (
    AGE_GROUP_ORDER,
    anxiety_by_age_group,
    dimension_comparison_by_education,
    filter_profiles,
    filter_survey,
    inclusion_gap,
    join_profile_regional,
    literacy_by_age_group,
    literacy_by_education,
    pdrb_vs_loans,
    province_digital_adoption,
    province_vulnerability,
    urbanization_impact,
)
from genz_analytics.core.amounts import INCOME_BUCKET_LABELS
from genz_analytics.core.data_loader import DataLoaderError, timed_load_all_data
from genz_analytics.core.distributions import (
    digital_time_vs_anxiety,
    education_employment_breakdown,
    ewallet_distribution,
    fintech_app_usage,
    income_distribution,
    income_expense_summary,
    investment_distribution,
    literacy_vs_digital,
    loan_purpose_summary,
)
from genz_analytics.core.metadata_loader import (
    MetadataError,
    load_boundary_names,
    load_question_labels,
)
from genz_analytics.core.provinces import CANONICAL_PROVINCES, ProvinceNormalizer
from genz_analytics.core.records import DatasetSnapshot
from genz_analytics.core.summary import DashboardSummary, build_dashboard_summary

SNAPSHOT_KEY = "genz_snapshot"
NORMALIZER_KEY = "genz_normalizer"


def _frame(items: List[Any]) -> pd.DataFrame:
    """Dataclass list -> DataFrame for st.dataframe."""
    return pd.DataFrame([dataclasses.asdict(i) for i in items])


def _fmt_score(value: float, scale: float = 4) -> str:
    return f"{value:0.2f} / {scale:g}"


def _fmt_rupiah(value: float) -> str:
    return f"Rp{value:,.0f}".replace(",", ".")


def _question_labels() -> Dict[str, str]:
    try:
        return load_question_labels()
    except MetadataError as err:
        st.warning(f"Question labels unavailable: {err}")
        return {}


# ---------------------------------------------------------------------------
# Session state
# ---------------------------------------------------------------------------

def _load_session(refresh: bool = False) -> Optional[DatasetSnapshot]:
    if SNAPSHOT_KEY in st.session_state and not refresh:
        return st.session_state[SNAPSHOT_KEY]

    status = st.status("Loading datasets…", expanded=False)
    try:
        snapshot, elapsed = timed_load_all_data()
        boundary = load_boundary_names(refresh=refresh)
    except (DataLoaderError, MetadataError) as err:
        status.update(label="Loading failed.", state="error")
        st.error(f"Could not load the datasets: {err}")
        st.text_area("Traceback", value=traceback.format_exc(), height=220)
        return None

    status.write(
        f"{len(snapshot.survey)} survey, {len(snapshot.profiles)} profile and "
        f"{len(snapshot.regional)} regional rows in {elapsed:0.2f}s"
    )
    status.update(label="Datasets loaded.", state="complete")

    st.session_state[SNAPSHOT_KEY] = snapshot
    st.session_state[NORMALIZER_KEY] = ProvinceNormalizer(boundary)
    return snapshot


def _render_filters(snapshot: DatasetSnapshot, normalizer: ProvinceNormalizer) -> DatasetSnapshot:
    st.sidebar.header("Filters")

    provinces = sorted(
        {normalizer.normalize(r.province) for r in snapshot.survey}
        | {normalizer.normalize(p.province) for p in snapshot.profiles}
    )
    provinces = [p for p in provinces if p] or list(CANONICAL_PROVINCES)
    education = sorted({r.education_level for r in snapshot.survey} | {p.education_level for p in snapshot.profiles})

    sel_provinces = st.sidebar.multiselect("Province", options=provinces)
    sel_education = st.sidebar.multiselect("Education level", options=education)
    sel_ages = st.sidebar.multiselect("Age group", options=list(AGE_GROUP_ORDER))
    sel_income = st.sidebar.multiselect("Monthly income (profiles only)", options=list(INCOME_BUCKET_LABELS))

    if st.sidebar.button("Reload data"):
        st.session_state.pop(SNAPSHOT_KEY, None)
        st.rerun()

    return DatasetSnapshot(
        survey=tuple(filter_survey(snapshot.survey, sel_provinces, sel_education, sel_ages, normalizer)),
        profiles=tuple(
            filter_profiles(snapshot.profiles, sel_provinces, sel_education, sel_ages, sel_income, normalizer)
        ),
        regional=snapshot.regional,
    )


# ---------------------------------------------------------------------------
# Pages
# ---------------------------------------------------------------------------

def _render_overview(summary: DashboardSummary) -> None:
    k = summary.kpis
    cols = st.columns(5)
    cols[0].metric("Respondents", f"{k.respondents:,}")
    cols[1].metric("Financial literacy", _fmt_score(k.literacy), f"{k.trend:+0.1f}%")
    cols[2].metric("Digital adoption", _fmt_score(k.digital))
    cols[3].metric("Financial behavior", _fmt_score(k.behavior))
    cols[4].metric("Well-being", _fmt_score(k.wellbeing))
    st.caption(f"Trend (recent 20% of rows vs the rest): {summary.trend_direction.replace('_', ' ')}")

    st.subheader("Literacy dimensions (0-25)")
    st.bar_chart(_frame(summary.kpis.dimensions).set_index("name")["value"])

    left, right = st.columns(2)
    with left:
        st.write("Top provinces")
        st.dataframe(_frame(summary.top_provinces), use_container_width=True)
    with right:
        st.write("Bottom provinces")
        st.dataframe(_frame(summary.bottom_provinces), use_container_width=True)

    if summary.unjoined_provinces:
        st.warning("No regional data for: " + ", ".join(summary.unjoined_provinces))


def _render_literacy(snapshot: DatasetSnapshot, summary: DashboardSummary) -> None:
    labels = _question_labels()

    st.subheader("Weakest questions")
    weakest = _frame(summary.weakest_questions)
    if not weakest.empty:
        weakest["text"] = weakest["question"].map(lambda q: labels.get(q, ""))
    st.dataframe(weakest, use_container_width=True)
    st.write(f"Respondents with poor financial behavior (raw average < 2.5): {summary.poor_behavior_count}")

    left, right = st.columns(2)
    with left:
        st.write("Literacy by age group")
        st.dataframe(_frame(literacy_by_age_group(snapshot.survey)), use_container_width=True)
    with right:
        st.write("Literacy by education")
        st.dataframe(_frame(literacy_by_education(snapshot.survey)), use_container_width=True)

    st.write("Dimension scores by education (0-25)")
    rows = [{"dimension": c.dimension, **c.scores} for c in dimension_comparison_by_education(snapshot.survey)]
    st.dataframe(pd.DataFrame(rows), use_container_width=True)

    st.write("Literacy vs digital adoption")
    result = literacy_vs_digital(snapshot.survey)
    if result is None:
        st.info("Insufficient data for a correlation.")
    else:
        st.write(f"r = {result.r:0.3f}, R² = {result.r_squared:0.3f}, n = {result.n}")


def _render_behavior(snapshot: DatasetSnapshot, summary: DashboardSummary) -> None:
    profiles = snapshot.profiles

    ie = income_expense_summary(profiles)
    cols = st.columns(3)
    cols[0].metric("Average income", _fmt_rupiah(ie.average_income))
    cols[1].metric("Average expense", _fmt_rupiah(ie.average_expense))
    cols[2].metric("Spending more than earning", f"{ie.deficit_percentage:0.1f}%")

    left, right = st.columns(2)
    with left:
        st.write("Debt-to-income risk")
        st.dataframe(_frame(summary.debt_risk), use_container_width=True)
        st.write("Savings rate")
        st.dataframe(_frame(summary.savings), use_container_width=True)
        st.write("Income distribution")
        st.dataframe(_frame(income_distribution(profiles)), use_container_width=True)
    with right:
        st.write("Financial anxiety")
        st.dataframe(_frame(summary.anxiety), use_container_width=True)
        st.write("Anxiety by age group")
        st.dataframe(pd.DataFrame(anxiety_by_age_group(profiles)).T, use_container_width=True)
        st.write("E-wallet spending")
        st.dataframe(_frame(ewallet_distribution(profiles)), use_container_width=True)

    st.write("Main fintech app")
    st.dataframe(_frame(fintech_app_usage(profiles)), use_container_width=True)
    st.write("Investment type")
    st.dataframe(_frame(investment_distribution(profiles)), use_container_width=True)
    st.write("Loan purpose")
    st.dataframe(_frame(loan_purpose_summary(profiles)), use_container_width=True)

    st.write("Education and employment")
    rows = [{"education": b.education, "total": b.total, **b.by_employment}
            for b in education_employment_breakdown(profiles)]
    st.dataframe(pd.DataFrame(rows).fillna(0), use_container_width=True)

    result = digital_time_vs_anxiety(profiles)
    if result is None:
        st.info("Insufficient data for digital time vs anxiety.")
    else:
        st.write(f"Digital time vs anxiety: r = {result.r:0.3f}, slope = {result.slope:0.3f} (n = {result.n})")


def _render_regional(snapshot: DatasetSnapshot, summary: DashboardSummary, normalizer: ProvinceNormalizer) -> None:
    st.subheader("Province literacy with regional indicators")
    st.dataframe(_frame(summary.province_regional), use_container_width=True)

    st.write("Urbanization impact")
    st.dataframe(_frame(urbanization_impact(snapshot.survey, snapshot.regional, normalizer)), use_container_width=True)

    left, right = st.columns(2)
    with left:
        st.write("PDRB vs outstanding loans")
        st.dataframe(_frame(pdrb_vs_loans(snapshot.regional)), use_container_width=True)
    with right:
        st.write("Inclusion gap")
        st.dataframe(_frame(inclusion_gap(snapshot.regional)), use_container_width=True)

    st.write("Financial anxiety by province")
    st.dataframe(
        _frame(join_profile_regional(snapshot.profiles, snapshot.regional, normalizer=normalizer)),
        use_container_width=True,
    )

    labels = _question_labels()
    left, right = st.columns(2)
    with left:
        st.write("Financial vulnerability by province")
        layer = province_vulnerability(snapshot.survey, snapshot.regional, labels, normalizer)
        st.dataframe(_frame(layer), use_container_width=True)
    with right:
        st.write("Fintech experience by province")
        layer = province_digital_adoption(snapshot.survey, snapshot.regional, labels, normalizer)
        st.dataframe(_frame(layer), use_container_width=True)

    unmatched = normalizer.unmatched_boundaries()
    if unmatched:
        with st.expander("Boundary names without a canonical province (developer view)", expanded=False):
            st.write(unmatched)


def run_app() -> None:
    st.set_page_config(page_title=APP_NAME, page_icon="📊", layout="wide")
    st.title(APP_NAME)
    st.caption(f"Version {APP_VERSION}")

    snapshot = _load_session()
    if snapshot is None:
        return
    normalizer: ProvinceNormalizer = st.session_state.get(NORMALIZER_KEY) or ProvinceNormalizer()

    filtered = _render_filters(snapshot, normalizer)
    if not filtered.survey and not filtered.profiles:
        st.info("No data for the selected filters.")
        return

    t0 = time.perf_counter()
    summary = build_dashboard_summary(filtered, normalizer)

    overview, literacy, behavior, regional = st.tabs(
        ["Overview", "Financial literacy", "Behavior & well-being", "Regional analysis"]
    )
    with overview:
        _render_overview(summary)
    with literacy:
        _render_literacy(filtered, summary)
    with behavior:
        _render_behavior(filtered, summary)
    with regional:
        _render_regional(filtered, summary, normalizer)

    st.caption(f"Computed in {time.perf_counter() - t0:0.2f}s")
