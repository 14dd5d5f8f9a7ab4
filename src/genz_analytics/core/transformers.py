"""
Row normalization for the three raw datasets.

Each transformer takes the DataFrame read from a CSV file, aliases the
locale-specific headers onto canonical field names, coerces numbers, and
returns immutable records. Nothing here raises for bad cell values: missing
or unparsable numbers become 0, missing text becomes a default label.
"""
from __future__ import annotations

import logging
import math
from typing import Any, Dict, List, Optional, Sequence, Tuple

import pandas as pd

from genz_analytics.config import QUESTION_COUNT
from genz_analytics.core.records import (
    UNKNOWN,
    ProfileRecord,
    RegionalIndicator,
    SurveyResponse,
    coerce_number,
)

logger = logging.getLogger(__name__)

# Survey columns that are not questions. Every other column is a question,
# numbered Q1.. in file order.
SURVEY_DEMOGRAPHIC_COLUMNS = frozenset({
    "Gender", "gender",
    "Province of Origin", "Province", "province",
    "Residence Status", "Residence_Status",
    "Last Education", "Last_Education", "education_level",
    "Job", "Marital Status", "Year of Birth", "birth_year",
    "Est. Monthly Income", "Est. Monthly Expenditure",
})

SURVEY_FIELD_ALIASES: Dict[str, Tuple[str, ...]] = {
    "province": ("Province of Origin", "Province", "province"),
    "education_level": ("Last Education", "Last_Education", "education_level"),
    "birth_year": ("Year of Birth", "birth_year"),
    "gender": ("Gender", "gender"),
}

PROFILE_TEXT_FIELDS: Dict[str, str] = {
    # field -> default when blank
    "gender": UNKNOWN,
    "province": UNKNOWN,
    "education_level": UNKNOWN,
    "employment_status": UNKNOWN,
    "avg_monthly_income": "",
    "avg_monthly_expense": "",
    "main_fintech_app": "",
    "ewallet_spending": "",
    "investment_type": "",
    "loan_usage_purpose": "",
}
PROFILE_NUMERIC_FIELDS = ("outstanding_loan", "digital_time_spent_per_day", "financial_anxiety_score")

REGIONAL_PROVINCE_COLUMNS = ("Provinsi", "Province", "province")
REGIONAL_COLUMNS: Dict[str, str] = {
    "population_thousands": "Jumlah Penduduk (Ribu)",
    "pdrb_ribu": "PDRB (Ribu Rp)",
    "outstanding_loan_billion": "Outstanding Pinjaman (Rp miliar)",
    "urbanization_percent": "Urbanisasi (%)",
    "total_loan_accounts": "Jumlah Rekening Penerima Pinjaman Aktif (entitas)",
    "total_loan_amount_billion": "Jumlah Dana yang Diberikan (Rp miliar)",
    "total_lenders_accounts": "Jumlah Rekening Pemberi Pinjaman (akun)",
    "total_borrowers_accounts": "Jumlah Penerima Pinjaman (akun)",
    "twp_90": "TWP 90%",
}


# ---------------------------------------------------------------------------
# Cell helpers
# ---------------------------------------------------------------------------

def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    return isinstance(value, str) and not value.strip()


def _text(value: Any, default: str = "") -> str:
    if _is_blank(value):
        return default
    return str(value).strip()


def _birth_year(value: Any) -> Optional[int]:
    year = coerce_number(value)
    return int(year) if year > 0 else None


def _numeric_column(series: pd.Series) -> pd.Series:
    """Coerce a column to floats; decimal commas are accepted, failures become 0."""
    if not pd.api.types.is_numeric_dtype(series):
        series = series.astype(str).str.strip().str.replace(",", ".", regex=False)
    return pd.to_numeric(series, errors="coerce").fillna(0).astype(float)


def _first_present(columns: Sequence[Any], candidates: Sequence[str]) -> Optional[str]:
    for name in candidates:
        if name in columns:
            return name
    return None


def drop_empty_rows(df: pd.DataFrame) -> pd.DataFrame:
    """Drop rows whose cells are all missing or blank strings."""
    if df.empty:
        return df
    blank = df.apply(lambda col: col.map(_is_blank))
    return df.loc[~blank.all(axis=1)].reset_index(drop=True)


# ---------------------------------------------------------------------------
# Survey
# ---------------------------------------------------------------------------

def question_columns(columns: Sequence[Any]) -> List[Any]:
    """Source columns that hold answers, in file order."""
    out = []
    for col in columns:
        name = str(col).strip()
        if not name or name.startswith("Unnamed:"):
            continue
        if name in SURVEY_DEMOGRAPHIC_COLUMNS:
            continue
        out.append(col)
    return out


def transform_survey_frame(df: pd.DataFrame) -> Tuple[SurveyResponse, ...]:
    """
    Survey rows -> SurveyResponse.

    Question columns map positionally onto Q1..Q48; extra columns beyond 48
    are ignored and missing ones read as 0.
    """
    if df is None or df.empty:
        logger.warning("transform_survey_frame: no rows to transform.")
        return ()

    df = drop_empty_rows(df)
    q_cols = question_columns(list(df.columns))
    if len(q_cols) != QUESTION_COUNT:
        logger.warning("Survey has %d question columns (expected %d).", len(q_cols), QUESTION_COUNT)
    else:
        logger.debug("Survey has %d question columns.", len(q_cols))

    answers = pd.DataFrame({col: _numeric_column(df[col]) for col in q_cols[:QUESTION_COUNT]}, index=df.index)

    demographics = {}
    for name, aliases in SURVEY_FIELD_ALIASES.items():
        col = _first_present(list(df.columns), aliases)
        demographics[name] = df[col].tolist() if col is not None else [None] * len(df)

    out: List[SurveyResponse] = []
    for i in range(len(df)):
        out.append(
            SurveyResponse(
                answers=tuple(answers.iloc[i].tolist()) if q_cols else (),
                province=_text(demographics["province"][i], UNKNOWN),
                education_level=_text(demographics["education_level"][i], UNKNOWN),
                birth_year=_birth_year(demographics["birth_year"][i]),
                gender=_text(demographics["gender"][i], UNKNOWN),
            )
        )

    logger.info("Transformed %d survey rows.", len(out))
    return tuple(out)


# ---------------------------------------------------------------------------
# Profile
# ---------------------------------------------------------------------------

def transform_profile_frame(df: pd.DataFrame) -> Tuple[ProfileRecord, ...]:
    """Profile rows -> ProfileRecord; income/expense stay as free text."""
    if df is None or df.empty:
        logger.warning("transform_profile_frame: no rows to transform.")
        return ()

    df = drop_empty_rows(df)
    out: List[ProfileRecord] = []
    for i, row in enumerate(df.to_dict(orient="records")):
        out.append(
            ProfileRecord(
                user_id=_text(row.get("user_id"), f"USER_{i + 1}"),
                birth_year=_birth_year(row.get("birth_year")),
                **{name: _text(row.get(name), default) for name, default in PROFILE_TEXT_FIELDS.items()},
                **{name: coerce_number(row.get(name)) for name in PROFILE_NUMERIC_FIELDS},
            )
        )

    logger.info("Transformed %d profile rows.", len(out))
    return tuple(out)


# ---------------------------------------------------------------------------
# Regional
# ---------------------------------------------------------------------------

def transform_regional_frame(df: pd.DataFrame) -> Tuple[RegionalIndicator, ...]:
    """Regional rows with Indonesian headers -> RegionalIndicator."""
    if df is None or df.empty:
        logger.warning("transform_regional_frame: no rows to transform.")
        return ()

    df = drop_empty_rows(df)
    missing = [header for header in REGIONAL_COLUMNS.values() if header not in df.columns]
    if missing:
        logger.warning("Regional data is missing columns (read as 0): %s", missing)

    numeric = {
        field_name: (_numeric_column(df[header]) if header in df.columns else pd.Series(0.0, index=df.index))
        for field_name, header in REGIONAL_COLUMNS.items()
    }
    province_col = _first_present(list(df.columns), REGIONAL_PROVINCE_COLUMNS)

    out: List[RegionalIndicator] = []
    for idx in df.index:
        province = df.at[idx, province_col] if province_col is not None else None
        out.append(
            RegionalIndicator(
                province=_text(province, UNKNOWN),
                **{field_name: float(col.at[idx]) for field_name, col in numeric.items()},
            )
        )

    logger.info("Transformed %d regional rows.", len(out))
    return tuple(out)
