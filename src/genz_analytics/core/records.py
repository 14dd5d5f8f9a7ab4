from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Optional, Tuple, Union

from genz_analytics.config import QUESTION_COUNT

UNKNOWN = "Unknown"


def coerce_number(value: Any) -> float:
    """Float for a cell or answer; blanks, text and non-finite values give 0."""
    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, str):
        value = value.strip().replace(",", ".")
        if not value:
            return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    return number if math.isfinite(number) else 0.0


def question_key(number: int) -> str:
    return f"Q{int(number)}"


def _question_number(question: Union[int, str]) -> Optional[int]:
    if isinstance(question, bool):
        return None
    if isinstance(question, int):
        return question
    text = str(question).strip().upper()
    if text.startswith("Q"):
        text = text[1:]
    try:
        return int(text)
    except ValueError:
        return None


@dataclass(frozen=True)
class SurveyResponse:
    """
    One survey respondent.

    answers always holds exactly QUESTION_COUNT slots (Q1..Q48). Shorter
    inputs are zero-filled and longer ones truncated, so 0 always means
    "no answer" and never an index error. Missing or unreadable answers
    are stored as 0 as well.
    """
    answers: Tuple[float, ...]
    province: str = UNKNOWN
    education_level: str = UNKNOWN
    birth_year: Optional[int] = None
    gender: str = UNKNOWN

    def __post_init__(self) -> None:
        answers = self.answers if self.answers is not None else ()
        values = tuple(coerce_number(v) for v in tuple(answers)[:QUESTION_COUNT])
        if len(values) < QUESTION_COUNT:
            values = values + (0.0,) * (QUESTION_COUNT - len(values))
        object.__setattr__(self, "answers", values)

    def answer(self, question: Union[int, str]) -> float:
        """Answer for 'Q7' or 7; out-of-range questions read as 0."""
        number = _question_number(question)
        if number is None or number < 1 or number > QUESTION_COUNT:
            return 0.0
        return self.answers[number - 1]


@dataclass(frozen=True)
class ProfileRecord:
    """
    One row of the financial profile dataset.

    avg_monthly_income / avg_monthly_expense stay as the original free-text
    ranges (e.g. 'Rp2.000.001 - Rp4.000.000'); use core.amounts to read them.
    """
    user_id: str
    gender: str = UNKNOWN
    birth_year: Optional[int] = None
    province: str = UNKNOWN
    education_level: str = UNKNOWN
    employment_status: str = UNKNOWN

    avg_monthly_income: str = ""
    avg_monthly_expense: str = ""

    main_fintech_app: str = ""
    ewallet_spending: str = ""
    investment_type: str = ""
    loan_usage_purpose: str = ""

    outstanding_loan: float = 0.0
    digital_time_spent_per_day: float = 0.0
    financial_anxiety_score: float = 0.0


@dataclass(frozen=True)
class RegionalIndicator:
    province: str

    population_thousands: float = 0.0
    pdrb_ribu: float = 0.0                  # PDRB per capita, thousand Rupiah
    outstanding_loan_billion: float = 0.0
    urbanization_percent: float = 0.0

    total_loan_accounts: float = 0.0
    total_loan_amount_billion: float = 0.0
    total_lenders_accounts: float = 0.0
    total_borrowers_accounts: float = 0.0
    twp_90: float = 0.0


@dataclass(frozen=True)
class DatasetSnapshot:
    """Immutable view of the three datasets for one session."""
    survey: Tuple[SurveyResponse, ...] = field(default_factory=tuple)
    profiles: Tuple[ProfileRecord, ...] = field(default_factory=tuple)
    regional: Tuple[RegionalIndicator, ...] = field(default_factory=tuple)
