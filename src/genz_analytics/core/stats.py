from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

import numpy as np


@dataclass(frozen=True)
class RegressionLine:
    slope: float
    intercept: float

    def predict(self, x: float) -> float:
        return self.slope * x + self.intercept


@dataclass(frozen=True)
class CorrelationResult:
    """
    Pearson correlation plus the OLS trendline for the same pair of series.

    Only produced when both are defined; degenerate inputs yield None from
    correlation_result() rather than a misleading zero.
    """
    r: float
    slope: float
    intercept: float
    n: int

    @property
    def r_squared(self) -> float:
        return self.r * self.r


def _as_arrays(x: Sequence[float], y: Sequence[float]) -> Optional[Tuple[np.ndarray, np.ndarray]]:
    if x is None or y is None or len(x) != len(y) or len(x) < 2:
        return None
    try:
        xs = np.asarray(list(x), dtype=float)
        ys = np.asarray(list(y), dtype=float)
    except (TypeError, ValueError):
        return None
    if xs.ndim != 1 or ys.ndim != 1:
        return None
    if not (np.isfinite(xs).all() and np.isfinite(ys).all()):
        return None
    return xs, ys


def _is_constant(values: np.ndarray) -> bool:
    return bool(np.ptp(values) == 0)


def _pearson(xs: np.ndarray, ys: np.ndarray) -> Optional[float]:
    if _is_constant(xs) or _is_constant(ys):
        return None
    dx = xs - xs.mean()
    dy = ys - ys.mean()
    # sqrt(a * a) == a, so a series against itself gives exactly 1.0
    denominator = np.sqrt(np.dot(dx, dx) * np.dot(dy, dy))
    if denominator == 0.0 or not np.isfinite(denominator):
        return None
    r = float(np.dot(dx, dy) / denominator)
    return float(np.clip(r, -1.0, 1.0))


def _regression(xs: np.ndarray, ys: np.ndarray) -> Optional[RegressionLine]:
    if _is_constant(xs):
        return None
    slope, intercept = np.polyfit(xs, ys, 1)
    if not (np.isfinite(slope) and np.isfinite(intercept)):
        return None
    return RegressionLine(slope=float(slope), intercept=float(intercept))


def correlation(x: Sequence[float], y: Sequence[float]) -> float:
    """
    Pearson's r.

    Returns 0.0 when it cannot be computed (length mismatch, fewer than two
    points, zero variance, non-numeric values). Use correlation_result() to
    tell that apart from a true zero.
    """
    arrays = _as_arrays(x, y)
    if arrays is None:
        return 0.0
    r = _pearson(*arrays)
    return 0.0 if r is None else r


def linear_regression(x: Sequence[float], y: Sequence[float]) -> RegressionLine:
    """Ordinary least squares fit of y on x; slope = intercept = 0 when degenerate."""
    arrays = _as_arrays(x, y)
    line = _regression(*arrays) if arrays is not None else None
    if line is None:
        return RegressionLine(slope=0.0, intercept=0.0)
    return line


def r_squared(x: Sequence[float], y: Sequence[float]) -> float:
    r = correlation(x, y)
    return r * r


def correlation_result(x: Sequence[float], y: Sequence[float]) -> Optional[CorrelationResult]:
    arrays = _as_arrays(x, y)
    if arrays is None:
        return None
    r = _pearson(*arrays)
    line = _regression(*arrays)
    if r is None or line is None:
        return None
    return CorrelationResult(r=r, slope=line.slope, intercept=line.intercept, n=len(arrays[0]))


def trendline(x: Sequence[float], y: Sequence[float]) -> List[Tuple[float, float]]:
    """End points of the fitted line over the x range, or [] when there is no fit."""
    arrays = _as_arrays(x, y)
    line = _regression(*arrays) if arrays is not None else None
    if line is None:
        return []
    lo, hi = float(arrays[0].min()), float(arrays[0].max())
    return [(lo, line.predict(lo)), (hi, line.predict(hi))]
