r"""
Test reliability and item-total correlation.

KR-20 (Kuder-Richardson Formula 20) is Cronbach's alpha specialised to
dichotomous (0/1) items:

    KR20 = (k / (k-1)) × (1 - Σ pᵢqᵢ / σ²ₜ)

Where:
    k = number of items
    pᵢ = proportion answering item i correctly, qᵢ = 1 - pᵢ
    σ²ₜ = population variance of the students' total scores

Both KR-20 and the point-biserial correlation are undefined when the
relevant variance is zero. They degrade to 0.0 instead of raising so that
one degenerate item or class never aborts an analysis.
"""

import logging
from dataclasses import dataclass
from typing import Sequence, Union

import numpy as np
from numpy.typing import NDArray

from libs.domain_types import ReliabilityLabel

logger = logging.getLogger(__name__)

# Standard psychometric bands for KR-20 / alpha, checked with >=
KR20_THRESHOLDS = {
    ReliabilityLabel.EXCELLENT: 0.90,
    ReliabilityLabel.GOOD: 0.80,
    ReliabilityLabel.ACCEPTABLE: 0.70,
}

ArrayLike = Union[Sequence[float], NDArray]


@dataclass
class KR20Result:
    """
    Outcome of a KR-20 calculation.

    Attributes:
        value: The coefficient, or 0.0 when undefined
        defined: False when there are fewer than 2 items or the total
            scores have zero variance
        label: Interpretation band ("N/A" when undefined)
    """

    value: float
    defined: bool
    label: ReliabilityLabel


def get_reliability_label(kr20: float) -> ReliabilityLabel:
    """Interpretation band for a (defined) KR-20 value."""
    for label, threshold in KR20_THRESHOLDS.items():
        if kr20 >= threshold:
            return label
    return ReliabilityLabel.POOR


def calculate_kr20(matrix: "NDArray[np.int8]") -> KR20Result:
    """
    Calculate KR-20 over a students x items 0/1 correctness matrix.

    Args:
        matrix: Rows are students, columns are items, values 1 (correct)
            or 0 (incorrect or not presented)

    Returns:
        KR20Result; undefined (0.0, "N/A") for fewer than 2 items, no
        students or zero total-score variance.
    """
    data = np.asarray(matrix, dtype=float)
    if data.ndim != 2 or data.shape[0] == 0 or data.shape[1] < 2:
        logger.debug(f"KR-20 undefined for matrix of shape {data.shape}")
        return KR20Result(value=0.0, defined=False, label=ReliabilityLabel.NOT_AVAILABLE)

    k = data.shape[1]
    p = data.mean(axis=0)
    sum_pq = float(np.sum(p * (1.0 - p)))
    total_variance = float(np.var(data.sum(axis=1)))

    if total_variance == 0:
        logger.debug("KR-20 undefined: total scores have zero variance")
        return KR20Result(value=0.0, defined=False, label=ReliabilityLabel.NOT_AVAILABLE)

    kr20 = (k / (k - 1)) * (1.0 - sum_pq / total_variance)
    return KR20Result(value=kr20, defined=True, label=get_reliability_label(kr20))


def point_biserial(indicator: ArrayLike, totals: ArrayLike) -> float:
    """
    Pearson correlation between a 0/1 indicator and total scores.

    Returns 0.0 when fewer than two observations are given or either
    variable has zero variance. The result is clamped to [-1, 1].
    """
    x = np.asarray(indicator, dtype=float)
    y = np.asarray(totals, dtype=float)
    if x.size < 2 or x.size != y.size:
        return 0.0

    dx = x - x.mean()
    dy = y - y.mean()
    denominator = float(np.sqrt(np.sum(dx * dx) * np.sum(dy * dy)))
    if denominator == 0:
        return 0.0

    r_pb = float(np.sum(dx * dy)) / denominator
    return max(-1.0, min(1.0, r_pb))
