"""
Performance bands for students.

Students are ranked by total score into quartile bands T1 (top) to T4
(bottom). Ties are never split across a band boundary: every student in a
tie takes the band of the highest-placed member of the tie.

The classical discrimination index uses a separate split, the top and
bottom 27% of students (Kelley's rule), provided by ``upper_lower_groups``.
Those groups have a fixed size, so a tie straddling the cut is split by
input row order.

The ``*_indices`` variants work on positions in the input sequence so that
callers can relate ranks back to the answer rows the results came from.
"""

import logging
import math
from typing import Dict, List, Sequence, Tuple

from libs.domain_types import QuartileRank
from regrader.core.answer_matrix import SOLUTION_ROW_IDS
from regrader.core.config import settings
from regrader.schemas.exam import StudentResult, StudentResultWithRank

logger = logging.getLogger(__name__)


def _is_student_result(result: StudentResult) -> bool:
    return result.id.strip() not in SOLUTION_ROW_IDS


def ranked_indices(results: Sequence[StudentResult]) -> List[int]:
    """Input positions of the student results, by descending total (stable)."""
    positions = [i for i, r in enumerate(results) if _is_student_result(r)]
    return sorted(positions, key=lambda i: results[i].tot, reverse=True)


def _band_for_position(position: int, total: int) -> QuartileRank:
    if position < math.ceil(total * 0.25):
        return QuartileRank.T1
    if position < math.ceil(total * 0.5):
        return QuartileRank.T2
    if position < math.ceil(total * 0.75):
        return QuartileRank.T3
    return QuartileRank.T4


def quartile_indices(results: Sequence[StudentResult]) -> Dict[int, QuartileRank]:
    """
    Map the input position of every student result to its quartile band.

    Dict order follows the ranking (best first).
    """
    order = ranked_indices(results)
    total = len(order)
    bands: Dict[int, QuartileRank] = {}
    previous = None
    for position, index in enumerate(order):
        if previous is not None and results[index].tot == results[previous].tot:
            bands[index] = bands[previous]
        else:
            bands[index] = _band_for_position(position, total)
        previous = index
    return bands


def classify_students_by_quartile(
    results: Sequence[StudentResult],
) -> List[StudentResultWithRank]:
    """
    Assign every student a quartile band.

    Solution-row entries are excluded. Students are sorted by descending
    total (stable); boundaries fall at ceil(N*0.25), ceil(N*0.5) and
    ceil(N*0.75). A student whose score equals the previous student's score
    takes that student's band, so four tied students are all T1.

    Returns:
        Ranked results in descending score order; empty for empty input.
    """
    bands = quartile_indices(results)
    ranked = [
        StudentResultWithRank(**results[index].model_dump(exclude={"rank"}), rank=rank)
        for index, rank in bands.items()
    ]

    if ranked:
        counts = {
            band.value: sum(1 for r in ranked if r.rank == band) for band in QuartileRank
        }
        logger.debug(f"Quartile classification of {len(ranked)} students: {counts}")
    return ranked


def upper_lower_indices(
    results: Sequence[StudentResult],
    fraction: float = settings.DISCRIMINATION_GROUP_FRACTION,
) -> Tuple[List[int], List[int]]:
    """
    Input positions of the upper and lower scoring groups.

    The cut is exactly ceil(N * fraction) students. Students tied at the cut
    are not kept together: the stable sort favours the earlier input row for
    the upper group and the later input row for the lower group.
    """
    if not 0.0 < fraction <= 0.5:
        raise ValueError(f"fraction must be in (0, 0.5], got {fraction}")

    order = ranked_indices(results)
    if not order:
        return [], []

    cutoff = math.ceil(len(order) * fraction)
    return order[:cutoff], order[-cutoff:]


def upper_lower_groups(
    results: Sequence[StudentResult],
    fraction: float = settings.DISCRIMINATION_GROUP_FRACTION,
) -> Tuple[List[StudentResult], List[StudentResult]]:
    """
    Return the (upper, lower) scoring groups used for discrimination indices.

    Each group holds ceil(N * fraction) students, taken from the top and the
    bottom of the stable descending sort. A tie at the cut is split by input
    row order. With very few students the groups may overlap; with no
    students both are empty.
    """
    upper, lower = upper_lower_indices(results, fraction)
    return [results[i] for i in upper], [results[i] for i in lower]
