"""
Comprehensive item analysis across randomized exam versions.

Every student's choice is decoded through their version's permutation into
the master option frame, so that options shuffled differently on each
version are tallied together. From those tallies this module computes, per
master question:

1. Difficulty p_i: share of respondents choosing the key
2. Discrimination D_i: p(correct | top 27%) - p(correct | bottom 27%)
3. Point-biserial r_pb: correlation of correctness with items-correct total
4. Option statistics: p_ij, D_ij and r_pb per option, T1-T4 tallies
5. Distractor efficiency DE: share of distractors chosen by >= 5%

and a KEEP / REVISE / INVESTIGATE decision. KR-20 reliability is computed
over the whole students x items correctness matrix.

Analysis is all-or-nothing: missing permutations or answer keys that
disagree with the solution rows abort before anything is computed.
Degenerate statistics (no respondents, zero variance) fall back to 0.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Set, Tuple

import numpy as np

from libs.domain_types import DistractorStatus, ItemDecision, QuartileRank
from regrader.core.answer_matrix import (
    CorrectAnswersMap,
    build_correct_answers_map,
    get_all_question_cols,
    normalize_code,
    parse_solution_cell,
    require_solution_and_student_rows,
    split_rows,
)
from regrader.core.config import settings
from regrader.core.errors import AnswerKeyMismatchError, MissingPermutationError
from regrader.core.permutation import decode_permutation
from regrader.core.quartiles import quartile_indices, upper_lower_indices
from regrader.core.regrading import compute_results
from regrader.core.reliability import calculate_kr20, point_biserial
from regrader.core.version_mapping import VersionMapping, resolve_version_mapping
from regrader.schemas.exam import ANS_CHOICES, ExamRow, ItemAnalysisRow, StudentResult
from regrader.schemas.item_analysis import (
    BLANK_OTHER,
    ComprehensiveItemAnalysisResult,
    DistractorAnalysisResult,
    DistractorChoiceResult,
    ItemStatistics,
    OptionStatistics,
    TestSummary,
)

logger = logging.getLogger(__name__)

OPTIONS = ANS_CHOICES + (BLANK_OTHER,)

# Decision thresholds
MAX_DIFFICULTY = 0.80
MIN_DIFFICULTY = 0.30
MIN_POINT_BISERIAL = 0.20
MIN_DISTRACTOR_EFFICIENCY = 75.0
WEAK_DISTRACTOR_EFFICIENCY = 50.0

REASON_NO_KEY = "No answer key could be resolved"
REASON_NEGATIVE_RPB = "Negative point-biserial (possible wrong key or flawed item)"
REASON_NEGATIVE_D = "Negative discrimination (low scorers outperform high scorers)"
REASON_KEEP = "Good difficulty, discrimination, and distractor efficiency"

FINDING_KEY_INVERTED = "Key is chosen more by low scorers (check the answer key)"
FINDING_DISTRACTOR_INVERTED = (
    "Distractor is chosen more by high scorers (possible second correct answer)"
)


# =============================================================================
# PRECONDITIONS
# =============================================================================


def validate_correct_answers(
    item_analysis_rows: Sequence[ItemAnalysisRow],
    exam_rows: Sequence[ExamRow],
) -> List[str]:
    """
    Cross-check declared correct letters against the solution rows.

    For every mapping row with a ``correct`` letter, the solution row of
    its version must accept that letter at the row's local question. Rows
    with an order below 1 are not part of the mapping and are ignored, as
    are rows of versions without a solution row.

    Returns:
        One line per mismatch; empty when everything agrees.
    """
    solutions, _ = split_rows(exam_rows)
    solution_by_code = {normalize_code(sol.code): sol for sol in solutions}

    mismatches: List[str] = []
    skipped: Set[str] = set()
    for row in item_analysis_rows:
        if not row.correct or row.order < 1 or row.order_in_master < 1:
            continue
        code = normalize_code(row.code)
        solution = solution_by_code.get(code)
        if solution is None:
            skipped.add(code)
            continue

        cell = solution.answer(row.order)
        accepted = parse_solution_cell(cell)
        declared = parse_solution_cell(row.correct)
        if not declared or not set(declared) <= set(accepted):
            mismatches.append(
                f"Version {code}, Q{row.order}: item analysis says "
                f"'{row.correct}', solution row has '{cell}'"
            )

    if skipped:
        logger.debug(
            f"Skipped answer key validation for versions without a solution row: "
            f"{sorted(skipped)}"
        )
    return mismatches


# =============================================================================
# SHARED PREPARATION
# =============================================================================


@dataclass
class _AnalysisInput:
    """Everything the per-item computations share."""

    students: List[ExamRow]
    results: List[StudentResult]
    bands: Dict[int, QuartileRank]
    mapping: VersionMapping
    correct_map: CorrectAnswersMap
    rows_by_master: Dict[int, Dict[str, ItemAnalysisRow]]
    master_questions: List[int]
    upper: List[int] = field(default_factory=list)
    lower: List[int] = field(default_factory=list)

    @property
    def ranked(self) -> List[int]:
        return list(self.bands)


@dataclass
class _ItemTally:
    """Decoded choices of one master question."""

    master_question: int
    key: Optional[str]
    distractors: List[str]
    # student position -> decoded master option, for students presented the item
    choices: Dict[int, str]
    counts: Dict[str, int]
    band_counts: Dict[str, Dict[QuartileRank, int]]

    @property
    def respondents(self) -> int:
        return sum(self.counts.values())


def _prepare(
    exam_rows: Sequence[ExamRow],
    item_analysis_rows: Sequence[ItemAnalysisRow],
    num_questions: int,
    points_per_question: float,
) -> _AnalysisInput:
    _, students = require_solution_and_student_rows(exam_rows)
    used_codes = {normalize_code(s.code) for s in students if normalize_code(s.code)}
    mapping = resolve_version_mapping(item_analysis_rows, used_codes)

    missing = [
        (normalize_code(row.code), row.order)
        for row in mapping.rows
        if not row.permutation
    ]
    if missing:
        raise MissingPermutationError(missing)

    mismatches = validate_correct_answers(item_analysis_rows, exam_rows)
    if mismatches:
        raise AnswerKeyMismatchError(mismatches)

    question_columns = get_all_question_cols(exam_rows)[:num_questions]
    correct_map = build_correct_answers_map(exam_rows, question_columns)
    results = compute_results(students, question_columns, correct_map, points_per_question)
    bands = quartile_indices(results)
    upper, lower = upper_lower_indices(
        results, settings.DISCRIMINATION_GROUP_FRACTION
    )

    rows_by_master: Dict[int, Dict[str, ItemAnalysisRow]] = {}
    for row in mapping.rows:
        rows_by_master.setdefault(row.order_in_master, {})[normalize_code(row.code)] = row

    last_master = max(num_questions, mapping.max_master_order)
    return _AnalysisInput(
        students=list(students),
        results=results,
        bands=bands,
        mapping=mapping,
        correct_map=correct_map,
        rows_by_master=rows_by_master,
        master_questions=list(range(1, last_master + 1)),
        upper=upper,
        lower=lower,
    )


def _resolve_master_key(
    rows: Sequence[ItemAnalysisRow],
    correct_map: CorrectAnswersMap,
) -> Optional[str]:
    """
    Master letter of the correct option.

    Taken from the first row declaring both a correct letter and a
    permutation; otherwise from the first accepted letter of a version's
    solution row at the row's local position.
    """
    for row in rows:
        if row.correct and row.permutation:
            key = decode_permutation(row.correct, row.permutation)
            if key != BLANK_OTHER:
                return key

    for row in rows:
        accepted_by_question = correct_map.get(normalize_code(row.code), [])
        index = row.order - 1
        if row.permutation and 0 <= index < len(accepted_by_question):
            accepted = accepted_by_question[index]
            if accepted:
                key = decode_permutation(accepted[0], row.permutation)
                if key != BLANK_OTHER:
                    return key
    return None


def _tally_item(data: _AnalysisInput, master_question: int) -> _ItemTally:
    rows = data.rows_by_master.get(master_question, {})
    key = _resolve_master_key(list(rows.values()), data.correct_map)

    offered = sorted({letter for row in rows.values() for letter in row.permutation or ""})
    distractors = [letter for letter in offered if letter != key]

    counts = {option: 0 for option in OPTIONS}
    band_counts = {option: {band: 0 for band in QuartileRank} for option in OPTIONS}
    choices: Dict[int, str] = {}

    for index, band in data.bands.items():
        student = data.students[index]
        row = rows.get(normalize_code(student.code))
        if row is None or not row.permutation:
            continue
        choice = decode_permutation(student.answer(row.order), row.permutation)
        choices[index] = choice
        counts[choice] += 1
        band_counts[choice][band] += 1

    return _ItemTally(
        master_question=master_question,
        key=key,
        distractors=distractors,
        choices=choices,
        counts=counts,
        band_counts=band_counts,
    )


# =============================================================================
# ITEM STATISTICS
# =============================================================================


def _group_rate(indicator: Dict[int, int], group: Sequence[int]) -> float:
    if not group:
        return 0.0
    return sum(indicator.get(i, 0) for i in group) / len(group)


def _discrimination(indicator: Dict[int, int], data: _AnalysisInput) -> float:
    value = _group_rate(indicator, data.upper) - _group_rate(indicator, data.lower)
    return max(-1.0, min(1.0, value))


def determine_item_decision(
    p_i: float,
    d_i: float,
    r_pb: float,
    de: float,
    has_key: bool = True,
) -> Tuple[ItemDecision, str]:
    """
    Classify an item as KEEP, REVISE or INVESTIGATE.

    INVESTIGATE wins over REVISE, which wins over KEEP. The reason lists
    every criterion that triggered the decision.
    """
    if not has_key:
        return ItemDecision.INVESTIGATE, REASON_NO_KEY
    if r_pb < 0 or d_i < 0:
        reasons = []
        if r_pb < 0:
            reasons.append(REASON_NEGATIVE_RPB)
        if d_i < 0:
            reasons.append(REASON_NEGATIVE_D)
        return ItemDecision.INVESTIGATE, "; ".join(reasons)

    reasons = []
    if p_i > MAX_DIFFICULTY and de <= WEAK_DISTRACTOR_EFFICIENCY:
        reasons.append("Too easy with weak distractors")
    elif p_i > MAX_DIFFICULTY:
        reasons.append("Too easy")
    if p_i < MIN_DIFFICULTY:
        reasons.append("Too difficult")
    if r_pb < MIN_POINT_BISERIAL:
        reasons.append("Weak discrimination")
    if de < MIN_DISTRACTOR_EFFICIENCY:
        reasons.append("Poor distractor efficiency")

    if reasons:
        return ItemDecision.REVISE, "; ".join(reasons)
    return ItemDecision.KEEP, REASON_KEEP


def _option_status(option: str, tally: _ItemTally, is_functional: bool) -> DistractorStatus:
    if option == tally.key:
        return DistractorStatus.KEY
    if option not in tally.distractors:
        return DistractorStatus.NOT_APPLICABLE
    return DistractorStatus.FUNCTIONAL if is_functional else DistractorStatus.WEAK


def _option_finding(option: str, tally: _ItemTally, d_ij: float, r_pb: float) -> Optional[str]:
    if option == tally.key and (d_ij < 0 or r_pb < 0):
        return FINDING_KEY_INVERTED
    if option in tally.distractors and tally.counts[option] > 0 and (d_ij > 0 or r_pb > 0):
        return FINDING_DISTRACTOR_INVERTED
    return None


def _option_statistics(
    tally: _ItemTally,
    data: _AnalysisInput,
    totals: Dict[int, float],
    threshold: float,
) -> List[OptionStatistics]:
    respondents = tally.respondents
    ranked = data.ranked
    total_scores = [totals[i] for i in ranked]

    statistics: List[OptionStatistics] = []
    for option in OPTIONS:
        count = tally.counts[option]
        p_ij = count / respondents if respondents else 0.0
        indicator = {i: 1 for i, choice in tally.choices.items() if choice == option}
        d_ij = _discrimination(indicator, data)
        r_pb = point_biserial([indicator.get(i, 0) for i in ranked], total_scores)
        is_functional = option in tally.distractors and p_ij >= threshold
        bands = tally.band_counts[option]

        statistics.append(
            OptionStatistics(
                question_number=tally.master_question,
                option=option,
                is_correct=option == tally.key,
                count=count,
                p_ij=p_ij,
                percentage=round(100 * p_ij, 2),
                d_ij=d_ij,
                r_pb=r_pb,
                t1=bands[QuartileRank.T1],
                t2=bands[QuartileRank.T2],
                t3=bands[QuartileRank.T3],
                t4=bands[QuartileRank.T4],
                is_functional=is_functional,
                status=_option_status(option, tally, is_functional),
                finding=_option_finding(option, tally, d_ij, r_pb),
            )
        )
    return statistics


def _distractor_efficiency(tally: _ItemTally, threshold: float) -> float:
    if not tally.distractors or not tally.respondents:
        return 0.0
    functional = sum(
        1
        for option in tally.distractors
        if tally.counts[option] / tally.respondents >= threshold
    )
    return 100 * functional / len(tally.distractors)


def compute_comprehensive_item_analysis(
    exam_rows: Sequence[ExamRow],
    item_analysis_rows: Sequence[ItemAnalysisRow],
    num_questions: int,
    points_per_question: float = settings.POINTS_PER_QUESTION,
) -> ComprehensiveItemAnalysisResult:
    """
    Compute item, option and test statistics for every master question.

    Args:
        exam_rows: Answer sheet including solution rows
        item_analysis_rows: Mapping rows with permutations
        num_questions: Number of question columns in the answer sheet
        points_per_question: Points per correct answer for the total scores

    Returns:
        ComprehensiveItemAnalysisResult with one ItemStatistics per master
        question 1..max(num_questions, highest mapped master question) and
        six OptionStatistics (A-E and Blank/Other) per question.

    Raises:
        MissingSolutionRowsError: No solution rows
        MissingStudentRowsError: No student rows
        VersionMappingError: No mapping row matches a student version
        MissingPermutationError: A used mapping row has no permutation
        AnswerKeyMismatchError: Declared correct letters disagree with the
            solution rows
    """
    data = _prepare(exam_rows, item_analysis_rows, num_questions, points_per_question)
    threshold = settings.FUNCTIONAL_DISTRACTOR_THRESHOLD
    ranked = data.ranked
    tallies = [_tally_item(data, q) for q in data.master_questions]

    # students x items correctness in the master frame; not presented = 0
    matrix = np.zeros((len(ranked), len(tallies)), dtype=np.int8)
    for col, tally in enumerate(tallies):
        if tally.key is None:
            continue
        for row, index in enumerate(ranked):
            if tally.choices.get(index) == tally.key:
                matrix[row, col] = 1
    row_totals = matrix.sum(axis=1)
    totals = {index: float(row_totals[row]) for row, index in enumerate(ranked)}
    total_scores = [totals[i] for i in ranked]

    item_statistics: List[ItemStatistics] = []
    option_statistics: List[OptionStatistics] = []
    for col, tally in enumerate(tallies):
        respondents = tally.respondents
        correct_count = tally.counts[tally.key] if tally.key else 0
        p_i = correct_count / respondents if respondents else 0.0

        indicator = {
            index: 1 for index, choice in tally.choices.items() if choice == tally.key
        }
        d_i = _discrimination(indicator, data)
        r_pb = point_biserial(matrix[:, col], total_scores)
        de = _distractor_efficiency(tally, threshold)
        decision, reason = determine_item_decision(
            p_i, d_i, r_pb, de, has_key=tally.key is not None
        )

        item_statistics.append(
            ItemStatistics(
                question_number=tally.master_question,
                p_i=p_i,
                d_i=d_i,
                r_pb=r_pb,
                de=de,
                correct_option=tally.key,
                respondents=respondents,
                decision=decision,
                decision_reason=reason,
            )
        )
        option_statistics.extend(_option_statistics(tally, data, totals, threshold))

        if tally.key is None:
            logger.warning(
                f"Master question {tally.master_question} has no resolvable key",
                extra={"master_question": tally.master_question},
            )

    summary = _test_summary(data, matrix, item_statistics)
    logger.info(
        f"Item analysis complete: {summary.total_items} items, "
        f"{summary.total_students} students, KR-20={summary.kr20:.4f} "
        f"({summary.reliability_label.value})",
        extra={
            "num_students": summary.total_students,
            "num_items": summary.total_items,
        },
    )
    return ComprehensiveItemAnalysisResult(
        test_summary=summary,
        item_statistics=item_statistics,
        option_statistics=option_statistics,
    )


def _test_summary(
    data: _AnalysisInput,
    matrix: np.ndarray,
    item_statistics: Sequence[ItemStatistics],
) -> TestSummary:
    scores = np.array([data.results[i].tot for i in data.ranked], dtype=float)
    kr20 = calculate_kr20(matrix)
    decisions = [item.decision for item in item_statistics]

    return TestSummary(
        total_items=len(item_statistics),
        total_students=len(data.ranked),
        mean_score=float(scores.mean()) if scores.size else 0.0,
        std_dev_score=float(scores.std()) if scores.size else 0.0,
        mean_difficulty=(
            float(np.mean([item.p_i for item in item_statistics]))
            if item_statistics
            else 0.0
        ),
        mean_discrimination=(
            float(np.mean([item.d_i for item in item_statistics]))
            if item_statistics
            else 0.0
        ),
        kr20=kr20.value,
        kr20_defined=kr20.defined,
        reliability_label=kr20.label,
        items_to_keep=decisions.count(ItemDecision.KEEP),
        items_to_revise=decisions.count(ItemDecision.REVISE),
        items_to_investigate=decisions.count(ItemDecision.INVESTIGATE),
    )


# =============================================================================
# DISTRACTOR TABLE
# =============================================================================


def compute_distractor_analysis(
    exam_rows: Sequence[ExamRow],
    item_analysis_rows: Sequence[ItemAnalysisRow],
    num_questions: int,
    points_per_question: float = settings.POINTS_PER_QUESTION,
) -> List[DistractorAnalysisResult]:
    """
    Per-question choice table: counts, percentages and T1-T4 tallies.

    Only master questions that appear in the used mapping rows are listed.
    Preconditions and errors are those of
    ``compute_comprehensive_item_analysis``.
    """
    data = _prepare(exam_rows, item_analysis_rows, num_questions, points_per_question)

    results: List[DistractorAnalysisResult] = []
    for master_question in sorted(data.rows_by_master):
        tally = _tally_item(data, master_question)
        respondents = tally.respondents
        choices = []
        for option in OPTIONS:
            count = tally.counts[option]
            bands = tally.band_counts[option]
            choices.append(
                DistractorChoiceResult(
                    choice=option,
                    is_correct=option == tally.key,
                    count=count,
                    percentage=round(100 * count / respondents, 2) if respondents else 0.0,
                    t1=bands[QuartileRank.T1],
                    t2=bands[QuartileRank.T2],
                    t3=bands[QuartileRank.T3],
                    t4=bands[QuartileRank.T4],
                )
            )
        results.append(
            DistractorAnalysisResult(master_question=master_question, choices=choices)
        )

    logger.info(f"Distractor analysis computed for {len(results)} master questions")
    return results
