"""
Cross-version aggregation of per-question correctness.

Students of every version are folded onto the master question order so
that instructors can compare how the same question performed when it was
presented at different positions.
"""

import logging
from collections import defaultdict
from typing import Dict, List, Optional, Sequence

from regrader.core.answer_matrix import (
    build_correct_answers_map,
    get_all_question_cols,
    normalize_code,
    require_solution_and_student_rows,
    sort_codes,
)
from regrader.core.regrading import is_answer_correct
from regrader.core.version_mapping import resolve_version_mapping
from regrader.schemas.exam import (
    AverageResult,
    CodeAverageResult,
    CodeStat,
    ExamRow,
    ItemAnalysisRow,
)

logger = logging.getLogger(__name__)


def _percent(scores: Sequence[int]) -> float:
    if not scores:
        return 0.0
    return round(100 * sum(scores) / len(scores), 2)


def compute_average_results(
    exam_rows: Sequence[ExamRow],
    item_analysis_rows: Sequence[ItemAnalysisRow],
    num_questions: int,
) -> List[AverageResult]:
    """
    Average correctness of every master question, overall and per version.

    Each non-blank student answer whose (version, position) maps to a
    master question contributes 1 if correct under the student's own
    version key, else 0. Answers without a mapping and blank answers are
    skipped.

    Args:
        exam_rows: Answer sheet including solution rows
        item_analysis_rows: Version -> master order mapping rows
        num_questions: Number of question columns to consider

    Returns:
        One AverageResult per master question 1..max(observed, num_questions),
        averages in percent rounded to 2 decimals.

    Raises:
        MissingSolutionRowsError: No solution rows
        MissingStudentRowsError: No student rows
        VersionMappingError: No mapping row matches a student version
    """
    _, students = require_solution_and_student_rows(exam_rows)
    question_columns = get_all_question_cols(exam_rows)[:num_questions]
    used_codes = {normalize_code(s.code) for s in students if normalize_code(s.code)}
    correct_map = build_correct_answers_map(exam_rows, question_columns)
    mapping = resolve_version_mapping(item_analysis_rows, used_codes)

    overall: Dict[int, List[int]] = defaultdict(list)
    by_code: Dict[int, Dict[str, List[int]]] = defaultdict(lambda: defaultdict(list))
    skipped = 0

    for student in students:
        code = normalize_code(student.code)
        if not code:
            continue
        accepted_by_question = correct_map.get(code, [])
        for idx, col in enumerate(question_columns):
            master_q = mapping.master_order(code, idx + 1)
            if master_q is None:
                skipped += 1
                continue
            answer = student.answer(col).strip()
            if not answer:
                continue
            accepted = accepted_by_question[idx] if idx < len(accepted_by_question) else []
            score = 1 if is_answer_correct(answer, accepted) else 0
            overall[master_q].append(score)
            by_code[master_q][code].append(score)

    if skipped:
        logger.debug(f"Skipped {skipped} answers without a master mapping")

    max_master_q = max([num_questions, *overall.keys()])
    results: List[AverageResult] = []
    for master_q in range(1, max_master_q + 1):
        code_scores = by_code[master_q]
        code_stats = {
            code: CodeStat(count=len(code_scores[code]), average=_percent(code_scores[code]))
            for code in sort_codes(code_scores)
        }
        positions: Dict[str, int] = {}
        for code in mapping.codes:
            local_q: Optional[int] = mapping.local_order(master_q, code)
            if local_q is not None:
                positions[code] = local_q
        results.append(
            AverageResult(
                master_question=master_q,
                average_score=_percent(overall[master_q]),
                code_stats=code_stats,
                positions=positions,
            )
        )

    logger.info(
        f"Computed cross-version averages for {len(results)} master questions "
        f"over {len(students)} students"
    )
    return results


def compute_code_averages(
    exam_rows: Sequence[ExamRow],
    num_questions: int,
) -> List[CodeAverageResult]:
    """
    Average correctness over every non-blank answer of each version.

    Versions are listed numerically first, then alphabetically. A version
    without a solution row averages 0.

    Raises:
        MissingSolutionRowsError: No solution rows
        MissingStudentRowsError: No student rows
    """
    _, students = require_solution_and_student_rows(exam_rows)
    question_columns = get_all_question_cols(exam_rows)[:num_questions]
    correct_map = build_correct_answers_map(exam_rows, question_columns)

    scores_by_code: Dict[str, List[int]] = defaultdict(list)
    for student in students:
        code = normalize_code(student.code)
        if not code:
            continue
        scores = scores_by_code[code]
        accepted_by_question = correct_map.get(code, [])
        for idx, col in enumerate(question_columns):
            answer = student.answer(col).strip()
            if not answer:
                continue
            accepted = accepted_by_question[idx] if idx < len(accepted_by_question) else []
            scores.append(1 if is_answer_correct(answer, accepted) else 0)

    return [
        CodeAverageResult(code=code, average_score=_percent(scores_by_code[code]))
        for code in sort_codes(scores_by_code)
    ]
