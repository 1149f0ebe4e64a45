"""
Regrading engine: score students against a (possibly revised) answer key.
"""

import logging
from typing import List, Optional, Sequence

from regrader.core.answer_matrix import (
    CorrectAnswersMap,
    is_solution_row,
    normalize_code,
)
from regrader.core.config import settings
from regrader.schemas.exam import ExamRow, StudentResult, VoidedQuestion

logger = logging.getLogger(__name__)


def is_answer_correct(answer: Optional[str], accepted: Sequence[str]) -> bool:
    """
    A response is correct when it is exactly one letter A-E and that letter
    is among the accepted answers. Blank or multi-mark responses never score.
    """
    letter = (answer or "").strip().upper()
    return len(letter) == 1 and letter in accepted


def compute_results(
    exam_rows: Sequence[ExamRow],
    question_columns: Sequence[str],
    correct_map: CorrectAnswersMap,
    points_per_question: float = settings.POINTS_PER_QUESTION,
) -> List[StudentResult]:
    """
    Score every student row against the accepted answers of their version.

    Args:
        exam_rows: Answer sheet rows (solution rows are ignored)
        question_columns: Question column labels, in order ("1".."N")
        correct_map: Accepted letters per version and question position
        points_per_question: Points for each correct answer

    Returns:
        One StudentResult per student row, in input order. Students whose
        version has no entry in ``correct_map`` score zero.
    """
    num_questions = len(question_columns)
    max_score = points_per_question * num_questions
    results: List[StudentResult] = []
    unknown_codes = set()

    for row in exam_rows:
        if is_solution_row(row):
            continue

        code = normalize_code(row.code)
        accepted_by_question = correct_map.get(code)
        if accepted_by_question is None:
            unknown_codes.add(code)
            accepted_by_question = []

        total = 0.0
        for idx, col in enumerate(question_columns):
            accepted = accepted_by_question[idx] if idx < len(accepted_by_question) else []
            if is_answer_correct(row.answer(col), accepted):
                total += points_per_question

        percentage = round(100 * total / max_score, 2) if max_score > 0 else 0.0
        results.append(
            StudentResult(
                id=row.id,
                section=row.section,
                code=row.code,
                tot=total,
                per=percentage,
            )
        )

    if unknown_codes:
        logger.warning(
            f"No answer key for versions {sorted(unknown_codes)}; "
            f"their students score zero"
        )
    logger.info(
        f"Regraded {len(results)} students over {num_questions} questions"
    )
    return results


def revise_solution_rows(
    exam_rows: Sequence[ExamRow],
    question_columns: Sequence[str],
    correct_map: CorrectAnswersMap,
) -> List[ExamRow]:
    """
    Write the accepted answers back into the solution rows.

    Each question cell becomes the sorted concatenation of its accepted
    letters ("" when voided). Student rows, and solution rows of versions
    missing from ``correct_map``, are returned unchanged.
    """
    revised_rows: List[ExamRow] = []
    for row in exam_rows:
        accepted_by_question = correct_map.get(normalize_code(row.code))
        if not is_solution_row(row) or accepted_by_question is None:
            revised_rows.append(row)
            continue

        answers = list(row.answers)
        width = max((int(col) for col in question_columns), default=0)
        if len(answers) < width:
            answers.extend([""] * (width - len(answers)))
        for idx, col in enumerate(question_columns):
            letters = accepted_by_question[idx] if idx < len(accepted_by_question) else []
            answers[int(col) - 1] = "".join(sorted(letters))

        revised_rows.append(row.model_copy(update={"answers": answers}))
    return revised_rows


def find_voided_questions(correct_map: CorrectAnswersMap) -> List[VoidedQuestion]:
    """List every (version, question) whose accepted-answer set is empty."""
    voided = [
        VoidedQuestion(code=code, question=idx + 1)
        for code, accepted_by_question in correct_map.items()
        for idx, accepted in enumerate(accepted_by_question)
        if not accepted
    ]
    for item in voided:
        logger.warning(
            f"Question {item.question} of version {item.code} has no accepted "
            f"answer and scores zero for everyone",
            extra={"code": item.code},
        )
    return voided
