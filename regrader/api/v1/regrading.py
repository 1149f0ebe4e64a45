"""
Regrading endpoint: score every student under the (edited) answer key.
"""
from fastapi import APIRouter

from ._dependencies import logger, resolve_num_questions
from regrader.core.answer_matrix import (
    build_correct_answers_map,
    get_all_question_cols,
    normalize_code,
    parse_solution_cell,
    validate_codes_have_solutions,
)
from regrader.core.config import settings
from regrader.core.quartiles import classify_students_by_quartile
from regrader.core.regrading import (
    compute_results,
    find_voided_questions,
    revise_solution_rows,
)
from regrader.schemas.requests import RegradeRequest, RegradeResponse

router = APIRouter()


@router.post("/regrade", response_model=RegradeResponse, response_model_by_alias=True)
def regrade_exam(request: RegradeRequest) -> RegradeResponse:
    """
    Regrade an answer sheet.

    The answer key is read from the solution rows unless ``correctAnswers``
    supplies an edited one; the solution rows in the response are rewritten
    to match the key used. Versions without a solution row and questions
    with no accepted answer are reported alongside the scores.
    """
    num_questions = resolve_num_questions(request)
    question_columns = get_all_question_cols(request.exam_rows)[:num_questions]
    points = request.points_per_question or settings.POINTS_PER_QUESTION

    if request.correct_answers is not None:
        correct_map = {
            normalize_code(code): [
                parse_solution_cell("".join(accepted)) for accepted in answers
            ]
            for code, answers in request.correct_answers.items()
        }
    else:
        correct_map = build_correct_answers_map(request.exam_rows, question_columns)

    revised_rows = revise_solution_rows(request.exam_rows, question_columns, correct_map)
    results = compute_results(revised_rows, question_columns, correct_map, points)
    logger.info(f"Regraded {len(results)} students on {num_questions} questions")

    return RegradeResponse(
        num_questions=num_questions,
        results=results,
        ranked_results=classify_students_by_quartile(results),
        revised_rows=revised_rows,
        voided_questions=find_voided_questions(correct_map),
        missing_solution_codes=validate_codes_have_solutions(request.exam_rows),
    )
