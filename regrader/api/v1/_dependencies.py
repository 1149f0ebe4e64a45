"""
Shared request helpers for the analysis endpoints.

Every endpoint receives the full answer sheet in its request body; these
helpers turn the request into the arguments of the core functions and
reject requests whose data cannot be analyzed.
"""
import logging
from typing import List

from regrader.core.answer_matrix import get_all_question_cols, guess_num_questions
from regrader.core.error_responses import ErrorMessages, raise_unprocessable
from regrader.schemas.exam import ItemAnalysisRow
from regrader.schemas.requests import CrossVersionRequest, ExamDataRequest

logger = logging.getLogger(__name__)


def resolve_num_questions(request: ExamDataRequest) -> int:
    """
    Number of questions to grade for a request.

    Uses ``numQuestions`` when given, otherwise the number of columns with
    a valid key letter in the solution rows.

    Raises:
        HTTPException: 422 if the answer sheet is empty or the requested
            count exceeds the question columns present
    """
    if not request.exam_rows:
        raise_unprocessable(ErrorMessages.NO_EXAM_ROWS)

    available = len(get_all_question_cols(request.exam_rows))
    if request.num_questions is None:
        return guess_num_questions(request.exam_rows)
    if request.num_questions > available:
        raise_unprocessable(
            ErrorMessages.too_many_questions(request.num_questions, available)
        )
    return request.num_questions


def require_item_analysis_rows(request: CrossVersionRequest) -> List[ItemAnalysisRow]:
    """Mapping rows of a request; 422 when the table is empty."""
    if not request.item_analysis_rows:
        raise_unprocessable(ErrorMessages.NO_ITEM_ANALYSIS_ROWS)
    return list(request.item_analysis_rows)
