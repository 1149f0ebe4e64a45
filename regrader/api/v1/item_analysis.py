"""
Item analysis endpoint: difficulty, discrimination, distractors and
reliability of every master question.
"""
from fastapi import APIRouter

from ._dependencies import (
    logger,
    require_item_analysis_rows,
    resolve_num_questions,
)
from regrader.core.config import settings
from regrader.core.item_analysis import (
    compute_comprehensive_item_analysis,
    compute_distractor_analysis,
)
from regrader.schemas.requests import ItemAnalysisRequest, ItemAnalysisResponse

router = APIRouter()


@router.post(
    "/item-analysis", response_model=ItemAnalysisResponse, response_model_by_alias=True
)
def item_analysis(request: ItemAnalysisRequest) -> ItemAnalysisResponse:
    """
    Run the comprehensive item analysis and the distractor table.

    Inconsistent data (no solution rows, no students, versions missing from
    the mapping, missing permutations or answer keys that disagree with the
    solution rows) is rejected with a 422 carrying the full message.
    """
    num_questions = resolve_num_questions(request)
    item_rows = require_item_analysis_rows(request)
    points = request.points_per_question or settings.POINTS_PER_QUESTION

    analysis = compute_comprehensive_item_analysis(
        request.exam_rows, item_rows, num_questions, points
    )
    distractors = compute_distractor_analysis(
        request.exam_rows, item_rows, num_questions, points
    )
    logger.info(
        f"Item analysis: {analysis.test_summary.items_to_keep} keep, "
        f"{analysis.test_summary.items_to_revise} revise, "
        f"{analysis.test_summary.items_to_investigate} investigate"
    )
    return ItemAnalysisResponse(analysis=analysis, distractors=distractors)
