"""
Cross-version aggregation endpoint.
"""
from fastapi import APIRouter

from ._dependencies import require_item_analysis_rows, resolve_num_questions
from regrader.core.cross_version import compute_average_results, compute_code_averages
from regrader.schemas.requests import CrossVersionRequest, CrossVersionResponse

router = APIRouter()


@router.post(
    "/cross-version", response_model=CrossVersionResponse, response_model_by_alias=True
)
def cross_version_averages(request: CrossVersionRequest) -> CrossVersionResponse:
    """
    Per-master-question averages across all exam versions, plus the
    overall average of each version.
    """
    num_questions = resolve_num_questions(request)
    item_rows = require_item_analysis_rows(request)
    return CrossVersionResponse(
        average_results=compute_average_results(
            request.exam_rows, item_rows, num_questions
        ),
        code_averages=compute_code_averages(request.exam_rows, num_questions),
    )
