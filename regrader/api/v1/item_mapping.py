"""
Item analysis table normalization endpoint.
"""
from fastapi import APIRouter

from libs.domain_types import ItemAnalysisSchema
from regrader.core.error_responses import ErrorMessages, raise_unprocessable
from regrader.core.version_mapping import detect_item_analysis_schema, load_item_analysis
from regrader.schemas.requests import NormalizeMappingRequest, NormalizeMappingResponse

router = APIRouter()


@router.post(
    "/normalize", response_model=NormalizeMappingResponse, response_model_by_alias=True
)
def normalize_mapping(request: NormalizeMappingRequest) -> NormalizeMappingResponse:
    """
    Detect the layout of a raw item analysis table (OLD, NEW or WIDE) and
    return it as mapping rows. A ``columnMapping`` overrides detection.
    """
    if not request.records:
        raise_unprocessable(ErrorMessages.NO_RECORDS)

    if request.column_mapping is not None:
        schema = ItemAnalysisSchema.UNKNOWN
    else:
        schema = detect_item_analysis_schema(list(request.records[0].keys()))

    rows = load_item_analysis(request.records, column_mapping=request.column_mapping)
    return NormalizeMappingResponse(detected_schema=schema, rows=rows)
