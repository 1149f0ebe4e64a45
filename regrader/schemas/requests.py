"""
Request and response bodies of the HTTP API.
"""
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from libs.domain_types import ItemAnalysisSchema
from regrader.schemas.exam import (
    AverageResult,
    CodeAverageResult,
    ColumnMapping,
    ExamRow,
    ItemAnalysisRow,
    StudentResult,
    StudentResultWithRank,
    VoidedQuestion,
)
from regrader.schemas.item_analysis import (
    ComprehensiveItemAnalysisResult,
    DistractorAnalysisResult,
)


class ExamDataRequest(BaseModel):
    """Fields shared by every analysis request."""

    model_config = ConfigDict(populate_by_name=True)

    exam_rows: List[ExamRow] = Field(..., alias="examRows")
    num_questions: Optional[int] = Field(
        default=None,
        ge=1,
        alias="numQuestions",
        description="Defaults to the number of columns with a valid key",
    )


class RegradeRequest(ExamDataRequest):
    points_per_question: Optional[float] = Field(
        default=None, gt=0, alias="pointsPerQuestion"
    )
    correct_answers: Optional[Dict[str, List[List[str]]]] = Field(
        default=None,
        alias="correctAnswers",
        description="Edited answer key; defaults to the solution rows",
    )


class RegradeResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    num_questions: int = Field(..., alias="numQuestions")
    results: List[StudentResult]
    ranked_results: List[StudentResultWithRank] = Field(..., alias="rankedResults")
    revised_rows: List[ExamRow] = Field(..., alias="revisedRows")
    voided_questions: List[VoidedQuestion] = Field(..., alias="voidedQuestions")
    missing_solution_codes: List[str] = Field(..., alias="missingSolutionCodes")


class CrossVersionRequest(ExamDataRequest):
    item_analysis_rows: List[ItemAnalysisRow] = Field(..., alias="itemAnalysisRows")


class CrossVersionResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    average_results: List[AverageResult] = Field(..., alias="averageResults")
    code_averages: List[CodeAverageResult] = Field(..., alias="codeAverages")


class ItemAnalysisRequest(CrossVersionRequest):
    points_per_question: Optional[float] = Field(
        default=None, gt=0, alias="pointsPerQuestion"
    )


class ItemAnalysisResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    analysis: ComprehensiveItemAnalysisResult
    distractors: List[DistractorAnalysisResult]


class NormalizeMappingRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    records: List[Dict[str, Any]] = Field(
        ..., description="Raw item analysis rows keyed by column name"
    )
    column_mapping: Optional[ColumnMapping] = Field(default=None, alias="columnMapping")


class NormalizeMappingResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    detected_schema: ItemAnalysisSchema = Field(..., alias="schema")
    rows: List[ItemAnalysisRow]
