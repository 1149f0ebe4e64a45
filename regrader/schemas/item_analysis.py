"""
Pydantic schemas for comprehensive item analysis results.

These mirror the result tables shown to instructors: one row per master
question (item statistics), one row per master question and option (option
statistics), and a test-wide summary.
"""
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from libs.domain_types import DistractorStatus, ItemDecision, ReliabilityLabel

BLANK_OTHER = "Blank/Other"


class ItemStatistics(BaseModel):
    """Psychometric statistics for one master question."""

    model_config = ConfigDict(populate_by_name=True)

    question_number: int = Field(..., ge=1, alias="questionNumber")
    p_i: float = Field(..., ge=0.0, le=1.0, description="Item difficulty")
    d_i: float = Field(
        ...,
        ge=-1.0,
        le=1.0,
        alias="D_i",
        description="Upper-lower discrimination index",
    )
    r_pb: float = Field(
        ..., ge=-1.0, le=1.0, description="Point-biserial correlation with total"
    )
    de: float = Field(
        ..., ge=0.0, le=100.0, alias="DE", description="Distractor efficiency (%)"
    )
    correct_option: Optional[str] = Field(default=None, alias="correctOption")
    respondents: int = Field(..., ge=0)
    decision: ItemDecision
    decision_reason: str = Field(..., alias="decisionReason")


class OptionStatistics(BaseModel):
    """Selection statistics for one option of one master question."""

    model_config = ConfigDict(populate_by_name=True)

    question_number: int = Field(..., ge=1, alias="questionNumber")
    option: str = Field(..., description="A-E or 'Blank/Other'")
    is_correct: bool = Field(..., alias="isCorrect")
    count: int = Field(..., ge=0)
    p_ij: float = Field(..., ge=0.0, le=1.0)
    percentage: float = Field(..., ge=0.0, le=100.0)
    d_ij: float = Field(..., ge=-1.0, le=1.0, alias="D_ij")
    r_pb: float = Field(..., ge=-1.0, le=1.0)
    t1: int = Field(..., ge=0, alias="T1")
    t2: int = Field(..., ge=0, alias="T2")
    t3: int = Field(..., ge=0, alias="T3")
    t4: int = Field(..., ge=0, alias="T4")
    is_functional: bool = Field(..., alias="isFunctional")
    status: DistractorStatus
    finding: Optional[str] = Field(
        default=None,
        description="Set when the option discriminates in the unexpected direction",
    )


class TestSummary(BaseModel):
    """Test-wide statistics."""

    model_config = ConfigDict(populate_by_name=True)

    total_items: int = Field(..., ge=0, alias="totalItems")
    total_students: int = Field(..., ge=0, alias="totalStudents")
    mean_score: float = Field(..., alias="meanScore")
    std_dev_score: float = Field(..., ge=0.0, alias="stdDevScore")
    mean_difficulty: float = Field(..., alias="meanDifficulty")
    mean_discrimination: float = Field(..., alias="meanDiscrimination")
    kr20: float = Field(..., alias="KR20")
    kr20_defined: bool = Field(
        ...,
        alias="KR20Defined",
        description="False when KR-20 is undefined (fewer than 2 items or zero variance)",
    )
    reliability_label: ReliabilityLabel = Field(..., alias="reliabilityLabel")
    items_to_keep: int = Field(..., ge=0, alias="itemsToKeep")
    items_to_revise: int = Field(..., ge=0, alias="itemsToRevise")
    items_to_investigate: int = Field(..., ge=0, alias="itemsToInvestigate")


class ComprehensiveItemAnalysisResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    test_summary: TestSummary = Field(..., alias="testSummary")
    item_statistics: List[ItemStatistics] = Field(..., alias="itemStatistics")
    option_statistics: List[OptionStatistics] = Field(..., alias="optionStatistics")


class DistractorChoiceResult(BaseModel):
    """One option row of the per-question distractor table."""

    model_config = ConfigDict(populate_by_name=True)

    choice: str
    is_correct: bool = Field(..., alias="isCorrect")
    count: int = Field(..., ge=0)
    percentage: float = Field(..., ge=0.0, le=100.0)
    t1: int = Field(..., ge=0, alias="T1")
    t2: int = Field(..., ge=0, alias="T2")
    t3: int = Field(..., ge=0, alias="T3")
    t4: int = Field(..., ge=0, alias="T4")


class DistractorAnalysisResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    master_question: int = Field(..., ge=1, alias="masterQuestion")
    choices: List[DistractorChoiceResult]
