"""
Pydantic schemas for the exam data model and analysis results.
"""
from .exam import (
    ANS_CHOICES,
    AverageResult,
    CodeAverageResult,
    CodeStat,
    ColumnDetectionResult,
    ColumnMapping,
    ExamRow,
    ItemAnalysisRow,
    QuestionColumn,
    StudentResult,
    StudentResultWithRank,
    VoidedQuestion,
)
from .item_analysis import (
    BLANK_OTHER,
    ComprehensiveItemAnalysisResult,
    DistractorAnalysisResult,
    DistractorChoiceResult,
    ItemStatistics,
    OptionStatistics,
    TestSummary,
)

__all__ = [
    "ANS_CHOICES",
    "AverageResult",
    "CodeAverageResult",
    "CodeStat",
    "ColumnDetectionResult",
    "ColumnMapping",
    "ExamRow",
    "ItemAnalysisRow",
    "QuestionColumn",
    "StudentResult",
    "StudentResultWithRank",
    "VoidedQuestion",
    "BLANK_OTHER",
    "ComprehensiveItemAnalysisResult",
    "DistractorAnalysisResult",
    "DistractorChoiceResult",
    "ItemStatistics",
    "OptionStatistics",
    "TestSummary",
]
