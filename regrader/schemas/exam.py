"""
Pydantic schemas for answer sheets, version mappings and score tables.

Attribute names are snake_case; aliases carry the column names used by the
spreadsheets exchanged with instructors (ID, Code, Tot, Per, ...) and are
used for serialization.
"""
import re
from typing import Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from libs.domain_types import QuartileRank

ANS_CHOICES = ("A", "B", "C", "D", "E")

_PERMUTATION_PATTERN = re.compile(r"^[A-E]{1,5}$")


class ExamRow(BaseModel):
    """One row of an answer sheet: a student's responses or a version's key.

    ``answers[i]`` holds the cell of question column ``str(i + 1)``. Student
    cells contain at most one letter; solution cells may concatenate several
    accepted letters (e.g. "ABE").
    """

    model_config = ConfigDict(populate_by_name=True)

    id: Union[int, str] = Field(default="", alias="ID")
    section: Union[int, str] = Field(default="", alias="Section")
    code: Union[int, str] = Field(..., alias="Code")
    answers: List[str] = Field(default_factory=list)

    @field_validator("id", "section", "code")
    @classmethod
    def coerce_to_text(cls, value: Union[int, str]) -> str:
        """Numeric cells from JSON or spreadsheets are stored as text."""
        return str(value)

    def answer(self, label: Union[str, int]) -> str:
        """Return the cell for a 1-based question column label ("" if absent)."""
        index = int(label) - 1
        if 0 <= index < len(self.answers):
            return self.answers[index]
        return ""


class ItemAnalysisRow(BaseModel):
    """One entry linking a version's local question order to the master order."""

    code: Union[int, str] = Field(
        ..., description="Exam version identifier (numeric or alphanumeric)"
    )
    order: int = Field(..., description="1-based question number in the version")
    order_in_master: int = Field(
        ..., description="1-based question number in the master exam"
    )
    permutation: Optional[str] = Field(
        default=None,
        description="Master option letter for each of the version's options",
    )
    correct: Optional[str] = Field(
        default=None, description="Correct option letter in the version"
    )
    points: float = Field(default=1.0, description="Question weight")
    group: Optional[Union[int, str]] = Field(default=None)

    @field_validator("permutation")
    @classmethod
    def validate_permutation(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        value = value.strip().upper()
        if not value:
            return None
        if not _PERMUTATION_PATTERN.match(value):
            raise ValueError(
                f"Permutation must be 1-5 letters from A-E, got {value!r}"
            )
        return value

    @field_validator("correct")
    @classmethod
    def validate_correct(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        value = value.strip().upper()
        return value or None


class ColumnMapping(BaseModel):
    """Explicit column -> field mapping for an item-analysis table."""

    code: str
    order: str
    order_in_master: str


class QuestionColumn(BaseModel):
    name: str = Field(..., description="Column name in the source file")
    number: int = Field(..., ge=1, description="Question number it holds")


class ColumnDetectionResult(BaseModel):
    """Columns of an answer file matched to ID, Section, Code and questions."""

    id_column: Optional[str] = None
    section_column: Optional[str] = None
    code_column: Optional[str] = None
    question_columns: List[QuestionColumn] = Field(default_factory=list)
    all_columns: List[str] = Field(default_factory=list)
    valid: bool = False
    errors: List[str] = Field(default_factory=list)


class StudentResult(BaseModel):
    """Regraded score of one student."""

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(..., alias="ID")
    section: str = Field(default="", alias="Section")
    code: str = Field(..., alias="Code")
    tot: float = Field(..., ge=0.0, alias="Tot")
    per: float = Field(..., ge=0.0, le=100.0, alias="Per")


class StudentResultWithRank(StudentResult):
    """Regraded score with the student's performance quartile."""

    rank: QuartileRank = Field(..., alias="Rank")


class VoidedQuestion(BaseModel):
    """A question whose accepted-answer set is empty for one version."""

    code: str
    question: int = Field(..., ge=1, description="1-based question column")


class CodeStat(BaseModel):
    count: int = Field(..., ge=0)
    average: float = Field(..., ge=0.0, le=100.0)


class AverageResult(BaseModel):
    """Average correctness of one master question across versions."""

    model_config = ConfigDict(populate_by_name=True)

    master_question: int = Field(..., ge=1, alias="Master_Question")
    average_score: float = Field(..., ge=0.0, le=100.0, alias="Average_score")
    code_stats: Dict[str, CodeStat] = Field(default_factory=dict, alias="codeStats")
    positions: Dict[str, int] = Field(
        default_factory=dict,
        description="Local question number of this master question per version",
    )


class CodeAverageResult(BaseModel):
    """Average correctness over all answers of one version."""

    model_config = ConfigDict(populate_by_name=True)

    code: str = Field(..., alias="Code")
    average_score: float = Field(..., ge=0.0, le=100.0, alias="Average_score")
