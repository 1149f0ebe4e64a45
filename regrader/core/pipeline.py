"""
Regrading workflow as explicit stage transitions.

An ``AnalysisState`` holds everything produced so far: the uploaded answer
sheet, the (possibly edited) answer key, the regraded scores, the version
mapping and the analysis results. Each stage takes a state and returns a
new one; nothing is mutated and nothing is kept between calls.

    state = start_session(exam_rows)
    state = regrade(state, correct_map=edited_key)
    state = map_versions(state, item_analysis_rows)
    state = analyze(state)

``dump_state`` / ``load_state`` persist a state as JSON so a session can be
resumed later.
"""

import logging
from enum import Enum
from typing import List, Optional, Sequence

from pydantic import BaseModel, Field

from regrader.core.answer_matrix import (
    CorrectAnswersMap,
    build_correct_answers_map,
    get_all_question_cols,
    guess_num_questions,
    split_rows,
    validate_codes_have_solutions,
)
from regrader.core.config import settings
from regrader.core.cross_version import compute_average_results, compute_code_averages
from regrader.core.errors import ExamAnalysisError
from regrader.core.item_analysis import compute_comprehensive_item_analysis
from regrader.core.quartiles import classify_students_by_quartile
from regrader.core.regrading import (
    compute_results,
    find_voided_questions,
    revise_solution_rows,
)
from regrader.schemas.exam import (
    AverageResult,
    CodeAverageResult,
    ExamRow,
    ItemAnalysisRow,
    StudentResult,
    StudentResultWithRank,
    VoidedQuestion,
)
from regrader.schemas.item_analysis import ComprehensiveItemAnalysisResult

logger = logging.getLogger(__name__)


class PipelineStage(str, Enum):
    """Last completed stage of an analysis session."""

    UPLOADED = "uploaded"
    REGRADED = "regraded"
    MAPPED = "mapped"
    ANALYZED = "analyzed"


class AnalysisState(BaseModel):
    """Snapshot of an analysis session."""

    stage: PipelineStage = PipelineStage.UPLOADED
    exam_rows: List[ExamRow] = Field(default_factory=list)
    num_questions: int = Field(default=0, ge=0)
    points_per_question: float = Field(default=settings.POINTS_PER_QUESTION, gt=0)
    correct_map: CorrectAnswersMap = Field(default_factory=dict)
    missing_solution_codes: List[str] = Field(default_factory=list)
    voided_questions: List[VoidedQuestion] = Field(default_factory=list)
    results: List[StudentResult] = Field(default_factory=list)
    ranked_results: List[StudentResultWithRank] = Field(default_factory=list)
    item_analysis_rows: List[ItemAnalysisRow] = Field(default_factory=list)
    average_results: List[AverageResult] = Field(default_factory=list)
    code_averages: List[CodeAverageResult] = Field(default_factory=list)
    item_analysis: Optional[ComprehensiveItemAnalysisResult] = None

    @property
    def question_columns(self) -> List[str]:
        return get_all_question_cols(self.exam_rows)[: self.num_questions]


def _require_stage(state: AnalysisState, *allowed: PipelineStage) -> None:
    if state.stage not in allowed:
        raise ExamAnalysisError(
            f"Stage '{state.stage.value}' cannot run this step",
            context={"expected": ", ".join(stage.value for stage in allowed)},
        )


def start_session(
    exam_rows: Sequence[ExamRow],
    num_questions: Optional[int] = None,
    points_per_question: float = settings.POINTS_PER_QUESTION,
) -> AnalysisState:
    """
    Start a session from an uploaded answer sheet.

    The answer key is read from the solution rows; versions without one and
    voided questions are recorded as warnings on the state.
    """
    solutions, students = split_rows(exam_rows)
    count = num_questions or guess_num_questions(exam_rows)
    state = AnalysisState(
        exam_rows=list(exam_rows),
        num_questions=count,
        points_per_question=points_per_question,
    )
    correct_map = build_correct_answers_map(exam_rows, state.question_columns)

    logger.info(
        f"Session started with {len(students)} students, {len(solutions)} "
        f"solution rows and {count} questions"
    )
    return state.model_copy(
        update={
            "correct_map": correct_map,
            "missing_solution_codes": validate_codes_have_solutions(exam_rows),
            "voided_questions": find_voided_questions(correct_map),
        }
    )


def regrade(
    state: AnalysisState,
    correct_map: Optional[CorrectAnswersMap] = None,
) -> AnalysisState:
    """
    Score every student under the (optionally edited) answer key.

    The solution rows are rewritten to match the key used, so later stages
    grade against the same answers. Downstream results are cleared.
    """
    key = correct_map if correct_map is not None else state.correct_map
    exam_rows = revise_solution_rows(state.exam_rows, state.question_columns, key)
    results = compute_results(
        exam_rows, state.question_columns, key, state.points_per_question
    )
    return state.model_copy(
        update={
            "stage": PipelineStage.REGRADED,
            "exam_rows": exam_rows,
            "correct_map": key,
            "voided_questions": find_voided_questions(key),
            "results": results,
            "ranked_results": classify_students_by_quartile(results),
            "item_analysis_rows": [],
            "average_results": [],
            "code_averages": [],
            "item_analysis": None,
        }
    )


def map_versions(
    state: AnalysisState,
    item_analysis_rows: Sequence[ItemAnalysisRow],
) -> AnalysisState:
    """Attach the version mapping and compute cross-version averages."""
    _require_stage(
        state, PipelineStage.REGRADED, PipelineStage.MAPPED, PipelineStage.ANALYZED
    )
    rows = list(item_analysis_rows)
    return state.model_copy(
        update={
            "stage": PipelineStage.MAPPED,
            "item_analysis_rows": rows,
            "average_results": compute_average_results(
                state.exam_rows, rows, state.num_questions
            ),
            "code_averages": compute_code_averages(state.exam_rows, state.num_questions),
            "item_analysis": None,
        }
    )


def analyze(state: AnalysisState) -> AnalysisState:
    """Run the comprehensive item analysis on a mapped session."""
    _require_stage(state, PipelineStage.MAPPED, PipelineStage.ANALYZED)
    analysis = compute_comprehensive_item_analysis(
        state.exam_rows,
        state.item_analysis_rows,
        state.num_questions,
        state.points_per_question,
    )
    return state.model_copy(
        update={"stage": PipelineStage.ANALYZED, "item_analysis": analysis}
    )


def dump_state(state: AnalysisState) -> str:
    """Serialize a state to JSON."""
    return state.model_dump_json()


def load_state(data: str) -> AnalysisState:
    """Restore a state serialized with ``dump_state``."""
    return AnalysisState.model_validate_json(data)
