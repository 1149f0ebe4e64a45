"""
Pytest configuration and shared fixtures for testing.

The shared scenario is a three-question exam given in two versions to
eight students:

- Version 1 presents the master questions in order with unshuffled options
  (key "ABC").
- Version 2 presents master questions 2, 3, 1 with options shuffled by the
  permutation "CABDE" (key "CAB").

Each version has one student scoring 3, 2, 1 and 0 correct answers.
"""
import sys
from pathlib import Path

# Add project root to path so libs/ is importable
project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from typing import List  # noqa: E402

import pytest  # noqa: E402

from regrader.schemas.exam import ExamRow, ItemAnalysisRow  # noqa: E402

SOLUTION_ID = "000000000"


def make_row(
    id: str, code: str, answers: List[str], section: str = "01"
) -> ExamRow:
    """Build an answer sheet row."""
    return ExamRow(id=id, section=section, code=code, answers=list(answers))


def make_solution(code: str, answers: List[str]) -> ExamRow:
    """Build a solution row for a version."""
    return make_row(SOLUTION_ID, code, answers, section="00")


@pytest.fixture
def exam_rows() -> List[ExamRow]:
    """Two versions, two solution rows and eight students."""
    return [
        make_solution("1", ["A", "B", "C"]),
        make_solution("2", ["C", "A", "B"]),
        make_row("S1", "1", ["A", "B", "C"]),
        make_row("S2", "1", ["A", "B", "D"]),
        make_row("S3", "1", ["A", "C", "A"]),
        make_row("S4", "1", ["B", "", "E"]),
        make_row("S5", "2", ["C", "A", "B"]),
        make_row("S6", "2", ["C", "C", "B"]),
        make_row("S7", "2", ["A", "A", "D"]),
        make_row("S8", "2", ["D", "D", "A"]),
    ]


@pytest.fixture
def item_analysis_rows() -> List[ItemAnalysisRow]:
    """Version -> master mapping with permutations and correct letters."""
    return [
        ItemAnalysisRow(code=1, order=1, order_in_master=1, permutation="ABCDE", correct="A"),
        ItemAnalysisRow(code=1, order=2, order_in_master=2, permutation="ABCDE", correct="B"),
        ItemAnalysisRow(code=1, order=3, order_in_master=3, permutation="ABCDE", correct="C"),
        ItemAnalysisRow(code=2, order=1, order_in_master=2, permutation="CABDE", correct="C"),
        ItemAnalysisRow(code=2, order=2, order_in_master=3, permutation="CABDE", correct="A"),
        ItemAnalysisRow(code=2, order=3, order_in_master=1, permutation="CABDE", correct="B"),
    ]


@pytest.fixture
def plain_mapping_rows(item_analysis_rows) -> List[ItemAnalysisRow]:
    """The same mapping without permutation or correct-answer data."""
    return [
        ItemAnalysisRow(code=row.code, order=row.order, order_in_master=row.order_in_master)
        for row in item_analysis_rows
    ]


@pytest.fixture
def question_columns() -> List[str]:
    return ["1", "2", "3"]


@pytest.fixture
def row_factory():
    """Factory for ad-hoc answer sheet rows: row_factory(id, code, answers)."""
    return make_row


@pytest.fixture
def solution_factory():
    """Factory for ad-hoc solution rows: solution_factory(code, answers)."""
    return make_solution
