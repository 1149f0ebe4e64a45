"""
Answer matrix helpers: solution rows, version codes and answer keys.

An answer sheet is a list of ``ExamRow`` objects. Rows whose ID is the
sentinel "000000000", "0" or empty hold the answer key of their version
(solution rows); every other row is a student.

Version codes arrive as numbers or strings ("1", "001", " 1 ", "A2"). All
comparisons go through ``normalize_code`` so that numeric codes compare by
integer value and everything else by trimmed text.
"""

import logging
import re
from typing import Dict, Iterable, List, Sequence, Tuple, Union

from regrader.core.errors import MissingSolutionRowsError, MissingStudentRowsError
from regrader.schemas.exam import ANS_CHOICES, ExamRow

logger = logging.getLogger(__name__)

# Version code -> accepted letters (sorted) per 0-based question position
CorrectAnswersMap = Dict[str, List[List[str]]]

SOLUTION_ROW_IDS = frozenset({"000000000", "0", ""})

_INTEGER_PATTERN = re.compile(r"^[+-]?\d+$")
_ANSWER_PATTERN = re.compile(r"^[A-E]+$")


def normalize_code(code: Union[str, int, float, None]) -> str:
    """
    Canonical form of an exam version code.

    Integer-looking codes are reduced to their integer value so that
    "1", "001", " 1 " and 1 are the same version; anything else is trimmed.
    """
    if code is None:
        return ""
    if isinstance(code, float) and code.is_integer():
        code = int(code)
    text = str(code).strip()
    if _INTEGER_PATTERN.match(text):
        return str(int(text))
    return text


def codes_equal(a: Union[str, int, None], b: Union[str, int, None]) -> bool:
    return normalize_code(a) == normalize_code(b)


def sort_codes(codes: Iterable[str]) -> List[str]:
    """Sort codes numerically first (by value), then alphabetically."""

    def _key(code: str) -> Tuple[int, int, str]:
        if _INTEGER_PATTERN.match(code.strip()):
            return (0, int(code), "")
        return (1, 0, code)

    return sorted(set(codes), key=_key)


def is_solution_row(row: ExamRow) -> bool:
    """True when the row holds an answer key rather than a student's answers."""
    return row.id.strip() in SOLUTION_ROW_IDS


def split_rows(rows: Sequence[ExamRow]) -> Tuple[List[ExamRow], List[ExamRow]]:
    """Split an answer sheet into (solution rows, student rows)."""
    solutions = [row for row in rows if is_solution_row(row)]
    students = [row for row in rows if not is_solution_row(row)]
    return solutions, students


def require_solution_and_student_rows(
    rows: Sequence[ExamRow],
) -> Tuple[List[ExamRow], List[ExamRow]]:
    """
    Split the sheet, failing when either part is empty.

    Raises:
        MissingSolutionRowsError: No solution rows
        MissingStudentRowsError: No student rows
    """
    solutions, students = split_rows(rows)
    if not solutions:
        raise MissingSolutionRowsError()
    if not students:
        raise MissingStudentRowsError()
    return solutions, students


def parse_solution_cell(value: str) -> List[str]:
    """
    Parse an answer cell into its sorted, deduplicated letters.

    Example: "EBA" -> ["A", "B", "E"]; characters outside A-E are ignored.
    """
    if not value:
        return []
    letters = {c for c in value.upper() if c in ANS_CHOICES}
    return sorted(letters)


def get_all_question_cols(rows: Sequence[ExamRow]) -> List[str]:
    """Question column labels ("1".."N") covering the widest row."""
    if not rows:
        return []
    width = max(len(row.answers) for row in rows)
    return [str(i) for i in range(1, width + 1)]


def guess_num_questions(rows: Sequence[ExamRow]) -> int:
    """
    Number of question columns that carry at least one valid key letter.

    Falls back to the number of columns when there are no solution rows or
    no column has a valid key.
    """
    columns = get_all_question_cols(rows)
    solutions, _ = split_rows(rows)
    if not solutions:
        return len(columns)

    valid_count = sum(
        1
        for col in columns
        if any(_ANSWER_PATTERN.match(sol.answer(col)) for sol in solutions)
    )
    return valid_count if valid_count > 0 else len(columns)


def get_solution_codes(rows: Sequence[ExamRow]) -> List[str]:
    """Normalized version codes that have a solution row."""
    solutions, _ = split_rows(rows)
    return sort_codes(normalize_code(sol.code) for sol in solutions)


def get_student_codes(rows: Sequence[ExamRow]) -> List[str]:
    """Normalized version codes used by at least one student."""
    _, students = split_rows(rows)
    return sort_codes(
        normalize_code(s.code) for s in students if normalize_code(s.code)
    )


def validate_codes_have_solutions(rows: Sequence[ExamRow]) -> List[str]:
    """Return the student version codes that have no solution row."""
    solution_codes = set(get_solution_codes(rows))
    missing = [code for code in get_student_codes(rows) if code not in solution_codes]
    if missing:
        logger.warning(
            f"Versions without a solution row will score zero: {', '.join(missing)}"
        )
    return missing


def build_correct_answers_map(
    rows: Sequence[ExamRow],
    question_columns: Sequence[str],
) -> CorrectAnswersMap:
    """
    Build the accepted-answer sets of every version from its solution row.

    When a version has several solution rows the last one wins.
    """
    solutions, _ = split_rows(rows)
    correct_map: CorrectAnswersMap = {}
    for sol in solutions:
        correct_map[normalize_code(sol.code)] = [
            parse_solution_cell(sol.answer(col)) for col in question_columns
        ]
    return correct_map
