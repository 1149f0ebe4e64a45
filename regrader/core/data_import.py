"""
Import of answer sheets and item-analysis tables from CSV files.

Answer files come from many scanners and spreadsheets, so their columns are
matched loosely: "Student ID", "student_id" and "Matric" are all ID
columns, "Q1", "Question 1" and "1" are all question 1. Cells are normalized
to uppercase letters A-E; anything else is treated as blank.
"""

import csv
import logging
import re
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union

from regrader.core.errors import ColumnDetectionError
from regrader.core.version_mapping import load_item_analysis
from regrader.schemas.exam import (
    ColumnDetectionResult,
    ColumnMapping,
    ExamRow,
    ItemAnalysisRow,
    QuestionColumn,
)

logger = logging.getLogger(__name__)

Record = Mapping[str, Any]

ID_WIDTH = 9
SECTION_WIDTH = 2

_ANSWER_PATTERN = re.compile(r"^[A-E]+$")
_DIGITS = re.compile(r"^\d+$")
_QUESTION_PATTERNS = (
    re.compile(r"^(\d+)$"),
    re.compile(r"^q\.?\s*(\d+)$", re.IGNORECASE),
    re.compile(r"^question\.?\s*(\d+)$", re.IGNORECASE),
    re.compile(r"^ques\.?\s*(\d+)$", re.IGNORECASE),
)


def _squash(column: str) -> str:
    return re.sub(r"[_\s-]", "", column.lower())


def _matches_id(column: str) -> bool:
    name = _squash(column)
    return (
        name in ("id", "studentid", "matric", "matriculation")
        or "stdid" in name
        or "studentnumber" in name
    )


def _matches_section(column: str) -> bool:
    return _squash(column) in ("section", "sec", "sectionno", "sectionnumber")


def _matches_code(column: str) -> bool:
    name = _squash(column)
    return (
        name in ("code", "version")
        or "examcode" in name
        or "formcode" in name
        or "examversion" in name
    )


def match_question_column(column: str) -> Optional[int]:
    """Question number held by a column ("1", "Q1", "Question 1", "Ques 1")."""
    name = column.strip()
    for pattern in _QUESTION_PATTERNS:
        match = pattern.match(name)
        if match:
            return int(match.group(1))
    return None


def _clean_answer(value: Any) -> str:
    text = str(value if value is not None else "").strip().upper()
    return text if _ANSWER_PATTERN.match(text) else ""


def detect_columns(records: Sequence[Record]) -> ColumnDetectionResult:
    """
    Match the columns of an answer file to ID, Section, Code and questions.

    Only question columns holding at least one A-E answer count. Question
    numbers must run 1..N without gaps.

    Returns:
        ColumnDetectionResult; ``valid`` is False and ``errors`` explains
        each problem when a required column is missing.
    """
    if not records:
        return ColumnDetectionResult(errors=["File is empty"])

    all_columns = [str(col) for col in records[0].keys()]
    id_column = next((c for c in all_columns if _matches_id(c)), None)
    section_column = next((c for c in all_columns if _matches_section(c)), None)
    code_column = next((c for c in all_columns if _matches_code(c)), None)

    question_columns: List[QuestionColumn] = []
    for col in all_columns:
        number = match_question_column(col)
        if number is None:
            continue
        if any(_clean_answer(record.get(col)) for record in records):
            question_columns.append(QuestionColumn(name=col, number=number))
    question_columns.sort(key=lambda q: q.number)

    errors: List[str] = []
    if not id_column:
        errors.append("Could not detect ID column. Please map it manually.")
    if not code_column:
        errors.append("Could not detect Code column. Please map it manually.")
    if not question_columns:
        errors.append("Could not detect any question columns. Please map them manually.")
    else:
        for expected, question in enumerate(question_columns, start=1):
            if question.number != expected:
                errors.append(
                    f"Question columns are not sequential. Expected question "
                    f"{expected}, found question {question.number}. Please fix "
                    f"your file to have sequential question numbers (1, 2, 3, ...) "
                    f"with no gaps, then re-upload."
                )
                break

    logger.debug(
        f"Detected columns: id={id_column}, section={section_column}, "
        f"code={code_column}, questions={len(question_columns)}"
    )
    return ColumnDetectionResult(
        id_column=id_column,
        section_column=section_column,
        code_column=code_column,
        question_columns=question_columns,
        all_columns=all_columns,
        valid=not errors,
        errors=errors,
    )


def _pad_numeric(value: Any, width: int) -> str:
    text = str(value if value is not None else "").strip()
    return text.zfill(width) if _DIGITS.match(text) else text


def apply_column_mapping(
    records: Sequence[Record],
    detection: ColumnDetectionResult,
) -> List[ExamRow]:
    """
    Build ExamRows from raw records using detected (or edited) columns.

    Purely numeric IDs are zero-padded to 9 digits and Sections to 2.

    Raises:
        ColumnDetectionError: The detection is not valid.
    """
    if not detection.valid or not detection.id_column or not detection.code_column:
        raise ColumnDetectionError(
            detection.errors or ["Invalid column detection. Cannot normalize data."]
        )

    width = max((q.number for q in detection.question_columns), default=0)
    rows: List[ExamRow] = []
    for record in records:
        answers = [""] * width
        for question in detection.question_columns:
            answers[question.number - 1] = _clean_answer(record.get(question.name))

        section = ""
        if detection.section_column:
            section = _pad_numeric(record.get(detection.section_column), SECTION_WIDTH)

        rows.append(
            ExamRow(
                id=_pad_numeric(record.get(detection.id_column), ID_WIDTH),
                section=section,
                code=str(record.get(detection.code_column) or "").strip(),
                answers=answers,
            )
        )
    return rows


def read_csv_records(path: Union[str, Path]) -> Tuple[List[Dict[str, str]], List[str]]:
    """Read a CSV file into (records, column names in file order)."""
    with open(path, newline="", encoding="utf-8-sig") as f:
        reader = csv.DictReader(f)
        records = [dict(record) for record in reader]
        columns = list(reader.fieldnames or [])
    logger.debug(f"Read {len(records)} records from {path}")
    return records, columns


def read_exam_csv(path: Union[str, Path]) -> List[ExamRow]:
    """
    Read and normalize an answer sheet.

    Raises:
        ColumnDetectionError: Required columns could not be detected.
    """
    records, _ = read_csv_records(path)
    detection = detect_columns(records)
    if not detection.valid:
        raise ColumnDetectionError(detection.errors)
    rows = apply_column_mapping(records, detection)
    logger.info(f"Loaded {len(rows)} answer rows", extra={"path": str(path)})
    return rows


def read_item_analysis_csv(
    path: Union[str, Path],
    column_mapping: Optional[ColumnMapping] = None,
) -> List[ItemAnalysisRow]:
    """Read an item-analysis table in any supported layout."""
    records, _ = read_csv_records(path)
    rows = load_item_analysis(records, column_mapping=column_mapping)
    logger.info(f"Loaded {len(rows)} item analysis rows", extra={"path": str(path)})
    return rows
