"""
Tests for answer sheet and item analysis CSV import.
"""

import pytest

from regrader.core.data_import import (
    apply_column_mapping,
    detect_columns,
    match_question_column,
    read_exam_csv,
    read_item_analysis_csv,
)
from regrader.core.errors import ColumnDetectionError


ANSWER_CSV = (
    "Student ID,Section,Exam Code,Q1,Q2,Q3\n"
    "0,0,1,A,B,CE\n"
    "12345,1,1,a,b,x\n"
    "ABC77,02,2,C,,D\n"
)


class TestMatchQuestionColumn:
    """Tests for question column name matching."""

    @pytest.mark.parametrize(
        "column,expected",
        [
            ("1", 1),
            ("Q1", 1),
            ("q.12", 12),
            ("Question 3", 3),
            ("Ques 4", 4),
            (" 7 ", 7),
            ("Section", None),
            ("Q", None),
            ("Q1a", None),
        ],
    )
    def test_match(self, column, expected):
        assert match_question_column(column) == expected


class TestDetectColumns:
    """Tests for detect_columns."""

    def test_detects_all_columns(self):
        records = [
            {"Matric": "1", "Sec": "1", "Version": "1", "1": "A", "2": "B", "Notes": ""},
        ]
        detection = detect_columns(records)

        assert detection.valid is True
        assert detection.id_column == "Matric"
        assert detection.section_column == "Sec"
        assert detection.code_column == "Version"
        assert [q.number for q in detection.question_columns] == [1, 2]
        assert detection.errors == []

    def test_empty_question_columns_ignored(self):
        records = [{"ID": "1", "Code": "1", "1": "A", "2": "", "3": "-"}]
        detection = detect_columns(records)
        assert [q.name for q in detection.question_columns] == ["1"]

    def test_missing_columns_reported(self):
        detection = detect_columns([{"Name": "x", "Q1": "A"}])
        assert detection.valid is False
        assert any("ID column" in e for e in detection.errors)
        assert any("Code column" in e for e in detection.errors)

    def test_gap_in_question_numbers(self):
        records = [{"ID": "1", "Code": "1", "Q1": "A", "Q3": "B"}]
        detection = detect_columns(records)
        assert detection.valid is False
        assert "Expected question 2, found question 3" in detection.errors[0]

    def test_empty_file(self):
        detection = detect_columns([])
        assert detection.valid is False
        assert detection.errors == ["File is empty"]


class TestApplyColumnMapping:
    """Tests for apply_column_mapping."""

    def test_normalizes_rows(self):
        records = [
            {"ID": "12345", "Section": "1", "Code": " 2 ", "Q1": "a", "Q2": "AB"},
            {"ID": "X9", "Section": "B", "Code": "2", "Q1": "z", "Q2": ""},
        ]
        rows = apply_column_mapping(records, detect_columns(records))

        assert rows[0].id == "000012345"
        assert rows[0].section == "01"
        assert rows[0].code == "2"
        assert rows[0].answers == ["A", "AB"]
        assert rows[1].id == "X9"
        assert rows[1].section == "B"
        assert rows[1].answers == ["", ""]

    def test_invalid_detection_raises(self):
        records = [{"Name": "x", "Q1": "A"}]
        with pytest.raises(ColumnDetectionError, match="ID column"):
            apply_column_mapping(records, detect_columns(records))


class TestReadCsv:
    """Tests for reading CSV files."""

    def test_read_exam_csv(self, tmp_path):
        path = tmp_path / "answers.csv"
        path.write_text(ANSWER_CSV, encoding="utf-8")

        rows = read_exam_csv(path)

        assert len(rows) == 3
        assert rows[0].id == "000000000"
        assert rows[0].answers == ["A", "B", "CE"]
        assert rows[1].id == "000012345"
        assert rows[1].answers == ["A", "B", ""]
        assert rows[2].section == "02"
        assert rows[2].answers == ["C", "", "D"]

    def test_read_exam_csv_with_bom(self, tmp_path):
        path = tmp_path / "answers.csv"
        path.write_text("\ufeff" + ANSWER_CSV, encoding="utf-8")
        assert read_exam_csv(path)[0].id == "000000000"

    def test_read_exam_csv_without_code_column(self, tmp_path):
        path = tmp_path / "answers.csv"
        path.write_text("ID,Q1\n1,A\n", encoding="utf-8")
        with pytest.raises(ColumnDetectionError):
            read_exam_csv(path)

    def test_read_item_analysis_csv(self, tmp_path):
        path = tmp_path / "item_analysis.csv"
        path.write_text(
            "Version,Version Q#,Master Q#,Permutation,Correct\n"
            "1,1,2,ABCDE,A\n"
            "2,1,1,CABDE,C\n",
            encoding="utf-8",
        )
        rows = read_item_analysis_csv(path)

        assert [(r.code, r.order, r.order_in_master) for r in rows] == [
            (1, 1, 2),
            (2, 1, 1),
        ]
        assert rows[1].permutation == "CABDE"
