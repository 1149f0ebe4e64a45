"""
Tests for the regrading engine.
"""

import logging

import pytest

from regrader.core.answer_matrix import build_correct_answers_map
from regrader.core.regrading import (
    compute_results,
    find_voided_questions,
    is_answer_correct,
    revise_solution_rows,
)


class TestIsAnswerCorrect:
    """Tests for single-answer correctness."""

    @pytest.mark.parametrize(
        "answer,accepted,expected",
        [
            ("A", ["A"], True),
            ("a", ["A"], True),
            ("B", ["A", "B"], True),
            ("C", ["A", "B"], False),
            ("", ["A"], False),
            (None, ["A"], False),
            ("AB", ["A", "B"], False),
            ("AA", ["A"], False),
            ("A", [], False),
        ],
    )
    def test_correctness(self, answer, accepted, expected):
        assert is_answer_correct(answer, accepted) is expected


class TestComputeResults:
    """Tests for compute_results."""

    def test_scores_every_student(self, exam_rows, question_columns):
        correct_map = build_correct_answers_map(exam_rows, question_columns)
        results = compute_results(exam_rows, question_columns, correct_map, 5)

        assert [r.id for r in results] == [f"S{i}" for i in range(1, 9)]
        assert [r.tot for r in results] == [15, 10, 5, 0, 15, 10, 5, 0]
        assert results[0].per == 100.0
        assert results[1].per == pytest.approx(66.67)
        assert results[2].per == pytest.approx(33.33)
        assert results[3].per == 0.0

    def test_result_carries_row_identity(self, exam_rows, question_columns):
        correct_map = build_correct_answers_map(exam_rows, question_columns)
        result = compute_results(exam_rows, question_columns, correct_map, 1)[4]
        assert (result.id, result.section, result.code) == ("S5", "01", "2")

    def test_edited_key_accepts_second_answer(self, exam_rows, question_columns):
        correct_map = build_correct_answers_map(exam_rows, question_columns)
        correct_map["1"][2] = ["C", "D"]
        results = compute_results(exam_rows, question_columns, correct_map, 5)
        # S2 answered D on question 3
        assert results[1].tot == 15

    def test_accepting_more_answers_never_lowers_scores(
        self, exam_rows, question_columns
    ):
        correct_map = build_correct_answers_map(exam_rows, question_columns)
        before = compute_results(exam_rows, question_columns, correct_map, 5)
        widened = {
            code: [sorted(set(accepted) | {"D"}) for accepted in answers]
            for code, answers in correct_map.items()
        }
        after = compute_results(exam_rows, question_columns, widened, 5)
        assert all(a.tot >= b.tot for a, b in zip(after, before))
        assert all(0 <= r.per <= 100 for r in after)

    def test_voided_question_scores_zero(self, exam_rows, question_columns):
        correct_map = build_correct_answers_map(exam_rows, question_columns)
        correct_map["1"][0] = []
        results = compute_results(exam_rows, question_columns, correct_map, 5)
        assert results[0].tot == 10
        assert results[0].per == pytest.approx(66.67)

    def test_unknown_version_scores_zero(
        self, exam_rows, question_columns, row_factory, caplog
    ):
        rows = exam_rows + [row_factory("S9", "9", ["A", "B", "C"])]
        correct_map = build_correct_answers_map(rows, question_columns)
        with caplog.at_level(logging.WARNING):
            results = compute_results(rows, question_columns, correct_map, 5)
        assert results[-1].tot == 0
        assert results[-1].per == 0
        assert "9" in caplog.text

    def test_numeric_codes_match_by_value(self, solution_factory, row_factory):
        rows = [
            solution_factory("1", ["A"]),
            row_factory("S1", "001", ["A"]),
        ]
        correct_map = build_correct_answers_map(rows, ["1"])
        assert compute_results(rows, ["1"], correct_map, 2)[0].tot == 2

    def test_no_questions(self, exam_rows):
        results = compute_results(exam_rows, [], {}, 5)
        assert all(r.tot == 0 and r.per == 0 for r in results)

    def test_solution_rows_are_not_scored(self, exam_rows, question_columns):
        correct_map = build_correct_answers_map(exam_rows, question_columns)
        results = compute_results(exam_rows, question_columns, correct_map)
        assert all(r.id != "000000000" for r in results)


class TestReviseSolutionRows:
    """Tests for revise_solution_rows."""

    def test_rewrites_solution_cells(self, exam_rows, question_columns):
        correct_map = build_correct_answers_map(exam_rows, question_columns)
        correct_map["1"] = [["E", "A", "B"], [], ["C"]]

        revised = revise_solution_rows(exam_rows, question_columns, correct_map)

        assert revised[0].answers == ["ABE", "", "C"]
        assert revised[1].answers == ["C", "A", "B"]

    def test_revised_rows_rebuild_the_same_key(self, exam_rows, question_columns):
        correct_map = {"1": [["A", "E"], [], ["C"]], "2": [["C"], ["A"], ["B", "D"]]}
        revised = revise_solution_rows(exam_rows, question_columns, correct_map)
        assert build_correct_answers_map(revised, question_columns) == correct_map

    def test_student_rows_unchanged(self, exam_rows, question_columns):
        correct_map = {"1": [["D"], ["D"], ["D"]]}
        revised = revise_solution_rows(exam_rows, question_columns, correct_map)
        assert revised[2:] == exam_rows[2:]

    def test_input_not_mutated(self, exam_rows, question_columns):
        correct_map = {"1": [["D"], ["D"], ["D"]]}
        revise_solution_rows(exam_rows, question_columns, correct_map)
        assert exam_rows[0].answers == ["A", "B", "C"]

    def test_version_missing_from_key_unchanged(self, exam_rows, question_columns):
        revised = revise_solution_rows(exam_rows, question_columns, {"1": [["D"]] * 3})
        assert revised[1] == exam_rows[1]

    def test_pads_short_solution_row(self, solution_factory):
        rows = [solution_factory("1", ["A"])]
        revised = revise_solution_rows(rows, ["1", "2"], {"1": [["A"], ["B"]]})
        assert revised[0].answers == ["A", "B"]


class TestFindVoidedQuestions:
    """Tests for voided question detection."""

    def test_lists_empty_answer_sets(self, caplog):
        correct_map = {"1": [["A"], [], ["C"]], "2": [[], ["B"]]}
        with caplog.at_level(logging.WARNING):
            voided = find_voided_questions(correct_map)

        assert [(v.code, v.question) for v in voided] == [("1", 2), ("2", 1)]
        assert "no accepted answer" in caplog.text

    def test_no_voided_questions(self):
        assert find_voided_questions({"1": [["A"], ["B"]]}) == []
