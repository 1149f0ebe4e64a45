r"""
Export of regrading and item-analysis results as CSV or JSONL.

CLI Usage:
    regrader-export \
        --answers answers.csv \
        --output results.csv \
        [--item-analysis item_analysis.csv] \
        [--num-questions 40] \
        [--points-per-question 5] \
        [--format csv|jsonl] \
        [--export-type results|revised|averages|code-averages|ranks|
                       item-statistics|option-statistics|summary|distractors]
"""

import argparse
import csv
import io
import json
import logging
import sys
from typing import Any, Dict, List, Mapping, Optional, Sequence

from pydantic import BaseModel

from regrader.core.answer_matrix import (
    build_correct_answers_map,
    get_all_question_cols,
    guess_num_questions,
    validate_codes_have_solutions,
)
from regrader.core.config import settings
from regrader.core.cross_version import compute_average_results, compute_code_averages
from regrader.core.data_import import read_exam_csv, read_item_analysis_csv
from regrader.core.errors import DataExportError, ExamAnalysisError
from regrader.core.item_analysis import (
    compute_comprehensive_item_analysis,
    compute_distractor_analysis,
)
from regrader.core.logging_config import setup_logging
from regrader.core.quartiles import classify_students_by_quartile
from regrader.core.regrading import (
    compute_results,
    find_voided_questions,
    revise_solution_rows,
)
from regrader.schemas.exam import ColumnMapping, ExamRow
from regrader.schemas.item_analysis import (
    ComprehensiveItemAnalysisResult,
    DistractorAnalysisResult,
)

logger = logging.getLogger(__name__)

EXPORT_FORMATS = ("csv", "jsonl")
EXPORT_TYPES = (
    "results",
    "revised",
    "ranks",
    "averages",
    "code-averages",
    "item-statistics",
    "option-statistics",
    "summary",
    "distractors",
)


def _flatten(record: Mapping[str, Any], prefix: str = "") -> Dict[str, Any]:
    """Flatten nested dicts into dotted column names (codeStats.1.count)."""
    flat: Dict[str, Any] = {}
    for key, value in record.items():
        name = f"{prefix}{key}"
        if isinstance(value, Mapping):
            flat.update(_flatten(value, prefix=f"{name}."))
        else:
            flat[name] = value
    return flat


def _exam_row_record(row: ExamRow) -> Dict[str, Any]:
    record: Dict[str, Any] = {"ID": row.id, "Section": row.section, "Code": row.code}
    for index, answer in enumerate(row.answers, start=1):
        record[str(index)] = answer
    return record


def results_to_records(
    items: Sequence[BaseModel],
    column_order: Optional[Sequence[str]] = None,
) -> List[Dict[str, Any]]:
    """
    Convert result models into flat records keyed by their column names.

    Args:
        items: Result models (StudentResult, AverageResult, ExamRow, ...)
        column_order: Columns to place first, in this order (for example
            the column order of the file the data came from). Unknown
            names are ignored; remaining columns keep their natural order.

    Returns:
        One flat dict per item, all sharing the same keys.
    """
    records = []
    for item in items:
        if isinstance(item, ExamRow):
            records.append(_exam_row_record(item))
        else:
            records.append(_flatten(item.model_dump(by_alias=True, mode="json")))

    columns: List[str] = []
    for record in records:
        for key in record:
            if key not in columns:
                columns.append(key)
    if column_order:
        leading = [c for c in column_order if c in columns]
        columns = leading + [c for c in columns if c not in leading]

    return [{col: record.get(col, "") for col in columns} for record in records]


def generate_csv(data: Sequence[Mapping[str, Any]]) -> str:
    """Generate CSV string from list of dictionaries."""
    if not data:
        return ""

    output = io.StringIO()
    fieldnames = list(data[0].keys())
    writer = csv.DictWriter(output, fieldnames=fieldnames, restval="")

    writer.writeheader()
    writer.writerows(data)  # type: ignore[arg-type]

    return output.getvalue()


def generate_jsonl(data: Sequence[Mapping[str, Any]]) -> str:
    """Generate JSONL string (one JSON object per line)."""
    if not data:
        return ""

    output = io.StringIO()
    for record in data:
        json.dump(record, output)
        output.write("\n")

    return output.getvalue()


def export_table(
    items: Sequence[BaseModel],
    output_format: str = "csv",
    column_order: Optional[Sequence[str]] = None,
) -> str:
    """
    Serialize a result table.

    Raises:
        DataExportError: Unknown output format
    """
    if output_format not in EXPORT_FORMATS:
        raise DataExportError(
            f"Invalid output format: {output_format}",
            context={"valid_formats": list(EXPORT_FORMATS)},
        )

    records = results_to_records(items, column_order=column_order)
    if output_format == "csv":
        return generate_csv(records)
    return generate_jsonl(records)


def item_analysis_tables(
    result: ComprehensiveItemAnalysisResult,
) -> Dict[str, List[BaseModel]]:
    """Split a comprehensive analysis into summary, item and option tables."""
    return {
        "summary": [result.test_summary],
        "item-statistics": list(result.item_statistics),
        "option-statistics": list(result.option_statistics),
    }


def distractor_records(results: Sequence[DistractorAnalysisResult]) -> List[Dict[str, Any]]:
    """One flat record per (master question, choice) of a distractor table."""
    records = []
    for result in results:
        for choice in result.choices:
            record = {"masterQuestion": result.master_question}
            record.update(choice.model_dump(by_alias=True, mode="json"))
            records.append(record)
    return records


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Regrade exams and export item analysis tables"
    )
    parser.add_argument(
        "--answers",
        type=str,
        required=True,
        help="Answer sheet CSV (students and solution rows)",
    )
    parser.add_argument(
        "--item-analysis",
        type=str,
        help="Item analysis CSV mapping versions to the master exam",
    )
    parser.add_argument(
        "--mapping",
        type=str,
        help="Manual item analysis columns: code,order,order_in_master",
    )
    parser.add_argument(
        "--output",
        type=str,
        required=True,
        help="Output file path",
    )
    parser.add_argument(
        "--num-questions",
        type=int,
        help="Number of questions (default: guessed from the solution rows)",
    )
    parser.add_argument(
        "--points-per-question",
        type=float,
        default=settings.POINTS_PER_QUESTION,
        help=f"Points per correct answer (default: {settings.POINTS_PER_QUESTION})",
    )
    parser.add_argument(
        "--format",
        type=str,
        choices=list(EXPORT_FORMATS),
        default="csv",
        help="Output format (default: csv)",
    )
    parser.add_argument(
        "--export-type",
        type=str,
        choices=list(EXPORT_TYPES),
        default="results",
        help="Type of export (default: results)",
    )
    return parser


def _parse_mapping(value: Optional[str]) -> Optional[ColumnMapping]:
    if not value:
        return None
    parts = [part.strip() for part in value.split(",")]
    if len(parts) != 3 or not all(parts):
        raise ValueError("--mapping must name three columns: code,order,order_in_master")
    return ColumnMapping(code=parts[0], order=parts[1], order_in_master=parts[2])


def run_export(args: argparse.Namespace) -> str:
    """Run the requested computation and return the serialized table."""
    exam_rows = read_exam_csv(args.answers)
    num_questions = args.num_questions or guess_num_questions(exam_rows)
    question_columns = get_all_question_cols(exam_rows)[:num_questions]
    correct_map = build_correct_answers_map(exam_rows, question_columns)
    validate_codes_have_solutions(exam_rows)
    find_voided_questions(correct_map)

    if args.export_type == "results":
        results = compute_results(
            exam_rows, question_columns, correct_map, args.points_per_question
        )
        return export_table(results, args.format)
    if args.export_type == "ranks":
        results = compute_results(
            exam_rows, question_columns, correct_map, args.points_per_question
        )
        return export_table(classify_students_by_quartile(results), args.format)
    if args.export_type == "revised":
        revised = revise_solution_rows(exam_rows, question_columns, correct_map)
        return export_table(revised, args.format)
    if args.export_type == "code-averages":
        return export_table(compute_code_averages(exam_rows, num_questions), args.format)

    if not args.item_analysis:
        raise ValueError(f"--item-analysis is required for {args.export_type} export")
    item_rows = read_item_analysis_csv(
        args.item_analysis, column_mapping=_parse_mapping(args.mapping)
    )

    if args.export_type == "averages":
        averages = compute_average_results(exam_rows, item_rows, num_questions)
        return export_table(averages, args.format)
    if args.export_type == "distractors":
        distractors = compute_distractor_analysis(
            exam_rows, item_rows, num_questions, args.points_per_question
        )
        records = distractor_records(distractors)
        return generate_csv(records) if args.format == "csv" else generate_jsonl(records)

    analysis = compute_comprehensive_item_analysis(
        exam_rows, item_rows, num_questions, args.points_per_question
    )
    return export_table(item_analysis_tables(analysis)[args.export_type], args.format)


def main(argv: Optional[Sequence[str]] = None) -> int:
    """CLI entry point for result export."""
    setup_logging()
    args = _build_parser().parse_args(argv)

    try:
        output = run_export(args)
    except (ExamAnalysisError, ValueError, OSError) as e:
        logger.error(f"Export failed: {e}")
        return 1

    with open(args.output, "w", newline="") as f:
        f.write(output)

    logger.info(
        f"Exported {args.export_type} ({args.format}) to {args.output}",
        extra={"path": args.output},
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
