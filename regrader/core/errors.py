"""
Exceptions raised by the exam analysis engine.

Every fatal precondition failure is an ``ExamAnalysisError`` carrying a
complete, operator-facing message. Callers (the API and the export CLI)
are responsible for presenting it; nothing in the core retries.
"""

from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple


class ExamAnalysisError(Exception):
    """Base exception for exam analysis errors.

    Attributes:
        message: Human-readable error description
        context: Additional structured context about where the error occurred
    """

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format error message with context."""
        msg = self.message
        if self.context:
            ctx_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            msg = f"{msg} (context: {ctx_str})"
        return msg


class MissingSolutionRowsError(ExamAnalysisError):
    """The answer file has no answer-key (solution) rows."""

    def __init__(self) -> None:
        super().__init__("No solution rows found")


class MissingStudentRowsError(ExamAnalysisError):
    """The answer file has no student rows."""

    def __init__(self) -> None:
        super().__init__("No student rows found")


class VersionMappingError(ExamAnalysisError):
    """No item-analysis row matches a version code used by students."""

    def __init__(self, answer_codes: Iterable[str], mapping_codes: Iterable[str]):
        self.answer_codes = list(answer_codes)
        self.mapping_codes = list(mapping_codes)
        super().__init__(
            "No usable rows in the item analysis file.\n\n"
            f"Codes in answers file: {', '.join(self.answer_codes)}\n"
            f"Codes in item analysis file: {', '.join(self.mapping_codes)}\n\n"
            "Make sure the code/version columns match between files."
        )


class MissingPermutationError(ExamAnalysisError):
    """Comprehensive analysis was requested without permutation data."""

    def __init__(self, missing: Sequence[Tuple[str, int]]):
        self.missing = list(missing)
        lines = [f"Version {code}, Q{order}" for code, order in self.missing]
        super().__init__(
            "Item analysis requires permutation data for every mapped question.\n"
            "Missing permutation for:\n" + "\n".join(lines)
        )


class AnswerKeyMismatchError(ExamAnalysisError):
    """Declared correct answers disagree with the solution rows."""

    def __init__(self, mismatches: List[str]):
        self.mismatches = mismatches
        super().__init__(
            "Correct answer mismatch detected:\n" + "\n".join(mismatches)
        )


class SchemaDetectionError(ExamAnalysisError):
    """An item-analysis table cannot be normalized with the given schema."""


class DataExportError(ExamAnalysisError):
    """A result table could not be serialized."""


class ColumnDetectionError(ExamAnalysisError):
    """Required columns could not be found in an answer file."""

    def __init__(self, errors: List[str]):
        self.errors = errors
        super().__init__("\n".join(errors))
