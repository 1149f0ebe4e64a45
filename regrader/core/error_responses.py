"""
Standardized error response messages and builders for the HTTP API.

Error Message Format Guidelines:
- Use sentence case (capitalize first letter only)
- End with a period for complete sentences
- Analysis errors already carry complete operator-facing messages and are
  passed through unchanged

Usage:
    from regrader.core.error_responses import ErrorMessages, raise_unprocessable

    if not request.exam_rows:
        raise_unprocessable(ErrorMessages.NO_EXAM_ROWS)
"""

from typing import NoReturn

from fastapi import HTTPException, status


class ErrorMessages:
    """Centralized error message constants and templates."""

    # ==========================================================================
    # Request Errors (422)
    # ==========================================================================
    NO_EXAM_ROWS = "The answer sheet is empty."
    NO_ITEM_ANALYSIS_ROWS = "The item analysis table is empty."
    NO_RECORDS = "No item analysis records were provided."

    # ==========================================================================
    # Server Errors (500)
    # ==========================================================================
    INTERNAL_ERROR = "Internal server error"

    @staticmethod
    def too_many_questions(requested: int, available: int) -> str:
        return (
            f"Requested {requested} questions but the answer sheet only has "
            f"{available} question columns."
        )


def raise_unprocessable(detail: str) -> NoReturn:
    """Raise a 422 Unprocessable Entity exception.

    Use when the request is well-formed but its data cannot be analyzed.

    Args:
        detail: User-facing error message

    Raises:
        HTTPException: 422 Unprocessable Entity
    """
    raise HTTPException(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        detail=detail,
    )
