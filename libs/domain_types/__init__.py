"""Shared domain types for the exam regrader.

This package is the single source of truth for domain enums used across
the analysis core, the API schemas and the export tooling.

Usage:
    from libs.domain_types import ItemDecision, QuartileRank
"""

import enum


class QuartileRank(str, enum.Enum):
    """Performance band assigned by total score (T1 = top 25%)."""

    T1 = "T1"
    T2 = "T2"
    T3 = "T3"
    T4 = "T4"


class ItemDecision(str, enum.Enum):
    """Review decision for a master question."""

    KEEP = "KEEP"
    REVISE = "REVISE"
    INVESTIGATE = "INVESTIGATE"


class DistractorStatus(str, enum.Enum):
    """Classification of a single answer option."""

    KEY = "key"  # The master-frame correct option
    FUNCTIONAL = "functional"  # Distractor selected by >=5% of respondents
    WEAK = "weak"  # Distractor selected by <5% of respondents
    NOT_APPLICABLE = "N/A"  # Blank/Other is never classified


class ReliabilityLabel(str, enum.Enum):
    """Interpretation band for KR-20."""

    EXCELLENT = "Excellent"
    GOOD = "Good"
    ACCEPTABLE = "Acceptable"
    POOR = "Poor"
    NOT_AVAILABLE = "N/A"


class ItemAnalysisSchema(str, enum.Enum):
    """Column layout of an uploaded item-analysis (question map) table."""

    OLD = "OLD"  # code / order / order in master
    NEW = "NEW"  # Version / Version Q# / Master Q#
    WIDE = "WIDE"  # Q / Option / Master_Correct / version_N_Q / version_N_Opt
    UNKNOWN = "UNKNOWN"


__all__ = [
    "QuartileRank",
    "ItemDecision",
    "DistractorStatus",
    "ReliabilityLabel",
    "ItemAnalysisSchema",
]
