"""
Version mapping: link each version's question order to the master order.

An item-analysis table says, for every exam version, which master question
sits at each local position, and optionally how the options were shuffled
(the permutation) and which local option is correct.

Three table layouts are accepted:

- OLD: ``code``, ``order``, ``order in master``
- NEW: ``Version``, ``Version Q#``, ``Master Q#``
- WIDE: one row per master question and option, with ``Q``, ``Option``,
  ``Master_Correct`` and a ``version_N_Q`` / ``version_N_Opt`` column pair
  per version

Tables in any other layout need an explicit ``ColumnMapping``.

Functions:
- detect_item_analysis_schema: Classify a table by its column names
- normalize_item_analysis: Convert OLD/NEW/mapped records into rows
- parse_wide_format: Convert a WIDE table into rows with permutations
- load_item_analysis: Detect and normalize in one step
- resolve_version_mapping: Build the order/position lookups for used codes
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from pydantic import ValidationError

from libs.domain_types import ItemAnalysisSchema
from regrader.core.answer_matrix import normalize_code, sort_codes
from regrader.core.errors import SchemaDetectionError, VersionMappingError
from regrader.schemas.exam import ANS_CHOICES, ColumnMapping, ItemAnalysisRow

logger = logging.getLogger(__name__)

Record = Mapping[str, Any]

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")
_WIDE_VERSION_COLUMN = re.compile(r"(?:version|v)[_\s]*(\d+)[_\s]*(q|opt)", re.IGNORECASE)
_WIDE_VERSION_HINT = re.compile(r"(?:version|v)\d+q")
_TRUE_FLAGS = frozenset({"YES", "Y", "TRUE", "1"})


@dataclass
class VersionMapping:
    """
    Resolved lookups between version-local and master question numbers.

    Attributes:
        order_map: (normalized code, local order) -> master order
        position_map: (master order, normalized code) -> local order
        rows: The item-analysis rows that were used, in input order
    """

    order_map: Dict[Tuple[str, int], int] = field(default_factory=dict)
    position_map: Dict[Tuple[int, str], int] = field(default_factory=dict)
    rows: List[ItemAnalysisRow] = field(default_factory=list)

    @property
    def codes(self) -> List[str]:
        return sort_codes(code for code, _ in self.order_map)

    @property
    def max_master_order(self) -> int:
        return max(self.order_map.values(), default=0)

    def master_order(self, code: str, local_order: int) -> Optional[int]:
        return self.order_map.get((normalize_code(code), local_order))

    def local_order(self, master_order: int, code: str) -> Optional[int]:
        return self.position_map.get((master_order, normalize_code(code)))


# =============================================================================
# MAPPING RESOLUTION
# =============================================================================


def resolve_version_mapping(
    rows: Sequence[ItemAnalysisRow],
    used_codes: Iterable[str],
) -> VersionMapping:
    """
    Build order and position lookups from the rows of versions in use.

    Rows are kept when both orders are >= 1 and their normalized code is one
    of the normalized ``used_codes``; everything else is dropped silently.

    Raises:
        VersionMappingError: No row matches any used code.
    """
    used = {normalize_code(code) for code in used_codes}
    mapping = VersionMapping()

    for row in rows:
        code = normalize_code(row.code)
        if row.order < 1 or row.order_in_master < 1 or code not in used:
            continue
        mapping.order_map[(code, row.order)] = row.order_in_master
        mapping.position_map[(row.order_in_master, code)] = row.order
        mapping.rows.append(row)

    if not mapping.order_map:
        raise VersionMappingError(
            answer_codes=sort_codes(used),
            mapping_codes=sort_codes(normalize_code(row.code) for row in rows),
        )

    logger.debug(
        f"Resolved {len(mapping.rows)} of {len(rows)} mapping rows "
        f"for versions {mapping.codes}"
    )
    return mapping


# =============================================================================
# SCHEMA DETECTION
# =============================================================================


def _squash(column: str) -> str:
    return re.sub(r"[_\s]", "", column.lower())


def _is_question_column(column: str) -> bool:
    return _squash(column) in ("q", "question")


def _is_option_column(column: str) -> bool:
    return _squash(column) in ("option", "opt")


def _is_master_correct_column(column: str) -> bool:
    return _squash(column) in ("mastercorrect", "correct", "correctanswer")


def detect_item_analysis_schema(columns: Sequence[str]) -> ItemAnalysisSchema:
    """
    Classify an item-analysis table from its column names.

    WIDE takes precedence over NEW, and NEW over OLD. Anything else is
    UNKNOWN and needs a manual column mapping.
    """
    lowered = [col.lower() for col in columns]

    is_wide = (
        any(_is_question_column(col) for col in columns)
        and any(_is_option_column(col) for col in columns)
        and any(_is_master_correct_column(col) for col in columns)
        and any(_WIDE_VERSION_HINT.search(_squash(col)) for col in columns)
    )
    if is_wide:
        schema = ItemAnalysisSchema.WIDE
    elif any("version" in col and "master" not in col for col in lowered) and any(
        "master" in col for col in lowered
    ):
        schema = ItemAnalysisSchema.NEW
    elif any(_squash(col) == "code" for col in columns) and any(
        "order" in col and "master" in col for col in lowered
    ):
        schema = ItemAnalysisSchema.OLD
    else:
        schema = ItemAnalysisSchema.UNKNOWN

    logger.debug(f"Detected item analysis schema {schema.value} from {list(columns)}")
    return schema


# =============================================================================
# NORMALIZATION
# =============================================================================


def _lookup(record: Record, *names: str) -> Any:
    """Return the first non-empty value among ``names`` (any letter case)."""
    by_lower = {str(key).strip().lower(): value for key, value in record.items()}
    for name in names:
        value = by_lower.get(name.lower())
        if value is not None and str(value).strip() != "":
            return value
    return None


def _parse_int(value: Any) -> Optional[int]:
    if value is None:
        return None
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value == value else None
    match = _LEADING_INT.match(str(value))
    return int(match.group(1)) if match else None


def _parse_code(value: Any) -> Optional[Any]:
    if value is None:
        return None
    code = normalize_code(value)
    if not code:
        return None
    return int(code) if re.fullmatch(r"[+-]?\d+", code) else code


def _parse_points(value: Any) -> Optional[float]:
    if value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _build_row(
    index: int,
    code: Any,
    order: int,
    order_in_master: int,
    record: Record,
) -> ItemAnalysisRow:
    values: Dict[str, Any] = {
        "code": code,
        "order": order,
        "order_in_master": order_in_master,
    }
    permutation = _lookup(record, "permutation")
    if permutation is not None:
        values["permutation"] = str(permutation)
    correct = _lookup(record, "correct")
    if correct is not None:
        values["correct"] = str(correct)
    points = _parse_points(_lookup(record, "points"))
    if points is not None:
        values["points"] = points
    group = _lookup(record, "group")
    if group is not None:
        parsed_group = _parse_int(group)
        values["group"] = parsed_group if parsed_group is not None else str(group).strip()

    try:
        return ItemAnalysisRow(**values)
    except ValidationError as e:
        raise SchemaDetectionError(
            f"Invalid item analysis row: {e.errors()[0]['msg']}",
            context={"row": index + 1},
        ) from e


def normalize_item_analysis(
    records: Sequence[Record],
    schema: ItemAnalysisSchema = ItemAnalysisSchema.NEW,
    column_mapping: Optional[ColumnMapping] = None,
) -> List[ItemAnalysisRow]:
    """
    Convert raw table records into ItemAnalysisRow objects.

    Args:
        records: Table rows keyed by column name
        schema: OLD or NEW; UNKNOWN requires ``column_mapping``
        column_mapping: Explicit column names, overriding the schema

    Returns:
        Rows with a non-blank code and parseable orders; other records are
        dropped.

    Raises:
        SchemaDetectionError: UNKNOWN or WIDE schema without a column mapping,
            or a row with an invalid permutation.
    """
    if column_mapping is None:
        if schema == ItemAnalysisSchema.NEW:
            names = (("version",), ("version q#",), ("master q#",))
        elif schema == ItemAnalysisSchema.OLD:
            names = (("code",), ("order",), ("order in master", "order_in_master"))
        else:
            raise SchemaDetectionError(
                "Unrecognized item analysis format; a column mapping is required",
                context={"schema": schema.value},
            )
    else:
        names = (
            (column_mapping.code,),
            (column_mapping.order,),
            (column_mapping.order_in_master,),
        )

    rows: List[ItemAnalysisRow] = []
    for index, record in enumerate(records):
        code = _parse_code(_lookup(record, *names[0]))
        order = _parse_int(_lookup(record, *names[1]))
        order_in_master = _parse_int(_lookup(record, *names[2]))
        if code is None or order is None or order_in_master is None:
            continue
        rows.append(_build_row(index, code, order, order_in_master, record))

    logger.debug(f"Normalized {len(rows)} of {len(records)} item analysis records")
    return rows


def parse_wide_format(
    records: Sequence[Record],
    columns: Sequence[str],
) -> List[ItemAnalysisRow]:
    """
    Convert a WIDE table into one mapping row per (version, master question).

    Each master question spans one record per master option. The version
    columns of those records give the question's local position and, for
    each master option, the local option presenting it. The permutation
    starts as the identity and each local option is pointed at its master
    option; the version's correct letter is the local option presenting the
    master option flagged in Master_Correct (YES/Y/TRUE/1).

    Raises:
        SchemaDetectionError: Required columns are missing, or the version
            numbers are not sequential.
    """
    question_col = next((c for c in columns if _is_question_column(c)), None)
    option_col = next((c for c in columns if _is_option_column(c)), None)
    correct_col = next((c for c in columns if _is_master_correct_column(c)), None)
    if not question_col or not option_col or not correct_col:
        raise SchemaDetectionError(
            "WIDE format missing required columns: Q, Option, Master_Correct"
        )

    version_columns: Dict[int, Dict[str, str]] = {}
    for col in columns:
        match = _WIDE_VERSION_COLUMN.search(col)
        if not match:
            continue
        kind = "q" if match.group(2).lower() == "q" else "opt"
        version_columns.setdefault(int(match.group(1)), {})[kind] = col

    versions = sorted(version_columns)
    if not versions:
        raise SchemaDetectionError("No version columns found in WIDE format")
    if versions != list(range(versions[0], versions[0] + len(versions))):
        raise SchemaDetectionError(
            f"Version numbers must be sequential. Found: "
            f"{', '.join(str(v) for v in versions)}. Please ensure versions are "
            f"numbered sequentially (e.g., 1,2,3,4 or 5,6,7,8)."
        )

    questions: Dict[int, List[Record]] = {}
    for record in records:
        master_q = _parse_int(record.get(question_col))
        if master_q is not None:
            questions.setdefault(master_q, []).append(record)

    rows: List[ItemAnalysisRow] = []
    for master_q in sorted(questions):
        option_records = questions[master_q]
        master_options: Dict[str, Record] = {}
        correct_option: Optional[str] = None
        for record in option_records:
            option = str(record.get(option_col) or "").strip().upper()
            if option not in ANS_CHOICES:
                continue
            master_options[option] = record
            if str(record.get(correct_col) or "").strip().upper() in _TRUE_FLAGS:
                correct_option = option

        for version in versions:
            local_q_col = version_columns[version].get("q")
            local_opt_col = version_columns[version].get("opt")
            if not local_q_col or not local_opt_col:
                logger.warning(f"Missing WIDE columns for version {version}")
                continue

            local_q = _parse_int(option_records[0].get(local_q_col))
            if local_q is None:
                continue

            permutation_map = {letter: letter for letter in ANS_CHOICES}
            for master_option, record in master_options.items():
                local_option = str(record.get(local_opt_col) or "").strip().upper()
                if local_option in ANS_CHOICES:
                    permutation_map[local_option] = master_option

            version_correct = None
            if correct_option:
                version_correct = next(
                    (
                        local
                        for local, master in permutation_map.items()
                        if master == correct_option
                    ),
                    None,
                )

            rows.append(
                ItemAnalysisRow(
                    code=version,
                    order=local_q,
                    order_in_master=master_q,
                    permutation="".join(permutation_map[letter] for letter in ANS_CHOICES),
                    correct=version_correct,
                )
            )

    logger.info(
        f"Parsed WIDE item analysis: {len(rows)} rows, "
        f"{len(questions)} master questions, versions {versions}"
    )
    return rows


def load_item_analysis(
    records: Sequence[Record],
    column_mapping: Optional[ColumnMapping] = None,
) -> List[ItemAnalysisRow]:
    """Detect the table layout and normalize it into mapping rows."""
    if column_mapping is not None:
        return normalize_item_analysis(
            records, ItemAnalysisSchema.UNKNOWN, column_mapping=column_mapping
        )

    if not records:
        return []

    columns: List[str] = list(records[0].keys())
    schema = detect_item_analysis_schema(columns)
    if schema == ItemAnalysisSchema.WIDE:
        return parse_wide_format(records, columns)
    return normalize_item_analysis(records, schema)
