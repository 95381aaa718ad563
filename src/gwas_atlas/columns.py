"""Column schema for tabix-indexed GWAS summary statistics files.

Each row of a ``*_pval_up_to_1e-05.gz`` file carries 21 tab-separated
columns. The layout is described by a versioned ``ColumnSchema`` so that a
format change only touches this module.
"""

import math
import sys
from collections.abc import Callable
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any

from .errors import RecordParseError

MISSING_VALUES = frozenset({"NA", ""})

# Smallest positive double; p-values below it underflow to 0.0.
SMALLEST_P_VALUE = sys.float_info.min * sys.float_info.epsilon

ID_PREFIX = "#ID: "


def parse_optional_float(value: str) -> float | None:
    """Parse a nullable float column. Missing or malformed values become None."""
    value = value.strip()
    if value in MISSING_VALUES:
        return None
    try:
        parsed = float(value)
    except ValueError:
        return None
    return parsed if math.isfinite(parsed) else None


def parse_optional_int(value: str) -> int | None:
    """Parse a nullable integer column (accepts ``"1234.0"``)."""
    parsed = parse_optional_float(value)
    return None if parsed is None else int(parsed)


def parse_p_value(value: str) -> float:
    """Parse the p-value column.

    Raises:
        RecordParseError: If the value is missing or not a finite number.
    """
    value = value.strip()
    if value in MISSING_VALUES:
        raise RecordParseError(f"Missing p-value: '{value}'")
    try:
        parsed = float(value)
    except ValueError as e:
        raise RecordParseError(f"Invalid p-value: '{value}'") from e
    if not math.isfinite(parsed):
        raise RecordParseError(f"Invalid p-value: '{value}'")
    if parsed == 0.0 and _is_nonzero(value):
        return SMALLEST_P_VALUE
    return parsed


def _is_nonzero(value: str) -> bool:
    try:
        return Decimal(value) > 0
    except InvalidOperation:
        return False


def parse_text(value: str) -> str:
    return value.strip()


def parse_optional_text(value: str) -> str | None:
    value = value.strip()
    return None if value in MISSING_VALUES else value


def parse_variant_id(value: str) -> str:
    value = value.strip()
    if value.startswith(ID_PREFIX):
        value = value[len(ID_PREFIX):]
    return value


def parse_chromosome(value: str) -> int:
    value = value.strip()
    if value.startswith("chr"):
        value = value[3:]
    try:
        return int(value)
    except ValueError as e:
        raise RecordParseError(f"Invalid chromosome: '{value}'") from e


def parse_position(value: str) -> int:
    try:
        position = int(value.strip())
    except ValueError as e:
        raise RecordParseError(f"Invalid position: '{value}'") from e
    if position <= 0:
        raise RecordParseError(f"Position must be positive, got {position}")
    return position


@dataclass(frozen=True)
class ColumnSpec:
    """Maps one record field to its column index and parser."""

    name: str
    index: int
    parser: Callable[[str], Any]


@dataclass(frozen=True)
class ColumnSchema:
    """Named, versioned description of a tab-delimited row layout."""

    version: str
    columns: tuple[ColumnSpec, ...]

    @property
    def width(self) -> int:
        return max(column.index for column in self.columns) + 1

    def column(self, name: str) -> ColumnSpec:
        for column in self.columns:
            if column.name == name:
                return column
        raise KeyError(name)

    def index_of(self, name: str) -> int:
        return self.column(name).index


VARIANT_SCHEMA_V1 = ColumnSchema(
    version="1",
    columns=(
        ColumnSpec("id", 0, parse_variant_id),
        ColumnSpec("chr", 1, parse_chromosome),
        ColumnSpec("pos", 2, parse_position),
        ColumnSpec("ref", 3, parse_text),
        ColumnSpec("alt", 4, parse_text),
        ColumnSpec("beta", 5, parse_optional_float),
        ColumnSpec("se", 6, parse_optional_float),
        ColumnSpec("p", 7, parse_p_value),
        ColumnSpec("log10p", 8, parse_optional_float),
        ColumnSpec("se_ldsc", 9, parse_optional_float),
        ColumnSpec("p_ldsc", 10, parse_optional_float),
        ColumnSpec("log10p_ldsc", 11, parse_optional_float),
        ColumnSpec("aaf", 12, parse_optional_float),
        ColumnSpec("aaf_case", 13, parse_optional_float),
        ColumnSpec("aac", 14, parse_optional_float),
        ColumnSpec("aac_case", 15, parse_optional_float),
        ColumnSpec("n", 16, parse_optional_int),
        ColumnSpec("n_case", 17, parse_optional_int),
        ColumnSpec("n_study", 18, parse_optional_int),
        ColumnSpec("effect", 19, parse_optional_text),
        ColumnSpec("p_hetero", 20, parse_optional_float),
    ),
)

VARIANT_SCHEMA = VARIANT_SCHEMA_V1
