"""Decoding of tab-delimited summary statistics rows into VariantRecords."""

from .columns import VARIANT_SCHEMA, ColumnSchema
from .errors import RecordParseError
from .models import VariantRecord


def split_line(line: str) -> list[str]:
    return line.rstrip("\r\n").split("\t")


def decode_record(line: str, schema: ColumnSchema = VARIANT_SCHEMA) -> VariantRecord:
    """Decode one raw row into a VariantRecord.

    The p-value column is parsed first so rows without a usable p-value are
    rejected before anything else is converted.

    Raises:
        RecordParseError: If the p-value is missing or unparseable, the row
            is too short, or the chromosome/position is malformed.
    """
    fields = split_line(line)
    if len(fields) < schema.width:
        raise RecordParseError(
            f"Expected {schema.width} columns (schema v{schema.version}), got {len(fields)}"
        )

    p_column = schema.column("p")
    p_text = fields[p_column.index]
    values: dict[str, object] = {"p": p_column.parser(p_text), "p_string": p_text.strip()}

    for column in schema.columns:
        if column is not p_column:
            values[column.name] = column.parser(fields[column.index])

    return VariantRecord(**values)


def try_decode(line: str, schema: ColumnSchema = VARIANT_SCHEMA) -> VariantRecord | None:
    """Decode a row, returning None instead of raising for unusable rows."""
    try:
        return decode_record(line, schema)
    except RecordParseError:
        return None
