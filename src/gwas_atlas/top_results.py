"""Whole-file reader for the ``*_pval_up_to_1e-05.gz`` result tables.

The first line is a whitespace-separated header; every following line is a
row. Typed columns are converted, ``NA`` becomes None, everything else is
kept as text.
"""

import gzip
import logging
import math
from collections.abc import Iterator
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

INT_COLUMNS = frozenset({"POS", "N_STUDY", "N_CASE"})
FLOAT_COLUMNS = frozenset({"BETA", "SE", "P", "LOG10P", "AAF", "AAF_CASE"})
MISSING = "NA"


def _convert(header: str, value: str) -> Any:
    if value == MISSING:
        return None
    if header in INT_COLUMNS:
        return int(value)
    if header in FLOAT_COLUMNS:
        parsed = float(value)
        return parsed if math.isfinite(parsed) else None
    return value


def parse_row(headers: list[str], fields: list[str]) -> dict[str, Any]:
    """Map one row onto the header.

    Raises:
        ValueError: If the row is shorter than the header or a typed column
            does not parse.
    """
    if len(fields) < len(headers):
        raise ValueError(f"expected {len(headers)} fields, got {len(fields)}")
    return {header: _convert(header, fields[i]) for i, header in enumerate(headers)}


def iter_top_results(path: Path | str) -> Iterator[dict[str, Any]]:
    """Yield one dict per data row of a gzip'd result table."""
    path = Path(path)
    skipped = 0

    with gzip.open(path, "rt") as f:
        headers: list[str] | None = None
        for line_num, line in enumerate(f, start=1):
            line = line.strip()
            if headers is None:
                headers = line.split()
                continue
            if not line:
                continue
            try:
                yield parse_row(headers, line.split())
            except ValueError as e:
                skipped += 1
                logger.warning("Skipping line %d of %s: %s", line_num, path.name, e)

    if skipped:
        logger.info("Skipped %d malformed rows in %s", skipped, path.name)


def read_top_results(path: Path | str) -> list[dict[str, Any]]:
    """Read every row of a gzip'd result table into memory."""
    rows = list(iter_top_results(path))
    logger.debug("Read %d rows from %s", len(rows), Path(path).name)
    return rows
