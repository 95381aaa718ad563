"""Lazy retrieval of decoded variant records for one chromosome."""

import contextlib
import logging
from collections.abc import AsyncIterator
from pathlib import Path

from .columns import VARIANT_SCHEMA, ColumnSchema
from .decoder import decode_record
from .errors import RecordParseError
from .models import SignificanceWindow, VariantRecord
from .readers import RangeReader

logger = logging.getLogger(__name__)


class ChromosomeFetcher:
    """Decode the rows a RangeReader returns for a chromosome, one at a time."""

    def __init__(self, reader: RangeReader, schema: ColumnSchema = VARIANT_SCHEMA):
        self.reader = reader
        self.schema = schema

    async def fetch(self, chromosome: str, path: Path) -> AsyncIterator[VariantRecord]:
        """Yield records in file order, silently dropping undecodable rows.

        The underlying reader is closed when iteration ends, fails, or the
        consumer stops early.

        Raises:
            RetrievalError: If the reader fails.
        """
        dropped = 0
        async with contextlib.aclosing(self.reader.iter_lines(chromosome, path)) as lines:
            async for line in lines:
                try:
                    record = decode_record(line, self.schema)
                except RecordParseError:
                    dropped += 1
                    continue
                yield record

        if dropped:
            logger.debug("Dropped %d unparseable rows on chr %s", dropped, chromosome)

    async def collect(
        self,
        chromosome: str,
        path: Path,
        window: SignificanceWindow | None = None,
    ) -> list[VariantRecord]:
        """Fetch a chromosome and keep records inside ``window`` (all if None)."""
        records = []
        async with contextlib.aclosing(self.fetch(chromosome, path)) as stream:
            async for record in stream:
                if window is None or window.contains(record.p):
                    records.append(record)
        return records
