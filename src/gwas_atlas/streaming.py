"""Incremental JSON serialization of range query results.

The response body has the shape::

    {"pValueRange": {"minPValue": ..., "maxPValue": ...},
     "data": {"<chr>": [<record>, ...], ...}}

The window is written first; each chromosome is serialized and released as
soon as it arrives, in completion order, so the full payload never exists
twice in memory.
"""

import json
import logging
from collections.abc import AsyncIterator, Sequence

from .models import SignificanceWindow, SourceFile, VariantRecord

logger = logging.getLogger(__name__)

ChromosomeChunk = tuple[str, Sequence[VariantRecord]]

_SEPARATORS = (",", ":")


def serialize_window(window: SignificanceWindow) -> str:
    return json.dumps(window.to_dict(), separators=_SEPARATORS)


def serialize_chromosome(label: str, records: Sequence[VariantRecord]) -> str:
    """Serialize one ``"<chr>": [...]`` member of the data mapping."""
    body = json.dumps([record.to_dict() for record in records], separators=_SEPARATORS)
    return f"{json.dumps(label)}:{body}"


class StreamingResponseAssembler:
    """Turn a per-chromosome result stream into JSON text chunks."""

    def __init__(
        self,
        window: SignificanceWindow,
        chromosomes: AsyncIterator[ChromosomeChunk],
        first: ChromosomeChunk | None = None,
        source: SourceFile | None = None,
    ):
        self.window = window
        self.source = source
        self._chromosomes = chromosomes
        self._first = first
        self._started = False
        self.chromosomes_emitted: list[str] = []
        self.records_emitted = 0

    def __aiter__(self) -> AsyncIterator[str]:
        return self.chunks()

    async def chunks(self) -> AsyncIterator[str]:
        if self._started:
            raise RuntimeError("Response stream can only be consumed once")
        self._started = True

        yield f'{{"pValueRange":{serialize_window(self.window)},"data":{{'
        try:
            if self._first is not None:
                first, self._first = self._first, None
                yield self._emit(*first)
            async for label, records in self._chromosomes:
                if not records:
                    continue
                prefix = "," if self.chromosomes_emitted else ""
                yield prefix + self._emit(label, records)
        finally:
            await self.aclose()
        yield "}}"

        name = self.source.filename if self.source else "query"
        logger.info(
            "Streamed %d records across %d chromosomes for %s",
            self.records_emitted,
            len(self.chromosomes_emitted),
            name,
        )

    def _emit(self, label: str, records: Sequence[VariantRecord]) -> str:
        chunk = serialize_chromosome(label, records)
        self.chromosomes_emitted.append(label)
        self.records_emitted += len(records)
        return chunk

    async def aclose(self) -> None:
        """Stop the underlying fan-out, terminating in-flight retrievals."""
        aclose = getattr(self._chromosomes, "aclose", None)
        if aclose is not None:
            await aclose()

    async def read_all(self) -> str:
        """Consume the whole stream into a single string."""
        return "".join([chunk async for chunk in self.chunks()])
