"""Parallel range queries over the 22 autosomes of a summary statistics file."""

import asyncio
import contextlib
import logging
from collections.abc import AsyncIterator
from pathlib import Path

from .errors import InvalidArgumentError, NoDataError, RetrievalError, SourceNotFoundError
from .fetcher import ChromosomeFetcher
from .models import (
    RangeQueryResult,
    SignificanceWindow,
    SourceAvailability,
    SourceFile,
    StudyType,
)
from .streaming import ChromosomeChunk, StreamingResponseAssembler
from .utils.chromosomes import AUTOSOMES
from .utils.validators import validate_identifier, validate_p_value
from .window import DEFAULT_SAMPLE_CHROMOSOMES, DEFAULT_WINDOW, SignificanceWindowResolver

logger = logging.getLogger(__name__)

SOURCE_FILENAME_TEMPLATE = "{phenotype_id}.{cohort_id}.{study}_pval_up_to_1e-05.gz"
INDEX_SUFFIX = ".tbi"

GWAMA_COHORTS = ("EUR", "AFR", "EAS", "AMR", "SAS")
MRMEGA_COHORT = "ALL"

DEFAULT_FETCH_TIMEOUT = 120.0


def source_filename(phenotype_id: str, cohort_id: str, study: StudyType) -> str:
    """Public name of the file holding one phenotype/cohort/study."""
    return SOURCE_FILENAME_TEMPLATE.format(
        phenotype_id=phenotype_id, cohort_id=cohort_id, study=study.value
    )


def explicit_window(
    min_p_value: float | str | None, max_p_value: float | str | None
) -> SignificanceWindow | None:
    """Build the caller's window, or None when neither bound was given.

    Raises:
        InvalidArgumentError: If only one bound is given or the bounds are invalid.
    """
    min_p = validate_p_value(min_p_value, "minPValue")
    max_p = validate_p_value(max_p_value, "maxPValue")
    if min_p is None and max_p is None:
        return None
    if min_p is None or max_p is None:
        raise InvalidArgumentError("minPValue and maxPValue must be given together")
    return SignificanceWindow(min_p_value=min_p, max_p_value=max_p)


class RangeQueryOrchestrator:
    """Fan a significance-filtered query out over every chromosome.

    Each chromosome is fetched in its own task. A failed or timed-out
    chromosome is logged and contributes nothing; the other fetches carry on.
    """

    def __init__(
        self,
        fetcher: ChromosomeFetcher,
        gwas_dir: Path | str,
        index_suffix: str = INDEX_SUFFIX,
        chromosomes: tuple[str, ...] = AUTOSOMES,
        fetch_timeout: float | None = DEFAULT_FETCH_TIMEOUT,
        max_concurrency: int = len(AUTOSOMES),
        sample_chromosomes: tuple[str, ...] = DEFAULT_SAMPLE_CHROMOSOMES,
    ):
        self.fetcher = fetcher
        self.gwas_dir = Path(gwas_dir)
        self.index_suffix = index_suffix
        self.chromosomes = tuple(str(c) for c in chromosomes)
        self.fetch_timeout = fetch_timeout
        self.max_concurrency = max_concurrency
        self.resolver = SignificanceWindowResolver(
            fetcher, sample_chromosomes, fetch_timeout=fetch_timeout
        )

    def source_file(self, phenotype_id: str, cohort_id: str, study: str | StudyType) -> SourceFile:
        """Validate identifiers and build the file location. No I/O."""
        phenotype_id = validate_identifier(phenotype_id, "phenoId")
        cohort_id = validate_identifier(cohort_id, "cohortId")
        study_type = study if isinstance(study, StudyType) else StudyType.parse(study)

        path = self.gwas_dir / source_filename(phenotype_id, cohort_id, study_type)
        return SourceFile(
            phenotype_id=phenotype_id,
            cohort_id=cohort_id,
            study=study_type,
            path=path,
            index_path=path.with_name(path.name + self.index_suffix),
        )

    def locate(self, phenotype_id: str, cohort_id: str, study: str | StudyType) -> SourceFile:
        """Return the source file, checking that it and its index exist.

        Raises:
            InvalidArgumentError: If an identifier or the study type is invalid.
            SourceNotFoundError: If the data file or its index is missing.
        """
        return self._check_exists(self.source_file(phenotype_id, cohort_id, study))

    def _check_exists(self, source: SourceFile) -> SourceFile:
        if not source.path.is_file():
            logger.info("File not found: %s", source.filename)
            raise SourceNotFoundError(source.filename, missing="file")
        if not source.index_path.is_file():
            logger.info("Index not found: %s", source.index_path.name)
            raise SourceNotFoundError(source.filename, missing="index")
        return source

    async def _prepare(
        self,
        phenotype_id: str,
        cohort_id: str,
        study: str | StudyType,
        min_p_value: float | str | None,
        max_p_value: float | str | None,
    ) -> tuple[SourceFile, SignificanceWindow]:
        # Argument errors are reported before any filesystem access.
        source = self.source_file(phenotype_id, cohort_id, study)
        explicit_window(min_p_value, max_p_value)
        source = self._check_exists(source)
        window = await self.resolve_window(source, min_p_value, max_p_value)
        return source, window

    async def resolve_window(
        self,
        source: SourceFile,
        min_p_value: float | str | None = None,
        max_p_value: float | str | None = None,
    ) -> SignificanceWindow:
        """Use the caller's bounds, or sample the file for a default window.

        Raises:
            InvalidArgumentError: If the bounds are invalid.
            NoDataError: If no bounds were given and the sample has no valid p-value.
        """
        window = explicit_window(min_p_value, max_p_value)
        if window is not None:
            return window

        window = await self.resolver.resolve(source.path)
        if window is None:
            raise NoDataError(
                DEFAULT_WINDOW,
                source.filename,
                message="No valid p-values found to derive a default p-value range",
            )
        return window

    async def iter_chromosomes(
        self, source: SourceFile, window: SignificanceWindow
    ) -> AsyncIterator[ChromosomeChunk]:
        """Yield ``(chromosome, records)`` for non-empty chromosomes as they finish.

        Closing the generator early cancels the fetches still in flight.
        """
        semaphore = asyncio.Semaphore(self.max_concurrency)
        tasks = [
            asyncio.create_task(
                self._fetch_isolated(chrom, source, window, semaphore), name=f"fetch-chr{chrom}"
            )
            for chrom in self.chromosomes
        ]

        try:
            for next_done in asyncio.as_completed(tasks):
                label, records = await next_done
                if records:
                    yield label, records
        finally:
            pending = [task for task in tasks if not task.done()]
            for task in pending:
                task.cancel()
            if pending:
                await asyncio.gather(*pending, return_exceptions=True)
                logger.info(
                    "Cancelled %d in-flight fetches for %s", len(pending), source.filename
                )

    async def _fetch_isolated(
        self,
        chromosome: str,
        source: SourceFile,
        window: SignificanceWindow,
        semaphore: asyncio.Semaphore,
    ) -> ChromosomeChunk:
        async with semaphore:
            try:
                async with asyncio.timeout(self.fetch_timeout):
                    records = await self.fetcher.collect(chromosome, source.path, window)
            except TimeoutError:
                logger.error(
                    "Timed out processing chromosome %s of %s after %ss",
                    chromosome,
                    source.filename,
                    self.fetch_timeout,
                )
                return chromosome, []
            except (RetrievalError, OSError) as e:
                logger.error("Error processing chromosome %s: %s", chromosome, e)
                return chromosome, []

        if records:
            logger.debug("Chromosome %s: %d rows in range", chromosome, len(records))
        return chromosome, records

    async def query(
        self,
        phenotype_id: str,
        cohort_id: str,
        study: str | StudyType,
        min_p_value: float | str | None = None,
        max_p_value: float | str | None = None,
    ) -> RangeQueryResult:
        """Run a range query and return the whole result in memory.

        Raises:
            InvalidArgumentError: If any parameter is invalid.
            SourceNotFoundError: If the file or its index is missing.
            NoDataError: If no record falls inside the window.
        """
        source, window = await self._prepare(
            phenotype_id, cohort_id, study, min_p_value, max_p_value
        )

        result = RangeQueryResult(window=window)
        async with contextlib.aclosing(self.iter_chromosomes(source, window)) as chunks:
            async for label, records in chunks:
                result.data[label] = list(records)

        total = result.total_records
        logger.info(
            "Returning %d data points for p-value range: %s to %s",
            total,
            window.min_p_value,
            window.max_p_value,
        )
        if total == 0:
            raise NoDataError(window, source.filename)
        return result

    async def open_stream(
        self,
        phenotype_id: str,
        cohort_id: str,
        study: str | StudyType,
        min_p_value: float | str | None = None,
        max_p_value: float | str | None = None,
    ) -> StreamingResponseAssembler:
        """Start a range query and return a stream primed with its first chromosome.

        Waiting for the first non-empty chromosome lets an empty result be
        reported as NoDataError before any output has been written.

        Raises:
            InvalidArgumentError, SourceNotFoundError, NoDataError: As for ``query``.
        """
        source, window = await self._prepare(
            phenotype_id, cohort_id, study, min_p_value, max_p_value
        )

        chunks = self.iter_chromosomes(source, window)
        try:
            first = await anext(chunks)
        except StopAsyncIteration:
            raise NoDataError(window, source.filename) from None
        except BaseException:
            await chunks.aclose()
            raise

        return StreamingResponseAssembler(window, chunks, first=first, source=source)

    def availability(self, phenotype_id: str) -> SourceAvailability:
        """Report which study files exist for a phenotype."""
        phenotype_id = validate_identifier(phenotype_id, "phenoId")

        mrmega = self.source_file(phenotype_id, MRMEGA_COHORT, StudyType.MRMEGA)
        gwama_cohorts = [
            cohort
            for cohort in GWAMA_COHORTS
            if self.source_file(phenotype_id, cohort, StudyType.GWAMA).path.is_file()
        ]

        return SourceAvailability(
            gwama_available=bool(gwama_cohorts),
            mrmega_available=mrmega.path.is_file(),
            gwama_cohorts=gwama_cohorts,
        )
