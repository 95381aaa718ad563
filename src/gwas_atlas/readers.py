"""Range readers: raw line access to one chromosome of a tabix-indexed file.

A RangeReader hides how rows are pulled out of the block-compressed file.
``TabixProcessReader`` shells out to the ``tabix`` executable and decodes its
standard output as it arrives; ``PysamRangeReader`` uses htslib through
pysam without spawning processes.
"""

import asyncio
import contextlib
import logging
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Iterator
from pathlib import Path

from .errors import RetrievalError

logger = logging.getLogger(__name__)

NO_REGIONS_MARKER = "No regions in query"
DEFAULT_LINE_LIMIT = 1024 * 1024


class RangeReader(ABC):
    """Abstract source of raw tab-delimited lines for one chromosome."""

    @abstractmethod
    def iter_lines(self, chromosome: str, path: Path) -> AsyncIterator[str]:
        """Yield the rows of ``path`` on ``chromosome`` in file order.

        Args:
            chromosome: Chromosome label as stored in the index (e.g. "1").
            path: Path to the bgzip-compressed, tabix-indexed file.

        Raises:
            RetrievalError: If the rows cannot be retrieved.
        """
        ...


class TabixProcessReader(RangeReader):
    """Read a chromosome by running ``tabix <file> <chromosome>``."""

    def __init__(self, binary: str = "tabix", line_limit: int = DEFAULT_LINE_LIMIT):
        self.binary = binary
        self.line_limit = line_limit

    async def iter_lines(self, chromosome: str, path: Path) -> AsyncIterator[str]:
        try:
            process = await asyncio.create_subprocess_exec(
                self.binary,
                str(path),
                str(chromosome),
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                limit=self.line_limit,
            )
        except OSError as e:
            raise RetrievalError(
                f"Failed to spawn {self.binary}: {e}", chromosome=chromosome
            ) from e

        stderr_task = asyncio.create_task(process.stderr.read())
        try:
            async for raw in process.stdout:
                line = raw.decode("utf-8", errors="replace").rstrip("\r\n")
                if line:
                    yield line

            returncode = await process.wait()
            stderr = (await stderr_task).decode("utf-8", errors="replace").strip()
            self._check_exit(chromosome, returncode, stderr)
        finally:
            if process.returncode is None:
                with contextlib.suppress(ProcessLookupError):
                    process.kill()
                await process.wait()
                logger.debug("Killed %s for chr %s", self.binary, chromosome)
            if not stderr_task.done():
                stderr_task.cancel()

    def _check_exit(self, chromosome: str, returncode: int, stderr: str) -> None:
        if returncode < 0:
            raise RetrievalError(
                f"{self.binary} for chr {chromosome} terminated with signal {-returncode}. "
                f"stderr: {stderr or 'none'}",
                chromosome=chromosome,
                signal=-returncode,
                stderr=stderr,
            )
        if returncode != 0:
            if NO_REGIONS_MARKER in stderr:
                logger.debug("No regions for chr %s", chromosome)
                return
            raise RetrievalError(
                f"{self.binary} for chr {chromosome} exited with code {returncode}. "
                f"stderr: {stderr or 'none'}",
                chromosome=chromosome,
                returncode=returncode,
                stderr=stderr,
            )
        if stderr:
            logger.warning("%s stderr for chr %s: %s", self.binary, chromosome, stderr)


def _take(rows: Iterator[str], count: int) -> list[str]:
    batch = []
    for row in rows:
        batch.append(row)
        if len(batch) >= count:
            break
    return batch


class PysamRangeReader(RangeReader):
    """Read a chromosome through ``pysam.TabixFile``.

    Requires the optional ``native`` extra. Blocking htslib calls run in a
    worker thread, ``batch_size`` rows at a time.
    """

    def __init__(self, batch_size: int = 5000):
        import pysam

        self._pysam = pysam
        self.batch_size = batch_size

    async def iter_lines(self, chromosome: str, path: Path) -> AsyncIterator[str]:
        try:
            tabix = await asyncio.to_thread(self._pysam.TabixFile, str(path))
        except (OSError, ValueError) as e:
            raise RetrievalError(
                f"Failed to open {path.name}: {e}", chromosome=chromosome
            ) from e

        try:
            if chromosome not in tabix.contigs:
                return
            rows = tabix.fetch(chromosome)
            while True:
                try:
                    batch = await asyncio.to_thread(_take, rows, self.batch_size)
                except (OSError, ValueError) as e:
                    raise RetrievalError(
                        f"Failed reading chr {chromosome} from {path.name}: {e}",
                        chromosome=chromosome,
                    ) from e
                if not batch:
                    break
                for line in batch:
                    yield line
        finally:
            tabix.close()


READERS = {
    "tabix": TabixProcessReader,
    "pysam": PysamRangeReader,
}


def create_reader(kind: str = "tabix", tabix_binary: str = "tabix") -> RangeReader:
    """Build the configured RangeReader."""
    if kind == "tabix":
        return TabixProcessReader(binary=tabix_binary)
    if kind == "pysam":
        return PysamRangeReader()
    raise ValueError(f"Unknown reader '{kind}'. Valid readers: {', '.join(READERS)}")
