"""Default significance window discovery.

When a caller gives no p-value bounds, a few representative chromosomes are
scanned unfiltered to estimate the p-value distribution of the file, and an
initial viewing window is derived from the most significant value seen.
"""

import asyncio
import contextlib
import logging
import math
from dataclasses import dataclass
from pathlib import Path

from .errors import RetrievalError
from .fetcher import ChromosomeFetcher
from .models import SignificanceWindow

logger = logging.getLogger(__name__)

DEFAULT_SAMPLE_CHROMOSOMES = ("1", "10", "22")

# Windows never span more than this many orders of magnitude.
MAX_LOG10P_SPAN = 200
CLAMP_P_VALUE = 10.0**-MAX_LOG10P_SPAN

# Reported alongside NoData when the sample holds no usable p-value.
DEFAULT_WINDOW = SignificanceWindow(min_p_value=1e-6, max_p_value=1e-5)


@dataclass
class ObservedRange:
    """Running minimum and maximum of valid p-values."""

    min_p: float = 1.0
    max_p: float = 0.0
    count: int = 0

    def update(self, p: float) -> None:
        if not 0 < p <= 1:
            return
        self.min_p = min(self.min_p, p)
        self.max_p = max(self.max_p, p)
        self.count += 1

    def merge(self, other: "ObservedRange") -> None:
        if other.count:
            self.min_p = min(self.min_p, other.min_p)
            self.max_p = max(self.max_p, other.max_p)
            self.count += other.count


def window_from_observed(observed: ObservedRange) -> SignificanceWindow | None:
    """Derive the default window from the sampled p-value range.

    Returns None when nothing usable was observed.
    """
    if observed.count == 0:
        return None

    max_log10p = -math.log10(observed.min_p)
    if max_log10p > MAX_LOG10P_SPAN:
        return SignificanceWindow.from_bounds(CLAMP_P_VALUE, observed.min_p)

    return SignificanceWindow(
        min_p_value=observed.min_p,
        max_p_value=min(observed.min_p * 10, observed.max_p),
    )


class SignificanceWindowResolver:
    """Resolve a default window by sampling a subset of chromosomes."""

    def __init__(
        self,
        fetcher: ChromosomeFetcher,
        sample_chromosomes: tuple[str, ...] = DEFAULT_SAMPLE_CHROMOSOMES,
        fetch_timeout: float | None = None,
    ):
        self.fetcher = fetcher
        self.sample_chromosomes = tuple(str(c) for c in sample_chromosomes)
        self.fetch_timeout = fetch_timeout

    async def observe(self, path: Path) -> ObservedRange:
        """Scan the sample chromosomes concurrently and merge what they saw."""
        results = await asyncio.gather(
            *(self._observe_chromosome(chrom, path) for chrom in self.sample_chromosomes),
            return_exceptions=True,
        )

        observed = ObservedRange()
        for chrom, result in zip(self.sample_chromosomes, results, strict=True):
            if isinstance(result, TimeoutError):
                logger.warning(
                    "Sampling chromosome %s timed out after %ss", chrom, self.fetch_timeout
                )
                continue
            if isinstance(result, RetrievalError | OSError):
                logger.error("Error sampling chromosome %s: %s", chrom, result)
                continue
            if isinstance(result, BaseException):
                raise result
            observed.merge(result)
        return observed

    async def resolve(self, path: Path) -> SignificanceWindow | None:
        observed = await self.observe(path)
        window = window_from_observed(observed)
        if window is None:
            logger.warning("No valid p-values sampled from %s", path.name)
        else:
            logger.info(
                "Resolved window for %s: %.3g to %.3g (sampled %d p-values, min %.3g, max %.3g)",
                path.name,
                window.min_p_value,
                window.max_p_value,
                observed.count,
                observed.min_p,
                observed.max_p,
            )
        return window

    async def _observe_chromosome(self, chromosome: str, path: Path) -> ObservedRange:
        observed = ObservedRange()
        async with asyncio.timeout(self.fetch_timeout):
            async with contextlib.aclosing(self.fetcher.fetch(chromosome, path)) as records:
                async for record in records:
                    observed.update(record.p)
        return observed
