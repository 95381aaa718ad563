"""Nearest annotated variant lookup over an SQLite R-tree.

The annotation store is built ahead of time and opened read-only. It holds:

* ``snp_annotations(chromosome, position, rsid, allele, symbol, feature_type,
  consequence)``, keyed by (chromosome, position), optionally with a ``gene``
  column;
* ``snp_positions``, an R-tree virtual table ``(id, min_pos, max_pos,
  +chromosome)`` whose ``id`` is the rowid of the annotation row.
"""

import logging
from pathlib import Path

import aiosqlite

from .models import SNPAnnotation
from .utils.validators import validate_chromosome, validate_position

logger = logging.getLogger(__name__)

DEFAULT_SEARCH_RADIUS = 100_000

# R-tree coordinates are 32-bit floats, so the box test is only a coarse
# filter; the exact position test runs on the integer column.
NEAREST_SQL = """
    SELECT a.chromosome, a.position, a.rsid, a.allele, {gene} AS gene, a.symbol,
           a.feature_type, a.consequence, ABS(a.position - :position) AS distance
    FROM snp_positions AS p
    JOIN snp_annotations AS a ON a.rowid = p.id
    WHERE p.max_pos >= :lower AND p.min_pos <= :upper
      AND p.chromosome = :chromosome
      AND a.position BETWEEN :lower AND :upper
      AND a.position != :position
    ORDER BY distance ASC
    LIMIT 1
"""


async def annotation_columns(db: aiosqlite.Connection) -> set[str]:
    async with db.execute("PRAGMA table_info(snp_annotations)") as cursor:
        return {row[1] for row in await cursor.fetchall()}


def nearest_sql(columns: set[str]) -> str:
    """Build the nearest-annotation query for the columns the store has."""
    return NEAREST_SQL.format(gene="a.gene" if "gene" in columns else "NULL")


class SpatialAnnotationResolver:
    """Find the annotated variant closest to a coordinate."""

    def __init__(self, db_path: Path | str, radius: int = DEFAULT_SEARCH_RADIUS):
        self.db_path = Path(db_path)
        self.radius = radius

    def _connect(self) -> aiosqlite.Connection:
        return aiosqlite.connect(f"file:{self.db_path}?mode=ro", uri=True)

    async def nearest(self, chromosome: str | int, position: int | str) -> SNPAnnotation | None:
        """Return the nearest annotation within ``radius``, excluding ``position`` itself.

        Args:
            chromosome: Chromosome label, with or without 'chr' prefix
            position: Positive 1-based position

        Returns:
            The closest annotation, or None if nothing lies inside the window

        Raises:
            InvalidArgumentError: If the chromosome or position is invalid
        """
        chrom = validate_chromosome(chromosome)
        pos = validate_position(position)

        params = {
            "chromosome": chrom,
            "position": pos,
            "lower": max(1, pos - self.radius),
            "upper": pos + self.radius,
        }

        async with self._connect() as db:
            db.row_factory = aiosqlite.Row
            sql = nearest_sql(await annotation_columns(db))
            async with db.execute(sql, params) as cursor:
                row = await cursor.fetchone()

        if row is None:
            logger.debug("No annotation within %sbp of %s:%s", self.radius, chrom, pos)
            return None

        return SNPAnnotation(
            chromosome=str(row["chromosome"]),
            position=int(row["position"]),
            rsid=row["rsid"],
            allele=row["allele"],
            gene=row["gene"],
            symbol=row["symbol"],
            feature_type=row["feature_type"],
            consequence=row["consequence"],
            distance=int(row["distance"]),
            is_exact=False,
        )
