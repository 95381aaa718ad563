"""Per-SNP associations across phenotypes (PheWAS).

Each study has its own SQLite database. GWAMA results live in
``phewas_snp_data`` and MR-MEGA results in ``phewas_snp_data_mrmega``; both
tables carry one row per (SNP, phenotype).
"""

import logging
from dataclasses import asdict, dataclass, field
from pathlib import Path

import aiosqlite

from .models import StudyType
from .utils.validators import validate_snp_id

logger = logging.getLogger(__name__)

PHEWAS_TABLES = {
    StudyType.GWAMA: "phewas_snp_data",
    StudyType.MRMEGA: "phewas_snp_data_mrmega",
}


@dataclass(frozen=True)
class PhewasAssociation:
    """One phenotype's association with a SNP."""

    SNP_ID: str
    phenotype: str
    chromosome: str | None
    position: int | None
    ref_allele: str | None
    alt_allele: str | None
    pvalue: float | None
    beta: float | None
    se: float | None
    aaf: float | None
    n: int | None
    n_study: int | None
    study: str


@dataclass
class PhewasResult:
    snp: str
    study: str
    chromosome: str | None = None
    position: int | None = None
    plot_data: list[PhewasAssociation] = field(default_factory=list)
    message: str | None = None

    @property
    def total_phenotypes(self) -> int:
        return len(self.plot_data)

    def to_dict(self) -> dict:
        result = {
            "snp": self.snp,
            "chromosome": self.chromosome,
            "position": self.position,
            "study": self.study,
            "total_phenotypes": self.total_phenotypes,
            "plot_data": [asdict(row) for row in self.plot_data],
        }
        if self.message is not None:
            result["message"] = self.message
        return result


class PhewasLookup:
    """Look up a SNP in the PheWAS database of a study."""

    def __init__(self, gwama_db: Path | str | None, mrmega_db: Path | str | None):
        self.databases = {
            StudyType.GWAMA: Path(gwama_db) if gwama_db else None,
            StudyType.MRMEGA: Path(mrmega_db) if mrmega_db else None,
        }

    def database_for(self, study: StudyType) -> Path:
        db_path = self.databases[study]
        if db_path is None:
            raise FileNotFoundError(f"No PheWAS database configured for {study.value}")
        return db_path

    async def lookup(self, snp_id: str, study: str | StudyType) -> PhewasResult:
        """Return every phenotype associated with ``snp_id``.

        A SNP with no rows is a valid, empty result carrying a message.

        Raises:
            InvalidArgumentError: If the SNP id or study type is invalid
            FileNotFoundError: If the study has no database configured
        """
        snp_id = validate_snp_id(snp_id)
        study_type = study if isinstance(study, StudyType) else StudyType.parse(study)
        db_path = self.database_for(study_type)
        table = PHEWAS_TABLES[study_type]

        async with aiosqlite.connect(f"file:{db_path}?mode=ro", uri=True) as db:
            db.row_factory = aiosqlite.Row
            async with db.execute(f"SELECT * FROM {table} WHERE SNP_ID = ?", (snp_id,)) as cursor:
                rows = await cursor.fetchall()

        logger.info(
            "Found %d PheWAS rows for SNP %s in %s", len(rows), snp_id, study_type.value
        )

        if not rows:
            return PhewasResult(
                snp=snp_id,
                study=study_type.value,
                message=f"No data found for SNP: {snp_id} in {study_type.value} database",
            )

        plot_data = [_association(row, study_type) for row in rows]
        return PhewasResult(
            snp=snp_id,
            study=study_type.value,
            chromosome=plot_data[0].chromosome,
            position=plot_data[0].position,
            plot_data=plot_data,
        )


def _association(row: aiosqlite.Row, study: StudyType) -> PhewasAssociation:
    keys = set(row.keys())

    def get(name):
        return row[name] if name in keys else None

    position = get("position")
    chromosome = get("chromosome")
    return PhewasAssociation(
        SNP_ID=row["SNP_ID"],
        phenotype=get("phenotype"),
        chromosome=None if chromosome is None else str(chromosome),
        position=None if position is None else int(position),
        ref_allele=get("ref_allele"),
        alt_allele=get("alt_allele"),
        pvalue=get("pvalue"),
        beta=get("beta"),
        se=get("se"),
        aaf=get("aaf"),
        n=get("n"),
        n_study=get("n_study"),
        study=study.value,
    )
