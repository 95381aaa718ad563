"""Data models for GWAS range queries and SNP annotations."""

import math
from dataclasses import dataclass, field, fields
from enum import Enum
from pathlib import Path

from .errors import InvalidArgumentError


class StudyType(Enum):
    """Meta-analysis method that produced a summary statistics file."""

    GWAMA = "gwama"
    MRMEGA = "mrmega"

    @classmethod
    def parse(cls, value: str | None) -> "StudyType":
        if value is None or not str(value).strip():
            raise InvalidArgumentError("study is required")
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            valid = ", ".join(s.value for s in cls)
            raise InvalidArgumentError(
                f"Invalid study type: '{value}'. Valid values: {valid}"
            ) from None


@dataclass(frozen=True)
class VariantRecord:
    """One row of GWAS summary statistics."""

    id: str
    chr: int
    pos: int
    ref: str
    alt: str
    beta: float | None
    se: float | None
    p: float
    p_string: str
    log10p: float | None = None
    se_ldsc: float | None = None
    p_ldsc: float | None = None
    log10p_ldsc: float | None = None
    aaf: float | None = None
    aaf_case: float | None = None
    aac: float | None = None
    aac_case: float | None = None
    n: int | None = None
    n_case: int | None = None
    n_study: int | None = None
    effect: str | None = None
    p_hetero: float | None = None

    def to_dict(self) -> dict:
        return {name: getattr(self, name) for name in _VARIANT_FIELDS}


_VARIANT_FIELDS = tuple(f.name for f in fields(VariantRecord))


@dataclass(frozen=True)
class SignificanceWindow:
    """Inclusive p-value window applied to every chromosome of a query."""

    min_p_value: float
    max_p_value: float

    def __post_init__(self) -> None:
        for name in ("min_p_value", "max_p_value"):
            value = getattr(self, name)
            if not isinstance(value, int | float) or math.isnan(value):
                raise InvalidArgumentError(f"{name} must be a number, got {value!r}")
            if not 0 < value <= 1:
                raise InvalidArgumentError(f"{name} must be in (0, 1], got {value}")
        if self.min_p_value > self.max_p_value:
            raise InvalidArgumentError(
                f"min_p_value ({self.min_p_value}) must not exceed "
                f"max_p_value ({self.max_p_value})"
            )

    @classmethod
    def from_bounds(cls, a: float, b: float) -> "SignificanceWindow":
        """Build a window from two boundary values in either order."""
        return cls(min_p_value=min(a, b), max_p_value=max(a, b))

    def contains(self, p: float) -> bool:
        return self.min_p_value <= p <= self.max_p_value

    def to_dict(self) -> dict[str, float]:
        return {"minPValue": self.min_p_value, "maxPValue": self.max_p_value}


@dataclass(frozen=True)
class SourceFile:
    """A tabix-indexed summary statistics file for one phenotype/cohort/study."""

    phenotype_id: str
    cohort_id: str
    study: StudyType
    path: Path
    index_path: Path

    @property
    def filename(self) -> str:
        return self.path.name


@dataclass
class RangeQueryResult:
    """Materialized result of a range query."""

    window: SignificanceWindow
    data: dict[str, list[VariantRecord]] = field(default_factory=dict)

    @property
    def total_records(self) -> int:
        return sum(len(records) for records in self.data.values())

    def to_dict(self) -> dict:
        return {
            "pValueRange": self.window.to_dict(),
            "data": {
                chrom: [record.to_dict() for record in records]
                for chrom, records in self.data.items()
            },
        }


@dataclass(frozen=True)
class SNPAnnotation:
    """Annotated variant nearest to a query coordinate."""

    chromosome: str
    position: int
    rsid: str | None
    allele: str | None
    gene: str | None
    symbol: str | None
    feature_type: str | None
    consequence: str | None
    distance: int
    is_exact: bool = False

    def to_dict(self) -> dict:
        return {
            "chromosome": self.chromosome,
            "position": self.position,
            "rsid": self.rsid,
            "allele": self.allele,
            "gene": self.gene,
            "symbol": self.symbol,
            "featureType": self.feature_type,
            "consequence": self.consequence,
            "distance": self.distance,
            "isExact": self.is_exact,
        }


@dataclass
class SourceAvailability:
    """Which study files exist for a phenotype."""

    gwama_available: bool
    mrmega_available: bool
    gwama_cohorts: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "gwamaAvailable": self.gwama_available,
            "mrmegaAvailable": self.mrmega_available,
            "gwamaCohorts": list(self.gwama_cohorts),
        }
