"""Start-up wiring of the query service collaborators."""

import logging
from dataclasses import dataclass, field
from pathlib import Path

from .annotations import SpatialAnnotationResolver
from .config import AtlasConfig
from .errors import SourceNotFoundError
from .fetcher import ChromosomeFetcher
from .models import StudyType
from .phewas import PhewasLookup
from .query import RangeQueryOrchestrator
from .readers import RangeReader, create_reader
from .top_results import read_top_results

logger = logging.getLogger(__name__)


@dataclass
class AtlasContext:
    """Immutable configuration plus the stateless objects built from it.

    Built once per process and shared by every request.
    """

    config: AtlasConfig
    orchestrator: RangeQueryOrchestrator
    annotations: SpatialAnnotationResolver | None = None
    phewas: PhewasLookup = field(default_factory=lambda: PhewasLookup(None, None))

    @classmethod
    def from_config(cls, config: AtlasConfig, reader: RangeReader | None = None) -> "AtlasContext":
        if reader is None:
            reader = create_reader(config.reader, tabix_binary=config.tabix_binary)

        orchestrator = RangeQueryOrchestrator(
            ChromosomeFetcher(reader),
            config.gwas_files_path,
            index_suffix=config.index_suffix,
            fetch_timeout=config.fetch_timeout,
            max_concurrency=config.max_concurrency,
            sample_chromosomes=config.sample_chromosomes,
        )

        annotations = None
        if config.annotation_db is not None:
            annotations = SpatialAnnotationResolver(
                config.annotation_db, radius=config.search_radius
            )

        logger.debug(
            "Context ready: gwas_files_path=%s, reader=%s, annotation_db=%s",
            config.gwas_files_path,
            type(reader).__name__,
            config.annotation_db,
        )
        return cls(
            config=config,
            orchestrator=orchestrator,
            annotations=annotations,
            phewas=PhewasLookup(config.gwama_db, config.mrmega_db),
        )

    def top_results(self, phenotype_id: str, cohort_id: str, study: str | StudyType) -> list[dict]:
        """Read every row of a phenotype/cohort/study file.

        Raises:
            InvalidArgumentError: If an identifier or the study type is invalid.
            SourceNotFoundError: If the data file is missing.
        """
        source = self.orchestrator.source_file(phenotype_id, cohort_id, study)
        if not Path(source.path).is_file():
            raise SourceNotFoundError(source.filename, missing="file")
        return read_top_results(source.path)
