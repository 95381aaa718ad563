"""Pytest configuration and fixtures for gwas-atlas tests."""

import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent))

from fixtures.static_reader import StaticRangeReader  # noqa: E402
from fixtures.stores import (  # noqa: E402
    ANNOTATION_ROWS_WITHOUT_GENE,
    PHEWAS_ROWS,
    build_annotation_db,
    build_phewas_db,
    sqlite_has_rtree,
)

GWAMA_SOURCE = "Phe001.EUR.gwama_pval_up_to_1e-05.gz"
MRMEGA_SOURCE = "Phe001.ALL.mrmega_pval_up_to_1e-05.gz"


@pytest.fixture
def static_reader_factory():
    """Provide StaticRangeReader class for tests."""
    return StaticRangeReader


@pytest.fixture
def gwas_dir(tmp_path) -> Path:
    """Directory holding Phe001 files for EUR/gwama and ALL/mrmega, with indexes."""
    directory = tmp_path / "gwas"
    directory.mkdir()
    for name in (GWAMA_SOURCE, MRMEGA_SOURCE):
        (directory / name).write_bytes(b"")
        (directory / f"{name}.tbi").write_bytes(b"")
    return directory


@pytest.fixture
def make_fake_tabix(tmp_path):
    """Write an executable shell script standing in for tabix.

    The script receives ``<file> <chromosome>`` as ``$1 $2``.
    """
    scripts = []

    def _make(body: str) -> Path:
        script = tmp_path / f"fake_tabix_{len(scripts)}"
        script.write_text(f"#!/bin/sh\n{body}\n")
        script.chmod(0o755)
        scripts.append(script)
        return script

    return _make


@pytest.fixture
def file_backed_tabix(make_fake_tabix) -> Path:
    """Fake tabix printing ``<file>.chr<chromosome>`` when it exists."""
    return make_fake_tabix('f="$1.chr$2"\nif [ -f "$f" ]; then cat "$f"; fi\nexit 0')


@pytest.fixture
def annotation_db(tmp_path) -> Path:
    """Annotation store built from the default annotation rows."""
    if not sqlite_has_rtree():
        pytest.skip("SQLite built without R-tree support")
    return build_annotation_db(tmp_path / "annotations.db")


@pytest.fixture
def annotation_db_without_gene(tmp_path) -> Path:
    """Annotation store with no gene column, as the preprocessing script builds it."""
    if not sqlite_has_rtree():
        pytest.skip("SQLite built without R-tree support")
    return build_annotation_db(
        tmp_path / "annotations_nogene.db", ANNOTATION_ROWS_WITHOUT_GENE, with_gene=False
    )


@pytest.fixture
def phewas_dbs(tmp_path) -> tuple[Path, Path]:
    """GWAMA and MR-MEGA PheWAS databases."""
    gwama = build_phewas_db(tmp_path / "phewas_gwama.db", "phewas_snp_data")
    mrmega = build_phewas_db(
        tmp_path / "phewas_mrmega.db", "phewas_snp_data_mrmega", rows=PHEWAS_ROWS[2:]
    )
    return gwama, mrmega
