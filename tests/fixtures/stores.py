"""SQLite annotation and PheWAS store builders for testing."""

import sqlite3
from pathlib import Path

ANNOTATION_ROWS = [
    ("1", 10000, "rs100", "A", "ENSG01", "GENE1", "transcript", "intron_variant"),
    ("1", 10500, "rs105", "C", "ENSG01", "GENE1", "transcript", "missense_variant"),
    ("1", 12000, "rs120", "G", "ENSG02", "GENE2", "transcript", "synonymous_variant"),
    ("1", 500000, "rs5000", "T", "ENSG03", "GENE3", "transcript", "intergenic_variant"),
    ("2", 10200, "rs2102", "A", "ENSG04", "GENE4", "transcript", "intron_variant"),
]

ANNOTATION_ROWS_WITHOUT_GENE = [row[:4] + row[5:] for row in ANNOTATION_ROWS]

PHEWAS_ROWS = [
    ("1:12345:A:G", "Phe001", "1", 12345, "A", "G", 5e-9, 0.12, 0.02, 0.31, 20000, 4),
    ("1:12345:A:G", "Phe002", "1", 12345, "A", "G", 0.03, -0.05, 0.02, 0.31, 18000, 3),
    ("2:500:C:T", "Phe001", "2", 500, "C", "T", 0.2, 0.01, 0.03, 0.12, 15000, 2),
]


def sqlite_has_rtree() -> bool:
    conn = sqlite3.connect(":memory:")
    try:
        conn.execute("CREATE VIRTUAL TABLE probe USING rtree(id, min_pos, max_pos, +chromosome)")
        return True
    except sqlite3.OperationalError:
        return False
    finally:
        conn.close()


def build_annotation_db(path: Path, rows=ANNOTATION_ROWS, with_gene: bool = True) -> Path:
    """Create an annotation store with an R-tree over positions.

    Without ``with_gene`` the table has the column set of stores built by the
    annotation preprocessing script, and rows are given without a gene.
    """
    gene_column = "gene TEXT," if with_gene else ""
    conn = sqlite3.connect(path)
    try:
        conn.execute(
            f"""
            CREATE TABLE snp_annotations (
                chromosome TEXT,
                position INTEGER,
                rsid TEXT,
                allele TEXT,
                {gene_column}
                symbol TEXT,
                feature_type TEXT,
                consequence TEXT,
                PRIMARY KEY (chromosome, position)
            )
            """
        )
        conn.execute(
            "CREATE VIRTUAL TABLE snp_positions USING rtree(id, min_pos, max_pos, +chromosome)"
        )
        placeholders = ", ".join("?" * (8 if with_gene else 7))
        for row in rows:
            cursor = conn.execute(f"INSERT INTO snp_annotations VALUES ({placeholders})", row)
            conn.execute(
                "INSERT INTO snp_positions VALUES (?, ?, ?, ?)",
                (cursor.lastrowid, row[1], row[1], row[0]),
            )
        conn.commit()
    finally:
        conn.close()
    return path


def build_phewas_db(path: Path, table: str, rows=PHEWAS_ROWS) -> Path:
    conn = sqlite3.connect(path)
    try:
        conn.execute(
            f"""
            CREATE TABLE {table} (
                SNP_ID TEXT, phenotype TEXT, chromosome TEXT, position INTEGER,
                ref_allele TEXT, alt_allele TEXT, pvalue REAL, beta REAL, se REAL,
                aaf REAL, n INTEGER, n_study INTEGER
            )
            """
        )
        conn.executemany(
            f"INSERT INTO {table} VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)", rows
        )
        conn.commit()
    finally:
        conn.close()
    return path
