"""Tests for the whole-file top results reader."""

import pytest
from fixtures.gwas_lines import make_chromosome_lines, make_variant_line, write_result_table


class TestReadTopResults:
    """Tests for read_top_results."""

    def test_rows_keyed_by_header(self, tmp_path):
        from gwas_atlas.top_results import read_top_results

        path = write_result_table(tmp_path / "t.gz", make_chromosome_lines(1, ["5e-9", "2e-6"]))

        rows = read_top_results(path)

        assert len(rows) == 2
        assert rows[0]["ID"] == "1:1000:A:G"
        assert rows[0]["POS"] == 1000
        assert rows[0]["P"] == pytest.approx(5e-9)
        assert rows[0]["N_STUDY"] == 4
        assert rows[0]["EFFECT"] == "++-+"

    def test_na_becomes_none(self, tmp_path):
        from gwas_atlas.top_results import read_top_results

        path = write_result_table(tmp_path / "t.gz", [make_variant_line(beta="NA", n_case="NA")])

        row = read_top_results(path)[0]

        assert row["BETA"] is None
        assert row["N_CASE"] is None
        assert row["SE_LDSC"] is None

    def test_untyped_columns_stay_text(self, tmp_path):
        """Columns outside the typed set are returned verbatim."""
        from gwas_atlas.top_results import read_top_results

        path = write_result_table(tmp_path / "t.gz", [make_variant_line(aac="6200")])

        assert read_top_results(path)[0]["AAC"] == "6200"

    def test_malformed_rows_skipped(self, tmp_path):
        from gwas_atlas.top_results import read_top_results

        lines = [
            make_variant_line(pos=100),
            make_variant_line(pos="abc"),
            "1\t2\t3",
            "",
            make_variant_line(pos=300),
        ]
        path = write_result_table(tmp_path / "t.gz", lines)

        rows = read_top_results(path)

        assert [row["POS"] for row in rows] == [100, 300]

    def test_header_only(self, tmp_path):
        from gwas_atlas.top_results import read_top_results

        path = write_result_table(tmp_path / "t.gz", [])

        assert read_top_results(path) == []

    def test_missing_file(self, tmp_path):
        from gwas_atlas.top_results import read_top_results

        with pytest.raises(FileNotFoundError):
            read_top_results(tmp_path / "missing.gz")
