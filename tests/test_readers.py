"""Tests for range readers and the chromosome fetcher."""

import asyncio
import os
import sys

import pytest
from fixtures.gwas_lines import make_chromosome_lines, make_variant_line
from fixtures.static_reader import StaticRangeReader

pytestmark = pytest.mark.skipif(sys.platform == "win32", reason="fake tabix is a shell script")


async def _collect(reader, chromosome, path):
    return [line async for line in reader.iter_lines(chromosome, path)]


class TestTabixProcessReader:
    """Tests for the subprocess-backed reader."""

    @pytest.mark.asyncio
    async def test_yields_stdout_lines(self, tmp_path, make_fake_tabix):
        """Each stdout line becomes one row, blank lines skipped."""
        from gwas_atlas.readers import TabixProcessReader

        script = make_fake_tabix('printf "a\\tb\\n\\nc\\td\\n"')
        reader = TabixProcessReader(binary=str(script))

        lines = await _collect(reader, "1", tmp_path / "x.gz")

        assert lines == ["a\tb", "c\td"]

    @pytest.mark.asyncio
    async def test_passes_file_and_chromosome(self, tmp_path, make_fake_tabix):
        """tabix is invoked as '<binary> <file> <chromosome>'."""
        from gwas_atlas.readers import TabixProcessReader

        script = make_fake_tabix('echo "$1|$2"')
        reader = TabixProcessReader(binary=str(script))

        lines = await _collect(reader, "22", tmp_path / "data.gz")

        assert lines == [f"{tmp_path / 'data.gz'}|22"]

    @pytest.mark.asyncio
    async def test_nonzero_exit_raises(self, tmp_path, make_fake_tabix):
        """A non-zero exit code is a RetrievalError carrying stderr."""
        from gwas_atlas.errors import RetrievalError
        from gwas_atlas.readers import TabixProcessReader

        script = make_fake_tabix('echo "could not load index" >&2\nexit 2')
        reader = TabixProcessReader(binary=str(script))

        with pytest.raises(RetrievalError) as exc_info:
            await _collect(reader, "3", tmp_path / "x.gz")

        assert exc_info.value.returncode == 2
        assert exc_info.value.chromosome == "3"
        assert "could not load index" in exc_info.value.stderr

    @pytest.mark.asyncio
    async def test_signal_raises(self, tmp_path, make_fake_tabix):
        """Termination by signal is a RetrievalError naming the signal."""
        from gwas_atlas.errors import RetrievalError
        from gwas_atlas.readers import TabixProcessReader

        script = make_fake_tabix("kill -9 $$")
        reader = TabixProcessReader(binary=str(script))

        with pytest.raises(RetrievalError) as exc_info:
            await _collect(reader, "4", tmp_path / "x.gz")

        assert exc_info.value.signal == 9
        assert "signal 9" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_missing_binary_raises(self, tmp_path):
        """A binary that cannot be spawned is a RetrievalError."""
        from gwas_atlas.errors import RetrievalError
        from gwas_atlas.readers import TabixProcessReader

        reader = TabixProcessReader(binary=str(tmp_path / "no-such-tabix"))

        with pytest.raises(RetrievalError, match="Failed to spawn"):
            await _collect(reader, "1", tmp_path / "x.gz")

    @pytest.mark.asyncio
    async def test_no_regions_is_empty(self, tmp_path, make_fake_tabix):
        """'No regions in query' is an empty chromosome, not a failure."""
        from gwas_atlas.readers import TabixProcessReader

        script = make_fake_tabix('echo "[E::hts_itr_querys] No regions in query" >&2\nexit 1')
        reader = TabixProcessReader(binary=str(script))

        assert await _collect(reader, "Y", tmp_path / "x.gz") == []

    @pytest.mark.asyncio
    async def test_stderr_on_success_is_not_an_error(self, tmp_path, make_fake_tabix):
        """Warnings on stderr do not fail a zero exit."""
        from gwas_atlas.readers import TabixProcessReader

        script = make_fake_tabix('echo "row"\necho "[W::hts_idx_load] index is older" >&2')
        reader = TabixProcessReader(binary=str(script))

        assert await _collect(reader, "1", tmp_path / "x.gz") == ["row"]

    @pytest.mark.asyncio
    async def test_closing_early_kills_process(self, tmp_path, make_fake_tabix):
        """Abandoning iteration terminates the subprocess."""
        from gwas_atlas.readers import TabixProcessReader

        pid_file = tmp_path / "pid"
        script = make_fake_tabix(f'echo $$ > "{pid_file}"\necho "first"\nexec sleep 30')
        reader = TabixProcessReader(binary=str(script))

        lines = reader.iter_lines("1", tmp_path / "x.gz")
        async with asyncio.timeout(10):
            assert await anext(lines) == "first"
            await lines.aclose()

        pid = int(pid_file.read_text().strip())
        with pytest.raises(ProcessLookupError):
            os.kill(pid, 0)


class TestCreateReader:
    """Tests for reader selection."""

    def test_default_is_tabix(self):
        from gwas_atlas.readers import TabixProcessReader, create_reader

        reader = create_reader("tabix", tabix_binary="/opt/htslib/bin/tabix")

        assert isinstance(reader, TabixProcessReader)
        assert reader.binary == "/opt/htslib/bin/tabix"

    def test_unknown_reader(self):
        from gwas_atlas.readers import create_reader

        with pytest.raises(ValueError, match="Unknown reader"):
            create_reader("bam")


class TestChromosomeFetcher:
    """Tests for lazy decoding of one chromosome."""

    @pytest.mark.asyncio
    async def test_drops_unparseable_rows(self, tmp_path):
        """Rows with NA p-values or short rows are dropped silently."""
        from gwas_atlas.fetcher import ChromosomeFetcher

        reader = StaticRangeReader(
            lines={
                "1": [
                    make_variant_line(pos=100, p="1e-8"),
                    make_variant_line(pos=200, p="NA"),
                    "garbage\tline",
                    make_variant_line(pos=300, p="0.2"),
                ]
            }
        )
        fetcher = ChromosomeFetcher(reader)

        records = [r async for r in fetcher.fetch("1", tmp_path / "x.gz")]

        assert [r.pos for r in records] == [100, 300]

    @pytest.mark.asyncio
    async def test_collect_filters_by_window(self, tmp_path):
        """collect keeps only records inside the inclusive window."""
        from gwas_atlas.fetcher import ChromosomeFetcher
        from gwas_atlas.models import SignificanceWindow

        reader = StaticRangeReader(lines={"2": make_chromosome_lines(2, ["1e-9", "1e-8", "5e-7", "0.3"])})
        fetcher = ChromosomeFetcher(reader)
        window = SignificanceWindow(min_p_value=1e-8, max_p_value=5e-7)

        records = await fetcher.collect("2", tmp_path / "x.gz", window)

        assert [r.p_string for r in records] == ["1e-8", "5e-7"]
        assert all(window.min_p_value <= r.p <= window.max_p_value for r in records)

    @pytest.mark.asyncio
    async def test_collect_without_window_keeps_all(self, tmp_path):
        from gwas_atlas.fetcher import ChromosomeFetcher

        reader = StaticRangeReader(lines={"2": make_chromosome_lines(2, ["1e-9", "0.3"])})

        records = await ChromosomeFetcher(reader).collect("2", tmp_path / "x.gz")

        assert len(records) == 2

    @pytest.mark.asyncio
    async def test_preserves_file_order(self, tmp_path):
        """Records come out in the order the reader produced them."""
        from gwas_atlas.fetcher import ChromosomeFetcher

        reader = StaticRangeReader(lines={"5": make_chromosome_lines(5, ["0.1"] * 5, start=50)})

        records = await ChromosomeFetcher(reader).collect("5", tmp_path / "x.gz")

        assert [r.pos for r in records] == [50, 150, 250, 350, 450]

    @pytest.mark.asyncio
    async def test_reader_failure_propagates(self, tmp_path):
        """Reader failures surface as RetrievalError."""
        from gwas_atlas.errors import RetrievalError
        from gwas_atlas.fetcher import ChromosomeFetcher

        reader = StaticRangeReader(errors={"1": RetrievalError("boom", chromosome="1")})

        with pytest.raises(RetrievalError):
            await ChromosomeFetcher(reader).collect("1", tmp_path / "x.gz")

    @pytest.mark.asyncio
    async def test_end_to_end_with_fake_tabix(self, tmp_path, file_backed_tabix):
        """Rows flow from the tabix subprocess through the decoder."""
        from fixtures.static_reader import write_chromosome_rows
        from gwas_atlas.fetcher import ChromosomeFetcher
        from gwas_atlas.readers import TabixProcessReader

        source = tmp_path / "Phe001.EUR.gwama_pval_up_to_1e-05.gz"
        write_chromosome_rows(source, 1, make_chromosome_lines(1, ["3e-8", "NA", "4e-6"]))
        fetcher = ChromosomeFetcher(TabixProcessReader(binary=str(file_backed_tabix)))

        records = await fetcher.collect("1", source)

        assert [r.p_string for r in records] == ["3e-8", "4e-6"]
        assert await fetcher.collect("2", source) == []
