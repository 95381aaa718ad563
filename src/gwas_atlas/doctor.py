"""System dependency checker for gwas-atlas."""

import importlib
import platform
import shutil
import sqlite3
import subprocess
import sys
from dataclasses import dataclass
from pathlib import Path

from .config import AtlasConfig


@dataclass
class CheckResult:
    """Result of a dependency check."""

    name: str
    passed: bool
    version: str | None = None
    message: str | None = None


INSTALL_INSTRUCTIONS = {
    "tabix": {
        "darwin": "brew install htslib",
        "linux": "sudo apt install tabix",
        "windows": "Install htslib via conda: conda install -c bioconda htslib",
    },
    "python": {
        "darwin": "brew install python@3.11",
        "linux": "sudo apt install python3.11 or use pyenv",
        "windows": "Download from https://www.python.org/downloads/",
    },
}


class DependencyChecker:
    """Check system dependencies for gwas-atlas."""

    def __init__(self, config: AtlasConfig | None = None):
        self.config = config or AtlasConfig()

    def check_python(self) -> CheckResult:
        """Check Python version is 3.11+."""
        version = f"{sys.version_info.major}.{sys.version_info.minor}.{sys.version_info.micro}"
        passed = sys.version_info >= (3, 11)

        return CheckResult(
            name="Python",
            passed=passed,
            version=version,
            message=None if passed else "Python 3.11+ required",
        )

    def check_tabix(self) -> CheckResult:
        """Check that the tabix binary is on PATH and runs."""
        binary = shutil.which(self.config.tabix_binary)
        if binary is None:
            return CheckResult(
                name="tabix",
                passed=False,
                message=f"'{self.config.tabix_binary}' not found. Install with: "
                f"{self.get_install_instructions('tabix')}",
            )

        try:
            proc = subprocess.run(
                [binary, "--version"], capture_output=True, text=True, timeout=10
            )
        except (OSError, subprocess.TimeoutExpired) as e:
            return CheckResult(name="tabix", passed=False, message=f"tabix failed to run: {e}")

        first_line = (proc.stdout or proc.stderr).strip().splitlines()
        version = first_line[0].split()[-1] if first_line else "unknown"
        return CheckResult(name="tabix", passed=True, version=version)

    def check_aiosqlite(self) -> CheckResult:
        """Check if aiosqlite is installed."""
        try:
            aiosqlite = importlib.import_module("aiosqlite")
            version = getattr(aiosqlite, "__version__", "unknown")
            return CheckResult(name="aiosqlite", passed=True, version=version)
        except ImportError:
            return CheckResult(
                name="aiosqlite",
                passed=False,
                message="aiosqlite not installed. Install with: pip install aiosqlite",
            )

    def check_sqlite_rtree(self) -> CheckResult:
        """Check that the bundled SQLite was built with the R-tree module."""
        conn = sqlite3.connect(":memory:")
        try:
            conn.execute("CREATE VIRTUAL TABLE probe USING rtree(id, min_pos, max_pos)")
        except sqlite3.OperationalError as e:
            return CheckResult(
                name="SQLite R-tree",
                passed=False,
                version=sqlite3.sqlite_version,
                message=f"SQLite lacks R-tree support: {e}",
            )
        finally:
            conn.close()
        return CheckResult(name="SQLite R-tree", passed=True, version=sqlite3.sqlite_version)

    def check_pysam(self) -> CheckResult:
        """Check if the optional pysam reader is available."""
        try:
            pysam = importlib.import_module("pysam")
            version = getattr(pysam, "__version__", "unknown")
            return CheckResult(name="pysam (optional)", passed=True, version=version)
        except ImportError:
            passed = self.config.reader != "pysam"
            return CheckResult(
                name="pysam (optional)",
                passed=passed,
                message="pysam not installed. Install with: pip install 'gwas-atlas[native]'",
            )

    def check_path(self, name: str, path: Path | None, directory: bool = False) -> CheckResult:
        """Check that a configured path exists."""
        if path is None:
            return CheckResult(name=name, passed=True, version="not configured")

        exists = path.is_dir() if directory else path.is_file()
        return CheckResult(
            name=name,
            passed=exists,
            version=str(path) if exists else None,
            message=None if exists else f"Not found: {path}",
        )

    def check_all(self) -> list[CheckResult]:
        """Run all dependency checks.

        Returns:
            List of CheckResult for each dependency.
        """
        return [
            self.check_python(),
            self.check_aiosqlite(),
            self.check_sqlite_rtree(),
            self.check_tabix(),
            self.check_pysam(),
            self.check_path("GWAS files", self.config.gwas_files_path, directory=True),
            self.check_path("Annotation database", self.config.annotation_db),
            self.check_path("GWAMA PheWAS database", self.config.gwama_db),
            self.check_path("MR-MEGA PheWAS database", self.config.mrmega_db),
        ]

    def get_install_instructions(self, dependency: str, os_platform: str | None = None) -> str:
        """Get installation instructions for a dependency.

        Args:
            dependency: Name of the dependency (e.g., 'tabix', 'python').
            os_platform: Platform name (darwin, linux, windows). Auto-detected if None.

        Returns:
            Installation instructions string.
        """
        if os_platform is None:
            os_platform = platform.system().lower()
            if os_platform not in ("darwin", "linux", "windows"):
                os_platform = "linux"

        instructions = INSTALL_INSTRUCTIONS.get(dependency, {})
        return instructions.get(os_platform, f"Please install {dependency}")

    def all_passed(self) -> bool:
        return all(r.passed for r in self.check_all())
