"""Error taxonomy for range queries and annotation lookups."""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .models import SignificanceWindow


class GWASAtlasError(Exception):
    """Base class for gwas-atlas errors."""

    pass


class InvalidArgumentError(GWASAtlasError, ValueError):
    """Raised when request parameters are missing or malformed."""

    pass


class SourceNotFoundError(GWASAtlasError):
    """Raised when a summary statistics file or its index is missing.

    Only the public filename is carried, never the absolute path.
    """

    def __init__(self, filename: str, missing: str = "file"):
        self.filename = filename
        self.missing = missing
        super().__init__(f"GWAS {missing} not found: {filename}")


class RetrievalError(GWASAtlasError):
    """Raised when fetching one chromosome from the indexed file fails."""

    def __init__(
        self,
        message: str,
        chromosome: str | None = None,
        returncode: int | None = None,
        signal: int | None = None,
        stderr: str = "",
    ):
        self.chromosome = chromosome
        self.returncode = returncode
        self.signal = signal
        self.stderr = stderr
        super().__init__(message)


class NoDataError(GWASAtlasError):
    """Raised when a well-formed query matches zero records."""

    def __init__(
        self,
        window: "SignificanceWindow",
        filename: str | None = None,
        message: str = "No data found in the specified p-value range",
    ):
        self.window = window
        self.filename = filename
        super().__init__(message)


class RecordParseError(GWASAtlasError):
    """Raised when a single variant line cannot be decoded."""

    pass
