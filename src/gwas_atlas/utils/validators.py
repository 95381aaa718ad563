"""Input validation utilities."""

import math
import re

from ..errors import InvalidArgumentError
from .chromosomes import normalize_chromosome

# Identifiers end up inside a filename; no dots or path separators.
IDENTIFIER_PATTERN = re.compile(r"^[A-Za-z0-9_\-]+$")
POSITION_PATTERN = re.compile(r"^\d+$")


def validate_identifier(value: str | None, name: str) -> str:
    """Validate a phenotype or cohort identifier.

    Args:
        value: Identifier from the request
        name: Parameter name used in error messages

    Returns:
        The stripped identifier

    Raises:
        InvalidArgumentError: If missing, empty, or containing characters
            other than letters, digits, '_' and '-'
    """
    if value is None or not str(value).strip():
        raise InvalidArgumentError(f"{name} is required")

    value = str(value).strip()
    if not IDENTIFIER_PATTERN.match(value):
        raise InvalidArgumentError(
            f"Invalid {name}: '{value}'. Only letters, digits, '_' and '-' are allowed"
        )
    return value


def validate_position(value: int | str | None) -> int:
    """Validate a genomic position.

    Raises:
        InvalidArgumentError: If the value is not a positive integer
    """
    if value is None or isinstance(value, bool):
        raise InvalidArgumentError("position is required and must be a positive integer")

    if isinstance(value, int):
        position = value
    elif isinstance(value, str) and POSITION_PATTERN.match(value.strip()):
        position = int(value.strip())
    else:
        raise InvalidArgumentError(f"Invalid position: '{value}'. Must be a positive integer")

    if position <= 0:
        raise InvalidArgumentError(f"Invalid position: {position}. Must be a positive integer")
    return position


def validate_chromosome(value: str | int | None) -> str:
    """Validate and normalize a chromosome label to its bare form ("1", "X")."""
    if value is None or not str(value).strip():
        raise InvalidArgumentError("chromosome is required")

    chrom = normalize_chromosome(str(value))
    if not IDENTIFIER_PATTERN.match(chrom):
        raise InvalidArgumentError(f"Invalid chromosome: '{value}'")
    return chrom


def validate_p_value(value: float | str | None, name: str) -> float | None:
    """Validate an optional p-value bound. None and empty strings mean absent."""
    if value is None or (isinstance(value, str) and not value.strip()):
        return None

    try:
        p_value = float(value)
    except (TypeError, ValueError):
        raise InvalidArgumentError(f"Invalid {name}: '{value}'. Must be a number") from None

    if math.isnan(p_value) or not 0 < p_value <= 1:
        raise InvalidArgumentError(f"Invalid {name}: {value}. Must be in (0, 1]")
    return p_value


SNP_ID_PATTERN = re.compile(r"^[A-Za-z0-9_:\-]+$")


def validate_snp_id(value: str | None) -> str:
    """Validate a SNP identifier such as ``rs123`` or ``1:12345:A:G``."""
    if value is None or not str(value).strip():
        raise InvalidArgumentError("snp is required")

    value = str(value).strip()
    if not SNP_ID_PATTERN.match(value):
        raise InvalidArgumentError(f"Invalid snp: '{value}'")
    return value
